"""
Authorization Guard - who may do what.

The guard only compares identities; it never authenticates. Caller identity
comes from the ledger (a verified proposal signature), so nothing here
trusts values supplied as arguments.
"""

from sealbid.core.auction.model import Auction, BidCommitment, PrivateBid
from sealbid.core.errors import NotAuthorized, NotBidOwner, NotSeller
from sealbid.core.ledger.identity import Identity
from sealbid.core.ledger.service import LedgerService
from sealbid.crypto import keccak256

DOMAIN_COMMITTER = b"sealbid.committer.v1|"


def committer_fingerprint(identity: Identity) -> str:
    """
    Opaque fingerprint of a committing identity.

    Lets any peer check that a reveal comes from the committer without
    writing bidder identities into the public record before reveal.
    """
    return keccak256(DOMAIN_COMMITTER + identity.id.encode("utf-8")).hex()


def require_storage_member(ctx: LedgerService, party: str) -> Identity:
    """
    Caller and executing peer must both belong to ``party``.

    Returns:
        The caller identity
    """
    caller = ctx.caller_identity()
    if caller.org != party:
        raise NotAuthorized(f"{caller} is not a member of {party}")
    if ctx.peer_org != party:
        raise NotAuthorized(
            f"Client org {caller.org} cannot use private data on a {ctx.peer_org} peer"
        )
    return caller


def require_seller(ctx: LedgerService, auction: Auction) -> Identity:
    caller = ctx.caller_identity()
    if caller.id != auction.seller:
        raise NotSeller(f"{caller} is not the seller of auction {auction.auction_id}")
    return caller


def require_committer(ctx: LedgerService, bid_key: str, commitment: BidCommitment) -> Identity:
    """The caller must be the identity that committed ``bid_key``."""
    caller = ctx.caller_identity()
    if caller.org != commitment.org or committer_fingerprint(caller) != commitment.committer:
        raise NotBidOwner(f"{caller} did not commit bid {bid_key}")
    return caller


def require_bidder(ctx: LedgerService, bid_key: str, bid: PrivateBid) -> Identity:
    """The caller must be the bidder encoded inside the bid value."""
    caller = ctx.caller_identity()
    if bid.bidder != caller.id or bid.org != caller.org:
        raise NotBidOwner(f"{caller} is not the bidder of {bid_key}")
    return caller
