"""
Auction Contract - the sealed-bid auction state machine.

Lifecycle:
    OPEN   --submit_commitment-->  OPEN
    OPEN   --close_auction------>  CLOSED
    CLOSED --reveal_bid--------->  CLOSED
    CLOSED --end_auction-------->  ENDED    (audit clear)
    CLOSED --end_auction-------->  CLOSED   (higher bid pending, error)

Bidding:
1. create_bid: the bidder stores (price, org, bidder, salt) in its own
   organization's private collection under a fresh bid key.
2. submit_commitment: the bidder anchors the bid on the public auction
   record: its org, the ledger proof of the private write and the value
   commitment. The bidder's org joins the auction's approver set.
3. reveal_bid: after closing, the bidder discloses the cleartext, which must
   open the anchored commitment.
4. end_auction: the seller finalizes once no organization's audit finds an
   unrevealed bid that could beat the best revealed price.

Every function runs inside one ledger transaction: it either returns and all
its writes commit, or it raises and nothing is written. Status checks happen
in the same transaction as the write they guard.
"""

from typing import Any, Dict, Mapping, Optional

from sealbid.core.auction.auditor import HighestBidAuditor
from sealbid.core.auction.authorization import (
    committer_fingerprint,
    require_bidder,
    require_committer,
    require_seller,
    require_storage_member,
)
from sealbid.core.auction.bid_store import BidStore, make_bid_key, split_bid_key
from sealbid.core.auction.codec import as_bid, verify
from sealbid.core.auction.model import (
    Auction,
    AuctionStatus,
    BidCommitment,
    PrivateBid,
    RevealedBid,
)
from sealbid.core.config import ProtocolConfig
from sealbid.core.errors import (
    AuctionAlreadyExists,
    AuctionNotClosed,
    AuctionNotFound,
    AuctionNotOpen,
    BidAlreadyExists,
    BidAlreadyRevealed,
    BidNotFound,
    CommitmentMismatch,
    InvalidArgument,
    NoRevealedBids,
    UnrevealedHigherBidExists,
)
from sealbid.core.ledger.service import LedgerService
from sealbid.utils.logger import get_logger
from sealbid.utils.validation import (
    validate_commitment,
    validate_hex_string,
    validate_identifier,
    validate_price,
    validate_string,
)

logger = get_logger("auction")

AUCTION_KEY_PREFIX = "auction"


def auction_key(auction_id: str) -> str:
    return f"{AUCTION_KEY_PREFIX}:{auction_id}"


def _check(result) -> None:
    valid, err = result
    if not valid:
        raise InvalidArgument(err)


class AuctionContract:
    """
    Sealed-bid auction contract.

    Functions take the transaction's LedgerService as first argument; the
    ledger invokes them by name from signed proposals.
    """

    TRANSACTIONS = (
        "create_auction",
        "create_bid",
        "submit_commitment",
        "close_auction",
        "reveal_bid",
        "end_auction",
    )
    QUERIES = (
        "query_auction",
        "query_bid",
        "get_submitting_identity",
    )

    def __init__(self, config: Optional[ProtocolConfig] = None):
        self.config = config or ProtocolConfig()

    # =========================================================================
    # Record access
    # =========================================================================

    def _validate_auction_id(self, auction_id: Any) -> None:
        _check(validate_identifier(auction_id, "auction_id", self.config.max_id_length))

    def _load(self, ctx: LedgerService, auction_id: str) -> Auction:
        self._validate_auction_id(auction_id)
        raw = ctx.get(auction_key(auction_id))
        if raw is None:
            raise AuctionNotFound(f"Auction {auction_id} does not exist")
        return Auction.from_bytes(raw)

    def _save(self, ctx: LedgerService, auction: Auction) -> None:
        ctx.put(auction_key(auction.auction_id), auction.to_bytes())

    def _check_bid_key(self, auction_id: str, bid_key: Any) -> None:
        key_auction, _ = split_bid_key(bid_key)
        if key_auction != auction_id:
            raise InvalidArgument(f"Bid key {bid_key} does not belong to auction {auction_id}")

    # =========================================================================
    # Auction lifecycle
    # =========================================================================

    def create_auction(self, ctx: LedgerService, auction_id: str, item: str) -> str:
        """
        Open an auction; the caller becomes the seller.

        Returns:
            The auction id
        """
        self._validate_auction_id(auction_id)
        _check(validate_string(item, "item", self.config.max_item_length))

        key = auction_key(auction_id)
        if ctx.get(key) is not None:
            raise AuctionAlreadyExists(f"Auction {auction_id} already exists")

        seller = ctx.caller_identity()
        auction = Auction(
            auction_id=auction_id,
            item=item,
            seller=seller.id,
            parties=[seller.org],
        )
        self._save(ctx, auction)
        ctx.set_approvers(key, [seller.org])

        logger.debug(f"Auction {auction_id} created by {seller} for item {item!r}")
        return auction_id

    def close_auction(self, ctx: LedgerService, auction_id: str) -> None:
        """Stop accepting commitments and start the reveal phase."""
        auction = self._load(ctx, auction_id)
        require_seller(ctx, auction)
        if auction.status != AuctionStatus.OPEN:
            raise AuctionNotOpen(f"Auction {auction_id} is {auction.status.name}, expected OPEN")

        auction.status = AuctionStatus.CLOSED
        self._save(ctx, auction)

        logger.debug(
            f"Auction {auction_id} closed with {len(auction.commitments)} commitments "
            f"from {len(auction.parties)} orgs"
        )

    def end_auction(self, ctx: LedgerService, auction_id: str) -> str:
        """
        Finalize the auction and record the winner.

        Runs the highest-bid audit with the executing peer's private data.

        Returns:
            The winner's identity id
        """
        auction = self._load(ctx, auction_id)
        require_seller(ctx, auction)
        if auction.status != AuctionStatus.CLOSED:
            raise AuctionNotClosed(f"Auction {auction_id} is {auction.status.name}, expected CLOSED")

        best = auction.best_bid()
        if best is None:
            raise NoRevealedBids(f"Auction {auction_id} has no revealed bids")
        best_key, best_bid = best

        auditor = HighestBidAuditor(BidStore(ctx), ctx.peer_org)
        report = auditor.audit(auction, best_bid.price)
        if not report.is_clear:
            raise UnrevealedHigherBidExists(report.describe(), bid_key=report.blockers[0].bid_key)

        auction.status = AuctionStatus.ENDED
        auction.best_price = best_bid.price
        auction.winner = best_bid.bidder
        self._save(ctx, auction)

        logger.debug(
            f"Auction {auction_id} ended: winner={auction.winner} price={auction.best_price} "
            f"(bid {best_key})"
        )
        return auction.winner

    # =========================================================================
    # Bidding
    # =========================================================================

    def create_bid(self, ctx: LedgerService, auction_id: str, price: int, salt: str) -> str:
        """
        Store a bid in the caller's private collection.

        Returns:
            The bid key, needed to submit and reveal the bid
        """
        _check(validate_price(price, self.config.max_price))
        _check(validate_hex_string(salt, "salt"))
        if not salt:
            raise InvalidArgument("salt must not be empty")

        auction = self._load(ctx, auction_id)
        if auction.status != AuctionStatus.OPEN:
            raise AuctionNotOpen(f"Auction {auction_id} is {auction.status.name}, expected OPEN")

        caller = ctx.caller_identity()
        bid_key = make_bid_key(auction_id, ctx.tx_id)
        bid = PrivateBid(price=price, org=caller.org, bidder=caller.id, salt=salt)
        # Raises NotAuthorized unless this peer belongs to the caller's org
        BidStore(ctx).put_commitment(caller.org, bid_key, bid)

        logger.debug(f"Bid {bid_key} created by {caller}")
        return bid_key

    def submit_commitment(self, ctx: LedgerService, auction_id: str, bid_key: str, commitment: str) -> None:
        """
        Anchor a stored bid on the auction record.

        The org is the caller's authenticated org, and the stored value is
        located through the ledger proof in that org's collection. On a peer
        of the caller's org the commitment is also checked against the
        stored value.
        """
        _check(validate_commitment(commitment))
        self._check_bid_key(auction_id, bid_key)

        auction = self._load(ctx, auction_id)
        if auction.status != AuctionStatus.OPEN:
            raise AuctionNotOpen(f"Auction {auction_id} is {auction.status.name}, expected OPEN")
        if bid_key in auction.commitments:
            raise BidAlreadyExists(f"Bid {bid_key} already committed")

        caller = ctx.caller_identity()
        store = BidStore(ctx)
        ref = store.get_commitment_reference(caller.org, bid_key)

        if ctx.peer_org == caller.org:
            stored = store.get_committed_value(caller.org, bid_key)
            require_bidder(ctx, bid_key, stored)
            if not verify(stored, commitment):
                raise CommitmentMismatch(f"Commitment does not match stored bid {bid_key}")

        auction.commitments[bid_key] = BidCommitment(
            org=caller.org,
            commitment_ref=ref,
            commitment=commitment,
            committer=committer_fingerprint(caller),
        )
        if caller.org not in auction.parties:
            auction.parties.append(caller.org)
            ctx.add_approver(auction_key(auction_id), caller.org)
            logger.debug(f"Org {caller.org} joined auction {auction_id}")

        self._save(ctx, auction)
        logger.debug(f"Commitment for {bid_key} accepted from {caller}")

    def reveal_bid(self, ctx: LedgerService, auction_id: str, bid_key: str, clear_value: Mapping[str, Any]) -> None:
        """
        Disclose a committed bid.

        Checks, in order: the caller committed the bid; the cleartext opens
        the anchored commitment; the stored value has not changed since it
        was anchored; the caller is the bidder encoded in the cleartext.
        """
        self._check_bid_key(auction_id, bid_key)

        auction = self._load(ctx, auction_id)
        if auction.status != AuctionStatus.CLOSED:
            raise AuctionNotClosed(f"Auction {auction_id} is {auction.status.name}, expected CLOSED")

        anchored = auction.commitments.get(bid_key)
        if anchored is None:
            raise BidNotFound(f"Bid {bid_key} was never committed to auction {auction_id}")
        if bid_key in auction.revealed:
            raise BidAlreadyRevealed(f"Bid {bid_key} already revealed")

        require_committer(ctx, bid_key, anchored)

        bid = as_bid(clear_value)
        if not verify(bid, anchored.commitment):
            logger.warning(f"Reveal of {bid_key} does not open its commitment")
            raise CommitmentMismatch(f"Revealed value does not match commitment of {bid_key}")

        if ctx.private_commitment_ref(anchored.org, bid_key) != anchored.commitment_ref:
            logger.warning(f"Stored bid {bid_key} changed since it was committed")
            raise CommitmentMismatch(f"Stored bid {bid_key} changed since it was committed")

        require_bidder(ctx, bid_key, bid)

        auction.revealed[bid_key] = RevealedBid(price=bid.price, org=bid.org, bidder=bid.bidder)
        auction.best_price = auction.best_bid()[1].price
        self._save(ctx, auction)

        logger.debug(f"Bid {bid_key} revealed: price={bid.price}")

    # =========================================================================
    # Queries
    # =========================================================================

    def query_auction(self, ctx: LedgerService, auction_id: str) -> Dict[str, Any]:
        """Public auction record."""
        return self._load(ctx, auction_id).model_dump(mode="json")

    def query_bid(self, ctx: LedgerService, auction_id: str, bid_key: str) -> Dict[str, Any]:
        """The caller's own cleartext bid, read from its org's collection."""
        self._check_bid_key(auction_id, bid_key)
        caller = require_storage_member(ctx, ctx.caller_identity().org)
        bid = BidStore(ctx).get_committed_value(caller.org, bid_key)
        require_bidder(ctx, bid_key, bid)
        return bid.model_dump()

    def get_submitting_identity(self, ctx: LedgerService) -> str:
        return ctx.caller_identity().id
