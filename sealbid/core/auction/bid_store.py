"""
Bid Store Adapter - where a bid lives.

A bid key names one bid-submission event:

    bid:<auction_id>:<tx_id>

Auction and transaction ids never contain ':', so distinct submissions
always produce distinct keys. The cleartext bid is written to the bidder
organization's private collection under that key; the shared ledger only
ever sees the collection's commitment reference.
"""

from typing import Tuple

from sealbid.core.auction.authorization import require_storage_member
from sealbid.core.auction.codec import BidLike, decode_bid, encode_bid
from sealbid.core.auction.model import PrivateBid
from sealbid.core.errors import BidNotFound, CommitmentMissing, InvalidArgument
from sealbid.core.ledger.service import LedgerService
from sealbid.utils.logger import get_logger
from sealbid.utils.validation import validate_identifier

logger = get_logger("auction.bid_store")

BID_KEY_PREFIX = "bid"
KEY_SEPARATOR = ":"


def make_bid_key(auction_id: str, tx_id: str) -> str:
    """Derive the bid key for a submission."""
    for value, name in ((auction_id, "auction_id"), (tx_id, "tx_id")):
        valid, err = validate_identifier(value, name)
        if not valid:
            raise InvalidArgument(err)
    return KEY_SEPARATOR.join((BID_KEY_PREFIX, auction_id, tx_id))


def split_bid_key(bid_key: str) -> Tuple[str, str]:
    """
    Recover (auction_id, tx_id) from a bid key.

    Raises:
        InvalidArgument: If the key is not a well-formed bid key
    """
    if not isinstance(bid_key, str):
        raise InvalidArgument(f"bid_key must be str, got {type(bid_key).__name__}")
    parts = bid_key.split(KEY_SEPARATOR)
    if len(parts) != 3 or parts[0] != BID_KEY_PREFIX:
        raise InvalidArgument(f"Malformed bid key: {bid_key!r}")
    make_bid_key(parts[1], parts[2])
    return parts[1], parts[2]


class BidStore:
    """Maps bid keys onto private collections and their ledger proofs."""

    def __init__(self, ctx: LedgerService):
        self.ctx = ctx

    def put_commitment(self, party: str, bid_key: str, value: BidLike) -> None:
        """
        Store a bid in ``party``'s private collection.

        Raises:
            NotAuthorized: If the caller is outside ``party``'s storage domain
        """
        require_storage_member(self.ctx, party)
        self.ctx.private_put(party, bid_key, encode_bid(value))
        logger.debug(f"Stored bid {bid_key} in private collection of {party}")

    def get_commitment_reference(self, party: str, bid_key: str) -> str:
        """
        Ledger proof that ``party`` stored something under ``bid_key``.

        Raises:
            CommitmentMissing: If nothing is stored
        """
        ref = self.ctx.private_commitment_ref(party, bid_key)
        if ref is None:
            raise CommitmentMissing(f"No bid stored under {bid_key} by {party}")
        return ref

    def matches_reference(self, party: str, bid_key: str, anchored_ref: str) -> bool:
        """True if the stored bid is still the one whose proof was anchored."""
        return self.ctx.private_commitment_ref(party, bid_key) == anchored_ref

    def get_committed_value(self, party: str, bid_key: str) -> PrivateBid:
        """
        Cleartext bid, only inside ``party``'s storage domain.

        Raises:
            NotAuthorized: If the executing peer is not a member of ``party``
            BidNotFound: If nothing is stored
        """
        raw = self.ctx.private_get(party, bid_key)
        if raw is None:
            raise BidNotFound(f"Bid {bid_key} not found in private collection of {party}")
        return decode_bid(raw)
