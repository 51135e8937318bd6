"""
Sealbid Auction Module.

This module provides the sealed-bid auction protocol:
- Commitment codec
- Bid storage in private collections
- Authorization checks
- Highest-bid audit
- The auction state machine contract
"""

from sealbid.core.auction.model import (
    Auction,
    AuctionStatus,
    BidCommitment,
    PrivateBid,
    RevealedBid,
)

from sealbid.core.auction.codec import (
    commit,
    verify,
    encode_bid,
    decode_bid,
    new_salt,
)

from sealbid.core.auction.bid_store import (
    BidStore,
    make_bid_key,
    split_bid_key,
)

from sealbid.core.auction.auditor import (
    AuditFinding,
    AuditReport,
    HighestBidAuditor,
)

from sealbid.core.auction.contract import (
    AuctionContract,
    auction_key,
)

__all__ = [
    # Records
    "Auction",
    "AuctionStatus",
    "BidCommitment",
    "PrivateBid",
    "RevealedBid",
    # Codec
    "commit",
    "verify",
    "encode_bid",
    "decode_bid",
    "new_salt",
    # Storage
    "BidStore",
    "make_bid_key",
    "split_bid_key",
    # Audit
    "AuditFinding",
    "AuditReport",
    "HighestBidAuditor",
    # Contract
    "AuctionContract",
    "auction_key",
]
