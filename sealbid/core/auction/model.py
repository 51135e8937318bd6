"""
Auction records stored on the ledger.

Public records (visible to every participant):
- Auction: the aggregate root, one per auction id
- BidCommitment: the anchor of one committed bid
- RevealedBid: a bid whose reveal has been verified

Private records (inside the bidder organization's collection only):
- PrivateBid: the cleartext bid value
"""

from enum import IntEnum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr


class AuctionStatus(IntEnum):
    """State of an auction; values only ever increase."""
    OPEN = 0      # Accepting commitments
    CLOSED = 1    # Accepting reveals
    ENDED = 2     # Winner selected, record frozen


class PrivateBid(BaseModel):
    """
    A bidder's cleartext bid.

    The salt is random per bid so that the commitment does not leak
    low-entropy prices.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    price: StrictInt = Field(..., ge=0)
    org: StrictStr = Field(..., min_length=1)
    bidder: StrictStr = Field(..., min_length=1)
    salt: StrictStr = Field(..., min_length=1)


class BidCommitment(BaseModel):
    """
    Public anchor for one committed bid.

    Attributes:
        org: Organization that stores the bid value
        commitment_ref: Ledger proof that a value was stored under the bid key
            in ``org``'s collection. Says nothing about the value itself.
        commitment: Value commitment (codec digest) the bid must open at reveal
        committer: Fingerprint of the identity that submitted the commitment
    """
    model_config = ConfigDict(extra="forbid")

    org: StrictStr
    commitment_ref: StrictStr
    commitment: StrictStr
    committer: StrictStr


class RevealedBid(BaseModel):
    """A bid whose cleartext has been verified against its commitment."""
    model_config = ConfigDict(extra="forbid")

    price: StrictInt = Field(..., ge=0)
    org: StrictStr
    bidder: StrictStr


class Auction(BaseModel):
    """
    The auction aggregate.

    ``commitments`` keeps insertion order (dicts are ordered and the JSON
    encoding preserves it), which is the tie-break order for equal prices.
    """
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    object_type: StrictStr = "auction"
    auction_id: StrictStr
    item: StrictStr
    seller: StrictStr
    status: AuctionStatus = AuctionStatus.OPEN
    parties: List[StrictStr] = Field(default_factory=list)
    commitments: Dict[str, BidCommitment] = Field(default_factory=dict)
    revealed: Dict[str, RevealedBid] = Field(default_factory=dict)
    best_price: StrictInt = 0
    winner: StrictStr = ""

    @property
    def seller_org(self) -> str:
        return self.parties[0]

    def unrevealed(self) -> List[Tuple[str, BidCommitment]]:
        """Commitments without a verified reveal, in commitment order."""
        return [
            (bid_key, commitment)
            for bid_key, commitment in self.commitments.items()
            if bid_key not in self.revealed
        ]

    def revealed_orgs(self) -> List[str]:
        return list(dict.fromkeys(bid.org for bid in self.revealed.values()))

    def best_bid(self) -> Optional[Tuple[str, RevealedBid]]:
        """
        Highest revealed bid.

        Ties go to the bid committed first.
        """
        best = None
        for bid_key in self.commitments:
            bid = self.revealed.get(bid_key)
            if bid is None:
                continue
            if best is None or bid.price > best[1].price:
                best = (bid_key, bid)
        return best

    def to_bytes(self) -> bytes:
        return self.model_dump_json().encode("utf-8")

    @classmethod
    def from_bytes(cls, data: bytes) -> "Auction":
        return cls.model_validate_json(data)
