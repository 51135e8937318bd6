"""
Error hierarchy for sealbid.

Every failure is raised synchronously to the caller and rejects the whole
ledger transaction; nothing is retried internally. The ``retryable`` flag
tells a caller whether re-submitting the same request later can succeed
(e.g. finalization blocked until outstanding bids are revealed) or whether
the request must be abandoned (e.g. a reveal that fails verification).
"""

from typing import Optional


class SealbidError(Exception):
    """Base exception for all sealbid errors."""
    retryable = False


# ============================================================================
# AUCTION ERRORS
# ============================================================================

class AuctionError(SealbidError):
    """Base exception for auction protocol errors."""
    pass


class InvalidArgument(AuctionError, ValueError):
    """Raised when a caller passes a malformed identifier, price or bid value."""
    pass


class NotFound(AuctionError):
    """Raised when an auction or bid does not exist."""
    pass


class AuctionNotFound(NotFound):
    pass


class BidNotFound(NotFound):
    pass


class AlreadyExists(AuctionError):
    """Raised when creating an object whose identifier is already taken."""
    pass


class AuctionAlreadyExists(AlreadyExists):
    pass


class BidAlreadyExists(AlreadyExists):
    """Raised when a bid key has already been committed to the auction."""
    pass


class BidAlreadyRevealed(AuctionError):
    """Raised when revealing a bid that is already part of the revealed set."""
    pass


class AuctionNotOpen(AuctionError):
    """Raised when an operation needs the auction to accept commitments."""
    pass


class AuctionNotClosed(AuctionError):
    """Raised when an operation needs the auction to be in the reveal phase."""
    pass


class NotAuthorized(AuctionError):
    """Raised when the caller is outside the storage domain or role required."""
    pass


class NotSeller(NotAuthorized):
    """Raised when someone other than the seller tries to close or end an auction."""
    pass


class NotBidOwner(NotAuthorized):
    """Raised when a caller acts on a bid committed by another identity."""
    pass


class CommitmentMismatch(AuctionError):
    """Raised when a revealed value does not open the anchored commitment."""
    pass


class CommitmentMissing(AuctionError):
    """Raised when a submission claims a bid that is not in the caller's storage."""
    pass


class UnrevealedHigherBidExists(AuctionError):
    """Raised when finalization is blocked by a bid that may beat the best price."""
    retryable = True

    def __init__(self, message: str, bid_key: Optional[str] = None):
        super().__init__(message)
        self.bid_key = bid_key


class NoRevealedBids(AuctionError):
    """Raised when ending an auction before any bid has been revealed."""
    retryable = True


# ============================================================================
# LEDGER ERRORS
# ============================================================================

class LedgerError(SealbidError):
    """Base exception for ledger platform errors."""
    pass


class InvalidSignature(LedgerError):
    """Raised when a proposal signature does not match its creator key."""
    pass


class UnknownFunction(LedgerError):
    """Raised when a proposal names a function the installed contract does not export."""
    pass


class EndorsementMismatch(LedgerError):
    """Raised when endorsing peers produce different write sets."""
    pass


class EndorsementPolicyFailure(LedgerError):
    """Raised when a write lacks an endorsement from a required approver org."""
    # The approver set may have grown since the client picked its endorsers
    retryable = True


__all__ = [
    "SealbidError",
    "AuctionError",
    "InvalidArgument",
    "NotFound",
    "AuctionNotFound",
    "BidNotFound",
    "AlreadyExists",
    "AuctionAlreadyExists",
    "BidAlreadyExists",
    "BidAlreadyRevealed",
    "AuctionNotOpen",
    "AuctionNotClosed",
    "NotAuthorized",
    "NotSeller",
    "NotBidOwner",
    "CommitmentMismatch",
    "CommitmentMissing",
    "UnrevealedHigherBidExists",
    "NoRevealedBids",
    "LedgerError",
    "InvalidSignature",
    "UnknownFunction",
    "EndorsementMismatch",
    "EndorsementPolicyFailure",
]
