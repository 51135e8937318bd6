"""
Gateway and AuctionClient - the application side of the protocol.

The Gateway signs proposals with a wallet and sends them to the ledger.
The AuctionClient wraps the auction contract the way an application does:
it picks endorsing organizations from the auction's parties, reads back the
caller's own bid to compute commitments, and returns typed records.
"""

from typing import Any, Iterable, List, Optional

from sealbid.client.wallet import Wallet
from sealbid.core.auction.codec import commit, new_salt
from sealbid.core.auction.model import Auction, PrivateBid
from sealbid.core.ledger.identity import Identity
from sealbid.core.ledger.local import LocalLedger
from sealbid.utils.logger import get_logger

logger = get_logger("client")


class Gateway:
    """Connection of one wallet to the ledger."""

    def __init__(self, ledger: LocalLedger, wallet: Wallet):
        self.ledger = ledger
        self.wallet = wallet

    @property
    def identity(self) -> Identity:
        return self.wallet.identity

    def evaluate(self, function: str, *args) -> Any:
        """Run a query on the wallet org's peer."""
        return self.ledger.evaluate(self.wallet.sign_proposal(function, list(args)))

    def submit(self, function: str, *args, endorsing_orgs: Optional[Iterable[str]] = None) -> Any:
        """Endorse and commit a transaction."""
        proposal = self.wallet.sign_proposal(function, list(args))
        orgs = list(endorsing_orgs) if endorsing_orgs else [self.wallet.org]
        logger.debug(f"Submitting {function} as {self.identity}, tx {proposal.tx_id[:16]}..., endorsers {orgs}")
        return self.ledger.submit(proposal, endorsing_orgs=orgs)


class AuctionClient:
    """Application-level operations on the auction contract."""

    def __init__(self, gateway: Gateway):
        self.gateway = gateway

    @classmethod
    def connect(cls, ledger: LocalLedger, wallet: Wallet) -> "AuctionClient":
        return cls(Gateway(ledger, wallet))

    @property
    def identity(self) -> Identity:
        return self.gateway.identity

    def _auction_orgs(self, auction_id: str) -> List[str]:
        """Every party of the auction, plus the caller's own org."""
        parties = self.query_auction(auction_id).parties
        return list(dict.fromkeys(parties + [self.identity.org]))

    # Seller

    def create_auction(self, auction_id: str, item: str) -> str:
        return self.gateway.submit("create_auction", auction_id, item)

    def close_auction(self, auction_id: str) -> None:
        self.gateway.submit("close_auction", auction_id, endorsing_orgs=self._auction_orgs(auction_id))

    def end_auction(self, auction_id: str) -> str:
        """Finalize; every party's peer runs its own highest-bid audit."""
        winner = self.gateway.submit("end_auction", auction_id, endorsing_orgs=self._auction_orgs(auction_id))
        logger.info(f"Auction {auction_id} ended, winner {winner}")
        return winner

    # Bidder

    def create_bid(self, auction_id: str, price: int, salt: Optional[str] = None) -> str:
        """Store a bid privately; returns its bid key."""
        return self.gateway.submit("create_bid", auction_id, price, salt or new_salt())

    def submit_bid(self, auction_id: str, bid_key: str) -> str:
        """
        Anchor a stored bid on the auction.

        Returns:
            The commitment that was submitted
        """
        commitment = commit(self.query_bid(auction_id, bid_key))
        self.gateway.submit(
            "submit_commitment", auction_id, bid_key, commitment,
            endorsing_orgs=self._auction_orgs(auction_id),
        )
        return commitment

    def reveal_bid(self, auction_id: str, bid_key: str, bid: Optional[PrivateBid] = None) -> None:
        """Reveal a bid; by default the stored bid is read back and revealed."""
        bid = bid or self.query_bid(auction_id, bid_key)
        self.gateway.submit(
            "reveal_bid", auction_id, bid_key, bid.model_dump(),
            endorsing_orgs=self._auction_orgs(auction_id),
        )

    # Queries

    def query_auction(self, auction_id: str) -> Auction:
        return Auction.model_validate(self.gateway.evaluate("query_auction", auction_id))

    def query_bid(self, auction_id: str, bid_key: str) -> PrivateBid:
        return PrivateBid.model_validate(self.gateway.evaluate("query_bid", auction_id, bid_key))

    def whoami(self) -> str:
        return self.gateway.evaluate("get_submitting_identity")
