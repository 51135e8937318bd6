"""
Highest-Bid Auditor - may an unrevealed bid still beat the best price?

The audit runs on one organization's peer and can only see that
organization's private bids. For every commitment without a reveal:

- Own bid: read the cleartext and block if its price is strictly greater
  than the best revealed price. A stored value that is missing or no longer
  opens its commitment also blocks, since its price cannot be established.
- Any bid whose current ledger proof differs from the anchored
  commitment_ref was deleted or rewritten after submission, and blocks.
- Foreign bid: only the anchor is visible. If the committing organization
  has not revealed anything yet, the bid blocks. Otherwise the committing
  organization vouches for it by running this same audit on its own peer
  before it endorses finalization.

Because every participating organization is a required approver of the
auction record, finalization commits only if every organization's audit is
clear, which covers every bid.
"""

from dataclasses import dataclass, field
from typing import List

from sealbid.core.auction.bid_store import BidStore
from sealbid.core.auction.codec import verify
from sealbid.core.auction.model import Auction, BidCommitment
from sealbid.core.errors import BidNotFound, InvalidArgument
from sealbid.utils.logger import get_logger

logger = get_logger("auction.auditor")


@dataclass
class AuditFinding:
    """One unrevealed bid that blocks finalization."""
    bid_key: str
    org: str
    reason: str


@dataclass
class AuditReport:
    """Outcome of one organization's audit."""
    auditor_org: str
    best_price: int
    checked: int = 0
    blockers: List[AuditFinding] = field(default_factory=list)
    # Foreign bids left to their own organization's audit
    deferred: List[str] = field(default_factory=list)

    @property
    def is_clear(self) -> bool:
        return not self.blockers

    def describe(self) -> str:
        if self.is_clear:
            return "clear to finalize"
        return f"blocked: bid {self.blockers[0].bid_key} may exceed current best price"


class HighestBidAuditor:
    """Audits the unrevealed bids of an auction against the auditor's own data."""

    def __init__(self, bid_store: BidStore, auditor_org: str):
        self.bid_store = bid_store
        self.auditor_org = auditor_org

    def audit(self, auction: Auction, best_price: int) -> AuditReport:
        report = AuditReport(auditor_org=self.auditor_org, best_price=best_price)
        revealed_orgs = set(auction.revealed_orgs())

        for bid_key, commitment in auction.unrevealed():
            report.checked += 1
            if commitment.org == self.auditor_org:
                self._audit_own(report, bid_key, commitment)
            else:
                self._audit_foreign(report, bid_key, commitment, revealed_orgs)

        if report.is_clear:
            logger.debug(
                f"Audit by {self.auditor_org} on {auction.auction_id}: clear "
                f"({report.checked} unrevealed, {len(report.deferred)} deferred)"
            )
        else:
            logger.warning(
                f"Audit by {self.auditor_org} on {auction.auction_id}: {report.describe()}"
            )
        return report

    def _anchor_intact(self, bid_key: str, commitment: BidCommitment) -> bool:
        return self.bid_store.matches_reference(commitment.org, bid_key, commitment.commitment_ref)

    def _audit_own(self, report: AuditReport, bid_key: str, commitment: BidCommitment) -> None:
        try:
            bid = self.bid_store.get_committed_value(commitment.org, bid_key)
        except (BidNotFound, InvalidArgument):
            report.blockers.append(
                AuditFinding(bid_key, commitment.org, "stored bid is missing or unreadable")
            )
            return

        if not verify(bid, commitment.commitment):
            report.blockers.append(
                AuditFinding(bid_key, commitment.org, "stored bid does not open its commitment")
            )
        elif not self._anchor_intact(bid_key, commitment):
            report.blockers.append(
                AuditFinding(bid_key, commitment.org, "stored bid was rewritten after it was anchored")
            )
        elif bid.price > report.best_price:
            report.blockers.append(
                AuditFinding(bid_key, commitment.org, f"unrevealed price exceeds {report.best_price}")
            )

    def _audit_foreign(
        self,
        report: AuditReport,
        bid_key: str,
        commitment: BidCommitment,
        revealed_orgs: set,
    ) -> None:
        if not self._anchor_intact(bid_key, commitment):
            report.blockers.append(
                AuditFinding(
                    bid_key, commitment.org,
                    "stored bid was deleted or rewritten after it was anchored",
                )
            )
        elif commitment.org in revealed_orgs:
            report.deferred.append(bid_key)
        else:
            report.blockers.append(
                AuditFinding(
                    bid_key, commitment.org,
                    f"{commitment.org} has not revealed and its bid cannot be inspected",
                )
            )
