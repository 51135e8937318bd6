"""
Ledger service contract.

This is the only surface the auction core touches. A LedgerService instance
is scoped to one transaction simulated on one organization's peer:

- Public state is shared by every participant.
- Private state is partitioned per organization; only a peer of that
  organization can read or write it.
- A commitment reference proves that a private write happened without
  revealing the value, and is readable from every peer.
- Approver sets declare which organizations must endorse future writes
  to a public key.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from sealbid.core.ledger.identity import Identity


class LedgerService(ABC):
    """Per-transaction view of the ledger."""

    @property
    @abstractmethod
    def tx_id(self) -> str:
        """Id of the transaction being simulated."""

    @property
    @abstractmethod
    def peer_org(self) -> str:
        """Organization whose peer executes this simulation."""

    @abstractmethod
    def caller_identity(self) -> Identity:
        """Authenticated submitter of the transaction."""

    # Public state

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """Read a public value; None if absent."""

    @abstractmethod
    def put(self, key: str, value: bytes) -> None:
        """Write a public value."""

    # Private state

    @abstractmethod
    def private_put(self, party: str, key: str, value: bytes) -> None:
        """Write into ``party``'s private collection."""

    @abstractmethod
    def private_get(self, party: str, key: str) -> Optional[bytes]:
        """Read from ``party``'s private collection; None if absent."""

    @abstractmethod
    def private_commitment_ref(self, party: str, key: str) -> Optional[str]:
        """Tamper-evident proof of the committed private write; None if absent."""

    # Endorsement

    @abstractmethod
    def get_approvers(self, key: str) -> List[str]:
        """Organizations whose endorsement is required to write ``key``."""

    @abstractmethod
    def set_approvers(self, key: str, orgs: List[str]) -> None:
        """Replace the approver set of ``key``."""

    def add_approver(self, key: str, org: str) -> None:
        """Extend the approver set of ``key``; a no-op if already present."""
        approvers = self.get_approvers(key)
        if org not in approvers:
            self.set_approvers(key, approvers + [org])
