"""Ledger platform: identities, the ledger service contract and a local implementation"""
from sealbid.core.ledger.identity import Identity, Proposal, create_proposal
from sealbid.core.ledger.service import LedgerService
from sealbid.core.ledger.local import (
    CommitRecord,
    LocalLedger,
    PrivateRecord,
    TransactionContext,
)

__all__ = [
    "Identity",
    "Proposal",
    "create_proposal",
    "LedgerService",
    "LocalLedger",
    "TransactionContext",
    "PrivateRecord",
    "CommitRecord",
]
