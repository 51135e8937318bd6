"""
LocalLedger - a single-process ledger platform.

Conceptual Background:
---------------------
The auction contract assumes a replicated ledger shared by several
organizations, each running its own peer. LocalLedger keeps every peer in
one process while preserving the properties the contract relies on:

1. **Authentication**: the caller identity comes from a verified proposal
   signature and the membership registry, never from arguments.
2. **Private collections**: each organization's private data is only
   visible to a simulation running on that organization's peer.
3. **Endorsement**: a transaction is simulated on the peer of every
   endorsing organization. All peers must succeed and agree on the public
   write set, and the endorsing orgs must cover the approver set of every
   public key the transaction writes, both as committed and as rewritten
   by the transaction itself.
4. **Atomicity**: writes are buffered during simulation and applied under a
   single lock; a failure anywhere discards them all.

Transaction Flow:
----------------
    submit(proposal, endorsing_orgs)
      -> authenticate creator
      -> simulate on each endorsing peer (TransactionContext)
      -> compare write sets, check approver policy
      -> apply + persist, append commit record
"""

import secrets
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from sealbid.core.errors import (
    EndorsementMismatch,
    EndorsementPolicyFailure,
    InvalidSignature,
    LedgerError,
    NotAuthorized,
    UnknownFunction,
)
from sealbid.core.ledger.identity import Identity, Proposal
from sealbid.core.ledger.service import LedgerService
from sealbid.core.storage.storage_manager import StorageManager
from sealbid.crypto import keccak256
from sealbid.utils.logger import get_logger

logger = get_logger("ledger")

PRIVATE_NONCE_SIZE = 32


# =============================================================================
# Records
# =============================================================================


@dataclass
class PrivateRecord:
    """A value in a private collection plus the nonce backing its proof."""
    value: bytes
    nonce: bytes

    def commitment_ref(self, party: str, key: str) -> str:
        """
        Proof that this write happened.

        ref = Keccak256(nonce || party || 0x00 || key || 0x00 || value)

        The random nonce keeps low-entropy values from being recovered by
        enumeration, and makes the ref change whenever the value is rewritten.
        """
        preimage = (
            self.nonce
            + party.encode("utf-8") + b"\x00"
            + key.encode("utf-8") + b"\x00"
            + self.value
        )
        return keccak256(preimage).hex()


@dataclass
class WriteSet:
    """Writes buffered by one simulated transaction."""
    public: Dict[str, bytes] = field(default_factory=dict)
    private: Dict[Tuple[str, str], bytes] = field(default_factory=dict)
    approvers: Dict[str, List[str]] = field(default_factory=dict)

    def shared_view(self) -> Tuple:
        """The part of the write set every endorser must agree on."""
        return (
            tuple(sorted(self.public.items())),
            tuple(sorted((k, tuple(v)) for k, v in self.approvers.items())),
        )


@dataclass
class CommitRecord:
    """Entry of the append-only transaction log."""
    height: int
    tx_id: str
    function: str
    creator: str
    endorsers: List[str]
    timestamp: int


# =============================================================================
# Transaction Context
# =============================================================================


class TransactionContext(LedgerService):
    """
    LedgerService for one transaction simulated on one organization's peer.

    Reads see committed state overlaid with this transaction's own writes.
    """

    def __init__(self, ledger: "LocalLedger", creator: Identity, peer_org: str, tx_id: str):
        self._ledger = ledger
        self._creator = creator
        self._peer_org = peer_org
        self._tx_id = tx_id
        self.writes = WriteSet()

    @property
    def tx_id(self) -> str:
        return self._tx_id

    @property
    def peer_org(self) -> str:
        return self._peer_org

    def caller_identity(self) -> Identity:
        return self._creator

    # Public state

    def get(self, key: str) -> Optional[bytes]:
        if key in self.writes.public:
            return self.writes.public[key]
        return self._ledger._state.get(key)

    def put(self, key: str, value: bytes) -> None:
        if not isinstance(value, (bytes, bytearray)):
            raise TypeError(f"value must be bytes, got {type(value).__name__}")
        self.writes.public[key] = bytes(value)

    # Private state

    def _require_member(self, party: str) -> None:
        if party != self._peer_org:
            raise NotAuthorized(
                f"Peer of {self._peer_org} cannot access private data of {party}"
            )

    def private_put(self, party: str, key: str, value: bytes) -> None:
        self._require_member(party)
        self.writes.private[(party, key)] = bytes(value)

    def private_get(self, party: str, key: str) -> Optional[bytes]:
        self._require_member(party)
        if (party, key) in self.writes.private:
            return self.writes.private[(party, key)]
        record = self._ledger._private.get(party, {}).get(key)
        return record.value if record else None

    def private_commitment_ref(self, party: str, key: str) -> Optional[str]:
        # Only committed writes have a proof
        record = self._ledger._private.get(party, {}).get(key)
        return record.commitment_ref(party, key) if record else None

    # Endorsement

    def get_approvers(self, key: str) -> List[str]:
        if key in self.writes.approvers:
            return list(self.writes.approvers[key])
        return list(self._ledger._approvers.get(key, []))

    def set_approvers(self, key: str, orgs: List[str]) -> None:
        # Keep first-seen order, drop duplicates
        self.writes.approvers[key] = list(dict.fromkeys(orgs))


# =============================================================================
# Local Ledger
# =============================================================================


class LocalLedger:
    """
    Shared ledger with per-organization private collections.

    Attributes:
        history: Append-only log of committed transactions
        height: Number of committed transactions
    """

    def __init__(self, storage_manager: Optional[StorageManager] = None):
        """
        Initialize the ledger.

        Args:
            storage_manager: Persistence manager. None = in-memory only.
        """
        self._state: Dict[str, bytes] = {}
        self._private: Dict[str, Dict[str, PrivateRecord]] = {}
        self._approvers: Dict[str, List[str]] = {}
        self._identities: Dict[bytes, Identity] = {}
        self._tx_ids: Set[str] = set()

        self.history: List[CommitRecord] = []
        self.height = 0

        self._contract = None
        self._lock = threading.RLock()

        self.storage_manager = storage_manager
        if storage_manager:
            self._load_from_storage()

    # =========================================================================
    # Setup
    # =========================================================================

    def install(self, contract) -> None:
        """Install the contract whose functions proposals may invoke."""
        self._contract = contract
        logger.info(f"Installed contract {type(contract).__name__}")

    def register_identity(self, name: str, org: str, public_key: bytes) -> Identity:
        """
        Enroll a public key as a member of ``org``.

        Re-registering the same key with the same name and org is a no-op.
        """
        with self._lock:
            existing = self._identities.get(public_key)
            if existing is not None:
                if (existing.name, existing.org) != (name, org):
                    raise LedgerError(f"Key already enrolled as {existing}")
                return existing

            identity = Identity(name=name, org=org, public_key=public_key)
            self._identities[public_key] = identity
            if self.storage_manager:
                self.storage_manager.persist_identity(public_key, name, org)

        logger.info(f"Enrolled identity {identity} ({identity.id})")
        return identity

    @property
    def orgs(self) -> List[str]:
        """Organizations with at least one enrolled identity."""
        return sorted({identity.org for identity in self._identities.values()})

    def get_identity(self, public_key: bytes) -> Optional[Identity]:
        return self._identities.get(public_key)

    # =========================================================================
    # Invocation
    # =========================================================================

    def authenticate(self, proposal: Proposal) -> Identity:
        """Resolve the proposal creator, verifying its signature."""
        identity = self._identities.get(proposal.creator_key)
        if identity is None:
            raise InvalidSignature("Proposal creator is not an enrolled identity")
        if not proposal.verify_signature():
            raise InvalidSignature(f"Invalid proposal signature from {identity}")
        return identity

    def evaluate(self, proposal: Proposal) -> Any:
        """
        Run a function on the creator's own peer without committing.

        Returns:
            The function result
        """
        creator = self.authenticate(proposal)
        handler = self._resolve(proposal.function, allow_queries=True)
        ctx = TransactionContext(self, creator, creator.org, proposal.tx_id)
        return handler(ctx, *proposal.args)

    def submit(self, proposal: Proposal, endorsing_orgs: Optional[Iterable[str]] = None) -> Any:
        """
        Endorse, validate and commit a transaction.

        Args:
            proposal: Signed proposal
            endorsing_orgs: Orgs whose peers simulate the transaction.
                Defaults to the creator's org.

        Returns:
            The function result (identical on every endorsing peer)

        Raises:
            Whatever the contract raises on any peer; ledger errors for
            signature, endorsement or policy failures. State is unchanged
            on any error.
        """
        creator = self.authenticate(proposal)
        handler = self._resolve(proposal.function, allow_queries=False)
        orgs = list(dict.fromkeys(endorsing_orgs or [creator.org]))

        with self._lock:
            if proposal.tx_id in self._tx_ids:
                raise LedgerError(f"Duplicate transaction {proposal.tx_id[:16]}...")

            results = []
            contexts = []
            for org in orgs:
                ctx = TransactionContext(self, creator, org, proposal.tx_id)
                results.append(handler(ctx, *proposal.args))
                contexts.append(ctx)

            self._check_endorsements(proposal, orgs, results, contexts)
            self._apply(proposal, creator, orgs, contexts)

        return results[0]

    def _resolve(self, function: str, allow_queries: bool):
        if self._contract is None:
            raise UnknownFunction("No contract installed")
        exported = set(self._contract.TRANSACTIONS)
        if allow_queries:
            exported |= set(self._contract.QUERIES)
        if function not in exported:
            raise UnknownFunction(f"Function {function!r} is not exported")
        return getattr(self._contract, function)

    def _check_endorsements(
        self,
        proposal: Proposal,
        orgs: List[str],
        results: List[Any],
        contexts: List[TransactionContext],
    ) -> None:
        reference = contexts[0].writes.shared_view()
        for org, result, ctx in zip(orgs, results, contexts):
            if ctx.writes.shared_view() != reference or result != results[0]:
                logger.warning(f"Tx {proposal.tx_id[:16]}...: endorsement from {org} diverges")
                raise EndorsementMismatch(f"Endorsement from {org} does not match")

        # Both the committed approver set and the one being written must endorse
        writes = contexts[0].writes
        for key in set(writes.public) | set(writes.approvers):
            required = dict.fromkeys(self._approvers.get(key, []) + writes.approvers.get(key, []))
            missing = [org for org in required if org not in orgs]
            if missing:
                logger.warning(
                    f"Tx {proposal.tx_id[:16]}...: write to {key} lacks endorsement from {missing}"
                )
                raise EndorsementPolicyFailure(
                    f"Write to {key} requires endorsement from {', '.join(missing)}"
                )

    def _apply(
        self,
        proposal: Proposal,
        creator: Identity,
        orgs: List[str],
        contexts: List[TransactionContext],
    ) -> None:
        writes = contexts[0].writes

        # Each private write is produced by the peer of its own org
        private_records: Dict[Tuple[str, str], PrivateRecord] = {}
        for ctx in contexts:
            for (party, key), value in ctx.writes.private.items():
                private_records[(party, key)] = PrivateRecord(
                    value=value, nonce=secrets.token_bytes(PRIVATE_NONCE_SIZE)
                )

        record = CommitRecord(
            height=self.height + 1,
            tx_id=proposal.tx_id,
            function=proposal.function,
            creator=creator.id,
            endorsers=orgs,
            timestamp=int(time.time()),
        )

        # Persist first so a storage failure leaves memory untouched
        if self.storage_manager:
            self.storage_manager.persist_commit(
                record.height,
                record.tx_id,
                record.function,
                record.creator,
                record.endorsers,
                record.timestamp,
                writes.public,
                [(party, key, r.value, r.nonce) for (party, key), r in private_records.items()],
                writes.approvers,
            )

        self._state.update(writes.public)
        for (party, key), private_record in private_records.items():
            self._private.setdefault(party, {})[key] = private_record
        for key, approvers in writes.approvers.items():
            self._approvers[key] = list(approvers)

        self._tx_ids.add(record.tx_id)
        self.history.append(record)
        self.height = record.height

        logger.info(
            f"Committed tx {record.tx_id[:16]}... ({record.function}) at height {record.height}, "
            f"endorsed by {orgs}"
        )

    # =========================================================================
    # Persistence
    # =========================================================================

    def _load_from_storage(self) -> None:
        """Load state from storage manager."""
        stored = self.storage_manager.load_ledger_state()

        for public_key, name, org in stored.identities:
            self._identities[public_key] = Identity(name=name, org=org, public_key=public_key)

        for key, value in stored.world_state:
            self._state[key] = value

        for party, key, value, nonce in stored.private_data:
            self._private.setdefault(party, {})[key] = PrivateRecord(value=value, nonce=nonce)

        for key, orgs in stored.approvers:
            self._approvers[key] = list(orgs)

        for row in stored.transactions:
            record = CommitRecord(*row)
            self.history.append(record)
            self._tx_ids.add(record.tx_id)

        if self.history:
            self.height = self.history[-1].height

        logger.info(
            f"Loaded ledger: {len(self._state)} keys, {len(self._identities)} identities, "
            f"height={self.height}"
        )

    def close(self) -> None:
        """Close storage."""
        if self.storage_manager:
            self.storage_manager.close()

    # =========================================================================
    # Utility
    # =========================================================================

    def __repr__(self) -> str:
        return f"LocalLedger(height={self.height}, keys={len(self._state)}, orgs={self.orgs})"

    def stats(self) -> dict:
        """Get ledger statistics."""
        return {
            "height": self.height,
            "public_keys": len(self._state),
            "private_records": sum(len(c) for c in self._private.values()),
            "identities": len(self._identities),
            "orgs": self.orgs,
        }
