from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Tuple

from sealbid.core.storage.sqlite_adapter import SQLiteAdapter
from sealbid.utils.logger import get_logger

logger = get_logger("storage.manager")


@dataclass
class StoredLedgerState:
    """Everything a ledger needs to resume after a restart."""
    identities: List[Tuple[bytes, str, str]] = field(default_factory=list)
    world_state: List[Tuple[str, bytes]] = field(default_factory=list)
    private_data: List[Tuple[str, str, bytes, bytes]] = field(default_factory=list)
    approvers: List[Tuple[str, List[str]]] = field(default_factory=list)
    transactions: List[Tuple] = field(default_factory=list)


class StorageManager:
    """
    Manages persistent storage for the ledger.

    Coordinates data persistence using SQLite adapter.
    Handles:
    - Identity enrollment
    - Committed transactions (world state, private data, approvers, log)
    - Startup recovery
    """

    def __init__(self, data_dir: Path, db_name: str = "ledger.db"):
        self.data_dir = data_dir
        self.db_path = data_dir / db_name
        self.adapter = SQLiteAdapter(self.db_path)

        logger.info(f"StorageManager initialized at {self.db_path}")

    def close(self):
        self.adapter.close()

    # =========================================================================
    # Identities
    # =========================================================================

    def persist_identity(self, public_key: bytes, name: str, org: str):
        self.adapter.save_identity(public_key, name, org)

    # =========================================================================
    # Ledger State
    # =========================================================================

    def load_ledger_state(self) -> StoredLedgerState:
        """Load full ledger state."""
        return StoredLedgerState(
            identities=self.adapter.get_all_identities(),
            world_state=self.adapter.get_all_state(),
            private_data=self.adapter.get_all_private(),
            approvers=self.adapter.get_all_approvers(),
            transactions=self.adapter.get_all_transactions(),
        )

    def persist_commit(
        self,
        height: int,
        tx_id: str,
        function: str,
        creator: str,
        endorsers: List[str],
        timestamp: int,
        public_writes: Dict[str, bytes],
        private_writes: List[Tuple[str, str, bytes, bytes]],
        approver_writes: Dict[str, List[str]],
    ):
        """Atomically persist a committed transaction."""
        self.adapter.persist_commit(
            height, tx_id, function, creator, endorsers, timestamp,
            public_writes, private_writes, approver_writes,
        )
