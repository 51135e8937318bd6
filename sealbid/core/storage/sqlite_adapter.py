import json
import sqlite3
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

from sealbid.utils.logger import get_logger

logger = get_logger("storage.sqlite")


class SQLiteAdapter:
    """
    SQLite backend for persistent ledger storage.

    Provides:
    1. World state (public key-value records such as auctions).
    2. Private collections, one per organization, with the per-write nonce
       that backs the collection's commitment proofs.
    3. Approver sets (per-key endorsement requirements).
    4. Enrolled identities and the append-only transaction log.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._conn_local = threading.local()

        if not db_path.parent.exists():
            db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()

    def _get_conn(self) -> sqlite3.Connection:
        """Get or create connection for current thread."""
        if not hasattr(self._conn_local, "conn"):
            self._conn_local.conn = sqlite3.connect(
                self.db_path,
                timeout=30.0,
                check_same_thread=False
            )
            self._conn_local.conn.row_factory = sqlite3.Row
            # WAL lets readers proceed while a commit is being written
            self._conn_local.conn.execute("PRAGMA journal_mode=WAL;")
            self._conn_local.conn.execute("PRAGMA synchronous=NORMAL;")
        return self._conn_local.conn

    def close(self):
        """Close the connection owned by the current thread."""
        conn = getattr(self._conn_local, "conn", None)
        if conn is not None:
            conn.close()
            del self._conn_local.conn

    def _init_schema(self):
        """Initialize database schema."""
        conn = self._get_conn()
        with conn:
            # 1. World state
            conn.execute("""
                CREATE TABLE IF NOT EXISTS world_state (
                    key TEXT PRIMARY KEY,
                    value BLOB NOT NULL
                )
            """)

            # 2. Private collections
            conn.execute("""
                CREATE TABLE IF NOT EXISTS private_data (
                    party TEXT NOT NULL,
                    key TEXT NOT NULL,
                    value BLOB NOT NULL,
                    nonce BLOB NOT NULL,
                    PRIMARY KEY (party, key)
                )
            """)

            # 3. Approver sets (JSON list of orgs)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS approvers (
                    key TEXT PRIMARY KEY,
                    orgs TEXT NOT NULL
                )
            """)

            # 4. Identities
            conn.execute("""
                CREATE TABLE IF NOT EXISTS identities (
                    public_key BLOB PRIMARY KEY,
                    name TEXT NOT NULL,
                    org TEXT NOT NULL
                )
            """)

            # 5. Transaction log
            conn.execute("""
                CREATE TABLE IF NOT EXISTS transactions (
                    height INTEGER PRIMARY KEY,
                    tx_id TEXT NOT NULL UNIQUE,
                    function TEXT NOT NULL,
                    creator TEXT NOT NULL,
                    endorsers TEXT NOT NULL,
                    timestamp INTEGER NOT NULL
                )
            """)

    # =========================================================================
    # Identities
    # =========================================================================

    def save_identity(self, public_key: bytes, name: str, org: str):
        conn = self._get_conn()
        with conn:
            conn.execute(
                "INSERT OR REPLACE INTO identities (public_key, name, org) VALUES (?, ?, ?)",
                (public_key, name, org)
            )

    def get_all_identities(self) -> List[Tuple[bytes, str, str]]:
        """Get all (public_key, name, org)."""
        conn = self._get_conn()
        cursor = conn.execute("SELECT public_key, name, org FROM identities")
        return [(row['public_key'], row['name'], row['org']) for row in cursor]

    # =========================================================================
    # Reads
    # =========================================================================

    def get_all_state(self) -> List[Tuple[str, bytes]]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT key, value FROM world_state")
        return [(row['key'], row['value']) for row in cursor]

    def get_all_private(self) -> List[Tuple[str, str, bytes, bytes]]:
        """Get all (party, key, value, nonce)."""
        conn = self._get_conn()
        cursor = conn.execute("SELECT party, key, value, nonce FROM private_data")
        return [(row['party'], row['key'], row['value'], row['nonce']) for row in cursor]

    def get_all_approvers(self) -> List[Tuple[str, List[str]]]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT key, orgs FROM approvers")
        return [(row['key'], json.loads(row['orgs'])) for row in cursor]

    def get_all_transactions(self) -> List[Tuple]:
        """Get the transaction log ordered by height."""
        conn = self._get_conn()
        cursor = conn.execute(
            "SELECT height, tx_id, function, creator, endorsers, timestamp "
            "FROM transactions ORDER BY height ASC"
        )
        return [
            (row['height'], row['tx_id'], row['function'], row['creator'],
             json.loads(row['endorsers']), row['timestamp'])
            for row in cursor
        ]

    # =========================================================================
    # Commit
    # =========================================================================

    def persist_commit(
        self,
        height: int,
        tx_id: str,
        function: str,
        creator: str,
        endorsers: List[str],
        timestamp: int,
        public_writes: Dict[str, bytes],
        private_writes: Iterable[Tuple[str, str, bytes, bytes]],
        approver_writes: Dict[str, List[str]],
    ):
        """
        Atomically persist one committed transaction.

        Args:
            height: Commit height of the transaction
            tx_id: Transaction id
            function: Contract function that produced the writes
            creator: Identity id of the submitter
            endorsers: Orgs whose peers endorsed the transaction
            timestamp: Commit time (unix seconds)
            public_writes: key -> value
            private_writes: (party, key, value, nonce) tuples
            approver_writes: key -> orgs
        """
        conn = self._get_conn()
        with conn:
            conn.execute(
                "INSERT INTO transactions (height, tx_id, function, creator, endorsers, timestamp) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (height, tx_id, function, creator, json.dumps(endorsers), timestamp)
            )

            for key, value in public_writes.items():
                conn.execute(
                    "INSERT OR REPLACE INTO world_state (key, value) VALUES (?, ?)",
                    (key, value)
                )

            for party, key, value, nonce in private_writes:
                conn.execute(
                    "INSERT OR REPLACE INTO private_data (party, key, value, nonce) VALUES (?, ?, ?, ?)",
                    (party, key, value, nonce)
                )

            for key, orgs in approver_writes.items():
                conn.execute(
                    "INSERT OR REPLACE INTO approvers (key, orgs) VALUES (?, ?)",
                    (key, json.dumps(list(orgs)))
                )

        logger.debug(f"Persisted tx {tx_id[:16]}... at height {height}")
