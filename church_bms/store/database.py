"""
Entity Store - SQLite storage for families and believers.

This is a DATA LAYER component:
- Owns the schema and the connection/transaction lifecycle
- Exposes the two collections as `families` and `believers`
- NO business logic (RelationshipManager decides what to write)

Tables:
- families: households, sparse-unique family_code
- believers: members, one head per family enforced by a partial index
"""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from church_bms.config import settings
from church_bms.store.believers import BelieverStore
from church_bms.store.families import FamilyStore


class EntityStore:
    """Shared SQLite database for the family and believer collections."""

    def __init__(self, db_path: Optional[str] = None, timeout: Optional[float] = None):
        self.db_path = db_path or settings.database.path
        self.timeout = settings.database.timeout if timeout is None else timeout
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._local = threading.local()
        self._init_db()

        self.families = FamilyStore(self)
        self.believers = BelieverStore(self)

    def _init_db(self):
        """Initialize families and believers tables."""
        with self.connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS families (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    family_code TEXT,

                    address TEXT NOT NULL,
                    village TEXT NOT NULL,
                    district TEXT NOT NULL,
                    family_status TEXT NOT NULL DEFAULT 'Active',
                    head_id INTEGER,

                    is_deleted INTEGER NOT NULL DEFAULT 0,
                    deleted_at TEXT,
                    created_at TEXT,
                    updated_at TEXT
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS believers (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    family_id INTEGER NOT NULL,
                    is_head INTEGER NOT NULL DEFAULT 0,

                    full_name TEXT NOT NULL,
                    dob TEXT NOT NULL,
                    gender TEXT NOT NULL,
                    phone TEXT,
                    email TEXT,

                    member_type TEXT NOT NULL,
                    membership_status TEXT NOT NULL DEFAULT 'Active',
                    join_date TEXT,
                    baptized TEXT NOT NULL,
                    baptized_date TEXT,

                    relationship_to_head TEXT NOT NULL,
                    relation_custom TEXT,
                    marital_status TEXT NOT NULL,
                    spouse_id INTEGER,
                    spouse_name TEXT,
                    wedding_date TEXT,

                    occupation_category TEXT NOT NULL,
                    education_level TEXT,

                    is_deleted INTEGER NOT NULL DEFAULT 0,
                    deleted_at TEXT,
                    created_at TEXT,
                    updated_at TEXT,

                    FOREIGN KEY (family_id) REFERENCES families(id),
                    CHECK (is_head = 0 OR relationship_to_head = 'Self'),
                    CHECK (phone IS NULL OR (length(phone) = 10 AND phone NOT GLOB '*[^0-9]*'))
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS counters (
                    name TEXT PRIMARY KEY,
                    value INTEGER NOT NULL DEFAULT 0
                )
            """)

            # Sparse uniqueness: trashed families hold a NULL code
            conn.execute("""
                CREATE UNIQUE INDEX IF NOT EXISTS idx_family_code
                ON families(family_code) WHERE family_code IS NOT NULL
            """)
            conn.execute("""
                CREATE UNIQUE INDEX IF NOT EXISTS idx_believer_single_head
                ON believers(family_id) WHERE is_head = 1 AND is_deleted = 0
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_family_village ON families(village)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_family_district ON families(district)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_family_head ON families(head_id)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_family_deleted ON families(is_deleted)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_believer_family ON believers(family_id, is_deleted)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_believer_name ON believers(full_name)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_believer_dob ON believers(dob)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_believer_spouse ON believers(spouse_id)")

    # =========================================================================
    # CONNECTIONS & TRANSACTIONS
    # =========================================================================

    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=self.timeout, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @property
    def in_transaction(self) -> bool:
        return getattr(self._local, "conn", None) is not None

    @contextmanager
    def connect(self):
        """
        Yield a connection.

        Inside transaction() this is the transaction's connection; otherwise a
        short-lived autocommit connection closed on exit.
        """
        if self.in_transaction:
            yield self._local.conn
            return
        conn = self._open()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self):
        """
        Unit of work across both collections.

        Writes made on this thread inside the block commit together or roll
        back together. BEGIN IMMEDIATE takes the write lock up front, so
        concurrent units of work run one after another. Nested blocks join
        the outer transaction.
        """
        if self.in_transaction:
            yield self._local.conn
            return
        conn = self._open()
        conn.execute("BEGIN IMMEDIATE")
        self._local.conn = conn
        try:
            yield conn
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        else:
            conn.execute("COMMIT")
        finally:
            self._local.conn = None
            conn.close()

    def increment_counter(self, name: str) -> int:
        """Atomically bump a named counter and return its new value."""
        with self.transaction() as conn:
            conn.execute("INSERT OR IGNORE INTO counters (name, value) VALUES (?, 0)", (name,))
            conn.execute("UPDATE counters SET value = value + 1 WHERE name = ?", (name,))
            return conn.execute("SELECT value FROM counters WHERE name = ?", (name,)).fetchone()[0]

    def clear(self):
        """Remove every row from all tables."""
        with self.connect() as conn:
            conn.execute("DELETE FROM believers")
            conn.execute("DELETE FROM families")
            conn.execute("DELETE FROM counters")
