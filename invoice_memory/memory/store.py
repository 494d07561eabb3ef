"""
Vendor memory store.

SQLite-backed persistence for learned vendor memories, invoice identity
metadata (for duplicate detection) and the append-only audit trail.
Each operation is its own unit of work; there are no multi-statement
transactions.

Tables:
- invoices: one row per processed invoice id, never overwritten
- memories: learned vendor rules and facts
- audit_trail: recall/apply/decide/learn narration per invoice
"""

from __future__ import annotations

import json
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from invoice_memory.config import get_logger, get_settings
from invoice_memory.memory.models import (
    AuditEntry,
    AuditStep,
    DuplicateMatch,
    MemoryEntry,
    MemoryType,
    clamp_confidence,
)
from invoice_memory.utils.date_utils import utc_now_iso


logger = get_logger(__name__)

IN_MEMORY = ":memory:"


class StorageError(Exception):
    """Persistence read/write failure."""

    def __init__(
        self,
        message: str,
        operation: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize storage error.

        Args:
            message: Error message.
            operation: Store operation that failed.
            details: Additional error details.
        """
        super().__init__(message)
        self.operation = operation
        self.details = details or {}


class MemoryStore:
    """
    SQLite-backed memory store.

    Example:
        with MemoryStore("./data/memory.db") as store:
            saved = store.save_memory(entry)
            memories = store.get_vendor_memories("Parts AG", 0.4)
    """

    SCHEMA_VERSION = 1

    def __init__(
        self,
        db_path: str | Path | None = None,
        timeout: float | None = None,
        duplicate_window_days: int | None = None,
    ) -> None:
        """
        Initialize the memory store and create the schema if needed.

        Args:
            db_path: SQLite file path or ``":memory:"``. Defaults to settings.
            timeout: SQLite busy timeout in seconds. Defaults to settings.
            duplicate_window_days: Inclusive date tolerance for duplicate
                lookups. Defaults to settings.
        """
        settings = get_settings()
        self._db_path = str(db_path) if db_path is not None else settings.memory.db_path
        self._timeout = timeout if timeout is not None else settings.memory.timeout
        self._duplicate_window_days = (
            duplicate_window_days
            if duplicate_window_days is not None
            else settings.engine.duplicate_window_days
        )
        self._conn: sqlite3.Connection | None = None
        self._logger = logger

        if self._db_path != IN_MEMORY:
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)

        self._ensure_schema()

    @property
    def db_path(self) -> str:
        """Location of the backing database."""
        return self._db_path

    def __enter__(self) -> MemoryStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create a SQLite connection with WAL mode."""
        if self._conn is None:
            self._conn = sqlite3.connect(
                self._db_path,
                timeout=self._timeout,
                isolation_level=None,  # autocommit
            )
            self._conn.row_factory = sqlite3.Row
            if self._db_path != IN_MEMORY:
                self._conn.execute("PRAGMA journal_mode=WAL")
        return self._conn

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    @contextmanager
    def _operation(self, name: str, **context: Any) -> Iterator[sqlite3.Connection]:
        """Run one store operation, converting driver errors to StorageError."""
        try:
            yield self._get_connection()
        except sqlite3.Error as e:
            self._logger.error("storage_operation_failed", operation=name, error=str(e), **context)
            raise StorageError(
                f"{name} failed: {e}",
                operation=name,
                details=context,
            ) from e

    def _ensure_schema(self) -> None:
        """Create tables and indexes if they don't exist."""
        with self._operation("ensure_schema") as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                );

                CREATE TABLE IF NOT EXISTS invoices (
                    id TEXT PRIMARY KEY,
                    vendorName TEXT NOT NULL,
                    invoiceNumber TEXT NOT NULL,
                    invoiceDate TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_inv_vendor_number
                    ON invoices(vendorName, invoiceNumber);

                CREATE TABLE IF NOT EXISTS memories (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    vendorName TEXT,
                    type TEXT NOT NULL,
                    key TEXT NOT NULL,
                    value TEXT NOT NULL,
                    confidence REAL NOT NULL,
                    positiveReinforcements INTEGER NOT NULL DEFAULT 0,
                    negativeReinforcements INTEGER NOT NULL DEFAULT 0,
                    lastUsedAt TEXT,
                    createdAt TEXT NOT NULL,
                    updatedAt TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_mem_vendor_key
                    ON memories(vendorName, key);

                CREATE TABLE IF NOT EXISTS audit_trail (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    invoiceId TEXT NOT NULL,
                    step TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    details TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_audit_invoice
                    ON audit_trail(invoiceId);
            """)
            conn.execute(
                "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
                (self.SCHEMA_VERSION,),
            )

    @staticmethod
    def _row_to_memory(row: sqlite3.Row) -> MemoryEntry:
        return MemoryEntry(
            id=row["id"],
            vendor_name=row["vendorName"],
            type=MemoryType(row["type"]),
            key=row["key"],
            value=json.loads(row["value"]),
            confidence=row["confidence"],
            positive_reinforcements=row["positiveReinforcements"],
            negative_reinforcements=row["negativeReinforcements"],
            last_used_at=row["lastUsedAt"],
            created_at=row["createdAt"],
            updated_at=row["updatedAt"],
        )

    # =====================================================================
    # Memories
    # =====================================================================

    def save_memory(self, entry: MemoryEntry) -> MemoryEntry:
        """
        Insert a new memory.

        Returns:
            A copy of the entry carrying the assigned id and timestamps.

        Raises:
            StorageError: If the insert fails.
        """
        now = utc_now_iso()
        created_at = entry.created_at or now
        confidence = clamp_confidence(entry.confidence)

        with self._operation("save_memory", vendor=entry.vendor_name, key=entry.key) as conn:
            cursor = conn.execute(
                """
                INSERT INTO memories (
                    vendorName, type, key, value, confidence,
                    positiveReinforcements, negativeReinforcements,
                    lastUsedAt, createdAt, updatedAt
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.vendor_name,
                    entry.type.value,
                    entry.key,
                    json.dumps(entry.value, ensure_ascii=False),
                    confidence,
                    entry.positive_reinforcements,
                    entry.negative_reinforcements,
                    entry.last_used_at,
                    created_at,
                    now,
                ),
            )

        saved = MemoryEntry(
            id=cursor.lastrowid,
            vendor_name=entry.vendor_name,
            type=entry.type,
            key=entry.key,
            value=entry.value,
            confidence=confidence,
            positive_reinforcements=entry.positive_reinforcements,
            negative_reinforcements=entry.negative_reinforcements,
            last_used_at=entry.last_used_at,
            created_at=created_at,
            updated_at=now,
        )
        self._logger.info(
            "memory_created",
            memory_id=saved.id,
            vendor=saved.vendor_name,
            key=saved.key,
            confidence=saved.confidence,
        )
        return saved

    def update_memory(self, entry: MemoryEntry) -> MemoryEntry:
        """
        Persist reinforcement changes of an existing memory.

        Only confidence (clamped to [0, 1]) and the reinforcement counters
        are written; key, value and vendor stay as created.
        """
        if entry.id is None:
            raise StorageError("update_memory requires a saved memory", operation="update_memory")

        confidence = clamp_confidence(entry.confidence)
        now = utc_now_iso()

        with self._operation("update_memory", memory_id=entry.id) as conn:
            conn.execute(
                """
                UPDATE memories
                SET confidence = ?,
                    positiveReinforcements = ?,
                    negativeReinforcements = ?,
                    updatedAt = ?
                WHERE id = ?
                """,
                (
                    confidence,
                    entry.positive_reinforcements,
                    entry.negative_reinforcements,
                    now,
                    entry.id,
                ),
            )

        self._logger.info(
            "memory_updated",
            memory_id=entry.id,
            key=entry.key,
            confidence=confidence,
            positive=entry.positive_reinforcements,
            negative=entry.negative_reinforcements,
        )
        return MemoryEntry(
            id=entry.id,
            vendor_name=entry.vendor_name,
            type=entry.type,
            key=entry.key,
            value=entry.value,
            confidence=confidence,
            positive_reinforcements=entry.positive_reinforcements,
            negative_reinforcements=entry.negative_reinforcements,
            last_used_at=entry.last_used_at,
            created_at=entry.created_at,
            updated_at=now,
        )

    def get_vendor_memories(self, vendor: str, min_confidence: float = 0.0) -> list[MemoryEntry]:
        """
        Memories owned by ``vendor`` or by no vendor, at or above ``min_confidence``.

        Order is unspecified.
        """
        with self._operation("get_vendor_memories", vendor=vendor) as conn:
            rows = conn.execute(
                """
                SELECT * FROM memories
                WHERE (vendorName = ? OR vendorName IS NULL)
                  AND confidence >= ?
                """,
                (vendor, min_confidence),
            ).fetchall()
        return [self._row_to_memory(row) for row in rows]

    def find_memory(self, vendor: str, key: str) -> MemoryEntry | None:
        """Exact (vendor, key) lookup; global memories are not considered."""
        with self._operation("find_memory", vendor=vendor, key=key) as conn:
            row = conn.execute(
                """
                SELECT * FROM memories
                WHERE vendorName = ? AND key = ?
                ORDER BY id
                LIMIT 1
                """,
                (vendor, key),
            ).fetchone()
        return self._row_to_memory(row) if row else None

    def mark_memory_used(self, memory_id: int) -> None:
        """Stamp ``lastUsedAt`` on a memory a rule just applied."""
        with self._operation("mark_memory_used", memory_id=memory_id) as conn:
            conn.execute(
                "UPDATE memories SET lastUsedAt = ? WHERE id = ?",
                (utc_now_iso(), memory_id),
            )

    def list_memories(self) -> list[MemoryEntry]:
        """Every stored memory, oldest first."""
        with self._operation("list_memories") as conn:
            rows = conn.execute("SELECT * FROM memories ORDER BY id").fetchall()
        return [self._row_to_memory(row) for row in rows]

    # =====================================================================
    # Audit trail
    # =====================================================================

    def record_audit(self, invoice_id: str, entry: AuditEntry) -> None:
        """Append one audit entry. Failures propagate as StorageError."""
        with self._operation("record_audit", invoice_id=invoice_id, step=entry.step.value) as conn:
            conn.execute(
                """
                INSERT INTO audit_trail (invoiceId, step, timestamp, details)
                VALUES (?, ?, ?, ?)
                """,
                (invoice_id, entry.step.value, entry.timestamp, entry.details),
            )

    def get_audit_trail(self, invoice_id: str) -> list[AuditEntry]:
        """Audit entries of an invoice in insertion order."""
        with self._operation("get_audit_trail", invoice_id=invoice_id) as conn:
            rows = conn.execute(
                """
                SELECT step, timestamp, details FROM audit_trail
                WHERE invoiceId = ?
                ORDER BY id
                """,
                (invoice_id,),
            ).fetchall()
        return [
            AuditEntry(step=AuditStep(row["step"]), timestamp=row["timestamp"], details=row["details"])
            for row in rows
        ]

    # =====================================================================
    # Invoice metadata / duplicates
    # =====================================================================

    def save_invoice_meta(
        self,
        invoice_id: str,
        vendor: str,
        invoice_number: str,
        invoice_date: str,
    ) -> None:
        """Record invoice identity. Re-saving an existing id is a no-op."""
        with self._operation("save_invoice_meta", invoice_id=invoice_id) as conn:
            conn.execute(
                """
                INSERT OR IGNORE INTO invoices (id, vendorName, invoiceNumber, invoiceDate)
                VALUES (?, ?, ?, ?)
                """,
                (invoice_id, vendor, invoice_number, invoice_date),
            )

    def find_duplicate(
        self,
        vendor: str,
        invoice_number: str,
        invoice_date: str,
        exclude_invoice_id: str | None = None,
    ) -> DuplicateMatch | None:
        """
        Find an invoice with the same vendor and number dated within the window.

        Args:
            vendor: Vendor name.
            invoice_number: Printed invoice number.
            invoice_date: ISO invoice date.
            exclude_invoice_id: Invoice id that must not match (the caller's own).

        Returns:
            The first matching invoice, or None.
        """
        query = """
            SELECT id, invoiceDate FROM invoices
            WHERE vendorName = ?
              AND invoiceNumber = ?
              AND ABS(julianday(invoiceDate) - julianday(?)) <= ?
        """
        params: list[Any] = [vendor, invoice_number, invoice_date, self._duplicate_window_days]
        if exclude_invoice_id is not None:
            query += " AND id != ?"
            params.append(exclude_invoice_id)
        query += " ORDER BY rowid LIMIT 1"

        with self._operation("find_duplicate", vendor=vendor, invoice_number=invoice_number) as conn:
            row = conn.execute(query, params).fetchone()

        if row is None:
            return None
        return DuplicateMatch(id=row["id"], invoice_date=row["invoiceDate"])

    # =====================================================================
    # Maintenance
    # =====================================================================

    def reset(self) -> None:
        """Delete every memory, invoice and audit row."""
        with self._operation("reset") as conn:
            conn.execute("DELETE FROM memories")
            conn.execute("DELETE FROM audit_trail")
            conn.execute("DELETE FROM invoices")
        self._logger.warning("memory_store_reset", db_path=self._db_path)


# Module-level singleton
_memory_store: MemoryStore | None = None
_store_lock = threading.Lock()


def get_memory_store(db_path: str | Path | None = None) -> MemoryStore:
    """
    Get or create the memory store singleton.

    Args:
        db_path: Optional database path override, used on first call only.

    Returns:
        MemoryStore instance.
    """
    global _memory_store

    with _store_lock:
        if _memory_store is None:
            _memory_store = MemoryStore(db_path=db_path)

    return _memory_store


def reset_memory_store() -> None:
    """Close and forget the singleton (tests and CLI re-configuration)."""
    global _memory_store

    with _store_lock:
        if _memory_store is not None:
            _memory_store.close()
        _memory_store = None
