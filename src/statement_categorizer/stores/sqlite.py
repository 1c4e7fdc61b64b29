import asyncio
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

from statement_categorizer.errors import PersistenceError, TransactionNotFound
from statement_categorizer.logger import get_logger
from statement_categorizer.models import (
    TRAINING_METHODS,
    Category,
    CategoryFields,
    ClassificationHistoryEntry,
    ClassificationStatus,
    HistoryFields,
    Transaction,
    TransactionFields,
)

from .base import check_update_fields

logger = get_logger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS categories (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    description TEXT,
    category_type TEXT NOT NULL DEFAULT 'expense'
        CHECK (category_type IN ('expense', 'income', 'transfer')),
    color TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS transactions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    date TEXT NOT NULL,
    amount REAL NOT NULL,
    payee TEXT NOT NULL,
    particulars TEXT,
    code TEXT,
    reference TEXT,
    tran_type TEXT,
    this_party_account TEXT,
    other_party_account TEXT,
    serial TEXT,
    transaction_code TEXT,
    batch_number TEXT,
    originating_bank_branch TEXT,
    processed_date TEXT,
    category_id INTEGER REFERENCES categories(id),
    classification_status TEXT NOT NULL DEFAULT 'unclassified'
        CHECK (classification_status IN ('unclassified', 'pending', 'approved')),
    confidence_score REAL,
    is_auto_approved INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_transactions_natural_key
    ON transactions (date, amount, payee);
CREATE INDEX IF NOT EXISTS idx_transactions_status
    ON transactions (classification_status);

CREATE TABLE IF NOT EXISTS classification_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    transaction_id INTEGER NOT NULL REFERENCES transactions(id),
    category_id INTEGER NOT NULL REFERENCES categories(id),
    payee TEXT NOT NULL,
    particulars TEXT,
    tran_type TEXT,
    amount REAL NOT NULL,
    classification_method TEXT NOT NULL
        CHECK (classification_method IN ('manual', 'ml_auto', 'ml_accepted')),
    confidence_score REAL,
    was_corrected INTEGER NOT NULL DEFAULT 0,
    previous_category_id INTEGER,
    classified_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_history_method
    ON classification_history (classification_method, classified_at);
"""

_TRANSACTION_FIELDS = tuple(TransactionFields.model_fields)

_CATEGORY_SELECT = """
    SELECT c.id, c.name, c.description, c.category_type, c.color,
           COUNT(t.id) AS transaction_count,
           COALESCE(SUM(t.amount), 0) AS total_amount
    FROM categories c
    LEFT JOIN transactions t
        ON t.category_id = c.id AND t.classification_status = 'approved'
"""


class SqliteDatabase:
    """Single SQLite connection shared by the stores.

    Statements run in a worker thread, one at a time.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = str(path)
        self._conn: sqlite3.Connection | None = None
        self._lock = asyncio.Lock()

    def _connect_sync(self) -> sqlite3.Connection:
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        conn.executescript(SCHEMA)
        conn.commit()
        return conn

    async def open(self) -> None:
        if self._conn is not None:
            return
        try:
            self._conn = await asyncio.to_thread(self._connect_sync)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Cannot open database {self.path}: {exc}") from exc
        logger.info("[STORE] SQLite database ready at %s", self.path)

    async def close(self) -> None:
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        await asyncio.to_thread(conn.close)

    def _require_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise PersistenceError("Database is not open")
        return self._conn

    def _execute_sync(self, sql: str, params: tuple[Any, ...]) -> int:
        conn = self._require_conn()
        try:
            cursor = conn.execute(sql, params)
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise PersistenceError(str(exc)) from exc
        return cursor.lastrowid or 0

    def _fetch_sync(self, sql: str, params: tuple[Any, ...]) -> list[dict[str, Any]]:
        conn = self._require_conn()
        try:
            rows = conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise PersistenceError(str(exc)) from exc
        return [dict(row) for row in rows]

    async def execute(self, sql: str, params: tuple[Any, ...] = ()) -> int:
        async with self._lock:
            return await asyncio.to_thread(self._execute_sync, sql, params)

    async def fetch_all(self, sql: str, params: tuple[Any, ...] = ()) -> list[dict[str, Any]]:
        async with self._lock:
            return await asyncio.to_thread(self._fetch_sync, sql, params)

    async def fetch_one(self, sql: str, params: tuple[Any, ...] = ()) -> dict[str, Any] | None:
        rows = await self.fetch_all(sql, params)
        return rows[0] if rows else None


def _now() -> str:
    return datetime.now().isoformat()


class SqliteTransactionStore:
    def __init__(self, db: SqliteDatabase) -> None:
        self.db = db

    async def create(self, fields: TransactionFields) -> Transaction:
        values = fields.model_dump()
        now = _now()
        columns = ", ".join(_TRANSACTION_FIELDS)
        placeholders = ", ".join("?" * (len(_TRANSACTION_FIELDS) + 2))
        new_id = await self.db.execute(
            f"INSERT INTO transactions ({columns}, created_at, updated_at) "
            f"VALUES ({placeholders})",
            (*(values[name] for name in _TRANSACTION_FIELDS), now, now),
        )
        created = await self.find_by_id(new_id)
        if created is None:
            raise PersistenceError("Inserted transaction could not be read back")
        return created

    async def find_by_id(self, transaction_id: int) -> Transaction | None:
        row = await self.db.fetch_one("SELECT * FROM transactions WHERE id = ?", (transaction_id,))
        return Transaction.model_validate(row) if row else None

    async def find_by_status(self, status: ClassificationStatus) -> list[Transaction]:
        rows = await self.db.fetch_all(
            "SELECT * FROM transactions WHERE classification_status = ? ORDER BY date DESC, id DESC",
            (ClassificationStatus(status).value,),
        )
        return [Transaction.model_validate(row) for row in rows]

    async def find_all(
        self, limit: int | None = None, offset: int | None = None
    ) -> list[Transaction]:
        rows = await self.db.fetch_all(
            "SELECT * FROM transactions ORDER BY date DESC, id DESC LIMIT ? OFFSET ?",
            (limit if limit else -1, offset or 0),
        )
        return [Transaction.model_validate(row) for row in rows]

    async def update(self, transaction_id: int, updates: dict[str, Any]) -> Transaction:
        check_update_fields(updates)
        if await self.find_by_id(transaction_id) is None:
            raise TransactionNotFound(transaction_id)

        assignments: list[str] = []
        params: list[Any] = []
        for name, value in updates.items():
            if isinstance(value, ClassificationStatus):
                value = value.value
            elif isinstance(value, bool):
                value = int(value)
            assignments.append(f"{name} = ?")
            params.append(value)
        assignments.append("updated_at = ?")
        params.append(_now())

        await self.db.execute(
            f"UPDATE transactions SET {', '.join(assignments)} WHERE id = ?",
            (*params, transaction_id),
        )
        updated = await self.find_by_id(transaction_id)
        if updated is None:
            raise TransactionNotFound(transaction_id)
        return updated

    async def find_duplicate(
        self,
        date: str,
        amount: float,
        payee: str,
        reference: str | None = None,
    ) -> Transaction | None:
        row = await self.db.fetch_one(
            "SELECT * FROM transactions "
            "WHERE date = ? AND amount = ? AND payee = ? AND reference IS ? LIMIT 1",
            (date, amount, payee, reference or None),
        )
        return Transaction.model_validate(row) if row else None

    async def find_approved_between(
        self, start_date: str, end_date: str | None = None
    ) -> list[Transaction]:
        sql = "SELECT * FROM transactions WHERE classification_status = ? AND date >= ?"
        params: list[Any] = [ClassificationStatus.APPROVED.value, start_date]
        if end_date is not None:
            sql += " AND date <= ?"
            params.append(end_date)
        rows = await self.db.fetch_all(f"{sql} ORDER BY date ASC, id ASC", tuple(params))
        return [Transaction.model_validate(row) for row in rows]

    async def count_by_status(self) -> dict[ClassificationStatus, int]:
        rows = await self.db.fetch_all(
            "SELECT classification_status, COUNT(*) AS count "
            "FROM transactions GROUP BY classification_status"
        )
        counts = {status: 0 for status in ClassificationStatus}
        for row in rows:
            counts[ClassificationStatus(row["classification_status"])] = row["count"]
        return counts


def _row_to_category(row: dict[str, Any]) -> Category:
    return Category(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        category_kind=row["category_type"],
        color=row["color"],
        transaction_count=row["transaction_count"],
        total_amount=row["total_amount"],
    )


class SqliteCategoryStore:
    def __init__(self, db: SqliteDatabase) -> None:
        self.db = db

    async def create(self, fields: CategoryFields) -> Category:
        now = _now()
        new_id = await self.db.execute(
            "INSERT INTO categories (name, description, category_type, color, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (fields.name, fields.description, fields.category_kind.value, fields.color, now, now),
        )
        created = await self.find_by_id(new_id)
        if created is None:
            raise PersistenceError("Inserted category could not be read back")
        return created

    async def find_by_id(self, category_id: int) -> Category | None:
        row = await self.db.fetch_one(
            f"{_CATEGORY_SELECT} WHERE c.id = ? GROUP BY c.id", (category_id,)
        )
        return _row_to_category(row) if row else None

    async def find_by_name(self, name: str) -> Category | None:
        row = await self.db.fetch_one(
            f"{_CATEGORY_SELECT} WHERE c.name = ? GROUP BY c.id", (name,)
        )
        return _row_to_category(row) if row else None

    async def find_all(self) -> list[Category]:
        rows = await self.db.fetch_all(f"{_CATEGORY_SELECT} GROUP BY c.id ORDER BY c.name ASC, c.id ASC")
        return [_row_to_category(row) for row in rows]


class SqliteHistoryStore:
    def __init__(self, db: SqliteDatabase) -> None:
        self.db = db

    async def create(self, entry: HistoryFields) -> ClassificationHistoryEntry:
        classified_at = _now()
        new_id = await self.db.execute(
            """
            INSERT INTO classification_history (
                transaction_id, category_id, payee, particulars, tran_type, amount,
                classification_method, confidence_score, was_corrected,
                previous_category_id, classified_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                entry.transaction_id,
                entry.category_id,
                entry.payee,
                entry.particulars,
                entry.tran_type,
                entry.amount,
                entry.classification_method.value,
                entry.confidence_score,
                int(entry.was_corrected),
                entry.previous_category_id,
                classified_at,
            ),
        )
        row = await self.db.fetch_one("SELECT * FROM classification_history WHERE id = ?", (new_id,))
        if row is None:
            raise PersistenceError("Inserted history entry could not be read back")
        return ClassificationHistoryEntry.model_validate(row)

    async def find_for_training(self, min_samples: int = 10) -> list[ClassificationHistoryEntry]:
        methods = tuple(method.value for method in TRAINING_METHODS)
        placeholders = ", ".join("?" * len(methods))
        rows = await self.db.fetch_all(
            f"""
            SELECT * FROM classification_history
            WHERE classification_method IN ({placeholders})
            ORDER BY classified_at DESC, id DESC
            LIMIT ?
            """,
            (*methods, min_samples * 10),
        )
        return [ClassificationHistoryEntry.model_validate(row) for row in rows]

    async def find_by_transaction(self, transaction_id: int) -> list[ClassificationHistoryEntry]:
        rows = await self.db.fetch_all(
            "SELECT * FROM classification_history WHERE transaction_id = ? "
            "ORDER BY classified_at DESC, id DESC",
            (transaction_id,),
        )
        return [ClassificationHistoryEntry.model_validate(row) for row in rows]
