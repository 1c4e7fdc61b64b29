from datetime import datetime
from itertools import count
from typing import Any

from pydantic import ValidationError

from statement_categorizer.domain.transactions import DuplicateKey
from statement_categorizer.errors import PersistenceError, TransactionNotFound
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


def _newest_first(transactions: list[Transaction]) -> list[Transaction]:
    return sorted(transactions, key=lambda t: (t.date, t.id), reverse=True)


class InMemoryTransactionStore:
    def __init__(self) -> None:
        self._rows: dict[int, Transaction] = {}
        self._ids = count(1)

    async def create(self, fields: TransactionFields) -> Transaction:
        now = datetime.now()
        transaction = Transaction(
            **fields.model_dump(),
            id=next(self._ids),
            created_at=now,
            updated_at=now,
        )
        self._rows[transaction.id] = transaction
        return transaction.model_copy()

    async def find_by_id(self, transaction_id: int) -> Transaction | None:
        transaction = self._rows.get(transaction_id)
        return transaction.model_copy() if transaction else None

    async def find_by_status(self, status: ClassificationStatus) -> list[Transaction]:
        matches = [t for t in self._rows.values() if t.classification_status == status]
        return [t.model_copy() for t in _newest_first(matches)]

    async def find_all(
        self, limit: int | None = None, offset: int | None = None
    ) -> list[Transaction]:
        ordered = _newest_first(list(self._rows.values()))
        start = offset or 0
        end = start + limit if limit else None
        return [t.model_copy() for t in ordered[start:end]]

    async def update(self, transaction_id: int, updates: dict[str, Any]) -> Transaction:
        check_update_fields(updates)
        current = self._rows.get(transaction_id)
        if current is None:
            raise TransactionNotFound(transaction_id)
        try:
            updated = Transaction.model_validate({
                **current.model_dump(),
                **updates,
                "updated_at": datetime.now(),
            })
        except ValidationError as exc:
            raise PersistenceError(f"Invalid update for transaction {transaction_id}: {exc}") from exc
        self._rows[transaction_id] = updated
        return updated.model_copy()

    async def find_duplicate(
        self,
        date: str,
        amount: float,
        payee: str,
        reference: str | None = None,
    ) -> Transaction | None:
        key = DuplicateKey(date=date, amount=amount, payee=payee, reference=reference or None)
        for transaction in self._rows.values():
            if key.matches(transaction):
                return transaction.model_copy()
        return None

    async def find_approved_between(
        self, start_date: str, end_date: str | None = None
    ) -> list[Transaction]:
        matches = [
            t for t in self.approved()
            if t.date >= start_date and (end_date is None or t.date <= end_date)
        ]
        return [t.model_copy() for t in sorted(matches, key=lambda t: (t.date, t.id))]

    async def count_by_status(self) -> dict[ClassificationStatus, int]:
        counts = {status: 0 for status in ClassificationStatus}
        for transaction in self._rows.values():
            counts[transaction.classification_status] += 1
        return counts

    def approved(self) -> list[Transaction]:
        return [
            t for t in self._rows.values()
            if t.classification_status == ClassificationStatus.APPROVED
        ]


class InMemoryCategoryStore:
    """Category store; aggregates are derived from approved transactions when given."""

    def __init__(self, transactions: InMemoryTransactionStore | None = None) -> None:
        self._rows: dict[int, Category] = {}
        self._ids = count(1)
        self._transactions = transactions

    def _with_totals(self, category: Category) -> Category:
        if self._transactions is None:
            return category.model_copy()
        linked = [t for t in self._transactions.approved() if t.category_id == category.id]
        return category.model_copy(update={
            "transaction_count": len(linked),
            "total_amount": sum(t.amount for t in linked),
        })

    async def create(self, fields: CategoryFields) -> Category:
        if any(c.name == fields.name for c in self._rows.values()):
            raise PersistenceError(f"Category '{fields.name}' already exists")
        category = Category(id=next(self._ids), **fields.model_dump())
        self._rows[category.id] = category
        return self._with_totals(category)

    async def find_by_id(self, category_id: int) -> Category | None:
        category = self._rows.get(category_id)
        return self._with_totals(category) if category else None

    async def find_by_name(self, name: str) -> Category | None:
        for category in self._rows.values():
            if category.name == name:
                return self._with_totals(category)
        return None

    async def find_all(self) -> list[Category]:
        ordered = sorted(self._rows.values(), key=lambda c: (c.name, c.id))
        return [self._with_totals(c) for c in ordered]


class InMemoryHistoryStore:
    def __init__(self) -> None:
        self._entries: list[ClassificationHistoryEntry] = []
        self._ids = count(1)

    async def create(self, entry: HistoryFields) -> ClassificationHistoryEntry:
        created = ClassificationHistoryEntry(id=next(self._ids), **entry.model_dump())
        self._entries.append(created)
        return created

    async def find_for_training(self, min_samples: int = 10) -> list[ClassificationHistoryEntry]:
        eligible = [e for e in reversed(self._entries) if e.classification_method in TRAINING_METHODS]
        return eligible[: min_samples * 10]

    async def find_by_transaction(self, transaction_id: int) -> list[ClassificationHistoryEntry]:
        return [e for e in reversed(self._entries) if e.transaction_id == transaction_id]
