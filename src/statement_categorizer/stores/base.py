"""Persistence contracts consumed by the import and classification services.

Implementations raise :class:`~statement_categorizer.errors.PersistenceError` for
backend failures and :class:`~statement_categorizer.errors.TransactionNotFound` when
updating an unknown transaction.
"""

from typing import Any, Protocol

from statement_categorizer.models import (
    Category,
    CategoryFields,
    ClassificationHistoryEntry,
    ClassificationStatus,
    HistoryFields,
    Transaction,
    TransactionFields,
)

# Fields a transaction update may touch; everything else is fixed at import time.
UPDATABLE_TRANSACTION_FIELDS = frozenset({
    "category_id",
    "classification_status",
    "confidence_score",
    "is_auto_approved",
})


class TransactionStore(Protocol):
    async def create(self, fields: TransactionFields) -> Transaction: ...

    async def find_by_id(self, transaction_id: int) -> Transaction | None: ...

    async def find_by_status(self, status: ClassificationStatus) -> list[Transaction]: ...

    async def find_all(
        self, limit: int | None = None, offset: int | None = None
    ) -> list[Transaction]: ...

    async def update(self, transaction_id: int, updates: dict[str, Any]) -> Transaction: ...

    async def find_duplicate(
        self,
        date: str,
        amount: float,
        payee: str,
        reference: str | None = None,
    ) -> Transaction | None: ...

    async def find_approved_between(
        self, start_date: str, end_date: str | None = None
    ) -> list[Transaction]: ...

    async def count_by_status(self) -> dict[ClassificationStatus, int]: ...


class CategoryStore(Protocol):
    async def create(self, fields: CategoryFields) -> Category: ...

    async def find_by_id(self, category_id: int) -> Category | None: ...

    async def find_by_name(self, name: str) -> Category | None: ...

    async def find_all(self) -> list[Category]: ...


class HistoryStore(Protocol):
    async def create(self, entry: HistoryFields) -> ClassificationHistoryEntry: ...

    async def find_for_training(self, min_samples: int = 10) -> list[ClassificationHistoryEntry]: ...

    async def find_by_transaction(self, transaction_id: int) -> list[ClassificationHistoryEntry]: ...


def check_update_fields(updates: dict[str, Any]) -> None:
    unknown = set(updates) - UPDATABLE_TRANSACTION_FIELDS
    if unknown:
        raise ValueError(f"Unsupported transaction update fields: {sorted(unknown)}")
