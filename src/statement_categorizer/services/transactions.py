from statement_categorizer.domain.csv_rows import CSVRow, row_to_fields
from statement_categorizer.domain.transactions import duplicate_key
from statement_categorizer.errors import InvalidTransition, TransactionNotFound
from statement_categorizer.logger import get_logger
from statement_categorizer.models import ClassificationStatus, Transaction
from statement_categorizer.stores.base import TransactionStore

logger = get_logger(__name__)


class TransactionDataManager:
    """Owns the transaction review state machine: unclassified -> pending -> approved."""

    def __init__(self, transactions: TransactionStore) -> None:
        self.transactions = transactions

    async def create_from_row(self, row: CSVRow) -> Transaction:
        """Persist a statement row as a new unclassified transaction."""
        return await self.transactions.create(row_to_fields(row))

    async def check_duplicate(self, row: CSVRow) -> Transaction | None:
        """Return the stored transaction sharing this row's natural key, if any."""
        key = duplicate_key(row)
        return await self.transactions.find_duplicate(
            key.date, key.amount, key.payee, key.reference
        )

    async def get(self, transaction_id: int) -> Transaction:
        transaction = await self.transactions.find_by_id(transaction_id)
        if transaction is None:
            raise TransactionNotFound(transaction_id)
        return transaction

    async def classify_transaction(
        self,
        transaction_id: int,
        category_id: int,
        confidence_score: float | None = None,
        auto_approve: bool = False,
    ) -> Transaction:
        status = ClassificationStatus.APPROVED if auto_approve else ClassificationStatus.PENDING
        logger.debug(
            "[CLASSIFY] Transaction %s -> category %s (%s)",
            transaction_id,
            category_id,
            status.value,
        )
        return await self.transactions.update(transaction_id, {
            "category_id": category_id,
            "classification_status": status,
            "confidence_score": confidence_score,
            "is_auto_approved": auto_approve,
        })

    async def approve_classification(self, transaction_id: int) -> Transaction:
        transaction = await self.get(transaction_id)
        if transaction.category_id is None:
            raise InvalidTransition(
                f"Transaction {transaction_id} has no category to approve"
            )
        return await self.transactions.update(transaction_id, {
            "classification_status": ClassificationStatus.APPROVED,
        })
