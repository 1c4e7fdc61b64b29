from __future__ import annotations

from dataclasses import dataclass

from statement_categorizer.domain.csv_rows import CSVRow, convert_to_iso_date
from statement_categorizer.models import ClassificationMethod, HistoryFields, Transaction


@dataclass(frozen=True)
class DuplicateKey:
    """Natural key of a statement line: (ISO date, amount, payee, reference)."""

    date: str
    amount: float
    payee: str
    reference: str | None

    def matches(self, transaction: Transaction) -> bool:
        return (
            transaction.date == self.date
            and transaction.amount == self.amount
            and transaction.payee == self.payee
            and (transaction.reference or None) == self.reference
        )


def duplicate_key(row: CSVRow) -> DuplicateKey:
    return DuplicateKey(
        date=convert_to_iso_date(row.date),
        amount=float(row.amount),
        payee=row.payee,
        reference=row.reference,
    )


def build_history_snapshot(
    transaction: Transaction,
    category_id: int,
    method: ClassificationMethod,
    *,
    confidence_score: float | None = None,
    previous_category_id: int | None = None,
) -> HistoryFields:
    """Capture the transaction as it looks when a label is accepted.

    A label counts as a correction only when it replaces a different category.
    """
    was_corrected = previous_category_id is not None and previous_category_id != category_id
    return HistoryFields(
        transaction_id=transaction.id,
        category_id=category_id,
        payee=transaction.payee,
        particulars=transaction.particulars,
        tran_type=transaction.tran_type,
        amount=transaction.amount,
        classification_method=method,
        confidence_score=confidence_score,
        was_corrected=was_corrected,
        previous_category_id=previous_category_id,
    )


def import_summary(imported: int, duplicates: int, errors: int) -> str:
    return f"Imported {imported} transactions, {duplicates} duplicates, {errors} errors"
