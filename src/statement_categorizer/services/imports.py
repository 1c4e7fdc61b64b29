from statement_categorizer.domain.csv_rows import parse_csv
from statement_categorizer.domain.transactions import import_summary
from statement_categorizer.logger import get_logger
from statement_categorizer.models import ImportResult, ImportRowError, Transaction
from statement_categorizer.services.transactions import TransactionDataManager

logger = get_logger(__name__)


class ImportService:
    def __init__(self, transaction_manager: TransactionDataManager) -> None:
        self.transaction_manager = transaction_manager

    async def import_csv(self, content: str, skip_duplicates: bool = True) -> ImportResult:
        """Import statement rows one at a time, collecting per-row failures.

        Rows are processed strictly in order; each duplicate check completes before
        the row is created and before the next row starts. Rows that failed
        validation are reported by the parser and not persisted.
        """
        logger.info("[IMPORT] Starting CSV import (skip_duplicates=%s)", skip_duplicates)

        rows, errors = parse_csv(content)
        transactions: list[Transaction] = []
        duplicates: list[Transaction] = []

        for row in rows:
            if not row.is_valid:
                continue
            try:
                duplicate = await self.transaction_manager.check_duplicate(row)
                if duplicate is not None:
                    duplicates.append(duplicate)
                    if skip_duplicates:
                        continue

                transactions.append(await self.transaction_manager.create_from_row(row))
            except Exception as exc:
                logger.error("[IMPORT] Failed to import row %d: %s", row.row_number, exc)
                errors.append(ImportRowError(
                    row=row.row_number,
                    message=str(exc),
                    raw_data=row.to_json(),
                ))

        result = ImportResult(
            imported_count=len(transactions),
            duplicate_count=len(duplicates),
            error_count=len(errors),
            transactions=transactions,
            duplicates=duplicates,
            errors=errors,
            success=not errors,
            message=import_summary(len(transactions), len(duplicates), len(errors)),
        )
        logger.info("[IMPORT] %s", result.message)
        return result
