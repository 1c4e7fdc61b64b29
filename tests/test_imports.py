from unittest.mock import AsyncMock

import pytest

from statement_categorizer.errors import PersistenceError
from statement_categorizer.manager import CategorizerService
from statement_categorizer.models import ClassificationStatus

ROW = "15/01/2024,-45.50,COUNTDOWN"


@pytest.mark.anyio
async def test_import_creates_unclassified_transaction(service: CategorizerService) -> None:
    result = await service.import_csv(f"Date,Amount,Payee\n{ROW}")

    assert result.imported_count == 1
    assert result.success
    transaction = result.transactions[0]
    assert transaction.date == "2024-01-15"
    assert transaction.amount == -45.50
    assert transaction.classification_status == ClassificationStatus.UNCLASSIFIED
    assert transaction.category_id is None
    assert transaction.confidence_score is None
    assert result.message == "Imported 1 transactions, 0 duplicates, 0 errors"


@pytest.mark.anyio
async def test_repeated_import_is_skipped_as_duplicate(service: CategorizerService) -> None:
    await service.import_csv(f"Date,Amount,Payee\n{ROW}")
    result = await service.import_csv(f"Date,Amount,Payee\n{ROW}")

    assert result.imported_count == 0
    assert result.duplicate_count == 1
    assert result.error_count == 0
    assert result.success
    assert len(await service.transactions.find_all()) == 1


@pytest.mark.anyio
async def test_duplicates_within_one_file(service: CategorizerService) -> None:
    result = await service.import_csv(f"Date,Amount,Payee\n{ROW}\n{ROW}")

    assert result.imported_count == 1
    assert result.duplicate_count == 1
    assert result.duplicates[0].id == result.transactions[0].id


@pytest.mark.anyio
async def test_duplicates_can_be_kept(service: CategorizerService) -> None:
    await service.import_csv(f"Date,Amount,Payee\n{ROW}")
    result = await service.import_csv(f"Date,Amount,Payee\n{ROW}", skip_duplicates=False)

    assert result.imported_count == 1
    assert result.duplicate_count == 1
    assert len(await service.transactions.find_all()) == 2


@pytest.mark.anyio
async def test_reference_distinguishes_rows(service: CategorizerService) -> None:
    content = (
        "Date,Amount,Payee,Reference\n"
        "15/01/2024,-45.50,COUNTDOWN,\n"
        "15/01/2024,-45.50,COUNTDOWN,INV1\n"
        "15/01/2024,-45.50,COUNTDOWN,\n"
    )
    result = await service.import_csv(content)

    assert result.imported_count == 2
    assert result.duplicate_count == 1


@pytest.mark.anyio
async def test_invalid_rows_are_reported_and_not_stored(service: CategorizerService) -> None:
    content = f"Date,Amount,Payee\n{ROW}\n15/01/2024,abc,SHOP\n16/01/2024,-3.00,BAKERY"
    result = await service.import_csv(content)

    assert result.imported_count == 2
    assert result.error_count == 1
    assert result.errors[0].row == 3
    assert result.errors[0].field == "Amount"
    assert not result.success
    assert [t.payee for t in await service.transactions.find_all()] == ["BAKERY", "COUNTDOWN"]


@pytest.mark.anyio
async def test_malformed_document_imports_nothing(service: CategorizerService) -> None:
    result = await service.import_csv("Date,Amount,Payee\n15/01/2024\n")

    assert result.imported_count == 0
    assert result.error_count == 1
    assert result.errors[0].row == 0
    assert not result.success


@pytest.mark.anyio
async def test_store_failure_becomes_row_error(service: CategorizerService) -> None:
    real_create = service.transactions.create

    async def flaky_create(fields):
        if fields.payee == "COUNTDOWN":
            raise PersistenceError("disk full")
        return await real_create(fields)

    service.transactions.create = AsyncMock(side_effect=flaky_create)

    content = f"Date,Amount,Payee\n{ROW}\n16/01/2024,-3.00,BAKERY"
    result = await service.import_csv(content)

    assert result.imported_count == 1
    assert result.transactions[0].payee == "BAKERY"
    assert result.error_count == 1
    error = result.errors[0]
    assert error.row == 2
    assert error.message == "disk full"
    assert '"Payee": "COUNTDOWN"' in error.raw_data
    assert not result.success


@pytest.mark.parametrize(
    "variant",
    [
        "15/01/2024,-45.51,COUNTDOWN",
        "15/01/2024,-45.50,Countdown",
        "15/01/2024,-45.50,COUNT DOWN",
        "16/01/2024,-45.50,COUNTDOWN",
    ],
)
@pytest.mark.anyio
async def test_any_changed_key_field_is_not_a_duplicate(service: CategorizerService, variant: str) -> None:
    await service.import_csv(f"Date,Amount,Payee\n{ROW}")
    result = await service.import_csv(f"Date,Amount,Payee\n{variant}")

    assert result.imported_count == 1
    assert result.duplicate_count == 0
