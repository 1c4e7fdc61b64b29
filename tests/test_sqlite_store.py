from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from statement_categorizer.errors import PersistenceError, TransactionNotFound
from statement_categorizer.manager import CategorizerService
from statement_categorizer.models import (
    CategoryFields,
    CategoryKind,
    ClassificationMethod,
    ClassificationStatus,
    HistoryFields,
    TransactionFields,
)
from statement_categorizer.stores.sqlite import SqliteDatabase


@pytest.fixture
async def sqlite_service(tmp_path: Path) -> AsyncGenerator[CategorizerService, None]:
    service = CategorizerService.sqlite(str(tmp_path / "data" / "statements.db"))
    await service.open()
    yield service
    await service.close()


def _fields(**overrides) -> TransactionFields:
    values = {"date": "2024-01-15", "amount": -45.5, "payee": "COUNTDOWN"}
    values.update(overrides)
    return TransactionFields(**values)


@pytest.mark.anyio
async def test_transaction_round_trip(sqlite_service: CategorizerService) -> None:
    store = sqlite_service.transactions
    created = await store.create(_fields(reference="INV1", processed_date="2024-01-16"))

    assert created.id == 1
    assert created.classification_status == ClassificationStatus.UNCLASSIFIED
    assert created.is_auto_approved is False

    fetched = await store.find_by_id(created.id)
    assert fetched is not None
    assert fetched.reference == "INV1"
    assert fetched.processed_date == "2024-01-16"
    assert await store.find_by_id(999) is None


@pytest.mark.anyio
async def test_find_duplicate_treats_missing_reference_as_key(sqlite_service: CategorizerService) -> None:
    store = sqlite_service.transactions
    plain = await store.create(_fields())
    referenced = await store.create(_fields(reference="INV1"))

    assert (await store.find_duplicate("2024-01-15", -45.5, "COUNTDOWN")).id == plain.id
    assert (await store.find_duplicate("2024-01-15", -45.5, "COUNTDOWN", "INV1")).id == referenced.id
    assert await store.find_duplicate("2024-01-15", -45.5, "COUNTDOWN", "INV2") is None
    assert await store.find_duplicate("2024-01-16", -45.5, "COUNTDOWN") is None
    assert await store.find_duplicate("2024-01-15", -45.51, "COUNTDOWN") is None
    assert await store.find_duplicate("2024-01-15", -45.5, "Countdown") is None
    assert await store.find_duplicate("2024-01-15", -45.5, "COUNTDOWN ") is None


@pytest.mark.anyio
async def test_listing_is_newest_first_with_paging(sqlite_service: CategorizerService) -> None:
    store = sqlite_service.transactions
    for date in ["2024-01-02", "2024-01-03", "2024-01-01"]:
        await store.create(_fields(date=date))

    assert [t.date for t in await store.find_all()] == ["2024-01-03", "2024-01-02", "2024-01-01"]
    assert [t.date for t in await store.find_all(limit=1, offset=1)] == ["2024-01-02"]
    assert [t.date for t in await store.find_all(offset=2)] == ["2024-01-01"]


@pytest.mark.anyio
async def test_update_changes_review_state(sqlite_service: CategorizerService) -> None:
    category = await sqlite_service.categories.create(CategoryFields(name="Groceries"))
    created = await sqlite_service.transactions.create(_fields())

    updated = await sqlite_service.transactions.update(created.id, {
        "category_id": category.id,
        "classification_status": ClassificationStatus.APPROVED,
        "confidence_score": 0.9,
        "is_auto_approved": True,
    })

    assert updated.classification_status == ClassificationStatus.APPROVED
    assert updated.is_auto_approved is True
    assert updated.confidence_score == 0.9
    assert [t.id for t in await sqlite_service.transactions.find_by_status(ClassificationStatus.APPROVED)] == [
        created.id
    ]

    with pytest.raises(TransactionNotFound):
        await sqlite_service.transactions.update(999, {"confidence_score": 0.1})
    with pytest.raises(ValueError):
        await sqlite_service.transactions.update(created.id, {"payee": "OTHER"})


@pytest.mark.anyio
async def test_category_names_are_unique(sqlite_service: CategorizerService) -> None:
    created = await sqlite_service.categories.create(
        CategoryFields(name="Salary", category_kind=CategoryKind.INCOME, color="#8BC34A")
    )
    assert created.category_kind == CategoryKind.INCOME
    assert (await sqlite_service.categories.find_by_name("Salary")).id == created.id

    with pytest.raises(PersistenceError):
        await sqlite_service.categories.create(CategoryFields(name="Salary"))


@pytest.mark.anyio
async def test_training_history_filters_methods(sqlite_service: CategorizerService) -> None:
    category = await sqlite_service.categories.create(CategoryFields(name="Groceries"))
    transaction = await sqlite_service.transactions.create(_fields())

    methods = [ClassificationMethod.MANUAL, ClassificationMethod.ML_AUTO, ClassificationMethod.ML_ACCEPTED]
    for method in methods:
        await sqlite_service.history.create(HistoryFields(
            transaction_id=transaction.id,
            category_id=category.id,
            payee=transaction.payee,
            amount=transaction.amount,
            classification_method=method,
        ))

    entries = await sqlite_service.history.find_for_training(min_samples=1)
    assert [e.classification_method for e in entries] == [
        ClassificationMethod.ML_ACCEPTED,
        ClassificationMethod.MANUAL,
    ]

    limited = await sqlite_service.history.find_for_training(min_samples=10)
    assert len(limited) == 2


@pytest.mark.anyio
async def test_full_flow_against_sqlite(sqlite_service: CategorizerService) -> None:
    await sqlite_service.seed_default_categories()
    groceries = await sqlite_service.categories.find_by_name("Groceries")

    result = await sqlite_service.import_csv("Date,Amount,Payee\n15/01/2024,-45.50,COUNTDOWN")
    again = await sqlite_service.import_csv("Date,Amount,Payee\n15/01/2024,-45.50,COUNTDOWN")
    assert (result.imported_count, again.duplicate_count) == (1, 1)

    transaction_id = result.transactions[0].id
    await sqlite_service.manual_classify(transaction_id, groceries.id)

    refreshed = await sqlite_service.categories.find_by_name("Groceries")
    assert refreshed.transaction_count == 1
    assert refreshed.total_amount == -45.5


@pytest.mark.anyio
async def test_closed_database_raises() -> None:
    db = SqliteDatabase(":memory:")

    with pytest.raises(PersistenceError):
        await db.fetch_all("SELECT 1")

    await db.open()
    assert await db.fetch_one("SELECT 1 AS one") == {"one": 1}
    await db.close()


@pytest.mark.anyio
async def test_approved_range_and_status_counts(sqlite_service: CategorizerService) -> None:
    category = await sqlite_service.categories.create(CategoryFields(name="Groceries"))
    store = sqlite_service.transactions
    for date in ["2024-01-31", "2024-02-01", "2024-02-29", "2024-03-01"]:
        created = await store.create(_fields(date=date))
        await store.update(created.id, {
            "category_id": category.id,
            "classification_status": ClassificationStatus.APPROVED,
        })
    await store.create(_fields(date="2024-02-10", payee="PENDING SHOP"))

    february = await store.find_approved_between("2024-02-01", "2024-02-29")
    assert [t.date for t in february] == ["2024-02-01", "2024-02-29"]
    open_ended = await store.find_approved_between("2024-02-15")
    assert [t.date for t in open_ended] == ["2024-02-29", "2024-03-01"]

    assert await store.count_by_status() == {
        ClassificationStatus.UNCLASSIFIED: 1,
        ClassificationStatus.PENDING: 0,
        ClassificationStatus.APPROVED: 4,
    }


@pytest.mark.anyio
async def test_monthly_report_against_sqlite(sqlite_service: CategorizerService) -> None:
    await sqlite_service.seed_default_categories()
    salary = await sqlite_service.categories.find_by_name("Salary")
    groceries = await sqlite_service.categories.find_by_name("Groceries")
    result = await sqlite_service.import_csv(
        "Date,Amount,Payee\n1/05/2024,3000.00,ACME PAYROLL\n3/05/2024,-120.00,COUNTDOWN"
    )
    payroll, shop = sorted(result.transactions, key=lambda t: t.id)
    await sqlite_service.manual_classify(payroll.id, salary.id)
    await sqlite_service.manual_classify(shop.id, groceries.id)

    report = await sqlite_service.monthly_report("2024-05")

    assert report.total_income == 3000.0
    assert report.total_expenses == -120.0
    assert report.net_amount == 2880.0
    assert [s.category.name for s in report.category_summaries] == ["Salary", "Groceries"]
