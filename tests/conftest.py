from collections.abc import Awaitable, Callable

import pytest

from statement_categorizer.manager import CategorizerService
from statement_categorizer.models import Category, CategoryFields, CategoryKind


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def service() -> CategorizerService:
    return CategorizerService.in_memory()


@pytest.fixture
def make_categories(service: CategorizerService) -> Callable[..., Awaitable[list[Category]]]:
    async def _make(*names: str) -> list[Category]:
        return [
            await service.categories.create(CategoryFields(name=name, category_kind=CategoryKind.EXPENSE))
            for name in names
        ]

    return _make


@pytest.fixture
def label_payees(service: CategorizerService) -> Callable[..., Awaitable[None]]:
    """Import one row per payee and label it manually with the given category."""

    async def _label(labels: list[tuple[str, int]]) -> None:
        lines = ["Date,Amount,Payee"]
        lines += [f"{day}/03/2024,-{day}.00,{payee}" for day, (payee, _) in enumerate(labels, start=1)]
        result = await service.import_csv("\n".join(lines))
        assert result.imported_count == len(labels)
        ordered = sorted(result.transactions, key=lambda t: t.id)
        for transaction, (_, category_id) in zip(ordered, labels):
            await service.manual_classify(transaction.id, category_id)

    return _label
