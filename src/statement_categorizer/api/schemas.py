from typing import Literal

from pydantic import BaseModel

from statement_categorizer.models import (
    Category,
    CategoryFields,
    CategoryKind,
    CategorySummary,
    MonthlyReport,
)

WireCategoryKind = Literal["EXPENSE", "INCOME", "TRANSFER"]

_KIND_TO_WIRE: dict[CategoryKind, WireCategoryKind] = {
    CategoryKind.EXPENSE: "EXPENSE",
    CategoryKind.INCOME: "INCOME",
    CategoryKind.TRANSFER: "TRANSFER",
}
_WIRE_TO_KIND: dict[str, CategoryKind] = {wire: kind for kind, wire in _KIND_TO_WIRE.items()}


def kind_to_wire(kind: CategoryKind) -> WireCategoryKind:
    return _KIND_TO_WIRE[kind]


def kind_from_wire(value: WireCategoryKind) -> CategoryKind:
    return _WIRE_TO_KIND[value]


class ImportRequest(BaseModel):
    file_content: str
    filename: str | None = None
    skip_duplicates: bool = True


class ManualClassifyRequest(BaseModel):
    category_id: int


class CategoryCreateRequest(BaseModel):
    name: str
    description: str | None = None
    category_type: WireCategoryKind = "EXPENSE"
    color: str | None = None

    def to_fields(self) -> CategoryFields:
        return CategoryFields(
            name=self.name,
            description=self.description,
            category_kind=kind_from_wire(self.category_type),
            color=self.color,
        )


class CategoryResponse(BaseModel):
    id: int
    name: str
    description: str | None = None
    category_type: WireCategoryKind
    color: str | None = None
    transaction_count: int
    total_amount: float

    @classmethod
    def from_category(cls, category: Category) -> "CategoryResponse":
        return cls(
            id=category.id,
            name=category.name,
            description=category.description,
            category_type=kind_to_wire(category.category_kind),
            color=category.color,
            transaction_count=category.transaction_count,
            total_amount=category.total_amount,
        )


class CategorySummaryResponse(BaseModel):
    category_id: int
    category: CategoryResponse
    total_amount: float
    transaction_count: int
    percentage: float

    @classmethod
    def from_summary(cls, summary: CategorySummary) -> "CategorySummaryResponse":
        return cls(
            category_id=summary.category.id,
            category=CategoryResponse.from_category(summary.category),
            total_amount=summary.total_amount,
            transaction_count=summary.transaction_count,
            percentage=summary.percentage,
        )


class MonthlyReportResponse(BaseModel):
    month: str
    start_date: str
    end_date: str
    category_summaries: list[CategorySummaryResponse]
    total_expenses: float
    total_income: float
    net_amount: float
    transaction_count: int

    @classmethod
    def from_report(cls, report: MonthlyReport) -> "MonthlyReportResponse":
        return cls(
            **report.model_dump(exclude={"category_summaries"}),
            category_summaries=[
                CategorySummaryResponse.from_summary(summary)
                for summary in report.category_summaries
            ],
        )
