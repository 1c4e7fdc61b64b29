import calendar
import re
from collections.abc import Sequence
from datetime import date

from statement_categorizer.errors import InvalidReportMonth
from statement_categorizer.models import (
    Category,
    CategoryKind,
    CategorySummary,
    MonthlyReport,
    Transaction,
)

_MONTH_PATTERN = re.compile(r"^([0-9]{4})-([0-9]{2})$")


def month_bounds(month: str) -> tuple[str, str]:
    """Return the first and last ISO day of a ``YYYY-MM`` month."""
    match = _MONTH_PATTERN.match(month)
    if not match:
        raise InvalidReportMonth(month)
    year, month_number = int(match.group(1)), int(match.group(2))
    if year < 1 or not 1 <= month_number <= 12:
        raise InvalidReportMonth(month)
    last_day = calendar.monthrange(year, month_number)[1]
    prefix = f"{year:04d}-{month_number:02d}"
    return f"{prefix}-01", f"{prefix}-{last_day:02d}"


def month_of(day: date) -> str:
    return day.strftime("%Y-%m")


def spending(transactions: Sequence[Transaction]) -> float:
    """Sum of outgoing amounts as a positive number."""
    return sum(abs(t.amount) for t in transactions if t.amount < 0)


def build_monthly_report(
    month: str,
    transactions: Sequence[Transaction],
    categories: Sequence[Category],
) -> MonthlyReport:
    """Summarise a month's approved transactions per category.

    Expense categories add the absolute amount to the expense total; income and
    transfer categories add the signed amount to income. Transactions without a
    known category are counted but not summarised. Summaries follow the order of
    each category's first transaction.
    """
    start_date, end_date = month_bounds(month)
    categories_by_id = {category.id: category for category in categories}

    totals: dict[int, float] = {}
    counts: dict[int, int] = {}
    expenses = 0.0
    income = 0.0
    for transaction in transactions:
        category = categories_by_id.get(transaction.category_id)
        if category is None:
            continue
        totals[category.id] = totals.get(category.id, 0.0) + transaction.amount
        counts[category.id] = counts.get(category.id, 0) + 1
        if category.category_kind is CategoryKind.EXPENSE:
            expenses += abs(transaction.amount)
        else:
            income += transaction.amount

    summaries = [
        CategorySummary(
            category=categories_by_id[category_id],
            total_amount=total,
            transaction_count=counts[category_id],
            percentage=abs(total) / expenses * 100 if expenses > 0 else 0.0,
        )
        for category_id, total in totals.items()
    ]

    return MonthlyReport(
        month=month,
        start_date=start_date,
        end_date=end_date,
        category_summaries=summaries,
        total_expenses=0.0 - expenses,
        total_income=income,
        net_amount=income - expenses,
        transaction_count=len(transactions),
    )
