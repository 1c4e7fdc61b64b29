from datetime import date

from statement_categorizer.domain.reports import (
    build_monthly_report,
    month_bounds,
    month_of,
    spending,
)
from statement_categorizer.logger import get_logger
from statement_categorizer.models import ClassificationStatus, DashboardStats, MonthlyReport
from statement_categorizer.stores.base import CategoryStore, TransactionStore

logger = get_logger(__name__)


class ReportService:
    """Read-only summaries over approved transactions."""

    def __init__(self, transactions: TransactionStore, categories: CategoryStore) -> None:
        self.transactions = transactions
        self.categories = categories

    async def monthly_report(self, month: str) -> MonthlyReport:
        start_date, end_date = month_bounds(month)
        transactions = await self.transactions.find_approved_between(start_date, end_date)
        categories = await self.categories.find_all()
        report = build_monthly_report(month, transactions, categories)
        logger.info(
            "[REPORT] %s: %d transactions, income %.2f, expenses %.2f",
            month,
            report.transaction_count,
            report.total_income,
            report.total_expenses,
        )
        return report

    async def dashboard_stats(self, today: date | None = None) -> DashboardStats:
        counts = await self.transactions.count_by_status()
        categories = await self.categories.find_all()
        # Open-ended: approved transactions dated after this month still count.
        month_start, _ = month_bounds(month_of(today or date.today()))
        current = await self.transactions.find_approved_between(month_start)

        return DashboardStats(
            total_transactions=sum(counts.values()),
            unclassified_count=counts[ClassificationStatus.UNCLASSIFIED],
            pending_count=counts[ClassificationStatus.PENDING],
            approved_count=counts[ClassificationStatus.APPROVED],
            category_count=len(categories),
            current_month_spending=spending(current),
        )
