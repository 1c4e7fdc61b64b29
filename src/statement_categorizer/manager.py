from statement_categorizer.classifiers.token_frequency import (
    ClassifierSettings,
    TokenFrequencyClassifier,
    TokenModel,
)
from statement_categorizer.errors import CategoryNotFound
from statement_categorizer.logger import get_logger
from statement_categorizer.models import (
    Category,
    CategoryFields,
    CategoryKind,
    ClassificationResult,
    ClassificationStatus,
    DashboardStats,
    ImportResult,
    MonthlyReport,
    Transaction,
)
from statement_categorizer.services.classification import ClassificationService
from statement_categorizer.services.imports import ImportService
from statement_categorizer.services.reports import ReportService
from statement_categorizer.services.transactions import TransactionDataManager
from statement_categorizer.stores.base import CategoryStore, HistoryStore, TransactionStore
from statement_categorizer.stores.memory import (
    InMemoryCategoryStore,
    InMemoryHistoryStore,
    InMemoryTransactionStore,
)
from statement_categorizer.stores.sqlite import (
    SqliteCategoryStore,
    SqliteDatabase,
    SqliteHistoryStore,
    SqliteTransactionStore,
)

logger = get_logger(__name__)

DEFAULT_CATEGORIES: tuple[CategoryFields, ...] = (
    CategoryFields(name="Groceries", description="Food and household supplies",
                   category_kind=CategoryKind.EXPENSE, color="#4CAF50"),
    CategoryFields(name="Utilities", description="Electricity, water, internet, phone",
                   category_kind=CategoryKind.EXPENSE, color="#2196F3"),
    CategoryFields(name="Entertainment", description="Movies, dining out, hobbies, subscriptions",
                   category_kind=CategoryKind.EXPENSE, color="#FF9800"),
    CategoryFields(name="Transportation", description="Gas, public transport, parking, vehicle maintenance",
                   category_kind=CategoryKind.EXPENSE, color="#9C27B0"),
    CategoryFields(name="Healthcare", description="Medical expenses, pharmacy, insurance",
                   category_kind=CategoryKind.EXPENSE, color="#F44336"),
    CategoryFields(name="Shopping", description="Clothing, electronics, household items",
                   category_kind=CategoryKind.EXPENSE, color="#E91E63"),
    CategoryFields(name="Housing", description="Rent, mortgage, property maintenance",
                   category_kind=CategoryKind.EXPENSE, color="#795548"),
    CategoryFields(name="Salary", description="Monthly salary and wages",
                   category_kind=CategoryKind.INCOME, color="#8BC34A"),
    CategoryFields(name="Savings", description="Transfers to savings accounts",
                   category_kind=CategoryKind.EXPENSE, color="#00BCD4"),
    CategoryFields(name="Other", description="Miscellaneous expenses",
                   category_kind=CategoryKind.EXPENSE, color="#9E9E9E"),
)


class CategorizerService:
    """Wires the stores into the import and classification services."""

    def __init__(
        self,
        transactions: TransactionStore,
        categories: CategoryStore,
        history: HistoryStore,
        *,
        classifier_settings: ClassifierSettings | None = None,
        database: SqliteDatabase | None = None,
    ) -> None:
        self.transactions = transactions
        self.categories = categories
        self.history = history
        self.database = database

        self.classifier = TokenFrequencyClassifier(classifier_settings)
        self.transaction_manager = TransactionDataManager(transactions)
        self.importer = ImportService(self.transaction_manager)
        self.classification = ClassificationService(
            self.classifier,
            self.transaction_manager,
            categories,
            history,
        )
        self.reports = ReportService(transactions, categories)

    @classmethod
    def in_memory(cls, classifier_settings: ClassifierSettings | None = None) -> "CategorizerService":
        transactions = InMemoryTransactionStore()
        return cls(
            transactions,
            InMemoryCategoryStore(transactions),
            InMemoryHistoryStore(),
            classifier_settings=classifier_settings,
        )

    @classmethod
    def sqlite(
        cls, path: str, classifier_settings: ClassifierSettings | None = None
    ) -> "CategorizerService":
        database = SqliteDatabase(path)
        return cls(
            SqliteTransactionStore(database),
            SqliteCategoryStore(database),
            SqliteHistoryStore(database),
            classifier_settings=classifier_settings,
            database=database,
        )

    async def open(self) -> None:
        if self.database is not None:
            await self.database.open()

    async def close(self) -> None:
        if self.database is not None:
            await self.database.close()

    async def seed_default_categories(self) -> int:
        created = 0
        for fields in DEFAULT_CATEGORIES:
            if await self.categories.find_by_name(fields.name) is not None:
                logger.debug("[STORE] Category already exists: %s", fields.name)
                continue
            await self.categories.create(fields)
            created += 1
        logger.info("[STORE] Seeded %d default categories.", created)
        return created

    async def import_csv(self, content: str, skip_duplicates: bool = True) -> ImportResult:
        return await self.importer.import_csv(content, skip_duplicates)

    async def classify_transaction(self, transaction_id: int) -> ClassificationResult:
        return await self.classification.classify_transaction(transaction_id)

    async def manual_classify(self, transaction_id: int, category_id: int) -> Transaction:
        return await self.classification.manual_classify(transaction_id, category_id)

    async def accept_suggestion(self, transaction_id: int) -> Transaction:
        return await self.classification.accept_suggestion(transaction_id)

    async def train_model(self) -> TokenModel:
        return await self.classification.train_model()

    async def create_category(self, fields: CategoryFields) -> Category:
        category = await self.categories.create(fields)
        logger.info("[STORE] Created category '%s' (%s).", category.name, category.category_kind.value)
        return category

    async def get_category(self, category_id: int) -> Category:
        category = await self.categories.find_by_id(category_id)
        if category is None:
            raise CategoryNotFound(category_id)
        return category

    async def monthly_report(self, month: str) -> MonthlyReport:
        return await self.reports.monthly_report(month)

    async def dashboard_stats(self) -> DashboardStats:
        return await self.reports.dashboard_stats()

    async def transactions_requiring_review(self) -> list[Transaction]:
        unclassified = await self.transactions.find_by_status(ClassificationStatus.UNCLASSIFIED)
        pending = await self.transactions.find_by_status(ClassificationStatus.PENDING)
        return unclassified + pending

    def clear_models(self) -> None:
        self.classifier.clear()
        logger.info("[TRAIN] Model cleared; it will be rebuilt before the next prediction.")
