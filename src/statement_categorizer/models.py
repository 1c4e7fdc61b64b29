from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, model_validator


class ClassificationStatus(str, Enum):
    UNCLASSIFIED = "unclassified"
    PENDING = "pending"
    APPROVED = "approved"


class CategoryKind(str, Enum):
    EXPENSE = "expense"
    INCOME = "income"
    TRANSFER = "transfer"


class ClassificationMethod(str, Enum):
    MANUAL = "manual"
    ML_AUTO = "ml_auto"
    ML_ACCEPTED = "ml_accepted"


# Labels that are fed back into training.
TRAINING_METHODS = (ClassificationMethod.MANUAL, ClassificationMethod.ML_ACCEPTED)

ISO_DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class TransactionFields(BaseModel):
    """Column values of a transaction as taken from a statement row."""

    date: str = Field(pattern=ISO_DATE_PATTERN)  # YYYY-MM-DD, not calendar-checked
    amount: float
    payee: str
    particulars: str | None = None
    code: str | None = None
    reference: str | None = None
    tran_type: str | None = None
    this_party_account: str | None = None
    other_party_account: str | None = None
    serial: str | None = None
    transaction_code: str | None = None
    batch_number: str | None = None
    originating_bank_branch: str | None = None
    processed_date: str | None = Field(default=None, pattern=ISO_DATE_PATTERN)


class Transaction(TransactionFields):
    id: int
    category_id: int | None = None
    classification_status: ClassificationStatus = ClassificationStatus.UNCLASSIFIED
    confidence_score: float | None = Field(default=None, ge=0.0, le=1.0)
    is_auto_approved: bool = False
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def _check_review_state(self) -> "Transaction":
        if self.classification_status is ClassificationStatus.UNCLASSIFIED:
            if self.confidence_score is not None:
                raise ValueError("unclassified transactions carry no confidence score")
        if self.is_auto_approved and self.classification_status is not ClassificationStatus.APPROVED:
            raise ValueError("auto-approved transactions must be approved")
        return self


class Category(BaseModel):
    id: int
    name: str
    description: str | None = None
    category_kind: CategoryKind = CategoryKind.EXPENSE
    color: str | None = None
    transaction_count: int = 0
    total_amount: float = 0.0


class CategoryFields(BaseModel):
    name: str
    description: str | None = None
    category_kind: CategoryKind = CategoryKind.EXPENSE
    color: str | None = None


class HistoryFields(BaseModel):
    transaction_id: int
    category_id: int
    payee: str
    particulars: str | None = None
    tran_type: str | None = None
    amount: float
    classification_method: ClassificationMethod
    confidence_score: float | None = None
    was_corrected: bool = False
    previous_category_id: int | None = None


class ClassificationHistoryEntry(HistoryFields):
    model_config = {"frozen": True}

    id: int
    classified_at: datetime = Field(default_factory=datetime.now)


class ClassificationResult(BaseModel):
    transaction_id: int
    suggested_category_id: int
    confidence_score: float = Field(ge=0.0, le=1.0)
    should_auto_approve: bool
    explanation: str | None = None


class ImportRowError(BaseModel):
    row: int  # 1-based record number counting the header, 0 for document-level errors
    message: str
    field: str | None = None
    raw_data: str | None = None


class ImportResult(BaseModel):
    imported_count: int
    duplicate_count: int
    error_count: int
    transactions: list[Transaction]
    duplicates: list[Transaction]
    errors: list[ImportRowError]
    success: bool
    message: str


class CategorySummary(BaseModel):
    category: Category
    total_amount: float
    transaction_count: int
    percentage: float  # share of the month's expenses, 0-100


class MonthlyReport(BaseModel):
    month: str
    start_date: str
    end_date: str
    category_summaries: list[CategorySummary]
    total_expenses: float  # reported as a negative amount
    total_income: float
    net_amount: float
    transaction_count: int


class DashboardStats(BaseModel):
    total_transactions: int
    unclassified_count: int
    pending_count: int
    approved_count: int
    category_count: int
    current_month_spending: float
