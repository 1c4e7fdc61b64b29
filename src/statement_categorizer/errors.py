class CategorizerError(Exception):
    """Base class for every error raised by the import and classification core."""


class CSVParseError(CategorizerError):
    pass


class InsufficientTrainingData(CategorizerError):
    def __init__(self, available: int, required: int) -> None:
        self.available = available
        self.required = required
        super().__init__(
            f"Insufficient training data. Need at least {required} samples, got {available}."
        )


class ModelNotTrained(CategorizerError):
    def __init__(self) -> None:
        super().__init__("Model not trained yet")


class NotFoundError(CategorizerError):
    kind = "Record"

    def __init__(self, record_id: int) -> None:
        self.record_id = record_id
        super().__init__(f"{self.kind} {record_id} not found")


class TransactionNotFound(NotFoundError):
    kind = "Transaction"


class CategoryNotFound(NotFoundError):
    kind = "Category"


class PersistenceError(CategorizerError):
    pass


class InvalidTransition(CategorizerError):
    pass


class EmptyCategoryList(CategorizerError):
    pass


class InvalidReportMonth(CategorizerError):
    def __init__(self, month: str) -> None:
        self.month = month
        super().__init__(f"Invalid report month: {month}. Expected YYYY-MM")
