from abc import ABC, abstractmethod
from collections.abc import Sequence

from statement_categorizer.models import (
    Category,
    ClassificationHistoryEntry,
    ClassificationResult,
    Transaction,
)


class Classifier(ABC):
    @abstractmethod
    def train(
        self,
        entries: Sequence[ClassificationHistoryEntry],
        categories: Sequence[Category],
    ) -> object:
        """Rebuild the model from trusted labels and return it."""
        pass

    @abstractmethod
    def predict(
        self, transaction: Transaction, categories: Sequence[Category]
    ) -> ClassificationResult:
        """Suggest a category for the transaction."""
        pass

    @property
    @abstractmethod
    def is_trained(self) -> bool:
        pass
