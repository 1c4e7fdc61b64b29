import asyncio
from typing import Any

from statement_categorizer.classifiers.token_frequency import TokenFrequencyClassifier, TokenModel
from statement_categorizer.domain.transactions import build_history_snapshot
from statement_categorizer.errors import (
    CategoryNotFound,
    InsufficientTrainingData,
    InvalidTransition,
)
from statement_categorizer.logger import get_logger
from statement_categorizer.models import (
    ClassificationMethod,
    ClassificationResult,
    ClassificationStatus,
    Transaction,
)
from statement_categorizer.services.transactions import TransactionDataManager
from statement_categorizer.stores.base import CategoryStore, HistoryStore

logger = get_logger(__name__)


class ClassificationService:
    def __init__(
        self,
        classifier: TokenFrequencyClassifier,
        transaction_manager: TransactionDataManager,
        categories: CategoryStore,
        history: HistoryStore,
    ) -> None:
        self.classifier = classifier
        self.transaction_manager = transaction_manager
        self.categories = categories
        self.history = history
        self._train_lock = asyncio.Lock()

    @property
    def min_training_samples(self) -> int:
        return self.classifier.settings.min_training_samples

    async def train_model(self) -> TokenModel:
        """Rebuild the model from the most recent trusted labels."""
        async with self._train_lock:
            return await self._train_locked()

    async def _train_locked(self) -> TokenModel:
        entries = await self.history.find_for_training(self.min_training_samples)
        categories = await self.categories.find_all()
        if len(entries) < self.min_training_samples:
            logger.warning(
                "[TRAIN] Not enough labelled transactions: %d of %d required.",
                len(entries),
                self.min_training_samples,
            )
            raise InsufficientTrainingData(len(entries), self.min_training_samples)
        return await asyncio.to_thread(self.classifier.train, entries, categories)

    async def ensure_trained(self) -> None:
        if self.classifier.is_trained:
            return
        async with self._train_lock:
            if not self.classifier.is_trained:
                logger.info("[TRAIN] Model not trained yet; training before first prediction.")
                await self._train_locked()

    async def classify_transaction(self, transaction_id: int) -> ClassificationResult:
        """Suggest a category and auto-approve it when the confidence allows."""
        transaction = await self.transaction_manager.get(transaction_id)
        await self.ensure_trained()

        categories = await self.categories.find_all()
        result = self.classifier.predict(transaction, categories)

        await self.transaction_manager.classify_transaction(
            transaction_id,
            result.suggested_category_id,
            result.confidence_score,
            result.should_auto_approve,
        )

        if result.should_auto_approve:
            logger.info(
                "[AUTO-APPROVE] Transaction %s: category %s (confidence: %.2f)",
                transaction_id,
                result.suggested_category_id,
                result.confidence_score,
            )
            await self.history.create(build_history_snapshot(
                transaction,
                result.suggested_category_id,
                ClassificationMethod.ML_AUTO,
                confidence_score=result.confidence_score,
            ))
        else:
            logger.info(
                "[PREDICT] Transaction %s left pending: category %s (confidence: %.2f)",
                transaction_id,
                result.suggested_category_id,
                result.confidence_score,
            )

        return result

    async def manual_classify(self, transaction_id: int, category_id: int) -> Transaction:
        transaction = await self.transaction_manager.get(transaction_id)
        if await self.categories.find_by_id(category_id) is None:
            raise CategoryNotFound(category_id)

        updated = await self.transaction_manager.classify_transaction(
            transaction_id,
            category_id,
            None,
            True,
        )
        entry = await self.history.create(build_history_snapshot(
            transaction,
            category_id,
            ClassificationMethod.MANUAL,
            previous_category_id=transaction.category_id,
        ))
        logger.info(
            "[CLASSIFY] Transaction %s -> category %s (manual%s)",
            transaction_id,
            category_id,
            ", corrected" if entry.was_corrected else "",
        )
        return updated

    async def accept_suggestion(self, transaction_id: int) -> Transaction:
        """Approve a pending suggestion and keep it as a training label."""
        transaction = await self.transaction_manager.get(transaction_id)
        if transaction.classification_status != ClassificationStatus.PENDING:
            raise InvalidTransition(
                f"Transaction {transaction_id} is {transaction.classification_status.value}, "
                "only pending suggestions can be accepted"
            )

        updated = await self.transaction_manager.approve_classification(transaction_id)
        await self.history.create(build_history_snapshot(
            transaction,
            updated.category_id,
            ClassificationMethod.ML_ACCEPTED,
            confidence_score=transaction.confidence_score,
        ))
        logger.info(
            "[CLASSIFY] Transaction %s -> category %s (accepted suggestion)",
            transaction_id,
            updated.category_id,
        )
        return updated

    def model_status(self) -> dict[str, Any]:
        model = self.classifier.model
        if model is None:
            return {"trained": False}
        return {
            "trained": True,
            "samples": model.sample_count,
            "vocabulary_size": model.vocabulary_size,
            "total_weight": model.total_weight,
            "trained_at": model.trained_at.isoformat(),
        }
