import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from statement_categorizer.errors import (
    EmptyCategoryList,
    InsufficientTrainingData,
    ModelNotTrained,
)
from statement_categorizer.logger import get_logger
from statement_categorizer.models import (
    Category,
    ClassificationHistoryEntry,
    ClassificationResult,
    Transaction,
)

from .base import Classifier

logger = get_logger(__name__)

_NON_TOKEN_CHARS = re.compile(r"[^a-z0-9\s]")
MIN_TOKEN_LENGTH = 3


@dataclass(frozen=True)
class ClassifierSettings:
    min_training_samples: int = 10
    vocabulary_limit: int = 100
    auto_approve_threshold: float = 0.8
    neutral_confidence: float = 0.5
    confidence_scale: float = 10.0


@dataclass(frozen=True)
class TokenModel:
    """Vocabulary and per-category token counts built by one training run."""

    vocabulary: dict[str, int]
    category_weights: dict[int, dict[str, int]]
    sample_count: int
    total_weight: int
    trained_at: datetime = field(default_factory=datetime.now)

    @property
    def vocabulary_size(self) -> int:
        return len(self.vocabulary)


def tokenize(text: str) -> list[str]:
    cleaned = _NON_TOKEN_CHARS.sub(" ", text.lower())
    return [token for token in cleaned.split() if len(token) >= MIN_TOKEN_LENGTH]


def build_vocabulary(payees: Sequence[str], limit: int) -> dict[str, int]:
    """Index the first ``limit`` distinct tokens in encounter order."""
    vocabulary: dict[str, int] = {}
    for payee in payees:
        for token in tokenize(payee):
            if len(vocabulary) >= limit:
                return vocabulary
            if token not in vocabulary:
                vocabulary[token] = len(vocabulary)
    return vocabulary


def train_model(
    entries: Sequence[ClassificationHistoryEntry],
    categories: Sequence[Category],
    settings: ClassifierSettings | None = None,
) -> TokenModel:
    settings = settings or ClassifierSettings()
    if len(entries) < settings.min_training_samples:
        raise InsufficientTrainingData(len(entries), settings.min_training_samples)

    vocabulary = build_vocabulary([entry.payee for entry in entries], settings.vocabulary_limit)

    category_weights: dict[int, dict[str, int]] = {}
    for category in categories:
        weights: dict[str, int] = {}
        for entry in entries:
            if entry.category_id != category.id:
                continue
            for token in tokenize(entry.payee):
                if token in vocabulary:
                    weights[token] = weights.get(token, 0) + 1
        category_weights[category.id] = weights

    total_weight = sum(sum(weights.values()) for weights in category_weights.values())
    return TokenModel(
        vocabulary=vocabulary,
        category_weights=category_weights,
        sample_count=len(entries),
        total_weight=total_weight,
    )


def predict_with_model(
    model: TokenModel,
    transaction: Transaction,
    categories: Sequence[Category],
    settings: ClassifierSettings | None = None,
) -> ClassificationResult:
    """Score the payee against every category; the first strictly highest score wins."""
    settings = settings or ClassifierSettings()
    if not categories:
        raise EmptyCategoryList("No categories available for prediction")

    tokens = list(dict.fromkeys(
        token for token in tokenize(transaction.payee) if token in model.vocabulary
    ))

    best_score = 0
    best_category_id = categories[0].id
    for category in categories:
        weights = model.category_weights.get(category.id)
        if weights is None:
            continue
        score = sum(weights.get(token, 0) for token in tokens)
        if score > best_score:
            best_score = score
            best_category_id = category.id

    if model.total_weight > 0:
        confidence = min(best_score / model.total_weight * settings.confidence_scale, 1.0)
    else:
        confidence = settings.neutral_confidence

    return ClassificationResult(
        transaction_id=transaction.id,
        suggested_category_id=best_category_id,
        confidence_score=confidence,
        should_auto_approve=confidence >= settings.auto_approve_threshold,
        explanation=(
            f'Classified based on payee "{transaction.payee}" '
            f"with {confidence * 100:.0f}% confidence"
        ),
    )


class TokenFrequencyClassifier(Classifier):
    def __init__(self, settings: ClassifierSettings | None = None) -> None:
        self.settings = settings or ClassifierSettings()
        self.model: TokenModel | None = None

    @property
    def is_trained(self) -> bool:
        return self.model is not None

    def train(
        self,
        entries: Sequence[ClassificationHistoryEntry],
        categories: Sequence[Category],
    ) -> TokenModel:
        logger.info(
            "[TRAIN] Training token model: samples=%d, categories=%d",
            len(entries),
            len(categories),
        )
        model = train_model(entries, categories, self.settings)
        # Swap in the finished model; predictions never see a partial build.
        self.model = model
        logger.info(
            "[TRAIN] Token model ready: vocabulary=%d, total_weight=%d",
            model.vocabulary_size,
            model.total_weight,
        )
        return model

    def predict(
        self, transaction: Transaction, categories: Sequence[Category]
    ) -> ClassificationResult:
        model = self.model
        if model is None:
            raise ModelNotTrained()
        result = predict_with_model(model, transaction, categories, self.settings)
        logger.debug(
            "[PREDICT] Transaction %s -> category %s (confidence: %.2f)",
            transaction.id,
            result.suggested_category_id,
            result.confidence_score,
        )
        return result

    def clear(self) -> None:
        self.model = None
