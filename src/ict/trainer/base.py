from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Sequence

from ict.trainer.metrics import compute_classification_metrics
from ict.types import ClassificationMetrics, ImageRecord, PredictionResult


class TrainedModel(ABC):
    @property
    @abstractmethod
    def labels(self) -> list[str]:
        """Label names in key order; ``scores`` of every prediction follow this order."""

    @abstractmethod
    def transform(self, records: Sequence[ImageRecord]) -> list[PredictionResult]:
        """Score every record in bulk."""

    @abstractmethod
    def predict(self, record: ImageRecord) -> PredictionResult:
        """Score a single record."""


class ImageClassificationTrainer(ABC):
    @abstractmethod
    def fit(
        self,
        train: Sequence[ImageRecord],
        validation: Sequence[ImageRecord] | None = None,
    ) -> TrainedModel:
        """Fine-tune the underlying network on ``train``."""

    @abstractmethod
    def save(self, model: TrainedModel, path: Path) -> Path:
        """Persist ``model`` to ``path`` and return the written path."""

    @abstractmethod
    def name(self) -> str:
        """Return stable trainer name for logging."""

    def evaluate(
        self,
        predictions: Sequence[PredictionResult],
        labels: Sequence[str],
    ) -> ClassificationMetrics:
        return compute_classification_metrics(predictions, labels)
