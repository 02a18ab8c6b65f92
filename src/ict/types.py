from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ImageRecord:
    """One (image path, label) pair produced by the dataset materializer."""

    path: str
    label: str


@dataclass
class TrainTestSplit:
    train: list[ImageRecord]
    test: list[ImageRecord]

    def labels(self) -> list[str]:
        return sorted({record.label for record in self.train} | {record.label for record in self.test})

    def label_counts(self) -> dict[str, dict[str, int]]:
        return {
            "train": dict(sorted(Counter(record.label for record in self.train).items())),
            "test": dict(sorted(Counter(record.label for record in self.test).items())),
        }


@dataclass
class PredictionResult:
    """Trainer output for a single image, consumed only for display and metrics."""

    image_path: str
    true_label: str
    predicted_label: str
    scores: list[float] = field(default_factory=list)

    @property
    def max_score(self) -> float:
        return max(self.scores) if self.scores else 0.0


@dataclass
class ClassificationMetrics:
    micro_accuracy: float
    macro_accuracy: float
    log_loss: float
    log_loss_reduction: float
    top_k_accuracy: float
    top_k: int
    labels: list[str] = field(default_factory=list)
    per_class_log_loss: dict[str, float] = field(default_factory=dict)
    confusion_matrix: list[list[int]] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "micro_accuracy": self.micro_accuracy,
            "macro_accuracy": self.macro_accuracy,
            "log_loss": self.log_loss,
            "log_loss_reduction": self.log_loss_reduction,
            "top_k_accuracy": self.top_k_accuracy,
            "top_k": self.top_k,
            "labels": list(self.labels),
            "per_class_log_loss": dict(self.per_class_log_loss),
            "confusion_matrix": [list(row) for row in self.confusion_matrix],
        }
