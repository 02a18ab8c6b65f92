from ict.trainer.base import ImageClassificationTrainer, TrainedModel
from ict.trainer.metrics import compute_classification_metrics

__all__ = ["ImageClassificationTrainer", "TrainedModel", "compute_classification_metrics"]
