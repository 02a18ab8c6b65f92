from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class AssetsConfig:
    root: str = "assets"
    images_folder: str = "inputs/images"
    predictions_folder: str = "inputs/images-for-predictions/FlowersForPredictions"
    model_output: str = "outputs/imageClassifier.zip"
    runs_folder: str = "outputs/runs"


@dataclass
class AcquisitionConfig:
    enabled: bool = True
    source: str = "flower_photos_small_set"
    url: str | None = None
    archive_name: str | None = None
    timeout_seconds: float = 60.0
    force: bool = False


@dataclass
class DatasetConfig:
    folder: str | None = None
    layout: str = "full"
    train_subfolder: str = "train-dataset"
    test_subfolder: str = "test-dataset"
    label_mode: str = "folder"
    extensions: list[str] = field(default_factory=lambda: [".jpg", ".png"])
    case_sensitive: bool = True
    empty_label_policy: str = "unknown"
    repeat: int = 1

    @property
    def use_folder_name_as_label(self) -> bool:
        return self.label_mode == "folder"


@dataclass
class SplitConfig:
    test_fraction: float = 0.2
    seed: int | None = 1
    shuffle: bool = True


@dataclass
class TrainerConfig:
    model: str = "yolov8n-cls.pt"
    epochs: int = 20
    batch: int = 10
    imgsz: int = 224
    learning_rate: float = 0.01
    device: str = "cpu"
    workers: int = 0
    seed: int = 1
    keep_staging: bool = False


@dataclass
class OutputConfig:
    color: str = "auto"
    show_predictions: bool = True


@dataclass
class MonitoringConfig:
    json_logs: bool = False
    log_level: str = "INFO"


@dataclass
class AppConfig:
    assets: AssetsConfig = field(default_factory=AssetsConfig)
    acquisition: AcquisitionConfig = field(default_factory=AcquisitionConfig)
    dataset: DatasetConfig = field(default_factory=DatasetConfig)
    split: SplitConfig = field(default_factory=SplitConfig)
    trainer: TrainerConfig = field(default_factory=TrainerConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)

    def as_log_context(self) -> dict[str, Any]:
        return {
            "source": self.acquisition.source,
            "acquisition_enabled": self.acquisition.enabled,
            "layout": self.dataset.layout,
            "label_mode": self.dataset.label_mode,
            "test_fraction": self.split.test_fraction,
            "seed": self.split.seed,
            "model": self.trainer.model,
            "epochs": self.trainer.epochs,
            "device": self.trainer.device,
        }
