from __future__ import annotations

import logging
import os
import shutil
import tempfile
from collections import defaultdict
from pathlib import Path
from typing import Any, Sequence

from ict.errors import TrainerError
from ict.trainer.base import ImageClassificationTrainer, TrainedModel
from ict.types import ImageRecord, PredictionResult

DEFAULT_CLASSIFY_MODEL = "yolov8n-cls.pt"

_LOGGER = logging.getLogger("ict.trainer")


def _require_yolo() -> Any:
    try:
        from ultralytics import YOLO
    except ImportError as exc:
        raise TrainerError("Training requires ultralytics package") from exc
    return YOLO


def _link_or_copy(source: Path, target: Path) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    try:
        os.link(source, target)
    except OSError:
        shutil.copy2(source, target)


def stage_image_folder(
    root: Path,
    train: Sequence[ImageRecord],
    validation: Sequence[ImageRecord],
) -> dict[str, Any]:
    """Lay records out as ``root/{train,val}/<label>/<file>`` for the framework.

    Class indices come from the train folder names, so validation labels the
    train set lacks are left out and every train label gets at least one
    validation image (borrowed from train when needed).
    """
    if not train:
        raise TrainerError("Cannot train on an empty training set")

    if root.exists():
        shutil.rmtree(root)

    train_labels = sorted({record.label for record in train})
    by_label: dict[str, list[ImageRecord]] = defaultdict(list)
    for record in train:
        by_label[record.label].append(record)

    for idx, record in enumerate(train):
        source = Path(record.path)
        _link_or_copy(source, root / "train" / record.label / f"{idx:05d}_{source.name}")

    dropped: list[str] = []
    staged_val: dict[str, int] = defaultdict(int)
    for idx, record in enumerate(validation):
        if record.label not in by_label:
            dropped.append(record.path)
            continue
        source = Path(record.path)
        _link_or_copy(source, root / "val" / record.label / f"{idx:05d}_{source.name}")
        staged_val[record.label] += 1

    borrowed: list[str] = []
    for label in train_labels:
        if staged_val[label]:
            continue
        source = Path(by_label[label][0].path)
        _link_or_copy(source, root / "val" / label / f"borrowed_{source.name}")
        borrowed.append(label)

    if dropped:
        _LOGGER.warning("validation images with unseen labels left out count=%d", len(dropped))
    if borrowed:
        _LOGGER.warning("validation borrowed train images labels=%s", ",".join(borrowed))

    return {
        "root": str(root),
        "labels": train_labels,
        "train_count": len(train),
        "val_count": sum(staged_val.values()) + len(borrowed),
        "dropped_validation": dropped,
        "borrowed_labels": borrowed,
    }


class UltralyticsTrainedModel(TrainedModel):
    def __init__(
        self,
        model: Any,
        weights_path: Path,
        imgsz: int = 224,
        device: str = "cpu",
        batch: int = 16,
    ) -> None:
        self._model = model
        self._weights_path = weights_path
        self._imgsz = imgsz
        self._device = device
        self._batch = max(1, batch)
        names = getattr(model, "names", {}) or {}
        if isinstance(names, (list, tuple)):
            names = dict(enumerate(names))
        self._framework_names = {int(k): str(v) for k, v in names.items()}
        self._labels = sorted(self._framework_names.values())
        label_to_framework = {v: k for k, v in self._framework_names.items()}
        self._order = [label_to_framework[label] for label in self._labels]

    @property
    def labels(self) -> list[str]:
        return list(self._labels)

    @property
    def weights_path(self) -> Path:
        return self._weights_path

    def _to_prediction(self, record: ImageRecord, result: Any) -> PredictionResult:
        probs = getattr(result, "probs", None)
        if probs is None:
            raise TrainerError(f"Model returned no class probabilities for {record.path}")
        raw = probs.data.tolist()
        scores = [float(raw[idx]) for idx in self._order]
        top1 = int(probs.top1)
        return PredictionResult(
            image_path=record.path,
            true_label=record.label,
            predicted_label=self._framework_names.get(top1, str(top1)),
            scores=scores,
        )

    def transform(self, records: Sequence[ImageRecord]) -> list[PredictionResult]:
        predictions: list[PredictionResult] = []
        for start in range(0, len(records), self._batch):
            chunk = list(records[start : start + self._batch])
            results = self._model.predict(
                source=[record.path for record in chunk],
                imgsz=self._imgsz,
                device=self._device,
                verbose=False,
            )
            if len(results) != len(chunk):
                raise TrainerError(
                    f"Model returned {len(results)} results for {len(chunk)} images"
                )
            predictions.extend(
                self._to_prediction(record, result) for record, result in zip(chunk, results)
            )
        return predictions

    def predict(self, record: ImageRecord) -> PredictionResult:
        return self.transform([record])[0]


class UltralyticsClassificationTrainer(ImageClassificationTrainer):
    """Fine-tunes an Ultralytics ``-cls`` checkpoint on an image-folder staging of the records."""

    def __init__(
        self,
        workdir: Path,
        model: str = DEFAULT_CLASSIFY_MODEL,
        epochs: int = 20,
        batch: int = 10,
        imgsz: int = 224,
        learning_rate: float = 0.01,
        device: str = "cpu",
        workers: int = 0,
        seed: int = 1,
        keep_staging: bool = False,
    ) -> None:
        self._workdir = workdir
        self._model_name = model
        self._epochs = epochs
        self._batch = batch
        self._imgsz = imgsz
        self._learning_rate = learning_rate
        self._device = device
        self._workers = workers
        self._seed = seed
        self._keep_staging = keep_staging

    def name(self) -> str:
        return "ultralytics-classify"

    def train_args(self, data_root: Path) -> dict[str, Any]:
        return {
            "data": str(data_root),
            "epochs": int(self._epochs),
            "batch": int(self._batch),
            "imgsz": int(self._imgsz),
            "lr0": float(self._learning_rate),
            "device": str(self._device),
            "workers": int(self._workers),
            "seed": int(self._seed),
            "deterministic": True,
            "project": str(self._workdir),
            "name": "ultralytics_train",
            "exist_ok": True,
            "plots": False,
        }

    def _locate_best(self, model: Any, results: Any) -> Path:
        candidates: list[Path] = []
        trainer = getattr(model, "trainer", None)
        if trainer is not None and getattr(trainer, "save_dir", None):
            candidates.append(Path(str(trainer.save_dir)) / "weights" / "best.pt")
        if hasattr(results, "save_dir"):
            candidates.append(Path(str(results.save_dir)) / "weights" / "best.pt")
        candidates.append(self._workdir / "ultralytics_train" / "weights" / "best.pt")
        for candidate in candidates:
            if candidate.exists():
                return candidate
        raise TrainerError("Training finished but best.pt was not found")

    def fit(
        self,
        train: Sequence[ImageRecord],
        validation: Sequence[ImageRecord] | None = None,
    ) -> TrainedModel:
        YOLO = _require_yolo()

        staging_root = self._workdir / "dataset"
        staging = stage_image_folder(staging_root, train, validation if validation else train)
        _LOGGER.info(
            "staged dataset root=%s labels=%d train=%d val=%d",
            staging["root"],
            len(staging["labels"]),
            staging["train_count"],
            staging["val_count"],
        )

        model = YOLO(self._model_name)
        train_args = self.train_args(staging_root)
        _LOGGER.info(
            "training started model=%s epochs=%d batch=%d imgsz=%d lr0=%.4f device=%s",
            self._model_name,
            train_args["epochs"],
            train_args["batch"],
            train_args["imgsz"],
            train_args["lr0"],
            train_args["device"],
        )
        try:
            results = model.train(**train_args)
        except TrainerError:
            raise
        except Exception as exc:
            raise TrainerError(f"Training failed: {exc}") from exc
        finally:
            if not self._keep_staging:
                shutil.rmtree(staging_root, ignore_errors=True)

        best = self._locate_best(model, results)
        _LOGGER.info("training finished weights=%s", best)
        return UltralyticsTrainedModel(
            YOLO(str(best)),
            weights_path=best,
            imgsz=self._imgsz,
            device=self._device,
            batch=self._batch,
        )

    def save(self, model: TrainedModel, path: Path) -> Path:
        weights = getattr(model, "weights_path", None)
        if weights is None or not Path(weights).exists():
            raise TrainerError("Trained model has no weights file to save")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(Path(weights).read_bytes())
        return path

    @staticmethod
    def load(
        path: Path,
        imgsz: int = 224,
        device: str = "cpu",
        batch: int = 16,
    ) -> UltralyticsTrainedModel:
        if not path.exists():
            raise FileNotFoundError(f"Model file not found: {path}")
        YOLO = _require_yolo()

        weights = path
        # Ultralytics only treats ``*.pt`` files as PyTorch checkpoints.
        if path.suffix.lower() != ".pt":
            cache_dir = Path(tempfile.gettempdir()) / "ict-model-cache"
            cache_dir.mkdir(parents=True, exist_ok=True)
            weights = cache_dir / f"{path.stem}.pt"
            weights.write_bytes(path.read_bytes())

        try:
            model = YOLO(str(weights))
        except Exception as exc:
            raise TrainerError(f"Could not load model {path}: {exc}") from exc
        return UltralyticsTrainedModel(model, weights_path=weights, imgsz=imgsz, device=device, batch=batch)
