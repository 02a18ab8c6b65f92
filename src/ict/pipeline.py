from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from ict.config.models import AppConfig
from ict.dataset.acquire import Fetcher, UrlFetcher, acquire_dataset, resolve_source
from ict.dataset.loader import first_image_in_directory, load_images_from_directory
from ict.dataset.split import repeat_records, shuffle_records, train_test_split
from ict.errors import FilesystemError
from ict.output.console import (
    ConsolePrinter,
    format_elapsed,
    format_image_prediction,
    format_label_counts,
    format_metrics,
    format_single_prediction,
)
from ict.paths import AssetsLayout
from ict.trainer.base import ImageClassificationTrainer
from ict.types import ClassificationMetrics, ImageRecord, PredictionResult, TrainTestSplit
from ict.utils.config_io import write_json

_LOGGER = logging.getLogger("ict.pipeline")


@dataclass
class PipelineSummary:
    dataset_root: str
    train_count: int
    test_count: int
    labels: list[str]
    training_seconds: float
    evaluation_seconds: float
    metrics: ClassificationMetrics | None
    single_prediction: PredictionResult | None
    model_path: str | None
    predictions: list[PredictionResult] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "dataset_root": self.dataset_root,
            "train_count": self.train_count,
            "test_count": self.test_count,
            "labels": list(self.labels),
            "training_seconds": self.training_seconds,
            "evaluation_seconds": self.evaluation_seconds,
            "metrics": self.metrics.as_dict() if self.metrics else None,
            "single_prediction": (
                {
                    "image_path": self.single_prediction.image_path,
                    "predicted_label": self.single_prediction.predicted_label,
                    "scores": list(self.single_prediction.scores),
                }
                if self.single_prediction
                else None
            ),
            "model_path": self.model_path,
        }


def build_fetcher(config: AppConfig) -> Fetcher:
    return UrlFetcher(timeout_seconds=config.acquisition.timeout_seconds)


def resolve_dataset_root(
    config: AppConfig,
    layout: AssetsLayout,
    fetcher: Fetcher | None = None,
) -> Path:
    """Return the image-set folder, downloading and extracting it when configured to."""
    if config.dataset.folder:
        return Path(config.dataset.folder)

    source = resolve_source(
        config.acquisition.source,
        url=config.acquisition.url,
        archive_name=config.acquisition.archive_name,
    )
    if not config.acquisition.enabled:
        return layout.images / source.name

    folder_name = acquire_dataset(
        layout.images,
        source,
        fetcher=fetcher or build_fetcher(config),
        force=config.acquisition.force,
    )
    return layout.images / folder_name


def materialize_split(config: AppConfig, dataset_root: Path) -> TrainTestSplit:
    dataset = config.dataset

    def load(folder: Path) -> list[ImageRecord]:
        # Seeded shuffles need an input order independent of the filesystem walk.
        return sorted(
            load_images_from_directory(
                folder,
                use_folder_name_as_label=dataset.use_folder_name_as_label,
                extensions=dataset.extensions,
                empty_label_policy=dataset.empty_label_policy,
                case_sensitive=dataset.case_sensitive,
            ),
            key=lambda record: record.path,
        )

    if dataset.layout == "presplit":
        train = load(dataset_root / dataset.train_subfolder)
        test = load(dataset_root / dataset.test_subfolder)
        if config.split.shuffle:
            train = shuffle_records(train, config.split.seed)
        split = TrainTestSplit(train=train, test=test)
    else:
        split = train_test_split(
            load(dataset_root),
            test_fraction=config.split.test_fraction,
            seed=config.split.seed,
            shuffle=config.split.shuffle,
        )

    # Only train gets the repeated copies; a file never appears on both sides.
    if dataset.repeat > 1:
        split = TrainTestSplit(train=repeat_records(split.train, dataset.repeat), test=split.test)

    if not split.train:
        raise FilesystemError(f"No training images found under: {dataset_root}")

    _LOGGER.info(
        "dataset split root=%s layout=%s train=%d test=%d labels=%d",
        dataset_root,
        dataset.layout,
        len(split.train),
        len(split.test),
        len(split.labels()),
    )
    return split


def run_pipeline(
    config: AppConfig,
    trainer: ImageClassificationTrainer,
    fetcher: Fetcher | None = None,
    printer: ConsolePrinter | None = None,
    run_dir: Path | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> PipelineSummary:
    printer = printer or ConsolePrinter()
    layout = AssetsLayout.from_config(config.assets)
    _LOGGER.info("pipeline config %s", config.as_log_context(), extra={"context": config.as_log_context()})

    dataset_root = resolve_dataset_root(config, layout, fetcher)
    split = materialize_split(config, dataset_root)

    counts = split.label_counts()
    printer.text(f"Images per label in training set ({len(split.train)}):")
    printer.lines(format_label_counts(counts["train"]))
    printer.text(f"Images per label in test set ({len(split.test)}):")
    printer.lines(format_label_counts(counts["test"]))

    # Resolve the smoke-test image before the expensive fit.
    sample = first_image_in_directory(
        layout.predictions,
        use_folder_name_as_label=config.dataset.use_folder_name_as_label,
        extensions=config.dataset.extensions,
        case_sensitive=config.dataset.case_sensitive,
    )

    printer.text(
        "*** Training the image classification model with DNN Transfer Learning "
        "on top of the selected pre-trained model/architecture ***"
    )
    started = clock()
    model = trainer.fit(split.train, validation=split.test or None)
    training_seconds = clock() - started
    printer.line(format_elapsed("Training with transfer learning", training_seconds))

    metrics: ClassificationMetrics | None = None
    predictions: list[PredictionResult] = []
    evaluation_seconds = 0.0
    if split.test:
        printer.text("Making bulk predictions and evaluating model's quality...")
        started = clock()
        predictions = model.transform(split.test)
        metrics = trainer.evaluate(predictions, model.labels)
        printer.lines(format_metrics(trainer.name(), metrics))
        evaluation_seconds = clock() - started
        printer.line(format_elapsed("Predicting and Evaluation", evaluation_seconds))

        if config.output.show_predictions:
            printer.text("*** Showing all the predictions ***")
            for prediction in predictions:
                printer.line(format_image_prediction(prediction))
    else:
        _LOGGER.warning("test set is empty, skipping evaluation test_fraction=%s", config.split.test_fraction)

    single = model.predict(sample)
    printer.line(format_single_prediction(single))

    model_path = trainer.save(model, layout.model_output)
    printer.text(f"Model saved to: {model_path}")

    summary = PipelineSummary(
        dataset_root=str(dataset_root),
        train_count=len(split.train),
        test_count=len(split.test),
        labels=model.labels,
        training_seconds=training_seconds,
        evaluation_seconds=evaluation_seconds,
        metrics=metrics,
        single_prediction=single,
        model_path=str(model_path),
        predictions=predictions,
    )

    if run_dir is not None:
        summary_path = run_dir / "run_summary.json"
        write_json(summary_path, summary.as_dict())
        _LOGGER.info("run summary written path=%s", summary_path)

    return summary
