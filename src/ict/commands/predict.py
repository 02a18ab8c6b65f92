from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

from ict.commands.common import build_printer, prepare
from ict.config.models import DatasetConfig
from ict.dataset.loader import label_for_file, load_images_from_directory
from ict.errors import FilesystemError, SchemaError
from ict.output.console import format_image_prediction
from ict.paths import AssetsLayout
from ict.trainer.ultralytics_trainer import UltralyticsClassificationTrainer
from ict.types import ImageRecord


def collect_records(target: Path, dataset: DatasetConfig) -> list[ImageRecord]:
    if target.is_file():
        label = label_for_file(target, dataset.use_folder_name_as_label, dataset.empty_label_policy)
        if label is None:
            raise SchemaError(f"No label can be derived for image file: {target}")
        return [ImageRecord(path=str(target), label=label)]
    records = sorted(
        load_images_from_directory(
            target,
            use_folder_name_as_label=dataset.use_folder_name_as_label,
            extensions=dataset.extensions,
            empty_label_policy=dataset.empty_label_policy,
            case_sensitive=dataset.case_sensitive,
        ),
        key=lambda record: record.path,
    )
    if not records:
        raise FilesystemError(f"No image files found in: {target}")
    return records


def run_predict(args: Any, repo_root: Path) -> int:
    try:
        config = prepare(args, repo_root)
        layout = AssetsLayout.from_config(config.assets)

        model_path = Path(args.model) if args.model else layout.model_output
        images = Path(args.images) if args.images else layout.predictions
        if not model_path.is_absolute():
            model_path = (repo_root / model_path).resolve()
        if not images.is_absolute():
            images = (repo_root / images).resolve()

        model = UltralyticsClassificationTrainer.load(
            model_path,
            imgsz=config.trainer.imgsz,
            device=config.trainer.device,
            batch=config.trainer.batch,
        )
        records = collect_records(images, config.dataset)

        printer = build_printer(config)
        for prediction in model.transform(records):
            printer.line(format_image_prediction(prediction))
        return 0
    except Exception as exc:
        print(f"predict command failed: {exc}", file=sys.stderr)
        return 2
