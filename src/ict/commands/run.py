from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

from ict.commands.common import build_printer, prepare
from ict.config import AppConfig
from ict.paths import AssetsLayout, new_run_id
from ict.pipeline import run_pipeline
from ict.trainer.ultralytics_trainer import UltralyticsClassificationTrainer


def build_trainer(config: AppConfig, workdir: Path) -> UltralyticsClassificationTrainer:
    trainer_cfg = config.trainer
    return UltralyticsClassificationTrainer(
        workdir=workdir,
        model=trainer_cfg.model,
        epochs=trainer_cfg.epochs,
        batch=trainer_cfg.batch,
        imgsz=trainer_cfg.imgsz,
        learning_rate=trainer_cfg.learning_rate,
        device=trainer_cfg.device,
        workers=trainer_cfg.workers,
        seed=trainer_cfg.seed,
        keep_staging=trainer_cfg.keep_staging,
    )


def run_train_pipeline(args: Any, repo_root: Path) -> int:
    try:
        config = prepare(args, repo_root)
        layout = AssetsLayout.from_config(config.assets)
        run_dir = layout.prepare_run_dir(new_run_id("train"))
        run_pipeline(
            config,
            build_trainer(config, run_dir),
            printer=build_printer(config),
            run_dir=run_dir,
        )
        return 0
    except Exception as exc:
        print(f"run command failed: {exc}", file=sys.stderr)
        return 2
