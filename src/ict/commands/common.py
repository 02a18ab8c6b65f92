from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

from ict.config import AppConfig, load_app_config
from ict.monitoring import configure_logging
from ict.output.console import ConsolePrinter, color_enabled
from ict.utils.config_io import prune_none


def _arg(args: Any, name: str) -> Any:
    return getattr(args, name, None)


def build_overrides(args: Any) -> dict[str, Any]:
    overrides = {
        "acquisition": {
            "enabled": (False if _arg(args, "no_download") else None),
            "source": _arg(args, "source"),
            "url": _arg(args, "url"),
            "archive_name": _arg(args, "archive_name"),
            "force": (True if _arg(args, "force") else None),
        },
        "assets": {
            "model_output": _arg(args, "model_output"),
        },
        "dataset": {
            "folder": _arg(args, "dataset_folder"),
            "layout": _arg(args, "layout"),
            "label_mode": _arg(args, "label_mode"),
            "empty_label_policy": _arg(args, "empty_label_policy"),
            "extensions": _arg(args, "extension"),
        },
        "split": {
            "test_fraction": _arg(args, "test_fraction"),
            "seed": _arg(args, "seed"),
        },
        "trainer": {
            "model": _arg(args, "model"),
            "epochs": _arg(args, "epochs"),
            "batch": _arg(args, "batch"),
            "imgsz": _arg(args, "imgsz"),
            "learning_rate": _arg(args, "learning_rate"),
            "device": _arg(args, "device"),
        },
        "output": {
            "color": ("never" if _arg(args, "no_color") else None),
            "show_predictions": (False if _arg(args, "hide_predictions") else None),
        },
        "monitoring": {
            "json_logs": _arg(args, "json_logs"),
            "log_level": _arg(args, "log_level"),
        },
    }
    return prune_none(overrides)


def prepare(args: Any, repo_root: Path, overrides: dict[str, Any] | None = None) -> AppConfig:
    """Load config for a command and configure logging from it."""
    config = load_app_config(
        repo_root=repo_root,
        config_path=_arg(args, "config"),
        cli_overrides=overrides if overrides is not None else build_overrides(args),
    )
    if _arg(args, "quiet"):
        config.monitoring.log_level = "WARNING"

    configure_logging(
        level=config.monitoring.log_level,
        json_logs=config.monitoring.json_logs,
    )
    return config


def build_printer(config: AppConfig) -> ConsolePrinter:
    return ConsolePrinter(sys.stdout, color=color_enabled(config.output.color, sys.stdout))
