from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any

from ict.config.defaults import DEFAULT_CONFIG
from ict.config.models import (
    AcquisitionConfig,
    AppConfig,
    AssetsConfig,
    DatasetConfig,
    MonitoringConfig,
    OutputConfig,
    SplitConfig,
    TrainerConfig,
)
from ict.utils.config_io import deep_merge, load_config_file

_LABEL_MODES = {"folder", "prefix"}
_LAYOUTS = {"full", "presplit"}
_EMPTY_LABEL_POLICIES = {"unknown", "error", "skip"}
_COLOR_MODES = {"auto", "always", "never"}


def _lower_keys(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_lower_keys(item) for item in obj]
    return obj


def _load_with_dynaconf(config_paths: list[Path]) -> dict[str, Any]:
    try:
        from dynaconf import Dynaconf
    except ImportError:
        return {}

    settings = Dynaconf(
        envvar_prefix="ICT",
        settings_files=[str(path) for path in config_paths if path.exists()],
        merge_enabled=True,
        environments=False,
        load_dotenv=True,
    )
    return _lower_keys(settings.as_dict())


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _optional_int(value: Any) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return int(value)


def _resolve_repo_relative(path_value: str | None, repo_root: Path) -> str | None:
    if not path_value:
        return path_value
    p = Path(path_value)
    if p.is_absolute():
        return str(p)
    return str((repo_root / p).resolve())


def _require_choice(section: str, key: str, value: str, allowed: set[str]) -> str:
    if value not in allowed:
        raise ValueError(
            f"config {section}.{key}={value!r} is invalid; expected one of {', '.join(sorted(allowed))}"
        )
    return value


def _normalize(data: dict[str, Any], repo_root: Path) -> AppConfig:
    assets_data = data.get("assets", {})
    acquisition_data = data.get("acquisition", {})
    dataset_data = data.get("dataset", {})
    split_data = data.get("split", {})
    trainer_data = data.get("trainer", {})
    output_data = data.get("output", {})
    monitoring_data = data.get("monitoring", {})

    test_fraction = float(split_data.get("test_fraction", 0.2))
    if not 0.0 <= test_fraction <= 1.0:
        raise ValueError(f"config split.test_fraction must be within [0, 1], got {test_fraction}")

    extensions = [str(ext) for ext in dataset_data.get("extensions", []) if str(ext).strip()]
    if not extensions:
        raise ValueError("config dataset.extensions must not be empty")

    repeat = int(dataset_data.get("repeat", 1))
    if repeat < 1:
        raise ValueError(f"config dataset.repeat must be >= 1, got {repeat}")

    config = AppConfig(
        assets=AssetsConfig(
            root=_resolve_repo_relative(str(assets_data.get("root", "assets")), repo_root)
            or str((repo_root / "assets").resolve()),
            images_folder=str(assets_data.get("images_folder", "inputs/images")),
            predictions_folder=str(
                assets_data.get(
                    "predictions_folder",
                    "inputs/images-for-predictions/FlowersForPredictions",
                )
            ),
            model_output=str(assets_data.get("model_output", "outputs/imageClassifier.zip")),
            runs_folder=str(assets_data.get("runs_folder", "outputs/runs")),
        ),
        acquisition=AcquisitionConfig(
            enabled=_coerce_bool(acquisition_data.get("enabled", True)),
            source=str(acquisition_data.get("source", "flower_photos_small_set")),
            url=acquisition_data.get("url") or None,
            archive_name=acquisition_data.get("archive_name") or None,
            timeout_seconds=float(acquisition_data.get("timeout_seconds", 60.0)),
            force=_coerce_bool(acquisition_data.get("force", False)),
        ),
        dataset=DatasetConfig(
            folder=_resolve_repo_relative(dataset_data.get("folder"), repo_root),
            layout=_require_choice(
                "dataset", "layout", str(dataset_data.get("layout", "full")).lower(), _LAYOUTS
            ),
            train_subfolder=str(dataset_data.get("train_subfolder", "train-dataset")),
            test_subfolder=str(dataset_data.get("test_subfolder", "test-dataset")),
            label_mode=_require_choice(
                "dataset", "label_mode", str(dataset_data.get("label_mode", "folder")).lower(), _LABEL_MODES
            ),
            extensions=extensions,
            case_sensitive=_coerce_bool(dataset_data.get("case_sensitive", True)),
            empty_label_policy=_require_choice(
                "dataset",
                "empty_label_policy",
                str(dataset_data.get("empty_label_policy", "unknown")).lower(),
                _EMPTY_LABEL_POLICIES,
            ),
            repeat=repeat,
        ),
        split=SplitConfig(
            test_fraction=test_fraction,
            seed=_optional_int(split_data.get("seed", 1)),
            shuffle=_coerce_bool(split_data.get("shuffle", True)),
        ),
        trainer=TrainerConfig(
            model=str(trainer_data.get("model", "yolov8n-cls.pt")),
            epochs=max(1, int(trainer_data.get("epochs", 20))),
            batch=max(1, int(trainer_data.get("batch", 10))),
            imgsz=max(32, int(trainer_data.get("imgsz", 224))),
            learning_rate=float(trainer_data.get("learning_rate", 0.01)),
            device=str(trainer_data.get("device", "cpu")),
            workers=max(0, int(trainer_data.get("workers", 0))),
            seed=int(trainer_data.get("seed", 1)),
            keep_staging=_coerce_bool(trainer_data.get("keep_staging", False)),
        ),
        output=OutputConfig(
            color=_require_choice(
                "output", "color", str(output_data.get("color", "auto")).lower(), _COLOR_MODES
            ),
            show_predictions=_coerce_bool(output_data.get("show_predictions", True)),
        ),
        monitoring=MonitoringConfig(
            json_logs=_coerce_bool(monitoring_data.get("json_logs", False)),
            log_level=str(monitoring_data.get("log_level", "INFO")).upper(),
        ),
    )

    return config


def _default_config_copy() -> dict[str, Any]:
    return json.loads(json.dumps(DEFAULT_CONFIG))


def load_app_config(
    repo_root: Path,
    config_path: str | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> AppConfig:
    config_paths: list[Path] = []
    if config_path:
        config_paths.append(Path(config_path))
    else:
        for name in (
            "ict.toml",
            "ict.yaml",
            "ict.yml",
            "ict.json",
            "settings.toml",
            "settings.yaml",
            "settings.yml",
            "settings.json",
        ):
            candidate = repo_root / name
            if candidate.exists():
                config_paths.append(candidate)

    for path in config_paths:
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

    merged = _default_config_copy()

    dynaconf_data = _load_with_dynaconf(config_paths)
    if dynaconf_data:
        deep_merge(merged, dynaconf_data)
    else:
        for path in config_paths:
            deep_merge(merged, _lower_keys(load_config_file(path)))

    if cli_overrides:
        deep_merge(merged, _lower_keys(cli_overrides))

    return _normalize(merged, repo_root)


def app_config_to_dict(config: AppConfig) -> dict[str, Any]:
    return asdict(config)
