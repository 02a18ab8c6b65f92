from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from ict.config.models import AssetsConfig


def new_run_id(prefix: str) -> str:
    return f"{prefix}-{datetime.now(timezone.utc).strftime('%Y%m%d-%H%M%S')}"


@dataclass
class AssetsLayout:
    root: Path
    images: Path
    predictions: Path
    model_output: Path
    runs: Path

    @classmethod
    def from_config(cls, assets: AssetsConfig) -> "AssetsLayout":
        root = Path(assets.root)

        def under_root(value: str) -> Path:
            p = Path(value)
            return p if p.is_absolute() else root / p

        return cls(
            root=root,
            images=under_root(assets.images_folder),
            predictions=under_root(assets.predictions_folder),
            model_output=under_root(assets.model_output),
            runs=under_root(assets.runs_folder),
        )

    def prepare_run_dir(self, run_id: str) -> Path:
        run_dir = self.runs / run_id
        run_dir.mkdir(parents=True, exist_ok=True)
        return run_dir
