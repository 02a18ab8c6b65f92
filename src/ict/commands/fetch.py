from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

from ict.commands.common import prepare
from ict.dataset.acquire import acquire_dataset, resolve_source
from ict.paths import AssetsLayout
from ict.pipeline import build_fetcher


def run_fetch(args: Any, repo_root: Path) -> int:
    try:
        config = prepare(args, repo_root)
        layout = AssetsLayout.from_config(config.assets)
        source = resolve_source(
            config.acquisition.source,
            url=config.acquisition.url,
            archive_name=config.acquisition.archive_name,
        )
        folder_name = acquire_dataset(
            layout.images,
            source,
            fetcher=build_fetcher(config),
            force=config.acquisition.force,
        )
        payload = {
            "source": source.name,
            "folder": str(layout.images / folder_name),
        }
        print(json.dumps(payload, ensure_ascii=True, indent=2))
        return 0
    except Exception as exc:
        print(f"fetch command failed: {exc}", file=sys.stderr)
        return 2
