from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

from ict.commands.common import build_printer, prepare
from ict.output.console import format_label_counts
from ict.paths import AssetsLayout
from ict.pipeline import materialize_split, resolve_dataset_root


def run_scan(args: Any, repo_root: Path) -> int:
    try:
        config = prepare(args, repo_root)
        layout = AssetsLayout.from_config(config.assets)
        dataset_root = resolve_dataset_root(config, layout)
        split = materialize_split(config, dataset_root)
        counts = split.label_counts()

        if args.json:
            payload = {
                "dataset_root": str(dataset_root),
                "layout": config.dataset.layout,
                "label_mode": config.dataset.label_mode,
                "train_count": len(split.train),
                "test_count": len(split.test),
                "labels": split.labels(),
                "label_counts": counts,
            }
            print(json.dumps(payload, ensure_ascii=True, indent=2))
            return 0

        printer = build_printer(config)
        printer.text(f"Image set: {dataset_root}")
        printer.text(f"Training images ({len(split.train)}):")
        printer.lines(format_label_counts(counts["train"]))
        printer.text(f"Test images ({len(split.test)}):")
        printer.lines(format_label_counts(counts["test"]))
        return 0
    except Exception as exc:
        print(f"scan command failed: {exc}", file=sys.stderr)
        return 2
