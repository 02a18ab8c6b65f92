from __future__ import annotations

import argparse
from pathlib import Path


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="Path to TOML/YAML/JSON config file")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Log level")
    parser.add_argument("--json-logs", action="store_true", default=None, help="Emit structured JSON logs")
    parser.add_argument("--quiet", action="store_true", help="Suppress non-warning logs")
    parser.add_argument("--no-color", action="store_true", help="Disable colored console output")


def _add_dataset_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--dataset-folder", help="Use this image folder instead of the downloaded image set")
    parser.add_argument("--source", help="Dataset source name from the built-in catalog")
    parser.add_argument("--no-download", action="store_true", help="Skip download/extract of the image set")
    parser.add_argument("--layout", choices=["full", "presplit"], help="Single image set or train/test subfolders")
    parser.add_argument("--label-mode", choices=["folder", "prefix"], help="Label from parent folder or filename prefix")
    parser.add_argument(
        "--empty-label-policy",
        choices=["unknown", "error", "skip"],
        help="What to do with files whose prefix label is empty",
    )
    parser.add_argument(
        "--extension",
        action="append",
        default=None,
        help="Allowed image extension (repeatable, replaces the default list)",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ict",
        description="Image classification transfer learning sample",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Download, split, train, evaluate, predict and save")
    _add_common_args(run)
    _add_dataset_args(run)
    run.add_argument("--test-fraction", type=float, help="Fraction of images reserved for evaluation")
    run.add_argument("--seed", type=int, help="Shuffle seed")
    run.add_argument("--model", help="Base classification checkpoint (e.g. yolov8n-cls.pt)")
    run.add_argument("--epochs", type=int, help="Training epochs")
    run.add_argument("--batch", type=int, help="Training batch size")
    run.add_argument("--imgsz", type=int, help="Training image size")
    run.add_argument("--learning-rate", type=float, help="Initial learning rate")
    run.add_argument("--device", help="Training device (cpu, mps, cuda, 0, ...)")
    run.add_argument("--model-output", help="Where to write the trained model")
    run.add_argument("--hide-predictions", action="store_true", help="Do not print per-image predictions")

    fetch = subparsers.add_parser("fetch", help="Download and extract the image set only")
    _add_common_args(fetch)
    fetch.add_argument("--source", help="Dataset source name from the built-in catalog")
    fetch.add_argument("--url", help="Custom archive URL")
    fetch.add_argument("--archive-name", help="Archive file name for a custom URL")
    fetch.add_argument("--force", action="store_true", help="Download and extract even if present")

    scan = subparsers.add_parser("scan", help="Materialize the image set and report labels and split sizes")
    _add_common_args(scan)
    _add_dataset_args(scan)
    scan.add_argument("--test-fraction", type=float, help="Fraction of images reserved for evaluation")
    scan.add_argument("--seed", type=int, help="Shuffle seed")
    scan.add_argument("--json", action="store_true", help="Emit JSON report")

    predict = subparsers.add_parser("predict", help="Classify images with a saved model")
    _add_common_args(predict)
    predict.add_argument("--model", help="Saved model path (defaults to assets/outputs/imageClassifier.zip)")
    predict.add_argument("--images", help="Image file or folder (defaults to the prediction samples folder)")
    predict.add_argument("--label-mode", choices=["folder", "prefix"], help="Label from parent folder or filename prefix")
    predict.add_argument("--device", help="Inference device")
    predict.add_argument("--imgsz", type=int, help="Inference image size")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    repo_root = Path(__file__).resolve().parents[2]

    if args.command == "run":
        from ict.commands.run import run_train_pipeline

        return run_train_pipeline(args, repo_root)
    if args.command == "fetch":
        from ict.commands.fetch import run_fetch

        return run_fetch(args, repo_root)
    if args.command == "scan":
        from ict.commands.scan import run_scan

        return run_scan(args, repo_root)
    if args.command == "predict":
        from ict.commands.predict import run_predict

        return run_predict(args, repo_root)

    parser.error(f"Unknown command: {args.command}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
