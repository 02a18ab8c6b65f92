from __future__ import annotations

import io
import json
import shutil
import tempfile
import unittest
import zipfile
from pathlib import Path
from typing import Sequence

from ict.config.loader import load_app_config
from ict.dataset.acquire import Fetcher
from ict.errors import DataAcquisitionError, FilesystemError
from ict.output.console import ConsolePrinter
from ict.pipeline import materialize_split, run_pipeline
from ict.trainer.base import ImageClassificationTrainer, TrainedModel
from ict.types import ImageRecord, PredictionResult


class _FakeTrainedModel(TrainedModel):
    def __init__(self, labels: list[str]) -> None:
        self._labels = labels
        self.transformed: list[ImageRecord] = []

    @property
    def labels(self) -> list[str]:
        return list(self._labels)

    def transform(self, records: Sequence[ImageRecord]) -> list[PredictionResult]:
        self.transformed.extend(records)
        return [self.predict(record) for record in records]

    def predict(self, record: ImageRecord) -> PredictionResult:
        scores = [0.0] * len(self._labels)
        guess = record.label if record.label in self._labels else self._labels[0]
        scores[self._labels.index(guess)] = 1.0
        return PredictionResult(record.path, record.label, guess, scores)


class _FakeTrainer(ImageClassificationTrainer):
    def __init__(self) -> None:
        self.fit_train: list[ImageRecord] = []
        self.fit_validation: list[ImageRecord] | None = None
        self.saved_to: Path | None = None
        self.model: _FakeTrainedModel | None = None

    def fit(self, train, validation=None) -> TrainedModel:
        self.fit_train = list(train)
        self.fit_validation = list(validation) if validation is not None else None
        seen = list(train) + list(validation or [])
        self.model = _FakeTrainedModel(sorted({r.label for r in seen}))
        return self.model

    def save(self, model: TrainedModel, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"model")
        self.saved_to = path
        return path

    def name(self) -> str:
        return "fake"


class _ZipFetcher(Fetcher):
    def __init__(self, archive: Path | None) -> None:
        self.archive = archive
        self.calls = 0

    def fetch(self, url: str, destination: Path) -> Path:
        self.calls += 1
        if self.archive is None:
            raise DataAcquisitionError("offline")
        shutil.copyfile(self.archive, destination)
        return destination


def _touch(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"img")


def _flowers(root: Path) -> Path:
    flowers = root / "flowers"
    _touch(flowers / "rose" / "a.jpg")
    _touch(flowers / "rose" / "b.jpg")
    _touch(flowers / "tulip" / "c.jpg")
    return flowers


def _prediction_sample(root: Path) -> Path:
    sample = root / "assets" / "inputs" / "images-for-predictions" / "FlowersForPredictions" / "RareThreeSpiralledRose.png"
    _touch(sample)
    return sample


def _ticks():
    values = iter([0.0, 12.9, 20.0, 21.5])
    return lambda: next(values)


class MaterializeSplitTests(unittest.TestCase):
    def test_end_to_end_folder_mode_split_is_reproducible(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            flowers = _flowers(root)
            config = load_app_config(
                repo_root=root,
                cli_overrides={
                    "dataset": {"folder": str(flowers)},
                    "split": {"test_fraction": 0.25, "seed": 42},
                },
            )

            first = materialize_split(config, flowers)
            second = materialize_split(config, flowers)

            self.assertEqual(len(first.train), 2)
            self.assertEqual(len(first.test), 1)
            self.assertEqual(first.train, second.train)
            self.assertEqual(first.test, second.test)
            self.assertEqual(
                {(Path(r.path).name, r.label) for r in first.train + first.test},
                {("a.jpg", "rose"), ("b.jpg", "rose"), ("c.jpg", "tulip")},
            )

    def test_presplit_layout_uses_subfolders(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            dataset = root / "split_set"
            _touch(dataset / "train-dataset" / "rose" / "a.jpg")
            _touch(dataset / "train-dataset" / "tulip" / "b.jpg")
            _touch(dataset / "test-dataset" / "rose" / "c.jpg")
            config = load_app_config(repo_root=root, cli_overrides={"dataset": {"layout": "presplit"}})

            split = materialize_split(config, dataset)

            self.assertEqual(sorted(r.label for r in split.train), ["rose", "tulip"])
            self.assertEqual([Path(r.path).name for r in split.test], ["c.jpg"])

    def test_repeated_records_never_cross_the_split(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            flowers = root / "flowers"
            for name in ("rose/a.jpg", "rose/b.jpg", "tulip/c.jpg", "tulip/d.jpg"):
                _touch(flowers / name)
            config = load_app_config(
                repo_root=root,
                cli_overrides={
                    "dataset": {"folder": str(flowers), "repeat": 3},
                    "split": {"test_fraction": 0.25, "seed": 1},
                },
            )

            split = materialize_split(config, flowers)

            train_paths = {r.path for r in split.train}
            test_paths = {r.path for r in split.test}
            self.assertEqual(len(test_paths), 1)
            self.assertEqual(len(split.test), 1)
            self.assertEqual(len(split.train), 9)
            self.assertFalse(train_paths & test_paths)

    def test_presplit_layout_keeps_order_without_shuffle(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            dataset = root / "split_set"
            names = ["a.jpg", "b.jpg", "c.jpg", "d.jpg", "e.jpg", "f.jpg"]
            for name in names:
                _touch(dataset / "train-dataset" / "rose" / name)
            _touch(dataset / "test-dataset" / "rose" / "z.jpg")
            config = load_app_config(
                repo_root=root,
                cli_overrides={"dataset": {"layout": "presplit"}, "split": {"shuffle": False}},
            )

            split = materialize_split(config, dataset)

            self.assertEqual([Path(r.path).name for r in split.train], names)

    def test_empty_image_set_fails(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            (root / "empty").mkdir()
            config = load_app_config(repo_root=root)

            with self.assertRaises(FilesystemError):
                materialize_split(config, root / "empty")


class RunPipelineTests(unittest.TestCase):
    def test_pipeline_trains_evaluates_predicts_and_saves(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            flowers = _flowers(root)
            sample = _prediction_sample(root)
            config = load_app_config(
                repo_root=root,
                cli_overrides={
                    "dataset": {"folder": str(flowers)},
                    "split": {"test_fraction": 0.25, "seed": 1},
                },
            )
            trainer = _FakeTrainer()
            stream = io.StringIO()
            run_dir = root / "run"

            summary = run_pipeline(
                config,
                trainer,
                printer=ConsolePrinter(stream, color=False),
                run_dir=run_dir,
                clock=_ticks(),
            )

            self.assertEqual(summary.train_count, 2)
            self.assertEqual(summary.test_count, 1)
            self.assertEqual(trainer.fit_validation, trainer.model.transformed)
            self.assertEqual(summary.training_seconds, 12.9)
            self.assertEqual(summary.metrics.micro_accuracy, 1.0)
            self.assertEqual(summary.single_prediction.image_path, str(sample))
            self.assertEqual(trainer.saved_to, root / "assets" / "outputs" / "imageClassifier.zip")

            output = stream.getvalue()
            self.assertIn("Training with transfer learning took: 12 seconds", output)
            self.assertIn("Predicting and Evaluation took: 1 seconds", output)
            self.assertIn("*** Showing all the predictions ***", output)
            self.assertIn("ImageFile : [RareThreeSpiralledRose.png]", output)
            self.assertIn("Model saved to:", output)

            report = json.loads((run_dir / "run_summary.json").read_text(encoding="utf-8"))
            self.assertEqual(report["test_count"], 1)

    def test_missing_prediction_folder_fails_before_training(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            flowers = _flowers(root)
            config = load_app_config(repo_root=root, cli_overrides={"dataset": {"folder": str(flowers)}})
            trainer = _FakeTrainer()

            with self.assertRaises(FilesystemError):
                run_pipeline(config, trainer, printer=ConsolePrinter(io.StringIO(), color=False))
            self.assertEqual(trainer.fit_train, [])

    def test_pipeline_downloads_image_set_with_fetcher(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            _prediction_sample(root)
            archive = root / "remote.zip"
            with zipfile.ZipFile(archive, "w") as handle:
                for name in ("rose/r1.jpg", "rose/r2.jpg", "tulip/t1.jpg", "tulip/t2.jpg"):
                    handle.writestr(f"tiny_set/{name}", b"img")
            config = load_app_config(
                repo_root=root,
                cli_overrides={
                    "acquisition": {"source": "tiny_set", "url": "https://example.invalid/tiny_set.zip"},
                    "split": {"test_fraction": 0.5, "seed": 3},
                    "output": {"show_predictions": False},
                },
            )
            fetcher = _ZipFetcher(archive)

            summary = run_pipeline(
                config,
                _FakeTrainer(),
                fetcher=fetcher,
                printer=ConsolePrinter(io.StringIO(), color=False),
            )

            self.assertEqual(fetcher.calls, 1)
            self.assertEqual(summary.dataset_root, str(root / "assets" / "inputs" / "images" / "tiny_set"))
            self.assertEqual(summary.train_count + summary.test_count, 4)

    def test_download_failure_aborts(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            config = load_app_config(
                repo_root=root,
                cli_overrides={"acquisition": {"source": "tiny_set", "url": "https://example.invalid/t.zip"}},
            )

            with self.assertRaises(DataAcquisitionError):
                run_pipeline(
                    config,
                    _FakeTrainer(),
                    fetcher=_ZipFetcher(None),
                    printer=ConsolePrinter(io.StringIO(), color=False),
                )


if __name__ == "__main__":
    unittest.main()
