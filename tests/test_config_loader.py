from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from ict.config.loader import app_config_to_dict, load_app_config
from ict.errors import SchemaError
from ict.utils.config_io import deep_merge, load_config_file, prune_none


class ConfigLoaderTests(unittest.TestCase):
    def test_defaults_match_sample_layout(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)

            config = load_app_config(repo_root=root)

            self.assertEqual(config.assets.root, str((root / "assets").resolve()))
            self.assertEqual(config.assets.model_output, "outputs/imageClassifier.zip")
            self.assertEqual(config.dataset.extensions, [".jpg", ".png"])
            self.assertTrue(config.dataset.use_folder_name_as_label)
            self.assertEqual(config.split.test_fraction, 0.2)
            self.assertEqual(config.split.seed, 1)
            self.assertEqual(config.trainer.epochs, 20)
            self.assertEqual(config.trainer.batch, 10)

    def test_file_then_cli_overrides(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            config_file = root / "ict.json"
            config_file.write_text(
                """
{
  "split": {"test_fraction": 0.25, "seed": 5},
  "dataset": {"label_mode": "prefix", "folder": "data/flowers"},
  "trainer": {"epochs": 3}
}
""".strip(),
                encoding="utf-8",
            )

            config = load_app_config(
                repo_root=root,
                cli_overrides={"trainer": {"epochs": 7}},
            )

            self.assertEqual(config.split.test_fraction, 0.25)
            self.assertEqual(config.split.seed, 5)
            self.assertFalse(config.dataset.use_folder_name_as_label)
            self.assertEqual(config.dataset.folder, str((root / "data" / "flowers").resolve()))
            self.assertEqual(config.trainer.epochs, 7)

    def test_explicit_missing_config_file_fails(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            with self.assertRaises(FileNotFoundError):
                load_app_config(repo_root=root, config_path=str(root / "nope.toml"))

    def test_invalid_choices_are_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            for overrides in (
                {"split": {"test_fraction": 1.5}},
                {"dataset": {"label_mode": "exif"}},
                {"dataset": {"layout": "sharded"}},
                {"dataset": {"empty_label_policy": "guess"}},
                {"dataset": {"extensions": []}},
            ):
                with self.subTest(overrides=overrides):
                    with self.assertRaises(ValueError):
                        load_app_config(repo_root=root, cli_overrides=overrides)

    def test_config_round_trips_to_dict(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            payload = app_config_to_dict(load_app_config(repo_root=Path(tmpdir)))

            self.assertEqual(payload["acquisition"]["source"], "flower_photos_small_set")
            self.assertEqual(payload["monitoring"]["log_level"], "INFO")


class ConfigFileTests(unittest.TestCase):
    def test_unsupported_extension_fails(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "ict.ini"
            path.write_text("[split]\nseed = 3\n", encoding="utf-8")

            with self.assertRaises(SchemaError):
                load_config_file(path)

    def test_yaml_scalar_document_fails(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "ict.yaml"
            path.write_text("just-a-string\n", encoding="utf-8")

            with self.assertRaises(SchemaError):
                load_config_file(path)

    def test_deep_merge_keeps_sibling_keys(self) -> None:
        merged = deep_merge({"split": {"seed": 1, "shuffle": True}}, {"split": {"seed": 7}, "output": {"color": "never"}})

        self.assertEqual(merged, {"split": {"seed": 7, "shuffle": True}, "output": {"color": "never"}})

    def test_prune_none_drops_empty_sections(self) -> None:
        cleaned = prune_none({"trainer": {"epochs": None}, "split": {"seed": 0, "test_fraction": None}})

        self.assertEqual(cleaned, {"split": {"seed": 0}})


if __name__ == "__main__":
    unittest.main()
