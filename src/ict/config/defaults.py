from __future__ import annotations


DEFAULT_CONFIG: dict = {
    "assets": {
        "root": "assets",
        "images_folder": "inputs/images",
        "predictions_folder": "inputs/images-for-predictions/FlowersForPredictions",
        "model_output": "outputs/imageClassifier.zip",
        "runs_folder": "outputs/runs",
    },
    "acquisition": {
        "enabled": True,
        "source": "flower_photos_small_set",
        "url": None,
        "archive_name": None,
        "timeout_seconds": 60.0,
        "force": False,
    },
    "dataset": {
        "folder": None,
        "layout": "full",
        "train_subfolder": "train-dataset",
        "test_subfolder": "test-dataset",
        "label_mode": "folder",
        "extensions": [".jpg", ".png"],
        "case_sensitive": True,
        "empty_label_policy": "unknown",
        "repeat": 1,
    },
    "split": {
        "test_fraction": 0.2,
        "seed": 1,
        "shuffle": True,
    },
    "trainer": {
        "model": "yolov8n-cls.pt",
        "epochs": 20,
        "batch": 10,
        "imgsz": 224,
        "learning_rate": 0.01,
        "device": "cpu",
        "workers": 0,
        "seed": 1,
        "keep_staging": False,
    },
    "output": {
        "color": "auto",
        "show_predictions": True,
    },
    "monitoring": {
        "json_logs": False,
        "log_level": "INFO",
    },
}
