from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import IO, Sequence

from ict.types import ClassificationMetrics, PredictionResult

Segment = tuple[str, str]

PLAIN = "plain"
LABEL = "label"
SCORE = "score"
HEADER = "header"

_ANSI_STYLES = {
    PLAIN: "",
    LABEL: "\033[35m",
    SCORE: "\033[34m",
    HEADER: "\033[1m",
}
_ANSI_RESET = "\033[0m"


def _fmt_score(value: float) -> str:
    return f"{value:.4f}"


def format_elapsed(action: str, seconds: float) -> list[Segment]:
    return [(f"{action} took: {int(seconds)} seconds", PLAIN)]


def format_image_prediction(result: PredictionResult) -> list[Segment]:
    return [
        ("Image File: ", PLAIN),
        (Path(result.image_path).name, LABEL),
        (" original labeled as ", PLAIN),
        (result.true_label, LABEL),
        (" predicted as ", PLAIN),
        (result.predicted_label, LABEL),
        (" with score ", PLAIN),
        (_fmt_score(result.max_score), SCORE),
    ]


def format_single_prediction(result: PredictionResult) -> list[Segment]:
    return [
        ("ImageFile : [", PLAIN),
        (Path(result.image_path).name, LABEL),
        ("], Scores : [", PLAIN),
        (",".join(_fmt_score(score) for score in result.scores), SCORE),
        ("], Predicted Label : ", PLAIN),
        (result.predicted_label, LABEL),
    ]


def format_metrics(name: str, metrics: ClassificationMetrics) -> list[list[Segment]]:
    lines: list[list[Segment]] = [
        [(f"Metrics for {name} multi-class classification model", HEADER)],
        [("    MicroAccuracy = ", PLAIN), (f"{metrics.micro_accuracy:.3f}", SCORE), (", a value between 0 and 1, the closer to 1, the better", PLAIN)],
        [("    MacroAccuracy = ", PLAIN), (f"{metrics.macro_accuracy:.3f}", SCORE), (", a value between 0 and 1, the closer to 1, the better", PLAIN)],
        [("    LogLoss = ", PLAIN), (f"{metrics.log_loss:.4f}", SCORE), (", the closer to 0, the better", PLAIN)],
        [("    LogLossReduction = ", PLAIN), (f"{metrics.log_loss_reduction:.4f}", SCORE)],
        [(f"    Top{metrics.top_k}Accuracy = ", PLAIN), (f"{metrics.top_k_accuracy:.3f}", SCORE)],
    ]
    for label, value in metrics.per_class_log_loss.items():
        lines.append(
            [("    LogLoss for class ", PLAIN), (label, LABEL), (" = ", PLAIN), (f"{value:.4f}", SCORE)]
        )
    return lines


def format_label_counts(counts: dict[str, int]) -> list[list[Segment]]:
    return [[("    ", PLAIN), (label, LABEL), (": ", PLAIN), (str(count), SCORE)] for label, count in counts.items()]


def render_plain(segments: Sequence[Segment]) -> str:
    return "".join(text for text, _style in segments)


def color_enabled(mode: str, stream: IO[str]) -> bool:
    if mode == "always":
        return True
    if mode == "never":
        return False
    if os.environ.get("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


class ConsolePrinter:
    """Writes formatted segments to a stream, adding ANSI styles when enabled."""

    def __init__(self, stream: IO[str] | None = None, color: bool | None = None) -> None:
        self._stream = stream or sys.stdout
        self._color = color_enabled("auto", self._stream) if color is None else color

    def render(self, segments: Sequence[Segment]) -> str:
        if not self._color:
            return render_plain(segments)
        parts: list[str] = []
        for text, style in segments:
            code = _ANSI_STYLES.get(style, "")
            parts.append(f"{code}{text}{_ANSI_RESET}" if code else text)
        return "".join(parts)

    def line(self, segments: Sequence[Segment]) -> None:
        self._stream.write(self.render(segments) + "\n")
        self._stream.flush()

    def lines(self, rows: Sequence[Sequence[Segment]]) -> None:
        for row in rows:
            self.line(row)

    def text(self, message: str) -> None:
        self.line([(message, PLAIN)])
