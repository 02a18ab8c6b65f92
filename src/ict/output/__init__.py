from ict.output.console import (
    ConsolePrinter,
    format_elapsed,
    format_image_prediction,
    format_metrics,
    format_single_prediction,
)

__all__ = [
    "ConsolePrinter",
    "format_elapsed",
    "format_image_prediction",
    "format_metrics",
    "format_single_prediction",
]
