from __future__ import annotations

import math
import random
from typing import Iterable

from ict.types import ImageRecord, TrainTestSplit


def shuffle_records(records: Iterable[ImageRecord], seed: int | None = None) -> list[ImageRecord]:
    shuffled = list(records)
    random.Random(seed).shuffle(shuffled)
    return shuffled


def holdout_size(total: int, test_fraction: float) -> int:
    """Number of test records for ``total`` records, rounding half up."""
    if not 0.0 <= test_fraction <= 1.0:
        raise ValueError(f"test_fraction must be within [0, 1], got {test_fraction}")
    size = int(math.floor(test_fraction * total + 0.5))
    return max(0, min(total, size))


def train_test_split(
    records: Iterable[ImageRecord],
    test_fraction: float = 0.2,
    seed: int | None = None,
    shuffle: bool = True,
) -> TrainTestSplit:
    rows = shuffle_records(records, seed) if shuffle else list(records)
    test_n = holdout_size(len(rows), test_fraction)
    return TrainTestSplit(train=rows[test_n:], test=rows[:test_n])


def repeat_records(records: Iterable[ImageRecord], repeat: int) -> list[ImageRecord]:
    """Expand each record into ``repeat`` consecutive copies."""
    if repeat < 1:
        raise ValueError(f"repeat must be >= 1, got {repeat}")
    return [record for record in records for _ in range(repeat)]
