from ict.dataset.loader import (
    UNKNOWN_LABEL,
    derive_prefix_label,
    first_image_in_directory,
    load_images_from_directory,
)
from ict.dataset.split import repeat_records, shuffle_records, train_test_split

__all__ = [
    "UNKNOWN_LABEL",
    "derive_prefix_label",
    "first_image_in_directory",
    "load_images_from_directory",
    "repeat_records",
    "shuffle_records",
    "train_test_split",
]
