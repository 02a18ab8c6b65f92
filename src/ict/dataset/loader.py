from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterator, Sequence

from ict.errors import FilesystemError, SchemaError
from ict.types import ImageRecord

DEFAULT_IMAGE_EXTENSIONS: tuple[str, ...] = (".jpg", ".png")
UNKNOWN_LABEL = "unknown"
EMPTY_LABEL_POLICIES = ("unknown", "error", "skip")

_LOGGER = logging.getLogger("ict.dataset")


def derive_prefix_label(filename: str) -> str:
    """Return the leading run of letters in ``filename``.

    ``"daisy21.jpg"`` gives ``"daisy"``, ``"tulip.jpg"`` gives ``"tulip"`` and
    an all-digit name such as ``"123.jpg"`` gives ``""``.
    """
    for index, char in enumerate(filename):
        if not char.isalpha():
            return filename[:index]
    return filename


def derive_label(path: Path, use_folder_name_as_label: bool) -> str:
    if use_folder_name_as_label:
        return path.parent.name
    return derive_prefix_label(path.name)


def _check_policy(empty_label_policy: str) -> None:
    if empty_label_policy not in EMPTY_LABEL_POLICIES:
        raise ValueError(
            f"Unsupported empty_label_policy={empty_label_policy!r}; "
            f"expected one of {', '.join(EMPTY_LABEL_POLICIES)}"
        )


def label_for_file(path: Path, use_folder_name_as_label: bool, empty_label_policy: str = "unknown") -> str | None:
    """Label for ``path`` after the empty-label policy; ``None`` means skip the file."""
    _check_policy(empty_label_policy)
    label = derive_label(path, use_folder_name_as_label)
    if label:
        return label
    if empty_label_policy == "error":
        raise SchemaError(f"No label can be derived for image file: {path}")
    if empty_label_policy == "skip":
        _LOGGER.warning("skipping image without derivable label path=%s", path)
        return None
    _LOGGER.warning("empty label replaced with sentinel path=%s label=%s", path, UNKNOWN_LABEL)
    return UNKNOWN_LABEL


def _normalize_extensions(extensions: Sequence[str], case_sensitive: bool) -> set[str]:
    normalized: set[str] = set()
    for ext in extensions:
        value = str(ext).strip()
        if not value:
            continue
        if not value.startswith("."):
            value = "." + value
        normalized.add(value if case_sensitive else value.lower())
    if not normalized:
        raise ValueError("At least one image extension is required")
    return normalized


def _raise_walk_error(exc: OSError) -> None:
    raise FilesystemError(f"Cannot read directory {exc.filename}: {exc.strerror or exc}") from exc


def _iter_files(root: Path) -> Iterator[Path]:
    for dirpath, _dirnames, filenames in os.walk(root, onerror=_raise_walk_error):
        for filename in filenames:
            yield Path(dirpath) / filename


def _check_folder(folder: str | Path) -> Path:
    root = Path(folder)
    if not root.exists():
        raise FilesystemError(f"Image folder not found: {root}")
    if not root.is_dir():
        raise FilesystemError(f"Image folder is not a directory: {root}")
    return root


def load_images_from_directory(
    folder: str | Path,
    use_folder_name_as_label: bool = True,
    extensions: Sequence[str] = DEFAULT_IMAGE_EXTENSIONS,
    repeat: int = 1,
    empty_label_policy: str = "unknown",
    case_sensitive: bool = True,
) -> Iterator[ImageRecord]:
    """Walk ``folder`` recursively and yield one record per image file.

    Traversal order follows the filesystem and is not stable; callers that
    need an order must sort or shuffle the result.
    """
    if repeat < 1:
        raise ValueError(f"repeat must be >= 1, got {repeat}")
    _check_policy(empty_label_policy)

    root = _check_folder(folder)
    allowed = _normalize_extensions(extensions, case_sensitive)

    for file_path in _iter_files(root):
        suffix = file_path.suffix if case_sensitive else file_path.suffix.lower()
        if suffix not in allowed:
            continue

        label = label_for_file(file_path, use_folder_name_as_label, empty_label_policy)
        if label is None:
            continue

        record = ImageRecord(path=str(file_path), label=label)
        for _ in range(repeat):
            yield record


def first_image_in_directory(
    folder: str | Path,
    use_folder_name_as_label: bool = True,
    extensions: Sequence[str] = DEFAULT_IMAGE_EXTENSIONS,
    case_sensitive: bool = True,
) -> ImageRecord:
    records = sorted(
        load_images_from_directory(
            folder,
            use_folder_name_as_label=use_folder_name_as_label,
            extensions=extensions,
            case_sensitive=case_sensitive,
        ),
        key=lambda record: record.path,
    )
    if not records:
        raise FilesystemError(f"No image files found in: {folder}")
    return records[0]
