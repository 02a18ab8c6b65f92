class FilesystemError(OSError):
    """Raised when a dataset directory or file is missing or unreadable."""


class DataAcquisitionError(RuntimeError):
    """Raised when a dataset archive cannot be downloaded or extracted."""


class SchemaError(ValueError):
    """Raised when a record cannot be given a usable label."""


class TrainerError(RuntimeError):
    """Raised when the training framework is unavailable or fails to produce a model."""
