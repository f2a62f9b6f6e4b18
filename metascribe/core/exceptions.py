"""
Metascribe Exception Hierarchy
==============================

Every error raised by the pipeline derives from ``MetascribeError`` so the
UI layer can catch a single base class and show its message in a toast.

Per-image errors (``ValidationSkip``, ``ProcessingError``) are isolated by
the pipeline; pipeline errors (``NoValidImagesError``, ``PipelineError``)
abort the whole operation.
"""


class MetascribeError(Exception):
    """Base exception for all Metascribe errors."""
    pass


class ValidationSkip(MetascribeError):
    """Raised internally when a candidate path is rejected by the validator."""
    pass


class ProcessingError(MetascribeError):
    """Raised when a single image cannot be turned into metadata."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path


class BatchCancelled(MetascribeError):
    """Raised for items that never started because the batch was aborted."""
    pass


class NoValidImagesError(MetascribeError):
    """Raised when validation leaves nothing to process."""
    pass


class PipelineError(MetascribeError):
    """Raised when the scheduler fails as a whole."""
    pass


class ExportError(MetascribeError):
    """Base exception for CSV export failures."""
    pass


class ExportCancelled(ExportError):
    """Raised when the user abandons the save dialog."""
    pass


class ExportIOError(ExportError):
    """Raised when the CSV file cannot be written."""
    pass


class MetadataValidationError(MetascribeError):
    """Raised when malformed records are handed to the CSV exporter."""
    pass
