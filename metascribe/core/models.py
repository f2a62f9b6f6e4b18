"""
Data Model
==========

Value objects passed between the pipeline stages.

- ImageMetadata: the title/description/tags triple generated for one image.
- ItemOutcome: success-or-failure record for one input path, used by the
  structured batch API so callers can match results to inputs by position.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from . import config
from .exceptions import MetadataValidationError

# Keys accepted for the image path when building a record from a mapping
PATH_KEYS = ("source_path", "sourcePath", "thumbnail")


@dataclass(frozen=True)
class ImageMetadata:
    """
    Metadata generated for a single image.

    Instances are immutable; the CSV exporter derives sanitized rows from
    them without touching the original.

    Attributes:
        source_path: Filesystem path of the image the record describes.
        title: Short title.
        description: One or more sentences describing the image.
        tags: Keywords in the order the model produced them.
        is_error: True for placeholder records built from a failure.
    """
    source_path: str
    title: str = ""
    description: str = ""
    tags: Tuple[str, ...] = field(default_factory=tuple)
    is_error: bool = False

    def __post_init__(self):
        # Freeze list input so the record stays hashable and immutable
        if not isinstance(self.tags, tuple):
            object.__setattr__(self, "tags", tuple(self.tags))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ImageMetadata":
        """
        Build a record from a plain mapping (JSON payloads, UI state).

        Raises:
            MetadataValidationError: ``tags`` is neither a string nor a list.
        """
        source_path = ""
        for key in PATH_KEYS:
            if key in data:
                source_path = data[key]
                break
        tags = data.get("tags", ())
        if isinstance(tags, str):
            tags = (tags,)
        elif not isinstance(tags, (list, tuple)):
            raise MetadataValidationError(
                f"'tags' must be a list of strings, not {type(tags).__name__}"
            )
        return cls(
            source_path=source_path,
            title=data.get("title", ""),
            description=data.get("description", ""),
            tags=tuple(tags),
            is_error=bool(data.get("is_error", data.get("error", False))),
        )

    @classmethod
    def error(cls, path: str, message: str) -> "ImageMetadata":
        """Placeholder record describing a failure for ``path``."""
        return cls(
            source_path=path,
            title=config.ERROR_RECORD_TITLE,
            description=message,
            tags=config.ERROR_RECORD_TAGS,
            is_error=True,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_path": self.source_path,
            "title": self.title,
            "description": self.description,
            "tags": list(self.tags),
            "is_error": self.is_error,
        }


@dataclass(frozen=True)
class ItemOutcome:
    """Result of scheduling one path: either ``metadata`` or ``error`` is set."""
    path: str
    metadata: Optional[ImageMetadata] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.metadata is not None and self.error is None
