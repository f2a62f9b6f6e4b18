"""
Image Path Validation
=====================

Filters a list of candidate paths down to image files that can be sent to
the remote API. Rejected paths are logged as warnings and silently dropped;
``validate`` never raises.

Checks, in order, for each path:
1. The path exists and is accessible.
2. The extension (case-insensitive) is in the supported set.
3. The path is a regular file with a size greater than zero.

The result is time-of-check only: a file removed after validation surfaces
later as a per-image ``ProcessingError``.
"""

import logging
import os
import stat
from typing import Iterable, List, Optional, Sequence

from . import config
from .exceptions import ValidationSkip

logger = logging.getLogger(__name__)


class ImageValidator:
    """
    Pre-flight filter for image paths.

    Args:
        supported_extensions: Extensions to accept. Case and a missing
            leading dot are normalised, so ``"JPG"`` and ``".jpg"`` match alike.
    """

    def __init__(self, supported_extensions: Optional[Iterable[str]] = None):
        if supported_extensions is None:
            supported_extensions = config.SUPPORTED_IMAGE_EXTENSIONS
        self.supported_extensions = frozenset(
            self._normalise_extension(ext) for ext in supported_extensions
        )

    @staticmethod
    def _normalise_extension(ext: str) -> str:
        ext = ext.strip().lower()
        if ext and not ext.startswith("."):
            ext = "." + ext
        return ext

    def validate(self, paths: Sequence[str]) -> List[str]:
        """Return the subsequence of ``paths`` that passed every check."""
        valid: List[str] = []
        for path in paths:
            try:
                self.check(path)
            except ValidationSkip as e:
                logger.warning(f"Skipping invalid image: {path} ({e})")
                continue
            valid.append(path)

        logger.info(f"Validated {len(valid)} of {len(paths)} image paths")
        return valid

    def check(self, path: str) -> None:
        """
        Validate a single path.

        Raises:
            ValidationSkip: With the reason the path was rejected.
        """
        if not isinstance(path, str) or not path:
            raise ValidationSkip("Path is empty")

        if not os.access(path, os.F_OK | os.R_OK):
            raise ValidationSkip("File does not exist or is not readable")

        ext = os.path.splitext(path)[1].lower()
        if ext not in self.supported_extensions:
            raise ValidationSkip(f"Unsupported extension '{ext or '(none)'}'")

        try:
            st = os.stat(path)
        except OSError as e:
            raise ValidationSkip(f"Cannot stat file: {e}") from e

        if not stat.S_ISREG(st.st_mode):
            raise ValidationSkip("Path is not a regular file")

        if st.st_size <= 0:
            raise ValidationSkip("File is empty")
