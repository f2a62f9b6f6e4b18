"""
CSV Export
==========

Turns metadata records into CSV text and writes it to a user-chosen file.

Row layout: ``filename, title, description, tags, filepath`` with a header
row, comma delimiter and every field quoted. Title and description are
sanitized against spreadsheet formula injection: each of ``= + - @`` is
replaced by a space. Records are never modified; rows are derived copies.
"""

import csv
import io
import logging
import re
from collections.abc import Mapping, Sequence
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from . import config
from .exceptions import ExportCancelled, ExportIOError, MetadataValidationError
from .models import ImageMetadata, PATH_KEYS

logger = logging.getLogger(__name__)

Record = Union[ImageMetadata, Mapping]

_INJECTION_RE = re.compile("[" + re.escape(config.CSV_INJECTION_CHARS) + "]")
_REQUIRED_FIELDS = ("title", "description", "tags")


def sanitize_field(value: Any) -> str:
    """Coerce ``value`` to text and blank out formula-prefix characters."""
    if not isinstance(value, str):
        value = str(value)
    return _INJECTION_RE.sub(" ", value)


def filename_from_path(path: str) -> str:
    """Last path segment, splitting on both ``/`` and ``\\``."""
    return re.split(r"[\\/]", str(path))[-1]


class CsvExporter:
    """
    CSV serializer for ``ImageMetadata`` records.

    Plain mappings are accepted too (the path may be stored under
    ``source_path``, ``sourcePath`` or ``thumbnail``).
    """

    def __init__(self, default_filename: str = config.DEFAULT_EXPORT_FILENAME):
        self.default_filename = default_filename

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_records(self, records: Any) -> bool:
        """
        Check that ``records`` is a sequence of complete records.

        Raises:
            MetadataValidationError: Naming the first problem found.
        """
        if isinstance(records, (str, bytes)) or not isinstance(records, Sequence):
            raise MetadataValidationError("Metadata must be a list of records")

        for index, item in enumerate(records):
            if isinstance(item, ImageMetadata):
                continue
            if not isinstance(item, Mapping):
                raise MetadataValidationError(
                    f"Metadata item {index} is not a record: {type(item).__name__}"
                )
            if not any(key in item for key in PATH_KEYS):
                raise MetadataValidationError(
                    f"Missing required field 'source_path' (or 'thumbnail') in metadata item {index}"
                )
            for field in _REQUIRED_FIELDS:
                if field not in item:
                    raise MetadataValidationError(
                        f"Missing required field '{field}' in metadata item {index}"
                    )
            tags = item["tags"]
            if not isinstance(tags, (list, tuple, str)):
                raise MetadataValidationError(
                    f"Field 'tags' in metadata item {index} must be a list of strings, "
                    f"not {type(tags).__name__}"
                )
        return True

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_row(self, record: Record) -> Dict[str, str]:
        if not isinstance(record, ImageMetadata):
            record = ImageMetadata.from_dict(record)
        return {
            "filename": filename_from_path(record.source_path),
            "title": sanitize_field(record.title),
            "description": sanitize_field(record.description),
            "tags": config.CSV_TAG_SEPARATOR.join(str(tag) for tag in record.tags),
            "filepath": record.source_path,
        }

    def to_rows(self, records: Iterable[Record]) -> List[Dict[str, str]]:
        return [self.to_row(record) for record in records]

    def export_to_csv(self, records: Sequence[Record]) -> str:
        """Return the CSV text for ``records``, header first, input order kept."""
        self.validate_records(records)

        buffer = io.StringIO()
        writer = csv.DictWriter(
            buffer,
            fieldnames=config.CSV_FIELDNAMES,
            delimiter=",",
            quoting=csv.QUOTE_ALL,
        )
        writer.writeheader()
        writer.writerows(self.to_rows(records))
        return buffer.getvalue()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save_csv(self, records: Sequence[Record], destination: Optional[str]) -> str:
        """
        Write ``records`` as UTF-8 CSV to ``destination``.

        Raises:
            ExportCancelled: ``destination`` is empty.
            ExportIOError: The file could not be written.
        """
        if not destination:
            raise ExportCancelled("Export cancelled")

        text = self.export_to_csv(records)
        try:
            # newline="" keeps the csv module's \r\n line endings intact
            with open(destination, "w", encoding="utf-8", newline="") as f:
                f.write(text)
        except OSError as e:
            logger.error(f"Failed to write CSV to {destination}: {e}")
            raise ExportIOError(f"Failed to export CSV: {e}") from e

        logger.info(f"Exported {len(records)} records to {destination}")
        return destination

    def export_with_dialog(
        self,
        records: Sequence[Record],
        choose_destination: Callable[[str], Optional[str]],
    ) -> str:
        """
        Ask ``choose_destination(default_filename)`` for a path and save.

        The chooser returns ``None`` or ``""`` when the user cancels.
        """
        destination = choose_destination(self.default_filename)
        if not destination:
            logger.info("CSV export cancelled by user")
            raise ExportCancelled("Export cancelled")
        return self.save_csv(records, destination)
