# --- models.py ---

import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Iterator, Optional, Tuple

import utils

logger = logging.getLogger(__name__)


class FileTypeCategory(str, Enum):
    """Classification of a unit, derived from its primary file's extension."""
    ALL = "all"  # filter-only value, never assigned to a unit
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"
    PLUGIN = "plugin-data"
    OTHER = "other"

    @property
    def label(self) -> str:
        return CATEGORY_LABELS[self]


CATEGORY_LABELS = {
    FileTypeCategory.ALL: "All",
    FileTypeCategory.IMAGE: "Images",
    FileTypeCategory.VIDEO: "Videos",
    FileTypeCategory.AUDIO: "Audio",
    FileTypeCategory.DOCUMENT: "Documents",
    FileTypeCategory.PLUGIN: "Plugin Data",
    FileTypeCategory.OTHER: "Other",
}

# Lower-case extensions without the leading dot
CATEGORY_BY_EXTENSION: Dict[str, FileTypeCategory] = {}
for _category, _extensions in (
    (FileTypeCategory.IMAGE, ("jpg", "jpeg", "png", "gif", "bmp", "tiff", "webp", "heic")),
    (FileTypeCategory.VIDEO, ("mov", "mp4", "avi", "mkv", "wmv", "flv", "webm")),
    (FileTypeCategory.AUDIO, ("mp3", "wav", "aac", "flac", "m4a")),
    (FileTypeCategory.DOCUMENT, ("pdf", "doc", "docx", "txt", "rtf")),
    (FileTypeCategory.PLUGIN, ("pluginpayloadattachment",)),
):
    for _ext in _extensions:
        CATEGORY_BY_EXTENSION[_ext] = _category
del _category, _extensions, _ext


def category_for_extension(extension: str) -> FileTypeCategory:
    return CATEGORY_BY_EXTENSION.get(extension.lower(), FileTypeCategory.OTHER)


class Timeframe(str, Enum):
    """Preset "older than" bounds."""
    ALL = "all"
    WEEK = "week"
    MONTH = "month"
    THREE_MONTHS = "three_months"
    SIX_MONTHS = "six_months"
    YEAR = "year"
    CUSTOM = "custom"

    @property
    def days(self) -> Optional[int]:
        return TIMEFRAME_DAYS[self]


TIMEFRAME_DAYS: Dict[Timeframe, Optional[int]] = {
    Timeframe.ALL: None,
    Timeframe.WEEK: 7,
    Timeframe.MONTH: 30,
    Timeframe.THREE_MONTHS: 90,
    Timeframe.SIX_MONTHS: 180,
    Timeframe.YEAR: 365,
    Timeframe.CUSTOM: None,  # resolved from the user's value
}


class SizePreset(str, Enum):
    """Preset "larger than" bounds (decimal megabytes)."""
    ALL = "all"
    SMALL = "1mb"
    MEDIUM = "10mb"
    LARGE = "50mb"
    XLARGE = "100mb"
    CUSTOM = "custom"

    @property
    def bytes(self) -> Optional[int]:
        return SIZE_PRESET_BYTES[self]


SIZE_PRESET_BYTES: Dict[SizePreset, Optional[int]] = {
    SizePreset.ALL: None,
    SizePreset.SMALL: 1_000_000,
    SizePreset.MEDIUM: 10_000_000,
    SizePreset.LARGE: 50_000_000,
    SizePreset.XLARGE: 100_000_000,
    SizePreset.CUSTOM: None,
}


class TimeUnit(str, Enum):
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"
    YEARS = "years"


TIME_UNIT_DAYS = {
    TimeUnit.DAYS: 1,
    TimeUnit.WEEKS: 7,
    TimeUnit.MONTHS: 30,
    TimeUnit.YEARS: 365,
}


class SizeUnit(str, Enum):
    KB = "kb"
    MB = "mb"
    GB = "gb"


SIZE_UNIT_BYTES = {
    SizeUnit.KB: 1_000,
    SizeUnit.MB: 1_000_000,
    SizeUnit.GB: 1_000_000_000,
}


_unit_ids = itertools.count(1)


@dataclass(eq=False)
class AttachmentUnit:
    """
    One leaf directory of the attachment store, aggregated from the
    non-hidden files it directly contains.

    Equality and hashing are by object identity. Two scans of the same
    folder produce two distinct units; compare `path` explicitly when
    matching against the filesystem.
    """
    path: str          # The unit folder, never an individual file
    display_name: str  # Name of the primary (newest) file
    total_size: int
    last_modified: float  # mtime of the primary file, seconds since epoch
    extension: str = ""

    # Presentation-only; the engines never read it
    selected: bool = False

    identity: int = field(default_factory=lambda: next(_unit_ids), init=False)

    def __post_init__(self):
        if self.total_size < 0:
            raise ValueError(f"total_size must be >= 0, got {self.total_size}")
        self.extension = self.extension.lower().lstrip(".")
        object.__setattr__(self, "_sealed", True)

    def __setattr__(self, name, value):
        if name != "selected" and getattr(self, "_sealed", False):
            raise AttributeError(f"AttachmentUnit.{name} is read-only")
        super().__setattr__(name, value)

    @property
    def category(self) -> FileTypeCategory:
        return category_for_extension(self.extension)

    @property
    def size_string(self) -> str:
        return utils.format_bytes(self.total_size)

    @property
    def date_string(self) -> str:
        return utils.format_date(self.last_modified)


def total_size(units: Iterable[AttachmentUnit]) -> int:
    """Combined size of a selection, e.g. the space a delete would free."""
    return sum(unit.total_size for unit in units)


@dataclass
class OperationResult:
    """
    Count-only summary of a bulk delete or copy.

    Unpacks as ``succeeded, failed = result``. Which unit failed is only
    ever reported through the log.
    """
    succeeded: int = 0
    failed: int = 0
    bytes_processed: int = 0

    def add_success(self, unit: AttachmentUnit):
        self.succeeded += 1
        self.bytes_processed += unit.total_size

    def add_failure(self, unit: AttachmentUnit, error: Exception, action: str = "process"):
        self.failed += 1
        logger.warning("Failed to %s %s: %s", action, unit.path, error)

    def as_tuple(self) -> Tuple[int, int]:
        return self.succeeded, self.failed

    def __iter__(self) -> Iterator[int]:
        return iter(self.as_tuple())
