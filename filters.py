# --- filters.py ---

import re
import time
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional, Union

from models import (
    SIZE_UNIT_BYTES,
    TIME_UNIT_DAYS,
    AttachmentUnit,
    FileTypeCategory,
    SizePreset,
    SizeUnit,
    Timeframe,
    TimeUnit,
)
from utils import days_ago

Number = Union[int, float, str, Decimal]

# "3 months", "7.5MB", "10 days"
_BOUND_PATTERN = re.compile(r"^\s*(?P<value>[^\s a-zA-Z]+)\s*(?P<unit>[a-zA-Z]+)\s*$")

_TIME_UNIT_ALIASES = {
    "d": TimeUnit.DAYS, "day": TimeUnit.DAYS, "days": TimeUnit.DAYS,
    "w": TimeUnit.WEEKS, "week": TimeUnit.WEEKS, "weeks": TimeUnit.WEEKS,
    "m": TimeUnit.MONTHS, "month": TimeUnit.MONTHS, "months": TimeUnit.MONTHS,
    "y": TimeUnit.YEARS, "year": TimeUnit.YEARS, "years": TimeUnit.YEARS,
}


# --- Custom bound resolution ---

def _positive_decimal(value: Number) -> Optional[Decimal]:
    """Parses a user-supplied number; anything unusable becomes None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        # str() keeps 7.5 as 7.5 rather than its binary float expansion
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite() or number <= 0:
        return None
    return number


def resolve_custom_days(value: Number, unit: TimeUnit = TimeUnit.DAYS) -> Optional[int]:
    """
    Converts e.g. (3, "months") to 90 days. Fractions truncate toward zero;
    a result of 0 and any non-numeric or non-positive input mean no bound.
    """
    number = _positive_decimal(value)
    if number is None:
        return None
    if not isinstance(unit, TimeUnit):
        unit = TimeUnit(str(unit).lower())
    days = int(number * TIME_UNIT_DAYS[unit])
    return days or None


def resolve_custom_bytes(value: Number, unit: SizeUnit = SizeUnit.MB) -> Optional[int]:
    """
    Converts e.g. (7.5, "mb") to 7_500_000 bytes using exact decimal
    arithmetic, so 10.0 MB is exactly 10_000_000. Fractional bytes truncate.
    """
    number = _positive_decimal(value)
    if number is None:
        return None
    if not isinstance(unit, SizeUnit):
        unit = SizeUnit(str(unit).lower())
    size = int(number * SIZE_UNIT_BYTES[unit])
    return size or None


def resolve_timeframe(timeframe: Timeframe,
                      custom_value: Number = None,
                      custom_unit: TimeUnit = TimeUnit.DAYS) -> Optional[int]:
    """Maximum-age bound in days for a preset or custom timeframe."""
    timeframe = Timeframe(timeframe)
    if timeframe is Timeframe.CUSTOM:
        return resolve_custom_days(custom_value, custom_unit)
    return timeframe.days


def resolve_size(size: SizePreset,
                 custom_value: Number = None,
                 custom_unit: SizeUnit = SizeUnit.MB) -> Optional[int]:
    """Minimum-size bound in bytes for a preset or custom size."""
    size = SizePreset(size)
    if size is SizePreset.CUSTOM:
        return resolve_custom_bytes(custom_value, custom_unit)
    return size.bytes


def _split_bound(text: str):
    match = _BOUND_PATTERN.match(text or "")
    if not match:
        return None, None
    return match.group("value"), match.group("unit").lower()


def parse_age_bound(text: Optional[str]) -> Optional[int]:
    """
    Resolves command-line input such as "month", "3 months" or "10d" to
    days. Unrecognised input means no bound.
    """
    if not text:
        return None
    key = text.strip().lower()
    if key in {t.value for t in Timeframe}:
        return resolve_timeframe(Timeframe(key))
    value, unit = _split_bound(key)
    if unit not in _TIME_UNIT_ALIASES:
        return None
    return resolve_custom_days(value, _TIME_UNIT_ALIASES[unit])


def parse_size_bound(text: Optional[str]) -> Optional[int]:
    """
    Resolves command-line input such as "10mb" (a preset) or "7.5 MB" to
    bytes. Unrecognised input means no bound.
    """
    if not text:
        return None
    key = text.strip().lower()
    if key in {s.value for s in SizePreset}:
        return resolve_size(SizePreset(key))
    value, unit = _split_bound(key)
    if unit not in {u.value for u in SizeUnit}:
        return None
    return resolve_custom_bytes(value, SizeUnit(unit))


# --- Filter Functions ---

def filter_units(units: Iterable[AttachmentUnit],
                 max_age_days: Optional[int] = None,
                 min_size_bytes: Optional[int] = None,
                 category: FileTypeCategory = FileTypeCategory.ALL,
                 now: Optional[float] = None) -> List[AttachmentUnit]:
    """
    Returns the units passing every bound, in input order.

    The age bound keeps units *older* than the given number of days
    (last_modified <= now - days), which is what a cleanup view wants.
    None on any axis (and FileTypeCategory.ALL) disables that axis.
    """
    category = FileTypeCategory(category)
    if now is None:
        now = time.time()
    cutoff = days_ago(max_age_days, now) if max_age_days else None

    def passes(unit: AttachmentUnit) -> bool:
        if cutoff is not None and unit.last_modified > cutoff:
            return False
        if min_size_bytes and unit.total_size < min_size_bytes:
            return False
        if category is not FileTypeCategory.ALL and unit.category is not category:
            return False
        return True

    return [unit for unit in units if passes(unit)]
