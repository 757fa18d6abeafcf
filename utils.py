# --- utils.py ---

import os
import time
from datetime import datetime

SECONDS_PER_DAY = 24 * 60 * 60


def format_bytes(size_bytes: int) -> str:
    """
Signature: `format_bytes(size_bytes: int) -> str`

Converts a size in bytes to a human-readable string (KB, MB, GB, TB).
Uses decimal (1000) instead of binary (1024) for storage representation,
matching the size filter presets.
"""
    if size_bytes < 0:
        return "0 B"

    units = ['B', 'KB', 'MB', 'GB', 'TB', 'PB']
    power = 1000.0

    i = 0
    while size_bytes >= power and i < len(units) - 1:
        size_bytes /= power
        i += 1

    return f"{size_bytes:.2f} {units[i]}"


def format_date(timestamp: float) -> str:
    """
Signature: `format_date(timestamp: float) -> str`

Medium-style local date for a modification time, e.g. "Mar 05, 2024".
"""
    return datetime.fromtimestamp(timestamp).strftime("%b %d, %Y")


def is_hidden(name: str, hidden_prefix: str = ".") -> bool:
    """
Signature: `is_hidden(name: str, hidden_prefix: str = ".") -> bool`

True for entries the store treats as hidden (".DS_Store" and friends).
"""
    return bool(hidden_prefix) and name.startswith(hidden_prefix)


def file_extension(name: str) -> str:
    """
Signature: `file_extension(name: str) -> str`

Lower-cased extension without the dot; "" when there is none.
"""
    return os.path.splitext(name)[1].lstrip(".").lower()


def has_read_permission(path: str) -> bool:
    """
Signature: `has_read_permission(path: str) -> bool`

Checks if the current user has read access to a file or directory.
"""
    return os.access(path, os.R_OK)


def days_ago(days: float, now: float = None) -> float:
    """
Signature: `days_ago(days: float, now: float = None) -> float`

Timestamp `days` days before `now` (defaults to the current time).
"""
    if now is None:
        now = time.time()
    return now - days * SECONDS_PER_DAY

