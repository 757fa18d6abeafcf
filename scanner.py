# --- scanner.py ---

import logging
import os
import threading
from typing import Callable, List, Optional

from models import AttachmentUnit
from utils import file_extension, has_read_permission, is_hidden

logger = logging.getLogger(__name__)

# Callback(fraction: float, status: str)
ProgressCallback = Callable[[float, str], None]


class ScanError(Exception):
    """A scan could not complete; the store itself is unusable."""


class StoreNotFoundError(ScanError):
    pass


class StoreAccessError(ScanError):
    pass


class StructuralScanError(ScanError):
    """Listing a hex folder or subfolder failed mid-scan."""


class ScanInProgressError(ScanError):
    """A second scan was requested while one is still running."""


def _list_dir(path: str) -> List[os.DirEntry]:
    with os.scandir(path) as it:
        return list(it)


def _is_dir(entry: os.DirEntry) -> bool:
    try:
        return entry.is_dir()
    except OSError:
        return False


def check_store_root(root_path: str):
    """Raises a ScanError if the store root cannot be scanned at all."""
    if not os.path.exists(root_path):
        raise StoreNotFoundError(f"Attachment store not found: {root_path}")
    if not os.path.isdir(root_path):
        raise StoreNotFoundError(f"Attachment store is not a directory: {root_path}")
    if not has_read_permission(root_path):
        raise StoreAccessError(f"Permission denied reading attachment store: {root_path}")
    try:
        with os.scandir(root_path) as it:
            next(it, None)
    except OSError as e:
        raise StoreAccessError(f"Cannot read attachment store {root_path}: {e}") from e


def read_unit(unit_path: str, hidden_prefix: str = ".") -> Optional[AttachmentUnit]:
    """
    Aggregates one unit folder into an AttachmentUnit.

    Returns None when the folder holds no visible, readable file. A file
    whose metadata cannot be read adds nothing to the size and is never
    picked as the primary file, but the rest of the unit is still counted.
    The primary file is the first one enumerated among those sharing the
    newest mtime; enumeration order is whatever the OS returns.
    """
    try:
        entries = _list_dir(unit_path)
    except OSError as e:
        logger.warning("Skipping unreadable unit folder %s: %s", unit_path, e)
        return None

    visible = [entry for entry in entries if not is_hidden(entry.name, hidden_prefix)]
    if not visible:
        return None

    total = 0
    primary_name = None
    primary_mtime = None

    for entry in visible:
        if _is_dir(entry):
            continue
        try:
            stat = os.stat(entry.path)
        except OSError as e:
            logger.warning("Cannot read metadata for %s: %s", entry.path, e)
            continue

        total += stat.st_size
        if primary_mtime is None or stat.st_mtime > primary_mtime:
            primary_mtime = stat.st_mtime
            primary_name = entry.name

    if primary_name is None:
        return None

    return AttachmentUnit(
        path=unit_path,
        display_name=primary_name,
        total_size=total,
        last_modified=primary_mtime,
        extension=file_extension(primary_name),
    )


def scan_store(root_path: str,
               on_progress: Optional[ProgressCallback] = None,
               hidden_prefix: str = ".") -> List[AttachmentUnit]:
    """
    Walks root/<hex>/<subfolder>/<unit> and returns one unit per non-empty
    unit folder, in OS enumeration order.

    Stray files at any of the three levels are ignored. Failing to list the
    root, a hex folder or a subfolder raises a ScanError; everything below
    that degrades per unit or per file.
    """
    check_store_root(root_path)

    def report(fraction: float, status: str):
        if on_progress:
            on_progress(fraction, status)

    report(0.0, "Scanning attachments...")

    try:
        hex_folders = [entry for entry in _list_dir(root_path) if _is_dir(entry)]
    except OSError as e:
        raise StoreAccessError(f"Cannot read attachment store {root_path}: {e}") from e

    units: List[AttachmentUnit] = []
    total_folders = len(hex_folders)

    for index, hex_entry in enumerate(hex_folders):
        try:
            subfolders = [entry for entry in _list_dir(hex_entry.path) if _is_dir(entry)]
            for subfolder in subfolders:
                for unit_entry in _list_dir(subfolder.path):
                    if not _is_dir(unit_entry):
                        continue
                    unit = read_unit(unit_entry.path, hidden_prefix)
                    if unit is not None:
                        units.append(unit)
        except OSError as e:
            raise StructuralScanError(f"Error scanning {hex_entry.path}: {e}") from e

        report((index + 1) / total_folders, f"Scanned {hex_entry.name}")

    report(1.0, f"Found {len(units)} attachments")
    logger.info("Scanned %s: %d units in %d folders", root_path, len(units), total_folders)
    return units


class Scanner(threading.Thread):
    """
    Runs scan_store in a separate thread and hands the result to callbacks.
    There is no cancellation: a started scan runs to completion or failure.
    """

    def __init__(self,
                 root_path: str,
                 on_progress: Optional[ProgressCallback],
                 on_complete: Callable[[List[AttachmentUnit]], None],
                 on_error: Callable[[ScanError], None],
                 hidden_prefix: str = "."):

        super().__init__(name="attachment-scanner")
        self.daemon = True

        self.root_path = root_path
        self.hidden_prefix = hidden_prefix

        self.on_progress = on_progress
        self.on_complete = on_complete
        self.on_error = on_error

    def run(self):
        """The main entry point for the thread."""
        try:
            units = scan_store(self.root_path, self.on_progress, self.hidden_prefix)
        except ScanError as e:
            logger.error("Scan failed: %s", e)
            self.on_error(e)
            return
        except Exception as e:
            logger.exception("Unexpected error while scanning %s", self.root_path)
            self.on_error(ScanError(f"An unexpected error occurred: {e}"))
            return
        self.on_complete(units)
