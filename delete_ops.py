# --- delete_ops.py ---

import logging
import os
from typing import Callable, Iterable, Optional

from send2trash import send2trash

from models import AttachmentUnit, OperationResult

logger = logging.getLogger(__name__)

# Moves one path to a recoverable trash, raising on failure
TrashFunction = Callable[[str], None]


def delete_units(
    units: Iterable[AttachmentUnit],
    rescan: Optional[Callable[[], object]] = None,
    trash: Optional[TrashFunction] = None,
) -> OperationResult:
    """
    Moves each unit folder, as a whole, to the trash.

    Every unit succeeds or fails on its own: a folder that has vanished
    since the scan, or one the trash refuses, is counted as a failure and
    the batch carries on.

    Args:
        units: The units to delete.
        rescan: Called once after the batch so the caller's unit list can
            be rebuilt from disk. Any previously scanned units are stale
            from this point on.
        trash: The trash primitive; send2trash when None.

    Returns:
        An OperationResult; unpack it as (succeeded, failed).
    """
    if trash is None:
        trash = send2trash
    result = OperationResult()

    try:
        for unit in units:
            try:
                if not os.path.isdir(unit.path):
                    raise FileNotFoundError(f"Unit folder no longer exists: {unit.path}")
                trash(unit.path)
            except Exception as e:
                result.add_failure(unit, e, action="delete")
                continue

            result.add_success(unit)
            logger.debug("Moved %s to trash", unit.path)

        logger.info("Delete finished: %d moved to trash, %d failed", result.succeeded, result.failed)
    finally:
        if rescan is not None:
            rescan()

    return result
