# --- copy_ops.py ---

import logging
import os
import shutil
from typing import Iterable

from models import AttachmentUnit, OperationResult

logger = logging.getLogger(__name__)


def unique_destination(destination_dir: str, name: str) -> str:
    """
    Returns destination_dir/name, or the first of name_1, name_2, ...
    that does not exist yet. Existing entries are never reused.
    """
    candidate = os.path.join(destination_dir, name)
    counter = 1
    while os.path.lexists(candidate):
        candidate = os.path.join(destination_dir, f"{name}_{counter}")
        counter += 1
    return candidate


def copy_units(units: Iterable[AttachmentUnit], destination_dir: str) -> OperationResult:
    """
    Copies each unit folder, recursively, into destination_dir as a
    subfolder named after the unit folder. Name collisions get a numeric
    suffix instead of overwriting.

    Sources are left untouched. A unit whose folder has gone, or whose copy
    fails part way, counts as a failure; its partial copy is removed.
    """
    result = OperationResult()

    for unit in units:
        try:
            if not os.path.isdir(destination_dir):
                raise NotADirectoryError(f"Destination is not a directory: {destination_dir}")
            if not os.path.isdir(unit.path):
                raise FileNotFoundError(f"Unit folder no longer exists: {unit.path}")

            name = os.path.basename(os.path.normpath(unit.path))
            target = unique_destination(destination_dir, name)
            _copy_tree(unit.path, target)
        except Exception as e:
            result.add_failure(unit, e, action="copy")
            continue

        result.add_success(unit)
        logger.debug("Copied %s to %s", unit.path, target)

    logger.info("Copy to %s finished: %d copied, %d failed",
                destination_dir, result.succeeded, result.failed)
    return result


def _copy_tree(source: str, target: str):
    """shutil.copytree that does not leave a half-written target behind."""
    try:
        shutil.copytree(source, target)
    except FileExistsError:
        # Someone else created the target after it was probed; not ours to remove
        raise
    except Exception:
        if os.path.isdir(target):
            shutil.rmtree(target, ignore_errors=True)
        raise
