# --- session.py ---

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Tuple

import copy_ops
import delete_ops
import filters
from models import AttachmentUnit, FileTypeCategory, OperationResult
from scanner import ScanError, ScanInProgressError, Scanner, scan_store

logger = logging.getLogger(__name__)

Listener = Callable[["ScanSession"], None]


@dataclass(frozen=True)
class ScanReport:
    """
    Outcome of one scan request. `ok` tells an empty store (ok, no units)
    apart from a failed scan (not ok, `error` set, `units` unchanged).
    """
    ok: bool
    units: Tuple[AttachmentUnit, ...] = ()
    error: Optional[ScanError] = None


class ScanSession:
    """
    Owns the current unit collection of one attachment store together with
    the running / progress / status signals a UI observes.

    The collection is only ever replaced wholesale, with a new tuple, once a
    scan has completed; a failed scan keeps the previous one. Readers get
    that tuple, so they never see a half-built list. At most one scan runs
    at a time; further requests are refused while it does.
    """

    def __init__(self, root_path: str, hidden_prefix: str = "."):
        self.root_path = root_path
        self.hidden_prefix = hidden_prefix

        self._lock = threading.Lock()
        self._idle = threading.Event()
        self._idle.set()
        self._listeners: List[Listener] = []

        self._units: Tuple[AttachmentUnit, ...] = ()
        self._is_running = False
        self._progress = 0.0
        self._status = "Ready to scan"
        self._last_error: Optional[ScanError] = None

    # --- Observable state ---

    @property
    def units(self) -> Tuple[AttachmentUnit, ...]:
        """The latest completed scan, newest first."""
        with self._lock:
            return self._units

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._is_running

    @property
    def progress(self) -> float:
        with self._lock:
            return self._progress

    @property
    def status(self) -> str:
        with self._lock:
            return self._status

    @property
    def last_error(self) -> Optional[ScanError]:
        with self._lock:
            return self._last_error

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Calls `listener(session)` after every state change, on whichever
        thread made the change. Returns a function that unsubscribes.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self):
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(self)
            except Exception:
                logger.exception("Session listener %r failed", listener)

    # --- Scanning ---

    def _begin(self) -> bool:
        with self._lock:
            if self._is_running:
                return False
            self._is_running = True
            self._progress = 0.0
            self._status = "Checking attachment store..."
            self._idle.clear()
        logger.info("Starting scan of %s", self.root_path)
        self._notify()
        return True

    def _on_progress(self, fraction: float, status: str):
        with self._lock:
            self._progress = max(self._progress, min(fraction, 1.0))
            self._status = status
        self._notify()

    def _complete(self, units: List[AttachmentUnit]) -> ScanReport:
        # sorted() is stable, so units sharing an mtime keep scan order
        ordered = tuple(sorted(units, key=lambda unit: unit.last_modified, reverse=True))
        report = ScanReport(ok=True, units=ordered)
        with self._lock:
            self._units = ordered
            self._last_error = None
            self._progress = 1.0
            self._status = f"Found {len(ordered)} attachments"
            self._is_running = False
            self._idle.set()
        self._notify()
        return report

    def _fail(self, error: ScanError) -> ScanReport:
        with self._lock:
            report = ScanReport(ok=False, units=self._units, error=error)
            self._last_error = error
            self._progress = 1.0
            self._status = f"Error scanning: {error}"
            self._is_running = False
            self._idle.set()
        self._notify()
        return report

    def scan(self) -> ScanReport:
        """Runs a full scan on the calling thread."""
        if not self._begin():
            return ScanReport(ok=False, units=self.units,
                              error=ScanInProgressError("A scan is already running"))
        try:
            units = scan_store(self.root_path, self._on_progress, self.hidden_prefix)
        except ScanError as e:
            logger.error("Scan failed: %s", e)
            return self._fail(e)
        except Exception as e:
            self._fail(ScanError(f"An unexpected error occurred: {e}"))
            raise
        return self._complete(units)

    def start_scan(self) -> Optional[Scanner]:
        """
        Starts a scan on a background thread and returns it, or returns None
        if a scan is already running. Results appear only on completion.
        """
        if not self._begin():
            logger.info("Scan already running; request ignored")
            return None

        thread = Scanner(
            root_path=self.root_path,
            on_progress=self._on_progress,
            on_complete=self._complete,
            on_error=self._fail,
            hidden_prefix=self.hidden_prefix,
        )
        thread.start()
        return thread

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Blocks until no scan is running. Returns False on timeout."""
        return self._idle.wait(timeout)

    # --- Filtering and bulk operations ---

    def filtered(self,
                 max_age_days: Optional[int] = None,
                 min_size_bytes: Optional[int] = None,
                 category: FileTypeCategory = FileTypeCategory.ALL,
                 now: Optional[float] = None) -> List[AttachmentUnit]:
        return filters.filter_units(self.units, max_age_days, min_size_bytes, category, now)

    def delete_units(self, units: Iterable[AttachmentUnit],
                     trash: Optional[delete_ops.TrashFunction] = None) -> OperationResult:
        """
        Moves the units to the trash, then rescans so `units` reflects disk
        again. A background scan still in flight is waited for first.
        """
        selection = list(units)
        self.wait()
        return delete_ops.delete_units(selection, rescan=self._rescan, trash=trash)

    def _rescan(self) -> ScanReport:
        # A scan started elsewhere in the meantime may predate the delete
        while True:
            report = self.scan()
            if not isinstance(report.error, ScanInProgressError):
                return report
            logger.info("Rescan after delete waiting for the running scan")
            self.wait()

    def copy_units(self, units: Iterable[AttachmentUnit], destination_dir: str) -> OperationResult:
        return copy_ops.copy_units(list(units), destination_dir)
