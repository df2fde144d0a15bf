from __future__ import annotations

import atexit
import logging
import threading
from typing import Callable, Optional

import schedule

from ..core.constants import DEFAULT_AUTOBACKUP_INTERVAL_MIN, DEFAULT_AUTOSAVE_INTERVAL_SEC
from .service import BackupService

logger = logging.getLogger(__name__)


class BackupScheduler:
    """Runs autosave and auto-backup on a background daemon thread.

    The host application owns the lifecycle: ``start()`` once, ``stop()`` on
    shutdown. Jobs never overlap; a cycle that fires while another one is
    still running is skipped.
    """

    def __init__(
        self,
        backup_service: BackupService,
        autosave: Optional[Callable[[], None]] = None,
        *,
        autosave_interval_sec: int = DEFAULT_AUTOSAVE_INTERVAL_SEC,
        autobackup_interval_min: int = DEFAULT_AUTOBACKUP_INTERVAL_MIN,
        poll_interval_sec: float = 1.0,
    ):
        self._backup_service = backup_service
        self._autosave = autosave
        self._autosave_interval_sec = int(autosave_interval_sec)
        self._autobackup_interval_min = int(autobackup_interval_min)
        self._poll_interval_sec = poll_interval_sec

        self._scheduler = schedule.Scheduler()
        self._busy = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._exit_hook_registered = False

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            logger.warning("Backup scheduler is already running")
            return

        logger.info(
            "Starting backup scheduler (autosave %ss, auto-backup %smin)",
            self._autosave_interval_sec,
            self._autobackup_interval_min,
        )
        self._scheduler.clear()
        if self._autosave is not None:
            self._scheduler.every(self._autosave_interval_sec).seconds.do(self.run_autosave)
        self._scheduler.every(self._autobackup_interval_min).minutes.do(self.trigger_backup)

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="backup-scheduler", daemon=True)
        self._thread.start()

    def stop(self, *, final_backup: bool = True, timeout: float = 5.0) -> None:
        """Stop the thread and, by default, take one last best-effort backup."""

        if self._thread is None:
            return

        logger.info("Stopping backup scheduler")
        self._stop_event.set()
        self._scheduler.clear()
        if self._thread.is_alive():
            self._thread.join(timeout=timeout)
        self._thread = None

        if final_backup:
            self.trigger_backup()
        self.run_autosave()

    def register_exit_hook(self) -> None:
        """Stop the scheduler (with a final backup) when the interpreter exits."""

        if not self._exit_hook_registered:
            atexit.register(self.stop)
            self._exit_hook_registered = True

    def _run(self) -> None:
        while not self._stop_event.wait(self._poll_interval_sec):
            try:
                self._scheduler.run_pending()
            except Exception:
                logger.exception("Backup scheduler error")

    def _exclusive(self, name: str, job: Callable[[], object]) -> bool:
        if not self._busy.acquire(blocking=False):
            logger.warning("Skipping %s: previous cycle still in flight", name)
            return False
        try:
            job()
        finally:
            self._busy.release()
        return True

    def trigger_backup(self) -> bool:
        """Run one auto-backup now. Returns False if the cycle was skipped."""

        return self._exclusive("auto-backup", self._backup_service.create_auto_backup)

    def run_autosave(self) -> bool:
        if self._autosave is None:
            return False
        try:
            return self._exclusive("autosave", self._autosave)
        except Exception:
            logger.exception("Autosave failed")
            return False
