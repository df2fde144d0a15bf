from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass
from types import ModuleType
from typing import Optional

from dotenv import load_dotenv

from .backup.scheduler import BackupScheduler
from .backup.sink import DirectoryBackupSink
from .config import get_settings_module
from .container import Container, build_adapter, build_container
from .database.bootstrap import apply_schema, list_tables

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@dataclass
class Application:
    """Host-side lifecycle: owns the container and the backup scheduler."""

    settings_module: str
    container: Container
    scheduler: Optional[BackupScheduler] = None

    def start(self) -> None:
        self.container.settings_service.get_settings()
        if self.scheduler is not None:
            self.scheduler.start()
            self.scheduler.register_exit_hook()

    def shutdown(self) -> None:
        if self.scheduler is not None:
            self.scheduler.stop(final_backup=True)
        self.container.adapter.flush()


def _build_scheduler(settings: ModuleType, container: Container) -> Optional[BackupScheduler]:
    if not bool(getattr(settings, "AUTO_BACKUP", False)):
        return None

    prefs = container.settings_service.get_settings()
    return BackupScheduler(
        container.backup_service,
        container.adapter.flush,
        autosave_interval_sec=prefs.autosave_interval_sec,
        autobackup_interval_min=prefs.autobackup_interval_min,
    )


def create_app() -> Application:
    load_dotenv(override=False)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    backend = str(getattr(settings, "STORAGE_BACKEND", "local")).lower()
    db_config = getattr(settings, "DB_CONFIG", {})
    logger.info("settings=%s backend=%s", settings_module, backend)

    if backend == "mysql" and bool(getattr(settings, "AUTO_INIT_DB", False)):
        apply_schema(db_config)
        logger.info("schema ready (tables=%d)", len(list_tables(db_config)))

    adapter = build_adapter(
        backend=backend,
        data_file=getattr(settings, "DATA_FILE", None),
        db_config=db_config,
    )
    container = build_container(
        adapter=adapter,
        sink=DirectoryBackupSink(getattr(settings, "BACKUP_DIR", "backups")),
    )
    return Application(
        settings_module=settings_module,
        container=container,
        scheduler=_build_scheduler(settings, container),
    )
