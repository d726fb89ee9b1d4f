"""
SLA External Service Integrations
==================================

External services for SLA monitoring:
- YAML config file watcher (hot reload of SLA defaults and pause policy)
- APScheduler for periodic re-evaluation of open work orders
"""

import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import yaml
from apscheduler.events import EVENT_JOB_ERROR
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from pydantic import ValidationError
from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler

from workorder_sla.core import ConfigurationException
from workorder_sla.shared.infrastructure.logging import get_logger
from workorder_sla.sla.application import ISLAConfigProvider
from workorder_sla.sla.domain import SLAConfig

logger = get_logger(__name__)


class ConfigFileHandler(FileSystemEventHandler):
    """
    Reloads the SLA config when its file changes.

    Editors often save by writing a temp file and renaming it over the
    original, so created and moved events are handled as well.
    """

    def __init__(self, config_manager: "SLAConfigManager", config_path: Path):
        super().__init__()
        self._manager = config_manager
        self._target = config_path.resolve()

    def _touches_config(self, *paths) -> bool:
        return any(p and Path(p).resolve() == self._target for p in paths)

    def _handle(self, event, *paths) -> None:
        if event.is_directory or not self._touches_config(*paths):
            return
        logger.info("SLA config file changed", extra={"event": event.event_type, "path": str(self._target)})
        self._manager.reload()

    def on_modified(self, event):
        self._handle(event, event.src_path)

    def on_created(self, event):
        self._handle(event, event.src_path)

    def on_moved(self, event):
        self._handle(event, getattr(event, "dest_path", None))


class SLAConfigManager(ISLAConfigProvider):
    """
    Thread-safe SLA configuration manager with hot-reload support.

    Values from the YAML file override the base configuration built from
    application settings. Uses watchdog to reload on file changes.
    """

    def __init__(self, base: Optional[SLAConfig] = None):
        self._base = base or SLAConfig()
        self._config: Optional[SLAConfig] = None
        self._lock = threading.Lock()
        self._path: Optional[Path] = None
        self._observer = None

    def load(self, path: Path) -> SLAConfig:
        """
        Initial configuration load.

        Raises:
            ConfigurationException: if the file exists but is invalid
        """
        self._path = Path(path)
        try:
            self._config = self._load_from_file(self._path)
        except (yaml.YAMLError, ValidationError, TypeError, ValueError) as e:
            raise ConfigurationException(
                f"Invalid SLA configuration in {self._path}",
                {"error": str(e)}
            ) from e
        return self._config

    def _load_from_file(self, path: Path) -> SLAConfig:
        """Load YAML config and merge it over the base configuration."""
        if not path.exists():
            logger.warning(f"SLA config file not found: {path}, using defaults")
            return self._base

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        merged = self._base.model_dump()
        merged.update(data)
        return SLAConfig(**merged)

    def reload(self) -> bool:
        """Reload configuration from file, keeping the previous one on error."""
        if self._path is None:
            return False

        try:
            new_config = self._load_from_file(self._path)
        except (yaml.YAMLError, ValidationError, TypeError, ValueError, OSError) as e:
            logger.error(f"Failed to reload SLA config: {e}")
            return False

        with self._lock:
            self._config = new_config
        logger.info("SLA configuration reloaded successfully")
        return True

    def start_watching(self) -> None:
        """
        Start watching configuration file for changes.

        Skips watching if the file doesn't exist or inotify is unavailable.
        """
        if self._path is None:
            raise RuntimeError("Config not loaded. Call load() first.")

        if not self._path.exists():
            logger.info(
                f"Config file doesn't exist, skipping file watch: {self._path}. "
                "Using default SLA configuration."
            )
            return

        try:
            self._observer = Observer()
            handler = ConfigFileHandler(self, self._path)
            self._observer.schedule(
                handler,
                str(self._path.resolve().parent),
                recursive=False
            )
            self._observer.start()
            logger.info(f"Started watching config file: {self._path}")
        except OSError as e:
            logger.warning(
                f"File watching not available, using static config: {e}"
            )
            self._observer = None

    def stop_watching(self) -> None:
        """Stop watching configuration file (safe to call even if not watching)."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

    @property
    def config(self) -> SLAConfig:
        """Get current configuration."""
        with self._lock:
            return self._config if self._config is not None else self._base

    def get_config(self) -> SLAConfig:
        """Get current SLA configuration."""
        return self.config


class SLAScheduler:
    """
    Periodic SLA re-evaluation on APScheduler.

    The first run happens right after start so alerts are available before
    the first interval elapses. Only one evaluation runs at a time.
    """

    JOB_ID = "sla_evaluation"

    def __init__(self, interval_seconds: int = 60):
        self.interval_seconds = interval_seconds
        self._scheduler: Optional[AsyncIOScheduler] = None

    @staticmethod
    def _on_job_error(event) -> None:
        logger.error(
            "SLA evaluation failed",
            extra={"job_id": event.job_id, "error": str(event.exception)}
        )

    async def start(self, job_func) -> None:
        """Schedule ``job_func`` every ``interval_seconds``; 0 disables it."""
        if self.is_running:
            logger.warning("SLA scheduler already running")
            return

        if self.interval_seconds <= 0:
            logger.info("SLA scheduler disabled", extra={"interval_seconds": self.interval_seconds})
            return

        scheduler = AsyncIOScheduler(timezone="UTC")
        scheduler.add_listener(self._on_job_error, EVENT_JOB_ERROR)
        scheduler.add_job(
            job_func,
            IntervalTrigger(seconds=self.interval_seconds),
            id=self.JOB_ID,
            name="Work-order SLA evaluation",
            next_run_time=datetime.now(timezone.utc),
            coalesce=True,
            max_instances=1,
            misfire_grace_time=self.interval_seconds,
        )
        scheduler.start()
        self._scheduler = scheduler

        logger.info("SLA scheduler started", extra={"interval_seconds": self.interval_seconds})

    async def stop(self) -> None:
        """Stop the scheduler without waiting for a running evaluation."""
        if not self.is_running:
            return

        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("SLA scheduler stopped")

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._scheduler is not None and self._scheduler.running
