"""Host-facing facade wiring configuration, storage, catalog and artifacts"""

import logging
import threading
from typing import Dict, Optional

from addonlib.artifacts import ArtifactStore
from addonlib.config import AddonLibConfig, get_config
from addonlib.downloader import URLDownloader
from addonlib.engine import ReconciliationEngine
from addonlib.exceptions import AddonError
from addonlib.fetcher import CatalogFetcher
from addonlib.log import AddonLogger, LogCallback
from addonlib.models import AddonState, Catalog, DesiredState, ReconcileResult, is_valid_addon_name
from addonlib.store import DesiredStateStore

logger = logging.getLogger(__name__)


class AddonManager:
    """
    Entry point for host applications

    Owns the last successfully fetched catalog and guards against
    overlapping passes: a trigger arriving while a pass runs is skipped,
    while enable/disable and settings changes wait for it to finish.
    """

    def __init__(
        self,
        config: Optional[AddonLibConfig] = None,
        log_callback: Optional[LogCallback] = None,
        downloader: Optional[URLDownloader] = None,
        auto_start: bool = False
    ):
        """
        Initialize manager

        Args:
            config: Configuration (global config if omitted)
            log_callback: Receives (LogLevel, message) for every user-facing event
            downloader: HTTP client shared by catalog fetches and installs
            auto_start: Run one pass immediately, honouring the autoUpgrade setting
        """
        self.config = config or get_config()
        self.log = AddonLogger(callback=log_callback)
        self.downloader = downloader or URLDownloader(
            max_retries=self.config.max_retries,
            timeout=self.config.request_timeout
        )
        self.store = DesiredStateStore(self.config.state_file)
        self.artifacts = ArtifactStore(
            self.config.resolved_artifact_dir,
            extension=self.config.artifact_extension,
            downloader=self.downloader
        )
        self.engine = ReconciliationEngine(
            host_version=self.config.host_version,
            fetcher=CatalogFetcher(self.config.catalog_urls, downloader=self.downloader),
            store=self.store,
            artifacts=self.artifacts,
            addon_logger=self.log
        )

        self.state: DesiredState = self.store.load()
        self.catalog: Optional[Catalog] = None
        self._pass_lock = threading.Lock()

        if auto_start:
            self.reconcile()

    @property
    def auto_upgrade(self) -> bool:
        return self.state.settings.auto_upgrade

    def _run_pass(self, operation, *args) -> Optional[ReconcileResult]:
        if not self._pass_lock.acquire(blocking=False):
            self.log.warning("Addon reconciliation already in progress; skipping this trigger")
            return None
        try:
            result = operation(*args, state=self.state, previous_catalog=self.catalog)
            self.state = result.state
            if result.catalog is not None:
                self.catalog = result.catalog
            return result
        finally:
            self._pass_lock.release()

    def reconcile(self, upgrade: Optional[bool] = None) -> Optional[ReconcileResult]:
        """
        Run one full pass

        Args:
            upgrade: Upgrade to newer versions; defaults to the autoUpgrade setting

        Returns:
            ReconcileResult, or None if another pass was already running
        """
        if upgrade is None:
            upgrade = self.auto_upgrade
        return self._run_pass(self.engine.reconcile, upgrade)

    def reload(self, upgrade: Optional[bool] = None) -> Optional[ReconcileResult]:
        """Re-read the desired-state file, then run a full pass"""
        with self._pass_lock:
            self.state = self.store.load()
        return self.reconcile(upgrade)

    def fetch_catalog(self) -> Optional[ReconcileResult]:
        """Refresh the catalog and merge new names without touching versions"""
        return self._run_pass(self.engine.fetch_catalog_only)

    def set_enabled(self, name: str, enabled: bool) -> DesiredState:
        """
        Record an enable/disable request; artifacts follow on the next pass

        Waits for a pass in progress to finish so its save cannot overwrite
        the request.

        Raises:
            AddonError: If the name cannot be used as an artifact file name
        """
        if not is_valid_addon_name(name):
            raise AddonError(f"Invalid addon name: {name!r}")
        with self._pass_lock:
            self.state = self.store.set_enabled(name, enabled)
        self.log.info(f"Addon {name} {'enabled' if enabled else 'disabled'}")
        return self.state

    def set_auto_upgrade(self, auto_upgrade: bool) -> DesiredState:
        with self._pass_lock:
            self.state = self.store.set_auto_upgrade(auto_upgrade)
        return self.state

    def status(self) -> Dict[str, AddonState]:
        """Derived state per extension; needs a catalog from an earlier fetch"""
        if self.catalog is None:
            return {}
        return self.engine.status(self.state, self.catalog)

    def close(self) -> None:
        self.downloader.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
