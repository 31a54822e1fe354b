"""addonlib - keep optional host extensions in line with a published catalog

Components:
- versioning: dotted numeric version ordering
- resolver: best compatible extension version for a host version
- store: desired-state file (addons.json)
- fetcher: catalog download with backup source
- artifacts: on-disk artifact files
- engine: reconciliation passes
- manager: host-facing facade
"""

__version__ = "1.0.1"

from addonlib.exceptions import (
    AddonError,
    ArtifactIOError,
    DownloadError,
    FetchFailure,
    InstallError,
    InstallErrorCode,
    MalformedCatalog,
    MalformedVersion,
    StateStoreError,
)
from addonlib.models import (
    ActionKind,
    AddonAction,
    AddonSettings,
    AddonState,
    Catalog,
    DesiredEntry,
    DesiredState,
    ExtensionInfo,
    ReconcileResult,
)
from addonlib.versioning import Ordering, compare, is_compatible, parse_version
from addonlib.resolver import best_compatible_version
from addonlib.log import AddonLogger, LogLevel
from addonlib.config import AddonLibConfig, get_config
from addonlib.store import DesiredStateStore
from addonlib.downloader import URLDownloader
from addonlib.fetcher import CatalogFetcher
from addonlib.artifacts import ArtifactStore
from addonlib.engine import ReconciliationEngine, derive_state
from addonlib.manager import AddonManager

__all__ = [
    "__version__",
    # Exceptions
    "AddonError",
    "ArtifactIOError",
    "DownloadError",
    "FetchFailure",
    "InstallError",
    "InstallErrorCode",
    "MalformedCatalog",
    "MalformedVersion",
    "StateStoreError",
    # Models
    "ActionKind",
    "AddonAction",
    "AddonSettings",
    "AddonState",
    "Catalog",
    "DesiredEntry",
    "DesiredState",
    "ExtensionInfo",
    "ReconcileResult",
    # Versions
    "Ordering",
    "compare",
    "is_compatible",
    "parse_version",
    "best_compatible_version",
    # Components
    "AddonLogger",
    "LogLevel",
    "AddonLibConfig",
    "get_config",
    "DesiredStateStore",
    "URLDownloader",
    "CatalogFetcher",
    "ArtifactStore",
    "ReconciliationEngine",
    "derive_state",
    "AddonManager",
]
