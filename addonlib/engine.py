"""
Addon reconciliation engine

One pass fetches the catalog, merges newly published extensions into the
desired state, re-resolves the version of every enabled extension against
the host version, and then makes the artifact directory match:

1. Fetch & merge: new catalog names become disabled entries.
2. Resolve: each enabled extension gets the best compatible version, is
   forced off a version that is gone or no longer compatible, is upgraded
   when asked to, or is disabled when nothing is compatible.
3. Orphans: enabled extensions missing from the catalog are disabled.
4. Artifacts: files of disabled extensions and of wrong versions are
   deleted, missing files of enabled extensions are downloaded.

Per-extension state is derived on every pass from the entry, the catalog
and the disk; nothing but the desired-state file is persisted.

The engine holds no locks. Two passes must never run at the same time
against the same store and artifact directory; serializing triggers is
the caller's job (see AddonManager).
"""

import logging
from typing import Dict, List, Optional, Tuple

from addonlib.artifacts import ArtifactStore
from addonlib.exceptions import (
    AddonError,
    ArtifactIOError,
    FetchFailure,
    InstallError,
    StateStoreError,
)
from addonlib.fetcher import CatalogFetcher
from addonlib.log import AddonLogger
from addonlib.models import (
    ActionKind,
    AddonAction,
    AddonState,
    Catalog,
    DesiredEntry,
    DesiredState,
    ExtensionInfo,
    ReconcileResult,
)
from addonlib.resolver import best_compatible_version, is_version_available
from addonlib.versioning import Ordering, compare, parse_version

logger = logging.getLogger(__name__)


def derive_state(
    name: str,
    entry: Optional[DesiredEntry],
    catalog: Catalog,
    host_version: str
) -> AddonState:
    """Where one extension stands relative to the catalog and the host"""
    if entry is None:
        return AddonState.UNKNOWN_TO_CONFIG
    if not entry.enabled:
        return AddonState.DISABLED

    info = catalog.extensions.get(name)
    if info is None:
        if name in catalog.malformed:
            return AddonState.ENABLED_INCOMPATIBLE
        return AddonState.ORPHANED
    if entry.installed_version is None:
        return AddonState.ENABLED_NO_VERSION
    if is_version_available(info.versions, entry.installed_version, host_version):
        return AddonState.ENABLED_COMPATIBLE
    return AddonState.ENABLED_INCOMPATIBLE


class ReconciliationEngine:
    """Computes and applies the installs, switches, disables and deletions of a pass"""

    def __init__(
        self,
        host_version: str,
        fetcher: CatalogFetcher,
        store,
        artifacts: ArtifactStore,
        addon_logger: Optional[AddonLogger] = None
    ):
        """
        Initialize engine

        Args:
            host_version: Version of the host application
            fetcher: Catalog source
            store: Desired-state store (load()/save(state))
            artifacts: Artifact directory manager
            addon_logger: Sink for user-facing events

        Raises:
            MalformedVersion: If host_version is not a dotted numeric version
        """
        parse_version(host_version)
        self.host_version = host_version
        self.fetcher = fetcher
        self.store = store
        self.artifacts = artifacts
        self.log = addon_logger or AddonLogger()

    # ============================================
    # Step 1: fetch & merge
    # ============================================

    def fetch_catalog_only(
        self,
        state: Optional[DesiredState] = None,
        previous_catalog: Optional[Catalog] = None
    ) -> ReconcileResult:
        """
        Refresh the catalog and add newly published names to the desired state

        Installed versions are never touched here.

        Args:
            state: Desired state to start from (loaded from the store if omitted)
            previous_catalog: Last successfully fetched catalog, returned
                unchanged if every source fails

        Returns:
            ReconcileResult; `aborted` is set when the catalog could not be fetched
        """
        state = (state or self.store.load()).model_copy(deep=True)

        try:
            catalog = self.fetcher.fetch()
        except FetchFailure as e:
            self.log.warning(f"Failed to load addon catalog: {e}")
            return ReconcileResult(
                state=state,
                catalog=previous_catalog,
                aborted=True,
                error=str(e)
            )

        self._report_decode_problems(catalog)
        actions = self._merge_new_addons(catalog, state)

        if actions:
            try:
                self.store.save(state)
            except StateStoreError as e:
                self.log.error(str(e))
                return ReconcileResult(
                    state=state,
                    catalog=catalog,
                    actions=actions,
                    aborted=True,
                    error=str(e)
                )

        return ReconcileResult(state=state, catalog=catalog, actions=actions)

    def _report_decode_problems(self, catalog: Catalog) -> None:
        for name in catalog.malformed:
            self.log.warning(f"Catalog entry for {name} is malformed; leaving it untouched this pass")
        for name, versions in catalog.skipped_versions.items():
            self.log.warning(f"Ignoring malformed version(s) of {name}: {', '.join(versions)}")

    def _merge_new_addons(self, catalog: Catalog, state: DesiredState) -> List[AddonAction]:
        actions = []
        for name, info in catalog.extensions.items():
            if name in state.addons:
                continue
            state.addons[name] = DesiredEntry(enabled=False, description=info.description)
            logger.info(f"Discovered new addon: {name}")
            actions.append(AddonAction(kind=ActionKind.DISCOVERED, name=name))
        return actions

    # ============================================
    # Full pass
    # ============================================

    def reconcile(
        self,
        upgrade: bool = False,
        state: Optional[DesiredState] = None,
        previous_catalog: Optional[Catalog] = None
    ) -> ReconcileResult:
        """
        Run one full reconciliation pass

        Args:
            upgrade: Move enabled extensions to a newer compatible version
            state: Desired state to start from (loaded from the store if omitted)
            previous_catalog: Last successfully fetched catalog

        Returns:
            ReconcileResult with the new state, the catalog used and every action taken
        """
        fetched = self.fetch_catalog_only(state, previous_catalog)
        if fetched.aborted:
            self.log.warning("Cannot check addons - catalog not loaded")
            return fetched

        catalog = fetched.catalog
        state = fetched.state
        actions = list(fetched.actions)

        state_changed = False
        for name in sorted(state.addons):
            entry = state.addons[name]
            if not entry.enabled:
                continue

            if name in catalog.malformed:
                actions.append(AddonAction(
                    kind=ActionKind.SKIPPED,
                    name=name,
                    message="malformed catalog entry"
                ))
                continue

            info = catalog.extensions.get(name)
            if info is None:
                continue

            try:
                new_entry, entry_actions = self._resolve_entry(name, entry, info, upgrade)
            except AddonError as e:
                self.log.error(f"Failed to resolve addon {name}: {e}")
                actions.append(AddonAction(kind=ActionKind.SKIPPED, name=name, message=str(e)))
                continue

            if new_entry != entry:
                state.addons[name] = new_entry
                state_changed = True
            actions.extend(entry_actions)

        orphan_actions = self._disable_orphans(catalog, state)
        if orphan_actions:
            state_changed = True
            actions.extend(orphan_actions)

        if state_changed:
            try:
                self.store.save(state)
            except StateStoreError as e:
                self.log.error(str(e))
                return ReconcileResult(
                    state=state,
                    catalog=catalog,
                    actions=actions,
                    aborted=True,
                    error=str(e)
                )

        artifact_actions, scan_error = self._sync_artifacts(state, catalog)
        actions.extend(artifact_actions)

        return ReconcileResult(
            state=state,
            catalog=catalog,
            actions=actions,
            aborted=scan_error is not None,
            error=scan_error
        )

    # ============================================
    # Step 2: per-entry resolution
    # ============================================

    def _resolve_entry(
        self,
        name: str,
        entry: DesiredEntry,
        info: ExtensionInfo,
        upgrade: bool
    ) -> Tuple[DesiredEntry, List[AddonAction]]:
        """Compute the new entry for one enabled extension present in the catalog"""
        installed = entry.installed_version
        best = best_compatible_version(info.versions, self.host_version)

        if best is None:
            self.log.warning(
                f"Disabled incompatible addon: {name} "
                f"(no version supports host version {self.host_version})"
            )
            return entry.model_copy(update={"enabled": False}), [AddonAction(
                kind=ActionKind.DISABLED_INCOMPATIBLE,
                name=name,
                from_version=installed
            )]

        updates: Dict[str, object] = {}
        actions: List[AddonAction] = []

        if installed is not None:
            if not is_version_available(info.versions, installed, self.host_version):
                self.log.warning(
                    f"Current version of {name} ({installed}) is no longer compatible. "
                    f"Updating to {best}"
                )
                updates["installed_version"] = best
                actions.append(AddonAction(
                    kind=ActionKind.VERSION_SWITCHED,
                    name=name,
                    from_version=installed,
                    to_version=best
                ))
            elif upgrade and best != installed and compare(best, installed) == Ordering.GREATER:
                self.log.info(f"Upgrading {name} from {installed} to {best}")
                updates["installed_version"] = best
                actions.append(AddonAction(
                    kind=ActionKind.UPGRADED,
                    name=name,
                    from_version=installed,
                    to_version=best
                ))
        else:
            logger.info(f"Selected {name} v{best}")
            updates["installed_version"] = best
            actions.append(AddonAction(kind=ActionKind.VERSION_SELECTED, name=name, to_version=best))

        if info.description is not None and info.description != entry.description:
            updates["description"] = info.description
            actions.append(AddonAction(kind=ActionKind.DESCRIPTION_UPDATED, name=name))

        return entry.model_copy(update=updates), actions

    # ============================================
    # Step 3: orphans
    # ============================================

    def _disable_orphans(self, catalog: Catalog, state: DesiredState) -> List[AddonAction]:
        actions = []
        for name in sorted(state.addons):
            entry = state.addons[name]
            if not entry.enabled:
                continue
            if name in catalog.extensions or name in catalog.malformed:
                continue

            self.log.warning(f"Addon {name} no longer exists in catalog. Disabling.")
            state.addons[name] = entry.model_copy(update={"enabled": False})
            actions.append(AddonAction(
                kind=ActionKind.DISABLED_ORPHANED,
                name=name,
                from_version=entry.installed_version
            ))
        return actions

    # ============================================
    # Step 4: artifacts
    # ============================================

    def _sync_artifacts(
        self,
        state: DesiredState,
        catalog: Catalog
    ) -> Tuple[List[AddonAction], Optional[str]]:
        """
        Delete stale artifact files and download missing ones

        Returns:
            (actions, error); error is set when the directory could not be
            scanned, in which case no installs are attempted
        """
        actions: List[AddonAction] = []

        for name in sorted(state.addons):
            entry = state.addons[name]
            if entry.enabled or not entry.installed_version:
                continue
            self._remove_file(
                actions,
                name,
                entry.installed_version,
                self.artifacts.expected_file_name(name, entry.installed_version),
                "Removed addon artifact"
            )

        try:
            owned = self.artifacts.find_owned(state.addons.keys())
        except ArtifactIOError as e:
            self.log.warning(f"Error while cleaning up addon artifacts: {e}")
            return actions, str(e)

        for artifact in owned:
            entry = state.addons[artifact.name]
            if (
                not artifact.partial
                and entry.enabled
                and entry.installed_version is not None
                and artifact.file_name == self.artifacts.expected_file_name(artifact.name, entry.installed_version)
            ):
                continue

            reason = "Removed stale partial download" if artifact.partial else "Removed incorrect version artifact"
            self._remove_file(actions, artifact.name, artifact.version, artifact.file_name, reason)

        for name in sorted(state.addons):
            entry = state.addons[name]
            if not entry.enabled or not entry.installed_version:
                continue
            if self.artifacts.exists(name, entry.installed_version):
                continue
            actions.append(self._install(name, entry.installed_version, catalog))

        return actions, None

    def _remove_file(
        self,
        actions: List[AddonAction],
        name: str,
        version: str,
        file_name: str,
        reason: str
    ) -> None:
        try:
            removed = self.artifacts.delete_file(file_name)
        except ArtifactIOError as e:
            self.log.warning(f"Failed to remove addon artifact {file_name}: {e}")
            actions.append(AddonAction(
                kind=ActionKind.REMOVE_FAILED,
                name=name,
                from_version=version,
                message=str(e)
            ))
            return

        if removed:
            self.log.info(f"{reason}: {file_name}")
            actions.append(AddonAction(
                kind=ActionKind.REMOVED,
                name=name,
                from_version=version,
                message=file_name
            ))

    def _install(self, name: str, version: str, catalog: Catalog) -> AddonAction:
        file_name = self.artifacts.expected_file_name(name, version)
        url = catalog.download_url(name, version, file_name)

        self.log.info(f"Addon artifact missing: {name}. Downloading...")
        try:
            self.artifacts.install(name, version, url)
        except InstallError as e:
            self.log.warning(f"Failed to install {name}: {e}")
            return AddonAction(
                kind=ActionKind.INSTALL_FAILED,
                name=name,
                to_version=version,
                message=f"{e.error_code.value}: {e}"
            )

        self.log.success(f"Successfully installed {name} v{version}")
        return AddonAction(kind=ActionKind.INSTALLED, name=name, to_version=version)

    # ============================================
    # Reporting
    # ============================================

    def status(self, state: DesiredState, catalog: Catalog) -> Dict[str, AddonState]:
        """Derived state of every known extension (config and catalog)"""
        names = sorted(set(state.addons) | set(catalog.extensions))
        return {
            name: derive_state(name, state.addons.get(name), catalog, self.host_version)
            for name in names
        }
