"""Data models for the addon reconciliation system"""

import json
import logging
import re
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from addonlib.exceptions import MalformedCatalog
from addonlib.versioning import is_valid_version

logger = logging.getLogger(__name__)

_ADDON_NAME_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9._-]*$")


def is_valid_addon_name(name: str) -> bool:
    """Addon names end up in file names and URLs; no separators or leading dot"""
    return isinstance(name, str) and bool(_ADDON_NAME_RE.match(name)) and ".." not in name


class AddonState(str, Enum):
    """Per-extension state, derived on every pass"""
    UNKNOWN_TO_CONFIG = "UNKNOWN_TO_CONFIG"
    DISABLED = "DISABLED"
    ENABLED_NO_VERSION = "ENABLED_NO_VERSION"
    ENABLED_COMPATIBLE = "ENABLED_COMPATIBLE"
    ENABLED_INCOMPATIBLE = "ENABLED_INCOMPATIBLE"
    ORPHANED = "ORPHANED"


class ActionKind(str, Enum):
    """Things a reconciliation pass can do to one extension"""
    DISCOVERED = "discovered"
    VERSION_SELECTED = "version_selected"
    VERSION_SWITCHED = "version_switched"
    UPGRADED = "upgraded"
    DESCRIPTION_UPDATED = "description_updated"
    DISABLED_INCOMPATIBLE = "disabled_incompatible"
    DISABLED_ORPHANED = "disabled_orphaned"
    INSTALLED = "installed"
    INSTALL_FAILED = "install_failed"
    REMOVED = "removed"
    REMOVE_FAILED = "remove_failed"
    SKIPPED = "skipped"


# ============================================
# Catalog
# ============================================

class ExtensionInfo(BaseModel):
    """One extension as published in the catalog"""
    description: Optional[str] = None
    versions: Dict[str, str] = Field(
        default_factory=dict,
        description="Extension version -> minimum host version"
    )


class Catalog(BaseModel):
    """Remotely published list of extensions and their host requirements"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    base_url: str = Field(alias="baseURL")
    extensions: Dict[str, ExtensionInfo] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("extensions", "addons")
    )
    # Decode diagnostics, never serialized
    malformed: List[str] = Field(default_factory=list, exclude=True)
    skipped_versions: Dict[str, List[str]] = Field(default_factory=dict, exclude=True)

    @classmethod
    def from_document(cls, data: Any) -> "Catalog":
        """
        Decode a parsed catalog document

        The top-level structure must be valid. A single extension record
        with the wrong shape is recorded in `malformed` and left out; a
        single version entry with an unparseable version on either side is
        recorded in `skipped_versions` and left out.

        Raises:
            MalformedCatalog: If the top-level structure is wrong
        """
        if not isinstance(data, dict):
            raise MalformedCatalog("Catalog document must be a JSON object")

        base_url = data.get("baseURL")
        if not isinstance(base_url, str) or not base_url.strip():
            raise MalformedCatalog("Catalog is missing a 'baseURL' string")

        raw_extensions = data.get("extensions", data.get("addons"))
        if not isinstance(raw_extensions, dict):
            raise MalformedCatalog("Catalog is missing an 'extensions' object")

        extensions: Dict[str, ExtensionInfo] = {}
        malformed: List[str] = []
        skipped: Dict[str, List[str]] = {}

        for name, raw_info in raw_extensions.items():
            if not is_valid_addon_name(name):
                malformed.append(name)
                continue
            try:
                info = ExtensionInfo.model_validate(raw_info)
            except ValidationError:
                malformed.append(name)
                continue

            valid_versions = {}
            for ext_version, min_host in info.versions.items():
                if is_valid_version(ext_version) and is_valid_version(min_host):
                    valid_versions[ext_version] = min_host
                else:
                    skipped.setdefault(name, []).append(ext_version)

            extensions[name] = ExtensionInfo(
                description=info.description,
                versions=valid_versions
            )

        return cls(
            base_url=base_url,
            extensions=extensions,
            malformed=malformed,
            skipped_versions=skipped
        )

    @classmethod
    def from_json(cls, payload: Union[bytes, str]) -> "Catalog":
        try:
            data = json.loads(payload)
        except (ValueError, UnicodeDecodeError) as e:
            raise MalformedCatalog(f"Catalog is not valid JSON: {e}")
        return cls.from_document(data)

    def download_url(self, name: str, version: str, file_name: str) -> str:
        """<baseURL>/<name>/releases/download/<version>/<file_name>"""
        return f"{self.base_url.rstrip('/')}/{name}/releases/download/{version}/{file_name}"


# ============================================
# Desired state
# ============================================

class DesiredEntry(BaseModel):
    """Locally persisted intent for one extension"""
    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = False
    installed_version: Optional[str] = Field(default=None, alias="installedVersion")
    description: Optional[str] = None


class AddonSettings(BaseModel):
    """Process-wide settings stored alongside the entries"""
    model_config = ConfigDict(populate_by_name=True)

    auto_upgrade: bool = Field(default=False, alias="autoUpgrade")


class DesiredState(BaseModel):
    """Contents of the desired-state file"""
    addons: Dict[str, DesiredEntry] = Field(default_factory=dict)
    settings: AddonSettings = Field(default_factory=AddonSettings)

    @field_validator("addons", "settings", mode="before")
    @classmethod
    def default_when_null(cls, v, info):
        """A hand-edited file may carry null sections"""
        if v is None:
            return {}
        return v

    @field_validator("addons")
    @classmethod
    def drop_unsafe_names(cls, v: Dict[str, DesiredEntry]) -> Dict[str, DesiredEntry]:
        """Names that cannot be artifact file names are never acted on"""
        for name in [name for name in v if not is_valid_addon_name(name)]:
            logger.warning(f"Ignoring desired-state entry with invalid addon name: {name!r}")
            del v[name]
        return v

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# ============================================
# Pass results
# ============================================

class AddonAction(BaseModel):
    """One effect of a reconciliation pass"""
    kind: ActionKind
    name: str
    from_version: Optional[str] = None
    to_version: Optional[str] = None
    message: Optional[str] = None


class ReconcileResult(BaseModel):
    """Outcome of fetch_catalog_only() or reconcile()"""
    state: DesiredState
    catalog: Optional[Catalog] = None
    actions: List[AddonAction] = Field(default_factory=list)
    aborted: bool = False
    error: Optional[str] = None

    def actions_of(self, kind: ActionKind) -> List[AddonAction]:
        return [action for action in self.actions if action.kind == kind]

    @property
    def changed(self) -> bool:
        return any(action.kind != ActionKind.SKIPPED for action in self.actions)
