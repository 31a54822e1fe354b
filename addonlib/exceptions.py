"""Exception classes for the addon reconciliation system"""

from enum import Enum
from typing import Dict, Optional


class AddonError(Exception):
    """Base exception for all addon-related errors"""
    pass


class MalformedVersion(AddonError):
    """Raised when a version string is not a dotted sequence of integers"""

    def __init__(self, version: object, reason: Optional[str] = None):
        message = f"Malformed version: {version!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.version = version


class MalformedCatalog(AddonError):
    """Raised when the catalog document does not match the expected schema"""
    pass


class FetchFailure(AddonError):
    """Raised when no catalog source could be fetched"""

    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.errors = errors or {}


class DownloadError(AddonError):
    """Raised when a single HTTP transfer fails"""
    pass


class InstallErrorCode(str, Enum):
    """Reason an artifact install failed"""
    NETWORK_FAILURE = "NETWORK_FAILURE"
    IO_FAILURE = "IO_FAILURE"


class InstallError(AddonError):
    """Raised when an artifact could not be installed"""

    def __init__(
        self,
        message: str,
        error_code: InstallErrorCode = InstallErrorCode.IO_FAILURE,
        name: Optional[str] = None,
        version: Optional[str] = None
    ):
        super().__init__(message)
        self.error_code = error_code
        self.name = name
        self.version = version


class ArtifactIOError(AddonError):
    """Raised when an artifact file or the artifact directory cannot be accessed"""
    pass


class StateStoreError(AddonError):
    """Raised when the desired-state file cannot be written"""
    pass
