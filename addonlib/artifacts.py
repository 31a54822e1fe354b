"""On-disk extension artifacts

Artifacts live in a single directory and are named
`<name>-<version>.<extension>`. Nothing else in the package touches that
directory.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from addonlib.downloader import PARTIAL_SUFFIX, URLDownloader
from addonlib.exceptions import ArtifactIOError, DownloadError, InstallError, InstallErrorCode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OwnedArtifact:
    """A file in the artifact directory attributed to a known extension"""
    name: str
    version: str
    file_name: str
    partial: bool = False


class ArtifactStore:
    """Manages extension artifact files in one directory"""

    def __init__(
        self,
        directory: Path,
        extension: str = "jar",
        downloader: Optional[URLDownloader] = None
    ):
        """
        Initialize artifact store

        Args:
            directory: Artifact directory
            extension: Artifact file suffix, without the dot
            downloader: HTTP client used by install()
        """
        self.directory = Path(directory)
        self.extension = extension.lstrip(".")
        self.downloader = downloader or URLDownloader()

    @property
    def suffix(self) -> str:
        return f".{self.extension}"

    def expected_file_name(self, name: str, version: str) -> str:
        return f"{name}-{version}{self.suffix}"

    def _child(self, file_name: str) -> Path:
        """Path of a plain file name inside the artifact directory"""
        if not file_name or Path(file_name).name != file_name or file_name in (".", ".."):
            raise ArtifactIOError(f"Refusing artifact path outside {self.directory}: {file_name!r}")
        return self.directory / file_name

    def path_for(self, name: str, version: str) -> Path:
        """
        Raises:
            ArtifactIOError: If name or version would leave the directory
        """
        return self._child(self.expected_file_name(name, version))

    def exists(self, name: str, version: str) -> bool:
        try:
            return self.path_for(name, version).is_file()
        except ArtifactIOError:
            return False

    def install(self, name: str, version: str, download_url: str) -> Path:
        """
        Download one artifact version into place

        Args:
            name: Extension name
            version: Extension version
            download_url: Where to fetch the artifact from

        Returns:
            Path of the installed artifact

        Raises:
            InstallError: With NETWORK_FAILURE or IO_FAILURE
        """
        try:
            target = self.path_for(name, version)
            self.downloader.download(download_url, target)
        except DownloadError as e:
            raise InstallError(
                f"Failed to download {name} v{version}: {e}",
                error_code=InstallErrorCode.NETWORK_FAILURE,
                name=name,
                version=version
            )
        except ArtifactIOError as e:
            raise InstallError(
                f"Failed to store {name} v{version}: {e}",
                error_code=InstallErrorCode.IO_FAILURE,
                name=name,
                version=version
            )
        return target

    def remove(self, name: str, version: Optional[str]) -> bool:
        """
        Delete the artifact for one version

        Returns:
            True if a file was deleted, False if there was nothing to delete

        Raises:
            ArtifactIOError: If the file exists but cannot be deleted
        """
        if not version:
            return False
        return self.delete_file(self.expected_file_name(name, version))

    def delete_file(self, file_name: str) -> bool:
        """
        Raises:
            ArtifactIOError: If the file cannot be deleted or is not a plain
                name inside the directory
        """
        path = self._child(file_name)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise ArtifactIOError(f"Failed to remove {file_name}: {e}")
        logger.debug(f"Deleted artifact file: {path}")
        return True

    def list_artifact_files(self) -> List[str]:
        """
        Names of regular files in the directory with the artifact suffix

        Entries whose metadata cannot be read are skipped. A missing
        directory yields an empty list.

        Raises:
            ArtifactIOError: If the directory exists but cannot be listed
        """
        return [name for name, partial in self._scan() if not partial]

    def _scan(self):
        if not self.directory.exists():
            return []

        try:
            entries = list(os.scandir(self.directory))
        except OSError as e:
            raise ArtifactIOError(f"Cannot list artifact directory {self.directory}: {e}")

        found = []
        for entry in entries:
            try:
                if not entry.is_file():
                    continue
            except OSError as e:
                logger.warning(f"Skipping unreadable entry {entry.name}: {e}")
                continue

            if entry.name.endswith(self.suffix):
                found.append((entry.name, False))
            elif entry.name.endswith(self.suffix + PARTIAL_SUFFIX):
                found.append((entry.name, True))
        return sorted(found)

    def owner_of(self, file_name: str, names: Iterable[str]) -> Optional[OwnedArtifact]:
        """
        Attribute a file name to one of the known extension names

        `<name>-<rest>.<ext>` belongs to the longest known `name` it starts
        with, so "Foo-Bar-1.0.jar" goes to "Foo-Bar" when both are known.
        Any non-empty rest counts as the version, including
        "2.0.0-SNAPSHOT" or "latest".
        """
        partial = file_name.endswith(self.suffix + PARTIAL_SUFFIX)
        stem = file_name[:-len(PARTIAL_SUFFIX)] if partial else file_name
        if not stem.endswith(self.suffix):
            return None
        stem = stem[:-len(self.suffix)]

        candidates = [name for name in names if stem.startswith(f"{name}-") and len(stem) > len(name) + 1]
        if not candidates:
            return None
        name = max(candidates, key=len)
        return OwnedArtifact(name=name, version=stem[len(name) + 1:], file_name=file_name, partial=partial)

    def find_owned(self, names: Iterable[str]) -> List[OwnedArtifact]:
        """
        All artifact and in-flight download files belonging to known names

        Raises:
            ArtifactIOError: If the directory cannot be listed
        """
        names = list(names)
        owned = []
        for file_name, _ in self._scan():
            artifact = self.owner_of(file_name, names)
            if artifact is not None:
                owned.append(artifact)
        return owned
