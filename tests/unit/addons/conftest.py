from __future__ import annotations

import json
from pathlib import Path

import pytest

from addonlib.artifacts import ArtifactStore
from addonlib.downloader import URLDownloader
from addonlib.engine import ReconciliationEngine
from addonlib.fetcher import CatalogFetcher
from addonlib.store import DesiredStateStore

from addon_fakes import BACKUP_URL, BASE_URL, PRIMARY_URL, FakeSession, RecordingLogger, download_url


class AddonTestEnv:
    """Temp data/artifact dirs plus a fake network, wired into an engine"""

    def __init__(self, root: Path):
        self.root = root
        self.data_dir = root / "data"
        self.artifact_dir = root / "plugins"
        self.artifact_dir.mkdir(parents=True)
        self.session = FakeSession()
        self.downloader = URLDownloader(session=self.session)
        self.store = DesiredStateStore(self.data_dir / "addons.json")
        self.artifacts = ArtifactStore(self.artifact_dir, downloader=self.downloader)
        self.log = RecordingLogger()

    def engine(self, host_version: str = "1.7.1", urls=(PRIMARY_URL, BACKUP_URL)) -> ReconciliationEngine:
        return ReconciliationEngine(
            host_version=host_version,
            fetcher=CatalogFetcher(list(urls), downloader=self.downloader),
            store=self.store,
            artifacts=self.artifacts,
            addon_logger=self.log,
        )

    def publish(self, extensions: dict, url: str = PRIMARY_URL, serve_artifacts: bool = True) -> None:
        document = {"baseURL": BASE_URL, "extensions": extensions}
        self.session.routes[url] = json.dumps(document).encode("utf-8")
        if serve_artifacts:
            for name, info in extensions.items():
                for version in info.get("versions", {}):
                    self.session.routes[download_url(name, version)] = f"{name}:{version}".encode("utf-8")

    def unpublish(self, url: str = PRIMARY_URL) -> None:
        self.session.routes.pop(url, None)

    def write_state(self, addons: dict, auto_upgrade: bool = False) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        document = {"addons": addons, "settings": {"autoUpgrade": auto_upgrade}}
        self.store.path.write_text(json.dumps(document, indent=2), encoding="utf-8")

    def read_state(self) -> dict:
        return json.loads(self.store.path.read_text(encoding="utf-8"))

    def artifact_files(self) -> list[str]:
        return sorted(p.name for p in self.artifact_dir.iterdir())

    def put_artifact(self, file_name: str, content: bytes = b"old") -> Path:
        path = self.artifact_dir / file_name
        path.write_bytes(content)
        return path


@pytest.fixture
def env(tmp_path: Path) -> AddonTestEnv:
    return AddonTestEnv(tmp_path)


@pytest.fixture
def commands_catalog() -> dict:
    return {
        "Commands": {
            "description": "Adds commands",
            "versions": {"2.1.0": "1.7.1", "2.0.0": "1.1.5"},
        }
    }
