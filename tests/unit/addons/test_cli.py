from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from addonlib import cli as cli_module
from addonlib.downloader import URLDownloader

from addon_fakes import PRIMARY_URL


@pytest.fixture
def run(env, monkeypatch):
    monkeypatch.setattr(
        "addonlib.manager.URLDownloader",
        lambda **kwargs: URLDownloader(session=env.session),
    )
    runner = CliRunner()
    base_args = [
        "--data-dir", str(env.data_dir),
        "--artifact-dir", str(env.artifact_dir),
        "--host-version", "1.7.1",
        "--catalog-url", PRIMARY_URL,
    ]

    def _run(*args):
        return runner.invoke(cli_module.cli, [*base_args, *args])

    return _run


def test_list_empty(run) -> None:
    result = run("list")
    assert result.exit_code == 0, result.output
    assert "No addons known yet" in result.output


def test_enable_and_reconcile(run, env, commands_catalog) -> None:
    env.publish(commands_catalog)

    assert run("catalog").exit_code == 0
    assert run("enable", "Commands").exit_code == 0
    result = run("reconcile")

    assert result.exit_code == 0, result.output
    assert "installed" in result.output
    assert env.artifact_files() == ["Commands-2.1.0.jar"]

    listing = run("list")
    assert "Commands" in listing.output
    assert "2.1.0" in listing.output


def test_reconcile_reports_up_to_date(run, env, commands_catalog) -> None:
    env.publish(commands_catalog)
    run("catalog")

    result = run("reconcile")

    assert result.exit_code == 0, result.output
    assert "Addons are up to date." in result.output


def test_reconcile_fails_when_catalog_unreachable(run) -> None:
    result = run("reconcile")
    assert result.exit_code == 1


def test_disable(run, env) -> None:
    env.write_state({"Commands": {"enabled": True, "installedVersion": "2.0.0"}})

    result = run("disable", "Commands")

    assert result.exit_code == 0, result.output
    assert env.read_state()["addons"]["Commands"] == {"enabled": False, "installedVersion": "2.0.0"}


def test_enable_rejects_bad_name(run) -> None:
    result = run("enable", "../evil")
    assert result.exit_code == 1
    assert "Invalid addon name" in result.output


def test_auto_upgrade(run, env) -> None:
    result = run("auto-upgrade", "on")

    assert result.exit_code == 0, result.output
    assert json.loads(env.store.path.read_text(encoding="utf-8"))["settings"]["autoUpgrade"] is True


def test_status(run, env, commands_catalog) -> None:
    env.publish(commands_catalog)

    result = run("status")

    assert result.exit_code == 0, result.output
    assert "DISABLED" in result.output


def test_invalid_host_version_is_usage_error(env) -> None:
    result = CliRunner().invoke(cli_module.cli, ["--data-dir", str(env.data_dir), "--host-version", "x", "list"])
    assert result.exit_code == 2
