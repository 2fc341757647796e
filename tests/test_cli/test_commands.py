"""Tests for the edgeguard CLI — run, check and status commands."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import httpx
import pytest
from click.testing import CliRunner

from cli.main import cli
from core.collector import Category
from core.deprovision import DeprovisionClient
from core.fingerprint import FingerprintEngine
from core.identity_store import IdentityStore


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("HAL_URL", "PERIOD", "EDGEGUARD_CONFIG"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(
        "hal:\n"
        "  host: testhost\n"
        "identity:\n"
        "  salt_path: id/salt-key\n"
        "  baseline_path: id/hw-id\n"
        "deprovision:\n"
        "  token_path: local-api\n"
    )
    (tmp_path / "local-api").write_text("device-token\n")
    return path


@pytest.fixture
def cli_store(tmp_path: Path) -> IdentityStore:
    return IdentityStore(tmp_path / "id" / "salt-key", tmp_path / "id" / "hw-id")


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def _record_baseline(fake_hal, store: IdentityStore) -> str:
    with fake_hal.collector() as collector:
        hardware_id = FingerprintEngine(store).fingerprint(collector.collect())
    store.save_baseline(hardware_id)
    return hardware_id


class TestRun:
    def test_drift_deprovisions_and_exits_zero(
        self, runner, config_file, fake_hal, cli_store
    ) -> None:
        _record_baseline(fake_hal, cli_store)
        fake_hal.responses[Category.LSCPU] = {"cpu": "arm"}
        deletes: list[httpx.Request] = []

        def _handler(request: httpx.Request) -> httpx.Response:
            deletes.append(request)
            return httpx.Response(200)

        def _deprovisioner(*args, **kwargs) -> DeprovisionClient:
            return DeprovisionClient(
                client=httpx.Client(transport=httpx.MockTransport(_handler))
            )

        with (
            patch("cli.run_cmd.setup_logging"),
            patch("cli.run_cmd._build_collector", return_value=fake_hal.collector()),
            patch("cli.run_cmd.DeprovisionClient", side_effect=_deprovisioner),
        ):
            result = runner.invoke(cli, ["run", "--config", str(config_file)])

        assert result.exit_code == 0, result.output
        assert len(deletes) == 1
        assert deletes[0].headers["Authorization"] == "device-token"


class TestCheck:
    def _invoke(self, runner, config_file, fake_hal):
        with (
            patch("cli.check_cmd._setup_logging"),
            patch("cli.check_cmd._build_collector", return_value=fake_hal.collector()),
        ):
            return runner.invoke(cli, ["check", "--config", str(config_file)])

    def test_unchanged(self, runner, config_file, fake_hal, cli_store) -> None:
        _record_baseline(fake_hal, cli_store)
        result = self._invoke(runner, config_file, fake_hal)
        assert result.exit_code == 0, result.output
        assert "unchanged" in result.output

    def test_drift_exit_code(self, runner, config_file, fake_hal, cli_store) -> None:
        baseline = _record_baseline(fake_hal, cli_store)
        fake_hal.responses[Category.LSUSB] = {"devices": ["new"]}

        result = self._invoke(runner, config_file, fake_hal)

        assert result.exit_code == 1
        assert "drift" in result.output
        assert cli_store.load_baseline() == baseline

    def test_no_baseline_not_written(self, runner, config_file, fake_hal, cli_store) -> None:
        result = self._invoke(runner, config_file, fake_hal)
        assert result.exit_code == 2
        assert cli_store.load_baseline() is None

    def test_collection_failure(self, runner, config_file, fake_hal, cli_store) -> None:
        _record_baseline(fake_hal, cli_store)
        fake_hal.failures[Category.LSHW] = httpx.ConnectError("down")
        result = self._invoke(runner, config_file, fake_hal)
        assert result.exit_code == 2
        assert "lshw" in result.output


class TestStatus:
    def test_empty_store(self, runner, config_file) -> None:
        result = runner.invoke(cli, ["status", "--config", str(config_file)])
        assert result.exit_code == 0, result.output
        assert "absent" in result.output
        assert "testhost" in result.output

    def test_baseline_shown_truncated(self, runner, config_file, cli_store) -> None:
        cli_store.save_salt("AAAAAAAAAAAAAAAAAAAAAA==")
        cli_store.save_baseline("0123456789abcdef" * 4)
        result = runner.invoke(cli, ["status", "--config", str(config_file)])
        assert result.exit_code == 0, result.output
        assert "01234567...cdef" in result.output
        assert "0123456789abcdef" * 4 not in result.output
