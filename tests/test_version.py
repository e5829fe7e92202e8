"""Tests for package version resolution and the console entry point."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as distribution_version

import pytest

import mcp_cli
from mcp_cli.adapter.lifecycle import CLIENT_INFO


class TestRuntimeVersion:
    def test_matches_installed_distribution(self):
        assert mcp_cli.DISTRIBUTION == "mcp-cli"
        assert mcp_cli.__version__ == distribution_version(mcp_cli.DISTRIBUTION)

    def test_client_info_reports_package_version(self):
        assert CLIENT_INFO.version == mcp_cli.__version__

    def test_fallback_when_metadata_missing(self, monkeypatch):
        def _missing(_: str) -> str:
            raise PackageNotFoundError

        monkeypatch.setattr(mcp_cli, "_distribution_version", _missing)

        assert mcp_cli._resolve_version() == "0.0.0+local"


class TestEntryPoint:
    def test_main_exits_with_cli_status(self, monkeypatch):
        monkeypatch.setattr("mcp_cli.cli.main", lambda: 7)
        with pytest.raises(SystemExit) as exc_info:
            mcp_cli.main()
        assert exc_info.value.code == 7
