"""Tests for ``budgeteer config`` sub-commands."""

from __future__ import annotations

import json

import httpx

from budgeteer.app import app
from budgeteer.config import config_path, load_stored_config
from budgeteer.exit_codes import EXIT_INVALID_USAGE, EXIT_SUCCESS


class TestConfigShow:
    def test_show_defaults(self, cli_runner, isolated_config) -> None:
        result = cli_runner.invoke(app, ["--json", "--quiet", "config", "show"])

        assert result.exit_code == EXIT_SUCCESS
        assert json.loads(result.stdout) == {
            "host": None,
            "api_key_source": None,
            "request": {"timeout": 30.0, "verify_ssl": True},
        }

    def test_path(self, cli_runner, isolated_config) -> None:
        result = cli_runner.invoke(app, ["config", "path"])

        assert result.exit_code == EXIT_SUCCESS
        assert result.stdout.strip() == str(config_path())


class TestConfigSet:
    def test_set_host(self, cli_runner, isolated_config) -> None:
        result = cli_runner.invoke(app, ["--quiet", "config", "set", "host", "https://budget.example.com"])

        assert result.exit_code == EXIT_SUCCESS
        assert load_stored_config().host == "https://budget.example.com"

    def test_set_nested_number(self, cli_runner, isolated_config) -> None:
        result = cli_runner.invoke(app, ["--quiet", "config", "set", "request.timeout", "7"])

        assert result.exit_code == EXIT_SUCCESS
        assert load_stored_config().request.timeout == 7.0

    def test_set_bool(self, cli_runner, isolated_config) -> None:
        result = cli_runner.invoke(app, ["--quiet", "config", "set", "request.verify_ssl", "false"])

        assert result.exit_code == EXIT_SUCCESS
        assert load_stored_config().request.verify_ssl is False

    def test_set_unknown_key(self, cli_runner, isolated_config) -> None:
        result = cli_runner.invoke(app, ["--no-color", "config", "set", "colour", "red"])

        assert result.exit_code == EXIT_INVALID_USAGE
        assert "Unknown config key" in result.output

    def test_set_bad_number(self, cli_runner, isolated_config) -> None:
        result = cli_runner.invoke(app, ["--no-color", "config", "set", "request.timeout", "soon"])

        assert result.exit_code == EXIT_INVALID_USAGE
        assert not config_path().exists()

    def test_stored_config_is_used_by_keys(self, cli_runner, isolated_config, fake_service, monkeypatch) -> None:
        monkeypatch.setenv("STORED_TOKEN", "admin-token")
        cli_runner.invoke(app, ["--quiet", "config", "set", "host", "https://budget.test"])
        cli_runner.invoke(app, ["--quiet", "config", "set", "api_key_source", "env:STORED_TOKEN"])
        fake_service.add("svc-a")

        result = cli_runner.invoke(
            app,
            ["--json", "keys", "list"],
            obj={"transport": httpx.MockTransport(fake_service)},
        )

        assert result.exit_code == EXIT_SUCCESS
        assert json.loads(result.stdout)[0]["name"] == "svc-a"
