"""Tests for settings loading from CLI args and environment."""

import argparse
import pytest
from pydantic import ValidationError

from sealedscore.base.config import add_args, add_ledger_server_args, load_settings


def _parse(argv):
    parser = argparse.ArgumentParser()
    add_args(parser)
    add_ledger_server_args(parser)
    return parser.parse_args(argv)


class TestLoadSettings:

    def test_defaults(self):
        settings = load_settings(_parse([]), environ={})
        assert settings.ledger.url == "http://127.0.0.1:8300"
        assert settings.ledger.context_address == ""
        assert settings.relayer.url == "http://127.0.0.1:8400"
        assert settings.status.success_ttl == 2.0
        assert settings.status.error_ttl == 3.0
        assert settings.ledger_server.port == 8300

    def test_cli_values(self):
        args = _parse(["--ledger.url", "http://ledger:9000", "--status.error_ttl", "5", "--ledger_server.port", "9100"])
        settings = load_settings(args, environ={})
        assert settings.ledger.url == "http://ledger:9000"
        assert settings.status.error_ttl == 5.0
        assert settings.ledger_server.port == 9100

    def test_env_overrides_cli(self):
        args = _parse(["--ledger.context_address", "0xcli"])
        settings = load_settings(args, environ={
            "SEALEDSCORE_LEDGER__CONTEXT_ADDRESS": "0xenv",
            "SEALEDSCORE_LEDGER__MAX_RETRIES": "5",
            "SEALEDSCORE_LEDGER_SERVER__RELAYER_HOTKEY": "5Relayer",
        })
        assert settings.ledger.context_address == "0xenv"
        assert settings.ledger.max_retries == 5
        assert settings.ledger_server.relayer_hotkey == "5Relayer"

    def test_without_args(self):
        settings = load_settings(environ={"SEALEDSCORE_RELAYER__URL": "http://relayer"})
        assert settings.relayer.url == "http://relayer"

    def test_invalid_value_rejected(self):
        with pytest.raises(ValidationError):
            load_settings(environ={"SEALEDSCORE_LEDGER__TIMEOUT": "-1"})
