# The MIT License (MIT)
# Copyright © 2023 Yuma Rao
# Copyright © 2023 Opentensor Foundation

# Permission is hereby granted, free of charge, to any person obtaining a copy of this software and associated
# documentation files (the “Software”), to deal in the Software without restriction, including without limitation
# the rights to use, copy, modify, merge, publish, distribute, sublicense, and/or sell copies of the Software,
# and to permit persons to whom the Software is furnished to do so, subject to the following conditions:

# The above copyright notice and this permission notice shall be included in all copies or substantial portions of
# the Software.

# THE SOFTWARE IS PROVIDED “AS IS”, WITHOUT WARRANTY OF ANY KIND, EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO
# THE WARRANTIES OF MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL
# THE AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN ACTION
# OF CONTRACT, TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER
# DEALINGS IN THE SOFTWARE.

from __future__ import annotations

import argparse
import os
from typing import Any, Mapping

from pydantic import BaseModel, Field

ENV_PREFIX = "SEALEDSCORE"


class LedgerSettings(BaseModel):
    url: str = "http://127.0.0.1:8300"
    context_address: str = ""
    timeout: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=3, ge=1)


class RelayerSettings(BaseModel):
    url: str = "http://127.0.0.1:8400"
    timeout: float = Field(default=60.0, gt=0)


class StatusSettings(BaseModel):
    success_ttl: float = Field(default=2.0, ge=0)
    error_ttl: float = Field(default=3.0, ge=0)


class LedgerServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = Field(default=8300, ge=1, le=65535)
    state_path: str = ""
    relayer_hotkey: str = ""
    context_address: str = ""


class ClientSettings(BaseModel):
    ledger: LedgerSettings = Field(default_factory=LedgerSettings)
    relayer: RelayerSettings = Field(default_factory=RelayerSettings)
    status: StatusSettings = Field(default_factory=StatusSettings)
    ledger_server: LedgerServerSettings = Field(default_factory=LedgerServerSettings)


def add_args(parser: argparse.ArgumentParser) -> None:
    """
    Adds client arguments to the parser. Defaults are left as None so that
    unset flags fall through to environment variables and model defaults.
    """

    parser.add_argument(
        "--ledger.url",
        type=str,
        help="Base URL of the record ledger.",
        default=None,
    )

    parser.add_argument(
        "--ledger.context_address",
        type=str,
        help="Address of the record contract that input proofs are bound to.",
        default=None,
    )

    parser.add_argument(
        "--ledger.timeout",
        type=float,
        help="Ledger request timeout in seconds.",
        default=None,
    )

    parser.add_argument(
        "--ledger.max_retries",
        type=int,
        help="Attempts for read requests on transport errors.",
        default=None,
    )

    parser.add_argument(
        "--relayer.url",
        type=str,
        help="Base URL of the confidential-compute relayer.",
        default=None,
    )

    parser.add_argument(
        "--status.success_ttl",
        type=float,
        help="Seconds a success status stays visible.",
        default=None,
    )

    parser.add_argument(
        "--status.error_ttl",
        type=float,
        help="Seconds an error status stays visible.",
        default=None,
    )


def add_ledger_server_args(parser: argparse.ArgumentParser) -> None:
    """Add development ledger server arguments to the parser."""

    parser.add_argument("--ledger_server.host", type=str, default=None)
    parser.add_argument("--ledger_server.port", type=int, default=None)
    parser.add_argument(
        "--ledger_server.state_path",
        type=str,
        help="JSON file the ledger persists to. Empty keeps it in memory.",
        default=None,
    )
    parser.add_argument(
        "--ledger_server.relayer_hotkey",
        type=str,
        help="ss58 address whose signatures are accepted as input/decryption proofs.",
        default=None,
    )
    parser.add_argument(
        "--ledger_server.context_address",
        type=str,
        help="Context address input proofs must be bound to.",
        default=None,
    )


def load_settings(
    args: argparse.Namespace | None = None,
    environ: Mapping[str, str] | None = None,
) -> ClientSettings:
    """Build settings from CLI args, overridden by SEALEDSCORE_<SECTION>__<KEY> env vars."""
    environ = os.environ if environ is None else environ
    data: dict[str, dict[str, Any]] = {}

    for section, field in ClientSettings.model_fields.items():
        section_model = field.default_factory
        values: dict[str, Any] = {}
        for key in section_model.model_fields:
            cli_value = getattr(args, f"{section}.{key}", None) if args is not None else None
            if cli_value is not None:
                values[key] = cli_value
            env_value = environ.get(f"{ENV_PREFIX}_{section.upper()}__{key.upper()}")
            if env_value is not None:
                values[key] = env_value
        data[section] = values

    return ClientSettings.model_validate(data)


__all__ = [
    "ClientSettings",
    "LedgerServerSettings",
    "LedgerSettings",
    "RelayerSettings",
    "StatusSettings",
    "add_args",
    "add_ledger_server_args",
    "load_settings",
]
