# -*- mode: python; coding: utf-8 -*-
#
# Copyright (C) 2025 Benjamin Thomas Schwertfeger
# All rights reserved.
# https://github.com/btschwertfeger
#


"""Tests for checking if the CLI works as expected."""

import os
import re
from pathlib import Path
from typing import Generator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from swap_trigger.cli import cli

MARKET = ["--base-currency", "XBT", "--quote-currency", "USD"]


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def database(tmp_path: Path) -> list[str]:
    return ["--sqlite-file", str(tmp_path / "orders.sqlite")]


@pytest.fixture
def market() -> Generator[MagicMock, None, None]:
    with patch("swap_trigger.adapters.kraken.Market") as mock_market:
        mock_market.return_value.get_ticker.return_value = {
            "XXBTZUSD": {"c": ["0.08", "1.0"]},
        }
        yield mock_market


def create_order(runner: CliRunner, database: list[str], *args: str) -> str:
    result = runner.invoke(
        cli,
        [
            "create",
            *MARKET,
            "--owner",
            "alice",
            "--source",
            "USD",
            "--destination",
            "XBT",
            "--amount",
            "10",
            "--trigger-price",
            "0.10",
            "--condition",
            "above",
            *args,
            *database,
        ],
    )
    assert result.exit_code == 0, result.output
    return re.search(r"Created order (\w+)", result.output).group(1)


# ==============================================================================


def test_cli_help(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "Usage:" in result.output
    for command in ("run", "create", "cancel", "orders", "stats", "simulate"):
        assert command in result.output


def test_cli_version(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0


def test_order_lifecycle(runner: CliRunner, database: list[str], market: MagicMock) -> None:  # noqa: ARG001
    order_id = create_order(runner, database)

    result = runner.invoke(cli, ["orders", "--owner", "alice", *database])
    assert result.exit_code == 0, result.output
    assert order_id in result.output
    assert "active" in result.output

    result = runner.invoke(cli, ["simulate", *MARKET, "--price", "0.11", *database])
    assert result.exit_code == 0, result.output
    assert f"{order_id}: fires" in result.output
    assert "1 of 1 order(s) would fire." in result.output

    result = runner.invoke(
        cli,
        ["cancel", *MARKET, "--owner", "alice", "--order-id", order_id, *database],
    )
    assert result.exit_code == 0, result.output
    assert f"Cancelled order {order_id}" in result.output

    result = runner.invoke(cli, ["stats", "--owner", "alice", *database])
    assert result.exit_code == 0, result.output
    assert re.search(r"cancelled: 1", result.output)
    assert re.search(r"total: 1", result.output)


def test_create_rejects_already_satisfied(
    runner: CliRunner,
    database: list[str],
    market: MagicMock,
) -> None:
    market.return_value.get_ticker.return_value = {"XXBTZUSD": {"c": ["0.12", "1.0"]}}
    result = runner.invoke(
        cli,
        [
            "create",
            *MARKET,
            "--owner",
            "alice",
            "--source",
            "USD",
            "--destination",
            "XBT",
            "--amount",
            "10",
            "--trigger-price",
            "0.10",
            "--condition",
            "above",
            *database,
        ],
    )
    assert result.exit_code == 1
    assert "would execute immediately" in result.output


def test_cancel_unknown(runner: CliRunner, database: list[str], market: MagicMock) -> None:  # noqa: ARG001
    result = runner.invoke(
        cli,
        ["cancel", *MARKET, "--owner", "alice", "--order-id", "unknown", *database],
    )
    assert result.exit_code == 1
    assert "not found" in result.output


def test_create_invalid_amount(runner: CliRunner, database: list[str]) -> None:
    result = runner.invoke(
        cli,
        [
            "create",
            *MARKET,
            "--owner",
            "alice",
            "--source",
            "USD",
            "--destination",
            "XBT",
            "--amount",
            "0",
            "--trigger-price",
            "0.10",
            "--condition",
            "above",
            *database,
        ],
    )
    assert result.exit_code == 2
    assert "must be larger than 0" in result.output


@patch.dict(os.environ, {})
@patch("swap_trigger.adapters.kraken.Market")
@patch("swap_trigger.core.engine.SchedulerEngine", new_callable=MagicMock)
def test_cli_run_dry_run(
    mock_engine: MagicMock,
    mock_market: MagicMock,  # noqa: ARG001
    runner: CliRunner,
    database: list[str],
) -> None:
    mock_engine.return_value.run = AsyncMock()

    result = runner.invoke(
        cli,
        ["run", *MARKET, "--poll-interval", "5", "--dry-run", *database],
    )

    assert result.exit_code == 0, result.output
    mock_engine.return_value.run.assert_awaited_once()
    config = mock_engine.call_args.kwargs["config"]
    assert config.poll_interval == 5
    assert config.dry_run is True


@patch.dict(os.environ, {})
def test_cli_run_requires_api_keys(runner: CliRunner, database: list[str]) -> None:
    result = runner.invoke(cli, ["run", *MARKET, *database])
    assert result.exit_code == 2
    assert "API keys are required" in result.output


@patch.dict(os.environ, {})
def test_cli_run_invalid_timeouts(runner: CliRunner, database: list[str]) -> None:
    result = runner.invoke(
        cli,
        [
            "run",
            *MARKET,
            "--dry-run",
            "--execution-timeout",
            "100",
            "--claim-grace-period",
            "50",
            *database,
        ],
    )
    assert result.exit_code != 0
