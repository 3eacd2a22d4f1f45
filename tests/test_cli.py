"""Tests for the command line entry point."""

import asyncio

import pytest

import cli
from stakebridge.config import Settings


def test_plan_prints_split(capsys):
    assert cli.main(["plan", "1.0", "--reserve", "0.2", "--no-cap"]) == 0

    out = capsys.readouterr().out
    assert "Gas swap:    0.2" in out
    assert "Stake swap:  0.8" in out


def test_plan_insufficient_funds_exits_non_zero(capsys):
    assert cli.main(["plan", "0.1", "--reserve", "0.2"]) == 1

    assert "insufficient_funds" in capsys.readouterr().err


def test_run_without_secret_is_configuration_error(monkeypatch, capsys):
    for name in ("MNEMONIC", "STAKEBRIDGE_MNEMONIC"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("stakebridge.config.settings", Settings(_env_file=None))

    assert cli.main(["run"]) == 2

    err = capsys.readouterr().err
    assert "configuration" in err
    assert "mnemonic" in err


def test_no_command_prints_help(capsys):
    assert cli.main([]) == 0
    assert "usage" in capsys.readouterr().out


@pytest.mark.parametrize("value", ["abc", "1.2.3"])
def test_invalid_amount_is_rejected(value):
    with pytest.raises(SystemExit):
        cli.main(["plan", value])


def test_run_builds_lifi_client_from_run_config(monkeypatch):
    from stakebridge.config import RunConfig

    for name, value in {
        "MNEMONIC": "test test test test test test test test test test test junk",
        "SOURCE_RPC_URL": "https://rpc.ftm.tools",
        "DESTINATION_RPC_URL": "https://polygon-rpc.com",
        "BUNDLER_URL": "https://bundler.example/polygon",
    }.items():
        monkeypatch.setenv(name, value)
    config = RunConfig.from_settings(
        Settings(_env_file=None),
        lifi_base_url="https://staging.li.quest/v1",
        lifi_api_key="abc",
    )
    seen = {}

    class Stop(Exception):
        pass

    def fake_lifi(**kwargs):
        seen.update(kwargs)
        raise Stop()

    monkeypatch.setattr(cli, "LifiProvider", fake_lifi)

    with pytest.raises(Stop):
        asyncio.run(cli.cli_run(config))

    assert seen["base_url"] == "https://staging.li.quest/v1"
    assert seen["api_key"] == "abc"
