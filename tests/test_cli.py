"""
CLI tests: every command maps its job outcome to the process exit status.
"""
from decimal import Decimal

import pytest
from click.testing import CliRunner

import main
from conftest import POOL_A, FakeChain, make_network
from farmsync.errors import ConfigError
from farmsync.models import FarmRecord, VoteTally


@pytest.fixture
def chain():
    return FakeChain(
        tallies=[VoteTally(POOL_A, Decimal("2"))],
        farms=[FarmRecord(POOL_A, 7)],
        period=(1, 0, 100),
    )


@pytest.fixture
def services(monkeypatch, chain):
    seen = {}

    def fake_build_services(chain_name, dry_run):
        seen["chain"] = chain_name
        seen["dry_run"] = dry_run
        return make_network(), chain, chain

    monkeypatch.setattr(main, "build_services", fake_build_services)
    return seen


def test_sync_farms_success(services, chain):
    result = CliRunner().invoke(main.cli, ["--chain", "testnet", "sync-farms"])

    assert result.exit_code == 0, result.output
    assert services == {"chain": "testnet", "dry_run": False}
    assert ("set_top_pool_ids_with_weights", [7], [2 * 10**18]) in chain.calls


def test_start_voting_period(services, chain):
    result = CliRunner().invoke(main.cli, ["--dry-run", "start-voting-period"])

    assert result.exit_code == 0, result.output
    assert services["dry_run"] is True
    assert chain.calls_named("start_new_voting_period") == [("start_new_voting_period",)]


def test_set_fixed_farms_without_list_fails(services):
    result = CliRunner().invoke(main.cli, ["set-fixed-farms"])
    assert result.exit_code == 1
    assert "fixedFarms not set" in result.output


def test_config_error_exits_non_zero(monkeypatch):
    def broken(chain_name, dry_run):
        raise ConfigError("CHAIN not set in .env")

    monkeypatch.setattr(main, "build_services", broken)
    result = CliRunner().invoke(main.cli, ["sync-farms"])

    assert result.exit_code == 1
    assert "CHAIN not set" in result.output


def test_unexpected_rpc_error_exits_non_zero(services, chain, monkeypatch):
    def boom(pool_ids):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(chain, "update_all", boom)
    result = CliRunner().invoke(main.cli, ["sync-farms"])

    assert result.exit_code == 1
    assert "connection reset" in result.output


def test_result_table_shows_short_pool_address(services):
    result = CliRunner().invoke(main.cli, ["sync-farms"])

    assert result.exit_code == 0, result.output
    assert "0xaaaa...aaaaaa" in result.output
