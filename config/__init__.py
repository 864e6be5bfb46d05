"""Network configuration loading and shared ABI exports."""

import json
import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from farmsync.errors import ConfigError
from farmsync.models import FixedFarm, RewardRangeConfig

from .settings import (
    DEFAULT_MAX_GAS_PRICE_GWEI,
    DEFAULT_PAGE_SIZE,
    DEFAULT_RPC_TIMEOUT,
    DEFAULT_TX_RECEIPT_TIMEOUT,
    DEFAULT_VOTE_LIMIT,
)

CONFIG_DIR = Path(__file__).resolve().parent
NETWORKS_PATH = CONFIG_DIR / "networks.json"

REQUIRED_ADDRESS_KEYS = ("farmLens", "masterChef", "voter")


def _load_abi(file_name: str) -> List[Any]:
    abi_path = CONFIG_DIR / "abi" / file_name
    with abi_path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


@dataclass(frozen=True)
class NetworkConfig:
    """Everything a reconcile run needs to know about one network, built once at start-up."""

    name: str
    rpc_url: str
    farm_lens: str
    master_chef: str
    voter: str
    lb_hooks_manager: Optional[str]
    lb_hooks_lens: Optional[str]
    reward_ranges: RewardRangeConfig
    fixed_farms: Tuple[FixedFarm, ...] = ()
    min_votes: Decimal = Decimal(DEFAULT_VOTE_LIMIT)
    page_size: int = DEFAULT_PAGE_SIZE
    rpc_timeout: int = DEFAULT_RPC_TIMEOUT
    receipt_timeout: int = DEFAULT_TX_RECEIPT_TIMEOUT
    max_gas_price_gwei: float = DEFAULT_MAX_GAS_PRICE_GWEI


def _parse_range(raw: Any, where: str) -> Tuple[int, int]:
    try:
        start, end = raw
        return int(start), int(end)
    except (TypeError, ValueError):
        raise ConfigError(f"{where} must be a [binStart, binEnd] pair, got {raw!r}")


def _parse_reward_ranges(raw: Dict[str, Any]) -> RewardRangeConfig:
    if "defaultRange" not in raw:
        raise ConfigError("defaultRange not set")
    ranges = {
        int(bin_step): _parse_range(value, f"rewardRangePerBinStep[{bin_step}]")
        for bin_step, value in (raw.get("rewardRangePerBinStep") or {}).items()
    }
    return RewardRangeConfig(
        default=_parse_range(raw["defaultRange"], "defaultRange"),
        ranges=ranges,
    )


def _parse_fixed_farms(raw: List[Dict[str, Any]]) -> Tuple[FixedFarm, ...]:
    farms = []
    for item in raw or []:
        try:
            farms.append(FixedFarm(pool_address=item["token"], weight=Decimal(str(item["weight"]))))
        except (KeyError, InvalidOperation):
            raise ConfigError(f"Invalid fixedFarms entry: {item!r}")
    return tuple(farms)


def _env_number(env: Mapping[str, str], key: str, default: Any, cast: Any) -> Any:
    value = env.get(key)
    if not value:
        return default
    try:
        return cast(value)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {value!r}")


def load_networks(path: Optional[Path] = None) -> Dict[str, Dict[str, Any]]:
    networks_path = Path(path) if path else NETWORKS_PATH
    try:
        with networks_path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except FileNotFoundError:
        raise ConfigError(f"Network config not found: {networks_path}")
    except json.JSONDecodeError as e:
        raise ConfigError(f"Network config {networks_path} is not valid JSON: {e}")


def load_network_config(
    chain: Optional[str] = None,
    networks_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> NetworkConfig:
    """
    Build the NetworkConfig for one chain.

    Args:
        chain: Network key in networks.json (default: $CHAIN)
        networks_path: Alternative networks.json
        environ: Environment mapping (default: os.environ)

    Returns:
        Validated NetworkConfig

    Raises:
        ConfigError: unknown network or missing/invalid settings
    """
    env = os.environ if environ is None else environ
    chain = chain or env.get("CHAIN", "")
    if not chain:
        raise ConfigError("CHAIN not set in .env")

    networks = load_networks(networks_path)
    if chain not in networks:
        raise ConfigError(f"Unknown network '{chain}' (known: {', '.join(sorted(networks))})")
    raw = networks[chain]

    errors = [f"{key} not set for network '{chain}'" for key in REQUIRED_ADDRESS_KEYS if not raw.get(key)]
    rpc_url = env.get("RPC_URL") or raw.get("rpcUrl", "")
    if not rpc_url:
        errors.append("RPC_URL not set in .env and no rpcUrl configured")
    if errors:
        raise ConfigError("; ".join(errors))

    try:
        min_votes = Decimal(str(env.get("VOTE_LIMIT") or DEFAULT_VOTE_LIMIT))
    except InvalidOperation:
        raise ConfigError(f"VOTE_LIMIT must be a number, got {env.get('VOTE_LIMIT')!r}")

    page_size = _env_number(env, "FARM_LENS_PAGE_SIZE", DEFAULT_PAGE_SIZE, int)
    if page_size <= 0:
        raise ConfigError("FARM_LENS_PAGE_SIZE must be positive")
    rpc_timeout = _env_number(env, "RPC_TIMEOUT", DEFAULT_RPC_TIMEOUT, int)
    receipt_timeout = _env_number(env, "TX_RECEIPT_TIMEOUT", DEFAULT_TX_RECEIPT_TIMEOUT, int)
    max_gas_price_gwei = _env_number(env, "MAX_GAS_PRICE_GWEI", DEFAULT_MAX_GAS_PRICE_GWEI, float)
    if rpc_timeout <= 0 or receipt_timeout <= 0:
        raise ConfigError("RPC_TIMEOUT and TX_RECEIPT_TIMEOUT must be positive")

    return NetworkConfig(
        name=chain,
        rpc_url=rpc_url,
        farm_lens=raw["farmLens"],
        master_chef=raw["masterChef"],
        voter=raw["voter"],
        lb_hooks_manager=raw.get("lbHooksManager") or None,
        lb_hooks_lens=raw.get("lbHooksLens") or None,
        reward_ranges=_parse_reward_ranges(raw),
        fixed_farms=_parse_fixed_farms(raw.get("fixedFarms")),
        min_votes=min_votes,
        page_size=page_size,
        rpc_timeout=rpc_timeout,
        receipt_timeout=receipt_timeout,
        max_gas_price_gwei=max_gas_price_gwei,
    )


FARM_LENS_ABI = _load_abi("farm_lens.json")
MASTER_CHEF_ABI = _load_abi("master_chef.json")
VOTER_ABI = _load_abi("voter.json")
PAIR_ABI = _load_abi("pair.json")
LB_PAIR_ABI = _load_abi("lb_pair.json")
LB_HOOKS_LENS_ABI = _load_abi("lb_hooks_lens.json")
LB_HOOKS_MANAGER_ABI = _load_abi("lb_hooks_manager.json")
LB_HOOKS_MC_REWARDER_ABI = _load_abi("lb_hooks_mc_rewarder.json")

__all__ = [
    "NetworkConfig",
    "load_network_config",
    "load_networks",
    "FARM_LENS_ABI",
    "MASTER_CHEF_ABI",
    "VOTER_ABI",
    "PAIR_ABI",
    "LB_PAIR_ABI",
    "LB_HOOKS_LENS_ABI",
    "LB_HOOKS_MANAGER_ABI",
    "LB_HOOKS_MC_REWARDER_ABI",
]
