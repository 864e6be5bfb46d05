"""
On-chain read and write clients for the farm lens, MasterChef, Voter and LB hooks contracts.

ChainReader only issues eth_calls. ChainWriter signs with a local account,
sends, and blocks on each receipt before returning.
"""

import logging
import os
import shutil
import subprocess
from concurrent.futures import ThreadPoolExecutor
from typing import Any, List, Optional, Sequence, Tuple

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.contract import Contract

from config import (
    FARM_LENS_ABI,
    LB_HOOKS_LENS_ABI,
    LB_HOOKS_MANAGER_ABI,
    LB_HOOKS_MC_REWARDER_ABI,
    LB_PAIR_ABI,
    MASTER_CHEF_ABI,
    PAIR_ABI,
    VOTER_ABI,
    NetworkConfig,
)
from farmsync.errors import ConfigError, FarmSyncError, GasPriceTooHigh, TransactionFailed
from farmsync.models import FarmRecord, PoolParams, VoteTally
from farmsync.utils import ZERO_ADDRESS, checksum_address, from_fixed_point, is_zero_address

logger = logging.getLogger(__name__)

DRY_RUN_TX = "DRY_RUN"


def connect(network: NetworkConfig) -> Web3:
    """Open an HTTP provider for the network and fail fast if it is unreachable."""
    w3 = Web3(Web3.HTTPProvider(network.rpc_url, request_kwargs={"timeout": network.rpc_timeout}))
    if not w3.is_connected():
        raise FarmSyncError(f"Failed to connect to RPC {network.rpc_url}")
    logger.info(f"Connected to {network.name} (chain id {w3.eth.chain_id})")
    return w3


def load_account(private_key_source: str) -> LocalAccount:
    """Load wallet from private key source: raw key, file path, or 1Password op:// reference."""
    if private_key_source.startswith("op://"):
        if shutil.which("op") is None:
            raise ConfigError("1Password CLI 'op' not found in PATH")
        result = subprocess.run(["op", "read", private_key_source], capture_output=True, text=True)
        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            raise ConfigError(f"Failed to read secret from 1Password: {stderr or 'unknown error'}")
        private_key = (result.stdout or "").strip()
        if not private_key:
            raise ConfigError("1Password secret value is empty")
    elif os.path.isfile(private_key_source):
        with open(private_key_source, "r") as f:
            private_key = f.read().strip()
    else:
        private_key = private_key_source.strip()

    if private_key.startswith("0x"):
        private_key = private_key[2:]

    try:
        return Account.from_key(private_key)
    except ValueError as e:
        raise ConfigError(f"Invalid private key: {e}")


def parse_vote_data(raw: Sequence[Any]) -> List[VoteTally]:
    """Turn a getVoteData() struct (totalVotes, [(pool, votes), ...]) into tallies."""
    _total_votes, votes = raw
    return [
        VoteTally(pool_address=str(pool), votes=from_fixed_point(amount))
        for pool, amount in votes
    ]


def parse_farm_data(raw: Sequence[Any]) -> List[FarmRecord]:
    """
    Turn a getFarmData() struct into farm records.

    A farm's pool is its LB pair when one is set, otherwise the staked token.
    """
    _total_alloc_point, farms = raw
    records = []
    for pid, token, pool_info in farms:
        lb_pair = pool_info[0]
        pool = token if is_zero_address(lb_pair) else lb_pair
        records.append(FarmRecord(pool_address=str(pool), farm_id=int(pid)))
    return records


class ChainReader:
    """Read-only access to the contracts a reconcile run consults."""

    def __init__(self, w3: Web3, network: NetworkConfig):
        """
        Args:
            w3: Connected Web3 instance
            network: Network addresses and lens window
        """
        self.w3 = w3
        self.network = network
        self.lens: Contract = self._contract(network.farm_lens, FARM_LENS_ABI)
        self.voter: Contract = self._contract(network.voter, VOTER_ABI)
        self.hooks_lens: Optional[Contract] = (
            self._contract(network.lb_hooks_lens, LB_HOOKS_LENS_ABI) if network.lb_hooks_lens else None
        )

    def _contract(self, address: str, abi: List[Any]) -> Contract:
        return self.w3.eth.contract(address=checksum_address(address), abi=abi)

    def get_vote_tallies(self, start: int = 0, count: Optional[int] = None) -> List[VoteTally]:
        count = count or self.network.page_size
        raw = self.lens.functions.getVoteData(start, count).call()
        tallies = parse_vote_data(raw)
        logger.debug(f"Fetched {len(tallies)} vote tallies (start={start}, nb={count})")
        return tallies

    def get_farm_records(self, start: int = 0, count: Optional[int] = None) -> List[FarmRecord]:
        count = count or self.network.page_size
        raw = self.lens.functions.getFarmData(start, count, ZERO_ADDRESS).call()
        records = parse_farm_data(raw)
        logger.debug(f"Fetched {len(records)} farms (start={start}, nb={count})")
        return records

    def is_constant_product_pool(self, pool_address: str) -> bool:
        """
        Probe token0() on the pool.

        Any failure (revert, missing selector, bad address) counts as
        "not a constant-product pool" so the caller falls through to the LB path.
        """
        try:
            pair = self._contract(pool_address, PAIR_ABI)
            return not is_zero_address(pair.functions.token0().call())
        except Exception as e:
            logger.debug(f"token0() probe failed for {pool_address}: {e}")
            return False

    def get_pool_params(self, pool_address: str) -> PoolParams:
        """Read tokenX, tokenY and binStep of an LB pair concurrently."""
        pair = self._contract(pool_address, LB_PAIR_ABI)
        with ThreadPoolExecutor(max_workers=3) as executor:
            token_x = executor.submit(pair.functions.getTokenX().call)
            token_y = executor.submit(pair.functions.getTokenY().call)
            bin_step = executor.submit(pair.functions.getBinStep().call)
            return PoolParams(
                token_x=str(token_x.result()),
                token_y=str(token_y.result()),
                bin_step=int(bin_step.result()),
            )

    def get_rewarder(self, pool_address: str) -> Optional[str]:
        """Return the hooks (rewarder) bound to an LB pair, or None when unbound."""
        if self.hooks_lens is None:
            raise ConfigError(f"lbHooksLens not set for network '{self.network.name}'")
        hooks = self.hooks_lens.functions.getHooks(checksum_address(pool_address)).call()
        address = hooks[0] if isinstance(hooks, (list, tuple)) else hooks
        return None if is_zero_address(address) else str(address)

    def get_top_pool_ids(self) -> List[int]:
        return [int(pid) for pid in self.voter.functions.getTopPoolIds().call()]

    def get_current_voting_period(self) -> int:
        return int(self.voter.functions.getCurrentVotingPeriod().call())

    def get_period_window(self, period: int) -> Tuple[int, int]:
        start_time, end_time = self.voter.functions.getPeriodStartEndtime(period).call()
        return int(start_time), int(end_time)


class ChainWriter:
    """Signs and sends the state-changing calls, one confirmed transaction at a time."""

    def __init__(
        self,
        w3: Web3,
        network: NetworkConfig,
        account: Optional[LocalAccount] = None,
        dry_run: bool = False,
    ):
        """
        Args:
            w3: Connected Web3 instance
            network: Network addresses, receipt timeout and gas ceiling
            account: Signing account (optional in dry-run mode)
            dry_run: Log every write instead of sending it
        """
        if account is None and not dry_run:
            raise ConfigError("PRIVATE_KEY not set in .env (or use --dry-run)")
        self.w3 = w3
        self.network = network
        self.account = account
        self.dry_run = dry_run
        self.master_chef: Contract = self._contract(network.master_chef, MASTER_CHEF_ABI)
        self.voter: Contract = self._contract(network.voter, VOTER_ABI)
        self.hooks_manager: Optional[Contract] = (
            self._contract(network.lb_hooks_manager, LB_HOOKS_MANAGER_ABI)
            if network.lb_hooks_manager
            else None
        )

    @property
    def operator_address(self) -> str:
        return self.account.address if self.account else ZERO_ADDRESS

    def _contract(self, address: str, abi: List[Any]) -> Contract:
        return self.w3.eth.contract(address=checksum_address(address), abi=abi)

    def add_farm(self, pool_address: str) -> str:
        return self._transact(
            f"MasterChef.add({pool_address})",
            self.master_chef.functions.add(checksum_address(pool_address), ZERO_ADDRESS),
        )

    def create_rewarder(self, token_x: str, token_y: str, bin_step: int, owner: str) -> str:
        if self.hooks_manager is None:
            raise ConfigError(f"lbHooksManager not set for network '{self.network.name}'")
        return self._transact(
            f"createLBHooksMCRewarder({token_x}, {token_y}, {bin_step}, {owner})",
            self.hooks_manager.functions.createLBHooksMCRewarder(
                checksum_address(token_x), checksum_address(token_y), int(bin_step), checksum_address(owner)
            ),
        )

    def set_delta_bins(self, rewarder: str, bin_start: int, bin_end: int) -> str:
        contract = self._contract(rewarder, LB_HOOKS_MC_REWARDER_ABI)
        return self._transact(
            f"setDeltaBins({bin_start}, {bin_end}) on {rewarder}",
            contract.functions.setDeltaBins(int(bin_start), int(bin_end)),
        )

    def update_all(self, pool_ids: Sequence[int]) -> str:
        return self._transact(
            f"MasterChef.updateAll({list(pool_ids)})",
            self.master_chef.functions.updateAll([int(pid) for pid in pool_ids]),
        )

    def set_top_pool_ids_with_weights(self, pool_ids: Sequence[int], weights: Sequence[int]) -> str:
        if len(pool_ids) != len(weights):
            raise ValueError(f"{len(pool_ids)} pool ids but {len(weights)} weights")
        return self._transact(
            f"Voter.setTopPoolIdsWithWeights({len(pool_ids)} pools)",
            self.voter.functions.setTopPoolIdsWithWeights(
                [int(pid) for pid in pool_ids], [int(weight) for weight in weights]
            ),
        )

    def start_new_voting_period(self) -> str:
        return self._transact("Voter.startNewVotingPeriod()", self.voter.functions.startNewVotingPeriod())

    def _check_gas_price(self) -> None:
        limit = self.network.max_gas_price_gwei
        if not limit:
            return
        gas_price_gwei = float(self.w3.eth.gas_price) / 1e9
        if gas_price_gwei > limit:
            raise GasPriceTooHigh(gas_price_gwei, limit)

    def _transact(self, label: str, call: Any) -> str:
        """
        Build, sign and send one contract call, then wait for its receipt.

        Returns:
            Transaction hash (hex), or DRY_RUN_TX in dry-run mode

        Raises:
            GasPriceTooHigh: gas price above MAX_GAS_PRICE_GWEI
            TransactionFailed: receipt status is not 1
        """
        if self.dry_run:
            logger.info(f"[dry-run] Would send {label} from {self.operator_address}")
            return DRY_RUN_TX

        self._check_gas_price()
        tx = call.build_transaction(
            {
                "from": self.account.address,
                "nonce": self.w3.eth.get_transaction_count(self.account.address, "pending"),
                "chainId": self.w3.eth.chain_id,
            }
        )
        signed = self.account.sign_transaction(tx)
        tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        tx_hash_hex = Web3.to_hex(tx_hash)
        logger.info(f"Sent {label}: {tx_hash_hex}")

        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.network.receipt_timeout)
        if receipt["status"] != 1:
            raise TransactionFailed(label, tx_hash_hex, dict(receipt))
        logger.info(f"Confirmed {label} in block {receipt['blockNumber']} (gas used {receipt['gasUsed']:,})")
        return tx_hash_hex
