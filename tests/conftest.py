"""
Pytest configuration and fixtures for Farm Sync tests.
"""
import sys
from decimal import Decimal
from pathlib import Path

import pytest

# Add project root to path for imports
ROOT_DIR = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT_DIR))

from config import NetworkConfig
from farmsync.models import FarmRecord, FixedFarm, PoolParams, RewardRangeConfig, VoteTally

POOL_A = "0x" + "aa" * 20
POOL_B = "0x" + "bb" * 20
POOL_C = "0x" + "cc" * 20
TOKEN_X = "0x" + "01" * 20
TOKEN_Y = "0x" + "02" * 20
OPERATOR = "0x" + "0f" * 20


class FakeChain:
    """
    In-memory stand-in for both ChainReader and ChainWriter.

    Writes are recorded in `calls` and mutate state the way the contracts would:
    add() registers a farm, createLBHooksMCRewarder binds a rewarder.
    """

    def __init__(self, tallies=None, farms=None, constant_product=None, rewarders=None,
                 pool_params=None, top_pool_ids=None, period=(1, 0, 100)):
        self.tallies = list(tallies or [])
        self.farms = list(farms or [])
        self.constant_product = set(constant_product or [])
        self.rewarders = dict(rewarders or {})
        self.pool_params = dict(pool_params or {})
        self.top_pool_ids = list(top_pool_ids or [])
        self.period = period
        self.calls = []
        self.dry_run = False
        self.operator_address = OPERATOR
        self.next_farm_id = 100
        self.page_requests = []

    # Reader side

    def get_vote_tallies(self, start=0, count=None):
        self.page_requests.append(("votes", start, count))
        return list(self.tallies)

    def get_farm_records(self, start=0, count=None):
        self.page_requests.append(("farms", start, count))
        return list(self.farms)

    def is_constant_product_pool(self, pool_address):
        return pool_address in self.constant_product

    def get_pool_params(self, pool_address):
        return self.pool_params.get(pool_address, PoolParams(TOKEN_X, TOKEN_Y, 25))

    def get_rewarder(self, pool_address):
        return self.rewarders.get(pool_address)

    def get_top_pool_ids(self):
        return list(self.top_pool_ids)

    def get_current_voting_period(self):
        return self.period[0]

    def get_period_window(self, period):
        return self.period[1], self.period[2]

    # Writer side

    def add_farm(self, pool_address):
        self.calls.append(("add_farm", pool_address))
        self.farms.append(FarmRecord(pool_address, self.next_farm_id))
        self.next_farm_id += 1
        return "0xadd"

    def create_rewarder(self, token_x, token_y, bin_step, owner):
        self.calls.append(("create_rewarder", token_x, token_y, bin_step, owner))
        for pool, params in self.pool_params.items():
            if params == PoolParams(token_x, token_y, bin_step) and not self.dry_run:
                self.rewarders[pool] = f"rewarder-{pool}"
        return "0xcreate"

    def set_delta_bins(self, rewarder, bin_start, bin_end):
        self.calls.append(("set_delta_bins", rewarder, bin_start, bin_end))
        return "0xbins"

    def update_all(self, pool_ids):
        self.calls.append(("update_all", list(pool_ids)))
        return "0xupdate"

    def set_top_pool_ids_with_weights(self, pool_ids, weights):
        self.calls.append(("set_top_pool_ids_with_weights", list(pool_ids), list(weights)))
        self.top_pool_ids = list(pool_ids)
        return "0xweights"

    def start_new_voting_period(self):
        self.calls.append(("start_new_voting_period",))
        return "0xperiod"

    def calls_named(self, name):
        return [c for c in self.calls if c[0] == name]


def make_network(**overrides):
    values = dict(
        name="testnet",
        rpc_url="http://localhost:8545",
        farm_lens="0x" + "10" * 20,
        master_chef="0x" + "20" * 20,
        voter="0x" + "30" * 20,
        lb_hooks_manager="0x" + "40" * 20,
        lb_hooks_lens="0x" + "50" * 20,
        reward_ranges=RewardRangeConfig(default=(-5, 5), ranges={25: (-10, 10)}),
        fixed_farms=(),
        min_votes=Decimal("1.5"),
        page_size=100,
    )
    values.update(overrides)
    return NetworkConfig(**values)


@pytest.fixture
def network():
    return make_network()


@pytest.fixture
def tally():
    def _tally(pool, votes):
        return VoteTally(pool, Decimal(str(votes)))
    return _tally


@pytest.fixture
def fixed_farm():
    def _fixed(pool, weight):
        return FixedFarm(pool, Decimal(str(weight)))
    return _fixed
