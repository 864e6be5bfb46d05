"""
Farm reconciler: keep MasterChef farms and Voter weights in line with target pool weights.

Flow for one run:
1. Compute candidate (pool, weight, farm id) entries
2. Provision farms / LB rewarders for pools without a farm id
3. Re-fetch, drop pools still without a farm id, push weights and settle MasterChef

Every provisioning step checks for existing on-chain state first, so a run that
crashed part-way is recovered by running the whole job again.
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from config import NetworkConfig
from farmsync.errors import ConfigError, RewarderNotFound
from farmsync.models import PoolWeightEntry, PublishResult
from farmsync.utils import to_fixed_point

logger = logging.getLogger(__name__)


def sort_entries(entries: List[PoolWeightEntry]) -> List[PoolWeightEntry]:
    """Highest weight first; equal weights ordered by lower-cased pool address."""
    return sorted(entries, key=lambda e: (-e.weight, e.pool_address.lower()))


class FarmReconciler:
    """Vote-driven reconciler: pools at or above the vote limit get farms and weights."""

    # Settle the previously published pids before replacing them.
    settle_previous_pool_ids = True

    def __init__(self, network: NetworkConfig, reader, writer):
        """
        Initialize reconciler.

        Args:
            network: Network configuration (vote limit, lens window, reward ranges)
            reader: ChainReader-compatible read client
            writer: ChainWriter-compatible write client
        """
        self.network = network
        self.reader = reader
        self.writer = writer

    def target_weights(self) -> List[Tuple[str, Decimal]]:
        """Vote tallies at or above the vote limit, as (pool, weight) pairs."""
        tallies = self.reader.get_vote_tallies(0, self.network.page_size)
        kept = [t for t in tallies if t.votes >= self.network.min_votes]
        logger.info(
            f"{len(kept)}/{len(tallies)} voted pools at or above vote limit {self.network.min_votes}"
        )
        return [(t.pool_address, t.votes) for t in kept]

    def farm_ids_by_pool(self) -> Dict[str, int]:
        """Lower-cased pool address -> farm id; the first farm listed for a pool wins."""
        farm_ids: Dict[str, int] = {}
        for record in self.reader.get_farm_records(0, self.network.page_size):
            farm_ids.setdefault(record.pool_address.lower(), record.farm_id)
        return farm_ids

    def compute_candidate_weights(self) -> List[PoolWeightEntry]:
        """
        Join target weights with registered farms.

        Returns:
            Entries sorted by descending weight; farm_id is None for unregistered pools
        """
        targets = self.target_weights()
        farm_ids = self.farm_ids_by_pool()
        entries = [
            PoolWeightEntry(pool_address=pool, weight=weight, farm_id=farm_ids.get(pool.lower()))
            for pool, weight in targets
        ]
        return sort_entries(entries)

    def provision_missing(self, entries: List[PoolWeightEntry]) -> List[str]:
        """
        Register farms (constant-product pools) or ensure rewarders (LB pools)
        for every entry without a farm id.

        Returns:
            Pool addresses that were acted on
        """
        missing = [e for e in entries if not e.has_farm]
        if not missing:
            logger.info("All candidate pools already have farms")
            return []

        provisioned = []
        for entry in missing:
            pool = entry.pool_address
            if self.reader.is_constant_product_pool(pool):
                logger.info(f"Adding pool [{pool}] to MasterChef")
                self.writer.add_farm(pool)
            else:
                logger.info(f"Ensuring LB rewarder for pool [{pool}]")
                self.ensure_rewarder(pool)
            provisioned.append(pool)
        return provisioned

    def ensure_rewarder(self, pool_address: str) -> Optional[str]:
        """
        Make sure an LB pair has a rewarder and that its bin range is applied.

        The bin range is (re)applied on every call, whether the rewarder was
        just created or already existed.

        Returns:
            Rewarder address, or None in dry-run mode when creation was only simulated
        """
        rewarder = self.reader.get_rewarder(pool_address)
        params = self.reader.get_pool_params(pool_address)
        bin_start, bin_end = self.network.reward_ranges.range_for(params.bin_step)

        if rewarder is None:
            owner = self.writer.operator_address
            logger.info(
                f"Creating rewarder for pool [{pool_address}] with {params.token_x}, {params.token_y}, "
                f"binStep={params.bin_step}, owner={owner}"
            )
            self.writer.create_rewarder(params.token_x, params.token_y, params.bin_step, owner)
            rewarder = self.reader.get_rewarder(pool_address)
            if rewarder is None:
                if self.writer.dry_run:
                    logger.warning(f"[dry-run] No rewarder bound to [{pool_address}]; skipping bin range")
                    return None
                raise RewarderNotFound(pool_address)
        else:
            logger.info(f"Rewarder exists for pool [{pool_address}]: {rewarder}")

        logger.info(f"Set bin range [{bin_start}, {bin_end}] for rewarder [{rewarder}]")
        self.writer.set_delta_bins(rewarder, bin_start, bin_end)
        return rewarder

    def previous_pool_ids(self, pool_ids: List[int]) -> List[int]:
        if self.settle_previous_pool_ids:
            return self.reader.get_top_pool_ids()
        return list(pool_ids)

    def publish_weights(self) -> PublishResult:
        """
        Re-fetch candidates and push the weights of every pool that has a farm id.

        MasterChef is settled for the previous pid set before the Voter update
        and for the new pid set after it.
        """
        entries = self.compute_candidate_weights()
        ready = [e for e in entries if e.has_farm]
        if len(ready) < len(entries):
            skipped = [e.pool_address for e in entries if not e.has_farm]
            logger.info(f"Skipping {len(skipped)} pools without a farm: {skipped}")
        if not ready:
            logger.warning("No pool has a farm; publishing an empty weight vector")

        pool_ids = [e.farm_id for e in ready]
        weights = [to_fixed_point(e.weight) for e in ready]
        logger.info(f"Pids {pool_ids}")
        logger.info(f"Weights {weights}")

        previous = self.previous_pool_ids(pool_ids)
        logger.info(f"Update old allocations on MasterChef {previous}")
        self.writer.update_all(previous)

        logger.info("Set weights and pids on Voter")
        self.writer.set_top_pool_ids_with_weights(pool_ids, weights)

        logger.info("Update new allocations on MasterChef")
        self.writer.update_all(pool_ids)

        return PublishResult(entries=ready, pool_ids=pool_ids, weights=weights, previous_pool_ids=previous)

    def run(self) -> PublishResult:
        entries = self.compute_candidate_weights()
        self.provision_missing(entries)
        return self.publish_weights()


class FixedFarmReconciler(FarmReconciler):
    """Same flow with weights taken from the network's fixedFarms list instead of votes."""

    settle_previous_pool_ids = False

    def target_weights(self) -> List[Tuple[str, Decimal]]:
        if not self.network.fixed_farms:
            raise ConfigError(f"fixedFarms not set for network '{self.network.name}'")
        return [(farm.pool_address, farm.weight) for farm in self.network.fixed_farms]
