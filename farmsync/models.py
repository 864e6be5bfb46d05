"""
Plain data records passed between the chain layer and the reconciler.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class VoteTally:
    """Raw governance vote weight for a pool, already converted from wei."""
    pool_address: str
    votes: Decimal


@dataclass(frozen=True)
class FarmRecord:
    """On-chain registration mapping a pool to its MasterChef pid."""
    pool_address: str
    farm_id: int


@dataclass(frozen=True)
class PoolParams:
    """Immutable parameters of a bin (LB) pair."""
    token_x: str
    token_y: str
    bin_step: int


@dataclass(frozen=True)
class FixedFarm:
    """A pool with a hard-coded target weight for the fixed-farm flow."""
    pool_address: str
    weight: Decimal


@dataclass
class PoolWeightEntry:
    """One pool's target allocation; farm_id stays None until the pool is registered."""
    pool_address: str
    weight: Decimal
    farm_id: Optional[int] = None

    @property
    def has_farm(self) -> bool:
        return self.farm_id is not None


@dataclass(frozen=True)
class RewardRangeConfig:
    """Per bin-step (bin_start, bin_end) delta window for LB rewarders."""
    default: Tuple[int, int]
    ranges: Dict[int, Tuple[int, int]] = field(default_factory=dict)

    def range_for(self, bin_step: int) -> Tuple[int, int]:
        return self.ranges.get(int(bin_step), self.default)


@dataclass
class PublishResult:
    """What a publish pass pushed to the Voter and MasterChef."""
    entries: List[PoolWeightEntry]
    pool_ids: List[int]
    weights: List[int]
    previous_pool_ids: List[int]
