"""
Error types for farm sync jobs.

Every job failure surfaces as a FarmSyncError (or a raw web3 error) and is
turned into a non-zero exit status by the CLI.
"""

from typing import Optional


class FarmSyncError(Exception):
    """Base error for reconcile and voting-period jobs."""


class ConfigError(FarmSyncError):
    """Missing or malformed network / environment configuration."""


class GasPriceTooHigh(FarmSyncError):
    """Current gas price is above the configured ceiling."""

    def __init__(self, gas_price_gwei: float, limit_gwei: float):
        self.gas_price_gwei = gas_price_gwei
        self.limit_gwei = limit_gwei
        super().__init__(
            f"Gas price {gas_price_gwei:.2f} Gwei exceeds limit {limit_gwei} Gwei"
        )


class TransactionFailed(FarmSyncError):
    """A write was mined but reverted (receipt status 0)."""

    def __init__(self, label: str, tx_hash: str, receipt: Optional[dict] = None):
        self.label = label
        self.tx_hash = tx_hash
        self.receipt = receipt
        super().__init__(f"{label} reverted: {tx_hash}")


class RewarderNotFound(FarmSyncError):
    """No rewarder is bound to a pair even after creating one."""

    def __init__(self, pool_address: str):
        self.pool_address = pool_address
        super().__init__(f"No rewarder bound to pool {pool_address} after creation")
