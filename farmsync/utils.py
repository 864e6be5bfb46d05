"""
Utility functions for Farm Sync.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Union

from web3 import Web3

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Setup logging configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path
    """
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


def from_fixed_point(amount: int) -> Decimal:
    """
    Convert an 18-decimal on-chain amount to a Decimal.

    Args:
        amount: Amount in wei

    Returns:
        Human-readable amount
    """
    return Decimal(Web3.from_wei(int(amount), "ether"))


def to_fixed_point(value: Union[Decimal, int, str]) -> int:
    """
    Convert a decimal amount to its 18-decimal on-chain form.

    Args:
        value: Human-readable amount

    Returns:
        Amount in wei
    """
    return int(Web3.to_wei(Decimal(str(value)), "ether"))


def is_zero_address(address: Optional[str]) -> bool:
    return not address or address.lower() == ZERO_ADDRESS


def checksum_address(address: str) -> str:
    """
    Convert address to checksum format.

    Args:
        address: Ethereum address

    Returns:
        Checksummed address
    """
    return Web3.to_checksum_address(address)


def truncate_address(address: str, chars: int = 6) -> str:
    """
    Truncate Ethereum address for display.

    Args:
        address: Ethereum address
        chars: Number of characters to show on each end

    Returns:
        Truncated address (e.g., "0xabc...123")
    """
    if len(address) <= chars * 2 + 3:
        return address
    return f"{address[:chars]}...{address[-chars:]}"


def epoch_to_datetime(timestamp: int) -> datetime:
    """
    Convert Unix timestamp to datetime.

    Args:
        timestamp: Unix timestamp

    Returns:
        Datetime object in UTC
    """
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)
