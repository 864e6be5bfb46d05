"""
Configuration constants and settings for Farm Sync.

Centralizes environment-driven configuration including:
- Signing
- Defaults for per-run settings (parsed in config.load_network_config)
- Logging
"""

import os
from dotenv import load_dotenv

load_dotenv()

# ═══ Signing ═══
# Raw key, key file path, or 1Password reference (op://Vault/Item/field)
PRIVATE_KEY = os.getenv("PRIVATE_KEY", "")

# ═══ Run Defaults ═══
DEFAULT_VOTE_LIMIT = "1.5"
DEFAULT_PAGE_SIZE = 100
DEFAULT_RPC_TIMEOUT = 30
DEFAULT_TX_RECEIPT_TIMEOUT = 300
# 0 disables the gas price ceiling
DEFAULT_MAX_GAS_PRICE_GWEI = 0.0

# ═══ Logging ═══
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", "")
