"""
Application constants.

Centralized constants for the deposit monitor.
"""

# ========================================================================
# NETWORK
# ========================================================================

BSC_MAINNET_RPC_URL = "https://bsc-dataseed.binance.org/"
BSC_TESTNET_RPC_URL = "https://data-seed-prebsc-1-s1.binance.org:8545/"

# RPC provider HTTP timeout (in seconds)
RPC_TIMEOUT = 30.0

# ========================================================================
# DEPOSIT MONITOR
# ========================================================================

# Deposited stablecoin uses 6 decimals on-chain
DEPOSIT_TOKEN_DECIMALS = 6

# Don't consider blocks final until 12 confirmations
DEFAULT_REORG_SAFETY_BLOCKS = 12

# Maximum blocks scanned per tick to bound RPC load
DEFAULT_BATCH_SIZE = 100

DEFAULT_MONITOR_INTERVAL_SECONDS = 10

# Retry settings (per tick)
MONITOR_MAX_ATTEMPTS = 3
MONITOR_RETRY_BASE_DELAY = 1.0  # 2s, 4s, 8s...
MONITOR_RATE_LIMIT_COOLDOWN = 30.0

# Scheduler job identifier
DEPOSIT_MONITOR_JOB_ID = "deposit_monitor"

# ========================================================================
# LEDGER
# ========================================================================

# Scale of stored deposit amounts and balances, matches MoneyType
AMOUNT_SCALE = 8
