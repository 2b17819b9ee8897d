"""
Application constants.

Centralized constants for the application.
"""

# ========================================================================
# RPC TRANSPORT CONSTANTS
# ========================================================================

# Per-attempt timeout for a single endpoint (in seconds)
RPC_TIMEOUT = 10.0

# JSON-RPC envelope version
JSONRPC_VERSION = "2.0"

# Gas estimate safety margin (multiplier applied to eth_estimateGas)
GAS_ESTIMATE_MARGIN = 1.2

# Receipt polling
RECEIPT_TIMEOUT = 180.0  # Seconds to wait for a transaction receipt
RECEIPT_POLL_INTERVAL = 2.0  # Seconds between receipt checks

# ========================================================================
# BALANCE MONITOR CONSTANTS
# ========================================================================

MONITOR_RECONNECT_INTERVAL = 5.0  # Fixed WebSocket reconnection delay in seconds
MONITOR_MAX_RECONNECT_ATTEMPTS = 10  # Maximum consecutive reconnection attempts
MONITOR_DEFAULT_MIN_INCREASE = "0.01"  # Native units, strict greater-than
MONITOR_DEFAULT_BRIDGE_AMOUNT = "100%"  # Bridge all newly received funds
MONITOR_WS_PING_INTERVAL = 30  # WebSocket keepalive ping interval
MONITOR_WS_PING_TIMEOUT = 10  # WebSocket keepalive pong timeout
MONITOR_SUBSCRIBE_TIMEOUT = 30.0  # Seconds to wait for the eth_subscribe confirmation

NATIVE_DECIMALS = 18
AMOUNT_QUANTUM_DECIMALS = 18  # Bridge amounts are truncated to wei precision

# ========================================================================
# CHAIN DEFAULTS
# ========================================================================

MONAD_TESTNET_CHAIN_ID = 10143
AVALANCHE_FUJI_CHAIN_ID = 43113
AVALANCHE_FUJI_RPC_URL = "https://api.avax-test.network/ext/bc/C/rpc"
AVALANCHE_FUJI_WS_URL = "wss://avalanche-fuji-c-chain-rpc.publicnode.com"

# ========================================================================
# BRIDGE CONSTANTS (Wormhole testnet)
# ========================================================================

# Wormhole chain identifiers (not EVM chain ids)
WORMHOLE_CHAIN_AVALANCHE = 6
WORMHOLE_CHAIN_MONAD = 48

# Avalanche Fuji contracts
FUJI_TOKEN_BRIDGE_ADDRESS = "0x61E44E506Ca5659E6c0bba9b678586fA2d729756"
FUJI_CORE_BRIDGE_ADDRESS = "0x7bbcE28e64B3F8b84d876Ab298393c38ad7aac4C"

WORMHOLESCAN_TESTNET_API = "https://api.testnet.wormholescan.io"

BRIDGE_ATTESTATION_TIMEOUT = 25 * 60  # 25 minutes
BRIDGE_ATTESTATION_POLL_INTERVAL = 15.0  # Seconds between attestation checks
BRIDGE_HTTP_TIMEOUT = 30.0  # Attestation API request timeout
SHUTDOWN_BRIDGE_TIMEOUT = 120.0  # Grace period for in-flight bridges on shutdown

# ========================================================================
# KEY STORE
# ========================================================================

WALLET_KEY_PREFIX = "wallet"  # wallet:{user_id} / wallet:{user_id}:address
