from dataclasses import dataclass

# Environment variable holding the RPC provider key (loaded via .env by main.py)
API_KEY_ENV_VAR = "HELIUS_API_KEY"

# Chain configuration for the slot search
CHAIN_CONFIG = {
    "mainnet": {
        "rpc_url": "https://mainnet.helius-rpc.com",
        "explorer_url": "https://explorer.solana.com/block/{}",
    },
    "devnet": {
        "rpc_url": "https://devnet.helius-rpc.com",
        "explorer_url": "https://explorer.solana.com/block/{}?cluster=devnet",
    },
    "testnet": {
        "rpc_url": "https://api.testnet.solana.com",
        "explorer_url": "https://explorer.solana.com/block/{}?cluster=testnet",
    },
    # Add additional clusters here if needed
}
DEFAULT_NETWORK = "mainnet"

# HTTP settings (seconds). requests applies these as (connect, read): TOTAL_TIMEOUT
# bounds each wait for response bytes, not the wall time of a whole call.
CONNECT_TIMEOUT = 5
TOTAL_TIMEOUT = 10

# Search settings
NEIGHBOR_PROBE_WIDTH = 20        # slots probed on each side of a skipped midpoint
HIGHEST_MATCH_SCAN_BUDGET = 100  # forward probes when canonicalising an exact match
SEARCH_DELAY = 0.01              # pause between binary search iterations
SCAN_DELAY = 0.005               # pause between sequential forward/backward probes

# JSON-RPC error codes that mean "no block for this slot" rather than a failure
BLOCK_NOT_AVAILABLE_CODES = {
    -32004,  # block not available for slot
    -32007,  # slot was skipped, or missing due to ledger jump
    -32009,  # slot was skipped, or missing in long-term storage
}


@dataclass
class SearchConfig:
    """
    Everything a single resolution needs. Built by the CLI (or by callers
    embedding the search) and passed explicitly to find_slot_at_or_before.
    """
    endpoint: str = CHAIN_CONFIG[DEFAULT_NETWORK]["rpc_url"]
    api_key: str | None = None
    connect_timeout: float = CONNECT_TIMEOUT
    total_timeout: float = TOTAL_TIMEOUT
    neighbor_probe_width: int = NEIGHBOR_PROBE_WIDTH
    highest_match_scan_budget: int = HIGHEST_MATCH_SCAN_BUDGET
    search_delay: float = SEARCH_DELAY
    scan_delay: float = SCAN_DELAY
    verbose: bool = False
