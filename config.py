import os
from pathlib import Path
from typing import NamedTuple

# Moment every network's start block is pinned to (2024-06-01 00:00:00 UTC)
TARGET_TIMESTAMP = 1717200000

# Start block config document
CONFIG_PATH = Path("config.json")
BACKUP_SUFFIX = ".old"  # previous document is kept as config.json.old
WRITE_MAX_RETRIES = 3
WRITE_RETRY_DELAY = 1  # seconds

# Per-request timeout handed to the RPC / gateway transport
RPC_TIMEOUT = 30  # seconds

DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def log_level(environ=None):
    """LOG_LEVEL from the environment, read at call time so .env values count."""
    environ = os.environ if environ is None else environ
    return environ.get("LOG_LEVEL", DEFAULT_LOG_LEVEL).strip().upper() or DEFAULT_LOG_LEVEL


# Network families, each served by its own ledger source (see main.SOURCE_FACTORIES)
EVM = "evm"
LEDGER_GATEWAY = "ledger-gateway"


class Network(NamedTuple):
    name: str      # key under network_start_block
    env_var: str   # environment variable holding the endpoint
    family: str

    def endpoint(self, environ=None):
        """Endpoint from the environment; empty string when unset."""
        environ = os.environ if environ is None else environ
        return environ.get(self.env_var, "").strip()


NETWORKS = [
    Network("Ethereum", "ETHEREUM_RPC_URL", EVM),
    Network("Polygon", "POLYGON_RPC_URL", EVM),
    Network("Avalanche", "AVALANCHE_RPC_URL", EVM),
    Network("Optimism", "OPTIMISM_RPC_URL", EVM),
    Network("Arbitrum", "ARBITRUM_RPC_URL", EVM),
    Network("Gnosis", "GNOSIS_RPC_URL", EVM),
    Network("Linea", "LINEA_RPC_URL", EVM),
    Network("Binance Smart Chain", "BSC_RPC_URL", EVM),
    Network("Base", "BASE_RPC_URL", EVM),
    Network("Crossbell", "CROSSBELL_RPC_URL", EVM),
    Network("VSL", "VSL_RPC_URL", EVM),
    Network("X-Layer", "XLAYER_RPC_URL", EVM),
    Network("Arweave", "ARWEAVE_RPC_URL", LEDGER_GATEWAY),
    # Add additional networks here if needed
]
