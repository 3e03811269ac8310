"""Genesis dump configuration.

Constants mirror the deployment script that produced the original L2 genesis
state dumps. Anything a run may want to vary lives on `DumpConfig`, which is
passed explicitly into every entry point.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from .errors import ErrorCode, DumpError

ADDRESS_LENGTH = 20

ZERO_ADDRESS = bytes(ADDRESS_LENGTH)

# Placeholder addresses are this base with the index written into the last two bytes.
STARTING_DEAD_ADDRESS = bytes.fromhex("00000000000000000000000000000000dead0000")
PLACEHOLDER_INDEX_BYTES = 2
MAX_PLACEHOLDERS = 1 << (8 * PLACEHOLDER_INDEX_BYTES)

# Reserved targets for the system contracts
DESIRED_EXECUTION_MANAGER_ADDRESS = bytes.fromhex("00000000000000000000000000000000dead0000")
DESIRED_STATE_MANAGER_ADDRESS = bytes.fromhex("00000000000000000000000000000000dead0001")
L2_TO_L1_MESSAGE_PASSER_ADDRESS = bytes.fromhex("4200000000000000000000000000000000000000")
L1_MESSAGE_SENDER_ADDRESS = bytes.fromhex("4200000000000000000000000000000000000001")

# Code hash fingerprint names as they appear in the deployment input
L2_TO_L1_MESSAGE_PASSER = "l2ToL1MessagePasser"
L1_MESSAGE_SENDER = "l1MessageSender"

# Execution limits
GAS_LIMIT = 15_000_000
GAS_POOL = 100_000_000

# Output files
HEX_DUMP_FILENAME = "state-dump.hex"
JSON_DUMP_FILENAME = "state-dump.json"
DEFAULT_INPUT_FILENAME = "deployment-tx-data.json"

# Chain
CHAIN_ID_MAINNET = 1


@dataclass(frozen=True)
class ChainConfig:
    """Fork schedule handed to the execution engine; every fork is active at genesis."""
    chain_id: int = CHAIN_ID_MAINNET
    homestead_block: int = 0
    dao_fork_block: int = 0
    dao_fork_support: bool = False
    eip150_block: int = 0
    eip155_block: int = 0
    eip158_block: int = 0
    byzantium_block: int = 0
    constantinople_block: int = 0


def _default_code_hash_targets() -> Dict[str, bytes]:
    return {
        L2_TO_L1_MESSAGE_PASSER: L2_TO_L1_MESSAGE_PASSER_ADDRESS,
        L1_MESSAGE_SENDER: L1_MESSAGE_SENDER_ADDRESS,
    }


@dataclass
class DumpConfig:
    """Parameters for one dump build."""
    chain: ChainConfig = field(default_factory=ChainConfig)
    gas_limit: int = GAS_LIMIT
    gas_pool: int = GAS_POOL

    # Remapping
    placeholder_base: bytes = STARTING_DEAD_ADDRESS
    desired_execution_manager: bytes = DESIRED_EXECUTION_MANAGER_ADDRESS
    desired_state_manager: bytes = DESIRED_STATE_MANAGER_ADDRESS
    code_hash_targets: Dict[str, bytes] = field(default_factory=_default_code_hash_targets)

    # Outputs
    hex_dump_filename: str = HEX_DUMP_FILENAME
    json_dump_filename: str = JSON_DUMP_FILENAME

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "DumpConfig":
        """Load configuration overrides from environment variables."""
        env = os.environ if environ is None else environ
        config = cls()

        gas_limit = _int_env(env, "GENESIS_DUMP_GAS_LIMIT")
        if gas_limit is not None:
            config.gas_limit = gas_limit

        chain_id = _int_env(env, "GENESIS_DUMP_CHAIN_ID")
        if chain_id is not None:
            config.chain = ChainConfig(chain_id=chain_id)

        return config


def _int_env(env: Dict[str, str], name: str) -> Optional[int]:
    raw = env.get(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw, 0)
    except ValueError:
        raise DumpError(ErrorCode.INVALID_FORMAT, f"{name} must be an integer, got {raw!r}")
