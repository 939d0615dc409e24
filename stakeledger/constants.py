"""
Stake Ledger Constants

This module consolidates all global constants and environment configuration
used throughout the codebase. Constants are organized by category for easy
reference and maintenance.
"""
import ast

from dotenv import dotenv_values
from eth_utils import keccak

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
# Load environment variables once at module import
_config = dotenv_values(".env")

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                       'INFO',
    'LOG_FORMAT':                      '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':                 '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING':        'True',
    'LOG_FILE_OUTPUT':                 'False',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024 # 10MB
LOG_BACKUP_COUNT = 5


# ==================================================================================
# INTEGER LIMITS
# ==================================================================================
U64_MAX = 2**64 - 1


# ==================================================================================
# ADDRESSES AND DERIVATION
# ==================================================================================
ADDRESS_PREFIX = "0x"
ADDRESS_BYTES = 32
ADDRESS_LENGTH = ADDRESS_BYTES * 2  # hex chars, without prefix

MAX_SEEDS = 16
MAX_SEED_LENGTH = 32
PDA_MARKER = b"ProgramDerivedAddress"

# Program identities are fixed digests so every caller derives the same accounts
STAKE_PROGRAM_ID = ADDRESS_PREFIX + keccak(text="stakeledger:stake_program").hex()
TOKEN_PROGRAM_ID = ADDRESS_PREFIX + keccak(text="stakeledger:token_program").hex()
ASSOCIATED_TOKEN_PROGRAM_ID = ADDRESS_PREFIX + keccak(text="stakeledger:associated_token_program").hex()
SYSTEM_PROGRAM_ID = ADDRESS_PREFIX + "00" * ADDRESS_BYTES


# ==================================================================================
# STAKE PROGRAM
# ==================================================================================
REWARD_VAULT_SEED = b"reward"
STAKE_INFO_SEED = b"stake_info"

ACCOUNT_DISCRIMINATOR_SIZE = 8
STAKE_RECORD_DISCRIMINATOR = keccak(text="account:StakeRecord")[:ACCOUNT_DISCRIMINATOR_SIZE]

# Custom program error codes start here
ERROR_CODE_OFFSET = 6000

# Reward accrual: (amount * NUMERATOR // DENOMINATOR) per elapsed period, i.e. 1%
DEFAULT_REWARD_RATE_NUMERATOR = 1_000
DEFAULT_REWARD_RATE_DENOMINATOR = 100_000
DEFAULT_REWARD_PERIOD_SECONDS = 1
DEFAULT_REWARD_BASIS = "position"


# ==================================================================================
# STORAGE DEPOSIT (RENT)
# ==================================================================================
LAMPORTS_PER_BYTE_YEAR = 3480
EXEMPTION_THRESHOLD_YEARS = 2
ACCOUNT_STORAGE_OVERHEAD = 128


# ==================================================================================
# CONFIGURATION WRAPPERS
# ==================================================================================
class ConfigString(str):
    """
    String subclass that stores a default value.
    """
    def __new__(cls, value, default):
        obj = str.__new__(cls, value)
        obj._default = default
        return obj

    def default(self):
        return self._default

class ConfigBool(int):
    """
    Int subclass acting as a boolean that stores a default value.
    """
    def __new__(cls, value, default):
        obj = int.__new__(cls, bool(value))
        obj._default = default
        return obj

    def default(self):
        return self._default

    def __repr__(self):
        return str(bool(self))

    def __str__(self):
        return str(bool(self))

    def __eq__(self, other):
        return bool(self) == other

    __hash__ = int.__hash__


# ==================================================================================
# DYNAMIC CONFIGURATION LOADING
# ==================================================================================
DEFAULTS = dict(LOGGER_DEFAULTS)
namespace = globals()

def parse_bool(v):
    """
    Convert "True"/"False" (any casing, with surrounding whitespace) into bool.
    Avoids exceptions by only calling ast.literal_eval for known literals.
    """
    if not isinstance(v, str):
        return v
    s = v.strip()
    if not s:
        return v
    if s.casefold() in {"true", "false"}:
        return ast.literal_eval(s.title())
    return v

for key, default_raw in DEFAULTS.items():
    # dotenv_values returns strings or None. None is treated as missing.
    raw = _config.get(key)
    value_raw = default_raw if raw is None else raw

    value = parse_bool(value_raw)
    default_val = parse_bool(default_raw)

    if isinstance(value, bool):
        namespace[key] = ConfigBool(value, default_val)
    else:
        namespace[key] = ConfigString(value_raw, default_val)
