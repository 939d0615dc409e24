"""
Stake Ledger Configuration

Loads config.toml at startup.
Environment variables override TOML values.
"""

from .loader import (
    ProgramSectionConfig,
    RewardsConfig,
    RentConfig,
    LoggingConfig,
    StakeLedgerConfig,
    load_config,
)

__all__ = [
    "ProgramSectionConfig",
    "RewardsConfig",
    "RentConfig",
    "LoggingConfig",
    "StakeLedgerConfig",
    "load_config",
]
