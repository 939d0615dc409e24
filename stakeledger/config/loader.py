"""
Stake Ledger TOML Configuration Loader

Loads every section of config.toml with environment variable overrides
(dataclass + from_dict + from_file per section).

Environment variable mapping:
    [program] require_reward_vault_on_stake → STAKELEDGER_REQUIRE_REWARD_VAULT
    [rewards] rate_numerator                → STAKELEDGER_REWARD_RATE_NUMERATOR
    [rewards] rate_denominator              → STAKELEDGER_REWARD_RATE_DENOMINATOR
    [rewards] period_seconds                → STAKELEDGER_REWARD_PERIOD_SECONDS
    [rewards] basis                         → STAKELEDGER_REWARD_BASIS
    [logging] level                         → STAKELEDGER_LOG_LEVEL
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..constants import (
    ACCOUNT_STORAGE_OVERHEAD,
    DEFAULT_REWARD_BASIS,
    DEFAULT_REWARD_PERIOD_SECONDS,
    DEFAULT_REWARD_RATE_DENOMINATOR,
    DEFAULT_REWARD_RATE_NUMERATOR,
    EXEMPTION_THRESHOLD_YEARS,
    LAMPORTS_PER_BYTE_YEAR,
    STAKE_PROGRAM_ID,
)
from ..crypto.address import is_valid_address
from ..exceptions import ConfigurationError
from ..logger import LogManager
from ..runtime.accounts import Rent

logger = logging.getLogger(__name__)

REWARD_BASES = ("position", "withdrawn")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


# ---------------------------------------------------------------------------
# Section dataclasses, one per [section] of config.example.toml
# ---------------------------------------------------------------------------


@dataclass
class ProgramSectionConfig:
    """[program] section."""
    program_id: str = STAKE_PROGRAM_ID
    require_reward_vault_on_stake: bool = True
    admins: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProgramSectionConfig":
        return cls(
            program_id=data.get("program_id", STAKE_PROGRAM_ID),
            require_reward_vault_on_stake=data.get("require_reward_vault_on_stake", True),
            admins=list(data.get("admins", [])),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("STAKELEDGER_REQUIRE_REWARD_VAULT"):
            self.require_reward_vault_on_stake = _env_bool(v)
        if v := os.environ.get("STAKELEDGER_ADMINS"):
            self.admins = [a.strip() for a in v.split(",") if a.strip()]


@dataclass
class RewardsConfig:
    """[rewards] section."""
    rate_numerator: int = DEFAULT_REWARD_RATE_NUMERATOR
    rate_denominator: int = DEFAULT_REWARD_RATE_DENOMINATOR
    period_seconds: int = DEFAULT_REWARD_PERIOD_SECONDS
    basis: str = DEFAULT_REWARD_BASIS

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RewardsConfig":
        return cls(
            rate_numerator=data.get("rate_numerator", DEFAULT_REWARD_RATE_NUMERATOR),
            rate_denominator=data.get("rate_denominator", DEFAULT_REWARD_RATE_DENOMINATOR),
            period_seconds=data.get("period_seconds", DEFAULT_REWARD_PERIOD_SECONDS),
            basis=data.get("basis", DEFAULT_REWARD_BASIS),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("STAKELEDGER_REWARD_RATE_NUMERATOR"):
            self.rate_numerator = int(v)
        if v := os.environ.get("STAKELEDGER_REWARD_RATE_DENOMINATOR"):
            self.rate_denominator = int(v)
        if v := os.environ.get("STAKELEDGER_REWARD_PERIOD_SECONDS"):
            self.period_seconds = int(v)
        if v := os.environ.get("STAKELEDGER_REWARD_BASIS"):
            self.basis = v.strip().lower()


@dataclass
class RentConfig:
    """[rent] section."""
    lamports_per_byte_year: int = LAMPORTS_PER_BYTE_YEAR
    exemption_threshold_years: int = EXEMPTION_THRESHOLD_YEARS
    account_storage_overhead: int = ACCOUNT_STORAGE_OVERHEAD

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RentConfig":
        return cls(
            lamports_per_byte_year=data.get("lamports_per_byte_year", LAMPORTS_PER_BYTE_YEAR),
            exemption_threshold_years=data.get("exemption_threshold_years", EXEMPTION_THRESHOLD_YEARS),
            account_storage_overhead=data.get("account_storage_overhead", ACCOUNT_STORAGE_OVERHEAD),
        )

    def to_rent(self) -> Rent:
        return Rent(
            lamports_per_byte_year=self.lamports_per_byte_year,
            exemption_threshold_years=self.exemption_threshold_years,
            account_storage_overhead=self.account_storage_overhead,
        )


@dataclass
class LoggingConfig:
    """[logging] section."""
    level: str = "INFO"
    file_output: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingConfig":
        return cls(
            level=str(data.get("level", "INFO")).upper(),
            file_output=data.get("file_output", False),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("STAKELEDGER_LOG_LEVEL"):
            self.level = v.strip().upper()

    def apply(self) -> None:
        """Re-configure the process logging system with this section."""
        LogManager().reconfigure(log_level=self.level, file_output=self.file_output)


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


@dataclass
class StakeLedgerConfig:
    """Complete stakeledger configuration."""
    program: ProgramSectionConfig = field(default_factory=ProgramSectionConfig)
    rewards: RewardsConfig = field(default_factory=RewardsConfig)
    rent: RentConfig = field(default_factory=RentConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StakeLedgerConfig":
        return cls(
            program=ProgramSectionConfig.from_dict(data.get("program", {})),
            rewards=RewardsConfig.from_dict(data.get("rewards", {})),
            rent=RentConfig.from_dict(data.get("rent", {})),
            logging=LoggingConfig.from_dict(data.get("logging", {})),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "StakeLedgerConfig":
        """
        Load configuration from a TOML file.

        A missing file is not an error: defaults (plus env overrides) apply.

        Raises:
            ConfigurationError: File exists but is not valid TOML
        """
        path = Path(config_path)
        if not path.exists():
            logger.warning("Config file not found: %s, using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            return cfg

        try:
            with open(path, "rb") as f:
                raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {config_path}: {e}") from e

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        return cfg

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        self.program.apply_env()
        self.rewards.apply_env()
        self.logging.apply_env()

    def validate(self) -> bool:
        """
        Validate all configuration sections.

        Raises:
            ValueError: on invalid config
        """
        if not is_valid_address(self.program.program_id):
            raise ValueError(f"Invalid program_id: {self.program.program_id}")
        for admin in self.program.admins:
            if not is_valid_address(admin):
                raise ValueError(f"Invalid admin address: {admin}")
        if self.rewards.rate_numerator < 0:
            raise ValueError("rate_numerator must be >= 0")
        if self.rewards.rate_denominator <= 0:
            raise ValueError("rate_denominator must be > 0")
        if self.rewards.period_seconds <= 0:
            raise ValueError("period_seconds must be > 0")
        if self.rewards.basis not in REWARD_BASES:
            raise ValueError(f"Invalid reward basis: {self.rewards.basis}")
        if self.rent.lamports_per_byte_year < 0 or self.rent.exemption_threshold_years < 0:
            raise ValueError("rent parameters must be >= 0")
        if self.logging.level not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.logging.level}")
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict (for diagnostics)."""
        return {
            "program": {
                "program_id": self.program.program_id,
                "require_reward_vault_on_stake": self.program.require_reward_vault_on_stake,
                "admins": list(self.program.admins),
            },
            "rewards": {
                "rate_numerator": self.rewards.rate_numerator,
                "rate_denominator": self.rewards.rate_denominator,
                "period_seconds": self.rewards.period_seconds,
                "basis": self.rewards.basis,
            },
            "rent": {
                "lamports_per_byte_year": self.rent.lamports_per_byte_year,
                "exemption_threshold_years": self.rent.exemption_threshold_years,
                "account_storage_overhead": self.rent.account_storage_overhead,
            },
            "logging": {
                "level": self.logging.level,
                "file_output": self.logging.file_output,
            },
        }


def load_config(path: Optional[str] = None) -> StakeLedgerConfig:
    """
    Load configuration.

    Resolution order:
        1. Explicit *path* argument
        2. STAKELEDGER_CONFIG env var
        3. ./config.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("STAKELEDGER_CONFIG", "config.toml")

    return StakeLedgerConfig.from_file(path)
