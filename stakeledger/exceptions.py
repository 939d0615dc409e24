"""
Stake Ledger Exceptions

Root exception classes shared by every stakeledger subsystem.
"""


class StakeLedgerException(Exception):
    """Base exception for stakeledger."""
    pass


class InvalidAddressError(StakeLedgerException):
    """Invalid address format."""
    pass


class InvalidSeedsError(InvalidAddressError):
    """Seeds cannot be used for address derivation."""
    pass


class ConfigurationError(StakeLedgerException):
    """Configuration error."""
    pass
