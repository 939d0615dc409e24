"""
Stake Ledger Package

Core imports are lazily loaded so that importing a submodule does not pull
in the whole runtime. For direct module access, import from submodules:

    from stakeledger.program import StakeProgram, StakeProgramClient
    from stakeledger.runtime import LedgerRuntime, ManualClock
    from stakeledger.tokens import TokenLedger
"""

__version__ = "0.1.0"


# Lazy imports to avoid loading everything at package import
def __getattr__(name):
    """Lazy module loading."""
    if name == 'StakeProgramClient':
        from .program import StakeProgramClient
        return StakeProgramClient
    elif name == 'StakeProgram':
        from .program import StakeProgram
        return StakeProgram
    elif name == 'LedgerRuntime':
        from .runtime import LedgerRuntime
        return LedgerRuntime
    elif name == 'TokenLedger':
        from .tokens import TokenLedger
        return TokenLedger
    elif name == 'load_config':
        from .config import load_config
        return load_config
    elif name == 'StakeLedgerException':
        from .exceptions import StakeLedgerException
        return StakeLedgerException
    raise AttributeError(f"module 'stakeledger' has no attribute {name!r}")

__all__ = [
    'StakeProgramClient',
    'StakeProgram',
    'LedgerRuntime',
    'TokenLedger',
    'load_config',
    'StakeLedgerException',
]
