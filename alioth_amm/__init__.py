"""
Alioth AMM: a constant-product exchange ledger with oracle-gated swaps,
same-transaction flash loans, multi-hop routing and LP farming.
"""

from .config import AmmSettings, configure_logging, load_settings
from .errors import AmmError
from .integration import AmmEngine, InMemoryPriceFeed, Instruction, InstructionKind, TxResult

__version__ = "0.1.0"

__all__ = [
    "AmmSettings",
    "configure_logging",
    "load_settings",
    "AmmError",
    "AmmEngine",
    "InMemoryPriceFeed",
    "Instruction",
    "InstructionKind",
    "TxResult",
]
