"""
Integration layer: instruction parsing, transactions, the engine and snapshots.
"""

from .engine import AmmEngine, TxResult
from .instructions import Instruction, InstructionKind, parse_instruction, parse_instructions
from .ledger_snapshot import LedgerSnapshot, ledger_from_snapshot, snapshot_from_ledger
from .price_feed import InMemoryPriceFeed
from .transaction import Transaction, TxStatus

__all__ = [
    "AmmEngine",
    "TxResult",
    "Instruction",
    "InstructionKind",
    "parse_instruction",
    "parse_instructions",
    "LedgerSnapshot",
    "ledger_from_snapshot",
    "snapshot_from_ledger",
    "InMemoryPriceFeed",
    "Transaction",
    "TxStatus",
]
