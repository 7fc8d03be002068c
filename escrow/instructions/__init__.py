"""
escrow.instructions — the program's state transitions.

    0  make     open an escrow and fund its vault
    1  take     reserved, not implemented
    2  refund   return the deposit to the maker and close the escrow
"""

from .make import Make, MakeAccounts, MakeInstructionData, process_make
from .refund import Refund, RefundAccounts, process_refund

MAKE = 0
TAKE = 1
REFUND = 2

__all__ = [
    "MAKE",
    "TAKE",
    "REFUND",
    "Make",
    "MakeAccounts",
    "MakeInstructionData",
    "process_make",
    "Refund",
    "RefundAccounts",
    "process_refund",
]
