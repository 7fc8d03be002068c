"""
host — an in-memory account host for running and testing programs.

Modules
-------
ids               well-known native program addresses
accounts          Account records and AccountInfo handles
journal           copy-on-write checkpoints for atomic transactions
rent              rent-exemption schedule
authority         KeyAuthority / SeedAuthority signing capabilities
invoke            program frames, cross-program calls, privilege checks
system_program    create_account / transfer / allocate / assign
token_program     SPL-compatible layouts, transfer, close
associated_token  canonical token account derivation and creation
runtime           Bank, Transaction, TxResult
"""

from .accounts import Account, AccountInfo
from .authority import Authority, KeyAuthority, SeedAuthority
from .ids import ASSOCIATED_TOKEN_PROGRAM_ID, SYSTEM_PROGRAM_ID, TOKEN_PROGRAM_ID
from .invoke import InvokeContext
from .rent import Rent
from .runtime import Bank, Transaction, TxResult, TxStatus

__all__ = [
    "Account",
    "AccountInfo",
    "Authority",
    "KeyAuthority",
    "SeedAuthority",
    "SYSTEM_PROGRAM_ID",
    "TOKEN_PROGRAM_ID",
    "ASSOCIATED_TOKEN_PROGRAM_ID",
    "InvokeContext",
    "Rent",
    "Bank",
    "Transaction",
    "TxResult",
    "TxStatus",
]
