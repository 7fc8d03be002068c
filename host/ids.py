"""
host.ids — well-known program identities of the host environment.

These are the canonical base58 addresses of the native programs the escrow
program talks to. The escrow program's *own* id is not here: it is injected
through `escrow.config`.
"""

from __future__ import annotations

from solders.pubkey import Pubkey

SYSTEM_PROGRAM_ID = Pubkey.from_string("11111111111111111111111111111111")
TOKEN_PROGRAM_ID = Pubkey.from_string("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
ASSOCIATED_TOKEN_PROGRAM_ID = Pubkey.from_string("ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL")
NATIVE_LOADER_ID = Pubkey.from_string("NativeLoader1111111111111111111111111111111")

NATIVE_PROGRAMS = (
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    ASSOCIATED_TOKEN_PROGRAM_ID,
)

__all__ = [
    "SYSTEM_PROGRAM_ID",
    "TOKEN_PROGRAM_ID",
    "ASSOCIATED_TOKEN_PROGRAM_ID",
    "NATIVE_LOADER_ID",
    "NATIVE_PROGRAMS",
]
