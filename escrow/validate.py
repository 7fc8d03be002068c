"""
escrow.validate — account checks run before any transition mutates state.

Each check either returns None or raises the matching ProgramError. None of
them correct anything: a wrong length or a wrong address is rejected, never
substituted.
"""

from __future__ import annotations

from solders.pubkey import Pubkey

from core.errors import (
    IncorrectProgramId,
    InvalidAccountData,
    InvalidAccountOwner,
    InvalidArgument,
    MissingRequiredSignature,
)
from host.accounts import AccountInfo
from host.ids import SYSTEM_PROGRAM_ID
from host.token_program import ACCOUNT_LEN, MINT_LEN


def require_owner(info: AccountInfo, expected: Pubkey) -> None:
    if not info.is_owned_by(expected):
        raise InvalidAccountOwner(account=info.key, expected=expected, got=info.owner)


def require_len(info: AccountInfo, expected: int) -> None:
    if info.data_len != expected:
        raise InvalidAccountData("unexpected account data length", account=info.key, expected=expected, got=info.data_len)


def require_address(info: AccountInfo, expected: Pubkey) -> None:
    if info.key != expected:
        raise InvalidAccountData("account does not match derived address", account=info.key, expected=expected)


def require_signer(info: AccountInfo) -> None:
    if not info.is_signer:
        raise MissingRequiredSignature(info.key)


def require_writable(info: AccountInfo) -> None:
    if not info.is_writable:
        raise InvalidArgument("account must be writable", account=info.key)


def require_program(info: AccountInfo, expected_id: Pubkey) -> None:
    if info.key != expected_id:
        raise IncorrectProgramId(expected=expected_id, got=info.key)


def require_system_owned(info: AccountInfo, system_program_id: Pubkey = SYSTEM_PROGRAM_ID) -> None:
    require_owner(info, system_program_id)


def require_mint(info: AccountInfo, token_program_id: Pubkey) -> None:
    require_owner(info, token_program_id)
    require_len(info, MINT_LEN)


def require_token_account(info: AccountInfo, token_program_id: Pubkey) -> None:
    require_owner(info, token_program_id)
    require_len(info, ACCOUNT_LEN)


__all__ = [
    "require_owner",
    "require_len",
    "require_address",
    "require_signer",
    "require_writable",
    "require_program",
    "require_system_owned",
    "require_mint",
    "require_token_account",
]
