"""
host.system_program — the native program owning every wallet account.

Handlers take the callee frame and its account handles:

    create_account(ctx, [funding, new_account], lamports, space, owner)
    transfer(ctx, [source, destination], lamports)
    allocate(ctx, [account], space)
    assign(ctx, [account], owner)

Accounts that must sign are checked against `ctx.signers`, which already
reflects the authorities the caller proved in `InvokeContext.invoke`.
"""

from __future__ import annotations

from typing import Sequence

from solders.pubkey import Pubkey

from core.errors import AccountAlreadyInUse, InvalidArgument, MissingRequiredSignature

from .accounts import AccountInfo
from .ids import SYSTEM_PROGRAM_ID


def _require_signer(ctx, info: AccountInfo) -> None:
    if info.key not in ctx.signers:
        raise MissingRequiredSignature(info.key)


def _require_unused(info: AccountInfo) -> None:
    if info.lamports > 0 or not info.data_is_empty() or not info.is_owned_by(SYSTEM_PROGRAM_ID):
        raise AccountAlreadyInUse(info.key)


def _require_plain_wallet(info: AccountInfo) -> None:
    # A funding account must not carry data
    if not info.data_is_empty():
        raise InvalidArgument("from account must not carry data", account=info.key)


def create_account(
    ctx, accounts: Sequence[AccountInfo], lamports: int, space: int, owner: Pubkey
) -> None:
    funding, new_account = accounts[0], accounts[1]
    _require_signer(ctx, funding)
    _require_signer(ctx, new_account)
    _require_unused(new_account)
    _require_plain_wallet(funding)

    new_account.resize(space)
    new_account.assign(owner)
    funding.debit(lamports)
    new_account.credit(lamports)


def transfer(ctx, accounts: Sequence[AccountInfo], lamports: int) -> None:
    source, destination = accounts[0], accounts[1]
    _require_signer(ctx, source)
    _require_plain_wallet(source)
    source.debit(lamports)
    destination.credit(lamports)


def allocate(ctx, accounts: Sequence[AccountInfo], space: int) -> None:
    account = accounts[0]
    _require_signer(ctx, account)
    if not account.data_is_empty() or not account.is_owned_by(SYSTEM_PROGRAM_ID):
        raise AccountAlreadyInUse(account.key)
    account.resize(space)


def assign(ctx, accounts: Sequence[AccountInfo], owner: Pubkey) -> None:
    account = accounts[0]
    _require_signer(ctx, account)
    if account.is_owned_by(owner):
        return
    account.assign(owner)


__all__ = ["create_account", "transfer", "allocate", "assign"]
