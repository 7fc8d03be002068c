"""
host.token_program — SPL-compatible token accounts, transfer and close.

Layouts (little-endian, no padding):

    Mint          82 bytes  COption<Pubkey> mint_authority | u64 supply | u8 decimals
                            | bool is_initialized | COption<Pubkey> freeze_authority
    TokenAccount 165 bytes  Pubkey mint | Pubkey owner | u64 amount
                            | COption<Pubkey> delegate | u8 state
                            | COption<u64> is_native | u64 delegated_amount
                            | COption<Pubkey> close_authority

`COption` is a u32 tag (0 = None, 1 = Some) followed by the fixed-width value.

Only the operations the escrow flow needs are implemented as program
handlers: `initialize_account`, `transfer` and `close_account`. Mints and
pre-funded balances are seeded directly by `host.runtime.Bank` helpers.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Sequence

from solders.pubkey import Pubkey

from core.errors import IncorrectProgramId, InvalidAccountData, MissingRequiredSignature, TokenError

from .accounts import AccountInfo
from .ids import SYSTEM_PROGRAM_ID

MINT_LEN = 82
ACCOUNT_LEN = 165

_MINT = struct.Struct("<I32sQBBI32s")
_ACCOUNT = struct.Struct("<32s32sQI32sBIQQI32s")
_ZERO_KEY = bytes(32)

assert _MINT.size == MINT_LEN
assert _ACCOUNT.size == ACCOUNT_LEN


class AccountState(IntEnum):
    UNINITIALIZED = 0
    INITIALIZED = 1
    FROZEN = 2


def _opt_key(tag: int, raw: bytes) -> Optional[Pubkey]:
    return Pubkey.from_bytes(raw) if tag else None


def _pack_opt_key(key: Optional[Pubkey]):
    return (1, bytes(key)) if key is not None else (0, _ZERO_KEY)


# --------------------------------------------------------------------------- #
# Layout types
# --------------------------------------------------------------------------- #


@dataclass
class Mint:
    mint_authority: Optional[Pubkey]
    supply: int = 0
    decimals: int = 0
    is_initialized: bool = True
    freeze_authority: Optional[Pubkey] = None

    def pack(self) -> bytes:
        ma_tag, ma = _pack_opt_key(self.mint_authority)
        fa_tag, fa = _pack_opt_key(self.freeze_authority)
        return _MINT.pack(ma_tag, ma, self.supply, self.decimals, int(self.is_initialized), fa_tag, fa)

    @classmethod
    def unpack(cls, data: bytes) -> "Mint":
        if len(data) != MINT_LEN:
            raise InvalidAccountData("mint data has the wrong length", length=len(data))
        ma_tag, ma, supply, decimals, init, fa_tag, fa = _MINT.unpack(data)
        return cls(
            mint_authority=_opt_key(ma_tag, ma),
            supply=supply,
            decimals=decimals,
            is_initialized=bool(init),
            freeze_authority=_opt_key(fa_tag, fa),
        )


@dataclass
class TokenAccount:
    mint: Pubkey
    owner: Pubkey
    amount: int = 0
    delegate: Optional[Pubkey] = None
    state: AccountState = AccountState.INITIALIZED
    is_native: Optional[int] = None
    delegated_amount: int = 0
    close_authority: Optional[Pubkey] = None

    def pack(self) -> bytes:
        d_tag, d = _pack_opt_key(self.delegate)
        c_tag, c = _pack_opt_key(self.close_authority)
        n_tag, n = (1, self.is_native) if self.is_native is not None else (0, 0)
        return _ACCOUNT.pack(
            bytes(self.mint),
            bytes(self.owner),
            self.amount,
            d_tag,
            d,
            int(self.state),
            n_tag,
            n,
            self.delegated_amount,
            c_tag,
            c,
        )

    @classmethod
    def unpack(cls, data: bytes) -> "TokenAccount":
        if len(data) != ACCOUNT_LEN:
            raise InvalidAccountData("token account data has the wrong length", length=len(data))
        mint, owner, amount, d_tag, d, state, n_tag, n, delegated, c_tag, c = _ACCOUNT.unpack(data)
        try:
            st = AccountState(state)
        except ValueError as e:
            raise InvalidAccountData("unknown token account state", state=state).with_cause(e) from e
        return cls(
            mint=Pubkey.from_bytes(mint),
            owner=Pubkey.from_bytes(owner),
            amount=amount,
            delegate=_opt_key(d_tag, d),
            state=st,
            is_native=n if n_tag else None,
            delegated_amount=delegated,
            close_authority=_opt_key(c_tag, c),
        )


# --------------------------------------------------------------------------- #
# Handlers
# --------------------------------------------------------------------------- #


def _require_program_owned(ctx, info: AccountInfo) -> None:
    if not info.is_owned_by(ctx.program_id):
        raise IncorrectProgramId(expected=ctx.program_id, got=info.owner)


def _load_initialized(ctx, info: AccountInfo) -> TokenAccount:
    _require_program_owned(ctx, info)
    acct = TokenAccount.unpack(info.data)
    if acct.state == AccountState.UNINITIALIZED:
        raise TokenError("uninitialized_state", account=info.key)
    if acct.state == AccountState.FROZEN:
        raise TokenError("account_frozen", account=info.key)
    return acct


def _require_authority(ctx, expected: Pubkey, authority: AccountInfo) -> None:
    if authority.key != expected:
        raise TokenError("owner_mismatch", expected=expected, got=authority.key)
    if authority.key not in ctx.signers:
        raise MissingRequiredSignature(authority.key)


def initialize_account(ctx, accounts: Sequence[AccountInfo], owner: Pubkey) -> None:
    """accounts: [account, mint]; the owner is passed as instruction data."""
    account, mint = accounts[0], accounts[1]
    _require_program_owned(ctx, account)
    if account.data_len != ACCOUNT_LEN:
        raise InvalidAccountData("token account data has the wrong length", account=account.key)
    if TokenAccount.unpack(account.data).state != AccountState.UNINITIALIZED:
        raise TokenError("already_in_use", account=account.key)
    if not ctx.rent.is_exempt(account.lamports, account.data_len):
        raise TokenError("not_rent_exempt", account=account.key, lamports=account.lamports)
    _require_program_owned(ctx, mint)
    if not Mint.unpack(mint.data).is_initialized:
        raise TokenError("invalid_mint", mint=mint.key)

    state = TokenAccount(mint=mint.key, owner=owner)
    account.write(0, state.pack())


def transfer(ctx, accounts: Sequence[AccountInfo], amount: int) -> None:
    """accounts: [source, destination, authority]"""
    source, destination, authority = accounts[0], accounts[1], accounts[2]
    src = _load_initialized(ctx, source)
    dst = _load_initialized(ctx, destination)
    if src.mint != dst.mint:
        raise TokenError("mint_mismatch", source=src.mint, destination=dst.mint)
    if src.amount < amount:
        raise TokenError("insufficient_funds", account=source.key, needed=amount, available=src.amount)
    _require_authority(ctx, src.owner, authority)

    if source.key == destination.key:
        return
    src.amount -= amount
    dst.amount += amount
    source.write(0, src.pack())
    destination.write(0, dst.pack())


def close_account(ctx, accounts: Sequence[AccountInfo]) -> None:
    """accounts: [account, destination, authority]

    The account is deleted: lamports go to `destination`, data is truncated and
    ownership returns to the system program.
    """
    account, destination, authority = accounts[0], accounts[1], accounts[2]
    if account.key == destination.key:
        raise TokenError("invalid_destination", account=account.key)
    acct = _load_initialized(ctx, account)
    if acct.is_native is None and acct.amount != 0:
        raise TokenError("non_native_has_balance", account=account.key, amount=acct.amount)
    _require_authority(ctx, acct.close_authority or acct.owner, authority)

    destination.credit(account.lamports)
    account.set_lamports(0)
    account.resize(0)
    account.assign(SYSTEM_PROGRAM_ID)


def read_amount(data: bytes) -> int:
    return TokenAccount.unpack(data).amount


__all__ = [
    "MINT_LEN",
    "ACCOUNT_LEN",
    "AccountState",
    "Mint",
    "TokenAccount",
    "initialize_account",
    "transfer",
    "close_account",
    "read_amount",
]
