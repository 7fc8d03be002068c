"""
host.accounts — account records and the handles programs see.

An Account holds four consensus fields:

- lamports:   u64 native balance (also funds rent exemption)
- data:       program-defined byte buffer
- owner:      program allowed to debit lamports, write data and reassign
- executable: whether the account is a program

Programs never touch `Account` directly. They receive `AccountInfo` handles that
carry the per-instruction `is_signer` / `is_writable` flags and route every
mutation through writable checks. Ownership rules (who may debit or write) are
enforced after each program frame by `host.invoke`.

All lamport arithmetic is u64-bounded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

from solders.pubkey import Pubkey

from core.errors import HostError, InsufficientFunds, ProgramErrorCode
from core.utils.bytes import U64_MAX, b

from .ids import SYSTEM_PROGRAM_ID

MAX_PERMITTED_DATA_LENGTH = 10 * 1024 * 1024  # 10 MiB


def _ensure_lamports(value: int) -> int:
    if not isinstance(value, int):
        raise TypeError("lamports must be int")
    if value < 0:
        raise ValueError("lamports must be non-negative")
    if value > U64_MAX:
        raise OverflowError("lamports exceed u64")
    return value


# --------------------------------------------------------------------------- #
# Account
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class Account:
    """
    A minimal, deterministic account record.

    Invariants:
    - lamports is u64
    - data length never exceeds MAX_PERMITTED_DATA_LENGTH
    """

    lamports: int = 0
    data: bytearray = field(default_factory=bytearray)
    owner: Pubkey = SYSTEM_PROGRAM_ID
    executable: bool = False

    def __post_init__(self) -> None:
        self.lamports = _ensure_lamports(int(self.lamports))
        self.data = bytearray(self.data)
        if len(self.data) > MAX_PERMITTED_DATA_LENGTH:
            raise ValueError("account data exceeds maximum permitted length")

    def copy(self) -> "Account":
        return Account(
            lamports=self.lamports,
            data=bytearray(self.data),
            owner=self.owner,
            executable=self.executable,
        )

    def is_empty(self) -> bool:
        """Never funded, no data, system owned: a free slot."""
        return self.lamports == 0 and not self.data and self.owner == SYSTEM_PROGRAM_ID

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lamports": self.lamports,
            "data": bytes(self.data).hex(),
            "owner": str(self.owner),
            "executable": self.executable,
        }


# --------------------------------------------------------------------------- #
# AccountInfo
# --------------------------------------------------------------------------- #


class AccountInfo:
    """
    Per-instruction view of an account.

    Several handles may alias the same `Account` when a key appears more than
    once in an instruction; they observe each other's writes.
    """

    __slots__ = ("key", "is_signer", "is_writable", "_account")

    def __init__(
        self,
        key: Pubkey,
        account: Account,
        *,
        is_signer: bool = False,
        is_writable: bool = False,
    ) -> None:
        self.key = key
        self.is_signer = is_signer
        self.is_writable = is_writable
        self._account = account

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        flags = ("s" if self.is_signer else "-") + ("w" if self.is_writable else "-")
        return f"AccountInfo({self.key}, {flags}, lamports={self.lamports}, len={self.data_len})"

    # ----------------------- read access ----------------------------------- #

    @property
    def lamports(self) -> int:
        return self._account.lamports

    @property
    def owner(self) -> Pubkey:
        return self._account.owner

    @property
    def executable(self) -> bool:
        return self._account.executable

    @property
    def data(self) -> bytes:
        """Snapshot of the account data. Mutate through `write` / `resize`."""
        return bytes(self._account.data)

    @property
    def data_len(self) -> int:
        return len(self._account.data)

    def alias(self, *, is_signer: bool, is_writable: bool) -> "AccountInfo":
        """Another handle on the same account with different privileges."""
        return AccountInfo(self.key, self._account, is_signer=is_signer, is_writable=is_writable)

    def snapshot(self) -> Tuple[int, Pubkey, bytes, bool]:
        a = self._account
        return (a.lamports, a.owner, bytes(a.data), a.executable)

    def is_owned_by(self, owner: Pubkey) -> bool:
        return self._account.owner == owner

    def data_is_empty(self) -> bool:
        return not self._account.data

    # ----------------------- write access ---------------------------------- #

    def _require_writable(self, code: ProgramErrorCode) -> None:
        if not self.is_writable:
            raise HostError(code, "account is not writable", account=self.key)

    def set_lamports(self, value: int) -> None:
        self._require_writable(ProgramErrorCode.READONLY_LAMPORT_CHANGE)
        self._account.lamports = _ensure_lamports(int(value))

    def credit(self, amount: int) -> None:
        self.set_lamports(self.lamports + _ensure_lamports(amount))

    def debit(self, amount: int) -> None:
        amt = _ensure_lamports(amount)
        if self.lamports < amt:
            raise InsufficientFunds(self.key, needed=amt, available=self.lamports)
        self.set_lamports(self.lamports - amt)

    def write(self, offset: int, payload: bytes) -> None:
        """Overwrite `payload` at `offset`; the buffer never grows here."""
        self._require_writable(ProgramErrorCode.READONLY_DATA_MODIFIED)
        raw = b(payload)
        if offset < 0 or offset + len(raw) > len(self._account.data):
            raise HostError(
                ProgramErrorCode.INVALID_REALLOC,
                "write outside account data",
                account=self.key,
                offset=offset,
                size=len(raw),
                data_len=len(self._account.data),
            )
        self._account.data[offset : offset + len(raw)] = raw

    def resize(self, new_len: int) -> None:
        """Grow or shrink the data buffer. Grown bytes are zero."""
        self._require_writable(ProgramErrorCode.READONLY_DATA_MODIFIED)
        if new_len < 0 or new_len > MAX_PERMITTED_DATA_LENGTH:
            raise HostError(ProgramErrorCode.INVALID_REALLOC, "invalid realloc", account=self.key, new_len=new_len)
        cur = len(self._account.data)
        if new_len < cur:
            del self._account.data[new_len:]
        elif new_len > cur:
            self._account.data.extend(b"\x00" * (new_len - cur))

    def assign(self, owner: Pubkey) -> None:
        self._require_writable(ProgramErrorCode.READONLY_DATA_MODIFIED)
        self._account.owner = owner


__all__ = ["Account", "AccountInfo", "MAX_PERMITTED_DATA_LENGTH"]
