"""
escrow.state — the persisted escrow record.

Layout (113 bytes, little-endian, no padding):

    offset  size  field
    0       8     seed      u64
    8       32    maker     pubkey
    40      32    mint_a    pubkey
    72      32    mint_b    pubkey
    104     8     receive   u64
    112     1     bump      u8

Teardown marks the record by writing TOMBSTONE at offset 0 before the account
is shrunk to a single byte and drained.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from solders.pubkey import Pubkey

from core.errors import InvalidAccountData
from core.utils.bytes import U8_MAX, ensure_u64
from host.accounts import AccountInfo

TOMBSTONE = 0xFF

_LAYOUT = struct.Struct("<Q32s32s32sQB")


@dataclass(frozen=True)
class Escrow:
    seed: int
    maker: Pubkey
    mint_a: Pubkey
    mint_b: Pubkey
    receive: int
    bump: int

    LEN = _LAYOUT.size

    def __post_init__(self) -> None:
        ensure_u64(self.seed, name="seed")
        ensure_u64(self.receive, name="receive")
        if not 0 <= self.bump <= U8_MAX:
            raise ValueError(f"bump out of u8 range: {self.bump}")

    def pack(self) -> bytes:
        return _LAYOUT.pack(
            self.seed,
            bytes(self.maker),
            bytes(self.mint_a),
            bytes(self.mint_b),
            self.receive,
            self.bump,
        )

    @classmethod
    def unpack(cls, data: bytes) -> "Escrow":
        if len(data) != cls.LEN:
            raise InvalidAccountData("escrow record has the wrong length", expected=cls.LEN, got=len(data))
        seed, maker, mint_a, mint_b, receive, bump = _LAYOUT.unpack(data)
        return cls(
            seed=seed,
            maker=Pubkey.from_bytes(maker),
            mint_a=Pubkey.from_bytes(mint_a),
            mint_b=Pubkey.from_bytes(mint_b),
            receive=receive,
            bump=bump,
        )


def load(info: AccountInfo) -> Escrow:
    return Escrow.unpack(info.data)


def store(info: AccountInfo, escrow: Escrow) -> None:
    if info.data_len != Escrow.LEN:
        raise InvalidAccountData("escrow account is not sized for a record", account=info.key, got=info.data_len)
    info.write(0, escrow.pack())


def tombstone(info: AccountInfo) -> None:
    info.write(0, bytes([TOMBSTONE]))


__all__ = ["Escrow", "TOMBSTONE", "load", "store", "tombstone"]
