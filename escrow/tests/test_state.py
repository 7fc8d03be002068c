from __future__ import annotations

import struct

import pytest
from solders.pubkey import Pubkey

from core.errors import InvalidAccountData
from escrow import state
from escrow.state import TOMBSTONE, Escrow
from host.accounts import Account, AccountInfo


def _record(**kw) -> Escrow:
    fields = dict(
        seed=7,
        maker=Pubkey.new_unique(),
        mint_a=Pubkey.new_unique(),
        mint_b=Pubkey.new_unique(),
        receive=500,
        bump=254,
    )
    fields.update(kw)
    return Escrow(**fields)


def test_record_is_113_bytes():
    assert Escrow.LEN == 113
    assert len(_record().pack()) == 113


def test_field_offsets_are_exact():
    r = _record(seed=0x0102030405060708, receive=2**64 - 1, bump=7)
    raw = r.pack()
    assert struct.unpack_from("<Q", raw, 0)[0] == r.seed
    assert raw[8:40] == bytes(r.maker)
    assert raw[40:72] == bytes(r.mint_a)
    assert raw[72:104] == bytes(r.mint_b)
    assert struct.unpack_from("<Q", raw, 104)[0] == r.receive
    assert raw[112] == 7


def test_unpack_restores_every_field():
    r = _record()
    assert Escrow.unpack(r.pack()) == r


@pytest.mark.parametrize("size", [0, 1, 112, 114])
def test_wrong_size_is_invalid_account_data(size):
    with pytest.raises(InvalidAccountData):
        Escrow.unpack(bytes(size))


def test_tombstoned_record_no_longer_loads():
    info = AccountInfo(Pubkey.new_unique(), Account(lamports=1, data=bytearray(_record().pack())), is_writable=True)
    state.tombstone(info)
    assert info.data[0] == TOMBSTONE
    info.resize(1)
    with pytest.raises(InvalidAccountData):
        state.load(info)


def test_store_requires_a_sized_account():
    info = AccountInfo(Pubkey.new_unique(), Account(lamports=1, data=bytearray(10)), is_writable=True)
    with pytest.raises(InvalidAccountData):
        state.store(info, _record())


def test_store_then_load():
    info = AccountInfo(Pubkey.new_unique(), Account(lamports=1, data=bytearray(Escrow.LEN)), is_writable=True)
    r = _record()
    state.store(info, r)
    assert state.load(info) == r


@pytest.mark.parametrize("field, value", [("seed", -1), ("receive", 2**64), ("bump", 256)])
def test_out_of_range_fields_are_rejected(field, value):
    with pytest.raises((ValueError, OverflowError)):
        _record(**{field: value})
