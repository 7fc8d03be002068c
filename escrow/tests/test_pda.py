from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from solders.pubkey import Pubkey

from core.errors import ErrorKind, InvalidSeeds
from escrow.config import DEFAULT_PROGRAM_ID
from escrow.pda import (
    associated_token_address,
    create_address,
    derive,
    escrow_address_from_bump,
    escrow_seeds,
    find_escrow_address,
)
from host.associated_token import get_associated_token_address
from host.ids import ASSOCIATED_TOKEN_PROGRAM_ID, TOKEN_PROGRAM_ID

u64 = st.integers(min_value=0, max_value=2**64 - 1)
keys = st.binary(min_size=32, max_size=32).map(Pubkey.from_bytes)


def test_escrow_seed_schema():
    maker = Pubkey.new_unique()
    seeds = escrow_seeds(maker, 7)
    assert seeds == [b"escrow", bytes(maker), (7).to_bytes(8, "little")]


@settings(max_examples=25, deadline=None)
@given(maker=keys, seed=u64)
def test_escrow_address_is_deterministic_and_off_curve(maker: Pubkey, seed: int):
    a1, b1 = find_escrow_address(maker, seed, DEFAULT_PROGRAM_ID)
    a2, b2 = find_escrow_address(maker, seed, DEFAULT_PROGRAM_ID)
    assert (a1, b1) == (a2, b2)
    assert 0 <= b1 <= 255
    assert not a1.is_on_curve()


@settings(max_examples=25, deadline=None)
@given(maker=keys, seed=u64)
def test_stored_bump_rederives_the_same_address(maker: Pubkey, seed: int):
    addr, bump = find_escrow_address(maker, seed, DEFAULT_PROGRAM_ID)
    assert escrow_address_from_bump(maker, seed, bump, DEFAULT_PROGRAM_ID) == addr


def test_distinct_seeds_and_makers_give_distinct_addresses():
    maker, other = Pubkey.new_unique(), Pubkey.new_unique()
    a = find_escrow_address(maker, 1, DEFAULT_PROGRAM_ID)[0]
    b = find_escrow_address(maker, 2, DEFAULT_PROGRAM_ID)[0]
    c = find_escrow_address(other, 1, DEFAULT_PROGRAM_ID)[0]
    assert len({a, b, c}) == 3


def test_namespace_separates_programs():
    maker = Pubkey.new_unique()
    assert find_escrow_address(maker, 7, DEFAULT_PROGRAM_ID)[0] != find_escrow_address(maker, 7, Pubkey.new_unique())[0]


def test_derive_matches_solders_primitive():
    seeds = [b"escrow", b"abc"]
    assert derive(seeds, DEFAULT_PROGRAM_ID) == Pubkey.find_program_address(seeds, DEFAULT_PROGRAM_ID)


def test_oversized_seed_is_rejected():
    with pytest.raises(InvalidSeeds) as ei:
        derive([b"x" * 33], DEFAULT_PROGRAM_ID)
    assert ei.value.kind is ErrorKind.UNTRUSTED_ACCOUNT


def test_too_many_seeds_are_rejected():
    with pytest.raises(InvalidSeeds):
        derive([b"s"] * 16, DEFAULT_PROGRAM_ID)
    with pytest.raises(InvalidSeeds):
        create_address([b"s"] * 17, DEFAULT_PROGRAM_ID)


def test_wrong_bump_does_not_reproduce_the_address():
    maker = Pubkey.new_unique()
    addr, bump = find_escrow_address(maker, 3, DEFAULT_PROGRAM_ID)
    for candidate in range(256):
        if candidate == bump:
            continue
        try:
            other = escrow_address_from_bump(maker, 3, candidate, DEFAULT_PROGRAM_ID)
        except InvalidSeeds:
            continue
        assert other != addr


def test_associated_token_address_matches_host_derivation():
    wallet, mint = Pubkey.new_unique(), Pubkey.new_unique()
    expected = get_associated_token_address(wallet, mint)
    assert associated_token_address(wallet, mint) == expected
    assert associated_token_address(wallet, mint, TOKEN_PROGRAM_ID, ASSOCIATED_TOKEN_PROGRAM_ID) == expected
    assert expected == Pubkey.find_program_address(
        [bytes(wallet), bytes(TOKEN_PROGRAM_ID), bytes(mint)], ASSOCIATED_TOKEN_PROGRAM_ID
    )[0]
