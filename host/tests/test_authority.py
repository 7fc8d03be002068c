from __future__ import annotations

import pytest
from solders.pubkey import Pubkey

from core.errors import ConfigError, InvalidSeeds, MissingRequiredSignature, PrivilegeEscalation
from host.accounts import Account, AccountInfo
from host.authority import MAX_SEED_LEN, MAX_SEEDS, KeyAuthority, SeedAuthority, create_program_address
from host.invoke import InvokeContext
from host.rent import Rent

PROGRAM = Pubkey.new_unique()


def _info(key: Pubkey) -> AccountInfo:
    return AccountInfo(key, Account())


def test_key_authority_needs_a_frame_signature():
    info = _info(Pubkey.new_unique())
    assert KeyAuthority(info).verify(InvokeContext(PROGRAM, [info], {info.key})) == info.key
    with pytest.raises(MissingRequiredSignature):
        KeyAuthority(info).verify(InvokeContext(PROGRAM, [info]))


def test_seed_authority_is_scoped_to_the_running_program():
    pda, bump = Pubkey.find_program_address([b"a"], PROGRAM)
    auth = SeedAuthority(_info(pda), [b"a", bytes([bump])])
    assert auth.verify(InvokeContext(PROGRAM, [])) == pda
    with pytest.raises((PrivilegeEscalation, InvalidSeeds)):
        auth.verify(InvokeContext(Pubkey.new_unique(), []))


def test_create_program_address_limits():
    with pytest.raises(InvalidSeeds):
        create_program_address([b"x" * (MAX_SEED_LEN + 1)], PROGRAM)
    with pytest.raises(InvalidSeeds):
        create_program_address([b"x"] * (MAX_SEEDS + 1), PROGRAM)


def test_create_program_address_matches_solders():
    pda, bump = Pubkey.find_program_address([b"seed"], PROGRAM)
    assert create_program_address([b"seed", bytes([bump])], PROGRAM) == pda


def test_rent_schedule():
    rent = Rent()
    assert rent.minimum_balance(0) == 128 * 3480 * 2
    assert rent.minimum_balance(165) == 2_039_280
    assert rent.is_exempt(2_039_280, 165)
    assert not rent.is_exempt(2_039_279, 165)
    with pytest.raises(ValueError):
        rent.minimum_balance(-1)
    with pytest.raises(ConfigError):
        Rent(lamports_per_byte_year=-1)
    assert Rent.from_env({"ESCROW_RENT_EXEMPTION_THRESHOLD": "1"}).minimum_balance(0) == 128 * 3480


@pytest.mark.parametrize(
    "env",
    [
        {"ESCROW_RENT_LAMPORTS_PER_BYTE_YEAR": "lots"},
        {"ESCROW_RENT_EXEMPTION_THRESHOLD": "-1"},
    ],
)
def test_bad_rent_environment_is_rejected(env):
    with pytest.raises(ConfigError):
        Rent.from_env(env)
