"""
escrow.pda — program-derived addresses used by the escrow program.

An escrow record lives at

    find_program_address([b"escrow", maker, seed_le_u64], program_id)

and its vault is the associated token account of (escrow, mint_a). The escrow
address doubles as the vault's authority: the program signs for it by
presenting the same seeds plus the bump (`escrow_authority`).

Derivation itself is delegated to solders; this module only fixes the seed
schema and maps failures onto program errors.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

from solders.pubkey import Pubkey

from core.errors import DerivationError, InvalidSeeds, wrap
from core.utils.bytes import u64_le
from host.accounts import AccountInfo
from host.authority import MAX_SEED_LEN, MAX_SEEDS, SeedAuthority
from host.authority import create_program_address as _create_program_address
from host.ids import ASSOCIATED_TOKEN_PROGRAM_ID, TOKEN_PROGRAM_ID

ESCROW_SEED_PREFIX = b"escrow"


def _check_seeds(seeds: Sequence[bytes]) -> List[bytes]:
    out = [bytes(s) for s in seeds]
    if len(out) > MAX_SEEDS:
        raise InvalidSeeds("too many seeds", count=len(out), max=MAX_SEEDS)
    for i, s in enumerate(out):
        if len(s) > MAX_SEED_LEN:
            raise InvalidSeeds("seed too long", index=i, length=len(s), max=MAX_SEED_LEN)
    return out


def derive(seeds: Sequence[bytes], namespace: Pubkey) -> Tuple[Pubkey, int]:
    """
    Search for the canonical off-curve address of `seeds` under `namespace`.

    Returns (address, bump). Bumps are tried from 255 downwards; exhausting the
    search raises DerivationError.
    """
    # One slot is reserved for the bump
    checked = _check_seeds(seeds)
    if len(checked) >= MAX_SEEDS:
        raise InvalidSeeds("too many seeds", count=len(checked), max=MAX_SEEDS - 1)
    try:
        return Pubkey.find_program_address(checked, namespace)
    except Exception as e:
        raise wrap(e, as_=DerivationError, namespace=namespace) from e


def create_address(seeds: Sequence[bytes], namespace: Pubkey) -> Pubkey:
    """Recompute an address from seeds that already end with the bump."""
    return _create_program_address(_check_seeds(seeds), namespace)


# --------------------------------------------------------------------------- #
# Escrow schema
# --------------------------------------------------------------------------- #


def escrow_seeds(maker: Pubkey, seed: int) -> List[bytes]:
    return [ESCROW_SEED_PREFIX, bytes(maker), u64_le(seed)]


def find_escrow_address(maker: Pubkey, seed: int, program_id: Pubkey) -> Tuple[Pubkey, int]:
    return derive(escrow_seeds(maker, seed), program_id)


def escrow_address_from_bump(maker: Pubkey, seed: int, bump: int, program_id: Pubkey) -> Pubkey:
    return create_address([*escrow_seeds(maker, seed), bytes([bump])], program_id)


def escrow_authority(escrow: AccountInfo, maker: Pubkey, seed: int, bump: int) -> SeedAuthority:
    """Signing capability for the escrow address, used for vault transfers and close."""
    return SeedAuthority(escrow, [*escrow_seeds(maker, seed), bytes([bump])])


def associated_token_address(
    wallet: Pubkey,
    mint: Pubkey,
    token_program_id: Pubkey = TOKEN_PROGRAM_ID,
    ata_program_id: Pubkey = ASSOCIATED_TOKEN_PROGRAM_ID,
) -> Pubkey:
    return derive([bytes(wallet), bytes(token_program_id), bytes(mint)], ata_program_id)[0]


__all__ = [
    "ESCROW_SEED_PREFIX",
    "derive",
    "create_address",
    "escrow_seeds",
    "find_escrow_address",
    "escrow_address_from_bump",
    "escrow_authority",
    "associated_token_address",
    "DerivationError",
]
