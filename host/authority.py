"""
host.authority — signing capabilities for cross-program calls.

Every host primitive that needs a signature takes an *authority capability*
rather than a raw key:

- `KeyAuthority(info)`       the account signed the transaction (or was passed
                             as a signer by the calling frame).
- `SeedAuthority(info, seeds)` the calling program proves it controls a
                             program-derived address by presenting the seeds
                             (bump included) that re-create `info.key` under its
                             own program id. No private key exists for it.

Keeping the two apart prevents a program from accidentally spending with the
user's personal authority where its own is required, and vice versa.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence, Tuple, Union

from solders.pubkey import Pubkey

from core.errors import InvalidSeeds, MissingRequiredSignature, PrivilegeEscalation, wrap

from .accounts import AccountInfo

if TYPE_CHECKING:
    from .invoke import InvokeContext

MAX_SEEDS = 16
MAX_SEED_LEN = 32


def create_program_address(seeds: Sequence[bytes], program_id: Pubkey) -> Pubkey:
    """
    Re-create a program address from seeds that already include the bump.

    Raises InvalidSeeds when the seeds are malformed or land on the curve.
    """
    if len(seeds) > MAX_SEEDS or any(len(s) > MAX_SEED_LEN for s in seeds):
        raise InvalidSeeds("seed limits exceeded", seeds=len(seeds))
    try:
        return Pubkey.create_program_address([bytes(s) for s in seeds], program_id)
    except Exception as e:
        raise wrap(e, as_=InvalidSeeds, program_id=program_id) from e


@dataclass(frozen=True)
class KeyAuthority:
    """Authority backed by a signature on the account's own key."""

    info: AccountInfo

    @property
    def key(self) -> Pubkey:
        return self.info.key

    def verify(self, ctx: "InvokeContext") -> Pubkey:
        if self.info.key not in ctx.signers:
            raise MissingRequiredSignature(self.info.key)
        return self.info.key


@dataclass(frozen=True)
class SeedAuthority:
    """Authority backed by the derivation seeds of a program address."""

    info: AccountInfo
    seeds: Tuple[bytes, ...]

    def __init__(self, info: AccountInfo, seeds: Sequence[bytes]) -> None:
        object.__setattr__(self, "info", info)
        object.__setattr__(self, "seeds", tuple(bytes(s) for s in seeds))

    @property
    def key(self) -> Pubkey:
        return self.info.key

    def verify(self, ctx: "InvokeContext") -> Pubkey:
        derived = create_program_address(self.seeds, ctx.program_id)
        if derived != self.info.key:
            raise PrivilegeEscalation(
                "seeds do not sign for this account",
                account=self.info.key,
                derived=derived,
                program_id=ctx.program_id,
            )
        return self.info.key


Authority = Union[KeyAuthority, SeedAuthority]


__all__ = [
    "Authority",
    "KeyAuthority",
    "SeedAuthority",
    "create_program_address",
    "MAX_SEEDS",
    "MAX_SEED_LEN",
]
