"""
escrow.instructions.make — open an escrow and fund its vault.

Accounts (fixed order):

    0 maker                     signer, writable, system-owned; pays for everything
    1 escrow                    writable; must be the derived escrow address
    2 mint_a                    deposited mint
    3 mint_b                    requested mint
    4 maker_ata_a               writable; maker's mint_a token account
    5 vault                     writable; associated token account of (escrow, mint_a)
    6 system_program
    7 token_program
    8 associated_token_program

Payload: seed u64 | receive u64 | amount u64 (24 bytes, little-endian).

Every check runs before the first mutation. The escrow record and its vault are
created in the same instruction; if the deposit transfer fails the host reverts
both.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence

from core.errors import InvalidInstructionData, NotEnoughAccountKeys
from core.logging import get_logger
from host.accounts import AccountInfo
from host.authority import KeyAuthority
from host.ids import SYSTEM_PROGRAM_ID

from .. import ata, state, validate
from ..config import ProgramConfig
from ..pda import associated_token_address, escrow_authority, find_escrow_address

if TYPE_CHECKING:
    from host.invoke import InvokeContext

log = get_logger("escrow.make")

DISCRIMINATOR = 0
ACCOUNTS_LEN = 9

_PAYLOAD = struct.Struct("<QQQ")


@dataclass(frozen=True)
class MakeInstructionData:
    seed: int
    receive: int
    amount: int

    LEN = _PAYLOAD.size

    @classmethod
    def parse(cls, data: bytes) -> "MakeInstructionData":
        if len(data) != cls.LEN:
            raise InvalidInstructionData("make payload must be 24 bytes", got=len(data))
        seed, receive, amount = _PAYLOAD.unpack(data)
        if amount == 0:
            raise InvalidInstructionData("deposit amount must be non-zero")
        return cls(seed=seed, receive=receive, amount=amount)

    def pack(self) -> bytes:
        return _PAYLOAD.pack(self.seed, self.receive, self.amount)


@dataclass(frozen=True)
class MakeAccounts:
    maker: AccountInfo
    escrow: AccountInfo
    mint_a: AccountInfo
    mint_b: AccountInfo
    maker_ata_a: AccountInfo
    vault: AccountInfo
    system_program: AccountInfo
    token_program: AccountInfo
    associated_token_program: AccountInfo

    @classmethod
    def from_infos(cls, accounts: Sequence[AccountInfo], config: ProgramConfig) -> "MakeAccounts":
        """Unpack the account list and run every check that does not need the payload."""
        if len(accounts) != ACCOUNTS_LEN:
            raise NotEnoughAccountKeys(ACCOUNTS_LEN, len(accounts), instruction="make")
        a = cls(*accounts)

        validate.require_signer(a.maker)
        validate.require_writable(a.maker)
        validate.require_system_owned(a.maker)

        validate.require_mint(a.mint_a, config.token_program_id)
        validate.require_mint(a.mint_b, config.token_program_id)
        validate.require_token_account(a.maker_ata_a, config.token_program_id)

        validate.require_program(a.system_program, SYSTEM_PROGRAM_ID)
        validate.require_program(a.token_program, config.token_program_id)

        for info in (a.escrow, a.maker_ata_a, a.vault):
            validate.require_writable(info)
        return a


class Make:
    """A parsed, fully validated Make instruction ready to execute."""

    def __init__(self, accounts: MakeAccounts, data: MakeInstructionData, bump: int, config: ProgramConfig) -> None:
        self.accounts = accounts
        self.data = data
        self.bump = bump
        self.config = config

    @classmethod
    def parse(cls, accounts: Sequence[AccountInfo], payload: bytes, config: ProgramConfig) -> "Make":
        accts = MakeAccounts.from_infos(accounts, config)
        data = MakeInstructionData.parse(payload)

        # Derived once; the bump is stored in the record and never searched again
        escrow_key, bump = find_escrow_address(accts.maker.key, data.seed, config.program_id)
        validate.require_address(accts.escrow, escrow_key)
        vault_key = associated_token_address(
            escrow_key, accts.mint_a.key, config.token_program_id, config.ata_program_id
        )
        validate.require_address(accts.vault, vault_key)
        return cls(accts, data, bump, config)

    def process(self, ctx: "InvokeContext") -> None:
        a, d, cfg = self.accounts, self.data, self.config
        maker = KeyAuthority(a.maker)

        ctx.create_account(
            maker,
            escrow_authority(a.escrow, a.maker.key, d.seed, self.bump),
            space=state.Escrow.LEN,
            owner=cfg.program_id,
        )
        ata.init(ctx, a.vault, a.mint_a, a.maker, a.escrow, a.system_program, a.token_program, cfg)

        record = state.Escrow(
            seed=d.seed,
            maker=a.maker.key,
            mint_a=a.mint_a.key,
            mint_b=a.mint_b.key,
            receive=d.receive,
            bump=self.bump,
        )
        state.store(a.escrow, record)

        ctx.token_transfer(a.maker_ata_a, a.vault, maker, d.amount, program_id=cfg.token_program_id)
        log.info(
            "escrow made",
            extra={"escrow": str(a.escrow.key), "seed": d.seed, "amount": d.amount, "receive": d.receive},
        )


def process_make(ctx: "InvokeContext", accounts: Sequence[AccountInfo], payload: bytes, config: ProgramConfig) -> None:
    Make.parse(accounts, payload, config).process(ctx)


__all__ = [
    "DISCRIMINATOR",
    "ACCOUNTS_LEN",
    "MakeInstructionData",
    "MakeAccounts",
    "Make",
    "process_make",
]
