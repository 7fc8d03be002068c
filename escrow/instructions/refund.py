"""
escrow.instructions.refund — return the deposit to the maker and tear down.

Accounts (fixed order):

    0 maker                     signer, writable, system-owned
    1 escrow                    writable; program-owned record at the derived address
    2 mint_a
    3 vault                     writable; associated token account of (escrow, mint_a)
    4 maker_ata_a               writable; created on demand
    5 system_program
    6 token_program
    7 associated_token_program

No payload. Trailing instruction bytes are ignored.

Order of effects:
  1. drain the full vault balance into maker_ata_a, signed as the escrow
  2. close the vault to the maker, signed as the escrow
  3. tombstone the record (0xff at offset 0)
  4. move the record's lamports to the maker and shrink it to one byte
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence

from core.errors import InvalidAccountData, NotEnoughAccountKeys
from core.logging import get_logger
from host.accounts import AccountInfo
from host.ids import SYSTEM_PROGRAM_ID
from host.token_program import read_amount

from .. import ata, state, validate
from ..config import ProgramConfig
from ..pda import associated_token_address, escrow_address_from_bump, escrow_authority, find_escrow_address

if TYPE_CHECKING:
    from host.invoke import InvokeContext

log = get_logger("escrow.refund")

DISCRIMINATOR = 2
ACCOUNTS_LEN = 8


def _maker_ata_exists(info: AccountInfo) -> bool:
    return not info.is_owned_by(SYSTEM_PROGRAM_ID) or not info.data_is_empty()


@dataclass(frozen=True)
class RefundAccounts:
    maker: AccountInfo
    escrow: AccountInfo
    mint_a: AccountInfo
    vault: AccountInfo
    maker_ata_a: AccountInfo
    system_program: AccountInfo
    token_program: AccountInfo
    associated_token_program: AccountInfo

    @classmethod
    def from_infos(cls, accounts: Sequence[AccountInfo], config: ProgramConfig) -> "RefundAccounts":
        if len(accounts) != ACCOUNTS_LEN:
            raise NotEnoughAccountKeys(ACCOUNTS_LEN, len(accounts), instruction="refund")
        a = cls(*accounts)

        validate.require_signer(a.maker)
        validate.require_system_owned(a.maker)
        validate.require_owner(a.escrow, config.program_id)
        validate.require_mint(a.mint_a, config.token_program_id)
        validate.require_token_account(a.vault, config.token_program_id)
        validate.require_program(a.system_program, SYSTEM_PROGRAM_ID)
        validate.require_program(a.token_program, config.token_program_id)

        for info in (a.maker, a.escrow, a.vault, a.maker_ata_a):
            validate.require_writable(info)
        return a


class Refund:
    """A parsed, fully validated Refund instruction ready to execute."""

    def __init__(self, accounts: RefundAccounts, record: state.Escrow, config: ProgramConfig) -> None:
        self.accounts = accounts
        self.record = record
        self.config = config

    @classmethod
    def parse(cls, ctx: "InvokeContext", accounts: Sequence[AccountInfo], config: ProgramConfig) -> "Refund":
        """Validate every account, then make sure the maker's token account exists."""
        a = RefundAccounts.from_infos(accounts, config)
        record = state.load(a.escrow)

        # The derivation uses the signer's key, so only the recorded maker can match
        expected, _ = find_escrow_address(a.maker.key, record.seed, config.program_id)
        validate.require_address(a.escrow, expected)
        if escrow_address_from_bump(a.maker.key, record.seed, record.bump, config.program_id) != a.escrow.key:
            raise InvalidAccountData("stored bump does not re-derive the escrow address", account=a.escrow.key)
        if record.mint_a != a.mint_a.key:
            raise InvalidAccountData("mint does not match the escrow record", expected=record.mint_a, got=a.mint_a.key)

        vault_key = associated_token_address(a.escrow.key, a.mint_a.key, config.token_program_id, config.ata_program_id)
        validate.require_address(a.vault, vault_key)

        if config.strict_refund_ata and _maker_ata_exists(a.maker_ata_a):
            ata.check(a.maker_ata_a, a.maker, a.mint_a, a.token_program, config)

        ata.ensure(ctx, a.maker_ata_a, a.mint_a, a.maker, a.maker, a.system_program, a.token_program, config)
        return cls(a, record, config)

    def process(self, ctx: "InvokeContext") -> None:
        a, r, cfg = self.accounts, self.record, self.config
        signer = escrow_authority(a.escrow, r.maker, r.seed, r.bump)

        amount = read_amount(a.vault.data)
        ctx.token_transfer(a.vault, a.maker_ata_a, signer, amount, program_id=cfg.token_program_id)
        ctx.token_close_account(a.vault, a.maker, signer, program_id=cfg.token_program_id)

        state.tombstone(a.escrow)
        reclaimed = a.escrow.lamports
        a.maker.credit(reclaimed)
        a.escrow.set_lamports(0)
        a.escrow.resize(1)
        log.info(
            "escrow refunded",
            extra={"escrow": str(a.escrow.key), "amount": amount, "reclaimed_lamports": reclaimed},
        )


def process_refund(ctx: "InvokeContext", accounts: Sequence[AccountInfo], config: ProgramConfig) -> None:
    Refund.parse(ctx, accounts, config).process(ctx)


__all__ = ["DISCRIMINATOR", "ACCOUNTS_LEN", "RefundAccounts", "Refund", "process_refund"]
