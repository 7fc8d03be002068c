"""Instruction builders for the escrow program.

Each builder returns a `solders.instruction.Instruction` with the account order
and payload encoding the program expects. Derived addresses are computed here
so callers only supply wallets, mints and the seed.
"""

from typing import Optional

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey

from host.ids import SYSTEM_PROGRAM_ID

from .config import ProgramConfig, get_config
from .instructions import MAKE, REFUND
from .instructions.make import MakeInstructionData
from .pda import associated_token_address, find_escrow_address


def _ro(pubkey: Pubkey) -> AccountMeta:
    return AccountMeta(pubkey=pubkey, is_signer=False, is_writable=False)


def _rw(pubkey: Pubkey) -> AccountMeta:
    return AccountMeta(pubkey=pubkey, is_signer=False, is_writable=True)


def build_make_instruction(
    maker: Pubkey,
    mint_a: Pubkey,
    mint_b: Pubkey,
    seed: int,
    receive: int,
    amount: int,
    config: Optional[ProgramConfig] = None,
) -> Instruction:
    """Build the make instruction.

    Accounts:
    0. maker (signer, writable)
    1. escrow (writable)
    2. mint_a
    3. mint_b
    4. maker_ata_a (writable)
    5. vault (writable)
    6. system_program
    7. token_program
    8. associated_token_program
    """
    cfg = config or get_config()
    escrow, _ = find_escrow_address(maker, seed, cfg.program_id)
    maker_ata_a = associated_token_address(maker, mint_a, cfg.token_program_id, cfg.ata_program_id)
    vault = associated_token_address(escrow, mint_a, cfg.token_program_id, cfg.ata_program_id)

    accounts = [
        AccountMeta(pubkey=maker, is_signer=True, is_writable=True),
        _rw(escrow),
        _ro(mint_a),
        _ro(mint_b),
        _rw(maker_ata_a),
        _rw(vault),
        _ro(SYSTEM_PROGRAM_ID),
        _ro(cfg.token_program_id),
        _ro(cfg.ata_program_id),
    ]
    data = bytes([MAKE]) + MakeInstructionData(seed=seed, receive=receive, amount=amount).pack()
    return Instruction(program_id=cfg.program_id, data=data, accounts=accounts)


def build_refund_instruction(
    maker: Pubkey,
    mint_a: Pubkey,
    seed: int,
    config: Optional[ProgramConfig] = None,
    *,
    escrow: Optional[Pubkey] = None,
) -> Instruction:
    """Build the refund instruction.

    `escrow` defaults to the address derived from (maker, seed); pass it
    explicitly to target an escrow created by someone else.

    Accounts:
    0. maker (signer, writable)
    1. escrow (writable)
    2. mint_a
    3. vault (writable)
    4. maker_ata_a (writable)
    5. system_program
    6. token_program
    7. associated_token_program
    """
    cfg = config or get_config()
    if escrow is None:
        escrow, _ = find_escrow_address(maker, seed, cfg.program_id)
    vault = associated_token_address(escrow, mint_a, cfg.token_program_id, cfg.ata_program_id)
    maker_ata_a = associated_token_address(maker, mint_a, cfg.token_program_id, cfg.ata_program_id)

    accounts = [
        AccountMeta(pubkey=maker, is_signer=True, is_writable=True),
        _rw(escrow),
        _ro(mint_a),
        _rw(vault),
        _rw(maker_ata_a),
        _ro(SYSTEM_PROGRAM_ID),
        _ro(cfg.token_program_id),
        _ro(cfg.ata_program_id),
    ]
    return Instruction(program_id=cfg.program_id, data=bytes([REFUND]), accounts=accounts)


__all__ = ["build_make_instruction", "build_refund_instruction"]
