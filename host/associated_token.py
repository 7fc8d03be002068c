"""
host.associated_token — canonical per-(wallet, mint) token accounts.

The associated token account of a wallet for a mint lives at

    find_program_address([wallet, token_program, mint], ASSOCIATED_TOKEN_PROGRAM_ID)

`create` is the program handler. It is strict: an account that already exists
is rejected with AccountAlreadyInUse. Idempotence is the caller's concern (see
`escrow.ata.ensure`).

accounts: [funding, account, wallet, mint, system_program, token_program]
"""

from __future__ import annotations

from typing import Sequence, Tuple

from solders.pubkey import Pubkey

from core.errors import AccountAlreadyInUse, InvalidSeeds

from . import token_program
from .accounts import AccountInfo
from .authority import KeyAuthority, SeedAuthority
from .ids import ASSOCIATED_TOKEN_PROGRAM_ID, SYSTEM_PROGRAM_ID, TOKEN_PROGRAM_ID


def associated_token_seeds(wallet: Pubkey, mint: Pubkey, token_program_id: Pubkey) -> Tuple[bytes, bytes, bytes]:
    return (bytes(wallet), bytes(token_program_id), bytes(mint))


def find_associated_token_address(
    wallet: Pubkey,
    mint: Pubkey,
    token_program_id: Pubkey = TOKEN_PROGRAM_ID,
    ata_program_id: Pubkey = ASSOCIATED_TOKEN_PROGRAM_ID,
) -> Tuple[Pubkey, int]:
    return Pubkey.find_program_address(list(associated_token_seeds(wallet, mint, token_program_id)), ata_program_id)


def get_associated_token_address(
    wallet: Pubkey,
    mint: Pubkey,
    token_program_id: Pubkey = TOKEN_PROGRAM_ID,
    ata_program_id: Pubkey = ASSOCIATED_TOKEN_PROGRAM_ID,
) -> Pubkey:
    return find_associated_token_address(wallet, mint, token_program_id, ata_program_id)[0]


def create(ctx, accounts: Sequence[AccountInfo]) -> None:
    funding, account, wallet, mint, _system, token_prog = accounts[:6]
    token_program_id = token_prog.key

    expected, bump = find_associated_token_address(wallet.key, mint.key, token_program_id, ctx.program_id)
    if expected != account.key:
        raise InvalidSeeds(
            "associated token address does not match seed derivation",
            expected=expected,
            got=account.key,
        )
    if not account.is_owned_by(SYSTEM_PROGRAM_ID):
        raise AccountAlreadyInUse(account.key)

    space = token_program.ACCOUNT_LEN
    required = ctx.rent.minimum_balance(space)
    payer = KeyAuthority(funding)
    signer = SeedAuthority(account, [*associated_token_seeds(wallet.key, mint.key, token_program_id), bytes([bump])])

    if account.lamports > 0:
        # Pre-funded address: top up, then allocate and assign in place
        if account.lamports < required:
            ctx.system_transfer(payer, account, required - account.lamports)
        ctx.system_allocate(signer, space)
        ctx.system_assign(signer, token_program_id)
    else:
        ctx.create_account(payer, signer, lamports=required, space=space, owner=token_program_id)

    ctx.invoke(token_program_id, [account, mint], token_program.initialize_account, wallet.key)


__all__ = [
    "associated_token_seeds",
    "find_associated_token_address",
    "get_associated_token_address",
    "create",
]
