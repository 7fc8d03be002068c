"""
escrow.ata — associated token accounts seen from the escrow program.

    check   the account is a token-program account at the canonical address
            of (wallet, mint)
    init    create it through the associated-token program, paid by `payer`
    ensure  check, and create only if the check fails

`ensure` is idempotent: a valid existing account is left untouched. A failed
creation (for example, the address is occupied by something else) is raised
to the caller and never retried.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.errors import InvalidAccountData, InvalidAccountOwner
from core.logging import get_logger
from host.accounts import AccountInfo
from host.authority import KeyAuthority

from . import validate
from .config import ProgramConfig
from .pda import associated_token_address

if TYPE_CHECKING:
    from host.invoke import InvokeContext

log = get_logger("escrow.ata")


def check(
    account: AccountInfo,
    wallet: AccountInfo,
    mint: AccountInfo,
    token_program: AccountInfo,
    config: ProgramConfig,
) -> None:
    validate.require_token_account(account, config.token_program_id)
    expected = associated_token_address(wallet.key, mint.key, token_program.key, config.ata_program_id)
    validate.require_address(account, expected)


def init(
    ctx: "InvokeContext",
    account: AccountInfo,
    mint: AccountInfo,
    payer: AccountInfo,
    owner: AccountInfo,
    system_program: AccountInfo,
    token_program: AccountInfo,
    config: ProgramConfig,
) -> None:
    ctx.create_associated_token_account(
        KeyAuthority(payer),
        account,
        owner,
        mint,
        system_program,
        token_program,
        program_id=config.ata_program_id,
    )


def ensure(
    ctx: "InvokeContext",
    account: AccountInfo,
    mint: AccountInfo,
    payer: AccountInfo,
    owner: AccountInfo,
    system_program: AccountInfo,
    token_program: AccountInfo,
    config: ProgramConfig,
) -> bool:
    """Returns True when the account had to be created."""
    try:
        check(account, owner, mint, token_program, config)
        return False
    except (InvalidAccountOwner, InvalidAccountData):
        log.debug("associated token account missing, creating", extra={"account": str(account.key)})
    init(ctx, account, mint, payer, owner, system_program, token_program, config)
    return True


__all__ = ["check", "init", "ensure"]
