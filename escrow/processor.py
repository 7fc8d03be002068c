"""
escrow.processor — program entrypoint and instruction routing.

The first byte of the instruction data selects the transition:

    0  make     remaining 24 bytes are the payload
    1  take     reserved; rejected as not implemented
    2  refund   remaining bytes are ignored

Empty data and any other discriminator are invalid instruction data.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from core.errors import IncorrectProgramId, InvalidInstructionData, NotImplementedFeature, ProgramError
from core.logging import bind, get_logger, unbind
from host.accounts import AccountInfo

from .config import ProgramConfig, get_config
from .instructions import MAKE, REFUND, TAKE, process_make, process_refund

if TYPE_CHECKING:
    from host.invoke import InvokeContext
    from host.runtime import Bank

log = get_logger("escrow.processor")

_NAMES = {MAKE: "make", TAKE: "take", REFUND: "refund"}


class EscrowProgram:
    """The escrow program bound to one configuration."""

    def __init__(self, config: Optional[ProgramConfig] = None) -> None:
        self.config = config or get_config()

    @property
    def program_id(self):
        return self.config.program_id

    def install(self, bank: "Bank") -> "EscrowProgram":
        bank.register(self.config.program_id, self.process)
        return self

    def process(self, ctx: "InvokeContext", accounts: List[AccountInfo], data: bytes) -> None:
        if ctx.program_id != self.config.program_id:
            raise IncorrectProgramId(expected=self.config.program_id, got=ctx.program_id)
        if not data:
            raise InvalidInstructionData("empty instruction data")

        discriminator, payload = data[0], bytes(data[1:])
        name = _NAMES.get(discriminator, "unknown")
        bind(instruction=name)
        log.debug("dispatch", extra={"discriminator": discriminator, "accounts": len(accounts)})
        try:
            if discriminator == MAKE:
                process_make(ctx, accounts, payload, self.config)
            elif discriminator == REFUND:
                process_refund(ctx, accounts, self.config)
            elif discriminator == TAKE:
                raise NotImplementedFeature("take", discriminator=discriminator)
            else:
                raise InvalidInstructionData("unknown instruction discriminator", discriminator=discriminator)
            ctx.msg(f"escrow: {name} ok")
            log.info("instruction processed")
        except ProgramError as e:
            log.info("instruction rejected", extra={"code": e.to_dict()["code"]})
            raise
        finally:
            unbind("instruction")


def process_instruction(ctx: "InvokeContext", accounts: List[AccountInfo], data: bytes) -> None:
    """Entrypoint using the process-wide configuration."""
    EscrowProgram().process(ctx, accounts, data)


__all__ = ["EscrowProgram", "process_instruction"]
