"""
escrow — a two-party token escrow program.

A maker locks `amount` of mint A in a vault owned by a program-derived escrow
address and records how much of mint B they want in return. Until the escrow is
consumed, only the program (signing with the escrow's seeds) can move the vault.

Modules
-------
config        program id and knobs (env + overrides)
pda           escrow / associated token address derivation
state         the 113-byte escrow record
validate      account checks
ata           idempotent associated token account helper
instructions  make (0) and refund (2); 1 is reserved
processor     entrypoint and routing
client        solders instruction builders
cli           `derive` and `demo` commands
"""

from .config import ProgramConfig, get_config, load_config
from .processor import EscrowProgram, process_instruction
from .state import Escrow

__all__ = [
    "ProgramConfig",
    "get_config",
    "load_config",
    "EscrowProgram",
    "process_instruction",
    "Escrow",
]
