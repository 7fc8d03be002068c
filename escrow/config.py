"""
escrow.config — program identity and runtime knobs for the escrow program.

The program never hard-codes its own id or the token program ids it calls;
they come from here. Safe defaults let a local run and the test-suite work out
of the box.

Environment variables (all optional):
  ESCROW_PROGRAM_ID                   -> base58 id of the escrow program
                                         (default: Escrow1111111111111111111111111111111111111)
  ESCROW_TOKEN_PROGRAM_ID             -> base58 (default: SPL token program)
  ESCROW_ATA_PROGRAM_ID               -> base58 (default: associated token program)
  ESCROW_STRICT_REFUND_ATA            -> 0/1/true/false (default: 1)

The system program is the host's native one and is not configurable. Rent is
a property of the host (see host.rent), not of the program.

Programmatic usage:
    from escrow.config import get_config
    cfg = get_config()
    program = EscrowProgram(cfg)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Mapping, Optional, Union

from solders.pubkey import Pubkey

from core.errors import ConfigError
from host.ids import ASSOCIATED_TOKEN_PROGRAM_ID, NATIVE_PROGRAMS, TOKEN_PROGRAM_ID

DEFAULT_PROGRAM_ID = Pubkey.from_string("Escrow1111111111111111111111111111111111111")

# ----------------------------- helpers -------------------------------------

_BOOL_TRUE = {"1", "true", "t", "yes", "y", "on"}
_BOOL_FALSE = {"0", "false", "f", "no", "n", "off"}


def _bool_env(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    v = value.strip().lower()
    if v in _BOOL_TRUE:
        return True
    if v in _BOOL_FALSE:
        return False
    return bool(v) if v != "" else default


def _pubkey(value: Union[str, Pubkey], *, name: str) -> Pubkey:
    if isinstance(value, Pubkey):
        return value
    try:
        return Pubkey.from_string(str(value).strip())
    except (ValueError, TypeError) as e:
        raise ConfigError(f"{name} is not a valid base58 address", value=str(value)).with_cause(e) from e


# ------------------------------ dataclasses ---------------------------------


@dataclass(frozen=True)
class ProgramConfig:
    program_id: Pubkey = DEFAULT_PROGRAM_ID
    token_program_id: Pubkey = TOKEN_PROGRAM_ID
    ata_program_id: Pubkey = ASSOCIATED_TOKEN_PROGRAM_ID
    strict_refund_ata: bool = True

    def to_dict(self) -> Dict[str, object]:
        return {
            "program_id": str(self.program_id),
            "token_program_id": str(self.token_program_id),
            "ata_program_id": str(self.ata_program_id),
            "strict_refund_ata": self.strict_refund_ata,
        }


# ------------------------------ loader --------------------------------------


def load_config(
    env: Optional[Mapping[str, str]] = None,
    *,
    overrides: Optional[Mapping[str, object]] = None,
) -> ProgramConfig:
    """
    Build a ProgramConfig from environment and optional overrides.

    Overrides win over the environment. Keys: 'program_id', 'token_program_id',
    'ata_program_id', 'strict_refund_ata'.
    """
    env = os.environ if env is None else env
    overrides = dict(overrides or {})

    def key(field: str, var: str, default: Pubkey) -> Pubkey:
        return _pubkey(overrides.get(field, env.get(var, default)), name=var)  # type: ignore[arg-type]

    if "strict_refund_ata" in overrides:
        strict = bool(overrides["strict_refund_ata"])
    else:
        strict = _bool_env(env.get("ESCROW_STRICT_REFUND_ATA"), True)

    cfg = ProgramConfig(
        program_id=key("program_id", "ESCROW_PROGRAM_ID", DEFAULT_PROGRAM_ID),
        token_program_id=key("token_program_id", "ESCROW_TOKEN_PROGRAM_ID", TOKEN_PROGRAM_ID),
        ata_program_id=key("ata_program_id", "ESCROW_ATA_PROGRAM_ID", ASSOCIATED_TOKEN_PROGRAM_ID),
        strict_refund_ata=strict,
    )
    if cfg.program_id in (cfg.token_program_id, cfg.ata_program_id) or cfg.program_id in NATIVE_PROGRAMS:
        raise ConfigError("escrow program id collides with a native program id", program_id=cfg.program_id)
    return cfg


@lru_cache(maxsize=1)
def get_config() -> ProgramConfig:
    """Cached global config."""
    return load_config()


# ----------------------------- pretty-print ---------------------------------


def summary(cfg: Optional[ProgramConfig] = None) -> str:
    cfg = cfg or get_config()
    return (
        "escrow{"
        f"program={cfg.program_id}, token={cfg.token_program_id}, ata={cfg.ata_program_id}, "
        f"strict_refund_ata={int(cfg.strict_refund_ata)}"
        "}"
    )


__all__ = [
    "DEFAULT_PROGRAM_ID",
    "ProgramConfig",
    "load_config",
    "get_config",
    "summary",
]
