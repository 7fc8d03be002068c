"""
host.rent — rent-exemption schedule.

An account is rent exempt when it holds at least

    (ACCOUNT_STORAGE_OVERHEAD + data_len) * lamports_per_byte_year * exemption_threshold

lamports. Every account the escrow program creates is funded to exactly this
minimum.

Environment variables (all optional):
  ESCROW_RENT_LAMPORTS_PER_BYTE_YEAR  -> integer (default: 3480)
  ESCROW_RENT_EXEMPTION_THRESHOLD     -> float years (default: 2.0)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from core.errors import ConfigError

ACCOUNT_STORAGE_OVERHEAD = 128
DEFAULT_LAMPORTS_PER_BYTE_YEAR = 3480
DEFAULT_EXEMPTION_THRESHOLD = 2.0


@dataclass(frozen=True)
class Rent:
    lamports_per_byte_year: int = DEFAULT_LAMPORTS_PER_BYTE_YEAR
    exemption_threshold: float = DEFAULT_EXEMPTION_THRESHOLD

    def __post_init__(self) -> None:
        if self.lamports_per_byte_year < 0:
            raise ConfigError("lamports_per_byte_year must be >= 0")
        if self.exemption_threshold < 0:
            raise ConfigError("exemption_threshold must be >= 0")

    def minimum_balance(self, data_len: int) -> int:
        """Lamports required for an account of `data_len` bytes to be rent exempt."""
        if data_len < 0:
            raise ValueError("data_len must be non-negative")
        bytes_total = ACCOUNT_STORAGE_OVERHEAD + data_len
        return int(bytes_total * self.lamports_per_byte_year * self.exemption_threshold)

    def is_exempt(self, lamports: int, data_len: int) -> bool:
        return lamports >= self.minimum_balance(data_len)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Rent":
        env = os.environ if env is None else env
        try:
            return cls(
                lamports_per_byte_year=int(
                    env.get("ESCROW_RENT_LAMPORTS_PER_BYTE_YEAR", DEFAULT_LAMPORTS_PER_BYTE_YEAR)
                ),
                exemption_threshold=float(
                    env.get("ESCROW_RENT_EXEMPTION_THRESHOLD", DEFAULT_EXEMPTION_THRESHOLD)
                ),
            )
        except ValueError as e:
            raise ConfigError(f"bad rent configuration: {e}") from e


__all__ = ["Rent", "ACCOUNT_STORAGE_OVERHEAD"]
