"""
Escrow — core.utils
-------------------

Byte-level helpers shared by the program and the host. The submodule is named
`bytes`; prefer module-qualified access (`from core.utils import bytes as bu`)
to avoid shadowing the builtin.
"""

from __future__ import annotations

from . import bytes as bytes_utils

__all__ = ["bytes_utils"]
