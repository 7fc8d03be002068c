import os

import pytest

from core.logging import clear_context
from escrow.config import get_config


@pytest.fixture(autouse=True)
def _isolated_escrow_env(monkeypatch):
    """
    Keep ESCROW_* variables from the developer's shell out of every test and
    drop the cached process config and logging context on both sides.
    """
    for name in list(os.environ):
        if name.startswith("ESCROW_"):
            monkeypatch.delenv(name, raising=False)
    get_config.cache_clear()
    clear_context()
    yield
    get_config.cache_clear()
    clear_context()
