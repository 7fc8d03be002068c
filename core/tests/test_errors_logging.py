from __future__ import annotations

import io
import json
import logging

import pytest
from solders.pubkey import Pubkey

from core import logging as clog
from core.errors import (
    ErrorKind,
    InternalError,
    InvalidAccountData,
    ProgramError,
    ProgramErrorCode,
    TokenError,
    wrap,
)
from core.utils.bytes import b, ensure_u64, u64_le


# ---------------------------------------------------------------- errors


def test_to_dict_is_json_safe():
    key = Pubkey.new_unique()
    err = InvalidAccountData("bad length", account=key, raw=b"\x01\x02", sizes=(1, 2))
    d = err.to_dict()
    assert d["code"] == ProgramErrorCode.INVALID_ACCOUNT_DATA.value
    assert d["kind"] == ErrorKind.UNTRUSTED_ACCOUNT.value
    assert d["data"] == {"account": str(key), "raw": "0102", "sizes": [1, 2]}
    json.dumps(d)


def test_with_context_returns_a_new_error():
    err = InvalidAccountData("x", a=1)
    enriched = err.with_context(b=2)
    assert isinstance(enriched, InvalidAccountData)
    assert enriched.data == {"a": 1, "b": 2}
    assert err.data == {"a": 1}


def test_wrap_foreign_and_program_errors():
    cause = ValueError("boom")
    wrapped = wrap(cause, where="test")
    assert isinstance(wrapped, InternalError)
    assert wrapped.cause is cause
    assert wrapped.data == {"where": "test"}

    again = wrap(wrapped, step=2)
    assert isinstance(again, InternalError)
    assert again.data == {"where": "test", "step": 2}


def test_token_error_reason_and_message():
    err = TokenError("insufficient_funds", needed=3)
    assert err.reason == "insufficient_funds"
    assert err.message == "insufficient funds"
    assert str(err).startswith("TOKEN/ERROR: insufficient funds")
    assert isinstance(err, ProgramError)


# ---------------------------------------------------------------- logging


@pytest.fixture
def capture():
    root = logging.getLogger()
    saved = (root.level, list(root.handlers))
    stream = io.StringIO()
    yield stream
    root.handlers[:] = saved[1]
    root.setLevel(saved[0])


def test_json_lines_carry_the_bound_context(capture):
    clog.configure(json=True, level="INFO", stream=capture)
    log = clog.get_logger("escrow.test")
    with clog.trace_scope(trace_id="abc"):
        clog.bind(instruction="make")
        log.info("escrow made", extra={"seed": 7, "key": Pubkey.default()})
    line = json.loads(capture.getvalue().strip())
    assert line["msg"] == "escrow made"
    assert line["trace_id"] == "abc"
    assert line["instruction"] == "make"
    assert line["seed"] == 7
    assert line["key"] == str(Pubkey.default())
    assert "instruction" not in clog.context()


def test_text_format_and_adapter(capture):
    clog.configure(json=False, level="DEBUG", stream=capture)
    log = clog.with_fields(clog.get_logger("escrow.test"), program="escrow")
    log.debug("hello", extra={"n": 1})
    out = capture.getvalue()
    assert "| DEBUG | escrow.test" in out
    assert "program=escrow" in out
    assert "n=1" in out
    assert out.rstrip().endswith("| hello")


def test_env_selects_the_format(capture, monkeypatch):
    monkeypatch.setenv("ESCROW_LOG_FORMAT", "json")
    monkeypatch.setenv("ESCROW_LOG_LEVEL", "WARNING")
    clog.configure_from_env()
    root = logging.getLogger()
    assert root.level == logging.WARNING
    assert isinstance(root.handlers[0].formatter, clog.JSONFormatter)


def test_unbind_removes_fields():
    clog.bind(program="p", tx="t")
    clog.unbind("tx")
    assert clog.context() == {"program": "p"}


# ---------------------------------------------------------------- bytes


def test_u64_helpers():
    assert u64_le(500) == (500).to_bytes(8, "little")
    with pytest.raises(OverflowError):
        u64_le(-1)
    with pytest.raises(TypeError):
        ensure_u64(True)
    assert b(bytearray(b"ab")) == b"ab"
    assert b(Pubkey.default()) == bytes(32)
