"""
Escrow — core.errors
--------------------

A small, consistent error system shared by the escrow program and the in-memory host.

Design goals
------------
- One root `ProgramError` with machine-friendly `code`, `kind` and optional `data`.
- Concrete subclasses for every rejection the program or a host primitive can produce.
- Non-invasive helpers to enrich errors with contextual fields.
- Safe JSON representation (`to_dict`) suitable for logs and transaction results.

Every error is fatal to the current instruction. Nothing here is retryable: the
caller resubmits a corrected transaction instead.

Kinds
-----
MALFORMED_INPUT    payload length / value problems, unknown discriminator
UNTRUSTED_ACCOUNT  wrong owner, wrong length, derived-address mismatch, wrong program
AUTHORIZATION      missing signature, signer privilege escalation
ARITY              account list does not match the instruction's fixed arity
SUB_OPERATION      create / transfer / close primitive failed, host rule violated
UNSUPPORTED        reserved instruction without an implementation
CONFIG             bad configuration or derivation search exhausted

This module uses only stdlib to avoid import cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Type, TypeVar

# ---------------------------------------------------------------------------
# Error codes & kinds
# ---------------------------------------------------------------------------


class ErrorKind(str, Enum):
    MALFORMED_INPUT = "malformed_input"
    UNTRUSTED_ACCOUNT = "untrusted_account"
    AUTHORIZATION = "authorization"
    ARITY = "arity"
    SUB_OPERATION = "sub_operation"
    UNSUPPORTED = "unsupported"
    CONFIG = "config"
    INTERNAL = "internal"


class ProgramErrorCode(str, Enum):
    # Generic
    INTERNAL = "PROGRAM/INTERNAL"
    NOT_IMPLEMENTED = "PROGRAM/NOT_IMPLEMENTED"
    CONFIG = "PROGRAM/CONFIG"
    DERIVATION = "PROGRAM/DERIVATION"

    # Instruction payload
    INVALID_ARGUMENT = "PROGRAM/INVALID_ARGUMENT"
    INVALID_INSTRUCTION_DATA = "PROGRAM/INVALID_INSTRUCTION_DATA"

    # Accounts
    NOT_ENOUGH_ACCOUNT_KEYS = "PROGRAM/NOT_ENOUGH_ACCOUNT_KEYS"
    INVALID_ACCOUNT_OWNER = "PROGRAM/INVALID_ACCOUNT_OWNER"
    INVALID_ACCOUNT_DATA = "PROGRAM/INVALID_ACCOUNT_DATA"
    INCORRECT_PROGRAM_ID = "PROGRAM/INCORRECT_PROGRAM_ID"
    INVALID_SEEDS = "PROGRAM/INVALID_SEEDS"
    MISSING_REQUIRED_SIGNATURE = "PROGRAM/MISSING_REQUIRED_SIGNATURE"
    PRIVILEGE_ESCALATION = "PROGRAM/PRIVILEGE_ESCALATION"

    # Host primitives
    ACCOUNT_ALREADY_IN_USE = "HOST/ACCOUNT_ALREADY_IN_USE"
    INSUFFICIENT_FUNDS = "HOST/INSUFFICIENT_FUNDS"
    INVALID_REALLOC = "HOST/INVALID_REALLOC"
    READONLY_DATA_MODIFIED = "HOST/READONLY_DATA_MODIFIED"
    READONLY_LAMPORT_CHANGE = "HOST/READONLY_LAMPORT_CHANGE"
    EXTERNAL_LAMPORT_SPEND = "HOST/EXTERNAL_ACCOUNT_LAMPORT_SPEND"
    EXTERNAL_DATA_MODIFIED = "HOST/EXTERNAL_ACCOUNT_DATA_MODIFIED"
    MODIFIED_PROGRAM_ID = "HOST/MODIFIED_PROGRAM_ID"
    UNBALANCED_INSTRUCTION = "HOST/UNBALANCED_INSTRUCTION"
    UNKNOWN_PROGRAM = "HOST/UNKNOWN_PROGRAM"
    CALL_DEPTH = "HOST/CALL_DEPTH"
    ACCOUNT_NOT_AVAILABLE = "HOST/ACCOUNT_NOT_AVAILABLE"

    # Token program
    TOKEN = "TOKEN/ERROR"


@dataclass(eq=False)
class ProgramError(Exception):
    """
    Root error for the escrow program and its host.

    Attributes
    ----------
    code: str
        Machine-stable error code (see ProgramErrorCode).
    message: str
        Human hint suitable for logs.
    kind: ErrorKind
        Which class of rejection this is.
    data: dict
        Optional machine data (addresses, sizes). Must be JSON-serializable.
    cause: Optional[BaseException]
        Wrapped original exception; not included in equality comparison.
    """

    code: str
    message: str
    kind: ErrorKind = ErrorKind.INTERNAL
    data: Dict[str, Any] = field(default_factory=dict)
    cause: Optional[BaseException] = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        super().__init__(f"{getattr(self.code, 'value', self.code)}: {self.message}")

    @property
    def retryable(self) -> bool:
        return False

    def with_context(self, **ctx: Any) -> "ProgramError":
        """Return a *new* error with extra context merged (does not mutate)."""
        d = dict(self.data)
        for k, v in ctx.items():
            d[k] = _coerce_json(v)
        return _clone(self, data=d)

    def with_cause(self, exc: BaseException) -> "ProgramError":
        return _clone(self, cause=exc)

    def to_dict(self, include_cause: bool = False) -> Dict[str, Any]:
        """JSON-safe shape suitable for logs and transaction results."""
        out = {
            "code": str(self.code.value if isinstance(self.code, Enum) else self.code),
            "kind": self.kind.value,
            "message": self.message,
            "data": _coerce_json(self.data),
        }
        if include_cause and self.cause is not None:
            out["cause"] = {
                "type": type(self.cause).__name__,
                "message": str(self.cause),
            }
        return out

    def __str__(self) -> str:  # pragma: no cover - human formatting
        code = self.code.value if isinstance(self.code, Enum) else self.code
        parts = [f"{code}: {self.message}"]
        if self.data:
            preview = ", ".join(f"{k}={_preview(v)}" for k, v in self.data.items())
            parts.append(f"[{preview}]")
        return " ".join(parts)


def _clone(err: ProgramError, **changes: Any) -> ProgramError:
    # Subclasses have bespoke __init__ signatures; copy state instead of re-calling it.
    new = Exception.__new__(type(err))
    new.__dict__.update(err.__dict__)
    new.__dict__.update(changes)
    Exception.__init__(new, *err.args)
    return new


# ---------------------------------------------------------------------------
# Malformed input
# ---------------------------------------------------------------------------


class InvalidInstructionData(ProgramError):
    def __init__(self, message="invalid instruction data", **data: Any) -> None:
        super().__init__(
            code=ProgramErrorCode.INVALID_INSTRUCTION_DATA,
            message=message,
            kind=ErrorKind.MALFORMED_INPUT,
            data=_jsonmap(data),
        )


class InvalidArgument(ProgramError):
    def __init__(self, message="invalid argument", **data: Any) -> None:
        super().__init__(
            code=ProgramErrorCode.INVALID_ARGUMENT,
            message=message,
            kind=ErrorKind.MALFORMED_INPUT,
            data=_jsonmap(data),
        )


# ---------------------------------------------------------------------------
# Untrusted / forged accounts
# ---------------------------------------------------------------------------


class InvalidAccountOwner(ProgramError):
    def __init__(self, message="invalid account owner", **data: Any) -> None:
        super().__init__(
            code=ProgramErrorCode.INVALID_ACCOUNT_OWNER,
            message=message,
            kind=ErrorKind.UNTRUSTED_ACCOUNT,
            data=_jsonmap(data),
        )


class InvalidAccountData(ProgramError):
    def __init__(self, message="invalid account data", **data: Any) -> None:
        super().__init__(
            code=ProgramErrorCode.INVALID_ACCOUNT_DATA,
            message=message,
            kind=ErrorKind.UNTRUSTED_ACCOUNT,
            data=_jsonmap(data),
        )


class IncorrectProgramId(ProgramError):
    def __init__(self, expected: Any, got: Any) -> None:
        super().__init__(
            code=ProgramErrorCode.INCORRECT_PROGRAM_ID,
            message="incorrect program id",
            kind=ErrorKind.UNTRUSTED_ACCOUNT,
            data=_jsonmap({"expected": expected, "got": got}),
        )


class InvalidSeeds(ProgramError):
    def __init__(self, message="provided seeds do not result in a valid address", **data: Any) -> None:
        super().__init__(
            code=ProgramErrorCode.INVALID_SEEDS,
            message=message,
            kind=ErrorKind.UNTRUSTED_ACCOUNT,
            data=_jsonmap(data),
        )


# ---------------------------------------------------------------------------
# Authorization / arity
# ---------------------------------------------------------------------------


class MissingRequiredSignature(ProgramError):
    def __init__(self, account: Any = None, **data: Any) -> None:
        d = dict(data)
        if account is not None:
            d["account"] = account
        super().__init__(
            code=ProgramErrorCode.MISSING_REQUIRED_SIGNATURE,
            message="missing required signature",
            kind=ErrorKind.AUTHORIZATION,
            data=_jsonmap(d),
        )


class PrivilegeEscalation(ProgramError):
    def __init__(self, message="signer privilege escalated", **data: Any) -> None:
        super().__init__(
            code=ProgramErrorCode.PRIVILEGE_ESCALATION,
            message=message,
            kind=ErrorKind.AUTHORIZATION,
            data=_jsonmap(data),
        )


class NotEnoughAccountKeys(ProgramError):
    def __init__(self, expected: int, got: int, instruction: str = "") -> None:
        super().__init__(
            code=ProgramErrorCode.NOT_ENOUGH_ACCOUNT_KEYS,
            message=f"account arity mismatch: expected {expected}, got {got}",
            kind=ErrorKind.ARITY,
            data={"expected": expected, "got": got, "instruction": instruction},
        )


# ---------------------------------------------------------------------------
# Sub-operation failures (host primitives)
# ---------------------------------------------------------------------------


class HostError(ProgramError):
    def __init__(self, code: ProgramErrorCode, message: str, **data: Any) -> None:
        super().__init__(
            code=code,
            message=message,
            kind=ErrorKind.SUB_OPERATION,
            data=_jsonmap(data),
        )


class AccountAlreadyInUse(HostError):
    def __init__(self, account: Any) -> None:
        super().__init__(
            ProgramErrorCode.ACCOUNT_ALREADY_IN_USE, "account already in use", account=account
        )


class InsufficientFunds(HostError):
    def __init__(self, account: Any, needed: int, available: int) -> None:
        super().__init__(
            ProgramErrorCode.INSUFFICIENT_FUNDS,
            "insufficient funds",
            account=account,
            needed=needed,
            available=available,
        )


class TokenError(HostError):
    """Failure reported by the token program; `reason` is a stable short tag."""

    def __init__(self, reason: str, message: str = "", **data: Any) -> None:
        super().__init__(
            ProgramErrorCode.TOKEN, message or reason.replace("_", " "), reason=reason, **data
        )

    @property
    def reason(self) -> str:
        return str(self.data.get("reason", ""))


# ---------------------------------------------------------------------------
# Unsupported / config / internal
# ---------------------------------------------------------------------------


class NotImplementedFeature(ProgramError):
    def __init__(self, feature: str, **data: Any) -> None:
        super().__init__(
            code=ProgramErrorCode.NOT_IMPLEMENTED,
            message=f"instruction not implemented: {feature}",
            kind=ErrorKind.UNSUPPORTED,
            data=_jsonmap({"feature": feature, **data}),
        )


class ConfigError(ProgramError):
    def __init__(self, message="invalid configuration", **data: Any) -> None:
        super().__init__(
            code=ProgramErrorCode.CONFIG,
            message=message,
            kind=ErrorKind.CONFIG,
            data=_jsonmap(data),
        )


class DerivationError(ProgramError):
    """No bump in the search space produced an off-curve address."""

    def __init__(self, message="unable to find a viable program address bump", **data: Any) -> None:
        super().__init__(
            code=ProgramErrorCode.DERIVATION,
            message=message,
            kind=ErrorKind.CONFIG,
            data=_jsonmap(data),
        )


class InternalError(ProgramError):
    def __init__(self, message="internal error", **data: Any) -> None:
        super().__init__(
            code=ProgramErrorCode.INTERNAL,
            message=message,
            kind=ErrorKind.INTERNAL,
            data=_jsonmap(data),
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

T = TypeVar("T", bound=ProgramError)


def wrap(exc: BaseException, *, as_: Type[T] = InternalError, **ctx: Any) -> ProgramError:
    """
    Wrap any exception into a ProgramError subclass, attaching context.
    If `exc` is already a ProgramError, returns a context-enriched copy.
    """
    if isinstance(exc, ProgramError):
        return exc.with_context(**ctx)
    err = as_(str(exc) or "wrapped exception", **ctx)  # type: ignore[call-arg]
    return err.with_cause(exc)


def _jsonmap(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: _coerce_json(v) for k, v in data.items()}


def _coerce_json(v: Any) -> Any:
    # Keep JSON primitives; hex-encode bytes; stringify the rest (pubkeys → base58).
    if v is None or isinstance(v, (bool, int, float, str)):
        return v
    if isinstance(v, dict):
        return {str(k): _coerce_json(x) for k, x in v.items()}
    if isinstance(v, (list, tuple)):
        return [_coerce_json(x) for x in v]
    if isinstance(v, (bytes, bytearray)):
        return bytes(v).hex()
    return str(v)


def _preview(v: Any, limit: int = 96) -> str:
    s = str(_coerce_json(v))
    return s if len(s) <= limit else s[:limit] + "…"


__all__ = [
    "ErrorKind",
    "ProgramErrorCode",
    "ProgramError",
    "InvalidInstructionData",
    "InvalidArgument",
    "InvalidAccountOwner",
    "InvalidAccountData",
    "IncorrectProgramId",
    "InvalidSeeds",
    "MissingRequiredSignature",
    "PrivilegeEscalation",
    "NotEnoughAccountKeys",
    "HostError",
    "AccountAlreadyInUse",
    "InsufficientFunds",
    "TokenError",
    "NotImplementedFeature",
    "ConfigError",
    "DerivationError",
    "InternalError",
    "wrap",
]
