"""
host.runtime — an in-memory bank that executes transactions atomically.

A `Bank` owns the committed account set, the native programs and any
registered user programs. `apply_transaction` executes each instruction in its
own top-level frame (see `host.invoke.InvokeContext`) inside one journal
checkpoint:

  - any ProgramError reverts the checkpoint and is reported in the TxResult
  - on success, accounts left with zero lamports are purged and the checkpoint
    is committed

Test and demo setup helpers (`airdrop`, `create_mint`, `create_token_account`,
`mint_to`) write straight into committed state and must not be called while a
transaction is open.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from core.errors import HostError, MissingRequiredSignature, ProgramError, ProgramErrorCode
from core.logging import bind, get_logger, trace_scope

from . import token_program
from .accounts import Account, AccountInfo
from .associated_token import get_associated_token_address
from .ids import NATIVE_LOADER_ID, NATIVE_PROGRAMS, TOKEN_PROGRAM_ID
from .invoke import InvokeContext
from .journal import Journal
from .rent import Rent

log = get_logger("host.runtime")

Entrypoint = Callable[[InvokeContext, List[AccountInfo], bytes], Any]
Signer = Union[Keypair, Pubkey]


# --------------------------------------------------------------------------- #
# Transactions & results
# --------------------------------------------------------------------------- #


class TxStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class TxResult:
    status: TxStatus
    logs: Tuple[str, ...] = ()
    error: Optional[Dict[str, Any]] = None

    @property
    def is_success(self) -> bool:
        return self.status is TxStatus.SUCCESS

    @property
    def error_code(self) -> Optional[str]:
        return None if self.error is None else self.error.get("code")

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status.value, "logs": list(self.logs), "error": self.error}


def _signer_key(s: Signer) -> Pubkey:
    return s.pubkey() if isinstance(s, Keypair) else s


@dataclass(frozen=True)
class Transaction:
    """Ordered instructions plus the keys that signed them."""

    instructions: Tuple[Instruction, ...]
    signers: FrozenSet[Pubkey] = field(default_factory=frozenset)

    @classmethod
    def new(cls, instructions: Iterable[Instruction], signers: Iterable[Signer] = ()) -> "Transaction":
        return cls(tuple(instructions), frozenset(_signer_key(s) for s in signers))


# --------------------------------------------------------------------------- #
# Bank
# --------------------------------------------------------------------------- #


class Bank:
    def __init__(self, *, rent: Optional[Rent] = None) -> None:
        self.rent = rent or Rent.from_env()
        self.accounts: Dict[Pubkey, Account] = {}
        self.journal = Journal(self.accounts)
        self._programs: Dict[Pubkey, Entrypoint] = {}
        for program_id in NATIVE_PROGRAMS:
            self._install_program_account(program_id)

    # ------------------------------------------------------------------ #
    # Programs
    # ------------------------------------------------------------------ #

    def _install_program_account(self, program_id: Pubkey) -> None:
        self.accounts[program_id] = Account(lamports=1, owner=NATIVE_LOADER_ID, executable=True)

    def register(self, program_id: Pubkey, entrypoint: Entrypoint) -> None:
        """Deploy `entrypoint` as the program at `program_id`."""
        self._install_program_account(program_id)
        self._programs[program_id] = entrypoint
        log.debug("program registered", extra={"program": str(program_id)})

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def get_account(self, key: Pubkey) -> Optional[Account]:
        return self.journal.get(key)

    def lamports(self, key: Pubkey) -> int:
        acc = self.get_account(key)
        return acc.lamports if acc is not None else 0

    def token_balance(self, key: Pubkey) -> int:
        acc = self.get_account(key)
        if acc is None:
            return 0
        return token_program.read_amount(bytes(acc.data))

    def total_lamports(self) -> int:
        return sum(a.lamports for a in self.accounts.values())

    # ------------------------------------------------------------------ #
    # Setup helpers (direct writes to committed state)
    # ------------------------------------------------------------------ #

    def _require_idle(self) -> None:
        if self.journal.depth():
            raise RuntimeError("setup helpers cannot run inside an open transaction")

    def airdrop(self, key: Pubkey, lamports: int) -> None:
        self._require_idle()
        acc = self.accounts.setdefault(key, Account())
        acc.lamports += lamports

    def create_mint(
        self,
        *,
        mint: Optional[Pubkey] = None,
        decimals: int = 6,
        authority: Optional[Pubkey] = None,
        owner: Pubkey = TOKEN_PROGRAM_ID,
    ) -> Pubkey:
        self._require_idle()
        key = mint or Pubkey.new_unique()
        state = token_program.Mint(mint_authority=authority, decimals=decimals)
        self.accounts[key] = Account(
            lamports=self.rent.minimum_balance(token_program.MINT_LEN),
            data=bytearray(state.pack()),
            owner=owner,
        )
        return key

    def create_token_account(
        self,
        owner: Pubkey,
        mint: Pubkey,
        *,
        amount: int = 0,
        address: Optional[Pubkey] = None,
        token_program_id: Pubkey = TOKEN_PROGRAM_ID,
    ) -> Pubkey:
        """Create an initialized token account; defaults to the owner's associated address."""
        self._require_idle()
        key = address or get_associated_token_address(owner, mint, token_program_id)
        state = token_program.TokenAccount(mint=mint, owner=owner)
        self.accounts[key] = Account(
            lamports=self.rent.minimum_balance(token_program.ACCOUNT_LEN),
            data=bytearray(state.pack()),
            owner=token_program_id,
        )
        if amount:
            self.mint_to(key, amount)
        return key

    def mint_to(self, token_account: Pubkey, amount: int) -> None:
        self._require_idle()
        acc = self.accounts[token_account]
        state = token_program.TokenAccount.unpack(bytes(acc.data))
        state.amount += amount
        acc.data[:] = state.pack()
        mint_acc = self.accounts.get(state.mint)
        if mint_acc is not None:
            mint = token_program.Mint.unpack(bytes(mint_acc.data))
            mint.supply += amount
            mint_acc.data[:] = mint.pack()

    # ------------------------------------------------------------------ #
    # Execution
    # ------------------------------------------------------------------ #

    def _load_accounts(self, ix: Instruction, signers: FrozenSet[Pubkey]) -> List[AccountInfo]:
        # Duplicate keys share one account and the union of their privileges
        flags: Dict[Pubkey, Tuple[bool, bool]] = {}
        for meta in ix.accounts:
            s, w = flags.get(meta.pubkey, (False, False))
            flags[meta.pubkey] = (s or meta.is_signer, w or meta.is_writable)

        infos: List[AccountInfo] = []
        for meta in ix.accounts:
            is_signer, is_writable = flags[meta.pubkey]
            if is_signer and meta.pubkey not in signers:
                raise MissingRequiredSignature(meta.pubkey)
            acc = self.journal.get_for_write(meta.pubkey)
            infos.append(
                AccountInfo(
                    meta.pubkey,
                    acc,
                    is_signer=is_signer,
                    is_writable=is_writable and not acc.executable,
                )
            )
        return infos

    def _frame(self, ix: Instruction, signers: FrozenSet[Pubkey], logs: List[str]) -> Tuple[InvokeContext, List[AccountInfo]]:
        infos = self._load_accounts(ix, signers)
        ctx = InvokeContext(
            ix.program_id,
            infos,
            {i.key for i in infos if i.is_signer},
            rent=self.rent,
            logs=logs,
            depth=1,
        )
        return ctx, infos

    def _execute(self, ix: Instruction, signers: FrozenSet[Pubkey], logs: List[str]) -> None:
        entrypoint = self._programs.get(ix.program_id)
        if entrypoint is None:
            raise HostError(ProgramErrorCode.UNKNOWN_PROGRAM, "program is not deployed", program_id=ix.program_id)
        ctx, infos = self._frame(ix, signers, logs)
        logs.append(f"Program {ix.program_id} invoke [1]")
        try:
            entrypoint(ctx, infos, bytes(ix.data))
            ctx.verify()
        except ProgramError as e:
            logs.append(f"Program {ix.program_id} failed: {e}")
            raise
        logs.append(f"Program {ix.program_id} success")

    def _purge_empty(self) -> None:
        for key in self.journal.touched():
            acc = self.journal.get(key)
            if acc is not None and acc.lamports == 0:
                self.journal.destroy(key)

    def apply_transaction(self, tx: Transaction) -> TxResult:
        """Execute every instruction or none of them."""
        logs: List[str] = []
        with trace_scope():
            self.journal.begin()
            try:
                for index, ix in enumerate(tx.instructions):
                    bind(program=str(ix.program_id))
                    self._execute(ix, tx.signers, logs)
            except ProgramError as e:
                self.journal.revert()
                log.info("transaction failed", extra={"code": e.to_dict()["code"], "instruction_index": index})
                return TxResult(TxStatus.FAILED, tuple(logs), e.to_dict())
            except BaseException:
                self.journal.revert()
                raise
            self._purge_empty()
            self.journal.commit()
            log.info("transaction committed", extra={"instructions": len(tx.instructions)})
            return TxResult(TxStatus.SUCCESS, tuple(logs))

    def process(self, instructions: Sequence[Instruction], signers: Iterable[Signer] = ()) -> TxResult:
        return self.apply_transaction(Transaction.new(instructions, signers))

    @contextmanager
    def scratch(
        self, ix: Instruction, signers: Iterable[Signer] = ()
    ) -> Iterator[Tuple[InvokeContext, List[AccountInfo]]]:
        """
        Open a top-level frame for `ix` without running any program; every write
        is discarded on exit. Lets tests drive a processor directly and inspect
        handles before the commit-time purge.
        """
        self.journal.begin()
        try:
            yield self._frame(ix, frozenset(_signer_key(s) for s in signers), [])
        finally:
            self.journal.revert()


__all__ = ["Bank", "Transaction", "TxResult", "TxStatus", "Entrypoint"]
