"""
host.invoke — program frames, cross-program calls and privilege verification.

An `InvokeContext` is the frame a program executes in. It records a snapshot of
every account handed to the program and, when the program returns, checks the
frame against the host's modification rules:

- only the owner may debit lamports or modify data
- an owner change requires the current owner, a writable account and zeroed data
- read-only accounts may not change at all
- the lamport total across the frame's accounts is conserved

Cross-program calls go through `invoke`, which re-checks the caller's frame,
grants signer privileges from authority capabilities (see `host.authority`),
runs the callee in a child frame and then refreshes the caller's snapshots so
the callee's legitimate changes are not attributed to the caller.

The typed helpers at the bottom (`create_account`, `token_transfer`, ...) are the
capabilities the escrow core consumes.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Sequence, Set, Tuple

from solders.pubkey import Pubkey

from core.errors import HostError, ProgramErrorCode
from core.logging import get_logger

from . import associated_token, system_program, token_program
from .accounts import AccountInfo
from .authority import Authority
from .ids import ASSOCIATED_TOKEN_PROGRAM_ID, SYSTEM_PROGRAM_ID, TOKEN_PROGRAM_ID
from .rent import Rent

log = get_logger("host.invoke")

MAX_INVOKE_STACK_HEIGHT = 5

Handler = Callable[..., Any]
_Snapshot = Tuple[int, Pubkey, bytes, bool]


class InvokeContext:
    """
    Execution frame of one program.

    Parameters
    ----------
    program_id:
        The program running in this frame.
    accounts:
        Handles passed to the program, in instruction order.
    signers:
        Keys holding signer privilege in this frame.
    rent:
        Rent schedule used for default funding of created accounts.
    logs:
        Shared transaction log sink.
    depth:
        Stack height, 1 for a top-level instruction.
    """

    def __init__(
        self,
        program_id: Pubkey,
        accounts: Sequence[AccountInfo],
        signers: Iterable[Pubkey] = (),
        *,
        rent: Optional[Rent] = None,
        logs: Optional[List[str]] = None,
        depth: int = 1,
    ) -> None:
        self.program_id = program_id
        self.accounts: List[AccountInfo] = list(accounts)
        self.signers: FrozenSet[Pubkey] = frozenset(signers)
        self.rent = rent or Rent()
        self.logs: List[str] = logs if logs is not None else []
        self.depth = depth
        self._handles: Dict[Pubkey, AccountInfo] = {}
        self._writable: Dict[Pubkey, bool] = {}
        for info in self.accounts:
            self._handles.setdefault(info.key, info)
            self._writable[info.key] = self._writable.get(info.key, False) or info.is_writable
        self._pre: Dict[Pubkey, _Snapshot] = {}
        self._refresh()

    # ------------------------------------------------------------------ #
    # Frame bookkeeping
    # ------------------------------------------------------------------ #

    def _refresh(self) -> None:
        self._pre = {key: info.snapshot() for key, info in self._handles.items()}

    def is_writable(self, key: Pubkey) -> bool:
        return self._writable.get(key, False)

    def has_account(self, key: Pubkey) -> bool:
        return key in self._handles

    def verify(self) -> None:
        """Check every account in the frame against the modification rules."""
        pre_total = 0
        post_total = 0
        for key, info in self._handles.items():
            pre = self._pre[key]
            post = info.snapshot()
            pre_total += pre[0]
            post_total += post[0]
            self._verify_account(key, pre, post)
        if pre_total != post_total:
            raise HostError(
                ProgramErrorCode.UNBALANCED_INSTRUCTION,
                "sum of account balances before and after instruction do not match",
                program_id=self.program_id,
                before=pre_total,
                after=post_total,
            )

    def _verify_account(self, key: Pubkey, pre: _Snapshot, post: _Snapshot) -> None:
        pre_lamports, pre_owner, pre_data, pre_exec = pre
        post_lamports, post_owner, post_data, post_exec = post
        writable = self.is_writable(key)
        owned = pre_owner == self.program_id

        if post_owner != pre_owner and not (writable and owned and not any(post_data)):
            raise HostError(
                ProgramErrorCode.MODIFIED_PROGRAM_ID,
                "instruction illegally modified the program id of an account",
                account=key,
                program_id=self.program_id,
            )
        if post_exec != pre_exec:
            raise HostError(ProgramErrorCode.MODIFIED_PROGRAM_ID, "executable flag changed", account=key)
        if post_lamports != pre_lamports:
            if not writable:
                raise HostError(ProgramErrorCode.READONLY_LAMPORT_CHANGE, "read-only account lamports changed", account=key)
            if post_lamports < pre_lamports and not owned:
                raise HostError(
                    ProgramErrorCode.EXTERNAL_LAMPORT_SPEND,
                    "instruction spent from the balance of an account it does not own",
                    account=key,
                    owner=pre_owner,
                    program_id=self.program_id,
                )
        if post_data != pre_data:
            if not writable:
                raise HostError(ProgramErrorCode.READONLY_DATA_MODIFIED, "read-only account data modified", account=key)
            if not owned:
                raise HostError(
                    ProgramErrorCode.EXTERNAL_DATA_MODIFIED,
                    "instruction modified data of an account it does not own",
                    account=key,
                    owner=pre_owner,
                    program_id=self.program_id,
                )

    # ------------------------------------------------------------------ #
    # Cross-program invocation
    # ------------------------------------------------------------------ #

    def signers_for(self, *authorities: Authority) -> Set[Pubkey]:
        """Verify each authority in this frame and return the keys it signs for."""
        return {a.verify(self) for a in authorities}

    def invoke(
        self,
        program_id: Pubkey,
        accounts: Sequence[AccountInfo],
        handler: Handler,
        *args: Any,
        signers: Sequence[Authority] = (),
    ) -> Any:
        """
        Run `handler(child_ctx, child_accounts, *args)` as `program_id` in a child
        frame. Every account (and the program itself) must be available to the
        caller. Signer privileges are those the caller holds on the passed
        accounts plus the keys proven by `signers`.
        """
        if self.depth + 1 > MAX_INVOKE_STACK_HEIGHT:
            raise HostError(
                ProgramErrorCode.CALL_DEPTH,
                "cross-program invocation exceeds the maximum stack height",
                depth=self.depth + 1,
            )
        if program_id not in self._handles:
            raise HostError(
                ProgramErrorCode.ACCOUNT_NOT_AVAILABLE,
                "program account not passed to the caller",
                program_id=program_id,
            )
        for info in accounts:
            if info.key not in self._handles:
                raise HostError(
                    ProgramErrorCode.ACCOUNT_NOT_AVAILABLE,
                    "account not passed to the caller",
                    account=info.key,
                )

        self.verify()
        granted = self.signers_for(*signers)
        keys = {info.key for info in accounts}
        child_signers = {k for k in self.signers if k in keys} | (granted & keys)
        child_accounts = [
            info.alias(is_signer=info.key in child_signers, is_writable=self.is_writable(info.key))
            for info in accounts
        ]
        child = InvokeContext(
            program_id,
            child_accounts,
            child_signers,
            rent=self.rent,
            logs=self.logs,
            depth=self.depth + 1,
        )
        self.logs.append(f"Program {program_id} invoke [{child.depth}]")
        log.debug("invoke", extra={"program": str(program_id), "depth": child.depth})
        try:
            result = handler(child, child_accounts, *args)
            child.verify()
        except Exception as e:
            self.logs.append(f"Program {program_id} failed: {e}")
            raise
        self.logs.append(f"Program {program_id} success")
        self._refresh()
        return result

    def msg(self, text: str) -> None:
        self.logs.append(f"Program log: {text}")

    # ------------------------------------------------------------------ #
    # System program capabilities
    # ------------------------------------------------------------------ #

    def create_account(
        self,
        funding: Authority,
        new_account: Authority,
        *,
        space: int,
        owner: Pubkey,
        lamports: Optional[int] = None,
    ) -> None:
        """Create `new_account` with `space` zeroed bytes owned by `owner`.

        `lamports` defaults to the rent-exempt minimum for `space`.
        """
        if lamports is None:
            lamports = self.rent.minimum_balance(space)
        self.invoke(
            SYSTEM_PROGRAM_ID,
            [funding.info, new_account.info],
            system_program.create_account,
            lamports,
            space,
            owner,
            signers=(funding, new_account),
        )

    def system_transfer(self, source: Authority, destination: AccountInfo, lamports: int) -> None:
        self.invoke(
            SYSTEM_PROGRAM_ID,
            [source.info, destination],
            system_program.transfer,
            lamports,
            signers=(source,),
        )

    def system_allocate(self, account: Authority, space: int) -> None:
        self.invoke(SYSTEM_PROGRAM_ID, [account.info], system_program.allocate, space, signers=(account,))

    def system_assign(self, account: Authority, owner: Pubkey) -> None:
        self.invoke(SYSTEM_PROGRAM_ID, [account.info], system_program.assign, owner, signers=(account,))

    # ------------------------------------------------------------------ #
    # Token program capabilities
    # ------------------------------------------------------------------ #

    def token_transfer(
        self,
        source: AccountInfo,
        destination: AccountInfo,
        authority: Authority,
        amount: int,
        *,
        program_id: Pubkey = TOKEN_PROGRAM_ID,
    ) -> None:
        self.invoke(
            program_id,
            [source, destination, authority.info],
            token_program.transfer,
            amount,
            signers=(authority,),
        )

    def token_close_account(
        self,
        account: AccountInfo,
        destination: AccountInfo,
        authority: Authority,
        *,
        program_id: Pubkey = TOKEN_PROGRAM_ID,
    ) -> None:
        self.invoke(
            program_id,
            [account, destination, authority.info],
            token_program.close_account,
            signers=(authority,),
        )

    def create_associated_token_account(
        self,
        funding: Authority,
        account: AccountInfo,
        wallet: AccountInfo,
        mint: AccountInfo,
        system_program_info: AccountInfo,
        token_program_info: AccountInfo,
        *,
        program_id: Pubkey = ASSOCIATED_TOKEN_PROGRAM_ID,
    ) -> None:
        self.invoke(
            program_id,
            [funding.info, account, wallet, mint, system_program_info, token_program_info],
            associated_token.create,
            signers=(funding,),
        )


__all__ = ["InvokeContext", "MAX_INVOKE_STACK_HEIGHT", "Handler"]
