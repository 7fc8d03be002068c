from __future__ import annotations

"""
escrow.cli
----------

Command line helpers for the escrow program:
- derive: print the escrow address, bump and vault for a maker/seed
- demo:   run Make then Refund against the in-memory host and report balances

Examples
--------
python -m escrow.cli derive --maker <base58> --seed 7 --mint-a <base58>
python -m escrow.cli demo --seed 7 --receive 500 --amount 1000 --json
"""

import json
from typing import Any, Dict, Optional

import typer
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from core import logging as clog
from core.errors import ProgramError
from host.runtime import Bank

from .client import build_make_instruction, build_refund_instruction
from .config import load_config, summary
from .pda import associated_token_address, find_escrow_address
from .processor import EscrowProgram

app = typer.Typer(
    name="escrow",
    add_completion=False,
    no_args_is_help=True,
    help="Escrow program tools: derive addresses, run an end-to-end demo.",
)

DEMO_AIRDROP = 10_000_000_000

log = clog.get_logger("escrow.cli")


# -------------------- utils --------------------


def _parse_key(value: str, name: str) -> Pubkey:
    try:
        return Pubkey.from_string(value)
    except ValueError:
        typer.echo(f"error: {name} is not a valid base58 address: {value!r}", err=True)
        raise typer.Exit(2)


def _print(data: Dict[str, Any], json_out: bool) -> None:
    if json_out:
        typer.echo(json.dumps(data, indent=2, sort_keys=True))
        return
    for k, v in data.items():
        typer.echo(f"- {k}: {v}")


def run_demo(seed: int, receive: int, amount: int, program_id: Optional[str] = None) -> Dict[str, Any]:
    """Make an escrow, refund it, and return a JSON-friendly report."""
    overrides = {"program_id": program_id} if program_id else None
    cfg = load_config(overrides=overrides)
    bank = Bank()
    EscrowProgram(cfg).install(bank)

    maker = Keypair()
    bank.airdrop(maker.pubkey(), DEMO_AIRDROP)
    mint_a = bank.create_mint(decimals=6)
    mint_b = bank.create_mint(decimals=6)
    maker_ata_a = bank.create_token_account(maker.pubkey(), mint_a, amount=amount)
    escrow, bump = find_escrow_address(maker.pubkey(), seed, cfg.program_id)
    vault = associated_token_address(escrow, mint_a, cfg.token_program_id, cfg.ata_program_id)

    report: Dict[str, Any] = {
        "config": summary(cfg),
        "maker": str(maker.pubkey()),
        "escrow": str(escrow),
        "bump": bump,
        "vault": str(vault),
    }

    made = bank.process([build_make_instruction(maker.pubkey(), mint_a, mint_b, seed, receive, amount, cfg)], [maker])
    report["make"] = {
        "status": made.status.value,
        "error": made.error,
        "vault_balance": bank.token_balance(vault),
        "maker_balance": bank.token_balance(maker_ata_a),
        "escrow_lamports": bank.lamports(escrow),
    }
    if not made.is_success:
        return report

    refunded = bank.process([build_refund_instruction(maker.pubkey(), mint_a, seed, cfg)], [maker])
    report["refund"] = {
        "status": refunded.status.value,
        "error": refunded.error,
        "vault_exists": bank.get_account(vault) is not None,
        "escrow_exists": bank.get_account(escrow) is not None,
        "maker_balance": bank.token_balance(maker_ata_a),
        "maker_lamports": bank.lamports(maker.pubkey()),
    }
    report["logs"] = list(refunded.logs)
    return report


# -------------------- commands --------------------


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level (DEBUG, INFO, WARNING, ...)."),
    log_json: Optional[bool] = typer.Option(None, "--log-json/--log-text", help="Force JSON or text logs."),
) -> None:
    clog.configure(json=log_json, level=log_level)


@app.command("derive")
def cmd_derive(
    maker: str = typer.Option(..., "--maker", help="Maker wallet (base58)."),
    seed: int = typer.Option(..., "--seed", min=0, help="Escrow seed (u64)."),
    mint_a: Optional[str] = typer.Option(None, "--mint-a", help="Deposit mint; prints the vault address too."),
    program_id: Optional[str] = typer.Option(None, "--program-id", help="Override ESCROW_PROGRAM_ID."),
    json_out: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Print the escrow address and bump for (maker, seed)."""
    try:
        cfg = load_config(overrides={"program_id": program_id} if program_id else None)
        maker_key = _parse_key(maker, "--maker")
        escrow, bump = find_escrow_address(maker_key, seed, cfg.program_id)
        out: Dict[str, Any] = {"program_id": str(cfg.program_id), "escrow": str(escrow), "bump": bump}
        if mint_a:
            mint_key = _parse_key(mint_a, "--mint-a")
            out["vault"] = str(associated_token_address(escrow, mint_key, cfg.token_program_id, cfg.ata_program_id))
    except ProgramError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(1)
    _print(out, json_out)


@app.command("demo")
def cmd_demo(
    seed: int = typer.Option(7, "--seed", min=0, help="Escrow seed (u64)."),
    receive: int = typer.Option(500, "--receive", min=0, help="Amount of mint B requested."),
    amount: int = typer.Option(1000, "--amount", min=1, help="Amount of mint A deposited."),
    program_id: Optional[str] = typer.Option(None, "--program-id", help="Override ESCROW_PROGRAM_ID."),
    json_out: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Run Make then Refund against a fresh in-memory bank."""
    try:
        report = run_demo(seed, receive, amount, program_id)
    except ProgramError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(1)
    _print(report, json_out)
    if report["make"]["status"] != "success" or report.get("refund", {}).get("status") != "success":
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
