"""
escrow.tests.conftest
=====================

Shared fixtures for escrow program tests.

- `config`     a ProgramConfig built from an empty environment (no host leakage)
- `bank`       a fresh in-memory Bank with the escrow program deployed
- `maker`      a funded keypair
- `mint_a` / `mint_b`
- `maker_ata_a` the maker's associated token account for mint A, pre-funded
- `make`       helper submitting a Make transaction for the maker
- `refund`     helper submitting a Refund transaction
"""
from __future__ import annotations

from typing import Callable

import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from escrow.client import build_make_instruction, build_refund_instruction
from escrow.config import ProgramConfig, load_config
from escrow.processor import EscrowProgram
from host.rent import Rent
from host.runtime import Bank, TxResult

MAKER_LAMPORTS = 10_000_000_000
MAKER_TOKENS = 5_000


@pytest.fixture
def config() -> ProgramConfig:
    return load_config(env={})


@pytest.fixture
def program(config: ProgramConfig) -> EscrowProgram:
    return EscrowProgram(config)


@pytest.fixture
def bank(program: EscrowProgram) -> Bank:
    b = Bank(rent=Rent())
    program.install(b)
    return b


@pytest.fixture
def maker(bank: Bank) -> Keypair:
    kp = Keypair()
    bank.airdrop(kp.pubkey(), MAKER_LAMPORTS)
    return kp


@pytest.fixture
def mint_a(bank: Bank) -> Pubkey:
    return bank.create_mint(decimals=6)


@pytest.fixture
def mint_b(bank: Bank) -> Pubkey:
    return bank.create_mint(decimals=9)


@pytest.fixture
def maker_ata_a(bank: Bank, maker: Keypair, mint_a: Pubkey) -> Pubkey:
    return bank.create_token_account(maker.pubkey(), mint_a, amount=MAKER_TOKENS)


@pytest.fixture
def make(bank: Bank, config: ProgramConfig, maker: Keypair, mint_a: Pubkey, mint_b: Pubkey, maker_ata_a: Pubkey) -> Callable[..., TxResult]:
    def _make(seed: int = 7, receive: int = 500, amount: int = 1000) -> TxResult:
        ix = build_make_instruction(maker.pubkey(), mint_a, mint_b, seed, receive, amount, config)
        return bank.process([ix], [maker])

    return _make


@pytest.fixture
def refund(bank: Bank, config: ProgramConfig, maker: Keypair, mint_a: Pubkey) -> Callable[..., TxResult]:
    def _refund(seed: int = 7) -> TxResult:
        ix = build_refund_instruction(maker.pubkey(), mint_a, seed, config)
        return bank.process([ix], [maker])

    return _refund
