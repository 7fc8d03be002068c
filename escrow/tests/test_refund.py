from __future__ import annotations

from dataclasses import replace

import pytest
from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from core.errors import ProgramErrorCode
from escrow.client import build_refund_instruction
from escrow.pda import associated_token_address, escrow_address_from_bump, find_escrow_address
from escrow.processor import EscrowProgram
from escrow.state import TOMBSTONE, Escrow
from host.accounts import Account
from host.ids import SYSTEM_PROGRAM_ID, TOKEN_PROGRAM_ID
from host.token_program import ACCOUNT_LEN

from .conftest import MAKER_LAMPORTS, MAKER_TOKENS


@pytest.fixture
def escrow_key(config, maker):
    return find_escrow_address(maker.pubkey(), 7, config.program_id)[0]


@pytest.fixture
def vault_key(escrow_key, mint_a):
    return associated_token_address(escrow_key, mint_a)


@pytest.fixture
def made(make):
    result = make(seed=7, receive=500, amount=1000)
    assert result.is_success, result.error
    return result


# ---------------------------------------------------------------- happy path


def test_make_then_refund_round_trip(bank, config, maker, mint_a, mint_b, maker_ata_a, escrow_key, vault_key, made, refund):
    assert bank.token_balance(vault_key) == 1000
    record = Escrow.unpack(bytes(bank.get_account(escrow_key).data))
    assert (record.seed, record.maker, record.mint_a, record.mint_b, record.receive) == (
        7,
        maker.pubkey(),
        mint_a,
        mint_b,
        500,
    )
    assert escrow_address_from_bump(maker.pubkey(), 7, record.bump, config.program_id) == escrow_key

    result = refund(seed=7)
    assert result.is_success, result.error

    assert bank.token_balance(maker_ata_a) == MAKER_TOKENS
    assert bank.get_account(vault_key) is None
    assert bank.get_account(escrow_key) is None
    assert bank.lamports(maker.pubkey()) == MAKER_LAMPORTS


def test_refund_conserves_lamports(bank, made, refund):
    before = bank.total_lamports()
    assert refund().is_success
    assert bank.total_lamports() == before


def test_refund_returns_everything_held_by_the_vault(bank, maker_ata_a, vault_key, made, refund):
    bank.mint_to(vault_key, 250)
    assert refund().is_success
    assert bank.token_balance(maker_ata_a) == MAKER_TOKENS + 250


def test_teardown_leaves_a_tombstone_before_the_purge(bank, config, program, maker, mint_a, made):
    ix = build_refund_instruction(maker.pubkey(), mint_a, 7, config)
    with bank.scratch(ix, [maker]) as (ctx, infos):
        program.process(ctx, infos, bytes(ix.data))
        ctx.verify()

        escrow, vault = infos[1], infos[3]
        assert escrow.data == bytes([TOMBSTONE])
        assert escrow.lamports == 0
        assert escrow.owner == config.program_id
        assert vault.lamports == 0
        assert vault.data_len == 0
        assert vault.owner == SYSTEM_PROGRAM_ID

    # scratch frames never commit
    assert bank.get_account(ix.accounts[1].pubkey) is not None


def test_refund_creates_a_missing_maker_token_account(bank, config, maker, maker_ata_a, made, refund):
    del bank.accounts[maker_ata_a]

    result = refund()
    assert result.is_success, result.error

    acc = bank.get_account(maker_ata_a)
    assert acc.owner == TOKEN_PROGRAM_ID
    assert bank.token_balance(maker_ata_a) == 1000
    assert bank.lamports(maker.pubkey()) == MAKER_LAMPORTS - bank.rent.minimum_balance(ACCOUNT_LEN)


# ---------------------------------------------------------------- rejections


def test_only_the_maker_can_refund(bank, config, mint_a, escrow_key, vault_key, made):
    intruder = Keypair()
    bank.airdrop(intruder.pubkey(), 1_000_000_000)
    ix = build_refund_instruction(intruder.pubkey(), mint_a, 7, config, escrow=escrow_key)

    result = bank.process([ix], [intruder])
    assert result.error_code == ProgramErrorCode.INVALID_ACCOUNT_DATA.value
    assert bank.token_balance(vault_key) == 1000


def test_refund_without_an_escrow_is_rejected(bank, refund, maker_ata_a):
    result = refund(seed=99)
    assert result.error_code == ProgramErrorCode.INVALID_ACCOUNT_OWNER.value


def test_second_refund_is_rejected(bank, made, refund):
    assert refund().is_success
    assert refund().error_code == ProgramErrorCode.INVALID_ACCOUNT_OWNER.value


def test_mint_must_match_the_record(bank, config, maker, mint_a, mint_b, made):
    ix = build_refund_instruction(maker.pubkey(), mint_a, 7, config)
    metas = list(ix.accounts)
    metas[2] = AccountMeta(mint_b, False, False)
    result = bank.process([Instruction(ix.program_id, ix.data, metas)], [maker])
    assert result.error_code == ProgramErrorCode.INVALID_ACCOUNT_DATA.value


def test_tampered_bump_is_rejected(bank, escrow_key, made, refund):
    acc = bank.accounts[escrow_key]
    acc.data[Escrow.LEN - 1] = (acc.data[Escrow.LEN - 1] - 1) % 256

    result = refund()
    assert result.error_code in {
        ProgramErrorCode.INVALID_ACCOUNT_DATA.value,
        ProgramErrorCode.INVALID_SEEDS.value,
    }


def test_wrong_vault_is_rejected(bank, config, maker, mint_a, made):
    decoy = bank.create_token_account(Pubkey.new_unique(), mint_a, address=Pubkey.new_unique())
    ix = build_refund_instruction(maker.pubkey(), mint_a, 7, config)
    metas = list(ix.accounts)
    metas[3] = AccountMeta(decoy, False, True)
    result = bank.process([Instruction(ix.program_id, ix.data, metas)], [maker])
    assert result.error_code == ProgramErrorCode.INVALID_ACCOUNT_DATA.value


def test_escrow_must_be_writable(bank, config, maker, mint_a, escrow_key, made):
    ix = build_refund_instruction(maker.pubkey(), mint_a, 7, config)
    metas = list(ix.accounts)
    metas[1] = AccountMeta(escrow_key, False, False)
    result = bank.process([Instruction(ix.program_id, ix.data, metas)], [maker])
    assert result.error_code == ProgramErrorCode.INVALID_ARGUMENT.value


def _occupy(bank, key: Pubkey, owner: Pubkey, size: int = ACCOUNT_LEN) -> None:
    bank.accounts[key] = Account(lamports=5_000_000, data=bytearray(size), owner=owner)


def test_strict_check_rejects_a_foreign_maker_token_account(bank, maker_ata_a, made, refund):
    _occupy(bank, maker_ata_a, Pubkey.new_unique())
    assert refund().error_code == ProgramErrorCode.INVALID_ACCOUNT_OWNER.value


def test_strict_check_rejects_a_malformed_maker_token_account(bank, maker_ata_a, made, refund):
    _occupy(bank, maker_ata_a, TOKEN_PROGRAM_ID, size=ACCOUNT_LEN - 1)
    assert refund().error_code == ProgramErrorCode.INVALID_ACCOUNT_DATA.value


def test_lenient_mode_falls_through_to_creation(bank, config, maker_ata_a, made, refund):
    EscrowProgram(replace(config, strict_refund_ata=False)).install(bank)
    _occupy(bank, maker_ata_a, Pubkey.new_unique())
    assert refund().error_code == ProgramErrorCode.ACCOUNT_ALREADY_IN_USE.value


def test_failed_refund_changes_nothing(bank, escrow_key, vault_key, maker_ata_a, made, refund):
    _occupy(bank, maker_ata_a, Pubkey.new_unique())
    before = {k: a.copy() for k, a in bank.accounts.items()}

    assert not refund().is_success
    assert bank.accounts == before
