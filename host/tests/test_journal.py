from __future__ import annotations

import pytest
from solders.pubkey import Pubkey

from host.accounts import Account
from host.journal import Journal


@pytest.fixture
def base():
    return {}


@pytest.fixture
def j(base):
    return Journal(base)


def test_writes_require_an_open_checkpoint(j):
    with pytest.raises(RuntimeError):
        j.get_for_write(Pubkey.new_unique())
    with pytest.raises(RuntimeError):
        j.commit()
    with pytest.raises(RuntimeError):
        j.revert()


def test_missing_account_materializes_empty(j):
    key = Pubkey.new_unique()
    j.begin()
    acc = j.get_for_write(key)
    assert acc.is_empty()
    assert j.exists(key)
    j.revert()
    assert not j.exists(key)


def test_commit_applies_to_base(j, base):
    key = Pubkey.new_unique()
    j.begin()
    j.get_for_write(key).lamports = 42
    j.commit()
    assert base[key].lamports == 42
    assert j.depth() == 0


def test_copy_on_write_leaves_base_untouched_on_revert(j, base):
    key = Pubkey.new_unique()
    base[key] = Account(lamports=10)
    j.begin()
    j.get_for_write(key).lamports = 99
    assert j.get(key).lamports == 99
    assert base[key].lamports == 10
    j.revert()
    assert j.get(key).lamports == 10


def test_nested_checkpoints(j, base):
    key = Pubkey.new_unique()
    base[key] = Account(lamports=1)
    j.begin()
    j.get_for_write(key).lamports = 2
    j.begin()
    j.get_for_write(key).lamports = 3
    j.revert()
    assert j.get(key).lamports == 2
    j.begin()
    j.get_for_write(key).lamports = 4
    j.commit()
    assert j.get(key).lamports == 4
    assert base[key].lamports == 1
    j.commit()
    assert base[key].lamports == 4


def test_destroy_hides_and_commit_deletes(j, base):
    key = Pubkey.new_unique()
    base[key] = Account(lamports=5)
    j.begin()
    j.destroy(key)
    assert j.get(key) is None
    assert key not in set(j.keys())
    j.commit()
    assert key not in base


def test_destroy_propagates_through_nested_commit(j, base):
    key = Pubkey.new_unique()
    base[key] = Account(lamports=5)
    j.begin()
    j.begin()
    j.destroy(key)
    j.commit()
    assert j.get(key) is None
    j.commit()
    assert key not in base


def test_touched_lists_top_overlay_writes(j):
    a, b = Pubkey.new_unique(), Pubkey.new_unique()
    j.begin()
    j.get_for_write(a)
    j.begin()
    j.get_for_write(b)
    assert j.touched() == [b]
