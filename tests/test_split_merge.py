import pytest

from ctfledger.collateral.token import InMemoryCollateral
from ctfledger.engine import ConditionalTokens, Partition
from ctfledger.engine import partition as partition_module
from ctfledger.errors import (
    CollateralTransferFailed,
    ConditionNotFound,
    InsufficientBalance,
    InvalidAmount,
    InvalidIndexSet,
    InvalidPartition,
)
from ctfledger.events.schema import PositionSplit, PositionsMerge
from ctfledger.ids.derive import ZERO_COLLECTION, collection_id, condition_id, position_id


Q = "0x" + "22" * 32


def _setup(slots: int = 2, funds: int = 10_000):
    ctf = ConditionalTokens("ctf")
    usdc = InMemoryCollateral("usdc", symbol="USDC")
    usdc.mint("alice", funds)
    usdc.approve("alice", ctf.address, funds)
    cond = ctf.prepare_condition("oracle", Q, slots)
    return ctf, usdc, cond.condition_id


def test_split_from_collateral_mints_each_child():
    ctf, usdc, cid = _setup()
    ids = ctf.split_position("alice", usdc, ZERO_COLLECTION, cid, [1, 2], 1000)
    assert ids == [
        position_id("usdc", collection_id(ZERO_COLLECTION, cid, 1)),
        position_id("usdc", collection_id(ZERO_COLLECTION, cid, 2)),
    ]
    assert [ctf.balance_of("alice", p) for p in ids] == [1000, 1000]
    assert usdc.balance_of("alice") == 9_000
    assert ctf.collateral_in_custody(usdc) == 1000
    ev = ctf.events.of_type(PositionSplit)[-1]
    assert ev.partition == [1, 2] and ev.amount == 1000 and ev.stakeholder == "alice"


def test_split_merge_round_trip_restores_collateral():
    ctf, usdc, cid = _setup(slots=3)
    ids = ctf.split_position("alice", usdc, ZERO_COLLECTION, cid, [1, 6], 700)
    ctf.merge_positions("alice", usdc, ZERO_COLLECTION, cid, [1, 6], 700)
    assert usdc.balance_of("alice") == 10_000
    assert ctf.collateral_in_custody(usdc) == 0
    assert all(ctf.balance_of("alice", p) == 0 for p in ids)
    assert isinstance(ctf.events.events()[-1], PositionsMerge)


def test_nested_split_and_merge_move_parent_position():
    ctf, usdc, outer = _setup()
    inner = ctf.prepare_condition("oracle", "0x33", 2).condition_id
    yes_outer = ctf.split_position("alice", usdc, ZERO_COLLECTION, outer, [1, 2], 500)[0]
    parent = collection_id(ZERO_COLLECTION, outer, 1)

    children = ctf.split_position("alice", usdc, parent, inner, [1, 2], 200)
    assert ctf.balance_of("alice", yes_outer) == 300
    assert [ctf.balance_of("alice", p) for p in children] == [200, 200]
    # Custody only moves on root splits
    assert ctf.collateral_in_custody(usdc) == 500

    ctf.merge_positions("alice", usdc, parent, inner, [1, 2], 200)
    assert ctf.balance_of("alice", yes_outer) == 500
    assert ctf.collateral_in_custody(usdc) == 500


def test_nested_split_needs_parent_balance():
    ctf, usdc, outer = _setup()
    inner = ctf.prepare_condition("oracle", "0x33", 2).condition_id
    parent = collection_id(ZERO_COLLECTION, outer, 1)
    with pytest.raises(InsufficientBalance):
        ctf.split_position("alice", usdc, parent, inner, [1, 2], 1)


def test_split_without_allowance_fails_as_collateral_error():
    ctf, usdc, cid = _setup()
    usdc.mint("bob", 100)
    with pytest.raises(CollateralTransferFailed):
        ctf.split_position("bob", usdc, ZERO_COLLECTION, cid, [1, 2], 100)
    assert usdc.balance_of("bob") == 100
    assert ctf.positions.total_supply(position_id("usdc", collection_id(ZERO_COLLECTION, cid, 1))) == 0
    assert not ctf.events.of_type(PositionSplit)


def test_split_preconditions():
    ctf, usdc, cid = _setup()
    with pytest.raises(ConditionNotFound):
        ctf.split_position("alice", usdc, ZERO_COLLECTION, condition_id("x", Q, 2), [1, 2], 1)
    with pytest.raises(InvalidPartition):
        ctf.split_position("alice", usdc, ZERO_COLLECTION, cid, [], 1)
    with pytest.raises(InvalidIndexSet):
        ctf.split_position("alice", usdc, ZERO_COLLECTION, cid, [1, 0], 1)
    with pytest.raises(InvalidIndexSet):
        ctf.split_position("alice", usdc, ZERO_COLLECTION, cid, [1, 4], 1)
    with pytest.raises(InvalidAmount):
        ctf.split_position("alice", usdc, ZERO_COLLECTION, cid, [1, 2], 0)
    assert usdc.balance_of("alice") == 10_000


def test_redundant_and_partial_partitions_are_accepted():
    ctf, usdc, cid = _setup(slots=3)
    # Overlapping: slot 0 appears in both index sets
    ids = ctf.split_position("alice", usdc, ZERO_COLLECTION, cid, [1, 3], 100)
    assert [ctf.balance_of("alice", p) for p in ids] == [100, 100]
    # Partial: slot 2 is not covered
    ctf.split_position("alice", usdc, ZERO_COLLECTION, cid, [1, 2], 50)
    assert ctf.collateral_in_custody(usdc) == 150
    p = Partition.of([1, 3], 3)
    assert not p.is_disjoint() and not p.is_complete()
    assert Partition.of([1, 6], 3).is_complete()


def test_merge_checks_every_child_before_burning():
    ctf, usdc, cid = _setup()
    yes, no = ctf.split_position("alice", usdc, ZERO_COLLECTION, cid, [1, 2], 100)
    ctf.transfer("alice", "alice", "bob", no, 60)
    with pytest.raises(InsufficientBalance):
        ctf.merge_positions("alice", usdc, ZERO_COLLECTION, cid, [1, 2], 100)
    assert ctf.balance_of("alice", yes) == 100
    assert ctf.balance_of("alice", no) == 40
    # Duplicate index sets need the amount once per occurrence
    with pytest.raises(InsufficientBalance):
        ctf.merge_positions("alice", usdc, ZERO_COLLECTION, cid, [1, 1], 60)
    assert ctf.balance_of("alice", yes) == 100


class _FrozenRelease(InMemoryCollateral):
    def transfer(self, sender, to, amount):
        return False


def test_failed_release_rolls_back_merge():
    ctf = ConditionalTokens("ctf")
    usdc = _FrozenRelease("usdc")
    usdc.mint("alice", 100)
    usdc.approve("alice", "ctf", 100)
    cid = ctf.prepare_condition("oracle", Q, 2).condition_id
    yes, no = ctf.split_position("alice", usdc, ZERO_COLLECTION, cid, [1, 2], 100)
    events_before = len(ctf.events)
    with pytest.raises(CollateralTransferFailed):
        ctf.merge_positions("alice", usdc, ZERO_COLLECTION, cid, [1, 2], 100)
    assert ctf.balance_of("alice", yes) == 100
    assert ctf.balance_of("alice", no) == 100
    assert len(ctf.events) == events_before


class _Exploding(InMemoryCollateral):
    def transfer_from(self, spender, owner, to, amount):
        raise RuntimeError("token paused")


def test_raising_collateral_is_wrapped():
    ctf = ConditionalTokens("ctf")
    asset = _Exploding("paused")
    cid = ctf.prepare_condition("oracle", Q, 2).condition_id
    with pytest.raises(CollateralTransferFailed) as ei:
        ctf.split_position("alice", asset, ZERO_COLLECTION, cid, [1, 2], 1)
    assert isinstance(ei.value.__cause__, RuntimeError)


def test_partition_module_documents_permissive_rules():
    assert partition_module.__doc__ and "Disjointness and coverage" in partition_module.__doc__
