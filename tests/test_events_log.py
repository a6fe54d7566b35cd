import pytest
from prometheus_client import REGISTRY

from ctfledger.collateral.token import InMemoryCollateral
from ctfledger.engine import ConditionalTokens
from ctfledger.errors import InsufficientBalance
from ctfledger.events.log import EventLog
from ctfledger.events.schema import ConditionPreparation, PositionSplit
from ctfledger.ids.derive import ZERO_COLLECTION


def _prep(ts: int = 1) -> ConditionPreparation:
    return ConditionPreparation(ts=ts, condition_id="0x01", oracle="o", question_id="0x02", outcome_slot_count=2)


def test_emit_outside_transaction_commits_immediately():
    seen = []
    log = EventLog(publisher=seen.append)
    env = log.emit(_prep(), correlation_id="c1")
    assert len(log) == 1 and seen == [env]
    assert env.sequence == 0


def test_transaction_buffers_until_success_and_discards_on_error():
    seen = []
    log = EventLog(publisher=seen.append)
    with pytest.raises(RuntimeError):
        with log.transaction():
            log.emit(_prep(1), correlation_id="c1")
            assert len(log) == 0
            raise RuntimeError("abort")
    assert len(log) == 0 and seen == []

    with log.transaction():
        log.emit(_prep(2), correlation_id="c2")
        log.emit(_prep(3), correlation_id="c3")
    assert [env.sequence for env in log] == [0, 1]
    assert [env.correlation_id for env in seen] == ["c2", "c3"]


def test_ledger_publishes_only_committed_events():
    published = []
    ctf = ConditionalTokens("ctf", publisher=published.append)
    usdc = InMemoryCollateral("usdc")
    usdc.mint("alice", 100)
    usdc.approve("alice", "ctf", 100)
    cid = ctf.prepare_condition("oracle", "0x01", 2).condition_id
    ctf.split_position("alice", usdc, ZERO_COLLECTION, cid, [1, 2], 100)
    with pytest.raises(InsufficientBalance):
        ctf.merge_positions("alice", usdc, ZERO_COLLECTION, cid, [1, 2], 101)
    types = [env.event.event_type for env in published]
    assert types == ["condition_preparation", "position_split"]
    assert len(ctf.events.of_type(PositionSplit)) == 1


def test_default_publisher_resolved_at_commit(monkeypatch):
    captured = []
    monkeypatch.setattr("ctfledger.events.log.publish_event", captured.append)
    ctf = ConditionalTokens("ctf")
    ctf.prepare_condition("oracle", "0x01", 2)
    assert [env.event.event_type for env in captured] == ["condition_preparation"]


def test_failing_publisher_does_not_undo_committed_operation(caplog):
    def broken(env):
        raise RuntimeError("mirror down")

    labels = {"stream": "publisher"}
    before = REGISTRY.get_sample_value("ctf_event_stream_errors_total", labels) or 0.0
    ctf = ConditionalTokens("ctf", publisher=broken)
    usdc = InMemoryCollateral("usdc")
    usdc.mint("alice", 100)
    usdc.approve("alice", "ctf", 100)
    cid = ctf.prepare_condition("oracle", "0x01", 2).condition_id
    ids = ctf.split_position("alice", usdc, ZERO_COLLECTION, cid, [1, 2], 100)

    assert usdc.balance_of("alice") == 0
    assert ctf.collateral_in_custody(usdc) == 100
    assert [ctf.balance_of("alice", pid) for pid in ids] == [100, 100]
    assert [env.sequence for env in ctf.events] == [0, 1]
    assert REGISTRY.get_sample_value("ctf_event_stream_errors_total", labels) == before + 2
    assert any("event publisher failed" in r.message for r in caplog.records)
