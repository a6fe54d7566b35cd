from ctfledger.events.schema import (
    EventEnvelope,
    PayoutRedemption,
    PositionSplit,
    TransferSingle,
)


def test_event_envelope_roundtrip_keeps_subtype():
    split = PositionSplit(
        ts=1, stakeholder="alice", collateral="usdc", parent_collection_id="0x" + "00" * 32,
        condition_id="0x" + "ab" * 32, partition=[1, 2], amount=1000,
    )
    env = EventEnvelope(correlation_id="c1", event=split)
    js = env.model_dump_json()
    assert '"position_split"' in js
    back = EventEnvelope.model_validate_json(js)
    assert isinstance(back.event, PositionSplit)
    assert back.event.partition == [1, 2]


def test_large_position_ids_survive_json():
    big = 2 ** 255 + 12345
    env = EventEnvelope(
        correlation_id="c2",
        event=TransferSingle(ts=2, operator="a", sender="a", recipient="b", position_id=big, amount=1),
    )
    back = EventEnvelope.model_validate_json(env.model_dump_json())
    assert back.event.position_id == big


def test_redemption_event_fields():
    ev = PayoutRedemption(
        ts=3, redeemer="bob", collateral="usdc", parent_collection_id="0x00",
        condition_id="0x01", index_sets=[2], payout=0,
    )
    assert ev.event_type == "payout_redemption"
    assert ev.ledger == "ctf"
