import json

import pytest

pytest.importorskip("fastapi")

from services.sse_gateway.main import _match_filters


def _line(event_type: str, condition_id: str = "0xabc") -> str:
    return json.dumps({"event": {"event_type": event_type, "condition_id": condition_id}})


def test_filters_by_type_and_condition():
    js = _line("position_split", "0xABC")
    assert _match_filters(js, None, None)
    assert _match_filters(js, ["position_split"], None)
    assert not _match_filters(js, ["payout_redemption"], None)
    assert _match_filters(js, None, ["0xabc"])
    assert not _match_filters(js, ["position_split"], ["0xdef"])


def test_bad_json_is_dropped():
    assert not _match_filters("not json", None, None)


def test_non_object_entries_are_dropped():
    assert not _match_filters("[]", None, None)
    assert not _match_filters("42", ["position_split"], None)
    assert not _match_filters(json.dumps({"event": ["x"]}), None, None)
