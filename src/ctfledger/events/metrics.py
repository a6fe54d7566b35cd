from __future__ import annotations

from ..metrics.ledger import _safe_counter

_events_total = None
_stream_errors_total = None


def get_events_total():
    global _events_total
    if _events_total is None:
        _events_total = _safe_counter("ctf_events_total", "Ledger events emitted", ["type"])
    return _events_total


def get_stream_errors_total():
    global _stream_errors_total
    if _stream_errors_total is None:
        _stream_errors_total = _safe_counter("ctf_event_stream_errors_total", "Event stream delivery failures", ["stream"])
    return _stream_errors_total
