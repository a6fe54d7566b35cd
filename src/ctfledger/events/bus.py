from __future__ import annotations

import json
import os
import logging
from typing import Optional

try:
    import redis
except Exception:  # pragma: no cover
    redis = None  # type: ignore

from .schema import EventEnvelope
from .metrics import get_events_total, get_stream_errors_total


STREAM_EVENTS = os.getenv("EVENTS_STREAM", "ctfledger.events")
STREAM_DLQ = os.getenv("EVENTS_DLQ", "ctfledger.dlq")
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

log = logging.getLogger("ctfledger.events")

_client = None


def configure(redis_url: Optional[str] = None, stream: Optional[str] = None, dlq: Optional[str] = None) -> None:
    """Override stream settings loaded from the environment (used by main)."""
    global REDIS_URL, STREAM_EVENTS, STREAM_DLQ, _client
    if redis_url:
        REDIS_URL = redis_url
        _client = None
    if stream:
        STREAM_EVENTS = stream
    if dlq:
        STREAM_DLQ = dlq


def stream_enabled() -> bool:
    return os.getenv("DISABLE_EVENT_STREAM", "0") != "1" and redis is not None


def _get_redis():
    global _client
    if redis is None:
        raise RuntimeError("redis client not available")
    if _client is None:
        _client = redis.Redis.from_url(REDIS_URL, decode_responses=True, socket_connect_timeout=0.5)
    return _client


def to_line(env: EventEnvelope) -> str:
    return json.dumps({
        "schema_version": env.schema_version,
        "correlation_id": env.correlation_id,
        "sequence": env.sequence,
        "event": env.event.model_dump(),
    }, separators=(",", ":"))


def publish(env: EventEnvelope) -> None:
    """Mirror a committed ledger event to Redis Streams and log a single-line JSON.

    The in-process EventLog is the record of truth; stream failures are counted
    and logged but never fail the ledger operation that produced the event.
    """
    get_events_total().labels(env.event.event_type).inc()

    line = to_line(env)
    if stream_enabled():
        try:
            _get_redis().xadd(STREAM_EVENTS, {"json": line})
        except Exception as e:
            get_stream_errors_total().labels(STREAM_EVENTS).inc()
            log.warning(f"event stream unavailable ({e}); trying DLQ {STREAM_DLQ}")
            try:
                _get_redis().xadd(STREAM_DLQ, {"json": line})
            except Exception:
                get_stream_errors_total().labels(STREAM_DLQ).inc()
    log.info(line)


def ensure_group(group: str) -> None:
    r = _get_redis()
    try:
        r.xgroup_create(name=STREAM_EVENTS, groupname=group, id="$", mkstream=True)
    except Exception as e:
        if "BUSYGROUP" in str(e):
            return
        raise


def consume(group: str, consumer: str, block_ms: int = 15000):
    """Generator yielding (id, json_str) from the Redis Stream consumer group.

    Yields None when a read times out. Caller is responsible for XACK.
    """
    r = _get_redis()
    ensure_group(group)
    while True:
        resp = r.xreadgroup(group, consumer, {STREAM_EVENTS: ">"}, count=100, block=block_ms)
        if not resp:
            yield None
            continue
        # resp is list[(stream, [(id, {field:value}), ...])]
        for _stream, entries in resp:
            for msg_id, fields in entries:
                yield (msg_id, fields.get("json", ""))
