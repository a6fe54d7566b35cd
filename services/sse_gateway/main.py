from __future__ import annotations

import os
import json
from typing import AsyncGenerator, Optional, List
from fastapi import FastAPI, Request
from fastapi.responses import StreamingResponse

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
STREAM = os.getenv("EVENTS_STREAM", "ctfledger.events")
GROUP = os.getenv("SSE_GROUP", "sse_gateway")

try:
    import redis.asyncio as aioredis
except Exception:  # pragma: no cover
    aioredis = None  # type: ignore

app = FastAPI(title="ctfledger SSE Gateway")


async def ensure_group(r):
    try:
        await r.xgroup_create(name=STREAM, groupname=GROUP, id="$", mkstream=True)
    except Exception as e:  # BUSYGROUP
        if "BUSYGROUP" in str(e):
            return
        raise


def _match_filters(js: str, types: Optional[List[str]], conditions: Optional[List[str]]) -> bool:
    try:
        data = json.loads(js)
    except ValueError:
        return False
    if not isinstance(data, dict):
        return False
    ev = data.get("event")
    if not isinstance(ev, dict):
        return False
    ok_t = not types or ev.get("event_type") in types
    ok_c = not conditions or str(ev.get("condition_id", "")).lower() in conditions
    return ok_t and ok_c


async def event_stream(types: Optional[List[str]], conditions: Optional[List[str]]) -> AsyncGenerator[bytes, None]:
    if aioredis is None:  # pragma: no cover
        yield b": redis async client missing\n\n"
        return
    r = aioredis.from_url(REDIS_URL, decode_responses=True)
    await ensure_group(r)
    consumer = os.getenv("SSE_CONSUMER", os.uname().nodename)
    try:
        while True:
            resp = await r.xreadgroup(GROUP, consumer, {STREAM: ">"}, count=100, block=15000)
            if resp:
                for _stream, entries in resp:
                    for msg_id, fields in entries:
                        js = fields.get("json", "")
                        if _match_filters(js, types, conditions):
                            yield f"event: ledger\ndata: {js}\n\n".encode()
                        await r.xack(STREAM, GROUP, msg_id)
            else:
                yield b": keep-alive\n\n"
    finally:
        await r.aclose()


@app.get("/events")
async def sse(request: Request, types: Optional[str] = None, conditions: Optional[str] = None):
    ty = types.split(",") if types else None
    co = [c.lower() for c in conditions.split(",")] if conditions else None
    generator = event_stream(ty, co)
    return StreamingResponse(generator, media_type="text/event-stream")
