"""Append-only event log for one ledger instance.

The log is the audit trail off-chain observers rebuild ledger history from.
Events emitted inside `transaction()` are buffered and only appended (and
mirrored to the stream) when the enclosing operation succeeds.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional, Type, TypeVar

from .schema import BaseEvent, EventEnvelope
from .bus import publish as publish_event
from .metrics import get_stream_errors_total

E = TypeVar("E", bound=BaseEvent)

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


class EventLog:
    def __init__(self, publisher: Optional[Callable[[EventEnvelope], None]] = None):
        self.publisher = publisher
        self.envelopes: List[EventEnvelope] = []
        self._pending: Optional[List[EventEnvelope]] = None
        self._depth = 0

    def emit(self, event: BaseEvent, correlation_id: str) -> EventEnvelope:
        env = EventEnvelope(correlation_id=correlation_id, event=event)
        if self._pending is not None:
            self._pending.append(env)
        else:
            self._commit([env])
        return env

    @contextmanager
    def transaction(self) -> Iterator[None]:
        outer = self._depth == 0
        if outer:
            self._pending = []
        self._depth += 1
        try:
            yield
        except BaseException:
            if outer:
                self._pending = None
            raise
        finally:
            self._depth -= 1
        if outer:
            pending, self._pending = self._pending or [], None
            self._commit(pending)

    def _commit(self, envs: List[EventEnvelope]) -> None:
        for env in envs:
            env.sequence = len(self.envelopes)
            self.envelopes.append(env)
        # Appended events are final; a failing mirror must not undo them
        publisher = self.publisher or publish_event
        for env in envs:
            try:
                publisher(env)
            except Exception as e:
                get_stream_errors_total().labels("publisher").inc()
                logger.warning(f"event publisher failed for sequence {env.sequence} ({env.event.event_type}): {e}")

    def events(self) -> List[BaseEvent]:
        return [env.event for env in self.envelopes]

    def of_type(self, cls: Type[E]) -> List[E]:
        return [env.event for env in self.envelopes if isinstance(env.event, cls)]  # type: ignore[misc]

    def __len__(self) -> int:
        return len(self.envelopes)

    def __iter__(self):
        return iter(self.envelopes)
