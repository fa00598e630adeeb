"""
Structured event notifications.

The engine reports what it did (normalizations, scan passes, rejected
batches) as ``Event`` values handed to a *sink*, any callable taking one
event. Where the events end up is the sink's business: ``logging_sink``
writes them to the standard logging tree, ``EventQueue`` buffers them for a
transport that may fail.
"""

import logging
import time
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


def _now():
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class Event:
    level: str
    message: str
    function: str = ""
    mode: str = ""
    context: dict = field(default_factory=dict)
    timestamp: str = field(default_factory=_now)

    def to_dict(self):
        return asdict(self)


def emit(sink, level, message, function="", mode="", **context):
    """Build an event and hand it to ``sink``. A failing sink is logged, not raised."""
    if sink is None:
        return
    event = Event(level=level, message=message, function=function, mode=mode, context=context)
    try:
        sink(event)
    except Exception:
        logger.warning("event sink %r failed for %r", sink, message, exc_info=True)


def logging_sink(event, name="curvescan.events"):
    logging.getLogger(name).log(
        LEVELS.get(event.level, logging.INFO),
        "%s [%s/%s] %s",
        event.message, event.function or "-", event.mode or "-", event.context,
    )


@dataclass
class _Pending:
    event: Event
    added_at: float
    attempts: int = 0


class EventQueue:
    """
    Bounded fire-and-forget sink in front of an unreliable ``transport``.

    Calling the queue only enqueues, so the analysis path never waits on
    delivery. ``flush()`` drains the queue in order. A transport that raises
    or returns ``False`` has failed; the event is retried after
    ``retry_delay * attempts`` seconds, and dropped after ``retry_attempts``
    failures or once it is older than ``max_age`` seconds. When the queue is
    full the oldest event is dropped.

    Nothing in this package builds one: the HTTP service logs in-process via
    ``logging_sink``. It is for callers that ship events to a remote
    collector, e.g. ``analyze(expr, sink=EventQueue(post_event))``.
    """

    def __init__(self, transport, maxlen=100, retry_attempts=3, retry_delay=1.0,
                 max_age=300.0, clock=time.monotonic, sleep=time.sleep):
        self.transport = transport
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self.max_age = max_age
        self._clock = clock
        self._sleep = sleep
        self._queue = deque(maxlen=maxlen)

    def __call__(self, event):
        if len(self._queue) == self._queue.maxlen:
            logger.warning("event queue full, dropping %r", self._queue[0].event.message)
        self._queue.append(_Pending(event, self._clock()))

    @property
    def pending(self):
        return len(self._queue)

    def flush(self):
        """Deliver what is queued; returns the number of events delivered."""
        delivered = 0
        while self._queue:
            item = self._queue[0]
            if item.attempts >= self.retry_attempts:
                logger.warning("dropping event %r after %d attempts", item.event.message, item.attempts)
                self._queue.popleft()
                continue
            if self._clock() - item.added_at > self.max_age:
                logger.warning("dropping stale event %r", item.event.message)
                self._queue.popleft()
                continue

            try:
                ok = self.transport(item.event) is not False
            except Exception as e:
                logger.debug("transport failed for %r: %s", item.event.message, e)
                ok = False

            if ok:
                self._queue.popleft()
                delivered += 1
            else:
                item.attempts += 1
                if item.attempts < self.retry_attempts:
                    self._sleep(self.retry_delay * item.attempts)
        return delivered
