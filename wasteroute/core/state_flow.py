"""
StateFlow - a single-writer observable value cell.

Holds one immutable snapshot. Writers replace it wholesale; readers either
read ``value``, register a synchronous listener, or iterate ``subscribe()``
which yields the current snapshot and then every later one (conflated: a slow
subscriber only sees the latest snapshot, never a backlog).

Setting a value equal to the current one is a no-op. Once closed, writes are
ignored so that late producers cannot publish into a torn-down holder.
"""
import asyncio
from typing import AsyncIterator, Callable, Generic, TypeVar

from wasteroute.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Listener = Callable[[T], None]


class StateFlow(Generic[T]):

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._version = 0
        self._closed = False
        self._listeners: list[Listener] = []
        self._waiters: set[asyncio.Event] = set()

    @property
    def value(self) -> T:
        return self._value

    @property
    def is_closed(self) -> bool:
        return self._closed

    def set(self, value: T) -> bool:
        """Publish ``value``. Returns True when subscribers were notified."""
        if self._closed:
            logger.debug("Ignoring write to closed StateFlow")
            return False
        if value == self._value:
            return False

        self._value = value
        self._version += 1

        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception:
                logger.error("StateFlow listener failed", exc_info=True)

        for event in self._waiters:
            event.set()
        return True

    def update(self, func: Callable[[T], T]) -> bool:
        """Replace the snapshot with ``func(current)``"""
        return self.set(func(self._value))

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register a synchronous listener; returns a function that removes it"""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def subscribe(self) -> AsyncIterator[T]:
        event = asyncio.Event()
        self._waiters.add(event)
        try:
            seen = self._version
            yield self._value
            while True:
                if self._version != seen:
                    seen = self._version
                    yield self._value
                    continue
                if self._closed:
                    return
                await event.wait()
                event.clear()
        finally:
            self._waiters.discard(event)

    def close(self) -> None:
        """Stop accepting writes and end every active subscription"""
        if self._closed:
            return
        self._closed = True
        self._listeners.clear()
        for event in self._waiters:
            event.set()
