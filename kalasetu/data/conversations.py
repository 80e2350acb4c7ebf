"""Two-party conversations with live delivery to subscribers.

Messages are read back with :meth:`ConversationStore.get_conversation` or
followed as they arrive with :meth:`ConversationStore.subscribe`::

    async with store.subscribe(alice.id, bob.id) as sub:
        async for message in sub:
            ...

Subscriptions are scoped to an unordered pair of identities and receive
only messages created after they were opened; they never replay history.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
from collections.abc import Callable, Iterable

from ..core.models import Message, pair_key, utcnow
from ..core.storage import JSONStorage
from ..errors import Timeout, ValidationError
from .directory import IdentityDirectory

log = logging.getLogger(__name__)

Listener = Callable[[Message], None]

_CLOSED = object()


def is_ordered(messages: Iterable[Message]) -> bool:
    """Return ``True`` when ``messages`` are non-decreasing in creation order."""
    previous = None
    for message in messages:
        if previous is not None and message.order_key < previous:
            return False
        previous = message.order_key
    return True


class Subscription:
    """Async iterator over new messages for one pair of identities."""

    def __init__(self, store: ConversationStore, pair: tuple[str, str]) -> None:
        self.pair = pair
        self._store = store
        self._loop = asyncio.get_running_loop()
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._drained = False
        store.listen(*pair, self._deliver)

    def _deliver(self, message: Message) -> None:
        # may be called from a thread other than the one running the loop
        if not self._loop.is_closed():
            try:
                self._loop.call_soon_threadsafe(self._queue.put_nowait, message)
                return
            except RuntimeError:
                pass  # loop closed after the check
        # nobody can read this subscription any more
        log.debug("Dropping subscription for %s; its event loop is closed", self.pair)
        self._closed = True
        self._store.unlisten(*self.pair, self._deliver)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._store.unlisten(*self.pair, self._deliver)
        if not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._queue.put_nowait, _CLOSED)

    async def next(self, timeout: float | None = None) -> Message:
        """Wait for the next message, raising :class:`Timeout` after ``timeout``."""
        if self._drained:
            raise StopAsyncIteration
        try:
            item = await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            raise Timeout(f"No message for {self.pair} within {timeout}s.") from None
        if item is _CLOSED:
            self._drained = True
            raise StopAsyncIteration
        return item

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> Message:
        return await self.next()

    async def __aenter__(self) -> Subscription:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()


class ConversationStore:
    def __init__(
        self,
        storage: JSONStorage,
        directory: IdentityDirectory,
        clock: Callable[[], datetime.datetime] = utcnow,
    ) -> None:
        self.storage = storage
        self.directory = directory
        self.clock = clock
        self._listeners: dict[tuple[str, str], list[Listener]] = {}

    def send_message(self, sender_id: str, receiver_id: str, text: str) -> Message:
        text = (text or "").strip()
        if not text:
            raise ValidationError("Message text is empty.")
        if sender_id == receiver_id:
            raise ValidationError("You cannot message yourself.")
        self.directory.get_identity(sender_id)
        self.directory.get_identity(receiver_id)

        # publishing inside the lock keeps delivery order equal to seq order
        with self.storage.lock:
            message = self.storage.insert(
                self.storage.messages,
                Message(
                    sender_id=sender_id,
                    receiver_id=receiver_id,
                    text=text,
                    created_at=self.clock(),
                ),
            )
            self._publish(message)
        log.debug("Message %s: %s -> %s", message.id, sender_id, receiver_id)
        return message

    def get_conversation(self, id_a: str, id_b: str) -> list[Message]:
        """All messages between ``id_a`` and ``id_b`` in either direction, oldest first."""
        pair = pair_key(id_a, id_b)
        rows = [m for m in self.storage.rows(self.storage.messages) if m.pair == pair]
        rows.sort(key=lambda m: m.order_key)
        return rows

    # ------------------------------------------------------------------
    # Live delivery
    def listen(self, id_a: str, id_b: str, listener: Listener) -> None:
        """Call ``listener`` with every new message between ``id_a`` and ``id_b``."""
        with self.storage.lock:
            self._listeners.setdefault(pair_key(id_a, id_b), []).append(listener)

    def unlisten(self, id_a: str, id_b: str, listener: Listener) -> None:
        pair = pair_key(id_a, id_b)
        with self.storage.lock:
            listeners = self._listeners.get(pair, [])
            if listener in listeners:
                listeners.remove(listener)
            if not listeners:
                self._listeners.pop(pair, None)

    def subscribe(self, id_a: str, id_b: str) -> Subscription:
        """Open a :class:`Subscription`. Must be called from a running event loop."""
        return Subscription(self, pair_key(id_a, id_b))

    def _publish(self, message: Message) -> None:
        for listener in list(self._listeners.get(message.pair, ())):
            try:
                listener(message)
            except Exception:
                log.exception("Listener failed for message %s", message.id)
