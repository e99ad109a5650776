"""Real-time broadcast capability.

Services that push events to connected clients receive a ``Broadcaster``
at construction time. Rooms are user IDs: a connected client joins the
room named after the ``sub`` claim of its access token.
"""

from collections import defaultdict
from typing import Any, Awaitable, Callable, Protocol

from clientportal.core.logging import get_logger

logger = get_logger(__name__)

Listener = Callable[[str, dict[str, Any]], Awaitable[None]]


class Broadcaster(Protocol):
    """Anything that can push an event to a room."""

    async def emit(self, room: str, event: str, payload: dict[str, Any]) -> None: ...


class NullBroadcaster:
    """Broadcaster used when no real-time channel is attached."""

    async def emit(self, room: str, event: str, payload: dict[str, Any]) -> None:
        logger.debug("Broadcast dropped, no channel attached", room=room, broadcast_event=event)


class InMemoryBroadcaster:
    """In-process broadcaster that fans events out to registered listeners.

    A listener failure is logged and does not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def subscribe(self, room: str, listener: Listener) -> None:
        self._listeners[room].append(listener)

    def unsubscribe(self, room: str, listener: Listener) -> None:
        listeners = self._listeners.get(room, [])
        if listener in listeners:
            listeners.remove(listener)
        if not listeners:
            self._listeners.pop(room, None)

    async def emit(self, room: str, event: str, payload: dict[str, Any]) -> None:
        for listener in list(self._listeners.get(room, [])):
            try:
                await listener(event, payload)
            except Exception as e:
                logger.error("Broadcast listener failed", room=room, broadcast_event=event, error=str(e))
