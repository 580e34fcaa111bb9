"""In-process publish/subscribe channel used to keep sibling views in sync."""
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Awaitable[None]]


@dataclass(frozen=True)
class SavedItemsChanged:
    """
    A user's saved items changed on the server.

    source is the view that made the change, so it can skip refreshing itself.
    """

    owner_id: str
    source: object | None = None


class EventBus:
    """
    Single-threaded event bus.

    Views subscribe when mounted and call the returned function when
    unmounted. Handlers run one after another in subscription order; a failing
    handler is logged and does not stop the others.
    """

    def __init__(self) -> None:
        self._handlers: dict[type, list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: type, handler: Handler) -> Callable[[], None]:
        """Register handler for event_type. Returns a function that unsubscribes it."""
        self._handlers[event_type].append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def subscriber_count(self, event_type: type) -> int:
        """Number of handlers currently subscribed to event_type."""
        return len(self._handlers.get(event_type, []))

    async def publish(self, event: object) -> None:
        """Deliver event to every handler subscribed to its type."""
        for handler in list(self._handlers.get(type(event), [])):
            try:
                await handler(event)
            except Exception:
                logger.exception("Event handler %r failed for %r", handler, event)
