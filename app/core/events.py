"""In-process event bus.

One bus per application carries auth state changes and page revalidation
notices. Subscribers register a handler per topic and get an unsubscribe
callable back; there is no implicit re-subscription.
"""

import asyncio
import inspect
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Union

from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

AUTH_SIGNED_IN = "auth.signed_in"
AUTH_SIGNED_OUT = "auth.signed_out"
PATHS_REVALIDATED = "paths.revalidated"


@dataclass(frozen=True)
class Event:
    topic: str
    payload: Dict[str, Any] = field(default_factory=dict)
    published_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


Handler = Callable[[Event], Union[None, Awaitable[None]]]


class EventBus:
    """Publish/subscribe by topic name.

    Handlers may be plain or async functions. A failing handler is logged and
    does not stop delivery to the others.
    """

    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)
        self._lock = asyncio.Lock()

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]:
        """Register a handler and return a callable that removes it."""
        self._handlers[topic].append(handler)
        LOGGER.debug(f"Subscribed {getattr(handler, '__qualname__', handler)} to {topic}")

        def unsubscribe() -> None:
            self.unsubscribe(topic, handler)

        return unsubscribe

    def unsubscribe(self, topic: str, handler: Handler) -> None:
        handlers = self._handlers.get(topic, [])
        if handler in handlers:
            handlers.remove(handler)

    def subscriber_count(self, topic: str) -> int:
        return len(self._handlers.get(topic, []))

    async def publish(self, topic: str, **payload: Any) -> Event:
        """Deliver an event to every handler of its topic, in subscription order.

        Args:
            topic: Topic name
            **payload: Event payload

        Returns:
            The delivered event
        """
        event = Event(topic=topic, payload=payload)
        async with self._lock:
            handlers = list(self._handlers.get(topic, []))

        for handler in handlers:
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                LOGGER.error(
                    f"Event handler failed for {topic}: {e}",
                    exc_info=True,
                    extra={"topic": topic},
                )

        LOGGER.debug(f"Published {topic} to {len(handlers)} handlers", extra={"topic": topic})
        return event
