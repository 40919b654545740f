"""Event bus and the explicit handler registry it is built from.

Handlers are plain async callables taking the event. The registry maps an
event name to an ordered list of handlers; it is built once at startup and
handed to ``EventBus``. Dispatch runs handlers in registration order, one
after another, and isolates each failure: it is logged, wrapped in a
``HandlerError`` and kept as a dead letter, and the remaining handlers still
run. Nothing raised by a handler reaches the command that emitted the event.
"""

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Iterable, Mapping, Optional, Sequence, Union

from taskcore.clock import Clock, SystemClock
from taskcore.domain.errors import HandlerError
from taskcore.domain.events import ALL_DOMAIN_EVENTS, DomainEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], Awaitable[None]]


def handler_name(handler: EventHandler) -> str:
    return getattr(handler, "__qualname__", None) or type(handler).__name__


class HandlerRegistry:
    """Event name -> ordered handlers, assembled before the bus exists."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)

    def register(
        self, event_type: type[DomainEvent], handler: EventHandler
    ) -> "HandlerRegistry":
        """Append ``handler`` to the handlers of ``event_type``."""
        self._handlers[event_type.event_name].append(handler)
        return self

    def register_for_all(
        self,
        handler: EventHandler,
        event_types: Iterable[type[DomainEvent]] = ALL_DOMAIN_EVENTS,
    ) -> "HandlerRegistry":
        for event_type in event_types:
            self.register(event_type, handler)
        return self

    def handlers_for(self, event_name: str) -> tuple[EventHandler, ...]:
        return tuple(self._handlers.get(event_name, ()))

    def freeze(self) -> dict[str, tuple[EventHandler, ...]]:
        """Snapshot of the registry; later registrations do not affect it."""
        return {name: tuple(handlers) for name, handlers in self._handlers.items()}


@dataclass
class DeadLetter:
    """Record of a handler that failed on an event after all attempts."""

    handler_name: str
    event: DomainEvent
    error: HandlerError
    attempts: int
    failed_at: datetime

    @property
    def event_name(self) -> str:
        return self.event.event_name


class EventBus:
    """In-process, sequential event dispatcher."""

    def __init__(
        self,
        registry: Union[HandlerRegistry, Mapping[str, Sequence[EventHandler]]],
        *,
        max_attempts: int = 1,
        retry_delay: float = 0.0,
        on_handler_error: Optional[Callable[[HandlerError], None]] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if isinstance(registry, HandlerRegistry):
            registry = registry.freeze()
        self._handlers: dict[str, tuple[EventHandler, ...]] = {
            name: tuple(handlers) for name, handlers in registry.items()
        }
        self._max_attempts = max_attempts
        self._retry_delay = retry_delay
        self._on_handler_error = on_handler_error
        self._clock = clock or SystemClock()
        self._dead_letters: list[DeadLetter] = []
        self._dispatched = 0

    def handlers_for(self, event_name: str) -> tuple[EventHandler, ...]:
        return self._handlers.get(event_name, ())

    async def dispatch(self, event: DomainEvent) -> None:
        """Run every handler registered for ``event``, in order."""
        self._dispatched += 1
        for handler in self.handlers_for(event.event_name):
            await self._run(handler, event)

    async def _run(self, handler: EventHandler, event: DomainEvent) -> None:
        name = handler_name(handler)
        for attempt in range(1, self._max_attempts + 1):
            try:
                await handler(event)
                return
            except Exception as exc:
                if attempt < self._max_attempts:
                    logger.warning(
                        f"Handler {name} failed on {event.event_name} "
                        f"(attempt {attempt}/{self._max_attempts}): {exc}"
                    )
                    if self._retry_delay:
                        await asyncio.sleep(self._retry_delay)
                    continue

                error = HandlerError(name, event.event_name, exc)
                logger.error(str(error), exc_info=exc)
                self._dead_letters.append(
                    DeadLetter(
                        handler_name=name,
                        event=event,
                        error=error,
                        attempts=attempt,
                        failed_at=self._clock.now(),
                    )
                )
                self._notify_error(error)

    def _notify_error(self, error: HandlerError) -> None:
        if self._on_handler_error is None:
            return
        try:
            self._on_handler_error(error)
        except Exception:
            logger.warning("on_handler_error callback failed", exc_info=True)

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    @property
    def dead_letters(self) -> list[DeadLetter]:
        return list(self._dead_letters)

    @property
    def dispatched(self) -> int:
        return self._dispatched

    def drain_dead_letters(self) -> list[DeadLetter]:
        """Return and clear the dead letters."""
        drained = self._dead_letters[:]
        self._dead_letters.clear()
        return drained
