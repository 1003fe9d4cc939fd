"""In-process telemetry bus.

The bus is an explicit object owned by the hosting process (no module-level
registry). Handlers are attached under a unique id to one or more event
names and are invoked synchronously, in attach order, on `execute`.

A handler that raises is logged and detached so a faulty subscriber cannot
break the request that emitted the event.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, TypeAlias

from .errors import HandlerAlreadyExistsError

logger = logging.getLogger(__name__)

Handler: TypeAlias = Callable[[str, dict[str, Any], dict[str, Any], Any], None]


@dataclass(frozen=True)
class HandlerRegistration:
    handler_id: str
    event_names: tuple[str, ...]
    function: Handler
    config: Any = None


class TelemetryBus:
    """Fan-out bus delivering `(name, measurements, metadata, config)` to handlers."""

    def __init__(self) -> None:
        """Create a bus with no handlers attached."""
        self._lock = threading.Lock()
        self._handlers: dict[str, HandlerRegistration] = {}

    def attach(self, handler_id: str, event_name: str, function: Handler, config: Any = None) -> None:
        """Attach a handler to a single event name."""
        self.attach_many(handler_id, [event_name], function, config)

    def attach_many(
        self,
        handler_id: str,
        event_names: Iterable[str],
        function: Handler,
        config: Any = None,
    ) -> None:
        """Attach a handler to several event names under one id.

        Raises:
        - `HandlerAlreadyExistsError` if `handler_id` is already attached
        """
        registration = HandlerRegistration(
            handler_id=handler_id,
            event_names=tuple(event_names),
            function=function,
            config=config,
        )
        with self._lock:
            if handler_id in self._handlers:
                raise HandlerAlreadyExistsError(handler_id)
            self._handlers[handler_id] = registration

    def detach(self, handler_id: str) -> bool:
        """Detach a handler; return False if it was not attached."""
        with self._lock:
            return self._handlers.pop(handler_id, None) is not None

    def list_handlers(self, event_name: str | None = None) -> list[HandlerRegistration]:
        """Return attached handlers, optionally only those for `event_name`."""
        with self._lock:
            registrations = list(self._handlers.values())
        if event_name is None:
            return registrations
        return [r for r in registrations if event_name in r.event_names]

    def execute(self, event_name: str, measurements: dict[str, Any], metadata: dict[str, Any]) -> None:
        """Deliver an event to every handler attached to `event_name`."""
        for registration in self.list_handlers(event_name):
            try:
                registration.function(event_name, measurements, metadata, registration.config)
            except Exception:  # noqa: BLE001 - a failing subscriber must not break the request
                logger.exception(
                    "Handler %r failed on event %s and has been detached",
                    registration.handler_id,
                    event_name,
                )
                self.detach(registration.handler_id)
