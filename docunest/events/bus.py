"""
In-process event bus for document activity.

Routes emit activity events (upload, download, delete) and handlers react
to them without the routes knowing who is listening.

Example:
    @event_bus.on('document.uploaded')
    async def record_upload(data: dict):
        ...

    await event_bus.emit('document.uploaded', {'document_id': 7, 'user_id': 1})
"""
from typing import Any, Callable, Dict, List
import inspect
import logging

logger = logging.getLogger(__name__)


class EventBus:
    """
    Publish-subscribe registry of event handlers.

    Handlers run sequentially in registration order. A failing handler is
    logged and never stops the others or the emitting request.
    """

    def __init__(self):
        self._handlers: Dict[str, List[Callable]] = {}

    def on(self, event_name: str):
        """Decorator to register a handler for ``event_name``."""
        def decorator(handler: Callable):
            self._handlers.setdefault(event_name, []).append(handler)
            logger.debug(
                f"Registered handler {handler.__name__} for event '{event_name}'")
            return handler
        return decorator

    async def emit(self, event_name: str, data: Any = None):
        """Emit an event to every handler registered for it."""
        handlers = self._handlers.get(event_name)
        if not handlers:
            logger.debug(f"No handlers registered for event '{event_name}'")
            return

        for handler in list(handlers):
            try:
                if inspect.iscoroutinefunction(handler):
                    await handler(data)
                else:
                    handler(data)
            except Exception as e:
                logger.error(
                    f"Error in handler {handler.__name__} for event '{event_name}': {e}",
                    exc_info=True
                )

    def clear_handlers(self, event_name: str | None = None):
        """Clear handlers for one event, or for all events when None."""
        if event_name:
            self._handlers[event_name] = []
        else:
            self._handlers = {}

    def get_handler_count(self, event_name: str) -> int:
        return len(self._handlers.get(event_name, []))


# Global event bus instance
event_bus = EventBus()
