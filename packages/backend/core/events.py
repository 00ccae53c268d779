"""Lightweight async event bus.

The model manager emits events when a model file appears or disappears.
The application subscribes handlers that keep the model registry in step.

Usage:
    from core.events import on, emit, clear

    async def on_downloaded(**kwargs):
        print(kwargs["model"].id)

    on(MODEL_DOWNLOADED, on_downloaded)
    await emit(MODEL_DOWNLOADED, model=info)
"""

import logging
from typing import Any, Callable, Coroutine

logger = logging.getLogger(__name__)

MODEL_DOWNLOADED = "model.downloaded"
MODEL_DELETED = "model.deleted"

EventHandler = Callable[..., Coroutine[Any, Any, None]]

_handlers: dict[str, list[EventHandler]] = {}


def on(event_name: str, handler: EventHandler) -> None:
    """Subscribe to an event."""
    _handlers.setdefault(event_name, []).append(handler)


def off(event_name: str, handler: EventHandler) -> None:
    """Unsubscribe a handler. Unknown handlers are ignored."""
    handlers = _handlers.get(event_name, [])
    if handler in handlers:
        handlers.remove(handler)


async def emit(event_name: str, **kwargs) -> None:
    """Emit an event to all subscribers. Failures are logged, not raised."""
    for handler in list(_handlers.get(event_name, [])):
        try:
            await handler(**kwargs)
        except Exception:
            logger.exception("Event handler failed for '%s'", event_name)


def clear() -> None:
    """Clear all handlers. Used in tests and at shutdown."""
    _handlers.clear()
