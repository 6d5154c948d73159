"""
Event handlers.
Importing this package registers the CRM handlers on the default registry.
"""

from ingest_queue.handlers import crm  # noqa: F401
from ingest_queue.handlers.registry import (
    EventHandler,
    HandlerRegistry,
    default_registry,
    get_handler,
    list_handlers,
    register_handler,
)

__all__ = [
    "EventHandler",
    "HandlerRegistry",
    "default_registry",
    "register_handler",
    "get_handler",
    "list_handlers",
]
