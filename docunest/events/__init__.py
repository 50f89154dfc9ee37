"""
Event system for decoupled application components.

The event bus lets routes report document activity without depending on
whatever records it.
"""
from docunest.events.bus import event_bus

__all__ = ['event_bus']
