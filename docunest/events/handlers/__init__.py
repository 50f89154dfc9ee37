"""
Event handlers package.

Importing a handler module registers its handlers with the event bus.
"""
