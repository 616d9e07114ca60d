"""Core domain models, events, and policies."""

from shopboard.core import errors, events
from shopboard.core.models import entities, enums

__all__ = [
    "entities",
    "enums",
    "errors",
    "events",
]
