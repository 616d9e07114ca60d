"""Shopboard: work-order Kanban engine for repair shop management."""

__version__ = "0.1.0"

__all__ = ["__version__"]
