"""Adapters for the backend collaborator."""
