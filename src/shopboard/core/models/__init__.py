"""Domain models for the work-order board."""
