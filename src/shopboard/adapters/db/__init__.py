"""SQLite-backed reference backend."""
