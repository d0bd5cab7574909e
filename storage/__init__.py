"""SQLite persistence for interview sessions, contexts and datasets."""
