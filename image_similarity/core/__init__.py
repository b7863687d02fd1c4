"""Core configuration, database and shared utilities."""
