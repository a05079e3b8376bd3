"""Common module - exceptions and logging."""
