"""Shared helpers: errors, logging, reporting and CLI display."""
