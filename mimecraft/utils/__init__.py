"""Shared utilities: errors, logging, configuration and paths."""
