"""Tally core: events, storage and shared utilities."""
