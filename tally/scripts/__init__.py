"""Operational scripts and CLI commands."""
