"""Shared helpers for dates and numbers."""
