"""Shared helpers for request schemas."""

from __future__ import annotations


def normalize_x_handle(value: str) -> str:
    """Strip whitespace and a leading "@" from an X handle."""
    handle = value.strip().lstrip("@")
    if not handle:
        raise ValueError("X handle must not be empty")
    return handle
