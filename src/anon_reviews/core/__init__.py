"""Core configuration, session signing and logging helpers."""
