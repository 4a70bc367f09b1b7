"""
ultradian: cognitive rhythm tracking.

Estimates a subject's dominant ultradian cycle from timestamped task
completions and projects where in that cycle the subject is right now.
"""

from typing import Any

__all__ = ["server"]


def __getattr__(name: str) -> Any:
    """Lazy load server to avoid circular imports at module level."""
    if name == "server":
        from ultradian.server import server

        return server
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
