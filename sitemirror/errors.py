"""Base exception for fatal mirror errors."""

from __future__ import annotations


class MirrorError(Exception):
    """A fatal error that aborts the mirror run."""
