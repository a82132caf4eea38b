"""Command line entry points for the media log service."""

from __future__ import annotations

__version__ = "1.0.0"

__all__ = ["__version__"]
