# src/__init__.py — v1
"""stratagent — agent execution and orchestration runtime."""

from stratagent.version import __version__

__all__ = ["__version__"]
