# src/__init__.py — v1
"""tourflow: consistency and observability layer for floor-plan tour pipelines."""

from tourflow.version import __version__

__all__ = ["__version__"]
