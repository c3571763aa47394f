# src/__init__.py — v1
"""imageflow: chain independent image tools into resumable workflows."""

from imageflow.version import __version__

__all__ = ["__version__"]
