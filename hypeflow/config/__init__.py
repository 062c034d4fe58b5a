# hypeflow/config/__init__.py
"""Configuration package for HypeFlow."""

from .settings import settings, Settings

__all__ = ["settings", "Settings"]
