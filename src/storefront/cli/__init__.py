"""
CLI module for the storefront.
"""

from __future__ import annotations

from .main import app, main

__all__ = ["main", "app"]
