"""Installable entrypoint package for the TorBox catalog add-on."""

from __future__ import annotations

from app import app, create_app
from app.main import ADDON_ID, ADDON_VERSION

__version__ = ADDON_VERSION

__all__ = ["ADDON_ID", "app", "create_app", "__version__"]
