"""Headless browser launch and CDP measurement session."""

from __future__ import annotations

from .launcher import BrowserLauncher
from .session import BrowserSession, NetworkCounter, validate_url

__all__ = ["BrowserLauncher", "BrowserSession", "NetworkCounter", "validate_url"]
