"""Configuration models and loaders."""

from __future__ import annotations

from .config import (
    AuditConfig,
    BrowserConfig,
    Config,
    MonitoringConfig,
    ViewportConfig,
    find_config_file,
)

__all__ = [
    "Config",
    "BrowserConfig",
    "ViewportConfig",
    "AuditConfig",
    "MonitoringConfig",
    "find_config_file",
]
