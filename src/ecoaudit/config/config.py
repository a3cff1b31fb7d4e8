"""
Configuration management for EcoAudit using Pydantic.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Setup Logging ---
log = logging.getLogger(__name__)

# --- Nested Configuration Models ---


class ViewportConfig(BaseModel):
    width: int = Field(default=1920, gt=0)
    height: int = Field(default=1080, gt=0)


class BrowserConfig(BaseModel):
    """Headless browser used by the quick analysis path."""

    executable_path: Optional[Path] = Field(
        default=None,
        description="Chrome/Chromium executable. None to search CHROME_PATH, PATH, then Playwright's bundled build.",
    )
    cdp_endpoint: Optional[str] = Field(
        default=None,
        description="Attach to an already running browser (e.g. http://127.0.0.1:9222) instead of launching one.",
    )
    headless: bool = Field(default=True, description="Run the browser without a window.")
    args: List[str] = Field(
        default_factory=lambda: [
            "--no-sandbox",
            "--disable-gpu",
            "--disable-dev-shm-usage",
            "--disable-extensions",
            "--disable-background-networking",
            "--disable-sync",
            "--disable-translate",
            "--disable-default-apps",
            "--no-first-run",
            "--window-size=1920,1080",
            "--hide-scrollbars",
            "--mute-audio",
        ],
        description="Command-line flags passed to the browser.",
    )
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)
    settle_seconds: float = Field(default=3.0, ge=0, description="Pause after navigation and after scrolling.")
    navigation_timeout_ms: int = Field(
        default=0, ge=0, description="Navigation timeout in milliseconds. 0 disables the timeout."
    )

    @field_validator("executable_path", mode="before")
    @classmethod
    def expand_path(cls, v: Any) -> Optional[Path]:
        if v in (None, ""):
            return None
        return Path(v).expanduser()


class AuditConfig(BaseModel):
    """External audit tool used by the full analysis path."""

    node_path: str = Field(default="node", description="Runtime used to execute the audit script.")
    script_path: Optional[Path] = Field(default=None, description="Path to the audit tool entry script.")
    timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="Upper bound for one audit run. None waits for the process to exit.",
    )
    include_html: bool = Field(default=False, description="Ask the tool for an HTML report by default.")

    @field_validator("script_path", mode="before")
    @classmethod
    def expand_script_path(cls, v: Any) -> Optional[Path]:
        if v in (None, ""):
            return None
        return Path(v).expanduser()


class MonitoringConfig(BaseModel):
    """Configuration for logging and metrics."""

    log_level: str = Field(default="INFO", description="Logging level (e.g., DEBUG, INFO, WARNING).")
    log_file: str | None = Field(
        default=None,
        description="Path to log file. If None, logs to console.",
    )
    prometheus_port: int | None = Field(
        default=None,
        description="Port for Prometheus metrics exporter. None to disable.",
    )

    @field_validator("log_file", mode="before")
    @classmethod
    def create_parent_dir(cls, v: str | Path | None) -> str | None:
        if v is None:
            return None
        path = Path(v)
        path.parent.mkdir(parents=True, exist_ok=True)
        return str(path)

    @field_validator("log_level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level


# --- Main Configuration Class ---


class Config(BaseSettings):
    project_name: str = "EcoAudit"
    version: str = "0.1.0"
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    model_config = SettingsConfigDict(env_prefix="ECOAUDIT_", env_nested_delimiter="__", case_sensitive=False)

    @classmethod
    def from_yaml(cls, path: Path) -> Config:
        log.debug("Loading configuration from YAML file: %s", path)
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found or is not a file: {path}")
        with open(path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
        if not yaml_data:
            log.warning("Configuration file is empty: %s. Using default settings.", path)
            return cls.model_validate({})
        return cls.model_validate(yaml_data)


def find_config_file() -> Path | None:
    current_dir = Path.cwd()
    for name in ("ecoaudit.yaml", "ecoaudit.yml", "config.yaml", "config.yml"):
        path = current_dir / name
        if path.exists():
            return path
    return None

