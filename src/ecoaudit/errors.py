"""
Error types for EcoAudit.

Two families mirror the two analysis paths: ``BrowserError`` for the fast CDP
session and ``AuditError`` for the external audit process. Every error is
terminal for the current analysis and renders as one human-readable line.
"""

from __future__ import annotations

from typing import Optional


class EcoAuditError(Exception):
    """Base class for all analysis errors."""

    code = "ECOAUDIT_ERROR"

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": str(self)}


# ============================================================================
# Browser session errors
# ============================================================================


class BrowserError(EcoAuditError):
    """Raised by the browser launcher and the CDP session."""

    code = "BROWSER_ERROR"
    prefix = "Browser error"

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(f"{self.prefix}: {detail}" if detail else self.prefix)


class BrowserNotFound(BrowserError):
    code = "BROWSER_NOT_FOUND"
    prefix = "Chrome browser not found"


class LaunchFailed(BrowserError):
    code = "LAUNCH_FAILED"
    prefix = "Failed to launch browser"


class PageCreationFailed(BrowserError):
    code = "PAGE_CREATION_FAILED"
    prefix = "Failed to create page"


class NavigationFailed(BrowserError):
    code = "NAVIGATION_FAILED"
    prefix = "Navigation failed"


class NavigationTimeout(BrowserError):
    code = "NAVIGATION_TIMEOUT"

    def __init__(self, timeout_ms: int) -> None:
        self.timeout_ms = timeout_ms
        Exception.__init__(self, f"Navigation timeout after {timeout_ms}ms")
        self.detail = str(timeout_ms)


class PageLoadFailed(BrowserError):
    code = "PAGE_LOAD_FAILED"
    prefix = "Page load failed"


class CdpError(BrowserError):
    code = "CDP_ERROR"
    prefix = "CDP error"


class DevToolsError(BrowserError):
    code = "DEVTOOLS_ERROR"
    prefix = "DevTools protocol error"


class JavaScriptError(BrowserError):
    code = "JAVASCRIPT_ERROR"
    prefix = "JavaScript error"


class InvalidUrl(BrowserError):
    code = "INVALID_URL"
    prefix = "Invalid URL"


# ============================================================================
# Audit orchestrator errors
# ============================================================================


class AuditError(EcoAuditError):
    """Raised by the audit orchestrator around the external audit process."""

    code = "AUDIT_ERROR"
    prefix = "Audit error"

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(f"{self.prefix}: {detail}" if detail else self.prefix)


class BinaryNotFound(AuditError):
    code = "BINARY_NOT_FOUND"
    prefix = "Audit tool binary not found"


class SpawnFailed(AuditError):
    code = "SPAWN_FAILED"
    prefix = "Failed to spawn audit tool"


class ProcessFailed(AuditError):
    code = "PROCESS_FAILED"

    def __init__(self, exit_code: int, stderr: str) -> None:
        self.exit_code = exit_code
        self.stderr = stderr
        self.detail = stderr
        Exception.__init__(self, f"Audit process failed with exit code {exit_code}: {stderr}")


class AuditTimeout(AuditError):
    code = "AUDIT_TIMEOUT"

    def __init__(self, timeout_ms: int) -> None:
        self.timeout_ms = timeout_ms
        self.detail = str(timeout_ms)
        Exception.__init__(self, f"Audit tool timeout after {timeout_ms}ms")


class ParseError(AuditError):
    code = "PARSE_ERROR"
    prefix = "Failed to parse audit tool output"


class CommunicationError(AuditError):
    code = "COMMUNICATION_ERROR"
    prefix = "Audit tool communication error"


class AnalysisFailed(AuditError):
    code = "ANALYSIS_FAILED"

    def __init__(self, error_code: str, message: str, details: Optional[str] = None) -> None:
        self.error_code = error_code
        self.message = message
        self.details = details
        self.detail = message
        Exception.__init__(self, f"Analysis failed: [{error_code}] {message}")
