"""Full analysis path: the external audit tool and its supervision."""

from .orchestrator import (
    AuditEvent,
    AuditOrchestrator,
    AuditState,
    StderrChunk,
    StdoutChunk,
    Terminated,
    build_audit_result,
)
from .payload import (
    AuditErrorPayload,
    AuditPayload,
    RequestDetail,
    extract_json_object,
    parse_error_payload,
    parse_tool_output,
)
from .registry import ProcessRegistry, terminate_tree

__all__ = [
    "AuditOrchestrator",
    "AuditState",
    "AuditEvent",
    "StdoutChunk",
    "StderrChunk",
    "Terminated",
    "build_audit_result",
    "AuditPayload",
    "AuditErrorPayload",
    "RequestDetail",
    "extract_json_object",
    "parse_tool_output",
    "parse_error_payload",
    "ProcessRegistry",
    "terminate_tree",
]
