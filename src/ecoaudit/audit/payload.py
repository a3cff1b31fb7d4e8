"""
Audit tool stdout contract.

The tool prints diagnostic text plus exactly one JSON object. That object is
either a success payload (raw counters, sub-scores, auxiliary audit blocks)
or an error payload ``{"error": true, "code", "message", "details"?}``.
Both are parsed into pydantic models; the union is resolved success-first.
"""

from __future__ import annotations

import json
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from ecoaudit.errors import ParseError


class _ToolModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class RawMetrics(_ToolModel):
    dom_elements: int = Field(ge=0)
    requests: int = Field(ge=0)
    total_transfer_size: float = Field(ge=0, description="Bytes")


class RequestDetail(_ToolModel):
    """One network request as reported by the audit tool."""

    url: str = ""
    domain: str = ""
    protocol: str = ""
    status_code: int = 0
    mime_type: str = ""
    resource_type: str = ""
    transfer_size: float = 0
    resource_size: float = 0
    priority: str = ""
    start_time: float = 0
    end_time: float = 0
    duration: float = 0
    from_cache: bool = False
    cache_lifetime_ms: float = 0


class LighthouseBlock(_ToolModel):
    performance: float = 0
    accessibility: float = 0
    best_practices: float = 0
    seo: float = 0
    fcp: float = 0
    lcp: float = 0
    tbt: float = 0
    cls: float = 0
    si: float = 0
    tti: float = 0


class AccessibilityIssueModel(_ToolModel):
    id: str = ""
    title: str = ""
    impact: str = ""


class AuditPayload(_ToolModel):
    """Success object printed by the audit tool."""

    url: str
    raw_metrics: RawMetrics
    resource_breakdown: Any = None
    requests: List[RequestDetail] = Field(default_factory=list)
    cache_analysis: List[Any] = Field(default_factory=list)
    lighthouse: LighthouseBlock = Field(default_factory=LighthouseBlock)
    accessibility_issues: List[AccessibilityIssueModel] = Field(default_factory=list)
    html_report_path: Optional[str] = None
    ttfb: Any = None
    coverage: Any = None
    compression: Any = None
    image_formats: Any = None

    @model_validator(mode="before")
    @classmethod
    def reject_error_objects(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("error") is True:
            raise ValueError("error payload")
        return data


class AuditErrorPayload(_ToolModel):
    """Error object printed by the audit tool, regardless of exit code."""

    error: Literal[True]
    code: str
    message: str
    details: Optional[str] = None


ToolOutput = Union[AuditPayload, AuditErrorPayload]


def extract_json_object(text: str) -> Optional[str]:
    """
    Return the first balanced top-level ``{...}`` object embedded in ``text``.

    Quoted strings are tracked across the whole scan, diagnostics included:
    braces inside a ``"..."`` span never count towards depth, and a ``"``
    preceded by an unescaped backslash does not end the span. Returns None
    when no object closes.
    """
    depth = 0
    start = -1
    in_string = False
    escaped = False

    for index, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            if depth == 0:
                start = index
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                return text[start : index + 1]
    return None


def _load_object(candidate: str) -> dict:
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ParseError(f"JSON parse error: {e}, output: {candidate[:500]}") from e
    if not isinstance(data, dict):
        raise ParseError(f"expected a JSON object, output: {candidate[:500]}")
    return data


def parse_tool_output(stdout: str) -> ToolOutput:
    """
    Parse the tool's stdout into a success or error payload.

    Raises:
        ParseError: no balanced object, invalid JSON, or neither schema fits.
    """
    candidate = extract_json_object(stdout)
    if candidate is None:
        raise ParseError(f"no JSON object in output: {stdout[:500]}")

    data = _load_object(candidate)
    try:
        return AuditPayload.model_validate(data)
    except ValidationError as success_error:
        try:
            return AuditErrorPayload.model_validate(data)
        except ValidationError:
            raise ParseError(f"unrecognised payload: {success_error}") from success_error


def parse_error_payload(stdout: str) -> Optional[AuditErrorPayload]:
    """Best-effort read of an error payload from a failed run's stdout."""
    candidate = extract_json_object(stdout)
    if candidate is None:
        return None
    try:
        return AuditErrorPayload.model_validate_json(candidate)
    except ValidationError:
        return None
