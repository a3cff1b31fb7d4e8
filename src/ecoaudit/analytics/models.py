"""Result types for request-level analytics."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List
from urllib.parse import urlparse

from pydantic.alias_generators import to_camel


def _camelize(value: Any) -> Any:
    if isinstance(value, dict):
        return {to_camel(key): _camelize(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_camelize(item) for item in value]
    return value


class _Serializable:
    def to_dict(self) -> Dict[str, Any]:
        return _camelize(asdict(self))  # type: ignore[call-overload]


def url_filename(url: str) -> str:
    """Last path segment of an absolute URL, or "" when there is none."""
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return ""
    return parsed.path.rsplit("/", 1)[-1]


def percentage(part: int, total: int) -> float:
    return (part / total) * 100.0 if total > 0 else 0.0


@dataclass
class DomainStat(_Serializable):
    domain: str
    request_count: int
    total_transfer_size: int
    percentage: float


@dataclass
class DomainAnalytics(_Serializable):
    domains: List[DomainStat] = field(default_factory=list)
    total_requests: int = 0
    total_size: int = 0


@dataclass
class ProtocolStat(_Serializable):
    protocol: str
    count: int
    percentage: float


@dataclass
class ProtocolAnalytics(_Serializable):
    protocols: List[ProtocolStat] = field(default_factory=list)
    total_requests: int = 0


@dataclass
class CacheGroup(_Serializable):
    label: str
    count: int
    percentage: float


@dataclass
class ProblematicResource(_Serializable):
    url: str
    domain: str
    filename: str
    cache_lifetime_ms: int
    cache_ttl_label: str
    badge_text: str
    resource_size: int


@dataclass
class CacheAnalytics(_Serializable):
    groups: List[CacheGroup] = field(default_factory=list)
    problematic_resources: List[ProblematicResource] = field(default_factory=list)
    total_resources: int = 0
    problematic_count: int = 0


@dataclass
class DuplicateGroup(_Serializable):
    filename: str
    resource_size: int
    resource_type: str
    urls: List[str]
    domains: List[str]
    wasted_bytes: int


@dataclass
class DuplicateAnalytics(_Serializable):
    duplicates: List[DuplicateGroup] = field(default_factory=list)
    total_wasted_bytes: int = 0
    duplicate_count: int = 0


@dataclass
class RequestAnalytics(_Serializable):
    """Everything computed from one audit's request list."""

    domain_stats: DomainAnalytics
    protocol_stats: ProtocolAnalytics
    cache_stats: CacheAnalytics
    duplicate_stats: DuplicateAnalytics
