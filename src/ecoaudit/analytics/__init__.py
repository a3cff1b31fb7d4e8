"""Request-level analytics computed from an audit's per-request details."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from .cache_stats import compute_cache_stats
from .domain_stats import compute_domain_stats
from .duplicate_stats import compute_duplicate_stats
from .models import (
    CacheAnalytics,
    DomainAnalytics,
    DuplicateAnalytics,
    ProtocolAnalytics,
    RequestAnalytics,
)
from .protocol_stats import compute_protocol_stats

if TYPE_CHECKING:
    from ecoaudit.audit.payload import RequestDetail


def compute_request_analytics(requests: Sequence[RequestDetail]) -> RequestAnalytics:
    return RequestAnalytics(
        domain_stats=compute_domain_stats(requests),
        protocol_stats=compute_protocol_stats(requests),
        cache_stats=compute_cache_stats(requests),
        duplicate_stats=compute_duplicate_stats(requests),
    )


__all__ = [
    "RequestAnalytics",
    "DomainAnalytics",
    "ProtocolAnalytics",
    "CacheAnalytics",
    "DuplicateAnalytics",
    "compute_request_analytics",
    "compute_domain_stats",
    "compute_protocol_stats",
    "compute_cache_stats",
    "compute_duplicate_stats",
]
