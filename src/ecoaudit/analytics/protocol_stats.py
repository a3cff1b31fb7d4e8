"""Protocol distribution (HTTP/3, HTTP/2, HTTP/1.1)."""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING, Sequence

from ecoaudit.analytics.models import ProtocolAnalytics, ProtocolStat, percentage

if TYPE_CHECKING:
    from ecoaudit.audit.payload import RequestDetail

DISPLAY_ORDER = ("HTTP/3", "HTTP/2", "HTTP/1.1", "Other")


def normalize_protocol(protocol: str) -> str:
    p = protocol.lower()
    if p.startswith("h3") or "quic" in p:
        return "HTTP/3"
    if p.startswith("h2") or p in ("http/2", "http/2.0"):
        return "HTTP/2"
    if p.startswith("http/1"):
        return "HTTP/1.1"
    return "Other"


def compute_protocol_stats(requests: Sequence[RequestDetail]) -> ProtocolAnalytics:
    total = len(requests)
    if total == 0:
        return ProtocolAnalytics()

    counts = Counter(normalize_protocol(request.protocol) for request in requests)
    protocols = [
        ProtocolStat(protocol=name, count=counts[name], percentage=percentage(counts[name], total))
        for name in DISPLAY_ORDER
        if counts[name]
    ]
    return ProtocolAnalytics(protocols=protocols, total_requests=total)
