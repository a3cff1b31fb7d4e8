"""Requests and bytes grouped by domain."""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Sequence

from ecoaudit.analytics.models import DomainAnalytics, DomainStat, percentage

if TYPE_CHECKING:
    from ecoaudit.audit.payload import RequestDetail

UNKNOWN_DOMAIN = "(unknown)"


def compute_domain_stats(requests: Sequence[RequestDetail]) -> DomainAnalytics:
    if not requests:
        return DomainAnalytics()

    # dicts keep insertion order, so ties stay in first-seen order after the stable sort
    counts: Dict[str, List[int]] = {}
    for request in requests:
        entry = counts.setdefault(request.domain, [0, 0])
        entry[0] += 1
        entry[1] += int(request.transfer_size)

    total = len(requests)
    ordered = sorted(counts.items(), key=lambda item: item[1][0], reverse=True)
    domains = [
        DomainStat(
            domain=domain or UNKNOWN_DOMAIN,
            request_count=count,
            total_transfer_size=size,
            percentage=percentage(count, total),
        )
        for domain, (count, size) in ordered
    ]
    return DomainAnalytics(
        domains=domains,
        total_requests=total,
        total_size=sum(size for _, size in counts.values()),
    )
