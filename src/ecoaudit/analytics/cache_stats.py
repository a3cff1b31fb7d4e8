"""Cache TTL buckets and resources cached for less than a week."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Sequence

from ecoaudit.analytics.models import (
    CacheAnalytics,
    CacheGroup,
    ProblematicResource,
    percentage,
    url_filename,
)

if TYPE_CHECKING:
    from ecoaudit.audit.payload import RequestDetail

MS_HOUR = 3_600_000
MS_DAY = 86_400_000
MS_WEEK = 604_800_000

# (label, exclusive upper bound in ms); a zero lifetime is its own bucket
_BUCKETS = (
    ("< 1 hour", MS_HOUR),
    ("< 1 day", MS_DAY),
    ("< 7 days", MS_WEEK),
)


def format_ttl(ms: int) -> str:
    if ms == 0:
        return "None"
    seconds = ms // 1000
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}min"
    if seconds < 86400:
        return f"{seconds // 3600}h"
    return f"{seconds // 86400}d"


def badge_text(ms: int) -> str:
    if ms == 0:
        return "!"
    if ms < MS_HOUR:
        return "<1h"
    if ms < MS_DAY:
        return "<1d"
    return "<7d"


def _bucket(ms: int) -> str:
    if ms == 0:
        return "None"
    for label, upper in _BUCKETS:
        if ms < upper:
            return label
    return ">= 7 days"


def compute_cache_stats(requests: Sequence[RequestDetail]) -> CacheAnalytics:
    total = len(requests)
    if total == 0:
        return CacheAnalytics()

    labels = ["None"] + [label for label, _ in _BUCKETS] + [">= 7 days"]
    counts = dict.fromkeys(labels, 0)
    for request in requests:
        counts[_bucket(int(request.cache_lifetime_ms))] += 1

    groups = [
        CacheGroup(label=label, count=count, percentage=percentage(count, total))
        for label, count in counts.items()
        if count > 0
    ]

    problematic: List[ProblematicResource] = []
    for request in sorted(requests, key=lambda r: r.cache_lifetime_ms):
        ms = int(request.cache_lifetime_ms)
        if ms >= MS_WEEK:
            continue
        problematic.append(
            ProblematicResource(
                url=request.url,
                domain=request.domain,
                filename=url_filename(request.url) or request.url,
                cache_lifetime_ms=ms,
                cache_ttl_label=format_ttl(ms),
                badge_text=badge_text(ms),
                resource_size=int(request.resource_size),
            )
        )

    return CacheAnalytics(
        groups=groups,
        problematic_resources=problematic,
        total_resources=total,
        problematic_count=len(problematic),
    )
