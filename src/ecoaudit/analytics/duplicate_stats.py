"""Detect the same resource loaded more than once."""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Sequence, Tuple
from urllib.parse import urlparse

from ecoaudit.analytics.models import DuplicateAnalytics, DuplicateGroup, url_filename

if TYPE_CHECKING:
    from ecoaudit.audit.payload import RequestDetail


def compute_duplicate_stats(requests: Sequence[RequestDetail]) -> DuplicateAnalytics:
    """Same filename and same resource size are treated as the same resource."""
    if not requests:
        return DuplicateAnalytics()

    groups: Dict[Tuple[str, int], List[RequestDetail]] = {}
    for request in requests:
        filename = url_filename(request.url)
        if not filename or filename == "index.html":
            continue
        groups.setdefault((filename, int(request.resource_size)), []).append(request)

    duplicates: List[DuplicateGroup] = []
    for (filename, size), members in groups.items():
        if len(members) < 2:
            continue
        urls = [member.url for member in members]
        domains = sorted({urlparse(url).hostname or "" for url in urls} - {""})
        duplicates.append(
            DuplicateGroup(
                filename=filename,
                resource_size=size,
                resource_type=members[0].resource_type,
                urls=urls,
                domains=domains,
                wasted_bytes=(len(urls) - 1) * size,
            )
        )

    duplicates.sort(key=lambda group: group.wasted_bytes, reverse=True)
    return DuplicateAnalytics(
        duplicates=duplicates,
        total_wasted_bytes=sum(group.wasted_bytes for group in duplicates),
        duplicate_count=len(duplicates),
    )
