"""Attach hostnames to classified properties.

Hostname lookups are the only concurrent part of an audit. Each batch
(protected, then unprotected) gets its own bounded pool; a failed lookup
keeps the property in the batch with an empty hostname list and a visible
error marker.
"""

import logging
from typing import Dict, Iterable, List, Optional

from shieldaudit.util.concurrency import DEFAULT_WORKERS, ProgressCounter, WorkerPool
from shieldaudit.util.errors import ErrorCollector, ResolveError
from shieldaudit.util.types import ClassifiedProperty, MapBucket, PropertyKey, PropertyKind

logger = logging.getLogger(__name__)


def dedupe_hostnames(hostnames: Iterable[str]) -> List[str]:
    """Drop blanks and repeats. DNS names compare case-insensitively."""
    seen = set()
    unique = []
    for hostname in hostnames:
        hostname = (hostname or "").strip()
        folded = hostname.lower()
        if not hostname or folded in seen:
            continue
        seen.add(folded)
        unique.append(hostname)
    return unique


def count_failed(entries: Iterable[ClassifiedProperty]) -> int:
    return sum(1 for e in entries if e.failed)


class HostnameEnricher:
    """Bounded-concurrency hostname fan-out.

    resolver only needs resolve_hostnames(PropertyVersion) -> list of names,
    raising ResolveError on failure.
    """

    def __init__(self,
                 resolver,
                 errors: ErrorCollector,
                 max_workers: int = DEFAULT_WORKERS,
                 show_progress: bool = False):
        self.resolver = resolver
        self.errors = errors
        self.max_workers = max_workers
        self.show_progress = show_progress
        self.last_progress: Optional[ProgressCounter] = None

    def _enrich_one(self, entry: ClassifiedProperty) -> ClassifiedProperty:
        try:
            hostnames = self.resolver.resolve_hostnames(entry.version)
        except ResolveError as exc:
            self.errors.record(f"hostnames:{entry.version.property_name}", exc)
            return ClassifiedProperty(version=entry.version, hostnames=[], kind=PropertyKind.ENRICHMENT_FAILED)
        return ClassifiedProperty(version=entry.version, hostnames=dedupe_hostnames(hostnames))

    def enrich(self, entries: List[ClassifiedProperty], desc: str = "Resolving hostnames") -> List[ClassifiedProperty]:
        """Enrich one batch. Output order is completion order, not input order.

        Sentinels pass straight through - there is nothing to resolve.
        """
        sentinels = [e for e in entries if e.is_sentinel]
        work = [e for e in entries if not e.is_sentinel]

        pool = WorkerPool(max_workers=self.max_workers, desc=desc, show_progress=self.show_progress)
        enriched = pool.run(self._enrich_one, work)
        self.last_progress = pool.progress

        failed = count_failed(enriched)
        if failed:
            logger.warning(f"{desc}: {failed} of {len(work)} lookups failed")
        else:
            logger.info(f"{desc}: resolved {len(work)} properties")
        return enriched + sentinels

    def enrich_buckets(self, buckets: List[MapBucket]) -> List[MapBucket]:
        """Enrich every bucket's properties in a single batch.

        Buckets come back in their original order, entries in classification
        order - keys are unique across buckets so regrouping is exact.
        """
        entries = [p for bucket in buckets for p in bucket.real_properties]
        by_key: Dict[PropertyKey, ClassifiedProperty] = {
            e.key: e for e in self.enrich(entries, desc="Resolving protected hostnames")
            if not e.is_sentinel
        }

        rebuilt = []
        for bucket in buckets:
            props = [p if p.is_sentinel else by_key[p.key] for p in bucket.properties]
            rebuilt.append(MapBucket(bucket.map_name, props))
        return rebuilt
