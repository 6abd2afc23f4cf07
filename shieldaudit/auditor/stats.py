"""Counts and protection rate for an enriched AuditResult.

Pure functions - nothing here talks to the network, and the same numbers
come out of a result that was serialized and loaded back.

Rules:
- Sentinel "no properties found" entries never count
- Hostnames are deduplicated before counting, per map and globally
- protection rate = protected / (protected + unprotected), 0 when both are 0
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Set

from shieldaudit.util.types import AuditResult, ClassifiedProperty, MapBucket


@dataclass
class MapStats:
    map_name: str
    property_count: int
    hostname_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'shieldMap': self.map_name,
            'properties': self.property_count,
            'hostnames': self.hostname_count,
        }


@dataclass
class AuditStats:
    map_stats: List[MapStats] = field(default_factory=list)
    total_protected_properties: int = 0
    total_protected_hostnames: int = 0
    total_unprotected_properties: int = 0
    total_unprotected_hostnames: int = 0
    failed_lookups: int = 0

    @property
    def total_properties(self) -> int:
        return self.total_protected_properties + self.total_unprotected_properties

    @property
    def total_hostnames(self) -> int:
        return self.total_protected_hostnames + self.total_unprotected_hostnames

    @property
    def protection_rate(self) -> float:
        return protection_rate(self.total_protected_properties, self.total_unprotected_properties)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'maps': [m.to_dict() for m in self.map_stats],
            'totalProtectedProperties': self.total_protected_properties,
            'totalProtectedHostnames': self.total_protected_hostnames,
            'totalUnprotectedProperties': self.total_unprotected_properties,
            'totalUnprotectedHostnames': self.total_unprotected_hostnames,
            'totalProperties': self.total_properties,
            'totalHostnames': self.total_hostnames,
            'protectionRate': self.protection_rate,
            'failedLookups': self.failed_lookups,
        }


def protection_rate(protected: int, unprotected: int) -> float:
    """Percentage of active properties that are protected, 2 decimals."""
    total = protected + unprotected
    if total == 0:
        return 0.0
    return round(protected / total * 100, 2)


def unique_hostnames(entries: Iterable[ClassifiedProperty]) -> Set[str]:
    return {h.strip().lower() for e in entries if not e.is_sentinel for h in e.hostnames if h and h.strip()}


def count_properties(entries: Iterable[ClassifiedProperty]) -> int:
    return sum(1 for e in entries if not e.is_sentinel)


def bucket_stats(bucket: MapBucket) -> MapStats:
    entries = bucket.real_properties
    return MapStats(
        map_name=bucket.map_name,
        property_count=len(entries),
        hostname_count=len(unique_hostnames(entries)),
    )


def compute_stats(result: AuditResult) -> AuditStats:
    protected_entries = result.all_protected_entries()
    return AuditStats(
        map_stats=[bucket_stats(b) for b in result.protected],
        total_protected_properties=count_properties(protected_entries),
        total_protected_hostnames=len(unique_hostnames(protected_entries)),
        total_unprotected_properties=count_properties(result.unprotected),
        total_unprotected_hostnames=len(unique_hostnames(result.unprotected)),
        failed_lookups=sum(1 for e in protected_entries + list(result.unprotected) if e.failed),
    )
