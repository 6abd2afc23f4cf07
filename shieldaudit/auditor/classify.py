"""Protected / unprotected classification.

Runs sequentially: one search per shield map, one universe search, then
set arithmetic on PropertyKeys. No hostnames here - enrichment happens
afterwards in its own worker pool.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from shieldaudit.util.errors import AuditAbortedError, ErrorCollector, SearchError
from shieldaudit.util.types import ClassifiedProperty, Environment, MapBucket, PropertyKey, PropertyVersion

from .keys import build_membership, filter_active, is_active, record_key
from .papi import queries

logger = logging.getLogger(__name__)


def _map_name_from_value(value: Any) -> Optional[str]:
    """Pull a map name out of whatever a match location pointed at.

    Usually the ssmap value string; older searches point at the behavior or
    its options object instead.
    """
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, dict):
        if "options" in value:
            return _map_name_from_value(value["options"])
        if "ssmap" in value:
            return _map_name_from_value(value["ssmap"])
        if "value" in value:
            return _map_name_from_value(value["value"])
    return None


def discover_map_names(client, environment: Environment, errors: ErrorCollector) -> List[str]:
    """Distinct shield map names referenced by active property versions.

    Order is first-seen in search order. A failed search aborts the run; a
    failed rule tree read only loses that one property's maps.
    """
    try:
        records = client.search_properties(queries.any_shield())
    except SearchError as exc:
        raise AuditAbortedError(f"Shield map discovery failed: {exc}") from exc

    names: List[str] = []
    seen_names: Set[str] = set()
    seen_keys: Set[PropertyKey] = set()

    for record in records:
        if not is_active(record, environment):
            continue
        key = record_key(record)
        if key in seen_keys:
            continue
        seen_keys.add(key)

        locations = record.get("matchLocations") or []
        if not locations:
            continue
        prop = PropertyVersion.from_record(record)
        try:
            values = client.get_rule_values(prop, locations)
        except SearchError as exc:
            errors.record(f"rules:{prop.property_name}", exc)
            continue

        for value in values:
            name = _map_name_from_value(value)
            if name and name not in seen_names:
                seen_names.add(name)
                names.append(name)

    logger.info(f"Discovered {len(names)} shield maps across {len(seen_keys)} active properties")
    return names


class MapClassifier:
    """Builds one MapBucket per shield map.

    A property bound to more than one map stays in the first bucket that
    claimed it, so protected buckets never overlap.
    """

    def __init__(self, client, environment: Environment, errors: ErrorCollector):
        self.client = client
        self.environment = environment
        self.errors = errors

    def classify(self, map_names: Iterable[str]) -> List[MapBucket]:
        buckets: List[MapBucket] = []
        claimed: Set[PropertyKey] = set()
        seen_names: Set[str] = set()

        for name in map_names:
            if name in seen_names:
                continue
            seen_names.add(name)
            bucket = self.classify_map(name, claimed)
            if bucket is not None:
                buckets.append(bucket)
        return buckets

    def classify_map(self, map_name: str, claimed: Optional[Set[PropertyKey]] = None) -> Optional[MapBucket]:
        """Bucket for one map, or None when its search failed."""
        claimed = claimed if claimed is not None else set()
        try:
            records = self.client.search_properties(queries.shield_map(map_name))
        except SearchError as exc:
            self.errors.record(f"map:{map_name}", exc)
            return None

        members = build_membership(records, self.environment)
        overlap = members & claimed
        if overlap:
            logger.debug(f"Shield map {map_name}: {len(overlap)} properties already counted under an earlier map")
        fresh = members - claimed
        claimed.update(fresh)

        entries = [
            ClassifiedProperty(version=version)
            for version in filter_active(records, self.environment)
            if version.key in fresh
        ]

        if not entries:
            logger.info(f"Shield map {map_name}: no active properties")
            return MapBucket(map_name, [ClassifiedProperty.empty_marker()])

        logger.info(f"Shield map {map_name}: {len(entries)} active properties")
        return MapBucket(map_name, entries)


def protected_keys(buckets: Iterable[MapBucket]) -> Set[PropertyKey]:
    """Union of keys across every bucket. Sentinels contribute nothing."""
    return {p.key for bucket in buckets for p in bucket.real_properties}


def partition(records: Iterable[Dict[str, Any]],
              protected: Set[PropertyKey],
              environment: Environment) -> Tuple[List[PropertyVersion], List[PropertyVersion]]:
    """Split the active universe into (in protected, not in protected).

    Every active record lands in exactly one side; inactive ones in neither.
    """
    inside, outside = [], []
    for version in filter_active(records, environment):
        (inside if version.key in protected else outside).append(version)
    return inside, outside


class UnprotectedClassifier:
    """Residual set: active universe minus every protected key.

    Only meaningful for a full audit - single-map runs never call this.
    """

    def __init__(self, client, environment: Environment, universe_match: Optional[str] = None):
        self.client = client
        self.environment = environment
        self.predicate = queries.universe(universe_match)

    def fetch_universe(self) -> List[Dict[str, Any]]:
        try:
            return self.client.search_properties(self.predicate)
        except SearchError as exc:
            raise AuditAbortedError(f"Active property query failed: {exc}") from exc

    def classify(self, buckets: List[MapBucket]) -> List[ClassifiedProperty]:
        records = self.fetch_universe()
        _, outside = partition(records, protected_keys(buckets), self.environment)
        logger.info(f"Unprotected: {len(outside)} active properties outside every shield map")
        return [ClassifiedProperty(version=v) for v in outside]
