"""Property identity keys and membership sets.

Two records are the same deployed property iff their (id, version) keys
are equal. Names are display-only and never used for membership.
"""

from typing import Any, Dict, Iterable, List, Set

from shieldaudit.util.types import ACTIVE, Environment, PropertyKey, PropertyVersion


def make_key(property_id: Any, property_version: Any) -> PropertyKey:
    """Canonical key for a property version. Pure, no collisions."""
    return PropertyKey(str(property_id), int(property_version))


def record_key(record: Dict[str, Any]) -> PropertyKey:
    return make_key(record["propertyId"], record["propertyVersion"])


def is_active(record: Dict[str, Any], environment: Environment) -> bool:
    """True when the record is ACTIVE on the selected network.

    Anything else (INACTIVE, PENDING, DEACTIVATED, missing) is out of the
    audit entirely - not counted as unprotected.
    """
    return record.get(environment.status_field) == ACTIVE


def filter_active(records: Iterable[Dict[str, Any]], environment: Environment) -> List[PropertyVersion]:
    """Active records as PropertyVersions, one per key, first occurrence kept."""
    seen: Set[PropertyKey] = set()
    active = []
    for record in records:
        if not is_active(record, environment):
            continue
        key = record_key(record)
        if key in seen:
            continue
        seen.add(key)
        active.append(PropertyVersion.from_record(record))
    return active


def build_membership(records: Iterable[Dict[str, Any]], environment: Environment) -> Set[PropertyKey]:
    """Key set over the active subset of raw records."""
    return {record_key(r) for r in records if is_active(r, environment)}
