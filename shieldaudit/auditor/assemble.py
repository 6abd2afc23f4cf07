"""Output shapes for the three display modes.

Everything here is a projection of an AuditResult. Console tables, CSV rows
and the nested JSON all come from the same functions so the numbers can't
drift apart.
"""

from typing import Any, Dict, List, Optional, Tuple

from shieldaudit.util.errors import UsageError
from shieldaudit.util.types import UNPROTECTED_LABEL, AuditMode, AuditResult, MapBucket

from .stats import AuditStats

AUDIT_FIELDS = ['Status', 'ShieldMap', 'PropertyName', 'Hostnames']
PROTECTED_FIELDS = ['ShieldMap', 'PropertyName', 'Hostnames']
UNPROTECTED_FIELDS = ['PropertyName', 'Hostnames']

STATUS_PROTECTED = "PROTECTED"
STATUS_UNPROTECTED = "UNPROTECTED"
NO_MAP = "N/A"


def resolve_mode(show_protected: bool = False, show_unprotected: bool = False, single_map: bool = False) -> AuditMode:
    """Pick the output mode from CLI flags.

    Both flags together is a usage error, checked before any API call. A
    single-map run is always protected-only: there is no global unprotected
    set to show for one map.
    """
    if show_protected and show_unprotected:
        raise UsageError("--show-protected and --show-unprotected cannot be used together")
    if single_map or show_protected:
        return AuditMode.PROTECTED_ONLY
    if show_unprotected:
        return AuditMode.UNPROTECTED_ONLY
    return AuditMode.AUDIT


def nested_view(result: AuditResult) -> Dict[str, List[Dict[str, Any]]]:
    """Both partitions under one schema.

    The unprotected list is wrapped in a synthetic UNPROTECTED bucket so
    hierarchical exports treat both sides the same way.
    """
    wrapper = MapBucket(UNPROTECTED_LABEL, list(result.unprotected))
    return {
        'Protected': [b.to_dict() for b in result.protected],
        'Unprotected': [wrapper.to_dict()],
    }


def protected_rows(result: AuditResult) -> List[Tuple[str, str, str]]:
    """(map, property, hostnames) per protected entry, map name repeated.

    Empty maps keep their "No properties found" row so they stay visible.
    """
    rows = []
    for bucket in result.protected:
        for prop in bucket.properties:
            rows.append((bucket.map_name, prop.display_name, prop.joined_hostnames))
    return rows


def unprotected_rows(result: AuditResult) -> List[Tuple[str, str]]:
    return [(prop.display_name, prop.joined_hostnames) for prop in result.unprotected]


def audit_rows(result: AuditResult) -> List[Dict[str, str]]:
    """Flat Status/ShieldMap/PropertyName/Hostnames rows for tabular sinks."""
    rows = [
        {'Status': STATUS_PROTECTED, 'ShieldMap': m, 'PropertyName': p, 'Hostnames': h}
        for m, p, h in protected_rows(result)
    ]
    rows.extend(
        {'Status': STATUS_UNPROTECTED, 'ShieldMap': NO_MAP, 'PropertyName': p, 'Hostnames': h}
        for p, h in unprotected_rows(result)
    )
    return rows


def assemble(result: AuditResult, mode: AuditMode) -> Any:
    """Mode-specific shape: nested dict for AUDIT, row tuples otherwise."""
    if mode is AuditMode.PROTECTED_ONLY:
        return protected_rows(result)
    if mode is AuditMode.UNPROTECTED_ONLY:
        return unprotected_rows(result)
    return nested_view(result)


def export_rows(result: AuditResult, mode: AuditMode) -> Tuple[List[str], List[Dict[str, str]]]:
    """(fieldnames, rows) for CSV-style sinks."""
    if mode is AuditMode.PROTECTED_ONLY:
        rows = [dict(zip(PROTECTED_FIELDS, r)) for r in protected_rows(result)]
        return PROTECTED_FIELDS, rows
    if mode is AuditMode.UNPROTECTED_ONLY:
        rows = [dict(zip(UNPROTECTED_FIELDS, r)) for r in unprotected_rows(result)]
        return UNPROTECTED_FIELDS, rows
    return AUDIT_FIELDS, audit_rows(result)


# Figures a mode never computed. Protected-only runs skip the universe
# query; unprotected-only runs skip protected hostname lookups.
PROTECTED_ONLY_OMITS = (
    'totalUnprotectedProperties',
    'totalUnprotectedHostnames',
    'totalProperties',
    'totalHostnames',
    'protectionRate',
)
UNPROTECTED_ONLY_OMITS = ('totalProtectedHostnames', 'totalHostnames')


def summary(stats: AuditStats, mode: AuditMode) -> Dict[str, Any]:
    """Stats restricted to what the mode actually measured.

    A protected-only run has no unprotected set, so it reports no rate
    instead of a misleading 100%.
    """
    data = stats.to_dict()
    if mode is AuditMode.PROTECTED_ONLY:
        omit = PROTECTED_ONLY_OMITS
    elif mode is AuditMode.UNPROTECTED_ONLY:
        omit = UNPROTECTED_ONLY_OMITS
        data['maps'] = [{k: v for k, v in m.items() if k != 'hostnames'} for m in data['maps']]
    else:
        omit = ()
    return {k: v for k, v in data.items() if k not in omit}


def export_document(result: AuditResult, mode: AuditMode, stats: Optional[AuditStats] = None) -> Dict[str, Any]:
    """Nested document for JSON sinks, limited to the partitions the mode shows."""
    view = nested_view(result)
    if mode is AuditMode.PROTECTED_ONLY:
        document: Dict[str, Any] = {'Protected': view['Protected']}
    elif mode is AuditMode.UNPROTECTED_ONLY:
        document = {'Unprotected': view['Unprotected']}
    else:
        document = dict(view)
    if stats is not None:
        document['Summary'] = summary(stats, mode)
    return document
