"""Bulk-search predicates used by the audit.

Each predicate is a JSONPath expression evaluated by the property API
against every property version's rule tree. The auditor only ever asks
three questions: which versions use shield map M, which use any shield
map, and which versions count as real addressable properties.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

SHIELD_BEHAVIOR = "siteShield"

# Proxy for "this is a real, addressable property": nearly every delivery
# config carries a cpCode behavior. Configs without one are invisible to the
# unprotected computation, so the audit is an approximation. Override with
# UNIVERSE_MATCH / --universe-match when the account uses a better marker.
DEFAULT_UNIVERSE_MATCH = "$..behaviors[?(@.name == 'cpCode')]"


@dataclass(frozen=True)
class SearchPredicate:
    description: str
    match: str
    syntax: str = "JSONPATH"

    def to_body(self) -> Dict[str, Any]:
        return {"bulkSearchQuery": {"syntax": self.syntax, "match": self.match}}

    def __str__(self) -> str:
        return self.description


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


def shield_map(map_name: str) -> SearchPredicate:
    """Versions whose siteShield behavior points at exactly this map."""
    match = (
        f"$..behaviors[?(@.name == '{SHIELD_BEHAVIOR}' "
        f"&& @.options.ssmap.value == '{_quote(map_name)}')]"
    )
    return SearchPredicate(description=f"shield map {map_name}", match=match)


def any_shield() -> SearchPredicate:
    """Versions with any siteShield behavior.

    Matches land on the map value itself, so each match location can be
    read straight out of the rule tree.
    """
    match = f"$..behaviors[?(@.name == '{SHIELD_BEHAVIOR}')].options.ssmap.value"
    return SearchPredicate(description="any shield map", match=match)


def universe(match: Optional[str] = None) -> SearchPredicate:
    """All versions treated as addressable properties."""
    return SearchPredicate(description="active property universe", match=match or DEFAULT_UNIVERSE_MATCH)
