"""Property API client (search, rule tree, hostnames).

Thin wrapper around a requests.Session signed with EdgeGrid. The audit
engine only sees three calls - search_properties, resolve_hostnames and
get_rule_values - and the two error types they raise.
"""

import configparser
import logging
import os
from typing import Any, Dict, List, Optional

import requests
from akamai.edgegrid import EdgeGridAuth, EdgeRc

from shieldaudit.util.concurrency import RateLimiter
from shieldaudit.util.errors import ConfigError, ResolveError, SearchError
from shieldaudit.util.types import PropertyVersion

from .queries import SearchPredicate

logger = logging.getLogger(__name__)

USER_AGENT = "siteshield-audit/1.0"


def resolve_pointer(document: Any, pointer: str) -> Any:
    """Follow an RFC 6901 JSON pointer ("/rules/behaviors/3/options").

    Raises KeyError when any step is missing.
    """
    if pointer in ("", "/"):
        return document
    node = document
    for raw in pointer.lstrip("/").split("/"):
        token = raw.replace("~1", "/").replace("~0", "~")
        if isinstance(node, list):
            try:
                node = node[int(token)]
            except (ValueError, IndexError):
                raise KeyError(pointer)
        elif isinstance(node, dict):
            if token not in node:
                raise KeyError(pointer)
            node = node[token]
        else:
            raise KeyError(pointer)
    return node


class PapiClient:
    """Synchronous property API client.

    Safe to share across worker threads: requests.Session handles
    concurrent requests and the rate limiter is lock protected.
    """

    SEARCH_PATH = "/papi/v1/bulk/rules-search-requests-synch"
    HOSTNAMES_PATH = "/papi/v1/properties/{property_id}/versions/{version}/hostnames"
    RULES_PATH = "/papi/v1/properties/{property_id}/versions/{version}/rules"

    def __init__(self,
                 base_url: str,
                 session: requests.Session,
                 account_switch_key: Optional[str] = None,
                 timeout: float = 30.0,
                 rate_limiter: Optional[RateLimiter] = None):
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.account_switch_key = account_switch_key
        self.timeout = timeout
        self.rate_limiter = rate_limiter or RateLimiter(0)

    @classmethod
    def from_edgerc(cls,
                    edgerc_path: str = "~/.edgerc",
                    section: str = "default",
                    account_switch_key: Optional[str] = None,
                    timeout: float = 30.0,
                    rate_limiter: Optional[RateLimiter] = None) -> "PapiClient":
        """Build a signed client from an .edgerc credentials section."""
        path = os.path.expanduser(edgerc_path)
        if not os.path.exists(path):
            raise ConfigError(f"Credentials file not found: {path}")
        try:
            edgerc = EdgeRc(path)
            host = edgerc.get(section, "host")
            auth = EdgeGridAuth.from_edgerc(edgerc, section)
        except (configparser.NoSectionError, configparser.NoOptionError) as exc:
            raise ConfigError(f"Section [{section}] in {path} is incomplete: {exc}") from exc

        session = requests.Session()
        session.auth = auth
        session.headers.update({"User-Agent": USER_AGENT, "Accept": "application/json"})
        logger.debug(f"Using credentials section [{section}] from {path}")
        return cls(f"https://{host}", session, account_switch_key, timeout, rate_limiter)

    def _request(self, method: str, path: str, error_cls=SearchError,
                 params: Optional[Dict[str, Any]] = None, body: Optional[Dict[str, Any]] = None) -> Any:
        params = {k: v for k, v in (params or {}).items() if v is not None}
        if self.account_switch_key:
            params["accountSwitchKey"] = self.account_switch_key

        self.rate_limiter.wait()
        try:
            resp = self.session.request(method, f"{self.base_url}{path}",
                                        params=params, json=body, timeout=self.timeout)
        except requests.RequestException as exc:
            raise error_cls(f"{method} {path} failed: {exc}") from exc

        if not resp.ok:
            detail = resp.text[:300] if resp.text else resp.reason
            raise error_cls(f"{method} {path} returned HTTP {resp.status_code}: {detail}")
        try:
            return resp.json()
        except ValueError as exc:
            raise error_cls(f"{method} {path} returned invalid JSON") from exc

    def search_properties(self, predicate: SearchPredicate) -> List[Dict[str, Any]]:
        """Run a bulk rules search. Returns raw property-version records."""
        logger.debug(f"Searching: {predicate.match}")
        data = self._request("POST", self.SEARCH_PATH, SearchError, body=predicate.to_body())
        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            raise SearchError(f"Search for {predicate} returned no results list")
        logger.debug(f"Search for {predicate} matched {len(results)} versions")
        return results

    def resolve_hostnames(self, prop: PropertyVersion) -> List[str]:
        path = self.HOSTNAMES_PATH.format(property_id=prop.property_id, version=prop.property_version)
        data = self._request("GET", path, ResolveError,
                             params={"contractId": prop.contract_id, "groupId": prop.group_id})
        try:
            items = data["hostnames"]["items"]
            return [item["cnameFrom"] for item in items if item.get("cnameFrom")]
        except (KeyError, TypeError, AttributeError) as exc:
            raise ResolveError(f"Unexpected hostnames payload for {prop.property_name}") from exc

    def get_rule_values(self, prop: PropertyVersion, pointers: List[str]) -> List[Any]:
        """Read values out of a property version's rule tree.

        One rule tree fetch per call, however many pointers are asked for.
        """
        path = self.RULES_PATH.format(property_id=prop.property_id, version=prop.property_version)
        data = self._request("GET", path, SearchError,
                             params={"contractId": prop.contract_id, "groupId": prop.group_id})
        values = []
        for pointer in pointers:
            try:
                values.append(resolve_pointer(data, pointer))
            except KeyError as exc:
                raise SearchError(f"{pointer} not found in rule tree of {prop.property_name}") from exc
        return values
