"""
Shared fixtures: raw search records and an in-memory property API.
"""

import threading

import pytest

from shieldaudit.auditor.papi import queries
from shieldaudit.util.errors import ErrorCollector


def make_record(property_id, version=1, name=None, production="ACTIVE", staging="INACTIVE", locations=None):
    record = {
        'propertyId': property_id,
        'propertyVersion': version,
        'propertyName': name or f"{property_id}-config",
        'productionStatus': production,
        'stagingStatus': staging,
        'contractId': 'ctr_1',
        'groupId': 'grp_1',
    }
    if locations is not None:
        record['matchLocations'] = locations
    return record


class FakePapiClient:
    """Stands in for PapiClient.

    searches: predicate match string -> list of records, or an exception
    hostnames: (property_id, version) -> list of names, or an exception
    rules: (property_id, version) -> {pointer: value}, or an exception
    """

    def __init__(self, searches=None, hostnames=None, rules=None):
        self.searches = searches or {}
        self.hostnames = hostnames or {}
        self.rules = rules or {}
        self.search_calls = []
        self.resolve_calls = []
        self._lock = threading.Lock()

    def search_properties(self, predicate):
        self.search_calls.append(predicate)
        value = self.searches.get(predicate.match, [])
        if isinstance(value, Exception):
            raise value
        return list(value)

    def resolve_hostnames(self, prop):
        with self._lock:
            self.resolve_calls.append(prop.key)
        value = self.hostnames.get((prop.property_id, prop.property_version), [])
        if isinstance(value, Exception):
            raise value
        return list(value)

    def get_rule_values(self, prop, pointers):
        value = self.rules.get((prop.property_id, prop.property_version), {})
        if isinstance(value, Exception):
            raise value
        return [value[p] for p in pointers]


def scenario_client():
    """Two maps plus an unprotected remainder.

    map A: 30 properties, 125 unique hostnames
    map B: 15 properties, 62 unique hostnames
    unprotected: 5 properties, 12 unique hostnames
    Plus inactive noise that must not be counted anywhere.
    """
    searches = {}
    hostnames = {}
    rules = {}
    shield_hits = []
    universe = []

    def add_group(prefix, count, host_count, map_name=None):
        records = []
        for i in range(count):
            pid = f"prp_{prefix}{i}"
            location = '/rules/behaviors/0/options/ssmap/value'
            rec = make_record(pid, 3, locations=[location] if map_name else None)
            records.append(rec)
            names = [f"{prefix}{j}.example.com" for j in range(host_count) if j % count == i]
            # repeated hostname must be counted once
            hostnames[(pid, 3)] = names + names[:1]
            if map_name:
                rules[(pid, 3)] = {location: map_name}
        return records

    map_a = add_group('a', 30, 125, 'a.shield.example.net')
    map_b = add_group('b', 15, 62, 'b.shield.example.net')
    exposed = add_group('u', 5, 12)

    inactive = make_record('prp_old', 1, production='INACTIVE', staging='ACTIVE')

    searches[queries.shield_map('a.shield.example.net').match] = map_a + [inactive]
    searches[queries.shield_map('b.shield.example.net').match] = map_b
    shield_hits.extend(map_a + map_b + [inactive])
    searches[queries.any_shield().match] = shield_hits
    universe.extend(map_a + map_b + exposed + [inactive])
    searches[queries.universe().match] = universe

    return FakePapiClient(searches=searches, hostnames=hostnames, rules=rules)


@pytest.fixture
def errors():
    return ErrorCollector()


@pytest.fixture
def record():
    return make_record


@pytest.fixture
def fake_client_cls():
    return FakePapiClient


@pytest.fixture
def scenario():
    return scenario_client()
