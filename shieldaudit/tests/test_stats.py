"""
Unit Tests for coverage statistics
"""

import json

import pytest

from shieldaudit.auditor.stats import bucket_stats, compute_stats, protection_rate
from shieldaudit.util.types import (
    AuditResult,
    ClassifiedProperty,
    MapBucket,
    PropertyKind,
    PropertyVersion,
)


def prop(pid, hostnames, kind=PropertyKind.PROPERTY):
    return ClassifiedProperty(version=PropertyVersion(pid, 1, pid), hostnames=list(hostnames), kind=kind)


class TestProtectionRate:

    @pytest.mark.parametrize('protected,unprotected,expected', [
        (0, 0, 0.0),
        (45, 5, 90.0),
        (1, 2, 33.33),
        (3, 0, 100.0),
        (0, 7, 0.0),
    ])
    def test_rate(self, protected, unprotected, expected):
        assert protection_rate(protected, unprotected) == expected


class TestCounting:

    def test_duplicate_hostnames_counted_once(self):
        with_dupes = bucket_stats(MapBucket('m', [prop('p', ['a', 'b', 'a'])]))
        reordered = bucket_stats(MapBucket('m', [prop('p', ['b', 'a'])]))
        assert with_dupes.hostname_count == reordered.hostname_count == 2

    def test_hostnames_shared_across_properties_dedupe_per_map(self):
        stats = bucket_stats(MapBucket('m', [prop('p1', ['a', 'b']), prop('p2', ['b', 'c'])]))
        assert stats.property_count == 2
        assert stats.hostname_count == 3

    def test_empty_map_contributes_nothing(self):
        result = AuditResult(protected=[
            MapBucket('empty', [ClassifiedProperty.empty_marker()]),
            MapBucket('full', [prop('p1', ['a'])]),
        ])
        stats = compute_stats(result)
        assert [(m.map_name, m.property_count, m.hostname_count) for m in stats.map_stats] == [
            ('empty', 0, 0), ('full', 1, 1)]
        assert stats.total_protected_properties == 1
        assert stats.total_protected_hostnames == 1

    def test_order_independent(self):
        forward = AuditResult(protected=[MapBucket('m', [prop('p1', ['a']), prop('p2', ['b', 'c'])])],
                              unprotected=[prop('u1', ['x']), prop('u2', ['y'])])
        backward = AuditResult(protected=[MapBucket('m', [prop('p2', ['c', 'b']), prop('p1', ['a'])])],
                               unprotected=[prop('u2', ['y']), prop('u1', ['x'])])
        assert compute_stats(forward).to_dict() == compute_stats(backward).to_dict()

    def test_failed_lookups_counted_but_still_properties(self):
        result = AuditResult(unprotected=[prop('u1', [], kind=PropertyKind.ENRICHMENT_FAILED), prop('u2', ['x'])])
        stats = compute_stats(result)
        assert stats.total_unprotected_properties == 2
        assert stats.total_unprotected_hostnames == 1
        assert stats.failed_lookups == 1

    def test_stats_survive_serialization(self):
        result = AuditResult(
            protected=[
                MapBucket('m1', [prop('p1', ['a', 'b']), prop('p2', [], kind=PropertyKind.ENRICHMENT_FAILED)]),
                MapBucket('m2', [ClassifiedProperty.empty_marker()]),
            ],
            unprotected=[prop('u1', ['x', 'y'])],
        )
        reloaded = AuditResult.from_dict(json.loads(json.dumps(result.to_dict())))
        assert compute_stats(reloaded).to_dict() == compute_stats(result).to_dict()
        assert reloaded.protected[0].properties[1].version.property_name == 'p2'
        assert reloaded.protected[0].properties[1].failed
