"""
Integration Tests for the audit pipeline against an in-memory API
"""

import pytest

from shieldaudit.auditor.papi import queries
from shieldaudit.auditor.runner import AuditRunner
from shieldaudit.util.errors import AuditAbortedError, ResolveError, SearchError, UsageError
from shieldaudit.util.types import AuditConfig, AuditMode


def config(**kwargs):
    kwargs.setdefault('show_progress', False)
    return AuditConfig(**kwargs)


class TestFullAudit:

    def test_two_map_scenario_totals(self, scenario):
        report = AuditRunner(config(), scenario).run()
        stats = report.stats

        assert report.mode is AuditMode.AUDIT
        assert report.map_names == ['a.shield.example.net', 'b.shield.example.net']
        assert [(m.property_count, m.hostname_count) for m in stats.map_stats] == [(30, 125), (15, 62)]
        assert stats.total_protected_properties == 45
        assert stats.total_protected_hostnames == 187
        assert stats.total_unprotected_properties == 5
        assert stats.total_unprotected_hostnames == 12
        assert stats.total_properties == 50
        assert stats.total_hostnames == 199
        assert stats.protection_rate == 90.0
        assert report.error_count == 0

    def test_partitions_do_not_overlap(self, scenario):
        result = AuditRunner(config(), scenario).run().result
        protected = {p.key for p in result.all_protected_entries()}
        unprotected = {p.key for p in result.unprotected}
        assert protected.isdisjoint(unprotected)
        assert len(protected) + len(unprotected) == 50

    def test_hostname_failure_is_a_warning(self, scenario):
        scenario.hostnames[('prp_u0', 3)] = ResolveError('HTTP 429')
        report = AuditRunner(config(), scenario).run()
        assert report.error_count == 1
        assert report.stats.total_unprotected_properties == 5
        assert report.stats.failed_lookups == 1

    def test_failed_map_search_is_skipped(self, scenario):
        scenario.searches[queries.shield_map('b.shield.example.net').match] = SearchError('HTTP 500')
        report = AuditRunner(config(), scenario).run()
        assert [b.map_name for b in report.result.protected] == ['a.shield.example.net']
        assert report.error_count == 1
        # map B's properties now fall through to unprotected
        assert report.stats.total_unprotected_properties == 20

    def test_universe_failure_aborts(self, scenario):
        scenario.searches[queries.universe().match] = SearchError('HTTP 503')
        with pytest.raises(AuditAbortedError):
            AuditRunner(config(), scenario).run()

    def test_discovery_failure_aborts(self, scenario):
        scenario.searches[queries.any_shield().match] = SearchError('HTTP 401')
        with pytest.raises(AuditAbortedError):
            AuditRunner(config(), scenario).run()

    def test_metadata_flags_universe_approximation(self, scenario):
        report = AuditRunner(config(), scenario).run()
        assert report.metadata['universe_is_approximate'] is True
        assert report.metadata['universe_query'] == queries.DEFAULT_UNIVERSE_MATCH
        assert report.metadata['environment'] == 'PRODUCTION'


class TestModes:

    def test_single_map_never_computes_unprotected(self, scenario):
        cfg = config(map_name='b.shield.example.net', show_unprotected=True)
        report = AuditRunner(cfg, scenario).run()

        assert report.mode is AuditMode.PROTECTED_ONLY
        assert report.result.unprotected == []
        searched = [p.match for p in scenario.search_calls]
        assert queries.universe().match not in searched
        assert queries.any_shield().match not in searched
        assert report.stats.total_protected_properties == 15

    def test_unknown_single_map_yields_empty_bucket(self, scenario):
        report = AuditRunner(config(map_name='nope.example.net'), scenario).run()
        assert len(report.result.protected) == 1
        assert report.result.protected[0].is_empty
        assert report.stats.total_protected_properties == 0

    def test_unprotected_only_skips_protected_lookups(self, scenario):
        report = AuditRunner(config(show_unprotected=True), scenario).run()
        assert report.mode is AuditMode.UNPROTECTED_ONLY
        assert {k.property_id for k in scenario.resolve_calls} == {f'prp_u{i}' for i in range(5)}
        assert report.stats.protection_rate == 90.0

    def test_protected_only_skips_universe(self, scenario):
        report = AuditRunner(config(show_protected=True), scenario).run()
        assert queries.universe().match not in [p.match for p in scenario.search_calls]
        assert report.result.unprotected == []

    def test_conflicting_flags_rejected_before_any_call(self, scenario):
        with pytest.raises(UsageError):
            AuditRunner(config(show_protected=True, show_unprotected=True), scenario)
        assert scenario.search_calls == []

    def test_staging_run_uses_staging_status(self, scenario):
        report = AuditRunner(config(staging=True), scenario).run()
        # only the inactive-in-production record is ACTIVE on staging
        assert report.stats.total_properties == 1
        assert report.metadata['environment'] == 'STAGING'
