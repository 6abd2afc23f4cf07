"""
Unit Tests for the property API client
"""

from unittest.mock import Mock

import pytest
import requests

from shieldaudit.auditor.enrich import HostnameEnricher
from shieldaudit.auditor.papi import queries
from shieldaudit.auditor.papi.client import PapiClient, resolve_pointer
from shieldaudit.util.errors import ConfigError, ErrorCollector, ResolveError, SearchError
from shieldaudit.util.types import ClassifiedProperty, PropertyVersion

PROP = PropertyVersion('prp_1', 3, 'shop', contract_id='ctr_1', group_id='grp_1')


def response(payload=None, status=200, text=''):
    resp = Mock()
    resp.ok = 200 <= status < 300
    resp.status_code = status
    resp.text = text
    resp.reason = 'Error'
    resp.json.return_value = payload
    return resp


@pytest.fixture
def session():
    return Mock(spec=requests.Session)


class TestSearch:

    def test_posts_jsonpath_query(self, session):
        session.request.return_value = response({'results': [{'propertyId': 'prp_1'}]})
        client = PapiClient('https://host.example', session)

        results = client.search_properties(queries.shield_map('m1.example.net'))

        assert results == [{'propertyId': 'prp_1'}]
        method, url = session.request.call_args[0]
        assert method == 'POST'
        assert url == 'https://host.example' + PapiClient.SEARCH_PATH
        body = session.request.call_args[1]['json']
        assert body['bulkSearchQuery']['syntax'] == 'JSONPATH'
        assert "m1.example.net" in body['bulkSearchQuery']['match']

    def test_account_switch_key_is_sent(self, session):
        session.request.return_value = response({'results': []})
        PapiClient('https://host.example', session, account_switch_key='1-ABC').search_properties(queries.any_shield())
        assert session.request.call_args[1]['params'] == {'accountSwitchKey': '1-ABC'}

    def test_http_error_raises_search_error(self, session):
        session.request.return_value = response(status=403, text='forbidden')
        with pytest.raises(SearchError, match='403'):
            PapiClient('https://host.example', session).search_properties(queries.any_shield())

    def test_transport_error_raises_search_error(self, session):
        session.request.side_effect = requests.ConnectionError('reset')
        with pytest.raises(SearchError):
            PapiClient('https://host.example', session).search_properties(queries.any_shield())

    def test_missing_results_list(self, session):
        session.request.return_value = response({'unexpected': True})
        with pytest.raises(SearchError):
            PapiClient('https://host.example', session).search_properties(queries.any_shield())


class TestHostnames:

    def test_collects_cname_from(self, session):
        session.request.return_value = response({'hostnames': {'items': [
            {'cnameFrom': 'www.example.com', 'cnameTo': 'www.example.com.edgekey.net'},
            {'cnameFrom': 'api.example.com'},
            {'cnameTo': 'orphan.edgekey.net'},
        ]}})
        client = PapiClient('https://host.example', session)

        assert client.resolve_hostnames(PROP) == ['www.example.com', 'api.example.com']
        url = session.request.call_args[0][1]
        assert url.endswith('/papi/v1/properties/prp_1/versions/3/hostnames')
        assert session.request.call_args[1]['params'] == {'contractId': 'ctr_1', 'groupId': 'grp_1'}

    def test_http_error_raises_resolve_error(self, session):
        session.request.return_value = response(status=500)
        with pytest.raises(ResolveError):
            PapiClient('https://host.example', session).resolve_hostnames(PROP)

    def test_bad_payload_raises_resolve_error(self, session):
        session.request.return_value = response({'hostnames': None})
        with pytest.raises(ResolveError):
            PapiClient('https://host.example', session).resolve_hostnames(PROP)

    def test_non_dict_item_raises_resolve_error(self, session):
        session.request.return_value = response({'hostnames': {'items': ['bad', {'cnameFrom': 'x.example.com'}]}})
        with pytest.raises(ResolveError):
            PapiClient('https://host.example', session).resolve_hostnames(PROP)

    def test_malformed_item_stays_isolated_in_enrichment(self, session):
        session.request.return_value = response({'hostnames': {'items': ['bad']}})
        errors = ErrorCollector()
        enricher = HostnameEnricher(PapiClient('https://host.example', session), errors, max_workers=2)

        enriched = enricher.enrich([ClassifiedProperty(version=PROP)])

        assert len(enriched) == 1
        assert enriched[0].failed
        assert enriched[0].display_name == 'shop [ERROR]'
        assert errors.count == 1


class TestRuleValues:

    def test_reads_pointers_from_one_fetch(self, session):
        session.request.return_value = response({'rules': {'behaviors': [
            {'name': 'siteShield', 'options': {'ssmap': {'value': 'm1.example.net'}}}]}})
        client = PapiClient('https://host.example', session)
        values = client.get_rule_values(PROP, ['/rules/behaviors/0/options/ssmap/value', '/rules/behaviors/0/name'])
        assert values == ['m1.example.net', 'siteShield']
        assert session.request.call_count == 1

    def test_missing_pointer(self, session):
        session.request.return_value = response({'rules': {'behaviors': []}})
        with pytest.raises(SearchError):
            PapiClient('https://host.example', session).get_rule_values(PROP, ['/rules/behaviors/0'])


class TestResolvePointer:

    def test_escapes(self):
        doc = {'a/b': {'c~d': [10, 20]}}
        assert resolve_pointer(doc, '/a~1b/c~0d/1') == 20

    def test_root(self):
        assert resolve_pointer({'x': 1}, '') == {'x': 1}

    def test_out_of_range(self):
        with pytest.raises(KeyError):
            resolve_pointer({'x': [1]}, '/x/5')


class TestFromEdgerc:

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            PapiClient.from_edgerc(str(tmp_path / 'nope'))

    def test_missing_section(self, tmp_path):
        edgerc = tmp_path / '.edgerc'
        edgerc.write_text("[other]\nhost = akab-x.luna.akamaiapis.net\n")
        with pytest.raises(ConfigError):
            PapiClient.from_edgerc(str(edgerc), 'default')

    def test_builds_signed_session(self, tmp_path):
        edgerc = tmp_path / '.edgerc'
        edgerc.write_text(
            "[default]\n"
            "client_secret = c2VjcmV0\n"
            "host = akab-x.luna.akamaiapis.net\n"
            "access_token = akab-access\n"
            "client_token = akab-client\n"
        )
        client = PapiClient.from_edgerc(str(edgerc), 'default', account_switch_key='1-ABC')
        assert client.base_url == 'https://akab-x.luna.akamaiapis.net'
        assert client.session.auth is not None
        assert client.account_switch_key == '1-ABC'
