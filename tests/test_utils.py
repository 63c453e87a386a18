import copy
import io
from configparser import ConfigParser, ExtendedInterpolation

import pytest

from haproxyrates import DEFAULT_OPTIONS
from haproxyrates.utils import (build_proxy_aliases, resolve_alias,
                                ensure_csv_url, configuration_check,
                                poll_interval, proxy_entries,
                                load_file_content, is_unix_socket,
                                Dispatcher, StdoutHandler, TransportError,
                                UnexpectedStatus, EmptyResponse)


def make_config(**options):
    config = ConfigParser(interpolation=ExtendedInterpolation())
    config.read_dict(copy.deepcopy(DEFAULT_OPTIONS))
    for option, value in options.items():
        config.set('haproxy', option.replace('_', '-'), value)

    return config


class TestProxyAliases:
    def test_alias_is_prefixed_with_source(self):
        aliases = build_proxy_aliases(['web,frontend-a'], 'host1')

        assert aliases['web'] == 'host1-frontend-a'

    def test_name_is_used_without_alias(self):
        aliases = build_proxy_aliases(['api', 'db, '], 'host1')

        assert dict(aliases) == {'api': 'host1-api', 'db': 'host1-db'}

    def test_blank_entries_are_skipped(self):
        assert dict(build_proxy_aliases(['', 'api'], 'h')) == {'api': 'h-api'}

    def test_duplicate_name_raises(self):
        with pytest.raises(ValueError, match="'web' is defined twice"):
            build_proxy_aliases(['web,a', 'web,b'], 'host1')

    def test_aliases_are_read_only(self):
        aliases = build_proxy_aliases(['web'], 'host1')

        with pytest.raises(TypeError):
            aliases['api'] = 'host1-api'

    def test_resolve_alias(self):
        aliases = build_proxy_aliases(['web,frontend-a'], 'host1')

        assert resolve_alias('web', aliases, 'host1') == 'host1-frontend-a'
        assert resolve_alias('app', aliases, 'host1') == 'host1-app'
        assert resolve_alias('app', {}, 'host2') == 'host2-app'


@pytest.mark.parametrize('url, expected', [
    ('http://lb:8404/stats', 'http://lb:8404/stats;csv'),
    ('http://lb:8404/stats;csv', 'http://lb:8404/stats;csv'),
])
def test_ensure_csv_url(url, expected):
    assert ensure_csv_url(url) == expected


class TestConfiguration:
    def test_valid_configuration(self):
        assert configuration_check(make_config(url='http://lb/stats'),
                                   'haproxy') is None

    def test_transport_is_required(self):
        with pytest.raises(ValueError, match='socket-path or url'):
            configuration_check(make_config(), 'haproxy')

    def test_invalid_loglevel(self):
        config = make_config(url='http://lb/stats', loglevel='loud')

        with pytest.raises(ValueError, match='invalid loglevel'):
            configuration_check(config, 'haproxy')

    def test_invalid_type(self):
        config = make_config(url='http://lb/stats', poll_seconds='often')

        with pytest.raises(ValueError, match="option:'poll-seconds'"):
            configuration_check(config, 'haproxy')

    def test_non_positive_interval(self):
        config = make_config(socket_path='/run/haproxy.sock',
                             poll_interval='0')

        with pytest.raises(ValueError, match='positive'):
            configuration_check(config, 'haproxy')

    def test_default_poll_interval(self):
        assert poll_interval(make_config()) == 1000

    def test_poll_seconds_wins(self):
        config = make_config(poll_seconds='2.5', poll_interval='300')

        assert poll_interval(config) == 2500

    def test_poll_interval(self):
        assert poll_interval(make_config(poll_interval='300')) == 300

    def test_proxy_entries(self, tmp_path):
        proxies_file = tmp_path / 'proxies'
        proxies_file.write_text('# backends\napp,application\n\n  db\n')
        config = make_config(proxies='\nweb,frontend-a\napi',
                             proxies_file=str(proxies_file))

        assert proxy_entries(config) == ['web,frontend-a', 'api',
                                         'app,application', 'db']

    def test_multiline_proxies_option(self):
        config = ConfigParser(interpolation=ExtendedInterpolation())
        config.read_dict(copy.deepcopy(DEFAULT_OPTIONS))
        config.read_string('[haproxy]\n'
                           'url = http://lb/stats\n'
                           'proxies =\n'
                           '    web,frontend-a\n'
                           '    api\n')

        assert proxy_entries(config) == ['web,frontend-a', 'api']


def test_load_file_content_missing_file(tmp_path):
    assert load_file_content(str(tmp_path / 'missing')) == []


def test_is_unix_socket(tmp_path):
    regular = tmp_path / 'file'
    regular.write_text('')

    assert not is_unix_socket(str(regular))
    assert not is_unix_socket(str(tmp_path / 'missing'))


def test_dispatcher_sends_to_handlers():
    stream = io.StringIO()
    received = []
    dispatcher = Dispatcher()
    dispatcher.register('send', StdoutHandler(stream).send)
    dispatcher.register('send', lambda **kwargs: received.append(kwargs))

    dispatcher.signal('send', data='HAPROXY_SESSIONS 1 host1-web\n')
    dispatcher.signal('unknown', data='ignored')

    assert stream.getvalue() == 'HAPROXY_SESSIONS 1 host1-web\n'
    assert received == [{'data': 'HAPROXY_SESSIONS 1 host1-web\n'}]


def test_error_messages():
    assert 'transport failed' in str(TransportError(raised=OSError('boom')))
    assert 'unexpected status 500' in str(UnexpectedStatus(500))
    assert str(EmptyResponse()) == 'empty body'
