"""Tests for command line handling and startup."""

import json
from unittest.mock import patch

import pytest
from docopt import DocoptExit

from unifi_exporter import main
from unifi_exporter.unifi import AuthenticationError, FetchError
from tests.fakes import make_station

REQUIRED = ['-s', 'https://unifi.local:8443', '-u', 'admin', '-p', 'secret']


class TestParseArgs:

    def test_defaults(self):
        args = main.parse_args(REQUIRED)

        assert args['-s'] == 'https://unifi.local:8443'
        assert args['networks'] == frozenset()
        assert args['--site'] == 'default'
        assert args['port'] == 8080
        assert args['timeout'] == 10.0
        assert args['verify'] is True

    def test_networks(self):
        args = main.parse_args(REQUIRED + ['-n', 'main, iot,,guest'])

        assert args['networks'] == frozenset({'main', 'iot', 'guest'})

    def test_insecure(self):
        assert main.parse_args(REQUIRED + ['-i'])['verify'] is False

    def test_options(self):
        args = main.parse_args(REQUIRED + ['--site=office', '--port=9100',
                                           '--timeout=2.5'])

        assert args['--site'] == 'office'
        assert args['port'] == 9100
        assert args['timeout'] == 2.5

    def test_bad_port(self):
        with pytest.raises(DocoptExit):
            main.parse_args(REQUIRED + ['--port=http'])

    def test_missing_credentials(self):
        with pytest.raises(DocoptExit):
            main.parse_args(['-s', 'https://unifi.local:8443'])


class TestMain:

    @patch.object(main, 'Client')
    def test_initial_login_failure_exits(self, client_cls):
        client_cls.return_value.authenticate.side_effect = \
            AuthenticationError('denied')

        assert main.main(REQUIRED) == 1

    @patch.object(main, 'Client')
    def test_test_mode_prints_stations(self, client_cls, capsys):
        client_cls.return_value.get_stations.return_value = [make_station()]

        assert main.main(REQUIRED + ['-t']) == 0

        stations = json.loads(capsys.readouterr().out)
        assert stations[0]['mac'] == 'AA:BB'
        assert stations[0]['tx_bytes'] == 500

    @patch.object(main, 'Client')
    def test_test_mode_fetch_failure(self, client_cls):
        client_cls.return_value.get_stations.side_effect = FetchError('boom')

        assert main.main(REQUIRED + ['-t']) == 1

    @patch.object(main, 'Client')
    def test_client_built_from_args(self, client_cls):
        client_cls.return_value.get_stations.return_value = []

        main.main(REQUIRED + ['-t', '-i', '--site=office', '--timeout=3'])

        client_cls.assert_called_once_with(
            'https://unifi.local:8443',
            'admin',
            'secret',
            site='office',
            verify=False,
            timeout=3.0,
        )
