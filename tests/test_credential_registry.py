"""Unit tests for CredentialRegistry."""
import os
from unittest.mock import patch

import pytest

from registry.credential_registry import CredentialRegistry, format_directory


@pytest.fixture
def environ():
    return {
        'ACTION_NETWORK_API_KEY_TEAM_B': 'token-b',
        'ACTION_NETWORK_API_KEY_TEAM_A': 'token-a',
        'ACTION_NETWORK_API_KEY_': 'orphan',
        'ACTION_NETWORK_API_KEY_EMPTY': '',
        'LOG_LEVEL': 'INFO',
        'PATH': '/usr/bin',
    }


class TestCredentialRegistry:
    """Test cases for CredentialRegistry class."""

    def test_from_environ_strips_prefix(self, environ):
        registry = CredentialRegistry.from_environ(environ)

        assert registry.lookup('TEAM_A') == 'token-a'
        assert registry.lookup('TEAM_B') == 'token-b'
        assert len(registry) == 2

    def test_from_environ_skips_incomplete_entries(self, environ):
        registry = CredentialRegistry.from_environ(environ)

        assert '' not in registry
        assert 'EMPTY' not in registry
        assert 'LOG_LEVEL' not in registry

    def test_from_environ_defaults_to_os_environ(self):
        with patch.dict(os.environ, {'ACTION_NETWORK_API_KEY_LOCAL': 'tok'}):
            registry = CredentialRegistry.from_environ()

        assert registry.lookup('LOCAL') == 'tok'

    def test_registry_is_a_snapshot(self, environ):
        registry = CredentialRegistry.from_environ(environ)
        environ['ACTION_NETWORK_API_KEY_TEAM_C'] = 'token-c'

        assert 'TEAM_C' not in registry

    def test_lookup_unknown_feed(self, environ):
        registry = CredentialRegistry.from_environ(environ)

        assert registry.lookup('TEAM_Z') is None

    def test_custom_prefix(self):
        registry = CredentialRegistry.from_environ(
            {'AN_KEY_NORTH': 'n', 'ACTION_NETWORK_API_KEY_SOUTH': 's'},
            prefix='AN_KEY_'
        )

        assert registry.list_ids() == ['NORTH']

    def test_list_ids_sorted(self, environ):
        registry = CredentialRegistry.from_environ(environ)

        assert registry.list_ids() == ['TEAM_A', 'TEAM_B']


class TestFormatDirectory:
    """Test cases for the directory listing."""

    def test_one_line_per_feed(self, environ):
        registry = CredentialRegistry.from_environ(environ)

        listing = format_directory(registry)

        assert listing.split('\n') == ['TEAM_A', 'TEAM_B']
        assert '' not in listing.split('\n')
        assert not listing.endswith('\n')

    def test_empty_registry(self):
        assert format_directory(CredentialRegistry({})) == ''
