"""Unit tests for importer settings."""
import pytest

from settings import (
    DEFAULT_FEEDS,
    ConfigurationError,
    TagRule,
    load_config,
    resolve_token,
)


class TestSettings:
    """Test cases for configuration loading."""

    def test_token_priority(self):
        environ = {
            'DIRECTUS_ADMIN_TOKEN': 'admin',
            'DIRECTUS_STATIC_TOKEN': 'static',
            'DIRECTUS_EVENTS_TOKEN': 'events',
        }

        assert resolve_token(environ) == 'events'
        del environ['DIRECTUS_EVENTS_TOKEN']
        assert resolve_token(environ) == 'static'
        del environ['DIRECTUS_STATIC_TOKEN']
        assert resolve_token(environ) == 'admin'

    def test_empty_token_is_skipped(self):
        environ = {'DIRECTUS_EVENTS_TOKEN': '  ', 'DIRECTUS_ADMIN_TOKEN': 'admin'}

        assert resolve_token(environ) == 'admin'

    def test_missing_token_fails_fast(self):
        with pytest.raises(ConfigurationError):
            load_config({'PUBLIC_DIRECTUS_URL': 'https://cms.example.org'})

    def test_defaults(self):
        config = load_config({'DIRECTUS_STATIC_TOKEN': 'tok'})

        assert config.token == 'tok'
        assert config.directus_url == 'http://localhost:8055'
        assert config.feeds == DEFAULT_FEEDS
        assert [feed.source for feed in config.feeds] == [
            'washington-dc', 'maryland', 'virginia'
        ]
        assert config.request_timeout == 15.0
        assert config.item_delay == 0.5
        assert config.civil_timezone == 'America/New_York'
        assert config.user_agent == 'rss-events-importer/1.0'

    def test_environment_overrides(self):
        config = load_config({
            'DIRECTUS_STATIC_TOKEN': 'tok',
            'PUBLIC_DIRECTUS_URL': 'https://cms.example.org/',
            'REQUEST_TIMEOUT_SECONDS': '10',
            'ITEM_DELAY_SECONDS': '0',
            'MAX_RETRIES': '5',
            'LOG_LEVEL': 'DEBUG',
        })

        assert config.directus_url == 'https://cms.example.org'
        assert config.request_timeout == 10.0
        assert config.item_delay == 0.0
        assert config.max_retries == 5
        assert config.log_level == 'DEBUG'

    def test_bad_number(self):
        with pytest.raises(ConfigurationError):
            load_config({'DIRECTUS_STATIC_TOKEN': 'tok', 'MAX_RETRIES': 'three'})

    @pytest.mark.parametrize("name, value", [
        ("ITEM_DELAY_SECONDS", "-1"),
        ("REQUEST_TIMEOUT_SECONDS", "0"),
        ("REQUEST_TIMEOUT_SECONDS", "-5"),
        ("MAX_RETRIES", "0"),
        ("ITEM_DELAY_SECONDS", "nan"),
    ])
    def test_out_of_range_number(self, name, value):
        with pytest.raises(ConfigurationError) as exc_info:
            load_config({"DIRECTUS_STATIC_TOKEN": "tok", name: value})

        assert name in str(exc_info.value)

    def test_boundary_values_accepted(self):
        config = load_config({
            "DIRECTUS_STATIC_TOKEN": "tok",
            "ITEM_DELAY_SECONDS": "0",
            "MAX_RETRIES": "1",
            "REQUEST_TIMEOUT_SECONDS": "0.5",
        })

        assert config.item_delay == 0.0
        assert config.max_retries == 1
        assert config.request_timeout == 0.5

    def test_select_feeds_keeps_declaration_order(self):
        config = load_config({'DIRECTUS_STATIC_TOKEN': 'tok'})

        selected = config.select_feeds(['virginia', 'washington-dc'])

        assert [feed.source for feed in selected.feeds] == ['washington-dc', 'virginia']
        assert config.select_feeds(None) is config

    def test_select_unknown_feed(self):
        config = load_config({'DIRECTUS_STATIC_TOKEN': 'tok'})

        with pytest.raises(ConfigurationError):
            config.select_feeds(['ohio'])

    def test_tag_rule_matches_case_insensitively(self):
        rule = TagRule(keyword='bitplebs', tag_name='bitplebs')

        assert rule.matches('BitPlebs Happy Hour')
        assert not rule.matches('Bitcoin Happy Hour')
        assert not rule.matches('')

    def test_select_single_feed_as_string(self):
        config = load_config({'DIRECTUS_STATIC_TOKEN': 'tok'})

        selected = config.select_feeds('maryland')

        assert [feed.source for feed in selected.feeds] == ['maryland']
