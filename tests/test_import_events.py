"""Tests for the importer entry points."""
import json
import logging
import os
from unittest.mock import Mock, patch

import pytest

from import_events import JsonFormatter, build_pipeline, lambda_handler, main
from processor.models import FeedResult, ImportSummary
from settings import load_config


@pytest.fixture
def mock_env():
    """Set up environment variables for testing."""
    env_vars = {
        'DIRECTUS_EVENTS_TOKEN': 'test-token',
        'PUBLIC_DIRECTUS_URL': 'https://cms.example.org',
        'LOG_LEVEL': 'INFO',
    }
    with patch.dict(os.environ, env_vars, clear=True):
        yield env_vars


@pytest.fixture
def sample_summary():
    return ImportSummary().add(
        FeedResult(source='washington-dc', total=3, created=1, skipped=1, failed=1)
    )


class TestMain:
    """Test cases for the command-line entry point."""

    def test_no_token_exits_with_error(self):
        with patch.dict(os.environ, {}, clear=True), \
                patch('import_events.run_import') as mock_run:
            assert main([]) == 1
            mock_run.assert_not_called()

    @patch('import_events.run_import')
    def test_successful_run(self, mock_run, mock_env, sample_summary):
        mock_run.return_value = sample_summary

        assert main([]) == 0
        config = mock_run.call_args[0][0]
        assert config.token == 'test-token'
        assert config.directus_url == 'https://cms.example.org'

    @patch('import_events.run_import')
    def test_item_failures_still_exit_zero(self, mock_run, mock_env):
        mock_run.return_value = ImportSummary().add(
            FeedResult(source='maryland', total=2, failed=2)
        )

        assert main([]) == 0

    @patch('import_events.run_import')
    def test_feed_selection(self, mock_run, mock_env, sample_summary):
        mock_run.return_value = sample_summary

        main(['--feed', 'maryland'])

        config = mock_run.call_args[0][0]
        assert [feed.source for feed in config.feeds] == ['maryland']

    @patch('import_events.run_import')
    def test_unknown_feed(self, mock_run, mock_env):
        assert main(['--feed', 'ohio']) == 1
        mock_run.assert_not_called()

    @patch('import_events.run_import')
    def test_summary_json(self, mock_run, mock_env, sample_summary, tmp_path):
        mock_run.return_value = sample_summary
        path = tmp_path / 'summary.json'

        assert main(['--summary-json', str(path)]) == 0
        data = json.loads(path.read_text(encoding='utf-8'))
        assert data['created'] == 1
        assert data['feeds']['washington-dc']['failed'] == 1


class TestLambdaHandler:
    """Test cases for the scheduled-run handler."""

    @patch('import_events.run_import')
    def test_successful_import(self, mock_run, mock_env, sample_summary):
        mock_run.return_value = sample_summary

        response = lambda_handler({}, Mock())

        assert response['statusCode'] == 200
        body = json.loads(response['body'])
        assert body['statistics']['total'] == 3
        assert body['statistics']['failed'] == 1

    @patch('import_events.run_import')
    def test_feed_list_in_event(self, mock_run, mock_env, sample_summary):
        mock_run.return_value = sample_summary

        lambda_handler({'feeds': ['virginia']}, Mock())

        config = mock_run.call_args[0][0]
        assert [feed.source for feed in config.feeds] == ['virginia']

    @patch('import_events.run_import')
    def test_single_feed_as_string(self, mock_run, mock_env, sample_summary):
        mock_run.return_value = sample_summary

        response = lambda_handler({'feeds': 'maryland'}, Mock())

        assert response['statusCode'] == 200
        config = mock_run.call_args[0][0]
        assert [feed.source for feed in config.feeds] == ['maryland']

    def test_out_of_range_setting(self):
        env = {'DIRECTUS_EVENTS_TOKEN': 'tok', 'ITEM_DELAY_SECONDS': '-1'}
        with patch.dict(os.environ, env, clear=True), \
                patch('import_events.run_import') as mock_run:
            response = lambda_handler({}, Mock())

        assert response['statusCode'] == 500
        mock_run.assert_not_called()

    def test_missing_token(self):
        with patch.dict(os.environ, {}, clear=True):
            response = lambda_handler({}, Mock())

        assert response['statusCode'] == 500
        assert json.loads(response['body'])['error_type'] == 'ConfigurationError'

    @patch('import_events.run_import')
    def test_unexpected_error(self, mock_run, mock_env):
        mock_run.side_effect = RuntimeError('boom')

        response = lambda_handler({}, Mock())

        assert response['statusCode'] == 500
        body = json.loads(response['body'])
        assert body['error'] == 'boom'
        assert body['error_type'] == 'RuntimeError'


class TestWiring:
    """Test cases for logging and component wiring."""

    def test_json_formatter_includes_extra(self):
        record = logging.makeLogRecord({
            'name': 'processor.pipeline',
            'levelname': 'INFO',
            'msg': 'created: %s',
            'args': ('Meetup',),
            'status': 'created',
        })

        data = json.loads(JsonFormatter().format(record))

        assert data['message'] == 'created: Meetup'
        assert data['level'] == 'INFO'
        assert data['logger'] == 'processor.pipeline'
        assert data['status'] == 'created'

    def test_build_pipeline(self, mock_env):
        config = load_config()

        pipeline = build_pipeline(config)

        assert pipeline.feeds == config.feeds
        assert pipeline.item_delay == 0.5
        assert pipeline.reconciler.store.base_url == 'https://cms.example.org'
        assert pipeline.reconciler.store.session.headers['Authorization'] == 'Bearer test-token'
        assert pipeline.reconciler.tag_rules == config.tag_rules
