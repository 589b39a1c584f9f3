"""Entry points for the RSS events importer."""
import argparse
import json
import logging
import sys
import time
from functools import partial
from typing import Any, Dict, List, Optional

import requests

from processor.datetime_resolver import DateTimeResolver, civil_now
from processor.models import ImportSummary
from processor.pipeline import ImportPipeline
from processor.reconciler import EventReconciler
from scraper.content_extractor import ContentExtractor
from scraper.feed_reader import FeedReader
from scraper.rsvp_resolver import RsvpLinkResolver
from settings import ConfigurationError, ImporterConfig, TOKEN_ENV_VARS, load_config
from storage.asset_importer import AssetImporter
from storage.directus_client import DirectusClient
from storage.entity_resolver import EntityResolver

# Attributes every LogRecord has; anything else came in through extra=
_RECORD_ATTRS = set(vars(logging.makeLogRecord({}))) | {'message', 'asctime'}


class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON, including any extra= fields."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS and key not in log_data:
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str, ensure_ascii=False)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def build_pipeline(config: ImporterConfig) -> ImportPipeline:
    """Wire every importer component from one configuration value."""
    http = requests.Session()
    http.headers['User-Agent'] = config.user_agent

    store = DirectusClient(
        base_url=config.directus_url,
        token=config.token,
        timeout=config.request_timeout
    )
    reconciler = EventReconciler(
        store=store,
        extractor=ContentExtractor(),
        datetime_resolver=DateTimeResolver(),
        rsvp_resolver=RsvpLinkResolver(session=http, timeout=config.request_timeout),
        entity_resolver=EntityResolver(store),
        asset_importer=AssetImporter(store, session=http, timeout=config.request_timeout),
        tag_rules=config.tag_rules,
        clock=partial(civil_now, config.civil_timezone)
    )
    return ImportPipeline(
        feeds=config.feeds,
        feed_reader=FeedReader(
            session=http,
            timeout=config.request_timeout,
            max_retries=config.max_retries
        ),
        reconciler=reconciler,
        item_delay=config.item_delay
    )


def run_import(config: ImporterConfig) -> ImportSummary:
    """Run one import over the configured feeds."""
    logger = logging.getLogger(__name__)
    logger.info(
        "Import started",
        extra={
            'directus_url': config.directus_url,
            'feeds': [feed.source for feed in config.feeds]
        }
    )
    return build_pipeline(config).run()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog='import-events',
        description='Import community events from RSS feeds into Directus.'
    )
    parser.add_argument(
        '--feed', action='append', dest='feeds', metavar='SOURCE',
        help='Only import this feed source (repeatable)'
    )
    parser.add_argument('--log-level', help='Override LOG_LEVEL')
    parser.add_argument(
        '--summary-json', metavar='PATH',
        help='Write the final summary to PATH as JSON'
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Command-line entry point.

    Returns:
        0 once the run completes (item failures included), 1 on a
        configuration error
    """
    args = parse_args(argv)

    try:
        config = load_config()
    except ConfigurationError as e:
        setup_logging(args.log_level or 'INFO')
        logging.getLogger(__name__).error(
            f"{e}",
            extra={'token_variables': list(TOKEN_ENV_VARS)}
        )
        return 1

    setup_logging(args.log_level or config.log_level)
    logger = logging.getLogger(__name__)

    try:
        config = config.select_feeds(args.feeds)
    except ConfigurationError as e:
        logger.error(f"{e}")
        return 1

    summary = run_import(config)

    if args.summary_json:
        with open(args.summary_json, 'w', encoding='utf-8') as fh:
            json.dump(summary.as_dict(), fh, indent=2)
        logger.info(f"Summary written to {args.summary_json}")

    return 0


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Scheduled-run handler.

    Args:
        event: Scheduler payload; an optional ``feeds`` list (or single
            source name) restricts the run
        context: Runtime context object (unused)

    Returns:
        Response dict with statusCode and summary statistics
    """
    start_time = time.time()

    try:
        config = load_config()
    except ConfigurationError as e:
        setup_logging('INFO')
        logging.getLogger(__name__).error(f"{e}")
        return {
            'statusCode': 500,
            'body': json.dumps({
                'message': 'Import not started',
                'error': str(e),
                'error_type': type(e).__name__
            })
        }

    setup_logging(config.log_level)
    logger = logging.getLogger(__name__)

    try:
        config = config.select_feeds((event or {}).get('feeds'))
        summary = run_import(config)
    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"Import failed: {e}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return {
            'statusCode': 500,
            'body': json.dumps({
                'message': 'Import failed',
                'error': str(e),
                'error_type': type(e).__name__,
                'duration_seconds': round(duration, 2)
            })
        }

    duration = time.time() - start_time
    return {
        'statusCode': 200,
        'body': json.dumps({
            'message': 'Import completed',
            'statistics': summary.as_dict(),
            'duration_seconds': round(duration, 2)
        })
    }


if __name__ == '__main__':
    sys.exit(main())
