"""
SoundExchange Compliance Log Generator
========================================
Builds the quarterly playlist and streaming reports for a station from
its playlist exports and streaming server logs, then zips and mails
them.

Usage:
    python main.py
"""

import logging
import sys
from datetime import date

from config import ConfigurationError, ReportConfig, setup_logging, validate_config
from delivery import DeliveryError
from ingestion import ParseError
from matching import AudioFileError
from output import KNOWN_COLUMNS
from reconciler import run
from window import IntervalError

logger = logging.getLogger(__name__)


def main() -> None:
    setup_logging()

    logger.info("=" * 55)
    logger.info("  SoundExchange Compliance Log Generator")
    logger.info("=" * 55)

    # Validate configuration
    try:
        config = ReportConfig.from_env()
        validate_config(config, KNOWN_COLUMNS)
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        sys.exit(1)

    try:
        result = run(config, date.today())
    except IntervalError as exc:
        logger.error("Not enough log data: %s", exc)
        sys.exit(1)
    except (ParseError, AudioFileError, ValueError) as exc:
        logger.error("Report generation failed: %s", exc)
        sys.exit(1)
    except (ConfigurationError, OSError) as exc:
        logger.error("Could not read input: %s", exc)
        sys.exit(1)
    except DeliveryError as exc:
        logger.error("Failed to email logs: %s", exc)
        sys.exit(1)

    logger.info("")
    logger.info("=" * 55)
    logger.info("  RESULTS: %s %d", result.quarter.label, result.quarter.year)
    logger.info("=" * 55)
    for path in result.reports:
        logger.info("  %s", path)
    if result.archive_path:
        logger.info("  Mailed archive: %s", result.archive_path)

    logger.info("Done.")


if __name__ == "__main__":
    main()
