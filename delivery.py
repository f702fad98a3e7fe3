"""
Report delivery: zip the finished reports and mail them out.

Includes exponential backoff with jitter for the SMTP hand-off.
"""

import logging
import os
import random
import smtplib
import socket
import time
import zipfile
from email.message import EmailMessage
from typing import Iterable, Optional

from config import BACKOFF_BASE, BACKOFF_MAX, MAX_RETRIES, SMTP_TIMEOUT, ReportConfig
from output import report_prefix
from quarter import CalendarQuarter

logger = logging.getLogger(__name__)

MESSAGE_TEXT = "See attached zip file"


class DeliveryError(Exception):
    """Raised when the reports cannot be archived or mailed."""


def archive_reports(paths: Iterable[str], archive_path: str) -> str:
    """
    Pack report files into a zip archive, each stored under its bare name.

    The reports stay in place so RunResult.reports remains valid.
    Returns the archive path.
    """
    paths = list(paths)
    try:
        with zipfile.ZipFile(archive_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for path in paths:
                zf.write(path, arcname=os.path.basename(path))
    except (OSError, zipfile.BadZipFile) as exc:
        raise DeliveryError(f"Failed to write zip file {archive_path}: {exc}") from exc

    logger.info("Archived %d reports into %s", len(paths), archive_path)
    return archive_path


def attachment_name(config: ReportConfig, quarter: CalendarQuarter) -> str:
    return f"{report_prefix(config, quarter)} SoundExchange Logs.zip"


def build_message(archive_path: str, config: ReportConfig, quarter: CalendarQuarter) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = config.notify_from
    msg["To"] = config.notify_to
    msg["Subject"] = f"{report_prefix(config, quarter)} SoundExchange logs"
    msg.set_content(MESSAGE_TEXT)
    with open(archive_path, "rb") as f:
        msg.add_attachment(
            f.read(),
            maintype="application",
            subtype="zip",
            filename=attachment_name(config, quarter),
        )
    return msg


def _backoff_sleep(attempt: int) -> None:
    """Sleep with exponential backoff + jitter."""
    delay = min(BACKOFF_BASE ** attempt + random.uniform(0, 1), BACKOFF_MAX)
    logger.info("Retrying in %.1fs (attempt %d)...", delay, attempt + 1)
    time.sleep(delay)


def send_archive(
    archive_path: str,
    config: ReportConfig,
    quarter: CalendarQuarter,
    max_retries: Optional[int] = None,
) -> None:
    """
    Mail the archive to the configured recipient.

    Connection and protocol failures are retried with backoff; after
    the last attempt a DeliveryError is raised.
    """
    if max_retries is None:
        max_retries = MAX_RETRIES

    msg = build_message(archive_path, config, quarter)

    last_error: Optional[str] = None
    for attempt in range(max_retries + 1):
        try:
            with smtplib.SMTP(config.smtp_host, timeout=SMTP_TIMEOUT,
                              local_hostname=socket.gethostname()) as smtp:
                smtp.send_message(msg)
            logger.info("Mailed %s to %s", attachment_name(config, quarter), config.notify_to)
            return
        except (smtplib.SMTPException, OSError) as exc:
            last_error = f"{type(exc).__name__}: {exc}"
            logger.warning("Attempt %d: SMTP delivery failed: %s", attempt + 1, last_error)

        if attempt < max_retries:
            _backoff_sleep(attempt)

    raise DeliveryError(
        f"Failed to send compressed logs via {config.smtp_host} "
        f"after {max_retries + 1} attempts: {last_error}"
    )
