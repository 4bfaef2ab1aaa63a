"""Default INotificationService: writes approval notifications to the log.

Deployments with a mail relay or queue provide their own INotificationService;
the workflow notifier only depends on send(to_emails, subject, body).
"""

from __future__ import annotations

import logging

from app.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

_SUBJECT_PREVIEW = 80
_BODY_PREVIEW = 500


class LogOnlyNotificationService:
    """Logs each message instead of delivering it."""

    async def send(self, to_emails: list[str], subject: str, body: str) -> None:
        recipients = sorted({e for e in to_emails or [] if e})
        subject_preview = (subject or "")[:_SUBJECT_PREVIEW]
        if not recipients:
            logger.info("Workflow notify: no recipients for %r", subject_preview)
            return
        logger.info(
            "Workflow notify: would send to %d recipients (subject=%r)",
            len(recipients),
            subject_preview,
        )
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Workflow notify to=%s body=%s",
                ", ".join(recipients),
                (body or "")[:_BODY_PREVIEW],
            )
