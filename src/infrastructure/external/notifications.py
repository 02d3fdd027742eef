"""
Default delivery adapters for workflow notifications and emails.

Real delivery (in-app inbox, SMTP/provider APIs) belongs to the services
that own those channels. These adapters record the intent in the log and
report it as queued, which is what the workflow engine needs to complete a
run when no delivery service is wired in.
"""

from typing import Any

from src.shared.telemetry.logging import get_logger
from src.shared.utils import generate_cuid, utc_now

logger = get_logger(__name__)


class LoggingNotificationService:
    """INotificationService that only logs"""

    async def notify(
        self,
        tenant_id: str,
        *,
        recipient: str | None,
        message: str,
        notification_type: str = "info",
        title: str | None = None,
    ) -> dict[str, Any]:
        notification_id = generate_cuid()
        logger.info(
            "Notification %s (%s) for tenant %s, recipient %s: %s",
            notification_id,
            notification_type,
            tenant_id,
            recipient or "<unspecified>",
            title or message,
        )
        return {
            "id": notification_id,
            "status": "queued",
            "queued_at": utc_now(),
        }


class LoggingEmailService:
    """IEmailService that only logs"""

    async def send(
        self,
        tenant_id: str,
        *,
        to: list[str],
        subject: str,
        body: str,
        cc: list[str] | None = None,
        bcc: list[str] | None = None,
        is_html: bool = False,
    ) -> dict[str, Any]:
        message_id = generate_cuid()
        logger.info(
            "Email %s for tenant %s to %s (cc=%d, bcc=%d, html=%s): %s",
            message_id,
            tenant_id,
            ", ".join(to),
            len(cc or []),
            len(bcc or []),
            is_html,
            subject,
        )
        return {
            "message_id": message_id,
            "status": "queued",
            "queued_at": utc_now(),
        }
