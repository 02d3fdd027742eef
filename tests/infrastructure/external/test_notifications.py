"""Test the logging delivery adapters"""

import logging

import pytest
from freezegun import freeze_time

from src.infrastructure.external.notifications import (
    LoggingEmailService, LoggingNotificationService)


@pytest.mark.asyncio
@freeze_time("2026-03-02 09:30:00")
async def test_notification_is_reported_as_queued(caplog):
    caplog.set_level(logging.INFO)

    result = await LoggingNotificationService().notify(
        "tenant-1", recipient="user-7", message="Invoice paid", title="Billing"
    )

    assert result["status"] == "queued"
    assert result["id"]
    assert result["queued_at"].isoformat().startswith("2026-03-02T09:30:00")
    assert "recipient user-7: Billing" in caplog.text


@pytest.mark.asyncio
async def test_notification_ids_are_unique():
    service = LoggingNotificationService()

    first = await service.notify("tenant-1", recipient=None, message="a")
    second = await service.notify("tenant-1", recipient=None, message="b")

    assert first["id"] != second["id"]


@pytest.mark.asyncio
async def test_email_is_reported_as_queued(caplog):
    caplog.set_level(logging.INFO)

    result = await LoggingEmailService().send(
        "tenant-1",
        to=["a@example.com", "b@example.com"],
        subject="Welcome",
        body="<p>Hi</p>",
        cc=["c@example.com"],
        is_html=True,
    )

    assert result["status"] == "queued"
    assert result["message_id"]
    assert "a@example.com, b@example.com (cc=1, bcc=0, html=True): Welcome" in caplog.text
