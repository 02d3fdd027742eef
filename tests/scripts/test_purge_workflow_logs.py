"""Test the execution log retention job"""

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from scripts.purge_workflow_logs import purge_workflow_logs
from src.infrastructure.persistence.models import WorkflowExecutionLog
from src.shared.utils import utc_now


@pytest.fixture
async def aged_logs(session_factory, make_workflow, test_tenant, second_tenant):
    """One fresh and one 100-day-old log per tenant"""
    now = utc_now()
    async with session_factory() as session:
        for tenant in (test_tenant, second_tenant):
            workflow = await make_workflow(tenant.id)
            for age in (timedelta(days=1), timedelta(days=100)):
                session.add(
                    WorkflowExecutionLog(
                        tenant_id=tenant.id,
                        workflow_id=workflow.id,
                        execution_status="success",
                        action_logs=[],
                        executed_at=now - age,
                    )
                )
        await session.commit()


async def count_logs(session_factory) -> int:
    async with session_factory() as session:
        result = await session.execute(select(func.count()).select_from(WorkflowExecutionLog))
        return result.scalar_one()


@pytest.mark.asyncio
async def test_purges_old_logs_for_every_tenant(session_factory, aged_logs):
    deleted = await purge_workflow_logs(session_factory, retention_days=90)

    assert deleted == 2
    assert await count_logs(session_factory) == 2


@pytest.mark.asyncio
async def test_dry_run_only_counts(session_factory, aged_logs):
    matched = await purge_workflow_logs(session_factory, retention_days=90, dry_run=True)

    assert matched == 2
    assert await count_logs(session_factory) == 4


@pytest.mark.asyncio
async def test_short_retention_deletes_more(session_factory, aged_logs):
    assert await purge_workflow_logs(session_factory, retention_days=0) == 4
