"""
Delete workflow execution logs older than the retention window.

The engine only ever appends logs; this job is the retention policy.
Each tenant is purged in its own transaction.

Usage:
    python -m scripts.purge_workflow_logs
    python -m scripts.purge_workflow_logs --days 30 --dry-run
"""
import argparse
import asyncio
from datetime import timedelta

from sqlalchemy import func, select

from src.infrastructure.config.settings import get_settings
from src.infrastructure.persistence.database import (build_engine,
                                                     build_session_factory)
from src.infrastructure.persistence.models.workflow import WorkflowExecutionLog
from src.infrastructure.persistence.repositories import (
    TenantRepository, WorkflowExecutionLogRepository)
from src.shared.telemetry.logging import get_logger, setup_logging
from src.shared.utils import utc_now

logger = get_logger(__name__)


async def purge_workflow_logs(session_factory, retention_days: int, dry_run: bool = False) -> int:
    """Purge logs for every tenant; returns the number of rows deleted (or matched)"""
    cutoff = utc_now() - timedelta(days=retention_days)

    async with session_factory() as session:
        tenant_ids = await TenantRepository(session).get_all_ids()

    total = 0
    for tenant_id in tenant_ids:
        async with session_factory() as session:
            if dry_run:
                result = await session.execute(
                    select(func.count())
                    .select_from(WorkflowExecutionLog)
                    .where(
                        WorkflowExecutionLog.tenant_id == tenant_id,
                        WorkflowExecutionLog.executed_at < cutoff,
                    )
                )
                count = result.scalar_one()
            else:
                async with session.begin():
                    count = await WorkflowExecutionLogRepository(session).delete_older_than(
                        tenant_id, cutoff
                    )

        if count:
            logger.info(
                "%s %d execution log(s) for tenant %s",
                "Would delete" if dry_run else "Deleted",
                count,
                tenant_id,
            )
        total += count

    return total


async def main(days: int | None = None, dry_run: bool = False):
    setup_logging()
    settings = get_settings()
    retention_days = days or settings.workflow_log_retention_days

    engine = build_engine(settings.database_url, echo=settings.database_echo)
    try:
        total = await purge_workflow_logs(build_session_factory(engine), retention_days, dry_run)
        print(
            f"{'Would delete' if dry_run else 'Deleted'} {total} workflow execution log(s) "
            f"older than {retention_days} days"
        )
    finally:
        await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--days", type=int, default=None, help="Retention window in days")
    parser.add_argument("--dry-run", action="store_true", help="Only count matching logs")
    args = parser.parse_args()

    asyncio.run(main(days=args.days, dry_run=args.dry_run))
