"""Repositories for workflow data access"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.enums import WorkflowStatus
from src.infrastructure.persistence.models.workflow import (
    Workflow, WorkflowAction, WorkflowExecutionLog, WorkflowTrigger)
from src.infrastructure.persistence.repositories.base import BaseRepository
from src.shared.utils import utc_now


class WorkflowRepository(BaseRepository[Workflow]):
    """Repository for Workflow definitions and their trigger/action sets."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, Workflow)

    async def get_by_tenant(
        self,
        tenant_id: str,
        skip: int = 0,
        limit: int = 100,
        include_inactive: bool = True,
    ) -> list[Workflow]:
        """Get workflows for tenant, most recently updated first"""
        stmt = select(Workflow).where(Workflow.tenant_id == tenant_id)

        if not include_inactive:
            stmt = stmt.where(Workflow.is_active.is_(True))

        stmt = (
            stmt.order_by(Workflow.updated_at.desc(), Workflow.id.asc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_triggers(self, workflow_id: str, tenant_id: str) -> list[WorkflowTrigger]:
        """All triggers of a workflow (active or not) in definition order"""
        stmt = (
            select(WorkflowTrigger)
            .where(
                WorkflowTrigger.workflow_id == workflow_id,
                WorkflowTrigger.tenant_id == tenant_id,
            )
            .order_by(WorkflowTrigger.position.asc(), WorkflowTrigger.id.asc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_actions(self, workflow_id: str, tenant_id: str) -> list[WorkflowAction]:
        """All actions of a workflow (active or not) in execution order"""
        stmt = (
            select(WorkflowAction)
            .where(
                WorkflowAction.workflow_id == workflow_id,
                WorkflowAction.tenant_id == tenant_id,
            )
            .order_by(WorkflowAction.sequence_order.asc(), WorkflowAction.id.asc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def create_with_definition(
        self,
        workflow: Workflow,
        triggers: list[WorkflowTrigger],
        actions: list[WorkflowAction],
    ) -> Workflow:
        """Create workflow together with its trigger and action sets"""
        created = await self.create(workflow)
        await self._add_definition(created, triggers, actions)
        return created

    async def replace_definition(
        self,
        workflow: Workflow,
        triggers: list[WorkflowTrigger],
        actions: list[WorkflowAction],
    ) -> Workflow:
        """
        Save workflow changes and replace its trigger and action sets.

        Existing triggers/actions are deleted and the new sets inserted, not
        diffed. Runs inside the caller's transaction so the swap is atomic.
        """
        workflow.updated_at = utc_now()
        updated = await self.update(workflow)
        await self._delete_definition(updated.id, updated.tenant_id)
        await self._add_definition(updated, triggers, actions)
        return updated

    async def delete_workflow(self, workflow_id: str, tenant_id: str) -> bool:
        """
        Delete a workflow and cascade to its triggers and actions.

        Execution logs are kept with workflow_id and trigger_id cleared.
        """
        workflow = await self.get_by_id(workflow_id, tenant_id)
        if not workflow:
            return False

        await self._delete_definition(workflow_id, tenant_id)
        await self._detach_logs(workflow_id, tenant_id, from_workflow=True)
        await self.delete(workflow)
        return True

    async def activate(self, workflow_id: str, tenant_id: str, user_id: str | None = None) -> Workflow | None:
        """Enable a workflow: sets is_active and moves it to the active status"""
        workflow = await self.get_by_id(workflow_id, tenant_id)
        if not workflow:
            return None

        workflow.is_active = True
        workflow.status = WorkflowStatus.ACTIVE.value
        if user_id:
            workflow.updated_by = user_id
        return await self.update(workflow)

    async def deactivate(self, workflow_id: str, tenant_id: str, user_id: str | None = None) -> Workflow | None:
        """Pause a workflow: clears is_active and moves it to the paused status"""
        workflow = await self.get_by_id(workflow_id, tenant_id)
        if not workflow:
            return None

        workflow.is_active = False
        workflow.status = WorkflowStatus.PAUSED.value
        if user_id:
            workflow.updated_by = user_id
        return await self.update(workflow)

    async def _add_definition(
        self,
        workflow: Workflow,
        triggers: list[WorkflowTrigger],
        actions: list[WorkflowAction],
    ) -> None:
        # Rows inserted in one flush share created_at, so list order is stored explicitly
        for position, trigger in enumerate(triggers):
            trigger.position = position
        for item in [*triggers, *actions]:
            item.tenant_id = workflow.tenant_id
            item.workflow_id = workflow.id
            self.db.add(item)
        await self.db.flush()

    async def _detach_logs(self, workflow_id: str, tenant_id: str, *, from_workflow: bool) -> None:
        """Keep execution history when its trigger (or whole workflow) goes away"""
        values = {"trigger_id": None}
        if from_workflow:
            values["workflow_id"] = None
        await self.db.execute(
            update(WorkflowExecutionLog)
            .where(
                WorkflowExecutionLog.workflow_id == workflow_id,
                WorkflowExecutionLog.tenant_id == tenant_id,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )

    async def _delete_definition(self, workflow_id: str, tenant_id: str) -> None:
        await self._detach_logs(workflow_id, tenant_id, from_workflow=False)
        await self.db.execute(
            delete(WorkflowTrigger).where(
                WorkflowTrigger.workflow_id == workflow_id,
                WorkflowTrigger.tenant_id == tenant_id,
            )
        )
        await self.db.execute(
            delete(WorkflowAction).where(
                WorkflowAction.workflow_id == workflow_id,
                WorkflowAction.tenant_id == tenant_id,
            )
        )


class WorkflowTriggerRepository:
    """Read access to triggers for event matching"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_candidates(
        self, tenant_id: str, module: str, event: str
    ) -> list[tuple[WorkflowTrigger, Workflow]]:
        """
        Active triggers for (module, event) whose workflow can run.

        Ordered by trigger ID so repeated calls match in the same order.
        """
        stmt = (
            select(WorkflowTrigger, Workflow)
            .join(Workflow, WorkflowTrigger.workflow_id == Workflow.id)
            .where(
                WorkflowTrigger.tenant_id == tenant_id,
                Workflow.tenant_id == tenant_id,
                WorkflowTrigger.trigger_module == module,
                WorkflowTrigger.trigger_event == event,
                WorkflowTrigger.is_active.is_(True),
                Workflow.is_active.is_(True),
                Workflow.status == WorkflowStatus.ACTIVE.value,
            )
            .order_by(WorkflowTrigger.id.asc())
        )
        result = await self.db.execute(stmt)
        return [(trigger, workflow) for trigger, workflow in result.all()]

    async def get_first_for_workflow(self, workflow_id: str, tenant_id: str) -> WorkflowTrigger | None:
        """First trigger in definition order (used by manual test runs)"""
        stmt = (
            select(WorkflowTrigger)
            .where(
                WorkflowTrigger.workflow_id == workflow_id,
                WorkflowTrigger.tenant_id == tenant_id,
            )
            .order_by(WorkflowTrigger.position.asc(), WorkflowTrigger.id.asc())
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()


class WorkflowActionRepository:
    """Read access to a workflow's action sequence"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_active_for_workflow(self, workflow_id: str, tenant_id: str) -> list[WorkflowAction]:
        """Active actions in ascending sequence_order (ties broken by ID)"""
        stmt = (
            select(WorkflowAction)
            .where(
                WorkflowAction.workflow_id == workflow_id,
                WorkflowAction.tenant_id == tenant_id,
                WorkflowAction.is_active.is_(True),
            )
            .order_by(WorkflowAction.sequence_order.asc(), WorkflowAction.id.asc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())


class WorkflowExecutionLogRepository:
    """Append-only store for execution logs"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def append(self, log: WorkflowExecutionLog) -> WorkflowExecutionLog:
        """Insert an execution log"""
        self.db.add(log)
        await self.db.flush()
        await self.db.refresh(log)
        return log

    async def get_by_id(self, log_id: str, tenant_id: str) -> WorkflowExecutionLog | None:
        """Get execution log by ID"""
        stmt = select(WorkflowExecutionLog).where(
            WorkflowExecutionLog.id == log_id,
            WorkflowExecutionLog.tenant_id == tenant_id,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_workflow(
        self, workflow_id: str, tenant_id: str, limit: int = 50
    ) -> list[WorkflowExecutionLog]:
        """Most recent execution logs for a workflow"""
        stmt = (
            select(WorkflowExecutionLog)
            .where(
                WorkflowExecutionLog.workflow_id == workflow_id,
                WorkflowExecutionLog.tenant_id == tenant_id,
            )
            .order_by(WorkflowExecutionLog.executed_at.desc(), WorkflowExecutionLog.id.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def delete_older_than(self, tenant_id: str, cutoff: datetime) -> int:
        """Retention cleanup: delete logs executed before `cutoff`"""
        result = await self.db.execute(
            delete(WorkflowExecutionLog).where(
                WorkflowExecutionLog.tenant_id == tenant_id,
                WorkflowExecutionLog.executed_at < cutoff,
            )
        )
        return result.rowcount or 0
