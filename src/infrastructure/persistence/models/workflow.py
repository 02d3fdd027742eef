"""
Workflow automation models.

A workflow is a tenant-defined automation made of:
- Triggers: (module, event, optional conditions) that start it
- Actions: ordered steps executed when it fires
- Execution logs: append-only record of every run

Example definition:
{
    "workflow": {"name": "Invoice follow-up", "status": "active"},
    "triggers": [
        {
            "trigger_module": "invoices",
            "trigger_event": "invoice_paid",
            "trigger_conditions": {"field": "invoice.total", "operator": "greater_than", "value": 1000}
        }
    ],
    "actions": [
        {
            "action_type": "create_task",
            "sequence_order": 0,
            "action_configuration": {
                "title": "Thank {{trigger.client.name}} for payment",
                "dueDateOffset": "+3 days"
            }
        }
    ]
}
"""
from datetime import datetime
from typing import Any

from sqlalchemy import (JSON, Boolean, CheckConstraint, DateTime, ForeignKey,
                        Index, Integer, String, Text)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from src.domain.enums import WorkflowExecutionStatus, WorkflowStatus
from src.infrastructure.persistence.database import Base
from src.infrastructure.persistence.models.mixins import (
    AuditedMultiTenantModel, CuidMixin, MultiTenantModel, TenantMixin)


class Workflow(AuditedMultiTenantModel, Base):
    """
    Tenant-scoped automation unit.

    Inherits from AuditedMultiTenantModel:
        - id: CUID primary key
        - tenant_id: Foreign key to tenant
        - created_at, updated_at: Timestamps
        - created_by, updated_by: User tracking

    A workflow only executes when is_active is true AND status is 'active'.
    """

    __tablename__ = "workflow"

    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String,
        nullable=False,
        default=WorkflowStatus.DRAFT.value,
        comment="draft | active | paused | archived",
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint(f"status IN {tuple(WorkflowStatus.values())}", name="workflow_status_check"),
    )

    @property
    def is_runnable(self) -> bool:
        return self.is_active and self.status == WorkflowStatus.ACTIVE.value

    def __repr__(self):
        return f"<Workflow(id={self.id}, name={self.name}, status={self.status})>"


class WorkflowTrigger(MultiTenantModel, Base):
    """
    When a workflow fires.

    Triggers are replaced as a set whenever the owning workflow is updated.
    """

    __tablename__ = "workflow_trigger"

    workflow_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("workflow.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    trigger_module: Mapped[str] = mapped_column(
        String, nullable=False, comment="Emitting module, e.g. 'tasks'"
    )
    trigger_event: Mapped[str] = mapped_column(
        String, nullable=False, comment="Event name, e.g. 'task_completed'"
    )
    trigger_conditions: Mapped[Any | None] = mapped_column(
        JSON,
        nullable=True,
        comment="Leaf {field, operator, value} or array of conditions (AND)",
    )
    position: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, comment="Index within the workflow's trigger list"
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index("ix_workflow_trigger_match", "tenant_id", "trigger_module", "trigger_event"),
    )

    def __repr__(self):
        return (
            f"<WorkflowTrigger(id={self.id}, workflow_id={self.workflow_id}, "
            f"on={self.trigger_module}.{self.trigger_event})>"
        )


class WorkflowAction(MultiTenantModel, Base):
    """
    One step of a workflow's action sequence.

    Executed in ascending sequence_order (ties broken by id).
    """

    __tablename__ = "workflow_action"

    workflow_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("workflow.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    action_type: Mapped[str] = mapped_column(
        String, nullable=False, comment="Registered action handler name"
    )
    action_configuration: Mapped[Any] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        comment="Handler configuration, may contain {{trigger.*}} placeholders",
    )
    sequence_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self):
        return (
            f"<WorkflowAction(id={self.id}, type={self.action_type}, "
            f"order={self.sequence_order})>"
        )


class WorkflowExecutionLog(CuidMixin, TenantMixin, Base):
    """
    Append-only audit record of one workflow run.

    Written exactly once per execution attempt and never updated by the
    engine. Logs outlive their workflow (workflow_id is cleared on delete);
    retention is handled outside the engine (scripts/purge_workflow_logs.py).
    """

    __tablename__ = "workflow_execution_log"

    workflow_id: Mapped[str | None] = mapped_column(
        String,
        ForeignKey("workflow.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Workflow that ran (null once the workflow is deleted)",
    )
    trigger_id: Mapped[str | None] = mapped_column(
        String,
        ForeignKey("workflow_trigger.id", ondelete="SET NULL"),
        nullable=True,
        comment="Trigger that matched (null once the trigger set is replaced)",
    )
    trigger_event_data: Mapped[Any | None] = mapped_column(
        JSON, nullable=True, comment="Snapshot of the event payload at match time"
    )
    execution_status: Mapped[str] = mapped_column(
        String,
        nullable=False,
        default=WorkflowExecutionStatus.IN_PROGRESS.value,
        comment="in_progress | success | failed",
    )
    action_logs: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list, comment="Ordered per-action results"
    )
    error_message: Mapped[str | None] = mapped_column(
        Text, nullable=True, comment="Orchestrator-level failure only"
    )
    execution_time_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    executed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )

    def __repr__(self):
        return (
            f"<WorkflowExecutionLog(id={self.id}, workflow_id={self.workflow_id}, "
            f"status={self.execution_status})>"
        )
