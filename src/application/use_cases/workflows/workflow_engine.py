"""
Workflow automation engine.

Matches domain events to tenant workflows and runs their actions:

    event -> TriggerMatcher -> (trigger, workflow) matches
          -> execute_workflow: actions in sequence_order, each with
             templates resolved and dispatched to its handler
          -> exactly one WorkflowExecutionLog per run

A failing action does not stop the run; the remaining actions still
execute and the run is recorded as failed. Nothing raised inside the
engine reaches the code that emitted the event.
"""

from __future__ import annotations

import asyncio
import json
import time
from typing import TYPE_CHECKING, Any

from pydantic_core import to_jsonable_python

from src.application.use_cases.workflows.action_handlers import (ActionContext,
                                                                 ActionResult)
from src.application.use_cases.workflows.trigger_matcher import TriggerMatcher
from src.domain.entities.workflow import WorkflowEvent
from src.domain.enums import WorkflowExecutionStatus
from src.domain.exceptions import (ActionConfigurationError,
                                   WorkflowConfigurationException,
                                   WorkflowNotFoundException)
from src.domain.workflows import resolve_templates
from src.infrastructure.persistence.models.workflow import WorkflowExecutionLog
from src.infrastructure.persistence.repositories.workflow_repo import (
    WorkflowActionRepository, WorkflowExecutionLogRepository,
    WorkflowRepository, WorkflowTriggerRepository)
from src.shared.context import get_current_actor_id
from src.shared.telemetry.logging import get_logger
from src.shared.telemetry.tracing import add_span_attributes, traced

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from src.application.interfaces.services import IPracticeStorage
    from src.application.use_cases.workflows.action_handlers import \
        ActionHandlerRegistry
    from src.infrastructure.persistence.models.workflow import (
        Workflow, WorkflowAction, WorkflowTrigger)

logger = get_logger(__name__)


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def _jsonable(value: Any) -> Any:
    return to_jsonable_python(value, fallback=str)


class WorkflowEngine:
    """
    Execute workflows triggered by events.

    Built once by the application factory. Every database interaction opens
    its own short-lived session from `session_factory`, so background runs
    never share a request's session.
    """

    def __init__(
        self,
        session_factory: "async_sessionmaker[AsyncSession]",
        registry: "ActionHandlerRegistry",
        storage: "IPracticeStorage | None" = None,
        *,
        action_timeout: float | None = 30.0,
        background_dispatch: bool = True,
    ):
        self.session_factory = session_factory
        self.registry = registry
        self.storage = storage
        self.action_timeout = action_timeout
        self.background_dispatch = background_dispatch
        self._background_tasks: set[asyncio.Task] = set()

    async def emit(
        self,
        module: str,
        event: str,
        data: dict[str, Any] | None,
        tenant_id: str,
        user_id: str | None = None,
    ) -> None:
        """
        Entry point for business modules after a tenant-scoped mutation.

        Runs in the background when background dispatch is enabled,
        otherwise awaits processing. Never raises.
        """
        try:
            workflow_event = WorkflowEvent(
                module=module,
                event=event,
                tenant_id=tenant_id,
                data=data or {},
                user_id=user_id or get_current_actor_id(),
            )
        except ValueError as e:
            logger.warning("Dropping invalid workflow event %s.%s: %s", module, event, e)
            return

        if self.background_dispatch:
            self.dispatch_event(workflow_event)
        else:
            await self.process_event(workflow_event)

    def dispatch_event(self, event: WorkflowEvent) -> asyncio.Task:
        """Schedule `process_event` without waiting for it"""
        task = asyncio.create_task(
            self.process_event(event), name=f"workflow-event:{event.module}.{event.event}"
        )
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for background event processing to finish (shutdown, tests)"""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    @traced("workflow.process_event")
    async def process_event(self, event: WorkflowEvent) -> list[WorkflowExecutionLog]:
        """
        Find and execute workflows triggered by event.

        Args:
            event: Event emitted by business logic

        Returns:
            Execution logs written for the matched workflows (empty when
            nothing matched or processing failed)
        """
        try:
            add_span_attributes(
                tenant_id=event.tenant_id, module=event.module, event=event.event
            )
            logger.debug(
                "Processing event %s.%s for tenant %s", event.module, event.event, event.tenant_id
            )

            async with self.session_factory() as session:
                matcher = TriggerMatcher(WorkflowTriggerRepository(session))
                matches = await matcher.find_matching_triggers(event)

            if not matches:
                logger.debug(
                    "No matching triggers for event %s.%s in tenant %s",
                    event.module,
                    event.event,
                    event.tenant_id,
                )
                return []

            logs: list[WorkflowExecutionLog] = []
            for match in matches:
                log = await self.execute_workflow(match.trigger, match.workflow, event)
                if log is not None:
                    logs.append(log)

            logger.info(
                "Event %s.%s triggered %d workflow(s) in tenant %s",
                event.module,
                event.event,
                len(matches),
                event.tenant_id,
            )
            return logs
        except Exception:
            logger.exception(
                "Workflow processing failed for event %s.%s in tenant %s",
                event.module,
                event.event,
                event.tenant_id,
            )
            return []

    @traced("workflow.execute")
    async def execute_workflow(
        self,
        trigger: "WorkflowTrigger",
        workflow: "Workflow",
        event: WorkflowEvent,
    ) -> WorkflowExecutionLog | None:
        """
        Run a workflow's active actions in order and record the run.

        Returns:
            The persisted execution log, or None if it could not be written
        """
        started = time.perf_counter()
        status = WorkflowExecutionStatus.IN_PROGRESS
        error_message: str | None = None
        action_logs: list[dict[str, Any]] = []

        add_span_attributes(workflow_id=workflow.id, trigger_id=trigger.id)
        logger.info(
            "Executing workflow '%s' (id: %s) for %s.%s",
            workflow.name,
            workflow.id,
            event.module,
            event.event,
        )

        try:
            actions = await self._load_actions(workflow.id, event.tenant_id)

            # Continue past failed actions; the run is marked failed at the end
            for action in actions:
                result = await self._execute_action(action, event)
                action_logs.append(self._action_log_entry(action, result))
                if not result.success:
                    logger.warning(
                        "Workflow %s action %s (%s) failed: %s",
                        workflow.id,
                        action.id,
                        action.action_type,
                        result.error,
                    )

            if all(entry["success"] for entry in action_logs):
                status = WorkflowExecutionStatus.SUCCESS
            else:
                status = WorkflowExecutionStatus.FAILED
        except Exception as e:
            status = WorkflowExecutionStatus.FAILED
            error_message = str(e) or type(e).__name__
            logger.exception("Workflow execution failed for workflow %s", workflow.id)

        execution_time_ms = _elapsed_ms(started)
        failed_count = sum(1 for entry in action_logs if not entry["success"])
        logger.info(
            "Workflow %s finished with status %s: %d action(s), %d failed, %d ms",
            workflow.id,
            status.value,
            len(action_logs),
            failed_count,
            execution_time_ms,
        )

        log = WorkflowExecutionLog(
            tenant_id=event.tenant_id,
            workflow_id=workflow.id,
            trigger_id=trigger.id,
            trigger_event_data=_jsonable(event.data),
            execution_status=status.value,
            action_logs=action_logs,
            error_message=error_message,
            execution_time_ms=execution_time_ms,
        )
        return await self._write_log(log)

    async def trigger_workflow(
        self,
        workflow_id: str,
        test_data: dict[str, Any] | None,
        tenant_id: str,
        user_id: str | None = None,
    ) -> WorkflowExecutionLog | None:
        """
        Manually run a workflow with test data ("test this workflow").

        The event is synthesized from the workflow's first trigger and runs
        through the same path as real events, without condition checks or
        the active-status gate.

        Raises:
            WorkflowNotFoundException: If the workflow does not exist for the tenant
            WorkflowConfigurationException: If the workflow has no triggers
        """
        async with self.session_factory() as session:
            workflow = await WorkflowRepository(session).get_by_id(workflow_id, tenant_id)
            if not workflow:
                raise WorkflowNotFoundException(workflow_id)

            trigger = await WorkflowTriggerRepository(session).get_first_for_workflow(
                workflow_id, tenant_id
            )
            if not trigger:
                raise WorkflowConfigurationException(workflow_id, "no triggers defined")

        event = WorkflowEvent(
            module=trigger.trigger_module,
            event=trigger.trigger_event,
            tenant_id=tenant_id,
            data=test_data or {},
            user_id=user_id,
        )
        logger.info("Manually triggering workflow %s in tenant %s", workflow_id, tenant_id)
        return await self.execute_workflow(trigger, workflow, event)

    async def _load_actions(self, workflow_id: str, tenant_id: str) -> list["WorkflowAction"]:
        async with self.session_factory() as session:
            return await WorkflowActionRepository(session).get_active_for_workflow(
                workflow_id, tenant_id
            )

    async def _execute_action(self, action: "WorkflowAction", event: WorkflowEvent) -> ActionResult:
        handler = self.registry.get(action.action_type)
        if handler is None:
            return ActionResult.failed(f"No handler found for action type: {action.action_type}")

        try:
            config = self._load_configuration(action.action_configuration)
        except ActionConfigurationError as e:
            return ActionResult.failed(e.message)

        context = ActionContext(
            trigger_data=event.data,
            tenant_id=event.tenant_id,
            user_id=event.user_id,
            storage=self.storage,
        )
        resolved = resolve_templates(config, event.data)
        return await handler.handle(resolved, context, timeout=self.action_timeout)

    @staticmethod
    def _load_configuration(raw: Any) -> Any:
        """Stored configuration may be JSON text from older rows"""
        if raw is None:
            return {}
        if isinstance(raw, str):
            try:
                return json.loads(raw) if raw.strip() else {}
            except json.JSONDecodeError as e:
                raise ActionConfigurationError(
                    f"Invalid action configuration JSON: {e.msg}"
                ) from e
        return raw

    @staticmethod
    def _action_log_entry(action: "WorkflowAction", result: ActionResult) -> dict[str, Any]:
        return {
            "action_id": action.id,
            "action_type": action.action_type,
            "sequence_order": action.sequence_order,
            "success": result.success,
            "data": _jsonable(result.data),
            "error": result.error,
            "execution_time_ms": result.execution_time_ms,
        }

    async def _write_log(self, log: WorkflowExecutionLog) -> WorkflowExecutionLog | None:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    await WorkflowExecutionLogRepository(session).append(log)
            return log
        except Exception:
            logger.exception(
                "Failed to write execution log for workflow %s (status %s)",
                log.workflow_id,
                log.execution_status,
            )
            return None
