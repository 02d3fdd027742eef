"""Workflow API endpoints"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.application.use_cases.workflows.action_handlers import \
    ActionHandlerRegistry
from src.application.use_cases.workflows.workflow_engine import WorkflowEngine
from src.domain.enums import ConditionOperator
from src.infrastructure.config.settings import Settings
from src.infrastructure.persistence.models.tenant import Tenant
from src.infrastructure.persistence.models.workflow import (Workflow,
                                                            WorkflowAction,
                                                            WorkflowTrigger)
from src.infrastructure.persistence.repositories import (
    WorkflowExecutionLogRepository, WorkflowRepository)
from src.presentation.api.dependencies import (get_action_registry,
                                               get_app_settings,
                                               get_current_tenant,
                                               get_current_user_id,
                                               get_execution_log_repo,
                                               get_workflow_engine,
                                               get_workflow_repo,
                                               get_workflow_repo_transactional)
from src.presentation.api.v1.schemas.workflow import (
    ConditionOperatorResponse, WorkflowActionResponse, WorkflowDefinition,
    WorkflowDetailResponse, WorkflowExecutionLogResponse, WorkflowResponse,
    WorkflowTestRequest, WorkflowTriggerResponse)

router = APIRouter()

_OPERATOR_DESCRIPTIONS = {
    ConditionOperator.EQUALS: ("Equals", "Field value is exactly the given value"),
    ConditionOperator.NOT_EQUALS: ("Not Equals", "Field value differs from the given value"),
    ConditionOperator.CONTAINS: ("Contains", "Field text contains the given text"),
    ConditionOperator.STARTS_WITH: ("Starts With", "Field text starts with the given text"),
    ConditionOperator.ENDS_WITH: ("Ends With", "Field text ends with the given text"),
    ConditionOperator.GREATER_THAN: ("Greater Than", "Field is numerically greater than the value"),
    ConditionOperator.LESS_THAN: ("Less Than", "Field is numerically less than the value"),
}


def _build_definition(
    data: WorkflowDefinition,
) -> tuple[list[WorkflowTrigger], list[WorkflowAction]]:
    triggers = [
        WorkflowTrigger(
            trigger_module=trigger.trigger_module,
            trigger_event=trigger.trigger_event,
            trigger_conditions=trigger.trigger_conditions,
            is_active=trigger.is_active,
        )
        for trigger in data.triggers
    ]
    actions = [
        WorkflowAction(
            action_type=action.action_type.value,
            action_configuration=action.action_configuration,
            sequence_order=action.sequence_order,
            is_active=action.is_active,
        )
        for action in data.actions
    ]
    return triggers, actions


@router.get("/config/actions")
async def list_action_types(
    tenant: Annotated[Tenant, Depends(get_current_tenant)],
    registry: Annotated[ActionHandlerRegistry, Depends(get_action_registry)],
):
    """Registered action types with their configuration fields"""
    return {"types": registry.describe()}


@router.get("/config/conditions", response_model=list[ConditionOperatorResponse])
async def list_condition_operators(
    tenant: Annotated[Tenant, Depends(get_current_tenant)],
):
    """Operators supported in trigger conditions"""
    return [
        ConditionOperatorResponse(
            name=operator.value, display_name=display_name, description=description
        )
        for operator, (display_name, description) in _OPERATOR_DESCRIPTIONS.items()
    ]


@router.post("/", response_model=WorkflowResponse, status_code=status.HTTP_201_CREATED)
async def create_workflow(
    data: WorkflowDefinition,
    tenant: Annotated[Tenant, Depends(get_current_tenant)],
    repo: Annotated[WorkflowRepository, Depends(get_workflow_repo_transactional)],
    user_id: Annotated[str | None, Depends(get_current_user_id)],
):
    """
    Create a workflow together with its triggers and actions.

    Example: when invoices.invoice_paid fires with total > 1000, create a
    thank-you task for the client and notify the account manager.
    """
    workflow = Workflow(
        tenant_id=tenant.id,
        name=data.workflow.name,
        description=data.workflow.description,
        status=data.workflow.status.value,
        is_active=data.workflow.is_active,
        created_by=user_id,
        updated_by=user_id,
    )
    triggers, actions = _build_definition(data)

    created = await repo.create_with_definition(workflow, triggers, actions)
    return WorkflowResponse.model_validate(created)


@router.get("/", response_model=list[WorkflowResponse])
async def list_workflows(
    tenant: Annotated[Tenant, Depends(get_current_tenant)],
    repo: Annotated[WorkflowRepository, Depends(get_workflow_repo)],
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    include_inactive: bool = Query(True),
):
    """List workflows for tenant, most recently updated first"""
    workflows = await repo.get_by_tenant(
        tenant_id=tenant.id, skip=skip, limit=limit, include_inactive=include_inactive
    )
    return [WorkflowResponse.model_validate(w) for w in workflows]


@router.get("/{workflow_id}", response_model=WorkflowDetailResponse)
async def get_workflow(
    workflow_id: str,
    tenant: Annotated[Tenant, Depends(get_current_tenant)],
    repo: Annotated[WorkflowRepository, Depends(get_workflow_repo)],
):
    """Get workflow with its triggers and actions (actions in execution order)"""
    workflow = await repo.get_by_id(workflow_id, tenant.id)

    if not workflow:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workflow not found")

    triggers = await repo.get_triggers(workflow_id, tenant.id)
    actions = await repo.get_actions(workflow_id, tenant.id)

    return WorkflowDetailResponse(
        workflow=WorkflowResponse.model_validate(workflow),
        triggers=[WorkflowTriggerResponse.model_validate(t) for t in triggers],
        actions=[WorkflowActionResponse.model_validate(a) for a in actions],
    )


@router.put("/{workflow_id}", response_model=WorkflowResponse)
async def update_workflow(
    workflow_id: str,
    data: WorkflowDefinition,
    tenant: Annotated[Tenant, Depends(get_current_tenant)],
    repo: Annotated[WorkflowRepository, Depends(get_workflow_repo_transactional)],
    user_id: Annotated[str | None, Depends(get_current_user_id)],
):
    """Update workflow fields and replace its trigger and action sets"""
    workflow = await repo.get_by_id(workflow_id, tenant.id)

    if not workflow:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workflow not found")

    workflow.name = data.workflow.name
    workflow.description = data.workflow.description
    workflow.status = data.workflow.status.value
    workflow.is_active = data.workflow.is_active
    if user_id:
        workflow.updated_by = user_id
    triggers, actions = _build_definition(data)

    updated = await repo.replace_definition(workflow, triggers, actions)
    return WorkflowResponse.model_validate(updated)


@router.delete("/{workflow_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_workflow(
    workflow_id: str,
    tenant: Annotated[Tenant, Depends(get_current_tenant)],
    repo: Annotated[WorkflowRepository, Depends(get_workflow_repo_transactional)],
):
    """Delete workflow with its triggers and actions"""
    deleted = await repo.delete_workflow(workflow_id, tenant.id)

    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workflow not found")


@router.post("/{workflow_id}/activate", response_model=WorkflowResponse)
async def activate_workflow(
    workflow_id: str,
    tenant: Annotated[Tenant, Depends(get_current_tenant)],
    repo: Annotated[WorkflowRepository, Depends(get_workflow_repo_transactional)],
    user_id: Annotated[str | None, Depends(get_current_user_id)],
):
    """Enable a workflow so matching events run it"""
    workflow = await repo.activate(workflow_id, tenant.id, user_id)

    if not workflow:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workflow not found")

    return WorkflowResponse.model_validate(workflow)


@router.post("/{workflow_id}/deactivate", response_model=WorkflowResponse)
async def deactivate_workflow(
    workflow_id: str,
    tenant: Annotated[Tenant, Depends(get_current_tenant)],
    repo: Annotated[WorkflowRepository, Depends(get_workflow_repo_transactional)],
    user_id: Annotated[str | None, Depends(get_current_user_id)],
):
    """Pause a workflow; events no longer run it"""
    workflow = await repo.deactivate(workflow_id, tenant.id, user_id)

    if not workflow:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workflow not found")

    return WorkflowResponse.model_validate(workflow)


@router.get("/{workflow_id}/logs", response_model=list[WorkflowExecutionLogResponse])
async def get_workflow_logs(
    workflow_id: str,
    tenant: Annotated[Tenant, Depends(get_current_tenant)],
    repo: Annotated[WorkflowRepository, Depends(get_workflow_repo)],
    log_repo: Annotated[WorkflowExecutionLogRepository, Depends(get_execution_log_repo)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    limit: int | None = Query(None, ge=1, le=500),
):
    """Execution history for workflow, newest first"""
    workflow = await repo.get_by_id(workflow_id, tenant.id)

    if not workflow:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workflow not found")

    logs = await log_repo.get_by_workflow(
        workflow_id=workflow_id,
        tenant_id=tenant.id,
        limit=limit or settings.workflow_log_page_size,
    )
    return [WorkflowExecutionLogResponse.model_validate(log) for log in logs]


@router.post("/{workflow_id}/test", response_model=WorkflowExecutionLogResponse)
async def test_workflow(
    workflow_id: str,
    data: WorkflowTestRequest,
    tenant: Annotated[Tenant, Depends(get_current_tenant)],
    engine: Annotated[WorkflowEngine, Depends(get_workflow_engine)],
    user_id: Annotated[str | None, Depends(get_current_user_id)],
):
    """
    Run the workflow now with test data as the trigger payload.

    Conditions and the active status are not checked; the run is recorded
    like any other execution.
    """
    log = await engine.trigger_workflow(
        workflow_id=workflow_id,
        test_data=data.test_data,
        tenant_id=tenant.id,
        user_id=user_id,
    )

    if log is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Workflow ran but its execution log could not be written",
        )

    return WorkflowExecutionLogResponse.model_validate(log)
