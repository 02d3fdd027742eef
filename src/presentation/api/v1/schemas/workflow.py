"""Pydantic schemas for workflows"""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.domain.enums import ActionType, WorkflowStatus
from src.domain.exceptions import ConditionParseError
from src.domain.workflows import parse_condition


class WorkflowBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    status: WorkflowStatus = WorkflowStatus.DRAFT
    is_active: bool = True


class WorkflowTriggerCreate(BaseModel):
    trigger_module: str = Field(..., min_length=1, max_length=100)
    trigger_event: str = Field(..., min_length=1, max_length=100)
    trigger_conditions: Any = None
    is_active: bool = True

    @field_validator("trigger_module", "trigger_event")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Must not be blank")
        return v

    @field_validator("trigger_conditions")
    @classmethod
    def validate_conditions(cls, v: Any) -> Any:
        """Conditions must form a condition tree; stored in canonical JSON form"""
        try:
            condition = parse_condition(v, strict=True)
        except ConditionParseError as e:
            raise ValueError(e.message) from e
        return condition.to_dict() if condition is not None else None


class WorkflowActionCreate(BaseModel):
    action_type: ActionType
    action_configuration: dict[str, Any] = Field(default_factory=dict)
    sequence_order: int = Field(default=0, ge=0)
    is_active: bool = True


class WorkflowDefinition(BaseModel):
    """Create/replace request: a workflow with its complete trigger and action sets"""

    workflow: WorkflowBase
    triggers: list[WorkflowTriggerCreate] = Field(default_factory=list)
    actions: list[WorkflowActionCreate] = Field(default_factory=list)


class WorkflowResponse(BaseModel):
    id: str
    tenant_id: str
    name: str
    description: str | None
    status: str
    is_active: bool
    created_by: str | None
    updated_by: str | None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WorkflowTriggerResponse(BaseModel):
    id: str
    workflow_id: str
    trigger_module: str
    trigger_event: str
    trigger_conditions: Any
    position: int
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WorkflowActionResponse(BaseModel):
    id: str
    workflow_id: str
    action_type: str
    action_configuration: Any
    sequence_order: int
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class WorkflowDetailResponse(BaseModel):
    workflow: WorkflowResponse
    triggers: list[WorkflowTriggerResponse]
    actions: list[WorkflowActionResponse]


class WorkflowExecutionLogResponse(BaseModel):
    id: str
    tenant_id: str
    workflow_id: str | None
    trigger_id: str | None
    trigger_event_data: Any
    execution_status: str
    action_logs: list[dict[str, Any]]
    error_message: str | None
    execution_time_ms: int
    executed_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WorkflowTestRequest(BaseModel):
    """Manual run: the payload stands in for the trigger event data"""

    test_data: dict[str, Any] = Field(default_factory=dict, alias="testData")

    model_config = ConfigDict(populate_by_name=True)


class ConditionOperatorResponse(BaseModel):
    name: str
    display_name: str
    description: str
