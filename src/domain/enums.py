"""Domain enumerations for the PracticeFlow application."""

from enum import Enum


class TenantStatus(str, Enum):
    """Tenant status enumeration"""

    ACTIVE = "active"
    SUSPENDED = "suspended"
    ARCHIVED = "archived"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [status.value for status in cls]


class WorkflowStatus(str, Enum):
    """Workflow lifecycle status. Only ACTIVE workflows can fire."""

    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    ARCHIVED = "archived"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [status.value for status in cls]


class WorkflowExecutionStatus(str, Enum):
    """Workflow execution status: in_progress -> success | failed"""

    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    FAILED = "failed"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [status.value for status in cls]


class ActionType(str, Enum):
    """Action types understood by the action handler registry"""

    CREATE_TASK = "create_task"
    UPDATE_TASK = "update_task"
    SEND_NOTIFICATION = "send_notification"
    UPDATE_CLIENT_FIELD = "update_client_field"
    CREATE_INVOICE = "create_invoice"
    SEND_EMAIL = "send_email"
    CALL_WEBHOOK = "call_webhook"
    UPDATE_ENTITY_FIELD = "update_entity_field"
    ASSIGN_USER = "assign_user"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [action.value for action in cls]


class ConditionOperator(str, Enum):
    """Comparison operators for trigger conditions"""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [operator.value for operator in cls]
