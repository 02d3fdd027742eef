""" Repository module for the persistence layer. """

from src.infrastructure.persistence.repositories.base import BaseRepository
from src.infrastructure.persistence.repositories.tenant_repo import TenantRepository
from src.infrastructure.persistence.repositories.workflow_repo import (
    WorkflowActionRepository,
    WorkflowExecutionLogRepository,
    WorkflowRepository,
    WorkflowTriggerRepository,
)

__all__ = [
    "BaseRepository",
    "TenantRepository",
    "WorkflowRepository",
    "WorkflowTriggerRepository",
    "WorkflowActionRepository",
    "WorkflowExecutionLogRepository",
]
