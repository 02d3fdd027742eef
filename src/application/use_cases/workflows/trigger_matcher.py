"""Find the workflow triggers an event should fire."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from src.domain.exceptions import ConditionParseError
from src.domain.workflows import evaluate, parse_condition
from src.shared.telemetry.logging import get_logger
from src.shared.telemetry.tracing import add_span_attributes, traced

if TYPE_CHECKING:
    from src.domain.entities.workflow import WorkflowEvent
    from src.infrastructure.persistence.models.workflow import (
        Workflow, WorkflowTrigger)
    from src.infrastructure.persistence.repositories.workflow_repo import \
        WorkflowTriggerRepository

logger = get_logger(__name__)


@dataclass(frozen=True)
class TriggerMatch:
    """A trigger whose conditions hold, with the workflow it starts"""

    trigger: "WorkflowTrigger"
    workflow: "Workflow"


class TriggerMatcher:
    """Match events against active triggers of active workflows"""

    def __init__(self, trigger_repo: "WorkflowTriggerRepository"):
        self.trigger_repo = trigger_repo

    @traced("workflow.find_matching_triggers")
    async def find_matching_triggers(self, event: "WorkflowEvent") -> list[TriggerMatch]:
        """
        Triggers for the event's tenant and (module, event) pair whose
        conditions hold against the event payload.

        Returns:
            Matches ordered by trigger ID
        """
        candidates = await self.trigger_repo.find_candidates(
            tenant_id=event.tenant_id, module=event.module, event=event.event
        )

        matches = [
            TriggerMatch(trigger=trigger, workflow=workflow)
            for trigger, workflow in candidates
            if self._conditions_met(trigger, event)
        ]

        add_span_attributes(
            candidate_count=len(candidates),
            match_count=len(matches),
        )
        return matches

    def _conditions_met(self, trigger: "WorkflowTrigger", event: "WorkflowEvent") -> bool:
        try:
            condition = parse_condition(trigger.trigger_conditions)
        except ConditionParseError as e:
            logger.warning(
                "Ignoring trigger %s of workflow %s: %s",
                trigger.id,
                trigger.workflow_id,
                e.message,
            )
            return False

        return evaluate(condition, event.data)
