"""Test matching events to workflow triggers"""

import pytest

from src.application.use_cases.workflows.trigger_matcher import TriggerMatcher
from src.domain.entities.workflow import WorkflowEvent
from src.infrastructure.persistence.repositories import \
    WorkflowTriggerRepository


def completed_trigger(**overrides):
    trigger = {"trigger_module": "tasks", "trigger_event": "task_completed"}
    trigger.update(overrides)
    return trigger


async def find_matches(session_factory, event):
    async with session_factory() as session:
        return await TriggerMatcher(WorkflowTriggerRepository(session)).find_matching_triggers(event)


@pytest.mark.asyncio
async def test_matches_active_workflow_for_same_event(session_factory, make_workflow, test_tenant):
    workflow = await make_workflow(test_tenant.id, triggers=[completed_trigger()])
    await make_workflow(
        test_tenant.id,
        name="Other event",
        triggers=[completed_trigger(trigger_event="task_created")],
    )

    event = WorkflowEvent("tasks", "task_completed", test_tenant.id, {"task": {"id": "t1"}})
    matches = await find_matches(session_factory, event)

    assert [match.workflow.id for match in matches] == [workflow.id]
    assert matches[0].trigger.trigger_event == "task_completed"


@pytest.mark.asyncio
async def test_event_names_are_case_sensitive(session_factory, make_workflow, test_tenant):
    await make_workflow(test_tenant.id, triggers=[completed_trigger()])

    event = WorkflowEvent("Tasks", "task_completed", test_tenant.id)

    assert await find_matches(session_factory, event) == []


@pytest.mark.asyncio
async def test_tenant_isolation(session_factory, make_workflow, test_tenant, second_tenant):
    """
    GIVEN identical workflows in two tenants
    WHEN an event is emitted for one tenant
    THEN only that tenant's workflow matches.
    """
    own = await make_workflow(test_tenant.id, triggers=[completed_trigger()])
    await make_workflow(second_tenant.id, triggers=[completed_trigger()])

    matches = await find_matches(
        session_factory, WorkflowEvent("tasks", "task_completed", test_tenant.id)
    )

    assert [match.workflow.id for match in matches] == [own.id]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "workflow_status, is_active",
    [("draft", True), ("paused", True), ("archived", True), ("active", False)],
)
async def test_only_runnable_workflows_match(
    session_factory, make_workflow, test_tenant, workflow_status, is_active
):
    await make_workflow(
        test_tenant.id,
        triggers=[completed_trigger()],
        status=workflow_status,
        is_active=is_active,
    )

    matches = await find_matches(
        session_factory, WorkflowEvent("tasks", "task_completed", test_tenant.id)
    )

    assert matches == []


@pytest.mark.asyncio
async def test_inactive_trigger_does_not_match(session_factory, make_workflow, test_tenant):
    await make_workflow(test_tenant.id, triggers=[completed_trigger(is_active=False)])

    matches = await find_matches(
        session_factory, WorkflowEvent("tasks", "task_completed", test_tenant.id)
    )

    assert matches == []


@pytest.mark.asyncio
async def test_conditions_filter_matches(session_factory, make_workflow, test_tenant):
    high_value = await make_workflow(
        test_tenant.id,
        name="High value",
        triggers=[
            completed_trigger(
                trigger_conditions={"field": "task.hours", "operator": "greater_than", "value": 10}
            )
        ],
    )
    await make_workflow(
        test_tenant.id,
        name="Broken conditions",
        triggers=[completed_trigger(trigger_conditions="{not json")],
    )

    big = WorkflowEvent("tasks", "task_completed", test_tenant.id, {"task": {"hours": 12}})
    small = WorkflowEvent("tasks", "task_completed", test_tenant.id, {"task": {"hours": 2}})

    assert [m.workflow.id for m in await find_matches(session_factory, big)] == [high_value.id]
    assert await find_matches(session_factory, small) == []


@pytest.mark.asyncio
async def test_each_matching_trigger_is_reported(session_factory, make_workflow, test_tenant):
    workflow = await make_workflow(
        test_tenant.id,
        triggers=[
            completed_trigger(),
            completed_trigger(
                trigger_conditions=[{"field": "task.billable", "operator": "equals", "value": True}]
            ),
        ],
    )

    matches = await find_matches(
        session_factory,
        WorkflowEvent("tasks", "task_completed", test_tenant.id, {"task": {"billable": True}}),
    )

    assert len(matches) == 2
    assert {match.workflow.id for match in matches} == {workflow.id}
    assert [m.trigger.id for m in matches] == sorted(m.trigger.id for m in matches)
