"""Test workflow repositories"""

from datetime import timedelta

import pytest
from sqlalchemy import select

from src.infrastructure.persistence.models import (Workflow, WorkflowAction,
                                                   WorkflowExecutionLog,
                                                   WorkflowTrigger)
from src.infrastructure.persistence.repositories import (
    TenantRepository, WorkflowActionRepository, WorkflowExecutionLogRepository,
    WorkflowRepository, WorkflowTriggerRepository)
from src.shared.utils import utc_now

TRIGGER = {"trigger_module": "clients", "trigger_event": "client_created"}

@pytest.fixture
async def workflow_repo(test_db):
    """Workflow repository fixture"""
    return WorkflowRepository(test_db)

@pytest.mark.asyncio
async def test_create_with_definition_scopes_children(workflow_repo, test_db, test_tenant):
    workflow = await workflow_repo.create_with_definition(
        Workflow(tenant_id=test_tenant.id, name="Onboarding", created_by="user-1"),
        [WorkflowTrigger(**TRIGGER)],
        [
            WorkflowAction(action_type="send_email", sequence_order=1, action_configuration={"to": "x@y.z"}),
            WorkflowAction(action_type="create_task", sequence_order=0),
        ],
    )
    await test_db.commit()

    assert workflow.status == "draft"
    assert workflow.is_active is True
    assert workflow.is_runnable is False

    triggers = await workflow_repo.get_triggers(workflow.id, test_tenant.id)
    actions = await workflow_repo.get_actions(workflow.id, test_tenant.id)
    assert [(t.tenant_id, t.workflow_id) for t in triggers] == [(test_tenant.id, workflow.id)]
    assert [a.action_type for a in actions] == ["create_task", "send_email"]
    assert actions[0].action_configuration == {}

@pytest.mark.asyncio
async def test_get_by_id_is_tenant_scoped(workflow_repo, make_workflow, test_tenant, second_tenant):
    workflow = await make_workflow(second_tenant.id)

    assert await workflow_repo.get_by_id(workflow.id, test_tenant.id) is None
    assert (await workflow_repo.get_by_id(workflow.id, second_tenant.id)).id == workflow.id

@pytest.mark.asyncio
async def test_get_by_tenant_filters_inactive(workflow_repo, make_workflow, test_tenant, second_tenant):
    active = await make_workflow(test_tenant.id, name="Active")
    inactive = await make_workflow(test_tenant.id, name="Inactive", is_active=False)
    await make_workflow(second_tenant.id, name="Elsewhere")

    everything = await workflow_repo.get_by_tenant(test_tenant.id)
    only_active = await workflow_repo.get_by_tenant(test_tenant.id, include_inactive=False)

    assert {w.id for w in everything} == {active.id, inactive.id}
    assert [w.id for w in only_active] == [active.id]

@pytest.mark.asyncio
async def test_replace_definition_swaps_trigger_and_action_sets(
    workflow_repo, make_workflow, test_db, test_tenant
):
    workflow = await make_workflow(
        test_tenant.id,
        triggers=[TRIGGER],
        actions=[{"action_type": "create_task"}, {"action_type": "send_email"}],
    )
    loaded = await workflow_repo.get_by_id(workflow.id, test_tenant.id)
    loaded.name = "Renamed"

    await workflow_repo.replace_definition(
        loaded,
        [WorkflowTrigger(trigger_module="tasks", trigger_event="task_completed")],
        [WorkflowAction(action_type="assign_user", action_configuration={"taskId": "t"})],
    )
    await test_db.commit()

    triggers = await workflow_repo.get_triggers(workflow.id, test_tenant.id)
    actions = await workflow_repo.get_actions(workflow.id, test_tenant.id)
    assert [(t.trigger_module, t.trigger_event) for t in triggers] == [("tasks", "task_completed")]
    assert [a.action_type for a in actions] == ["assign_user"]
    assert (await workflow_repo.get_by_id(workflow.id, test_tenant.id)).name == "Renamed"

@pytest.mark.asyncio
async def test_delete_workflow_removes_children(workflow_repo, make_workflow, test_db, test_tenant):
    workflow = await make_workflow(test_tenant.id, triggers=[TRIGGER], actions=[{"action_type": "create_task"}])

    assert await workflow_repo.delete_workflow(workflow.id, test_tenant.id) is True
    await test_db.commit()

    assert await workflow_repo.get_by_id(workflow.id, test_tenant.id) is None
    remaining = await test_db.execute(select(WorkflowTrigger.id).union_all(select(WorkflowAction.id)))
    assert remaining.all() == []
    assert await workflow_repo.delete_workflow(workflow.id, test_tenant.id) is False

@pytest.mark.asyncio
async def test_activate_and_deactivate(workflow_repo, make_workflow, test_db, test_tenant):
    workflow = await make_workflow(test_tenant.id, status="draft", is_active=False)

    activated = await workflow_repo.activate(workflow.id, test_tenant.id, user_id="user-9")
    assert (activated.status, activated.is_active, activated.updated_by) == ("active", True, "user-9")
    assert activated.is_runnable

    paused = await workflow_repo.deactivate(workflow.id, test_tenant.id)
    assert (paused.status, paused.is_active) == ("paused", False)
    assert paused.updated_by == "user-9"

    assert await workflow_repo.activate("missing", test_tenant.id) is None

@pytest.mark.asyncio
async def test_first_trigger_and_active_actions(test_db, make_workflow, test_tenant):
    workflow = await make_workflow(
        test_tenant.id,
        triggers=[
            {"trigger_module": "clients", "trigger_event": "client_created"},
            {"trigger_module": "clients", "trigger_event": "client_updated"},
            {"trigger_module": "tasks", "trigger_event": "task_completed"},
        ],
        actions=[
            {"action_type": "send_email", "sequence_order": 5},
            {"action_type": "create_task", "sequence_order": 1},
            {"action_type": "update_task", "sequence_order": 3, "is_active": False},
        ],
    )

    trigger = await WorkflowTriggerRepository(test_db).get_first_for_workflow(workflow.id, test_tenant.id)
    triggers = await WorkflowRepository(test_db).get_triggers(workflow.id, test_tenant.id)
    actions = await WorkflowActionRepository(test_db).get_active_for_workflow(workflow.id, test_tenant.id)

    assert trigger.trigger_event == "client_created"
    assert [(t.trigger_event, t.position) for t in triggers] == [
        ("client_created", 0),
        ("client_updated", 1),
        ("task_completed", 2),
    ]
    assert [a.action_type for a in actions] == ["create_task", "send_email"]

@pytest.mark.asyncio
async def test_execution_logs_outlive_definition_changes(
    workflow_repo, make_workflow, test_db, test_tenant
):
    """
    GIVEN a workflow with a logged run
    WHEN its definition is replaced and then the workflow is deleted
    THEN the log is kept, first losing its trigger and then its workflow reference.
    """
    workflow = await make_workflow(test_tenant.id, triggers=[TRIGGER])
    [trigger] = await workflow_repo.get_triggers(workflow.id, test_tenant.id)
    log = await WorkflowExecutionLogRepository(test_db).append(
        WorkflowExecutionLog(
            tenant_id=test_tenant.id,
            workflow_id=workflow.id,
            trigger_id=trigger.id,
            execution_status="success",
            action_logs=[],
        )
    )
    await test_db.commit()

    loaded = await workflow_repo.get_by_id(workflow.id, test_tenant.id)
    await workflow_repo.replace_definition(loaded, [WorkflowTrigger(**TRIGGER)], [])
    await test_db.commit()
    await test_db.refresh(log)
    assert (log.workflow_id, log.trigger_id) == (workflow.id, None)

    assert await workflow_repo.delete_workflow(workflow.id, test_tenant.id) is True
    await test_db.commit()
    await test_db.refresh(log)
    assert (log.workflow_id, log.trigger_id) == (None, None)
    assert await WorkflowExecutionLogRepository(test_db).get_by_id(log.id, test_tenant.id) is not None


class TestExecutionLogRepository:
    @pytest.mark.asyncio
    async def test_append_and_list_newest_first(self, test_db, make_workflow, test_tenant):
        workflow = await make_workflow(test_tenant.id)
        repo = WorkflowExecutionLogRepository(test_db)
        now = utc_now()

        for minutes_ago, status in [(30, "success"), (10, "failed"), (20, "success")]:
            await repo.append(
                WorkflowExecutionLog(
                    tenant_id=test_tenant.id,
                    workflow_id=workflow.id,
                    execution_status=status,
                    action_logs=[],
                    executed_at=now - timedelta(minutes=minutes_ago),
                )
            )
        await test_db.commit()

        logs = await repo.get_by_workflow(workflow.id, test_tenant.id, limit=2)

        assert [log.execution_status for log in logs] == ["failed", "success"]
        assert logs[0].executed_at > logs[1].executed_at
        assert await repo.get_by_id(logs[0].id, "tenant-2") is None

    @pytest.mark.asyncio
    async def test_delete_older_than_is_tenant_scoped(
        self, test_db, make_workflow, test_tenant, second_tenant
    ):
        repo = WorkflowExecutionLogRepository(test_db)
        old = utc_now() - timedelta(days=120)
        for tenant in (test_tenant, second_tenant):
            workflow = await make_workflow(tenant.id)
            await repo.append(
                WorkflowExecutionLog(
                    tenant_id=tenant.id,
                    workflow_id=workflow.id,
                    execution_status="success",
                    action_logs=[],
                    executed_at=old,
                )
            )
        await test_db.commit()

        deleted = await repo.delete_older_than(test_tenant.id, utc_now() - timedelta(days=90))
        await test_db.commit()

        assert deleted == 1
        remaining = (await test_db.execute(select(WorkflowExecutionLog.tenant_id))).scalars().all()
        assert remaining == [second_tenant.id]

@pytest.mark.asyncio
async def test_tenant_repository_active_lookup(test_db, test_tenant):
    suspended = await TenantRepository(test_db).get_by_id(test_tenant.id)
    suspended.status = "suspended"
    await test_db.commit()

    repo = TenantRepository(test_db)
    assert await repo.get_by_id(test_tenant.id) is not None
    assert await repo.get_active_by_id(test_tenant.id) is None
    assert await repo.get_all_ids() == [test_tenant.id]
