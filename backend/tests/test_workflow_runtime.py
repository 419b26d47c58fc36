"""Tests for dispatching and executing workflow runs."""
from __future__ import annotations

from datetime import timedelta

import pytest

from backend.app.errors import ActionError, NotFound, RunTransitionError, Unauthorized
from backend.app.extensions import db
from backend.app.models.logs import RunLog
from backend.app.models.workflow import WorkflowRun
from backend.app.services import workflows as store
from backend.app.workflow import runner
from backend.app.workflow.dispatcher import dispatch_cron, dispatch_manual, dispatch_webhook, open_run


@pytest.fixture()
def action_handler():
    """Register a temporary action handler for the duration of a test."""

    registered: list[str] = []

    def register(action_type, handler):
        runner.register_action_handler(action_type, handler)
        registered.append(action_type)

    yield register

    for action_type in registered:
        runner.unregister_action_handler(action_type)


def _workflow(user_id: str, trigger: str = "MANUAL", actions=None, **kwargs):
    if actions is None:
        actions = [{"type": "log", "message": "hello"}]
    return store.create_workflow(user_id, kwargs.pop("name", "Flow"), trigger, actions=actions, **kwargs)


def test_webhook_and_cron_dispatch_refuse_disabled_workflows(alice):
    webhook = _workflow(alice.id, "WEBHOOK")
    cron = _workflow(alice.id, "CRON")
    store.toggle_workflow(alice.id, webhook.id)
    store.toggle_workflow(alice.id, cron.id)

    with pytest.raises(NotFound):
        dispatch_webhook(webhook.id, b"{}")
    with pytest.raises(NotFound):
        dispatch_cron(cron.id)
    assert WorkflowRun.query.count() == 0


def test_dispatch_refuses_mismatched_trigger_kind(alice):
    webhook = _workflow(alice.id, "WEBHOOK")
    cron = _workflow(alice.id, "CRON")
    manual = _workflow(alice.id, "MANUAL")

    with pytest.raises(NotFound):
        dispatch_webhook(cron.id, b"{}")
    with pytest.raises(NotFound):
        dispatch_webhook(manual.id, b"{}")
    with pytest.raises(NotFound):
        dispatch_cron(webhook.id)
    with pytest.raises(NotFound):
        dispatch_cron("does-not-exist")


def test_dispatch_refuses_archived_workflows(alice):
    webhook = _workflow(alice.id, "WEBHOOK")
    store.archive_workflow(alice.id, webhook.id)

    with pytest.raises(NotFound):
        dispatch_webhook(webhook.id, b"{}")


def test_manual_dispatch_succeeds_when_disabled(alice):
    workflow = _workflow(alice.id, "WEBHOOK")
    store.toggle_workflow(alice.id, workflow.id)

    run = dispatch_manual(workflow.id, alice.id)
    assert run.status == "COMPLETED"
    assert run.input is None


def test_manual_dispatch_requires_owner(alice, bob):
    workflow = _workflow(alice.id)

    with pytest.raises(NotFound):
        dispatch_manual(workflow.id, bob.id)
    with pytest.raises(Unauthorized):
        dispatch_manual(workflow.id, None)


def test_cron_dispatch_runs_enabled_workflow(alice):
    workflow = _workflow(alice.id, "CRON", trigger_config={"cron": "*/5 * * * *"})

    run = dispatch_cron(workflow.id)

    assert run.status == "COMPLETED"
    assert run.user_id == alice.id
    assert run.output == {"message": "Workflow completed successfully", "actions": ["hello"]}


def test_webhook_payload_is_echoed(alice):
    workflow = _workflow(alice.id, "WEBHOOK")

    run = dispatch_webhook(workflow.id, b'{"amount": 42}')

    assert run.input == {"amount": 42}
    assert run.output["message"] == "Webhook processed successfully"
    assert run.output["input"] == {"amount": 42}


@pytest.mark.parametrize(
    ("body", "expected"),
    [
        (b"", {}),
        (None, {}),
        (b"not json", {}),
        (b"\xff\xfe", {}),
        (b"[1, 2]", {"data": [1, 2]}),
        (b"7", {"data": 7}),
    ],
)
def test_webhook_body_parsing_never_fails_dispatch(alice, body, expected):
    workflow = _workflow(alice.id, "WEBHOOK")

    run = dispatch_webhook(workflow.id, body)

    assert run.status == "COMPLETED"
    assert run.input == expected


def test_failing_action_fails_the_whole_run(alice, action_handler):
    def _explode(action, context):
        raise ActionError(f"cannot {action['message']}")

    action_handler("explode", _explode)
    workflow = _workflow(
        alice.id,
        actions=[
            {"type": "log", "message": "first"},
            {"type": "explode", "message": "launch"},
            {"type": "log", "message": "never"},
        ],
    )

    run = dispatch_manual(workflow.id, alice.id)

    assert run.status == "FAILED"
    assert run.error == "cannot launch"
    assert run.output is None
    assert run.completed_at is not None
    action_logs = [entry.message for entry in run.logs if entry.source == "action"]
    assert action_logs == ["first"]


def test_unexpected_exception_message_falls_back_to_class_name(alice, action_handler):
    def _broken(action, context):
        raise ValueError()

    action_handler("broken", _broken)
    workflow = _workflow(alice.id, actions=[{"type": "broken", "message": "x"}])

    run = dispatch_manual(workflow.id, alice.id)

    assert run.status == "FAILED"
    assert run.error == "ValueError"


def test_malformed_stored_action_fails_run(alice):
    workflow = _workflow(alice.id)
    workflow.actions_json = '[{"type": "log"}]'
    db.session.commit()

    run = dispatch_manual(workflow.id, alice.id)

    assert run.status == "FAILED"
    assert run.error == "action 1 has no message"


def test_unknown_action_type_records_message(alice):
    workflow = _workflow(alice.id, actions=[{"type": "notify", "message": "ping"}])

    run = dispatch_manual(workflow.id, alice.id)

    assert run.status == "COMPLETED"
    assert run.output["actions"] == ["ping"]


def test_handlers_receive_run_context(alice, action_handler):
    seen = []

    def _capture(action, context):
        seen.append((context.origin, context.input, context.workflow_id))
        return action["message"].upper()

    action_handler("shout", _capture)
    workflow = _workflow(alice.id, "WEBHOOK", actions=[{"type": "shout", "message": "hi"}])

    run = dispatch_webhook(workflow.id, b'{"a": 1}')

    assert seen == [("webhook", {"a": 1}, workflow.id)]
    assert run.output["actions"] == ["HI"]


def test_terminal_runs_reject_second_transition(alice):
    workflow = _workflow(alice.id)
    run = dispatch_manual(workflow.id, alice.id)
    completed_at = run.completed_at
    assert run.is_terminal

    with pytest.raises(RunTransitionError):
        runner.fail_run(run, "late failure")
    with pytest.raises(RunTransitionError):
        runner.complete_run(run, {"message": "again"})

    stored = db.session.get(WorkflowRun, run.id)
    assert stored.status == "COMPLETED"
    assert stored.error is None
    assert stored.completed_at == completed_at


def test_failed_runs_never_flip_to_completed(alice, action_handler):
    def _explode(action, context):
        raise ActionError("boom")

    action_handler("explode", _explode)
    workflow = _workflow(alice.id, actions=[{"type": "explode", "message": "x"}])
    run = dispatch_manual(workflow.id, alice.id)

    with pytest.raises(RunTransitionError):
        runner.complete_run(run, {"message": "recovered"})

    stored = db.session.get(WorkflowRun, run.id)
    assert stored.status == "FAILED"
    assert stored.output is None


def test_transition_is_conditional_on_stored_status(alice):
    workflow = _workflow(alice.id)
    run = open_run(workflow, runner.ORIGIN_MANUAL)
    assert not run.is_terminal

    # Another writer finishes the run; this session's copy still reads RUNNING.
    WorkflowRun.query.filter_by(id=run.id).update(
        {"status": "FAILED", "error": "elsewhere"}, synchronize_session=False
    )
    assert run.status == "RUNNING"

    with pytest.raises(RunTransitionError):
        runner.complete_run(run, {"message": "late"})

    assert db.session.get(WorkflowRun, run.id).status != "COMPLETED"


def test_running_row_is_committed_before_actions_execute(alice, action_handler):
    def _interrupt(action, context):
        raise KeyboardInterrupt

    action_handler("interrupt", _interrupt)
    workflow = _workflow(alice.id, actions=[{"type": "interrupt", "message": "x"}])

    with pytest.raises(KeyboardInterrupt):
        dispatch_manual(workflow.id, alice.id)
    db.session.rollback()

    runs = WorkflowRun.query.filter_by(workflow_id=workflow.id).all()
    assert len(runs) == 1
    assert runs[0].status == "RUNNING"
    assert runs[0].completed_at is None

    stuck = store.list_stuck_runs(timedelta(minutes=-1))
    assert [run.id for run in stuck] == [runs[0].id]
    assert store.list_stuck_runs(timedelta(minutes=5)) == []
    assert RunLog.query.filter_by(run_id=runs[0].id, source="dispatch").count() == 1
