"""Flask CLI commands for external schedulers and operators."""

from __future__ import annotations

from datetime import timedelta

import click
from flask import Flask

from .errors import NotFound
from .extensions import db
from .models.auth import User
from .services import metrics as metric_store
from .services import workflows as workflow_store
from .workflow.dispatcher import dispatch_cron

DEMO_EMAIL = "demo@lifeos.app"


def _seed_demo_user() -> tuple[User, bool]:
    user = User.query.filter_by(email=DEMO_EMAIL).first()
    if user is not None:
        return user, False

    user = User(email=DEMO_EMAIL, name="demo")
    db.session.add(user)
    db.session.commit()

    weight = metric_store.create_metric(user.id, "Weight", "NUMBER", unit="kg", category="health")
    metric_store.log_entry(user.id, weight.id, 80)
    metric_store.log_entry(user.id, weight.id, 79.5)
    metric_store.create_metric(user.id, "Savings", "CURRENCY", unit="EUR", category="finance", target=10000)
    workflow_store.create_workflow(
        user.id,
        "Daily check-in",
        "CRON",
        trigger_config={"cron": "0 8 * * *"},
        actions=[{"type": "log", "message": "Time for the daily check-in"}],
    )
    workflow_store.create_workflow(
        user.id,
        "Incoming payment",
        "WEBHOOK",
        actions=[{"type": "log", "message": "Payment received"}],
    )
    return user, True


def register_commands(app: Flask) -> None:
    """Attach the LifeOS commands to ``app.cli``."""

    @app.cli.command("dispatch-cron")
    @click.argument("workflow_id")
    def dispatch_cron_command(workflow_id: str) -> None:
        """Run the CRON workflow WORKFLOW_ID once."""

        try:
            run = dispatch_cron(workflow_id)
        except NotFound as exc:
            raise click.ClickException(exc.message) from exc
        click.echo(f"{run.id} {run.status}")
        if run.error:
            click.echo(run.error, err=True)

    @app.cli.command("stuck-runs")
    @click.option("--minutes", default=15, show_default=True, type=int)
    def stuck_runs_command(minutes: int) -> None:
        """List runs still RUNNING after MINUTES."""

        runs = workflow_store.list_stuck_runs(timedelta(minutes=minutes))
        for run in runs:
            click.echo(f"{run.id} {run.workflow_id} {run.started_at.isoformat()}Z")
        click.echo(f"{len(runs)} stuck run(s)")

    @app.cli.command("seed-demo")
    def seed_demo_command() -> None:
        """Create the demo user with sample metrics and workflows."""

        user, created = _seed_demo_user()
        click.echo(f"{'created' if created else 'exists'} {user.email} ({user.id})")
