"""
Flask CLI commands for running the sweeps and managing accounts.
"""

from __future__ import annotations

import json
from typing import Optional

import click
from flask import current_app
from flask.cli import with_appcontext

from campus_hub.models import ADMIN_ROLE, USER_ROLE, User, db
from campus_hub.services import ReminderSweep, RetentionSweep, StorageReconciler
from campus_hub.tasks.celery_app import DEFAULT_QUEUE_NAME, get_celery_app


def _echo_summary(summary) -> None:
    click.echo(json.dumps(summary.to_dict(), indent=2, sort_keys=True))


@click.group(name="sweeps")
def sweeps_cli():
    """Run the reminder, retention and storage sweeps."""


@sweeps_cli.command("reminders")
@click.option("--test-user", "test_user", default=None, help="Run in test mode for this user id or email.")
@with_appcontext
def reminders_command(test_user: Optional[str]):
    """Send due event reminders."""
    test_user_id = None
    if test_user:
        user = db.session.get(User, test_user) or User.find_by_email(test_user)
        if user is None:
            raise click.ClickException(f"User '{test_user}' not found.")
        test_user_id = user.id
    summary = ReminderSweep.from_app(current_app).run(test_user_id=test_user_id)
    _echo_summary(summary)


@sweeps_cli.command("retention")
@with_appcontext
def retention_command():
    """Delete events past the retention horizon."""
    _echo_summary(RetentionSweep.from_app(current_app).run())


@sweeps_cli.command("storage-cleanup")
@with_appcontext
def storage_cleanup_command():
    """Delete storage objects no event references."""
    _echo_summary(StorageReconciler.from_app(current_app).run())


@sweeps_cli.command("worker")
@click.option("--loglevel", default="info", show_default=True, help="Celery worker log level.")
@click.option("--beat/--no-beat", default=True, show_default=True, help="Embed the beat scheduler.")
@with_appcontext
def worker_command(loglevel: str, beat: bool):
    """Start a Celery worker for the sweep queue."""
    celery_app = get_celery_app(current_app)
    argv = ["worker", "--loglevel", loglevel, "-Q", DEFAULT_QUEUE_NAME]
    if beat:
        if not current_app.config.get("SCHEDULER_ENABLED", False):
            click.echo("SCHEDULER_ENABLED is false; beat will run with an empty schedule.")
        argv.append("--beat")
    click.echo(f"Starting sweep worker (queue: {DEFAULT_QUEUE_NAME}, loglevel: {loglevel}, beat: {beat})")
    try:
        celery_app.worker_main(argv=argv)
    except KeyboardInterrupt:
        click.echo("Worker shutdown requested. Exiting...")


@click.group(name="users")
def users_cli():
    """Manage accounts and API tokens."""


def _issue_token(email: str, role: str, display_name: Optional[str]) -> None:
    email = email.strip().lower()
    user = User.find_by_email(email)
    if user is None:
        user = User(email=email, display_name=display_name, role=role)
        db.session.add(user)
    else:
        if role == ADMIN_ROLE:
            user.role = ADMIN_ROLE
        if display_name:
            user.display_name = display_name
    token = user.issue_api_token()
    db.session.commit()
    click.echo(f"{user.role} {email} ({user.id})")
    click.echo(f"API token: {token}")


@users_cli.command("create-admin")
@click.argument("email")
@click.option("--name", "display_name", default=None, help="Display name.")
@with_appcontext
def create_admin_command(email: str, display_name: Optional[str]):
    """Create (or promote) an admin and print a fresh API token."""
    _issue_token(email, ADMIN_ROLE, display_name)


@users_cli.command("create")
@click.argument("email")
@click.option("--name", "display_name", default=None, help="Display name.")
@with_appcontext
def create_user_command(email: str, display_name: Optional[str]):
    """Create a regular user and print a fresh API token."""
    _issue_token(email, USER_ROLE, display_name)


def init_cli(app) -> None:
    app.cli.add_command(sweeps_cli)
    app.cli.add_command(users_cli)
