from __future__ import annotations

import asyncio
import json

import click
from flask import Flask

from ..common.validators import require_enum
from ..core.enums import ReminderSlot, SummaryDay, TrackingMode
from ..container import Container


def register_cli(app: Flask, container: Container) -> None:
    jobs = container.push_jobs

    @app.cli.command("eligible-users")
    @click.option("--mode", type=click.Choice([m.value for m in TrackingMode]), default=TrackingMode.MANUAL.value)
    def eligible_users(mode: str) -> None:
        """List users today's reminder job would notify."""
        users = asyncio.run(jobs.eligible_users(TrackingMode(mode)))
        click.echo(f"{len(users)} eligible ({mode}, {jobs.now():%Y-%m-%d %H:%M %Z})")
        for user in users:
            click.echo(f"  {user.user_id}")

    @app.cli.command("run-job")
    @click.argument("job", type=click.Choice(["reminders", "weekly-summary", "reset-near-office"]))
    @click.argument("arg", required=False)
    def run_job(job: str, arg: str | None) -> None:
        """Run one scheduled push job now."""
        if job == "reminders":
            report = asyncio.run(jobs.send_reminders(require_enum(arg, ReminderSlot, "slot")))
            click.echo(json.dumps(report.to_dict()))
        elif job == "weekly-summary":
            report = asyncio.run(jobs.send_weekly_summary(require_enum(arg, SummaryDay, "day")))
            click.echo(json.dumps(report.to_dict()))
        else:
            click.echo(json.dumps({"reset": asyncio.run(jobs.reset_near_office_flags())}))

    @app.cli.command("dump-user")
    @click.argument("user_id")
    def dump_user(user_id: str) -> None:
        """Print a user's stored document."""
        document = asyncio.run(container.remote_store.fetch_user(user_id))
        if document is None:
            raise click.ClickException(f"User {user_id} not found")
        click.echo(json.dumps(document, indent=2, sort_keys=True, ensure_ascii=False))
