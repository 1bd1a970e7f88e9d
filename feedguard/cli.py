"""feedguard CLI -- screen content and work the review queue from a terminal."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import click
import yaml
from rich.console import Console
from rich.table import Table

from feedguard import __version__
from feedguard.moderation.service import MAX_WINDOW_DAYS as _MAX_DAYS

console = Console()

_SEVERITY_STYLE = {"high": "red", "medium": "yellow", "low": "green"}

_CATEGORIES = {
    "toxicity": "enable_toxicity_detection",
    "spam": "enable_spam_detection",
    "profanity": "enable_profanity_filter",
    "threat": "enable_threat_detection",
    "personal_info": "enable_personal_info_detection",
}


def _service(ctx: click.Context):
    from feedguard.config import build_service

    return build_service(ctx.obj.get("data_dir"))


def _severity(value: str) -> str:
    return f"[{_SEVERITY_STYLE.get(value, 'white')}]{value}[/]"


@click.group()
@click.version_option(version=__version__)
@click.option("--data-dir", default=None, envvar="FEEDGUARD_DATA_DIR", help="Moderation store directory")
@click.option("--log-level", default=None, help="Logging level (DEBUG, INFO, WARNING, ...)")
@click.pass_context
def main(ctx: click.Context, data_dir: str | None, log_level: str | None):
    """feedguard -- pre-publication moderation for social content.

    Analyze text, run the allow/block/queue policy, and review the
    moderation queue.
    """
    from feedguard.config import configure_logging

    configure_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj["data_dir"] = data_dir


# ── Analyze ──────────────────────────────────────────────────────────


@main.command()
@click.argument("text")
@click.option("--threshold", type=click.FloatRange(0.0, 1.0), default=None, help="Flag threshold")
@click.option(
    "--disable",
    multiple=True,
    type=click.Choice(sorted(_CATEGORIES)),
    help="Disable a detector (repeatable)",
)
@click.option("--json", "as_json", is_flag=True, help="Print the raw result as JSON")
@click.pass_context
def analyze(ctx: click.Context, text: str, threshold: float | None, disable: tuple[str, ...], as_json: bool):
    """Score TEXT without touching the queue or audit log.

    Starts from the configured settings; options apply to this run only.
    """
    from feedguard.moderation.settings import merge_settings

    service = _service(ctx)
    overrides: dict = {_CATEGORIES[name]: False for name in disable}
    if threshold is not None:
        overrides["flag_threshold"] = threshold
    result = service.analyzer.analyze(text, merge_settings(service.get_settings(), overrides))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    table = Table(title="Category scores")
    table.add_column("Category", style="cyan")
    table.add_column("Score", justify="right", style="green")
    for name, score in result.scores.as_dict().items():
        table.add_row(name, f"{score:.2f}")
    console.print(table)

    console.print(f"  Severity:   {_severity(result.severity.value)}")
    console.print(f"  Confidence: {result.confidence:.2f}")
    console.print(f"  Action:     [bold]{result.suggested_action.value}[/]")
    if result.moderation_tags:
        console.print(f"  Tags:       {', '.join(result.moderation_tags)}")
    if result.flag_reason:
        console.print(f"  Reason:     {result.flag_reason}")


# ── Check (run the publish policy) ───────────────────────────────────


@main.command()
@click.argument("text")
@click.option("--type", "content_type", default="post", type=click.Choice(["post", "reply", "profile"]))
@click.option("--author", required=True, help="Author id")
@click.option("--content-id", default=None, help="Content id (generated when omitted)")
@click.pass_context
def check(ctx: click.Context, text: str, content_type: str, author: str, content_id: str | None):
    """Run the allow/block/queue policy on TEXT, recording the outcome."""
    from feedguard.moderation.models import ContentType

    decision = _service(ctx).moderate_before_publish(text, ContentType(content_type), author, content_id)

    verdict = "[green]allowed[/]" if decision.allowed else "[red]held[/]"
    console.print(f"\n[bold blue]feedguard[/] -- {content_type} {decision.content_id}: {verdict}")
    console.print(f"  Suggested action: {decision.analysis.suggested_action.value}")
    console.print(f"  Severity:         {_severity(decision.analysis.severity.value)}")
    if decision.queue_id:
        console.print(f"  Queued for review as [cyan]{decision.queue_id}[/]")
    if decision.filtered:
        console.print(f"  Publish as:       {decision.filtered_content}")


# ── Queue ────────────────────────────────────────────────────────────


@main.command(name="queue")
@click.option("--status", type=click.Choice(["pending", "escalated", "reviewed"]), default=None)
@click.option("--severity", type=click.Choice(["low", "medium", "high"]), default=None)
@click.option("--type", "content_type", type=click.Choice(["post", "reply", "profile"]), default=None)
@click.option("--limit", type=click.IntRange(min=1), default=50)
@click.pass_context
def list_queue(ctx: click.Context, status, severity, content_type, limit: int):
    """List moderation queue items, most severe and newest first."""
    from feedguard.analysis.models import Severity
    from feedguard.moderation.models import ContentType, QueueStatus

    items = _service(ctx).list_queue(
        status=QueueStatus(status) if status else None,
        severity=Severity(severity) if severity else None,
        content_type=ContentType(content_type) if content_type else None,
        limit=limit,
    )
    if not items:
        console.print("[yellow]Queue is empty.[/]")
        return

    table = Table(title=f"Moderation queue ({len(items)} shown)")
    table.add_column("Queue id", style="dim")
    table.add_column("Severity")
    table.add_column("Status")
    table.add_column("Type")
    table.add_column("Created")
    table.add_column("Content")
    for item in items:
        table.add_row(
            item.id,
            _severity(item.severity.value),
            item.status.value,
            item.content_type.value,
            item.created_at[:19],
            item.content[:60],
        )
    console.print(table)


# ── Decide ───────────────────────────────────────────────────────────


@main.command()
@click.argument("queue_id")
@click.argument("decision", type=click.Choice(["approve", "reject", "escalate"]))
@click.option("--reviewer", required=True, help="Reviewer id")
@click.option("--reason", default=None, help="Reason (required for reject)")
@click.pass_context
def decide(ctx: click.Context, queue_id: str, decision: str, reviewer: str, reason: str | None):
    """Record a reviewer DECISION on QUEUE_ID."""
    from feedguard.errors import InvalidTransitionError
    from feedguard.moderation.models import ReviewDecision

    if decision == "reject" and not reason:
        raise click.UsageError("A reason is required to reject content.")

    try:
        item = _service(ctx).process_decision(queue_id, ReviewDecision(decision), reviewer, reason)
    except InvalidTransitionError as exc:
        console.print(f"[red]{exc}[/]")
        ctx.exit(1)

    if item is None:
        console.print(f"[red]Queue item '{queue_id}' not found.[/]")
        ctx.exit(1)
    console.print(f"[green]Recorded '{decision}' for {queue_id} (now {item.status.value}).[/]")


# ── History / stats / export ─────────────────────────────────────────


@main.command()
@click.argument("content_id")
@click.pass_context
def history(ctx: click.Context, content_id: str):
    """Show the moderation history of CONTENT_ID, newest first."""
    actions = _service(ctx).get_history(content_id)
    if not actions:
        console.print(f"[yellow]No moderation history for {content_id}.[/]")
        return

    table = Table(title=f"History for {content_id}")
    table.add_column("When", style="dim")
    table.add_column("Action", style="cyan")
    table.add_column("By")
    table.add_column("Severity")
    table.add_column("Reason")
    for a in actions:
        table.add_row(
            a.timestamp[:19],
            a.action.value,
            "automated" if a.automated else a.reviewer_id or "",
            _severity(a.severity.value),
            a.reason,
        )
    console.print(table)


@main.command()
@click.option("--days", type=click.IntRange(1, _MAX_DAYS), default=None, help="Only the last N days")
@click.pass_context
def stats(ctx: click.Context, days: int | None):
    """Summarise moderation activity and queue backlog."""
    service = _service(ctx)
    start = None
    if days is not None:
        start = datetime.now(timezone.utc) - timedelta(days=days)
    s = service.get_stats(start=start)

    table = Table(title="Moderation statistics")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Total actions", str(s.total))
    table.add_row("Automated", str(s.automated))
    table.add_row("Manual", str(s.manual))
    table.add_row("Automation rate", f"{s.automation_rate:.1f}%")
    for name, count in s.action_breakdown.items():
        table.add_row(f"Action: {name}", str(count))
    for name, count in s.severity_breakdown.items():
        table.add_row(f"Severity: {name}", str(count))
    table.add_row("Queue: pending", str(s.queue.pending))
    table.add_row("Queue: escalated", str(s.queue.escalated))
    console.print(table)


@main.command()
@click.option("--format", "fmt", type=click.Choice(["json", "csv"]), default="json")
@click.pass_context
def export(ctx: click.Context, fmt: str):
    """Export the audit log."""
    click.echo(_service(ctx).export_history(fmt))


# ── Cleanup ──────────────────────────────────────────────────────────


@main.command()
@click.option("--days", type=click.FloatRange(0, _MAX_DAYS), default=30, show_default=True)
@click.pass_context
def cleanup(ctx: click.Context, days: float):
    """Remove reviewed queue items older than --days. Audit history is kept."""
    removed = _service(ctx).cleanup(days)
    console.print(f"Removed {removed} reviewed item(s).")


# ── Settings ─────────────────────────────────────────────────────────


@main.group()
def settings():
    """Show or change detection settings."""


@settings.command(name="show")
@click.pass_context
def settings_show(ctx: click.Context):
    from feedguard.moderation.settings import settings_to_dict

    current = _service(ctx).get_settings()
    for key, value in settings_to_dict(current).items():
        console.print(f"  [cyan]{key}[/]: {value}")


@settings.command(name="set")
@click.argument("assignments", nargs=-1, required=True)
@click.pass_context
def settings_set(ctx: click.Context, assignments: tuple[str, ...]):
    """Update settings, e.g. ``flag_threshold=0.8 enable_spam_detection=false``."""
    from feedguard.config import local_settings_path
    from feedguard.errors import SettingsValidationError
    from feedguard.moderation.settings import save_settings

    partial: dict = {}
    for assignment in assignments:
        key, sep, raw = assignment.partition("=")
        if not sep:
            raise click.BadParameter(f"Expected KEY=VALUE, got '{assignment}'")
        partial[key.strip()] = yaml.safe_load(raw)

    service = _service(ctx)
    try:
        updated = service.update_settings(partial)
    except SettingsValidationError as exc:
        console.print(f"[red]{exc}[/]")
        ctx.exit(1)

    save_settings(local_settings_path(ctx.obj.get("data_dir")), updated)
    console.print("[green]Settings updated.[/]")
