"""CLI interface for Reclaim."""

from __future__ import annotations

import json
import logging
import sys

import click

from reclaim.core.session import CleanupSession
from reclaim.models.item import Category, CleanupItem, RiskLevel
from reclaim.models.report import CleanupRunReport
from reclaim.utils import bytes_to_human, format_elapsed, format_relative_time

_CATEGORY_NAMES = [c.value for c in Category]
_RISK_COLORS = {RiskLevel.SAFE: "green", RiskLevel.MEDIUM: "yellow", RiskLevel.HIGH: "red"}


def _setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _scan(session: CleanupSession, categories: tuple[str, ...]) -> list[CleanupItem]:
    """Run a blocking scan, limited to *categories* when given (not persisted)."""
    if categories:
        session.orchestrator.settings = session.settings.with_changes(active_categories=list(categories))
    session.start_scan()
    session.wait_for_scan()
    return session.items


def _risk_tag(risk: RiskLevel) -> str:
    return click.style(f"[{risk.value}]", fg=_RISK_COLORS[risk])


@click.group()
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug)")
def main(verbose: int) -> None:
    """Reclaim: find and safely remove reclaimable files."""
    _setup_logging(verbose)


# ── scan ─────────────────────────────────────────────────────────────────

@main.command()
@click.argument("categories", nargs=-1, type=click.Choice(_CATEGORY_NAMES))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--items", "show_items", is_flag=True, help="List every item, not only category totals")
def scan(categories: tuple[str, ...], as_json: bool, show_items: bool) -> None:
    """Scan for reclaimable files (preview only, never deletes)."""
    session = CleanupSession()
    if not as_json:
        click.echo(f"\n{click.style('Scanning...', bold=True)}\n")
    items = _scan(session, categories)

    if as_json:
        click.echo(json.dumps([i.to_dict() for i in items], indent=2))
        return

    grouped = session.orchestrator.items_by_category()
    for category in Category:
        members = grouped.get(category)
        if not members:
            continue
        size = sum(i.size_bytes for i in members)
        click.echo(
            f"  {click.style('✓', fg='green')} {category.label:28s} — "
            f"{click.style(bytes_to_human(size), fg='green', bold=True)} ({len(members):,} items)"
        )
        if show_items:
            for item in sorted(members, key=lambda i: i.size_bytes, reverse=True):
                click.echo(f"      {bytes_to_human(item.size_bytes):>10s}  {_risk_tag(item.risk)} {item.path}")

    if not items:
        click.echo("Nothing to clean.")
    click.echo(f"\nTotal reclaimable: {click.style(bytes_to_human(session.orchestrator.total_size), fg='green', bold=True)}\n")


# ── clean ────────────────────────────────────────────────────────────────

@main.command()
@click.argument("categories", nargs=-1, type=click.Choice(_CATEGORY_NAMES))
@click.option("--all", "select_all", is_flag=True, help="Select every item, whatever its risk")
@click.option("--safe", "select_safe", is_flag=True, help="Select only safe items (default)")
@click.option("--backup/--no-backup", default=None, help="Copy risky items aside first (default from settings)")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.option("--dry-run", is_flag=True, help="Show what would be cleaned without doing it")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def clean(
    categories: tuple[str, ...],
    select_all: bool,
    select_safe: bool,
    backup: bool | None,
    yes: bool,
    dry_run: bool,
    as_json: bool,
) -> None:
    """Scan, then clean the selected items."""
    if select_all and select_safe:
        raise click.UsageError("--all and --safe are mutually exclusive")

    session = CleanupSession()
    if not as_json:
        click.echo(f"\n{click.style('Scanning...', bold=True)}\n")
    items = _scan(session, categories)

    if select_all:
        for category in {i.category for i in items}:
            session.select_all_in_category(category)
    else:
        session.select_all_safe()
    selected = session.orchestrator.selected_items()

    if not selected:
        if as_json:
            click.echo(json.dumps({"status": "nothing_to_clean", "items": []}))
        else:
            click.echo("Nothing to clean.")
        return

    total = sum(i.size_bytes for i in selected)
    if not as_json:
        for item in sorted(selected, key=lambda i: i.risk.rank):
            click.echo(f"  {_risk_tag(item.risk)} {bytes_to_human(item.size_bytes):>10s}  {item.path}")
        click.echo(
            f"\nTotal: {click.style(bytes_to_human(total), fg='green', bold=True)} "
            f"in {len(selected):,} items (about {format_elapsed(session.estimated_duration())})\n"
        )

    if dry_run:
        if as_json:
            click.echo(json.dumps({"status": "dry_run", "would_free_bytes": total,
                                   "items": [i.to_dict() for i in selected]}, indent=2))
        else:
            click.echo("(dry run — no files were deleted)")
        return

    if not yes and not as_json and session.settings.confirm_before_delete:
        if not click.confirm("Clean these items?", default=False):
            click.echo("Aborted.")
            return

    if not as_json:
        click.echo(f"{click.style('Cleaning...', bold=True)}\n")

    reports: list[CleanupRunReport] = []
    if not session.cleanup(create_backup=backup, on_finished=reports.append):
        click.echo("A cleanup is already running.", err=True)
        sys.exit(1)
    try:
        session.wait_for_cleanup()
    except KeyboardInterrupt:
        session.cancel_cleanup()
        session.wait_for_cleanup()
    report = reports[0]

    if as_json:
        click.echo(json.dumps({"status": report.status.value, "report": report.to_dict()}, indent=2))
        return

    for failure in report.errors:
        click.echo(f"  {click.style('!', fg='yellow')} {failure.item.path} — {failure.kind.value}: {failure.message}")
    if report.backup_created:
        click.echo(f"  Backup: {report.backup_path}")
    status = "Cancelled" if report.cancelled else "Done"
    click.echo(
        f"\n{status}: {report.successful_deletions} cleaned, {report.failed_deletions} failed, "
        f"freed {click.style(bytes_to_human(report.total_size_cleaned), fg='green', bold=True)} "
        f"in {format_elapsed(report.elapsed)}\n"
    )


# ── stats ────────────────────────────────────────────────────────────────

@main.command()
@click.option("--period", "-p", default="all", type=click.Choice(["today", "week", "month", "all"]))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def stats(period: str, as_json: bool) -> None:
    """Show space freed statistics."""
    session = CleanupSession()
    data = session.stats(period)

    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    last = session.tracker.get_last_clean_time()
    click.echo(f"\n{click.style('Statistics', bold=True)} ({period})\n")
    click.echo(f"  Bytes freed:    {click.style(bytes_to_human(data['bytes_freed']), fg='green', bold=True)}")
    click.echo(f"  Items cleaned:  {data['items_cleaned']:,}")
    click.echo(f"  Runs:           {data['run_count']}")
    click.echo(f"  Per item:       {bytes_to_human(data['average_item_bytes'])}")
    click.echo(f"  Frequency:      {data['frequency']}")
    if data["safety_ratio"] is not None:
        click.echo(f"  Safety score:   {data['safety_ratio']:.0f}%")
    if last is not None:
        click.echo(f"  Last cleaned:   {format_relative_time(last)}")
    click.echo(f"  Lifetime total: {click.style(bytes_to_human(data['lifetime_bytes_freed']), fg='cyan', bold=True)}")

    if data["per_category"]:
        click.echo("\n  Runs per category:")
        for name, count in sorted(data["per_category"].items(), key=lambda x: x[1], reverse=True):
            click.echo(f"    {name:28s} {count}")
    click.echo()


# ── history ──────────────────────────────────────────────────────────────

@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def history(as_json: bool) -> None:
    """List past cleanup runs, newest first."""
    session = CleanupSession()
    entries = session.tracker.entries

    if as_json:
        click.echo(json.dumps([e.to_dict() for e in entries], indent=2))
        return

    if not entries:
        click.echo("No cleanups recorded yet.")
        return
    for entry in entries:
        click.echo(
            f"  {format_relative_time(entry.date):16s} {bytes_to_human(entry.total_size):>10s}  "
            f"{entry.items_count:>5,} items  {', '.join(entry.categories)}"
        )


# ── settings ─────────────────────────────────────────────────────────────

@main.group()
def settings() -> None:
    """Show or change the persisted settings."""


@settings.command("show")
def settings_show() -> None:
    """Print the settings document."""
    session = CleanupSession()
    click.echo(json.dumps(session.settings.to_dict(), indent=2))


@settings.command("set")
@click.argument("key")
@click.argument("value")
def settings_set(key: str, value: str) -> None:
    """Set KEY (e.g. minFileSize) to VALUE, given as JSON where possible."""
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        parsed = value
    session = CleanupSession()
    try:
        session.update_settings(**{key: parsed})
    except ValueError as e:
        click.echo(str(e), err=True)
        sys.exit(1)
    click.echo(f"{key} = {json.dumps(parsed)}")


@settings.command("reset")
def settings_reset() -> None:
    """Restore the default settings."""
    CleanupSession().reset_settings()
    click.echo("Settings reset to defaults.")


# ── service ──────────────────────────────────────────────────────────────

@main.group()
def service() -> None:
    """D-Bus service management."""


@service.command("start")
def service_start() -> None:
    """Start the D-Bus service in foreground."""
    from reclaim.dbus_service import start_service

    click.echo("Starting Reclaim D-Bus service...")
    start_service()
