"""kitq CLI — typer-based command interface."""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import contextmanager
from pathlib import Path

import typer

from .errors import KitqError

app = typer.Typer(
    name="kitq",
    help="kitq — dependency-aware work scheduler and knowledge staleness tracker",
    no_args_is_help=True,
)
spec_app = typer.Typer(help="Create and move specs through their lifecycle.", no_args_is_help=True)
tasks_app = typer.Typer(help="Manage the tasks and sessions of a spec.", no_args_is_help=True)
log_app = typer.Typer(help="Record and check anchored log entries.", no_args_is_help=True)
app.add_typer(spec_app, name="spec")
app.add_typer(tasks_app, name="tasks")
app.add_typer(log_app, name="log")

# -------------------------------------------------------------------
# Templates
# -------------------------------------------------------------------

DEFAULT_CONFIG_TEMPLATE = """\
# .kit/config.yaml: team-shared configuration
kit_dir: .kit

scheduler:
  max_retries: 3
  # Seconds before a failed item may be picked again (doubles per retry); 0 = immediately
  retry_backoff_sec: 0

staleness:
  # Prefer last commit time over file mtime when inside a git repository
  use_git: true

logging:
  level: WARNING
"""

DEFAULT_LOCAL_CONFIG_TEMPLATE = """\
# .kit/local.config.yaml: personal overrides (DO NOT commit)
# logging:
#   level: INFO
"""

GITIGNORE_ENTRIES = [
    ".kit/local.config.yaml",
    ".kit/journal.db",
    ".kit/journal.db-wal",
    ".kit/journal.db-shm",
]

STATUS_ICONS = {
    "pending": "⏳", "in_progress": "🔄", "done": "✅", "blocked": "❌",
    "fresh": "✅", "stale": "⚠️", "orphaned": "❌", "unknown": "❔",
}


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------

def _get_project_root() -> Path:
    return Path.cwd()


def _run_async(coro):
    """Run an async coroutine from sync context."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None
    if loop and loop.is_running():
        import concurrent.futures
        with concurrent.futures.ThreadPoolExecutor() as pool:
            return pool.submit(asyncio.run, coro).result()
    return asyncio.run(coro)


@contextmanager
def _errors():
    """Turn kitq errors into a one-line message and exit code 1."""
    try:
        yield
    except (KitqError, ValueError) as e:
        typer.secho(f"  Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)


def _config():
    from .config import load_config
    with _errors():
        return load_config(_get_project_root())


def _store(config):
    from .store import FileStore
    return FileStore(config, stage=config.staleness.use_git)


def _scheduler(config):
    from .scheduler import Scheduler
    return Scheduler(
        _store(config),
        max_retries=config.scheduler.max_retries,
        retry_backoff_sec=config.scheduler.retry_backoff_sec,
    )


def _tracker(config):
    from .git_ops import FileTimestampOracle
    from .staleness import StalenessTracker
    oracle = FileTimestampOracle(config.project_root, use_git=config.staleness.use_git)
    return StalenessTracker(_store(config), oracle)


def _journal(config, subject: str, event: str, detail: dict | None = None, spec_id: str = ""):
    """Append an event to the journal; the document store stays the source of truth."""
    from .db import Journal

    async def _write():
        config.journal_path.parent.mkdir(parents=True, exist_ok=True)
        async with Journal(str(config.journal_path)) as journal:
            await journal.log_event(subject, event, detail, spec_id=spec_id)

    _run_async(_write())


def _item_dict(item) -> dict:
    return {
        "spec_id": item.spec_id,
        "id": item.id,
        "title": item.title,
        "kind": item.kind.value,
        "type": item.type,
        "status": item.status.value,
        "priority": item.priority,
        "depends_on": list(item.depends_on),
        "parent_id": item.parent_id,
        "retry_count": item.retry_count,
    }


def _selection_dict(selection, snapshot) -> dict:
    from .models import format_key
    return {
        "reason": selection.reason.value,
        "items": [_item_dict(i) for i in selection.items],
        "blocking": [format_key(k) for k in selection.blocking],
        "poisoned": {
            spec_id: [format_key(k) for k in cycle]
            for spec_id, cycle in selection.poisoned.items()
        },
        "deferred": {
            format_key(k): retry_after.isoformat()
            for k, retry_after in selection.deferred.items()
        },
        "skipped": [{"ref": s.ref, "reason": s.reason} for s in snapshot.skipped],
    }


def _echo_item(item) -> None:
    icon = STATUS_ICONS.get(item.status.value, "  ")
    deps = ", ".join(item.depends_on) if item.depends_on else "—"
    typer.echo(
        f"  {icon} {item.spec_id}/{item.id:<6} P{item.priority}  {item.title}  (deps: {deps})"
    )


def _echo_selection(selection, snapshot) -> None:
    from .models import format_key
    from .scheduler import Reason

    for s in snapshot.skipped:
        typer.secho(f"  Skipped {s.ref}: {s.reason}", fg=typer.colors.YELLOW, err=True)

    if selection.reason == Reason.SELECTED:
        for item in selection.items:
            _echo_item(item)
        return
    if selection.reason == Reason.ALL_DONE:
        typer.echo("  All work items are done.")
        return

    typer.echo("  No work item is runnable.")
    for spec_id, cycle in selection.poisoned.items():
        path = " -> ".join(format_key(k) for k in cycle)
        typer.secho(f"  Cycle in {spec_id}: {path}", fg=typer.colors.RED)
    if selection.blocking:
        typer.echo(f"  Waiting on: {', '.join(format_key(k) for k in selection.blocking)}")
    for key, retry_after in selection.deferred.items():
        typer.echo(f"  Retry backoff: {format_key(key)} until {retry_after.isoformat()}")


# -------------------------------------------------------------------
# Commands
# -------------------------------------------------------------------

@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at INFO level"),
):
    """Configure logging before any command runs."""
    from .config import load_config
    # Config errors surface from the command itself.
    try:
        level = load_config(_get_project_root()).logging.level
    except ValueError:
        level = "WARNING"
    logging.basicConfig(
        level=logging.INFO if verbose else getattr(logging, level, logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command()
def init():
    """Initialize kitq in the current project."""
    root = _get_project_root()

    kit_dir = root / ".kit"
    kit_dir.mkdir(exist_ok=True)

    config_path = kit_dir / "config.yaml"
    if not config_path.exists():
        config_path.write_text(DEFAULT_CONFIG_TEMPLATE)
        typer.echo(f"  Created {config_path.relative_to(root)}")
    else:
        typer.echo(f"  Exists  {config_path.relative_to(root)}")

    local_path = kit_dir / "local.config.yaml"
    if not local_path.exists():
        local_path.write_text(DEFAULT_LOCAL_CONFIG_TEMPLATE)
        typer.echo(f"  Created {local_path.relative_to(root)}")

    config = _config()
    for directory in (config.specs_path, config.tasks_path, config.logs_path):
        if not directory.exists():
            directory.mkdir(parents=True)
            typer.echo(f"  Created {directory.relative_to(root)}/")

    gitignore_path = root / ".gitignore"
    existing = ""
    if gitignore_path.exists():
        existing = gitignore_path.read_text()
    additions = [e for e in GITIGNORE_ENTRIES if e not in existing]
    if additions:
        with open(gitignore_path, "a") as f:
            if existing and not existing.endswith("\n"):
                f.write("\n")
            f.write("# kitq\n")
            for entry in additions:
                f.write(f"{entry}\n")
        typer.echo("  Updated .gitignore")

    typer.echo("\n  kitq initialized. Run `kitq spec new <title>` to start.")


# --- specs ---------------------------------------------------------

@spec_app.command("new")
def spec_new(
    title: str = typer.Argument(..., help="Spec title"),
    body: str = typer.Option("", "--body", help="Markdown body"),
):
    """Create a draft spec."""
    from .specs import create_spec

    config = _config()
    with _errors():
        spec = create_spec(_store(config), title, body)
    _journal(config, spec.id, "spec.create", {"title": title}, spec_id=spec.id)
    typer.echo(f"  Created spec {spec.id} [{spec.status.value}]")


@spec_app.command("list")
def spec_list():
    """List specs and their status."""
    config = _config()
    store = _store(config)
    spec_ids = store.list_spec_ids()
    if not spec_ids:
        typer.echo("  No specs found.")
        return
    for spec_id in spec_ids:
        try:
            spec = store.load_spec(spec_id)
        except KitqError as e:
            typer.secho(f"  Skipped {spec_id}: {e}", fg=typer.colors.YELLOW, err=True)
            continue
        typer.echo(f"  {spec.id:<36} {spec.status.value:<12} {spec.title}")


@spec_app.command("show")
def spec_show(spec_id: str = typer.Argument(..., help="Spec ID")):
    """Show a spec and a summary of its work items."""
    from collections import Counter

    config = _config()
    store = _store(config)
    with _errors():
        spec = store.load_spec(spec_id)
    typer.echo(f"\n  {spec.id}: {spec.title}")
    typer.echo(f"  Status:  {spec.status.value}")
    typer.echo(f"  Created: {spec.created}   Updated: {spec.updated}")
    if store.has_items(spec_id):
        with _errors():
            items = store.load_items(spec_id)
        counts = Counter(i.status.value for i in items)
        summary = ", ".join(f"{n} {s}" for s, n in sorted(counts.items())) or "no items"
        typer.echo(f"  Items:   {summary}")
    typer.echo("")


@spec_app.command("status")
def spec_status(
    spec_id: str = typer.Argument(..., help="Spec ID"),
    status: str = typer.Argument(..., help="draft | in-review | approved | implemented | deprecated"),
):
    """Move a spec to a new status."""
    from .models import SpecStatus
    from .specs import transition

    config = _config()
    with _errors():
        previous = _store(config).load_spec(spec_id).status
        spec = transition(_store(config), spec_id, SpecStatus(status))
    _journal(config, spec_id, "spec.status",
             {"from": previous.value, "to": spec.status.value}, spec_id=spec_id)
    typer.echo(f"  {spec_id}: {previous.value} → {spec.status.value}")


# --- tasks ---------------------------------------------------------

@tasks_app.command("init")
def tasks_init(spec_id: str = typer.Argument(..., help="Approved spec ID")):
    """Create the task document of an approved spec."""
    from .specs import init_tasks

    config = _config()
    with _errors():
        created = init_tasks(_store(config), spec_id)
    if created:
        typer.echo(f"  Created task document for {spec_id}")
    else:
        typer.echo(f"  Exists  task document for {spec_id}")


@tasks_app.command("add")
def tasks_add(
    spec_id: str = typer.Argument(..., help="Spec ID"),
    title: str = typer.Argument(..., help="Item title"),
    description: str = typer.Option("", "--description", "-d"),
    priority: int = typer.Option(2, "--priority", "-p", min=0, max=4, help="0 = most urgent"),
    depends_on: list[str] = typer.Option([], "--depends-on", help="Item ID (repeatable)"),
    parent: str = typer.Option(None, "--parent", help="Parent session ID"),
    session: bool = typer.Option(False, "--session", help="Add a session instead of a task"),
    item_type: str = typer.Option("", "--type", help="Domain tag, e.g. frontend"),
):
    """Add a task or session to a spec."""
    from .models import ItemKind

    config = _config()
    with _errors():
        item = _scheduler(config).add_item(
            spec_id,
            title,
            description=description,
            priority=priority,
            depends_on=depends_on,
            parent_id=parent,
            kind=ItemKind.SESSION if session else ItemKind.TASK,
            type=item_type,
        )
    _journal(config, item.id, "item.add", {"title": title, "kind": item.kind.value},
             spec_id=spec_id)
    typer.echo(f"  Added {item.kind.value} {spec_id}/{item.id}: {title}")


@tasks_app.command("depend")
def tasks_depend(
    spec_id: str = typer.Argument(..., help="Spec ID"),
    item_id: str = typer.Argument(..., help="Item that waits"),
    dep_id: str = typer.Argument(..., help="Item it depends on"),
):
    """Record a dependency edge (rejected if it closes a cycle)."""
    config = _config()
    with _errors():
        _scheduler(config).add_dependency(spec_id, item_id, dep_id)
    _journal(config, item_id, "item.depend", {"depends_on": dep_id}, spec_id=spec_id)
    typer.echo(f"  {spec_id}/{item_id} now depends on {dep_id}")


@tasks_app.command("list")
def tasks_list(
    spec_id: str = typer.Option(None, "--spec", help="Only this spec"),
    status: str = typer.Option(None, "--status", help="pending | in_progress | done | blocked"),
    as_json: bool = typer.Option(False, "--json", help="Output JSON"),
):
    """List work items."""
    from .models import WorkStatus

    config = _config()
    with _errors():
        wanted = WorkStatus(status) if status else None
        snap = _scheduler(config).snapshot(spec_id)
    items = [i for i in snap.items if wanted is None or i.status == wanted]

    if as_json:
        typer.echo(json.dumps([_item_dict(i) for i in items], indent=2, ensure_ascii=False))
        return
    for s in snap.skipped:
        typer.secho(f"  Skipped {s.ref}: {s.reason}", fg=typer.colors.YELLOW, err=True)
    if not items:
        typer.echo("  No work items found.")
        return
    for item in items:
        _echo_item(item)


@app.command()
def deps(spec_id: str = typer.Option(None, "--spec", help="Only this spec")):
    """Show the dependency graph and any cycles."""
    from .dag import poisoned_specs
    from .models import format_key

    config = _config()
    with _errors():
        snap = _scheduler(config).snapshot(spec_id)
    if not snap.items:
        typer.echo("  No work items found.")
        return

    known = {i.key for i in snap.items}
    typer.echo("\n  Dependency Graph")
    typer.echo("  " + "─" * 40)
    for item in sorted(snap.items, key=lambda i: i.key):
        if not item.depends_on:
            typer.echo(f"  {format_key(item.key)} (root)")
            continue
        rendered = [
            d if (item.spec_id, d) in known else f"{d} (unknown)" for d in item.depends_on
        ]
        typer.echo(f"  {format_key(item.key)} ← {', '.join(rendered)}")
    for cycle_spec, cycle in poisoned_specs(snap.items).items():
        typer.secho(
            f"  Cycle in {cycle_spec}: {' -> '.join(format_key(k) for k in cycle)}",
            fg=typer.colors.RED,
        )
    typer.echo("")


# --- scheduling ----------------------------------------------------

@app.command("next")
def next_item(
    spec_id: str = typer.Option(None, "--spec", help="Only this spec"),
    as_json: bool = typer.Option(False, "--json", help="Output JSON"),
):
    """Show the next unblocked, most urgent work item."""
    config = _config()
    with _errors():
        selection, snap = _scheduler(config).next(spec_id)
    if as_json:
        typer.echo(json.dumps(_selection_dict(selection, snap), indent=2, ensure_ascii=False))
        return
    _echo_selection(selection, snap)


@app.command()
def wave(
    spec_id: str = typer.Option(None, "--spec", help="Only this spec"),
    as_json: bool = typer.Option(False, "--json", help="Output JSON"),
):
    """Show every unblocked item at the most urgent priority (safe to run in parallel)."""
    config = _config()
    with _errors():
        selection, snap = _scheduler(config).wave(spec_id)
    if as_json:
        typer.echo(json.dumps(_selection_dict(selection, snap), indent=2, ensure_ascii=False))
        return
    _echo_selection(selection, snap)


@app.command()
def begin(
    spec_id: str = typer.Argument(..., help="Spec ID"),
    item_id: str = typer.Argument(..., help="Work item ID"),
):
    """Mark a pending item in progress (call before executing it)."""
    config = _config()
    with _errors():
        _scheduler(config).begin(spec_id, item_id)
    _journal(config, item_id, "begin", spec_id=spec_id)
    typer.echo(f"  🔄 {spec_id}/{item_id} in progress.")


@app.command()
def complete(
    spec_id: str = typer.Argument(..., help="Spec ID"),
    item_id: str = typer.Argument(..., help="Work item ID"),
):
    """Mark an in-progress item done (cascades to finished sessions)."""
    config = _config()
    with _errors():
        finished = _scheduler(config).complete(spec_id, item_id)
    for item in finished:
        _journal(config, item.id, "complete", {"cascade": item.id != item_id}, spec_id=spec_id)
        typer.echo(f"  ✅ {spec_id}/{item.id} done.")


@app.command()
def fail(
    spec_id: str = typer.Argument(..., help="Spec ID"),
    item_id: str = typer.Argument(..., help="Work item ID"),
    final: bool = typer.Option(False, "--final", help="Do not retry; block the item"),
    reason: str = typer.Option("", "--reason", help="Failure description"),
):
    """Record a failed attempt: back to pending while retries remain, else blocked."""
    config = _config()
    with _errors():
        outcome = _scheduler(config).fail(spec_id, item_id, retriable=not final, reason=reason)
    _journal(config, item_id, "fail",
             {"final": outcome.final, "retry_count": outcome.item.retry_count, "reason": reason},
             spec_id=spec_id)
    if outcome.final:
        typer.secho(f"  ❌ {spec_id}/{item_id} blocked.", fg=typer.colors.RED)
        raise typer.Exit(1)
    typer.echo(
        f"  ⏳ {spec_id}/{item_id} back to pending "
        f"(retry {outcome.item.retry_count}/{config.scheduler.max_retries})."
    )


@app.command()
def retry(
    spec_id: str = typer.Argument(..., help="Spec ID"),
    item_id: str = typer.Argument(..., help="Work item ID"),
):
    """Return a blocked item to pending."""
    config = _config()
    with _errors():
        _scheduler(config).retry(spec_id, item_id)
    _journal(config, item_id, "retry", {"manual": True}, spec_id=spec_id)
    typer.echo(f"  🔄 {spec_id}/{item_id} set to pending for retry.")


# --- log entries ---------------------------------------------------

@log_app.command("add")
def log_add(
    title: str = typer.Argument(..., help="Entry title"),
    anchors: list[str] = typer.Option(..., "--anchor", "-a", help="Anchor path (repeatable)"),
    body: str = typer.Option("", "--body", help="Markdown body"),
    scope: str = typer.Option(None, "--scope", help="Subdirectory under the logs dir"),
):
    """Record a new log entry anchored to source files."""
    config = _config()
    with _errors():
        entry = _tracker(config).record(title, body, anchors, scope)
    _journal(config, entry.id, "log.add", {"anchors": entry.anchors})
    typer.echo(f"  Created {entry.path}")


@log_app.command("list")
def log_list(
    status: str = typer.Option(None, "--status", help="fresh | stale | orphaned | unknown"),
    scope: str = typer.Option(None, "--scope", help="Subdirectory under the logs dir"),
    as_json: bool = typer.Option(False, "--json", help="Output JSON"),
):
    """List log entries with their staleness state."""
    from .models import Freshness

    config = _config()
    tracker = _tracker(config)
    with _errors():
        wanted = Freshness(status) if status else None
    entries, skipped = tracker.load_entries(scope)
    reports = [tracker.inspect(e) for e in entries]
    reports = [r for r in reports if wanted is None or r.state == wanted]

    if as_json:
        typer.echo(json.dumps([
            {
                "id": r.entry.id,
                "path": r.entry.path,
                "state": r.state.value,
                "anchors": [
                    {"path": a.path, "exists": a.exists, "stale": a.stale} for a in r.anchors
                ],
            }
            for r in reports
        ], indent=2, ensure_ascii=False))
        return
    for s in skipped:
        typer.secho(f"  Skipped {s.ref}: {s.reason}", fg=typer.colors.YELLOW, err=True)
    if not reports:
        typer.echo("  No log entries found.")
        return
    for r in reports:
        icon = STATUS_ICONS.get(r.state.value, "  ")
        typer.echo(f"  {icon} {r.state.value:<9} {r.entry.id:<36} {r.entry.path}")


@log_app.command("search")
def log_search(
    term: str = typer.Argument(..., help="Text to look for (case-insensitive)"),
    scope: str = typer.Option(None, "--scope", help="Subdirectory under the logs dir"),
    as_json: bool = typer.Option(False, "--json", help="Output JSON"),
):
    """Search log entry bodies and show where each match is anchored."""
    config = _config()
    with _errors():
        hits, skipped = _tracker(config).search(term, scope)

    if as_json:
        typer.echo(json.dumps([
            {
                "id": h.report.entry.id,
                "path": h.report.entry.path,
                "state": h.report.state.value,
                "anchors": list(h.report.entry.anchors),
                "snippet": h.snippet,
            }
            for h in hits
        ], indent=2, ensure_ascii=False))
        return
    for s in skipped:
        typer.secho(f"  Skipped {s.ref}: {s.reason}", fg=typer.colors.YELLOW, err=True)
    if not hits:
        typer.echo(f"  No log entries match '{term}'.")
        return
    for h in hits:
        icon = STATUS_ICONS.get(h.report.state.value, "  ")
        typer.echo(f"  {icon} {h.report.entry.path} [{h.report.state.value}]")
        typer.echo(f"     Anchors: {', '.join(h.report.entry.anchors)}")
        typer.echo(f"     {h.snippet}")


@log_app.command("classify")
def log_classify(entry_id: str = typer.Argument(..., help="Log entry ID")):
    """Show the staleness state of one entry and each of its anchors."""
    config = _config()
    tracker = _tracker(config)
    with _errors():
        report = tracker.inspect(tracker.find(entry_id))

    typer.echo(f"\n  {report.entry.id} ({report.entry.path})")
    typer.echo(f"  State: {STATUS_ICONS.get(report.state.value, '')} {report.state.value}")
    if report.entry_time:
        typer.echo(f"  Entry time: {report.entry_time.isoformat()}")
    if report.error:
        typer.secho(f"  {report.error}", fg=typer.colors.YELLOW)
    typer.echo("  Anchors:")
    for anchor in report.anchors:
        label = "missing" if not anchor.exists else "stale" if anchor.stale else "ok"
        when = f"  {anchor.timestamp.isoformat()}" if anchor.timestamp else ""
        typer.echo(f"    [{label}] {anchor.path}{when}")
    typer.echo("")


@log_app.command("verify")
def log_verify(entry_id: str = typer.Argument(..., help="Log entry ID")):
    """Confirm an entry is still accurate (re-stamps its entry time)."""
    config = _config()
    tracker = _tracker(config)
    with _errors():
        entry = tracker.verify(tracker.find(entry_id))
    _journal(config, entry.id, "log.verify")
    typer.echo(f"  ✅ {entry.id} verified.")


@log_app.command("rebuild")
def log_rebuild(
    scope: str = typer.Option(None, "--scope", help="Subdirectory under the logs dir"),
):
    """Delete orphaned entries, prune vanished anchors and regenerate the index."""
    config = _config()
    with _errors():
        report = _tracker(config).rebuild(scope)
    counts = report.counts()
    _journal(config, scope or "*", "log.rebuild", counts)

    for s in report.skipped:
        typer.secho(f"  Skipped {s.ref}: {s.reason}", fg=typer.colors.YELLOW, err=True)
    for path in report.deleted:
        typer.echo(f"  Deleted {path}")
    for path in report.pruned:
        typer.echo(f"  Pruned  {path}")
    typer.echo(
        f"  {counts['valid']} valid, {counts['pruned']} pruned, "
        f"{counts['deleted']} deleted, {counts['skipped']} skipped"
    )
    typer.echo(f"  Index: {report.index_path}")


@log_app.command("index")
def log_index():
    """Regenerate the log index."""
    config = _config()
    with _errors():
        path = _tracker(config).reindex()
    typer.echo(f"  Wrote {path}")


# --- misc ----------------------------------------------------------

@app.command()
def history(
    spec_id: str = typer.Argument(None, help="Spec ID"),
    subject: str = typer.Argument(None, help="Work item or log entry ID"),
):
    """Show journal events."""
    from .db import Journal

    config = _config()
    if not config.journal_path.exists():
        typer.echo("  No history yet.")
        return

    async def _history():
        async with Journal(str(config.journal_path)) as journal:
            return await journal.get_events(subject=subject, spec_id=spec_id)

    events = _run_async(_history())
    if not events:
        typer.echo("  No matching events.")
        return
    for entry in events:
        ref = f"{entry['spec_id']}/{entry['subject']}" if entry["spec_id"] else entry["subject"]
        typer.echo(f"  [{entry['created_at']}] {entry['event']:<12} {ref}")
        if entry.get("detail"):
            typer.echo(f"    {json.dumps(entry['detail'], ensure_ascii=False)}")


@app.command("config")
def config_show():
    """Show merged configuration."""
    import yaml
    from dataclasses import asdict

    with _errors():
        config = _config()
    data = asdict(config)

    typer.echo("\n  kitq — Merged Configuration")
    typer.echo("  " + "─" * 40)
    typer.echo(yaml.dump(data, default_flow_style=False, allow_unicode=True))


if __name__ == "__main__":
    app()
