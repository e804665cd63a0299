"""actionpin CLI — pin third-party CI actions and keep their bindings in sync."""

from typing import Callable, TypeVar

import click
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from actionpin import __version__
from actionpin.config import Settings
from actionpin.errors import ConfigError, ManifestCorruptError
from actionpin.log import configure_logging
from actionpin.manifest.store import ManifestStore
from actionpin.provider import GitProvider, SourceProvider
from actionpin.sync.engine import SyncEngine, SyncReport
from actionpin.sync.orchestrator import BindingOrchestrator

console = Console()

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_FATAL = 2

_STATUS_STYLE = {
    "created": "green",
    "updated": "cyan",
    "unchanged": "dim",
    "removed": "yellow",
    "not_found": "yellow",
    "failed": "red",
}

T = TypeVar("T")


def make_provider(settings: Settings) -> SourceProvider:
    return GitProvider(token=settings.token, host=settings.git_host)


def build_engine(settings: Settings) -> SyncEngine:
    orchestrator = BindingOrchestrator(
        make_provider(settings),
        project_dir=settings.project_dir,
        bindings_dir=settings.bindings_dir,
    )
    return SyncEngine(ManifestStore(settings.manifest_path), orchestrator)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--project-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Project root (default: nearest directory containing .git)",
)
@click.option("--manifest", default=None, help="Manifest path (default: .github/actionpin.json)")
@click.option("--bindings-dir", default=None, help="Bindings directory (default: .github/actions)")
@click.option("--token", default=None, help="Access token for private repositories (default: $GITHUB_TOKEN)")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def main(ctx, project_dir, manifest, bindings_dir, token, verbose):
    """actionpin — pin CI actions to commits and generate typed bindings.

    Every tracked action is recorded in a manifest with the exact commit it
    resolved to; bindings are regenerated from that pin, never from a
    moving tag.
    """
    configure_logging(verbose)
    try:
        ctx.obj = Settings.load(
            project_dir=project_dir,
            manifest=manifest,
            bindings_dir=bindings_dir,
            token=token,
        )
    except ConfigError as exc:
        raise click.UsageError(str(exc)) from exc


# ── Add ──────────────────────────────────────────────────────────────


@main.command()
@click.argument("refs", nargs=-1, required=True)
@click.option("--name", default=None, help="Binding name to use instead of the derived one")
@click.pass_obj
def add(settings: Settings, refs: tuple[str, ...], name: str | None):
    """Track actions and generate their bindings.

    Each REF is owner/repo[/path][@ref]. Without @ref the latest version
    tag is used.
    """
    if name is not None and len(refs) != 1:
        raise click.UsageError("--name can only be used with a single reference")

    engine = build_engine(settings)
    report = _run(lambda: engine.add(list(refs), name=name))
    _finish(report)


# ── Remove ───────────────────────────────────────────────────────────


@main.command()
@click.argument("ref")
@click.option("--keep-files", is_flag=True, help="Keep the generated binding file")
@click.pass_obj
def remove(settings: Settings, ref: str, keep_files: bool):
    """Stop tracking an action and delete its binding."""
    engine = build_engine(settings)
    report = _run(lambda: engine.remove(ref, keep_files=keep_files))
    _finish(report)


# ── Update ───────────────────────────────────────────────────────────


@main.command()
@click.argument("ref", required=False)
@click.option("--all", "update_all", is_flag=True, help="Update every tracked action")
@click.option("--latest", is_flag=True, help="Move to the latest version tag")
@click.pass_obj
def update(settings: Settings, ref: str | None, update_all: bool, latest: bool):
    """Re-resolve tracked actions and refresh their bindings.

    REF@newref moves an action to a new ref; without a ref the recorded one
    is resolved again.
    """
    if bool(ref) == update_all:
        raise click.UsageError("Give exactly one of REF or --all")

    engine = build_engine(settings)
    report = _run(lambda: engine.update(None if update_all else ref, latest=latest))
    _finish(report)


# ── Regenerate ───────────────────────────────────────────────────────


@main.command()
@click.argument("pattern", required=False)
@click.option("--prune", is_flag=True, help="Delete generated bindings the manifest no longer tracks")
@click.pass_obj
def regenerate(settings: Settings, pattern: str | None, prune: bool):
    """Rewrite bindings from their pinned commits.

    PATTERN is a glob matched against tracked keys (e.g. 'actions/*').
    Bindings whose content is already current are left untouched.
    """
    engine = build_engine(settings)
    report = _run(lambda: engine.regenerate_all(pattern, prune=prune))
    for path in report.pruned:
        console.print(f"  [yellow]-[/] pruned {path}")
    _finish(report)


# ── List ─────────────────────────────────────────────────────────────


@main.command(name="list")
@click.pass_obj
def list_cmd(settings: Settings):
    """Show tracked actions and their pins."""
    engine = build_engine(settings)
    entries = _run(engine.list_entries)

    if not entries:
        console.print("[yellow]No actions tracked.[/]")
        return

    table = Table(title=f"Tracked Actions ({len(entries)})")
    table.add_column("Action", style="cyan")
    table.add_column("Requested")
    table.add_column("Resolved", style="green")
    table.add_column("Binding")
    table.add_column("File", style="dim")

    for entry in entries:
        table.add_row(
            entry.key,
            entry.requested_ref or "latest",
            f"{entry.resolved_tag or '-'} ({entry.resolved_sha[:12]})",
            entry.binding_name,
            entry.output_file_path,
        )

    console.print(table)


# ── Check ────────────────────────────────────────────────────────────


@main.command()
@click.pass_obj
def check(settings: Settings):
    """Detect bindings that drifted from the manifest.

    Exits 1 if any tracked binding is missing or edited, or if a generated
    binding is not tracked.
    """
    engine = build_engine(settings)
    result = _run(engine.check)

    for report in result.reports:
        if report.has_drift:
            console.print(f"  [red]x[/] {escape(report.summary())}")
            for detail in report.details:
                console.print(f"      {escape(detail)}")
        else:
            console.print(f"  [green]v[/] {escape(report.summary())}")

    for path in result.untracked:
        console.print(f"  [yellow]![/] untracked binding {path}")

    if result.clean:
        console.print("\n[green]No drift.[/]")
    else:
        console.print("\n[red]Drift detected.[/] Run 'actionpin regenerate' to repair.")
        click.get_current_context().exit(EXIT_FAILED)


# ── Helpers ──────────────────────────────────────────────────────────


def _run(action: Callable[[], T]) -> T:
    """Run an engine call, mapping fatal manifest errors to exit code 2."""
    try:
        return action()
    except ManifestCorruptError as exc:
        console.print(f"[red]Manifest error:[/] {escape(str(exc))}")
        console.print("The file was left untouched. Fix or restore it and run the command again.")
    except OSError as exc:
        logger.error(f"I/O error: {exc}")
        console.print(f"[red]I/O error:[/] {escape(str(exc))}")
    click.get_current_context().exit(EXIT_FATAL)


def _finish(report: SyncReport) -> None:
    if report.outcomes:
        table = Table()
        table.add_column("Action", style="cyan")
        table.add_column("Status")
        table.add_column("Pin")
        table.add_column("File", style="dim")
        table.add_column("Message")
        for outcome in report.outcomes:
            style = _STATUS_STYLE.get(outcome.status.value, "")
            table.add_row(
                outcome.key,
                f"[{style}]{outcome.status.value}[/]" if style else outcome.status.value,
                outcome.sha[:12],
                outcome.output_file_path,
                escape(outcome.message),
            )
        console.print(table)

    summary = ", ".join(f"{count} {status}" for status, count in report.counts.items() if count)
    console.print(f"{summary or 'nothing to do'}; {report.writes} file(s) written")

    if report.exit_code != EXIT_OK:
        click.get_current_context().exit(report.exit_code)
