"""AsyncClick CLI for the audit workflow.

Provides user-facing commands:
- summary: Totals and audit progress of a scan result
- tree: Directory view with filtered counts
- ranking: Component ranking with filtered counts
- files: Files of a directory or component with their status
- decide: Accept or ignore a file's match
- export: Write the CSV report with deep links
- show: Matched file content with highlighted lines
- api-key: Show, set or reset the stored API key
"""

import logging

import asyncclick as click
import structlog

from scanaudit.core.config import load_config
from scanaudit.core.errors import LoadError, NoAuditableMatchError, PersistenceError, ScanAuditError
from scanaudit.core.filters import (
    FilterMode,
    FilterState,
    ViewContext,
    ViewMode,
    common_path_suffix,
    files_for_entry,
    files_in_directory,
    ranking_lines,
    tree_lines,
)
from scanaudit.core.ledger import AuditLedger
from scanaudit.core.preferences import (
    API_KEY,
    FilePreferenceStore,
    Preferences,
    mask_api_key,
    resolve_api_key,
    validate_api_key,
)
from scanaudit.core.store import ScanDataStore
from scanaudit.core.summary import summarize
from scanaudit.core.views import build_component_ranking, build_directory_tree, find_node
from scanaudit.export.engine import ExportEngine, default_csv_path
from scanaudit.export.task import ExportCoordinator
from scanaudit.remote.content import load_match_content, scan_has_content_urls

logger = structlog.get_logger()

FILTER_CHOICES = click.Choice([mode.value for mode in FilterMode], case_sensitive=False)


def configure_logging(verbosity: int) -> None:
    """Filter log events by level: warnings by default, -v info, -vv debug."""
    levels = {0: logging.WARNING, 1: logging.INFO}
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(levels.get(verbosity, logging.DEBUG)),
    )


def load_store(ctx, path: str) -> ScanDataStore:
    """Load a scan result or exit with an error message."""
    try:
        return ScanDataStore.load(path)
    except LoadError as e:
        click.echo(f"[-] {e}")
        ctx.exit(1)


def current_api_key(ctx) -> str:
    config = ctx.obj["config"]
    return config.api_key or resolve_api_key(ctx.obj["preferences"])


async def prompt_api_key(ctx) -> str:
    """Ask for an API key on the terminal, store it and return it.

    An empty answer keeps metadata-only mode.
    """
    entered = await click.prompt(
        "API key (leave empty to skip)", default="", show_default=False, hide_input=True
    )
    return resolve_api_key(ctx.obj["preferences"], lambda: entered or None)


def filter_state(ctx, view_mode: ViewMode, mode: str | None, hide_decided: bool) -> FilterState:
    state = FilterState(view_mode=view_mode, preferences=ctx.obj["preferences"].store)
    if mode is not None:
        state.mode = FilterMode(mode.lower())
        state.set_view_mode(view_mode)
    if hide_decided:
        state.hide_decided = True
    return state


@click.group()
@click.option("--preferences", "preferences_path", default=None,
              help="Preference file (default: ~/.scanaudit)")
@click.option("--verbose", "-v", count=True, help="Show log events (-v info, -vv debug)")
@click.pass_context
async def cli(ctx, preferences_path: str | None, verbose: int):
    """scanaudit - Review and audit open-source provenance scan results"""
    ctx.ensure_object(dict)
    configure_logging(verbose)
    config = load_config()
    if preferences_path:
        config.preferences_path = preferences_path
    ctx.obj["config"] = config
    ctx.obj["preferences"] = Preferences(FilePreferenceStore(config.preferences_path))


@cli.command()
@click.argument("scan_file", type=click.Path(dir_okay=False))
@click.pass_context
async def summary(ctx, scan_file: str):
    """Show totals and audit progress.

    Examples:
        scanaudit summary results.json
    """
    store = load_store(ctx, scan_file)
    totals = summarize(store)

    click.echo(f"[*] Scan result: {scan_file}")
    click.echo(f"[+] Total files: {totals.total_files}")
    click.echo(f"[+] Matches: {totals.matched} "
               f"(file: {totals.file_matches}, snippet: {totals.snippet_matches})")
    click.echo(f"[+] No match: {totals.no_match}")
    click.echo(f"[+] Pending: {totals.pending}")
    click.echo(f"[+] Identified: {totals.identified}")
    click.echo(f"[+] Ignored: {totals.ignored}")
    click.echo(f"[+] Progress: {totals.audited}/{totals.matched} ({totals.progress:.1f}%)")

    if not scan_has_content_urls(store):
        click.echo("[!] Scan has no file URLs: file contents are not available")
    elif not current_api_key(ctx):
        click.echo("[!] No API key configured: running in metadata-only mode")


@cli.command()
@click.argument("scan_file", type=click.Path(dir_okay=False))
@click.argument("directory", default="")
@click.option("--filter", "-f", "mode", type=FILTER_CHOICES, default=None,
              help="File filter (default: stored preference or 'all')")
@click.option("--hide-decided", is_flag=True, help="Hide identified and ignored files")
@click.option("--collapsed", is_flag=True, help="Show top-level directories only")
@click.pass_context
async def tree(ctx, scan_file: str, directory: str, mode: str | None, hide_decided: bool,
               collapsed: bool):
    """Show the directory view with filtered file counts.

    DIRECTORY limits the view to the subdirectories of one directory.

    Examples:
        scanaudit tree results.json
        scanaudit tree results.json src/net
        scanaudit tree results.json -f pending --hide-decided
    """
    store = load_store(ctx, scan_file)
    view = ViewContext(store, filter_state(ctx, ViewMode.DIRECTORIES, mode, hide_decided))
    root = build_directory_tree(store)
    directory = directory.strip("/")
    if directory:
        root = find_node(root, directory)
        if root is None:
            click.echo(f"[-] Directory not found: {directory}")
            ctx.exit(1)

    expanded = {} if collapsed else {node.path: True for node in root.walk()}
    lines = tree_lines(view, root, expanded)

    click.echo(f"[*] Filter: {view.state.mode.value}")
    if not lines:
        click.echo("[!] No directories match the current filter")
    for line in lines:
        click.echo(f"{'  ' * line.depth}{line.label}")


@cli.command()
@click.argument("scan_file", type=click.Path(dir_okay=False))
@click.option("--filter", "-f", "mode", type=click.Choice(["matched", "pending"]),
              default=None, help="File filter (default: matched)")
@click.pass_context
async def ranking(ctx, scan_file: str, mode: str | None):
    """Show components ranked by number of matched files.

    Examples:
        scanaudit ranking results.json -f pending
    """
    store = load_store(ctx, scan_file)
    view = ViewContext(store, filter_state(ctx, ViewMode.RANKING, mode, False))
    lines = ranking_lines(view, build_component_ranking(store))

    click.echo(f"[*] Filter: {view.state.mode.value}")
    if not lines:
        click.echo("[!] No components match the current filter")
    for line in lines:
        click.echo(f"    {line.label}")


@cli.command()
@click.argument("scan_file", type=click.Path(dir_okay=False))
@click.argument("selector", default="")
@click.option("--purl", is_flag=True, help="Treat SELECTOR as a package identifier")
@click.option("--filter", "-f", "mode", type=FILTER_CHOICES, default=None, help="File filter")
@click.option("--hide-decided", is_flag=True, help="Hide identified and ignored files")
@click.pass_context
async def files(ctx, scan_file: str, selector: str, purl: bool, mode: str | None,
                hide_decided: bool):
    """List files of a directory (or component) with their audit status.

    SELECTOR is a directory path ("" for root files) or, with --purl, a
    package identifier from the ranking.

    Examples:
        scanaudit files results.json src/lib
        scanaudit files results.json pkg:github/scanoss/engine --purl
    """
    store = load_store(ctx, scan_file)

    if purl:
        view = ViewContext(store, filter_state(ctx, ViewMode.RANKING, mode, False))
        entry = next((e for e in build_component_ranking(store) if e.purl == selector), None)
        if entry is None:
            click.echo(f"[-] Component not found: {selector}")
            ctx.exit(1)
        rows = files_for_entry(view, entry)
    else:
        view = ViewContext(store, filter_state(ctx, ViewMode.DIRECTORIES, mode, hide_decided))
        rows = files_in_directory(view, selector.strip("/"))

    click.echo(f"[*] Filter: {view.state.mode.value}")
    if not rows:
        click.echo("[!] No files match the current filter")
    for row in rows:
        line = f"{row.icon} {row.path}"
        if row.match is not None:
            shared = common_path_suffix(row.path, row.match.file)
            if shared and shared != row.path:
                line += f"  (matches .../{shared})"
        click.echo(line)


@cli.command()
@click.argument("scan_file", type=click.Path(dir_okay=False))
@click.argument("path")
@click.option("--accept", "outcome", flag_value="identified", help="Accept (identify) the match")
@click.option("--ignore", "outcome", flag_value="ignored", help="Ignore the match")
@click.option("--comment", "-c", default=None, help="Assessment comment")
@click.pass_context
async def decide(ctx, scan_file: str, path: str, outcome: str | None, comment: str | None):
    """Record an audit decision for a file.

    Examples:
        scanaudit decide results.json src/util.c --accept
        scanaudit decide results.json src/util.c --ignore -c "vendored test fixture"
    """
    if outcome is None:
        click.echo("[-] Choose one of --accept or --ignore")
        ctx.exit(1)

    store = load_store(ctx, scan_file)
    ledger = AuditLedger(store)

    try:
        ack = ledger.record_decision(path, outcome, comment)
    except NoAuditableMatchError as e:
        click.echo(f"[!] {e}")
        ctx.exit(1)
    except PersistenceError as e:
        click.echo(f"[-] {e}")
        click.echo("[-] Decision was NOT saved")
        ctx.exit(1)

    click.echo(f"[+] {path}: {ack.status.label} ({ack.history_length} decision(s) recorded)")
    if ack.decision.assessment:
        click.echo(f"[+] Comment: {ack.decision.assessment}")


@cli.command()
@click.argument("scan_file", type=click.Path(dir_okay=False))
@click.option("--output", "-o", default=None, help="CSV file (default: scan file with .csv)")
@click.pass_context
async def export(ctx, scan_file: str, output: str | None):
    """Export audit results to CSV with deep links.

    Examples:
        scanaudit export results.json
        scanaudit export results.json -o audit.csv
    """
    store = load_store(ctx, scan_file)
    destination = output or str(default_csv_path(scan_file))

    click.echo(f"[*] Exporting {len(store)} files to {destination}")

    coordinator = ExportCoordinator(ExportEngine(ctx.obj["config"]))
    task = coordinator.start(store, destination)

    async for event in task:
        if event.repository:
            click.echo(f"[*] Checking default branch for {event.repository}...")

    try:
        report = await task.result()
    except ScanAuditError as e:
        logger.error("cli_export_failed", destination=destination, error=str(e))
        click.echo(f"[-] {e}")
        ctx.exit(1)

    click.echo(f"[+] Exported {report.rows} files ({report.deeplink_columns} deeplink column(s))")
    click.echo(f"[+] Report: {report.destination}")


@cli.command()
@click.argument("scan_file", type=click.Path(dir_okay=False))
@click.argument("path")
@click.option("--ask-key", is_flag=True, help="Prompt for an API key when none is configured")
@click.pass_context
async def show(ctx, scan_file: str, path: str, ask_key: bool):
    """Show the matched file content with matched lines highlighted.

    Examples:
        scanaudit show results.json src/util.c
        scanaudit show results.json src/util.c --ask-key
    """
    store = load_store(ctx, scan_file)
    config = ctx.obj["config"]

    match = store.first_valid_match(path)
    if match is not None:
        click.echo(f"[*] Match: {match.match_type} {match.file}")
        click.echo(f"[*] PURL: {'; '.join(match.purl)}")
        click.echo(f"[*] License: {'; '.join(match.license_names)}")
        if match.line_ranges_text:
            click.echo(f"[*] Lines: {match.line_ranges_text}")

    api_key = current_api_key(ctx)
    if not api_key and ask_key:
        api_key = await prompt_api_key(ctx)

    view = await load_match_content(store, path, api_key, config.content_timeout)
    if not view.available:
        click.echo(f"[!] {view.message}")
        return
    click.echo(view.render())


@cli.group("api-key")
async def api_key():
    """Manage the stored scanning service API key."""


@api_key.command("status")
@click.pass_context
async def api_key_status(ctx):
    """Show whether an API key is configured."""
    config = ctx.obj["config"]
    stored = ctx.obj["preferences"].api_key

    if config.api_key:
        click.echo(f"[+] API key (environment): {mask_api_key(config.api_key)}")
    if stored:
        click.echo(f"[+] API key (preferences): {mask_api_key(stored)}")
    if not config.api_key and not stored:
        click.echo("[!] No API key configured: running in metadata-only mode")
    click.echo(f"[*] Preference file: {config.preferences_path}")


@api_key.command("set")
@click.argument("key")
@click.pass_context
async def api_key_set(ctx, key: str):
    """Store an API key in the preference file."""
    if not validate_api_key(key):
        click.echo("[-] API key must be at least 10 characters")
        ctx.exit(1)

    try:
        ctx.obj["preferences"].api_key = key
    except OSError as e:
        click.echo(f"[-] Error saving API key: {e}")
        ctx.exit(1)

    click.echo(f"[+] API key saved: {mask_api_key(key)}")


@api_key.command("reset")
@click.pass_context
async def api_key_reset(ctx):
    """Remove the stored API key."""
    try:
        ctx.obj["preferences"].store.set(API_KEY, "")
    except OSError as e:
        click.echo(f"[-] Error resetting API key: {e}")
        ctx.exit(1)

    click.echo("[+] API key removed")


if __name__ == "__main__":
    cli()
