from __future__ import annotations

import json
import logging
from typing import Optional, Tuple

import click
from tabulate import tabulate

from navlib.config import Config, ConfigError, load_config
from navlib.controller import Selection
from navlib.errors import (
    NavigationError,
    format_config_error,
    format_error_message,
    suggest_troubleshooting_steps,
)
from navlib.models import FORM_MODES, TAB_MODES
from navlib.persistence import JsonFileStorage, NavigationTabStore
from navlib.router import InMemoryRouter
from navlib.session import NavigationSession
from navlib.url_codec import parse_query_string


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--json-output",
    "json_output",
    is_flag=True,
    help="Output JSON instead of tables (pretty-printed)",
)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    help="Enable verbose logging to stderr (what the CLI is doing)",
)
@click.pass_context
def cli(ctx: click.Context, json_output: bool, verbose: bool) -> None:
    """Multi-window navigation URL tool.

    Decode, recover and mutate navigation URLs using window definitions loaded
    via XDG or the NAVCTL_CONFIG environment variable. JSON output is always
    pretty-printed.
    """
    ctx.ensure_object(dict)
    ctx.obj["json"] = json_output
    ctx.obj["verbose"] = verbose

    # Configure logging once per process
    level = logging.INFO if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def _load(log: logging.Logger) -> Config:
    try:
        log.info("Loading config...")
        cfg = load_config()
        log.info("Loaded config from %s", getattr(cfg, "source_path", "<unknown>"))
    except ConfigError as e:
        click.echo(format_config_error(e), err=True)
        raise SystemExit(2)
    return cfg


def _session(cfg: Config, url: str) -> NavigationSession:
    store = NavigationTabStore(JsonFileStorage(cfg.storage_path()))
    return NavigationSession(InMemoryRouter(url), cfg.metadata, store=store, base_path=cfg.base_path)


def _fail(ctx: click.Context, operation: str, error: Exception, context: dict) -> None:
    click.echo(format_error_message(operation, error, context), err=True)
    if ctx.obj.get("verbose"):
        suggestions = suggest_troubleshooting_steps(operation, error)
        if suggestions:
            click.echo("\nTroubleshooting suggestions:", err=True)
            for suggestion in suggestions[:3]:  # Show top 3 suggestions
                click.echo(f"  • {suggestion}", err=True)
    raise SystemExit(2)


def _echo_url(ctx: click.Context, session: NavigationSession) -> None:
    router = session.router
    session.recover()  # refreshes the shell cache and drops stale state
    url = router.url  # type: ignore[attr-defined]
    params = parse_query_string(url)

    if ctx.obj.get("json"):
        out = {"url": url, "params": [[k, v] for k, v in params]}
        click.echo(json.dumps(out, indent=2, sort_keys=True))
        return

    click.echo(url)
    if params:
        click.echo()
        click.echo(tabulate(params, headers=["KEY", "VALUE"]))


# WINDOWS commands


@cli.group()
@click.pass_context
def windows(ctx: click.Context) -> None:  # noqa: D401
    """Inspect the windows encoded in a URL."""
    pass


@windows.command("list")
@click.argument("url")
@click.pass_context
def windows_list(ctx: click.Context, url: str) -> None:
    """List open windows in tab-bar order."""
    log = logging.getLogger("navctl.windows")
    cfg = _load(log)
    session = _session(cfg, url)

    summaries = session.controller.open_windows()
    log.info("Found %d windows", len(summaries))

    if ctx.obj.get("json"):
        out = {
            "windows": [
                {
                    "identifier": s.window_identifier,
                    "window_id": s.window_id,
                    "order": s.order,
                    "active": s.is_active,
                    "title": s.title,
                }
                for s in summaries
            ]
        }
        click.echo(json.dumps(out, indent=2, sort_keys=True))
        return

    if not summaries:
        click.echo("No windows open")
        return

    rows = [
        [s.order, s.window_identifier, s.window_id, s.title, "yes" if s.is_active else "—"]
        for s in summaries
    ]
    log.info("Rendering table output for %d windows", len(rows))
    click.echo(tabulate(rows, headers=["ORDER", "IDENTIFIER", "WINDOW", "TITLE", "ACTIVE"]))


@windows.command("show")
@click.argument("url")
@click.argument("identifier")
@click.pass_context
def windows_show(ctx: click.Context, url: str, identifier: str) -> None:
    """Recover one window and show its tab hierarchy."""
    log = logging.getLogger("navctl.windows")
    cfg = _load(log)
    session = _session(cfg, url)

    log.info("Recovering windows from URL")
    recovered = {w.window_identifier: w for w in session.recover()}
    window = recovered.get(identifier)
    if window is None:
        click.echo(f"Window not open: {identifier}", err=True)
        raise SystemExit(2)

    run = session.orchestrator.run_for(identifier)
    state = session.recovery_state(identifier).value
    active_ids = set(window.navigation.active_tabs_by_level.values())

    if ctx.obj.get("json"):
        out = {
            "identifier": window.window_identifier,
            "window_id": window.window_id,
            "title": window.title,
            "active": window.is_active,
            "recovery": state,
            "active_tabs_by_level": {str(k): v for k, v in window.navigation.active_tabs_by_level.items()},
            "tabs": {
                tab_id: {
                    "level": tab.level,
                    "selected_record": tab.selected_record,
                    "mode": tab.form.effective_mode,
                    "form_record": tab.form.record_id,
                    "form_mode": tab.form.form_mode,
                }
                for tab_id, tab in window.tabs.items()
            },
        }
        if run is not None and run.error_message:
            out["recovery_error"] = run.error_message
        click.echo(json.dumps(out, indent=2, sort_keys=True))
        return

    if run is not None and run.error_message:
        click.echo(run.error_message, err=True)

    rows = []
    for tab_id, tab in window.tabs.items():
        rows.append(
            [
                tab.level if tab.level is not None else "—",
                tab_id,
                "yes" if tab_id in active_ids else "—",
                tab.selected_record or "—",
                tab.form.effective_mode,
                tab.form.record_id or "—",
            ]
        )
    log.info("Rendering %d tabs for '%s' (recovery %s)", len(rows), identifier, state)
    click.echo(f"{window.title or window.window_id} [{identifier}] recovery={state}")
    if not rows:
        click.echo("No tab state")
        return
    click.echo(tabulate(rows, headers=["LEVEL", "TAB", "ACTIVE", "SELECTED", "MODE", "FORM_RECORD"]))


# NAV commands


@cli.group()
@click.pass_context
def nav(ctx: click.Context) -> None:  # noqa: D401
    """Apply one navigation operation to a URL and print the result."""
    pass


def _parse_selection(value: Optional[str], open_form: bool = False) -> Optional[Selection]:
    if value is None:
        return None
    tab_id, sep, record_id = value.partition("=")
    if not sep or not tab_id or not record_id:
        raise click.BadParameter("expected TAB=RECORD", param_hint="--select")
    return Selection(tab_id=tab_id, record_id=record_id, open_form=open_form)


@nav.command("open")
@click.argument("url")
@click.argument("window_id")
@click.option("--select", "selection", help="Also select a record, as TAB=RECORD")
@click.option("--new-instance", is_flag=True, help="Open another instance even if the window is open")
@click.option("--form", "open_form", is_flag=True, help="Open the selected record in form mode (needs --select)")
@click.pass_context
def nav_open(
    ctx: click.Context, url: str, window_id: str, selection: Optional[str], new_instance: bool, open_form: bool
) -> None:
    """Open (or reactivate) a window."""
    log = logging.getLogger("navctl.nav")
    if open_form and selection is None:
        raise click.UsageError("--form needs --select")
    parsed = _parse_selection(selection, open_form)
    if new_instance and parsed is not None:
        raise click.UsageError("--select cannot be combined with --new-instance")
    cfg = _load(log)
    session = _session(cfg, url)

    if new_instance:
        identifier = session.controller.open_new_window_instance(window_id)
    elif parsed is not None:
        identifier = session.controller.open_window_and_select(window_id, parsed)
    else:
        identifier = session.controller.open_window(window_id)
    log.info("Window '%s' open as '%s'", window_id, identifier)
    _echo_url(ctx, session)


@nav.command("activate")
@click.argument("url")
@click.argument("identifier")
@click.pass_context
def nav_activate(ctx: click.Context, url: str, identifier: str) -> None:
    """Make an open window the visible one."""
    log = logging.getLogger("navctl.nav")
    cfg = _load(log)
    session = _session(cfg, url)
    session.controller.set_active_window(identifier)
    _echo_url(ctx, session)


@nav.command("select")
@click.argument("url")
@click.argument("identifier")
@click.argument("tab_id")
@click.argument("record_id")
@click.pass_context
def nav_select(ctx: click.Context, url: str, identifier: str, tab_id: str, record_id: str) -> None:
    """Select a record in a tab, clearing every child tab."""
    log = logging.getLogger("navctl.nav")
    cfg = _load(log)
    session = _session(cfg, url)
    log.info("Selecting %s in tab %s of %s", record_id, tab_id, identifier)
    session.controller.select_record_in_tab(identifier, tab_id, record_id)
    _echo_url(ctx, session)


@nav.command("unselect")
@click.argument("url")
@click.argument("identifier")
@click.argument("tab_id")
@click.pass_context
def nav_unselect(ctx: click.Context, url: str, identifier: str, tab_id: str) -> None:
    """Clear the selected record of a tab and of its children."""
    log = logging.getLogger("navctl.nav")
    cfg = _load(log)
    session = _session(cfg, url)
    session.controller.clear_selected_record(identifier, tab_id)
    _echo_url(ctx, session)


@nav.command("clear")
@click.argument("url")
@click.argument("identifier")
@click.argument("tab_ids", nargs=-1, required=True)
@click.pass_context
def nav_clear(ctx: click.Context, url: str, identifier: str, tab_ids: Tuple[str, ...]) -> None:
    """Remove selection and form state of exactly the given tabs."""
    log = logging.getLogger("navctl.nav")
    cfg = _load(log)
    session = _session(cfg, url)
    log.info("Clearing %d tabs of %s", len(tab_ids), identifier)
    session.controller.clear_children_selections(identifier, list(tab_ids))
    _echo_url(ctx, session)


@nav.command("close")
@click.argument("url")
@click.argument("identifier")
@click.pass_context
def nav_close(ctx: click.Context, url: str, identifier: str) -> None:
    """Close a window instance."""
    log = logging.getLogger("navctl.nav")
    cfg = _load(log)
    session = _session(cfg, url)
    session.controller.close_window(identifier)
    _echo_url(ctx, session)


@nav.command("mode")
@click.argument("url")
@click.argument("identifier")
@click.argument("tab_id")
@click.argument("mode", type=click.Choice(TAB_MODES))
@click.option("--record", "record_id", help="Record to open in form mode; defaults to the selection")
@click.option("--form-mode", type=click.Choice(FORM_MODES), help="Form sub-mode; derived from the record if omitted")
@click.pass_context
def nav_mode(
    ctx: click.Context,
    url: str,
    identifier: str,
    tab_id: str,
    mode: str,
    record_id: Optional[str],
    form_mode: Optional[str],
) -> None:
    """Switch a tab between table and form mode."""
    log = logging.getLogger("navctl.nav")
    cfg = _load(log)
    session = _session(cfg, url)
    try:
        session.controller.set_tab_mode(identifier, tab_id, mode, record_id=record_id, form_mode=form_mode)
    except NavigationError as e:
        _fail(ctx, "set tab mode", e, {"window": identifier, "tab": tab_id})
    _echo_url(ctx, session)


# TABS commands (cached shell)


@cli.group()
@click.pass_context
def tabs(ctx: click.Context) -> None:  # noqa: D401
    """Cached navigation tab shell."""
    pass


@tabs.command("list")
@click.pass_context
def tabs_list(ctx: click.Context) -> None:
    """Show the tab bar cached from the last recovered URL."""
    log = logging.getLogger("navctl.tabs")
    cfg = _load(log)
    store = NavigationTabStore(JsonFileStorage(cfg.storage_path()))
    cached = store.load()
    log.info("Loaded %d cached tabs from %s", len(cached), cfg.storage_path())

    if ctx.obj.get("json"):
        click.echo(json.dumps({"tabs": [t.to_dict() for t in cached]}, indent=2, sort_keys=True))
        return

    if not cached:
        click.echo("No cached tabs")
        return

    rows = [[t.title, t.window_id or "—", t.record_id or "—", t.url] for t in cached]
    click.echo(tabulate(rows, headers=["TITLE", "WINDOW", "RECORD", "URL"]))


@tabs.command("clear")
@click.pass_context
def tabs_clear(ctx: click.Context) -> None:
    """Forget the cached tab bar."""
    log = logging.getLogger("navctl.tabs")
    cfg = _load(log)
    NavigationTabStore(JsonFileStorage(cfg.storage_path())).clear()
    click.echo("Cleared cached tabs")


@cli.command()
@click.argument("url", required=False, default="/")
@click.pass_context
def tui(ctx: click.Context, url: str) -> None:
    """Launch the interactive navigation TUI."""
    try:
        from navtui.app import run_tui
        run_tui(url)
    except ImportError as e:
        click.echo(f"TUI dependencies not available: {e}", err=True)
        raise SystemExit(1)
    except Exception as e:
        error_msg = format_error_message("launch TUI", e, {})
        click.echo(error_msg, err=True)
        raise SystemExit(1)


def main() -> None:  # entry point
    cli(standalone_mode=True)


if __name__ == "__main__":  # pragma: no cover
    main()
