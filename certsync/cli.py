"""CLI entry point for certsync."""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Annotated

import typer
import yaml
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from certsync.config import CertSyncConfig, StripSettings, load_config
from certsync.config.loader import DEFAULT_CONFIG_TEMPLATE
from certsync.hashdir import (
    CertDirSync,
    CertSyncError,
    SyncOptions,
    SyncReport,
    create_labeler,
    snapshot,
)
from certsync.strip import StripFileSync
from certsync.watch import SourceWatcher

app = typer.Typer(
    name="certsync",
    help="Mirror a directory of X.509 certificates into an OpenSSL hashed CA directory.",
)

config_app = typer.Typer(help="Manage certsync configuration.")
app.add_typer(config_app, name="config")

# Global state
_config: CertSyncConfig | None = None

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        return json.dumps({
            "time": self.formatTime(record),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        })


def _configure_logging(cfg: CertSyncConfig) -> None:
    if cfg.log_format == "json":
        handler: logging.Handler = logging.StreamHandler()
        handler.setFormatter(_JsonFormatter())
    else:
        handler = RichHandler(console=Console(stderr=True), show_path=False)
    logging.basicConfig(
        level=_LOG_LEVELS[cfg.log_level], handlers=[handler], force=True
    )


def _get_config() -> CertSyncConfig:
    if _config is None:
        return load_config()
    return _config


@app.callback()
def main(
    config: Annotated[
        str | None, typer.Option("--config", "-c", help="Path to certsync.yaml")
    ] = None,
) -> None:
    """Global options."""
    global _config
    try:
        _config = load_config(config)
    except ValueError as e:
        rprint(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    _configure_logging(_config)


def _options(
    purge: bool | None, strip_headers: bool | None, generate_bundle: bool | None
) -> SyncOptions:
    """Merge CLI flags over the configured sync settings."""
    flags = {
        "purge": purge, "strip_headers": strip_headers, "generate_bundle": generate_bundle,
    }
    return _get_config().sync.to_options().model_copy(
        update={k: v for k, v in flags.items() if v is not None}
    )


def _make_sync(source: str, target: str, options: SyncOptions) -> CertDirSync:
    return CertDirSync(
        source, target, options=options, labeler=create_labeler(_get_config().sync.labels)
    )


def _display_report(report: SyncReport, ci: bool) -> None:
    if ci:
        for diag in report.warnings:
            typer.echo(f"WARN {diag.path or '-'}: {diag.message}")
        if report.in_sync:
            typer.echo("OK in sync")
        elif report.changed:
            typer.echo(f"SYNCED {report.target}")
        else:
            typer.echo(f"DRIFT {report.target}")
        return

    if report.diagnostics:
        table = Table(title="Diagnostics")
        table.add_column("Severity")
        table.add_column("Path", style="cyan")
        table.add_column("Message")
        styles = {"warning": "yellow", "error": "red", "info": "blue", "debug": "dim"}
        for diag in report.diagnostics:
            if diag.severity == "debug":
                continue
            sev = f"[{styles[diag.severity]}]{diag.severity}[/{styles[diag.severity]}]"
            table.add_row(sev, escape(diag.path or "-"), escape(diag.message))
        if table.row_count:
            rprint(table)

    if report.in_sync:
        rprint(f"[green]{report.target} is in sync with {report.source}.[/green]")
    elif report.changed and report.result is not None:
        r = report.result
        rprint(
            f"[green]Synced[/green] {report.source} -> {report.target}: "
            f"{len(r.copied)} copied, {len(r.linked)} linked, {len(r.purged)} purged, "
            f"{len(r.bundles_written)} bundle(s) written"
        )
    else:
        rprint(f"[yellow]{report.target} is out of sync with {report.source}.[/yellow]")


@app.command()
def sync(
    source: Annotated[str, typer.Argument(help="Directory of source certificates")],
    target: Annotated[str, typer.Argument(help="Hashed CA directory to maintain")],
    purge: Annotated[
        bool | None, typer.Option("--purge/--no-purge", help="Delete unmanaged target content")
    ] = None,
    strip_headers: Annotated[
        bool | None,
        typer.Option("--strip-headers/--keep-headers", help="Strip text around PEM blocks in cacerts.pem"),
    ] = None,
    generate_bundle: Annotated[
        bool | None,
        typer.Option("--generate-bundle/--no-generate-bundle", help="Build cacerts.pem from the certificates"),
    ] = None,
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Compare only, change nothing")] = False,
    ci: Annotated[bool, typer.Option("--ci", help="Machine-readable output")] = False,
) -> None:
    """Converge TARGET to the certificates found in SOURCE."""
    syncer = _make_sync(source, target, _options(purge, strip_headers, generate_bundle))
    try:
        report = syncer.converge(dry_run=dry_run)
    except CertSyncError as e:
        rprint(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    _display_report(report, ci)


@app.command()
def check(
    source: Annotated[str, typer.Argument(help="Directory of source certificates")],
    target: Annotated[str, typer.Argument(help="Hashed CA directory to check")],
    purge: Annotated[
        bool | None, typer.Option("--purge/--no-purge", help="Treat unmanaged content as drift")
    ] = None,
    fail_on_drift: Annotated[
        bool, typer.Option("--fail-on-drift", help="Exit 1 if the target is out of sync")
    ] = False,
    ci: Annotated[bool, typer.Option("--ci", help="Machine-readable output")] = False,
) -> None:
    """Report whether TARGET matches SOURCE without changing it."""
    syncer = _make_sync(source, target, _options(purge, None, None))
    try:
        report = syncer.converge(dry_run=True)
    except CertSyncError as e:
        rprint(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    _display_report(report, ci)
    if fail_on_drift and not report.in_sync:
        raise typer.Exit(code=1)


@app.command()
def hashes(
    source: Annotated[str, typer.Argument(help="Directory of source certificates")],
    generate_bundle: Annotated[
        bool | None,
        typer.Option("--generate-bundle/--no-generate-bundle", help="Include bundle entries"),
    ] = None,
    ci: Annotated[bool, typer.Option("--ci", help="Machine-readable output")] = False,
) -> None:
    """Show the link name each certificate in SOURCE would get."""
    try:
        desired = snapshot(source, _options(None, None, generate_bundle))
    except CertSyncError as e:
        rprint(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    if ci:
        for file, link in desired.links.items():
            typer.echo(f"{file} {link}")
        return

    table = Table(title=f"Link mapping ({len(desired.certificate_links())} certificates)")
    table.add_column("File", style="cyan")
    table.add_column("Link", style="green")
    for file, link in desired.links.items():
        table.add_row(file, link if link != file else "-")
    rprint(table)


@app.command()
def strip(
    source: Annotated[str, typer.Argument(help="Source PEM file")],
    target: Annotated[str, typer.Argument(help="Stripped copy to maintain")],
    fail_if_missing: Annotated[
        bool | None,
        typer.Option("--fail-if-missing/--allow-missing", help="Fail when SOURCE does not exist"),
    ] = None,
    owner: Annotated[str | None, typer.Option("--owner", help="Owner of TARGET")] = None,
    group: Annotated[str | None, typer.Option("--group", help="Group of TARGET")] = None,
    mode: Annotated[str | None, typer.Option("--mode", help="Octal mode of TARGET, e.g. 0644")] = None,
) -> None:
    """Copy SOURCE to TARGET keeping only its certificate blocks."""
    cfg = _get_config()
    updates = {
        k: v for k, v in {
            "fail_if_missing": fail_if_missing, "owner": owner, "group": group, "mode": mode,
        }.items() if v is not None
    }
    try:
        settings = StripSettings.model_validate({**cfg.strip.model_dump(), **updates})
        report = StripFileSync(
            source, target, settings, create_labeler(cfg.sync.labels)
        ).converge()
    except (CertSyncError, ValueError) as e:
        rprint(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    if report.missing:
        rprint(f"[dim]{source} does not exist, nothing to do[/dim]")
    elif report.changed:
        rprint(f"[green]Wrote[/green] {target}")
    else:
        rprint(f"[green]{target} is up to date.[/green]")


@app.command()
def watch(
    source: Annotated[str, typer.Argument(help="Directory of source certificates")],
    target: Annotated[str, typer.Argument(help="Hashed CA directory to maintain")],
    debounce: Annotated[
        float | None, typer.Option("--debounce", help="Quiet period in seconds before syncing")
    ] = None,
) -> None:
    """Sync once, then again whenever SOURCE changes (Ctrl+C to stop)."""
    cfg = _get_config()
    syncer = _make_sync(source, target, _options(None, None, None))
    watcher = SourceWatcher(
        syncer,
        debounce_seconds=debounce or cfg.watch.debounce_seconds,
        on_report=lambda r: _display_report(r, ci=False),
    )
    try:
        watcher.run_once()
    except CertSyncError as e:
        rprint(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    watcher.start()
    rprint(f"[bold]Watching[/bold] {source} -> {target}")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        watcher.stop()


@config_app.command("show")
def config_show() -> None:
    """Show current resolved configuration."""
    cfg = _get_config()
    rprint(Syntax(yaml.dump(cfg.model_dump(), default_flow_style=False), "yaml"))


@config_app.command("init")
def config_init(
    force: bool = typer.Option(False, "--force", help="Overwrite existing config"),
) -> None:
    """Create default certsync.yaml in current directory."""
    target = Path("certsync.yaml")
    if target.exists() and not force:
        rprint("[yellow]certsync.yaml already exists.[/yellow] Use --force to overwrite.")
        raise typer.Exit(1)
    target.write_text(DEFAULT_CONFIG_TEMPLATE)
    rprint(f"[green]Created[/green] {target}")
