"""CLI commands for decaff."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from decaff.actions.executor import ExecutionReport
from decaff.app import Scaffolder
from decaff.cache.store import ContentCache, default_cache_root
from decaff.errors import DecaffError, ParseError
from decaff.models.actions import Replacement

console = Console()
err_console = Console(stderr=True)


def get_cache(ctx: click.Context) -> ContentCache:
    return ContentCache(ctx.obj["cache_dir"])


def report_error(error: DecaffError) -> None:
    """Print a decaff error in red, with its help line below."""
    if isinstance(error, ParseError):
        err_console.print(f"[red]{escape(error.render())}[/red]")
        return
    err_console.print(f"[red]{escape(error.message)}[/red]")
    if error.help:
        err_console.print(f"[dim]{escape(error.help)}[/dim]")


def parse_assignments(assignments: tuple[str, ...]) -> dict[str, str]:
    values: dict[str, str] = {}
    for assignment in assignments:
        tag, sep, value = assignment.partition("=")
        if not sep or not tag:
            raise click.BadParameter(f"Expected TAG=VALUE, got `{assignment}`.", param_hint="--set")
        values[tag] = value
    return values


def prompt_replacement(replacement: Replacement) -> str:
    return click.prompt(replacement.description, default=replacement.tag)


def print_report(report: ExecutionReport | None) -> None:
    if report is None:
        return
    if report.suites:
        console.print(f"[dim]Suites: {', '.join(report.suites)}[/dim]")
    if report.unresolved:
        console.print(f"[yellow]Unresolved requirements: {', '.join(report.unresolved)}[/yellow]")
    if report.unknown:
        console.print(f"[yellow]Skipped unknown actions: {', '.join(report.unknown)}[/yellow]")


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


class DecaffGroup(click.Group):
    """Click group rendering decaff errors instead of tracebacks."""

    def invoke(self, ctx: click.Context):
        try:
            return super().invoke(ctx)
        except DecaffError as e:
            report_error(e)
            ctx.exit(1)


@click.group(cls=DecaffGroup)
@click.option(
    "--cache-dir",
    envvar="DECAFF_CACHE_DIR",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Cache directory",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logs")
@click.pass_context
def main(ctx: click.Context, cache_dir: Path | None, verbose: bool) -> None:
    """decaff - Scaffold projects from repository templates."""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["cache_dir"] = cache_dir or default_cache_root()


@main.command()
@click.argument("src")
@click.argument("path", required=False, type=click.Path(path_type=Path))
@click.option("--ref", "-r", default=None, help="Branch, tag or commit to use")
@click.option("--set", "-s", "assignments", multiple=True, metavar="TAG=VALUE",
              help="Replacement value (can repeat)")
@click.option("--delete", is_flag=True, help="Delete the template config after scaffolding")
@click.option("--no-cache", is_flag=True, help="Always download the tarball")
@click.pass_context
def remote(
    ctx: click.Context,
    src: str,
    path: Path | None,
    ref: str | None,
    assignments: tuple[str, ...],
    delete: bool,
    no_cache: bool,
) -> None:
    """Scaffold a project from a remote repository.

    SRC is `[host:]user/repo[#ref]`, where host is one of github (gh),
    gitlab (gl) or bitbucket (bb).
    """
    values = parse_assignments(assignments)
    scaffolder = Scaffolder(get_cache(ctx))

    result = asyncio.run(
        scaffolder.scaffold(
            src,
            path,
            ref=ref,
            values=values,
            prompt=prompt_replacement,
            delete_config=delete,
            use_cache=not no_cache,
        )
    )

    origin = "cache" if result.from_cache else "remote"
    console.print(
        f"[green]Scaffolded {result.descriptor.identity} @ {result.hash[:7]} "
        f"into {result.destination}[/green] [dim]({origin})[/dim]"
    )

    print_report(result.report)


@main.command()
@click.argument("src", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument("path", required=False, type=click.Path(path_type=Path))
@click.option("--set", "-s", "assignments", multiple=True, metavar="TAG=VALUE",
              help="Replacement value (can repeat)")
@click.option("--delete", is_flag=True, help="Delete the template config after scaffolding")
@click.pass_context
def local(
    ctx: click.Context,
    src: Path,
    path: Path | None,
    assignments: tuple[str, ...],
    delete: bool,
) -> None:
    """Scaffold a project from a local template directory."""
    values = parse_assignments(assignments)
    scaffolder = Scaffolder(get_cache(ctx))

    result = asyncio.run(
        scaffolder.scaffold_local(
            src,
            path,
            values=values,
            prompt=prompt_replacement,
            delete_config=delete,
        )
    )

    console.print(f"[green]Scaffolded {src} into {result.destination}[/green]")
    print_report(result.report)


@main.group()
def cache() -> None:
    """Manage the tarball cache."""


@cache.command("list")
@click.pass_context
def cache_list(ctx: click.Context) -> None:
    """List cached templates."""
    buckets = get_cache(ctx).list()
    if not buckets:
        console.print("[yellow]Cache is empty[/yellow]")
        return

    table = Table(title="Cached Templates")
    table.add_column("Template", style="cyan")
    table.add_column("Ref", style="green")
    table.add_column("Hash")
    table.add_column("Cached At", style="dim")

    for bucket in buckets:
        for item in bucket.items:
            cached_at = datetime.fromtimestamp(item.timestamp / 1000)
            table.add_row(bucket.identity, item.name, item.hash[:7], f"{cached_at:%Y-%m-%d %H:%M}")

    console.print(table)


@cache.command("remove")
@click.argument("terms", nargs=-1, required=True)
@click.pass_context
def cache_remove(ctx: click.Context, terms: tuple[str, ...]) -> None:
    """Remove cached templates matching TERMS (identity, ref name or hash)."""
    removed = get_cache(ctx).remove(terms)
    if not removed:
        console.print("[yellow]Nothing matched[/yellow]")
        return

    for entry in removed:
        label = f"{entry.identity} {entry.item.name} ({entry.item.hash[:7]})"
        if entry.error:
            console.print(f"[red]Removed {label}, tarball left behind: {escape(entry.error)}[/red]")
        elif entry.shared:
            console.print(f"[green]Removed {label}[/green] [dim](tarball still in use)[/dim]")
        else:
            console.print(f"[green]Removed {label}[/green]")


@cache.command("clear")
@click.pass_context
def cache_clear(ctx: click.Context) -> None:
    """Remove every cached template."""
    store = get_cache(ctx)
    store.remove_all()
    console.print(f"[green]Cleared {store.root}[/green]")


if __name__ == "__main__":
    main()
