"""Click CLI: ownership queries, impact analysis, watch mode and the HTTP API."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import click

from depwatch import __version__
from depwatch.errors import DepwatchError
from depwatch.impact import analyze_file_impact
from depwatch.models import FileEvent, FinderConfig
from depwatch.resolver import OwnershipResolver

_EVENT_CHOICES = [e.value for e in FileEvent]


def _build_resolver(ctx: click.Context) -> OwnershipResolver:
    try:
        return OwnershipResolver.from_config(ctx.obj["config"])
    except DepwatchError as e:
        raise click.ClickException(str(e))


@click.group()
@click.version_option(version=__version__)
@click.option("--root", "-r", "root_dir", type=click.Path(exists=True, file_okay=False, path_type=Path),
              default=".", help="Module root directory")
@click.option("--tags", default="", help="Comma-separated extra build tags")
@click.option("--goos", default=None, help="Target GOOS (defaults to $GOOS or the host)")
@click.option("--goarch", default=None, help="Target GOARCH (defaults to $GOARCH or the host)")
@click.option("--go-version", default=None, help="Go release for go1.N build tags (defaults to $GOVERSION or 1.23)")
@click.option("--tests", "include_tests", is_flag=True, help="Include _test.go files")
@click.option("--verbose", "-v", count=True, help="Increase log verbosity")
@click.pass_context
def cli(ctx, root_dir: Path, tags: str, goos: str | None, goarch: str | None,
        go_version: str | None, include_tests: bool, verbose: int):
    """depwatch: decide which build handler owns a changed file."""
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    ctx.ensure_object(dict)
    ctx.obj["config"] = FinderConfig(
        root_dir=root_dir,
        include_tests=include_tests,
        build_tags=[t for t in tags.split(",") if t.strip()],
        goos=goos,
        goarch=goarch,
        go_version=go_version,
    )


@cli.command()
@click.argument("handler")
@click.argument("file_path")
@click.option("--event", "-e", type=click.Choice(_EVENT_CHOICES), default="check", help="File-system event")
@click.pass_context
def owns(ctx, handler: str, file_path: str, event: str):
    """Tell whether HANDLER (entry-point file) owns FILE_PATH."""
    resolver = _build_resolver(ctx)
    try:
        owned = resolver.owns_file(handler, file_path, event)
    except DepwatchError as e:
        raise click.ClickException(str(e))

    verdict = click.style("owned", fg="green") if owned else click.style("not owned", fg="yellow")
    click.echo(f"{file_path}: {verdict} by {handler}")
    ctx.exit(0 if owned else 1)


@cli.command()
@click.argument("file_name")
@click.pass_context
def mains(ctx, file_name: str):
    """List entry-point packages that depend on files named FILE_NAME."""
    resolver = _build_resolver(ctx)
    try:
        entry_points = resolver.units_depending_on_file(file_name)
    except DepwatchError as e:
        raise click.ClickException(str(e))

    if not entry_points:
        click.echo(f"No entry point depends on {file_name}.")
        return
    for identity in entry_points:
        click.echo(identity)


@cli.command()
@click.argument("targets", nargs=-1, required=True)
@click.option("--source", "-s", default="./...", help="Packages to search")
@click.pass_context
def rdeps(ctx, targets: tuple[str, ...], source: str):
    """List packages under --source that depend on any of TARGETS."""
    resolver = _build_resolver(ctx)
    try:
        dependents = resolver.reverse_dependents(source, list(targets))
    except DepwatchError as e:
        raise click.ClickException(str(e))

    for identity in dependents:
        click.echo(identity)
    click.echo(click.style(f"{len(dependents)} package(s)", dim=True), err=True)


@cli.command()
@click.argument("handler")
@click.argument("file_path")
@click.option("--event", "-e", type=click.Choice(_EVENT_CHOICES), default="check", help="File-system event")
@click.pass_context
def impact(ctx, handler: str, file_path: str, event: str):
    """Print a JSON impact report for a change to FILE_PATH."""
    resolver = _build_resolver(ctx)
    try:
        result = analyze_file_impact(resolver, handler, Path(file_path).name, file_path, event)
    except DepwatchError as e:
        raise click.ClickException(str(e))
    click.echo(json.dumps(result.to_dict(), indent=2))


@cli.command()
@click.option("--cycles", is_flag=True, help="Also report import cycles")
@click.pass_context
def units(ctx, cycles: bool):
    """List the packages of the module with their kind and dependency count."""
    resolver = _build_resolver(ctx)
    try:
        resolver.cache.ensure_populated()
    except DepwatchError as e:
        raise click.ClickException(str(e))

    cache = resolver.cache
    if not cache.units:
        click.echo("No packages found.")
        return

    for identity in sorted(cache.units):
        unit = cache.units[identity]
        color = "magenta" if unit.is_entry_point else "cyan"
        click.echo(
            f"  {click.style(unit.kind.value, fg=color):>22}  {identity}  "
            f"{click.style(f'{len(cache.graph.dependencies_of(identity))} deps', dim=True)}"
        )

    if cycles:
        found = cache.graph.find_cycles()
        click.echo(f"\n{len(found)} cycle(s)")
        for cycle in found:
            click.echo("  " + " -> ".join(cycle))


@cli.command(name="watch")
@click.argument("handlers", nargs=-1, required=True)
@click.option("--all", "show_all", is_flag=True, help="Also print changes no handler owns")
@click.pass_context
def watch_cmd(ctx, handlers: tuple[str, ...], show_all: bool):
    """Watch the module and print which HANDLERS own each change."""
    from depwatch.watcher import watch_handlers

    resolver = _build_resolver(ctx)

    def report(routed):
        if routed.error:
            click.echo(click.style(f"! {routed.handler}: {routed.error}", fg="red"), err=True)
        elif routed.owned or show_all:
            mark = click.style("*", fg="green") if routed.owned else " "
            click.echo(f"{mark} {routed.handler:<30} {routed.event.value:<7} {routed.path}")

    click.echo(f"Watching {resolver.root_dir} (Ctrl+C to stop)")
    try:
        watch_handlers(resolver, list(handlers), report)
    except DepwatchError as e:
        raise click.ClickException(str(e))
    except KeyboardInterrupt:
        click.echo("\nStopped.")


@cli.command()
@click.option("--port", "-p", default=8420, help="Port number")
@click.option("--host", default="127.0.0.1", help="Host address")
@click.option("--allow-root", "allowed_roots", multiple=True,
              type=click.Path(exists=True, file_okay=False, path_type=Path),
              help="Directory the API may analyse (repeatable; defaults to your home directory)")
def serve(port: int, host: str, allowed_roots: tuple[Path, ...]):
    """Start the HTTP API."""
    try:
        import uvicorn
    except ImportError:
        raise click.ClickException(
            "uvicorn is required for the HTTP API. "
            "Install with: pip install 'depwatch[web]'"
        )

    from depwatch.web import create_app
    from depwatch.web.state import state

    if allowed_roots:
        state.allowed_roots = [p.resolve() for p in allowed_roots]
    click.echo(f"Starting depwatch API at http://{host}:{port}")
    uvicorn.run(create_app(), host=host, port=port, log_level="info")


if __name__ == "__main__":
    cli()
