"""Click CLI with run, load-db, top and show subcommands."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from cpan_dependency import __version__
from cpan_dependency.dependency import CPANDependency
from cpan_dependency.errors import CPANDependencyError
from cpan_dependency.models import ALL_CPAN, DependencyConfig, PackageRecord
from cpan_dependency.persistence import load_graph

_LEVEL_COLORS = {
    logging.DEBUG: "blue",
    logging.INFO: None,
    logging.WARNING: "yellow",
    logging.ERROR: "red",
    logging.CRITICAL: "red",
}


class ColorFormatter(logging.Formatter):
    """Colour log lines by level."""

    def __init__(self, color: bool = True):
        super().__init__("%(message)s")
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        fg = _LEVEL_COLORS.get(record.levelno)
        if not self.color or fg is None:
            return message
        return click.style(message, fg=fg, bold=record.levelno >= logging.ERROR)


def setup_logging(config: DependencyConfig) -> None:
    if config.debug:
        level = logging.DEBUG
    elif config.verbose:
        level = logging.INFO
    else:
        level = logging.WARNING
    handler = logging.StreamHandler()
    handler.setFormatter(ColorFormatter(color=config.color))
    root = logging.getLogger("cpan_dependency")
    root.handlers[:] = [handler]
    root.setLevel(level)


def _print_top(scores: dict[str, int], limit: int) -> None:
    if not scores:
        click.echo("No distributions in graph.")
        return
    ranked = sorted(scores.items(), key=lambda kv: (-kv[1], kv[0]))[:limit]
    click.echo(f"Top {len(ranked)} distributions")
    for dist, score in ranked:
        click.echo(f"{score:>7} {dist}")


@click.group()
@click.version_option(version=__version__)
def cli():
    """cpandep: Build the CPAN dependency graph and rank distributions."""


@cli.command()
@click.argument("names", nargs=-1)
@click.option("--all", "process_all", is_flag=True, help="Process every distribution on CPAN")
@click.option("--skip", "-s", multiple=True, help="Module or distribution to skip")
@click.option("-o", "--output", type=click.Path(dir_okay=False, path_type=Path), default="deps.yml", help="Graph file")
@click.option("--verbose", "-v", is_flag=True, help="Report progress per distribution")
@click.option("--debug", type=int, default=0, help="Debug level")
@click.option("--color/--no-color", default=True, help="Colour log output")
@click.option("--prefer-bin", is_flag=True, help="Unpack archives with the tar binary")
def run(
    names: tuple[str, ...],
    process_all: bool,
    skip: tuple[str, ...],
    output: Path,
    verbose: bool,
    debug: int,
    color: bool,
    prefer_bin: bool,
):
    """Fetch distributions, extract their prerequisites and score them."""
    if not names and not process_all:
        raise click.UsageError("Specify module names or --all")

    config = DependencyConfig(verbose=verbose, debug=debug, color=color, prefer_bin=prefer_bin)
    setup_logging(config)
    try:
        deps = CPANDependency(config=config)
        try:
            if skip:
                deps.skip(list(skip))
            deps.process(ALL_CPAN if process_all else list(names))
            deps.run()
            deps.export_graph(output)
        finally:
            deps.close()
    except CPANDependencyError as e:
        raise click.ClickException(str(e))

    click.echo(f"Saved {len(deps.records())} distribution(s) to {output}")
    _print_top(deps.scores(), 10)


@cli.command("load-db")
@click.argument("db_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-o", "--output", type=click.Path(dir_okay=False, path_type=Path), default="deps.yml", help="Graph file")
@click.option("--verbose", "-v", is_flag=True, help="Report progress")
@click.option("--color/--no-color", default=True, help="Colour log output")
def load_db(db_file: Path, output: Path, verbose: bool, color: bool):
    """Build the graph from a CPANTS SQLite database."""
    config = DependencyConfig(verbose=verbose, color=color)
    setup_logging(config)
    try:
        deps = CPANDependency(config=config)
        try:
            deps.ingest_bulk(db_file)
            deps.score()
            deps.export_graph(output)
        finally:
            deps.close()
    except CPANDependencyError as e:
        raise click.ClickException(str(e))

    click.echo(f"Saved {len(deps.records())} distribution(s) to {output}")


@cli.command()
@click.argument("graph_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-n", "--limit", default=10, help="Number of distributions to list")
def top(graph_file: Path, limit: int):
    """List the highest scoring distributions of a saved graph."""
    records = _load(graph_file)
    _print_top({dist: r.score for dist, r in records.items()}, limit)


@cli.command()
@click.argument("graph_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("name")
def show(graph_file: Path, name: str):
    """Show prerequisites and dependents of one distribution."""
    record = _load(graph_file).get(name)
    if record is None:
        raise click.ClickException(f"{name} is not in {graph_file}")

    click.echo(click.style(name, fg="cyan", bold=True) + f"  by {record.author_id} ({record.author_name})")
    click.echo(f"  score: {record.score}")
    click.echo(f"  prereqs ({len(record.prereqs)}):")
    for dist, cross in sorted(record.prereqs.items()):
        click.echo(f"    {dist}" + ("" if cross else click.style("  same author", dim=True)))
    click.echo(f"  used by ({len(record.used_by)}):")
    for dist, cross in sorted(record.used_by.items()):
        click.echo(f"    {dist}" + ("" if cross else click.style("  same author", dim=True)))


def _load(graph_file: Path) -> dict[str, PackageRecord]:
    try:
        return load_graph(graph_file)
    except CPANDependencyError as e:
        raise click.ClickException(str(e))


if __name__ == "__main__":
    cli()
