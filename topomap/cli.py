"""
topomap CLI entry point.
"""
import sys
from typing import List, Optional, Tuple

import click
from rich.console import Console
from rich.table import Table

from topomap import __version__
from topomap.config import ConfigError, load_settings
from topomap.logger import ConsoleLogger, Verbosity
from topomap.models.resource import Connection
from topomap.reporters import html_reporter, json_reporter, markdown, yaml_reporter
from topomap.synthesizer import PoliciesSynthesizer

_BANNER = r"""
  _
 | |_ ___  _ __   ___  _ __ ___   __ _ _ __
 | __/ _ \| '_ \ / _ \| '_ ` _ \ / _` | '_ \
 | || (_) | |_) | (_) | | | | | | (_| | |_) |
  \__\___/| .__/ \___/|_| |_| |_|\__,_| .__/
          |_|                         |_|
"""

_CONNECTION_FORMATS = {
    "json": json_reporter.build_report,
    "yaml": yaml_reporter.build_report,
    "markdown": markdown.build_report,
    "html": html_reporter.build_report,
}

_POLICY_FORMATS = {
    "json": json_reporter.build_policies,
    "yaml": yaml_reporter.build_policies,
}


def _print_banner(no_color: bool = False) -> None:
    c = Console(stderr=True, no_color=no_color)
    c.print(f"[bold blue]{_BANNER}[/bold blue]")
    c.print(f"  [dim]static Kubernetes connectivity analysis[/dim]   [dim]v{__version__}[/dim]\n")


def _verbosity(quiet: bool, verbose: bool, default: Verbosity) -> Verbosity:
    if quiet:
        return Verbosity.LOW
    if verbose:
        return Verbosity.HIGH
    return default


def _print_summary_table(connections: List[Connection], no_color: bool) -> None:
    """Print a rich summary table to stderr."""
    tbl = Table(title="Connections", show_header=True, header_style="bold")
    tbl.add_column("#", style="dim", width=4)
    tbl.add_column("Source", width=30)
    tbl.add_column("Target", width=30)
    tbl.add_column("Service", width=25)
    tbl.add_column("Port", width=8)

    for i, c in enumerate(connections, 1):
        if c.source is not None:
            source = f"{c.source.namespace}/{c.source.name}"
        else:
            source = "unknown" if no_color else "[yellow]unknown[/yellow]"
        tbl.add_row(
            str(i),
            source,
            f"{c.target.namespace}/{c.target.name}",
            c.link.name,
            str(c.port.port) if c.port is not None else "all",
        )

    Console(stderr=True, no_color=no_color).print(tbl)


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.version_option(__version__)
@click.pass_context
def cli(ctx):
    """topomap: static Kubernetes connectivity analysis and NetworkPolicy synthesis."""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit()


@cli.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path())
@click.option(
    "--netpols",
    is_flag=True,
    default=False,
    help="Synthesize NetworkPolicies allowing only the discovered connections.",
)
@click.option(
    "--format", "output_format",
    type=click.Choice(["json", "yaml", "markdown", "html"], case_sensitive=False),
    default="json",
    show_default=True,
    help="Output format (markdown and html apply to connection reports only).",
)
@click.option(
    "--output", "-o",
    type=click.Path(),
    default=None,
    help="Write results to this file (default: stdout).",
)
@click.option("--quiet", "-q", is_flag=True, default=False, help="Report only severe errors and results.")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Print more informative messages.")
@click.option(
    "--fail-fast",
    is_flag=True,
    default=False,
    help="Stop at the first error and discard all results.",
)
@click.option(
    "--dns-port",
    type=click.IntRange(1, 65535),
    default=None,
    help="Port to allow DNS egress on in synthesized policies (default: 53).",
)
@click.option(
    "--expose-routes-externally",
    is_flag=True,
    default=False,
    help="Treat services behind a Route or Ingress as exposed outside the cluster.",
)
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Exit with code 1 if any processing error was recorded (for CI gates).",
)
@click.option(
    "--summary",
    is_flag=True,
    default=False,
    help="Print the terminal summary table only, do not write results.",
)
@click.option("--no-color", is_flag=True, default=False, help="Disable rich terminal color output.")
@click.option(
    "--config", "config_path",
    type=click.Path(),
    default=None,
    help="Settings file (default: ./topomap.yaml when present).",
)
def scan(
    paths: Tuple[str, ...],
    netpols: bool,
    output_format: str,
    output: Optional[str],
    quiet: bool,
    verbose: bool,
    fail_fast: bool,
    dns_port: Optional[int],
    expose_routes_externally: bool,
    strict: bool,
    summary: bool,
    no_color: bool,
    config_path: Optional[str],
) -> None:
    """
    Discover connections between the workloads declared in PATHS.

    PATHS can be files or directories; multiple values accepted.
    """
    stderr = Console(stderr=True, no_color=no_color)
    if quiet and verbose:
        raise click.UsageError("-q and -v cannot be specified together")
    fmt = output_format.lower()
    if netpols and fmt not in _POLICY_FORMATS:
        raise click.UsageError("policies can only be written as json or yaml")

    try:
        settings = load_settings(config_path)
    except ConfigError as exc:
        stderr.print(f"[red]Config error:[/red] {exc}")
        sys.exit(2)

    if not quiet:
        _print_banner(no_color)

    logger = ConsoleLogger(
        verbosity=_verbosity(quiet, verbose, settings.verbosity),
        console=stderr,
    )
    synth = PoliciesSynthesizer(
        logger=logger,
        fail_fast=fail_fast or settings.fail_fast,
        dns_port=settings.dns_port if dns_port is None else dns_port,
        expose_routes_externally=expose_routes_externally or settings.expose_routes_externally,
    )
    source_label = ", ".join(paths)

    # 1. Scan and analyze
    with stderr.status(f"[bold]Scanning {len(paths)} path(s)…"):
        connections, errors = synth.connections_from_paths(list(paths))
        policies = synth.policies_from_connections(connections) if netpols else []

    if any(e.fatal for e in errors):
        stderr.print("[red]Fatal error, no results produced.[/red]")
        sys.exit(2)
    if synth.fail_fast and errors:
        stderr.print("[red]Stopped at the first error (--fail-fast).[/red]")
        sys.exit(2)

    stderr.print(
        f"Discovered [bold]{len(connections)}[/bold] connections"
        + (f", synthesized [bold]{len(policies)}[/bold] policies" if netpols else "")
        + (f" ([yellow]{len(errors)} processing errors[/yellow])" if errors else "")
    )

    # 2. Terminal summary table
    if summary or output:
        _print_summary_table(connections, no_color)

    # 3. Write results
    if not summary:
        if netpols:
            content = _POLICY_FORMATS[fmt](policies)
        else:
            content = _CONNECTION_FORMATS[fmt](connections, errors, source_label)

        if output:
            with open(output, "w", encoding="utf-8", newline="\n") as fh:
                fh.write(content)
            stderr.print(f"Results written to [bold]{output}[/bold]")
        else:
            click.echo(content)

    # 4. CI gate
    if strict and errors:
        stderr.print(f"[red]Strict mode:[/red] {len(errors)} processing error(s) recorded.")
        sys.exit(1)

    sys.exit(0)


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
