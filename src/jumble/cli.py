"""Click CLI entry point: configuration surface and the stdio server."""

import contextlib
import logging
import os
import sys

# Fix Unicode output on Windows consoles (cp1253, cp1252, etc.)
if sys.platform == "win32" and not os.environ.get("PYTHONIOENCODING"):
    sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    sys.stderr.reconfigure(encoding="utf-8", errors="replace")

import click

from jumble.errors import EXIT_ERROR, DiscoveryError, JumbleCliError

log = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.WARNING),
        format=LOG_FORMAT,
        force=True,
    )


@click.group(invoke_without_command=True)
@click.version_option(package_name="jumble")
@click.option('--root', type=click.Path(exists=True, file_okay=False, resolve_path=True),
              envvar="JUMBLE_ROOT", default=None,
              help='workspace root (default: $JUMBLE_ROOT or the current directory)')
@click.option('--log-level', type=click.Choice(LOG_LEVELS, case_sensitive=False),
              envvar="JUMBLE_LOG_LEVEL", default="WARNING", show_default=True,
              help='diagnostics verbosity (written to stderr)')
@click.option('--skip-dir', 'skip_dirs', multiple=True, metavar='NAME',
              help='extra directory name to skip while walking (repeatable)')
@click.pass_context
def cli(ctx, root, log_level, skip_dirs):
    """Jumble: structured project context for AI coding assistants.

    \b
    usage:
      jumble                      # serve on stdio from the current directory
      jumble --root ~/work        # serve a specific workspace
      jumble server --list-tools  # show the operation catalog
    """
    _configure_logging(log_level)
    from jumble.workspace.config import build_server_config

    ctx.ensure_object(dict)
    ctx.obj['config'] = build_server_config(root or os.getcwd(), extra_skip_dirs=skip_dirs)
    if ctx.invoked_subcommand is None:
        ctx.invoke(server)


@cli.command()
@click.option('--list-tools', is_flag=True, help='list the available operations and exit')
@click.pass_context
def server(ctx, list_tools):
    """Serve workspace context over line-oriented JSON-RPC on stdio.

    \b
    integration:
      claude mcp add jumble -- jumble --root /path/to/workspace
    """
    from jumble.tools import TOOLS

    if list_tools:
        click.echo(f"{len(TOOLS)} tools available:\n")
        for spec in TOOLS.values():
            marker = "" if spec.read_only else " (modifies server state)"
            click.echo(f"  {spec.name:28s} {spec.description.split('.')[0]}{marker}")
        return

    from jumble.dispatcher import Dispatcher
    from jumble.transport import serve
    from jumble.workspace.store import ContextStore

    config = ctx.obj['config']
    store = ContextStore(config)
    try:
        store.build()
    except DiscoveryError as exc:
        raise JumbleCliError(f"cannot load workspace: {exc}", EXIT_ERROR) from exc

    snap = store.snapshot
    log.info("jumble ready: %d project(s) under %s", len(snap.projects), config.root)

    out = sys.stdout
    with contextlib.redirect_stdout(sys.stderr):
        serve(Dispatcher(store), sys.stdin, out)
