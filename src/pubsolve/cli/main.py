"""pubsolve CLI — Composer-compatible dependency resolution.

Entry point for the ``pubsolve`` command-line tool. Registers all
subcommands under a single Click group.

Commands:
    resolve    — Resolve a project's composer.json.
    constraint — Parse a constraint and test versions against it.

Usage::

    pubsolve resolve                            # Current directory
    pubsolve resolve ./my-project --no-dev
    pubsolve resolve --offline --repo ./packages
    pubsolve -vv resolve ./my-project           # Solver trace on stderr
    pubsolve constraint "^1.2" 1.1.0 1.4.2
"""

from __future__ import annotations

import logging

import click

from pubsolve import __version__
from pubsolve.cli.constraint_cmd import constraint_command
from pubsolve.cli.resolve_cmd import resolve_command

_LOG_LEVELS = {0: logging.WARNING, 1: logging.INFO}


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--verbose", "-v", count=True,
    help="Log progress (-v) or the full solver trace (-vv) to stderr.",
)
def cli(verbose: int) -> None:
    """pubsolve: PubGrub dependency resolution for Composer packages.

    Resolves composer.json requirements against Packagist, path and VCS
    repositories, and explains exactly why when no solution exists.
    """
    logging.basicConfig(
        level=_LOG_LEVELS.get(verbose, logging.DEBUG),
        format="%(levelname)s %(name)s: %(message)s",
    )


# Register all subcommands
cli.add_command(resolve_command)
cli.add_command(constraint_command)
