"""``pubsolve constraint EXPR [VERSION...]`` — Inspect a version constraint.

Parses EXPR, prints the canonical version set it denotes, and reports
whether each VERSION is allowed under the chosen minimum stability.

Exit Codes:
    0 — EXPR parsed (whatever the verdicts).
    2 — EXPR is malformed.
"""

from __future__ import annotations

import json
import sys

import click

from pubsolve.core.version.constraints import VersionConstraint, parse_constraint
from pubsolve.core.version.stability import parse_stability
from pubsolve.core.version.version import parse_version
from pubsolve.exceptions import ParseError


def _verdicts(
    constraint: VersionConstraint, versions: tuple[str, ...], minimum: str
) -> list[tuple[str, bool | None]]:
    stability = parse_stability(minimum)
    results: list[tuple[str, bool | None]] = []
    for text in versions:
        try:
            version = parse_version(text)
        except ParseError:
            results.append((text, None))
            continue
        results.append((text, constraint.allows(version, stability)))
    return results


@click.command("constraint")
@click.argument("expression")
@click.argument("versions", nargs=-1)
@click.option(
    "--minimum-stability",
    type=click.Choice(["dev", "alpha", "beta", "RC", "stable"], case_sensitive=False),
    default="stable",
    help="Minimum stability used for the verdicts (default: stable).",
)
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format (default: text).",
)
def constraint_command(
    expression: str,
    versions: tuple[str, ...],
    minimum_stability: str,
    output_format: str,
) -> None:
    """Show the versions EXPRESSION allows.

    Examples:

        pubsolve constraint "^1.2 || ~2.0@beta" 1.1.0 1.9.3 2.0.0-beta1
    """
    try:
        constraint = parse_constraint(expression)
    except ParseError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    results = _verdicts(constraint, versions, minimum_stability)
    if output_format == "json":
        click.echo(json.dumps({
            "constraint": constraint.text,
            "range": str(constraint.versions),
            "stability": str(constraint.stability) if constraint.stability is not None else None,
            "versions": {text: allowed for text, allowed in results},
        }, indent=2))
        return

    from pubsolve.cli.output import print_constraint_report

    print_constraint_report(constraint, results)
