"""``pubsolve resolve [DIR]`` — Resolve a project's dependencies.

Reads ``DIR/composer.json`` (and ``DIR/composer.lock`` for pins), resolves
the requirements against the project's path and VCS repositories and the
Packagist registry, and prints the selected versions in installation order.

Exit Codes:
    0 — Resolution succeeded.
    1 — The requirements cannot be satisfied (or the solver gave up).
    2 — Invalid input, or metadata could not be fetched.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Mapping, NoReturn, Sequence

import click

from pubsolve.config import ResolutionMode, ResolverConfig
from pubsolve.core.fetch.base import CompositeFetcher, MetadataFetcher
from pubsolve.core.fetch.path import PathFetcher
from pubsolve.core.fetch.vcs import VcsFetcher
from pubsolve.core.resolution.models import Resolution
from pubsolve.core.solver.models import Dependency
from pubsolve.core.version.stability import Stability, parse_stability
from pubsolve.core.version.version import Version
from pubsolve.exceptions import (
    ConflictError,
    FetchError,
    ManifestError,
    ParseError,
    ResolutionError,
)
from pubsolve.manifest import RootManifest, load_locked, load_manifest
from pubsolve.resolver import Resolver

logger = logging.getLogger(__name__)


def _run_async(coro: object) -> object:
    """Run an async coroutine in a synchronous context.

    Args:
        coro: Awaitable coroutine to execute.

    Returns:
        The coroutine's return value.
    """
    return asyncio.run(coro)  # type: ignore[arg-type]


def _wants_branches(manifest: RootManifest, config: ResolverConfig) -> bool:
    if config.minimum_stability is Stability.DEV:
        return True
    return any(dep.constraint.stability is Stability.DEV for dep in manifest.requirements)


def _build_fetcher(
    manifest: RootManifest,
    config: ResolverConfig,
    repos: Sequence[str],
    offline: bool,
) -> MetadataFetcher:
    """Assemble the metadata sources in priority order.

    Path repositories come first so local packages shadow published ones,
    then VCS repositories, then Packagist.

    Raises:
        click.UsageError: If ``offline`` leaves no source at all.
    """
    fetchers: list[MetadataFetcher] = []
    paths = [*repos, *manifest.path_repositories]
    if paths:
        fetchers.append(PathFetcher(paths))
    if not offline:
        if manifest.vcs_repositories:
            fetchers.append(VcsFetcher(manifest.vcs_repositories))
        try:
            import httpx  # noqa: F401
        except ImportError:
            click.echo(
                "Error: httpx is required for registry access.\n"
                "Install it with: pip install pubsolve[registry]\n"
                "or pass --offline to use path repositories only.",
                err=True,
            )
            sys.exit(2)
        from pubsolve.core.fetch.registry import RegistryFetcher

        fetchers.append(
            RegistryFetcher(
                include_dev_versions=_wants_branches(manifest, config),
                timeout=config.request_timeout or 10.0,
            )
        )
    if not fetchers:
        raise click.UsageError("--offline needs at least one path repository (--repo)")
    return fetchers[0] if len(fetchers) == 1 else CompositeFetcher(fetchers)


async def _resolve(
    fetcher: MetadataFetcher,
    config: ResolverConfig,
    requirements: Sequence[Dependency],
    locked: Mapping[str, Version],
) -> object:
    try:
        return await Resolver(fetcher, config).resolve(requirements, locked)
    finally:
        await fetcher.aclose()


def _mode(prefer_lowest: bool, prefer_latest: bool) -> ResolutionMode | None:
    if prefer_lowest and prefer_latest:
        raise click.UsageError("--prefer-lowest and --prefer-latest are mutually exclusive")
    if prefer_lowest:
        return ResolutionMode.PREFER_LOWEST
    if prefer_latest:
        return ResolutionMode.PREFER_LATEST
    return None


def _fail(message: str, output_format: str, code: int, kind: str) -> NoReturn:
    if output_format == "json":
        click.echo(json.dumps({"error": kind, "message": message}, indent=2))
    else:
        from pubsolve.cli.output import print_error

        print_error(message)
    sys.exit(code)


@click.command("resolve")
@click.argument("directory", default=".", type=click.Path(exists=True, file_okay=False))
@click.option("--no-dev", is_flag=True, help="Skip require-dev.")
@click.option("--prefer-lowest", is_flag=True, help="Pick the lowest allowed versions.")
@click.option(
    "--prefer-latest", is_flag=True,
    help="Pick the highest versions, ignoring minimum-stability.",
)
@click.option(
    "--minimum-stability",
    type=click.Choice(["dev", "alpha", "beta", "RC", "stable"], case_sensitive=False),
    default=None,
    help="Override the manifest's minimum-stability.",
)
@click.option(
    "--lock/--no-lock", "use_lock", default=True,
    help="Prefer the versions pinned in composer.lock (default: on).",
)
@click.option(
    "--repo", "repos", multiple=True,
    type=click.Path(exists=True, file_okay=False),
    help="Extra path repository (repeatable).",
)
@click.option("--offline", is_flag=True, help="Do not contact Packagist or VCS remotes.")
@click.option("--max-concurrent", type=click.IntRange(min=1), default=None,
              help="Maximum simultaneous metadata fetches.")
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), default=None,
              help="Overall resolution timeout in seconds.")
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format (default: text).",
)
def resolve_command(
    directory: str,
    no_dev: bool,
    prefer_lowest: bool,
    prefer_latest: bool,
    minimum_stability: str | None,
    use_lock: bool,
    repos: tuple[str, ...],
    offline: bool,
    max_concurrent: int | None,
    timeout: float | None,
    output_format: str,
) -> None:
    """Resolve the dependencies declared in DIRECTORY/composer.json.

    Examples:

        pubsolve resolve ./my-project

        pubsolve resolve --offline --repo ./packages --prefer-lowest

    Exit code 0 on success, 1 if the requirements conflict, 2 on invalid
    input or fetch failures.
    """
    target = Path(directory)
    mode = _mode(prefer_lowest, prefer_latest)
    try:
        manifest = load_manifest(target)
        locked = load_locked(target) if use_lock else {}
        config = ResolverConfig.from_manifest(
            manifest,
            mode=mode,
            minimum_stability=parse_stability(minimum_stability) if minimum_stability else None,
            include_dev=not no_dev,
            max_concurrent=max_concurrent,
            timeout=timeout,
        )
    except (ManifestError, ParseError) as exc:
        _fail(str(exc), output_format, 2, "input")

    fetcher = _build_fetcher(manifest, config, repos, offline)
    logger.info("resolving %s with %s", target, fetcher.name)

    try:
        outcome = _run_async(_resolve(fetcher, config, manifest.requirements, locked))
    except ConflictError as exc:
        if output_format == "json":
            click.echo(json.dumps({
                "error": "conflict",
                "explanation": [step.description for step in exc.explanation.steps],
                "packages": sorted(exc.explanation.packages()),
            }, indent=2))
        else:
            from pubsolve.cli.output import print_conflict

            print_conflict(exc.explanation)
        sys.exit(1)
    except FetchError as exc:
        _fail(str(exc), output_format, 2, "fetch")
    except ResolutionError as exc:
        _fail(str(exc), output_format, 1, "resolution")

    if not isinstance(outcome, Resolution):
        _fail("resolution was cancelled", output_format, 1, "cancelled")

    if output_format == "json":
        data = outcome.to_dict()
        data["stats"] = outcome.stats.to_dict()
        click.echo(json.dumps(data, indent=2))
    else:
        from pubsolve.cli.output import print_resolution

        print_resolution(outcome)
    sys.exit(0)
