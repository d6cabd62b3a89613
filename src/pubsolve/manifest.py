"""Project input: ``composer.json`` and ``composer.lock``.

:func:`load_manifest` reads the root package's requirements and the
settings that shape a resolution (``minimum-stability``, ``prefer-stable``,
``config.platform``, path and VCS repositories). :func:`load_locked` reads
the pins of an existing lock file, which the resolver keeps while they are
still allowed.

Both raise :class:`ManifestError` for files that cannot be read or have the
wrong shape, and :class:`ParseError` for malformed names, versions and
constraints.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pubsolve.core.solver.models import Dependency, normalize_name
from pubsolve.core.version.stability import Stability, parse_stability
from pubsolve.core.version.version import Version, parse_version
from pubsolve.exceptions import ManifestError

logger = logging.getLogger(__name__)

MANIFEST_NAME = "composer.json"
LOCK_NAME = "composer.lock"

_VCS_TYPES = frozenset({"vcs", "git"})


@dataclass
class RootManifest:
    """The parts of a root ``composer.json`` the resolver uses.

    Attributes:
        name: The project's own package name, if it declares one.
        requirements: ``require`` and ``require-dev`` entries; dev entries
            have ``is_dev`` set.
        minimum_stability: The ``minimum-stability`` setting.
        prefer_stable: The ``prefer-stable`` setting.
        platform: ``config.platform`` overrides (name -> version text).
        path_repositories: Directories (or globs) of ``path`` repositories,
            resolved against the manifest's directory.
        vcs_repositories: URLs of ``vcs``/``git`` repositories.
    """

    name: str | None = None
    requirements: list[Dependency] = field(default_factory=list)
    minimum_stability: Stability = Stability.STABLE
    prefer_stable: bool = False
    platform: dict[str, str] = field(default_factory=dict)
    path_repositories: list[str] = field(default_factory=list)
    vcs_repositories: list[str] = field(default_factory=list)

    @property
    def runtime_requirements(self) -> list[Dependency]:
        return [dep for dep in self.requirements if not dep.is_dev]

    @property
    def dev_requirements(self) -> list[Dependency]:
        return [dep for dep in self.requirements if dep.is_dev]


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ManifestError(f"{path} does not exist") from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise ManifestError(f"cannot read {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ManifestError(f"{path}: top level must be a JSON object")
    return data


def _resolve_file(path: str | Path, default_name: str) -> Path:
    target = Path(path)
    if target.is_dir():
        target = target / default_name
    return target


def _object(data: dict[str, Any], key: str, source: Path) -> dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ManifestError(f"{source}: '{key}' must be an object")
    return value


def _requirements(data: dict[str, Any], source: Path) -> list[Dependency]:
    requirements = []
    for key, is_dev in (("require", False), ("require-dev", True)):
        for name, constraint in sorted(_object(data, key, source).items()):
            if not isinstance(constraint, str):
                raise ManifestError(f"{source}: constraint for {name} must be a string")
            requirements.append(Dependency.parse(name, constraint, is_dev))
    return requirements


def _repositories(
    data: dict[str, Any], base: Path, source: Path
) -> tuple[list[str], list[str]]:
    raw = data.get("repositories") or []
    # Composer also accepts an object keyed by repository name.
    if isinstance(raw, dict):
        raw = list(raw.values())
    if not isinstance(raw, list):
        raise ManifestError(f"{source}: 'repositories' must be a list")

    paths: list[str] = []
    vcs: list[str] = []
    for entry in raw:
        if not isinstance(entry, dict):
            # ``{"packagist.org": false}`` and similar switches.
            continue
        kind = entry.get("type")
        url = entry.get("url")
        if not isinstance(url, str):
            continue
        if kind == "path":
            candidate = Path(url).expanduser()
            paths.append(str(candidate if candidate.is_absolute() else base / candidate))
        elif kind in _VCS_TYPES:
            vcs.append(url)
        else:
            logger.debug("ignoring %s repository %s", kind, url)
    return paths, vcs


def load_manifest(path: str | Path) -> RootManifest:
    """Load a root ``composer.json``.

    Args:
        path: The file, or a directory containing ``composer.json``.

    Returns:
        The parsed manifest.

    Raises:
        ManifestError: If the file is missing, unreadable or mis-shaped.
        ParseError: If a name, constraint or stability is malformed.
    """
    source = _resolve_file(path, MANIFEST_NAME)
    data = _read_json(source)

    platform = {
        normalize_name(name): str(version)
        for name, version in _object(_object(data, "config", source), "platform", source).items()
        if version is not False
    }
    paths, vcs = _repositories(data, source.parent, source)
    name = data.get("name")
    manifest = RootManifest(
        name=normalize_name(name) if isinstance(name, str) else None,
        requirements=_requirements(data, source),
        minimum_stability=parse_stability(str(data.get("minimum-stability") or "stable")),
        prefer_stable=bool(data.get("prefer-stable", False)),
        platform=platform,
        path_repositories=paths,
        vcs_repositories=vcs,
    )
    logger.debug(
        "loaded %s: %d requirements, %d path and %d vcs repositories",
        source,
        len(manifest.requirements),
        len(paths),
        len(vcs),
    )
    return manifest


def load_locked(path: str | Path) -> dict[str, Version]:
    """Read the pinned versions of a ``composer.lock``.

    Args:
        path: The file, or a directory containing ``composer.lock``.

    Returns:
        Package name -> locked version, from ``packages`` and
        ``packages-dev``. Empty when the file does not exist.

    Raises:
        ManifestError: If the file is unreadable or mis-shaped.
        ParseError: If a name or version is malformed.
    """
    source = _resolve_file(path, LOCK_NAME)
    if not source.exists():
        return {}
    data = _read_json(source)

    locked: dict[str, Version] = {}
    for key in ("packages", "packages-dev"):
        entries = data.get(key) or []
        if not isinstance(entries, list):
            raise ManifestError(f"{source}: '{key}' must be a list")
        for entry in entries:
            if not isinstance(entry, dict) or "name" not in entry or "version" not in entry:
                raise ManifestError(f"{source}: every entry of '{key}' needs a name and version")
            locked[normalize_name(str(entry["name"]))] = parse_version(str(entry["version"]))
    logger.debug("loaded %d locked packages from %s", len(locked), source)
    return locked
