"""Shared fixtures for CLI tests.

Builds throwaway projects on disk: a root ``composer.json`` whose packages
all live in local path repositories, so every command can run with
``--offline``.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner


def write_package(directory: Path, data: dict) -> Path:
    """Write ``composer.json`` into ``directory`` (created if needed)."""
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "composer.json").write_text(json.dumps(data, indent=2), encoding="utf-8")
    return directory


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def packages_dir(tmp_path: Path) -> Path:
    """Path-repository packages, one directory per release.

    acme/http 1.0.0 needs acme/psr ^1.0; acme/http 1.3.0 needs ^1.1.
    acme/testkit 2.0.0 needs acme/psr ^1.0.
    """
    root = tmp_path / "packages"
    write_package(root / "http-1.0", {
        "name": "acme/http", "version": "1.0.0", "require": {"acme/psr": "^1.0"},
    })
    write_package(root / "http-1.3", {
        "name": "acme/http", "version": "1.3.0", "require": {"acme/psr": "^1.1"},
    })
    write_package(root / "psr-1.0", {"name": "acme/psr", "version": "1.0.0"})
    write_package(root / "psr-1.1", {"name": "acme/psr", "version": "1.1.0"})
    write_package(root / "testkit", {
        "name": "acme/testkit", "version": "2.0.0", "require": {"acme/psr": "^1.0"},
    })
    return root


def make_project(tmp_path: Path, packages_dir: Path, **fields: object) -> Path:
    """Create ``tmp_path/project`` with a manifest pointing at ``packages_dir``."""
    manifest = {
        "name": "acme/app",
        "repositories": [{"type": "path", "url": str(packages_dir / "*")}],
        **fields,
    }
    return write_package(tmp_path / "project", manifest)


@pytest.fixture
def project(tmp_path: Path, packages_dir: Path) -> Path:
    """A project requiring acme/http ^1.0, with acme/testkit as a dev requirement."""
    return make_project(
        tmp_path,
        packages_dir,
        require={"acme/http": "^1.0", "php": ">=8.1"},
        **{"require-dev": {"acme/testkit": "^2.0"}},
    )


@pytest.fixture
def conflicting_project(tmp_path: Path, packages_dir: Path) -> Path:
    """A project requiring an acme/http major that does not exist."""
    return make_project(tmp_path, packages_dir, require={"acme/http": "^2.0"})
