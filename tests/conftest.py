"""Shared fixtures for pubsolve tests."""

from __future__ import annotations

import json
import pathlib
from typing import Any, Callable

import pytest

from pubsolve.core.fetch.memory import InMemoryFetcher


@pytest.fixture
def diamond_fetcher() -> InMemoryFetcher:
    """A requires C >=1.0,<1.5; B requires C >=1.2,<2.0; C has four releases."""
    fetcher = InMemoryFetcher()
    fetcher.add("vendor/a", "1.0.0", require={"vendor/c": ">=1.0,<1.5"})
    fetcher.add("vendor/b", "1.0.0", require={"vendor/c": ">=1.2,<2.0"})
    for version in ("1.0.0", "1.2.0", "1.4.0", "1.6.0"):
        fetcher.add("vendor/c", version)
    return fetcher


@pytest.fixture
def write_json(tmp_path: pathlib.Path) -> Callable[[str, Any], pathlib.Path]:
    """Write a JSON document below ``tmp_path`` and return its path."""

    def _write(relative: str, data: Any) -> pathlib.Path:
        target = tmp_path / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(data, indent=2), encoding="utf-8")
        return target

    return _write
