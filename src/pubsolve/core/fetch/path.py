"""Path repositories: packages living in local directories.

Each configured path (glob patterns allowed, as in Composer's ``path``
repository type) is a directory holding a ``composer.json``. Its ``version``
field is used when present; otherwise the package is offered under a
branch pseudo-version (``dev-main`` by default).
"""

from __future__ import annotations

import asyncio
import glob
import json
import logging
from pathlib import Path
from typing import Iterable, Sequence

from pubsolve.core.fetch.base import MetadataFetcher
from pubsolve.core.fetch.records import record_from_dict
from pubsolve.core.solver.models import VersionRecord
from pubsolve.exceptions import FetchError, ParseError

logger = logging.getLogger(__name__)

MANIFEST_NAME = "composer.json"


def _expand(pattern: str) -> list[Path]:
    expanded = str(Path(pattern).expanduser())
    if glob.has_magic(expanded):
        return [Path(p) for p in sorted(glob.glob(expanded))]
    return [Path(expanded)]


class PathFetcher(MetadataFetcher):
    """Serve packages from local directories.

    Directories are scanned once, on the first fetch.

    Args:
        paths: Directories or glob patterns of package directories.
        default_version: Version used when a composer.json has none.
    """

    def __init__(
        self, paths: Iterable[str | Path], *, default_version: str = "dev-main"
    ) -> None:
        self._patterns = [str(p) for p in paths]
        self._default_version = default_version
        self._index: dict[str, list[VersionRecord]] | None = None

    def _scan(self) -> dict[str, list[VersionRecord]]:
        index: dict[str, list[VersionRecord]] = {}
        for pattern in self._patterns:
            for directory in _expand(pattern):
                manifest = directory / MANIFEST_NAME
                if not manifest.is_file():
                    logger.debug("no %s in %s", MANIFEST_NAME, directory)
                    continue
                try:
                    data = json.loads(manifest.read_text(encoding="utf-8"))
                except (OSError, json.JSONDecodeError) as exc:
                    raise FetchError(str(directory), f"unreadable {MANIFEST_NAME}: {exc}") from exc
                if not isinstance(data, dict):
                    raise FetchError(str(directory), f"{MANIFEST_NAME} is not an object")
                try:
                    record = record_from_dict(
                        {
                            **data,
                            "dist": {"type": "path", "url": str(directory.resolve())},
                        },
                        version=data.get("version") or self._default_version,
                    )
                except ParseError as exc:
                    raise FetchError(str(directory), f"invalid {MANIFEST_NAME}: {exc}") from exc
                index.setdefault(record.name, []).append(record)
                logger.debug("path repository: %s at %s", record.pretty, directory)
        return index

    async def _ensure_index(self) -> dict[str, list[VersionRecord]]:
        if self._index is None:
            self._index = await asyncio.to_thread(self._scan)
        return self._index

    async def fetch(self, name: str) -> Sequence[VersionRecord]:
        index = await self._ensure_index()
        return list(index.get(name, ()))

    async def find_providers(self, name: str) -> Sequence[str]:
        index = await self._ensure_index()
        return sorted(
            package
            for package, records in index.items()
            if any(record.satisfies_virtual(name) for record in records)
        )
