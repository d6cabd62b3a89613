"""VCS repositories: packages published as git repositories.

Each repository is cloned bare into a scratch directory the first time any
package is fetched. Every tag that parses as a version becomes a release;
every branch becomes a branch pseudo-version (``main`` -> ``dev-main``,
``2.x`` -> ``2.x-dev``). The ``composer.json`` at each ref supplies the
requirements.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import shutil
import tempfile
from pathlib import Path
from typing import Awaitable, Callable, Iterable, Sequence

from pubsolve.core.fetch.base import MetadataFetcher
from pubsolve.core.fetch.records import record_from_dict
from pubsolve.core.solver.models import VersionRecord
from pubsolve.core.version.version import parse_version
from pubsolve.exceptions import FetchError, ParseError

logger = logging.getLogger(__name__)

#: ``(argv, cwd) -> stdout``; raises FetchError on failure.
GitRunner = Callable[[Sequence[str], "Path | None"], Awaitable[str]]

_NUMERIC_BRANCH_RE = re.compile(r"^v?\d+(?:\.\d+)*(?:\.[xX])?$")


def branch_version(branch: str) -> str:
    """The pseudo-version Composer assigns to a branch."""
    if _NUMERIC_BRANCH_RE.match(branch):
        base = branch[:-2] if branch.lower().endswith(".x") else branch
        return f"{base}.x-dev"
    return f"dev-{branch}"


def tag_version(tag: str) -> str | None:
    """The version a tag names, or None for tags that are not versions."""
    try:
        version = parse_version(tag)
    except ParseError:
        return None
    return None if version.is_branch else tag


async def _run_git(argv: Sequence[str], cwd: Path | None) -> str:
    process = await asyncio.create_subprocess_exec(
        *argv,
        cwd=str(cwd) if cwd else None,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await process.communicate()
    if process.returncode != 0:
        raise FetchError(
            " ".join(argv[1:3]), stderr.decode(errors="replace").strip() or "git failed"
        )
    return stdout.decode(errors="replace")


class VcsFetcher(MetadataFetcher):
    """Serve packages from git repositories.

    Args:
        repositories: Git URLs or local repository paths.
        git: The git executable.
        runner: Replacement for running git (used by tests).
    """

    def __init__(
        self,
        repositories: Iterable[str],
        *,
        git: str = "git",
        runner: GitRunner | None = None,
    ) -> None:
        self._repositories = list(repositories)
        self._git_bin = git
        self._runner = runner or _run_git
        self._workdir: Path | None = None
        self._loading: asyncio.Future[dict[str, list[VersionRecord]]] | None = None

    async def _git(self, *args: str, cwd: Path | None = None) -> str:
        return await self._runner([self._git_bin, *args], cwd)

    async def _load_repository(self, position: int, url: str) -> list[VersionRecord]:
        if self._workdir is None:
            self._workdir = Path(tempfile.mkdtemp(prefix="pubsolve-vcs-"))
        clone = self._workdir / f"repo-{position}.git"
        await self._git("clone", "--bare", "--quiet", url, str(clone))
        listing = await self._git(
            "for-each-ref", "--format=%(objectname) %(refname)", "refs/tags", "refs/heads",
            cwd=clone,
        )

        records = []
        for line in listing.splitlines():
            if not line.strip():
                continue
            reference, ref = line.split(" ", 1)
            if ref.startswith("refs/tags/"):
                version = tag_version(ref[len("refs/tags/"):])
            else:
                version = branch_version(ref[len("refs/heads/"):])
            if version is None:
                continue
            try:
                raw = await self._git("show", f"{ref}:composer.json", cwd=clone)
            except FetchError:
                logger.debug("%s has no composer.json at %s", url, ref)
                continue
            try:
                data = json.loads(raw)
                data["source"] = {"type": "git", "url": url, "reference": reference}
                records.append(record_from_dict(data, version=version))
            except (json.JSONDecodeError, TypeError, ParseError) as exc:
                logger.warning("skipping %s at %s: %s", url, ref, exc)
        logger.debug("vcs repository %s: %d versions", url, len(records))
        return records

    async def _build_index(self) -> dict[str, list[VersionRecord]]:
        loaded = await asyncio.gather(
            *(self._load_repository(i, url) for i, url in enumerate(self._repositories))
        )
        index: dict[str, list[VersionRecord]] = {}
        for records in loaded:
            for record in records:
                index.setdefault(record.name, []).append(record)
        return index

    async def _ensure_index(self) -> dict[str, list[VersionRecord]]:
        # Concurrent fetches share one clone pass.
        if self._loading is None:
            self._loading = asyncio.ensure_future(self._build_index())
        return await asyncio.shield(self._loading)

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

    async def aclose(self) -> None:
        if self._loading is not None and not self._loading.done():
            self._loading.cancel()
        self._loading = None
        if self._workdir is not None:
            shutil.rmtree(self._workdir, ignore_errors=True)
            self._workdir = None
