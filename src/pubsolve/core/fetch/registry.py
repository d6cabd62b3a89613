"""Packagist-compatible registry fetcher.

Uses the Composer v2 metadata endpoint, ``{base}/p2/{vendor}/{name}.json``
(plus ``~dev.json`` for branch versions when asked). Responses are
"minified": each version entry only lists the keys that changed since the
previous entry, and the marker ``"__unset"`` removes a key. The fetcher
expands them back into full composer.json-style mappings.

Provider lookups use Packagist's ``/providers/{name}.json`` API.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Sequence

from pubsolve.core.fetch.base import MetadataFetcher
from pubsolve.core.fetch.http_client import DEFAULT_TIMEOUT, fetch_json, make_client
from pubsolve.core.fetch.records import records_from_dicts
from pubsolve.core.solver.models import VersionRecord
from pubsolve.exceptions import FetchError

logger = logging.getLogger(__name__)

PACKAGIST_REPO_URL = "https://repo.packagist.org"
PACKAGIST_API_URL = "https://packagist.org"

_UNSET = "__unset"


def expand_minified(entries: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Expand Composer v2 minified version entries.

    Each entry inherits every key of the previous expanded entry, then
    applies its own keys; a value of ``"__unset"`` deletes the key.
    """
    expanded: list[dict[str, Any]] = []
    previous: dict[str, Any] = {}
    for entry in entries:
        current = dict(previous)
        for key, value in entry.items():
            if value == _UNSET:
                current.pop(key, None)
            else:
                current[key] = value
        expanded.append(current)
        previous = current
    return expanded


def _entries(payload: Any, name: str) -> list[Mapping[str, Any]]:  # noqa: ANN401
    if payload is None:
        return []
    if not isinstance(payload, Mapping) or not isinstance(payload.get("packages"), Mapping):
        raise FetchError(name, "malformed registry response")
    entries = payload["packages"].get(name, [])
    if not isinstance(entries, list):
        raise FetchError(name, "malformed version list")
    if payload.get("minified"):
        return expand_minified(entries)
    return list(entries)


class RegistryFetcher(MetadataFetcher):
    """Fetch metadata from a Packagist-compatible Composer repository.

    Args:
        base_url: Repository root serving ``/p2/`` metadata.
        api_url: Root serving the ``/providers/`` API, or None to disable
            provider lookups.
        include_dev_versions: Also fetch branch versions (``~dev.json``).
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        base_url: str = PACKAGIST_REPO_URL,
        *,
        api_url: str | None = PACKAGIST_API_URL,
        include_dev_versions: bool = False,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_url = api_url.rstrip("/") if api_url else None
        self._include_dev = include_dev_versions
        self._timeout = timeout
        self._client: Any = None

    @property
    def name(self) -> str:
        return f"registry {self._base_url}"

    def _http(self) -> Any:  # noqa: ANN401
        if self._client is None:
            self._client = make_client(self._timeout)
        return self._client

    async def fetch(self, name: str) -> Sequence[VersionRecord]:
        urls = [f"{self._base_url}/p2/{name}.json"]
        if self._include_dev:
            urls.append(f"{self._base_url}/p2/{name}~dev.json")

        records: list[VersionRecord] = []
        for url in urls:
            payload = await fetch_json(url, package=name, client=self._http())
            records.extend(records_from_dicts(_entries(payload, name), name=name))
        logger.debug("%s: %d versions of %s", self.name, len(records), name)
        return records

    async def find_providers(self, name: str) -> Sequence[str]:
        if self._api_url is None:
            return ()
        payload = await fetch_json(
            f"{self._api_url}/providers/{name}.json", package=name, client=self._http()
        )
        if not isinstance(payload, Mapping):
            return ()
        providers = payload.get("providers") or []
        return sorted(
            {
                entry["name"]
                for entry in providers
                if isinstance(entry, Mapping) and isinstance(entry.get("name"), str)
            }
        )

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
