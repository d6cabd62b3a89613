"""Conversion of composer.json-shaped mappings into :class:`VersionRecord`.

Registry responses, ``composer.json`` files from path repositories and git
checkouts, and in-memory test catalogs all describe a version with the same
keys (``name``, ``version``, ``require``, ``provide``, ...). This module is
the one place that turns such a mapping into the solver's typed record.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from pubsolve.core.solver.models import Link, LinkKind, VersionRecord, normalize_name
from pubsolve.core.version.constraints import VersionConstraint, parse_constraint
from pubsolve.core.version.version import Version, parse_version
from pubsolve.exceptions import ParseError

logger = logging.getLogger(__name__)

_LINK_FIELDS: dict[str, LinkKind] = {
    "require": LinkKind.REQUIRE,
    "require-dev": LinkKind.REQUIRE_DEV,
    "provide": LinkKind.PROVIDE,
    "replace": LinkKind.REPLACE,
    "conflict": LinkKind.CONFLICT,
}


def _links(
    source: str, version: Version, kind: LinkKind, raw: Any
) -> tuple[Link, ...]:
    if not raw:
        return ()
    if not isinstance(raw, Mapping):
        raise ParseError(f"{source}: '{kind.value}' must be an object")
    links = []
    for target, text in sorted(raw.items()):
        text = str(text).strip()
        if text == "self.version":
            constraint = VersionConstraint.exact(version)
        else:
            constraint = parse_constraint(text)
        links.append(Link(source, normalize_name(target), constraint, kind))
    return tuple(links)


def record_from_dict(
    data: Mapping[str, Any],
    *,
    name: str | None = None,
    version: str | None = None,
) -> VersionRecord:
    """Build a VersionRecord from a composer.json-style mapping.

    Args:
        data: The mapping.
        name: Package name, overriding ``data["name"]``.
        version: Version text, overriding ``data["version"]``.

    Returns:
        The record. Keys other than name, version and the link fields are
        kept verbatim in ``metadata``.

    Raises:
        ParseError: If the name, version or any constraint is malformed.
    """
    raw_name = name if name is not None else data.get("name")
    if not raw_name:
        raise ParseError("Package metadata has no name")
    package = normalize_name(str(raw_name))

    raw_version = version if version is not None else data.get("version")
    if not raw_version:
        raise ParseError(f"{package}: metadata has no version")
    parsed_version = parse_version(str(raw_version))

    links = {
        kind: _links(package, parsed_version, kind, data.get(field_name))
        for field_name, kind in _LINK_FIELDS.items()
    }
    metadata = {
        key: value
        for key, value in data.items()
        if key not in _LINK_FIELDS and key not in ("name", "version")
    }
    return VersionRecord(
        name=package,
        version=parsed_version,
        requires=links[LinkKind.REQUIRE],
        dev_requires=links[LinkKind.REQUIRE_DEV],
        provides=links[LinkKind.PROVIDE],
        replaces=links[LinkKind.REPLACE],
        conflicts=links[LinkKind.CONFLICT],
        metadata=metadata,
    )


def records_from_dicts(
    entries: Iterable[Mapping[str, Any]], *, name: str | None = None
) -> list[VersionRecord]:
    """Convert many entries, skipping (and logging) malformed ones."""
    records = []
    for entry in entries:
        try:
            records.append(record_from_dict(entry, name=name))
        except ParseError as exc:
            logger.warning("skipping malformed version of %s: %s", name or "?", exc)
    return records
