"""Stability levels for package versions.

A stability describes how mature a release is. Composer orders them
``dev < alpha < beta < RC < stable``; a resolver only considers versions at
or above the configured minimum stability unless a constraint carries an
explicit ``@flag`` that lowers the bar for that one package.
"""

from __future__ import annotations

from enum import IntEnum

from pubsolve.exceptions import ParseError


class Stability(IntEnum):
    """Maturity of a version, ordered from least to most stable."""

    DEV = 0
    ALPHA = 1
    BETA = 2
    RC = 3
    STABLE = 4

    def __str__(self) -> str:
        return _DISPLAY[self]


_DISPLAY = {
    Stability.DEV: "dev",
    Stability.ALPHA: "alpha",
    Stability.BETA: "beta",
    Stability.RC: "RC",
    Stability.STABLE: "stable",
}

_ALIASES = {
    "dev": Stability.DEV,
    "alpha": Stability.ALPHA,
    "a": Stability.ALPHA,
    "beta": Stability.BETA,
    "b": Stability.BETA,
    "rc": Stability.RC,
    "stable": Stability.STABLE,
    # Post-releases count as stable.
    "patch": Stability.STABLE,
    "pl": Stability.STABLE,
    "p": Stability.STABLE,
}


def parse_stability(text: str) -> Stability:
    """Parse a stability name such as ``"beta"`` or ``"RC"``.

    Args:
        text: Stability name, case-insensitive. Short pre-release tags
            (``a``, ``b``) are accepted.

    Returns:
        The matching Stability level.

    Raises:
        ParseError: If the name is not a known stability.
    """
    try:
        return _ALIASES[text.strip().lower()]
    except KeyError:
        raise ParseError(f"Unknown stability: {text!r}") from None
