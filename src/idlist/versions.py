"""Dotted build-version comparison.

Versions look like ``1.18.10.21``. A ``*`` component compares greater than
any number and is used for open-ended ranges.
"""
from __future__ import annotations

import math
from dataclasses import dataclass


def _components(version: str) -> list[float]:
    parts: list[float] = []
    for raw in version.split("."):
        if raw == "*":
            parts.append(math.inf)
            continue
        try:
            parts.append(int(raw))
        except ValueError:
            parts.append(-1)
    return parts


def compare_versions(a: str, b: str) -> int:
    """Return a negative number, zero or a positive number like ``cmp``."""
    av = _components(a)
    bv = _components(b)
    for x, y in zip(av, bv):
        if x == y:
            continue
        return -1 if x < y else 1
    return len(av) - len(bv)


def version_in_range(version: str, lower: str, upper: str) -> bool:
    return compare_versions(version, lower) >= 0 and compare_versions(version, upper) <= 0


@dataclass(frozen=True)
class VersionRange:
    """Inclusive range of build versions."""
    lower: str
    upper: str = "*"

    def contains(self, version: str) -> bool:
        return version_in_range(version, self.lower, self.upper)
