"""Command families and game branches that get enumerated."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

from idlist.versions import VersionRange


class Branch(str, Enum):
    VANILLA = "vanilla"
    EDUCATION = "education"
    EXPERIMENT = "experiment"


def branches_for_package(package_type: str) -> list[Branch]:
    """Branches a package type ships: netease is vanilla only, beta adds experiments."""
    package_type = (package_type or "release").lower()
    branches = [Branch.VANILLA]
    if package_type != "netease":
        branches.append(Branch.EDUCATION)
    if package_type == "beta":
        branches.append(Branch.EXPERIMENT)
    return branches


@dataclass(frozen=True)
class CommandFamily:
    """One tab-completable argument domain, e.g. every item id after ``/clear @s ``."""
    name: str
    command_prefix: str
    exclusions: frozenset[str] = field(default_factory=frozenset)
    # Enumerated only when the build falls in one of these ranges; None means always.
    version_ranges: tuple[VersionRange, ...] | None = None

    @property
    def id(self) -> str:
        """Output key: ``summonable entities`` -> ``summonableEntities``."""
        return re.sub(r"\s+(\S)", lambda m: m.group(1).upper(), self.name)

    @property
    def slug(self) -> str:
        """Cache key: ``summonable entities`` -> ``summonable_entities``."""
        return re.sub(r"\s+", "_", self.name)

    def applies_to(self, build_version: str) -> bool:
        if self.version_ranges is None:
            return True
        return any(r.contains(build_version) for r in self.version_ranges)


DEFAULT_FAMILIES: tuple[CommandFamily, ...] = (
    CommandFamily("blocks", "/testforblock ~ ~ ~ "),
    CommandFamily("items", "/clear @s ", frozenset({"["})),
    CommandFamily("entities", "/testfor @e[type=", frozenset({"!"})),
    CommandFamily("summonable entities", "/summon "),
    CommandFamily("effects", "/effect @s ", frozenset({"[", "clear"})),
    CommandFamily("enchantments", "/enchant @s ", frozenset({"["})),
    CommandFamily("gamerules", "/gamerule "),
    CommandFamily("locations", "/locate "),
    CommandFamily("mobevents", "/mobevent "),
    CommandFamily("selectors", "/testfor @e["),
    CommandFamily(
        "loot tools",
        "/loot spawn ~ ~ ~ loot empty ",
        frozenset({"mainhand", "offhand"}),
        version_ranges=(
            VersionRange("1.18.0.21", "1.18.0.21"),
            VersionRange("1.18.10.21", "*"),
        ),
    ),
)


def select_families(
    build_version: str,
    *,
    names: list[str] | None = None,
    families: tuple[CommandFamily, ...] = DEFAULT_FAMILIES,
) -> list[CommandFamily]:
    wanted = {n.lower() for n in names} if names else None
    selected = []
    for family in families:
        if wanted is not None and family.name not in wanted and family.slug not in wanted:
            continue
        if family.applies_to(build_version):
            selected.append(family)
    return selected
