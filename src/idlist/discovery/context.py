from __future__ import annotations

from dataclasses import dataclass

from idlist.discovery.cache import CacheKey, ResultCache
from idlist.discovery.families import DEFAULT_FAMILIES, Branch, CommandFamily


@dataclass(frozen=True)
class RunContext:
    """Per-run state handed to every discovery call for one branch."""
    build_version: str
    branch: Branch
    cache: ResultCache
    namespace: str = "autocompleted"
    families: tuple[CommandFamily, ...] = DEFAULT_FAMILIES

    def key_for(self, family: CommandFamily) -> CacheKey:
        return CacheKey(namespace=self.namespace, branch=self.branch.value, family=family.slug)

    def progress_name(self, family: CommandFamily) -> str:
        return f"{self.branch.value}.{family.slug}"

