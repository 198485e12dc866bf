"""Autocompletion discovery.

Enumerates tab-completion values per command family with a versioned,
resumable cache of results.
"""
from __future__ import annotations

from idlist.discovery.cache import BranchSummary, CacheEntry, CacheKey, CacheLookup, ResultCache
from idlist.discovery.context import RunContext
from idlist.discovery.engine import AutocompleteDiscoverer, DiscoveryError
from idlist.discovery.families import DEFAULT_FAMILIES, Branch, CommandFamily, branches_for_package, select_families
from idlist.discovery.orchestrator import BranchReport, RunReport, SessionOrchestrator

__all__ = [
    "BranchSummary",
    "CacheEntry",
    "CacheKey",
    "CacheLookup",
    "ResultCache",
    "RunContext",
    "AutocompleteDiscoverer",
    "DiscoveryError",
    "DEFAULT_FAMILIES",
    "Branch",
    "CommandFamily",
    "branches_for_package",
    "select_families",
    "BranchReport",
    "RunReport",
    "SessionOrchestrator",
]
