"""Runs discovery for every branch and family of one build.

Each branch needs its own device session (the operator switches the game to
that branch and confirms). Families run one after another; a failed family
is reported and skipped, a lost device ends the run.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from idlist.config import IdlistSettings
from idlist.device.adb import AdbDevice
from idlist.device.link import AdbDeviceLink
from idlist.discovery.cache import BranchSummary, CacheEntry, ResultCache
from idlist.discovery.context import RunContext
from idlist.discovery.engine import AutocompleteDiscoverer, DeviceLink, DiscoveryError, Recognizer
from idlist.discovery.families import Branch, CommandFamily, select_families
from idlist.notify import pause
from idlist.recognition.ocr import CommandRecognizer, load_mistake_table

logger = logging.getLogger(__name__)


@dataclass
class BranchReport:
    branch: Branch
    summary: BranchSummary
    failures: dict[str, str] = field(default_factory=dict)
    from_cache: bool = False

    @property
    def ok(self) -> bool:
        return not self.failures

    def to_dict(self) -> dict[str, Any]:
        return {
            "branch": self.branch.value,
            "version": self.summary.version,
            "from_cache": self.from_cache,
            "counts": {k: len(v) for k, v in self.summary.results.items()},
            "failures": dict(self.failures),
        }


@dataclass
class RunReport:
    build_version: str
    branches: dict[str, BranchReport] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return all(r.ok for r in self.branches.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "build_version": self.build_version,
            "ok": self.ok,
            "branches": {k: v.to_dict() for k, v in self.branches.items()},
        }


def build_recognizer(settings: IdlistSettings) -> CommandRecognizer:
    return CommandRecognizer(
        rects=settings.command_area_rects,
        mistakes=load_mistake_table(settings.mistakes_file),
        lang=settings.ocr_lang,
        psm=settings.ocr_psm,
        oem=settings.ocr_oem,
        threshold=settings.ocr_threshold,
        tesseract_cmd=settings.tesseract_cmd,
        tessdata_dir=settings.tessdata_dir,
    )


def connect_device(settings: IdlistSettings) -> AdbDevice:
    logger.info("Connecting to device...")
    device = AdbDevice.any_online(adb_path=settings.adb_path, serial=settings.device_serial)
    if device is None:
        logger.info("Please plug in the device...")
        device = AdbDevice.wait_for_any(adb_path=settings.adb_path, serial=settings.device_serial)
    return device


class SessionOrchestrator:
    def __init__(
        self,
        settings: IdlistSettings,
        *,
        cache: ResultCache | None = None,
        recognizer: Recognizer | None = None,
        connect: Callable[[], DeviceLink] | None = None,
        confirm: Callable[[str], object] | None = None,
    ):
        self._settings = settings
        self._cache = cache or ResultCache(settings.cache_dir)
        self._recognizer = recognizer
        self._connect = connect or self._connect_adb
        self._confirm = confirm or self._default_confirm

    def _default_confirm(self, message: str) -> object:
        if self._settings.notify_enabled:
            return pause(message)
        return pause(message, notify_fn=None)

    def _connect_adb(self) -> DeviceLink:
        s = self._settings
        return AdbDeviceLink(
            connect_device(s),
            monkey_port=s.monkey_port,
            use_minicap=s.use_minicap,
            minicap_port=s.minicap_port,
            minicap_dir=s.minicap_dir,
        )

    def _get_recognizer(self) -> Recognizer:
        if self._recognizer is None:
            self._recognizer = build_recognizer(self._settings)
        return self._recognizer

    async def run(
        self,
        build_version: str,
        *,
        branches: list[Branch],
        family_names: list[str] | None = None,
    ) -> RunReport:
        report = RunReport(build_version=build_version)
        for branch in branches:
            ctx = RunContext(
                build_version=build_version,
                branch=branch,
                cache=self._cache,
                namespace=self._settings.cache_namespace,
            )
            report.branches[branch.value] = await self.run_branch(ctx, family_names=family_names)
        return report

    async def run_branch(self, ctx: RunContext, *, family_names: list[str] | None = None) -> BranchReport:
        families = select_families(ctx.build_version, names=family_names, families=ctx.families)

        cached = ctx.cache.get_summary(ctx.namespace, ctx.branch.value)
        if cached is not None and cached.version == ctx.build_version and all(
            f.id in cached.results for f in families
        ):
            logger.info("Branch %s already enumerated for %s", ctx.branch.value, ctx.build_version)
            return BranchReport(branch=ctx.branch, summary=cached, from_cache=True)

        summary = BranchSummary(version=ctx.build_version)
        report = BranchReport(branch=ctx.branch, summary=summary)
        discoverer: AutocompleteDiscoverer | None = None

        for family in families:
            key = ctx.key_for(family)
            lookup = ctx.cache.lookup(key, ctx.build_version)
            if lookup.hit:
                summary.results[family.id] = list(lookup.entry.completions)
                continue

            if discoverer is None:
                discoverer = self._open_branch_session(ctx)

            try:
                completions = await discoverer.discover(
                    family,
                    progress_name=ctx.progress_name(family),
                    approx_length=lookup.length_hint,
                )
            except DiscoveryError as exc:
                logger.error("Discovery failed for %s: %s", ctx.progress_name(family), exc)
                report.failures[family.id] = str(exc)
                continue

            ctx.cache.put(key, CacheEntry.create(ctx.build_version, completions))
            summary.results[family.id] = completions
            logger.info("%s: %d completions", ctx.progress_name(family), len(completions))

        if report.ok:
            ctx.cache.put_summary(ctx.namespace, ctx.branch.value, summary)
        return report

    def _open_branch_session(self, ctx: RunContext) -> AutocompleteDiscoverer:
        link = self._connect()
        self._confirm(f"Please switch to branch: {ctx.branch.value}. Press <Enter> if the device is ready")
        return AutocompleteDiscoverer(
            link=link,
            recognizer=self._get_recognizer(),
            retry_attempts=self._settings.retry_attempts,
            retry_interval_seconds=self._settings.retry_interval_seconds,
        )
