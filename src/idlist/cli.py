from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from idlist.config import get_settings
from idlist.device.adb import AdbError
from idlist.discovery.families import DEFAULT_FAMILIES, Branch, branches_for_package
from idlist.discovery.orchestrator import SessionOrchestrator

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="idlist",
        description="Enumerate command autocompletions from a connected device",
    )
    parser.add_argument("--build-version", help="Game build being analyzed (e.g. 1.18.10.21)")
    parser.add_argument("--package-type", choices=["release", "beta", "netease"])
    parser.add_argument(
        "--branch",
        action="append",
        choices=[b.value for b in Branch],
        help="Only enumerate this branch (repeatable)",
    )
    parser.add_argument(
        "--family",
        action="append",
        choices=[f.slug for f in DEFAULT_FAMILIES],
        help="Only enumerate this command family (repeatable)",
    )
    parser.add_argument("--no-minicap", action="store_true", help="Always capture with screencap")
    parser.add_argument("--log-level")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    settings = get_settings()
    updates = {}
    if args.build_version:
        updates["build_version"] = args.build_version
    if args.package_type:
        updates["package_type"] = args.package_type
    if args.no_minicap:
        updates["use_minicap"] = False
    if args.log_level:
        updates["log_level"] = args.log_level
    if updates:
        settings = settings.model_copy(update=updates)

    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))

    if not settings.build_version:
        logger.error("No build version given (use --build-version or IDLIST_BUILD_VERSION)")
        return 2

    branches = [Branch(b) for b in args.branch] if args.branch else branches_for_package(settings.package_type)
    logger.info(
        "IDList starting build=%s branches=%s cache_dir=%s",
        settings.build_version,
        ",".join(b.value for b in branches),
        settings.cache_dir,
    )

    orchestrator = SessionOrchestrator(settings)
    try:
        report = asyncio.run(
            orchestrator.run(settings.build_version, branches=branches, family_names=args.family)
        )
    except AdbError as exc:
        logger.error("Device connection failed: %s", exc)
        print("Device connection lost. Reconnect the device and run again.", file=sys.stderr)
        return 2

    print(json.dumps(report.to_dict(), indent=2))
    return 0 if report.ok else 1


if __name__ == "__main__":
    sys.exit(main())
