"""Tests for idlist.cli module."""
from __future__ import annotations

import json
import os
from unittest import mock

import pytest

from idlist import cli
from idlist.device.adb import DeviceNotFoundError
from idlist.discovery.cache import BranchSummary
from idlist.discovery.families import Branch
from idlist.discovery.orchestrator import BranchReport, RunReport


class FakeOrchestrator:
    instances: list["FakeOrchestrator"] = []

    def __init__(self, settings, *, error: Exception | None = None):
        self.settings = settings
        self.calls = []
        self._error = error
        FakeOrchestrator.instances.append(self)

    async def run(self, build_version, *, branches, family_names=None):
        self.calls.append((build_version, branches, family_names))
        if self._error is not None:
            raise self._error
        report = RunReport(build_version=build_version)
        for branch in branches:
            report.branches[branch.value] = BranchReport(
                branch=branch,
                summary=BranchSummary(version=build_version, results={"gamerules": ["doFireTick"]}),
            )
        return report


@pytest.fixture(autouse=True)
def clean_env():
    with mock.patch.dict(os.environ, {}, clear=False):
        os.environ.pop("IDLIST_BUILD_VERSION", None)
        os.environ.pop("IDLIST_PACKAGE_TYPE", None)
        FakeOrchestrator.instances.clear()
        yield


class TestMain:
    """Tests for main()."""

    def test_requires_build_version(self, capsys):
        assert cli.main([]) == 2

    def test_runs_package_branches(self, monkeypatch, capsys):
        monkeypatch.setattr(cli, "SessionOrchestrator", FakeOrchestrator)

        code = cli.main(["--build-version", "1.18.10.21", "--package-type", "beta", "--family", "gamerules"])

        assert code == 0
        orchestrator = FakeOrchestrator.instances[0]
        version, branches, families = orchestrator.calls[0]
        assert version == "1.18.10.21"
        assert branches == [Branch.VANILLA, Branch.EDUCATION, Branch.EXPERIMENT]
        assert families == ["gamerules"]
        out = json.loads(capsys.readouterr().out)
        assert out["branches"]["experiment"]["counts"] == {"gamerules": 1}

    def test_explicit_branch_and_no_minicap(self, monkeypatch, capsys):
        monkeypatch.setattr(cli, "SessionOrchestrator", FakeOrchestrator)

        cli.main(["--build-version", "1.18.10.21", "--branch", "education", "--no-minicap"])

        orchestrator = FakeOrchestrator.instances[0]
        assert orchestrator.calls[0][1] == [Branch.EDUCATION]
        assert orchestrator.settings.use_minicap is False

    def test_device_error_asks_for_reconnect(self, monkeypatch, capsys):
        monkeypatch.setattr(
            cli,
            "SessionOrchestrator",
            lambda settings: FakeOrchestrator(settings, error=DeviceNotFoundError("gone")),
        )

        code = cli.main(["--build-version", "1.18.10.21"])

        assert code == 2
        assert "Reconnect the device" in capsys.readouterr().err
