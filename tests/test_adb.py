"""Tests for idlist.device.adb module."""
from __future__ import annotations

import subprocess
from unittest import mock

import pytest

from idlist.device import adb
from idlist.device.adb import AdbDevice, AdbError, DeviceNotFoundError, escape_input_text


def _completed(stdout="", returncode=0, stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def adb_on_path(monkeypatch):
    monkeypatch.setattr(adb.shutil, "which", lambda name: "/usr/bin/adb")


class TestEscapeInputText:
    """Tests for escape_input_text()."""

    def test_spaces_become_percent_s(self):
        assert escape_input_text("/gamerule ") == "/gamerule%s"

    def test_shell_specials_are_escaped(self):
        assert escape_input_text("/testfor @e[type=") == "/testfor%s@e[type="
        assert escape_input_text("a&b;c") == "a\\&b\\;c"


class TestListDevices:
    """Tests for device listing."""

    def test_parses_adb_devices(self, adb_on_path):
        out = "List of devices attached\nemulator-5554\tdevice\nR58M\toffline\n\n"
        with mock.patch.object(adb.subprocess, "run", return_value=_completed(out)):
            devices = AdbDevice.list_devices()

        assert [(d.serial, d.online) for d in devices] == [("emulator-5554", True), ("R58M", False)]

    def test_any_online_skips_offline(self, adb_on_path):
        out = "List of devices attached\nR58M\toffline\nemulator-5554\tdevice\n"
        with mock.patch.object(adb.subprocess, "run", return_value=_completed(out)):
            device = AdbDevice.any_online()

        assert device is not None
        assert device.serial == "emulator-5554"

    def test_any_online_none(self, adb_on_path):
        with mock.patch.object(adb.subprocess, "run", return_value=_completed("List of devices attached\n")):
            assert AdbDevice.any_online() is None

    def test_missing_adb(self, monkeypatch):
        monkeypatch.setattr(adb.shutil, "which", lambda name: None)
        with pytest.raises(AdbError):
            AdbDevice.list_devices()

    def test_wait_for_any_times_out(self, adb_on_path, monkeypatch):
        monkeypatch.setattr(adb.time, "sleep", lambda s: None)
        with mock.patch.object(adb.subprocess, "run", return_value=_completed("List of devices attached\n")):
            with pytest.raises(DeviceNotFoundError):
                AdbDevice.wait_for_any(timeout_seconds=0)


class TestAdbDevice:
    """Tests for per-device commands."""

    def test_shell_failure_raises(self):
        device = AdbDevice("emulator-5554")
        with mock.patch.object(adb.subprocess, "run", return_value=_completed(returncode=1, stderr="error: closed")):
            with pytest.raises(AdbError, match="closed"):
                device.shell("dumpsys input")

    def test_commands_target_serial(self):
        device = AdbDevice("emulator-5554")
        with mock.patch.object(adb.subprocess, "run", return_value=_completed("")) as run:
            device.input_text("/gamerule ")

        cmd = run.call_args.args[0]
        assert cmd[:3] == ["adb", "-s", "emulator-5554"]
        assert cmd[3:] == ["shell", "input", "text", "/gamerule%s"]

    def test_surface_orientation(self, monkeypatch):
        device = AdbDevice("emulator-5554")
        dumpsys = "INPUT MANAGER\n  Viewport INTERNAL:\n    SurfaceOrientation: 3\n    Translation: 0\n"
        monkeypatch.setattr(device, "shell", lambda cmd: dumpsys)
        assert device.surface_orientation() == 3

    def test_surface_orientation_missing(self, monkeypatch):
        device = AdbDevice("emulator-5554")
        monkeypatch.setattr(device, "shell", lambda cmd: "nothing here")
        with pytest.raises(AdbError):
            device.surface_orientation()

    def test_screen_size_prefers_override(self, monkeypatch):
        device = AdbDevice("emulator-5554")
        monkeypatch.setattr(device, "shell", lambda cmd: "Physical size: 1080x2340\nOverride size: 720x1560\n")
        assert device.screen_size() == (720, 1560)

    def test_timeout_becomes_adb_error(self):
        device = AdbDevice("emulator-5554")
        with mock.patch.object(adb.subprocess, "run", side_effect=subprocess.TimeoutExpired("adb", 30)):
            with pytest.raises(AdbError, match="timed out"):
                device.screencap()

    def test_kill_process_nothing_running(self, monkeypatch):
        device = AdbDevice("emulator-5554")
        commands = []

        def shell(cmd):
            commands.append(cmd)
            return "\n"

        monkeypatch.setattr(device, "shell", shell)
        assert device.kill_process("com.android.commands.monkey") is False
        assert commands == ["pidof com.android.commands.monkey || true"]

    def test_kill_process_kills_each_pid(self, monkeypatch):
        device = AdbDevice("emulator-5554")
        commands = []

        def shell(cmd):
            commands.append(cmd)
            return "4211 4390\n" if cmd.startswith("pidof") else ""

        monkeypatch.setattr(device, "shell", shell)
        assert device.kill_process("minicap") is True
        assert commands[1:] == ["kill -9 4211", "kill -9 4390"]

    def test_kill_process_tolerates_exited_pid(self, monkeypatch):
        device = AdbDevice("emulator-5554")

        def shell(cmd):
            if cmd.startswith("pidof"):
                return "3751\n"
            raise AdbError("adb failed: shell kill -9 3751 / kill: No such process")

        monkeypatch.setattr(device, "shell", shell)
        assert device.kill_process("com.android.commands.monkey") is True
