from __future__ import annotations

import logging
import re
import shutil
import subprocess
import time
from dataclasses import dataclass

logger = logging.getLogger(__name__)


class AdbError(RuntimeError):
    pass


class DeviceNotFoundError(AdbError):
    pass


_SURFACE_ORIENTATION = re.compile(r"SurfaceOrientation:\s*(\d+)")
_TEXT_SPECIALS = "\\'\"&|<>;()$`"


def escape_input_text(text: str) -> str:
    """Escape text for ``input text`` (spaces become ``%s``)."""
    escaped = []
    for ch in text:
        if ch == " ":
            escaped.append("%s")
        elif ch in _TEXT_SPECIALS:
            escaped.append("\\" + ch)
        else:
            escaped.append(ch)
    return "".join(escaped)


@dataclass(frozen=True)
class DeviceInfo:
    serial: str
    state: str

    @property
    def online(self) -> bool:
        return self.state == "device"


def stop_process(process: subprocess.Popen, timeout_seconds: float = 2.0) -> None:
    """Kill a spawned adb child if still running and reap it."""
    if process.poll() is None:
        process.kill()
    try:
        process.wait(timeout=timeout_seconds)
    except subprocess.TimeoutExpired:
        logger.warning("adb child %s did not exit after kill", process.pid)


class AdbDevice:
    """One attached device, addressed through the ``adb`` executable."""

    def __init__(self, serial: str, *, adb_path: str = "adb", timeout_seconds: float = 30.0):
        self.serial = serial
        self._adb_path = adb_path
        self._timeout = timeout_seconds

    def __repr__(self) -> str:
        return f"AdbDevice({self.serial!r})"

    @staticmethod
    def _require_adb(adb_path: str) -> None:
        if shutil.which(adb_path) is None:
            raise AdbError(
                f"adb executable not found: {adb_path}. "
                "Install Android platform-tools or set IDLIST_ADB_PATH."
            )

    @classmethod
    def list_devices(cls, *, adb_path: str = "adb") -> list[DeviceInfo]:
        cls._require_adb(adb_path)
        try:
            proc = subprocess.run([adb_path, "devices"], capture_output=True, text=True, timeout=10)
        except subprocess.TimeoutExpired as exc:
            raise AdbError("adb devices timed out") from exc
        if proc.returncode != 0:
            raise AdbError(f"adb devices failed: {proc.stderr.strip()}")

        devices: list[DeviceInfo] = []
        for line in proc.stdout.splitlines()[1:]:
            parts = line.split()
            if len(parts) >= 2:
                devices.append(DeviceInfo(serial=parts[0], state=parts[1]))
        return devices

    @classmethod
    def any_online(cls, *, adb_path: str = "adb", serial: str | None = None) -> AdbDevice | None:
        for info in cls.list_devices(adb_path=adb_path):
            if not info.online:
                continue
            if serial and info.serial != serial:
                continue
            return cls(info.serial, adb_path=adb_path)
        return None

    @classmethod
    def wait_for_any(
        cls,
        *,
        adb_path: str = "adb",
        serial: str | None = None,
        timeout_seconds: float | None = None,
        poll_seconds: float = 1.0,
    ) -> AdbDevice:
        start = time.monotonic()
        while True:
            device = cls.any_online(adb_path=adb_path, serial=serial)
            if device is not None:
                logger.info("Device connected: %s", device.serial)
                return device
            if timeout_seconds is not None and time.monotonic() - start >= timeout_seconds:
                raise DeviceNotFoundError("No online adb device found")
            time.sleep(poll_seconds)

    def _run(self, args: list[str], *, text: bool = True, timeout: float | None = None):
        cmd = [self._adb_path, "-s", self.serial, *args]
        try:
            proc = subprocess.run(cmd, capture_output=True, text=text, timeout=timeout or self._timeout)
        except subprocess.TimeoutExpired as exc:
            raise AdbError(f"adb timed out: {' '.join(args)}") from exc
        except OSError as exc:
            raise AdbError(f"adb could not be started: {exc}") from exc
        if proc.returncode != 0:
            stderr = proc.stderr if text else proc.stderr.decode("utf-8", errors="replace")
            raise AdbError(f"adb failed: {' '.join(args)}\n{stderr.strip()}")
        return proc

    def shell(self, command: str) -> str:
        return self._run(["shell", command]).stdout

    def spawn_shell(self, command: str) -> subprocess.Popen:
        """Start a long-running shell command; the caller owns the process."""
        return subprocess.Popen(
            [self._adb_path, "-s", self.serial, "shell", command],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )

    def screencap(self) -> bytes:
        data = self._run(["exec-out", "screencap", "-p"], text=False).stdout
        if not data:
            raise AdbError("screencap returned no data")
        return data

    def input_text(self, text: str) -> None:
        self._run(["shell", "input", "text", escape_input_text(text)])

    def forward(self, local: str, remote: str) -> None:
        self._run(["forward", local, remote])

    def remove_forward(self, local: str) -> None:
        try:
            self._run(["forward", "--remove", local])
        except AdbError as exc:
            logger.debug("adb forward --remove %s failed: %s", local, exc)

    def surface_orientation(self) -> int:
        output = self.shell("dumpsys input")
        m = _SURFACE_ORIENTATION.search(output)
        if not m:
            raise AdbError("SurfaceOrientation not reported by dumpsys input")
        return int(m.group(1))

    def screen_size(self) -> tuple[int, int]:
        output = self.shell("wm size")
        m = re.search(r"(\d+)x(\d+)", output.split("Override size:")[-1])
        if not m:
            raise AdbError(f"Unexpected wm size output: {output.strip()!r}")
        return int(m.group(1)), int(m.group(2))

    def kill_process(self, name: str) -> bool:
        # pidof exits 1 when nothing matches
        pids = self.shell(f"pidof {name} || true").split()
        if not pids:
            return False
        for pid in pids:
            try:
                self.shell(f"kill -9 {pid}")
            except AdbError as exc:
                logger.debug("kill %s (%s) failed: %s", pid, name, exc)
        return True
