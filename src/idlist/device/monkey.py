"""Key injection through the on-device ``monkey`` network interface.

``monkey --port N`` accepts newline-terminated commands such as
``press KEYCODE_TAB`` and answers each with ``OK`` or ``ERROR``.
"""
from __future__ import annotations

import asyncio
import logging
import subprocess

from idlist.device.adb import AdbDevice, AdbError, stop_process

logger = logging.getLogger(__name__)

DEFAULT_MONKEY_PORT = 11534


class MonkeySession:
    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter, *, process=None, on_close=None):
        self._reader = reader
        self._writer = writer
        self._process = process
        self._on_close = on_close
        self._closed = False

    @classmethod
    async def open(
        cls,
        device: AdbDevice,
        *,
        port: int = DEFAULT_MONKEY_PORT,
        connect_attempts: int = 10,
        connect_interval: float = 0.5,
    ) -> MonkeySession:
        if await asyncio.to_thread(device.kill_process, "com.android.commands.monkey"):
            await asyncio.sleep(1.0)

        process = await asyncio.to_thread(device.spawn_shell, f"monkey --port {port}")
        local = f"tcp:{port}"
        try:
            await asyncio.to_thread(device.forward, local, f"tcp:{port}")

            last_error: Exception | None = None
            for _ in range(connect_attempts):
                try:
                    reader, writer = await asyncio.open_connection("127.0.0.1", port)
                    logger.info("Monkey session open on %s port %d", device.serial, port)
                    return cls(
                        reader,
                        writer,
                        process=process,
                        on_close=lambda: device.remove_forward(local),
                    )
                except OSError as exc:
                    last_error = exc
                    await asyncio.sleep(connect_interval)
            raise AdbError(f"Could not connect to monkey on port {port}: {last_error}")
        except BaseException:
            await asyncio.to_thread(stop_process, process)
            await asyncio.to_thread(device.remove_forward, local)
            raise

    async def send(self, command: str) -> str:
        if self._closed:
            raise AdbError("Monkey session is closed")
        self._writer.write((command + "\n").encode("utf-8"))
        await self._writer.drain()
        if command == "quit":
            return ""
        line = (await self._reader.readline()).decode("utf-8", errors="replace").strip()
        if not line:
            raise AdbError(f"Monkey connection lost while sending {command!r}")
        if not line.startswith("OK"):
            raise AdbError(f"Monkey rejected {command!r}: {line}")
        return line[2:].lstrip(":").strip()

    async def press(self, keycode: str) -> None:
        await self.send(f"press {keycode}")

    async def close(self) -> None:
        if self._closed:
            return
        try:
            await self.send("quit")
        except (AdbError, OSError) as exc:
            logger.debug("Monkey quit failed: %s", exc)
        self._closed = True
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except OSError:
            pass
        if self._process is not None:
            try:
                await asyncio.to_thread(self._process.wait, 2)
            except subprocess.TimeoutExpired:
                await asyncio.to_thread(stop_process, self._process)
        if self._on_close is not None:
            await asyncio.to_thread(self._on_close)
