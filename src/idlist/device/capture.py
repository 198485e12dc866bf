"""Screen capture, either streamed through minicap or taken on demand."""
from __future__ import annotations

import asyncio
import io
import logging
import struct
from dataclasses import dataclass
from typing import Protocol

from PIL import Image

from idlist.device.adb import AdbDevice, AdbError, stop_process

logger = logging.getLogger(__name__)


class CaptureError(RuntimeError):
    pass


class FrameSource(Protocol):
    async def capture(self) -> Image.Image:  # pragma: no cover
        ...

    async def close(self) -> None:  # pragma: no cover
        ...


def decode_image(data: bytes) -> Image.Image:
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (OSError, ValueError) as exc:
        raise CaptureError(f"Could not decode captured frame ({len(data)} bytes): {exc}") from exc
    return image


class ScreencapSource:
    """Takes a fresh ``screencap -p`` on every call. Slow but always current."""

    def __init__(self, device: AdbDevice):
        self._device = device

    async def capture(self) -> Image.Image:
        data = await asyncio.to_thread(self._device.screencap)
        return decode_image(data)

    async def close(self) -> None:
        return None


@dataclass(frozen=True)
class MinicapBanner:
    version: int
    pid: int
    real_width: int
    real_height: int
    virtual_width: int
    virtual_height: int
    orientation: int
    quirks: int

    SIZE = 24

    @classmethod
    def parse(cls, data: bytes) -> MinicapBanner:
        if len(data) < cls.SIZE:
            raise CaptureError(f"Short minicap banner ({len(data)} bytes)")
        version, length = data[0], data[1]
        if length != cls.SIZE:
            raise CaptureError(f"Unexpected minicap banner length {length}")
        pid, rw, rh, vw, vh = struct.unpack_from("<IIIII", data, 2)
        return cls(
            version=version,
            pid=pid,
            real_width=rw,
            real_height=rh,
            virtual_width=vw,
            virtual_height=vh,
            orientation=data[22] * 90,
            quirks=data[23],
        )


class MinicapStream:
    """Low-latency frames from a minicap binary already installed on the device.

    A background task keeps only the most recent JPEG frame; ``capture``
    decodes it on demand.
    """

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter, banner: MinicapBanner):
        self.banner = banner
        self._reader = reader
        self._writer = writer
        self._latest: bytes | None = None
        self._frame_ready = asyncio.Event()
        self._error: Exception | None = None
        self._task = asyncio.create_task(self._pump())
        self._process = None
        self._cleanup = None

    @classmethod
    async def open(
        cls,
        device: AdbDevice,
        *,
        port: int = 1717,
        minicap_dir: str = "/data/local/tmp",
        orientation: int = 0,
        connect_attempts: int = 10,
        connect_interval: float = 0.5,
    ) -> MinicapStream:
        width, height = await asyncio.to_thread(device.screen_size)
        projection = f"{width}x{height}@{width}x{height}/{orientation * 90}"
        process = await asyncio.to_thread(
            device.spawn_shell,
            f"LD_LIBRARY_PATH={minicap_dir} {minicap_dir}/minicap -P {projection}",
        )
        local = f"tcp:{port}"
        try:
            await asyncio.to_thread(device.forward, local, "localabstract:minicap")

            last_error: Exception | None = None
            for _ in range(connect_attempts):
                try:
                    reader, writer = await asyncio.open_connection("127.0.0.1", port)
                except OSError as exc:
                    last_error = exc
                    await asyncio.sleep(connect_interval)
                    continue
                try:
                    banner = MinicapBanner.parse(await reader.readexactly(MinicapBanner.SIZE))
                except (OSError, asyncio.IncompleteReadError, CaptureError) as exc:
                    writer.close()
                    last_error = exc
                    await asyncio.sleep(connect_interval)
                    continue
                stream = cls(reader, writer, banner)
                stream._process = process
                stream._cleanup = lambda: (device.kill_process("minicap"), device.remove_forward(local))
                logger.info(
                    "Minicap stream open pid=%d size=%dx%d",
                    banner.pid,
                    banner.virtual_width,
                    banner.virtual_height,
                )
                return stream

            raise CaptureError(f"Could not open minicap stream: {last_error}")
        except BaseException:
            await asyncio.to_thread(stop_process, process)
            await asyncio.to_thread(device.remove_forward, local)
            raise

    async def _pump(self) -> None:
        try:
            while True:
                header = await self._reader.readexactly(4)
                (length,) = struct.unpack("<I", header)
                self._latest = await self._reader.readexactly(length)
                self._frame_ready.set()
        except asyncio.CancelledError:
            raise
        except (OSError, asyncio.IncompleteReadError) as exc:
            self._error = exc
            self._frame_ready.set()

    async def capture(self, *, timeout_seconds: float = 5.0) -> Image.Image:
        if self._latest is None:
            try:
                await asyncio.wait_for(self._frame_ready.wait(), timeout_seconds)
            except asyncio.TimeoutError as exc:
                raise CaptureError("No frame received from minicap") from exc
        if self._error is not None:
            raise CaptureError(f"Minicap stream ended: {self._error}")
        if self._latest is None:
            raise CaptureError("No frame received from minicap")
        return decode_image(self._latest)

    async def close(self) -> None:
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._writer.close()
        if self._process is not None:
            await asyncio.to_thread(stop_process, self._process)
        if self._cleanup is not None:
            await asyncio.to_thread(self._cleanup)


async def open_frame_source(
    device: AdbDevice,
    *,
    prefer_stream: bool = True,
    minicap_port: int = 1717,
    minicap_dir: str = "/data/local/tmp",
    orientation: int = 0,
) -> FrameSource:
    """Open the best available capture path for ``device``."""
    if prefer_stream:
        try:
            return await MinicapStream.open(
                device,
                port=minicap_port,
                minicap_dir=minicap_dir,
                orientation=orientation,
            )
        except (CaptureError, AdbError, OSError) as exc:
            logger.warning("Open minicap failed, falling back to screencap: %s", exc)
    return ScreencapSource(device)
