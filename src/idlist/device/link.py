from __future__ import annotations

import asyncio

from idlist.device.adb import AdbDevice
from idlist.device.capture import FrameSource, open_frame_source
from idlist.device.monkey import DEFAULT_MONKEY_PORT, MonkeySession


class AdbDeviceLink:
    """Everything a discovery session needs from one adb device."""

    def __init__(
        self,
        device: AdbDevice,
        *,
        monkey_port: int = DEFAULT_MONKEY_PORT,
        use_minicap: bool = True,
        minicap_port: int = 1717,
        minicap_dir: str = "/data/local/tmp",
    ):
        self.device = device
        self._monkey_port = monkey_port
        self._use_minicap = use_minicap
        self._minicap_port = minicap_port
        self._minicap_dir = minicap_dir
        self._orientation = 0

    async def surface_orientation(self) -> int:
        self._orientation = await asyncio.to_thread(self.device.surface_orientation)
        return self._orientation

    async def open_input(self) -> MonkeySession:
        return await MonkeySession.open(self.device, port=self._monkey_port)

    async def input_text(self, text: str) -> None:
        await asyncio.to_thread(self.device.input_text, text)

    async def open_capture(self) -> FrameSource:
        return await open_frame_source(
            self.device,
            prefer_stream=self._use_minicap,
            minicap_port=self._minicap_port,
            minicap_dir=self._minicap_dir,
            orientation=self._orientation,
        )
