"""Android device channel: adb shell access, monkey key injection, screen capture."""
from __future__ import annotations

from idlist.device.adb import AdbDevice, AdbError, DeviceNotFoundError
from idlist.device.capture import CaptureError, FrameSource, MinicapStream, ScreencapSource, open_frame_source
from idlist.device.link import AdbDeviceLink
from idlist.device.monkey import MonkeySession

__all__ = [
    "AdbDevice",
    "AdbDeviceLink",
    "AdbError",
    "DeviceNotFoundError",
    "CaptureError",
    "FrameSource",
    "MinicapStream",
    "ScreencapSource",
    "open_frame_source",
    "MonkeySession",
]
