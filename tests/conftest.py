"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Generator

import pytest


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that's cleaned up after the test."""
    with tempfile.TemporaryDirectory() as td:
        yield Path(td)


class FakeInput:
    def __init__(self, link: "FakeDeviceLink"):
        self._link = link
        self.closed = False

    async def press(self, keycode: str) -> None:
        self._link.presses.append(keycode)
        if keycode == "KEYCODE_T":
            self._link.chat_open = True
        elif keycode == "KEYCODE_TAB":
            self._link.advance()
        elif keycode == "KEYCODE_ESCAPE":
            self._link.chat_open = False

    async def close(self) -> None:
        self.closed = True
        self._link.inputs_closed += 1


class FakeFrames:
    """Returns the visible command text itself as the 'image'."""

    def __init__(self, link: "FakeDeviceLink"):
        self._link = link
        self.closed = False

    async def capture(self):
        return self._link.read_screen()

    async def close(self) -> None:
        self.closed = True
        self._link.captures_closed += 1


class FakeDeviceLink:
    """Simulated chat box with cyclic tab-completion.

    Args:
        offered: prefix -> completions offered by successive tabs (cyclic).
        visible_width: keep only this many trailing characters on screen.
        stale_reads: captures after each tab that still show the old text.
        garbled: completions whose screen text is replaced with noise.
    """

    def __init__(
        self,
        offered: dict[str, list[str]],
        *,
        visible_width: int | None = None,
        stale_reads: int = 0,
        garbled: set[str] | None = None,
        orientation: int = 1,
    ):
        self.offered = offered
        self.visible_width = visible_width
        self.stale_reads = stale_reads
        self.garbled = garbled or set()
        self.orientation = orientation
        self.presses: list[str] = []
        self.typed: list[str] = []
        self.chat_open = False
        self.inputs_closed = 0
        self.captures_closed = 0
        self.captures = 0
        self._prefix = ""
        self._index = -1
        self._shown = ""
        self._pending_stale = 0

    def _render(self) -> str:
        if self._index < 0:
            text = self._prefix
        else:
            options = self.offered[self._prefix]
            completion = options[self._index % len(options)]
            if completion in self.garbled:
                return "#### ????"
            text = self._prefix + completion
        if self.visible_width is not None:
            text = text[-self.visible_width:]
        return text.strip()

    def advance(self) -> None:
        self._index += 1
        self._pending_stale = self.stale_reads

    def read_screen(self) -> str:
        self.captures += 1
        if self._pending_stale > 0:
            self._pending_stale -= 1
            return self._shown
        self._shown = self._render()
        return self._shown

    async def surface_orientation(self) -> int:
        return self.orientation

    async def open_input(self) -> FakeInput:
        return FakeInput(self)

    async def input_text(self, text: str) -> None:
        self.typed.append(text)
        self._prefix = text
        self._index = -1
        self._pending_stale = 0

    async def open_capture(self) -> FakeFrames:
        return FakeFrames(self)


class EchoRecognizer:
    """Recognizer for FakeDeviceLink frames: the frame already is the text."""

    def __init__(self):
        self.orientations: list[int] = []

    async def recognize(self, image, orientation: int) -> str:
        self.orientations.append(orientation)
        return image


@pytest.fixture
def echo_recognizer() -> EchoRecognizer:
    return EchoRecognizer()
