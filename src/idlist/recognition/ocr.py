"""Command box OCR.

Crops the chat input line out of a screenshot, turns it into black text on
a white background and hands it to Tesseract in single-line mode.
"""
from __future__ import annotations

import asyncio
import json
import logging
from enum import IntEnum
from pathlib import Path
from typing import Mapping

import pytesseract
from PIL import Image, ImageOps

logger = logging.getLogger(__name__)


class MistakeTableError(RuntimeError):
    pass


class RecognitionError(RuntimeError):
    pass


class SurfaceOrientation(IntEnum):
    ROTATION_0 = 0
    ROTATION_90 = 1
    ROTATION_180 = 2
    ROTATION_270 = 3


OrientationRects = Mapping[SurfaceOrientation | int, tuple[int, int, int, int]]


def load_mistake_table(path: Path | None) -> dict[str, str]:
    """Load known misreadings as ``{"recognized": "actual"}``.

    A missing file means no corrections.
    """

    if path is None or not path.exists():
        return {}

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except Exception as exc:
        raise MistakeTableError(f"Failed to parse mistakes file: {path} ({exc})")

    if not isinstance(data, dict):
        raise MistakeTableError(f"Invalid mistakes file format (expected object): {path}")

    table: dict[str, str] = {}
    for raw, fixed in data.items():
        if not isinstance(fixed, str):
            raise MistakeTableError(f"Invalid correction for {raw!r} in {path}")
        table[raw] = fixed
    return table


class CommandRecognizer:
    def __init__(
        self,
        *,
        rects: OrientationRects,
        mistakes: Mapping[str, str] | None = None,
        lang: str = "eng",
        psm: int = 7,
        oem: int = 3,
        threshold: int = 60,
        tesseract_cmd: str | None = None,
        tessdata_dir: Path | None = None,
    ):
        try:
            self._rects = {SurfaceOrientation(k): tuple(v) for k, v in rects.items()}
        except ValueError as exc:
            raise RecognitionError(f"Invalid surface orientation in command areas: {exc}")
        self._mistakes = dict(mistakes or {})
        self._lang = lang
        self._threshold = threshold
        config = [f"--psm {psm}", f"--oem {oem}"]
        if tessdata_dir is not None:
            config.append(f'--tessdata-dir "{tessdata_dir}"')
        self._config = " ".join(config)
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    def rect_for(self, orientation: int) -> tuple[int, int, int, int]:
        try:
            key = SurfaceOrientation(orientation)
        except ValueError:
            raise RecognitionError(f"Unknown surface orientation {orientation}")
        try:
            return self._rects[key]
        except KeyError:
            raise RecognitionError(
                f"No command area configured for {key.name} "
                f"(known: {[o.name for o in sorted(self._rects)]})"
            )

    def prepare(self, image: Image.Image, orientation: int) -> Image.Image:
        """Crop and binarize the command line region."""
        x, y, w, h = self.rect_for(orientation)
        gray = image.convert("L").crop((x, y, x + w, y + h))
        inverted = ImageOps.invert(gray)
        threshold = self._threshold
        return inverted.point(lambda p: 255 if p >= threshold else 0)

    def correct(self, text: str) -> str:
        text = text.strip()
        return self._mistakes.get(text, text)

    def recognize_sync(self, image: Image.Image, orientation: int) -> str:
        prepared = self.prepare(image, orientation)
        raw = pytesseract.image_to_string(prepared, lang=self._lang, config=self._config)
        text = self.correct(raw)
        logger.debug("OCR raw=%r text=%r", raw, text)
        return text

    async def recognize(self, image: Image.Image, orientation: int) -> str:
        return await asyncio.to_thread(self.recognize_sync, image, orientation)
