from __future__ import annotations

from idlist.recognition.ocr import (
    CommandRecognizer,
    MistakeTableError,
    OrientationRects,
    RecognitionError,
    SurfaceOrientation,
    load_mistake_table,
)
from idlist.recognition.reconcile import guess_truncated_string

__all__ = [
    "CommandRecognizer",
    "MistakeTableError",
    "OrientationRects",
    "RecognitionError",
    "SurfaceOrientation",
    "load_mistake_table",
    "guess_truncated_string",
]
