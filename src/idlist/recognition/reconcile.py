from __future__ import annotations

# Leading characters tolerated before the visible part of the prefix
# (cursor glyphs, clipped letters).
MAX_LEADING_NOISE = 3


def guess_truncated_string(truncated: str, starts_with: str) -> str | None:
    """Rebuild the full command from a recognized, possibly left-clipped string.

    The chat box is fixed-width, so once a completed command is wider than the
    box only its tail is visible. Scan ``starts_with[s:]`` for increasing
    ``s`` and accept the first one found within ``MAX_LEADING_NOISE``
    characters of the start of ``truncated``. Returns None when the text
    shares no visible tail of the prefix.
    """

    for spos in range(len(starts_with)):
        tpos = truncated.find(starts_with[spos:])
        if 0 <= tpos <= MAX_LEADING_NOISE:
            return starts_with + truncated[tpos - spos + len(starts_with):]
    return None
