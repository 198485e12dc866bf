"""Autocompletion discovery - tab cycling with OCR read-back and cycle detection.

For one command family the engine opens the chat box, types the family's
prefix and presses tab until a completion it has already seen comes back.
Every read is verified: the primed prefix must read back whole (OCR may add a
few leading characters), and each tab must produce text different from the
previous step before it counts. A device error that outlasts the retries
propagates as-is so the caller can abort the run.
"""
from __future__ import annotations

import logging
import time
from typing import Callable, Protocol

from PIL import Image

from idlist.device.adb import AdbError
from idlist.device.capture import FrameSource
from idlist.discovery.families import CommandFamily
from idlist.progress import ProgressEstimator
from idlist.recognition.reconcile import MAX_LEADING_NOISE, guess_truncated_string
from idlist.retry import RetryLimitExceededError, retry_until_complete

logger = logging.getLogger(__name__)

KEY_OPEN_CHAT = "KEYCODE_T"
KEY_NEXT_COMPLETION = "KEYCODE_TAB"
KEY_CANCEL = "KEYCODE_ESCAPE"


class DiscoveryError(RuntimeError):
    """A family's session cannot continue; nothing from it may be persisted."""

    def __init__(self, family: str, message: str, *, observed: str | None = None):
        detail = f"{family}: {message}"
        if observed is not None:
            detail = f"{detail} (recognized {observed!r})"
        super().__init__(detail)
        self.family = family
        self.observed = observed


class InputSession(Protocol):
    async def press(self, keycode: str) -> None:  # pragma: no cover
        ...

    async def close(self) -> None:  # pragma: no cover
        ...


class DeviceLink(Protocol):
    async def surface_orientation(self) -> int:  # pragma: no cover
        ...

    async def open_input(self) -> InputSession:  # pragma: no cover
        ...

    async def input_text(self, text: str) -> None:  # pragma: no cover
        ...

    async def open_capture(self) -> FrameSource:  # pragma: no cover
        ...


class Recognizer(Protocol):
    async def recognize(self, image: Image.Image, orientation: int) -> str:  # pragma: no cover
        ...


class AutocompleteDiscoverer:
    def __init__(
        self,
        *,
        link: DeviceLink,
        recognizer: Recognizer,
        retry_attempts: int = 3,
        retry_interval_seconds: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize discoverer.

        Args:
            link: Device access (orientation, key input, text input, capture).
            recognizer: Turns a screenshot into the command box text.
            retry_attempts: Capture+recognize attempts per verified read.
            retry_interval_seconds: Constant wait between those attempts.
            clock: Monotonic clock used for progress estimates.
        """
        self._link = link
        self._recognizer = recognizer
        self._retry_attempts = retry_attempts
        self._retry_interval = retry_interval_seconds
        self._clock = clock

    async def discover(
        self,
        family: CommandFamily,
        *,
        progress_name: str | None = None,
        approx_length: int | None = None,
    ) -> list[str]:
        """Enumerate every completion of ``family`` in the order the game offers them.

        Returns:
            Completion suffixes with the family's exclusions removed.

        Raises:
            DiscoveryError: a verified read ran out of retries or a completion
                could not be matched against the prefix.
        """
        progress_name = progress_name or family.slug
        orientation = await self._link.surface_orientation()
        session = await self._link.open_input()
        frames: FrameSource | None = None
        try:
            frames = await self._link.open_capture()
            await session.press(KEY_OPEN_CHAT)
            logger.info("Starting %s: %s", progress_name, family.command_prefix)
            await self._link.input_text(family.command_prefix)
            completions = await self._cycle(family, session, frames, orientation, progress_name, approx_length)
        except BaseException:
            await self._release(session, frames, failing=True)
            raise
        await self._release(session, frames)

        result = [c for c in completions if c not in family.exclusions]
        if len(result) != len(completions):
            logger.debug("%s: excluded %d completions", progress_name, len(completions) - len(result))
        return result

    async def _cycle(
        self,
        family: CommandFamily,
        session: InputSession,
        frames: FrameSource,
        orientation: int,
        progress_name: str,
        approx_length: int | None,
    ) -> list[str]:
        prefix = family.command_prefix
        expected = prefix.strip()
        last_read: str | None = None

        async def read() -> str:
            nonlocal last_read
            image = await frames.capture()
            last_read = await self._recognizer.recognize(image, orientation)
            return last_read

        async def read_primed() -> str | None:
            text = await read()
            noise = len(text) - len(expected)
            return text if text.endswith(expected) and 0 <= noise <= MAX_LEADING_NOISE else None

        try:
            recognized = await self._verified(read_primed)
        except RetryLimitExceededError as exc:
            raise DiscoveryError(
                family.name,
                f"typed prefix did not read back as {expected!r}",
                observed=last_read,
            ) from exc

        completions: list[str] = []
        seen: set[str] = set()
        estimator = ProgressEstimator(approx_length, clock=self._clock)

        while True:
            await session.press(KEY_NEXT_COMPLETION)
            previous = recognized

            async def read_changed() -> str | None:
                text = await read()
                return text if text != previous else None

            try:
                recognized = await self._verified(read_changed)
            except RetryLimitExceededError as exc:
                raise DiscoveryError(
                    family.name,
                    "command box did not change after tab",
                    observed=previous,
                ) from exc

            completed = guess_truncated_string(recognized, prefix)
            if completed is None:
                raise DiscoveryError(family.name, "auto-completed command does not match prefix", observed=recognized)

            completion = completed[len(prefix):]
            if completion in seen:
                logger.info("%s: exit condition %r after %d completions", progress_name, completion, len(completions))
                return completions

            seen.add(completion)
            completions.append(completion)
            snapshot = estimator.step(len(completions))
            logger.info("%s%s %s", snapshot.label(), progress_name, recognized)

    async def _verified(self, action):
        try:
            return await retry_until_complete(self._retry_attempts, self._retry_interval, action)
        except RetryLimitExceededError as exc:
            if isinstance(exc.last_error, AdbError):
                raise exc.last_error from exc
            raise

    async def _release(self, session: InputSession, frames: FrameSource | None, *, failing: bool = False) -> None:
        try:
            await session.press(KEY_CANCEL)
            await session.press(KEY_CANCEL)
            await session.close()
            if frames is not None:
                await frames.close()
        except Exception as exc:
            # Keep the original failure; the device may already be gone.
            if not failing:
                raise
            logger.warning("Cleanup after failed session also failed: %s", exc)
