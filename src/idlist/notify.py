from __future__ import annotations

import logging
from typing import Callable

logger = logging.getLogger(__name__)

APP_TITLE = "IDList"


def notify(message: str) -> bool:
    """Show a desktop notification. Returns False when no backend is available."""
    try:
        from plyer import notification

        notification.notify(title=APP_TITLE, message=message, app_name=APP_TITLE, timeout=10)
        return True
    except Exception as exc:
        logger.warning("Desktop notification unavailable: %s", exc)
        return False


def pause(
    message: str,
    *,
    input_fn: Callable[[str], str] = input,
    notify_fn: Callable[[str], object] | None = notify,
) -> str:
    """Notify the operator, then block until they answer the prompt."""
    if notify_fn is not None:
        notify_fn(message)
    return input_fn(message)
