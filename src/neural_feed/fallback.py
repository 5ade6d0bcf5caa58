from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar

from .errors import LLMUnavailableError

T = TypeVar("T")

logger = logging.getLogger(__name__)


def attempt(primary: Callable[[], T], fallback: Callable[[], T], label: str) -> tuple[T, bool]:
    """Run ``primary``; on any exception return ``fallback()`` instead.

    The flag is True when the primary path produced the value.
    """
    try:
        return primary(), True
    except LLMUnavailableError:
        logger.debug("%s: no language model configured, using fallback", label)
    except Exception as exc:  # noqa: BLE001
        logger.warning("%s failed, using fallback: %s", label, exc)
    return fallback(), False
