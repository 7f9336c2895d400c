"""Transient banners shown above the grids."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..services.api_client import describe_error

logger = logging.getLogger(__name__)

DEFAULT_SECONDS = 3.0
IMPORT_SECONDS = 5.0


@dataclass(frozen=True)
class Banner:
    message: str
    level: str
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class Notifier:
    """
    Keeps the current banner; a new banner replaces the old one.

    ``listeners`` are called with every banner shown, which is how the Qt
    layer learns it has something to draw.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._banner: Optional[Banner] = None
        self.listeners: List[Callable[[Banner], None]] = []

    def show(self, message: str, level: str = "success", seconds: float = DEFAULT_SECONDS) -> Banner:
        banner = Banner(message, level, self._clock() + seconds)
        self._banner = banner
        logger.info("[%s] %s", level, message)
        for listener in list(self.listeners):
            listener(banner)
        return banner

    def error(self, exc: BaseException, seconds: float = DEFAULT_SECONDS) -> Banner:
        return self.show(describe_error(exc), "error", seconds)

    def current(self, now: Optional[float] = None) -> Optional[Banner]:
        if self._banner is None:
            return None
        if self._banner.is_expired(self._clock() if now is None else now):
            self._banner = None
        return self._banner

    def dismiss(self) -> None:
        self._banner = None

