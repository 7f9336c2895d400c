"""Common plumbing for the page models."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar, Union

from ..core.notifications import DEFAULT_SECONDS, Notifier
from ..services.api_client import APIClient, APIError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Success = Union[str, Callable[[Any], Optional[str]], None]


class PageModel:
    """
    Owns a client, a notifier and the ``loading`` flag of one screen.

    ``loading`` is reset whatever happens to the call, so a failed or hung
    request can never leave the screen blocked.
    """

    request_timeout = 60.0

    def __init__(self, client: APIClient, notifier: Optional[Notifier] = None) -> None:
        self.client = client
        self.notifier = notifier or Notifier()
        self.loading = False

    async def _call(
        self,
        make: Callable[[], Awaitable[T]],
        success: Success = None,
        seconds: float = DEFAULT_SECONDS,
    ) -> Optional[T]:
        """
        Await ``make()``; on failure show a banner and return None.

        ``success`` is a banner message, or a callable building one from the
        result.
        """
        self.loading = True
        try:
            result = await asyncio.wait_for(make(), timeout=self.request_timeout)
        except (APIError, asyncio.TimeoutError) as exc:
            logger.warning("%s request failed: %s", type(self).__name__, exc)
            self.notifier.error(exc, seconds)
            return None
        finally:
            self.loading = False

        message = success(result) if callable(success) else success
        if message:
            self.notifier.show(message, "success", seconds)
        return result


def message_of(result: Any) -> Optional[str]:
    return result.get("message") if isinstance(result, dict) else None
