"""Post-deploy health polling for Shipyard.

Polls a URL with HTTP GET at a fixed interval until it answers 2xx or the
attempt budget runs out. This is the only retry loop in Shipyard and it
never backs off.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

import httpx

from shipyard.models import HealthOutcome, HealthResult

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 2.0
DEFAULT_MAX_ATTEMPTS = 30
BODY_LIMIT = 2000


class HealthPoller:
    """Poll a health URL.

    Args:
        client: HTTP client used for every attempt.
        sleep: Called between attempts; injectable so tests do not wait.
        on_attempt: Called after each unsuccessful attempt with
            ``(attempt, max_attempts)``.
    """

    def __init__(
        self,
        client: httpx.Client,
        sleep: Callable[[float], None] = time.sleep,
        on_attempt: Callable[[int, int], None] | None = None,
    ) -> None:
        self._client = client
        self._sleep = sleep
        self._on_attempt = on_attempt

    def poll(
        self,
        url: str | None,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> HealthResult:
        """Poll *url* until healthy or out of attempts.

        Returns ``SKIPPED`` without any request when *url* is empty. Polling
        stops at the first 2xx response; no sleep follows the final attempt.

        Raises:
            ValueError: If max_attempts is less than 1.
        """
        if not url:
            return HealthResult(outcome=HealthOutcome.SKIPPED)
        if max_attempts < 1:
            msg = f"max_attempts must be at least 1, got {max_attempts}"
            raise ValueError(msg)

        status_code: int | None = None
        for attempt in range(1, max_attempts + 1):
            try:
                response = self._client.get(url)
            except httpx.InvalidURL as e:
                logger.warning("Health check URL %r is invalid: %s", url, e)
                return HealthResult(outcome=HealthOutcome.UNHEALTHY, url=url, attempts=attempt)
            except httpx.HTTPError as e:
                logger.debug("Health check attempt %d for %s failed: %s", attempt, url, e)
            else:
                status_code = response.status_code
                if response.is_success:
                    logger.info("%s healthy after %d attempt(s)", url, attempt)
                    return HealthResult(
                        outcome=HealthOutcome.HEALTHY,
                        url=url,
                        attempts=attempt,
                        status_code=status_code,
                        body=response.text[:BODY_LIMIT],
                    )
                logger.debug("Health check attempt %d for %s: HTTP %d", attempt, url, status_code)

            if self._on_attempt is not None:
                self._on_attempt(attempt, max_attempts)
            if attempt < max_attempts:
                self._sleep(interval_seconds)

        logger.warning("%s not healthy after %d attempts", url, max_attempts)
        return HealthResult(
            outcome=HealthOutcome.UNHEALTHY,
            url=url,
            attempts=max_attempts,
            status_code=status_code,
        )
