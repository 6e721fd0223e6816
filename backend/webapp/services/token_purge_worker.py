"""Background worker that deletes expired verification tokens.

Tokens nobody clicks are never consumed, so they are removed on a fixed
interval. Started from the application lifespan and stopped by
ServiceContainer.aclose().
"""

import asyncio
import contextlib
import logging

from webapp.services.verification_token_service import VerificationTokenService

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 10 * 60


class TokenPurgeWorker:
    """Periodically runs VerificationTokenService.purge_expired().

    Lifecycle:
    - start() creates the asyncio task running the loop.
    - stop() cancels the task and waits for it to finish.
    - run_once() executes a single purge.

    Args:
        verification: Service owning the tokens.
        interval_seconds: Seconds between purges.
    """

    def __init__(
        self,
        verification: VerificationTokenService,
        *,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
    ) -> None:
        self._verification = verification
        self._interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        """Whether the background task is currently active."""
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the purge loop. No-op if already running.

        Must be called with a running event loop.
        """
        if self.is_running:
            logger.warning("Token purge worker already running")
            return
        self._task = asyncio.create_task(self._run_loop())
        logger.info("Token purge worker started (interval=%ss)", self._interval_seconds)

    async def stop(self) -> None:
        """Cancel the loop and wait for it to exit."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        self._task = None

    async def run_once(self) -> int:
        """Purge once.

        Returns:
            Number of tokens removed.
        """
        return await self._verification.purge_expired()

    async def _run_loop(self) -> None:
        """Purge, sleep, repeat. A failed pass is logged and retried next round."""
        try:
            while True:
                try:
                    await self.run_once()
                except Exception:  # noqa: BLE001
                    logger.exception("Error purging expired verification tokens")
                await asyncio.sleep(self._interval_seconds)
        except asyncio.CancelledError:
            logger.debug("Token purge loop cancelled")
            raise
