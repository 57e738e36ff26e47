"""Readiness Prober - polls a TCP port until it accepts connections."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReadinessResult:
    """Outcome of a readiness probe.

    Attributes:
        open: True if a connection succeeded before the deadline.
        elapsed_ms: Time spent probing.
    """

    open: bool
    elapsed_ms: float


class ReadinessProber:
    """Polls ``host:port`` with plain TCP connects.

    Args:
        connect_timeout: Upper bound for a single connection attempt.
    """

    def __init__(self, connect_timeout: float = 1.0) -> None:
        self.connect_timeout = connect_timeout

    async def _try_connect(self, host: str, port: int, timeout: float) -> bool:
        try:
            _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout=timeout)
        except (OSError, asyncio.TimeoutError):
            return False
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
        return True

    async def wait(
        self,
        host: str,
        port: int,
        timeout: float,
        interval: float = 0.25,
        silent: bool = True,
    ) -> ReadinessResult:
        """Poll until the port opens or ``timeout`` seconds pass.

        Returns a result instead of raising on timeout; the caller decides
        what a closed port means.
        """
        loop = asyncio.get_running_loop()
        started = loop.time()
        deadline = started + timeout
        attempts = 0

        while True:
            attempts += 1
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            if await self._try_connect(host, port, min(self.connect_timeout, remaining)):
                elapsed_ms = (loop.time() - started) * 1000
                logger.debug(f"{host}:{port} open after {attempts} attempt(s), {elapsed_ms:.0f}ms")
                return ReadinessResult(open=True, elapsed_ms=elapsed_ms)
            if not silent:
                logger.info(f"Waiting for {host}:{port}...")
            await asyncio.sleep(min(interval, max(deadline - loop.time(), 0)))

        elapsed_ms = (loop.time() - started) * 1000
        logger.debug(f"{host}:{port} still closed after {attempts - 1} attempt(s), {elapsed_ms:.0f}ms")
        return ReadinessResult(open=False, elapsed_ms=elapsed_ms)


__all__ = ["ReadinessProber", "ReadinessResult"]
