"""Sample Collector - receives what the service under test logged.

In listening mode the integration posts one LoggedSample per request it
handled to ``http://{OPTIC_SERVER_HOST}:{collector_port}/samples``. The
collector runs on the host, inside the harness's own event loop, so the
library suite can wait for samples without threads.

Accepted payloads on ``POST /samples``:

- a single sample object
- a list of sample objects
- ``{"samples": [...]}``
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import socket
from collections.abc import Iterator
from typing import Any

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

logger = logging.getLogger(__name__)


class SampleRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    method: str = ""
    url: str = ""
    headers: dict[str, Any] = Field(default_factory=dict)
    query_parameters: dict[str, Any] = Field(default_factory=dict, alias="queryParameters")
    body: Any = None


class SampleResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    status_code: str = Field(alias="statusCode")
    headers: dict[str, Any] = Field(default_factory=dict)
    body: Any = None

    @field_validator("status_code", mode="before")
    @classmethod
    def coerce_status(cls, v: Any) -> str:
        return str(v)


class LoggedSample(BaseModel):
    """One request/response pair as recorded by the integration."""

    model_config = ConfigDict(extra="allow")

    request: SampleRequest
    response: SampleResponse


_SAMPLE_LIST = TypeAdapter(list[LoggedSample])


def parse_samples(payload: Any) -> list[LoggedSample]:
    """Normalize any accepted payload shape to a list of samples.

    Raises:
        ValidationError: If the payload does not describe samples.
    """
    if isinstance(payload, dict) and "samples" in payload:
        payload = payload["samples"]
    if isinstance(payload, dict):
        payload = [payload]
    return _SAMPLE_LIST.validate_python(payload)


class SampleTimeout(AssertionError):
    """Fewer samples arrived than a case expected."""


def create_collector_app(collector: SampleCollector) -> FastAPI:
    app = FastAPI(title="conformqa sample collector")

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {"status": "ok", "samples": len(collector.samples)}

    @app.post("/samples", status_code=202)
    async def receive(request: Request) -> dict[str, int]:
        try:
            payload = await request.json()
            samples = parse_samples(payload)
        except ValueError as e:
            # Covers malformed JSON and pydantic's ValidationError.
            logger.warning(f"Rejected sample payload: {e}")
            raise HTTPException(status_code=422, detail=str(e)) from e
        collector.record(samples)
        return {"accepted": len(samples)}

    return app


class _EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the harness."""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


class SampleCollector:
    """Stores incoming samples and lets cases wait for them.

    Usable without starting the HTTP server (``record`` and ``wait_for``
    work on their own), which is how the unit tests drive it.

    Example::

        async with SampleCollector("0.0.0.0", 30333) as collector:
            collector.clear()
            await client.get("/test-endpoint")
            samples = await collector.wait_for(1, timeout=5.0)

    Args:
        host: Interface to bind.
        port: Port to bind.
    """

    def __init__(self, host: str = "0.0.0.0", port: int = 30333) -> None:
        self.host = host
        self.port = port
        self.samples: list[LoggedSample] = []
        self.app = create_collector_app(self)
        self._arrived = asyncio.Event()
        self._server: _EmbeddedServer | None = None
        self._serve_task: asyncio.Task[None] | None = None

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}/samples"

    @property
    def running(self) -> bool:
        return self._serve_task is not None and not self._serve_task.done()

    def record(self, samples: list[LoggedSample]) -> None:
        self.samples.extend(samples)
        self._arrived.set()
        logger.debug(f"Collected {len(samples)} sample(s), {len(self.samples)} total")

    def clear(self) -> None:
        self.samples.clear()
        self._arrived.clear()

    async def wait_for(self, count: int, timeout: float) -> list[LoggedSample]:
        """Wait until at least ``count`` samples are stored.

        Raises:
            SampleTimeout: If they do not all arrive within ``timeout`` seconds.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while len(self.samples) < count:
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise SampleTimeout(
                    f"expected {count} sample(s) within {timeout}s, collected {len(self.samples)}"
                )
            self._arrived.clear()
            try:
                await asyncio.wait_for(self._arrived.wait(), timeout=remaining)
            except asyncio.TimeoutError:
                continue
        return list(self.samples)

    def _bind(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self.host, self.port))
        except OSError:
            sock.close()
            raise
        # Port 0 asks the OS for a free port; remember which one it picked.
        self.port = sock.getsockname()[1]
        return sock

    async def start(self, startup_timeout: float = 5.0) -> None:
        """Bind the port and serve until ``stop``.

        Raises:
            OSError: If the port cannot be bound.
            RuntimeError: If the server does not start in time.
        """
        if self.running:
            return
        sock = self._bind()
        config = uvicorn.Config(self.app, log_level="warning", lifespan="off")
        self._server = _EmbeddedServer(config)
        self._serve_task = asyncio.create_task(self._server.serve(sockets=[sock]))

        loop = asyncio.get_running_loop()
        deadline = loop.time() + startup_timeout
        while not self._server.started:
            if self._serve_task.done():
                self._serve_task.result()
                raise RuntimeError("Sample collector stopped during startup")
            if loop.time() > deadline:
                await self.stop()
                raise RuntimeError(f"Sample collector did not start within {startup_timeout}s")
            await asyncio.sleep(0.01)
        logger.info(f"Sample collector listening on {self.host}:{self.port}")

    async def stop(self, timeout: float = 5.0) -> None:
        if self._server is None or self._serve_task is None:
            return
        self._server.should_exit = True
        try:
            await asyncio.wait_for(self._serve_task, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Sample collector did not stop in time, cancelling")
        finally:
            self._server = None
            self._serve_task = None

    async def __aenter__(self) -> SampleCollector:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()


__all__ = [
    "LoggedSample",
    "SampleCollector",
    "SampleRequest",
    "SampleResponse",
    "SampleTimeout",
    "create_collector_app",
    "parse_samples",
]
