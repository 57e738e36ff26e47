"""Pytest fixtures for conformqa tests."""

from __future__ import annotations

import asyncio
import io
import json
from pathlib import Path
from typing import Any

import httpx
import pytest
import yaml
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from rich.console import Console

from conformqa.config import HarnessSettings, IntegrationConfig
from conformqa.infra import BUILD_TAG
from conformqa.runtime import LineEvent, LogMultiplexer, ReadinessResult
from conformqa.suites.collector import SampleCollector, parse_samples
from conformqa.version import SPEC_VERSION


class FakeHandle:
    """Stands in for ProcessHandle without spawning anything.

    With ``returncode`` set the process has already exited; with None it
    runs until ``terminate()`` or ``exit()`` is called.
    """

    def __init__(
        self,
        tag: str,
        argv: list[str] | None = None,
        returncode: int | None = None,
        lines: list[tuple[str, str]] | None = None,
    ) -> None:
        self.tag = tag
        self.argv = list(argv or [])
        self.returncode: int | None = None
        self.terminate_calls = 0
        self._lines = [LineEvent(tag, channel, text) for channel, text in (lines or [])]
        self._exited = asyncio.Event()
        if returncode is not None:
            self.exit(returncode)

    def exit(self, returncode: int) -> None:
        self.returncode = returncode
        self._exited.set()

    async def events(self):
        for event in self._lines:
            yield event

    async def wait(self) -> int:
        await self._exited.wait()
        return self.returncode

    def terminate(self) -> bool:
        self.terminate_calls += 1
        if self.terminate_calls > 1 or self.returncode is not None:
            return False
        self.exit(-15)
        return True


class FakeSpawner:
    """Records spawn requests and hands out FakeHandles.

    The build exits immediately with ``build_returncode``. The container
    exits with ``container_returncode`` or, when None, keeps running.
    """

    def __init__(self, build_returncode: int = 0, container_returncode: int | None = None) -> None:
        self.build_returncode = build_returncode
        self.container_returncode = container_returncode
        self.calls: list[tuple[str, list[str]]] = []
        self.handles: list[FakeHandle] = []

    async def __call__(self, argv, *, tag, cwd=None, env=None, adopt=None) -> FakeHandle:
        self.calls.append((tag, list(argv)))
        if tag == BUILD_TAG:
            handle = FakeHandle(
                tag,
                argv,
                returncode=self.build_returncode,
                lines=[("stdout", "Step 1/3 : FROM python:3.12-slim")],
            )
        else:
            handle = FakeHandle(tag, argv, returncode=self.container_returncode)
        self.handles.append(handle)
        if adopt is not None:
            adopt(handle)
        return handle

    @property
    def tags(self) -> list[str]:
        return [tag for tag, _ in self.calls]


class FakeProber:
    """Readiness prober with a fixed answer."""

    def __init__(self, open: bool = True, delay: float = 0.0) -> None:
        self.open = open
        self.delay = delay
        self.calls: list[tuple[str, int]] = []

    async def wait(self, host, port, timeout, interval=0.25, silent=True) -> ReadinessResult:
        self.calls.append((host, port))
        await asyncio.sleep(self.delay)
        return ReadinessResult(open=self.open, elapsed_ms=self.delay * 1000)


# Headers that belong to the transport, not to the echoed request.
NOT_ECHOED = {"content-length", "content-type", "host", "transfer-encoding", "connection"}


def create_echo_app(collector: SampleCollector | None = None) -> FastAPI:
    """A compliant integration, served in-process through ASGITransport."""
    app = FastAPI()

    @app.api_route(
        "/{path:path}",
        methods=["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"],
    )
    async def echo(path: str, request: Request) -> Response:
        raw = await request.body()
        content_type = request.headers.get("content-type", "")
        if not raw:
            body: Any = {}
        elif "application/json" in content_type:
            body = json.loads(raw)
        else:
            body = raw.decode()

        status = int(request.headers.get("return-status", "200"))
        headers = {k: v for k, v in request.headers.items() if k not in NOT_ECHOED}

        if collector is not None:
            query: dict[str, Any] = {}
            for key in request.query_params.keys():
                values = request.query_params.getlist(key)
                query[key] = values[0] if len(values) == 1 else values
            collector.record(
                parse_samples(
                    {
                        "request": {
                            "method": request.method,
                            "url": request.url.path,
                            "headers": dict(request.headers),
                            "queryParameters": query,
                            "body": body,
                        },
                        "response": {"statusCode": status, "headers": headers, "body": body},
                    }
                )
            )

        if status in (204, 304) or not raw:
            return Response(status_code=status, headers=headers)
        if "application/json" in content_type:
            return JSONResponse(body, status_code=status, headers=headers)
        return Response(raw, status_code=status, headers=headers, media_type=content_type or None)

    return app


def asgi_client_factory(app: FastAPI):
    """ClientFactory that routes requests to ``app`` in-process."""

    def factory(base_url: str, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app),
            base_url="http://testserver",
            timeout=timeout,
        )

    return factory


def write_integration(project_dir: Path, **fields: Any) -> Path:
    """Write an integration.yml with sensible defaults."""
    data = {"spec_version": SPEC_VERSION, "slug": "sample-integration"}
    data.update(fields)
    path = project_dir / "integration.yml"
    path.write_text(yaml.safe_dump(data))
    return path


@pytest.fixture
def settings(tmp_path: Path) -> HarnessSettings:
    return HarnessSettings(
        project_dir=tmp_path,
        settle_delay=0,
        probe_timeout=1.0,
        probe_interval=0.05,
        sample_timeout=1.0,
        host_address="10.0.0.5",
    )


@pytest.fixture
def config(tmp_path: Path) -> IntegrationConfig:
    return IntegrationConfig(spec_version=SPEC_VERSION, slug="sample-integration", project_dir=tmp_path)


@pytest.fixture
def console() -> Console:
    return Console(file=io.StringIO(), width=200, color_system=None, highlight=False)


@pytest.fixture
def mux(console: Console) -> LogMultiplexer:
    return LogMultiplexer(console)


def output_of(mux: LogMultiplexer) -> str:
    return mux.console.file.getvalue()
