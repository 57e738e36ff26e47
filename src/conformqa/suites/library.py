"""Library suite: the integration must log what it handles to the collector."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

from conformqa.config import HarnessSettings
from conformqa.suites.base import Case, Suite, SuiteContext
from conformqa.suites.collector import LoggedSample, SampleCollector

SIMPLE_JSON: dict[str, Any] = {"first": "one", "second": "two", "third": "third"}

LONG_JSON: dict[str, Any] = {
    "id": "5c1b6d3e9f0a4b7c8d2e1f3a",
    "name": "Conformance Fixture",
    "active": True,
    "balance": 3520.75,
    "tags": ["alpha", "beta", "gamma", "delta", "epsilon", "zeta", "eta", "theta"],
    "address": {
        "street": "742 Evergreen Terrace",
        "city": "Springfield",
        "zip": "49007",
        "geo": {"lat": 42.1015, "lng": -72.5898},
    },
    "friends": [
        {"id": i, "name": f"friend-{i}", "score": i * 7.5, "active": i % 2 == 0}
        for i in range(25)
    ],
    "history": [
        {"event": "login", "at": f"2019-01-{day:02d}T10:00:00Z", "ok": day % 3 != 0}
        for day in range(1, 29)
    ],
    "notes": "Lorem ipsum dolor sit amet, consectetur adipiscing elit. " * 20,
}

TEXT_BODY = "Hello world \n I am Optic"

LOGGED_METHODS = ("get", "post", "put", "delete", "patch", "head", "options")
SKIPPED_METHODS = {"head": "HEAD responses carry no body and frameworks log them inconsistently"}

COLLECTED_STATUSES = (200, 401, 404)


@asynccontextmanager
async def collector_fixture(settings: HarnessSettings) -> AsyncIterator[SampleCollector]:
    async with SampleCollector(settings.collector_host, settings.collector_port) as collector:
        yield collector


SUITE = Suite(name="library", title="documenting library connects to Optic", fixture=collector_fixture)


async def _session(
    ctx: SuiteContext,
    send: Callable[[], Awaitable[Any]],
    expected: int = 1,
) -> list[LoggedSample]:
    """Clear the collector, send traffic, and wait for its samples."""
    collector = ctx.require_collector()
    collector.clear()
    await send()
    return await collector.wait_for(expected, timeout=ctx.settings.sample_timeout)


def _is_empty(body: Any) -> bool:
    return body is None or (isinstance(body, (str, dict, list)) and len(body) == 0)


def _method_case(method: str) -> Case:
    async def check(ctx: SuiteContext) -> None:
        samples = await _session(ctx, lambda: ctx.client.request(method.upper(), "/test-endpoint"))
        assert samples[0].request.method == method.upper()

    return Case(
        name=f"logging service handles request method {method}",
        func=check,
        skip=SKIPPED_METHODS.get(method),
    )


for _method in LOGGED_METHODS:
    SUITE.add(_method_case(_method))
del _method


@SUITE.case("finds no query parameters when none")
async def no_query_parameters(ctx: SuiteContext) -> None:
    samples = await _session(ctx, lambda: ctx.client.get("/test-endpoint"))
    assert len(samples[0].request.query_parameters) == 0


@SUITE.case("finds one query parameter")
async def one_query_parameter(ctx: SuiteContext) -> None:
    samples = await _session(ctx, lambda: ctx.client.get("/test-endpoint?one=first"))
    request = samples[0].request
    assert len(request.query_parameters) == 1
    assert request.query_parameters.get("one") == "first"
    assert request.url == "/test-endpoint"


@SUITE.case("creates array from duplicate keys")
async def duplicate_query_keys(ctx: SuiteContext) -> None:
    samples = await _session(ctx, lambda: ctx.client.get("/test-endpoint?one=first&one=second"))
    request = samples[0].request
    assert len(request.query_parameters) == 1
    assert request.query_parameters.get("one") == ["first", "second"]
    assert request.url == "/test-endpoint"


@SUITE.case("finds application headers when set")
async def application_headers(ctx: SuiteContext) -> None:
    samples = await _session(ctx, lambda: ctx.client.get("/test-endpoint", headers={"MyApp": "Header"}))
    assert samples[0].request.headers.get("myapp") == "Header"


@SUITE.case("request body empty when not set")
async def request_body_empty(ctx: SuiteContext) -> None:
    samples = await _session(ctx, lambda: ctx.client.post("/test-endpoint"))
    assert _is_empty(samples[0].request.body), f"expected an empty body, got {samples[0].request.body!r}"


@SUITE.case("request body works when short json")
async def request_body_short_json(ctx: SuiteContext) -> None:
    samples = await _session(ctx, lambda: ctx.client.post("/test-endpoint", json=SIMPLE_JSON))
    assert samples[0].request.body == SIMPLE_JSON


@SUITE.case("request body works when long json")
async def request_body_long_json(ctx: SuiteContext) -> None:
    samples = await _session(ctx, lambda: ctx.client.post("/test-endpoint", json=LONG_JSON))
    assert samples[0].request.body == LONG_JSON


@SUITE.case("request body works when text")
async def request_body_text(ctx: SuiteContext) -> None:
    samples = await _session(
        ctx,
        lambda: ctx.client.post(
            "/test-endpoint", content=TEXT_BODY, headers={"content-type": "text/plain"}
        ),
    )
    assert samples[0].request.body == TEXT_BODY


@SUITE.case("collects 200, 401, 404")
async def collects_status_codes(ctx: SuiteContext) -> None:
    async def send() -> None:
        await asyncio.gather(
            *(
                ctx.client.get("/test-endpoint", headers={"return-status": str(code)})
                for code in COLLECTED_STATUSES
            )
        )

    samples = await _session(ctx, send, expected=len(COLLECTED_STATUSES))
    collected = {sample.response.status_code for sample in samples}
    missing = [str(code) for code in COLLECTED_STATUSES if str(code) not in collected]
    assert not missing, f"status codes not collected: {', '.join(missing)}"


@SUITE.case("response body empty when not set")
async def response_body_empty(ctx: SuiteContext) -> None:
    samples = await _session(ctx, lambda: ctx.client.post("/test-endpoint"))
    assert _is_empty(samples[0].response.body), f"expected an empty body, got {samples[0].response.body!r}"


@SUITE.case("response body works when short json")
async def response_body_short_json(ctx: SuiteContext) -> None:
    samples = await _session(ctx, lambda: ctx.client.post("/test-endpoint", json=SIMPLE_JSON))
    assert samples[0].response.body == SIMPLE_JSON


@SUITE.case("response body works when long json")
async def response_body_long_json(ctx: SuiteContext) -> None:
    samples = await _session(ctx, lambda: ctx.client.post("/test-endpoint", json=LONG_JSON))
    assert samples[0].response.body == LONG_JSON
