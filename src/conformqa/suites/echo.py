"""Echo suite: the service under test must behave as a plain echo server."""

from __future__ import annotations

import asyncio

import httpx

from conformqa.suites.base import Suite, SuiteContext

SUITE = Suite(name="echo", title="echo server")

ANY_PATH_REQUESTS = (
    ("GET", "/hello/world"),
    ("POST", "/hello/world"),
    ("POST", "/test-endpoint"),
    ("POST", "/test/123"),
    ("POST", "/any/12/route"),
)

OVERRIDE_STATUSES = (200, 204, 405, 412, 311)


async def _status_of(client: httpx.AsyncClient, method: str, url: str, **kwargs) -> int | None:
    """Status code of one request, or None if the request itself failed."""
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.HTTPError:
        return None
    return response.status_code


@SUITE.case("handles requests to any path with 200")
async def any_path_returns_200(ctx: SuiteContext) -> None:
    statuses = await asyncio.gather(
        *(_status_of(ctx.client, method, path) for method, path in ANY_PATH_REQUESTS)
    )
    failed = [
        f"{method} {path} -> {status if status is not None else 'no response'}"
        for (method, path), status in zip(ANY_PATH_REQUESTS, statuses)
        if status != 200
    ]
    assert not failed, f"Requests to one or more paths failed: {', '.join(failed)}"


@SUITE.case("returns request headers as response headers")
async def echoes_headers(ctx: SuiteContext) -> None:
    response = await ctx.client.get(
        "/test-endpoint", headers={"example-one": "set", "example-two": "set"}
    )
    assert response.headers.get("example-one") == "set"
    assert response.headers.get("example-two") == "set"


@SUITE.case("returns request body as response body with correct types")
async def echoes_json_body(ctx: SuiteContext) -> None:
    body = {"first": "one", "second": "two", "third": "third"}
    response = await ctx.client.post("/test-endpoint", json=body)

    assert "application/json" in response.headers.get("content-type", "")
    echoed = response.json()
    assert isinstance(echoed, dict), f"expected a JSON object, got {type(echoed).__name__}"
    assert echoed == body


@SUITE.case('"return-status" header overrides status code')
async def return_status_header(ctx: SuiteContext) -> None:
    statuses = await asyncio.gather(
        *(
            _status_of(ctx.client, "GET", "/test-endpoint", headers={"return-status": str(code)})
            for code in OVERRIDE_STATUSES
        )
    )
    wrong = [f"{expected} -> {got}" for expected, got in zip(OVERRIDE_STATUSES, statuses) if got != expected]
    assert not wrong, f"Status codes not pulled from header: {', '.join(wrong)}"
