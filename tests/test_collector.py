"""Tests for the sample collector and its payload models."""

from __future__ import annotations

import asyncio

import httpx
import pytest
from pydantic import ValidationError

from conformqa.suites.collector import SampleCollector, SampleTimeout, parse_samples

SAMPLE = {
    "request": {
        "method": "GET",
        "url": "/test-endpoint",
        "headers": {"myapp": "Header"},
        "queryParameters": {"one": ["first", "second"]},
        "body": {},
    },
    "response": {"statusCode": 200, "headers": {}, "body": {"ok": True}},
}


def collector_client(collector: SampleCollector) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=collector.app), base_url="http://collector")


class TestParseSamples:
    """Tests for parse_samples payload shapes."""

    def test_single_object(self):
        """Test one sample object becomes a one-item list."""
        samples = parse_samples(SAMPLE)

        assert len(samples) == 1
        sample = samples[0]
        assert sample.request.method == "GET"
        assert sample.request.url == "/test-endpoint"
        assert sample.request.query_parameters == {"one": ["first", "second"]}
        assert sample.response.body == {"ok": True}

    def test_list(self):
        """Test a list of samples is accepted as-is."""
        assert len(parse_samples([SAMPLE, SAMPLE])) == 2

    def test_wrapped(self):
        """Test {"samples": [...]} is unwrapped."""
        assert len(parse_samples({"samples": [SAMPLE, SAMPLE, SAMPLE]})) == 3

    def test_status_code_is_string(self):
        """Test numeric status codes are stored as strings."""
        assert parse_samples(SAMPLE)[0].response.status_code == "200"

    def test_extra_fields_kept(self):
        """Test unknown sample fields do not break parsing."""
        sample = {**SAMPLE, "interactionId": "abc"}
        assert parse_samples(sample)[0].model_extra == {"interactionId": "abc"}

    def test_invalid_payload(self):
        """Test a payload without request/response is rejected."""
        with pytest.raises(ValidationError):
            parse_samples({"hello": "world"})


class TestWaitFor:
    """Tests for SampleCollector.wait_for."""

    @pytest.mark.asyncio
    async def test_returns_when_enough(self):
        """Test samples already recorded satisfy the wait immediately."""
        collector = SampleCollector()
        collector.record(parse_samples([SAMPLE, SAMPLE]))

        samples = await collector.wait_for(2, timeout=0.1)

        assert len(samples) == 2

    @pytest.mark.asyncio
    async def test_waits_for_late_samples(self):
        """Test the wait resolves when samples arrive later."""
        collector = SampleCollector()
        loop = asyncio.get_running_loop()
        loop.call_later(0.05, collector.record, parse_samples(SAMPLE))
        loop.call_later(0.1, collector.record, parse_samples(SAMPLE))

        samples = await collector.wait_for(2, timeout=2.0)

        assert len(samples) == 2

    @pytest.mark.asyncio
    async def test_timeout(self):
        """Test too few samples raise SampleTimeout, an assertion failure."""
        collector = SampleCollector()
        collector.record(parse_samples(SAMPLE))

        with pytest.raises(SampleTimeout) as exc_info:
            await collector.wait_for(3, timeout=0.1)

        assert isinstance(exc_info.value, AssertionError)
        assert "expected 3 sample(s)" in str(exc_info.value)
        assert "collected 1" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_clear(self):
        """Test clear() forgets earlier samples."""
        collector = SampleCollector()
        collector.record(parse_samples(SAMPLE))
        collector.clear()

        with pytest.raises(SampleTimeout):
            await collector.wait_for(1, timeout=0.05)


class TestCollectorApp:
    """Tests for the collector's HTTP endpoints."""

    @pytest.mark.asyncio
    async def test_post_samples(self):
        """Test POST /samples stores the samples and answers 202."""
        collector = SampleCollector()
        async with collector_client(collector) as client:
            response = await client.post("/samples", json={"samples": [SAMPLE, SAMPLE]})

        assert response.status_code == 202
        assert response.json() == {"accepted": 2}
        assert len(collector.samples) == 2

    @pytest.mark.asyncio
    async def test_post_invalid(self):
        """Test an invalid payload answers 422 and stores nothing."""
        collector = SampleCollector()
        async with collector_client(collector) as client:
            response = await client.post("/samples", json={"request": {}})

        assert response.status_code == 422
        assert collector.samples == []

    @pytest.mark.asyncio
    async def test_post_malformed_json(self):
        """Test a non-JSON body answers 422."""
        collector = SampleCollector()
        async with collector_client(collector) as client:
            response = await client.post(
                "/samples", content=b"not json", headers={"content-type": "application/json"}
            )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_health(self):
        """Test GET /health reports the stored sample count."""
        collector = SampleCollector()
        collector.record(parse_samples(SAMPLE))
        async with collector_client(collector) as client:
            response = await client.get("/health")

        assert response.json() == {"status": "ok", "samples": 1}


@pytest.mark.slow
class TestCollectorServer:
    """Tests for the embedded uvicorn server."""

    @pytest.mark.asyncio
    async def test_start_receive_stop(self):
        """Test a real POST reaches a started collector."""
        async with SampleCollector("127.0.0.1", 0) as collector:
            assert collector.running
            assert collector.port != 0
            async with httpx.AsyncClient() as client:
                response = await client.post(collector.url, json=SAMPLE)
            assert response.status_code == 202
            samples = await collector.wait_for(1, timeout=1.0)

        assert samples[0].request.url == "/test-endpoint"
        assert not collector.running

    @pytest.mark.asyncio
    async def test_port_in_use(self):
        """Test binding a taken port raises OSError instead of exiting."""
        async with SampleCollector("127.0.0.1", 0) as first:
            second = SampleCollector("127.0.0.1", first.port)
            with pytest.raises(OSError):
                await second.start()
            assert not second.running
