"""Poller state machine: terminal states, deadline and cancellation."""

import asyncio

import httpx
import pytest

from content_understanding.auth import Credentials
from content_understanding.exceptions import (
    OperationCancelledError,
    OperationFailedError,
    OperationTimeoutError,
    ServiceResponseError,
)
from content_understanding.pipeline.poller import (
    ExponentialBackoff,
    FixedInterval,
    LROPoller,
)
from content_understanding.pipeline.submitter import OperationSubmitter

pytestmark = pytest.mark.unit

HANDLE = "https://svc.example.com/ops/123?api-version=2025-11-01"


def _poller(config, bodies, fake_sleep, *, timeout=120.0, policy=None):
    """Poller whose GETs answer ``bodies`` in order (the last repeats)."""
    seen = []

    def handler(request):
        seen.append(request)
        body = bodies[min(len(seen), len(bodies)) - 1]
        if isinstance(body, httpx.Response):
            return body
        return httpx.Response(200, json=body)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    submitter = OperationSubmitter(client, config, Credentials(subscription_key="k"))
    poller = LROPoller(
        submitter,
        policy=policy or FixedInterval(2.0),
        timeout=timeout,
        clock=fake_sleep.clock,
        sleep=fake_sleep,
    )
    return poller, seen


@pytest.mark.asyncio
async def test_running_running_succeeded(config, fake_sleep):
    success = {"status": "Succeeded", "result": {"analyzerId": "demo-1"}}
    poller, seen = _poller(
        config, [{"status": "Running"}, {"status": "running"}, success], fake_sleep
    )

    envelope = await poller.poll(HANDLE)

    assert envelope == success
    assert len(seen) == 3
    assert fake_sleep.delays == [2.0, 2.0]
    assert all(str(r.url) == HANDLE for r in seen)


@pytest.mark.asyncio
async def test_missing_status_is_treated_as_running(config, fake_sleep):
    poller, seen = _poller(config, [{}, {"status": "SUCCEEDED"}], fake_sleep)
    await poller.poll(HANDLE)
    assert len(seen) == 2


@pytest.mark.asyncio
async def test_failed_envelope_raises_with_service_detail(config, fake_sleep):
    failed = {
        "status": "Failed",
        "error": {"code": "InvalidInput", "message": "bad schema"},
    }
    poller, seen = _poller(config, [{"status": "Running"}, failed], fake_sleep)

    with pytest.raises(OperationFailedError) as excinfo:
        await poller.poll(HANDLE)

    assert "InvalidInput" in str(excinfo.value)
    assert "bad schema" in str(excinfo.value)
    assert excinfo.value.handle == HANDLE
    assert excinfo.value.envelope == failed
    assert len(seen) == 2


@pytest.mark.asyncio
async def test_timeout_stops_polling(config, fake_sleep):
    poller, seen = _poller(config, [{"status": "Running"}], fake_sleep, timeout=5.0)

    with pytest.raises(OperationTimeoutError) as excinfo:
        await poller.poll(HANDLE)

    # polls at t=0, 2, 4; the final wait is clipped to the 1s remaining
    assert len(seen) == 3
    assert fake_sleep.delays == [2.0, 2.0, 1.0]
    assert excinfo.value.timeout == 5.0
    assert isinstance(excinfo.value, TimeoutError)


@pytest.mark.asyncio
async def test_per_call_timeout_overrides_default(config, fake_sleep):
    poller, seen = _poller(config, [{"status": "Running"}], fake_sleep, timeout=600.0)

    with pytest.raises(OperationTimeoutError):
        await poller.poll(HANDLE, timeout=3.0)
    assert len(seen) == 2


@pytest.mark.asyncio
async def test_zero_timeout_sends_no_request(config, fake_sleep):
    poller, seen = _poller(config, [{"status": "Running"}], fake_sleep)
    with pytest.raises(OperationTimeoutError):
        await poller.poll(HANDLE, timeout=0)
    assert seen == []


@pytest.mark.asyncio
async def test_cancel_before_first_poll(config, fake_sleep):
    poller, seen = _poller(config, [{"status": "Running"}], fake_sleep)
    cancel = asyncio.Event()
    cancel.set()

    with pytest.raises(OperationCancelledError):
        await poller.poll(HANDLE, cancel_event=cancel)
    assert seen == []


@pytest.mark.asyncio
async def test_cancel_during_wait_prevents_next_poll(config):
    cancel = asyncio.Event()

    async def blocking_sleep(delay):
        await asyncio.Event().wait()

    seen = []

    def handler(request):
        seen.append(request)
        cancel.set()
        return httpx.Response(200, json={"status": "Running"})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    submitter = OperationSubmitter(client, config, Credentials(subscription_key="k"))
    poller = LROPoller(submitter, clock=lambda: 0.0, sleep=blocking_sleep)

    with pytest.raises(OperationCancelledError):
        await asyncio.wait_for(poller.poll(HANDLE, cancel_event=cancel), timeout=5)
    assert len(seen) == 1


@pytest.mark.asyncio
async def test_cancelled_wait_finishes_its_sleep_task_before_returning(config):
    cancel = asyncio.Event()
    sleep_states = []

    async def blocking_sleep(delay):
        sleep_states.append("started")
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            sleep_states.append("cancelled")
            raise

    def handler(request):
        cancel.set()
        return httpx.Response(200, json={"status": "Running"})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    submitter = OperationSubmitter(client, config, Credentials(subscription_key="k"))
    poller = LROPoller(submitter, clock=lambda: 0.0, sleep=blocking_sleep)

    with pytest.raises(OperationCancelledError):
        await poller.poll(HANDLE, cancel_event=cancel)

    assert sleep_states == ["started", "cancelled"]


@pytest.mark.asyncio
async def test_poll_http_error_propagates(config, fake_sleep):
    poller, _ = _poller(
        config,
        [httpx.Response(500, json={"error": {"code": "InternalServerError", "message": "boom"}})],
        fake_sleep,
    )
    with pytest.raises(ServiceResponseError) as excinfo:
        await poller.poll(HANDLE)
    assert excinfo.value.status_code == 500


@pytest.mark.asyncio
async def test_non_object_envelope_is_rejected(config, fake_sleep):
    poller, _ = _poller(config, [httpx.Response(200, text="not json")], fake_sleep)
    with pytest.raises(ServiceResponseError) as excinfo:
        await poller.poll(HANDLE)
    assert excinfo.value.detail.code == "InvalidOperationEnvelope"


@pytest.mark.asyncio
async def test_empty_handle_is_rejected(config, fake_sleep):
    poller, _ = _poller(config, [{}], fake_sleep)
    with pytest.raises(ValueError):
        await poller.poll("")


class TestPolicies:
    def test_fixed_interval(self):
        policy = FixedInterval(1.5)
        assert [policy.next_delay(n) for n in (1, 2, 10)] == [1.5, 1.5, 1.5]
        with pytest.raises(ValueError):
            FixedInterval(0)

    def test_exponential_growth_is_capped(self):
        policy = ExponentialBackoff(initial=1.0, multiplier=2.0, max_delay=5.0, jitter=0.0)
        assert [policy.next_delay(n) for n in range(1, 6)] == [1.0, 2.0, 4.0, 5.0, 5.0]

    def test_jitter_is_multiplicative_and_bounded(self):
        policy = ExponentialBackoff(
            initial=2.0, multiplier=2.0, max_delay=100.0, jitter=0.5, rng=lambda: 1.0
        )
        assert policy.next_delay(1) == 3.0
        assert policy.next_delay(2) == 6.0

    def test_invalid_bounds(self):
        with pytest.raises(ValueError):
            ExponentialBackoff(initial=10.0, max_delay=5.0)
        with pytest.raises(ValueError):
            ExponentialBackoff(multiplier=0.5)

    @pytest.mark.asyncio
    async def test_poller_uses_policy_delays(self, config, fake_sleep):
        policy = ExponentialBackoff(initial=1.0, multiplier=3.0, max_delay=30.0, jitter=0.0)
        poller, _ = _poller(
            config,
            [{"status": "Running"}] * 3 + [{"status": "Succeeded"}],
            fake_sleep,
            policy=policy,
        )
        await poller.poll(HANDLE)
        assert fake_sleep.delays == [1.0, 3.0, 9.0]
