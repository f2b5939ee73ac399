# tests/unit/engine/test_dispatcher.py
"""Tests for Dispatcher: gating, resolution, sending and retry as one loop.

Every failure kind draws on the same attempt budget. These tests drive the
dispatcher with scripted fakes and a recording sleep so attempt counts and
backoff delays are exact.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import pytest
from structlog.testing import capture_logs

from servicecall.contracts import FailureKind, HttpMethod, RequestSpec, Response, RetryPolicy
from servicecall.engine.dispatcher import Dispatcher
from servicecall.errors import (
    ClientError,
    ConnectivityError,
    DispatchError,
    RegistryError,
    ResolutionError,
    ServerError,
    TransportError,
)
from tests.fixtures import FakeRegistry, RecordingSleep, ScriptedTransport


def _spec(
    method: HttpMethod = HttpMethod.GET,
    path: str = "/orders/1",
    *,
    correlation_id: str = "cid-0001",
    headers: dict[str, str] | None = None,
    body: Any = None,
) -> RequestSpec:
    return RequestSpec(
        method=method,
        path=path,
        headers=headers or {},
        query=None,
        body=body,
        correlation_id=correlation_id,
    )


def _dispatcher(
    registry: FakeRegistry,
    transport: ScriptedTransport,
    sleep: Any,
    *,
    max_attempts: int = 3,
    min_delay: float = 0.075,
    max_delay: float = 0.75,
) -> Dispatcher:
    return Dispatcher(
        registry,
        transport,
        RetryPolicy(max_attempts=max_attempts, min_delay=min_delay, max_delay=max_delay),
        request_timeout=2.0,
        sleep=sleep,
    )


class TestConnectivityGate:
    """Registry connectivity is checked before every attempt."""

    async def test_disconnected_for_whole_budget_raises_connectivity_error(self, fake_sleep: RecordingSleep) -> None:
        """Never connected: exactly max_attempts gate checks, no resolution, no send."""
        registry = FakeRegistry(connectivity=[False])
        transport = ScriptedTransport([200])
        dispatcher = _dispatcher(registry, transport, fake_sleep)

        with pytest.raises(ConnectivityError) as exc_info:
            await dispatcher.dispatch(_spec())

        assert exc_info.value.attempts == 3
        assert exc_info.value.exhausted is True
        assert exc_info.value.kind == FailureKind.CONNECTIVITY
        assert registry.gate_checks == 3
        assert registry.resolve_calls == 0
        assert transport.calls == 0
        assert len(fake_sleep.delays) == 2

    async def test_connects_on_second_attempt(self, fake_sleep: RecordingSleep) -> None:
        """Disconnected then connected: success after 2 attempts."""
        registry = FakeRegistry(connectivity=[False, True])
        transport = ScriptedTransport([200])
        dispatcher = _dispatcher(registry, transport, fake_sleep)

        response = await dispatcher.dispatch(_spec())

        assert response.status == 200
        assert registry.gate_checks == 2
        assert registry.resolve_calls == 1
        assert transport.calls == 1
        assert len(fake_sleep.delays) == 1

    async def test_error_context_has_no_url_when_nothing_resolved(self, fake_sleep: RecordingSleep) -> None:
        registry = FakeRegistry(connectivity=[False])
        dispatcher = _dispatcher(registry, ScriptedTransport(), fake_sleep, max_attempts=1)

        with pytest.raises(ConnectivityError) as exc_info:
            await dispatcher.dispatch(_spec(path="/orders/9"))

        assert exc_info.value.context.url is None
        assert exc_info.value.context.path == "/orders/9"
        assert "<orders>" in str(exc_info.value)


class TestResolution:
    """An instance is resolved afresh on every attempt."""

    async def test_empty_registry_then_instance_succeeds(self, fake_sleep: RecordingSleep) -> None:
        registry = FakeRegistry(resolutions=[None, "http://orders-2:8080"])
        transport = ScriptedTransport([200])
        dispatcher = _dispatcher(registry, transport, fake_sleep)

        response = await dispatcher.dispatch(_spec())

        assert response.status == 200
        assert registry.resolve_calls == 2
        assert transport.sent[0].url == "http://orders-2:8080/orders/1"

    async def test_resolution_failing_for_whole_budget_raises_resolution_error(self, fake_sleep: RecordingSleep) -> None:
        registry = FakeRegistry(resolutions=[RegistryError("zookeeper session expired")])
        transport = ScriptedTransport([200])
        dispatcher = _dispatcher(registry, transport, fake_sleep)

        with pytest.raises(ResolutionError) as exc_info:
            await dispatcher.dispatch(_spec())

        assert exc_info.value.attempts == 3
        assert exc_info.value.exhausted is True
        assert "zookeeper session expired" in str(exc_info.value)
        assert registry.resolve_calls == 3
        assert transport.calls == 0

    async def test_server_errors_re_resolve_every_attempt(self, fake_sleep: RecordingSleep) -> None:
        """Each retry may land on a different instance."""
        registry = FakeRegistry(resolutions=["http://a:1", "http://b:2", "http://c:3"])
        transport = ScriptedTransport([503])
        dispatcher = _dispatcher(registry, transport, fake_sleep)

        with pytest.raises(ServerError):
            await dispatcher.dispatch(_spec(path="status"))

        assert registry.resolve_calls == 3
        assert [r.url for r in transport.sent] == ["http://a:1/status", "http://b:2/status", "http://c:3/status"]


class TestStatusClassification:
    """Response status decides between success, retry and terminal failure."""

    async def test_client_error_terminates_on_first_attempt(self, fake_sleep: RecordingSleep) -> None:
        registry = FakeRegistry()
        transport = ScriptedTransport([404, 200])
        dispatcher = _dispatcher(registry, transport, fake_sleep)

        with pytest.raises(ClientError) as exc_info:
            await dispatcher.dispatch(_spec())

        assert exc_info.value.status == 404
        assert exc_info.value.attempts == 1
        assert exc_info.value.exhausted is False
        assert exc_info.value.response.body == b"status 404"
        assert transport.calls == 1
        assert fake_sleep.delays == []

    async def test_always_503_exhausts_three_attempts(self, fake_sleep: RecordingSleep) -> None:
        registry = FakeRegistry()
        transport = ScriptedTransport([503])
        dispatcher = _dispatcher(registry, transport, fake_sleep)

        with pytest.raises(ServerError) as exc_info:
            await dispatcher.dispatch(_spec())

        error = exc_info.value
        assert error.attempts == 3
        assert error.exhausted is True
        assert error.response.status == 503
        assert transport.calls == 3
        assert "gave up after 3 attempt(s)" in str(error)

    async def test_server_error_then_success_returns_response(self, fake_sleep: RecordingSleep) -> None:
        transport = ScriptedTransport([500, 502, 200])
        dispatcher = _dispatcher(FakeRegistry(), transport, fake_sleep)

        response = await dispatcher.dispatch(_spec())

        assert response.status == 200
        assert transport.calls == 3

    @pytest.mark.parametrize("status", [200, 201, 204, 301, 304])
    async def test_non_error_statuses_are_returned_verbatim(self, fake_sleep: RecordingSleep, status: int) -> None:
        expected = Response(status=status, headers={"x-origin": "orders-1"}, body=b"payload")
        transport = ScriptedTransport([expected])
        dispatcher = _dispatcher(FakeRegistry(), transport, fake_sleep)

        response = await dispatcher.dispatch(_spec())

        assert response is expected

    async def test_max_attempts_one_never_retries(self, fake_sleep: RecordingSleep) -> None:
        transport = ScriptedTransport([503, 200])
        dispatcher = _dispatcher(FakeRegistry(), transport, fake_sleep, max_attempts=1)

        with pytest.raises(ServerError) as exc_info:
            await dispatcher.dispatch(_spec())

        assert exc_info.value.attempts == 1
        assert transport.calls == 1
        assert fake_sleep.delays == []


class TestTransportFailures:
    """Exceptions from the transport are retried only when they are transport-level."""

    async def test_connect_error_is_retried(self, fake_sleep: RecordingSleep) -> None:
        transport = ScriptedTransport([httpx.ConnectError("connection refused"), 200])
        dispatcher = _dispatcher(FakeRegistry(), transport, fake_sleep)

        response = await dispatcher.dispatch(_spec())

        assert response.status == 200
        assert transport.calls == 2

    async def test_timeouts_for_whole_budget_raise_transport_error(self, fake_sleep: RecordingSleep) -> None:
        transport = ScriptedTransport([httpx.ReadTimeout("read timed out")])
        dispatcher = _dispatcher(FakeRegistry(), transport, fake_sleep)

        with pytest.raises(TransportError) as exc_info:
            await dispatcher.dispatch(_spec())

        assert exc_info.value.attempts == 3
        assert "ReadTimeout" in str(exc_info.value)
        assert exc_info.value.context.url == "http://orders-1:8080/orders/1"

    async def test_builtin_timeout_error_is_transport_failure(self, fake_sleep: RecordingSleep) -> None:
        transport = ScriptedTransport([TimeoutError(), 200])
        dispatcher = _dispatcher(FakeRegistry(), transport, fake_sleep)

        response = await dispatcher.dispatch(_spec())

        assert response.status == 200

    async def test_programming_error_propagates_without_retry(self, fake_sleep: RecordingSleep) -> None:
        """A bug in the transport is not a network failure."""
        transport = ScriptedTransport([KeyError("bug")])
        dispatcher = _dispatcher(FakeRegistry(), transport, fake_sleep)

        with pytest.raises(KeyError):
            await dispatcher.dispatch(_spec())

        assert transport.calls == 1
        assert fake_sleep.delays == []

    async def test_mixed_failures_share_one_budget(self, fake_sleep: RecordingSleep) -> None:
        """Connectivity, resolution and transport failures all count against max_attempts."""
        registry = FakeRegistry(
            connectivity=[False, True],
            resolutions=[None, "http://orders-1:8080"],
        )
        transport = ScriptedTransport([httpx.ConnectError("refused")])
        dispatcher = _dispatcher(registry, transport, fake_sleep, max_attempts=3)

        with pytest.raises(TransportError) as exc_info:
            await dispatcher.dispatch(_spec())

        assert exc_info.value.attempts == 3
        assert registry.gate_checks == 3
        assert registry.resolve_calls == 2
        assert transport.calls == 1


class TestRequestShape:
    """What reaches the wire is fixed for the whole logical call."""

    async def test_correlation_id_identical_across_attempts(self, fake_sleep: RecordingSleep) -> None:
        transport = ScriptedTransport([503, 503, 200])
        dispatcher = _dispatcher(FakeRegistry(), transport, fake_sleep)

        await dispatcher.dispatch(_spec(correlation_id="cid-shared"))

        assert [r.headers["X-Correlation-Id"] for r in transport.sent] == ["cid-shared"] * 3

    async def test_case_variant_caller_header_sends_one_correlation_id(self, fake_sleep: RecordingSleep) -> None:
        transport = ScriptedTransport([503, 200])
        dispatcher = _dispatcher(FakeRegistry(), transport, fake_sleep)

        await dispatcher.dispatch(_spec(correlation_id="cid-1", headers={"x-correlation-id": "caller-id"}))

        for sent in transport.sent:
            assert httpx.Headers(sent.headers).get_list("x-correlation-id") == ["cid-1"]

    async def test_custom_correlation_header_name(self, fake_sleep: RecordingSleep) -> None:
        transport = ScriptedTransport([200])
        dispatcher = Dispatcher(
            FakeRegistry(),
            transport,
            RetryPolicy.no_retry(),
            request_timeout=1.0,
            correlation_header_name="X-Request-Id",
            sleep=fake_sleep,
        )

        await dispatcher.dispatch(_spec(correlation_id="abc"))

        assert transport.sent[0].headers["X-Request-Id"] == "abc"
        assert "X-Correlation-Id" not in transport.sent[0].headers

    async def test_headers_body_method_and_timeout_forwarded(self, fake_sleep: RecordingSleep) -> None:
        transport = ScriptedTransport([201])
        dispatcher = _dispatcher(FakeRegistry(), transport, fake_sleep)

        await dispatcher.dispatch(
            _spec(HttpMethod.POST, "/orders", headers={"Accept": "application/json"}, body={"sku": "A-1"})
        )

        sent = transport.sent[0]
        assert sent.method == HttpMethod.POST
        assert sent.headers["Accept"] == "application/json"
        assert sent.body == {"sku": "A-1"}
        assert sent.timeout == 2.0

    async def test_identical_calls_against_deterministic_transport_are_idempotent(
        self, fake_sleep: RecordingSleep
    ) -> None:
        transport = ScriptedTransport([200])
        dispatcher = _dispatcher(FakeRegistry(), transport, fake_sleep)

        first = await dispatcher.dispatch(_spec())
        second = await dispatcher.dispatch(_spec())

        assert (first.status, first.body) == (second.status, second.body)
        assert transport.sent[0] == transport.sent[1]


class TestBackoff:
    """Delays between attempts stay within the policy bounds."""

    async def test_delays_within_bounds(self, fake_sleep: RecordingSleep) -> None:
        transport = ScriptedTransport([503])
        dispatcher = _dispatcher(FakeRegistry(), transport, fake_sleep, max_attempts=6, min_delay=0.05, max_delay=0.4)

        with pytest.raises(ServerError):
            await dispatcher.dispatch(_spec())

        assert len(fake_sleep.delays) == 5
        assert all(0.05 <= d <= 0.4 for d in fake_sleep.delays)

    async def test_retry_is_logged_with_attempt_and_kind(self, fake_sleep: RecordingSleep) -> None:
        transport = ScriptedTransport([503, 200])
        dispatcher = _dispatcher(FakeRegistry(), transport, fake_sleep)

        with capture_logs() as logs:
            await dispatcher.dispatch(_spec())

        retries = [entry for entry in logs if entry["event"] == "dispatch_retry_scheduled"]
        assert len(retries) == 1
        assert retries[0]["attempt"] == 1
        assert retries[0]["failure_kind"] == "server"
        assert retries[0]["log_level"] == "warning"

    async def test_final_failure_is_logged(self, fake_sleep: RecordingSleep) -> None:
        dispatcher = _dispatcher(FakeRegistry(), ScriptedTransport([503]), fake_sleep, max_attempts=2)

        with capture_logs() as logs, pytest.raises(ServerError):
            await dispatcher.dispatch(_spec())

        failed = [entry for entry in logs if entry["event"] == "dispatch_failed"]
        assert len(failed) == 1
        assert failed[0]["log_level"] == "error"
        assert failed[0]["attempts"] == 2

    async def test_terminal_failure_is_logged_at_error(self, fake_sleep: RecordingSleep) -> None:
        dispatcher = _dispatcher(FakeRegistry(), ScriptedTransport([404]), fake_sleep)

        with capture_logs() as logs, pytest.raises(ClientError):
            await dispatcher.dispatch(_spec())

        failed = [entry for entry in logs if entry["event"] == "dispatch_failed"]
        assert len(failed) == 1
        assert failed[0]["log_level"] == "error"
        assert failed[0]["failure_kind"] == "client"
        assert failed[0]["exhausted"] is False


class _GatedTransport(ScriptedTransport):
    """Transport whose send blocks until the test releases it."""

    def __init__(self) -> None:
        super().__init__([503])
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.finished = False

    async def send(self, method: HttpMethod, url: str, **kwargs: Any) -> Response:
        self.started.set()
        await self.release.wait()
        response = await super().send(method, url, **kwargs)
        self.finished = True
        return response


class TestCancellation:
    """Cancelling a call stops it without aborting an in-flight send."""

    async def test_cancel_during_send_lets_send_finish_and_schedules_nothing(self, fake_sleep: RecordingSleep) -> None:
        transport = _GatedTransport()
        dispatcher = _dispatcher(FakeRegistry(), transport, fake_sleep)

        task = asyncio.create_task(dispatcher.dispatch(_spec()))
        await transport.started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        transport.release.set()
        for _ in range(10):
            if transport.finished:
                break
            await asyncio.sleep(0)

        assert transport.finished is True
        assert transport.calls == 1
        assert fake_sleep.delays == []

    async def test_cancel_during_backoff_stops_further_attempts(self) -> None:
        sleeping = asyncio.Event()

        async def blocking_sleep(seconds: float) -> None:
            sleeping.set()
            await asyncio.Event().wait()

        transport = ScriptedTransport([503])
        dispatcher = _dispatcher(FakeRegistry(), transport, blocking_sleep)

        task = asyncio.create_task(dispatcher.dispatch(_spec()))
        await sleeping.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert transport.calls == 1


class TestConcurrency:
    """Concurrent calls against one dispatcher do not share attempt state."""

    async def test_concurrent_calls_have_independent_budgets(self, fake_sleep: RecordingSleep) -> None:
        transport = ScriptedTransport([200])
        dispatcher = _dispatcher(FakeRegistry(), transport, fake_sleep)

        responses = await asyncio.gather(
            *(dispatcher.dispatch(_spec(correlation_id=f"cid-{i}")) for i in range(5))
        )

        assert [r.status for r in responses] == [200] * 5
        assert sorted(r.headers["X-Correlation-Id"] for r in transport.sent) == [f"cid-{i}" for i in range(5)]

    async def test_dispatch_error_is_a_dispatch_error(self, fake_sleep: RecordingSleep) -> None:
        dispatcher = _dispatcher(FakeRegistry(connectivity=[False]), ScriptedTransport(), fake_sleep, max_attempts=1)

        with pytest.raises(DispatchError) as exc_info:
            await dispatcher.dispatch(_spec(correlation_id="cid-ctx"))

        assert exc_info.value.context.correlation_id == "cid-ctx"
        assert exc_info.value.context.service_name == "orders"
        assert exc_info.value.context.method == HttpMethod.GET
