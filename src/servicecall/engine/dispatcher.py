# src/servicecall/engine/dispatcher.py
"""Dispatcher: orchestrates one logical call.

State machine per attempt:

    GATING -> RESOLVING -> SENDING -> CLASSIFYING
        -> Retryable: back to GATING after backoff (RetryController)
        -> Success / Terminal: DONE

The dispatcher holds no per-call mutable state on self; everything about a
call lives in the dispatch() frame, so any number of calls can be in flight
concurrently against one Dispatcher.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from servicecall.contracts import (
    AttemptOutcome,
    Endpoint,
    Failure,
    RequestSpec,
    Response,
    Retryable,
    RetryPolicy,
    Stage,
    Success,
    Terminal,
)
from servicecall.core.correlation import DEFAULT_CORRELATION_HEADER, correlation_scope
from servicecall.engine.classifier import TRANSPORT_EXCEPTIONS, classify_gate, classify_resolution, classify_send
from servicecall.engine.resolver import InstanceResolver
from servicecall.engine.retry import RetryController, SleepFn
from servicecall.errors import DispatchContext, DispatchError

if TYPE_CHECKING:
    from servicecall.registry.protocols import ServiceRegistry
    from servicecall.transport.http import Transport

logger = structlog.get_logger(__name__)


def _consume_orphaned_result(task: asyncio.Future[Response]) -> None:
    """Retrieve the result of a send whose caller was cancelled.

    Keeps asyncio from reporting "exception was never retrieved" for sends
    that outlived their logical call.
    """
    if not task.cancelled():
        task.exception()


class Dispatcher:
    """Sends logical calls to whichever instance the registry resolves.

    Example:
        dispatcher = Dispatcher(
            registry=registry,
            transport=HttpxTransport(),
            policy=RetryPolicy(max_attempts=3, min_delay=0.075, max_delay=0.75),
            request_timeout=5.0,
        )
        response = await dispatcher.dispatch(spec)

    Cancellation:
        Cancelling the task awaiting dispatch() stops the call before the
        next attempt is scheduled. A send already in flight is shielded and
        runs to completion (or to its own timeout) in the background; its
        result is discarded.
    """

    def __init__(
        self,
        registry: ServiceRegistry,
        transport: Transport,
        policy: RetryPolicy,
        *,
        request_timeout: float,
        correlation_header_name: str = DEFAULT_CORRELATION_HEADER,
        service_name: str | None = None,
        verbose: bool = False,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        """Initialize dispatcher.

        Args:
            registry: Registry consulted for connectivity and instances
            transport: Transport that sends each attempt's request
            policy: Attempt budget and backoff bounds
            request_timeout: Per-attempt network timeout in seconds
            correlation_header_name: Header carrying the correlation id
            service_name: Name used in error context (defaults to registry.service_name)
            verbose: Log instance resolution and requests at info instead of debug
            sleep: Awaitable sleep used for backoff (tests inject a fake)
        """
        self._registry = registry
        self._transport = transport
        self._resolver = InstanceResolver(registry)
        self._controller = RetryController(policy, sleep=sleep, on_retry=self._log_retry)
        self._request_timeout = request_timeout
        self._correlation_header_name = correlation_header_name
        self._service_name = service_name if service_name is not None else registry.service_name
        self._verbose = verbose

    @property
    def service_name(self) -> str:
        return self._service_name

    @property
    def policy(self) -> RetryPolicy:
        return self._controller.policy

    def _trace(self, event: str, **fields: object) -> None:
        if self._verbose:
            logger.info(event, **fields)
        else:
            logger.debug(event, **fields)

    @staticmethod
    def _log_retry(attempt_number: int, failure: Failure, delay: float) -> None:
        logger.warning(
            "dispatch_retry_scheduled",
            attempt=attempt_number,
            failure_kind=str(failure.kind),
            error=failure.describe(),
            delay_seconds=round(delay, 4),
        )

    async def dispatch(self, spec: RequestSpec) -> Response:
        """Run one logical call to completion.

        Args:
            spec: Immutable request, shared by every attempt

        Returns:
            The first response classified as Success

        Raises:
            DispatchError: Subclass matching the final Failure, with request context
        """
        last_url: str | None = None

        async def attempt(attempt_number: int) -> AttemptOutcome:
            nonlocal last_url

            self._trace("dispatch_stage", stage=str(Stage.GATING), attempt=attempt_number)
            gated = classify_gate(self._registry.is_connected())
            if gated is not None:
                return gated

            self._trace("dispatch_stage", stage=str(Stage.RESOLVING), attempt=attempt_number)
            resolved = await self._resolver.resolve()
            unresolved = classify_resolution(resolved)
            if unresolved is not None:
                return unresolved
            assert isinstance(resolved, Endpoint)
            self._trace("service_instance_retrieved", service_url=resolved.service_url, attempt=attempt_number)

            url = resolved.url_for(spec.path)
            last_url = url
            self._trace("performing_request", stage=str(Stage.SENDING), url=url, attempt=attempt_number)
            result = await self._send(spec, url)

            outcome = classify_send(result)
            self._trace(
                "dispatch_stage",
                stage=str(Stage.CLASSIFYING),
                attempt=attempt_number,
                outcome=type(outcome).__name__,
            )
            return outcome

        with (
            correlation_scope(spec.correlation_id),
            structlog.contextvars.bound_contextvars(
                service=self._service_name,
                method=str(spec.method),
                path=spec.path,
            ),
        ):
            result = await self._controller.run(attempt)

            match result.outcome:
                case Success(response=response):
                    self._trace("dispatch_stage", stage=str(Stage.DONE), attempts=result.attempts, status=response.status)
                    return response
                case Retryable(failure=failure) | Terminal(failure=failure):
                    context = DispatchContext(
                        service_name=self._service_name,
                        method=spec.method,
                        path=spec.path,
                        url=last_url,
                        correlation_id=spec.correlation_id,
                    )
                    error = DispatchError.from_failure(
                        failure,
                        attempts=result.attempts,
                        exhausted=result.exhausted,
                        context=context,
                    )
                    logger.error(
                        "dispatch_failed",
                        failure_kind=str(failure.kind),
                        error=failure.describe(),
                        attempts=result.attempts,
                        exhausted=result.exhausted,
                        url=last_url,
                    )
                    raise error

    async def _send(self, spec: RequestSpec, url: str) -> Response | BaseException:
        """Send one attempt's request; transport-level errors are returned, not raised."""
        send = asyncio.ensure_future(
            self._transport.send(
                spec.method,
                url,
                headers=spec.outbound_headers(self._correlation_header_name),
                query=spec.query,
                body=spec.body,
                timeout=self._request_timeout,
            )
        )
        send.add_done_callback(_consume_orphaned_result)
        try:
            return await asyncio.shield(send)
        except TRANSPORT_EXCEPTIONS as e:
            return e
