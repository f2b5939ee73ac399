# src/servicecall/engine/classifier.py
"""Classify what an attempt produced into Success, Retryable or Terminal.

Precedence (first match wins):
1. Registry not connected          -> Retryable(ConnectivityFailure)
2. Instance resolution failed      -> Retryable(ResolutionFailure)
3. Transport raised (timeout, etc.)-> Retryable(TransportFailure)
4. Status 500-599                  -> Retryable(ServerFailure)
5. Status 400-499                  -> Terminal(ClientFailure)
6. Anything else                   -> Success(response)

4xx responses are the caller's fault; sending the same request to another
instance cannot fix them, so they end the call even with attempts left.
"""

from __future__ import annotations

import asyncio

import httpx

from servicecall.contracts import (
    AttemptOutcome,
    ClientFailure,
    ConnectivityFailure,
    Endpoint,
    Failure,
    ResolutionFailure,
    Response,
    Retryable,
    ServerFailure,
    Stage,
    Success,
    Terminal,
    TransportFailure,
)

# Exceptions that mean "no usable response arrived" (network, timeout, or a
# body that could not be read or decoded). Anything else raised by a
# transport is a bug and propagates out of the engine unchanged.
TRANSPORT_EXCEPTIONS: tuple[type[BaseException], ...] = (
    httpx.RequestError,
    asyncio.TimeoutError,
    TimeoutError,
    ConnectionError,
)


def outcome_for_failure(failure: Failure) -> Retryable | Terminal:
    """Decide whether a Failure is worth another attempt.

    Exhaustive over the Failure union: adding a variant without a case here
    is a type error.
    """
    match failure:
        case ConnectivityFailure() | ResolutionFailure() | TransportFailure() | ServerFailure():
            return Retryable(failure)
        case ClientFailure():
            return Terminal(failure)


def classify_gate(connected: bool) -> Retryable | None:
    """Classify the connectivity gate. None means the gate is open."""
    if connected:
        return None
    return Retryable(ConnectivityFailure())


def classify_resolution(result: Endpoint | ResolutionFailure) -> Retryable | None:
    """Classify instance resolution. None means an Endpoint was resolved."""
    if isinstance(result, ResolutionFailure):
        return Retryable(result)
    return None


def classify_response(response: Response) -> AttemptOutcome:
    """Classify a response by status code."""
    status = response.status
    if 500 <= status <= 599:
        return outcome_for_failure(ServerFailure(status=status, body=response.body, response=response))
    if 400 <= status <= 499:
        return outcome_for_failure(ClientFailure(status=status, body=response.body, response=response))
    return Success(response)


def classify_send(result: Response | BaseException) -> AttemptOutcome:
    """Classify the transport result: a response or the exception it raised.

    Raises:
        BaseException: The exception itself, if it is not a transport-level error
    """
    if isinstance(result, BaseException):
        if isinstance(result, TRANSPORT_EXCEPTIONS):
            return outcome_for_failure(TransportFailure(cause=result))
        raise result
    return classify_response(result)


def classify(stage: Stage, result: object) -> AttemptOutcome | None:
    """Classify the result of one attempt stage.

    Args:
        stage: GATING (bool), RESOLVING (Endpoint | ResolutionFailure) or
            SENDING (Response | exception)
        result: What the stage produced

    Returns:
        The attempt outcome, or None when a gating/resolving stage passed and
        the attempt should move on to the next stage

    Raises:
        ValueError: If the stage produces nothing to classify
    """
    match stage:
        case Stage.GATING:
            return classify_gate(bool(result))
        case Stage.RESOLVING:
            assert isinstance(result, Endpoint | ResolutionFailure)
            return classify_resolution(result)
        case Stage.SENDING | Stage.CLASSIFYING:
            assert isinstance(result, Response | BaseException)
            return classify_send(result)
        case _:
            raise ValueError(f"nothing to classify at stage {stage!r}")
