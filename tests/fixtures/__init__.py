"""In-memory collaborators for servicecall tests."""

from tests.fixtures.fakes import FakeRegistry, RecordingSleep, ScriptedTransport, SentRequest

__all__ = [
    "FakeRegistry",
    "RecordingSleep",
    "ScriptedTransport",
    "SentRequest",
]
