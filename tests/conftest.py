# pylint: disable=missing-module-docstring,missing-function-docstring,missing-class-docstring

import os

# Must run before counselor.db / counselor.completion are imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("LANGFUSE_PUBLIC_KEY", None)
os.environ.pop("LANGFUSE_SECRET_KEY", None)

from typing import Any, List, Optional  # noqa: E402

import pytest  # noqa: E402

from counselor import db  # noqa: E402
from counselor.completion import CompletionBackend  # noqa: E402
from counselor.contracts import CurrentUser, Turn  # noqa: E402
from counselor.errors import ChatError  # noqa: E402


@pytest.fixture(autouse=True)
def engine(monkeypatch: pytest.MonkeyPatch):
    """Fresh in-memory database per test."""
    test_engine = db.build_engine("sqlite://")
    monkeypatch.setattr(db, "engine", test_engine)
    db.init_db()
    yield test_engine
    test_engine.dispose()


class RecordingBackend(CompletionBackend):
    """Completion backend that records every call instead of hitting the network."""

    name = "recording"
    model = "test-model"

    def __init__(self, reply: str = "Start by researching market rates.", error: Optional[ChatError] = None):
        self.reply = reply
        self.error = error
        self.calls: List[dict[str, Any]] = []

    def _complete(self, system_directive: str, turns: List[Turn]) -> str:
        self.calls.append({"system_directive": system_directive, "turns": turns})
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def backend() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture
def make_backend():
    return RecordingBackend


@pytest.fixture
def alice() -> CurrentUser:
    return CurrentUser(id="alice", name="Alice")


@pytest.fixture
def bob() -> CurrentUser:
    return CurrentUser(id="bob")


class FakeClock:
    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
