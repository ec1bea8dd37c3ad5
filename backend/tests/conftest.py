from typing import AsyncIterator, Iterator, List

import pytest
from booking.deps import get_session
from booking.main import app as booking_app
from booking.utils import audit_log
from fakes import DummySession, FakeLedger, FakeOrderBackend
from fastapi import FastAPI


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def order_backend() -> FakeOrderBackend:
    return FakeOrderBackend()


@pytest.fixture(autouse=True)
def audit_messages(monkeypatch: pytest.MonkeyPatch) -> List[str]:
    messages: List[str] = []

    class DummyLogger:
        def info(self, message: str) -> None:
            messages.append(message)

    monkeypatch.setattr(audit_log, "_audit_logger", DummyLogger())
    return messages


@pytest.fixture
def app() -> Iterator[FastAPI]:
    async def dummy_session() -> AsyncIterator[DummySession]:
        yield DummySession()

    booking_app.dependency_overrides[get_session] = dummy_session
    yield booking_app
    booking_app.dependency_overrides.clear()
