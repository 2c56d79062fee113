"""Shared test fixtures."""

from collections.abc import AsyncGenerator
from typing import Any
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from src.main import app
from src.qm_common.database import get_db_session
from src.qm_order.infrastructure.change_feed import get_change_feed
from src.qm_payment.dependencies import get_payment_gateway
from src.qm_payment.gateway import MockPaymentGateway
from tests.fakes import FakeClock, RecordingNoticeSink


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notices() -> RecordingNoticeSink:
    return RecordingNoticeSink()


@pytest.fixture
def db_session() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def change_feed() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def payment_gateway() -> MockPaymentGateway:
    return MockPaymentGateway(success_rate=1.0, create_latency_s=0, process_latency_s=0)


@pytest.fixture
async def client(
    db_session: AsyncMock, change_feed: AsyncMock, payment_gateway: MockPaymentGateway
) -> AsyncGenerator[AsyncClient, Any]:
    """Async HTTP client with DB, Redis feed and payment gateway overridden."""

    async def _db() -> AsyncGenerator[AsyncMock, Any]:
        yield db_session

    app.dependency_overrides[get_db_session] = _db
    app.dependency_overrides[get_change_feed] = lambda: change_feed
    app.dependency_overrides[get_payment_gateway] = lambda: payment_gateway
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
