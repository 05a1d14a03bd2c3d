"""Worker context fixtures for sweep task tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from tenantforge.integrations import Collaborators
from tenantforge.integrations.payment import OwnerPaymentSignal


class StubSessionFactory:
    """Stands in for ``async_sessionmaker``; every session is the same mock."""

    def __init__(self) -> None:
        self.session = AsyncMock()
        self.session.add = MagicMock()
        self.opened = 0

    def __call__(self) -> "StubSessionFactory":
        self.opened += 1
        return self

    async def __aenter__(self) -> AsyncMock:
        return self.session

    async def __aexit__(self, *exc_info) -> bool:
        return False


@pytest.fixture
def lifecycle() -> MagicMock:
    mock = MagicMock()
    mock.suspend = AsyncMock()
    mock.delete = AsyncMock()
    mock.notify_owner = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def worker_ctx(test_settings) -> dict:
    cache = MagicMock()
    cache.set_if_absent = AsyncMock(return_value=True)
    return {
        "settings": test_settings,
        "db_session_factory": StubSessionFactory(),
        "cache": cache,
        "collaborators": Collaborators(payment=OwnerPaymentSignal(test_settings)),
        "provisioning": MagicMock(),
        "job_try": 1,
    }
