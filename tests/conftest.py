"""
Pytest configuration and fixtures.
"""

from typing import AsyncGenerator

import pytest
from httpx import AsyncClient, ASGITransport

from backend.app.main import app
from backend.app.services.incident_lifecycle import IncidentLifecycleManager, get_lifecycle_manager


@pytest.fixture
def manager() -> IncidentLifecycleManager:
    """A fresh, empty lifecycle manager."""
    return IncidentLifecycleManager()


@pytest.fixture
async def client(manager: IncidentLifecycleManager) -> AsyncGenerator[AsyncClient, None]:
    """
    Test client with the lifecycle manager dependency overridden,
    so every test starts from an empty registry.
    """
    app.dependency_overrides[get_lifecycle_manager] = lambda: manager

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def create_payload() -> dict:
    return {
        "report": "Dog stuck in a flooded basement, owner away",
        "location": "12 River Lane",
        "urgencyHint": "medium",
        "actor": "dispatcher-ana",
    }
