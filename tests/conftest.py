"""
Catalog Tree Service Tests - Test Configuration.

Provides pytest fixtures for testing the catalog tree service, including
sample catalog payloads and a controllable in-memory catalog gateway.
"""

import asyncio
from collections import Counter
from typing import Any, Dict, List, Optional, Tuple

import pytest

from catalog_tree.config import Settings
from catalog_tree.domain.entities import Level, record_from_payload
from catalog_tree.domain.exceptions import CatalogFetchError

CallKey = Tuple[str, Optional[str]]


class FakeCatalogGateway:
    """
    In-memory stand-in for the catalog backend.

    Responses are keyed by ``(operation, parent_id)`` where operation is one
    of ``domains``, ``technologies``, ``tutorials`` or ``lessons``. Calls can
    be held open with ``hold`` to simulate slow fetches, or made to fail with
    ``fail_next``.
    """

    _LEVELS = {
        "domains": Level.DOMAIN,
        "technologies": Level.TECHNOLOGY,
        "tutorials": Level.TUTORIAL,
        "lessons": Level.LESSON,
    }
    _PARENT_LEVELS = {
        "domains": None,
        "technologies": "domain",
        "tutorials": "technology",
        "lessons": "tutorial",
    }

    def __init__(self, responses: Dict[CallKey, List[Dict[str, Any]]]) -> None:
        self.responses = dict(responses)
        self.calls: List[CallKey] = []
        self.filters: List[Dict[str, Any]] = []
        self._gates: Dict[CallKey, asyncio.Event] = {}
        self._failures: Counter = Counter()

    def hold(self, operation: str, parent_id: Optional[str] = None) -> asyncio.Event:
        """Block calls for ``(operation, parent_id)`` until the returned event is set."""
        gate = asyncio.Event()
        self._gates[(operation, parent_id)] = gate
        return gate

    def fail_next(self, operation: str, parent_id: Optional[str] = None, times: int = 1) -> None:
        self._failures[(operation, parent_id)] += times

    def count(self, operation: str, parent_id: Optional[str] = None) -> int:
        return self.calls.count((operation, parent_id))

    async def _respond(self, operation: str, parent_id: Optional[str], filters: Dict[str, Any]):
        key = (operation, parent_id)
        self.calls.append(key)
        self.filters.append(filters)

        gate = self._gates.get(key)
        if gate is not None:
            await gate.wait()

        if self._failures[key] > 0:
            self._failures[key] -= 1
            raise CatalogFetchError(
                self._PARENT_LEVELS[operation], parent_id, reason="backend unavailable", status_code=503
            )

        level = self._LEVELS[operation]
        return [record_from_payload(level, item) for item in self.responses.get(key, [])]

    async def list_domains(self, **filters: Any):
        return await self._respond("domains", None, filters)

    async def list_technologies(self, domain_id: str, **filters: Any):
        return await self._respond("technologies", domain_id, filters)

    async def list_tutorials(self, technology_id: str, **filters: Any):
        return await self._respond("tutorials", technology_id, filters)

    async def list_lessons(self, tutorial_id: str, **filters: Any):
        return await self._respond("lessons", tutorial_id, filters)


@pytest.fixture
def test_settings() -> Settings:
    """
    Settings for the test environment.

    Built explicitly so tests run with consistent configuration
    regardless of the host environment.
    """
    return Settings(
        CATALOG_API_URL="http://test-catalog:5001/api/v1",
        DEBUG=True,
        LOG_LEVEL="DEBUG",
        REQUEST_TIMEOUT=2.0,
        MAX_RETRIES=0,
        MAX_TREE_SESSIONS=10,
    )


@pytest.fixture
def catalog_payloads() -> Dict[CallKey, List[Dict[str, Any]]]:
    """
    Sample catalog matching the backend's JSON.

    Web Development -> HTML -> Intro holds two lessons returned out of order.
    """
    return {
        ("domains", None): [
            {"_id": "d1", "name": "Web Development", "icon": "code", "slug": "web-development"},
            {"_id": "d2", "name": "Programming", "icon": "book", "slug": "programming"},
        ],
        ("technologies", "d1"): [
            {"_id": "t1", "name": "HTML", "slug": "html", "domain": "d1"},
            {"_id": "t2", "name": "CSS", "slug": "css", "domain": "d1"},
        ],
        ("technologies", "d2"): [
            {"_id": "t3", "name": "Python", "slug": "python", "domain": "d2"},
        ],
        ("tutorials", "t1"): [
            {"_id": "u1", "title": "Intro", "slug": "intro", "technology": "t1"},
            {"_id": "u2", "title": "Forms", "slug": "forms", "technology": "t1"},
        ],
        ("tutorials", "t2"): [],
        ("tutorials", "t3"): [
            {"_id": "u3", "title": "Basics", "slug": "basics", "technology": "t3"},
        ],
        ("lessons", "u1"): [
            {"_id": "l2", "order": 2, "title": "B", "slug": "b"},
            {"_id": "l1", "order": 1, "title": "A", "slug": "a"},
        ],
        ("lessons", "u2"): [],
        ("lessons", "u3"): [
            {"_id": "l3", "title": "Variables"},
        ],
    }


@pytest.fixture
def fake_gateway(catalog_payloads: Dict[CallKey, List[Dict[str, Any]]]) -> FakeCatalogGateway:
    """Fake gateway serving ``catalog_payloads``."""
    return FakeCatalogGateway(catalog_payloads)


@pytest.fixture
def make_gateway():
    """Factory for fake gateways with custom payloads."""
    return FakeCatalogGateway


def pytest_configure(config: Any) -> None:
    """
    Configure pytest with custom markers.

    Args:
        config: Pytest configuration object
    """
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test",
    )
    config.addinivalue_line(
        "markers",
        "unit: mark test as unit test",
    )
