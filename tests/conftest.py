"""Pytest configuration and fixtures for record_store tests."""

from __future__ import annotations

import asyncio
from collections.abc import Hashable, Sequence
from typing import Any, Callable

import pytest
from prometheus_client import CollectorRegistry

from record_store.adapters.outbound import InMemoryStorage
from record_store.application import Store
from record_store.domain.services import (
    PatchUpdate,
    Query,
    create_operation,
    create_patch,
)
from record_store.domain.value_objects import CrudOptions, OperationType
from record_store.infrastructure.config import StoreSettings
from record_store.infrastructure.metrics import MetricsRegistry


def create_data() -> list[dict[str, Any]]:
    """Three records with a scalar and a nested value, in id order."""
    return [
        {"id": "1", "value": 1, "nestedProperty": {"value": 3}},
        {"id": "2", "value": 2, "nestedProperty": {"value": 2}},
        {"id": "3", "value": 3, "nestedProperty": {"value": 1}},
    ]


def create_updates() -> list[list[dict[str, Any]]]:
    """Two rounds of updates; round ``n`` adds ``n + 1`` to every value."""
    return [
        [
            {**record, "value": record["value"] + round_ + 1}
            for record in create_data()
        ]
        for round_ in range(2)
    ]


def create_patches() -> list[PatchUpdate]:
    """Patches adding 2 to ``value`` and ``nestedProperty/value`` of each record."""
    updates = []
    for record in create_data():
        patch = create_patch(
            [
                create_operation(OperationType.REPLACE, "value", record["value"] + 2),
                create_operation(
                    OperationType.REPLACE,
                    ["nestedProperty", "value"],
                    record["nestedProperty"]["value"] + 2,
                ),
            ]
        )
        updates.append(PatchUpdate(record["id"], patch))
    return updates


class DelayedStorage:
    """Asynchronous storage double.

    Wraps InMemoryStorage and sleeps ``delays[method]`` seconds before each
    call. ``failures[method]`` is how many upcoming calls of that method
    raise RuntimeError instead of reaching the wrapped storage.
    """

    def __init__(
        self,
        delays: dict[str, float] | None = None,
        failures: dict[str, int] | None = None,
    ) -> None:
        self.inner: InMemoryStorage[Any] = InMemoryStorage()
        self.delays = delays or {}
        self.failures = dict(failures or {})
        self.calls: list[str] = []

    def identify(self, records: Sequence[Any]) -> list[Hashable]:
        return self.inner.identify(records)

    async def _call(self, name: str, *args: Any) -> Any:
        self.calls.append(name)
        await asyncio.sleep(self.delays.get(name, 0))
        if self.failures.get(name, 0) > 0:
            self.failures[name] -= 1
            raise RuntimeError(f"{name} failed")
        return getattr(self.inner, name)(*args)

    async def create_id(self) -> str:
        return await self._call("create_id")

    async def get(self, ids: Sequence[Hashable]) -> list[Any]:
        return await self._call("get", ids)

    async def fetch(self, query: Query[Any] | None = None) -> list[Any]:
        return await self._call("fetch", query)

    async def add(self, records: Sequence[Any], options: CrudOptions) -> list[Any]:
        return await self._call("add", records, options)

    async def put(self, records: Sequence[Any], options: CrudOptions) -> list[Any]:
        return await self._call("put", records, options)

    async def delete(self, ids: Sequence[Hashable]) -> list[Hashable]:
        return await self._call("delete", ids)


@pytest.fixture
def data() -> list[dict[str, Any]]:
    """Provide fresh sample records."""
    return create_data()


@pytest.fixture
def updates() -> list[list[dict[str, Any]]]:
    """Provide fresh update rounds for the sample records."""
    return create_updates()


@pytest.fixture
def patches() -> list[PatchUpdate]:
    """Provide one patch per sample record."""
    return create_patches()


@pytest.fixture
def metrics_registry() -> MetricsRegistry:
    """Provide a fresh metrics registry for each test."""
    # Use a separate registry to avoid conflicts between tests
    registry = CollectorRegistry(auto_describe=True)
    return MetricsRegistry(registry=registry)


@pytest.fixture
def store_settings() -> StoreSettings:
    """Provide default store settings independent of the environment."""
    return StoreSettings()


@pytest.fixture
def make_store(
    metrics_registry: MetricsRegistry, store_settings: StoreSettings
) -> Callable[..., Store[Any]]:
    """Provide a Store factory bound to the test's registry and settings."""

    def factory(data: Any = None, **options: Any) -> Store[Any]:
        options.setdefault("settings", store_settings)
        options.setdefault("metrics", metrics_registry)
        return Store(data, **options)

    return factory


@pytest.fixture
def delayed_storage() -> Callable[..., DelayedStorage]:
    """Provide a DelayedStorage factory."""
    return DelayedStorage


# Markers for test categories
def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")
