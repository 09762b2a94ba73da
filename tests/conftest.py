"""Shared pytest fixtures for daemon registry tests."""

from __future__ import annotations

import pytest

from daemon_registry.config import RegistrySettings
from daemon_registry.models.entities import SeedRegistry
from daemon_registry.registry.facade import DaemonRegistry
from daemon_registry.storage.kv import InMemoryKVStore
from tests.factories import DaemonWeb, FakeClock, make_entry

SEED_URL = "https://daemon.saltedkeys.io/"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host environment variables out of settings and redaction tests."""
    for name in (
        "DAEMON_REGISTRY_STORAGE_BACKEND",
        "DAEMON_REGISTRY_STORAGE_PATH",
        "DAEMON_REGISTRY_SEED_PATH",
        "DAEMON_REGISTRY_ANNOUNCE_LIMIT",
        "DAEMON_REGISTRY_HTTP_TIMEOUT",
        "DAEMON_REGISTRY_ACTIVITY_MAX_EVENTS",
        "DAEMON_REGISTRY_SWEEP_ENABLED",
        "DAEMON_REGISTRY_DEBUG",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def kv(clock: FakeClock) -> InMemoryKVStore:
    return InMemoryKVStore(clock=clock)


@pytest.fixture
def web() -> DaemonWeb:
    return DaemonWeb()


@pytest.fixture
def seed() -> SeedRegistry:
    """One seed daemon with a known status."""
    return SeedRegistry(
        version=3,
        entries=[
            make_entry(
                SEED_URL,
                owner="Swift",
                daemon_id="io.saltedkeys.daemon.swift",
                tags=["Security", "mcp"],
                focus=["threat intel"],
                status="mcp",
                healthy=True,
            )
        ],
    )


@pytest.fixture
def registry(
    kv: InMemoryKVStore, web: DaemonWeb, clock: FakeClock, seed: SeedRegistry
) -> DaemonRegistry:
    """Registry over in-memory KV, the fake network and the fake clock."""
    return DaemonRegistry.from_settings(
        RegistrySettings(), kv=kv, seed=seed, transport=web.transport, clock=clock
    )
