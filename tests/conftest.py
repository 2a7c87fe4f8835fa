"""Shared test fixtures for newest-image-tag.

Key Fixtures:
- fake_registry: In-process Registry API v2 served through httpx.MockTransport
- memory_store: InMemoryTagDateStore cache double
- no_sleep: Patches the fetcher's back-off sleep
- fast_config: NewestTagConfig with a small retry budget and no back-off

No test touches the network or a real Redis server. Registry doubles live in
testing.fixtures.registry.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING
from unittest.mock import MagicMock, patch

import pytest
import structlog

from newest_image_tag.cache import InMemoryTagDateStore
from newest_image_tag.config import NewestTagConfig
from newest_image_tag.observability import reset_for_testing
from testing.fixtures.registry import FakeRegistry, make_config

if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop NEWEST_IMAGE_TAG_* variables so settings start from defaults."""
    for name in list(os.environ):
        if name.startswith("NEWEST_IMAGE_TAG_"):
            monkeypatch.delenv(name)


@pytest.fixture(autouse=True)
def reset_observability() -> Generator[None, None, None]:
    """Restore default structlog configuration and tracer after each test."""
    yield
    structlog.reset_defaults()
    reset_for_testing()


@pytest.fixture
def fake_registry() -> FakeRegistry:
    """Provide an empty FakeRegistry."""
    return FakeRegistry()


@pytest.fixture
def memory_store() -> InMemoryTagDateStore:
    """Provide an empty in-memory cache store."""
    return InMemoryTagDateStore()


@pytest.fixture
def no_sleep() -> Generator[MagicMock, None, None]:
    """Patch time.sleep in the fetcher so back-off waits return immediately.

    Yields:
        The sleep mock; ``call_args_list`` holds the requested delays.
    """
    with patch("newest_image_tag.fetcher.time.sleep") as mock_sleep:
        yield mock_sleep


@pytest.fixture
def fast_config() -> NewestTagConfig:
    """Provide a configuration with a small retry budget and no back-off."""
    return make_config()
