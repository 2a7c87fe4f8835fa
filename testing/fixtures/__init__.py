"""Reusable test doubles for newest-image-tag tests.

Example:
    from testing.fixtures import FakeRegistry, IMAGE

    def test_lookup(fake_registry: FakeRegistry) -> None:
        fake_registry.add_image("org/app", {"1.0": "2021-01-01T00:00:00Z"})
"""

from __future__ import annotations

from testing.fixtures.registry import (
    IMAGE,
    REGISTRY_HOST,
    FakeRegistry,
    make_config,
    manifest_body,
    tags_list_url,
)

__all__ = [
    "IMAGE",
    "REGISTRY_HOST",
    "FakeRegistry",
    "make_config",
    "manifest_body",
    "tags_list_url",
]
