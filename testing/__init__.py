"""Test support code for newest-image-tag.

Components:
    fixtures: Registry and configuration doubles shared by the test suites

Usage:
    from testing.fixtures.registry import FakeRegistry, manifest_body
"""

from __future__ import annotations
