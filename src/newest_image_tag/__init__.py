"""newest-image-tag: find the most recently created tag of a container image.

This package provides:
- get_newest_tag: End-to-end lookup returning a NewestTagOutput
- parse_image_reference: Split an image string into registry host and path
- RetryingFetcher, RegistryClient: Registry API v2 access (manifest schema 1)
- CacheAsideResolver, RedisTagDateStore: Optional cache of tag creation times
- TagResolver, select_newest: Parallel resolution and tie-break selection
- NewestTagConfig, load_config: Configuration from YAML, env and flags
- NewestTagError: Base of the exception hierarchy

Example:
    >>> from newest_image_tag import get_newest_tag, load_config
    >>> output = get_newest_tag("quay.io/org/app", load_config())
    >>> output.model_dump(by_alias=True)
    {'tag': '1.1', 'image': 'quay.io/org/app', 'imageWithTag': 'quay.io/org/app:1.1'}
"""

from __future__ import annotations

__version__ = "0.1.0"

from newest_image_tag.cache import (
    CacheAsideResolver,
    InMemoryTagDateStore,
    RedisTagDateStore,
    TagDateStore,
)
from newest_image_tag.config import (
    CacheConfig,
    NewestTagConfig,
    RegistryCredentials,
    RetryConfig,
    load_config,
)
from newest_image_tag.errors import (
    CacheBackendError,
    EmptyTagListError,
    HTTPStatusError,
    NetworkError,
    NewestTagError,
    ReferenceParseError,
    RegistryError,
    RegistryTimeoutError,
    ResolutionCancelledError,
    TimestampParseError,
    UnmarshalError,
    UnsupportedManifestVersionError,
)
from newest_image_tag.fetcher import RetryingFetcher
from newest_image_tag.reference import ImageReference, parse_image_reference
from newest_image_tag.registry import RegistryClient, newest_timestamp
from newest_image_tag.resolver import TagResolver
from newest_image_tag.schemas import NewestTagOutput, ResolvedTag, TagList, TagManifest
from newest_image_tag.selector import select_newest
from newest_image_tag.service import get_newest_tag
from newest_image_tag.timestamps import Timestamp

__all__ = [
    "__version__",
    # Pipeline
    "get_newest_tag",
    "parse_image_reference",
    "select_newest",
    # Components
    "CacheAsideResolver",
    "InMemoryTagDateStore",
    "RedisTagDateStore",
    "RegistryClient",
    "RetryingFetcher",
    "TagDateStore",
    "TagResolver",
    "newest_timestamp",
    # Schemas
    "ImageReference",
    "NewestTagOutput",
    "ResolvedTag",
    "TagList",
    "TagManifest",
    "Timestamp",
    # Configuration
    "CacheConfig",
    "NewestTagConfig",
    "RegistryCredentials",
    "RetryConfig",
    "load_config",
    # Errors
    "CacheBackendError",
    "EmptyTagListError",
    "HTTPStatusError",
    "NetworkError",
    "NewestTagError",
    "ReferenceParseError",
    "RegistryError",
    "RegistryTimeoutError",
    "ResolutionCancelledError",
    "TimestampParseError",
    "UnmarshalError",
    "UnsupportedManifestVersionError",
]
