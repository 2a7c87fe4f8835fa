"""End-to-end newest-tag lookup.

Pipeline:
    parse reference -> list tags -> resolve every tag (cache-aside, worker
    pool) -> select newest -> NewestTagOutput

Example:
    >>> from newest_image_tag.config import load_config
    >>> output = get_newest_tag("quay.io/org/app", load_config())
    >>> output.image_with_tag
    'quay.io/org/app:1.1'
"""

from __future__ import annotations

from contextlib import ExitStack

import httpx
import structlog

from newest_image_tag.cache import CacheAsideResolver, RedisTagDateStore, TagDateStore
from newest_image_tag.config import NewestTagConfig
from newest_image_tag.errors import EmptyTagListError
from newest_image_tag.fetcher import RetryingFetcher
from newest_image_tag.reference import parse_image_reference
from newest_image_tag.registry import RegistryClient
from newest_image_tag.resolver import TagResolver
from newest_image_tag.schemas import NewestTagOutput
from newest_image_tag.selector import select_newest

logger = structlog.get_logger(__name__)


def get_newest_tag(
    image: str,
    config: NewestTagConfig | None = None,
    *,
    store: TagDateStore | None = None,
    transport: httpx.BaseTransport | None = None,
) -> NewestTagOutput:
    """Find the most recently created tag of *image*.

    Args:
        image: Image reference such as ``nginx`` or ``quay.io/org/app``.
        config: Pipeline configuration. Uses defaults if None.
        store: Cache store to use instead of building a Redis store from
            ``config.cache``. An injected store is used whether or not
            ``config.cache.enabled`` is set; the flag only decides whether a
            Redis store is built. The caller keeps ownership of it.
        transport: httpx transport for the registry client (tests).

    Returns:
        NewestTagOutput for the selected tag.

    Raises:
        ReferenceParseError: If image is empty.
        EmptyTagListError: If the repository has no tags.
        NewestTagError: Any registry failure, fail-fast across all tags.
    """
    config = config or NewestTagConfig()
    ref = parse_image_reference(image)
    log = logger.bind(image=image, host=ref.host, repository=ref.repository_path)

    with ExitStack() as stack:
        fetcher = stack.enter_context(RetryingFetcher(config.retry, transport=transport))
        registry = RegistryClient(fetcher, config.credentials)

        tag_list = registry.list_tags(ref)
        if not tag_list.tags:
            raise EmptyTagListError(image)

        if store is None and config.cache.enabled:
            redis_store = RedisTagDateStore(config.cache)
            stack.callback(redis_store.close)
            store = redis_store

        cache_resolver = CacheAsideResolver(registry, store, config.cache.ttl_seconds)
        resolver = TagResolver(cache_resolver, config.worker_count)
        results = resolver.resolve(image, ref, tag_list)

    tag = select_newest(results, image)
    log.debug("newest_tag_selected", tag=tag)
    return NewestTagOutput.for_tag(image, tag)


__all__ = ["get_newest_tag"]
