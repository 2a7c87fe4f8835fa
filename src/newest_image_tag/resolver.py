"""Fixed-size worker pool resolving tag creation times in parallel.

Every tag is queued up front, followed by one stop sentinel per worker. Each
worker takes tags until it sees a sentinel and pushes exactly one ResolvedTag
per tag onto the results queue. The caller drains the results queue.

Fail-fast:
    The first result carrying an error sets the shared cancel event. Workers
    check it before each tag and back-off waits inside the fetcher wake up on
    it, and so does the body read of an in-flight request. The error is
    raised at once. Workers still in flight are daemon threads that exit at
    their next cancel check; they are not joined. On success every worker is
    joined before resolve returns.

Thread Safety:
    Workers share the cache-aside resolver (thread-safe HTTP client and cache
    store) and the two queues. Nothing else is mutated from worker threads.

Example:
    >>> resolver = TagResolver(cache_resolver, worker_count=30)
    >>> results = resolver.resolve("quay.io/org/app", ref, tag_list)
    >>> len(results) == len(tag_list.tags)
    True
"""

from __future__ import annotations

import queue
import threading
from typing import TYPE_CHECKING, Protocol

import structlog

from newest_image_tag.config import DEFAULT_WORKER_COUNT
from newest_image_tag.errors import ResolutionCancelledError
from newest_image_tag.observability import get_tracer
from newest_image_tag.schemas import ResolvedTag, TagList

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from newest_image_tag.reference import ImageReference

logger = structlog.get_logger(__name__)

_STOP = object()


class TagDateSource(Protocol):
    """Anything that can resolve one tag to its creation time."""

    def get_tag_date(
        self,
        image: str,
        ref: ImageReference,
        tag: str,
        *,
        cancel_event: threading.Event | None = None,
    ) -> datetime: ...


class TagResolver:
    """Resolve every tag of a tag list with a pool of worker threads.

    Attributes:
        source: Resolves a single tag (normally a CacheAsideResolver).
        worker_count: Upper bound on worker threads; never more than tags.
    """

    def __init__(self, source: TagDateSource, worker_count: int = DEFAULT_WORKER_COUNT) -> None:
        """Initialize TagResolver.

        Args:
            source: Resolves a single tag.
            worker_count: Number of worker threads, at least 1.

        Raises:
            ValueError: If worker_count is below 1.
        """
        if worker_count < 1:
            msg = f"worker_count must be at least 1, got {worker_count}"
            raise ValueError(msg)
        self._source = source
        self._worker_count = worker_count

    @property
    def source(self) -> TagDateSource:
        return self._source

    @property
    def worker_count(self) -> int:
        return self._worker_count

    def resolve(
        self,
        image: str,
        ref: ImageReference,
        tag_list: TagList | Sequence[str],
    ) -> list[ResolvedTag]:
        """Resolve the creation time of every tag.

        Args:
            image: Image string as given by the caller.
            ref: Parsed reference of the image.
            tag_list: Tags to resolve.

        Returns:
            One successful ResolvedTag per tag, in completion order.

        Raises:
            NewestTagError: The first per-tag failure observed.
        """
        tags = list(tag_list.tags if isinstance(tag_list, TagList) else tag_list)
        if not tags:
            return []

        thread_count = min(self._worker_count, len(tags))
        log = logger.bind(image=image, tag_count=len(tags), worker_count=thread_count)

        jobs: queue.Queue[object] = queue.Queue(maxsize=len(tags) + thread_count)
        for tag in tags:
            jobs.put_nowait(tag)
        for _ in range(thread_count):
            jobs.put_nowait(_STOP)

        results: queue.Queue[ResolvedTag] = queue.Queue()
        cancel_event = threading.Event()

        with get_tracer().start_as_current_span("newest_image_tag.resolve") as span:
            span.set_attribute("newest_image_tag.image", image)
            span.set_attribute("newest_image_tag.tag_count", len(tags))
            span.set_attribute("newest_image_tag.worker_count", thread_count)

            log.debug("tag_resolution_started")
            workers = [
                threading.Thread(
                    target=self._work,
                    args=(image, ref, jobs, results, cancel_event),
                    name=f"tag-resolver-{i}",
                    daemon=True,
                )
                for i in range(thread_count)
            ]
            for worker in workers:
                worker.start()

            resolved: list[ResolvedTag] = []
            try:
                for _ in range(len(tags)):
                    result = results.get()
                    if result.error is not None:
                        log.warning(
                            "tag_resolution_failed",
                            tag=result.tag,
                            error=str(result.error),
                        )
                        raise result.error
                    resolved.append(result)
            except BaseException:
                cancel_event.set()
                raise

            for worker in workers:
                worker.join()

        log.debug("tag_resolution_completed", resolved=len(resolved))
        return resolved

    def _work(
        self,
        image: str,
        ref: ImageReference,
        jobs: queue.Queue[object],
        results: queue.Queue[ResolvedTag],
        cancel_event: threading.Event,
    ) -> None:
        while True:
            item = jobs.get()
            if item is _STOP:
                return

            tag = str(item)
            if cancel_event.is_set():
                results.put(ResolvedTag(tag=tag, error=ResolutionCancelledError(tag)))
                continue

            try:
                created_at = self._source.get_tag_date(image, ref, tag, cancel_event=cancel_event)
            except BaseException as e:
                results.put(ResolvedTag(tag=tag, error=e))
            else:
                logger.debug("tag_resolved", tag=tag, created_at=created_at.isoformat())
                results.put(ResolvedTag(tag=tag, created_at=created_at))


__all__ = ["TagDateSource", "TagResolver"]
