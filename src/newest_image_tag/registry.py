"""Registry API v2 client for tag lists and schema 1 manifests.

Builds the registry API paths for an ImageReference, fetches them through
the RetryingFetcher and decodes the bodies into typed schemas.

Example:
    >>> from newest_image_tag.fetcher import RetryingFetcher
    >>> from newest_image_tag.reference import parse_image_reference
    >>> ref = parse_image_reference("quay.io/org/app")
    >>> client = RegistryClient(RetryingFetcher())
    >>> tags = client.list_tags(ref)
    >>> client.get_tag_date(ref, tags.tags[0])
    Timestamp('2021-06-01T00:00:00Z')
"""

from __future__ import annotations

import json
import threading
from datetime import datetime
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from newest_image_tag.errors import (
    TimestampParseError,
    UnmarshalError,
    UnsupportedManifestVersionError,
)
from newest_image_tag.observability import get_tracer
from newest_image_tag.schemas import (
    SUPPORTED_SCHEMA_VERSION,
    ManifestHistoryEntry,
    TagList,
    TagManifest,
)
from newest_image_tag.timestamps import parse_rfc3339

if TYPE_CHECKING:
    from newest_image_tag.config import RegistryCredentials
    from newest_image_tag.fetcher import RetryingFetcher
    from newest_image_tag.reference import ImageReference

logger = structlog.get_logger(__name__)

MANIFEST_V1_ACCEPT = ", ".join(
    [
        "application/vnd.docker.distribution.manifest.v1+prettyjws",
        "application/vnd.docker.distribution.manifest.v1+json",
        "application/json",
    ]
)
"""Accept header asking registries for Image Manifest Version 2, Schema 1."""


def decode_tag_list(body: str) -> TagList:
    """Decode a ``tags/list`` response body.

    Raises:
        UnmarshalError: If the body is not a valid tag list document.
    """
    try:
        return TagList.model_validate_json(body)
    except ValidationError as e:
        raise UnmarshalError("tag list", _first_error(e)) from e


def decode_manifest(body: str) -> TagManifest:
    """Decode a ``manifests/{tag}`` response body.

    Raises:
        UnmarshalError: If the body is not a valid manifest document.
    """
    try:
        return TagManifest.model_validate_json(body)
    except ValidationError as e:
        raise UnmarshalError("manifest", _first_error(e)) from e


def decode_history_entry(v1_compatibility: str) -> ManifestHistoryEntry:
    """Decode one ``v1Compatibility`` blob.

    Raises:
        UnmarshalError: If the blob is not a JSON object.
        TimestampParseError: If ``created`` is missing or not RFC 3339.
    """
    try:
        data = json.loads(v1_compatibility)
    except json.JSONDecodeError as e:
        raise UnmarshalError("manifest history", str(e)) from e

    if not isinstance(data, dict):
        raise UnmarshalError("manifest history", "v1Compatibility is not a JSON object")
    if "created" not in data:
        raise TimestampParseError(None, "missing from v1Compatibility")

    return ManifestHistoryEntry(created_at=parse_rfc3339(data["created"]))


def newest_timestamp(manifest: TagManifest) -> datetime:
    """Return the newest ``created`` time across the manifest history.

    Args:
        manifest: A decoded schema 1 manifest.

    Returns:
        Maximum creation time over all history items.

    Raises:
        UnmarshalError: If history is empty or an item is malformed.
        TimestampParseError: If an item carries an invalid timestamp.
    """
    if not manifest.history:
        raise UnmarshalError("manifest history", "history is empty")

    return max(decode_history_entry(item.v1_compatibility).created_at for item in manifest.history)


def _first_error(error: ValidationError) -> str:
    details = error.errors()
    if not details:
        return str(error)
    first = details[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "invalid value")
    return f"{location}: {message}" if location else message


class RegistryClient:
    """Tag list and manifest access for one registry account.

    Attributes:
        fetcher: The RetryingFetcher used for every request.
        credentials: Basic-auth credentials attached to every request.
    """

    def __init__(
        self,
        fetcher: RetryingFetcher,
        credentials: RegistryCredentials | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._credentials = credentials

    @property
    def fetcher(self) -> RetryingFetcher:
        return self._fetcher

    @property
    def credentials(self) -> RegistryCredentials | None:
        return self._credentials

    def list_tags(self, ref: ImageReference) -> TagList:
        """List all tags of the repository.

        Raises:
            UnmarshalError: If the response cannot be decoded.
            RegistryError: If the request fails.
        """
        log = logger.bind(host=ref.host, repository=ref.repository_path)
        log.debug("listing_tags")

        with get_tracer().start_as_current_span("newest_image_tag.list_tags") as span:
            span.set_attribute("newest_image_tag.registry", ref.host)
            span.set_attribute("newest_image_tag.repository", ref.repository_path)

            body = self._fetcher.get(ref.tags_list_url, self._credentials)
            tag_list = decode_tag_list(body)

            span.set_attribute("newest_image_tag.tag_count", len(tag_list.tags))

        log.debug("tags_listed", tag_count=len(tag_list.tags))
        return tag_list

    def fetch_manifest(
        self,
        ref: ImageReference,
        tag: str,
        *,
        cancel_event: threading.Event | None = None,
    ) -> TagManifest:
        """Fetch and decode the manifest of *tag*.

        Raises:
            UnmarshalError: If the response cannot be decoded.
            RegistryError: If the request fails.
        """
        logger.debug("fetching_manifest", host=ref.host, repository=ref.repository_path, tag=tag)
        body = self._fetcher.get(
            ref.manifest_url(tag),
            self._credentials,
            headers={"Accept": MANIFEST_V1_ACCEPT},
            cancel_event=cancel_event,
        )
        return decode_manifest(body)

    def get_tag_date(
        self,
        ref: ImageReference,
        tag: str,
        *,
        cancel_event: threading.Event | None = None,
    ) -> datetime:
        """Return the creation time of *tag* from its manifest history.

        Raises:
            UnsupportedManifestVersionError: If the manifest is not schema 1.
            UnmarshalError: If the manifest or its history cannot be decoded.
            RegistryError: If the request fails.
        """
        with get_tracer().start_as_current_span("newest_image_tag.get_tag_date") as span:
            span.set_attribute("newest_image_tag.tag", tag)

            manifest = self.fetch_manifest(ref, tag, cancel_event=cancel_event)
            if manifest.schema_version != SUPPORTED_SCHEMA_VERSION:
                raise UnsupportedManifestVersionError(tag, manifest.schema_version)

            return newest_timestamp(manifest)


__all__ = [
    "MANIFEST_V1_ACCEPT",
    "RegistryClient",
    "decode_history_entry",
    "decode_manifest",
    "decode_tag_list",
    "newest_timestamp",
]
