"""Exception hierarchy for newest-image-tag.

All exceptions inherit from NewestTagError, so callers can catch every
failure of the pipeline with a single except clause.

Exception Hierarchy:
    NewestTagError (base)
    ├── ReferenceParseError             # Image reference is empty
    ├── RegistryError                   # Registry request failed
    │   ├── NetworkError                # Transport/connection failure
    │   │   └── RegistryTimeoutError    # Attempt exceeded its timeout
    │   └── HTTPStatusError             # Non-200 response
    ├── UnmarshalError                  # Response body could not be decoded
    │   └── TimestampParseError         # "created" value is not RFC 3339
    ├── UnsupportedManifestVersionError # schemaVersion != 1
    ├── EmptyTagListError               # Repository has no tags
    ├── CacheBackendError               # Cache read/write failed (non-fatal)
    └── ResolutionCancelledError        # Worker stopped after a fail-fast error

Exit Codes:
    1 - General error (NewestTagError, ResolutionCancelledError)
    2 - Image reference could not be parsed
    3 - Registry answered with an error status
    4 - Registry unreachable or timed out
    5 - Registry response could not be decoded or is unsupported
    6 - Repository has no tags
    7 - Cache backend error

Example:
    >>> from newest_image_tag.errors import HTTPStatusError
    >>> raise HTTPStatusError("https://quay.io/v2/org/app/tags/list", 404)
    Traceback (most recent call last):
        ...
    HTTPStatusError: https://quay.io/v2/org/app/tags/list: HTTP response code: 404
"""

from __future__ import annotations


class NewestTagError(Exception):
    """Base exception for all newest-image-tag errors.

    Attributes:
        exit_code: CLI exit code for this error type (default: 1).
    """

    exit_code: int = 1


class ReferenceParseError(NewestTagError):
    """Raised when an image reference cannot be split into host and path.

    Attributes:
        image: The raw image reference.
        reason: Why parsing failed.
    """

    exit_code: int = 2

    def __init__(self, image: str, reason: str) -> None:
        """Initialize ReferenceParseError.

        Args:
            image: The raw image reference.
            reason: Why parsing failed.
        """
        self.image = image
        self.reason = reason
        super().__init__(f"Image name parse error for '{image}': {reason}")


class RegistryError(NewestTagError):
    """Base class for failed registry requests.

    Attributes:
        url: The URL that was requested.
    """

    exit_code: int = 3

    def __init__(self, url: str, message: str) -> None:
        self.url = url
        super().__init__(f"{url}: {message}")


class NetworkError(RegistryError):
    """Raised when the registry cannot be reached.

    Covers DNS failures, refused connections, TLS errors and reset streams.

    Attributes:
        url: The URL that was requested.
        reason: Description of the transport failure.
    """

    exit_code: int = 4

    def __init__(self, url: str, reason: str) -> None:
        """Initialize NetworkError.

        Args:
            url: The URL that was requested.
            reason: Description of the transport failure.
        """
        self.reason = reason
        super().__init__(url, reason)


class RegistryTimeoutError(NetworkError):
    """Raised when every attempt for a request timed out.

    Attributes:
        url: The URL that was requested.
        timeout_seconds: The per-attempt timeout that was exceeded.
    """

    def __init__(self, url: str, timeout_seconds: float) -> None:
        """Initialize RegistryTimeoutError.

        Args:
            url: The URL that was requested.
            timeout_seconds: The per-attempt timeout that was exceeded.
        """
        self.timeout_seconds = timeout_seconds
        super().__init__(url, f"HTTP response timeout after {timeout_seconds}s")


class HTTPStatusError(RegistryError):
    """Raised when the registry answers with a status other than 200.

    Attributes:
        url: The URL that was requested.
        status_code: The HTTP status code received.
    """

    def __init__(self, url: str, status_code: int) -> None:
        """Initialize HTTPStatusError.

        Args:
            url: The URL that was requested.
            status_code: The HTTP status code received.
        """
        self.status_code = status_code
        super().__init__(url, f"HTTP response code: {status_code}")

    @property
    def retryable(self) -> bool:
        """Server-side errors (5xx) are worth another attempt."""
        return self.status_code >= 500


class UnmarshalError(NewestTagError):
    """Raised when a registry payload cannot be decoded.

    Attributes:
        what: Which payload was being decoded (e.g. "tag list").
        reason: Description of the decode failure.
    """

    exit_code: int = 5

    def __init__(self, what: str, reason: str) -> None:
        """Initialize UnmarshalError.

        Args:
            what: Which payload was being decoded.
            reason: Description of the decode failure.
        """
        self.what = what
        self.reason = reason
        super().__init__(f"Unmarshal {what} failed: {reason}")


class TimestampParseError(UnmarshalError):
    """Raised when a timestamp is not a valid RFC 3339 value.

    Attributes:
        value: The offending value.
    """

    def __init__(self, value: object, reason: str = "not an RFC 3339 timestamp") -> None:
        """Initialize TimestampParseError.

        Args:
            value: The offending value.
            reason: Why the value was rejected.
        """
        self.value = value
        super().__init__("timestamp", f"{value!r} is {reason}")


class UnsupportedManifestVersionError(NewestTagError):
    """Raised when a manifest is not Image Manifest Version 2, Schema 1.

    Attributes:
        tag: The tag whose manifest was fetched.
        schema_version: The schemaVersion the registry returned.
    """

    exit_code: int = 5

    def __init__(self, tag: str, schema_version: int) -> None:
        """Initialize UnsupportedManifestVersionError.

        Args:
            tag: The tag whose manifest was fetched.
            schema_version: The schemaVersion the registry returned.
        """
        self.tag = tag
        self.schema_version = schema_version
        super().__init__(
            f"Wrong image manifest version for tag '{tag}': got schemaVersion "
            f"{schema_version}, should be Image Manifest Version 2, Schema 1: "
            "https://docs.docker.com/registry/spec/manifest-v2-1"
        )


class EmptyTagListError(NewestTagError):
    """Raised when a repository has no tags to choose from.

    Attributes:
        image: The image whose tag list was empty.
    """

    exit_code: int = 6

    def __init__(self, image: str) -> None:
        """Initialize EmptyTagListError.

        Args:
            image: The image whose tag list was empty.
        """
        self.image = image
        super().__init__(f"No tags found for image {image}")


class CacheBackendError(NewestTagError):
    """Raised when the cache backend cannot serve a read or write.

    Never aborts a resolution: the cache-aside layer logs it and falls back
    to the registry.

    Attributes:
        operation: The cache operation that failed (get, set).
        key: The cache key involved.
        reason: Description of the failure.
    """

    exit_code: int = 7

    def __init__(self, operation: str, key: str, reason: str) -> None:
        """Initialize CacheBackendError.

        Args:
            operation: The cache operation that failed (get, set).
            key: The cache key involved.
            reason: Description of the failure.
        """
        self.operation = operation
        self.key = key
        self.reason = reason
        super().__init__(f"Cache operation '{operation}' failed for {key}: {reason}")


class ResolutionCancelledError(NewestTagError):
    """Raised inside a worker when the pool was cancelled mid-flight."""

    def __init__(self, tag: str | None = None) -> None:
        self.tag = tag
        msg = "Tag resolution cancelled"
        if tag:
            msg += f" for tag '{tag}'"
        super().__init__(msg)


__all__ = [
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
