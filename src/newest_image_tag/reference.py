"""Image reference parsing.

Splits an image string such as ``quay.io/org/app`` into the registry host
and the repository path used in Registry API v2 URLs, applying the Docker Hub
conventions for images without an explicit registry domain.

Rules (first match wins):
    ``nginx``              -> registry.hub.docker.com, library/nginx
    ``quay.io/org/app``    -> quay.io, org/app
    ``bitnami/redis``      -> registry.hub.docker.com, bitnami/redis

Example:
    >>> ref = parse_image_reference("quay.io/prometheus/node-exporter")
    >>> ref.host, ref.repository_path
    ('quay.io', 'prometheus/node-exporter')
    >>> ref.manifest_url("v1.7.0")
    'https://quay.io/v2/prometheus/node-exporter/manifests/v1.7.0'
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from newest_image_tag.errors import ReferenceParseError

DOCKER_HUB_HOST = "registry.hub.docker.com"
"""Registry API host serving images that carry no registry domain."""

DOCKER_HUB_OFFICIAL_NAMESPACE = "library"
"""Namespace of official Docker Hub images (``nginx`` -> ``library/nginx``)."""


class ImageReference(BaseModel):
    """Registry host and repository path of an image.

    Examples:
        >>> ImageReference(host="ghcr.io", repository_path="org/app").tags_list_url
        'https://ghcr.io/v2/org/app/tags/list'
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    host: str = Field(..., min_length=1, description="Registry host, e.g. quay.io")
    repository_path: str = Field(..., min_length=1, description="Repository path, e.g. org/app")

    @property
    def base_url(self) -> str:
        """Registry API v2 URL of the repository."""
        return f"https://{self.host}/v2/{self.repository_path}"

    @property
    def tags_list_url(self) -> str:
        """URL of the repository's tag list."""
        return f"{self.base_url}/tags/list"

    def manifest_url(self, tag: str) -> str:
        """URL of the manifest for *tag*."""
        return f"{self.base_url}/manifests/{tag}"


def parse_image_reference(raw: str) -> ImageReference:
    """Parse an image string into an ImageReference.

    Args:
        raw: Image name without tag (``nginx``, ``bitnami/redis``,
            ``registry.example.com/team/app``).

    Returns:
        The parsed ImageReference.

    Raises:
        ReferenceParseError: If raw is empty or whitespace only.
    """
    if not raw or not raw.strip():
        raise ReferenceParseError(raw, "image name is empty")

    parts = raw.split("/")

    if len(parts) == 1:
        return ImageReference(
            host=DOCKER_HUB_HOST,
            repository_path=f"{DOCKER_HUB_OFFICIAL_NAMESPACE}/{raw}",
        )

    if "." in parts[0]:
        path = "/".join(parts[1:])
        if not path:
            raise ReferenceParseError(raw, "repository path is empty")
        return ImageReference(host=parts[0], repository_path=path)

    return ImageReference(host=DOCKER_HUB_HOST, repository_path="/".join(parts))


__all__ = [
    "DOCKER_HUB_HOST",
    "DOCKER_HUB_OFFICIAL_NAMESPACE",
    "ImageReference",
    "parse_image_reference",
]
