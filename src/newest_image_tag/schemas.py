"""Registry payload and result schemas.

Pydantic v2 models for the two Registry API v2 responses the tool reads
(tag list and schema 1 manifest) and for the final result record, plus the
ResolvedTag value produced by the worker pool.

Wire formats:
    GET /v2/{path}/tags/list
        {"name": "org/app", "tags": ["1.0", "1.1"]}

    GET /v2/{path}/manifests/{tag}
        {"name": "org/app", "schemaVersion": 1,
         "history": [{"v1Compatibility": "{\\"created\\": \\"...\\"}"}]}
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

SUPPORTED_SCHEMA_VERSION = 1
"""Only Image Manifest Version 2, Schema 1 carries creation times in history."""


class TagList(BaseModel):
    """Tag list of a repository.

    Registries return ``"tags": null`` for repositories without tags; that
    decodes to an empty list.

    Examples:
        >>> TagList.model_validate({"name": "org/app", "tags": None}).tags
        []
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(default="", description="Repository name")
    tags: list[str] = Field(default_factory=list, description="Tag names")

    @field_validator("tags", mode="before")
    @classmethod
    def _null_tags(cls, v: object) -> object:
        return [] if v is None else v


class ManifestHistoryItem(BaseModel):
    """One history item of a schema 1 manifest."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    v1_compatibility: str = Field(
        ...,
        alias="v1Compatibility",
        description="JSON-encoded v1 image config of the layer",
    )


@dataclass(frozen=True)
class ManifestHistoryEntry:
    """Decoded ``v1Compatibility`` blob; only the creation time is kept.

    Holds the parsed Timestamp unchanged, nanoseconds included.
    """

    created_at: datetime


class TagManifest(BaseModel):
    """Image manifest as returned for a tag.

    Only ``schemaVersion == 1`` is usable; other versions decode fine here
    and are rejected by the registry client.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    name: str = Field(default="", description="Repository name")
    schema_version: int = Field(..., alias="schemaVersion", description="Manifest schema version")
    history: list[ManifestHistoryItem] = Field(
        default_factory=list,
        description="Per-layer history, newest layer first",
    )

    @field_validator("history", mode="before")
    @classmethod
    def _null_history(cls, v: object) -> object:
        return [] if v is None else v


@dataclass(frozen=True)
class ResolvedTag:
    """Outcome of resolving one tag: a creation time or the error that stopped it."""

    tag: str
    created_at: datetime | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.created_at is not None


class NewestTagOutput(BaseModel):
    """Result record handed to the presentation layer.

    Serialises with the camelCase keys the tool has always printed:

    Examples:
        >>> out = NewestTagOutput.for_tag("quay.io/org/app", "1.1")
        >>> out.model_dump(by_alias=True)
        {'tag': '1.1', 'image': 'quay.io/org/app', 'imageWithTag': 'quay.io/org/app:1.1'}
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    tag: str = Field(..., description="Newest tag")
    image: str = Field(..., description="Image as given by the caller")
    image_with_tag: str = Field(..., alias="imageWithTag", description="image:tag")

    @classmethod
    def for_tag(cls, image: str, tag: str) -> NewestTagOutput:
        """Build the output record for *tag* of *image*."""
        return cls(tag=tag, image=image, image_with_tag=f"{image}:{tag}")


__all__ = [
    "ManifestHistoryEntry",
    "ManifestHistoryItem",
    "NewestTagOutput",
    "ResolvedTag",
    "SUPPORTED_SCHEMA_VERSION",
    "TagList",
    "TagManifest",
]
