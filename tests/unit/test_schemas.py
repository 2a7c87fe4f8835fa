"""Unit tests for registry payload and result schemas."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from newest_image_tag.schemas import NewestTagOutput, ResolvedTag, TagList, TagManifest


class TestTagList:
    """Tests for TagList decoding."""

    def test_decodes_tags(self) -> None:
        """Test a regular tag list response decodes."""
        tag_list = TagList.model_validate_json('{"name": "org/app", "tags": ["1.0", "1.1"]}')

        assert tag_list.name == "org/app"
        assert tag_list.tags == ["1.0", "1.1"]

    def test_null_tags_decode_to_empty(self) -> None:
        """Test "tags": null decodes to an empty list."""
        assert TagList.model_validate_json('{"name": "org/app", "tags": null}').tags == []

    def test_missing_tags_decode_to_empty(self) -> None:
        """Test a response without a tags field decodes to an empty list."""
        assert TagList.model_validate_json('{"name": "org/app"}').tags == []

    def test_unknown_fields_are_ignored(self) -> None:
        """Test extra response fields do not break decoding."""
        tag_list = TagList.model_validate({"name": "x", "tags": ["a"], "next": "/v2/x?n=1"})

        assert tag_list.tags == ["a"]

    def test_wrong_tags_type_fails(self) -> None:
        """Test a non-list tags value is rejected."""
        with pytest.raises(ValidationError):
            TagList.model_validate({"name": "x", "tags": "latest"})


class TestTagManifest:
    """Tests for TagManifest decoding."""

    def test_decodes_camel_case_fields(self) -> None:
        """Test schemaVersion and v1Compatibility aliases are honoured."""
        body = json.dumps(
            {
                "name": "org/app",
                "schemaVersion": 1,
                "history": [{"v1Compatibility": '{"created": "2021-01-01T00:00:00Z"}'}],
            }
        )

        manifest = TagManifest.model_validate_json(body)

        assert manifest.schema_version == 1
        assert manifest.history[0].v1_compatibility == '{"created": "2021-01-01T00:00:00Z"}'

    def test_null_history_decodes_to_empty(self) -> None:
        """Test "history": null decodes to an empty list."""
        manifest = TagManifest.model_validate({"schemaVersion": 1, "history": None})

        assert manifest.history == []

    def test_schema_version_is_required(self) -> None:
        """Test a manifest without schemaVersion is rejected."""
        with pytest.raises(ValidationError):
            TagManifest.model_validate({"name": "org/app", "history": []})

    def test_schema_2_manifest_still_decodes(self) -> None:
        """Test other schema versions decode so the caller can reject them by version."""
        manifest = TagManifest.model_validate({"schemaVersion": 2, "config": {}, "layers": []})

        assert manifest.schema_version == 2
        assert manifest.history == []


class TestResolvedTag:
    """Tests for ResolvedTag."""

    def test_ok_when_created_at_set(self) -> None:
        """Test a result with a creation time and no error is ok."""
        assert ResolvedTag("1.0", datetime(2021, 1, 1, tzinfo=timezone.utc)).ok

    def test_not_ok_with_error(self) -> None:
        """Test a result carrying an error is not ok."""
        assert not ResolvedTag("1.0", error=RuntimeError("boom")).ok


class TestNewestTagOutput:
    """Tests for NewestTagOutput."""

    def test_image_with_tag(self) -> None:
        """Test imageWithTag is image:tag."""
        output = NewestTagOutput.for_tag("quay.io/org/app", "1.1")

        assert output.image_with_tag == "quay.io/org/app:1.1"

    def test_json_uses_camel_case_keys(self) -> None:
        """Test JSON serialisation uses the imageWithTag key."""
        output = NewestTagOutput.for_tag("nginx", "1.25")

        assert json.loads(output.model_dump_json(by_alias=True)) == {
            "tag": "1.25",
            "image": "nginx",
            "imageWithTag": "nginx:1.25",
        }
