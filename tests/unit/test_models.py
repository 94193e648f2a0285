"""Unit tests for secret data models."""

import json
from datetime import datetime, timezone

import pytest

from secretforge.vault.exceptions import CorruptRecordError
from secretforge.vault.models import (
    ID_PREFIX,
    Secret,
    SecretFilter,
    generate_secret_id,
    normalize_tags,
    utc_now,
)


def _row(**overrides):
    row = {
        "id": "sec_abc",
        "name": "DB_PASS",
        "project": "billing",
        "environment": "prod",
        "tags": '["db", "critical"]',
        "value_encrypted": "ZW52ZWxvcGU=",
        "created_at": "2024-01-15T10:30:00+00:00",
        "updated_at": "2024-01-16T08:00:00+00:00",
    }
    row.update(overrides)
    return row


class TestHelpers:
    """Tests for ID, timestamp and tag helpers."""

    def test_secret_id_format(self):
        """IDs carry the sec_ prefix and a hex UUID."""
        secret_id = generate_secret_id()

        assert secret_id.startswith(ID_PREFIX)
        assert len(secret_id) == len(ID_PREFIX) + 32

    def test_secret_ids_unique(self):
        """Generated IDs do not repeat."""
        ids = {generate_secret_id() for _ in range(100)}

        assert len(ids) == 100

    def test_utc_now_is_aware(self):
        """Timestamps are timezone-aware UTC."""
        assert utc_now().tzinfo == timezone.utc

    def test_normalize_tags_dedups_in_order(self):
        """Duplicate tags are dropped, first occurrence kept."""
        assert normalize_tags(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]

    @pytest.mark.parametrize("tags", [None, []])
    def test_normalize_tags_empty(self, tags):
        """Missing tags become an empty list."""
        assert normalize_tags(tags) == []

    def test_normalize_tags_rejects_string(self):
        """A bare string is not silently split into characters."""
        with pytest.raises(TypeError):
            normalize_tags("prod")

    def test_normalize_tags_rejects_non_string_items(self):
        """Every tag must be a string."""
        with pytest.raises(TypeError):
            normalize_tags(["ok", 3])


class TestSecret:
    """Tests for the Secret model."""

    def test_from_row(self):
        """Rows deserialize into typed fields."""
        secret = Secret.from_row(_row())

        assert secret.id == "sec_abc"
        assert secret.identity == ("DB_PASS", "billing", "prod")
        assert secret.tags == ["db", "critical"]
        assert secret.created_at == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
        assert secret.updated_at > secret.created_at

    def test_to_dict_excludes_envelope_by_default(self):
        """Metadata dicts omit the envelope unless asked."""
        secret = Secret.from_row(_row())

        data = secret.to_dict()

        assert "value_encrypted" not in data
        assert data["tags"] == ["db", "critical"]
        assert data["created_at"] == "2024-01-15T10:30:00+00:00"

    def test_to_dict_with_envelope(self):
        """The envelope can be included explicitly."""
        data = Secret.from_row(_row()).to_dict(include_encrypted=True)

        assert data["value_encrypted"] == "ZW52ZWxvcGU="

    def test_tags_json(self):
        """Tags serialize as a JSON array."""
        secret = Secret.from_row(_row(tags="[]"))
        secret.tags = ["a", "b"]

        assert json.loads(secret.tags_json()) == ["a", "b"]

    @pytest.mark.parametrize(
        "tags",
        ["not json", '{"a": 1}', "[1, 2]", None],
    )
    def test_from_row_bad_tags(self, tags):
        """Malformed tag columns raise CorruptRecordError."""
        with pytest.raises(CorruptRecordError):
            Secret.from_row(_row(tags=tags))

    def test_from_row_javascript_timestamps(self):
        """Timestamps written by toISOString() with a Z suffix parse as UTC."""
        secret = Secret.from_row(
            _row(created_at="2024-01-01T00:00:00.000Z", updated_at="2024-01-02T12:30:00.250Z")
        )

        assert secret.created_at == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert secret.updated_at == datetime(2024, 1, 2, 12, 30, 0, 250000, tzinfo=timezone.utc)

    def test_from_row_naive_timestamp_is_utc(self):
        """Timestamps without an offset are read as UTC."""
        secret = Secret.from_row(_row(created_at="2024-01-15T10:30:00"))

        assert secret.created_at == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    def test_from_row_bad_timestamp(self):
        """Malformed timestamps raise CorruptRecordError."""
        with pytest.raises(CorruptRecordError, match="created_at"):
            Secret.from_row(_row(created_at="yesterday"))

    def test_from_row_missing_column(self):
        """Missing columns raise CorruptRecordError."""
        row = _row()
        del row["value_encrypted"]

        with pytest.raises(CorruptRecordError):
            Secret.from_row(row)

    def test_from_row_non_string_name(self):
        """Non-text identity columns raise CorruptRecordError."""
        with pytest.raises(CorruptRecordError, match="name"):
            Secret.from_row(_row(name=42))


class TestSecretFilter:
    """Tests for SecretFilter shapes and matching."""

    @pytest.mark.parametrize(
        "kwargs, shape",
        [
            ({}, "list:all"),
            ({"project": "p"}, "list:project"),
            ({"environment": "e"}, "list:environment"),
            ({"project": "p", "environment": "e"}, "list:project+environment"),
            ({"project": "p", "tags": ["t"]}, "list:project"),
        ],
    )
    def test_shape(self, kwargs, shape):
        """Shapes depend only on which SQL-filtered fields are present."""
        assert SecretFilter(**kwargs).shape == shape

    def test_empty_string_is_a_value(self):
        """An empty project string is a filter, not an omission."""
        assert SecretFilter(project="").shape == "list:project"

    def test_tags_match_any(self):
        """A secret matches when it has at least one requested tag."""
        secret_filter = SecretFilter(tags=["x", "q"])

        assert secret_filter.matches_tags(["x", "y"])
        assert not secret_filter.matches_tags(["y", "z"])

    def test_tags_match_exactly(self):
        """Tags are compared whole, never as substrings."""
        secret_filter = SecretFilter(tags=["prod"])

        assert not secret_filter.matches_tags(["production"])
        assert not secret_filter.matches_tags(["pro"])

    def test_empty_tag_filter_matches_everything(self):
        """No tags, or an empty list, does not restrict results."""
        assert SecretFilter().matches_tags([])
        assert SecretFilter(tags=[]).matches_tags(["anything"])

    def test_matches_all_dimensions(self):
        """Every supplied dimension must match."""
        secret = Secret.from_row(_row())

        assert SecretFilter(project="billing", environment="prod", tags=["db"]).matches(secret)
        assert not SecretFilter(project="billing", environment="dev").matches(secret)
        assert not SecretFilter(project="other").matches(secret)
        assert not SecretFilter(tags=["web"]).matches(secret)
