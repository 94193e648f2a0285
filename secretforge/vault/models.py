"""Data models for stored secrets.

A Secret holds only metadata and the encrypted envelope. The plaintext
value is never part of the model; it is recovered explicitly through
SecretStore.decrypt_secret().
"""

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional

from .exceptions import CorruptRecordError

ID_PREFIX = "sec_"


def generate_secret_id() -> str:
    """Generate a new opaque secret ID (e.g., "sec_9f1c...")."""
    return f"{ID_PREFIX}{uuid.uuid4().hex}"


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def normalize_tags(tags: Optional[Iterable[str]]) -> list[str]:
    """Drop duplicate tags, keeping first-seen order."""
    if not tags:
        return []
    if isinstance(tags, str):
        raise TypeError("tags must be a list of strings, not a single string")

    seen: list[str] = []
    for tag in tags:
        if not isinstance(tag, str):
            raise TypeError(f"tag must be str, not {type(tag).__name__}")
        if tag not in seen:
            seen.append(tag)
    return seen


def parse_timestamp(value: str) -> datetime:
    """
    Parse a stored ISO-8601 timestamp into an aware UTC datetime.

    Accepts the "Z" suffix written by JavaScript's toISOString()
    (e.g., "2024-01-01T00:00:00.000Z"). Naive values are taken as UTC.

    Raises:
        ValueError: If the value is not ISO-8601
    """
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_timestamp(value: Any, column: str) -> datetime:
    if not isinstance(value, str):
        raise CorruptRecordError(f"Column {column} is not an ISO-8601 string")
    try:
        return parse_timestamp(value)
    except ValueError:
        raise CorruptRecordError(f"Column {column} has invalid timestamp: {value!r}")


def _parse_tags(value: Any) -> list[str]:
    if not isinstance(value, str):
        raise CorruptRecordError("Column tags is not a JSON string")
    try:
        tags = json.loads(value)
    except ValueError:
        raise CorruptRecordError(f"Column tags is not valid JSON: {value!r}")
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        raise CorruptRecordError(f"Column tags is not a list of strings: {value!r}")
    return tags


@dataclass
class Secret:
    """A stored secret record.

    Attributes:
        id: Opaque unique identifier (e.g., "sec_9f1c...")
        name: Variable name, unique per project/environment
        project: Grouping namespace
        environment: Deployment stage (dev, staging, prod, ...)
        tags: Free-text labels used for filtering
        value_encrypted: Serialized encryption envelope
        created_at: When the secret was created (immutable)
        updated_at: When the value last changed
    """

    id: str
    name: str
    project: str
    environment: str
    value_encrypted: str
    tags: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def identity(self) -> tuple[str, str, str]:
        """The (name, project, environment) natural key."""
        return (self.name, self.project, self.environment)

    def tags_json(self) -> str:
        """Tags serialized for the tags column."""
        return json.dumps(self.tags)

    def to_dict(self, include_encrypted: bool = False) -> dict[str, Any]:
        """Convert to a dictionary of metadata (never the plaintext value)."""
        result = {
            "id": self.id,
            "name": self.name,
            "project": self.project,
            "environment": self.environment,
            "tags": list(self.tags),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
        if include_encrypted:
            result["value_encrypted"] = self.value_encrypted
        return result

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Secret":
        """
        Create a Secret from a database row.

        Args:
            row: sqlite3.Row (or mapping) from the secrets table

        Raises:
            CorruptRecordError: If a column is missing or malformed
        """
        try:
            values = {
                key: row[key]
                for key in (
                    "id",
                    "name",
                    "project",
                    "environment",
                    "tags",
                    "value_encrypted",
                    "created_at",
                    "updated_at",
                )
            }
        except (KeyError, IndexError) as e:
            raise CorruptRecordError(f"Secret row is missing a column: {e}")

        for key in ("id", "name", "project", "environment", "value_encrypted"):
            if not isinstance(values[key], str):
                raise CorruptRecordError(f"Column {key} is not a string")

        return cls(
            id=values["id"],
            name=values["name"],
            project=values["project"],
            environment=values["environment"],
            tags=_parse_tags(values["tags"]),
            value_encrypted=values["value_encrypted"],
            created_at=_parse_timestamp(values["created_at"], "created_at"),
            updated_at=_parse_timestamp(values["updated_at"], "updated_at"),
        )


@dataclass
class SecretFilter:
    """Filter for listing secrets.

    All supplied dimensions must match. Omitted (None) dimensions match
    everything. A tag filter matches when the secret carries at least one
    of the requested tags.
    """

    project: Optional[str] = None
    environment: Optional[str] = None
    tags: Optional[list[str]] = None

    @property
    def shape(self) -> str:
        """Stable key for the SQL shape this filter compiles to."""
        parts = [
            name
            for name, value in (("project", self.project), ("environment", self.environment))
            if value is not None
        ]
        return "list:" + ("+".join(parts) if parts else "all")

    def matches_tags(self, tags: Iterable[str]) -> bool:
        """Whether a tag list intersects the requested tags."""
        if not self.tags:
            return True
        return not set(self.tags).isdisjoint(tags)

    def matches(self, secret: Secret) -> bool:
        """Whether a secret satisfies every supplied dimension."""
        if self.project is not None and secret.project != self.project:
            return False
        if self.environment is not None and secret.environment != self.environment:
            return False
        return self.matches_tags(secret.tags)
