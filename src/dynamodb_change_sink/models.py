from __future__ import annotations

import enum
from collections.abc import Mapping
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, field_validator

AttributeValue = dict[str, Any]
AttributeMapping = dict[str, AttributeValue]


class ChangeKind(enum.Enum):
    """Role of a record in a changelog stream."""

    INSERT = "+I"
    UPDATE_BEFORE = "-U"
    UPDATE_AFTER = "+U"
    DELETE = "-D"

    @property
    def short_string(self) -> str:
        return self.value

    @property
    def byte_value(self) -> int:
        return _BYTE_VALUES[self]

    @classmethod
    def parse(cls, raw: str | int | ChangeKind) -> ChangeKind:
        """Accept the short string (``+I``), the member name or the byte value."""
        if isinstance(raw, ChangeKind):
            return raw
        if isinstance(raw, int) and not isinstance(raw, bool):
            for kind, byte_value in _BYTE_VALUES.items():
                if byte_value == raw:
                    return kind
            raise ValueError(f"Unknown change kind byte value: {raw}")
        if isinstance(raw, str):
            candidate = raw.strip()
            try:
                return cls(candidate)
            except ValueError:
                pass
            member = cls.__members__.get(candidate.upper())
            if member is not None:
                return member
        raise ValueError(f"Unknown change kind: {raw!r}")


_BYTE_VALUES = {
    ChangeKind.INSERT: 0,
    ChangeKind.UPDATE_BEFORE: 1,
    ChangeKind.UPDATE_AFTER: 2,
    ChangeKind.DELETE: 3,
}


class WriteRequestType(enum.Enum):
    PUT = "PUT"
    DELETE = "DELETE"


class ChangeRecord(BaseModel):
    """Single structured record tagged with its change kind."""

    model_config = ConfigDict(frozen=True)

    kind: ChangeKind
    values: Mapping[str, Any]

    @field_validator("kind", mode="before")
    @classmethod
    def _parse_kind(cls, value: Any) -> ChangeKind:
        return ChangeKind.parse(value)


class DynamoDbWriteRequest(BaseModel):
    """Put-full-item or delete-by-key request handed to the sink layer."""

    model_config = ConfigDict(frozen=True)

    type: WriteRequestType
    item: AttributeMapping

    @field_validator("item")
    @classmethod
    def _validate_item(cls, value: AttributeMapping) -> AttributeMapping:
        if not value:
            raise ValueError("write request item must contain at least one attribute")
        return value

    def to_batch_write_entry(self) -> dict[str, Any]:
        # BatchWriteItem names the delete payload "Key" rather than "Item".
        if self.type is WriteRequestType.PUT:
            return {"PutRequest": {"Item": self.item}}
        return {"DeleteRequest": {"Key": self.item}}


class SinkContext(Protocol):
    """Per-call context supplied by the hosting sink writer."""

    def current_watermark(self) -> int:
        ...

    def timestamp(self) -> int | None:
        ...
