from __future__ import annotations

import logging
import threading
from typing import Any

from dynamodb_change_sink.attributes import RowToAttributeValueMapper
from dynamodb_change_sink.models import (
    ChangeKind,
    ChangeRecord,
    DynamoDbWriteRequest,
    SinkContext,
    WriteRequestType,
)
from dynamodb_change_sink.schema import PhysicalSchema

LOGGER = logging.getLogger(__name__)

UPSERT_KINDS = frozenset({ChangeKind.INSERT, ChangeKind.UPDATE_AFTER})
DELETE_KINDS = frozenset({ChangeKind.DELETE})
# A single put or delete cannot retract a prior value.
UNSUPPORTED_KINDS = frozenset({ChangeKind.UPDATE_BEFORE})

_unclassified_kinds = set(ChangeKind) - UPSERT_KINDS - DELETE_KINDS - UNSUPPORTED_KINDS
if _unclassified_kinds:
    raise RuntimeError(
        "Change kinds without a write mapping: "
        f"{sorted(kind.name for kind in _unclassified_kinds)}"
    )


class UnsupportedChangeKindError(ValueError):
    """Raised when a change kind cannot be expressed as a single DynamoDB write."""


class RowElementConverter:
    """Converts changelog records into DynamoDB put or delete-by-key requests.

    The attribute mapper is built lazily on first use and is never pickled, so a
    converter shipped to another process rebuilds it on its first ``apply``.
    """

    accepted_change_kinds = UPSERT_KINDS | DELETE_KINDS

    def __init__(self, schema: PhysicalSchema) -> None:
        self._schema = schema
        self._key_fields = schema.primary_key
        self._mapper: RowToAttributeValueMapper | None = None
        self._mapper_lock = threading.Lock()

    @property
    def schema(self) -> PhysicalSchema:
        return self._schema

    @property
    def key_fields(self) -> tuple[str, ...]:
        return self._key_fields

    def apply(
        self,
        record: ChangeRecord,
        context: SinkContext | None = None,
    ) -> DynamoDbWriteRequest:
        item = self._ensure_mapper().convert(record)
        kind = record.kind

        if kind in UPSERT_KINDS:
            return DynamoDbWriteRequest(type=WriteRequestType.PUT, item=item)

        if kind in DELETE_KINDS:
            # DeleteItem identifies the row by its key attributes only.
            key_only = {name: item[name] for name in self._key_fields}
            return DynamoDbWriteRequest(type=WriteRequestType.DELETE, item=key_only)

        kind_name = kind.name if isinstance(kind, ChangeKind) else repr(kind)
        LOGGER.error("unsupported_change_kind", extra={"change_kind": kind_name})
        raise UnsupportedChangeKindError(f"Unsupported change kind: {kind_name}")

    def _ensure_mapper(self) -> RowToAttributeValueMapper:
        mapper = self._mapper
        if mapper is None:
            with self._mapper_lock:
                if self._mapper is None:
                    self._mapper = RowToAttributeValueMapper(self._schema)
                    LOGGER.debug(
                        "attribute_mapper_initialized",
                        extra={"column_count": len(self._schema.columns)},
                    )
                mapper = self._mapper
        return mapper

    def __getstate__(self) -> dict[str, Any]:
        state = self.__dict__.copy()
        state["_mapper"] = None
        del state["_mapper_lock"]
        return state

    def __setstate__(self, state: dict[str, Any]) -> None:
        self.__dict__.update(state)
        self._mapper_lock = threading.Lock()
