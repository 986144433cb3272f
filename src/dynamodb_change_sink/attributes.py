from __future__ import annotations

import datetime
from decimal import Decimal
from typing import Annotated, Any

from boto3.dynamodb.types import TypeSerializer
from pydantic import Field, TypeAdapter, ValidationError

from dynamodb_change_sink.models import AttributeMapping, ChangeRecord
from dynamodb_change_sink.schema import DataType, PhysicalSchema

_INPUT_TYPES: dict[str, Any] = {
    "STRING": str,
    "BOOLEAN": bool,
    "BYTES": bytes,
    "TINYINT": Annotated[int, Field(ge=-(2**7), le=2**7 - 1)],
    "SMALLINT": Annotated[int, Field(ge=-(2**15), le=2**15 - 1)],
    "INTEGER": Annotated[int, Field(ge=-(2**31), le=2**31 - 1)],
    "BIGINT": Annotated[int, Field(ge=-(2**63), le=2**63 - 1)],
    "FLOAT": Annotated[float, Field(allow_inf_nan=False)],
    "DOUBLE": Annotated[float, Field(allow_inf_nan=False)],
    "DECIMAL": Annotated[Decimal, Field(allow_inf_nan=False)],
    "DATE": datetime.date,
    "TIME": datetime.time,
    "TIMESTAMP": datetime.datetime,
    "ARRAY": list[Any],
    "MULTISET": list[Any],
    "MAP": dict[str, Any],
    "ROW": dict[str, Any],
}


class SchemaMismatchError(ValueError):
    """Raised when a record value does not fit its declared column type."""


class _ValueNormalizer:
    """Validates one value against a data type and reduces it to TypeSerializer input."""

    def __init__(self, data_type: DataType, *, path: str, nullable: bool | None = None) -> None:
        self._path = path
        self._type_name = data_type.type
        self._nullable = data_type.nullable if nullable is None else nullable
        self._adapter: TypeAdapter[Any] = TypeAdapter(_INPUT_TYPES[data_type.type])
        self._element = (
            _ValueNormalizer(data_type.element, path=f"{path}[]")
            if data_type.element is not None
            else None
        )
        self._fields = tuple(
            (field.name, _ValueNormalizer(field, path=f"{path}.{field.name}"))
            for field in data_type.fields
        )

    def normalize(self, value: Any) -> Any:
        if value is None:
            if self._nullable:
                return None
            raise SchemaMismatchError(f"{self._path} is not nullable but received null")

        try:
            validated = self._adapter.validate_python(value)
        except ValidationError as exc:
            reason = exc.errors()[0]["msg"]
            raise SchemaMismatchError(
                f"{self._path} does not match {self._type_name}: {reason}"
            ) from exc

        return self._normalize_validated(validated)

    def _normalize_validated(self, value: Any) -> Any:
        type_name = self._type_name
        if type_name in ("FLOAT", "DOUBLE"):
            # TypeSerializer rejects floats; the string form keeps the shortest round-trip digits.
            return Decimal(str(value))
        if type_name in ("DATE", "TIME", "TIMESTAMP"):
            return value.isoformat()
        if type_name == "ARRAY":
            return [self._element.normalize(item) for item in value]
        if type_name == "MULTISET":
            members = set()
            for item in value:
                normalized = self._element.normalize(item)
                if normalized is None:
                    raise SchemaMismatchError(f"{self._path} cannot hold null set members")
                members.add(normalized)
            # DynamoDB sets cannot be empty.
            return members or None
        if type_name == "MAP":
            return {key: self._element.normalize(item) for key, item in value.items()}
        if type_name == "ROW":
            return {name: normalizer.normalize(value.get(name)) for name, normalizer in self._fields}
        return value


class RowToAttributeValueMapper:
    """Maps every declared column of a record onto a DynamoDB attribute value.

    Change kinds are ignored here; the caller decides what to do with the item.
    Key columns are treated as non-nullable whatever the schema declares.
    """

    def __init__(self, schema: PhysicalSchema) -> None:
        key_names = set(schema.primary_key)
        self._serializer = TypeSerializer()
        self._columns = tuple(
            (
                column.name,
                _ValueNormalizer(
                    column,
                    path=column.name,
                    nullable=column.nullable and column.name not in key_names,
                ),
            )
            for column in schema.columns
        )

    def convert(self, record: ChangeRecord) -> AttributeMapping:
        values = record.values
        item: AttributeMapping = {}
        for name, normalizer in self._columns:
            normalized = normalizer.normalize(values.get(name))
            try:
                item[name] = self._serializer.serialize(normalized)
            except (TypeError, ArithmeticError) as exc:
                raise SchemaMismatchError(
                    f"{name} cannot be stored as a DynamoDB attribute: {exc}"
                ) from exc
        return item
