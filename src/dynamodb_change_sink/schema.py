from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

TypeName = Literal[
    "STRING",
    "BOOLEAN",
    "BYTES",
    "TINYINT",
    "SMALLINT",
    "INTEGER",
    "BIGINT",
    "FLOAT",
    "DOUBLE",
    "DECIMAL",
    "DATE",
    "TIME",
    "TIMESTAMP",
    "ARRAY",
    "MULTISET",
    "MAP",
    "ROW",
]

INTEGER_TYPES = frozenset({"TINYINT", "SMALLINT", "INTEGER", "BIGINT"})
NUMERIC_TYPES = INTEGER_TYPES | {"FLOAT", "DOUBLE", "DECIMAL"}
# DynamoDB only has string, number and binary sets, and keys share the same restriction.
SCALAR_KEY_TYPES = NUMERIC_TYPES | {"STRING", "BYTES"}
SET_ELEMENT_TYPES = SCALAR_KEY_TYPES
_CONTAINER_TYPES = frozenset({"ARRAY", "MULTISET", "MAP"})

MAX_KEY_FIELDS = 2


class SchemaModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class DataType(SchemaModel):
    """Logical type of a column or nested element.

    ``element`` describes ARRAY/MULTISET elements and MAP values (MAP keys are
    always strings). ``fields`` describes the nested columns of a ROW.
    """

    type: TypeName
    nullable: bool = True
    element: DataType | None = None
    fields: tuple[Column, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def _expand_shorthand(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"type": value}
        return value

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type_name(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @model_validator(mode="after")
    def _validate_shape(self) -> DataType:
        if self.type in _CONTAINER_TYPES:
            if self.element is None:
                raise ValueError(f"{self.type} requires an element type")
        elif self.element is not None:
            raise ValueError(f"{self.type} does not take an element type")

        if self.type == "MULTISET" and self.element.type not in SET_ELEMENT_TYPES:
            raise ValueError(
                "MULTISET elements must be STRING, BYTES or numeric, "
                f"got {self.element.type}"
            )

        if self.type == "ROW":
            if not self.fields:
                raise ValueError("ROW requires at least one field")
            _ensure_unique_names(self.fields, what="ROW field")
        elif self.fields:
            raise ValueError(f"{self.type} does not take nested fields")
        return self


class Column(DataType):
    name: str = Field(min_length=1)


DataType.model_rebuild()
Column.model_rebuild()


class PhysicalSchema(SchemaModel):
    """Columns of the sink table plus the fields that form its primary key."""

    columns: tuple[Column, ...] = Field(min_length=1)
    primary_key: tuple[str, ...] = Field(min_length=1, max_length=MAX_KEY_FIELDS)

    @model_validator(mode="after")
    def _validate_primary_key(self) -> PhysicalSchema:
        _ensure_unique_names(self.columns, what="column")
        if len(set(self.primary_key)) != len(self.primary_key):
            raise ValueError("primary_key must not repeat a column")

        by_name = {column.name: column for column in self.columns}
        for key_name in self.primary_key:
            column = by_name.get(key_name)
            if column is None:
                raise ValueError(f"primary_key column {key_name!r} is not a declared column")
            if column.type not in SCALAR_KEY_TYPES:
                raise ValueError(
                    f"primary_key column {key_name!r} must be STRING, BYTES or numeric, "
                    f"got {column.type}"
                )
        return self

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(column.name for column in self.columns)

    def column(self, name: str) -> Column:
        for column in self.columns:
            if column.name == name:
                return column
        raise KeyError(f"Unknown column: {name}")


def _ensure_unique_names(columns: tuple[Column, ...], *, what: str) -> None:
    seen: set[str] = set()
    for column in columns:
        if column.name in seen:
            raise ValueError(f"duplicate {what} name: {column.name!r}")
        seen.add(column.name)


def load_schema(schema_path: Path) -> PhysicalSchema:
    if not schema_path.exists():
        raise FileNotFoundError(f"Schema file does not exist: {schema_path}")

    try:
        raw = yaml.safe_load(schema_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValueError(f"Schema file is not valid YAML: {exc}") from exc
    if not isinstance(raw, dict):
        raise ValueError("Schema file must contain a top-level mapping.")
    return PhysicalSchema.model_validate(raw)
