from __future__ import annotations

import re
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_TABLE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]{3,255}$")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=False)

    schema_path: Path = Field(alias="SCHEMA_PATH")
    dynamodb_table: str = Field(alias="DYNAMODB_TABLE")
    input_format: Literal["changelog_json", "wal2json"] = Field(
        default="changelog_json",
        alias="INPUT_FORMAT",
    )
    wal2json_add_tables: str | None = Field(default=None, alias="WAL2JSON_ADD_TABLES")

    @field_validator("dynamodb_table")
    @classmethod
    def _validate_table_name(cls, value: str) -> str:
        if not _TABLE_NAME_PATTERN.fullmatch(value):
            raise ValueError(
                "DYNAMODB_TABLE must be 3-255 characters of letters, numbers, "
                "underscore, dash or dot"
            )
        return value

    @field_validator("wal2json_add_tables")
    @classmethod
    def _validate_add_tables(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        for name in value.split(","):
            if name.strip().count(".") != 1:
                raise ValueError("WAL2JSON_ADD_TABLES entries must look like schema.table")
        return value

    @property
    def wal2json_tables(self) -> frozenset[str] | None:
        if not self.wal2json_add_tables:
            return None
        return frozenset(name.strip() for name in self.wal2json_add_tables.split(","))
