from __future__ import annotations

import pytest
from pydantic import ValidationError

from dynamodb_change_sink.settings import Settings


@pytest.fixture()
def _base_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SCHEMA_PATH", "/etc/sink/users.yml")
    monkeypatch.setenv("DYNAMODB_TABLE", "users")


def test_input_format_defaults_to_changelog_json(_base_env: None) -> None:
    settings = Settings()

    assert settings.input_format == "changelog_json"
    assert settings.wal2json_tables is None


def test_wal2json_add_tables_is_split_into_names(
    _base_env: None,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("INPUT_FORMAT", "wal2json")
    monkeypatch.setenv("WAL2JSON_ADD_TABLES", "public.users, public.orders")

    settings = Settings()

    assert settings.wal2json_tables == {"public.users", "public.orders"}


def test_wal2json_add_tables_requires_schema_qualified_names(
    _base_env: None,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("WAL2JSON_ADD_TABLES", "users")

    with pytest.raises(ValidationError):
        Settings()


@pytest.mark.parametrize("table_name", ["ab", "users table", "x" * 256])
def test_dynamodb_table_name_is_validated(
    _base_env: None,
    monkeypatch: pytest.MonkeyPatch,
    table_name: str,
) -> None:
    monkeypatch.setenv("DYNAMODB_TABLE", table_name)

    with pytest.raises(ValidationError):
        Settings()


def test_unknown_input_format_is_rejected(
    _base_env: None,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("INPUT_FORMAT", "debezium")

    with pytest.raises(ValidationError):
        Settings()
