from __future__ import annotations

import json
from collections.abc import Collection, Sequence
from decimal import Decimal
from typing import Any

from dynamodb_change_sink.models import ChangeKind, ChangeRecord

_ACTION_KINDS = {
    "I": ChangeKind.INSERT,
    "U": ChangeKind.UPDATE_AFTER,
    "D": ChangeKind.DELETE,
}
# Transaction boundaries, truncates and logical messages carry no row image.
_SKIPPED_ACTIONS = frozenset({"B", "C", "T", "M"})


class Wal2JsonPayloadError(ValueError):
    """Raised when a wal2json payload cannot be turned into a change record."""


def parse_wal2json_changes(
    payload: bytes,
    *,
    tables: Collection[str] | None = None,
    key_fields: Sequence[str] | None = None,
) -> list[ChangeRecord]:
    """Parse one wal2json format-version 2 payload into change records.

    Returns an empty list for actions without a row image and for tables outside
    ``tables`` (``schema.table`` names) when a filter is given. An update that
    moves the row to a new key yields a DELETE for the old key followed by the
    UPDATE_AFTER. Key columns come from ``key_fields``, else the payload's
    ``pk`` entries, else every identity column.
    """

    parsed = _parse_payload(payload)
    action = parsed.get("action")
    if action in _SKIPPED_ACTIONS:
        return []

    kind = _ACTION_KINDS.get(action) if isinstance(action, str) else None
    if kind is None:
        raise Wal2JsonPayloadError(f"Unsupported wal2json action: {action!r}")

    if tables is not None and table_name(parsed) not in tables:
        return []

    if kind is ChangeKind.DELETE:
        # Deletes only carry the replica identity.
        return [ChangeRecord(kind=kind, values=_column_values(parsed, "identity"))]

    new_values = _column_values(parsed, "columns")
    if kind is ChangeKind.UPDATE_AFTER and parsed.get("identity"):
        old_values = _column_values(parsed, "identity")
        names = [
            name
            for name in _key_names(parsed, key_fields=key_fields, identity=old_values)
            if name in old_values
        ]
        if any(old_values[name] != new_values.get(name) for name in names):
            old_key = {name: old_values[name] for name in names}
            return [
                ChangeRecord(kind=ChangeKind.DELETE, values=old_key),
                ChangeRecord(kind=kind, values=new_values),
            ]
    return [ChangeRecord(kind=kind, values=new_values)]


def table_name(parsed_payload: dict[str, Any]) -> str:
    schema = parsed_payload.get("schema") if isinstance(parsed_payload.get("schema"), str) else "unknown"
    table = parsed_payload.get("table") if isinstance(parsed_payload.get("table"), str) else "unknown"
    return f"{schema}.{table}"


def _parse_payload(payload: bytes) -> dict[str, Any]:
    normalized = payload.rstrip(b"\n")
    if not normalized:
        raise Wal2JsonPayloadError("wal2json payload is empty")

    try:
        # Decimal keeps numeric columns exact.
        decoded = json.loads(normalized, parse_float=Decimal)
    except json.JSONDecodeError as exc:
        raise Wal2JsonPayloadError(f"wal2json payload is not valid JSON: {exc}") from exc

    if not isinstance(decoded, dict):
        raise Wal2JsonPayloadError("wal2json payload must be a JSON object")
    return decoded


def _column_values(parsed_payload: dict[str, Any], field: str) -> dict[str, Any]:
    entries = parsed_payload.get(field)
    if not isinstance(entries, list) or not entries:
        raise Wal2JsonPayloadError(
            f"wal2json {parsed_payload.get('action')} payload for "
            f"{table_name(parsed_payload)} has no {field!r} entries"
        )

    value_by_name: dict[str, Any] = {}
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        name = entry.get("name")
        if not isinstance(name, str):
            continue
        if "value" not in entry:
            continue
        value_by_name[name] = _decode_value(entry["value"], type_name=entry.get("type"))
    return value_by_name


def _decode_value(value: Any, *, type_name: Any) -> Any:
    # bytea is emitted in PostgreSQL's hex output format.
    if type_name == "bytea" and isinstance(value, str) and value.startswith("\\x"):
        try:
            return bytes.fromhex(value[2:])
        except ValueError as exc:
            raise Wal2JsonPayloadError(f"Invalid bytea hex value: {value[:32]!r}") from exc
    return value


def _key_names(
    parsed_payload: dict[str, Any],
    *,
    key_fields: Sequence[str] | None,
    identity: dict[str, Any],
) -> list[str]:
    if key_fields:
        return list(key_fields)

    pk_entries = parsed_payload.get("pk")
    if isinstance(pk_entries, list):
        names = [
            entry["name"]
            for entry in pk_entries
            if isinstance(entry, dict) and isinstance(entry.get("name"), str)
        ]
        if names:
            return names
    return list(identity)
