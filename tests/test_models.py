from __future__ import annotations

import pytest
from pydantic import ValidationError

from dynamodb_change_sink.models import (
    ChangeKind,
    ChangeRecord,
    DynamoDbWriteRequest,
    WriteRequestType,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("+I", ChangeKind.INSERT),
        ("-U", ChangeKind.UPDATE_BEFORE),
        ("+U", ChangeKind.UPDATE_AFTER),
        ("-D", ChangeKind.DELETE),
        ("update_after", ChangeKind.UPDATE_AFTER),
        (3, ChangeKind.DELETE),
        (ChangeKind.INSERT, ChangeKind.INSERT),
    ],
)
def test_change_kind_parse_accepts_short_strings_names_and_bytes(
    raw: str | int | ChangeKind,
    expected: ChangeKind,
) -> None:
    assert ChangeKind.parse(raw) is expected


def test_change_kind_byte_values_follow_declaration_order() -> None:
    assert [kind.byte_value for kind in ChangeKind] == [0, 1, 2, 3]
    assert [kind.short_string for kind in ChangeKind] == ["+I", "-U", "+U", "-D"]


@pytest.mark.parametrize("raw", ["~X", 9, True])
def test_change_kind_parse_rejects_unknown_values(raw: object) -> None:
    with pytest.raises(ValueError, match="Unknown change kind"):
        ChangeKind.parse(raw)  # type: ignore[arg-type]


def test_change_record_parses_kind_from_json() -> None:
    record = ChangeRecord.model_validate_json('{"kind": "-D", "values": {"userId": "u1"}}')

    assert record.kind is ChangeKind.DELETE
    assert record.values == {"userId": "u1"}


def test_change_record_rejects_unknown_kind() -> None:
    with pytest.raises(ValidationError):
        ChangeRecord(kind="upsert", values={})


def test_change_record_is_frozen() -> None:
    record = ChangeRecord(kind=ChangeKind.INSERT, values={"userId": "u1"})

    with pytest.raises(ValidationError):
        record.kind = ChangeKind.DELETE  # type: ignore[misc]


def test_write_request_requires_attributes() -> None:
    with pytest.raises(ValidationError, match="at least one attribute"):
        DynamoDbWriteRequest(type=WriteRequestType.DELETE, item={})


def test_put_request_renders_batch_write_entry() -> None:
    request = DynamoDbWriteRequest(type=WriteRequestType.PUT, item={"userId": {"S": "u1"}})

    assert request.to_batch_write_entry() == {"PutRequest": {"Item": {"userId": {"S": "u1"}}}}
