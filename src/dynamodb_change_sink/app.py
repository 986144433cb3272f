from __future__ import annotations

import base64
import json
import logging
import os
from decimal import Decimal
from typing import Any, TextIO

from dynamodb_change_sink.converter import RowElementConverter
from dynamodb_change_sink.models import ChangeRecord
from dynamodb_change_sink.schema import load_schema
from dynamodb_change_sink.settings import Settings
from dynamodb_change_sink.wal2json import parse_wal2json_changes

LOGGER = logging.getLogger(__name__)


def configure_logging() -> None:
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def run(*, settings: Settings, stdin: TextIO, stdout: TextIO) -> int:
    """Convert one change per input line into one BatchWriteItem entry per output line.

    Stops at the first record that cannot be converted and returns 1.
    """

    converter = RowElementConverter(load_schema(settings.schema_path))
    LOGGER.info(
        "service_start",
        extra={
            "dynamodb_table": settings.dynamodb_table,
            "input_format": settings.input_format,
            "key_fields": list(converter.key_fields),
        },
    )

    converted = 0
    skipped = 0
    for line_number, line in enumerate(stdin, start=1):
        if not line.strip():
            continue

        try:
            records = _parse_line(line, settings=settings, key_fields=converter.key_fields)
            # Convert the whole line before writing so a failure emits nothing for it.
            requests = [converter.apply(record) for record in records]
        except ValueError:
            LOGGER.exception(
                "change_conversion_failed",
                extra={"line_number": line_number, "converted": converted},
            )
            return 1

        if not requests:
            skipped += 1
            continue

        for request in requests:
            output = {"TableName": settings.dynamodb_table, "Request": request.to_batch_write_entry()}
            stdout.write(json.dumps(output, default=_json_default) + "\n")
            converted += 1

    LOGGER.info("changes_converted", extra={"converted": converted, "skipped": skipped})
    return 0


def _parse_line(
    line: str,
    *,
    settings: Settings,
    key_fields: tuple[str, ...],
) -> list[ChangeRecord]:
    if settings.input_format == "wal2json":
        return parse_wal2json_changes(
            line.encode("utf-8"),
            tables=settings.wal2json_tables,
            key_fields=key_fields,
        )

    return [ChangeRecord.model_validate(json.loads(line, parse_float=Decimal))]


def _json_default(value: Any) -> Any:
    # Binary attributes travel base64-encoded in DynamoDB's JSON wire format.
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(value).decode("ascii")
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
