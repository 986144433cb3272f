"""
This file configures pytest.

It puts src/ on the import path so the suite also runs from a plain checkout.

pip install -e ".[test]"
pytest -q tests
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = PROJECT_ROOT / "src"

if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from dynamodb_change_sink.schema import PhysicalSchema  # noqa: E402


@pytest.fixture()
def users_schema() -> PhysicalSchema:
    return PhysicalSchema.model_validate(
        {
            "columns": [
                {"name": "userId", "type": "STRING"},
                {"name": "name", "type": "STRING"},
                {"name": "age", "type": "INTEGER"},
            ],
            "primary_key": ["userId"],
        }
    )


@pytest.fixture()
def orders_schema() -> PhysicalSchema:
    return PhysicalSchema.model_validate(
        {
            "columns": [
                {"name": "customerId", "type": "STRING", "nullable": False},
                {"name": "orderId", "type": "BIGINT", "nullable": False},
                {"name": "total", "type": "DECIMAL"},
                {"name": "status", "type": "STRING"},
            ],
            "primary_key": ["customerId", "orderId"],
        }
    )
