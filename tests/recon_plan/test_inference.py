from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from recon_cli.recon_plan.inference import infer_type


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, "text"),
        (True, "boolean"),
        (False, "boolean"),
        (42, "integer"),
        (3.0, "integer"),
        (3.25, "numeric"),
        (Decimal("10.00"), "integer"),
        (Decimal("10.50"), "numeric"),
        ("2024-01-31", "date"),
        ("2024-01-31T10:00:00Z", "date"),
        (date(2024, 1, 31), "date"),
        ("Acme", "varchar"),
        ("x" * 255, "varchar"),
        ("x" * 256, "text"),
        ({"nested": 1}, "jsonb"),
        ([1, 2], "jsonb"),
        (b"raw", "text"),
        ("\u0662\u0660\u0662\u0664-\u0660\u0661-\u0660\u0661", "varchar"),
    ],
)
def test_infer_type(value, expected) -> None:
    assert infer_type(value) == expected


def test_non_finite_floats_are_numeric() -> None:
    assert infer_type(float("inf")) == "numeric"
    assert infer_type(float("nan")) == "numeric"
