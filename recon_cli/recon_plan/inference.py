"""Canonical storage-type inference for sampled import values."""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from datetime import date
from decimal import Decimal
from typing import Any

from .types import (
    TYPE_BOOLEAN,
    TYPE_DATE,
    TYPE_INTEGER,
    TYPE_JSONB,
    TYPE_NUMERIC,
    TYPE_TEXT,
    TYPE_VARCHAR,
)

VARCHAR_MAX_LENGTH = 255

_DATE_PREFIX = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}")


def infer_type(value: Any) -> str:
    """Return the canonical storage type for ``value``.

    Missing samples and anything unrecognised resolve to ``text`` so that inference
    never blocks an analysis.
    """
    if value is None:
        return TYPE_TEXT
    # bool before numbers: bool is an int subclass.
    if isinstance(value, bool):
        return TYPE_BOOLEAN
    if isinstance(value, int):
        return TYPE_INTEGER
    if isinstance(value, (float, Decimal)):
        return TYPE_INTEGER if _is_whole(value) else TYPE_NUMERIC
    if isinstance(value, str):
        if _DATE_PREFIX.match(value):
            return TYPE_DATE
        if len(value) <= VARCHAR_MAX_LENGTH:
            return TYPE_VARCHAR
        return TYPE_TEXT
    if isinstance(value, date):
        return TYPE_DATE
    if isinstance(value, (Mapping, list, tuple)):
        return TYPE_JSONB
    return TYPE_TEXT


def _is_whole(value: float | Decimal) -> bool:
    if isinstance(value, Decimal):
        return value.is_finite() and value == value.to_integral_value()
    return math.isfinite(value) and value.is_integer()
