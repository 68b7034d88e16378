"""
Per-reading evaluation of raw and computed variables.

Computed variables never propagate missing data: absent, null or non-numeric
inputs count as 0, and any non-finite or failed computation yields 0. Raw
variables do the opposite: a missing value drops the point from the series.

CHANGELOG:
- 2026-10-18: Initial creation (STORY-023)

TODO:
- None
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import Any

from src.metrics.formulas import FormulaDefinition

logger = logging.getLogger(__name__)


def _to_float(value: Any) -> float | None:
    """Coerce a stored field value to a finite float, or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def evaluate(formula: FormulaDefinition, fields: Mapping[str, Any]) -> float:
    """Compute a formula for one reading.

    Args:
        formula: The formula to apply.
        fields: The reading's raw field map.

    Returns:
        float: The finite result. 0.0 for zero denominators and anomalies.
    """
    values: dict[str, float] = {}
    for name in formula.required_fields:
        coerced = _to_float(fields.get(name))
        values[name] = 0.0 if coerced is None else coerced

    try:
        result = float(formula.evaluate(values))
    except (ArithmeticError, TypeError, ValueError):
        logger.warning(
            "Formula %s raised during evaluation, coercing to 0",
            formula.tag,
            exc_info=True,
        )
        return 0.0

    if not math.isfinite(result):
        logger.warning("Formula %s produced %r, coercing to 0", formula.tag, result)
        return 0.0
    return result


def raw_value(fields: Mapping[str, Any], field_name: str) -> float | None:
    """Return a raw field's numeric value, or None when it is unusable."""
    return _to_float(fields.get(field_name))
