"""
Derived metric evaluation core.

Exports the formula registry, field resolver and evaluator used by the
series pipeline.

CHANGELOG:
- 2026-10-18: Initial creation (STORY-021)

TODO:
- None
"""

from src.metrics.evaluator import evaluate, raw_value
from src.metrics.formulas import (
    DEFAULT_REGISTRY,
    FormulaDefinition,
    FormulaRegistry,
    percentage_ratio,
)
from src.metrics.resolver import ComputedField, RawField, resolve

__all__ = [
    "DEFAULT_REGISTRY",
    "ComputedField",
    "FormulaDefinition",
    "FormulaRegistry",
    "RawField",
    "evaluate",
    "percentage_ratio",
    "raw_value",
    "resolve",
]
