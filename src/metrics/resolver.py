"""
Classify a requested variable tag as a raw field or a computed formula.

Registry lookup happens first, so a raw field named like a registered formula
is always treated as computed. Tags that are neither a formula nor a plausible
raw field name are rejected before anything is fetched.

CHANGELOG:
- 2026-10-18: Initial creation (STORY-022)

TODO:
- None
"""

from __future__ import annotations

import re
from collections.abc import Collection
from dataclasses import dataclass

from src.errors import QueryValidationError
from src.metrics.formulas import DEFAULT_REGISTRY, FormulaDefinition, FormulaRegistry

RAW_FIELD_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_]{0,63}$")


@dataclass(frozen=True)
class RawField:
    """Variable served straight from a reading field."""

    field_name: str

    @property
    def required_fields(self) -> frozenset[str]:
        return frozenset({self.field_name})


@dataclass(frozen=True)
class ComputedField:
    """Variable evaluated per reading through a formula."""

    formula: FormulaDefinition

    @property
    def required_fields(self) -> frozenset[str]:
        return self.formula.required_fields


ResolvedField = RawField | ComputedField


def resolve(
    variable_tag: str,
    registry: FormulaRegistry = DEFAULT_REGISTRY,
    known_raw_fields: Collection[str] = (),
) -> ResolvedField:
    """Resolve a variable tag.

    Args:
        variable_tag: Tag from the variable request.
        registry: Formula registry to consult first.
        known_raw_fields: Optional allow-list of raw field names. Empty means
            any name matching RAW_FIELD_PATTERN is accepted.

    Returns:
        ResolvedField: ComputedField for registered tags, RawField otherwise.

    Raises:
        QueryValidationError: If the tag is neither a formula nor a valid
            raw field name.
    """
    formula = registry.lookup(variable_tag)
    if formula is not None:
        return ComputedField(formula)

    if not RAW_FIELD_PATTERN.match(variable_tag):
        raise QueryValidationError(
            f"Unknown variable tag '{variable_tag}': not a registered formula "
            f"and not a valid field name."
        )
    if known_raw_fields and variable_tag not in known_raw_fields:
        raise QueryValidationError(
            f"Unknown variable tag '{variable_tag}': not a registered formula "
            f"or known raw field."
        )
    return RawField(variable_tag)
