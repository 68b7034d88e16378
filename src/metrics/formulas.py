"""
Registry of derived metric definitions.

A FormulaDefinition names the raw fields it needs and a pure evaluation
function over those fields. The registry is built once at import time and is
read-only afterwards; adding a derived metric means adding one entry to
_BUILTIN_FORMULAS and nothing else in the pipeline.

CHANGELOG:
- 2026-10-18: Initial creation with GVF and WLR (STORY-021)

TODO:
- None
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType

# Evaluation functions receive every required field already coerced to float.
FormulaFn = Callable[[Mapping[str, float]], float]


@dataclass(frozen=True)
class FormulaDefinition:
    """A derived metric computed per reading from raw fields.

    Attributes:
        tag: Variable tag that selects this formula.
        required_fields: Raw fields the formula reads.
        evaluate: Pure function of the required field values.
        description: Human-readable summary for the formulas listing.
    """

    tag: str
    required_fields: frozenset[str]
    evaluate: FormulaFn
    description: str = ""


def percentage_ratio(numerator: str, denominator_fields: Iterable[str]) -> FormulaFn:
    """Build a ``numerator / sum(denominator_fields) * 100`` evaluator.

    The result is 0 whenever the denominator is not strictly positive, so the
    function is total over all-zero and negative inputs.

    Args:
        numerator: Field whose share is computed.
        denominator_fields: Fields summed into the denominator.

    Returns:
        FormulaFn: The evaluation function.
    """
    fields = tuple(denominator_fields)

    def _evaluate(values: Mapping[str, float]) -> float:
        denom = sum(values[name] for name in fields)
        if denom > 0:
            return values[numerator] / denom * 100
        return 0.0

    return _evaluate


class FormulaRegistry:
    """Read-only mapping from tag to FormulaDefinition."""

    def __init__(self, definitions: Iterable[FormulaDefinition]) -> None:
        """Build the registry.

        Args:
            definitions: Formula definitions to register.

        Raises:
            ValueError: If two definitions share a tag.
        """
        table: dict[str, FormulaDefinition] = {}
        for definition in definitions:
            if definition.tag in table:
                raise ValueError(f"Duplicate formula tag '{definition.tag}'")
            table[definition.tag] = definition
        self._formulas: Mapping[str, FormulaDefinition] = MappingProxyType(table)

    def lookup(self, tag: str) -> FormulaDefinition | None:
        """Return the formula registered under ``tag``, or None."""
        return self._formulas.get(tag)

    def tags(self) -> list[str]:
        return list(self._formulas)

    def __contains__(self, tag: object) -> bool:
        return tag in self._formulas

    def __iter__(self) -> Iterator[FormulaDefinition]:
        return iter(self._formulas.values())

    def __len__(self) -> int:
        return len(self._formulas)


_BUILTIN_FORMULAS = (
    FormulaDefinition(
        tag="GVF",
        required_fields=frozenset({"GFR", "OFR", "WFR"}),
        evaluate=percentage_ratio("GFR", ("GFR", "OFR", "WFR")),
        description="Gas volume fraction: GFR / (GFR + OFR + WFR) * 100",
    ),
    FormulaDefinition(
        tag="WLR",
        required_fields=frozenset({"WFR", "OFR"}),
        evaluate=percentage_ratio("WFR", ("WFR", "OFR")),
        description="Water-liquid ratio: WFR / (WFR + OFR) * 100",
    ),
)

DEFAULT_REGISTRY = FormulaRegistry(_BUILTIN_FORMULAS)
