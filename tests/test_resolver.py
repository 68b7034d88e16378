"""
Tests for raw / computed classification of variable tags.

CHANGELOG:
- 2026-10-18: Initial creation (STORY-022)

TODO:
- None
"""

import pytest

from src.errors import QueryValidationError
from src.metrics.formulas import DEFAULT_REGISTRY, FormulaDefinition, FormulaRegistry
from src.metrics.resolver import ComputedField, RawField, resolve


class TestResolveComputed:
    def test_registered_tag_is_computed(self) -> None:
        resolved = resolve("GVF")
        assert isinstance(resolved, ComputedField)
        assert resolved.formula is DEFAULT_REGISTRY.lookup("GVF")
        assert resolved.required_fields == frozenset({"GFR", "OFR", "WFR"})

    def test_formula_takes_precedence_over_raw_field(self) -> None:
        """A tag that is both a field name and a formula resolves to the formula."""
        shadow = FormulaDefinition(
            tag="GFR",
            required_fields=frozenset({"GFR"}),
            evaluate=lambda v: v["GFR"] * 2,
        )
        resolved = resolve("GFR", FormulaRegistry([shadow]))
        assert isinstance(resolved, ComputedField)
        assert resolved.formula is shadow

    def test_allow_list_does_not_block_formulas(self) -> None:
        assert isinstance(resolve("WLR", known_raw_fields={"GFR"}), ComputedField)


class TestResolveRaw:
    def test_unregistered_field_is_raw(self) -> None:
        resolved = resolve("GFR")
        assert resolved == RawField("GFR")
        assert resolved.required_fields == frozenset({"GFR"})

    def test_unknown_but_valid_field_name_is_accepted(self) -> None:
        assert resolve("pressure_inlet") == RawField("pressure_inlet")

    def test_allow_list_accepts_listed_field(self) -> None:
        assert resolve("OFR", known_raw_fields={"GFR", "OFR"}) == RawField("OFR")


class TestResolveRejects:
    @pytest.mark.parametrize("tag", ["", " ", "GVF%", "1abc", "a b", "x;drop", "_x"])
    def test_invalid_tag_raises_validation_error(self, tag: str) -> None:
        with pytest.raises(QueryValidationError):
            resolve(tag)

    def test_too_long_tag_rejected(self) -> None:
        with pytest.raises(QueryValidationError):
            resolve("A" * 65)

    def test_unlisted_field_rejected_with_allow_list(self) -> None:
        with pytest.raises(QueryValidationError, match="TEMP"):
            resolve("TEMP", known_raw_fields={"GFR", "OFR", "WFR"})
