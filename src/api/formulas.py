"""
GET /v1/formulas endpoint listing registered derived metrics.

Lets the dashboard offer derived variables (GVF, WLR, ...) alongside raw
fields without hard-coding the registry contents.

CHANGELOG:
- 2026-10-18: Initial creation (STORY-032)

TODO:
- None
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from src.api.deps import get_company_id, get_registry
from src.metrics.formulas import FormulaRegistry

router = APIRouter(prefix="/v1", tags=["formulas"])


class FormulaOut(BaseModel):
    """Public description of a derived metric."""

    tag: str
    required_fields: list[str] = Field(serialization_alias="requiredFields")
    description: str


@router.get("/formulas", response_model=list[FormulaOut])
async def list_formulas(
    _company_id: Annotated[str, Depends(get_company_id)],
    registry: Annotated[FormulaRegistry, Depends(get_registry)],
) -> list[FormulaOut]:
    """Return every registered formula with its required raw fields."""
    return [
        FormulaOut(
            tag=formula.tag,
            required_fields=sorted(formula.required_fields),
            description=formula.description,
        )
        for formula in registry
    ]
