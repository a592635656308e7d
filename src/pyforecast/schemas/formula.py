"""Formula schemas for request/response validation."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from pyforecast.formula.entities import EntityType, FormulaEntity
from pyforecast.formula.results import FormulaIssue


class FormulaCalculateRequest(BaseModel):
    """Body of ``POST /calculate-formula``."""

    formula: str = Field(..., description="Formula to validate and evaluate")
    variables: dict[str, float] = Field(
        default_factory=dict, description="Variable and entity-reference values"
    )


class FormulaValidateRequest(BaseModel):
    """Validate and evaluate a formula against a workspace registry."""

    model_config = ConfigDict(populate_by_name=True)

    formula: str = Field(..., description="Candidate formula")
    variables: dict[str, float] = Field(
        default_factory=dict, description="Explicit values that override registry values"
    )
    target_type: Optional[EntityType] = Field(
        None, alias="targetType", description="Type of the entity being edited"
    )
    target_id: Optional[int] = Field(
        None, alias="targetId", description="Id of the entity being edited"
    )


class EntityRegisterRequest(BaseModel):
    """Entities to upsert into a workspace registry."""

    entities: list[FormulaEntity] = Field(..., min_length=1, description="Entity snapshots")


class EntityListResponse(BaseModel):
    """Schema for entity list response."""

    items: list[FormulaEntity]
    total: int


class CalculateAllResponse(BaseModel):
    """Outcome of recalculating a workspace."""

    success: bool
    values: dict[str, float] = Field(default_factory=dict)
    circular: list[str] = Field(
        default_factory=list, description="Entities on a circular reference, if any"
    )
    errors: dict[str, FormulaIssue] = Field(default_factory=dict)
