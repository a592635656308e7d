"""Entity snapshots consumed by the formula engine.

The surrounding application feeds revenue streams, drivers, expenses and
personnel roles into the engine as ``FormulaEntity`` snapshots. The
composite key ``"<type>_<id>"`` identifies an entity everywhere and is
also the token used to reference it inside formula text.
"""

from datetime import date
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class EntityType(str, Enum):
    """Entity kinds that can be referenced from formulas."""

    STREAM = "stream"
    DRIVER = "driver"
    EXPENSE = "expense"
    PERSONNEL = "personnel"


def reference_key(entity_type: EntityType | str, entity_id: int) -> str:
    """Build the composite key / reference token for an entity."""
    type_value = entity_type.value if isinstance(entity_type, EntityType) else entity_type
    return f"{type_value}_{int(entity_id)}"


class FormulaEntity(BaseModel):
    """
    Snapshot of an entity as seen by the formula engine.

    ``value`` is used directly when there is no formula. Personnel roles
    expose it to their own formula as ``headcount``.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(..., ge=0, description="Entity id, unique within its type")
    type: EntityType = Field(..., description="Entity type")
    name: str = Field(default="", description="Display label")
    value: float = Field(default=0.0, description="Raw value used when there is no formula")
    formula: str | None = Field(default=None, description="Formula defining the value")
    reference_name: str | None = Field(
        default=None,
        alias="referenceName",
        description="Reference token, always '<type>_<id>'",
    )
    start_date: date | None = Field(
        default=None, alias="startDate", description="First day the entity is active"
    )
    end_date: date | None = Field(
        default=None, alias="endDate", description="Last day the entity is active"
    )
    variables: dict[str, float] = Field(
        default_factory=dict,
        description="Extra variables available to this entity's formula (e.g. salary)",
    )

    @model_validator(mode="before")
    @classmethod
    def _blank_formula_is_none(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("formula"), str):
            if not data["formula"].strip():
                data = {**data, "formula": None}
        return data

    @model_validator(mode="after")
    def _fill_reference_name(self) -> "FormulaEntity":
        key = reference_key(self.type, self.id)
        if self.reference_name is not None and self.reference_name != key:
            raise ValueError(f"referenceName '{self.reference_name}' does not match '{key}'")
        self.reference_name = key
        return self

    @property
    def key(self) -> str:
        """Composite key ``"<type>_<id>"``."""
        return reference_key(self.type, self.id)

    def is_active_on(self, day: date) -> bool:
        """Whether ``day`` falls inside the entity's start/end window."""
        if self.start_date is not None and self.start_date > day:
            return False
        if self.end_date is not None and self.end_date < day:
            return False
        return True
