"""Entity reference extraction.

Formulas refer to other entities with tokens of the form ``<type>_<id>``
(``stream_1``, ``personnel_12``). The format is part of stored formula
text and must stay stable.
"""

import re
from dataclasses import dataclass

from pyforecast.formula.entities import EntityType, reference_key

REFERENCE_PATTERN = re.compile(
    r"(" + "|".join(t.value for t in EntityType) + r")_(\d+)"
)


@dataclass(frozen=True)
class EntityReference:
    """One occurrence of an entity reference inside a formula."""

    type: EntityType
    id: int
    position: int
    token: str

    @property
    def key(self) -> str:
        return reference_key(self.type, self.id)


def extract_references(formula: str | None) -> list[EntityReference]:
    """
    Find every entity reference in ``formula``.

    Args:
        formula: Formula text

    Returns:
        References in left-to-right order, duplicates included
    """
    if not formula:
        return []
    return [
        EntityReference(
            EntityType(match.group(1)), int(match.group(2)), match.start(), match.group(0)
        )
        for match in REFERENCE_PATTERN.finditer(formula)
    ]


def unique_references(formula: str | None) -> list[EntityReference]:
    """Like ``extract_references`` but keeps only the first occurrence of each entity."""
    seen: set[str] = set()
    unique = []
    for ref in extract_references(formula):
        if ref.key not in seen:
            seen.add(ref.key)
            unique.append(ref)
    return unique
