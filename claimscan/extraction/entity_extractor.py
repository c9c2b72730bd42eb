"""Label-based entity extraction from recognized claim text.

Claim forms print their fields as ``Label: value`` lines. Each rule maps
one or more labels to an entity type; labels are tried in order and the
first non-blank value found for a label wins.
"""

import re
from dataclasses import dataclass
from enum import StrEnum

from claimscan.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIDENCE = 0.9


class ExtractionError(Exception):
    """Raised when entity extraction cannot run on the given input."""


class EntityType(StrEnum):
    """Closed set of entity labels produced by the extractor."""

    PERSON = "PERSON"
    LOCATION = "LOCATION"
    STATE = "STATE"
    AREA = "AREA"
    COORDINATES = "COORDINATES"


@dataclass(frozen=True)
class Entity:
    """A labelled value extracted from document text."""

    type: EntityType
    value: str
    confidence: float


# (entity type, labels tried in order)
_RULES: list[tuple[EntityType, tuple[str, ...]]] = [
    (EntityType.PERSON, ("Applicant Name", "Name")),
    (EntityType.LOCATION, ("Village",)),
    (EntityType.LOCATION, ("District",)),
    (EntityType.STATE, ("State",)),
    (EntityType.AREA, ("Area",)),
    (EntityType.COORDINATES, ("Coordinates",)),
]


def _label_pattern(label: str) -> re.Pattern[str]:
    # Whitespace around the colon must not cross a line break.
    return re.compile(
        rf"\b{re.escape(label)}[ \t]*:[ \t]*([^\r\n]*)", re.IGNORECASE
    )


class EntityExtractor:
    """Extract typed entities from free-form OCR text.

    Args:
        confidence: Confidence attached to every produced entity.
    """

    def __init__(self, confidence: float = DEFAULT_CONFIDENCE) -> None:
        self.confidence = confidence
        self.rules: list[tuple[EntityType, list[re.Pattern[str]]]] = [
            (entity_type, [_label_pattern(label) for label in labels])
            for entity_type, labels in _RULES
        ]

    def extract(self, text: str) -> list[Entity]:
        """Extract entities in rule order.

        Args:
            text: Recognized document text.

        Returns:
            Entities for every rule with a non-blank value.

        Raises:
            ExtractionError: If ``text`` is not a string.
        """
        if not isinstance(text, str):
            raise ExtractionError(
                f"Expected text to be str, got {type(text).__name__}"
            )

        entities: list[Entity] = []
        for entity_type, patterns in self.rules:
            value = self._first_value(text, patterns)
            if value:
                entities.append(Entity(entity_type, value, self.confidence))

        logger.info("Entity extraction found %d entities", len(entities))
        return entities

    @staticmethod
    def _first_value(text: str, patterns: list[re.Pattern[str]]) -> str | None:
        # A short label like "Name" also matches inside "Applicant Name",
        # so skip blank occurrences instead of stopping at the first.
        for pattern in patterns:
            for match in pattern.finditer(text):
                value = match.group(1).strip()
                if value:
                    return value
        return None
