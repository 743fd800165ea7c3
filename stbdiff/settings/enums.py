"""
Enumerations shared by the settings and the comparison engine.
"""

from enum import Enum
from typing import Union

from stbdiff.errors import UnknownImportanceLevelError, UnknownKeyTypeError


class ComparisonKeyType(Enum):
    """How an element's identity key is built."""
    SPATIAL = "spatial"    # From the element's node coordinates
    EXTERNAL = "external"  # From the element's guid attribute

    @classmethod
    def parse(cls, value: Union["ComparisonKeyType", str]) -> "ComparisonKeyType":
        """
        Convert a setting value to a ComparisonKeyType.

        Accepts members, their values and the legacy setting names
        ("position_based", "guid_based"). Anything else raises
        UnknownKeyTypeError.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            aliases = {
                "position": cls.SPATIAL,
                "position_based": cls.SPATIAL,
                "guid": cls.EXTERNAL,
                "guid_based": cls.EXTERNAL,
            }
            if normalized in aliases:
                return aliases[normalized]
            for member in cls:
                if member.value == normalized:
                    return member
        raise UnknownKeyTypeError(f"Unknown comparison key type: {value!r}")


class ImportanceLevel(Enum):
    """
    Priority tag of an element type or attribute path.

    Declared from highest to lowest priority. Importance weights filtering
    and reporting; it never changes whether two elements match.
    """
    REQUIRED = "required"
    OPTIONAL = "optional"
    UNNECESSARY = "unnecessary"
    NOT_APPLICABLE = "notApplicable"

    @property
    def rank(self) -> int:
        """0 for the highest priority level."""
        return list(ImportanceLevel).index(self)

    @property
    def display_name(self) -> str:
        return IMPORTANCE_LEVEL_NAMES[self]

    @classmethod
    def parse(cls, value: Union["ImportanceLevel", str]) -> "ImportanceLevel":
        """
        Convert a member, value or display name to an ImportanceLevel.

        Raises UnknownImportanceLevelError for anything unrecognized.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            text = value.strip()
            for member in cls:
                if text in (member.value, member.name) or text.lower() == member.value.lower():
                    return member
                if text == IMPORTANCE_LEVEL_NAMES[member]:
                    return member
        raise UnknownImportanceLevelError(f"Unknown importance level: {value!r}")


IMPORTANCE_LEVEL_NAMES = {
    ImportanceLevel.REQUIRED: "High",
    ImportanceLevel.OPTIONAL: "Medium",
    ImportanceLevel.UNNECESSARY: "Low",
    ImportanceLevel.NOT_APPLICABLE: "Not applicable",
}
