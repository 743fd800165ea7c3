"""
Comparison configuration for stbdiff.

This module defines the comparison modes available to the command line tool
and to callers that drive the engine directly. Each mode is a preset of the
same ComparisonConfig dataclass, so the matchers never branch on the mode
itself, only on the settings it carries.

HOW TO ADD A NEW MODE:
======================
1. Add a new enum value to ComparisonMode
2. Create a ComparisonConfig with the desired settings
3. Add it to the PRESETS dictionary
4. The CLI will automatically accept it for --mode

Example:
    ComparisonMode.LOOSE: ComparisonConfig(
        name="Loose",
        description="Match anything within 50 mm",
        tolerance=ToleranceConfig(base_point=AxisTolerance.uniform(50.0)),
    )
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, Optional, Union

from stbdiff.errors import InvalidConfigurationError
from stbdiff.geometry.keys import COORDINATE_PRECISION
from stbdiff.settings.enums import ComparisonKeyType, ImportanceLevel
from stbdiff.settings.tolerance import AxisTolerance, ToleranceConfig

# Length given to piles stored with a single node, used to build their axis line
DEFAULT_PILE_LENGTH = 5000.0


class ComparisonMode(Enum):
    """Available comparison presets."""
    EXACT = "exact"        # Spatial keys, exact coordinate match only
    TOLERANT = "tolerant"  # Spatial keys, fall back to tolerance matching
    GUID = "guid"          # GUID keys with spatial fallback

    @classmethod
    def parse(cls, value: Union["ComparisonMode", str]) -> "ComparisonMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidConfigurationError(
                f"Unknown comparison mode: {value!r}. "
                f"Available modes: {[mode.value for mode in cls]}"
            ) from None


@dataclass
class ComparisonConfig:
    """
    Settings for one comparison run.

    Attributes:
        name: Human-readable name for display
        description: Explanation of what this configuration does
        key_type: Identity strategy (spatial coordinates or GUID)
        precision: Decimals kept when encoding coordinates into keys
        tolerance: Tolerance matching settings
        use_importance_filtering: Annotate results with importance levels
        target_importance_levels: Only compare elements at these levels
            (None compares everything)
    """

    name: str = "Custom"
    description: str = ""

    key_type: ComparisonKeyType = ComparisonKeyType.SPATIAL
    precision: int = COORDINATE_PRECISION
    tolerance: ToleranceConfig = field(default_factory=lambda: ToleranceConfig(enabled=False))

    use_importance_filtering: bool = True
    target_importance_levels: Optional[tuple] = None

    def __post_init__(self):
        """Normalize setting values and reject invalid ones."""
        self.key_type = ComparisonKeyType.parse(self.key_type)

        if isinstance(self.precision, bool) or not isinstance(self.precision, int) or self.precision < 0:
            raise InvalidConfigurationError(
                f"precision must be a non-negative integer, got {self.precision!r}"
            )

        if not isinstance(self.tolerance, ToleranceConfig):
            raise InvalidConfigurationError("tolerance must be a ToleranceConfig")

        self.target_importance_levels = parse_importance_levels(self.target_importance_levels)

    @property
    def uses_tolerance(self) -> bool:
        return self.tolerance.is_active


def parse_importance_levels(
    levels: Optional[Iterable[Union[ImportanceLevel, str]]]
) -> Optional[tuple]:
    """
    Normalize a collection of importance levels.

    Returns None for None or an empty collection (meaning "no filtering").
    Raises UnknownImportanceLevelError for unrecognized values.
    """
    if levels is None:
        return None
    if isinstance(levels, (str, ImportanceLevel)):
        levels = [levels]
    parsed = tuple(ImportanceLevel.parse(level) for level in levels)
    return parsed or None


# =============================================================================
# PRESETS
# =============================================================================

PRESETS: dict[ComparisonMode, ComparisonConfig] = {

    # Default run: two models exported from the same project
    ComparisonMode.EXACT: ComparisonConfig(
        name="Exact",
        description="Elements match only when their coordinate keys are equal "
                    "at the working precision.",
        key_type=ComparisonKeyType.SPATIAL,
        tolerance=ToleranceConfig(enabled=False),
    ),

    # Models from different authoring tools or with small survey shifts
    ComparisonMode.TOLERANT: ComparisonConfig(
        name="Tolerant",
        description="Exact key matches first, then the closest element within "
                    "the per-axis tolerance.",
        key_type=ComparisonKeyType.SPATIAL,
        tolerance=ToleranceConfig(base_point=AxisTolerance.uniform(10.0)),
    ),

    # Same project revised over time: GUIDs survive element moves
    ComparisonMode.GUID: ComparisonConfig(
        name="GUID",
        description="Elements match by guid attribute; elements without one "
                    "fall back to coordinate keys.",
        key_type=ComparisonKeyType.EXTERNAL,
        tolerance=ToleranceConfig(enabled=False),
    ),
}


def get_preset(mode: Union[ComparisonMode, str]) -> ComparisonConfig:
    """
    Get a copy of the configuration for a comparison mode.

    Args:
        mode: ComparisonMode or its value

    Returns:
        ComparisonConfig that the caller may modify freely

    Raises:
        InvalidConfigurationError: If the mode is unknown
    """
    return replace(PRESETS[ComparisonMode.parse(mode)])


def get_available_modes() -> list[tuple[ComparisonMode, str, str]]:
    """
    Get list of available modes for display.

    Returns:
        List of tuples: (ComparisonMode, display name, description)
    """
    return [
        (mode, config.name, config.description)
        for mode, config in PRESETS.items()
    ]
