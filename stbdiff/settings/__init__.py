"""
Settings for the comparison engine.

Comparison runs are driven by a ComparisonConfig; the named presets in
PRESETS cover the common cases (exact, tolerant, GUID) and new ones can be
added without touching the matchers.
"""

from .enums import ComparisonKeyType, ImportanceLevel, IMPORTANCE_LEVEL_NAMES
from .tolerance import (
    AxisTolerance,
    ToleranceConfig,
    DEFAULT_TOLERANCE_CONFIG,
    validate_tolerance_config,
)
from .config import (
    DEFAULT_PILE_LENGTH,
    ComparisonMode,
    ComparisonConfig,
    PRESETS,
    get_preset,
    get_available_modes,
    parse_importance_levels,
)

__all__ = [
    'ComparisonKeyType', 'ImportanceLevel', 'IMPORTANCE_LEVEL_NAMES',
    'AxisTolerance', 'ToleranceConfig', 'DEFAULT_TOLERANCE_CONFIG', 'validate_tolerance_config',
    'DEFAULT_PILE_LENGTH', 'ComparisonMode', 'ComparisonConfig', 'PRESETS',
    'get_preset', 'get_available_modes', 'parse_importance_levels',
]
