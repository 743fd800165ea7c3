"""
Tolerance settings for fuzzy element matching.

A ToleranceConfig is built once per comparison run (from defaults or user
settings) and passed by value into the matcher. It is frozen so nothing can
change it halfway through a comparison.
"""

from dataclasses import asdict, dataclass, field, replace
from numbers import Real
from typing import Optional

from stbdiff.errors import InvalidToleranceError

# Per-axis tolerance on pile and footing offsets, in millimetres
DEFAULT_OFFSET_TOLERANCE = 5.0


@dataclass(frozen=True)
class AxisTolerance:
    """Allowed absolute difference per axis, in millimetres."""

    x: float = 10.0
    y: float = 10.0
    z: float = 10.0

    @classmethod
    def uniform(cls, value: float) -> "AxisTolerance":
        return cls(value, value, value)


@dataclass(frozen=True)
class ToleranceConfig:
    """
    Settings for the tolerance matcher.

    Attributes:
        base_point: Per-axis tolerance applied to node coordinates
        offset: Per-axis tolerance applied to the offset_X / offset_Y
            attributes of single-node elements (piles, footings)
        enabled: Whether tolerance matching runs at all
        strict_mode: Force exact matching even when enabled
        precision: Decimals used to decide whether two coordinates are
            exactly equal. None means "use the key extractor's precision".
        report_mismatches: Pair same-key elements whose geometry is out of
            tolerance into the mismatch bucket instead of only A / only B
    """

    base_point: AxisTolerance = field(default_factory=AxisTolerance)
    offset: AxisTolerance = field(default_factory=lambda: AxisTolerance.uniform(DEFAULT_OFFSET_TOLERANCE))
    enabled: bool = True
    strict_mode: bool = False
    precision: Optional[int] = None
    report_mismatches: bool = False

    def __post_init__(self):
        errors = validate_tolerance_config(self)
        if errors:
            raise InvalidToleranceError(errors)

    @property
    def is_active(self) -> bool:
        """True when matching should go beyond exact keys."""
        return self.enabled and not self.strict_mode

    def with_precision(self, precision: Optional[int]) -> "ToleranceConfig":
        return replace(self, precision=precision)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, values: dict) -> "ToleranceConfig":
        """
        Build a config from a settings dict, falling back to defaults for
        missing keys. Accepts the camelCase names used by stored settings
        ("strictMode", "basePoint").
        """
        return cls(
            base_point=_axis_tolerance(values.get("base_point", values.get("basePoint")), AxisTolerance()),
            offset=_axis_tolerance(values.get("offset"), AxisTolerance.uniform(DEFAULT_OFFSET_TOLERANCE)),
            enabled=values.get("enabled", True),
            strict_mode=values.get("strict_mode", values.get("strictMode", False)),
            precision=values.get("precision"),
            report_mismatches=values.get("report_mismatches", False),
        )


def _axis_tolerance(value, defaults: AxisTolerance):
    """Read a per-axis tolerance given as a dict, a single number or nothing."""
    if isinstance(value, dict):
        return AxisTolerance(
            x=value.get("x", defaults.x),
            y=value.get("y", defaults.y),
            z=value.get("z", defaults.z),
        )
    if isinstance(value, Real) and not isinstance(value, bool):
        return AxisTolerance.uniform(float(value))
    if value is None:
        return defaults
    # Left for validate_tolerance_config to report
    return value


def validate_tolerance_config(config: ToleranceConfig) -> list[str]:
    """
    Check a tolerance config.

    Returns:
        List of error messages (empty if valid)
    """
    errors = []

    for name in ("base_point", "offset"):
        tolerance = getattr(config, name)
        if not isinstance(tolerance, AxisTolerance):
            errors.append(f"{name} must be an AxisTolerance")
            continue
        for axis in ("x", "y", "z"):
            value = getattr(tolerance, axis)
            if isinstance(value, bool) or not isinstance(value, Real) or value < 0:
                errors.append(f"{name}.{axis} must be a non-negative number")

    if config.precision is not None:
        if isinstance(config.precision, bool) or not isinstance(config.precision, int) or config.precision < 0:
            errors.append("precision must be a non-negative integer or None")

    for flag in ("enabled", "strict_mode", "report_mismatches"):
        if not isinstance(getattr(config, flag), bool):
            errors.append(f"{flag} must be a boolean")

    return errors


DEFAULT_TOLERANCE_CONFIG = ToleranceConfig()
