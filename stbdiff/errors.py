"""
Exceptions raised for invalid comparison configuration.

Data-quality problems (dangling node references, bad coordinates) are never
raised; they are logged and the element is left out of the result.
"""


class InvalidConfigurationError(ValueError):
    """A caller passed a setting the comparison engine does not understand."""


class UnknownImportanceLevelError(InvalidConfigurationError):
    """Importance level name or value is not one of ImportanceLevel."""


class UnknownKeyTypeError(InvalidConfigurationError):
    """Comparison key type is neither spatial nor external."""


class UnknownElementTypeError(InvalidConfigurationError):
    """Element type has no registered key extractor."""


class InvalidToleranceError(InvalidConfigurationError):
    """Tolerance settings failed validation."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("Invalid tolerance configuration: " + "; ".join(errors))
