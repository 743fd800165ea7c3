"""
Input adapters: element attribute sources and JSON model snapshots.
"""

from stbdiff.parsers.attributes import (
    AttributeSource,
    DomAttributeSource,
    PlainAttributeSource,
    as_attribute_source,
)

from stbdiff.parsers.snapshot import (
    ModelSnapshot,
    SnapshotParser,
    load_snapshot,
    normalize_type_name,
)

__all__ = [
    # Attribute sources
    "AttributeSource",
    "DomAttributeSource",
    "PlainAttributeSource",
    "as_attribute_source",
    # Snapshots
    "ModelSnapshot",
    "SnapshotParser",
    "load_snapshot",
    "normalize_type_name",
]
