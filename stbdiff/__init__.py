"""
stbdiff - structural model diff engine.

Compares two versions of a structural building model and classifies every
element as matched, only in model A, or only in model B.
"""

__version__ = "0.1.0"
