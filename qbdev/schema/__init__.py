"""Structural definition and validation of application schema documents.

1. Shape — the JSON-Schema-style definition of an ``apps/*.yaml`` document
2. Validator — collects every shape violation and fills documented defaults
"""

from qbdev.schema.shape import get_shape
from qbdev.schema.validator import apply_defaults, validate_document

__all__ = ["apply_defaults", "get_shape", "validate_document"]
