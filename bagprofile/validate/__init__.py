"""
This module provides classes and functions for validating bags against a
BagIt profile.
"""
from .base import (ALL, ERROR, WARN, PARSE_ERROR, STRUCTURAL_ERROR, TAG_ERROR,
                   CHECKSUM_ERROR, ValidationIssue, ValidationReport,
                   ValidationResults, ValidationOptions, Validator,
                   ProfileValidationError)
from .structure import StructureValidator, ValidationScope
from .tags import TagValidator
from .checksums import ChecksumValidator
from .profile import ProfileValidator, validate, ensure_valid
