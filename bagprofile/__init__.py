"""
a library for validating and building bags against BagIt profiles.

A BagIt profile (:py:class:`~bagprofile.profile.BagItProfile`) describes what
a conforming bag must, may, and must not contain:  its manifest kinds and
algorithms, its serialization, and the tags its tag files must carry.  The
:py:func:`validate_bag` function tests a bag (a directory or a zip or tar file)
against a profile and returns a report of the problems found; the
:py:class:`BagBuilder` class creates a new bag that conforms to a profile.
"""
from .constants import Version
from .exceptions import (ProfileError, ParseError, StructuralError, TagError,
                         ChecksumError, FatalIOError)
from .tags import ParsedTag, TagRequirement, parse_tags
from .profile import BagItProfile, load_profile, load_profile_file
from .access.bagit import ReadOnlyBag, open_bag
from bagit import BagError, BagValidationError
from .checksum import ChecksumEngine
from .validate import (ValidationOptions, ValidationReport, ValidationIssue,
                       ProfileValidator, ProfileValidationError)
from .validate import validate as validate_bag, ensure_valid as ensure_valid_bag
from .build import BagBuilder, BuildResult, build_bag
from .repository import (ProfileRepository, MemoryProfileRepository,
                         DirectoryProfileRepository, ProfileRecord, BagService)
