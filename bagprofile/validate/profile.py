"""
This module provides the validator that tests a bag against a BagIt profile.

Validation is done in three passes.  The structural pass runs first and
determines which manifests and tag files the other two examine; the tag pass
then runs on a helper thread while the checksum pass runs on the calling
thread (farming the digest calculations out to its own pool).  All passes
report into one :py:class:`~bagprofile.validate.base.ValidationResults`
instance which is frozen into the returned report.
"""
import concurrent.futures as futures

from .base import (Validator, ValidationResults, ValidationOptions,
                   PARSE_ERROR)
from .structure import StructureValidator
from .tags import TagValidator
from .checksums import ChecksumValidator
from ..constants import TAR
from ..access.bagit import ReadOnlyBag, open_bag

class ProfileValidator(Validator):
    """
    A validator that tests whether a given bag (serialized or otherwise)
    complies with a BagIt profile.
    """

    def __init__(self, bag, profile, options=None):
        """
        initialize the validator.

        :param bag:  the target bag, either as a ReadOnlyBag or as the
                     location of a bag directory or serialized bag file
        :param BagItProfile profile:  the profile to test against
        :param ValidationOptions options:  the run settings; if None, the
                     defaults are used.
        :raises ProfileError:  if the profile is not internally consistent
        :raises ParseError:    if the bag's declaration (bagit.txt) is missing
                     or malformed
        :raises FatalIOError:  if the bag cannot be read due to a device or
                     filesystem failure
        """
        profile.ensure_valid()
        if not isinstance(bag, ReadOnlyBag):
            bag = open_bag(bag)
        super(ProfileValidator, self).__init__(bag.name)
        self.bag = bag
        self.profile = profile
        if not options:
            options = ValidationOptions()
        self.options = options

    def validate(self, results=None):
        """
        run all validation passes and return a ValidationReport
        """
        if not results:
            results = ValidationResults(self.target)
        log = self.options.log
        log.info("Validating bag %s against profile %s", self.bag.name,
                 self.profile.name or self.profile.identifier)

        self.validate_manifest_syntax(results)

        scope = StructureValidator(self.bag, self.profile,
                                   self.options).validate(results)

        if not self.options.cancelled:
            tagval = TagValidator(self.bag, self.profile, self.options)
            sumval = ChecksumValidator(self.bag, self.profile, self.options)

            if self.bag.serialization == TAR:
                # members of a tar file cannot be read concurrently
                tagval.validate(results, scope)
                sumval.validate(results, scope)
            else:
                self._run_concurrently(tagval, sumval, results, scope)

        report = results.freeze(self.options.cancelled)
        log.info(str(report))
        return report

    def _run_concurrently(self, tagval, sumval, results, scope):
        with futures.ThreadPoolExecutor(max_workers=1) as helper:
            tagjob = helper.submit(tagval.validate, results, scope)
            sumval.validate(results, scope)
            # re-raises any exception from the tag pass
            tagjob.result()

    def validate_manifest_syntax(self, results):
        """
        record a ParseError finding for each manifest that could not be
        parsed when the bag was opened
        """
        for ex in self.bag.manifest_errors:
            comments = None
            if ex.lineno:
                comments = ["line {0}".format(ex.lineno)]
            results._err(PARSE_ERROR, ex.filename, ex.message, comments=comments)
        return results

def validate(bag, profile, options=None):
    """
    validate a bag (serialized or not) against a BagIt profile, returning
    the ValidationReport.

    :param bag:  the target bag, either as a ReadOnlyBag or as the location
                 of a bag directory or serialized bag file
    :param BagItProfile profile:  the profile to test against
    :param ValidationOptions options:  the run settings
    :rtype: ValidationReport
    """
    return ProfileValidator(bag, profile, options).validate()

def ensure_valid(bag, profile, options=None):
    """
    validate a bag against a BagIt profile, raising an exception if it is
    not compliant.

    :raise ProfileValidationError:  if validation errors are detected
    """
    return ProfileValidator(bag, profile, options).ensure_valid()
