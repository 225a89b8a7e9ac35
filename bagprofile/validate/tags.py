"""
This module provides the tag validation pass:  it checks that the tag files
a profile requires are present and that their tags satisfy the profile's
requirements.
"""
from ..exceptions import ParseError
from ..tags import tags_to_dict
from .base import TAG_ERROR, PARSE_ERROR

class TagValidator(object):
    """
    a validator that tests the tag files of a bag against a profile
    """

    def __init__(self, bag, profile, options):
        self.bag = bag
        self.profile = profile
        self.options = options

    def validate(self, results, scope):
        for path in scope.tag_files:
            if self.options.cancelled:
                break
            self.validate_tag_file(path, results)
        return results

    def validate_tag_file(self, path, results):
        if not self.bag.isfile(path):
            if not self.profile.is_optional_tag_file(path):
                results._err(TAG_ERROR, path, "required tag file is missing")
            return results

        try:
            found = tags_to_dict(self.bag.read_tags(path))
        except ParseError as ex:
            comments = None
            if ex.lineno:
                comments = ["line {0}".format(ex.lineno)]
            results._err(PARSE_ERROR, path, ex.message, comments=comments)
            return results

        for req in self.profile.tag_requirements(path):
            values = found.get(req.label)

            if req.forbidden:
                if values is not None:
                    results._err(TAG_ERROR, path,
                                 "profile forbids tag: "+req.label, req.label)
                continue

            if values is None:
                if req.required:
                    results._err(TAG_ERROR, path,
                                 "missing required tag: "+req.label, req.label)
                continue

            for val in values:
                if not val and req.required and not req.empty_ok:
                    results._err(TAG_ERROR, path,
                                 "required tag has an empty value: "+req.label,
                                 req.label)
                elif not req.allows(val):
                    results._err(TAG_ERROR, path,
                                 "value for tag {0} is not one of the allowed "
                                 "values".format(req.label), req.label,
                                 ["found: "+val,
                                  "allowed: "+", ".join(req.values)])

        if self.options.strict:
            for label in found:
                if not self.profile.tag_requirement(path, label):
                    results._warn(TAG_ERROR, path,
                                  "tag is not declared by the profile: "+label,
                                  label)

        return results
