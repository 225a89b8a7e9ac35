"""
This module provides the two kinds of tag objects used in this package:
:py:class:`ParsedTag`, a label-value pair actually found in a bag's tag file,
and :py:class:`TagRequirement`, the policy a BagIt profile declares for a tag.
Both are subclasses of :py:class:`Tag` and can be told apart by their
``kind`` attribute.

It also provides functions for reading and writing tag files.
"""
import os
from collections import OrderedDict
from functools import total_ordering

from bagit import _parse_tags, _make_tag_file, BagValidationError

from .constants import REQUIRED, OPTIONAL, FORBIDDEN, is_valid_requirement_type
from .exceptions import ParseError

PARSED = "parsed"
REQUIREMENT = "requirement"

class Tag(object):
    """
    a base class for tag descriptions.  The kind attribute discriminates
    between the subclasses.
    """
    kind = None

    def __init__(self, label):
        if not label or not isinstance(label, str):
            raise ValueError("Tag label must be a non-empty string")
        self._label = label

    @property
    def label(self):
        """
        the name of the tag (the part before the colon in a tag file)
        """
        return self._label

@total_ordering
class ParsedTag(Tag):
    """
    a tag label and value as observed in a tag file of a bag
    """
    kind = PARSED

    def __init__(self, label, value):
        super(ParsedTag, self).__init__(label)
        self._value = value

    @property
    def value(self):
        return self._value

    def _key(self):
        return (self._label, self._value)

    def __eq__(self, other):
        if not isinstance(other, ParsedTag):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other):
        if not isinstance(other, ParsedTag):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self):
        return hash(self._key())

    def __str__(self):
        return "{0}: {1}".format(self._label, self._value)

    def __repr__(self):
        return "ParsedTag({0}, {1})".format(repr(self._label), repr(self._value))

class TagRequirement(Tag):
    """
    the requirements a BagIt profile places on a tag: whether it is required,
    optional, or forbidden; what values it may take; and the default value
    to use when building a bag.
    """
    kind = REQUIREMENT

    def __init__(self, label, required=False, values=None, default=None,
                 requirement=None, empty_ok=False):
        """
        :param str label:     the tag's name
        :param bool required: True if the tag must appear in its tag file
        :param values:        the allowed values for the tag; if empty or None,
                              any value is allowed.
        :type values: list of str
        :param str default:   the value to use when building a bag if the
                              caller provides none
        :param str requirement:  one of "required", "optional", or
                              "forbidden"; if given, it overrides required.
        :param bool empty_ok: True if an empty value satisfies a required tag
        """
        super(TagRequirement, self).__init__(label)
        self._conflict = False
        if requirement is None:
            requirement = (required and REQUIRED) or OPTIONAL
        if not is_valid_requirement_type(requirement):
            raise ValueError("Not a valid requirement type: "+str(requirement))
        if required and requirement.lower() != REQUIRED:
            self._conflict = True
        self._req = requirement.lower()
        self._values = tuple(values or [])
        self._default = default
        self._empty_ok = bool(empty_ok)

    @property
    def requirement(self):
        """
        one of "required", "optional", or "forbidden"
        """
        return self._req

    @property
    def required(self):
        return self._req == REQUIRED

    @property
    def forbidden(self):
        return self._req == FORBIDDEN

    @property
    def values(self):
        """
        the tuple of allowed values; an empty tuple means any value is allowed
        """
        return self._values

    @property
    def contradictory(self):
        """
        True if this tag was declared required while also given a different
        requirement type
        """
        return self._conflict

    @property
    def default(self):
        return self._default

    @property
    def empty_ok(self):
        return self._empty_ok

    def allows(self, value):
        """
        return True if the given value is permitted for this tag
        """
        if self.forbidden:
            return False
        if not value:
            # an empty value also fails a non-empty list of allowed values
            return self._empty_ok or not (self.required or self._values)
        return not self._values or value in self._values

    def to_json_obj(self):
        out = OrderedDict([("requirement", self._req),
                           ("required", self.required),
                           ("values", list(self._values))])
        if self._default is not None:
            out["default"] = self._default
        if self._empty_ok:
            out["emptyOk"] = True
        return out

    def __repr__(self):
        return "TagRequirement({0}, {1})".format(repr(self._label), self._req)

class _TagLines(object):
    # feeds lines to bagit's parser while tracking the current line number;
    # continuation lines are passed on with their indentation folded to a
    # single space
    def __init__(self, lines, name):
        self._lines = lines
        self.name = name
        self.lineno = None
        self.line = None

    def __iter__(self):
        for lineno, line in enumerate(self._lines, 1):
            self.lineno = lineno
            self.line = line.rstrip("\r\n")
            if line[:1].isspace() and not line.isspace():
                line = " " + line.strip()
            yield line

def parse_tags(tagfile, filename=None):
    """
    read the tags from an open tag file, returning them as a list of ParsedTag
    instances in the order they appear.  Lines that begin with whitespace
    continue the value of the previous tag.

    :param tagfile:       an open text file object
    :param str filename:  the bag-relative name of the file (used in error
                          messages)
    :raises ParseError:   if a line does not match the "Label: value" format
    """
    if not filename:
        filename = os.path.basename(getattr(tagfile, 'name', "tag file"))
    lines = _TagLines(tagfile, filename)
    try:
        return [ParsedTag(name, value)
                for name, value in _parse_tags(lines)]
    except BagValidationError:
        raise ParseError(filename, "not a valid tag line", lines.lineno,
                         lines.line)
    except ValueError as ex:
        raise ParseError(filename, str(ex), lines.lineno, lines.line)

def tags_to_dict(tags):
    """
    convert a list of ParsedTag instances to an OrderedDict mapping each label
    to the list of its values.
    """
    out = OrderedDict()
    for tag in tags:
        out.setdefault(tag.label, []).append(tag.value)
    return out

def write_tag_file(path, tags):
    """
    write out a tag file.

    :param str path:  the path to the output file
    :param tags:      the tags to write, either as a dictionary mapping
                      labels to values (or lists of values) or as a list of
                      ParsedTag instances.
    """
    if not isinstance(tags, dict):
        tags = tags_to_dict(tags)
    parent = os.path.dirname(path)
    if parent and not os.path.isdir(parent):
        os.makedirs(parent)
    _make_tag_file(path, tags)
