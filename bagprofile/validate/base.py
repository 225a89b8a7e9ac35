"""
This module provides base classes and infrastructure for validating bags
against a BagIt profile:  the issues (findings) that validation passes
produce, the thread-safe collector they report to, and the immutable report
that a validation run returns.
"""
import threading, logging
from collections import OrderedDict

from bagit import BagValidationError

ERROR = 1
WARN  = 2
ALL   = 3
issuetypes = [ ERROR, WARN ]

type_labels = { ERROR: "error", WARN: "warning" }
ERROR_LAB = type_labels[ERROR]
WARN_LAB  = type_labels[WARN]

# the kinds of findings
PARSE_ERROR      = "ParseError"
STRUCTURAL_ERROR = "StructuralError"
TAG_ERROR        = "TagError"
CHECKSUM_ERROR   = "ChecksumError"
finding_kinds = [ PARSE_ERROR, STRUCTURAL_ERROR, TAG_ERROR, CHECKSUM_ERROR ]

class ValidationIssue(object):
    """
    a problem detected by a validation pass.  It records the kind of problem
    (e.g. TagError), its severity (ERROR or WARN), the bag-relative path of
    the file it concerns (empty for problems with the bag as a whole), an
    optional label (such as a tag name or an algorithm), and a prose
    description.
    """
    ERROR = ERROR
    WARN  = WARN

    def __init__(self, kind, issuetype=ERROR, path='', message='', label='',
                 comments=None):
        if kind not in finding_kinds:
            raise ValueError("ValidationIssue: not a recognized kind: "+
                             str(kind))
        if issuetype not in issuetypes:
            raise ValueError("ValidationIssue: not a recognized issue type: "+
                             str(issuetype))
        if isinstance(comments, str):
            comments = [ comments ]

        self._kind = kind
        self._type = issuetype
        self._path = path or ''
        self._msg = message
        self._lab = label or ''
        self._comm = tuple(str(c) for c in (comments or []))

    @property
    def kind(self):
        """
        the kind of problem: one of ParseError, StructuralError, TagError, or
        ChecksumError
        """
        return self._kind

    @property
    def type(self):
        """
        return the issue type, either ERROR or WARN
        """
        return self._type

    @property
    def severity(self):
        """
        the issue type as a label: "error" or "warning"
        """
        return type_labels[self._type]

    @property
    def path(self):
        return self._path

    @property
    def label(self):
        return self._lab

    @property
    def message(self):
        return self._msg

    @property
    def comments(self):
        """
        a tuple of strings giving more context-specific detail about the
        issue (e.g. line numbers)
        """
        return self._comm

    def is_error(self):
        return self._type == ERROR

    def sort_key(self):
        return (self._path, self._kind, self._lab, self._msg)

    @property
    def summary(self):
        """
        a one-line description of the issue
        """
        out = "{0}: {1}".format(self.severity.upper(), self._kind)
        if self._path:
            out += " ({0})".format(self._path)
        out += ": {0}".format(self._msg)
        return out

    @property
    def description(self):
        """
        the summary followed by the comments, one per line
        """
        out = self.summary
        if self._comm:
            out += "\n   "
            out += "\n   ".join(self._comm)
        return out

    def __str__(self):
        return self.summary

    def __repr__(self):
        return "ValidationIssue({0}, {1}, {2})".format(self._kind,
                                                       self.severity,
                                                       repr(self._path))

    def to_tuple(self):
        """
        return a tuple containing the issue data
        """
        return (self._kind, self._type, self._path, self._lab, self._msg,
                self._comm)

    def to_json_obj(self):
        """
        return an OrderedDict that can be encoded into a JSON object node
        which contains the data in this ValidationIssue.
        """
        return OrderedDict([
            ("kind", self._kind),
            ("severity", self.severity),
            ("path", self._path),
            ("label", self._lab),
            ("message", self._msg),
            ("comments", list(self._comm))
        ])

    @classmethod
    def from_tuple(cls, data):
        return ValidationIssue(data[0], data[1], data[2], data[4], data[3],
                               data[5])

class ValidationReport(object):
    """
    the immutable outcome of validating a bag: its findings ordered by path
    and kind, and whether the validation run was cancelled before finishing.
    """

    def __init__(self, target, findings=None, cancelled=False):
        self._target = target
        self._findings = tuple(sorted(findings or [],
                                      key=lambda i: i.sort_key()))
        self._cancelled = bool(cancelled)

    @property
    def target(self):
        """
        a name for the bag that was validated
        """
        return self._target

    @property
    def findings(self):
        return self._findings

    @property
    def cancelled(self):
        """
        True if validation was interrupted before all checks completed
        """
        return self._cancelled

    @property
    def passed(self):
        """
        True if there are no findings of error severity
        """
        return self.count_failed(ERROR) == 0

    def ok(self):
        return self.passed

    def failed(self, issuetype=ALL):
        """
        return the findings of the requested types
        """
        return [i for i in self._findings if i.type & issuetype]

    def count_failed(self, issuetype=ALL):
        return len(self.failed(issuetype))

    def errors(self):
        return self.failed(ERROR)

    def warnings(self):
        return self.failed(WARN)

    def of_kind(self, kind, issuetype=ALL):
        """
        return the findings of a given kind (e.g. "TagError")
        """
        return [i for i in self.failed(issuetype) if i.kind == kind]

    def for_path(self, path):
        """
        return the findings concerning the file with the given path
        """
        return [i for i in self._findings if i.path == path]

    def to_json_obj(self):
        return OrderedDict([
            ("target", self._target),
            ("passed", self.passed),
            ("cancelled", self._cancelled),
            ("findings", [i.to_json_obj() for i in self._findings])
        ])

    def __len__(self):
        return len(self._findings)

    def __iter__(self):
        return iter(self._findings)

    def __str__(self):
        status = (self.passed and "PASSED") or "FAILED"
        out = "{0}: {1} ({2} errors, {3} warnings)".format(
            self._target, status, self.count_failed(ERROR),
            self.count_failed(WARN))
        if self._cancelled:
            out += " [cancelled]"
        return out

class ValidationResults(object):
    """
    a container for collecting findings while validation passes are running.
    Passes running on different threads may add to the same instance; the
    final, immutable report is produced by :py:meth:`freeze`.
    """
    ERROR = ERROR
    WARN  = WARN

    def __init__(self, target):
        """
        initialize an empty set of results for a particular bag

        :param str target:  a name indicating the bag that is the target of
                            these results
        """
        self.target = target
        self._issues = []
        self._lock = threading.Lock()

    def add(self, issue):
        with self._lock:
            self._issues.append(issue)

    def _err(self, kind, path, message, label='', comments=None):
        """
        record a problem of error severity
        """
        self.add(ValidationIssue(kind, ERROR, path, message, label, comments))

    def _warn(self, kind, path, message, label='', comments=None):
        """
        record a problem of warning severity
        """
        self.add(ValidationIssue(kind, WARN, path, message, label, comments))

    def _report(self, kind, path, message, as_error, label='', comments=None):
        if as_error:
            self._err(kind, path, message, label, comments)
        else:
            self._warn(kind, path, message, label, comments)

    def count_failed(self, issuetype=ALL):
        with self._lock:
            return len([i for i in self._issues if i.type & issuetype])

    def freeze(self, cancelled=False):
        """
        return a ValidationReport containing the findings collected so far
        """
        with self._lock:
            return ValidationReport(self.target, list(self._issues), cancelled)

class ValidationOptions(object):
    """
    settings that control a validation run
    """

    def __init__(self, strict=False, processes=None, cancel=None,
                 check_tag_manifests=True, logger=None):
        """
        :param bool strict:  if True, tags not declared by the profile are
                             reported as warnings and payload files missing
                             from the payload manifests are reported as errors
        :param int processes:  the number of files to checksum at once
                             (default: the number of available CPUs)
        :param cancel:       an event that, when set, cancels the run
        :type cancel:        threading.Event
        :param bool check_tag_manifests:  if True, verify the entries in tag
                             manifests as well as payload manifests
        :param logger:       the Logger to send messages to
        """
        self.strict = bool(strict)
        self.processes = processes
        self.cancel = cancel or threading.Event()
        self.check_tag_manifests = check_tag_manifests
        if not logger:
            logger = logging.getLogger("bagprofile.validate")
        self.log = logger

    @property
    def cancelled(self):
        return self.cancel.is_set()

class ProfileValidationError(BagValidationError):
    """
    An exception indicating that the target bag is not compliant with
    a BagIt profile in one or more ways.

    This class differs from the bagit.BagValidationError in that it carries
    along all of the result details as a ValidationReport ("report").
    """
    def __init__(self, report):
        self.report = report

        errors = report.errors()
        details = []
        if len(errors) == 0:
            # shouldn't happen
            msg = "Unknown profile validation failure"
        elif len(errors) == 1:
            msg = errors[0].summary
            details = list(errors[0].comments)
        else:
            msg = "{0} validation errors detected".format(len(errors))
            details = [i.description for i in errors]

        super(ProfileValidationError, self).__init__(msg, details)

    def __str__(self):
        errors = self.report.errors()
        if len(errors) < 2:
            return super(ProfileValidationError, self).__str__()

        out = self.message
        if len(errors) > 3:
            out += ", including"
        out += ":"
        for f in errors[0:3]:
            out += "\n\n * "+f.description
        return out

class Validator(object):
    """
    a base class for a class that will apply validation tests to a target
    set at construction.

    This base implementation runs no tests; validate() by default simply
    returns an empty ValidationReport.  Subclasses should override validate()
    to run its tests and enter the results into a ValidationResults object.
    """

    def __init__(self, target):
        """
        initialize the validator

        :param str target:  a name indicating the target bag being validated.
        """
        self.target = target

    def validate(self, results=None):
        """
        run the embedded tests, returning a ValidationReport.  If results is
        provided, findings are added to it as well.

        :rtype: ValidationReport
        """
        if not results:
            results = ValidationResults(self.target)
        return results.freeze()

    def is_valid(self):
        """
        run the embedded tests and return True if no errors were found.
        """
        return self.validate().passed

    def ensure_valid(self):
        """
        run the embedded tests; if any errors are found, raise a
        ProfileValidationError.

        :raise ProfileValidationError:  if any of the tests fail.
        """
        report = self.validate()
        if not report.passed:
            raise ProfileValidationError(report)
        return report
