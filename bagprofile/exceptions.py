"""
exceptions that can be raised while loading profiles, reading bags, or
building bags.  All of them derive from the bagit module's BagError.
"""
import errno

from bagit import BagError

# errno values indicating a failing device or filesystem rather than a
# problem with a single file
FATAL_ERRNOS = set([errno.EIO, errno.ENXIO, errno.ENODEV, errno.EROFS,
                    errno.ESTALE])

class ProfileError(BagError):
    """
    an exception indicating that a BagIt profile is malformed or internally
    contradictory.
    """
    def __init__(self, message, profile=None):
        self.profile = profile
        super(ProfileError, self).__init__(message)

    @property
    def message(self):
        return self.args[0]

class ParseError(BagError):
    """
    an exception indicating that a manifest or tag file is not syntactically
    correct.
    """
    def __init__(self, filename, message, lineno=None, line=None):
        """
        :param str filename:  the bag-relative path of the file that failed
                              to parse
        :param str message:   a description of the problem
        :param int lineno:    the (1-based) number of the offending line, if
                              known
        :param str line:      the raw content of the offending line
        """
        self.filename = filename
        self.lineno = lineno
        self.line = line
        if lineno is not None:
            message = "{0}, line {1}: {2}".format(filename, lineno, message)
            if line is not None:
                message += ": " + repr(line)
        else:
            message = "{0}: {1}".format(filename, message)
        super(ParseError, self).__init__(message)

    @property
    def message(self):
        return self.args[0]

class StructuralError(BagError):
    """
    an exception indicating that a bag is missing a manifest kind the profile
    requires or contains one it forbids.
    """
    @property
    def message(self):
        return self.args[0]

class TagError(BagError):
    """
    an exception indicating a missing, forbidden, or invalid tag value
    """
    def __init__(self, message, tagfile=None, label=None):
        self.tagfile = tagfile
        self.label = label
        super(TagError, self).__init__(message)

    @property
    def message(self):
        return self.args[0]

class ChecksumError(BagError):
    """
    an exception indicating a digest mismatch or a missing payload file
    """
    def __init__(self, message, path=None, algorithm=None):
        self.path = path
        self.algorithm = algorithm
        super(ChecksumError, self).__init__(message)

    @property
    def message(self):
        return self.args[0]

class FatalIOError(BagError):
    """
    an exception indicating a filesystem or device failure that makes it
    pointless to continue reading the bag.
    """
    def __init__(self, path, cause):
        self.path = path
        self.cause = cause
        super(FatalIOError, self).__init__(
            "Fatal I/O error while reading {0}: {1}".format(path, cause))

def is_fatal_error(ex):
    """
    return True if the given exception (an OSError or an fs.errors.FSError
    wrapping one) signals a device or filesystem failure.
    """
    err = getattr(ex, 'errno', None)
    if err is None and getattr(ex, 'exc', None) is not None:
        err = getattr(ex.exc, 'errno', None)
    return err in FATAL_ERRNOS
