"""
Common data about bags and BagIt profiles: the supported hash algorithms,
manifest kinds, requirement types, and serialization formats.
"""

PAYLOAD_MANIFEST = "payload"
TAG_MANIFEST     = "tag"
MANIFEST_TYPES = (PAYLOAD_MANIFEST, TAG_MANIFEST)

MD4    = "md4"
MD5    = "md5"
SHA1   = "sha1"
SHA224 = "sha224"
SHA256 = "sha256"
SHA384 = "sha384"
SHA512 = "sha512"
HASH_ALGORITHMS = (MD4, MD5, SHA1, SHA224, SHA256, SHA384, SHA512)

# the number of hex characters in a digest for each algorithm
DIGEST_LENGTHS = {
    MD4:    32,
    MD5:    32,
    SHA1:   40,
    SHA224: 56,
    SHA256: 64,
    SHA384: 96,
    SHA512: 128
}

REQUIRED  = "required"
OPTIONAL  = "optional"
FORBIDDEN = "forbidden"
REQUIREMENT_TYPES = (REQUIRED, OPTIONAL, FORBIDDEN)

DIRECTORY = "directory"
ZIP       = "zip"
TAR       = "tar"
SERIALIZATION_FORMATS = (DIRECTORY, ZIP, TAR)

DEFAULT_BAGIT_VERSION = "1.0"
DEFAULT_ENCODING = "UTF-8"
DEFAULT_ALGORITHMS = (SHA256,)
PAYLOAD_DIR = "data"
BAGIT_FILE = "bagit.txt"
BAG_INFO_FILE = "bag-info.txt"
FETCH_FILE = "fetch.txt"

BAG_SOFTWARE_AGENT = "bagprofile"

# tags in bag-info.txt that the builder fills in itself
SYSTEM_TAGS = ("Bagging-Date", "Bag-Software-Agent", "Payload-Oxum")

def _is_member(name, values):
    try:
        return name.lower() in values
    except AttributeError:
        return False

def is_supported_algorithm(name):
    """
    return True if the given name (case-insensitively) is one of the
    supported hash algorithms.  Any non-string input returns False.
    """
    return _is_member(name, HASH_ALGORITHMS)

def is_valid_requirement_type(name):
    """
    return True if the given name (case-insensitively) is one of required,
    optional, or forbidden.
    """
    return _is_member(name, REQUIREMENT_TYPES)

def is_manifest_type(name):
    """
    return True if the given name is a recognized manifest kind (payload
    or tag).
    """
    return _is_member(name, MANIFEST_TYPES)

def is_serialization_format(name):
    return _is_member(name, SERIALIZATION_FORMATS)

def _2int(sint):
    try:
        return int(sint)
    except ValueError:
        return -1

class Version(object):
    """
    a version class that can facilitate comparisons
    """

    def __init__(self, vers):
        """
        convert a version string to a Version instance
        """
        if isinstance(vers, str):
            self._vs = vers
            self.fields = [_2int(v) for v  in self._vs.split('.')]
        elif isinstance(vers, tuple):
            self._vs = ".".join([str(v) for v in vers])
            self.fields = list(vers)
        else:
            raise TypeError("Input version is not str or tuple: " + str(vers))

    def __str__(self):
        return self._vs

    def __repr__(self):
        return "Version({0})".format(repr(self._vs))

    def __hash__(self):
        return hash(tuple(self.fields))

    def __eq__(self, other):
        if not isinstance(other, Version):
            other = Version(other)
        return self.fields == other.fields

    def __lt__(self, other):
        if not isinstance(other, Version):
            other = Version(other)
        return self.fields < other.fields

    def __le__(self, other):
        if not isinstance(other, Version):
            other = Version(other)
        return self < other or self == other

    def __ge__(self, other):
        return not (self < other)
    def __gt__(self, other):
        return not self.__le__(other)
    def __ne__(self, other):
        return not (self == other)
