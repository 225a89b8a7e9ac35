"""
This module provides the Manifest class and functions for reading and writing
payload manifests (manifest-ALG.txt) and tag manifests (tagmanifest-ALG.txt).
"""
import re, codecs, logging
from collections import OrderedDict

import fs.path
import fs.errors
from bagit import _decode_filename, _encode_filename

from ..constants import (PAYLOAD_MANIFEST, TAG_MANIFEST, DIGEST_LENGTHS,
                         is_supported_algorithm)
from ..exceptions import ParseError

LOGGER = logging.getLogger(__name__)

PMAN = "manifest"
TMAN = "tagmanifest"
_prefixes = { PAYLOAD_MANIFEST: PMAN, TAG_MANIFEST: TMAN }

_manfilere = re.compile(r'^(tag)?manifest-([^/]+)\.txt$')
_hexre = re.compile(r'^[0-9a-fA-F]+$')

def manifest_filename(kind, algorithm):
    """
    return the name of the manifest file of the given kind ("payload" or
    "tag") for the given algorithm.
    """
    return "{0}-{1}.txt".format(_prefixes[kind], algorithm.lower())

def parse_manifest_filename(filename):
    """
    return a (kind, algorithm) tuple describing the manifest with the given
    file name, or None if the name does not look like a manifest file.  The
    algorithm is not checked for support.
    """
    m = _manfilere.match(filename)
    if not m:
        return None
    kind = (m.group(1) and TAG_MANIFEST) or PAYLOAD_MANIFEST
    return (kind, m.group(2).lower())

def normalize_bag_path(path):
    """
    return the given bag-relative path in normalized form (forward slashes,
    no "." or redundant separators).

    :raises ValueError:  if the path is absolute, empty, or points outside
                         of the bag
    """
    if not path or fs.path.isabs(path) or path.startswith('~') or \
       re.match(r'^[A-Za-z]:', path) or '\\' in path:
        raise ValueError("path is not a safe relative path: "+repr(path))
    try:
        path = fs.path.normpath(path)
    except fs.errors.IllegalBackReference:
        raise ValueError("path points outside of the bag: "+repr(path))
    if not path or path == '.' or path.startswith('../'):
        raise ValueError("path points outside of the bag: "+repr(path))
    return path

class Manifest(object):
    """
    the parsed contents of a single manifest file: a mapping of bag-relative
    file paths to their (lower-case, hexadecimal) digests computed with a
    single algorithm.
    """

    def __init__(self, algorithm, kind=PAYLOAD_MANIFEST, entries=None,
                 filename=None):
        if not is_supported_algorithm(algorithm):
            raise ValueError("Unsupported hash algorithm: "+str(algorithm))
        if kind not in _prefixes:
            raise ValueError("Not a manifest kind: "+str(kind))
        self._alg = algorithm.lower()
        self._kind = kind
        self._entries = OrderedDict(entries or [])
        if not filename:
            filename = manifest_filename(kind, self._alg)
        self._name = filename

    @property
    def algorithm(self):
        return self._alg

    @property
    def kind(self):
        return self._kind

    @property
    def filename(self):
        return self._name

    @property
    def entries(self):
        """
        a copy of the mapping of paths to digests
        """
        return OrderedDict(self._entries)

    def paths(self):
        return list(self._entries.keys())

    def get(self, path, default=None):
        return self._entries.get(path, default)

    def __contains__(self, path):
        return path in self._entries

    def __len__(self):
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries.items())

    def __repr__(self):
        return "Manifest({0}, {1} entries)".format(self._name,
                                                   len(self._entries))

def _lines(content):
    if isinstance(content, bytes):
        content = content.decode('utf-8')
    if isinstance(content, str):
        content = content.splitlines()
    return content

def parse_manifest(filename, content):
    """
    parse the contents of a manifest file.

    The algorithm and manifest kind are determined from the filename, which
    must match manifest-ALG.txt or tagmanifest-ALG.txt.  Each non-blank line
    of the content must consist of a hexadecimal digest followed by
    whitespace and a bag-relative file path.

    :param str filename:  the name (or bag-relative path) of the manifest file
    :param content:       the manifest's contents, given as a str, as bytes
                          (UTF-8 encoded), or as an iterable of lines (such as
                          an open text file)
    :rtype: Manifest
    :raises ParseError:   if the filename is not recognized, the algorithm is
                          not supported, or any line is malformed.  For the
                          latter, the error will identify the line number and
                          content.
    """
    parsed = parse_manifest_filename(fs.path.basename(filename))
    if not parsed:
        raise ParseError(filename, "not a manifest file name")
    kind, alg = parsed
    if not is_supported_algorithm(alg):
        raise ParseError(filename, "unsupported hash algorithm: "+alg)
    explen = DIGEST_LENGTHS[alg]

    entries = OrderedDict()
    lineno = 0
    for line in _lines(content):
        lineno += 1
        raw = line.rstrip("\r\n")
        if lineno == 1 and raw.startswith(codecs.BOM_UTF8.decode('utf-8')):
            LOGGER.warning("%s contains an unnecessary byte-order mark",
                           filename)
            raw = raw[1:]

        line = raw.strip()
        # Ignore blank lines and comments.
        if line == "" or line.startswith("#"):
            continue

        entry = line.split(None, 1)
        if len(entry) != 2:
            raise ParseError(filename, "expected a digest and a file path",
                             lineno, raw)
        digest, path = entry

        if not _hexre.match(digest):
            raise ParseError(filename, "digest is not a hexadecimal value",
                             lineno, raw)
        if len(digest) != explen:
            raise ParseError(filename, "digest has the wrong length for "+alg,
                             lineno, raw)

        path = _decode_filename(path.lstrip("*"))
        try:
            path = normalize_bag_path(path)
        except ValueError as ex:
            raise ParseError(filename, str(ex), lineno, raw)

        if path in entries:
            raise ParseError(filename, "file path listed more than once",
                             lineno, raw)
        entries[path] = digest.lower()

    return Manifest(alg, kind, entries, filename)

def format_manifest(manifest):
    """
    return the text of a manifest file for the given Manifest, one line per
    entry, sorted by path.
    """
    lines = ["{0}  {1}\n".format(digest, _encode_filename(path))
             for path, digest in sorted(manifest.entries.items())]
    return "".join(lines)
