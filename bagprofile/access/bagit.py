"""
This module provides read-only access to a bag, whether it is an ordinary
directory or serialized as a zip or tar file.  Access goes through the fs
module so that all forms can be treated the same way.

A :py:class:`ReadOnlyBag` is the input to validation:  it records the bag's
declaration (bagit.txt), its parsed manifests, and the tag and payload files
found on disk.  It is never changed by the validation engine.
"""
import os, codecs, logging

import fs.osfs, fs.zipfs, fs.tarfs
import fs.errors
from fs import open_fs

from ..constants import (PAYLOAD_MANIFEST, TAG_MANIFEST, PAYLOAD_DIR, BAGIT_FILE,
                         BAG_INFO_FILE, DEFAULT_ENCODING, DIRECTORY, ZIP, TAR,
                         is_supported_algorithm)
from ..exceptions import ParseError, FatalIOError, is_fatal_error
from ..tags import parse_tags, tags_to_dict
from .manifest import parse_manifest, parse_manifest_filename

LOGGER = logging.getLogger(__name__)

class Path(object):
    """
    A container class for pointing to a path within a specific FS instance
    """
    def __init__(self, filesys, path, prefix=None):
        """
        wrap a path within a filesystem, given as an FS object
        :param filesys FS:  the filesystem where the path is located
        :param path str:    the path to the location within the filesystem
        :param prefix str:  a label for the filesystem to prepend to the path
                            in the string representation of the full path.
        """
        self.fs = filesys
        self.path = str(path)
        if prefix is None:
            prefix = repr(filesys) + ":"
        self._pfx = prefix

    def relpath(self, relpath):
        """
        return a Path instance for a location relative to this one, which is
        assumed to be a directory.  The target need not exist.
        """
        if not relpath:
            return Path(self.fs, self.path, self._pfx)

        path = ""
        if self.path:
            path += self.path+'/'
        path += relpath.lstrip('/')

        return Path(self.fs, path, self._pfx)

    def subfspath(self):
        """
        return a new Path whose filesystem is rooted at the directory this
        Path points to.

        :raises fs.errors.DirectoryExpected: if this path is not a directory
        """
        if not self.path:
            return Path(self.fs, self.path, self._pfx)
        return Path(self.fs.opendir(self.path), "",
                    self._pfx+self.path.lstrip('/')+'/')

    def exists(self):
        return self.fs.exists(self.path)

    def isfile(self):
        return self.fs.isfile(self.path)

    def isdir(self):
        return self.fs.isdir(self.path)

    def __str__(self):
        return "{0}{1}".format(self._pfx, self.path)

    def __repr__(self):
        return "{0}:{1}".format(repr(self.fs), self.path)

def open_text_file(path, mode='r', encoding='utf-8', errors='strict',
                   buffering=-1):
    """
    return a file-like object for the text file at the given Path
    """
    return path.fs.open(path.path, mode, buffering, encoding, errors)

def open_bin_file(path, mode='r', buffering=-1):
    """
    return a file-like object for the binary file at the given Path
    """
    return path.fs.openbin(path.path, mode, buffering)

class ReadOnlyBag(object):
    """
    A read-only representation of a (possibly serialized) bag.

    Opening the bag reads its bagit.txt declaration, lists its files, and
    parses its manifests.  A manifest that cannot be parsed does not prevent
    the bag from opening; its error is recorded in manifest_errors.
    To open a serialized bag, the factory function open_bag() is recommended
    instead of instantiating this class directly.
    """

    def __init__(self, bagpath, name=None, location=None,
                 serialization=DIRECTORY):
        """
        open the bag with the given location
        :param bagpath:  either a Path instance or a filepath to the bag's
                         root directory.  A Path instance must be used if the
                         bag is in a serialized form.
        :type bagpath:   str or Path
        :param str name:  the name of bag (i.e. its nominal base directory); if
                          None the name will be the basename for the given
                          bagpath
        :param str location:  the location of the bag, used for reporting
        :param str serialization:  the form of the bag:  "directory", "zip",
                          or "tar"
        :raises ParseError:  if the bag does not have a parseable bagit.txt
                          file with the required tags
        """
        if not bagpath:
            raise ValueError("path to bag root directory not provided")
        if not isinstance(bagpath, Path):
            bagpath = bagpath.rstrip("/")
            parent = os.path.dirname(bagpath) or "."
            bagname = os.path.basename(bagpath)
            if not location:
                location = bagpath
            bagpath = Path(fs.osfs.OSFS(parent), bagname, parent+"/")

        if not name:
            name = os.path.basename(bagpath.path)
        self._name = name
        self._location = location or str(bagpath)
        self._serial = serialization
        self._root = bagpath.subfspath()

        self._declaration = {}
        self._manifests = []
        self._manifest_errors = []
        self._unsupported = []
        self._payload = []
        self._tagfiles = []
        self._toplevel_files = []
        self._toplevel_dirs = []

        try:
            self._open()
        except (OSError, fs.errors.FSError) as ex:
            if is_fatal_error(ex):
                LOGGER.exception("Unable to read bag %s", self._location)
                raise FatalIOError(self._location, ex)
            raise

    def _open(self):
        self._read_declaration()
        self._scan()
        self._load_manifests()

    def _read_declaration(self):
        if not self._root.fs.isfile(BAGIT_FILE):
            raise ParseError(BAGIT_FILE, "bag declaration file not found in "+
                             str(self._root))

        with open_text_file(self._root.relpath(BAGIT_FILE),
                            encoding='utf-8-sig') as fd:
            tags = tags_to_dict(parse_tags(fd, BAGIT_FILE))

        for tag in ('BagIt-Version', 'Tag-File-Character-Encoding'):
            if tag not in tags:
                raise ParseError(BAGIT_FILE, "missing required tag: "+tag)
        self._declaration = dict((k, v[-1]) for k, v in tags.items())

        try:
            tuple(int(i) for i in self.version.split('.', 1))
        except ValueError:
            raise ParseError(BAGIT_FILE, "Bag version numbers must be "
                             "MAJOR.MINOR numbers, not "+self.version)
        try:
            codecs.lookup(self.encoding)
        except LookupError:
            raise ParseError(BAGIT_FILE, "Unsupported encoding: "+self.encoding)

    def _scan(self):
        for info in self._root.fs.scandir("/"):
            if info.is_dir:
                self._toplevel_dirs.append(info.name)
            else:
                self._toplevel_files.append(info.name)
        self._toplevel_dirs.sort()
        self._toplevel_files.sort()

        for f in self._root.fs.walk.files():
            path = f.lstrip('/')
            if path.startswith(PAYLOAD_DIR+'/'):
                self._payload.append(path)
            elif '/' in path or not parse_manifest_filename(path):
                self._tagfiles.append(path)
        self._payload.sort()
        self._tagfiles.sort()

    def _load_manifests(self):
        for filename in self._toplevel_files:
            parsed = parse_manifest_filename(filename)
            if not parsed:
                continue
            if not is_supported_algorithm(parsed[1]):
                LOGGER.warning("%s: ignoring manifest with unsupported "
                               "algorithm: %s", self._name, filename)
                self._unsupported.append(filename)
                continue

            try:
                with self.open_text_file(filename, self.encoding) as fd:
                    self._manifests.append(parse_manifest(filename, fd))
            except UnicodeDecodeError:
                self._manifest_errors.append(
                    ParseError(filename, "not encoded as "+self.encoding))
            except ParseError as ex:
                LOGGER.error("%s: %s", self._name, ex.message)
                self._manifest_errors.append(ex)

    @property
    def name(self):
        """
        the name of the bag (its nominal root directory)
        """
        return self._name

    @property
    def location(self):
        return self._location

    @property
    def serialization(self):
        """
        the form the bag was found in: "directory", "zip", or "tar"
        """
        return self._serial

    @property
    def declaration(self):
        """
        a copy of the tags found in bagit.txt
        """
        return dict(self._declaration)

    @property
    def version(self):
        return self._declaration.get('BagIt-Version')

    @property
    def encoding(self):
        return self._declaration.get('Tag-File-Character-Encoding',
                                     DEFAULT_ENCODING)

    def manifests(self, kind=None):
        """
        return the successfully parsed manifests, optionally restricted to
        a given kind ("payload" or "tag")
        """
        return [m for m in self._manifests if kind is None or m.kind == kind]

    def payload_manifests(self):
        return self.manifests(PAYLOAD_MANIFEST)

    def tag_manifests(self):
        return self.manifests(TAG_MANIFEST)

    @property
    def manifest_errors(self):
        """
        the ParseErrors raised while parsing the bag's manifests
        """
        return tuple(self._manifest_errors)

    @property
    def unsupported_manifests(self):
        """
        the names of manifest files whose algorithm is not supported
        """
        return tuple(self._unsupported)

    def manifest_files(self, kind=None):
        """
        return the names of all manifest files present (including those that
        failed to parse or use an unsupported algorithm), optionally
        restricted to one kind.
        """
        out = []
        for name in self._toplevel_files:
            parsed = parse_manifest_filename(name)
            if parsed and (kind is None or parsed[0] == kind):
                out.append(name)
        return out

    def payload_files(self):
        """
        return the paths of the files found below the payload directory
        """
        return tuple(self._payload)

    def tag_files(self):
        """
        return the paths of the files outside of the payload directory that
        are not manifests
        """
        return tuple(self._tagfiles)

    def top_level_files(self):
        return tuple(self._toplevel_files)

    def top_level_dirs(self):
        return tuple(self._toplevel_dirs)

    def relpath(self, path):
        """
        return a Path for the given file in the bag
        """
        return self._root.relpath(path)

    def exists(self, path):
        """
        return True if the given path exists within the bag relative to the
        bag's root directory.
        """
        return self._root.fs.exists(path)

    def isfile(self, path):
        return self._root.fs.isfile(path)

    def isdir(self, path):
        return self._root.fs.isdir(path)

    def open_text_file(self, path, encoding='utf-8', errors='strict'):
        """
        open the file with the given path for reading and return a file
        object for it.  This cannot be used to open for writing.
        """
        return open_text_file(self._root.relpath(path), 'r', encoding, errors)

    def read_tags(self, path):
        """
        read and return the tags in the tag file with the given path as a
        list of ParsedTag instances.

        :raises ParseError:  if the file is not a legal tag file
        """
        enc = self.encoding
        if enc.lower().replace('-', '') == 'utf8':
            enc = 'utf-8-sig'
        try:
            with self.open_text_file(path, enc) as fd:
                return parse_tags(fd, path)
        except UnicodeDecodeError:
            raise ParseError(path, "not encoded as "+self.encoding)

    def info(self):
        """
        return the bag-info.txt tags as a dictionary mapping each label to
        its list of values.  An empty dictionary is returned if the file does
        not exist.
        """
        if not self.isfile(BAG_INFO_FILE):
            return {}
        return tags_to_dict(self.read_tags(BAG_INFO_FILE))

    def file_size(self, path):
        return self._root.fs.getsize(path)

    def __str__(self):
        return str(self._root)

_ext_fs_lookup = [
    (".zip",     fs.zipfs.ZipFS, ZIP),
    (".tar",     fs.tarfs.TarFS, TAR),
    (".tar.gz",  fs.tarfs.TarFS, TAR),
    (".tar.bz2", fs.tarfs.TarFS, TAR),
    (".tgz",     fs.tarfs.TarFS, TAR),
    (".tar.xz",  fs.tarfs.TarFS, TAR)
]

def open_bag(location):
    """
    A factory function for opening a bag; it returns a ReadOnlyBag instance
    opened for a given bag location.  The location string is examined to
    determine the form of the bag (a directory or a serialized file).

    :raises OSError:      if the location does not exist
    :raises ParseError:   if the bag's bagit.txt is missing or malformed
    :raises ValueError:   if the form of the bag is not recognized
    """
    if not location:
        raise ValueError("open_bag: empty location string")
    location = str(location)

    fspath = None
    name = None
    serial = DIRECTORY
    if '://' in location:
        # an FS URL pointing to the bag's root directory
        name = location.rstrip("/").split("/")[-1]
        fspath = Path(open_fs(location), "", location+':')

    elif not os.path.exists(location):
        raise OSError(2, "File not found: "+location)

    elif os.path.isdir(location):
        # it's a unserialized bag on local disk
        location = location.rstrip("/")
        name = os.path.basename(location)
        parent = os.path.dirname(location) or "."
        fspath = Path(fs.osfs.OSFS(parent), name, "bag:")

    elif os.path.isfile(location):
        # a serialized bag on local disk
        for ext, fsclass, fmt in _ext_fs_lookup:
            if location.endswith(ext):
                label = os.path.basename(location)+':'
                bfs = fsclass(location)
                name = None
                for d in bfs.walk.dirs():
                    if bfs.isfile("/".join([d, BAGIT_FILE])):
                        name = d.strip('/')
                        break
                if not name:
                    bfs.close()
                    raise ParseError(os.path.basename(location),
                                     "file does not appear to contain a "
                                     "serialized bag")
                fspath = Path(bfs, name, label)
                name = name.split("/")[-1]
                serial = fmt
                break
        if not fspath:
            raise ValueError("open_bag: bag serialization not recognized for "+
                             location)

    if not fspath:
        raise ValueError("open_bag: unsupported bag type/location: "+location)

    return ReadOnlyBag(fspath, name, location, serial)
