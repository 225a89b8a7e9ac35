"""
This module provides the BagBuilder class for creating a bag that conforms to
a given BagIt profile from a set of source files and caller-supplied tag
values.

The builder copies the source files into the bag's payload directory, writes
the tag files the profile calls for (filling in defaults and the tags the
software is responsible for, such as Payload-Oxum), and writes the manifests
for each of the profile's algorithms.  A bag built this way validates cleanly
against the same profile.
"""
import os, io, shutil, logging
from collections import OrderedDict
from datetime import date

import fs.osfs, fs.zipfs, fs.tarfs
from fs.copy import copy_dir
from bagit import BagError

from .constants import (PAYLOAD_MANIFEST, TAG_MANIFEST, PAYLOAD_DIR, BAGIT_FILE,
                        BAG_INFO_FILE, DEFAULT_ENCODING, BAG_SOFTWARE_AGENT,
                        DIRECTORY, ZIP, TAR, REQUIRED)
from .exceptions import TagError
from .tags import write_tag_file
from .checksum import ChecksumEngine
from .access.manifest import (Manifest, manifest_filename, format_manifest,
                              normalize_bag_path)

LOGGER = logging.getLogger(__name__)

_tar_compression = [
    (".tar.gz",  "gz"),
    (".tgz",     "gz"),
    (".tar.bz2", "bz2"),
    (".tar.xz",  "xz")
]

class BuildResult(object):
    """
    a description of a bag created by a BagBuilder
    """

    def __init__(self, manifests, tag_files, bagdir):
        self.manifests = list(manifests)
        self.tag_files = list(tag_files)
        self.bagdir = bagdir

    def manifest(self, kind, algorithm):
        """
        return the Manifest of the given kind and algorithm, or None if it
        was not written
        """
        for m in self.manifests:
            if m.kind == kind and m.algorithm == algorithm:
                return m
        return None

    def __repr__(self):
        return "BuildResult({0})".format(repr(self.bagdir))

class BagBuilder(object):
    """
    a class for building a bag that conforms to a BagIt profile.

    The builder writes an unserialized bag into a directory; serialize() can
    then be used to produce a zip or tar file from it.
    """

    def __init__(self, profile, bagdir, processes=None, logger=None):
        """
        :param BagItProfile profile:  the profile the bag must conform to
        :param str bagdir:  the directory to write the bag into; it must
                            either not exist or be empty.  Its basename is the
                            bag's name.
        :param int processes:  the number of files to checksum at once
        :param Logger logger:  the logger to send messages to
        :raises ProfileError:  if the profile is not internally consistent
        """
        profile.ensure_valid()
        self.profile = profile
        self.bagdir = os.path.abspath(bagdir.rstrip('/'))
        self.processes = processes
        if not logger:
            logger = LOGGER
        self.log = logger
        self._hardlink = False
        self._result = None

    @property
    def bagname(self):
        return os.path.basename(self.bagdir)

    @property
    def replicate_with_hardlink(self):
        """
        if True, payload files are added to the bag as hard links to the
        source files when possible; otherwise they are copied.
        """
        return self._hardlink

    @replicate_with_hardlink.setter
    def replicate_with_hardlink(self, yes):
        self._hardlink = bool(yes)

    @property
    def result(self):
        """
        the BuildResult of the last call to build(), or None if the bag has
        not been built yet
        """
        return self._result

    def build(self, source_files, tag_values=None):
        """
        create the bag.

        :param source_files:  the payload to include, either as a list of file
                        and directory paths or as a mapping of payload-relative
                        destination paths to source file paths.  A listed file
                        is placed directly in the payload directory; a listed
                        directory is added recursively as a subdirectory of it.
        :param dict tag_values:  a mapping of tag file paths (e.g.
                        "bag-info.txt") to mappings of tag labels to values
                        (either a string or a list of strings)
        :rtype: BuildResult
        :raises TagError:  if a required tag has no value, a value is not
                        allowed by the profile, or a forbidden tag is given
        :raises ValueError:  if the bag directory is not empty, a source
                        file does not exist, or an undeclared tag file would
                        break the profile's rules on miscellaneous
                        top-level files and directories
        """
        if os.path.exists(self.bagdir) and os.listdir(self.bagdir):
            raise ValueError("bag directory is not empty: "+self.bagdir)

        payload = self._plan_payload(source_files)
        tags = self._gather_tags(tag_values)

        size = sum(os.stat(src).st_size for src in payload.values())
        self._add_system_tags(tags, size, len(payload))
        self._check_tags(tags)

        self.log.info("Building bag %s with %d payload files", self.bagname,
                      len(payload))
        datadir = os.path.join(self.bagdir, PAYLOAD_DIR)
        if not os.path.isdir(datadir):
            os.makedirs(datadir)
        for destpath, srcpath in payload.items():
            self._replicate(srcpath, destpath)

        for path, values in tags.items():
            self.log.debug("Writing tag file %s", path)
            write_tag_file(self._abspath(path), values)

        manifests = self._write_manifests(PAYLOAD_MANIFEST, list(payload.keys()))
        if self.profile.requires_manifest(TAG_MANIFEST):
            tagged = list(tags.keys()) + [m.filename for m in manifests]
            manifests += self._write_manifests(TAG_MANIFEST, tagged)

        self._result = BuildResult(manifests, list(tags.keys()), self.bagdir)
        return self._result

    def _abspath(self, relpath):
        return os.path.join(self.bagdir, *relpath.split('/'))

    def _plan_payload(self, source_files):
        # return an ordered mapping of bag-relative destinations to sources
        if isinstance(source_files, str):
            source_files = [source_files]
        if isinstance(source_files, dict):
            items = list(source_files.items())
        else:
            items = []
            for src in source_files:
                src = src.rstrip(os.sep)
                base = os.path.basename(src)
                if os.path.isdir(src):
                    for dirpath, dirs, files in os.walk(src):
                        dirs.sort()
                        rel = os.path.relpath(dirpath, src)
                        for f in sorted(files):
                            dest = [base] + [p for p in rel.split(os.sep)
                                             if p and p != '.'] + [f]
                            items.append(("/".join(dest),
                                          os.path.join(dirpath, f)))
                else:
                    items.append((base, src))

        out = OrderedDict()
        for dest, src in items:
            if not os.path.isfile(src):
                raise ValueError("source file does not exist: "+src)
            dest = PAYLOAD_DIR + '/' + normalize_bag_path(dest)
            if dest in out:
                raise ValueError("more than one source file for payload path "+
                                 dest)
            out[dest] = src
        return out

    def _replicate(self, srcpath, destpath):
        dest = self._abspath(destpath)
        parent = os.path.dirname(dest)
        if not os.path.exists(parent):
            os.makedirs(parent)

        if self._hardlink:
            try:
                os.link(srcpath, dest)
                return
            except OSError as ex:
                self.log.warning("Unable to create hard link for data file "
                                 "(%s): %s; switching to copy mode.",
                                 destpath, str(ex))
        shutil.copy(srcpath, dest)

    def _gather_tags(self, tag_values):
        # collect the caller's values along with profile defaults for every
        # tag file that will be written
        tags = OrderedDict()
        tags[BAGIT_FILE] = OrderedDict()
        tags[BAG_INFO_FILE] = OrderedDict()
        for path in self.profile.tag_files():
            if not self.profile.is_optional_tag_file(path):
                tags.setdefault(path, OrderedDict())

        for path, values in (tag_values or {}).items():
            path = normalize_bag_path(path)
            if path.split('/')[0] == PAYLOAD_DIR:
                raise ValueError("tag file cannot be in the payload directory: "+
                                 path)
            if path not in tags:
                self._check_misc_tag_file(path)
            filetags = tags.setdefault(path, OrderedDict())
            for label, val in values.items():
                if isinstance(val, str):
                    val = [val]
                filetags[label] = list(val)

        for path, filetags in tags.items():
            for req in self.profile.tag_requirements(path):
                if req.forbidden:
                    if req.label in filetags:
                        raise TagError("{0}: profile forbids tag {1}"
                                       .format(path, req.label), path, req.label)
                elif req.label not in filetags and req.default is not None:
                    filetags[req.label] = [req.default]
        return tags

    def _check_misc_tag_file(self, path):
        # a tag file the profile does not declare must not break its rules on
        # miscellaneous top-level files and directories
        declared = self.profile.tag_files()
        if path in declared:
            return
        if '/' in path:
            dirs = set(f.split('/', 1)[0] for f in declared if '/' in f)
            if not self.profile.allow_misc_top_level_dirs and \
               path.split('/', 1)[0] not in dirs:
                raise ValueError("profile prohibits miscellaneous top-level "
                                 "directories: "+path)
        elif not self.profile.allow_misc_top_level_files:
            raise ValueError("profile prohibits miscellaneous top-level "
                             "files: "+path)

    def _add_system_tags(self, tags, size, count):
        system = [
            (BAGIT_FILE, "BagIt-Version", self.profile.preferred_version()),
            (BAGIT_FILE, "Tag-File-Character-Encoding", DEFAULT_ENCODING),
            (BAG_INFO_FILE, "Bagging-Date", date.today().isoformat()),
            (BAG_INFO_FILE, "Bag-Software-Agent", BAG_SOFTWARE_AGENT),
            (BAG_INFO_FILE, "Payload-Oxum", "{0}.{1}".format(size, count))
        ]
        for path, label, value in system:
            req = self.profile.tag_requirement(path, label)
            if label in tags[path] or (req and req.forbidden):
                continue
            tags[path][label] = [value]

    def _check_tags(self, tags):
        for path, filetags in tags.items():
            for req in self.profile.tag_requirements(path):
                values = filetags.get(req.label)
                if values is None:
                    if req.required:
                        raise TagError("{0}: no value provided for required "
                                       "tag {1}".format(path, req.label),
                                       path, req.label)
                    continue
                for val in values:
                    if not val and req.required and not req.empty_ok:
                        raise TagError("{0}: required tag {1} has an empty "
                                       "value".format(path, req.label),
                                       path, req.label)
                    if not req.allows(val):
                        raise TagError("{0}: value for tag {1} is not one of "
                                       "the allowed values: {2}"
                                       .format(path, req.label, val),
                                       path, req.label)

    def _write_manifests(self, kind, paths):
        algs = list(self.profile.manifest_algorithms)
        entries = OrderedDict((alg, OrderedDict()) for alg in algs)
        engine = ChecksumEngine(self.processes, logger=self.log)
        for relpath, digests in engine.digest_all(self.bagdir, paths, algs):
            for alg in algs:
                entries[alg][relpath] = digests[alg]

        out = []
        for alg in algs:
            name = manifest_filename(kind, alg)
            manifest = Manifest(alg, kind, entries[alg], name)
            self.log.debug("Writing %s", name)
            with io.open(self._abspath(name), 'w', encoding='utf-8') as fd:
                fd.write(format_manifest(manifest))
            out.append(manifest)
        return out

    def serialize(self, fmt, destfile=None):
        """
        write the built bag out as a serialized file.  The bag's contents are
        placed in the archive under a directory named after the bag.

        :param str fmt:  the serialization format, "zip" or "tar"
        :param str destfile:  the path of the file to write; if not provided,
                         the bag directory's path plus an extension (".zip" or
                         ".tar") is used.  For tar files, the compression
                         is set by the extension (.tar.gz, .tgz, .tar.bz2,
                         .tar.xz).
        :return: the path to the serialized file
        :raises ValueError:  if the format is not an archive format or is not
                         accepted by the profile
        :raises BagError:  if the bag has not been built yet
        """
        if fmt not in (ZIP, TAR):
            raise ValueError("serialize(): not a serialization format: "+
                             str(fmt))
        if not self.profile.accepts_format(fmt):
            raise ValueError("serialize(): profile does not accept {0} bags"
                             .format(fmt))
        if not os.path.isfile(os.path.join(self.bagdir, BAGIT_FILE)):
            raise BagError("serialize(): bag has not been built: "+self.bagdir)

        if not destfile:
            destfile = "{0}.{1}".format(self.bagdir, fmt)

        self.log.info("Serializing bag %s to %s", self.bagname, destfile)
        if fmt == ZIP:
            archive = fs.zipfs.ZipFS(destfile, write=True)
        else:
            compression = None
            for ext, comp in _tar_compression:
                if destfile.endswith(ext):
                    compression = comp
                    break
            archive = fs.tarfs.TarFS(destfile, write=True,
                                     compression=compression)

        with fs.osfs.OSFS(self.bagdir) as srcfs, archive:
            archive.makedir(self.bagname)
            copy_dir(srcfs, "/", archive, self.bagname)

        return destfile

def build_bag(profile, bagdir, source_files, tag_values=None, fmt=None,
              destfile=None, processes=None, logger=None):
    """
    build a bag that conforms to the given profile.

    If fmt is given (or the profile requires serialization), the bag is
    also serialized and the path to the serialized file is returned;
    otherwise, the bag directory is returned.

    :param BagItProfile profile:  the profile to conform to
    :param str bagdir:  the directory to write the bag into
    :param source_files:  the payload files (see BagBuilder.build())
    :param dict tag_values:  the tag values to include (see BagBuilder.build())
    :param str fmt:  the serialization format to produce, if any
    :param str destfile:  the path of the serialized file to write
    """
    builder = BagBuilder(profile, bagdir, processes, logger)
    builder.build(source_files, tag_values)

    if not fmt and profile.serialization == REQUIRED:
        fmt = [f for f in (ZIP, TAR) if profile.accepts_format(f)][0]
    if fmt and fmt != DIRECTORY:
        return builder.serialize(fmt, destfile)
    return builder.bagdir
