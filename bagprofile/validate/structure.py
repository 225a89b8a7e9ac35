"""
This module provides the structural validation pass: it checks that the
manifest kinds a profile requires are present and those it forbids are not,
along with the other profile constraints on a bag's layout (BagIt version,
serialization, fetch.txt, and miscellaneous top-level files and
directories).

The pass also determines the scope of the tag and checksum passes that
follow it.
"""
from ..constants import (PAYLOAD_MANIFEST, TAG_MANIFEST, MANIFEST_TYPES,
                         PAYLOAD_DIR, BAGIT_FILE, BAG_INFO_FILE, FETCH_FILE,
                         is_supported_algorithm)
from ..access.manifest import manifest_filename, parse_manifest_filename
from .base import STRUCTURAL_ERROR

class ValidationScope(object):
    """
    the manifests and tag files that the tag and checksum passes should
    examine, as determined by the structural pass.
    """

    def __init__(self, payload_manifests, tag_manifests, tag_files):
        self.payload_manifests = tuple(payload_manifests)
        self.tag_manifests = tuple(tag_manifests)
        self.tag_files = tuple(tag_files)

class StructureValidator(object):
    """
    a validator that tests the layout of a bag against a profile
    """

    def __init__(self, bag, profile, options):
        self.bag = bag
        self.profile = profile
        self.options = options

    def validate(self, results):
        """
        run the structural tests, adding findings to results, and return the
        ValidationScope for the remaining passes.
        """
        self.validate_manifest_kinds(results)
        self.validate_manifest_algorithms(results)
        self.validate_payload_directory(results)
        self.validate_version(results)
        self.validate_serialization(results)
        self.validate_fetch(results)
        self.validate_top_level(results)

        return self.scope()

    def _supported_manifests(self, kind):
        return [f for f in self.bag.manifest_files(kind)
                if is_supported_algorithm(parse_manifest_filename(f)[1])]

    def validate_manifest_kinds(self, results):
        for kind in MANIFEST_TYPES:
            if self.profile.requires_manifest(kind) and \
               not self._supported_manifests(kind):
                results._err(STRUCTURAL_ERROR, "",
                             "profile requires a {0} manifest with a supported "
                             "algorithm, but none was found".format(kind),
                             kind)

            if self.profile.forbids_manifest(kind):
                for name in self.bag.manifest_files(kind):
                    results._err(STRUCTURAL_ERROR, name,
                                 "profile forbids {0} manifests".format(kind),
                                 kind)

        for name in self.bag.unsupported_manifests:
            results._warn(STRUCTURAL_ERROR, name,
                          "manifest uses an unsupported algorithm and was "
                          "ignored")

    def validate_manifest_algorithms(self, results):
        """
        check that each required manifest kind is provided for every
        algorithm the profile names.  This is only checked for kinds that
        have at least one manifest present.
        """
        for kind in self.profile.manifests_required:
            present = self._supported_manifests(kind)
            if not present:
                continue
            for alg in self.profile.manifest_algorithms:
                name = manifest_filename(kind, alg)
                if name not in present:
                    results._err(STRUCTURAL_ERROR, name,
                                 "profile requires a {0} manifest using {1}"
                                 .format(kind, alg), alg)

    def validate_payload_directory(self, results):
        if not self.bag.isdir(PAYLOAD_DIR):
            results._err(STRUCTURAL_ERROR, PAYLOAD_DIR,
                         "payload directory does not exist")

    def validate_version(self, results):
        version = self.bag.version
        if not self.profile.accepts_version(version):
            results._err(STRUCTURAL_ERROR, BAGIT_FILE,
                         "BagIt version {0} is not accepted by the profile"
                         .format(version), "BagIt-Version",
                         ["accepted versions: " +
                          ", ".join(self.profile.accept_bagit_versions)])

    def validate_serialization(self, results):
        fmt = self.bag.serialization
        if not self.profile.accepts_format(fmt):
            results._err(STRUCTURAL_ERROR, "",
                         "bag serialization ({0}) is not accepted by the "
                         "profile".format(fmt), fmt)

    def validate_fetch(self, results):
        if not self.profile.allow_fetch_txt and self.bag.isfile(FETCH_FILE):
            results._err(STRUCTURAL_ERROR, FETCH_FILE,
                         "profile prohibits a fetch.txt file")

    def validate_top_level(self, results):
        if not self.profile.allow_misc_top_level_files:
            allowed = set([BAGIT_FILE, BAG_INFO_FILE, FETCH_FILE])
            allowed.update(self.bag.manifest_files())
            allowed.update(f for f in self.profile.tag_files() if '/' not in f)
            for name in self.bag.top_level_files():
                if name not in allowed:
                    results._err(STRUCTURAL_ERROR, name,
                                 "profile prohibits miscellaneous top-level "
                                 "files")

        if not self.profile.allow_misc_top_level_dirs:
            allowed = set([PAYLOAD_DIR])
            allowed.update(f.split('/', 1)[0]
                           for f in self.profile.tag_files() if '/' in f)
            for name in self.bag.top_level_dirs():
                if name not in allowed:
                    results._err(STRUCTURAL_ERROR, name,
                                 "profile prohibits miscellaneous top-level "
                                 "directories")

    def scope(self):
        """
        return the ValidationScope: all parsed payload manifests, the parsed
        tag manifests unless the profile forbids them, and the profile's tag
        files.
        """
        tagmans = []
        if not self.profile.forbids_manifest(TAG_MANIFEST):
            tagmans = self.bag.manifests(TAG_MANIFEST)
        return ValidationScope(self.bag.manifests(PAYLOAD_MANIFEST), tagmans,
                               self.profile.tag_files())
