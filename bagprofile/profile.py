"""
This module provides the BagItProfile class, the parsed form of a BagIt
profile description, along with functions for loading one from its JSON
serialization.

A profile is immutable once it is created; a single instance can be shared
by any number of concurrent validation runs.
"""
import json
import logging
from collections import OrderedDict

from .constants import (PAYLOAD_MANIFEST, REQUIRED, OPTIONAL,
                        FORBIDDEN, DIRECTORY, ZIP, TAR, PAYLOAD_DIR, BAGIT_FILE,
                        DEFAULT_ALGORITHMS, DEFAULT_BAGIT_VERSION, Version,
                        is_supported_algorithm, is_valid_requirement_type,
                        is_manifest_type, is_serialization_format)
from .tags import TagRequirement
from .exceptions import ProfileError
from .access.manifest import normalize_bag_path

LOGGER = logging.getLogger(__name__)

class _JSONObject(OrderedDict):
    # remembers keys that appeared more than once in the source document
    def __init__(self, pairs=()):
        super(_JSONObject, self).__init__()
        self.duplicates = []
        for key, val in pairs:
            if key in self:
                self.duplicates.append(key)
            self[key] = val

def _as_str_list(value, field):
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)) or \
       not all(isinstance(v, str) for v in value):
        raise ProfileError("{0}: expected a list of strings".format(field))
    return list(value)

def _check_all(values, test, field, what):
    for val in values:
        if not test(val):
            raise ProfileError("{0}: {1} is not a recognized {2}"
                               .format(field, repr(val), what))
    return tuple(v.lower() for v in values)

class BagItProfile(object):
    """
    a description of what a conforming bag must, may, and must not contain.
    """

    def __init__(self, name="", description="", identifier=None,
                 accept_bagit_versions=None, manifests_required=None,
                 manifests_forbidden=None, manifest_algorithms=None,
                 serialization=OPTIONAL, serialization_formats=None,
                 allow_fetch_txt=True, allow_misc_top_level_files=True,
                 allow_misc_top_level_dirs=True, tag_files=None,
                 optional_tag_files=None):
        """
        create the profile.

        :param list accept_bagit_versions:  the BagIt versions a bag may
                               declare; empty means any version is accepted
        :param list manifests_required:  the manifest kinds ("payload", "tag")
                               a bag must include
        :param list manifests_forbidden: the manifest kinds a bag must not
                               include
        :param list manifest_algorithms: the hash algorithms each required
                               manifest kind must be provided with
                               (default: sha256)
        :param str serialization:  whether a bag must be serialized
                               ("required", "optional", or "forbidden")
        :param list serialization_formats:  the accepted forms of a bag,
                               drawn from "directory", "zip", and "tar"; empty
                               means any form is accepted.
        :param dict tag_files: a mapping of tag file paths to the requirements
                               on its tags; each value is either a mapping of
                               tag labels to TagRequirement instances or a
                               list of TagRequirement instances.
        :param list optional_tag_files:  tag files whose requirements only
                               apply when the file is present in the bag.
        :raises ProfileError:  if any of the values is not recognized
        """
        self._name = name or ""
        self._desc = description or ""
        self._id = identifier
        self._versions = tuple(_as_str_list(accept_bagit_versions,
                                            "acceptBagItVersion"))

        self._mreq = _check_all(_as_str_list(manifests_required,
                                             "manifestsRequired"),
                                is_manifest_type, "manifestsRequired",
                                "manifest kind")
        self._mforb = _check_all(_as_str_list(manifests_forbidden,
                                              "manifestsForbidden"),
                                 is_manifest_type, "manifestsForbidden",
                                 "manifest kind")
        if manifest_algorithms is None:
            manifest_algorithms = list(DEFAULT_ALGORITHMS)
        self._algs = _check_all(_as_str_list(manifest_algorithms,
                                             "manifestAlgorithms"),
                                is_supported_algorithm, "manifestAlgorithms",
                                "hash algorithm")

        if not is_valid_requirement_type(serialization):
            raise ProfileError("serialization: {0} is not a valid requirement "
                               "type".format(repr(serialization)))
        self._serial = serialization.lower()
        self._sformats = _check_all(_as_str_list(serialization_formats,
                                                 "serializationFormats"),
                                    is_serialization_format,
                                    "serializationFormats",
                                    "serialization format")

        self._allow_fetch = bool(allow_fetch_txt)
        self._allow_misc_files = bool(allow_misc_top_level_files)
        self._allow_misc_dirs = bool(allow_misc_top_level_dirs)

        self._tagfiles = OrderedDict()
        for path, reqs in (tag_files or {}).items():
            self._tagfiles[path] = self._load_requirements(path, reqs)
        self._opttagfiles = tuple(_as_str_list(optional_tag_files,
                                               "tagFilesOptional"))

    def _load_requirements(self, path, reqs):
        out = OrderedDict()
        if isinstance(reqs, dict):
            dups = getattr(reqs, 'duplicates', [])
            if dups:
                raise ProfileError("tagFilesRequired: {0} declares tag {1} more "
                                   "than once".format(path, dups[0]))
            reqs = list(reqs.values())
        for req in reqs:
            if not isinstance(req, TagRequirement):
                raise ProfileError("tagFilesRequired: {0}: not a tag "
                                   "requirement: {1}".format(path, repr(req)))
            if req.label in out:
                raise ProfileError("tagFilesRequired: {0} declares tag {1} more "
                                   "than once".format(path, req.label))
            out[req.label] = req
        return out

    @property
    def name(self):
        return self._name

    @property
    def description(self):
        return self._desc

    @property
    def identifier(self):
        return self._id

    @property
    def accept_bagit_versions(self):
        return self._versions

    @property
    def manifests_required(self):
        return self._mreq

    @property
    def manifests_forbidden(self):
        return self._mforb

    @property
    def manifest_algorithms(self):
        return self._algs

    @property
    def serialization(self):
        return self._serial

    @property
    def serialization_formats(self):
        return self._sformats

    @property
    def allow_fetch_txt(self):
        return self._allow_fetch

    @property
    def allow_misc_top_level_files(self):
        return self._allow_misc_files

    @property
    def allow_misc_top_level_dirs(self):
        return self._allow_misc_dirs

    @property
    def optional_tag_files(self):
        return self._opttagfiles

    def requires_manifest(self, kind):
        return kind in self._mreq

    def forbids_manifest(self, kind):
        return kind in self._mforb

    def accepts_version(self, version):
        """
        return True if a bag declaring the given BagIt version is acceptable
        """
        if not self._versions:
            return True
        try:
            return any(Version(version) == v for v in self._versions)
        except TypeError:
            return False

    def preferred_version(self):
        """
        return the BagIt version that a newly built bag should declare: the
        highest accepted version.
        """
        if not self._versions:
            return DEFAULT_BAGIT_VERSION
        return str(max(Version(v) for v in self._versions))

    def accepts_format(self, fmt):
        """
        return True if a bag in the given form (directory, zip, tar) is
        acceptable.
        """
        if self._serial == REQUIRED and fmt == DIRECTORY:
            return False
        if self._serial == FORBIDDEN and fmt != DIRECTORY:
            return False
        return not self._sformats or fmt in self._sformats

    def tag_files(self):
        """
        return the paths of the tag files that the profile places
        requirements on, including those that are optional.
        """
        out = list(self._tagfiles.keys())
        out.extend(f for f in self._opttagfiles if f not in self._tagfiles)
        return out

    def tag_requirements(self, path):
        """
        return the tuple of TagRequirement instances declared for the tag
        file with the given path
        """
        return tuple(self._tagfiles.get(path, {}).values())

    def tag_requirement(self, path, label):
        """
        return the TagRequirement for the given tag or None if the profile
        does not declare one.
        """
        return self._tagfiles.get(path, {}).get(label)

    def is_optional_tag_file(self, path):
        return path in self._opttagfiles

    def validate(self):
        """
        check this profile for internal consistency, returning a list of
        ProfileError instances describing the contradictions found.  An empty
        list means the profile is usable.
        """
        out = []
        def problem(msg):
            out.append(ProfileError(msg, self))

        for kind in self._mreq:
            if kind in self._mforb:
                problem("manifest kind {0} is both required and forbidden"
                        .format(kind))
        if PAYLOAD_MANIFEST in self._mforb:
            problem("payload manifests cannot be forbidden")
        if not self._algs:
            problem("no manifest algorithms specified")

        if self._serial == REQUIRED and self._sformats and \
           not (ZIP in self._sformats or TAR in self._sformats):
            problem("serialization is required but no archive format "
                    "is accepted")
        if self._serial == FORBIDDEN and self._sformats and \
           DIRECTORY not in self._sformats:
            problem("serialization is forbidden but the directory form "
                    "is not accepted")

        if BAGIT_FILE in self._opttagfiles:
            problem(BAGIT_FILE+" cannot be an optional tag file")
        for path in self.tag_files():
            try:
                outside = normalize_bag_path(path).split('/')[0] != PAYLOAD_DIR
            except ValueError:
                outside = False
            if not outside:
                problem("{0}: tag files must be within the bag and outside "
                        "of the payload directory".format(path))

        for path, reqs in self._tagfiles.items():
            for req in reqs.values():
                if req.contradictory:
                    problem("{0}: tag {1} is declared both required and {2}"
                            .format(path, req.label, req.requirement))
                if req.default is not None:
                    if req.forbidden:
                        problem("{0}: forbidden tag {1} has a default value"
                                .format(path, req.label))
                    elif req.values and req.default not in req.values:
                        problem("{0}: default value for tag {1} is not one "
                                "of its allowed values".format(path, req.label))
        return out

    def ensure_valid(self):
        """
        raise the first problem found by validate(), if any
        """
        problems = self.validate()
        if problems:
            for p in problems[1:]:
                LOGGER.error("Profile %s: %s", self._name, p.message)
            raise problems[0]

    def to_json_obj(self):
        """
        return an OrderedDict that can be encoded into a JSON object that
        can be reloaded with load_profile()
        """
        tagfiles = OrderedDict()
        for path, reqs in self._tagfiles.items():
            tagfiles[path] = OrderedDict((lab, req.to_json_obj())
                                         for lab, req in reqs.items())
        out = OrderedDict([
            ("name", self._name),
            ("description", self._desc)
        ])
        if self._id:
            out["identifier"] = self._id
        out.update([
            ("acceptBagItVersion", list(self._versions)),
            ("manifestsRequired", list(self._mreq)),
            ("manifestsForbidden", list(self._mforb)),
            ("manifestAlgorithms", list(self._algs)),
            ("serialization", self._serial),
            ("serializationFormats", list(self._sformats)),
            ("allowFetchTxt", self._allow_fetch),
            ("allowMiscTopLevelFiles", self._allow_misc_files),
            ("allowMiscTopLevelDirectories", self._allow_misc_dirs),
            ("tagFilesRequired", tagfiles),
            ("tagFilesOptional", list(self._opttagfiles))
        ])
        return out

    def to_json(self, indent=4):
        return json.dumps(self.to_json_obj(), indent=indent)

    def __str__(self):
        return "BagItProfile({0})".format(self._name)

def _load_tag_requirement(path, label, data):
    if isinstance(data, bool):
        data = {"required": data}
    if not isinstance(data, dict):
        raise ProfileError("tagFilesRequired: {0}: {1}: requirement must be an "
                           "object".format(path, label))
    required = data.get("required", False)
    if not isinstance(required, bool):
        raise ProfileError("tagFilesRequired: {0}: {1}: required must be true "
                           "or false".format(path, label))
    requirement = data.get("requirement")
    if requirement is not None and not is_valid_requirement_type(requirement):
        raise ProfileError("tagFilesRequired: {0}: {1}: {2} is not a valid "
                           "requirement type".format(path, label,
                                                     repr(requirement)))
    default = data.get("default", data.get("defaultValue"))
    if default is not None and not isinstance(default, str):
        raise ProfileError("tagFilesRequired: {0}: {1}: default must be a "
                           "string".format(path, label))
    values = _as_str_list(data.get("values"),
                          "tagFilesRequired: {0}: {1}: values".format(path, label))
    try:
        return TagRequirement(label, required, values, default, requirement,
                              bool(data.get("emptyOk", False)))
    except ValueError as ex:
        raise ProfileError("tagFilesRequired: {0}: {1}".format(path, str(ex)))

def profile_from_json_obj(data):
    """
    create a BagItProfile from a decoded JSON object.

    :raises ProfileError:  if the data does not describe a legal profile
    """
    if not isinstance(data, dict):
        raise ProfileError("Profile description must be a JSON object")

    tagfiles = OrderedDict()
    tfdata = data.get("tagFilesRequired") or {}
    if not isinstance(tfdata, dict):
        raise ProfileError("tagFilesRequired: expected an object")
    for path, reqs in tfdata.items():
        if not isinstance(reqs, dict):
            raise ProfileError("tagFilesRequired: {0}: expected an object"
                               .format(path))
        loaded = _JSONObject(
            (label, _load_tag_requirement(path, label, req))
            for label, req in reqs.items()
        )
        loaded.duplicates = list(getattr(reqs, 'duplicates', []))
        tagfiles[path] = loaded

    return BagItProfile(
        name=data.get("name", ""),
        description=data.get("description", ""),
        identifier=data.get("identifier"),
        accept_bagit_versions=data.get("acceptBagItVersion"),
        manifests_required=data.get("manifestsRequired"),
        manifests_forbidden=data.get("manifestsForbidden"),
        manifest_algorithms=data.get("manifestAlgorithms"),
        serialization=data.get("serialization", OPTIONAL),
        serialization_formats=data.get("serializationFormats"),
        allow_fetch_txt=data.get("allowFetchTxt", True),
        allow_misc_top_level_files=data.get("allowMiscTopLevelFiles", True),
        allow_misc_top_level_dirs=data.get("allowMiscTopLevelDirectories", True),
        tag_files=tagfiles,
        optional_tag_files=data.get("tagFilesOptional")
    )

def load_profile(data):
    """
    load a BagItProfile from its JSON description.

    :param data:  the profile description, given either as JSON-encoded
                  bytes or str or as an already decoded dictionary
    :raises ProfileError:  if the description cannot be parsed or contains
                  unrecognized algorithms, requirement types, or manifest
                  kinds
    """
    if isinstance(data, bytes):
        try:
            data = data.decode('utf-8-sig')
        except UnicodeDecodeError as ex:
            raise ProfileError("Profile description is not UTF-8: "+str(ex))
    if isinstance(data, str):
        try:
            data = json.loads(data, object_pairs_hook=_JSONObject)
        except ValueError as ex:
            raise ProfileError("Profile description is not valid JSON: "+
                               str(ex))
    return profile_from_json_obj(data)

def load_profile_file(path):
    """
    load a BagItProfile from a JSON file
    """
    with open(path, 'rb') as fd:
        return load_profile(fd.read())
