"""
This module provides interfaces for storing BagIt profiles and a service
class that validates and builds bags using the profiles in a repository.

A :py:class:`ProfileRepository` stores profiles in their JSON form as
:py:class:`ProfileRecord` instances.  Two implementations are provided:  one
that keeps the records in memory and one that saves them as JSON files in a
directory.  The :py:class:`BagService` class is handed a repository when it
is created; nothing in this module is a module-level singleton.
"""
import re, uuid, logging, threading
from abc import ABCMeta, abstractmethod
from collections import OrderedDict

import fs.osfs
import fs.errors

from .profile import load_profile
from .exceptions import ProfileError
from .validate import ValidationOptions, validate as validate_bag
from .build import build_bag

LOGGER = logging.getLogger(__name__)

_idre = re.compile(r'[^A-Za-z0-9._-]+')

def make_profile_id(profile):
    """
    return an identifier, usable as a file name, for a profile based on its
    identifier or name.  A random identifier is returned if the profile has
    neither.
    """
    base = profile.identifier or profile.name or ""
    base = _idre.sub('_', base.split('://')[-1]).strip('._')
    return base or uuid.uuid4().hex

class ProfileRecord(object):
    """
    a stored BagIt profile:  its identifier, name, description, and JSON
    serialization.  The parsed form of the profile is created on first
    request and then reused.
    """

    def __init__(self, id, name, description, json):
        self.id = id
        self.name = name
        self.description = description
        self.json = json
        self._profile = None
        self._lock = threading.Lock()

    def profile(self):
        """
        return the parsed BagItProfile for this record

        :raises ProfileError:  if the stored JSON is not a legal profile
        """
        with self._lock:
            if self._profile is None:
                self._profile = load_profile(self.json)
            return self._profile

    @classmethod
    def from_profile(cls, profile, id=None):
        if not id:
            id = make_profile_id(profile)
        return cls(id, profile.name, profile.description, profile.to_json())

    def __repr__(self):
        return "ProfileRecord({0})".format(repr(self.id))

class ProfileRepository(object, metaclass=ABCMeta):
    """
    an interface for a store of BagIt profiles
    """

    @abstractmethod
    def get_record(self, id):
        """
        return the ProfileRecord with the given identifier

        :raises KeyError:  if no profile with that identifier is stored
        """
        raise NotImplementedError()

    @abstractmethod
    def put_record(self, record):
        """
        store the given ProfileRecord, replacing any with the same identifier
        """
        raise NotImplementedError()

    @abstractmethod
    def ids(self):
        """
        return the identifiers of the stored profiles
        """
        raise NotImplementedError()

    def load_profile(self, id):
        """
        return the BagItProfile with the given identifier

        :raises KeyError:  if no profile with that identifier is stored
        :raises ProfileError:  if the stored profile cannot be parsed
        """
        return self.get_record(id).profile()

    def save_profile(self, profile, id=None):
        """
        store a BagItProfile, returning its identifier

        :param BagItProfile profile:  the profile to save
        :param str id:  the identifier to save it under; if not given, one
                        is derived from the profile's identifier or name.
        """
        record = ProfileRecord.from_profile(profile, id)
        self.put_record(record)
        return record.id

    def __contains__(self, id):
        return id in self.ids()

class MemoryProfileRepository(ProfileRepository):
    """
    a ProfileRepository that keeps its profiles in memory
    """

    def __init__(self):
        self._records = OrderedDict()
        self._lock = threading.Lock()

    def get_record(self, id):
        with self._lock:
            if id not in self._records:
                raise KeyError(id)
            return self._records[id]

    def put_record(self, record):
        with self._lock:
            self._records[record.id] = record

    def ids(self):
        with self._lock:
            return list(self._records.keys())

class DirectoryProfileRepository(ProfileRepository):
    """
    a ProfileRepository that stores each profile as a JSON file (named
    after the profile's identifier) in a directory.
    """

    def __init__(self, dirpath, create=True):
        """
        :param str dirpath:  the directory holding the profile files
        :param bool create:  if True, create the directory if it does not
                             exist.
        """
        self.dirpath = dirpath
        self._fs = fs.osfs.OSFS(dirpath, create=create)
        self._cache = {}
        self._lock = threading.Lock()

    def _filename(self, id):
        if not id or _idre.search(id) or id.startswith('.'):
            raise KeyError(id)
        return id + ".json"

    def get_record(self, id):
        name = self._filename(id)
        with self._lock:
            if id in self._cache:
                return self._cache[id]
            try:
                data = self._fs.readtext(name, encoding='utf-8')
            except fs.errors.ResourceNotFound:
                raise KeyError(id)

            try:
                profile = load_profile(data)
            except ProfileError as ex:
                LOGGER.error("%s: unable to load stored profile: %s", name,
                             ex.message)
                raise
            record = ProfileRecord(id, profile.name, profile.description, data)
            self._cache[id] = record
            return record

    def put_record(self, record):
        name = self._filename(record.id)
        with self._lock:
            self._fs.writetext(name, record.json, encoding='utf-8')
            self._cache[record.id] = record

    def ids(self):
        return sorted(f[:-len(".json")] for f in self._fs.listdir("/")
                      if f.endswith(".json"))

    def close(self):
        self._fs.close()

class BagService(object):
    """
    a service for validating and building bags using the profiles stored in
    a ProfileRepository.
    """

    def __init__(self, repository, options=None, logger=None):
        """
        :param ProfileRepository repository:  the store to look up profiles
                                  in
        :param ValidationOptions options:  the default settings to use when
                                  validating; the processes setting is also
                                  used for building.  Each validation run
                                  gets its own copy of these settings with a
                                  fresh cancel event.
        :param Logger logger:     the logger to send building messages to
        """
        self.repository = repository
        if not options:
            options = ValidationOptions()
        self.options = options
        if not logger:
            logger = LOGGER
        self.log = logger

    def _run_options(self):
        # per-run settings so that cancelling one run cannot touch another
        return ValidationOptions(self.options.strict, self.options.processes,
                                 None, self.options.check_tag_manifests,
                                 self.options.log)

    def validate(self, location, profile_id, options=None):
        """
        validate the bag at the given location against a stored profile

        :param ValidationOptions options:  the settings for this run; supply
                                  these to be able to cancel it.  If not
                                  given, a copy of the service's default
                                  settings is used.
        :rtype: ValidationReport
        :raises KeyError:  if the profile is not found
        """
        profile = self.repository.load_profile(profile_id)
        if not options:
            options = self._run_options()
        return validate_bag(location, profile, options)

    def build(self, profile_id, bagdir, source_files, tag_values=None,
              fmt=None):
        """
        build a bag conforming to a stored profile, returning the path to the
        bag directory or, if serialized, the bag file.

        :raises KeyError:  if the profile is not found
        """
        profile = self.repository.load_profile(profile_id)
        return build_bag(profile, bagdir, source_files, tag_values, fmt,
                         processes=self.options.processes, logger=self.log)
