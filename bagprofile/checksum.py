"""
This module computes and verifies file digests.

The module functions work on a single file.  The :py:class:`ChecksumEngine`
class applies them to many files at once using a bounded pool of worker
threads; its results are always handed back to the calling thread, which
is the only place they are collected.
"""
import os, hashlib, logging, threading
import concurrent.futures as futures
from collections import deque

import fs.errors
from bagit import HASH_BLOCK_SIZE

from .constants import is_supported_algorithm
from .exceptions import FatalIOError, is_fatal_error
from .access.bagit import open_bin_file

LOGGER = logging.getLogger(__name__)

MATCH       = "match"
MISMATCH    = "mismatch"
MISSING     = "missing"
UNREADABLE  = "unreadable"

_missing_errors = (fs.errors.ResourceNotFound, FileNotFoundError)

def new_hasher(algorithm):
    """
    return a new hash object for the named algorithm.

    :raises ValueError:  if the algorithm is not supported or not available
                         in this Python runtime (e.g. md4 with OpenSSL 3)
    """
    if not is_supported_algorithm(algorithm):
        raise ValueError("Unsupported hash algorithm: "+str(algorithm))
    return hashlib.new(algorithm.lower())

def digest(fileobj, algorithm):
    """
    return the lower-case hex digest of the contents of an open binary file.
    The file is read in blocks of HASH_BLOCK_SIZE bytes.
    """
    return _digest_stream(fileobj, [algorithm])[algorithm]

def _digest_stream(fileobj, algorithms):
    hashers = dict((alg, new_hasher(alg)) for alg in algorithms)
    while True:
        block = fileobj.read(HASH_BLOCK_SIZE)
        if not block:
            break
        for h in hashers.values():
            h.update(block)
    return dict((alg, h.hexdigest()) for alg, h in hashers.items())

def _open(path):
    if hasattr(path, 'fs'):
        return open_bin_file(path)
    return open(path, 'rb')

def digest_file(path, algorithms):
    """
    return a dictionary of (algorithm, hexdigest) values for the file at the
    given location, reading the file only once.

    :param path:  the file's location, either as a filesystem path or as a
                  Path instance
    :param list algorithms:  the names of the algorithms to apply
    """
    if isinstance(algorithms, str):
        algorithms = [algorithms]
    LOGGER.debug("Calculating %s checksums for %s", ", ".join(algorithms), path)
    with _open(path) as fd:
        return _digest_stream(fd, algorithms)

class VerifyResult(object):
    """
    the outcome of comparing a file's recorded digest with a freshly
    computed one.  The status is one of MATCH, MISMATCH, MISSING, or
    UNREADABLE.
    """

    def __init__(self, path, algorithm, expected, status, actual=None,
                 cause=None):
        self.path = path
        self.algorithm = algorithm
        self.expected = expected
        self.status = status
        self.actual = actual
        self.cause = cause

    @property
    def ok(self):
        return self.status == MATCH

    def __str__(self):
        if self.status == MATCH:
            return "{0}: {1} digest matches".format(self.path, self.algorithm)
        if self.status == MISMATCH:
            return "{0}: {1} validation failed: expected={2} found={3}" \
                   .format(self.path, self.algorithm, self.expected, self.actual)
        if self.status == MISSING:
            return "{0}: file is missing".format(self.path)
        return "{0}: file could not be read: {1}".format(self.path, self.cause)

    def __repr__(self):
        return "VerifyResult({0}, {1}, {2})".format(repr(self.path),
                                                    self.algorithm, self.status)

def verify_hashes(path, hashes, name=None):
    """
    verify the digests of one file for one or more algorithms, reading the
    file only once.

    :param path:        the location of the file, as a filesystem path or a
                        Path instance
    :param dict hashes: a mapping of algorithm names to expected digests
    :param str name:    the name to report for the file (e.g. its
                        bag-relative path); defaults to str(path)
    :return: a list of VerifyResult instances, one per algorithm
    :raises FatalIOError:  if the file could not be read because of a device
                        or filesystem failure
    """
    if name is None:
        name = str(path)
    try:
        found = digest_file(path, list(hashes.keys()))
    except _missing_errors:
        return [VerifyResult(name, alg, exp, MISSING)
                for alg, exp in hashes.items()]
    except (OSError, fs.errors.FSError) as ex:
        if is_fatal_error(ex):
            raise FatalIOError(name, ex)
        LOGGER.warning("Could not read %s: %s", name, str(ex))
        return [VerifyResult(name, alg, exp, UNREADABLE, cause=ex)
                for alg, exp in hashes.items()]
    except ValueError as ex:
        # the algorithm is not available in this runtime
        return [VerifyResult(name, alg, exp, UNREADABLE, cause=ex)
                for alg, exp in hashes.items()]

    out = []
    for alg, exp in hashes.items():
        if found[alg] == exp.lower():
            out.append(VerifyResult(name, alg, exp, MATCH, found[alg]))
        else:
            out.append(VerifyResult(name, alg, exp, MISMATCH, found[alg]))
    return out

def verify(path, expected, algorithm, name=None):
    """
    compare a file's digest with the expected value

    :rtype: VerifyResult
    :raises FatalIOError:  on device or filesystem failure
    """
    return verify_hashes(path, {algorithm: expected}, name)[0]

class ChecksumEngine(object):
    """
    a class for computing or verifying the digests of many files
    concurrently.

    The engine holds no state between calls other than its configuration.
    A cancel event may be provided; once it is set, no new files are
    scheduled, files not yet started are dropped, and the calling method
    returns without waiting for those still being read.
    """

    def __init__(self, processes=None, cancel=None, logger=None):
        """
        :param int processes:  the maximum number of files to read at once;
                               if None, the number of available CPUs is used.
        :param cancel:         an event that, when set, stops the processing
        :type cancel:          threading.Event
        :param logger:         the logger to report progress to
        """
        if not processes:
            processes = os.cpu_count() or 1
        self.processes = processes
        self.cancel = cancel or threading.Event()
        if not logger:
            logger = LOGGER
        self.log = logger

    @property
    def cancelled(self):
        return self.cancel.is_set()

    def _run(self, func, jobs):
        # yield func(*job) for each job, keeping no more than a bounded
        # number of jobs queued in the pool
        jobs = iter(jobs)
        if self.processes == 1:
            for job in jobs:
                if self.cancelled:
                    return
                yield func(*job)
            return

        executor = futures.ThreadPoolExecutor(max_workers=self.processes)
        pending = deque()
        window = self.processes * 2
        try:
            exhausted = False
            while True:
                while not exhausted and not self.cancelled and \
                      len(pending) < window:
                    try:
                        job = next(jobs)
                    except StopIteration:
                        exhausted = True
                        break
                    pending.append(executor.submit(func, *job))
                if not pending or self.cancelled:
                    break

                done, _ = futures.wait(list(pending), timeout=0.5,
                                       return_when=futures.FIRST_COMPLETED)
                for fut in list(pending):
                    if fut in done:
                        pending.remove(fut)
                        yield fut.result()

            if self.cancelled:
                for fut in list(pending):
                    if fut.done() and not fut.cancelled():
                        yield fut.result()
                self.log.info("Checksum calculation cancelled with %d files "
                              "outstanding", len(pending))
        finally:
            executor.shutdown(wait=not self.cancelled, cancel_futures=True)

    def verify_all(self, root, jobs):
        """
        verify the digests of a set of files.

        :param root:  a Path for the directory the files are relative to
        :param jobs:  an iterable of (relpath, hashes) tuples where hashes is
                      a dictionary mapping algorithm names to expected digests
        :return: a generator of lists of VerifyResult instances, one list per
                 file, in no particular order
        :raises FatalIOError:  on device or filesystem failure
        """
        def _verify(relpath, hashes):
            if self.cancelled:
                return []
            self.log.debug("Verifying checksum for file %s", relpath)
            return verify_hashes(root.relpath(relpath), hashes, relpath)

        return self._run(_verify, ((p, h) for p, h in jobs))

    def digest_all(self, root, paths, algorithms):
        """
        compute the digests of a set of files.

        :param root:  the directory the files are relative to, either as a
                      filesystem path or a Path instance
        :param paths: an iterable of relative file paths
        :param list algorithms:  the algorithms to compute
        :return: a generator of (relpath, {algorithm: hexdigest}) tuples, in
                 no particular order
        """
        def _digest(relpath):
            if hasattr(root, 'relpath'):
                path = root.relpath(relpath)
            else:
                path = os.path.join(root, *relpath.split('/'))
            try:
                return (relpath, digest_file(path, algorithms))
            except (OSError, fs.errors.FSError) as ex:
                if is_fatal_error(ex):
                    raise FatalIOError(relpath, ex)
                raise

        return self._run(_digest, ((p,) for p in paths))
