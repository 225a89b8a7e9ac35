"""
This module provides the checksum validation pass:  it recomputes the
digests of the files listed in a bag's manifests and compares them with the
recorded values.  It also reports payload files that no payload manifest
lists and checks the Payload-Oxum tag, if present.
"""
from collections import OrderedDict

from ..constants import PAYLOAD_MANIFEST, TAR
from ..exceptions import ParseError
from ..checksum import ChecksumEngine, MISMATCH, MISSING, UNREADABLE
from .base import CHECKSUM_ERROR

class ChecksumValidator(object):
    """
    a validator that verifies the fixity of a bag's files
    """

    def __init__(self, bag, profile, options):
        self.bag = bag
        self.profile = profile
        self.options = options

    def _jobs(self, scope):
        # group the expected digests by file so that each file is read once
        hashes = OrderedDict()
        sources = {}
        manifests = list(scope.payload_manifests)
        if self.options.check_tag_manifests:
            manifests += list(scope.tag_manifests)
        for manifest in manifests:
            for path, digest in manifest:
                hashes.setdefault(path, OrderedDict())[manifest.algorithm] = digest
                sources.setdefault(path, []).append(manifest.filename)
        return hashes, sources

    def validate(self, results, scope):
        self.validate_entries(results, scope)
        if not self.options.cancelled:
            self.validate_untracked(results, scope)
            self.validate_oxum(results)
        return results

    def validate_entries(self, results, scope):
        hashes, sources = self._jobs(scope)
        processes = self.options.processes
        if self.bag.serialization == TAR:
            processes = 1
        engine = ChecksumEngine(processes, self.options.cancel,
                                self.options.log)
        self.options.log.info("%s: verifying checksums for %d files",
                              self.bag.name, len(hashes))

        for verified in engine.verify_all(self.bag.relpath(""), hashes.items()):
            if not verified:
                continue
            path = verified[0].path
            failed = [v for v in verified if not v.ok]
            if not failed:
                continue

            status = failed[0].status
            if status == MISSING:
                results._err(CHECKSUM_ERROR, path,
                             "file listed in manifest is missing", "",
                             sources[path])
            elif status == UNREADABLE:
                results._err(CHECKSUM_ERROR, path,
                             "file could not be read", "",
                             [str(failed[0].cause)])
            else:
                algs = [v.algorithm for v in failed if v.status == MISMATCH]
                results._err(CHECKSUM_ERROR, path,
                             "digest does not match the manifest",
                             ",".join(algs),
                             ["{0}: expected={1} found={2}"
                              .format(v.algorithm, v.expected, v.actual)
                              for v in failed if v.status == MISMATCH])
            for v in failed:
                self.options.log.warning(str(v))

        return results

    def validate_untracked(self, results, scope):
        """
        report payload files that are not listed in any payload manifest.
        This test is skipped if any payload manifest could not be parsed.
        """
        if any(e.filename in self.bag.manifest_files(PAYLOAD_MANIFEST)
               for e in self.bag.manifest_errors):
            return results

        listed = set()
        for manifest in scope.payload_manifests:
            listed.update(manifest.paths())

        for path in self.bag.payload_files():
            if path not in listed:
                results._report(CHECKSUM_ERROR, path,
                                "payload file is not listed in any payload "
                                "manifest", self.options.strict)
        return results

    def validate_oxum(self, results):
        """
        compare the Payload-Oxum tag in bag-info.txt, if present, with the
        payload on disk
        """
        try:
            oxum = self.bag.info().get('Payload-Oxum')
        except ParseError:
            # reported by the tag pass when the profile covers bag-info.txt
            return results
        if not oxum:
            return results
        oxum = oxum[0]

        parts = oxum.split('.', 1)
        if len(parts) != 2 or not parts[0].isdigit() or not parts[1].isdigit():
            results._err(CHECKSUM_ERROR, "bag-info.txt",
                         "malformed Payload-Oxum value: "+oxum, "Payload-Oxum")
            return results
        expbytes, expfiles = int(parts[0]), int(parts[1])

        payload = self.bag.payload_files()
        total = sum(self.bag.file_size(p) for p in payload)
        if expfiles != len(payload) or expbytes != total:
            results._err(CHECKSUM_ERROR, "bag-info.txt",
                         "Payload-Oxum validation failed", "Payload-Oxum",
                         ["expected {0} files and {1} bytes but found {2} files "
                          "and {3} bytes".format(expfiles, expbytes,
                                                 len(payload), total)])
        return results
