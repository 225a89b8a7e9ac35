# encoding: utf-8

import os, pdb, errno, logging
import unittest as test

import fs.errors
from bagit import BagError

import bagprofile.exceptions as exc

class TestFatalErrors(test.TestCase):

    def test_fatal_errnos(self):
        for err in [errno.EIO, errno.ENXIO, errno.ENODEV, errno.EROFS]:
            self.assertIn(err, exc.FATAL_ERRNOS)
            self.assertTrue(exc.is_fatal_error(OSError(err, "device trouble")),
                            errno.errorcode[err])

    def test_read_only_filesystem(self):
        self.assertTrue(exc.is_fatal_error(
            OSError(errno.EROFS, "Read-only file system")))

    def test_ordinary_errors(self):
        self.assertFalse(exc.is_fatal_error(OSError(errno.ENOENT, "gone")))
        self.assertFalse(exc.is_fatal_error(OSError(errno.EACCES, "denied")))
        self.assertFalse(exc.is_fatal_error(ValueError("nope")))

    def test_wrapped(self):
        ex = fs.errors.OperationFailed("data/a.txt",
                                       exc=OSError(errno.EIO, "I/O error"))
        self.assertTrue(exc.is_fatal_error(ex))
        ex = fs.errors.OperationFailed("data/a.txt",
                                       exc=OSError(errno.EACCES, "denied"))
        self.assertFalse(exc.is_fatal_error(ex))

class TestMessages(test.TestCase):

    def test_parse_error(self):
        ex = exc.ParseError("bag-info.txt", "not a valid tag line", 3, "Junk")
        self.assertTrue(isinstance(ex, BagError))
        self.assertEqual(ex.lineno, 3)
        self.assertEqual(ex.message,
                         "bag-info.txt, line 3: not a valid tag line: 'Junk'")

        ex = exc.ParseError("bag-info.txt", "unreadable")
        self.assertEqual(ex.message, "bag-info.txt: unreadable")

    def test_fatal_io_error(self):
        cause = OSError(errno.EROFS, "Read-only file system")
        ex = exc.FatalIOError("data/a.txt", cause)
        self.assertIs(ex.cause, cause)
        self.assertIn("data/a.txt", str(ex))


if __name__ == '__main__':
    test.main()
