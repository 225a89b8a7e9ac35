# encoding: utf-8

import os, pdb, logging
import tempfile, shutil
import unittest as test

import fs.osfs

import bagprofile.access.bagit as bagit
from bagprofile.build import BagBuilder
from bagprofile.exceptions import ParseError

from tests.bagprofile import mkdata

logging.basicConfig(filename='test.log', level=logging.DEBUG)

# But we do want any exceptions raised in the logging path to be raised:
logging.raiseExceptions = True

class TestPath(test.TestCase):

    def setUp(self):
        self.tempdir = tempfile.mkdtemp()
        os.makedirs(os.path.join(self.tempdir, "samplebag", "data"))
        mkdata.create_file(os.path.join(self.tempdir, "samplebag",
                                        "bagit.txt"), 50)
        self.fs = fs.osfs.OSFS(self.tempdir)
        self.path = bagit.Path(self.fs, "samplebag", "testdata:")

    def tearDown(self):
        self.fs.close()
        shutil.rmtree(self.tempdir)

    def test_ctor(self):
        self.assertIs(self.path.fs, self.fs)
        self.assertEqual(self.path.path, "samplebag")
        self.assertEqual(str(self.path), "testdata:samplebag")
        self.assertEqual(repr(self.path), repr(self.fs)+':samplebag')

    def test_filetests(self):
        self.assertTrue(self.path.exists())
        self.assertTrue(self.path.isdir())
        self.assertFalse(self.path.isfile())

        path = self.path.relpath("bagit.txt")
        self.assertEqual(str(path), "testdata:samplebag/bagit.txt")
        self.assertTrue(path.isfile())

        path = self.path.relpath("goober")
        self.assertFalse(path.exists())

    def test_subfspath(self):
        sub = self.path.subfspath()
        self.assertEqual(sub.path, "")
        self.assertEqual(str(sub), "testdata:samplebag/")
        self.assertTrue(sub.relpath("bagit.txt").isfile())
        self.assertTrue(sub.relpath("data").isdir())

class TestReadOnlyBag(test.TestCase):

    def setUp(self):
        self.tempdir = tempfile.mkdtemp()
        self.bagdir = mkdata.mkbag(self.tempdir)

    def tearDown(self):
        shutil.rmtree(self.tempdir)

    def test_open(self):
        bag = bagit.ReadOnlyBag(self.bagdir)
        self.assertEqual(bag.name, "samplebag")
        self.assertEqual(bag.location, self.bagdir)
        self.assertEqual(bag.serialization, "directory")
        self.assertEqual(bag.version, "1.0")
        self.assertEqual(bag.encoding, "UTF-8")
        self.assertEqual(bag.declaration["BagIt-Version"], "1.0")

        self.assertEqual(list(bag.payload_files()), mkdata.SAMPLE_PAYLOAD)
        self.assertEqual(list(bag.tag_files()), ["bag-info.txt", "bagit.txt"])
        self.assertEqual(list(bag.top_level_dirs()), ["data"])
        self.assertEqual(list(bag.top_level_files()),
                         ["bag-info.txt", "bagit.txt", "manifest-sha256.txt"])
        self.assertEqual(bag.manifest_files(), ["manifest-sha256.txt"])
        self.assertEqual(bag.manifest_files("tag"), [])
        self.assertEqual(bag.manifest_errors, ())
        self.assertEqual(bag.unsupported_manifests, ())

        manifests = bag.payload_manifests()
        self.assertEqual(len(manifests), 1)
        self.assertEqual(manifests[0].algorithm, "sha256")
        self.assertEqual(sorted(manifests[0].paths()), mkdata.SAMPLE_PAYLOAD)
        self.assertEqual(bag.tag_manifests(), [])

    def test_file_access(self):
        bag = bagit.ReadOnlyBag(self.bagdir)
        self.assertTrue(bag.exists("data/readme.txt"))
        self.assertTrue(bag.isfile("data/readme.txt"))
        self.assertTrue(bag.isdir("data/images"))
        self.assertFalse(bag.exists("data/goober.txt"))
        self.assertEqual(bag.file_size("data/readme.txt"), 250)

        info = bag.info()
        self.assertEqual(info["Source-Organization"],
                         ["Example University Library"])
        self.assertEqual(info["Payload-Oxum"], ["4394.4"])

        with bag.open_text_file("bagit.txt") as fd:
            self.assertTrue(fd.readline().startswith("BagIt-Version: "))

    def test_missing_declaration(self):
        os.remove(os.path.join(self.bagdir, "bagit.txt"))
        with self.assertRaises(ParseError) as cm:
            bagit.ReadOnlyBag(self.bagdir)
        self.assertEqual(cm.exception.filename, "bagit.txt")

    def test_incomplete_declaration(self):
        with open(os.path.join(self.bagdir, "bagit.txt"), 'w') as fd:
            fd.write("BagIt-Version: 1.0\n")
        with self.assertRaises(ParseError) as cm:
            bagit.ReadOnlyBag(self.bagdir)
        self.assertIn("Tag-File-Character-Encoding", cm.exception.message)

    def test_bad_version(self):
        with open(os.path.join(self.bagdir, "bagit.txt"), 'w') as fd:
            fd.write("BagIt-Version: one\n")
            fd.write("Tag-File-Character-Encoding: UTF-8\n")
        with self.assertRaises(ParseError):
            bagit.ReadOnlyBag(self.bagdir)

    def test_bad_manifest(self):
        with open(os.path.join(self.bagdir, "manifest-md5.txt"), 'w') as fd:
            fd.write("9e107d9d372bb6826bd81d3542a419d6  data/readme.txt\n")
            fd.write("abcd\n")
        with open(os.path.join(self.bagdir, "manifest-crc32.txt"), 'w') as fd:
            fd.write("abcd  data/readme.txt\n")

        bag = bagit.ReadOnlyBag(self.bagdir)
        self.assertEqual(len(bag.manifest_errors), 1)
        self.assertEqual(bag.manifest_errors[0].filename, "manifest-md5.txt")
        self.assertEqual(bag.manifest_errors[0].lineno, 2)
        self.assertEqual(bag.unsupported_manifests, ("manifest-crc32.txt",))
        self.assertEqual(len(bag.payload_manifests()), 1)
        self.assertEqual(bag.manifest_files("payload"),
                         ["manifest-crc32.txt", "manifest-md5.txt",
                          "manifest-sha256.txt"])

    def test_read_tags(self):
        with open(os.path.join(self.bagdir, "extra-info.txt"), 'w') as fd:
            fd.write("Title: Goob\n")
            fd.write("Goober\n")
        bag = bagit.ReadOnlyBag(self.bagdir)
        self.assertIn("extra-info.txt", bag.tag_files())
        with self.assertRaises(ParseError) as cm:
            bag.read_tags("extra-info.txt")
        self.assertEqual(cm.exception.lineno, 2)

class TestOpenBag(test.TestCase):

    def setUp(self):
        self.tempdir = tempfile.mkdtemp()
        profile = mkdata.mkprofile()
        srcs = mkdata.mksources(os.path.join(self.tempdir, "src"))
        self.bagdir = os.path.join(self.tempdir, "samplebag")
        self.builder = BagBuilder(profile, self.bagdir)
        self.builder.build(srcs, mkdata.sample_tags())

    def tearDown(self):
        shutil.rmtree(self.tempdir)

    def test_directory(self):
        bag = bagit.open_bag(self.bagdir)
        self.assertEqual(bag.name, "samplebag")
        self.assertEqual(bag.serialization, "directory")
        self.assertEqual(list(bag.payload_files()), mkdata.SAMPLE_PAYLOAD)

        bag = bagit.open_bag(self.bagdir+'/')
        self.assertEqual(bag.name, "samplebag")

    def test_zip(self):
        zipfile = self.builder.serialize("zip")
        self.assertEqual(zipfile, self.bagdir+".zip")
        bag = bagit.open_bag(zipfile)
        self.assertEqual(bag.name, "samplebag")
        self.assertEqual(bag.serialization, "zip")
        self.assertEqual(bag.version, "1.0")
        self.assertEqual(list(bag.payload_files()), mkdata.SAMPLE_PAYLOAD)
        self.assertEqual(bag.manifest_files(), ["manifest-sha256.txt"])

    def test_tar(self):
        tarfile = self.builder.serialize("tar", self.bagdir+".tgz")
        bag = bagit.open_bag(tarfile)
        self.assertEqual(bag.name, "samplebag")
        self.assertEqual(bag.serialization, "tar")
        self.assertEqual(list(bag.payload_files()), mkdata.SAMPLE_PAYLOAD)

    def test_not_a_bag(self):
        with self.assertRaises(OSError):
            bagit.open_bag(os.path.join(self.tempdir, "goober"))

        notbag = os.path.join(self.tempdir, "notes.txt")
        mkdata.create_file(notbag, 20)
        with self.assertRaises(ValueError):
            bagit.open_bag(notbag)

        with self.assertRaises(ParseError):
            bagit.open_bag(os.path.join(self.tempdir, "src"))


if __name__ == '__main__':
    test.main()
