# encoding: utf-8

import os, pdb
import unittest as test

import bagprofile.access.manifest as man
from bagprofile.exceptions import ParseError

md5a = "9e107d9d372bb6826bd81d3542a419d6"
md5b = "e4d909c290d0fb1ca068ffaddf22cbd0"

class TestFunctions(test.TestCase):

    def test_manifest_filename(self):
        self.assertEqual(man.manifest_filename("payload", "SHA256"),
                         "manifest-sha256.txt")
        self.assertEqual(man.manifest_filename("tag", "md5"),
                         "tagmanifest-md5.txt")

    def test_parse_manifest_filename(self):
        self.assertEqual(man.parse_manifest_filename("manifest-sha256.txt"),
                         ("payload", "sha256"))
        self.assertEqual(man.parse_manifest_filename("tagmanifest-MD5.txt"),
                         ("tag", "md5"))
        self.assertEqual(man.parse_manifest_filename("manifest-crc32.txt"),
                         ("payload", "crc32"))
        self.assertIsNone(man.parse_manifest_filename("bag-info.txt"))
        self.assertIsNone(man.parse_manifest_filename("manifest-sha256.csv"))

    def test_normalize_bag_path(self):
        self.assertEqual(man.normalize_bag_path("data/a.txt"), "data/a.txt")
        self.assertEqual(man.normalize_bag_path("data//b/./a.txt"),
                         "data/b/a.txt")
        self.assertEqual(man.normalize_bag_path("data/b/../a.txt"),
                         "data/a.txt")
        for bad in ["", "/etc/passwd", "../outside", "data/../../x",
                    "~/x", "C:/x", "data\\x"]:
            with self.assertRaises(ValueError):
                man.normalize_bag_path(bad)

class TestParseManifest(test.TestCase):

    def test_parse(self):
        content = md5a + "  data/file one.txt\n" + \
                  "\n" + \
                  "# a comment\n" + \
                  md5b.upper() + " *data/sub/two.txt\n"
        manifest = man.parse_manifest("manifest-md5.txt", content)
        self.assertEqual(manifest.algorithm, "md5")
        self.assertEqual(manifest.kind, "payload")
        self.assertEqual(manifest.filename, "manifest-md5.txt")
        self.assertEqual(len(manifest), 2)
        self.assertEqual(manifest.get("data/file one.txt"), md5a)
        self.assertEqual(manifest.get("data/sub/two.txt"), md5b)
        self.assertIn("data/sub/two.txt", manifest)
        self.assertEqual(manifest.paths(),
                         ["data/file one.txt", "data/sub/two.txt"])

    def test_parse_lines_and_bytes(self):
        lines = [md5a + "  bagit.txt\n", md5b + "  bag-info.txt\n"]
        manifest = man.parse_manifest("tagmanifest-md5.txt", lines)
        self.assertEqual(manifest.kind, "tag")
        self.assertEqual(len(manifest), 2)

        data = ("\ufeff" + md5a + "  data/a.txt\n").encode('utf-8')
        manifest = man.parse_manifest("manifest-md5.txt", data)
        self.assertEqual(manifest.paths(), ["data/a.txt"])

    def test_encoded_names(self):
        manifest = man.parse_manifest("manifest-md5.txt",
                                      md5a + "  data/odd%0Aname.txt\n")
        self.assertEqual(manifest.paths(), ["data/odd\nname.txt"])
        self.assertEqual(man.format_manifest(manifest),
                         md5a + "  data/odd%0Aname.txt\n")

    def assertParseError(self, content, lineno, filename="manifest-md5.txt"):
        with self.assertRaises(ParseError) as cm:
            man.parse_manifest(filename, content)
        self.assertEqual(cm.exception.filename, filename)
        self.assertEqual(cm.exception.lineno, lineno)
        return cm.exception

    def test_malformed_line(self):
        ex = self.assertParseError(md5a + "  data/a.txt\nabcd\n", 2)
        self.assertEqual(ex.line, "abcd")
        self.assertIn("line 2", ex.message)

    def test_bad_digest(self):
        self.assertParseError("xyz" + md5a[3:] + "  data/a.txt\n", 1)
        self.assertParseError(md5a[:-1] + "  data/a.txt\n", 1)

    def test_bad_path(self):
        self.assertParseError(md5a + "  ../../etc/passwd\n", 1)
        self.assertParseError(md5a + "  /etc/passwd\n", 1)

    def test_duplicate_path(self):
        self.assertParseError(md5a + "  data/a.txt\n" +
                              md5b + "  data/./a.txt\n", 2)

    def test_bad_filename(self):
        with self.assertRaises(ParseError):
            man.parse_manifest("manifest.txt", md5a + "  data/a.txt\n")
        with self.assertRaises(ParseError):
            man.parse_manifest("manifest-crc32.txt", "abcd  data/a.txt\n")

class TestManifest(test.TestCase):

    def test_ctor(self):
        manifest = man.Manifest("SHA256")
        self.assertEqual(manifest.algorithm, "sha256")
        self.assertEqual(manifest.kind, "payload")
        self.assertEqual(manifest.filename, "manifest-sha256.txt")
        self.assertEqual(len(manifest), 0)

        manifest = man.Manifest("md5", "tag", {"bagit.txt": md5a})
        self.assertEqual(manifest.filename, "tagmanifest-md5.txt")
        self.assertEqual(list(manifest), [("bagit.txt", md5a)])

        with self.assertRaises(ValueError):
            man.Manifest("crc32")
        with self.assertRaises(ValueError):
            man.Manifest("md5", "fetch")

    def test_entries_is_a_copy(self):
        manifest = man.Manifest("md5", entries={"data/a.txt": md5a})
        manifest.entries["data/b.txt"] = md5b
        self.assertEqual(len(manifest), 1)

    def test_format(self):
        manifest = man.Manifest("md5", entries={"data/b.txt": md5b,
                                                "data/a.txt": md5a})
        self.assertEqual(man.format_manifest(manifest),
                         md5a + "  data/a.txt\n" + md5b + "  data/b.txt\n")


if __name__ == '__main__':
    test.main()
