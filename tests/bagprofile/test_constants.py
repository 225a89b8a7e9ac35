# encoding: utf-8

import os, pdb, logging
import unittest as test

import bagprofile.constants as cnsts

class TestCatalog(test.TestCase):

    def test_algorithms(self):
        for alg in ["md4", "md5", "sha1", "sha224", "sha256", "sha384",
                    "sha512"]:
            self.assertTrue(cnsts.is_supported_algorithm(alg), alg)
        self.assertTrue(cnsts.is_supported_algorithm("SHA256"))
        self.assertFalse(cnsts.is_supported_algorithm("sha3"))
        self.assertFalse(cnsts.is_supported_algorithm(""))
        self.assertFalse(cnsts.is_supported_algorithm(None))
        self.assertFalse(cnsts.is_supported_algorithm(256))

    def test_digest_lengths(self):
        self.assertEqual(set(cnsts.DIGEST_LENGTHS.keys()),
                         set(cnsts.HASH_ALGORITHMS))
        self.assertEqual(cnsts.DIGEST_LENGTHS["md5"], 32)
        self.assertEqual(cnsts.DIGEST_LENGTHS["sha512"], 128)

    def test_requirement_types(self):
        self.assertTrue(cnsts.is_valid_requirement_type("required"))
        self.assertTrue(cnsts.is_valid_requirement_type("Optional"))
        self.assertTrue(cnsts.is_valid_requirement_type("forbidden"))
        self.assertFalse(cnsts.is_valid_requirement_type("recommended"))
        self.assertFalse(cnsts.is_valid_requirement_type(None))

    def test_manifest_types(self):
        self.assertTrue(cnsts.is_manifest_type("payload"))
        self.assertTrue(cnsts.is_manifest_type("tag"))
        self.assertFalse(cnsts.is_manifest_type("fetch"))
        self.assertFalse(cnsts.is_manifest_type([]))

    def test_serialization_formats(self):
        self.assertTrue(cnsts.is_serialization_format("zip"))
        self.assertTrue(cnsts.is_serialization_format("tar"))
        self.assertTrue(cnsts.is_serialization_format("directory"))
        self.assertFalse(cnsts.is_serialization_format("rar"))

class TestVersion(test.TestCase):

    def test_ctor(self):
        ver = cnsts.Version("0.97")
        self.assertEqual(ver._vs, "0.97")
        self.assertEqual(ver.fields, [0, 97])

        ver = cnsts.Version((1, 0))
        self.assertEqual(str(ver), "1.0")
        self.assertEqual(ver.fields, [1, 0])

        with self.assertRaises(TypeError):
            cnsts.Version(1.0)

    def testEQ(self):
        ver = cnsts.Version("1.0")
        self.assertEqual(ver, cnsts.Version("1.0"))
        self.assertTrue(ver == "1.0")
        self.assertFalse(ver == "0.97")
        self.assertEqual(hash(ver), hash(cnsts.Version((1, 0))))

    def testOrder(self):
        ver = cnsts.Version("0.97")
        self.assertTrue(ver < "1.0")
        self.assertTrue(ver <= "0.97")
        self.assertTrue(ver > "0.96")
        self.assertFalse(ver >= "1.0")
        self.assertEqual(str(max([cnsts.Version("0.97"),
                                  cnsts.Version("1.0")])), "1.0")


if __name__ == '__main__':
    test.main()
