# encoding: utf-8

import os, pdb, json, threading
import unittest as test

import bagprofile.validate.base as val

class TestValidationIssue(test.TestCase):

    def test_ctor(self):
        issue = val.ValidationIssue(val.TAG_ERROR)
        self.assertEqual(issue.kind, "TagError")
        self.assertEqual(issue.type, issue.ERROR)
        self.assertEqual(issue.severity, "error")
        self.assertTrue(issue.is_error())
        self.assertEqual(issue.path, "")
        self.assertEqual(issue.label, "")
        self.assertEqual(issue.message, "")
        self.assertEqual(len(issue.comments), 0)

        issue = val.ValidationIssue(val.CHECKSUM_ERROR, val.WARN,
                                    "data/extra.bin", "file is untracked",
                                    comments="size: 12")
        self.assertEqual(issue.type, issue.WARN)
        self.assertEqual(issue.severity, "warning")
        self.assertFalse(issue.is_error())
        self.assertEqual(issue.path, "data/extra.bin")
        self.assertEqual(issue.comments, ("size: 12",))

    def test_bad_values(self):
        with self.assertRaises(ValueError):
            val.ValidationIssue("OopsError")
        with self.assertRaises(ValueError):
            val.ValidationIssue(val.TAG_ERROR, 5)

    def test_description(self):
        issue = val.ValidationIssue(val.TAG_ERROR, val.ERROR, "bag-info.txt",
                                    "missing required tag: Access", "Access")
        self.assertEqual(issue.summary,
                 "ERROR: TagError (bag-info.txt): missing required tag: Access")
        self.assertEqual(str(issue), issue.summary)
        self.assertEqual(issue.description, issue.summary)

        issue = val.ValidationIssue(val.STRUCTURAL_ERROR, val.WARN, "",
                                    "ignored", comments=["a", "b"])
        self.assertEqual(issue.summary, "WARNING: StructuralError: ignored")
        self.assertEqual(issue.description,
                         "WARNING: StructuralError: ignored\n   a\n   b")

    def test_tuple(self):
        issue = val.ValidationIssue(val.PARSE_ERROR, val.ERROR,
                                    "manifest-md5.txt", "bad line", "",
                                    ["line 2"])
        data = issue.to_tuple()
        again = val.ValidationIssue.from_tuple(data)
        self.assertEqual(again.to_tuple(), data)

    def test_to_json_obj(self):
        issue = val.ValidationIssue(val.PARSE_ERROR, val.ERROR,
                                    "manifest-md5.txt", "bad line", "",
                                    ["line 2"])
        data = json.loads(json.dumps(issue.to_json_obj()))
        self.assertEqual(data["kind"], "ParseError")
        self.assertEqual(data["severity"], "error")
        self.assertEqual(data["path"], "manifest-md5.txt")
        self.assertEqual(data["comments"], ["line 2"])

class TestValidationResults(test.TestCase):

    def setUp(self):
        self.res = val.ValidationResults("samplebag")

    def test_collect(self):
        self.res._err(val.TAG_ERROR, "bag-info.txt", "missing tag", "Access")
        self.res._warn(val.CHECKSUM_ERROR, "data/extra.bin", "untracked")
        self.res._report(val.CHECKSUM_ERROR, "data/x.bin", "untracked", True)
        self.assertEqual(self.res.count_failed(), 3)
        self.assertEqual(self.res.count_failed(val.ERROR), 2)
        self.assertEqual(self.res.count_failed(val.WARN), 1)

        report = self.res.freeze()
        self.assertEqual(report.target, "samplebag")
        self.assertFalse(report.passed)
        self.assertFalse(report.ok())
        self.assertFalse(report.cancelled)
        self.assertEqual(len(report), 3)
        self.assertEqual([i.path for i in report],
                         ["bag-info.txt", "data/extra.bin", "data/x.bin"])
        self.assertEqual(len(report.errors()), 2)
        self.assertEqual(len(report.warnings()), 1)
        self.assertEqual(len(report.of_kind(val.CHECKSUM_ERROR)), 2)
        self.assertEqual(len(report.of_kind(val.CHECKSUM_ERROR, val.ERROR)), 1)
        self.assertEqual(len(report.for_path("bag-info.txt")), 1)

        # the report does not change as more findings come in
        self.res._err(val.TAG_ERROR, "bag-info.txt", "another", "Title")
        self.assertEqual(len(report), 3)

    def test_concurrent_adds(self):
        def add(n):
            for i in range(200):
                self.res._warn(val.CHECKSUM_ERROR, "data/{0}_{1}".format(n, i),
                               "untracked")

        threads = [threading.Thread(target=add, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(self.res.count_failed(), 800)
        self.assertTrue(self.res.freeze().passed)

    def test_cancelled(self):
        report = self.res.freeze(cancelled=True)
        self.assertTrue(report.cancelled)
        self.assertTrue(report.passed)
        self.assertIn("[cancelled]", str(report))

class TestValidationReport(test.TestCase):

    def test_str(self):
        report = val.ValidationReport("samplebag")
        self.assertTrue(report.passed)
        self.assertEqual(str(report),
                         "samplebag: PASSED (0 errors, 0 warnings)")

        report = val.ValidationReport("samplebag", [
            val.ValidationIssue(val.TAG_ERROR, val.ERROR, "bag-info.txt", "x"),
            val.ValidationIssue(val.TAG_ERROR, val.WARN, "bag-info.txt", "y")
        ])
        self.assertEqual(str(report),
                         "samplebag: FAILED (1 errors, 1 warnings)")

    def test_to_json_obj(self):
        report = val.ValidationReport("samplebag", [
            val.ValidationIssue(val.TAG_ERROR, val.ERROR, "bag-info.txt", "x")
        ])
        data = report.to_json_obj()
        self.assertEqual(data["target"], "samplebag")
        self.assertFalse(data["passed"])
        self.assertFalse(data["cancelled"])
        self.assertEqual(len(data["findings"]), 1)

class TestProfileValidationError(test.TestCase):

    def test_one_error(self):
        report = val.ValidationReport("samplebag", [
            val.ValidationIssue(val.TAG_ERROR, val.ERROR, "bag-info.txt",
                                "missing required tag: Access", "Access",
                                ["hint"])
        ])
        ex = val.ProfileValidationError(report)
        self.assertIs(ex.report, report)
        self.assertEqual(ex.message, report.errors()[0].summary)
        self.assertEqual(ex.details, ["hint"])

    def test_many_errors(self):
        report = val.ValidationReport("samplebag", [
            val.ValidationIssue(val.TAG_ERROR, val.ERROR, "bag-info.txt", m)
            for m in "abcd"
        ])
        ex = val.ProfileValidationError(report)
        self.assertEqual(ex.message, "4 validation errors detected")
        self.assertIn("including", str(ex))

class TestValidator(test.TestCase):

    def test_base(self):
        v = val.Validator("samplebag")
        report = v.validate()
        self.assertEqual(report.target, "samplebag")
        self.assertEqual(len(report), 0)
        self.assertTrue(v.is_valid())
        self.assertIs(type(v.ensure_valid()), val.ValidationReport)

class TestValidationOptions(test.TestCase):

    def test_defaults(self):
        opts = val.ValidationOptions()
        self.assertFalse(opts.strict)
        self.assertIsNone(opts.processes)
        self.assertTrue(opts.check_tag_manifests)
        self.assertFalse(opts.cancelled)
        opts.cancel.set()
        self.assertTrue(opts.cancelled)


if __name__ == '__main__':
    test.main()
