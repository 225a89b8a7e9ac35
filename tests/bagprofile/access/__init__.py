from unittest import TestLoader, TestSuite

def additional_tests():
    from . import test_manifest, test_bagit

    suites = [TestLoader().loadTestsFromModule(m[1])
                     for m in locals().items() if m[0].startswith("test_")]
    return TestSuite(suites)
