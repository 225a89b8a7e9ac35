from unittest import TestLoader, TestSuite

def additional_tests():
    from . import (test_constants, test_tags, test_profile, test_checksum,
                   test_build, test_repository, test_exceptions,
                   test_package)

    suites = [TestLoader().loadTestsFromModule(m[1])
                     for m in locals().items() if m[0].startswith("test_")]
    return TestSuite(suites)
