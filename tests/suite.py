from unittest import TestSuite

def additional_tests():
    import tests.bagprofile.access as access
    import tests.bagprofile.validate as validate
    import tests.bagprofile as bagprofile

    return TestSuite([access.additional_tests(), validate.additional_tests(),
                      bagprofile.additional_tests()])
