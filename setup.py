from setuptools import setup

setup(name='bagprofile',
      version='0.1',
      description="bagprofile: validate and build BagIt bags that conform to a BagIt profile",
      author="Ray Plante",
      author_email="raymond.plante@nist.gov",
      scripts=[ ],
      packages=['bagprofile', 'bagprofile.access', 'bagprofile.validate'],
      install_requires=['bagit', 'fs', 'setuptools<81'],
      test_suite="tests.suite",
      test_runner="unittest:TextTestRunner"
)
