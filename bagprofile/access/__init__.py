"""
A subpackage for accessing a bag's contents.

The :py:mod:`bagit` module provides read-only access to bags, serialized or
not.  The :py:mod:`manifest` module parses and formats manifest files.
"""
