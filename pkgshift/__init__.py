# pkgshift: Convert binary packages between the deb, rpm, tgz and pkg formats.
#
# Last Change: October 18, 2026

"""
The top level :mod:`pkgshift` module contains only a version number.

.. data:: __version__

   The version number of the `pkgshift` package (a string).
"""

# Semi-standard module versioning.
__version__ = '1.0'
