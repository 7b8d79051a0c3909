# pkgshift: Convert binary packages between the deb, rpm, tgz and pkg formats.
#
# Last Change: October 18, 2026

"""
The :mod:`pkgshift.formats` package contains the format codecs.

Each supported format is implemented by a codec class in its own module:

- :class:`~pkgshift.formats.deb.DebCodec` for Debian binary packages.
- :class:`~pkgshift.formats.rpm.RpmCodec` for RPM packages (including the
  Linux Standard Base flavor).
- :class:`~pkgshift.formats.tgz.TgzCodec` for Slackware packages.
- :class:`~pkgshift.formats.pkg.PkgCodec` for Solaris SVR4 package datastreams.

The codecs don't share a base class but they all provide the same methods:
``read()``, ``check()``, ``write()``, ``get_filename()`` and ``matches()``.
This module maps format names to codecs and detects the format of a file.
"""

# Standard library modules.
import logging
import os

# External dependencies.
from humanfriendly import format_path
from humanfriendly.text import compact, concatenate

# Modules included in our package.
from pkgshift.exceptions import FormatError, StagingError
from pkgshift.formats.deb import DebCodec
from pkgshift.formats.pkg import PkgCodec
from pkgshift.formats.rpm import RpmCodec
from pkgshift.formats.tgz import TgzCodec
from pkgshift.mapping import DEB, FORMATS, LSB, PKG, RPM, TGZ

# Initialize a logger.
logger = logging.getLogger(__name__)

CODECS = {DEB: DebCodec, RPM: RpmCodec, LSB: RpmCodec, TGZ: TgzCodec, PKG: PkgCodec}
"""Mapping of format names to codec classes (a dictionary)."""

HEADER_SIZE = 512
"""The number of bytes read from a file to detect its format (an integer)."""


def get_codec(format, **options):
    """
    Get the codec for a format.

    :param format: One of the strings in :data:`~pkgshift.mapping.FORMATS`.
    :param options: Any keyword arguments are passed to the codec's initializer.
    :returns: A codec object.
    :raises: :exc:`~exceptions.ValueError` when the format is unknown.
    """
    if format not in CODECS:
        raise ValueError(compact("""
            Unknown package format {name}! (supported formats are {formats})
        """, name=repr(format), formats=concatenate(FORMATS)))
    if format == LSB:
        options['lsb'] = True
    return CODECS[format](**options)


def detect_format(filename):
    """
    Detect the format of a package file.

    :param filename: The pathname of a package file (a string).
    :returns: One of the strings in :data:`~pkgshift.mapping.FORMATS`. The
              magic bytes at the start of the file are checked first, the
              filename extension is used as a fallback.
    :raises: :exc:`~pkgshift.exceptions.FormatError` when the format can't
             be determined, :exc:`~pkgshift.exceptions.StagingError` when
             the file can't be read.
    """
    try:
        with open(filename, 'rb') as handle:
            header = handle.read(HEADER_SIZE)
    except EnvironmentError as e:
        raise StagingError("Failed to read %s! (%s)" % (format_path(filename), e))
    for format in (DEB, RPM, PKG, TGZ):
        if CODECS[format].matches(header):
            logger.debug("Detected %s format of %s based on magic bytes.", format, format_path(filename))
            return format
    lowercase = os.path.basename(filename).lower()
    for format in (DEB, RPM, PKG, TGZ):
        if lowercase.endswith(CODECS[format].extensions):
            logger.debug("Detected %s format of %s based on filename extension.", format, format_path(filename))
            return format
    raise FormatError("Unable to determine the package format of %s!" % format_path(filename))
