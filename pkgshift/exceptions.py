# Custom exceptions raised by pkgshift.
#
# Last Change: October 18, 2026

"""
The :mod:`pkgshift.exceptions` module defines the errors raised by `pkgshift`.

All failures are deterministic given the same input, so none of these
exceptions are retried: they're surfaced to the caller (usually
:class:`~pkgshift.pipeline.ConversionPipeline`) which makes sure the staging
arena is released and that no partial output is published.
"""


class PkgshiftError(Exception):

    """Base exception for all exceptions explicitly raised by `pkgshift`."""


class FormatError(PkgshiftError):

    """
    Raised when the input isn't a well formed package of the declared format.

    Examples are bad magic bytes, a truncated archive or a checksum mismatch.
    The offending byte offset and/or field name are available as the
    :attr:`offset` and :attr:`field` attributes when the codec knows them.
    """

    def __init__(self, message, offset=None, field=None):
        """
        Initialize a :class:`FormatError` object.

        :param message: The error message (a string).
        :param offset: The byte offset of the problem (an integer or :data:`None`).
        :param field: The name of the offending field (a string or :data:`None`).
        """
        if offset is not None:
            message = "%s (at offset %i)" % (message, offset)
        super(FormatError, self).__init__(message)
        self.offset = offset
        self.field = field


class UnsupportedFeatureError(PkgshiftError):

    """
    Raised when well formed input uses a construct `pkgshift` doesn't model.

    Examples are multi-part SVR4 packages, RPM ghost files, relocatable
    conffiles and device nodes.
    """


class EncodingError(PkgshiftError):

    """Raised when package metadata can't be expressed in the target format."""

    def __init__(self, message, field=None):
        """
        Initialize an :class:`EncodingError` object.

        :param message: The error message (a string).
        :param field: The name of the offending field (a string or :data:`None`).
        """
        super(EncodingError, self).__init__(message)
        self.field = field


class StagingError(PkgshiftError, EnvironmentError):

    """Raised when reading or writing the staged file tree fails."""
