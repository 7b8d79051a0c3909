# Utility functions for pkgshift.
#
# Last Change: October 18, 2026

"""The :mod:`pkgshift.utils` module contains miscellaneous code."""

# Standard library modules.
import getpass
import logging
import os
import re
import socket
import time

# External dependencies.
from property_manager import PropertyManager, lazy_property

# Initialize a logger.
logger = logging.getLogger(__name__)


class ConversionReport(PropertyManager):

    """
    Collector for the non-fatal warnings of a single conversion.

    Codecs and mappers call :func:`warn()` when they have to drop or
    approximate something the target format can't express. Each message is
    logged immediately and kept so that the caller can inspect it after the
    conversion (it ends up in :attr:`.ConversionResult.warnings`).
    """

    @lazy_property
    def warnings(self):
        """The messages reported so far (a list of strings)."""
        return []

    def warn(self, message, *args):
        """
        Report a non-fatal problem.

        :param message: The message (a string, may contain ``%`` placeholders).
        :param args: The values for the placeholders.
        """
        if args:
            message = message % args
        logger.warning("%s", message)
        self.warnings.append(message)

    def __len__(self):
        """The number of reported warnings (an integer)."""
        return len(self.warnings)

    def __bool__(self):
        """Reports are always truthy (so ``report or ConversionReport()`` works as intended)."""
        return True


def coerce_list(value):
    """
    Coerce a comma and/or whitespace separated string to a list of strings.

    :param value: A string or an iterable of strings.
    :returns: A list of nonempty strings.

    >>> coerce_list('maintainer, summary')
    ['maintainer', 'summary']
    """
    if isinstance(value, str):
        value = re.split(r'[\s,]+', value)
    return [item.strip() for item in value if item and item.strip()]


def find_maintainer():
    """
    Find a sensible maintainer for packages that don't name one.

    The name and e-mail address are combined into a single string that can be
    embedded in a package (in the format ``name <email>``). The metadata is
    looked up as follows:

    1. If the environment variable ``$DEBFULLNAME`` is defined then its value
       is taken to be the name of the maintainer. If ``$DEBEMAIL`` is set as
       well that will be incorporated into the result.

    2. If the environment variable ``$EMAIL`` is defined it's used as is.

    3. Finally the current username and hostname are combined into an e-mail
       address.
    """
    if 'DEBFULLNAME' in os.environ:
        maintainer = os.environ['DEBFULLNAME']
        maintainer_email = os.environ.get('DEBEMAIL')
        if maintainer_email:
            return '%s <%s>' % (maintainer, maintainer_email.strip('<>'))
        return maintainer
    elif os.environ.get('EMAIL'):
        return os.environ['EMAIL']
    else:
        return '%s <%s@%s>' % (getpass.getuser(), getpass.getuser(), socket.getfqdn())


def split_maintainer(maintainer):
    """
    Split a maintainer field into a name and e-mail address.

    :param maintainer: A string like ``John Doe <john@example.com>``.
    :returns: A tuple with two strings (the e-mail address may be empty).

    >>> split_maintainer('John Doe <john@example.com>')
    ('John Doe', 'john@example.com')
    """
    match = re.match(r'^(.*?)\s*<([^>]*)>\s*$', maintainer)
    if match:
        return match.group(1), match.group(2)
    return maintainer.strip(), ''


def get_build_time():
    """
    Get the timestamp to embed in generated packages.

    :returns: The value of ``$SOURCE_DATE_EPOCH`` when it's set (to support
              reproducible builds), otherwise the current time (an integer).
    """
    value = os.environ.get('SOURCE_DATE_EPOCH')
    if value and value.isdigit():
        return int(value)
    return int(time.time())
