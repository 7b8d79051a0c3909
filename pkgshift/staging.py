# pkgshift: Convert binary packages between the deb, rpm, tgz and pkg formats.
#
# Last Change: October 18, 2026

"""
The :mod:`pkgshift.staging` module manages the scratch space of a conversion.

Here's an example of how to use the :class:`StagingArena` class:

.. code-block:: python

   with StagingArena() as arena:
       with arena.create('usr/bin/hello') as handle:
           handle.write(b'...')
       assert os.path.isfile(arena.get_path('usr/bin/hello'))
"""

# Standard library modules.
import errno
import hashlib
import logging
import os
import shutil
import tempfile

# External dependencies.
from humanfriendly import format_path
from property_manager import PropertyManager, mutable_property

# Modules included in our package.
from pkgshift.exceptions import StagingError
from pkgshift.package import normalize_path

# Initialize a logger.
logger = logging.getLogger(__name__)

COPY_BUFFER_SIZE = 1024 * 64
"""The number of bytes to read at once while hashing and copying (an integer)."""


class StagingArena(PropertyManager):

    """
    Easy temporary staging tree creation & cleanup using the :keyword:`with` statement.

    The arena owns two directories: :attr:`root` holds the staged payload
    (one file per regular file in the package's manifest) and :attr:`work`
    is scratch space where codecs build their output. Both are removed when
    the :keyword:`with` block ends, regardless of whether an exception was
    raised.
    """

    def __init__(self, **options):
        """
        Initialize a :class:`StagingArena` object.

        :param options: Any keyword arguments are passed on to the initializer
                        of the :class:`~property_manager.PropertyManager` class.
        """
        super(StagingArena, self).__init__(**options)
        self.directory = None

    @mutable_property
    def prefix(self):
        """The prefix of the temporary directory's name (a string)."""
        return 'pkgshift-'

    @mutable_property
    def parent_directory(self):
        """The directory where the arena is created (a string or :data:`None` for the default)."""

    @property
    def root(self):
        """The pathname of the staged payload tree (a string)."""
        return os.path.join(self.active_directory, 'root')

    @property
    def work(self):
        """The pathname of the scratch directory (a string)."""
        return os.path.join(self.active_directory, 'work')

    @property
    def active_directory(self):
        """The pathname of the arena (a string)."""
        if not self.directory:
            raise StagingError("The staging arena hasn't been created yet (use a with statement)!")
        return self.directory

    def __enter__(self):
        """Create the staging arena."""
        try:
            self.directory = tempfile.mkdtemp(prefix=self.prefix, dir=self.parent_directory)
            os.mkdir(self.root)
            os.mkdir(self.work)
        except EnvironmentError as e:
            raise StagingError("Failed to create staging arena! (%s)" % e)
        logger.debug("Created staging arena: %s", format_path(self.directory))
        return self

    def __exit__(self, exc_type=None, exc_value=None, traceback=None):
        """Destroy the staging arena."""
        if self.directory:
            logger.debug("Cleaning up staging arena: %s", format_path(self.directory))
            shutil.rmtree(self.directory, ignore_errors=True)
            self.directory = None

    def get_path(self, pathname):
        """
        Get the location of a staged file.

        :param pathname: The pathname of a file in the package (a string).
        :returns: The absolute pathname inside :attr:`root` (a string).
        :raises: :exc:`~pkgshift.exceptions.FormatError` when the pathname
                 would escape the staged tree.
        """
        return os.path.join(self.root, *normalize_path(pathname).split('/'))

    def get_scratch_path(self, filename):
        """
        Get the location of a file in the scratch directory.

        :param filename: The base name of the file (a string).
        :returns: The absolute pathname inside :attr:`work` (a string).
        """
        return os.path.join(self.work, os.path.basename(filename))

    def create(self, pathname):
        """
        Create a staged file (and its parent directories) for writing.

        :param pathname: The pathname of a file in the package (a string).
        :returns: A binary file object.
        :raises: :exc:`~pkgshift.exceptions.StagingError` when the file
                 can't be created.
        """
        filename = self.get_path(pathname)
        try:
            directory = os.path.dirname(filename)
            if not os.path.isdir(directory):
                os.makedirs(directory)
            return open(filename, 'wb')
        except EnvironmentError as e:
            raise StagingError("Failed to stage %s! (%s)" % (pathname, e))

    def open(self, pathname):
        """
        Open a staged file for reading.

        :param pathname: The pathname of a file in the package (a string).
        :returns: A binary file object.
        :raises: :exc:`~pkgshift.exceptions.StagingError` when the file
                 isn't staged or can't be read.
        """
        try:
            return open(self.get_path(pathname), 'rb')
        except EnvironmentError as e:
            if e.errno == errno.ENOENT:
                raise StagingError("File not staged: %s" % pathname)
            raise StagingError("Failed to read staged file %s! (%s)" % (pathname, e))

    def exists(self, pathname):
        """Check whether a regular file with the given pathname has been staged."""
        return os.path.isfile(self.get_path(pathname))

    def stage(self, pathname, handle):
        """
        Copy the contents of a file object into the staged tree.

        :param pathname: The pathname of a file in the package (a string).
        :param handle: A binary file object (read until EOF).
        :returns: A tuple with the size in bytes (an integer) and the MD5
                  digest (a hexadecimal string) of the contents.
        """
        context = hashlib.md5()
        size = 0
        with self.create(pathname) as output:
            while True:
                chunk = handle.read(COPY_BUFFER_SIZE)
                if not chunk:
                    break
                context.update(chunk)
                output.write(chunk)
                size += len(chunk)
        return size, context.hexdigest()

    def stage_bytes(self, pathname, data):
        """
        Store a byte string in the staged tree.

        :param pathname: The pathname of a file in the package (a string).
        :param data: The contents of the file (a byte string).
        :returns: A tuple with the size and MD5 digest (see :func:`stage()`).
        """
        with self.create(pathname) as handle:
            handle.write(data)
        return len(data), hashlib.md5(data).hexdigest()

    def copy(self, source, destination):
        """
        Duplicate a staged file (used for hard links).

        :param source: The pathname of a staged file (a string).
        :param destination: The pathname of the new staged file (a string).
        :returns: A tuple with the size and MD5 digest (see :func:`stage()`).
        """
        with self.open(source) as handle:
            return self.stage(destination, handle)

    def read_bytes(self, pathname):
        """Get the contents of a staged file as a byte string."""
        with self.open(pathname) as handle:
            return handle.read()

    def get_digest(self, pathname, algorithm='md5'):
        """
        Calculate the digest of a staged file.

        :param pathname: The pathname of a file in the package (a string).
        :param algorithm: The name of a :mod:`hashlib` algorithm (a string).
        :returns: The digest as a hexadecimal string.
        """
        context = hashlib.new(algorithm)
        with self.open(pathname) as handle:
            for chunk in iter(lambda: handle.read(COPY_BUFFER_SIZE), b''):
                context.update(chunk)
        return context.hexdigest()

    def get_size(self, pathname):
        """Get the size of a staged file in bytes (an integer)."""
        try:
            return os.path.getsize(self.get_path(pathname))
        except EnvironmentError as e:
            raise StagingError("Failed to stat staged file %s! (%s)" % (pathname, e))
