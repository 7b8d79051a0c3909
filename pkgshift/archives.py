# pkgshift: Convert binary packages between the deb, rpm, tgz and pkg formats.
#
# Last Change: October 18, 2026

"""
The :mod:`pkgshift.archives` module implements the archive primitives.

Tar archives and the compression formats are handled by the Python standard
library, reading ``ar`` archives is done by :mod:`debian.arfile`. What's left
is implemented here:

- Writing ``ar`` archives (the container of Debian binary packages).
- Reading and writing ``cpio`` archives in the ``newc`` format (used by RPM
  payloads) and the ``odc`` format (used by SVR4 package datastreams).
- Detecting the compression of a stream by its magic bytes.
"""

# Standard library modules.
import bz2
import gzip
import logging
import lzma
import stat
import time

# External dependencies.
from humanfriendly.text import compact

# Modules included in our package.
from pkgshift.exceptions import FormatError, UnsupportedFeatureError

# Initialize a logger.
logger = logging.getLogger(__name__)

AR_MAGIC = b'!<arch>\n'
"""The global header of an ``ar`` archive (a byte string)."""

CPIO_NEWC_MAGIC = b'070701'
"""The magic of ``cpio`` entries in the "new ASCII" format (a byte string)."""

CPIO_ODC_MAGIC = b'070707'
"""The magic of ``cpio`` entries in the "old portable ASCII" format (a byte string)."""

CPIO_TRAILER = 'TRAILER!!!'
"""The name of the entry that terminates a ``cpio`` archive (a string)."""

COMPRESSION_MAGIC = (
    (b'\x1f\x8b', 'gzip'),
    (b'\xfd7zXZ\x00', 'xz'),
    (b'BZh', 'bzip2'),
    (b'\x28\xb5\x2f\xfd', 'zstd'),
    (b'\x5d\x00\x00', 'lzma'),
)
"""Magic bytes of the known compression formats (a tuple of tuples)."""


def write_ar_archive(handle, members, mtime=None):
    """
    Write an ``ar`` archive in the format used by ``dpkg-deb``.

    :param handle: A binary file object open for writing.
    :param members: An iterable of tuples with two values each: the member
                    name (a string of at most 16 characters) and the member
                    contents (a byte string).
    :param mtime: The modification time of the members (an integer, defaults
                  to the current time).
    :raises: :exc:`~exceptions.ValueError` when a member name is too long.
    """
    if mtime is None:
        mtime = int(time.time())
    handle.write(AR_MAGIC)
    for name, contents in members:
        if len(name) > 16:
            raise ValueError("Name %r too long for an ar archive (16 characters max)!" % name)
        header = ''.join([
            name.ljust(16),
            str(mtime).ljust(12),
            '0'.ljust(6),
            '0'.ljust(6),
            '100644'.ljust(8),
            str(len(contents)).ljust(10),
            '`\n',
        ])
        handle.write(header.encode('ascii'))
        handle.write(contents)
        # Members are aligned on even offsets.
        if len(contents) % 2:
            handle.write(b'\n')
        logger.debug("Added %s (%i bytes) to ar archive.", name, len(contents))


class CpioEntry(object):

    """A single member of a ``cpio`` archive."""

    def __init__(self, name, mode, size, uid=0, gid=0, nlink=1, mtime=0, ino=0, rdev=0):
        """Initialize a :class:`CpioEntry` object from the fields of its header."""
        self.name = name
        self.mode = mode
        self.size = size
        self.uid = uid
        self.gid = gid
        self.nlink = nlink
        self.mtime = mtime
        self.ino = ino
        self.rdev = rdev

    @property
    def is_directory(self):
        """:data:`True` if the entry is a directory."""
        return stat.S_ISDIR(self.mode)

    @property
    def is_regular_file(self):
        """:data:`True` if the entry is a regular file."""
        return stat.S_ISREG(self.mode)

    @property
    def is_symlink(self):
        """:data:`True` if the entry is a symbolic link (its data is the target)."""
        return stat.S_ISLNK(self.mode)


class BoundedReader(object):

    """File like object that reads at most a given number of bytes from another one."""

    def __init__(self, handle, size):
        """
        Initialize a :class:`BoundedReader` object.

        :param handle: The underlying binary file object.
        :param size: The number of bytes available (an integer).
        """
        self.handle = handle
        self.remaining = size

    def read(self, size=-1):
        """Read up to `size` bytes (all remaining bytes when `size` is negative)."""
        if size < 0 or size > self.remaining:
            size = self.remaining
        data = self.handle.read(size)
        if len(data) != size:
            raise FormatError("Truncated archive member (expected %i more bytes)!" % self.remaining)
        self.remaining -= len(data)
        return data

    def drain(self):
        """Skip the unread remainder of the member."""
        while self.remaining:
            self.read(min(self.remaining, 1024 * 64))


class CpioReader(object):

    """
    Reader for ``cpio`` archives in the ``newc`` or ``odc`` format.

    Iterate over :func:`entries()` to get tuples with a :class:`CpioEntry`
    and a file like object that provides the data of the entry. The data must
    be consumed before advancing to the next entry (whatever is left is
    skipped automatically). After the trailer the :attr:`position` attribute
    gives the number of bytes consumed, which enables reading concatenated
    archives like the ones in SVR4 package datastreams.
    """

    def __init__(self, handle, offset=0):
        """
        Initialize a :class:`CpioReader` object.

        :param handle: A binary file object positioned at the start of the archive.
        :param offset: The offset of the archive in the enclosing file (used
                       for error messages only).
        """
        self.handle = handle
        self.offset = offset
        self.position = 0

    def read_exactly(self, size, what):
        """Read exactly `size` bytes or raise :exc:`~pkgshift.exceptions.FormatError`."""
        data = self.handle.read(size)
        if len(data) != size:
            raise FormatError("Truncated cpio archive while reading %s!" % what,
                              offset=self.offset + self.position)
        self.position += size
        return data

    def skip_padding(self, alignment):
        """Skip the padding that aligns the next header or data block."""
        padding = (alignment - self.position % alignment) % alignment
        if padding:
            self.read_exactly(padding, "padding")

    def entries(self):
        """
        Iterate over the entries in the archive.

        :returns: A generator of tuples with two values each (see above).
        :raises: :exc:`~pkgshift.exceptions.FormatError` when the archive is
                 truncated or corrupt.
        """
        while True:
            start = self.position
            magic = self.read_exactly(6, "header magic")
            if magic == CPIO_NEWC_MAGIC:
                entry, name_size = self.parse_newc_header(start)
                entry.name = self.read_exactly(name_size, "entry name")[:-1].decode('utf-8', 'surrogateescape')
                self.skip_padding(4)
                alignment = 4
            elif magic == CPIO_ODC_MAGIC:
                entry, name_size = self.parse_odc_header(start)
                entry.name = self.read_exactly(name_size, "entry name")[:-1].decode('utf-8', 'surrogateescape')
                alignment = 1
            else:
                raise FormatError("Bad cpio header magic %r!" % magic, offset=self.offset + start)
            if entry.name == CPIO_TRAILER:
                self.skip_padding(alignment)
                return
            reader = BoundedReader(self.handle, entry.size)
            yield entry, reader
            reader.drain()
            self.position += entry.size
            self.skip_padding(alignment)

    def parse_newc_header(self, start):
        """Parse the remainder of a ``newc`` header (13 fields of 8 hexadecimal digits)."""
        data = self.read_exactly(13 * 8, "newc header")
        try:
            fields = [int(data[i:i + 8], 16) for i in range(0, len(data), 8)]
        except ValueError:
            raise FormatError("Invalid number in newc header!", offset=self.offset + start)
        ino, mode, uid, gid, nlink, mtime, size, _, _, rdev_major, rdev_minor, name_size, _ = fields
        entry = CpioEntry(name=None, mode=mode, size=size, uid=uid, gid=gid, nlink=nlink,
                          mtime=mtime, ino=ino, rdev=(rdev_major << 8) | rdev_minor)
        return entry, name_size

    def parse_odc_header(self, start):
        """Parse the remainder of an ``odc`` header (octal fields)."""
        data = self.read_exactly(70, "odc header")
        widths = (6, 6, 6, 6, 6, 6, 6, 11, 6, 11)
        fields = []
        offset = 0
        try:
            for width in widths:
                fields.append(int(data[offset:offset + width], 8))
                offset += width
        except ValueError:
            raise FormatError("Invalid number in odc header!", offset=self.offset + start)
        _, ino, mode, uid, gid, nlink, rdev, mtime, name_size, size = fields
        entry = CpioEntry(name=None, mode=mode, size=size, uid=uid, gid=gid,
                          nlink=nlink, mtime=mtime, ino=ino, rdev=rdev)
        return entry, name_size


class CpioWriter(object):

    """Writer for ``cpio`` archives in the ``newc`` or ``odc`` format."""

    def __init__(self, handle, format='newc', block_size=1):
        """
        Initialize a :class:`CpioWriter` object.

        :param handle: A binary file object open for writing.
        :param format: Either ``newc`` or ``odc`` (a string).
        :param block_size: The archive is padded to a multiple of this many
                           bytes when it's closed (an integer).
        """
        if format not in ('newc', 'odc'):
            raise ValueError("Unsupported cpio format %r!" % format)
        self.handle = handle
        self.format = format
        self.block_size = block_size
        self.position = 0
        self.next_inode = 1

    def write(self, data):
        """Write raw bytes to the archive."""
        self.handle.write(data)
        self.position += len(data)

    def pad(self, alignment):
        """Write zero bytes up to the given alignment."""
        padding = (alignment - self.position % alignment) % alignment
        if padding:
            self.write(b'\0' * padding)

    def add(self, name, mode, data=b'', handle=None, size=None, uid=0, gid=0, nlink=1, mtime=0, ino=None):
        """
        Add an entry to the archive.

        :param name: The name of the entry (a string).
        :param mode: The file type and permission bits (an integer).
        :param data: The contents of the entry (a byte string).
        :param handle: A binary file object to copy the contents from instead
                       of `data` (requires `size`).
        :param size: The number of bytes to copy from `handle` (an integer).
        :param ino: The inode number (an integer, allocated automatically when
                    not given).
        :returns: The inode number of the entry (an integer).
        """
        if ino is None:
            ino = self.next_inode
            self.next_inode += 1
        if handle is None:
            size = len(data)
        encoded_name = name.encode('utf-8', 'surrogateescape') + b'\0'
        if self.format == 'newc':
            fields = (ino, mode, uid, gid, nlink, mtime, size, 0, 0, 0, 0, len(encoded_name), 0)
            header = CPIO_NEWC_MAGIC + b''.join(b'%08x' % value for value in fields)
            self.write(header + encoded_name)
            self.pad(4)
        else:
            if size > 0o77777777777:
                raise ValueError("File too large for odc cpio archive: %s" % name)
            header = CPIO_ODC_MAGIC + (
                b'%06o%06o%06o%06o%06o%06o%06o%011o%06o%011o' % (
                    0, ino & 0o777777, mode, uid, gid, nlink, 0, mtime, len(encoded_name), size,
                )
            )
            self.write(header + encoded_name)
        if handle is None:
            self.write(data)
        else:
            copied = 0
            while copied < size:
                chunk = handle.read(min(size - copied, 1024 * 64))
                if not chunk:
                    raise ValueError("Premature end of file while archiving %s!" % name)
                self.write(chunk)
                copied += len(chunk)
        if self.format == 'newc':
            self.pad(4)
        return ino

    def close(self):
        """Write the trailer and pad the archive to :attr:`block_size`."""
        self.add(CPIO_TRAILER, 0, nlink=1, ino=0)
        self.pad(self.block_size)


def detect_compression(header):
    """
    Detect the compression format of a stream by its magic bytes.

    :param header: The first bytes of the stream (a byte string).
    :returns: One of the strings ``gzip``, ``xz``, ``bzip2``, ``zstd``,
              ``lzma`` or :data:`None` (for uncompressed data).
    """
    for magic, name in COMPRESSION_MAGIC:
        if header.startswith(magic):
            return name


def decompress_stream(handle, compression=None):
    """
    Wrap a binary file object in a decompressor.

    :param handle: A seekable binary file object positioned at the start of
                   the compressed data.
    :param compression: The name of the compression format (a string). When
                        :data:`None` the format is detected using
                        :func:`detect_compression()`.
    :returns: A readable binary file object.
    :raises: :exc:`~pkgshift.exceptions.UnsupportedFeatureError` when the
             compression format isn't supported.
    """
    if not compression:
        position = handle.tell()
        compression = detect_compression(handle.read(6))
        handle.seek(position)
    if compression == 'gzip':
        return gzip.GzipFile(fileobj=handle, mode='rb')
    elif compression in ('xz', 'lzma'):
        return lzma.LZMAFile(handle)
    elif compression == 'bzip2':
        return bz2.BZ2File(handle)
    elif compression in (None, 'none', 'identity'):
        return handle
    raise UnsupportedFeatureError(compact("""
        The {name} compression format isn't supported (only gzip, xz, lzma
        and bzip2 are).
    """, name=compression))


def compress_stream(handle, compression):
    """
    Wrap a binary file object in a compressor.

    :param handle: A binary file object open for writing.
    :param compression: One of the strings ``gzip``, ``xz`` or ``bzip2``.
    :returns: A writable binary file object (close it to flush the
              compressor, this doesn't close `handle`).
    """
    if compression == 'gzip':
        return gzip.GzipFile(fileobj=handle, mode='wb', compresslevel=9, mtime=0)
    elif compression == 'xz':
        return lzma.LZMAFile(handle, mode='wb', format=lzma.FORMAT_XZ)
    elif compression == 'bzip2':
        return bz2.BZ2File(handle, mode='wb')
    raise ValueError("Unsupported compression format %r!" % compression)
