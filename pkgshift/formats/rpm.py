# pkgshift: Convert binary packages between the deb, rpm, tgz and pkg formats.
#
# Last Change: October 18, 2026

"""
The :mod:`pkgshift.formats.rpm` module reads and writes RPM packages.

An RPM package consists of four consecutive sections:

1. The 96 byte *lead* (a legacy header that identifies the file).
2. The *signature header* (padded to a multiple of eight bytes) which holds
   the sizes and digests used to verify the rest of the file.
3. The *main header* which holds the metadata of the package.
4. The *payload*: a compressed ``cpio`` archive with the files to install.

Both headers share the same binary structure: a magic number, an index of
``(tag, type, offset, count)`` entries and a data store. The
:class:`HeaderBuilder` class generates headers and :func:`parse_header()`
reads them. The payload is handled by :mod:`pkgshift.archives`.

The Linux Standard Base flavor of the format is implemented by the same
:class:`RpmCodec` class (see :attr:`RpmCodec.lsb`).
"""

# Standard library modules.
import email.utils
import gzip
import hashlib
import logging
import lzma
import os
import shutil
import socket
import stat
import struct
import zlib

# External dependencies.
from humanfriendly import format_path
from humanfriendly.text import compact, pluralize
from property_manager import PropertyManager, mutable_property

# Modules included in our package.
from pkgshift.archives import CpioReader, CpioWriter, compress_stream, decompress_stream
from pkgshift.exceptions import EncodingError, FormatError, UnsupportedFeatureError
from pkgshift.mapping import LSB, RPM, get_canonical_architecture, get_native_architecture
from pkgshift.package import (
    CONFFILE,
    DIRECTORY,
    DOCFILE,
    POST_INSTALL,
    POST_REMOVE,
    PRE_INSTALL,
    PRE_REMOVE,
    SYMLINK,
    CanonicalPackage,
    ChangelogEntry,
    FileEntry,
    Relation,
    Script,
    guess_kind,
    normalize_path,
    unique_relations,
)
from pkgshift.utils import ConversionReport, get_build_time

# Initialize a logger.
logger = logging.getLogger(__name__)

LEAD_MAGIC = b'\xed\xab\xee\xdb'
"""The magic number at the start of an RPM package (a byte string)."""

LEAD_FORMAT = '>4sBBhh66shh16s'
"""The :mod:`struct` format of the lead (96 bytes)."""

LEAD_SIZE = struct.calcsize(LEAD_FORMAT)

HEADER_MAGIC = b'\x8e\xad\xe8\x01'
"""The magic number at the start of a header structure (a byte string)."""

# Header data types.
NULL_TYPE = 0
CHAR_TYPE = 1
INT8_TYPE = 2
INT16_TYPE = 3
INT32_TYPE = 4
INT64_TYPE = 5
STRING_TYPE = 6
BIN_TYPE = 7
STRING_ARRAY_TYPE = 8
I18NSTRING_TYPE = 9

INTEGER_FORMATS = {CHAR_TYPE: 'B', INT8_TYPE: 'B', INT16_TYPE: 'H', INT32_TYPE: 'I', INT64_TYPE: 'Q'}
"""Mapping of integer data types to :mod:`struct` format characters (a dictionary)."""

ALIGNMENT = {INT16_TYPE: 2, INT32_TYPE: 4, INT64_TYPE: 8}
"""Mapping of data types to their required alignment in the data store (a dictionary)."""

MAXIMUM_HEADER_ENTRIES = 0xffff
"""The maximum number of entries in an RPM header (an integer, the same limit as ``rpm`` itself)."""

MAXIMUM_HEADER_DATA = 0x0fffffff
"""The maximum size of the data store of an RPM header in bytes (an integer, the same limit as ``rpm`` itself)."""

# Region tags.
HEADERSIGNATURES = 62
HEADERIMMUTABLE = 63
HEADERI18NTABLE = 100

# Signature tags.
SIGTAG_SHA1 = 269
SIGTAG_SIZE = 1000
SIGTAG_MD5 = 1004
SIGTAG_PAYLOADSIZE = 1007

# Main header tags.
NAME = 1000
VERSION = 1001
RELEASE = 1002
EPOCH = 1003
SUMMARY = 1004
DESCRIPTION = 1005
BUILDTIME = 1006
BUILDHOST = 1007
SIZE = 1009
DISTRIBUTION = 1010
VENDOR = 1011
LICENSE = 1014
PACKAGER = 1015
GROUP = 1016
URL = 1020
OS = 1021
ARCH = 1022
PREIN = 1023
POSTIN = 1024
PREUN = 1025
POSTUN = 1026
OLDFILENAMES = 1027
FILESIZES = 1028
FILEMODES = 1030
FILERDEVS = 1033
FILEMTIMES = 1034
FILEDIGESTS = 1035
FILELINKTOS = 1036
FILEFLAGS = 1037
FILEUSERNAME = 1039
FILEGROUPNAME = 1040
SOURCERPM = 1044
FILEVERIFYFLAGS = 1045
PROVIDENAME = 1047
REQUIREFLAGS = 1048
REQUIRENAME = 1049
REQUIREVERSION = 1050
CONFLICTFLAGS = 1053
CONFLICTNAME = 1054
CONFLICTVERSION = 1055
RPMVERSION = 1064
CHANGELOGTIME = 1080
CHANGELOGNAME = 1081
CHANGELOGTEXT = 1082
PREINPROG = 1085
POSTINPROG = 1086
PREUNPROG = 1087
POSTUNPROG = 1088
OBSOLETENAME = 1090
FILEDEVICES = 1095
FILEINODES = 1096
FILELANGS = 1097
PREFIXES = 1098
PROVIDEFLAGS = 1112
PROVIDEVERSION = 1113
OBSOLETEFLAGS = 1114
OBSOLETEVERSION = 1115
DIRINDEXES = 1116
BASENAMES = 1117
DIRNAMES = 1118
PAYLOADFORMAT = 1124
PAYLOADCOMPRESSOR = 1125
PAYLOADFLAGS = 1126
FILEDIGESTALGO = 5011

# File flags.
RPMFILE_CONFIG = 1 << 0
RPMFILE_DOC = 1 << 1
RPMFILE_NOREPLACE = 1 << 4
RPMFILE_GHOST = 1 << 6

# Dependency sense flags.
RPMSENSE_LESS = 1 << 1
RPMSENSE_GREATER = 1 << 2
RPMSENSE_EQUAL = 1 << 3
RPMSENSE_RPMLIB = 1 << 24
RPMSENSE_MASK = RPMSENSE_LESS | RPMSENSE_GREATER | RPMSENSE_EQUAL

OPERATOR_FLAGS = {
    '<': RPMSENSE_LESS,
    '<=': RPMSENSE_LESS | RPMSENSE_EQUAL,
    '=': RPMSENSE_EQUAL,
    '>=': RPMSENSE_GREATER | RPMSENSE_EQUAL,
    '>': RPMSENSE_GREATER,
}
"""Mapping of canonical operators to RPM sense flags (a dictionary)."""

FLAG_OPERATORS = dict((flags, operator) for operator, flags in OPERATOR_FLAGS.items())
"""Mapping of RPM sense flags to canonical operators (a dictionary)."""

DIGEST_ALGORITHMS = {1: 'md5', 2: 'sha1', 8: 'sha256', 9: 'sha384', 10: 'sha512'}
"""Mapping of ``FILEDIGESTALGO`` values to :mod:`hashlib` algorithm names (a dictionary)."""

ARCHITECTURE_NUMBERS = {
    'i386': 1, 'i486': 1, 'i586': 1, 'i686': 1, 'x86_64': 1, 'athlon': 1,
    'alpha': 2, 'sparc': 3, 'sparc64': 3, 'mips': 4, 'ppc': 5, 'm68k': 6,
    'ia64': 9, 'armv5tel': 12, 'armv7hl': 12, 's390': 14, 's390x': 15,
    'ppc64': 16, 'ppc64le': 16, 'aarch64': 19,
}
"""Mapping of native architecture names to the architecture numbers in the lead (a dictionary)."""

SCRIPT_TAGS = ((PRE_INSTALL, PREIN, PREINPROG), (POST_INSTALL, POSTIN, POSTINPROG),
               (PRE_REMOVE, PREUN, PREUNPROG), (POST_REMOVE, POSTUN, POSTUNPROG))
"""The script slots with their script and interpreter tags (a tuple of tuples)."""

RELATION_TAGS = (('dependencies', REQUIRENAME, REQUIREFLAGS, REQUIREVERSION),
                 ('conflicts', CONFLICTNAME, CONFLICTFLAGS, CONFLICTVERSION),
                 ('provides', PROVIDENAME, PROVIDEFLAGS, PROVIDEVERSION),
                 ('replaces', OBSOLETENAME, OBSOLETEFLAGS, OBSOLETEVERSION))
"""The relation kinds with their name, flags and version tags (a tuple of tuples)."""

RPMLIB_REQUIREMENTS = (('rpmlib(CompressedFileNames)', '3.0.4-1'),
                       ('rpmlib(PayloadFilesHavePrefix)', '4.0-1'))
"""The ``rpmlib(...)`` features used by the generated packages (a tuple of tuples)."""

LSB_DISTRIBUTION = 'Linux Standard Base'
"""The distribution of generated LSB packages (a string)."""


class RpmCodec(PropertyManager):

    """Codec for RPM packages (``*.rpm`` files)."""

    extensions = ('.rpm',)
    """The filename extensions of RPM packages (a tuple of strings)."""

    @mutable_property
    def lsb(self):
        """:data:`True` to read and write Linux Standard Base packages (defaults to :data:`False`)."""
        return False

    @mutable_property(cached=True)
    def report(self):
        """The :class:`.ConversionReport` that collects warnings."""
        return ConversionReport()

    @mutable_property(cached=True)
    def mtime(self):
        """The build time and file modification time of generated packages (an integer)."""
        return get_build_time()

    @mutable_property
    def compression(self):
        """The compression of the payload (only ``gzip`` is supported when writing)."""
        return 'gzip'

    @property
    def format(self):
        """The name of the format implemented by this codec (a string)."""
        return LSB if self.lsb else RPM

    @classmethod
    def matches(cls, header):
        """Check whether the first bytes of a file identify an RPM package."""
        return header.startswith(LEAD_MAGIC)

    def read(self, filename, arena):
        """
        Read an RPM package.

        :param filename: The pathname of an ``*.rpm`` file (a string).
        :param arena: The :class:`.StagingArena` that receives the file contents.
        :returns: A :class:`.CanonicalPackage` object.
        :raises: :exc:`.FormatError` when the package is malformed or its
                 contents don't match the recorded sizes and digests,
                 :exc:`.UnsupportedFeatureError` for source packages, ghost
                 files, relocatable configuration files, device files and
                 unsupported payload compression.
        """
        logger.info("Reading RPM package %s ..", format_path(filename))
        with open(filename, 'rb') as handle:
            self.read_lead(handle)
            signature, size = parse_header(handle, offset=LEAD_SIZE)
            padding = (8 - size % 8) % 8
            handle.read(padding)
            header_offset = LEAD_SIZE + size + padding
            header, size = parse_header(handle, offset=header_offset)
            handle.seek(header_offset)
            header_blob = handle.read(size)
            payload_file = arena.get_scratch_path('payload')
            context = hashlib.md5(header_blob)
            payload_size = 0
            with open(payload_file, 'wb') as output:
                for chunk in iter(lambda: handle.read(1024 * 64), b''):
                    context.update(chunk)
                    output.write(chunk)
                    payload_size += len(chunk)
        self.verify_signature(signature, len(header_blob) + payload_size, context.digest())
        package = self.parse_metadata(header)
        entries = self.parse_file_list(header)
        files = self.read_payload(header, entries, payload_file, arena)
        os.unlink(payload_file)
        return package.replace(files=tuple(files))

    def read_lead(self, handle):
        """Read and validate the lead of an RPM package."""
        data = handle.read(LEAD_SIZE)
        if len(data) < LEAD_SIZE or not data.startswith(LEAD_MAGIC):
            raise FormatError("Bad RPM lead magic %r!" % data[:4], offset=0, field='lead')
        magic, major, minor, type, archnum, name, osnum, sigtype, reserved = struct.unpack(LEAD_FORMAT, data)
        if major not in (3, 4):
            raise FormatError("Unsupported RPM format version %i.%i!" % (major, minor), offset=4, field='lead')
        if type != 0:
            raise UnsupportedFeatureError("Source RPM packages can't be converted!")
        if sigtype != 5:
            raise FormatError("Unsupported RPM signature type %i!" % sigtype, offset=78, field='lead')
        logger.debug("RPM lead names %s.", name.rstrip(b'\0').decode('utf-8', 'replace'))

    def verify_signature(self, signature, size, digest):
        """
        Verify the size and MD5 digest recorded in the signature header.

        :param signature: The parsed signature header (a dictionary).
        :param size: The combined size of the main header and payload (an integer).
        :param digest: The MD5 digest of the main header and payload (a byte string).
        :raises: :exc:`.FormatError` when a value doesn't match.
        """
        if SIGTAG_SIZE in signature and signature[SIGTAG_SIZE][0] != size:
            raise FormatError(compact("""
                RPM size mismatch: The signature header records {expected}
                bytes but the header and payload are {actual} bytes!
            """, expected=signature[SIGTAG_SIZE][0], actual=size), field='SIGTAG_SIZE')
        if SIGTAG_MD5 in signature and signature[SIGTAG_MD5] != digest:
            raise FormatError("RPM MD5 digest of header and payload doesn't match the signature!",
                              field='SIGTAG_MD5')

    def parse_metadata(self, header):
        """
        Convert the metadata in the main header to a :class:`.CanonicalPackage`.

        :param header: The parsed main header (a dictionary).
        :returns: A :class:`.CanonicalPackage` object without files.
        """
        for tag, name in ((NAME, 'NAME'), (VERSION, 'VERSION'), (RELEASE, 'RELEASE')):
            if not get_string(header, tag):
                raise FormatError("Required RPM header tag %s is missing!" % name, field=name)
        name = get_string(header, NAME)
        relations = {}
        for kind, name_tag, flags_tag, version_tag in RELATION_TAGS:
            relations[kind] = parse_relations(header, name_tag, flags_tag, version_tag)
        relations['dependencies'] = [r for r in relations['dependencies'] if not r.name.startswith('rpmlib(')]
        epoch = header.get(EPOCH)
        version = get_string(header, VERSION)
        release = get_string(header, RELEASE)
        # Drop the implicit self provide.
        self_provide = Relation(name=name, operator='=', version=format_evr(version, release, epoch and epoch[0]))
        relations['provides'] = [r for r in relations['provides'] if r != self_provide]
        is_lsb = name.startswith('lsb-') and any(r.name == 'lsb' or r.name.startswith('lsb-core')
                                                 for r in relations['dependencies'])
        group = get_string(header, GROUP)
        scripts = {}
        for kind, script_tag, program_tag in SCRIPT_TAGS:
            text = get_string(header, script_tag)
            if text is not None:
                program = header.get(program_tag)
                if isinstance(program, list):
                    program = ' '.join(program)
                scripts[kind] = Script(interpreter=program or '/bin/sh', text=text)
        return CanonicalPackage(
            name=name,
            version=version,
            release=release,
            epoch=epoch[0] if epoch else None,
            architecture=get_canonical_architecture(RPM, get_string(header, ARCH) or 'noarch'),
            summary=get_string(header, SUMMARY) or '',
            description=(get_string(header, DESCRIPTION) or '').strip('\n'),
            maintainer=get_string(header, PACKAGER) or get_string(header, VENDOR) or '',
            section='' if group in (None, 'Unspecified') else group,
            license=get_string(header, LICENSE) or '',
            homepage=get_string(header, URL) or '',
            distribution=get_string(header, DISTRIBUTION) or '',
            original_format=LSB if is_lsb else RPM,
            changelog=parse_changelog(header),
            scripts=scripts,
            **dict((kind, unique_relations(values)) for kind, values in relations.items())
        )

    def parse_file_list(self, header):
        """
        Get the files listed in the main header.

        :param header: The parsed main header (a dictionary).
        :returns: A list of :class:`.FileEntry` objects in header order (the
                  size and checksum of regular files are the recorded values,
                  they're verified against the payload later on).
        """
        if BASENAMES in header:
            dirnames = header.get(DIRNAMES, [])
            try:
                paths = [dirnames[index] + basename for index, basename
                         in zip(header[DIRINDEXES], header[BASENAMES])]
            except (IndexError, KeyError):
                raise FormatError("Inconsistent RPM file list!", field='DIRINDEXES')
        else:
            paths = header.get(OLDFILENAMES, [])
        count = len(paths)
        modes = header.get(FILEMODES, [0o100644] * count)
        sizes = header.get(FILESIZES, [0] * count)
        flags = header.get(FILEFLAGS, [0] * count)
        targets = header.get(FILELINKTOS, [''] * count)
        digests = header.get(FILEDIGESTS, [''] * count)
        owners = header.get(FILEUSERNAME, ['root'] * count)
        groups = header.get(FILEGROUPNAME, ['root'] * count)
        relocatable = PREFIXES in header
        entries = []
        for i, pathname in enumerate(paths):
            path = normalize_path(pathname)
            options = dict(path=path, mode=modes[i] & 0o7777, owner=owners[i], group=groups[i])
            if flags[i] & RPMFILE_GHOST:
                raise UnsupportedFeatureError("RPM ghost files are not supported! (%s)" % pathname)
            if stat.S_ISDIR(modes[i]):
                entries.append(FileEntry(kind=DIRECTORY, **options))
            elif stat.S_ISLNK(modes[i]):
                entries.append(FileEntry(kind=SYMLINK, target=targets[i], **options))
            elif stat.S_ISREG(modes[i]):
                if flags[i] & RPMFILE_CONFIG:
                    if relocatable:
                        raise UnsupportedFeatureError(compact("""
                            Relocatable RPM packages with configuration files
                            are not supported! ({path})
                        """, path=pathname))
                    kind = CONFFILE
                elif flags[i] & RPMFILE_DOC:
                    kind = DOCFILE
                else:
                    kind = guess_kind(path)
                entries.append(FileEntry(kind=kind, size=sizes[i], checksum=digests[i] or None, **options))
            else:
                raise UnsupportedFeatureError("Device files and FIFOs are not supported! (%s)" % pathname)
        return entries

    def read_payload(self, header, entries, payload_file, arena):
        """
        Extract the payload of an RPM package into the staging arena.

        :param header: The parsed main header (a dictionary).
        :param entries: The :class:`.FileEntry` objects from :func:`parse_file_list()`.
        :param payload_file: The pathname of the compressed payload (a string).
        :param arena: A :class:`.StagingArena` object.
        :returns: A list of :class:`.FileEntry` objects with verified sizes
                  and MD5 checksums.
        :raises: :exc:`.FormatError` when a file is missing from the payload
                 or doesn't match the header.
        """
        payload_format = get_string(header, PAYLOADFORMAT) or 'cpio'
        if payload_format != 'cpio':
            raise UnsupportedFeatureError("Unsupported RPM payload format %r!" % payload_format)
        compressor = get_string(header, PAYLOADCOMPRESSOR) or 'gzip'
        if compressor == 'zstd':
            raise UnsupportedFeatureError("RPM packages with zstd compressed payloads are not supported!")
        expected = dict((entry.path, entry) for entry in entries if entry.has_contents)
        staged = {}
        links = {}
        try:
            with open(payload_file, 'rb') as handle:
                for member, reader in CpioReader(decompress_stream(handle)).entries():
                    path = normalize_path(member.name)
                    if not member.is_regular_file:
                        continue
                    if path not in expected:
                        self.report.warn("Ignoring %s in RPM payload because it's not in the header.", path)
                        continue
                    group = links.setdefault(member.ino, []) if member.nlink > 1 else []
                    if member.size == 0 and member.nlink > 1:
                        # Hard links share the data of the last member in the group.
                        group.append(path)
                        continue
                    staged[path] = arena.stage(path, reader)
                    for other in group:
                        staged[other] = arena.copy(path, other)
                    group[:] = []
        except (EOFError, gzip.BadGzipFile, lzma.LZMAError, zlib.error) as e:
            raise FormatError("Corrupt RPM payload! (%s)" % e, field='payload')
        for path, group in links.items():
            for other in group:
                staged[other] = arena.stage_bytes(other, b'')
        algorithm = DIGEST_ALGORITHMS.get((header.get(FILEDIGESTALGO) or [1])[0])
        files = []
        for entry in entries:
            if entry.has_contents:
                if entry.path not in staged:
                    raise FormatError("File %s is missing from the RPM payload!" % entry.path, field='payload')
                size, checksum = staged[entry.path]
                if size != entry.size:
                    raise FormatError("Size mismatch for %s in RPM payload!" % entry.path, field='FILESIZES')
                if entry.checksum and algorithm:
                    actual = checksum if algorithm == 'md5' else arena.get_digest(entry.path, algorithm)
                    if actual != entry.checksum.lower():
                        raise FormatError("Digest mismatch for %s in RPM payload!" % entry.path,
                                          field='FILEDIGESTS')
                entry = entry.replace(checksum=checksum)
            files.append(entry)
        logger.debug("Extracted %s from RPM payload.", pluralize(len(staged), "file"))
        return files

    def check(self, package):
        """
        Check whether a package can be written as an RPM package.

        :param package: A :class:`.CanonicalPackage` object.
        :raises: :exc:`.EncodingError` when a field is missing or invalid.
        """
        if not package.name or any(c.isspace() for c in package.name):
            raise EncodingError("Invalid RPM package name %r!" % package.name, field='name')
        if self.lsb and not package.name.startswith('lsb-'):
            raise EncodingError("The names of LSB packages must start with 'lsb-'!", field='name')
        for name in ('version', 'release'):
            value = getattr(package, name)
            if not value or '-' in value or any(c.isspace() for c in value):
                raise EncodingError(compact("""
                    RPM {name} {value} must be nonempty and can't contain
                    dashes or whitespace!
                """, name=name, value=repr(value)), field=name)
        if not package.summary or '\n' in package.summary:
            raise EncodingError("RPM packages require a single line summary!", field='summary')
        if self.compression != 'gzip':
            raise EncodingError("Unsupported RPM payload compression %r!" % self.compression,
                                field='compression')

    def get_filename(self, package):
        """Get the filename of the RPM package (``name-version-release.arch.rpm``)."""
        return '%s-%s-%s.%s.rpm' % (package.name, package.version, package.release,
                                    get_native_architecture(RPM, package.architecture))

    def write(self, package, arena):
        """
        Write an RPM package.

        :param package: A :class:`.CanonicalPackage` object whose file
                        contents are staged in `arena`.
        :param arena: A :class:`.StagingArena` object.
        :returns: The pathname of the generated package inside the arena's
                  scratch directory (a string).
        """
        self.check(package)
        files = sorted(package.files, key=lambda entry: entry.path)
        payload_file = arena.get_scratch_path('payload.cpio.gz')
        archive_size = self.build_payload(files, payload_file, arena)
        header = self.build_header(package, files, archive_size).build(HEADERIMMUTABLE)
        payload_size = os.path.getsize(payload_file)
        context = hashlib.md5(header)
        with open(payload_file, 'rb') as handle:
            for chunk in iter(lambda: handle.read(1024 * 64), b''):
                context.update(chunk)
        signature = HeaderBuilder()
        signature.add(SIGTAG_SHA1, STRING_TYPE, hashlib.sha1(header).hexdigest())
        signature.add(SIGTAG_SIZE, INT32_TYPE, [len(header) + payload_size])
        signature.add(SIGTAG_MD5, BIN_TYPE, context.digest())
        signature.add(SIGTAG_PAYLOADSIZE, INT32_TYPE, [archive_size])
        signature = signature.build(HEADERSIGNATURES)
        filename = arena.get_scratch_path(self.get_filename(package))
        with open(filename, 'wb') as handle:
            handle.write(self.build_lead(package))
            handle.write(signature)
            handle.write(b'\0' * ((8 - len(signature) % 8) % 8))
            handle.write(header)
            with open(payload_file, 'rb') as payload:
                shutil.copyfileobj(payload, handle)
        os.unlink(payload_file)
        logger.info("Wrote RPM package %s.", format_path(filename))
        return filename

    def build_lead(self, package):
        """Generate the 96 byte lead of an RPM package (a byte string)."""
        architecture = get_native_architecture(RPM, package.architecture)
        name = ('%s-%s-%s' % (package.name, package.version, package.release)).encode('utf-8')[:65]
        return struct.pack(LEAD_FORMAT, LEAD_MAGIC, 3, 0, 0, ARCHITECTURE_NUMBERS.get(architecture, 0),
                           name, 1, 5, b'')

    def build_payload(self, files, filename, arena):
        """
        Generate the compressed ``cpio`` payload of an RPM package.

        :param files: The :class:`.FileEntry` objects in header order.
        :param filename: The pathname of the payload file to create (a string).
        :param arena: A :class:`.StagingArena` object.
        :returns: The uncompressed size of the ``cpio`` archive (an integer).
        """
        with open(filename, 'wb') as handle:
            with compress_stream(handle, 'gzip') as compressor:
                writer = CpioWriter(compressor, format='newc')
                for inode, entry in enumerate(files, start=1):
                    options = dict(name='./' + entry.path, mode=entry.file_type | entry.mode,
                                   mtime=self.mtime, ino=inode)
                    if entry.kind == DIRECTORY:
                        writer.add(nlink=2, **options)
                    elif entry.kind == SYMLINK:
                        writer.add(data=entry.target.encode('utf-8'), **options)
                    else:
                        with arena.open(entry.path) as source:
                            writer.add(handle=source, size=arena.get_size(entry.path), **options)
                writer.close()
        return writer.position

    def build_header(self, package, files, archive_size):
        """
        Generate the main header of an RPM package.

        :param package: A :class:`.CanonicalPackage` object.
        :param files: The :class:`.FileEntry` objects in header order.
        :param archive_size: The uncompressed size of the payload (an integer).
        :returns: A :class:`HeaderBuilder` object.
        """
        architecture = get_native_architecture(RPM, package.architecture)
        header = HeaderBuilder()
        header.add(HEADERI18NTABLE, STRING_ARRAY_TYPE, ['C'])
        header.add(NAME, STRING_TYPE, package.name)
        header.add(VERSION, STRING_TYPE, package.version)
        header.add(RELEASE, STRING_TYPE, package.release)
        if package.epoch is not None:
            header.add(EPOCH, INT32_TYPE, [package.epoch])
        header.add(SUMMARY, I18NSTRING_TYPE, [package.summary])
        header.add(DESCRIPTION, I18NSTRING_TYPE, [package.description or package.summary])
        header.add(BUILDTIME, INT32_TYPE, [self.mtime])
        header.add(BUILDHOST, STRING_TYPE, socket.gethostname())
        header.add(SIZE, INT32_TYPE, [sum(entry.size for entry in files if entry.has_contents)])
        if self.lsb:
            header.add(DISTRIBUTION, STRING_TYPE, LSB_DISTRIBUTION)
        elif package.distribution:
            header.add(DISTRIBUTION, STRING_TYPE, package.distribution)
        header.add(LICENSE, STRING_TYPE, package.license or 'unknown')
        if package.maintainer:
            header.add(PACKAGER, STRING_TYPE, package.maintainer)
            header.add(VENDOR, STRING_TYPE, package.maintainer)
        header.add(GROUP, I18NSTRING_TYPE, [package.section or 'Unspecified'])
        if package.homepage:
            header.add(URL, STRING_TYPE, package.homepage)
        header.add(OS, STRING_TYPE, 'linux')
        header.add(ARCH, STRING_TYPE, architecture)
        for kind, script_tag, program_tag in SCRIPT_TAGS:
            script = package.scripts.get(kind)
            if script:
                header.add(script_tag, STRING_TYPE, script.text)
                header.add(program_tag, STRING_TYPE, script.interpreter)
        if files:
            self.add_file_list(header, files)
        header.add(SOURCERPM, STRING_TYPE, '%s-%s-%s.src.rpm' % (package.name, package.version, package.release))
        self.add_relations(header, package)
        if package.changelog:
            header.add(CHANGELOGTIME, INT32_TYPE, [parse_date(entry.date, self.mtime) for entry in package.changelog])
            header.add(CHANGELOGNAME, STRING_ARRAY_TYPE, ['%s - %s' % (entry.author, entry.version)
                                                          for entry in package.changelog])
            header.add(CHANGELOGTEXT, STRING_ARRAY_TYPE, [entry.text for entry in package.changelog])
        header.add(RPMVERSION, STRING_TYPE, '4.16.0')
        header.add(PAYLOADFORMAT, STRING_TYPE, 'cpio')
        header.add(PAYLOADCOMPRESSOR, STRING_TYPE, 'gzip')
        header.add(PAYLOADFLAGS, STRING_TYPE, '9')
        logger.debug("Generated RPM header with %s (payload is %i bytes).",
                     pluralize(len(header.entries), "tag"), archive_size)
        return header

    def add_file_list(self, header, files):
        """Add the file list tags to a :class:`HeaderBuilder` object."""
        dirnames = []
        dirindexes = []
        basenames = []
        for entry in files:
            directory, _, basename = entry.absolute_path.rpartition('/')
            directory += '/'
            if directory not in dirnames:
                dirnames.append(directory)
            dirindexes.append(dirnames.index(directory))
            basenames.append(basename)
        flags = []
        for entry in files:
            if entry.kind == CONFFILE:
                flags.append(RPMFILE_CONFIG | RPMFILE_NOREPLACE)
            elif entry.kind == DOCFILE:
                flags.append(RPMFILE_DOC)
            else:
                flags.append(0)
        header.add(FILESIZES, INT32_TYPE, [entry.size if entry.has_contents else
                                           len(entry.target or '') for entry in files])
        header.add(FILEMODES, INT16_TYPE, [entry.file_type | entry.mode for entry in files])
        header.add(FILERDEVS, INT16_TYPE, [0] * len(files))
        header.add(FILEMTIMES, INT32_TYPE, [self.mtime] * len(files))
        header.add(FILEDIGESTS, STRING_ARRAY_TYPE, [(entry.checksum or '') if entry.has_contents else ''
                                                    for entry in files])
        header.add(FILELINKTOS, STRING_ARRAY_TYPE, [entry.target or '' for entry in files])
        header.add(FILEFLAGS, INT32_TYPE, flags)
        header.add(FILEUSERNAME, STRING_ARRAY_TYPE, [entry.owner for entry in files])
        header.add(FILEGROUPNAME, STRING_ARRAY_TYPE, [entry.group for entry in files])
        header.add(FILEVERIFYFLAGS, INT32_TYPE, [0xffffffff] * len(files))
        header.add(FILEDEVICES, INT32_TYPE, [1] * len(files))
        header.add(FILEINODES, INT32_TYPE, list(range(1, len(files) + 1)))
        header.add(FILELANGS, STRING_ARRAY_TYPE, [''] * len(files))
        header.add(DIRINDEXES, INT32_TYPE, dirindexes)
        header.add(BASENAMES, STRING_ARRAY_TYPE, basenames)
        header.add(DIRNAMES, STRING_ARRAY_TYPE, dirnames)
        header.add(FILEDIGESTALGO, INT32_TYPE, [1])

    def add_relations(self, header, package):
        """Add the requires, provides, conflicts and obsoletes tags to a :class:`HeaderBuilder` object."""
        evr = format_evr(package.version, package.release, package.epoch)
        relations = dict(package.relations)
        relations['provides'] = tuple(relations['provides']) + (Relation(name=package.name, operator='=', version=evr),)
        for kind, name_tag, flags_tag, version_tag in RELATION_TAGS:
            names, flags, versions = [], [], []
            for relation in relations[kind]:
                names.append(relation.name)
                if relation.operator and relation.version:
                    flags.append(OPERATOR_FLAGS[relation.operator])
                    versions.append(relation.version)
                else:
                    flags.append(0)
                    versions.append('')
            if kind == 'dependencies':
                for name, version in RPMLIB_REQUIREMENTS:
                    names.append(name)
                    flags.append(RPMSENSE_RPMLIB | RPMSENSE_LESS | RPMSENSE_EQUAL)
                    versions.append(version)
            if names:
                header.add(name_tag, STRING_ARRAY_TYPE, names)
                header.add(flags_tag, INT32_TYPE, flags)
                header.add(version_tag, STRING_ARRAY_TYPE, versions)


class HeaderBuilder(object):

    """
    Generator for RPM header structures.

    Entries are added using :func:`add()` and :func:`build()` renders the
    binary header, including the region tag that marks the header as
    immutable (``rpm`` refuses to install packages without one).
    """

    def __init__(self):
        """Initialize a :class:`HeaderBuilder` object."""
        self.entries = {}

    def add(self, tag, type, value):
        """
        Add an entry to the header.

        :param tag: The tag number (an integer).
        :param type: The data type (one of the ``*_TYPE`` constants).
        :param value: A string (for :data:`STRING_TYPE`), a byte string (for
                      :data:`BIN_TYPE`) or a list of integers or strings.
        """
        self.entries[tag] = (type, value)

    def build(self, region_tag):
        """
        Render the header.

        :param region_tag: The tag of the region entry (:data:`HEADERSIGNATURES`
                           or :data:`HEADERIMMUTABLE`).
        :returns: The binary header (a byte string).
        """
        index = []
        store = bytearray()
        for tag in sorted(self.entries):
            type, value = self.entries[tag]
            alignment = ALIGNMENT.get(type, 1)
            store.extend(b'\0' * ((alignment - len(store) % alignment) % alignment))
            data, count = encode_value(type, value)
            index.append(struct.pack('>iiii', tag, type, len(store), count))
            store.extend(data)
        count = len(index) + 1
        trailer = struct.pack('>iiii', region_tag, BIN_TYPE, -(count * 16), 16)
        index.insert(0, struct.pack('>iiii', region_tag, BIN_TYPE, len(store), 16))
        store.extend(trailer)
        return HEADER_MAGIC + b'\0' * 4 + struct.pack('>ii', count, len(store)) + b''.join(index) + bytes(store)


def encode_value(type, value):
    """
    Encode the value of a header entry.

    :returns: A tuple with the encoded data (a byte string) and the count.
    """
    if type == STRING_TYPE:
        return value.encode('utf-8', 'surrogateescape') + b'\0', 1
    elif type in (STRING_ARRAY_TYPE, I18NSTRING_TYPE):
        return b''.join(v.encode('utf-8', 'surrogateescape') + b'\0' for v in value), len(value)
    elif type == BIN_TYPE:
        return bytes(value), len(value)
    elif type in INTEGER_FORMATS:
        return struct.pack('>%i%s' % (len(value), INTEGER_FORMATS[type]), *value), len(value)
    raise ValueError("Unsupported RPM header data type %i!" % type)


def parse_header(handle, offset):
    """
    Parse an RPM header structure.

    :param handle: A binary file object positioned at the start of the header.
    :param offset: The offset of the header in the file (used in error messages).
    :returns: A tuple with a dictionary that maps tags to values and the size
              of the header in bytes (an integer). String values are decoded
              strings, ``BIN`` values byte strings and all other values are
              lists (the first string is used for ``I18NSTRING`` values).
    :raises: :exc:`.FormatError` when the header is truncated or corrupt.
    """
    intro = handle.read(16)
    if len(intro) < 16 or not intro.startswith(HEADER_MAGIC):
        raise FormatError("Bad RPM header magic %r!" % intro[:4], offset=offset, field='header')
    count, size = struct.unpack('>ii', intro[8:16])
    if not (0 <= count <= MAXIMUM_HEADER_ENTRIES and 0 <= size <= MAXIMUM_HEADER_DATA):
        raise FormatError("Invalid RPM header dimensions! (%i entries, %i bytes)" % (count, size),
                          offset=offset + 8, field='header')
    start = handle.tell()
    remaining = handle.seek(0, os.SEEK_END) - start
    handle.seek(start)
    if count * 16 + size > remaining:
        raise FormatError(compact("""
            Truncated RPM header! ({entries} and {size} bytes of data
            don't fit in the remaining {remaining} bytes)
        """, entries=pluralize(count, "entry", "entries"), size=size, remaining=remaining),
            offset=offset, field='header')
    index = handle.read(count * 16)
    store = handle.read(size)
    if len(index) != count * 16 or len(store) != size:
        raise FormatError("Truncated RPM header!", offset=offset, field='header')
    values = {}
    for i in range(count):
        tag, type, position, number = struct.unpack('>iiii', index[i * 16:i * 16 + 16])
        if tag in (HEADERSIGNATURES, HEADERIMMUTABLE) or type == NULL_TYPE:
            continue
        try:
            values[tag] = decode_value(store, type, position, number)
        except (IndexError, struct.error, ValueError):
            raise FormatError("Corrupt RPM header entry for tag %i!" % tag,
                              offset=offset + 16 + i * 16, field='header')
    return values, 16 + count * 16 + size


def decode_value(store, type, position, count):
    """Decode the value of a header entry (see :func:`parse_header()`)."""
    if position < 0 or position > len(store):
        raise ValueError("Offset out of range")
    if type == STRING_TYPE:
        end = store.index(b'\0', position)
        return store[position:end].decode('utf-8', 'surrogateescape')
    elif type in (STRING_ARRAY_TYPE, I18NSTRING_TYPE):
        strings = []
        for _ in range(count):
            end = store.index(b'\0', position)
            strings.append(store[position:end].decode('utf-8', 'surrogateescape'))
            position = end + 1
        return strings
    elif type == BIN_TYPE:
        if position + count > len(store):
            raise ValueError("Binary value out of range")
        return store[position:position + count]
    elif type in INTEGER_FORMATS:
        fmt = '>%i%s' % (count, INTEGER_FORMATS[type])
        if position + struct.calcsize(fmt) > len(store):
            raise ValueError("Integer value out of range")
        return list(struct.unpack_from(fmt, store, position))
    raise ValueError("Unknown data type %i" % type)


def get_string(header, tag):
    """Get a string value from a parsed header (the first element of array values)."""
    value = header.get(tag)
    if isinstance(value, list):
        return value[0] if value else None
    return value


def parse_relations(header, name_tag, flags_tag, version_tag):
    """
    Get the relations of a kind from a parsed header.

    :returns: A list of :class:`.Relation` objects.
    """
    names = header.get(name_tag, [])
    flags = header.get(flags_tag, [0] * len(names))
    versions = header.get(version_tag, [''] * len(names))
    relations = []
    for name, sense, version in zip(names, flags, versions):
        if sense & RPMSENSE_RPMLIB:
            continue
        operator = FLAG_OPERATORS.get(sense & RPMSENSE_MASK)
        if operator and version:
            relations.append(Relation(name=name, operator=operator, version=version))
        else:
            relations.append(Relation(name=name))
    return relations


def parse_changelog(header):
    """Get the change log from a parsed header (a tuple of :class:`.ChangelogEntry` objects)."""
    entries = []
    for timestamp, name, text in zip(header.get(CHANGELOGTIME, []),
                                     header.get(CHANGELOGNAME, []),
                                     header.get(CHANGELOGTEXT, [])):
        author, _, version = name.rpartition(' - ')
        if not author:
            author, version = name, ''
        entries.append(ChangelogEntry(version=version, author=author,
                                      date=email.utils.formatdate(timestamp),
                                      text=text))
    return tuple(entries)


def parse_date(text, default):
    """Convert an :rfc:`2822` date to a UNIX timestamp (an integer, `default` when the date is invalid)."""
    parsed = email.utils.parsedate_tz(text) if text else None
    return int(email.utils.mktime_tz(parsed)) if parsed else default


def format_evr(version, release, epoch=None):
    """
    Format an RPM ``[epoch:]version-release`` string.

    >>> format_evr('2.0', '1', 3)
    '3:2.0-1'
    """
    text = '%s-%s' % (version, release) if release else version
    if epoch is not None:
        text = '%i:%s' % (epoch, text)
    return text
