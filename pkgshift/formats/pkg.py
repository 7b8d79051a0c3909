# pkgshift: Convert binary packages between the deb, rpm, tgz and pkg formats.
#
# Last Change: October 18, 2026

"""
The :mod:`pkgshift.formats.pkg` module reads and writes Solaris SVR4 packages.

The single file form of an SVR4 package (the *package datastream* created by
``pkgtrans``) consists of:

1. A text header that names the package, padded to 512 bytes.
2. A ``cpio`` archive with the ``pkginfo`` and ``pkgmap`` files.
3. A second ``cpio`` archive with the rest of the package directory: the
   ``install/`` directory (maintainer scripts and the ``depend`` file) and
   the file contents (either in ``reloc/`` and ``root/`` or in compressed
   class archives under ``archive/``).

The ``pkgmap`` file is the manifest of the package: it lists every object
with its type, ownership, permissions, size and checksum. Generated packages
store their contents in a single bzip2 compressed class archive
(``archive/none.bz2``) and use relative pathnames with ``BASEDIR=/``.
"""

# Standard library modules.
import io
import logging
import os
import re
import socket
import time

# External dependencies.
from humanfriendly import format_path
from humanfriendly.text import compact, pluralize
from property_manager import PropertyManager, mutable_property

# Modules included in our package.
from pkgshift.archives import CpioReader, CpioWriter, compress_stream, decompress_stream
from pkgshift.exceptions import EncodingError, FormatError, UnsupportedFeatureError
from pkgshift.mapping import PKG, get_canonical_architecture, get_native_architecture
from pkgshift.package import (
    CONFFILE,
    DIRECTORY,
    POST_INSTALL,
    POST_REMOVE,
    PRE_INSTALL,
    PRE_REMOVE,
    SYMLINK,
    CanonicalPackage,
    FileEntry,
    Relation,
    Script,
    expand_directories,
    guess_kind,
    normalize_path,
    unique_relations,
)
from pkgshift.utils import ConversionReport, get_build_time, split_maintainer

# Initialize a logger.
logger = logging.getLogger(__name__)

DATASTREAM_MAGIC = b'# PaCkAgE DaTaStReAm'
"""The first line of an SVR4 package datastream (a byte string)."""

DATASTREAM_TRAILER = b'# end of header'
"""The last line of the datastream header (a byte string)."""

BLOCK_SIZE = 512
"""The block size of package datastreams (an integer)."""

SCRIPT_NAMES = ((PRE_INSTALL, 'preinstall'), (POST_INSTALL, 'postinstall'),
                (PRE_REMOVE, 'preremove'), (POST_REMOVE, 'postremove'))
"""Mapping of script slots to the names of SVR4 installation scripts (a tuple of tuples)."""

DEPEND_PATTERN = re.compile(r'\((<=|>=|<|>|=)\s*([^)\s]+)\)\s*$')
"""Compiled regular expression that matches the version constraints in ``install/depend``."""

INSTANCE_PATTERN = re.compile(r'^[A-Za-z][A-Za-z0-9+-]{0,31}$')
"""Compiled regular expression that matches valid package instance names."""

DEFAULT_CLASS = 'none'
"""The installation class of generated objects (a string)."""


class PkgCodec(PropertyManager):

    """Codec for Solaris SVR4 package datastreams (``*.pkg`` files)."""

    format = PKG
    """The name of the format implemented by this codec (a string)."""

    extensions = ('.pkg',)
    """The filename extensions of SVR4 package datastreams (a tuple of strings)."""

    @mutable_property(cached=True)
    def report(self):
        """The :class:`.ConversionReport` that collects warnings."""
        return ConversionReport()

    @mutable_property(cached=True)
    def mtime(self):
        """The modification time recorded in generated ``pkgmap`` files (an integer)."""
        return get_build_time()

    @classmethod
    def matches(cls, header):
        """Check whether the first bytes of a file identify an SVR4 package datastream."""
        return header.startswith(DATASTREAM_MAGIC)

    def read(self, filename, arena):
        """
        Read an SVR4 package datastream.

        :param filename: The pathname of a ``*.pkg`` file (a string).
        :param arena: The :class:`.StagingArena` that receives the file contents.
        :returns: A :class:`.CanonicalPackage` object.
        :raises: :exc:`.FormatError` when the datastream is malformed or a
                 file doesn't match its size or checksum,
                 :exc:`.UnsupportedFeatureError` for multi package or multi
                 part datastreams, device files and parametric pathnames.
        """
        logger.info("Reading SVR4 package datastream %s ..", format_path(filename))
        with open(filename, 'rb') as handle:
            instance, offset = self.read_datastream_header(handle)
            handle.seek(offset)
            reader = CpioReader(handle, offset=offset)
            control = {}
            for member, data in reader.entries():
                path = normalize_path(member.name)
                if path in ('%s/pkginfo' % instance, '%s/pkgmap' % instance):
                    control[path.split('/')[-1]] = data.read().decode('utf-8', 'surrogateescape')
            for name in ('pkginfo', 'pkgmap'):
                if name not in control:
                    raise FormatError("SVR4 package datastream is missing the %s file!" % name, field=name)
            pkginfo = parse_pkginfo(control['pkginfo'])
            basedir = normalize_path(pkginfo.get('BASEDIR', '/'))
            pkgmap, install_info = self.parse_pkgmap(control['pkgmap'], basedir)
            offset += round_up(reader.position)
            handle.seek(offset)
            install_files, staged = self.read_package_directory(handle, offset, instance, basedir, arena)
        self.verify_install_files(install_info, install_files)
        files = self.verify_contents(pkgmap, staged, arena)
        package = self.parse_metadata(pkginfo, install_files)
        logger.debug("Extracted %s from SVR4 package datastream.", pluralize(len(files), "object"))
        return package.replace(files=tuple(files))

    def read_datastream_header(self, handle):
        """
        Parse the text header of a package datastream.

        :param handle: A binary file object positioned at the start of the file.
        :returns: A tuple with the package instance name (a string) and the
                  offset of the first ``cpio`` archive (an integer).
        """
        data = handle.read(BLOCK_SIZE)
        if not data.startswith(DATASTREAM_MAGIC):
            raise FormatError("Bad SVR4 package datastream magic!", offset=0, field='header')
        while DATASTREAM_TRAILER not in data:
            block = handle.read(BLOCK_SIZE)
            if not block:
                raise FormatError("Truncated SVR4 package datastream header!", offset=len(data), field='header')
            data += block
        end = data.index(DATASTREAM_TRAILER) + len(DATASTREAM_TRAILER)
        packages = []
        for line in data[:end].decode('ascii', 'replace').splitlines():
            if line.strip() and not line.startswith('#'):
                packages.append(line.split())
        if len(packages) != 1:
            raise UnsupportedFeatureError(compact("""
                SVR4 package datastreams containing {count} packages are not
                supported (only single package datastreams are).
            """, count=len(packages)))
        fields = packages[0]
        if len(fields) > 1 and fields[1] != '1':
            raise UnsupportedFeatureError("Multi part SVR4 packages are not supported! (%s parts)" % fields[1])
        return fields[0], round_up(end + 1)

    def parse_pkgmap(self, text, basedir):
        """
        Parse the ``pkgmap`` file of a package.

        :param text: The contents of the ``pkgmap`` file (a string).
        :param basedir: The normalized ``BASEDIR`` of the package (a string).
        :returns: A tuple with a list of dictionaries (one for each object)
                  and a dictionary with the size and checksum of the
                  installation files (keyed by name).
        """
        objects = []
        install_info = {}
        for number, line in enumerate(text.splitlines(), start=1):
            fields = line.split()
            if not fields:
                continue
            if fields[0] == ':':
                if len(fields) > 1 and fields[1] != '1':
                    raise UnsupportedFeatureError("Multi part SVR4 packages are not supported!")
                continue
            if fields[0].isdigit():
                if fields[0] != '1':
                    raise UnsupportedFeatureError("Multi part SVR4 packages are not supported!")
                fields = fields[1:]
            type = fields[0] if fields else ''
            try:
                if type == 'i':
                    install_info[fields[1]] = (int(fields[2]), int(fields[3]))
                    continue
                if type in ('p', 'b', 'c'):
                    raise UnsupportedFeatureError(compact("""
                        SVR4 package contains a device file or named pipe
                        ({path}) which can't be represented in other formats!
                    """, path=fields[2]))
                if type not in ('d', 'x', 'f', 'v', 'e', 's', 'l'):
                    raise FormatError("Unknown pkgmap object type %r!" % type, field='pkgmap')
                pathname = fields[2]
                target = None
                if type in ('s', 'l'):
                    pathname, _, target = pathname.partition('=')
                if '$' in pathname:
                    raise UnsupportedFeatureError("Parametric SVR4 pathnames are not supported! (%s)" % pathname)
                if type == 'l':
                    target = join_basedir(basedir, target)
                item = dict(type=type, path=join_basedir(basedir, pathname), target=target)
                if type not in ('s', 'l'):
                    item.update(mode=parse_mode(fields[3]), owner=fields[4], group=fields[5])
                if type in ('f', 'v', 'e'):
                    item.update(size=int(fields[6]), checksum=int(fields[7]))
                objects.append(item)
            except (IndexError, ValueError):
                raise FormatError("Malformed pkgmap line %i: %r" % (number, line), field='pkgmap')
        return objects, install_info

    def read_package_directory(self, handle, offset, instance, basedir, arena):
        """
        Read the second ``cpio`` archive of a package datastream.

        :returns: A tuple with a dictionary of installation files (names
                  mapped to byte strings) and a dictionary that maps staged
                  pathnames to their size and MD5 digest.
        """
        install_files = {}
        staged = {}
        class_archives = []
        prefix = instance + '/'
        for member, data in CpioReader(handle, offset=offset).entries():
            name = normalize_path(member.name)
            if not name.startswith(prefix) or not member.is_regular_file:
                continue
            name = name[len(prefix):]
            if name.startswith('install/'):
                install_files[name[len('install/'):]] = data.read()
            elif name.startswith('archive/'):
                scratch = arena.get_scratch_path('class-%s' % os.path.basename(name))
                with open(scratch, 'wb') as output:
                    output.write(data.read())
                class_archives.append(scratch)
            elif name.startswith('reloc/'):
                path = join_basedir(basedir, name[len('reloc/'):])
                staged[path] = arena.stage(path, data)
            elif name.startswith('root/'):
                path = normalize_path(name[len('root/'):])
                staged[path] = arena.stage(path, data)
        for scratch in class_archives:
            with open(scratch, 'rb') as archive:
                for member, data in CpioReader(decompress_stream(archive)).entries():
                    if member.is_regular_file:
                        path = join_basedir(basedir, member.name)
                        staged[path] = arena.stage(path, data)
            os.unlink(scratch)
        return install_files, staged

    def verify_install_files(self, install_info, install_files):
        """Verify the installation files against the ``i`` lines in ``pkgmap``."""
        for name, contents in install_files.items():
            if name in install_info:
                size, checksum = install_info[name]
                if size != len(contents) or checksum != svr4_checksum(contents):
                    raise FormatError("Checksum mismatch for installation file %s!" % name, field='pkgmap')

    def verify_contents(self, pkgmap, staged, arena):
        """
        Convert the objects in ``pkgmap`` to :class:`.FileEntry` objects.

        :param pkgmap: The objects returned by :func:`parse_pkgmap()`.
        :param staged: A dictionary with the sizes and MD5 digests of staged files.
        :param arena: A :class:`.StagingArena` object.
        :returns: A list of :class:`.FileEntry` objects.
        :raises: :exc:`.FormatError` when a file is missing or its size or
                 SVR4 checksum doesn't match.
        """
        files = []
        for item in pkgmap:
            path = item['path']
            if item['type'] in ('d', 'x'):
                files.append(FileEntry(path=path, kind=DIRECTORY, mode=item['mode'] or 0o755,
                                       owner=item['owner'], group=item['group']))
            elif item['type'] == 's':
                files.append(FileEntry(path=path, kind=SYMLINK, target=item['target'], mode=0o777))
            elif item['type'] == 'l':
                source = item['target']
                if source not in staged:
                    raise FormatError("Hard link %s refers to unknown file %s!" % (path, item['target']),
                                      field='pkgmap')
                size, checksum = staged[path] = arena.copy(source, path)
                files.append(FileEntry(path=path, kind=guess_kind(path), size=size, checksum=checksum))
            else:
                if path not in staged:
                    raise FormatError("File %s is missing from the SVR4 package!" % path, field='pkgmap')
                size, checksum = staged[path]
                if size != item['size']:
                    raise FormatError("Size mismatch for %s in SVR4 package!" % path, field='pkgmap')
                if item['type'] != 'v':
                    with arena.open(path) as handle:
                        if svr4_checksum_stream(handle) != item['checksum']:
                            raise FormatError("Checksum mismatch for %s in SVR4 package!" % path,
                                              field='pkgmap')
                files.append(FileEntry(path=path, kind=CONFFILE if item['type'] == 'e' else guess_kind(path),
                                       mode=item['mode'] or 0o644, owner=item['owner'], group=item['group'],
                                       size=size, checksum=checksum))
        return files

    def parse_metadata(self, pkginfo, install_files):
        """
        Convert ``pkginfo`` and the installation files to a :class:`.CanonicalPackage`.

        :param pkginfo: The parsed ``pkginfo`` file (a dictionary).
        :param install_files: A dictionary with the contents of the installation files.
        :returns: A :class:`.CanonicalPackage` object without files.
        """
        for name in ('PKG', 'VERSION'):
            if not pkginfo.get(name):
                raise FormatError("Required pkginfo field %s is missing!" % name, field=name)
        version, _, release = pkginfo['VERSION'].partition(',REV=')
        maintainer = pkginfo.get('VENDOR', '')
        if pkginfo.get('EMAIL'):
            maintainer = '%s <%s>' % (maintainer or pkginfo['EMAIL'], pkginfo['EMAIL'])
        dependencies, conflicts = parse_depend(install_files.pop('depend', b'').decode('utf-8', 'replace'))
        scripts = {}
        for kind, name in SCRIPT_NAMES:
            if name in install_files:
                scripts[kind] = Script.parse(install_files.pop(name).decode('utf-8', 'surrogateescape'))
        for name in sorted(install_files):
            if name not in ('copyright',):
                self.report.warn("Ignoring SVR4 installation file %s because it has no equivalent.", name)
        return CanonicalPackage(
            name=pkginfo['PKG'],
            version=version.strip(),
            release=release.strip(),
            architecture=get_canonical_architecture(PKG, pkginfo.get('ARCH', 'all')),
            summary=pkginfo.get('NAME', ''),
            description=pkginfo.get('DESC', ''),
            maintainer=maintainer,
            section='' if pkginfo.get('CATEGORY') in (None, 'application') else pkginfo['CATEGORY'],
            original_format=PKG,
            dependencies=dependencies,
            conflicts=conflicts,
            scripts=scripts,
        )

    def check(self, package):
        """
        Check whether a package can be written as an SVR4 package datastream.

        :param package: A :class:`.CanonicalPackage` object.
        :raises: :exc:`.EncodingError` when a field is missing or invalid.
        """
        if not INSTANCE_PATTERN.match(package.name):
            raise EncodingError(compact("""
                Invalid SVR4 package instance name {name} (at most 32
                characters that start with a letter and consist of letters,
                digits, dashes and plus signs)!
            """, name=repr(package.name)), field='name')
        if not package.version:
            raise EncodingError("SVR4 packages require a version!", field='version')
        if package.epoch is not None:
            raise EncodingError("SVR4 packages don't support epochs!", field='epoch')
        for name in ('version', 'release', 'summary', 'maintainer', 'architecture', 'section'):
            if '\n' in getattr(package, name):
                raise EncodingError("The %s field can't span multiple lines!" % name, field=name)
        if ',' in package.version:
            raise EncodingError("SVR4 versions can't contain commas!", field='version')
        for entry in package.files:
            if any(c.isspace() for c in entry.path) or '=' in entry.path:
                raise EncodingError("SVR4 pathnames can't contain whitespace or equal signs! (%s)" % entry.path,
                                    field='files')

    def get_filename(self, package):
        """Get the filename of the SVR4 package datastream (``name-version.pkg``)."""
        return '%s-%s.pkg' % (package.name, package.version)

    def write(self, package, arena):
        """
        Write an SVR4 package datastream.

        :param package: A :class:`.CanonicalPackage` object whose file
                        contents are staged in `arena`.
        :param arena: A :class:`.StagingArena` object.
        :returns: The pathname of the generated package inside the arena's
                  scratch directory (a string).
        """
        self.check(package)
        files = expand_directories(package.files)
        instance = package.name
        install_files = []
        depend = render_depend(package)
        if depend:
            install_files.append(('depend', depend.encode('utf-8')))
        for kind, name in SCRIPT_NAMES:
            script = package.scripts.get(kind)
            if script:
                install_files.append((name, script.render().encode('utf-8', 'surrogateescape')))
        pkginfo = self.render_pkginfo(package).encode('utf-8')
        class_archive = self.build_class_archive(files, arena)
        pkgmap = self.render_pkgmap(files, [('pkginfo', pkginfo)] + install_files,
                                    len(class_archive), arena).encode('utf-8')
        # The first archive holds the control files.
        control = io.BytesIO()
        writer = CpioWriter(control, format='odc', block_size=BLOCK_SIZE)
        for name, contents in (('pkginfo', pkginfo), ('pkgmap', pkgmap)):
            writer.add('%s/%s' % (instance, name), 0o100644, data=contents, mtime=self.mtime)
        writer.close()
        # The second archive holds the rest of the package directory.
        contents = io.BytesIO()
        writer = CpioWriter(contents, format='odc', block_size=BLOCK_SIZE)
        for name in (instance, instance + '/install', instance + '/archive'):
            writer.add(name, 0o40755, nlink=2, mtime=self.mtime)
        for name, data in install_files:
            writer.add('%s/install/%s' % (instance, name), 0o100644, data=data, mtime=self.mtime)
        writer.add('%s/archive/%s.bz2' % (instance, DEFAULT_CLASS), 0o100644, data=class_archive, mtime=self.mtime)
        writer.close()
        blocks = (len(control.getvalue()) + len(contents.getvalue())) // BLOCK_SIZE
        header = ('%s\n%s 1 %i\n%s\n' % (DATASTREAM_MAGIC.decode('ascii'), instance, blocks,
                                         DATASTREAM_TRAILER.decode('ascii'))).encode('ascii')
        filename = arena.get_scratch_path(self.get_filename(package))
        with open(filename, 'wb') as handle:
            handle.write(header.ljust(BLOCK_SIZE, b'\0'))
            handle.write(control.getvalue())
            handle.write(contents.getvalue())
        logger.info("Wrote SVR4 package datastream %s.", format_path(filename))
        return filename

    def render_pkginfo(self, package):
        """Generate the contents of the ``pkginfo`` file (a string)."""
        name, email = split_maintainer(package.maintainer)
        version = package.version
        if package.release:
            version = '%s,REV=%s' % (version, package.release)
        fields = [('PKG', package.name),
                  ('NAME', package.summary or package.name),
                  ('ARCH', get_native_architecture(PKG, package.architecture)),
                  ('VERSION', version),
                  ('CATEGORY', package.section or 'application'),
                  ('BASEDIR', '/'),
                  ('CLASSES', DEFAULT_CLASS)]
        if package.description:
            fields.append(('DESC', ' '.join(package.description.split())))
        if name:
            fields.append(('VENDOR', name))
        if email:
            fields.append(('EMAIL', email))
        fields.append(('PSTAMP', '%s%s' % (socket.gethostname().split('.')[0],
                                           time.strftime('%Y%m%d%H%M%S', time.gmtime(self.mtime)))))
        fields.append(('MAXINST', '1000'))
        return ''.join('%s=%s\n' % (key, value) for key, value in fields)

    def render_pkgmap(self, files, install_files, archive_size, arena):
        """
        Generate the contents of the ``pkgmap`` file.

        :param files: The :class:`.FileEntry` objects of the package.
        :param install_files: A list of tuples with the names and contents of
                              the installation files (including ``pkginfo``).
        :param archive_size: The size of the class archive (an integer).
        :param arena: A :class:`.StagingArena` object.
        :returns: The contents of the ``pkgmap`` file (a string).
        """
        lines = []
        for entry in files:
            if entry.kind == DIRECTORY:
                lines.append('1 d %s %s %04o %s %s' % (DEFAULT_CLASS, entry.path, entry.mode, entry.owner, entry.group))
            elif entry.kind == SYMLINK:
                lines.append('1 s %s %s=%s' % (DEFAULT_CLASS, entry.path, entry.target))
            else:
                with arena.open(entry.path) as handle:
                    checksum = svr4_checksum_stream(handle)
                lines.append('1 %s %s %s %04o %s %s %i %i %i' % (
                    'e' if entry.kind == CONFFILE else 'f', DEFAULT_CLASS, entry.path,
                    entry.mode, entry.owner, entry.group, arena.get_size(entry.path),
                    checksum, self.mtime,
                ))
        for name, contents in install_files:
            lines.append('1 i %s %i %i %i' % (name, len(contents), svr4_checksum(contents), self.mtime))
        blocks = 1 + archive_size // BLOCK_SIZE
        return ': 1 %i\n%s\n' % (blocks, '\n'.join(lines))

    def build_class_archive(self, files, arena):
        """Generate the bzip2 compressed class archive with the regular files (a byte string)."""
        buffer = io.BytesIO()
        with compress_stream(buffer, 'bzip2') as compressor:
            writer = CpioWriter(compressor, format='odc')
            for entry in files:
                if entry.has_contents:
                    with arena.open(entry.path) as handle:
                        writer.add(entry.path, entry.file_type | entry.mode, handle=handle,
                                   size=arena.get_size(entry.path), mtime=self.mtime)
            writer.close()
        return buffer.getvalue()


def parse_pkginfo(text):
    """
    Parse the ``KEY=value`` lines of a ``pkginfo`` file.

    :param text: The contents of the file (a string).
    :returns: A dictionary of strings (quotes around values are removed).

    >>> parse_pkginfo('PKG="hello"\\nVERSION=2.10,REV=1\\n')
    {'PKG': 'hello', 'VERSION': '2.10,REV=1'}
    """
    fields = {}
    for line in text.splitlines():
        if '=' in line and not line.startswith('#'):
            key, _, value = line.partition('=')
            value = value.strip()
            if len(value) >= 2 and value[0] == value[-1] and value[0] in '"\'':
                value = value[1:-1]
            fields[key.strip()] = value
    return fields


def parse_depend(text):
    """
    Parse the ``install/depend`` file of a package.

    :param text: The contents of the file (a string).
    :returns: A tuple with two tuples of :class:`.Relation` objects: the
              prerequisites (``P`` lines) and the incompatible packages
              (``I`` lines). Reverse dependencies (``R`` lines) are ignored.
    """
    dependencies = []
    conflicts = []
    for line in text.splitlines():
        fields = line.split(None, 2)
        if len(fields) < 2 or fields[0] not in ('P', 'I'):
            continue
        operator, version = None, None
        match = DEPEND_PATTERN.search(fields[2]) if len(fields) > 2 else None
        if match:
            operator, version = match.groups()
        relation = Relation(name=fields[1], operator=operator, version=version)
        (dependencies if fields[0] == 'P' else conflicts).append(relation)
    return unique_relations(dependencies), unique_relations(conflicts)


def render_depend(package):
    """Generate the contents of ``install/depend`` (a string, empty when the package has no relations)."""
    lines = []
    for prefix, relations in (('P', package.dependencies), ('I', package.conflicts)):
        for relation in relations:
            description = relation.name
            if relation.operator and relation.version:
                description = '%s (%s %s)' % (description, relation.operator, relation.version)
            lines.append('%s %s %s' % (prefix, relation.name, description))
    return ''.join(line + '\n' for line in lines)


def svr4_checksum(data):
    """
    Calculate the SVR4 checksum of a byte string (the algorithm of ``sum -r``).

    >>> svr4_checksum(b'hello')
    532
    """
    return fold_checksum(sum(data))


def svr4_checksum_stream(handle):
    """Calculate the SVR4 checksum of the contents of a binary file object."""
    total = 0
    for chunk in iter(lambda: handle.read(1024 * 64), b''):
        total += sum(chunk)
    return fold_checksum(total)


def fold_checksum(total):
    """Fold a byte sum to 16 bits the way the SVR4 checksum does."""
    total = (total & 0xffff) + ((total & 0xffffffff) >> 16)
    return (total & 0xffff) + (total >> 16)


def join_basedir(basedir, pathname):
    """Resolve a ``pkgmap`` pathname relative to ``BASEDIR`` (absolute pathnames are used as is)."""
    if pathname.startswith('/') or not basedir:
        return normalize_path(pathname)
    return normalize_path('%s/%s' % (basedir, pathname))


def parse_mode(value):
    """Parse an octal permission field from ``pkgmap`` (``?`` means unspecified)."""
    return None if value == '?' else int(value, 8) & 0o7777


def round_up(size):
    """Round a size up to a multiple of :data:`BLOCK_SIZE`."""
    return (size + BLOCK_SIZE - 1) // BLOCK_SIZE * BLOCK_SIZE
