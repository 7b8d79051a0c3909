# pkgshift: Convert binary packages between the deb, rpm, tgz and pkg formats.
#
# Last Change: October 18, 2026

"""
The :mod:`pkgshift.formats.deb` module reads and writes Debian binary packages.

A Debian binary package is an ``ar`` archive with three members:

1. ``debian-binary`` contains the format version (``2.0``).
2. ``control.tar.gz`` contains the ``control`` file, the ``md5sums`` and
   ``conffiles`` files and the maintainer scripts.
3. ``data.tar.gz`` (or ``data.tar.xz``) contains the files to install.

Reading relies on :mod:`debian.debfile` (part of python-debian) and the
relationship parser of :mod:`deb_pkg_tools.deps`. Writing doesn't need
``dpkg-deb``: the control file is generated using
:func:`deb_pkg_tools.control.unparse_control_fields()` and the archives are
built with :mod:`tarfile` and :func:`.write_ar_archive()`.
"""

# Standard library modules.
import gzip
import io
import logging
import lzma
import re
import tarfile
import zlib

# External dependencies.
from deb_pkg_tools.control import unparse_control_fields
from deb_pkg_tools.deps import AlternativeRelationship, VersionedRelationship, parse_depends
from debian.arfile import ArError
from debian.changelog import Changelog, ChangelogParseError
from debian.deb822 import Deb822
from debian.debfile import DebError, DebFile
from humanfriendly import format_path
from humanfriendly.text import compact, pluralize
from property_manager import PropertyManager, mutable_property

# Modules included in our package.
from pkgshift.archives import AR_MAGIC, compress_stream, write_ar_archive
from pkgshift.exceptions import EncodingError, FormatError, UnsupportedFeatureError
from pkgshift.mapping import DEB, DEBIAN_NAME_PATTERN
from pkgshift.package import (
    CONFFILE,
    DIRECTORY,
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
    expand_directories,
    guess_kind,
    normalize_path,
    unique_relations,
)
from pkgshift.utils import ConversionReport, get_build_time

# Initialize a logger.
logger = logging.getLogger(__name__)

SCRIPT_NAMES = ((PRE_INSTALL, 'preinst'), (POST_INSTALL, 'postinst'),
                (PRE_REMOVE, 'prerm'), (POST_REMOVE, 'postrm'))
"""Mapping of script slots to the names of Debian maintainer scripts (a tuple of tuples)."""

KNOWN_CONTROL_FILES = ('control', 'md5sums', 'conffiles') + tuple(name for _, name in SCRIPT_NAMES)
"""The members of ``control.tar.*`` that are understood (a tuple of strings)."""

RELATION_FIELDS = (('Pre-Depends', 'dependencies'), ('Depends', 'dependencies'),
                   ('Conflicts', 'conflicts'), ('Provides', 'provides'),
                   ('Replaces', 'replaces'))
"""Mapping of control fields to relation kinds (a tuple of tuples)."""

OPERATORS_FROM_DEBIAN = {'<<': '<', '<=': '<=', '=': '=', '>=': '>=', '>>': '>',
                         # The obsolete operators `<' and `>' aren't strict.
                         '<': '<=', '>': '>='}
"""Mapping of Debian relationship operators to canonical operators (a dictionary)."""

OPERATORS_TO_DEBIAN = {'<': '<<', '<=': '<=', '=': '=', '>=': '>=', '>': '>>'}
"""Mapping of canonical operators to Debian relationship operators (a dictionary)."""

COMPRESSION_SUFFIXES = {'gzip': '.gz', 'xz': '.xz'}
"""Mapping of supported compression formats to the suffix of ``data.tar`` (a dictionary)."""

UPSTREAM_VERSION_PATTERN = re.compile(r'^[0-9][A-Za-z0-9.+~-]*$')
"""Compiled regular expression that matches valid upstream versions."""

REVISION_PATTERN = re.compile(r'^[A-Za-z0-9.+~]*$')
"""Compiled regular expression that matches valid Debian revisions."""


class DebCodec(PropertyManager):

    """Codec for Debian binary packages (``*.deb`` files)."""

    format = DEB
    """The name of the format implemented by this codec (a string)."""

    extensions = ('.deb', '.udeb')
    """The filename extensions of Debian binary packages (a tuple of strings)."""

    @mutable_property(cached=True)
    def report(self):
        """The :class:`.ConversionReport` that collects warnings."""
        return ConversionReport()

    @mutable_property
    def compression(self):
        """The compression of ``data.tar`` (``gzip`` or ``xz``, defaults to ``gzip``)."""
        return 'gzip'

    @mutable_property(cached=True)
    def mtime(self):
        """The modification time of generated archive members (an integer)."""
        return get_build_time()

    @classmethod
    def matches(cls, header):
        """Check whether the first bytes of a file identify a Debian binary package."""
        return header.startswith(AR_MAGIC + b'debian-binary')

    def read(self, filename, arena):
        """
        Read a Debian binary package.

        :param filename: The pathname of a ``*.deb`` file (a string).
        :param arena: The :class:`.StagingArena` that receives the file contents.
        :returns: A :class:`.CanonicalPackage` object.
        :raises: :exc:`.FormatError` when the archive is malformed or a file
                 doesn't match its MD5 checksum, :exc:`.UnsupportedFeatureError`
                 when the package contains device files or FIFOs.
        """
        logger.info("Reading Debian binary package %s ..", format_path(filename))
        try:
            archive = DebFile(filename)
        except (ArError, DebError, EOFError) as e:
            raise FormatError("Not a valid Debian binary package: %s (%s)" % (format_path(filename), e))
        try:
            format_version = archive.version
            if isinstance(format_version, bytes):
                format_version = format_version.decode('ascii', 'replace')
            if not format_version.startswith('2.'):
                raise FormatError("Unsupported Debian binary package format version %r!" % format_version.strip(),
                                  field='debian-binary')
            control_files = self.read_control_archive(archive)
            conffiles = set(normalize_path(line) for line in
                            control_files.get('conffiles', '').splitlines() if line.strip())
            files = self.read_data_archive(archive, arena, conffiles)
        except (tarfile.TarError, ArError, DebError, EOFError, gzip.BadGzipFile, lzma.LZMAError, zlib.error) as e:
            raise FormatError("Corrupt Debian binary package: %s (%s)" % (format_path(filename), e))
        finally:
            archive.close()
        if 'control' not in control_files:
            raise FormatError("Debian binary package has no control file!", field='control')
        self.verify_checksums(control_files.get('md5sums', ''), files)
        package = self.parse_control(control_files['control'])
        scripts = {}
        for kind, name in SCRIPT_NAMES:
            if name in control_files:
                scripts[kind] = Script.parse(control_files[name])
        package = package.replace(files=tuple(files), scripts=scripts)
        return package.replace(changelog=self.read_changelog(package, arena))

    def read_control_archive(self, archive):
        """
        Get the text files in ``control.tar.*``.

        :param archive: A :class:`debian.debfile.DebFile` object.
        :returns: A dictionary with the names of control files and their
                  contents (decoded strings).
        """
        contents = {}
        control = archive.control.tgz()
        for member in control.getmembers():
            name = normalize_path(member.name)
            if not member.isfile():
                continue
            if name not in KNOWN_CONTROL_FILES:
                self.report.warn("Ignoring control file %s because it has no equivalent in other formats.", name)
                continue
            handle = control.extractfile(member)
            contents[name] = handle.read().decode('utf-8', 'surrogateescape')
        return contents

    def read_data_archive(self, archive, arena, conffiles):
        """
        Extract ``data.tar.*`` into the staging arena.

        :param archive: A :class:`debian.debfile.DebFile` object.
        :param arena: A :class:`.StagingArena` object.
        :param conffiles: A set with the normalized pathnames of conffiles.
        :returns: A list of :class:`.FileEntry` objects.
        """
        files = []
        entries = {}
        data = archive.data.tgz()
        for member in data:
            path = normalize_path(member.name)
            if not path:
                continue
            options = dict(path=path, mode=member.mode & 0o7777,
                           owner=member.uname or ('root' if member.uid == 0 else str(member.uid)),
                           group=member.gname or ('root' if member.gid == 0 else str(member.gid)))
            if member.isdir():
                entry = FileEntry(kind=DIRECTORY, **options)
            elif member.issym():
                entry = FileEntry(kind=SYMLINK, target=member.linkname, **options)
            elif member.isfile():
                size, checksum = arena.stage(path, data.extractfile(member))
                entry = FileEntry(kind=CONFFILE if path in conffiles else guess_kind(path),
                                  size=size, checksum=checksum, **options)
            elif member.islnk():
                source = entries.get(normalize_path(member.linkname))
                if source is None:
                    raise FormatError("Hard link %s refers to unknown file %s!" % (path, member.linkname),
                                      field='data.tar')
                size, checksum = arena.copy(source.path, path)
                entry = FileEntry(kind=CONFFILE if path in conffiles else guess_kind(path),
                                  size=size, checksum=checksum, **options)
            else:
                raise UnsupportedFeatureError(compact("""
                    Package contains device file or FIFO {path} which can't
                    be represented in other formats!
                """, path=path))
            entries[path] = entry
            files.append(entry)
        logger.debug("Extracted %s from data archive.", pluralize(len(files), "object"))
        return files

    def verify_checksums(self, md5sums, files):
        """
        Verify the contents of the staged files against the ``md5sums`` control file.

        :param md5sums: The contents of the ``md5sums`` file (a string).
        :param files: A list of :class:`.FileEntry` objects.
        :raises: :exc:`.FormatError` when a checksum doesn't match.
        """
        checksums = dict((entry.path, entry.checksum) for entry in files if entry.has_contents)
        for line in md5sums.splitlines():
            digest, _, path = line.strip().partition(' ')
            path = normalize_path(path.strip())
            if not path:
                continue
            if path not in checksums:
                self.report.warn("The md5sums file lists %s which isn't in the data archive.", path)
            elif checksums[path] != digest.lower():
                raise FormatError("MD5 checksum mismatch for %s!" % path, field='md5sums')

    def parse_control(self, text):
        """
        Parse the ``control`` file of a Debian binary package.

        :param text: The contents of the control file (a string).
        :returns: A :class:`.CanonicalPackage` object without files and scripts.
        """
        fields = Deb822(text)
        for name in ('Package', 'Version'):
            if not fields.get(name):
                raise FormatError("Required control field %s is missing!" % name, field=name)
        version, release, epoch = split_version(fields['Version'])
        summary, description = parse_description(fields.get('Description', ''))
        relations = dict(dependencies=[], conflicts=[], provides=[], replaces=[])
        for name, kind in RELATION_FIELDS:
            if fields.get(name):
                try:
                    parsed = parse_depends(fields[name])
                except Exception as e:
                    raise FormatError("Failed to parse %s field! (%s)" % (name, e), field=name)
                relations[kind].extend(convert_relationship(r) for r in parsed.relationships)
        return CanonicalPackage(
            name=fields['Package'],
            version=version,
            release=release,
            epoch=epoch,
            architecture=fields.get('Architecture', 'all'),
            summary=summary,
            description=description,
            maintainer=fields.get('Maintainer', ''),
            section=fields.get('Section', ''),
            homepage=fields.get('Homepage', ''),
            original_format=DEB,
            **dict((kind, unique_relations(values)) for kind, values in relations.items())
        )

    def read_changelog(self, package, arena):
        """
        Recover the change log of a package from its documentation directory.

        :param package: A :class:`.CanonicalPackage` object.
        :param arena: A :class:`.StagingArena` object.
        :returns: A tuple of :class:`.ChangelogEntry` objects (empty when the
                  package doesn't contain a parsable ``changelog.Debian.gz``).
        """
        pathname = 'usr/share/doc/%s/changelog.Debian.gz' % package.name
        if not arena.exists(pathname):
            return ()
        try:
            with gzip.open(arena.get_path(pathname), 'rt', encoding='utf-8', errors='replace') as handle:
                changelog = Changelog(handle.read(), strict=True)
        except (ChangelogParseError, EnvironmentError, ValueError) as e:
            self.report.warn("Ignoring unparsable change log %s! (%s)", pathname, e)
            return ()
        return tuple(ChangelogEntry(version=str(block.version),
                                    author=block.author or '',
                                    date=block.date or '',
                                    text='\n'.join(block.changes()).strip('\n'))
                     for block in changelog)

    def check(self, package):
        """
        Check whether a package can be written as a Debian binary package.

        :param package: A :class:`.CanonicalPackage` object.
        :raises: :exc:`.EncodingError` when a field is missing or invalid.
        """
        if not DEBIAN_NAME_PATTERN.match(package.name):
            raise EncodingError("Invalid Debian package name %r!" % package.name, field='name')
        if not UPSTREAM_VERSION_PATTERN.match(package.version):
            raise EncodingError("Invalid Debian upstream version %r!" % package.version, field='version')
        if not REVISION_PATTERN.match(package.release):
            raise EncodingError("Invalid Debian revision %r!" % package.release, field='release')
        if '-' in package.version and not package.release:
            raise EncodingError(compact("""
                The version {version} of a Debian package without revision
                can't contain a dash!
            """, version=repr(package.version)), field='version')
        for name in ('maintainer', 'summary'):
            value = getattr(package, name)
            if not value:
                raise EncodingError("The %s field is required for Debian packages!" % name, field=name)
            if '\n' in value:
                raise EncodingError("The %s field can't span multiple lines!" % name, field=name)
        if self.compression not in COMPRESSION_SUFFIXES:
            raise EncodingError("Unsupported data.tar compression %r!" % self.compression, field='compression')

    def get_filename(self, package):
        """Get the filename of the Debian binary package (``name_version_arch.deb``, epoch omitted)."""
        version = package.version
        if package.release:
            version = '%s-%s' % (version, package.release)
        return '%s_%s_%s.deb' % (package.name, version, package.architecture)

    def write(self, package, arena):
        """
        Write a Debian binary package.

        :param package: A :class:`.CanonicalPackage` object whose file
                        contents are staged in `arena`.
        :param arena: A :class:`.StagingArena` object.
        :returns: The pathname of the generated package inside the arena's
                  scratch directory (a string).
        """
        self.check(package)
        data_member = 'data.tar' + COMPRESSION_SUFFIXES[self.compression]
        members = [('debian-binary', b'2.0\n'),
                   ('control.tar.gz', self.build_control_archive(package)),
                   (data_member, self.build_data_archive(package, arena))]
        filename = arena.get_scratch_path(self.get_filename(package))
        with open(filename, 'wb') as handle:
            write_ar_archive(handle, members, mtime=self.mtime)
        logger.info("Wrote Debian binary package %s.", format_path(filename))
        return filename

    def build_control_archive(self, package):
        """Generate the contents of ``control.tar.gz`` (a byte string)."""
        members = [('control', 0o644, self.render_control(package).encode('utf-8'))]
        md5sums = ''.join('%s  %s\n' % (entry.checksum, entry.path)
                          for entry in package.regular_files if entry.checksum)
        if md5sums:
            members.append(('md5sums', 0o644, md5sums.encode('utf-8')))
        conffiles = ''.join('%s\n' % entry.absolute_path for entry in package.files if entry.kind == CONFFILE)
        if conffiles:
            members.append(('conffiles', 0o644, conffiles.encode('utf-8')))
        for kind, name in SCRIPT_NAMES:
            script = package.scripts.get(kind)
            if script:
                members.append((name, 0o755, script.render().encode('utf-8', 'surrogateescape')))
        buffer = io.BytesIO()
        with compress_stream(buffer, 'gzip') as compressor:
            with tarfile.open(fileobj=compressor, mode='w', format=tarfile.GNU_FORMAT) as archive:
                archive.addfile(self.create_tarinfo('./', tarfile.DIRTYPE, 0o755))
                for name, mode, contents in members:
                    info = self.create_tarinfo('./' + name, tarfile.REGTYPE, mode, size=len(contents))
                    archive.addfile(info, io.BytesIO(contents))
        return buffer.getvalue()

    def render_control(self, package):
        """
        Render the ``control`` file of a package.

        :param package: A :class:`.CanonicalPackage` object.
        :returns: The contents of the control file (a string).
        """
        version = package.version
        if package.epoch is not None:
            version = '%i:%s' % (package.epoch, version)
        if package.release:
            version = '%s-%s' % (version, package.release)
        installed_size = sum(entry.size for entry in package.regular_files)
        fields = {'package': package.name,
                  'version': version,
                  'architecture': package.architecture,
                  'maintainer': package.maintainer,
                  'installed-size': str(max(1, (installed_size + 1023) // 1024)),
                  'priority': 'optional',
                  'description': format_description(package.summary, package.description)}
        if package.section:
            fields['section'] = package.section
        if package.homepage:
            fields['homepage'] = package.homepage
        for name, kind in RELATION_FIELDS:
            relations = getattr(package, kind)
            if relations and name != 'Pre-Depends':
                fields[name.lower()] = [render_relation(r) for r in relations]
        control = unparse_control_fields(fields)
        logger.debug("Generated control file fields: %s", control)
        return control.dump()

    def build_data_archive(self, package, arena):
        """
        Generate the contents of ``data.tar.*`` (a byte string).

        Parent directories that are missing from the package's manifest are
        added (owned by root with mode 0755) because ``dpkg`` expects every
        directory to be present in the archive before its contents.
        """
        buffer = io.BytesIO()
        with compress_stream(buffer, self.compression) as compressor:
            with tarfile.open(fileobj=compressor, mode='w', format=tarfile.GNU_FORMAT) as archive:
                archive.addfile(self.create_tarinfo('./', tarfile.DIRTYPE, 0o755))
                for entry in expand_directories(package.files):
                    self.add_entry(archive, entry, arena)
        return buffer.getvalue()

    def add_entry(self, archive, entry, arena):
        """Add a :class:`.FileEntry` to a :class:`tarfile.TarFile` object."""
        name = './' + entry.path
        if entry.kind == DIRECTORY:
            archive.addfile(self.create_tarinfo(name, tarfile.DIRTYPE, entry.mode, entry=entry))
        elif entry.kind == SYMLINK:
            info = self.create_tarinfo(name, tarfile.SYMTYPE, entry.mode or 0o777, entry=entry)
            info.linkname = entry.target
            archive.addfile(info)
        else:
            info = self.create_tarinfo(name, tarfile.REGTYPE, entry.mode,
                                       size=arena.get_size(entry.path), entry=entry)
            with arena.open(entry.path) as handle:
                archive.addfile(info, handle)

    def create_tarinfo(self, name, type, mode, size=0, entry=None):
        """Create a :class:`tarfile.TarInfo` object for a ``root:root`` owned member."""
        info = tarfile.TarInfo(name)
        info.type = type
        info.mode = mode
        info.size = size
        info.mtime = self.mtime
        info.uname = entry.owner if entry else 'root'
        info.gname = entry.group if entry else 'root'
        info.uid = 0 if info.uname == 'root' else get_numeric_id(info.uname)
        info.gid = 0 if info.gname == 'root' else get_numeric_id(info.gname)
        return info


def split_version(text):
    """
    Split a Debian version number into its components.

    :param text: A version number like ``1:2.0-3`` (a string).
    :returns: A tuple with the upstream version (a string), the revision (a
              string, may be empty) and the epoch (an integer or :data:`None`).
    :raises: :exc:`.FormatError` when the epoch isn't a number.

    >>> split_version('1:2.0-3')
    ('2.0', '3', 1)
    >>> split_version('1.0-rc1-2')
    ('1.0-rc1', '2', None)
    """
    epoch = None
    if ':' in text:
        prefix, _, remainder = text.partition(':')
        if not prefix.isdigit():
            raise FormatError("Invalid epoch in version %r!" % text, field='Version')
        text = remainder
        epoch = int(prefix)
    version, _, release = text.rpartition('-')
    if not version:
        version, release = release, ''
    return version, release, epoch


def parse_description(text):
    """
    Parse the ``Description`` field of a Debian control file.

    :param text: The value of the field (a string).
    :returns: A tuple with the summary and the long description (strings).
    """
    summary, _, rest = text.partition('\n')
    lines = []
    for line in rest.split('\n'):
        if line.startswith(' '):
            line = line[1:]
        lines.append('' if line == '.' else line)
    return summary.strip(), '\n'.join(lines).strip('\n')


def format_description(summary, description):
    """
    Format the ``Description`` field of a Debian control file.

    :param summary: The one line summary (a string).
    :param description: The long description (a string, may be empty).
    :returns: The value of the field (a string).

    >>> print(format_description('Greeter', 'Says hello.\\n\\nOften.'))
    Greeter
     Says hello.
     .
     Often.
    """
    lines = [summary]
    for line in description.strip('\n').split('\n') if description.strip() else []:
        lines.append(' ' + line if line.strip() else ' .')
    return '\n'.join(lines)


def convert_relationship(relationship):
    """
    Convert a relationship parsed by :mod:`deb_pkg_tools.deps` to a :class:`.Relation`.

    :param relationship: A :class:`~deb_pkg_tools.deps.Relationship`,
                         :class:`~deb_pkg_tools.deps.VersionedRelationship` or
                         :class:`~deb_pkg_tools.deps.AlternativeRelationship` object.
    :returns: A :class:`.Relation` object.
    """
    if isinstance(relationship, AlternativeRelationship):
        first, rest = relationship.relationships[0], relationship.relationships[1:]
        return convert_relationship(first).replace(alternatives=tuple(convert_relationship(r) for r in rest))
    if isinstance(relationship, VersionedRelationship):
        return Relation(name=relationship.name,
                        operator=OPERATORS_FROM_DEBIAN[relationship.operator],
                        version=relationship.version)
    return Relation(name=relationship.name)


def render_relation(relation):
    """
    Render a :class:`.Relation` in the syntax of Debian control files.

    >>> render_relation(Relation(name='libfoo', operator='>', version='2.0'))
    'libfoo (>> 2.0)'
    """
    text = relation.name
    if relation.operator and relation.version:
        text = '%s (%s %s)' % (text, OPERATORS_TO_DEBIAN[relation.operator], relation.version)
    for alternative in relation.alternatives:
        text = '%s | %s' % (text, render_relation(alternative))
    return text


def get_numeric_id(name):
    """Use the numeric user or group id embedded in a name like ``1000`` (other names map to zero)."""
    return int(name) if name.isdigit() else 0
