# pkgshift: Convert binary packages between the deb, rpm, tgz and pkg formats.
#
# Last Change: October 18, 2026

"""
The :mod:`pkgshift.formats.tgz` module reads and writes Slackware packages.

A Slackware package is a compressed tar archive whose filename carries the
name, version, architecture and build number of the package
(``name-version-arch-build.tgz``). Metadata lives in the ``install/``
directory of the archive:

- ``install/slack-desc`` contains the summary and description.
- ``install/doinst.sh`` is run after the files have been installed.
- Some packages also contain ``install/predoinst.sh``, ``install/predelete.sh``
  or ``install/delete.sh``. These are read into the pre-install, pre-remove
  and post-remove slots, but they're never generated because stock
  Slackware tools ignore them.

Slackware packages have no dependencies and no conffiles. See
:mod:`pkgshift.scripts` for how maintainer scripts are folded into
``doinst.sh``.
"""

# Standard library modules.
import io
import logging
import os
import re
import tarfile
import textwrap

# External dependencies.
from humanfriendly import format_path
from humanfriendly.text import compact, pluralize
from property_manager import PropertyManager, mutable_property

# Modules included in our package.
from pkgshift.archives import compress_stream
from pkgshift.exceptions import EncodingError, FormatError, UnsupportedFeatureError
from pkgshift.mapping import TGZ, get_canonical_architecture, get_native_architecture
from pkgshift.package import (
    CONFFILE,
    DIRECTORY,
    POST_REMOVE,
    PRE_INSTALL,
    PRE_REMOVE,
    SYMLINK,
    CanonicalPackage,
    FileEntry,
    Script,
    expand_directories,
    guess_kind,
    normalize_path,
)
from pkgshift.scripts import fold_slackware_script, unfold_slackware_script
from pkgshift.utils import ConversionReport, get_build_time

# Initialize a logger.
logger = logging.getLogger(__name__)

COMPRESSION_EXTENSIONS = {'gzip': '.tgz', 'xz': '.txz'}
"""Mapping of supported compression formats to filename extensions (a dictionary)."""

FILENAME_PATTERN = re.compile(r'^(.+?)\.(tgz|txz|tbz|tlz|tar\.gz|tar\.xz|tar\.bz2)$')
"""Compiled regular expression that strips the extension of a Slackware package filename."""

SLACK_DESC_LINES = 11
"""The number of lines in ``install/slack-desc`` (an integer)."""

SLACK_DESC_WIDTH = 70
"""The maximum width of the text in ``install/slack-desc`` (an integer)."""

METADATA_DIRECTORY = 'install'
"""The directory in the archive that holds package metadata (a string)."""

SCRIPT_NAMES = ((PRE_INSTALL, 'predoinst.sh'), (PRE_REMOVE, 'predelete.sh'), (POST_REMOVE, 'delete.sh'))
"""Mapping of script slots to the optional script files in ``install/`` (a tuple of tuples)."""

DEFAULT_SUMMARY = 'Converted tgz package'
"""The summary and description of Slackware packages without ``install/slack-desc`` (a string)."""

DEFAULT_SECTION = 'unknown'
"""The section of packages read from the Slackware format, which doesn't have sections (a string)."""


class TgzCodec(PropertyManager):

    """Codec for Slackware packages (``*.tgz`` and ``*.txz`` files)."""

    format = TGZ
    """The name of the format implemented by this codec (a string)."""

    extensions = ('.tgz', '.txz', '.tbz', '.tlz', '.tar.gz', '.tar.xz', '.tar.bz2')
    """The filename extensions of Slackware packages (a tuple of strings)."""

    @mutable_property(cached=True)
    def report(self):
        """The :class:`.ConversionReport` that collects warnings."""
        return ConversionReport()

    @mutable_property
    def compression(self):
        """The compression of generated packages (``gzip`` or ``xz``, defaults to ``gzip``)."""
        return 'gzip'

    @mutable_property(cached=True)
    def mtime(self):
        """The modification time of generated archive members (an integer)."""
        return get_build_time()

    @classmethod
    def matches(cls, header):
        """
        Check whether the first bytes of a file identify a Slackware package.

        Slackware packages are plain compressed tar archives so this only
        checks for the gzip, xz or bzip2 magic bytes. The other formats are
        checked first by :func:`~pkgshift.formats.detect_format()`.
        """
        return header.startswith((b'\x1f\x8b', b'\xfd7zXZ\x00', b'BZh'))

    def read(self, filename, arena):
        """
        Read a Slackware package.

        :param filename: The pathname of a Slackware package (a string).
        :param arena: The :class:`.StagingArena` that receives the file contents.
        :returns: A :class:`.CanonicalPackage` object.
        :raises: :exc:`.FormatError` when the archive is malformed,
                 :exc:`.UnsupportedFeatureError` when it contains device
                 files or FIFOs.
        """
        logger.info("Reading Slackware package %s ..", format_path(filename))
        name, version, architecture, build = self.parse_filename(filename)
        metadata = {}
        files = []
        entries = {}
        try:
            with tarfile.open(filename, 'r:*') as archive:
                for member in archive:
                    path = normalize_path(member.name)
                    if not path or path == METADATA_DIRECTORY:
                        continue
                    if path.startswith(METADATA_DIRECTORY + '/'):
                        if member.isfile():
                            metadata[path] = archive.extractfile(member).read().decode('utf-8', 'surrogateescape')
                        continue
                    entry = self.read_member(archive, member, path, entries, arena)
                    entries[path] = entry
                    files.append(entry)
        except (tarfile.TarError, EOFError) as e:
            raise FormatError("Corrupt Slackware package: %s (%s)" % (format_path(filename), e))
        summary, description = parse_slack_desc(metadata.pop('install/slack-desc', ''))
        if not (summary or description):
            summary = description = DEFAULT_SUMMARY
        scripts, symlinks = unfold_slackware_script(metadata.pop('install/doinst.sh', ''))
        for kind, script_name in SCRIPT_NAMES:
            text = metadata.pop('%s/%s' % (METADATA_DIRECTORY, script_name), '')
            if text.strip():
                if kind in scripts:
                    self.report.warn("Replacing the %s logic in install/doinst.sh with install/%s.", kind, script_name)
                scripts[kind] = Script.parse(text)
        for path, target in symlinks:
            path = normalize_path(path)
            if path not in entries:
                files.append(FileEntry(path=path, kind=SYMLINK, target=target, mode=0o777))
        for path in sorted(metadata):
            self.report.warn("Ignoring Slackware metadata file %s because it has no equivalent in other formats.",
                             path)
        logger.debug("Extracted %s from Slackware package.", pluralize(len(files), "object"))
        return CanonicalPackage(
            name=name,
            version=version,
            release=build,
            architecture=get_canonical_architecture(TGZ, architecture),
            summary=summary,
            description=description,
            section=DEFAULT_SECTION,
            original_format=TGZ,
            files=tuple(files),
            scripts=scripts,
        )

    def parse_filename(self, filename):
        """
        Parse the name, version, architecture and build number from a Slackware package filename.

        :param filename: The pathname of a Slackware package (a string).
        :returns: A tuple of four strings.

        Filenames that don't contain all four fields are parsed as
        ``name-version`` (this is reported as a warning).
        """
        basename = os.path.basename(filename)
        match = FILENAME_PATTERN.match(basename)
        if match:
            basename = match.group(1)
        fields = basename.rsplit('-', 3)
        if len(fields) == 4 and all(fields):
            return tuple(fields)
        name, _, version = basename.rpartition('-')
        if not name:
            name, version = basename, '0'
        self.report.warn(compact("""
            Slackware package filename {filename} doesn't follow the
            name-version-arch-build convention, assuming architecture 'all'
            and build 1.
        """, filename=os.path.basename(filename)))
        return name, version, 'noarch', '1'

    def read_member(self, archive, member, path, entries, arena):
        """Convert a member of the tar archive to a :class:`.FileEntry` (staging its contents)."""
        options = dict(path=path, mode=member.mode & 0o7777,
                       owner=member.uname or ('root' if member.uid == 0 else str(member.uid)),
                       group=member.gname or ('root' if member.gid == 0 else str(member.gid)))
        kind = CONFFILE if path.startswith('etc/') else guess_kind(path)
        if member.isdir():
            return FileEntry(kind=DIRECTORY, **options)
        elif member.issym():
            return FileEntry(kind=SYMLINK, target=member.linkname, **options)
        elif member.isfile():
            size, checksum = arena.stage(path, archive.extractfile(member))
            return FileEntry(kind=kind, size=size, checksum=checksum, **options)
        elif member.islnk():
            source = entries.get(normalize_path(member.linkname))
            if source is None or not source.has_contents:
                raise FormatError("Hard link %s refers to unknown file %s!" % (path, member.linkname))
            size, checksum = arena.copy(source.path, path)
            return FileEntry(kind=kind, size=size, checksum=checksum, **options)
        raise UnsupportedFeatureError("Device files and FIFOs are not supported! (%s)" % path)

    def check(self, package):
        """
        Check whether a package can be written as a Slackware package.

        :param package: A :class:`.CanonicalPackage` object.
        :raises: :exc:`.EncodingError` when a field is missing or invalid.
        """
        if not package.name or any(c.isspace() or c == '/' for c in package.name):
            raise EncodingError("Invalid Slackware package name %r!" % package.name, field='name')
        for name in ('version', 'release'):
            value = getattr(package, name)
            if not value or '-' in value or any(c.isspace() for c in value):
                raise EncodingError(compact("""
                    Slackware {name} {value} must be nonempty and can't
                    contain dashes or whitespace!
                """, name=name, value=repr(value)), field=name)
        if package.epoch is not None:
            raise EncodingError("Slackware packages don't support epochs!", field='epoch')
        if '\n' in package.summary:
            raise EncodingError("The summary can't span multiple lines!", field='summary')
        if self.compression not in COMPRESSION_EXTENSIONS:
            raise EncodingError("Unsupported Slackware package compression %r!" % self.compression,
                                field='compression')

    def get_filename(self, package):
        """Get the filename of the Slackware package (``name-version-arch-build.tgz``)."""
        return '%s-%s-%s-%s%s' % (package.name, package.version,
                                  get_native_architecture(TGZ, package.architecture),
                                  package.release, COMPRESSION_EXTENSIONS[self.compression])

    def write(self, package, arena):
        """
        Write a Slackware package.

        :param package: A :class:`.CanonicalPackage` object whose file
                        contents are staged in `arena`.
        :param arena: A :class:`.StagingArena` object.
        :returns: The pathname of the generated package inside the arena's
                  scratch directory (a string).
        """
        self.check(package)
        filename = arena.get_scratch_path(self.get_filename(package))
        metadata = [('install/slack-desc', 0o644, self.render_slack_desc(package))]
        doinst = fold_slackware_script(package.scripts)
        if doinst:
            metadata.append(('install/doinst.sh', 0o755, doinst))
        with open(filename, 'wb') as handle:
            with compress_stream(handle, self.compression) as compressor:
                with tarfile.open(fileobj=compressor, mode='w', format=tarfile.GNU_FORMAT) as archive:
                    archive.addfile(self.create_tarinfo('./', tarfile.DIRTYPE, 0o755))
                    archive.addfile(self.create_tarinfo('install/', tarfile.DIRTYPE, 0o755))
                    for name, mode, text in metadata:
                        contents = text.encode('utf-8', 'surrogateescape')
                        info = self.create_tarinfo(name, tarfile.REGTYPE, mode, size=len(contents))
                        archive.addfile(info, io.BytesIO(contents))
                    for entry in expand_directories(package.files):
                        self.add_entry(archive, entry, arena)
        logger.info("Wrote Slackware package %s.", format_path(filename))
        return filename

    def render_slack_desc(self, package):
        """
        Generate the contents of ``install/slack-desc``.

        :param package: A :class:`.CanonicalPackage` object.
        :returns: The standard eleven line description block (a string).
        """
        summary = package.summary or package.name
        lines = ['%s (%s)' % (package.name, summary), '']
        paragraphs = package.description.split('\n\n') if package.description.strip() else []
        for i, paragraph in enumerate(paragraphs):
            if i > 0:
                lines.append('')
            lines.extend(textwrap.wrap(' '.join(paragraph.split()), SLACK_DESC_WIDTH) or [''])
        if len(lines) > SLACK_DESC_LINES:
            self.report.warn("Truncating description of %s to fit in the %i lines of install/slack-desc.",
                             package.name, SLACK_DESC_LINES)
            lines = lines[:SLACK_DESC_LINES]
        lines.extend([''] * (SLACK_DESC_LINES - len(lines)))
        ruler = ' ' * len(package.name) + '|-----handy-ruler' + '-' * (SLACK_DESC_WIDTH - 17) + '|'
        return '\n'.join([ruler] + [('%s: %s' % (package.name, line)).rstrip() for line in lines]) + '\n'

    def add_entry(self, archive, entry, arena):
        """Add a :class:`.FileEntry` to a :class:`tarfile.TarFile` object."""
        name = './' + entry.path
        if entry.kind == DIRECTORY:
            archive.addfile(self.create_tarinfo(name, tarfile.DIRTYPE, entry.mode, entry=entry))
        elif entry.kind == SYMLINK:
            info = self.create_tarinfo(name, tarfile.SYMTYPE, entry.mode, entry=entry)
            info.linkname = entry.target
            archive.addfile(info)
        else:
            info = self.create_tarinfo(name, tarfile.REGTYPE, entry.mode,
                                       size=arena.get_size(entry.path), entry=entry)
            with arena.open(entry.path) as handle:
                archive.addfile(info, handle)

    def create_tarinfo(self, name, type, mode, size=0, entry=None):
        """Create a :class:`tarfile.TarInfo` object."""
        info = tarfile.TarInfo(name)
        info.type = type
        info.mode = mode
        info.size = size
        info.mtime = self.mtime
        info.uname = entry.owner if entry else 'root'
        info.gname = entry.group if entry else 'root'
        return info


def parse_slack_desc(text):
    """
    Parse the contents of ``install/slack-desc``.

    :param text: The contents of the file (a string).
    :returns: A tuple with the summary and the description (strings).

    >>> parse_slack_desc('hello: hello (GNU Hello)\\nhello:\\nhello: Prints a greeting.\\n')
    ('GNU Hello', 'Prints a greeting.')
    """
    lines = []
    prefix = None
    for line in text.splitlines():
        match = re.match(r'^([^\s:]+):( ?)(.*)$', line)
        if not match or line.lstrip().startswith('#'):
            continue
        if prefix is None:
            prefix = match.group(1)
        elif match.group(1) != prefix:
            continue
        lines.append(match.group(3).rstrip())
    if not lines:
        return '', ''
    first = lines.pop(0)
    match = re.match(r'^\S+\s+\((.*)\)$', first)
    if match:
        summary = match.group(1)
    else:
        summary = re.sub(r'^\S+\s+-\s+', '', first)
    while lines and not lines[0]:
        lines.pop(0)
    return summary.strip(), '\n'.join(lines).strip('\n')
