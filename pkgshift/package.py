# pkgshift: Convert binary packages between the deb, rpm, tgz and pkg formats.
#
# Last Change: October 18, 2026

"""
The :mod:`pkgshift.package` module defines the canonical package representation.

Every codec reads a native package into a :class:`CanonicalPackage` and writes
a :class:`CanonicalPackage` back out, so this module is the pivot between all
of the supported formats. The file contents themselves are not part of the
canonical package, they live in the :class:`~pkgshift.staging.StagingArena`
owned by the current conversion.

The transformation stages of the pipeline never modify a package in place,
instead they use :func:`CanonicalPackage.replace()` to create a new one.
"""

# Standard library modules.
import logging
import stat

# External dependencies.
from humanfriendly.text import compact
from property_manager import PropertyManager, mutable_property, required_property

# Modules included in our package.
from pkgshift.exceptions import EncodingError, FormatError

# Initialize a logger.
logger = logging.getLogger(__name__)

REGULAR = 'regular'
"""The kind of a plain file (a string)."""

DIRECTORY = 'directory'
"""The kind of a directory (a string)."""

SYMLINK = 'symlink'
"""The kind of a symbolic link (a string)."""

CONFFILE = 'conffile'
"""The kind of a configuration file that's preserved on upgrade (a string)."""

DOCFILE = 'docfile'
"""The kind of a documentation file (a string)."""

FILE_KINDS = (REGULAR, DIRECTORY, SYMLINK, CONFFILE, DOCFILE)
"""All known file kinds (a tuple of strings)."""

CONTENT_KINDS = (REGULAR, CONFFILE, DOCFILE)
"""The file kinds whose contents are staged in the arena (a tuple of strings)."""

PRE_INSTALL = 'pre-install'
POST_INSTALL = 'post-install'
PRE_REMOVE = 'pre-remove'
POST_REMOVE = 'post-remove'

SCRIPT_KINDS = (PRE_INSTALL, POST_INSTALL, PRE_REMOVE, POST_REMOVE)
"""The four lifecycle script slots in execution order (a tuple of strings)."""

OPERATORS = ('<', '<=', '=', '>=', '>')
"""The canonical version comparison operators (``<`` and ``>`` are strict)."""

DEFAULT_INTERPRETER = '/bin/sh'
"""The interpreter of scripts that don't name one (a string)."""

DOCUMENTATION_DIRECTORIES = ('usr/share/doc/', 'usr/doc/')
"""Directories whose regular files are considered documentation."""


class Relation(PropertyManager):

    """
    A dependency, conflict, provide or replace relation.

    Relations compare equal when their name, operator, version and
    alternatives match, which is what :func:`unique_relations()` relies on.
    """

    @required_property
    def name(self):
        """The name of the package or capability (a string)."""

    @mutable_property
    def operator(self):
        """One of the strings in :data:`OPERATORS` or :data:`None`."""

    @mutable_property
    def version(self):
        """The version the :attr:`operator` compares against (a string or :data:`None`)."""

    @mutable_property
    def alternatives(self):
        """
        Other relations that satisfy this relation just as well (a tuple).

        This models Debian's ``a | b`` syntax: the relation itself is the first
        alternative and this tuple contains the rest.
        """
        return ()

    @property
    def identity(self):
        """A tuple that uniquely identifies the relation."""
        return (self.name, self.operator, self.version,
                tuple(r.identity for r in self.alternatives))

    def replace(self, **changes):
        """Create a copy of the relation with some fields changed."""
        fields = dict(name=self.name, operator=self.operator,
                      version=self.version, alternatives=self.alternatives)
        fields.update(changes)
        return Relation(**fields)

    def __eq__(self, other):
        """Compare relations by their :attr:`identity`."""
        return isinstance(other, Relation) and self.identity == other.identity

    def __ne__(self, other):
        """Compare relations by their :attr:`identity`."""
        return not self.__eq__(other)

    def __hash__(self):
        """Hash relations by their :attr:`identity`."""
        return hash(self.identity)

    def __str__(self):
        """Render the relation in a format agnostic way, e.g. ``libfoo (>= 2.0)``."""
        text = self.name
        if self.operator and self.version:
            text = '%s (%s %s)' % (text, self.operator, self.version)
        for alternative in self.alternatives:
            text = '%s | %s' % (text, alternative)
        return text


class FileEntry(PropertyManager):

    """An object shipped by a package (a regular file, directory or symbolic link)."""

    @required_property
    def path(self):
        """The normalized relative pathname of the object (a string, see :func:`normalize_path()`)."""

    @required_property
    def kind(self):
        """One of the strings in :data:`FILE_KINDS`."""

    @mutable_property
    def mode(self):
        """The permission bits of the object (an integer, defaults to 0o644)."""
        return 0o755 if self.kind == DIRECTORY else 0o644

    @mutable_property
    def owner(self):
        """The name of the user that owns the object (a string, defaults to ``root``)."""
        return 'root'

    @mutable_property
    def group(self):
        """The name of the group that owns the object (a string, defaults to ``root``)."""
        return 'root'

    @mutable_property
    def size(self):
        """The size of the contents in bytes (an integer, defaults to zero)."""
        return 0

    @mutable_property
    def target(self):
        """The target of a symbolic link (a string or :data:`None`)."""

    @mutable_property
    def checksum(self):
        """The MD5 digest of the contents as a hexadecimal string (or :data:`None`)."""

    @property
    def has_contents(self):
        """:data:`True` if the contents of this entry live in the staging arena."""
        return self.kind in CONTENT_KINDS

    @property
    def file_type(self):
        """The :mod:`stat` file type bits matching :attr:`kind` (an integer)."""
        if self.kind == DIRECTORY:
            return stat.S_IFDIR
        elif self.kind == SYMLINK:
            return stat.S_IFLNK
        else:
            return stat.S_IFREG

    @property
    def absolute_path(self):
        """The pathname of the object on the installed system (a string)."""
        return '/' + self.path

    def replace(self, **changes):
        """Create a copy of the entry with some fields changed."""
        fields = dict(path=self.path, kind=self.kind, mode=self.mode,
                      owner=self.owner, group=self.group, size=self.size,
                      target=self.target, checksum=self.checksum)
        fields.update(changes)
        return FileEntry(**fields)


class Script(PropertyManager):

    """The body of a maintainer script (an interpreter and opaque text)."""

    @mutable_property
    def interpreter(self):
        """The absolute pathname of the interpreter (a string, defaults to ``/bin/sh``)."""
        return DEFAULT_INTERPRETER

    @required_property
    def text(self):
        """The script body without a shebang line (a string)."""

    @property
    def is_shell_script(self):
        """
        :data:`True` if the script is interpreted by plain ``/bin/sh``, :data:`False` otherwise.

        Scripts for ``bash``, ``ksh`` or ``/bin/sh`` with options aren't
        considered shell scripts here, because they can't be pasted into
        another ``/bin/sh`` script without changing their meaning.
        """
        return self.interpreter.strip() == DEFAULT_INTERPRETER

    def render(self):
        """Render the script as a standalone executable (with a shebang line)."""
        text = self.text
        if text and not text.endswith('\n'):
            text += '\n'
        return '#!%s\n%s' % (self.interpreter, text)

    @classmethod
    def parse(cls, contents):
        """
        Parse a standalone script into a :class:`Script` object.

        :param contents: The complete script (a string).
        :returns: A :class:`Script` object. When the script doesn't start with
                  a shebang line the interpreter defaults to ``/bin/sh``.
        """
        if contents.startswith('#!'):
            first_line, _, text = contents.partition('\n')
            interpreter = first_line[2:].strip() or DEFAULT_INTERPRETER
            return cls(interpreter=interpreter, text=text)
        return cls(text=contents)


class ChangelogEntry(PropertyManager):

    """A single entry in the change log of a package."""

    @mutable_property
    def version(self):
        """The version the change log entry describes (a string)."""
        return ''

    @mutable_property
    def author(self):
        """The author of the change log entry (a string)."""
        return ''

    @mutable_property
    def date(self):
        """The date of the change log entry in :rfc:`2822` format (a string)."""
        return ''

    @mutable_property
    def text(self):
        """The text of the change log entry (a string)."""
        return ''


class CanonicalPackage(PropertyManager):

    """
    Format agnostic representation of a binary package.

    The metadata of a package is available as properties of this class while
    the contents of the package's files live in the staging arena that's
    owned by the current conversion. Packages are created once (by a codec's
    ``read()`` method) and every transformation after that creates a new
    package using :func:`replace()`.
    """

    fields = (
        'name', 'version', 'release', 'epoch', 'architecture', 'summary',
        'description', 'maintainer', 'section', 'license', 'homepage',
        'distribution', 'original_format', 'changelog', 'dependencies',
        'conflicts', 'provides', 'replaces', 'files', 'scripts',
    )
    """The names of all properties that make up a package (a tuple of strings)."""

    @required_property
    def name(self):
        """The name of the package (a string)."""

    @required_property
    def version(self):
        """The upstream version of the package (a string)."""

    @mutable_property
    def release(self):
        """The RPM release, Debian revision or Slackware build number (a string, may be empty)."""
        return ''

    @mutable_property
    def epoch(self):
        """The epoch of the version (an integer or :data:`None`)."""

    @mutable_property
    def architecture(self):
        """The architecture using Debian naming (a string, defaults to ``all``)."""
        return 'all'

    @mutable_property
    def summary(self):
        """A one line description of the package (a string)."""
        return ''

    @mutable_property
    def description(self):
        """The long description of the package (a string)."""
        return ''

    @mutable_property
    def maintainer(self):
        """The maintainer of the package, usually in the format ``name <email>`` (a string)."""
        return ''

    @mutable_property
    def section(self):
        """The Debian section, RPM group or SVR4 category (a string)."""
        return ''

    @mutable_property
    def license(self):
        """The license of the package (a string)."""
        return ''

    @mutable_property
    def homepage(self):
        """The URL of the project's homepage (a string)."""
        return ''

    @mutable_property
    def distribution(self):
        """The distribution the package was built for (a string)."""
        return ''

    @mutable_property
    def original_format(self):
        """The name of the format the package was read from (a string)."""
        return ''

    @mutable_property
    def changelog(self):
        """The change log of the package, newest entry first (a tuple of :class:`ChangelogEntry` objects)."""
        return ()

    @mutable_property
    def dependencies(self):
        """The packages required by this package (a tuple of :class:`Relation` objects)."""
        return ()

    @mutable_property
    def conflicts(self):
        """The packages this package conflicts with (a tuple of :class:`Relation` objects)."""
        return ()

    @mutable_property
    def provides(self):
        """The virtual packages this package provides (a tuple of :class:`Relation` objects)."""
        return ()

    @mutable_property
    def replaces(self):
        """The packages this package replaces (a tuple of :class:`Relation` objects)."""
        return ()

    @mutable_property
    def files(self):
        """The objects shipped by the package (a tuple of :class:`FileEntry` objects)."""
        return ()

    @mutable_property
    def scripts(self):
        """Mapping of the strings in :data:`SCRIPT_KINDS` to :class:`Script` objects (a dictionary)."""
        return {}

    @property
    def full_version(self):
        """The version including the epoch and release, e.g. ``1:2.0-3`` (a string)."""
        text = self.version
        if self.epoch is not None:
            text = '%i:%s' % (self.epoch, text)
        if self.release:
            text = '%s-%s' % (text, self.release)
        return text

    @property
    def regular_files(self):
        """The entries in :attr:`files` whose contents are staged (a list of :class:`FileEntry` objects)."""
        return [entry for entry in self.files if entry.has_contents]

    @property
    def relations(self):
        """A dictionary with the four kinds of relations (useful for iteration)."""
        return dict(dependencies=self.dependencies, conflicts=self.conflicts,
                    provides=self.provides, replaces=self.replaces)

    def find_file(self, path):
        """
        Find the entry for a given pathname.

        :param path: The pathname (a string, normalized automatically).
        :returns: A :class:`FileEntry` object or :data:`None`.
        """
        path = normalize_path(path)
        for entry in self.files:
            if entry.path == path:
                return entry

    def replace(self, **changes):
        """
        Create a copy of the package with some fields changed.

        :param changes: Keyword arguments with the names in :data:`fields`.
        :returns: A new :class:`CanonicalPackage` object.
        """
        values = dict((name, getattr(self, name)) for name in self.fields)
        values.update(changes)
        return CanonicalPackage(**values)

    def validate(self):
        """
        Check the invariants of the file manifest.

        :raises: :exc:`~pkgshift.exceptions.EncodingError` when a pathname
                 isn't normalized, is listed twice, a file kind is unknown or
                 a symbolic link has no target.
        """
        seen = set()
        for entry in self.files:
            if entry.path != normalize_path(entry.path) or not entry.path:
                raise EncodingError("Pathname not normalized: %r" % entry.path, field='files')
            if entry.path in seen:
                raise EncodingError("Pathname listed twice: %s" % entry.path, field='files')
            if entry.kind not in FILE_KINDS:
                raise EncodingError("Unknown file kind %r for %s" % (entry.kind, entry.path), field='files')
            if entry.kind == SYMLINK and not entry.target:
                raise EncodingError("Symbolic link without target: %s" % entry.path, field='files')
            seen.add(entry.path)
        for kind in self.scripts:
            if kind not in SCRIPT_KINDS:
                raise EncodingError("Unknown script slot %r!" % kind, field='scripts')

    def __str__(self):
        """Render the package name and version, e.g. ``hello (2.10-1)``."""
        return '%s (%s)' % (self.name, self.full_version)


def normalize_path(pathname):
    """
    Normalize a pathname found in a package archive or manifest.

    :param pathname: The pathname to normalize (a string).
    :returns: The relative, normalized pathname (a string). The root
              directory itself normalizes to the empty string.
    :raises: :exc:`~pkgshift.exceptions.FormatError` when the pathname
             contains a ``..`` component (it would escape the package root).

    >>> normalize_path('./usr/bin/')
    'usr/bin'
    >>> normalize_path('/etc//hosts')
    'etc/hosts'
    """
    components = []
    for component in pathname.split('/'):
        if component == '..':
            raise FormatError(compact("""
                Refusing to process pathname {path} because it contains a
                parent directory reference!
            """, path=repr(pathname)), field='path')
        if component and component != '.':
            components.append(component)
    return '/'.join(components)


def parent_directories(pathname):
    """
    Get the parent directories of a normalized pathname.

    :param pathname: A pathname returned by :func:`normalize_path()`.
    :returns: A list of pathnames, outermost directory first.

    >>> parent_directories('usr/share/doc')
    ['usr', 'usr/share']
    """
    components = pathname.split('/')
    return ['/'.join(components[:i]) for i in range(1, len(components))]


def guess_kind(pathname):
    """
    Guess the kind of a regular file based on its location.

    :param pathname: A pathname returned by :func:`normalize_path()`.
    :returns: :data:`DOCFILE` for documentation, :data:`REGULAR` otherwise.
    """
    if any(pathname.startswith(d) for d in DOCUMENTATION_DIRECTORIES):
        return DOCFILE
    return REGULAR


def unique_relations(relations):
    """
    Remove duplicate relations while preserving order.

    :param relations: An iterable of :class:`Relation` objects.
    :returns: A tuple of :class:`Relation` objects.
    """
    seen = set()
    result = []
    for relation in relations:
        if relation.identity not in seen:
            seen.add(relation.identity)
            result.append(relation)
    return tuple(result)


def expand_directories(files):
    """
    Make sure every object in a manifest is preceded by its parent directories.

    :param files: An iterable of :class:`FileEntry` objects.
    :returns: A list of :class:`FileEntry` objects. Parent directories that
              aren't part of the manifest are added (owned by root with mode
              0755) and directories listed after their contents are moved up.
    """
    files = list(files)
    declared = dict((entry.path, entry) for entry in files)
    added = set()
    result = []
    for entry in files:
        for path in parent_directories(entry.path) + [entry.path]:
            if path not in added:
                added.add(path)
                result.append(declared.get(path) or FileEntry(path=path, kind=DIRECTORY))
    return result
