# pkgshift: Convert binary packages between the deb, rpm, tgz and pkg formats.
#
# Last Change: October 18, 2026

"""
The :mod:`pkgshift.mapping` module translates metadata between ecosystems.

This module contains the :class:`NameVersionMapper` and
:class:`DependencyMapper` classes that bridge the differences in naming,
versioning and dependency conventions of the supported formats, together with
the architecture tables that the codecs use to translate between canonical
(Debian style) architecture names and native ones.
"""

# Standard library modules.
import logging
import re

# External dependencies.
from humanfriendly.text import compact, pluralize
from property_manager import PropertyManager, lazy_property, mutable_property, required_property

# Modules included in our package.
from pkgshift.package import OPERATORS, Relation, unique_relations
from pkgshift.utils import ConversionReport

# Initialize a logger.
logger = logging.getLogger(__name__)

DEB = 'deb'
"""The name of the Debian binary package format (a string)."""

RPM = 'rpm'
"""The name of the RPM package format (a string)."""

LSB = 'lsb'
"""The name of the Linux Standard Base flavor of the RPM format (a string)."""

TGZ = 'tgz'
"""The name of the Slackware package format (a string)."""

PKG = 'pkg'
"""The name of the Solaris SVR4 package datastream format (a string)."""

FORMATS = (DEB, RPM, LSB, TGZ, PKG)
"""All supported formats (a tuple of strings)."""

FAMILIES = {DEB: DEB, RPM: RPM, LSB: RPM, TGZ: TGZ, PKG: PKG}
"""Mapping of formats to the ecosystem whose package names they share."""

RELATION_KINDS = ('dependencies', 'conflicts', 'provides', 'replaces')
"""The names of the relation properties of :class:`.CanonicalPackage` (a tuple)."""

NATIVE_ARCHITECTURES = {
    RPM: {'amd64': 'x86_64', 'all': 'noarch', 'arm64': 'aarch64', 'armhf': 'armv7hl',
          'armel': 'armv5tel', 'ppc64el': 'ppc64le', 'powerpc': 'ppc', 'hppa': 'parisc'},
    TGZ: {'amd64': 'x86_64', 'i386': 'i586', 'all': 'noarch', 'arm64': 'aarch64', 'armhf': 'arm'},
    PKG: {},
}
"""
Mapping of formats to dictionaries of canonical to native architecture names.

Canonical architecture names are Debian architecture names. The Debian format
uses canonical names natively so it has no table here. Names missing from a
table are used as is.
"""

CANONICAL_ARCHITECTURES = {
    RPM: {'x86_64': 'amd64', 'noarch': 'all', 'aarch64': 'arm64', 'armv7hl': 'armhf',
          'armv7l': 'armhf', 'armv5tel': 'armel', 'ppc64le': 'ppc64el', 'ppc': 'powerpc',
          'parisc': 'hppa', 'i486': 'i386', 'i586': 'i386', 'i686': 'i386',
          'athlon': 'i386', 'pentium3': 'i386', 'pentium4': 'i386'},
    TGZ: {'x86_64': 'amd64', 'i486': 'i386', 'i586': 'i386', 'i686': 'i386',
          'noarch': 'all', 'aarch64': 'arm64', 'arm': 'armhf'},
    PKG: {},
}
"""Mapping of formats to dictionaries of native to canonical architecture names."""

DEBIAN_TO_RPM_NAMES = (
    ('libc6', 'glibc'),
    ('libstdc++6', 'libstdc++'),
    ('libgcc-s1', 'libgcc'),
    ('libgcc1', 'libgcc'),
    ('zlib1g', 'zlib'),
    ('libbz2-1.0', 'bzip2-libs'),
    ('liblzma5', 'xz-libs'),
    ('libssl3', 'openssl-libs'),
    ('libssl1.1', 'openssl-libs'),
    ('libexpat1', 'expat'),
    ('libffi8', 'libffi'),
    ('libncursesw6', 'ncurses-libs'),
    ('libreadline8', 'readline'),
    ('libuuid1', 'libuuid'),
    ('libcurl4', 'libcurl'),
    ('libx11-6', 'libX11'),
    ('libglib2.0-0', 'glib2'),
    ('libgtk-3-0', 'gtk3'),
    ('libasound2', 'alsa-lib'),
    ('python3', 'python3'),
    ('perl', 'perl'),
    ('lsb-base', 'redhat-lsb-core'),
)
"""
Known equivalents of Debian package names in the RPM ecosystem.

The table is a sequence of pairs (not a dictionary) because several Debian
names can map to the same RPM name. When translating in the opposite
direction the first matching pair wins.
"""

RPM_CAPABILITY_PATTERN = re.compile(r'^/|[()]|\.so(\.|$)')
"""Compiled regular expression that matches RPM capabilities with no Debian equivalent."""

DEBIAN_NAME_PATTERN = re.compile(r'^[a-z0-9][a-z0-9+.-]+$')
"""Compiled regular expression that matches valid Debian package names."""

DEBIAN_VERSION_PATTERN = re.compile(r'^(\d+:)?[0-9][A-Za-z0-9.+~:-]*$')
"""Compiled regular expression that matches Debian version numbers in relations."""

RPM_VERSION_PATTERN = re.compile(r'^(\d+:)?[^\s,<>=:-]+(-[^\s,<>=:-]+)?$')
"""Compiled regular expression that matches RPM ``[epoch:]version[-release]`` strings."""


def get_native_architecture(format, architecture):
    """
    Translate a canonical architecture name to the name used by a format.

    :param format: One of the strings in :data:`FORMATS`.
    :param architecture: A canonical (Debian) architecture name (a string).
    :returns: The native architecture name (a string).

    >>> get_native_architecture('rpm', 'amd64')
    'x86_64'
    """
    table = NATIVE_ARCHITECTURES.get(FAMILIES.get(format, format), {})
    return table.get(architecture, architecture)


def get_canonical_architecture(format, architecture):
    """
    Translate a native architecture name to the canonical (Debian) name.

    :param format: One of the strings in :data:`FORMATS`.
    :param architecture: A native architecture name (a string).
    :returns: The canonical architecture name (a string).

    >>> get_canonical_architecture('tgz', 'i586')
    'i386'
    """
    table = CANONICAL_ARCHITECTURES.get(FAMILIES.get(format, format), {})
    return table.get(architecture, architecture)


def normalize_debian_name(name):
    """
    Normalize a package name to be used as a Debian package name.

    :param name: The name of a package (a string).
    :returns: The normalized name (a string).

    >>> normalize_debian_name('MyTool')
    'mytool'
    >>> normalize_debian_name('simple_json')
    'simple-json'
    """
    return re.sub('[^a-z0-9+.-]+', '-', name.lower()).lstrip('+.-').rstrip('-')


def normalize_rpm_name(name):
    """Replace the characters that RPM doesn't allow in package names with dashes."""
    return re.sub(r'[^A-Za-z0-9._+%{}~^-]+', '-', name).strip('-')


def normalize_slackware_name(name):
    """Replace whitespace and slashes (disallowed in Slackware package filenames) with underscores."""
    return re.sub(r'[\s/]+', '_', name.strip())


def normalize_svr4_name(name):
    """
    Abbreviate a package name to be used as an SVR4 package instance name.

    :param name: The name of a package (a string).
    :returns: A name that starts with a letter and contains only
              alphanumerics, dashes and plus signs (a string). The name is
              not truncated, the caller is expected to check the length.

    >>> normalize_svr4_name('libfoo-perl')
    'lfoop'
    >>> normalize_svr4_name('perl-Foo')
    'plFoo'
    """
    if name.startswith('lib'):
        name = 'l' + name[len('lib'):]
    if name.endswith('-perl'):
        name = name[:-len('-perl')] + 'p'
    if name.startswith('perl-'):
        name = 'pl' + name[len('perl-'):]
    name = re.sub('[^A-Za-z0-9+-]+', '-', name).strip('-')
    if not name[:1].isalpha():
        name = 'p' + name
    return name


class NameVersionMapper(PropertyManager):

    """
    Translate package names, versions and architectures to a target format.

    Name normalization is a lossy, one-directional transformation: converting
    back does not restore the original case or the replaced characters.
    """

    @required_property
    def target(self):
        """The target format (one of the strings in :data:`FORMATS`)."""

    @mutable_property(cached=True)
    def report(self):
        """The :class:`.ConversionReport` that collects warnings."""
        return ConversionReport()

    @mutable_property(cached=True)
    def renames(self):
        """Mapping of package names to names that override the normalization (a dictionary)."""
        return {}

    @mutable_property
    def release_bump(self):
        """The number to add to the release (an integer, defaults to zero)."""
        return 0

    @mutable_property
    def architecture(self):
        """An architecture that overrides the package's architecture (a string or :data:`None`)."""

    def map(self, package):
        """
        Translate the metadata of a package.

        :param package: A :class:`.CanonicalPackage` object.
        :returns: A new :class:`.CanonicalPackage` object.
        """
        name = self.map_name(package.name)
        version, release, epoch = self.map_version(package)
        architecture = self.architecture or package.architecture
        if name != package.name:
            logger.debug("Mapped name %s to %s for %s package.", package.name, name, self.target)
        if architecture != package.architecture:
            logger.info("Overriding architecture %s with %s.", package.architecture, architecture)
        return package.replace(name=name, version=version, release=release,
                               epoch=epoch, architecture=architecture)

    def map_name(self, name):
        """
        Translate a package name.

        :param name: The name of the source package (a string).
        :returns: The name of the target package (a string). Names configured
                  in :attr:`renames` are used as is, all other names are
                  normalized according to the target format's rules.
        """
        for key in (name, name.lower()):
            if key in self.renames:
                return self.renames[key]
        if self.target == DEB:
            return normalize_debian_name(name)
        elif self.target == LSB:
            name = normalize_rpm_name(name)
            return name if name.startswith('lsb-') else 'lsb-' + name
        elif self.target == RPM:
            return normalize_rpm_name(name)
        elif self.target == TGZ:
            return normalize_slackware_name(name)
        elif self.target == PKG:
            abbreviation = normalize_svr4_name(name)
            if len(abbreviation) > 32:
                self.report.warn("Truncating package instance name %s to 32 characters.", abbreviation)
                abbreviation = abbreviation[:32]
            return abbreviation
        raise ValueError("Unknown target format %r!" % self.target)

    def map_version(self, package):
        """
        Translate the version, release and epoch of a package.

        :param package: A :class:`.CanonicalPackage` object.
        :returns: A tuple with the version (a string), the release (a string)
                  and the epoch (an integer or :data:`None`).
        """
        version, release, epoch = package.version, package.release, package.epoch
        if self.release_bump:
            release = bump_release(release, self.release_bump)
        if self.target == DEB:
            version = re.sub('[^A-Za-z0-9.+~-]+', '.', version)
            if not version[:1].isdigit():
                version = '0' + version
            release = re.sub('[^A-Za-z0-9.+~]+', '.', release)
            if not release and '-' in version:
                version = version.replace('-', '.')
        elif self.target in (RPM, LSB, TGZ):
            version = re.sub(r'[^A-Za-z0-9._+~^]+', '_', version)
            release = re.sub(r'[^A-Za-z0-9._+~^]+', '_', release) or '1'
        elif self.target == PKG:
            version = re.sub(r'[\s,]+', '.', version)
            release = re.sub(r'[\s,]+', '.', release)
        if epoch is not None and self.target in (TGZ, PKG):
            self.report.warn("Dropping epoch %i of %s because %s packages don't support epochs.",
                             epoch, package.name, self.target)
            epoch = None
        return version, release, epoch


class DependencyMapper(PropertyManager):

    """
    Translate dependency, conflict, provide and replace relations to a target format.

    Relations are never tightened: when the version constraint of a relation
    can't be expressed in the target format the constraint is removed (making
    the relation wider) and when a relation can't be expressed at all it's
    dropped. Both cases are reported as warnings.
    """

    @required_property
    def target(self):
        """The target format (one of the strings in :data:`FORMATS`)."""

    @mutable_property(cached=True)
    def report(self):
        """The :class:`.ConversionReport` that collects warnings."""
        return ConversionReport()

    @mutable_property(cached=True)
    def overrides(self):
        """Mapping of relation names to replacement names (a dictionary)."""
        return {}

    @lazy_property
    def supported_operators(self):
        """The comparison operators supported by the target format (a tuple of strings)."""
        return () if self.target == TGZ else OPERATORS

    def map(self, package):
        """
        Translate the relations of a package.

        :param package: A :class:`.CanonicalPackage` object.
        :returns: A new :class:`.CanonicalPackage` object.
        """
        changes = {}
        source_family = FAMILIES.get(package.original_format)
        if source_family == TGZ and self.target != TGZ:
            self.report.warn(compact("""
                The relations of {name} are unknown because Slackware
                packages have no dependency mechanism, the converted
                package doesn't declare any dependencies.
            """, name=package.name))
        for kind in RELATION_KINDS:
            relations = getattr(package, kind)
            if not relations:
                changes[kind] = ()
            elif self.target == TGZ:
                self.report.warn("Dropping %s (%s) because Slackware packages have no dependency mechanism.",
                                 pluralize(len(relations), describe_kind(kind), describe_kind(kind, plural=True)),
                                 ', '.join(str(r) for r in relations))
                changes[kind] = ()
            elif self.target == PKG and kind in ('provides', 'replaces'):
                self.report.warn("Dropping %s (%s) because SVR4 packages have no equivalent.",
                                 pluralize(len(relations), describe_kind(kind), describe_kind(kind, plural=True)),
                                 ', '.join(str(r) for r in relations))
                changes[kind] = ()
            else:
                mapped = (self.map_relation(kind, r, source_family) for r in relations)
                changes[kind] = unique_relations(r for r in mapped if r is not None)
        if self.target == LSB and not any(r.name == 'lsb' for r in changes['dependencies']):
            changes['dependencies'] += (Relation(name='lsb'),)
        return package.replace(**changes)

    def map_relation(self, kind, relation, source_family):
        """
        Translate a single relation.

        :param kind: One of the strings in :data:`RELATION_KINDS`.
        :param relation: A :class:`.Relation` object.
        :param source_family: The ecosystem of the source package (a string or :data:`None`).
        :returns: A :class:`.Relation` object or :data:`None` (when the relation is dropped).
        """
        if relation.alternatives and self.target != DEB:
            self.report.warn("Dropping alternative relation %s because %s packages can't express it.",
                             relation, self.target)
            return None
        mapped = self.map_single_relation(kind, relation, source_family)
        if mapped is None:
            return None
        alternatives = []
        for alternative in relation.alternatives:
            alternative = self.map_single_relation(kind, alternative, source_family)
            if alternative is None:
                self.report.warn("Dropping alternative relation %s because one of its alternatives was dropped.",
                                 relation)
                return None
            alternatives.append(alternative)
        return mapped.replace(alternatives=tuple(alternatives))

    def map_single_relation(self, kind, relation, source_family):
        """Translate the name and version constraint of a relation (ignoring alternatives)."""
        name = self.map_relation_name(relation.name, source_family)
        if name is None:
            self.report.warn("Dropping %s %s because it has no %s equivalent.",
                             describe_kind(kind), relation, self.target)
            return None
        operator, version = relation.operator, relation.version
        if operator and not self.is_expressible(kind, operator, version):
            self.report.warn("Widening %s %s to an unversioned relation because %s packages can't express it.",
                             describe_kind(kind), relation, self.target)
            operator, version = None, None
        return Relation(name=name, operator=operator, version=version)

    def map_relation_name(self, name, source_family):
        """
        Translate the name in a relation.

        :param name: The name in the relation (a string).
        :param source_family: The ecosystem of the source package (a string or :data:`None`).
        :returns: The translated name (a string) or :data:`None` when the name
                  refers to something that has no equivalent in the target.
        """
        target_family = FAMILIES[self.target]
        if name in self.overrides:
            return self.overrides[name]
        if target_family != DEB:
            # Multiarch qualifiers like `python3:any' are specific to Debian.
            name = re.sub(r':(any|native|[a-z0-9-]+)$', '', name)
        if source_family and source_family != target_family:
            if source_family == DEB and target_family == RPM:
                name = dict(reversed(DEBIAN_TO_RPM_NAMES)).get(name, name)
            elif source_family == RPM and target_family == DEB:
                if RPM_CAPABILITY_PATTERN.search(name):
                    return None
                name = dict((r, d) for d, r in reversed(DEBIAN_TO_RPM_NAMES)).get(name, name)
        if self.target == DEB:
            qualifier = ''
            if ':' in name:
                name, _, qualifier = name.partition(':')
                qualifier = ':' + qualifier
            return normalize_debian_name(name) + qualifier
        elif target_family == RPM:
            return normalize_rpm_name(name)
        elif self.target == PKG:
            return normalize_svr4_name(name)
        return name

    def is_expressible(self, kind, operator, version):
        """Check whether the target format can express a version constraint unchanged."""
        if operator not in self.supported_operators or not version:
            return False
        if self.target == DEB:
            if kind == 'provides' and operator != '=':
                return False
            return bool(DEBIAN_VERSION_PATTERN.match(version))
        elif FAMILIES[self.target] == RPM:
            return bool(RPM_VERSION_PATTERN.match(version))
        return '\n' not in version


def bump_release(release, increment):
    """
    Increment the release of a package.

    :param release: The current release (a string).
    :param increment: The amount to add (an integer).
    :returns: The new release (a string). Releases that aren't a plain
              number are replaced by the increment.

    >>> bump_release('3', 1)
    '4'
    >>> bump_release('1.el8', 1)
    '1'
    """
    if release.isdigit():
        return str(int(release) + increment)
    return str(increment)


def describe_kind(kind, plural=False):
    """Get the noun for a kind of relation (used in messages)."""
    if plural:
        return kind
    return dict(dependencies='dependency', conflicts='conflict',
                provides='provide', replaces='replace').get(kind, kind)
