# pkgshift: Convert binary packages between the deb, rpm, tgz and pkg formats.
#
# Last Change: October 18, 2026

"""
The :mod:`pkgshift.pipeline` module contains the high level conversion logic.

This module defines the :class:`ConversionPipeline` class which provides the
intended way for external Python code to interface with `pkgshift`. A
conversion reads a package using the codec of its format, translates the
metadata and maintainer scripts to the target format, validates the result
and writes the converted package. Everything happens inside a
:class:`~pkgshift.staging.StagingArena` and only a completely written
package is moved to :attr:`~ConversionPipeline.output_directory`.

Here's an example:

>>> from pkgshift.pipeline import ConversionPipeline
>>> pipeline = ConversionPipeline(output_directory='/tmp')
>>> result = pipeline.convert('hello-2.10-1.x86_64.rpm', 'deb')
>>> print(result.filename)
/tmp/hello_2.10-1_amd64.deb
"""

# Standard library modules.
import configparser
import logging
import os
import shutil

# External dependencies.
from executor import execute, which
from humanfriendly import coerce_boolean, format_path
from humanfriendly.text import compact, concatenate, pluralize
from property_manager import PropertyManager, lazy_property, mutable_property, required_property, set_property

# Modules included in our package.
from pkgshift.exceptions import EncodingError, StagingError
from pkgshift.formats import detect_format, get_codec
from pkgshift.mapping import DEB, FORMATS, RPM, TGZ, DependencyMapper, NameVersionMapper, get_canonical_architecture
from pkgshift.scripts import SCRIPT_POLICIES, ScriptTranslator
from pkgshift.staging import StagingArena
from pkgshift.utils import ConversionReport, coerce_list, find_maintainer

# Initialize a logger.
logger = logging.getLogger(__name__)

GENERATED_FIELDS = ('maintainer', 'summary', 'description', 'section')
"""The names of the fields that :attr:`ConversionPipeline.generate` can synthesize (a tuple of strings)."""

COMPRESSIONS = ('gzip', 'xz')
"""The payload compression methods that can be selected (a tuple of strings)."""

DEFAULT_SECTION = 'misc'
"""The section used when a section needs to be generated (a string)."""

LEGACY_DIRECTORIES = (('usr/man', 'usr/share/man'), ('usr/info', 'usr/share/info'))
"""Pairs of pre-FHS directories and the directories that replace them in Debian packages (a tuple of tuples)."""


class ConversionResult(PropertyManager):

    """The outcome of a successful conversion."""

    @required_property
    def filename(self):
        """The pathname of the generated package (a string)."""

    @required_property
    def package(self):
        """The :class:`.CanonicalPackage` that was written."""

    @required_property
    def warnings(self):
        """The warnings reported during the conversion (a list of strings)."""


class ConversionPipeline(PropertyManager):

    """The external interface of `pkgshift`, the binary package converter."""

    def __init__(self, load_configuration_files=True, load_environment_variables=True, **options):
        """
        Initialize a binary package converter.

        :param load_configuration_files: When ``True`` (the default)
                                         :func:`load_default_configuration_files()`
                                         is called automatically.
        :param load_environment_variables: When ``True`` (the default)
                                         :func:`load_environment_variables()`
                                         is called automatically.
        :param options: Any keyword arguments are passed on to the initializer
                        of the :class:`~property_manager.PropertyManager` class.
        """
        # Initialize our superclass.
        super(ConversionPipeline, self).__init__(**options)
        if load_configuration_files:
            self.load_default_configuration_files()
        if load_environment_variables:
            self.load_environment_variables()

    @mutable_property
    def architecture(self):
        """
        An architecture that overrides the architecture of converted packages (a string or :data:`None`).

        Canonical (Debian) names like ``amd64`` are used internally, RPM and
        Slackware names like ``x86_64`` are translated automatically. Codecs
        translate the canonical name to the native name of the target format.
        """

    @architecture.setter
    def architecture(self, value):
        """Translate native architecture names to canonical names."""
        if value:
            value = get_canonical_architecture(TGZ, get_canonical_architecture(RPM, value.strip()))
        set_property(self, 'architecture', value or None)

    @mutable_property
    def compression(self):
        """
        The payload compression of generated Debian and Slackware packages (a string).

        One of the strings in :data:`COMPRESSIONS`, defaults to ``gzip``. RPM
        payloads are always gzip compressed and SVR4 class archives are always
        bzip2 compressed, so this option doesn't affect those formats.
        """
        return 'gzip'

    @compression.setter
    def compression(self, value):
        """Validate the value of :attr:`compression`."""
        value = value.strip().lower()
        if value not in COMPRESSIONS:
            raise ValueError("Unsupported compression method %r! (choose from %s)"
                             % (value, concatenate(COMPRESSIONS)))
        set_property(self, 'compression', value)

    @lazy_property
    def dependency_overrides(self):
        """
        Mapping of relation names to replacement names (a dictionary).

        The overrides take precedence over the builtin table of equivalent
        Debian and RPM package names (see :class:`.DependencyMapper`).
        """
        return {}

    @mutable_property
    def description(self):
        """A description that replaces the description of every converted package (a string or :data:`None`)."""

    @mutable_property
    def generate(self):
        """
        The names of the fields to synthesize when they're missing (a list of strings).

        Supported fields are ``maintainer`` (see :func:`.find_maintainer()`),
        ``summary`` (the first line of the description), ``description`` (the
        summary) and ``section`` (``misc``). Defaults to an empty list.
        """
        return []

    @generate.setter
    def generate(self, value):
        """Automatically coerce :attr:`generate` to a list of strings."""
        fields = coerce_list(value)
        unknown = [name for name in fields if name not in GENERATED_FIELDS]
        if unknown:
            raise ValueError("Can't generate %s! (supported fields are %s)"
                             % (concatenate(unknown), concatenate(GENERATED_FIELDS)))
        set_property(self, 'generate', fields)

    @mutable_property
    def lintian_enabled(self):
        """
        :data:`True` to enable Lintian_, :data:`False` to disable it (defaults to :data:`True`).

        If this is :data:`True` and the ``lintian`` program is installed it
        will automatically be run after each package is converted to the
        Debian format to sanity check the result. Any problems found by
        Lintian are information intended for the operator, that is to say they
        don't cause the conversion to fail.

        .. _Lintian: http://lintian.debian.org/
        """
        return True

    @lintian_enabled.setter
    def lintian_enabled(self, value):
        """Automatically coerce :attr:`lintian_enabled` to a boolean value."""
        set_property(self, 'lintian_enabled', coerce_boolean(value))

    @mutable_property
    def output_directory(self):
        """
        The directory where converted packages are stored (a string).

        Defaults to the current working directory.
        """
        return os.getcwd()

    @output_directory.setter
    def output_directory(self, value):
        """Validate the value of :attr:`output_directory`."""
        directory = os.path.abspath(os.path.expanduser(value))
        if not os.path.isdir(directory):
            raise ValueError("Output directory doesn't exist! (%s)" % directory)
        set_property(self, 'output_directory', directory)

    @lazy_property
    def package_descriptions(self):
        """Mapping of (source) package names to replacement descriptions (a dictionary)."""
        return {}

    @mutable_property
    def release_bump(self):
        """The number to add to the release of converted packages (an integer, defaults to zero)."""
        return 0

    @release_bump.setter
    def release_bump(self, value):
        """Automatically coerce :attr:`release_bump` to an integer."""
        try:
            value = int(value)
        except (TypeError, ValueError):
            raise ValueError("The release bump must be an integer! (got %r)" % value)
        if value < 0:
            raise ValueError("The release bump can't be negative! (got %i)" % value)
        set_property(self, 'release_bump', value)

    @lazy_property
    def renames(self):
        """
        Mapping of source package names to target package names (a dictionary).

        Names in this mapping bypass the name normalization of the target
        format (see :class:`.NameVersionMapper`).
        """
        return {}

    @mutable_property
    def scripts(self):
        """
        What to do with maintainer scripts (one of the strings in :data:`.SCRIPT_POLICIES`).

        Defaults to ``preserve``, use ``strip`` to remove all maintainer
        scripts from converted packages.
        """
        return 'preserve'

    @scripts.setter
    def scripts(self, value):
        """Validate the value of :attr:`scripts`."""
        value = value.strip().lower()
        if value not in SCRIPT_POLICIES:
            raise ValueError("Unknown script policy %r! (choose from %s)" % (value, concatenate(SCRIPT_POLICIES)))
        set_property(self, 'scripts', value)

    def rename_package(self, source_name, target_name):
        """
        Override the package name conversion algorithm for the given pair of names.

        :param source_name: The name of the package being converted (a string).
        :param target_name: The name of the converted package (a string).
        :raises: :exc:`~exceptions.ValueError` when a package name is not
                 provided (e.g. an empty string).
        """
        if not source_name:
            raise ValueError("Please provide a nonempty source package name!")
        if not target_name:
            raise ValueError("Please provide a nonempty target package name!")
        self.renames[source_name] = target_name

    def map_dependency(self, source_name, target_name):
        """
        Override the name of a relation in converted packages.

        :param source_name: The name used by the source package (a string).
        :param target_name: The name to use in the converted package (a string).
        :raises: :exc:`~exceptions.ValueError` when a name is not provided
                 (e.g. an empty string).
        """
        if not source_name:
            raise ValueError("Please provide a nonempty source dependency name!")
        if not target_name:
            raise ValueError("Please provide a nonempty target dependency name!")
        self.dependency_overrides[source_name] = target_name

    def set_description(self, package_name, description):
        """
        Replace the description of a specific package.

        :param package_name: The name of the package being converted (a string).
        :param description: The description to use (a string).
        :raises: :exc:`~exceptions.ValueError` when the package name or
                 description is not provided (e.g. an empty string).
        """
        if not package_name:
            raise ValueError("Please provide a nonempty package name!")
        if not description:
            raise ValueError("Please provide a nonempty description!")
        self.package_descriptions[package_name] = description

    def load_environment_variables(self):
        """
        Load configuration defaults from environment variables.

        The following environment variables are currently supported:

        - ``$PKGSHIFT_CONFIG``
        - ``$PKGSHIFT_OUTPUT_DIRECTORY``
        - ``$PKGSHIFT_SCRIPTS``
        - ``$PKGSHIFT_GENERATE``
        - ``$PKGSHIFT_COMPRESSION``
        - ``$PKGSHIFT_LINTIAN``
        """
        for variable, setter in (('PKGSHIFT_CONFIG', self.load_configuration_file),
                                 ('PKGSHIFT_OUTPUT_DIRECTORY', self.set_output_directory),
                                 ('PKGSHIFT_SCRIPTS', self.set_scripts),
                                 ('PKGSHIFT_GENERATE', self.set_generate),
                                 ('PKGSHIFT_COMPRESSION', self.set_compression),
                                 ('PKGSHIFT_LINTIAN', self.set_lintian_enabled)):
            value = os.environ.get(variable)
            if value is not None:
                setter(value)

    def set_compression(self, value):
        """Set the value of :attr:`compression`."""
        self.compression = value

    def set_generate(self, value):
        """Set the value of :attr:`generate`."""
        self.generate = value

    def set_lintian_enabled(self, enabled):
        """
        Enable or disable automatic Lintian checks after converting to the Debian format.

        :param enabled: Any value, evaluated using :func:`~humanfriendly.coerce_boolean()`.
        """
        self.lintian_enabled = enabled

    def set_output_directory(self, directory):
        """
        Set pathname of directory where `pkgshift` stores converted packages.

        :param directory: The pathname of a directory (a string).
        :raises: :exc:`~exceptions.ValueError` when the directory doesn't
                 exist.
        """
        self.output_directory = directory

    def set_scripts(self, value):
        """Set the value of :attr:`scripts`."""
        self.scripts = value

    def load_configuration_file(self, configuration_file):
        """
        Load configuration defaults from a configuration file.

        :param configuration_file: The pathname of a configuration file (a
                                   string).
        :raises: :exc:`~exceptions.Exception` when the configuration file
                 cannot be loaded.

        Below is an example of the available options:

        .. code-block:: ini

           # The `pkgshift' section contains global options.
           [pkgshift]
           output-directory = /tmp
           scripts = preserve
           generate = maintainer, summary
           architecture = amd64
           release-bump = 1
           compression = xz
           lintian = off

           # The `dependencies' section overrides relation names.
           [dependencies]
           libc6 = glibc

           # Sections starting with `package:' contain conversion options
           # specific to a package.
           [package:MyTool]
           rename = mytool
           description = Replacement description
        """
        # Load the configuration file.
        parser = configparser.RawConfigParser()
        # Relation and package names are case sensitive.
        parser.optionxform = str
        configuration_file = os.path.expanduser(configuration_file)
        logger.debug("Loading configuration file: %s", configuration_file)
        files_loaded = parser.read(configuration_file)
        try:
            assert len(files_loaded) == 1
            assert os.path.samefile(configuration_file, files_loaded[0])
        except Exception:
            msg = "Failed to load configuration file! (%s)"
            raise Exception(msg % configuration_file)
        # Apply the global settings in the configuration file.
        if parser.has_option('pkgshift', 'output-directory'):
            self.set_output_directory(parser.get('pkgshift', 'output-directory'))
        if parser.has_option('pkgshift', 'scripts'):
            self.set_scripts(parser.get('pkgshift', 'scripts'))
        if parser.has_option('pkgshift', 'generate'):
            self.set_generate(parser.get('pkgshift', 'generate'))
        if parser.has_option('pkgshift', 'architecture'):
            self.architecture = parser.get('pkgshift', 'architecture')
        if parser.has_option('pkgshift', 'release-bump'):
            self.release_bump = parser.get('pkgshift', 'release-bump')
        if parser.has_option('pkgshift', 'compression'):
            self.set_compression(parser.get('pkgshift', 'compression'))
        if parser.has_option('pkgshift', 'lintian'):
            self.set_lintian_enabled(parser.get('pkgshift', 'lintian'))
        # Apply the relation name overrides.
        if parser.has_section('dependencies'):
            for source_name, target_name in parser.items('dependencies'):
                self.map_dependency(source_name, target_name)
        # Apply any package specific settings.
        for section in parser.sections():
            tag, _, package = section.partition(':')
            if tag == 'package':
                if parser.has_option(section, 'rename'):
                    self.rename_package(package, parser.get(section, 'rename'))
                if parser.has_option(section, 'description'):
                    self.set_description(package, parser.get(section, 'description'))

    def load_default_configuration_files(self):
        """
        Load configuration options from default configuration files.

        The following default configuration file locations are checked:

        - ``/etc/pkgshift.ini``
        - ``~/.pkgshift.ini``

        :raises: :exc:`~exceptions.Exception` when a configuration file
                 exists but cannot be loaded.
        """
        for location in ('/etc/pkgshift.ini', os.path.expanduser('~/.pkgshift.ini')):
            if os.path.isfile(location):
                self.load_configuration_file(location)

    def get_codec(self, format, report):
        """
        Get a codec that's configured according to the options of the pipeline.

        :param format: One of the strings in :data:`~pkgshift.mapping.FORMATS`.
        :param report: The :class:`.ConversionReport` of the conversion.
        :returns: A codec object.
        """
        options = dict(report=report)
        if format in (DEB, TGZ):
            options['compression'] = self.compression
        return get_codec(format, **options)

    def convert(self, filename, target_format, source_format=None):
        """
        Convert a binary package to another format.

        :param filename: The pathname of the package to convert (a string).
        :param target_format: One of the strings in :data:`~pkgshift.mapping.FORMATS`.
        :param source_format: One of the strings in
                              :data:`~pkgshift.mapping.FORMATS` or
                              :data:`None` to detect the format of `filename`.
        :returns: A :class:`ConversionResult` object.
        :raises: Any of the exceptions defined in :mod:`pkgshift.exceptions`.
                 When an exception is raised no output file is produced.
        """
        if target_format not in FORMATS:
            raise ValueError("Unknown target format %r! (supported formats are %s)"
                             % (target_format, concatenate(FORMATS)))
        if not os.path.isfile(filename):
            raise StagingError("Package to convert doesn't exist! (%s)" % format_path(filename))
        if not source_format:
            source_format = detect_format(filename)
        logger.info("Converting %s (%s) to %s ..", format_path(filename), source_format, target_format)
        report = ConversionReport()
        with StagingArena() as arena:
            # Read the package into the staging arena.
            package = self.get_codec(source_format, report).read(filename, arena)
            logger.debug("Read %s (%s).", package, pluralize(len(package.files), "file"))
            original_name = package.name
            # Translate the metadata and maintainer scripts.
            package = NameVersionMapper(
                target=target_format, report=report, renames=self.renames,
                release_bump=self.release_bump, architecture=self.architecture,
            ).map(package)
            package = DependencyMapper(target=target_format, report=report,
                                       overrides=self.dependency_overrides).map(package)
            package = ScriptTranslator(target=target_format, report=report,
                                       policy=self.scripts).translate(package)
            package = self.customize_package(package, original_name, target_format)
            if target_format == DEB:
                package = self.relocate_legacy_directories(package, arena, report)
            # Make sure the converted package can be written.
            codec = self.get_codec(target_format, report)
            self.validate_package(package, codec, arena)
            # Write the converted package and publish the result.
            temporary_file = codec.write(package, arena)
            output_file = self.publish(temporary_file)
        logger.info("Converted %s to %s.", package, format_path(output_file))
        if report.warnings:
            logger.info("The conversion reported %s.", pluralize(len(report), "warning"))
        if target_format == DEB and self.lintian_enabled:
            self.run_lintian(output_file)
        return ConversionResult(filename=output_file, package=package, warnings=list(report.warnings))

    def convert_many(self, filenames, target_formats):
        """
        Convert several packages to one or more formats.

        :param filenames: An iterable of pathnames (strings).
        :param target_formats: An iterable of format names (strings).
        :returns: A list of :class:`ConversionResult` objects.

        Conversions happen one after another, each with its own staging arena.
        The first failure aborts the remaining conversions (packages that were
        already converted are kept).
        """
        results = []
        for filename in filenames:
            source_format = detect_format(filename)
            for target_format in target_formats:
                results.append(self.convert(filename, target_format, source_format))
        return results

    def customize_package(self, package, original_name, target_format=None):
        """
        Apply description overrides and synthesize missing fields.

        :param package: A :class:`.CanonicalPackage` object.
        :param original_name: The name of the package before conversion (a string).
        :param target_format: The target format (a string or :data:`None`).
                              Debian packages always get a maintainer
                              (regardless of :attr:`generate`) because the
                              field is mandatory.
        :returns: A new :class:`.CanonicalPackage` object.
        """
        changes = {}
        description = (self.package_descriptions.get(original_name)
                       or self.package_descriptions.get(package.name)
                       or self.description)
        if description:
            changes['description'] = description.strip()
            if not package.summary:
                changes['summary'] = description.strip().splitlines()[0].strip()
        summary = changes.get('summary', package.summary)
        description = changes.get('description', package.description)
        if not package.maintainer and ('maintainer' in self.generate or target_format == DEB):
            changes['maintainer'] = find_maintainer()
            logger.info("Using maintainer %s for %s.", changes['maintainer'], package.name)
        if 'summary' in self.generate and not summary:
            lines = description.strip().splitlines()
            changes['summary'] = lines[0].strip() if lines else package.name
        if 'description' in self.generate and not description:
            changes['description'] = changes.get('summary', summary) or package.name
        if 'section' in self.generate and not package.section:
            changes['section'] = DEFAULT_SECTION
        if changes:
            logger.debug("Changing %s of %s.", concatenate(sorted(changes)), package)
            package = package.replace(**changes)
        return package

    def relocate_legacy_directories(self, package, arena, report):
        """
        Move files from pre-FHS directories like ``/usr/man`` to their modern location.

        :param package: A :class:`.CanonicalPackage` object.
        :param arena: The :class:`.StagingArena` that holds the package's files.
        :param report: The :class:`.ConversionReport` of the conversion.
        :returns: A new :class:`.CanonicalPackage` object.

        A directory is only moved when the package doesn't already contain
        the modern directory (see :data:`LEGACY_DIRECTORIES`).
        """
        for old_directory, new_directory in LEGACY_DIRECTORIES:
            if not any(is_inside(entry.path, old_directory) for entry in package.files):
                continue
            if any(is_inside(entry.path, new_directory) for entry in package.files):
                continue
            report.warn("Moving /%s to /%s to comply with the Filesystem Hierarchy Standard.",
                        old_directory, new_directory)
            files = []
            for entry in package.files:
                if is_inside(entry.path, old_directory):
                    path = new_directory + entry.path[len(old_directory):]
                    if entry.has_contents:
                        arena.copy(entry.path, path)
                    entry = entry.replace(path=path)
                files.append(entry)
            package = package.replace(files=tuple(files))
        return package

    def validate_package(self, package, codec, arena):
        """
        Make sure a package can be written by a codec.

        :param package: A :class:`.CanonicalPackage` object.
        :param codec: The codec of the target format.
        :param arena: The :class:`.StagingArena` that holds the package's files.
        :raises: :exc:`.EncodingError` when the package can't be written.
        """
        package.validate()
        codec.check(package)
        missing = [entry.path for entry in package.regular_files if not arena.exists(entry.path)]
        if missing:
            raise EncodingError(compact("""
                The contents of {count} aren't staged: {paths}
            """, count=pluralize(len(missing), "file"), paths=concatenate(missing)), field='files')

    def publish(self, temporary_file):
        """
        Move a generated package from the staging arena to :attr:`output_directory`.

        :param temporary_file: The pathname of the generated package (a string).
        :returns: The pathname of the published package (a string).
        :raises: :exc:`.StagingError` when the package can't be moved.
        """
        basename = os.path.basename(temporary_file)
        output_file = os.path.join(self.output_directory, basename)
        # The output directory may live on another filesystem than the arena.
        partial_file = os.path.join(self.output_directory, '.%s.partial' % basename)
        try:
            shutil.copyfile(temporary_file, partial_file)
            os.replace(partial_file, output_file)
        except EnvironmentError as e:
            if os.path.exists(partial_file):
                os.unlink(partial_file)
            raise StagingError("Failed to move %s to %s! (%s)"
                               % (os.path.basename(temporary_file), format_path(self.output_directory), e))
        return output_file

    def run_lintian(self, filename):
        """
        Sanity check a Debian binary package using Lintian (when it's installed).

        :param filename: The pathname of a ``*.deb`` archive (a string).

        Problems found by Lintian are logged, they never cause the conversion
        to fail.
        """
        if not which('lintian'):
            logger.debug("Not running Lintian because it isn't installed.")
            return
        logger.info("Checking package with Lintian ..")
        output = execute('lintian', '--no-tag-display-limit', filename, capture=True, check=False)
        for line in (output or '').splitlines():
            if line.strip():
                logger.warning("Lintian: %s", line)


def is_inside(path, directory):
    """Check whether a (normalized) pathname is the given directory or refers to something inside it."""
    return path == directory or path.startswith(directory + '/')
