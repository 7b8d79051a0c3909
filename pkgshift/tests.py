# Automated tests for the `pkgshift' package.
#
# Last Change: October 18, 2026

"""
The :mod:`pkgshift.tests` module contains the automated tests for `pkgshift`.

The test suite is written to be compatible with the :mod:`unittest` module
(part of Python's standard library) but it's usually run using pytest_
because of pytest's great error reporting. The tests don't depend on any
external programs (apart from ``/bin/sh``): the sample packages are generated
by the codecs in this package and then read back (possibly after conversion
to another format).

.. _pytest: https://docs.pytest.org/
"""

# Standard library modules.
import io
import logging
import os
import shutil
import struct
import tarfile

# External dependencies.
import coloredlogs
from executor import execute
from humanfriendly.testing import PatchedItem, TemporaryDirectory, TestCase, run_cli

# Modules included in our package.
from pkgshift.archives import AR_MAGIC, CpioReader, CpioWriter, write_ar_archive
from pkgshift.cli import main
from pkgshift.exceptions import EncodingError, FormatError, StagingError
from pkgshift.formats import detect_format, get_codec
from pkgshift.formats.deb import DebCodec, format_description, split_version
from pkgshift.formats.pkg import parse_depend, svr4_checksum
from pkgshift.formats.rpm import HEADER_MAGIC, LEAD_SIZE, RpmCodec
from pkgshift.formats.tgz import TgzCodec, parse_slack_desc
from pkgshift.mapping import (
    DEB,
    LSB,
    PKG,
    RPM,
    TGZ,
    DependencyMapper,
    NameVersionMapper,
    bump_release,
    get_native_architecture,
)
from pkgshift.package import (
    CONFFILE,
    DIRECTORY,
    DOCFILE,
    POST_INSTALL,
    POST_REMOVE,
    PRE_INSTALL,
    PRE_REMOVE,
    REGULAR,
    SYMLINK,
    CanonicalPackage,
    FileEntry,
    Relation,
    Script,
    expand_directories,
    normalize_path,
)
from pkgshift.pipeline import ConversionPipeline
from pkgshift.scripts import STRIP, ScriptTranslator, fold_slackware_script, unfold_slackware_script
from pkgshift.staging import StagingArena
from pkgshift.utils import ConversionReport, coerce_list, split_maintainer

# Initialize a logger.
logger = logging.getLogger(__name__)

SAMPLE_CONTENTS = {
    'etc/hello.conf': b'greeting = Hello, world!\n',
    'usr/bin/hello': b'#!/bin/sh\necho "Hello, world!"\n',
    'usr/share/doc/hello/README': b'The friendly greeter.\n',
}
"""The contents of the regular files in the sample package (a dictionary)."""

SAMPLE_MANIFEST = (
    ('etc', DIRECTORY, 0o755),
    ('etc/hello.conf', CONFFILE, 0o644),
    ('usr', DIRECTORY, 0o755),
    ('usr/bin', DIRECTORY, 0o755),
    ('usr/bin/hello', REGULAR, 0o755),
    ('usr/bin/hi', SYMLINK, 0o777),
    ('usr/share', DIRECTORY, 0o755),
    ('usr/share/doc', DIRECTORY, 0o755),
    ('usr/share/doc/hello', DIRECTORY, 0o755),
    ('usr/share/doc/hello/README', DOCFILE, 0o644),
)
"""The objects in the sample package (tuples with a pathname, kind and mode)."""

SAMPLE_FILENAMES = {
    DEB: 'hello_2.10-1_amd64.deb',
    RPM: 'hello-2.10-1.x86_64.rpm',
    TGZ: 'hello-2.10-x86_64-1.tgz',
    PKG: 'hello-2.10.pkg',
}
"""The filenames of the sample package in each format (a dictionary)."""


def setUpModule():
    """Enable verbose logging to the terminal (helps with the post-mortem analysis of test failures)."""
    coloredlogs.install()
    coloredlogs.increase_verbosity()


def create_sample_package(arena, **overrides):
    """
    Stage the files of a small sample package.

    :param arena: The :class:`.StagingArena` that receives the file contents.
    :param overrides: Package fields that replace the defaults.
    :returns: A :class:`.CanonicalPackage` object.
    """
    files = []
    for path, kind, mode in SAMPLE_MANIFEST:
        if path in SAMPLE_CONTENTS:
            size, checksum = arena.stage_bytes(path, SAMPLE_CONTENTS[path])
            files.append(FileEntry(path=path, kind=kind, mode=mode, size=size, checksum=checksum))
        elif kind == SYMLINK:
            files.append(FileEntry(path=path, kind=kind, mode=mode, target='hello'))
        else:
            files.append(FileEntry(path=path, kind=kind, mode=mode))
    fields = dict(
        name='hello',
        version='2.10',
        release='1',
        architecture='amd64',
        summary='Friendly greeter',
        description='Prints a friendly greeting.',
        maintainer='Jane Doe <jane@example.com>',
        section='utils',
        dependencies=(Relation(name='libc6', operator='>=', version='2.31'),),
        files=tuple(files),
        scripts={POST_INSTALL: Script(text='echo "Installed hello."\n')},
    )
    fields.update(overrides)
    return CanonicalPackage(**fields)


def build_sample_package(directory, format, **overrides):
    """
    Generate the sample package in the given format.

    :param directory: The directory where the package is stored (a string).
    :param format: The name of the format (a string).
    :param overrides: Package fields that replace the defaults.
    :returns: The pathname of the generated package (a string).
    """
    with StagingArena() as arena:
        package = create_sample_package(arena, **overrides)
        filename = get_codec(format).write(package, arena)
        destination = os.path.join(directory, os.path.basename(filename))
        shutil.move(filename, destination)
    return destination


def read_package(filename, format=None):
    """Read a package (the staged contents are discarded but the checksums are kept)."""
    with StagingArena() as arena:
        return get_codec(format or detect_format(filename)).read(filename, arena)


def get_manifest(package):
    """Summarize the objects in a package as a dictionary (useful for comparisons)."""
    return dict((entry.path, (entry.kind, entry.mode, entry.owner, entry.group, entry.target,
                              entry.checksum if entry.has_contents else None))
                for entry in package.files)


def get_checksums(package):
    """Get the MD5 checksums of the regular files in a package (a dictionary)."""
    return dict((entry.path, entry.checksum) for entry in package.regular_files)


class PkgshiftTestCase(TestCase):

    """:mod:`unittest` compatible container for the test suite of `pkgshift`."""

    def create_isolated_pipeline(self, **options):
        """Instantiate a conversion pipeline that ignores configuration files and environment variables."""
        pipeline = ConversionPipeline(load_configuration_files=False,
                                      load_environment_variables=False,
                                      **options)
        pipeline.set_lintian_enabled(False)
        return pipeline

    def check_round_trip(self, format):
        """Write the sample package in the given format, read it back and compare the two."""
        with TemporaryDirectory() as directory:
            with StagingArena() as arena:
                original = create_sample_package(arena)
            filename = build_sample_package(directory, format)
            assert os.path.basename(filename) == SAMPLE_FILENAMES[format]
            assert detect_format(filename) == format
            copy = read_package(filename, format)
        assert copy.name == 'hello'
        assert copy.version == '2.10'
        assert copy.release == '1'
        assert copy.architecture == 'amd64'
        assert copy.summary == 'Friendly greeter'
        assert copy.description == 'Prints a friendly greeting.'
        assert copy.original_format == format
        assert get_manifest(copy) == get_manifest(original)
        assert sorted(copy.scripts) == [POST_INSTALL]
        assert copy.scripts[POST_INSTALL].interpreter == '/bin/sh'
        assert copy.scripts[POST_INSTALL].text == 'echo "Installed hello."\n'
        return copy

    def test_deb_round_trip(self):
        """Test that Debian binary packages survive being written and read back."""
        package = self.check_round_trip(DEB)
        assert package.maintainer == 'Jane Doe <jane@example.com>'
        assert package.section == 'utils'
        assert package.dependencies == (Relation(name='libc6', operator='>=', version='2.31'),)

    def test_rpm_round_trip(self):
        """Test that RPM packages survive being written and read back."""
        package = self.check_round_trip(RPM)
        assert package.maintainer == 'Jane Doe <jane@example.com>'
        assert package.section == 'utils'
        # The rpmlib() requirements and the implicit self provide are hidden.
        assert package.dependencies == (Relation(name='libc6', operator='>=', version='2.31'),)
        assert package.provides == ()

    def test_tgz_round_trip(self):
        """Test that Slackware packages survive being written and read back."""
        package = self.check_round_trip(TGZ)
        assert package.maintainer == ''
        assert package.dependencies == ()

    def test_pkg_round_trip(self):
        """Test that SVR4 package datastreams survive being written and read back."""
        package = self.check_round_trip(PKG)
        assert package.maintainer == 'Jane Doe <jane@example.com>'
        assert package.section == 'utils'
        assert package.dependencies == (Relation(name='libc6', operator='>=', version='2.31'),)

    def test_digests_survive_conversion_chain(self):
        """Test that the contents of files are preserved by a chain of conversions through every format."""
        with TemporaryDirectory() as source_directory:
            with TemporaryDirectory() as output_directory:
                source = build_sample_package(source_directory, DEB)
                expected = get_checksums(read_package(source))
                pipeline = self.create_isolated_pipeline(output_directory=output_directory)
                pipeline.set_generate('maintainer')
                filename = source
                for format in (RPM, TGZ, PKG, DEB):
                    filename = pipeline.convert(filename, format).filename
                    assert os.path.dirname(filename) == output_directory
                    assert get_checksums(read_package(filename)) == expected
                package = read_package(filename)
                assert package.name == 'hello'
                assert package.find_file('etc/hello.conf').kind == CONFFILE
                assert package.find_file('usr/bin/hi').target == 'hello'
                assert package.maintainer

    def test_deb_to_rpm_conversion(self):
        """Test the conversion of a Debian binary package with a versioned dependency to RPM."""
        with TemporaryDirectory() as directory:
            source = build_sample_package(directory, DEB, dependencies=(
                Relation(name='libfoo', operator='>=', version='2.0'),
                Relation(name='libc6'),
            ))
            pipeline = self.create_isolated_pipeline(output_directory=directory)
            result = pipeline.convert(source, RPM)
            assert os.path.basename(result.filename) == 'hello-2.10-1.x86_64.rpm'
            package = read_package(result.filename)
            assert package.dependencies == (Relation(name='libfoo', operator='>=', version='2.0'),
                                            Relation(name='glibc'))
            assert get_checksums(package) == get_checksums(read_package(source))

    def test_rpm_name_normalization(self):
        """Test that converting a mixed case RPM package to Debian lowercases its name."""
        with TemporaryDirectory() as source_directory:
            with TemporaryDirectory() as output_directory:
                source = build_sample_package(source_directory, RPM, name='MyTool')
                pipeline = self.create_isolated_pipeline(output_directory=output_directory)
                result = pipeline.convert(source, DEB)
                assert result.package.name == 'mytool'
                assert os.path.basename(result.filename) == 'mytool_2.10-1_amd64.deb'
                # RPM to RPM conversions preserve the case of the name.
                result = pipeline.convert(source, RPM)
                assert result.package.name == 'MyTool'
                assert os.path.basename(result.filename) == 'MyTool-2.10-1.x86_64.rpm'

    def test_lsb_conversion(self):
        """Test that LSB packages get an `lsb-' prefix and a dependency on `lsb'."""
        with TemporaryDirectory() as directory:
            source = build_sample_package(directory, DEB)
            pipeline = self.create_isolated_pipeline(output_directory=directory)
            result = pipeline.convert(source, LSB)
            assert os.path.basename(result.filename) == 'lsb-hello-2.10-1.x86_64.rpm'
            package = read_package(result.filename)
            assert package.original_format == LSB
            assert any(r.name == 'lsb' for r in package.dependencies)

    def test_tgz_drops_relations(self):
        """Test that converting to the Slackware format drops all relations with a warning."""
        with TemporaryDirectory() as directory:
            source = build_sample_package(directory, DEB, conflicts=(Relation(name='goodbye'),))
            pipeline = self.create_isolated_pipeline(output_directory=directory)
            result = pipeline.convert(source, TGZ)
            assert result.package.dependencies == ()
            assert result.package.conflicts == ()
            assert len([w for w in result.warnings if 'no dependency mechanism' in w]) == 2
            assert read_package(result.filename).dependencies == ()

    def test_tgz_script_folding(self):
        """Test that the maintainer scripts of a package are folded into ``doinst.sh``."""
        scripts = dict((kind, Script(text='echo %s\n' % kind))
                       for kind in (PRE_INSTALL, POST_INSTALL, PRE_REMOVE, POST_REMOVE))
        with TemporaryDirectory() as directory:
            source = build_sample_package(directory, DEB, scripts=scripts)
            pipeline = self.create_isolated_pipeline(output_directory=directory)
            result = pipeline.convert(source, TGZ)
            assert any('no uninstall scripts' in w for w in result.warnings)
            with tarfile.open(result.filename) as archive:
                doinst = archive.extractfile('install/doinst.sh').read().decode('utf-8')
            positions = [doinst.index(marker) for marker in (
                '### pkgshift: pre-install ###',
                '### pkgshift: post-install ###',
                '### pkgshift: pre-remove (disabled) ###',
                '### pkgshift: post-remove (disabled) ###',
                '### pkgshift: end ###',
            )]
            assert positions == sorted(positions)
            assert '# echo pre-remove' in doinst
            package = read_package(result.filename)
            assert sorted(package.scripts) == sorted([PRE_INSTALL, POST_INSTALL])
            assert package.scripts[PRE_INSTALL].text == 'echo pre-install\n'
            assert package.scripts[POST_INSTALL].text == 'echo post-install\n'

    def test_script_embedding(self):
        """Test that scripts for other interpreters survive being folded into ``doinst.sh``."""
        script = Script(interpreter='/usr/bin/perl', text='print "Hello!\\n";\n')
        text = fold_slackware_script({POST_INSTALL: script})
        scripts, symlinks = unfold_slackware_script(text)
        assert symlinks == []
        assert scripts[POST_INSTALL].interpreter == '/usr/bin/perl'
        assert scripts[POST_INSTALL].text == script.text
        # Plain shell scripts are isolated in a subshell.
        text = fold_slackware_script({PRE_INSTALL: Script(text='exit 0\n')})
        assert '(\nexit 0\n)\n' in text
        scripts, symlinks = unfold_slackware_script(text)
        assert scripts[PRE_INSTALL].interpreter == '/bin/sh'
        assert scripts[PRE_INSTALL].text == 'exit 0\n'
        # Symbolic links created by makepkg are recognized.
        scripts, symlinks = unfold_slackware_script(
            '( cd usr/bin ; rm -rf hi )\n( cd usr/bin ; ln -sf hello hi )\n'
        )
        assert scripts == {}
        assert symlinks == [('usr/bin/hi', 'hello')]
        # Scripts that weren't generated by us become post-install scripts.
        scripts, symlinks = unfold_slackware_script('#!/bin/sh\nldconfig\n')
        assert scripts[POST_INSTALL].text == 'ldconfig\n'

    def test_folded_scripts_run_isolated(self):
        """Test that an ``exit`` in the pre-install logic doesn't skip the post-install logic of ``doinst.sh``."""
        scripts = {
            PRE_INSTALL: Script(text='echo pre-install\nexit 0\n'),
            POST_INSTALL: Script(text='echo post-install\n'),
        }
        with TemporaryDirectory() as directory:
            source = build_sample_package(directory, RPM, scripts=scripts)
            pipeline = self.create_isolated_pipeline(output_directory=directory)
            result = pipeline.convert(source, TGZ)
            with tarfile.open(result.filename) as archive:
                doinst = archive.extractfile('install/doinst.sh').read()
            script_file = os.path.join(directory, 'doinst.sh')
            with open(script_file, 'wb') as handle:
                handle.write(doinst)
            output = execute('sh', script_file, capture=True, directory=directory)
            assert output.splitlines() == ['pre-install', 'post-install']
            package = read_package(result.filename)
            assert package.scripts[PRE_INSTALL].text == 'echo pre-install\nexit 0\n'
            assert package.scripts[POST_INSTALL].text == 'echo post-install\n'

    def test_bash_script_round_trip(self):
        """Test that scripts for ``bash`` keep their interpreter when they pass through ``doinst.sh``."""
        body = 'names=(hello hi)\necho "${names[1]}"\n'
        with TemporaryDirectory() as source_directory:
            with TemporaryDirectory() as output_directory:
                source = build_sample_package(source_directory, RPM, scripts={
                    POST_INSTALL: Script(interpreter='/bin/bash', text=body),
                })
                pipeline = self.create_isolated_pipeline(output_directory=output_directory)
                intermediate = pipeline.convert(source, TGZ).filename
                with tarfile.open(intermediate) as archive:
                    doinst = archive.extractfile('install/doinst.sh').read().decode('utf-8')
                assert "/bin/bash <<'PKGSHIFT_SCRIPT'" in doinst
                package = read_package(pipeline.convert(intermediate, RPM).filename)
                assert package.scripts[POST_INSTALL].interpreter == '/bin/bash'
                assert package.scripts[POST_INSTALL].text == body
        # Shell scripts with options aren't pasted into doinst.sh either.
        script = Script(interpreter='/bin/sh -e', text='false\n')
        scripts, symlinks = unfold_slackware_script(fold_slackware_script({POST_INSTALL: script}))
        assert scripts[POST_INSTALL].interpreter == '/bin/sh -e'
        assert scripts[POST_INSTALL].text == 'false\n'

    def test_tgz_to_deb_conversion(self):
        """Test that a Slackware package converts to the Debian format using the default options."""
        with TemporaryDirectory() as directory:
            source = build_sample_package(directory, TGZ)
            with PatchedItem(os.environ, 'DEBFULLNAME', 'Package Converter'):
                with PatchedItem(os.environ, 'DEBEMAIL', 'converter@example.com'):
                    pipeline = self.create_isolated_pipeline(output_directory=directory)
                    assert pipeline.generate == []
                    result = pipeline.convert(source, DEB)
            assert os.path.basename(result.filename) == 'hello_2.10-1_amd64.deb'
            assert not [n for n in os.listdir(directory) if n.endswith('.partial')]
            package = read_package(result.filename)
            assert package.maintainer == 'Package Converter <converter@example.com>'
            assert package.summary == 'Friendly greeter'
            assert any('no dependency mechanism' in w for w in result.warnings)
            # The relations of Slackware packages are unknown, whatever the target.
            result = pipeline.convert(source, RPM)
            assert any('no dependency mechanism' in w for w in result.warnings)

    def test_legacy_tgz_package(self):
        """Test Slackware packages without ``slack-desc`` that use extra install scripts and ``/usr/man``."""
        members = [
            ('install/predoinst.sh', b'#!/bin/sh\necho before\n'),
            ('install/predelete.sh', b'#!/bin/sh\necho removing\n'),
            ('install/delete.sh', b'#!/bin/sh\necho removed\n'),
            ('install/doinst.sh', b'echo after\n'),
            ('usr/man/man1/legacy.1', b'.TH LEGACY 1\n'),
        ]
        with TemporaryDirectory() as directory:
            source = os.path.join(directory, 'legacy-1.0-noarch-1.tgz')
            with tarfile.open(source, 'w:gz') as archive:
                for name, contents in members:
                    info = tarfile.TarInfo(name)
                    info.size = len(contents)
                    info.mode = 0o755 if name.endswith('.sh') else 0o644
                    archive.addfile(info, io.BytesIO(contents))
            package = read_package(source)
            assert package.summary == 'Converted tgz package'
            assert package.section == 'unknown'
            assert dict((kind, script.text) for kind, script in package.scripts.items()) == {
                PRE_INSTALL: 'echo before\n',
                POST_INSTALL: 'echo after\n',
                PRE_REMOVE: 'echo removing\n',
                POST_REMOVE: 'echo removed\n',
            }
            pipeline = self.create_isolated_pipeline(output_directory=directory)
            result = pipeline.convert(source, DEB)
            assert any('Filesystem Hierarchy Standard' in w for w in result.warnings)
            package = read_package(result.filename)
            assert package.maintainer
            assert package.find_file('usr/man/man1/legacy.1') is None
            entry = package.find_file('usr/share/man/man1/legacy.1')
            assert entry.kind == REGULAR
            assert entry.size == len(b'.TH LEGACY 1\n')
            assert sorted(package.scripts) == sorted([PRE_INSTALL, POST_INSTALL, PRE_REMOVE, POST_REMOVE])

    def test_corrupt_rpm_header(self):
        """Test that RPM headers with impossible dimensions are refused without allocating them."""
        with TemporaryDirectory() as directory:
            with open(build_sample_package(directory, RPM), 'rb') as handle:
                lead = handle.read(LEAD_SIZE)
            for count, size in ((0x7fffffff, 0x7fffffff), (100, 1000), (-1, 0)):
                filename = os.path.join(directory, 'corrupt.rpm')
                with open(filename, 'wb') as handle:
                    handle.write(lead)
                    handle.write(HEADER_MAGIC + b'\0' * 4 + struct.pack('>ii', count, size))
                    handle.write(b'\0' * 64)
                with StagingArena() as arena:
                    with self.assertRaises(FormatError) as context:
                        RpmCodec().read(filename, arena)
                    assert context.exception.field == 'header'
                    assert context.exception.offset >= LEAD_SIZE

    def test_strip_scripts(self):
        """Test that maintainer scripts can be stripped."""
        with TemporaryDirectory() as directory:
            source = build_sample_package(directory, DEB)
            pipeline = self.create_isolated_pipeline(output_directory=directory)
            pipeline.set_scripts(STRIP)
            result = pipeline.convert(source, RPM)
            assert result.package.scripts == {}
            assert any('Stripping' in w for w in result.warnings)
            assert read_package(result.filename).scripts == {}

    def test_binary_script_wrapping(self):
        """Test that binary maintainer scripts are wrapped in a shell script for RPM."""
        package = CanonicalPackage(name='hello', version='1.0', scripts={
            POST_INSTALL: Script(text='\x7fELF\0\0\0'),
        })
        translated = ScriptTranslator(target=RPM).translate(package)
        script = translated.scripts[POST_INSTALL]
        assert script.interpreter == '/bin/sh'
        assert 'base64 -d' in script.text
        assert '\0' not in script.text

    def test_bad_rpm_lead(self):
        """Test that a corrupt RPM lead is reported before anything is staged."""
        with TemporaryDirectory() as directory:
            filename = os.path.join(directory, 'broken.rpm')
            with open(filename, 'wb') as handle:
                handle.write(b'\0' * 512)
            with StagingArena() as arena:
                with self.assertRaises(FormatError) as context:
                    RpmCodec().read(filename, arena)
                assert context.exception.offset == 0
                assert context.exception.field == 'lead'
                assert os.listdir(arena.root) == []
            # The pipeline doesn't publish anything either.
            with TemporaryDirectory() as output_directory:
                pipeline = self.create_isolated_pipeline(output_directory=output_directory)
                self.assertRaises(FormatError, pipeline.convert, filename, DEB)
                assert os.listdir(output_directory) == []

    def test_encoding_errors(self):
        """Test that packages that can't be expressed in the target format are refused."""
        with StagingArena() as arena:
            package = create_sample_package(arena, maintainer='')
            self.assertRaises(EncodingError, DebCodec().check, package)
            package = create_sample_package(arena, summary='First line\nSecond line')
            self.assertRaises(EncodingError, DebCodec().check, package)
            package = create_sample_package(arena, summary='')
            self.assertRaises(EncodingError, RpmCodec().check, package)
            package = create_sample_package(arena, version='2.10-beta')
            self.assertRaises(EncodingError, TgzCodec().check, package)

    def test_missing_input(self):
        """Test that converting a nonexistent file fails."""
        pipeline = self.create_isolated_pipeline()
        self.assertRaises(StagingError, pipeline.convert, '/definitely/not/a/package.deb', RPM)
        self.assertRaises(ValueError, pipeline.convert, '/definitely/not/a/package.deb', 'msi')

    def test_format_detection(self):
        """Test detection of package formats by magic bytes and filename extension."""
        with TemporaryDirectory() as directory:
            for format in (DEB, RPM, TGZ, PKG):
                assert detect_format(build_sample_package(directory, format)) == format
            # Files without known magic bytes fall back to the extension.
            for basename, format in (('junk.rpm', RPM), ('junk.deb', DEB), ('junk.pkg', PKG)):
                filename = os.path.join(directory, basename)
                with open(filename, 'wb') as handle:
                    handle.write(b'not really a package')
                assert detect_format(filename) == format
            filename = os.path.join(directory, 'README.txt')
            with open(filename, 'wb') as handle:
                handle.write(b'not a package at all')
            self.assertRaises(FormatError, detect_format, filename)

    def test_argument_validation(self):
        """Test argument validation done by setters of :class:`pkgshift.pipeline.ConversionPipeline`."""
        pipeline = self.create_isolated_pipeline()
        self.assertRaises(ValueError, pipeline.set_output_directory, '/foo/bar/baz')
        self.assertRaises(ValueError, pipeline.set_scripts, 'execute')
        self.assertRaises(ValueError, pipeline.set_generate, 'maintainer, license')
        self.assertRaises(ValueError, pipeline.set_compression, 'zstd')
        self.assertRaises(ValueError, setattr, pipeline, 'release_bump', 'one')
        self.assertRaises(ValueError, setattr, pipeline, 'release_bump', -1)
        self.assertRaises(ValueError, pipeline.rename_package, 'old-name', '')
        self.assertRaises(ValueError, pipeline.rename_package, '', 'new-name')
        self.assertRaises(ValueError, pipeline.map_dependency, 'libc6', '')
        self.assertRaises(ValueError, pipeline.set_description, '', 'Description')
        exit_code, output = run_cli(main, '--unsupported-option')
        assert exit_code != 0
        exit_code, output = run_cli(main, '--to=msi', 'hello.deb')
        assert exit_code != 0
        exit_code, output = run_cli(main, '/definitely/not/a/package.deb')
        assert exit_code != 0

    def test_configuration_file(self):
        """Test loading of configuration files."""
        with TemporaryDirectory() as directory:
            configuration_file = os.path.join(directory, 'pkgshift.ini')
            with open(configuration_file, 'w') as handle:
                handle.write('\n'.join([
                    '[pkgshift]',
                    'output-directory = %s' % directory,
                    'scripts = strip',
                    'generate = maintainer, summary',
                    'architecture = x86_64',
                    'release-bump = 2',
                    'compression = xz',
                    'lintian = no',
                    '',
                    '[dependencies]',
                    'libc6 = glibc',
                    '',
                    '[package:MyTool]',
                    'rename = my-tool',
                    'description = Replacement description',
                    '',
                ]))
            pipeline = self.create_isolated_pipeline()
            pipeline.load_configuration_file(configuration_file)
            assert pipeline.output_directory == directory
            assert pipeline.scripts == STRIP
            assert pipeline.generate == ['maintainer', 'summary']
            assert pipeline.architecture == 'amd64'
            assert pipeline.release_bump == 2
            assert pipeline.compression == 'xz'
            assert pipeline.lintian_enabled is False
            assert pipeline.dependency_overrides == {'libc6': 'glibc'}
            assert pipeline.renames == {'MyTool': 'my-tool'}
            assert pipeline.package_descriptions == {'MyTool': 'Replacement description'}
            self.assertRaises(Exception, pipeline.load_configuration_file,
                              os.path.join(directory, 'missing.ini'))

    def test_environment_variables(self):
        """Test loading of options from environment variables."""
        with TemporaryDirectory() as directory:
            with PatchedItem(os.environ, 'PKGSHIFT_OUTPUT_DIRECTORY', directory):
                with PatchedItem(os.environ, 'PKGSHIFT_SCRIPTS', 'strip'):
                    with PatchedItem(os.environ, 'PKGSHIFT_LINTIAN', 'false'):
                        pipeline = ConversionPipeline(load_configuration_files=False)
                        assert pipeline.output_directory == directory
                        assert pipeline.scripts == STRIP
                        assert pipeline.lintian_enabled is False

    def test_package_customization(self):
        """Test description overrides and generated fields."""
        with TemporaryDirectory() as directory:
            source = build_sample_package(directory, RPM, name='MyTool')
            pipeline = self.create_isolated_pipeline(output_directory=directory)
            pipeline.rename_package('MyTool', 'my-tool')
            pipeline.set_description('MyTool', 'A replacement description.')
            pipeline.release_bump = 2
            pipeline.architecture = 'i686'
            result = pipeline.convert(source, DEB)
            assert os.path.basename(result.filename) == 'my-tool_2.10-3_i386.deb'
            package = read_package(result.filename)
            assert package.summary == 'Friendly greeter'
            assert package.description == 'A replacement description.'
        pipeline = self.create_isolated_pipeline()
        pipeline.set_generate('summary, section')
        package = CanonicalPackage(name='hello', version='1.0', description='First line.\nSecond line.')
        package = pipeline.customize_package(package, 'hello')
        assert package.summary == 'First line.'
        assert package.section == 'misc'
        assert package.maintainer == ''

    def test_command_line_interface(self):
        """Test the conversion of a package using the command line interface."""
        with TemporaryDirectory() as source_directory:
            with TemporaryDirectory() as output_directory:
                source = build_sample_package(source_directory, DEB)
                exit_code, output = run_cli(
                    main, '--to-rpm', '--to=tgz', '--no-lintian',
                    '--output-directory=%s' % output_directory,
                    source,
                )
                assert exit_code == 0
                for basename in ('hello-2.10-1.x86_64.rpm', 'hello-2.10-x86_64-1.tgz'):
                    filename = os.path.join(output_directory, basename)
                    assert filename in output
                    assert os.path.isfile(filename)

    def test_name_version_mapping(self):
        """Test the translation of package names and versions."""
        assert NameVersionMapper(target=DEB).map_name('MyTool') == 'mytool'
        assert NameVersionMapper(target=DEB).map_name('simple_json') == 'simple-json'
        assert NameVersionMapper(target=RPM).map_name('MyTool') == 'MyTool'
        assert NameVersionMapper(target=LSB).map_name('hello') == 'lsb-hello'
        assert NameVersionMapper(target=LSB).map_name('lsb-hello') == 'lsb-hello'
        assert NameVersionMapper(target=PKG).map_name('libfoo-perl') == 'lfoop'
        assert NameVersionMapper(target=DEB, renames={'MyTool': 'tool'}).map_name('MyTool') == 'tool'
        package = CanonicalPackage(name='hello', version='2.10', epoch=1)
        assert NameVersionMapper(target=RPM).map(package).release == '1'
        assert NameVersionMapper(target=DEB).map(package).release == ''
        report = ConversionReport()
        mapped = NameVersionMapper(target=TGZ, report=report).map(package)
        assert mapped.release == '1'
        assert mapped.epoch is None
        assert len(report) == 1
        mapped = NameVersionMapper(target=DEB, release_bump=1).map(package.replace(release='3'))
        assert mapped.release == '4'
        assert bump_release('3', 2) == '5'
        assert bump_release('1.el8', 1) == '1'
        assert get_native_architecture(RPM, 'amd64') == 'x86_64'
        assert get_native_architecture(TGZ, 'i386') == 'i586'
        assert get_native_architecture(DEB, 'amd64') == 'amd64'

    def test_dependency_mapping(self):
        """Test the translation of relations between ecosystems."""
        package = CanonicalPackage(name='hello', version='1.0', original_format=DEB, dependencies=(
            Relation(name='libc6', operator='>=', version='2.31'),
            Relation(name='python3:any'),
            Relation(name='exim4', alternatives=(Relation(name='postfix'),)),
        ))
        report = ConversionReport()
        mapped = DependencyMapper(target=RPM, report=report).map(package)
        assert mapped.dependencies == (Relation(name='glibc', operator='>=', version='2.31'),
                                       Relation(name='python3'))
        assert len(report) == 1
        mapped = DependencyMapper(target=LSB).map(package)
        assert mapped.dependencies[-1] == Relation(name='lsb')
        mapped = DependencyMapper(target=DEB).map(package)
        assert mapped.dependencies == package.dependencies
        # RPM capabilities without Debian equivalent are dropped.
        package = CanonicalPackage(name='hello', version='1.0', original_format=RPM, dependencies=(
            Relation(name='/bin/sh'),
            Relation(name='libfoo.so.1()(64bit)'),
            Relation(name='glibc'),
        ))
        report = ConversionReport()
        mapped = DependencyMapper(target=DEB, report=report).map(package)
        assert mapped.dependencies == (Relation(name='libc6'),)
        assert len(report) == 2
        mapped = DependencyMapper(target=DEB, overrides={'glibc': 'libc6-dev'}).map(package)
        assert Relation(name='libc6-dev') in mapped.dependencies

    def test_pathname_normalization(self):
        """Test normalization of pathnames found in packages."""
        assert normalize_path('./usr/bin/') == 'usr/bin'
        assert normalize_path('/etc//hosts') == 'etc/hosts'
        assert normalize_path('/') == ''
        self.assertRaises(FormatError, normalize_path, 'usr/../../etc/passwd')
        with StagingArena() as arena:
            self.assertRaises(FormatError, arena.stage_bytes, '../escape', b'')
        entries = expand_directories([FileEntry(path='usr/bin/hello', kind=REGULAR)])
        assert [(e.path, e.kind) for e in entries] == [
            ('usr', DIRECTORY), ('usr/bin', DIRECTORY), ('usr/bin/hello', REGULAR),
        ]

    def test_manifest_validation(self):
        """Test that invalid manifests are refused."""
        package = CanonicalPackage(name='hello', version='1.0', files=(
            FileEntry(path='usr', kind=DIRECTORY),
            FileEntry(path='usr', kind=DIRECTORY),
        ))
        self.assertRaises(EncodingError, package.validate)
        package = CanonicalPackage(name='hello', version='1.0', files=(
            FileEntry(path='usr/bin/hi', kind=SYMLINK),
        ))
        self.assertRaises(EncodingError, package.validate)

    def test_staging_arena(self):
        """Test that the staging arena is cleaned up."""
        with StagingArena() as arena:
            directory = arena.active_directory
            size, checksum = arena.stage_bytes('usr/bin/hello', b'hello')
            assert size == 5
            assert checksum == arena.get_digest('usr/bin/hello')
            assert arena.exists('usr/bin/hello')
            assert arena.read_bytes('usr/bin/hello') == b'hello'
            self.assertRaises(StagingError, arena.open, 'usr/bin/missing')
        assert not os.path.exists(directory)
        self.assertRaises(StagingError, getattr, arena, 'root')

    def test_cpio_archives(self):
        """Test the ``cpio`` reader and writer."""
        for format in ('newc', 'odc'):
            buffer = io.BytesIO()
            writer = CpioWriter(buffer, format=format, block_size=512)
            writer.add('./usr', 0o40755, nlink=2)
            writer.add('./usr/hello', 0o100644, data=b'hello')
            writer.close()
            assert len(buffer.getvalue()) % 512 == 0
            buffer.seek(0)
            entries = [(entry.name, entry.mode, data.read()) for entry, data in CpioReader(buffer).entries()]
            assert entries == [('./usr', 0o40755, b''), ('./usr/hello', 0o100644, b'hello')]
            truncated = io.BytesIO(buffer.getvalue()[:20])
            self.assertRaises(FormatError, list, CpioReader(truncated).entries())

    def test_ar_archives(self):
        """Test the ``ar`` writer."""
        buffer = io.BytesIO()
        write_ar_archive(buffer, [('debian-binary', b'2.0\n'), ('odd', b'x')], mtime=0)
        data = buffer.getvalue()
        assert data.startswith(AR_MAGIC + b'debian-binary')
        # Members are padded to even offsets.
        assert len(data) % 2 == 0
        self.assertRaises(ValueError, write_ar_archive, io.BytesIO(), [('a' * 17, b'')])

    def test_metadata_helpers(self):
        """Test the functions that parse and format package metadata."""
        assert split_version('1:2.0-3') == ('2.0', '3', 1)
        assert split_version('2.10') == ('2.10', '', None)
        assert split_version('1.0-rc1-2') == ('1.0-rc1', '2', None)
        with self.assertRaises(FormatError) as context:
            split_version('x:1.0')
        assert "'x:1.0'" in str(context.exception)
        assert format_description('Greeter', 'Says hello.\n\nOften.') == 'Greeter\n Says hello.\n .\n Often.'
        assert format_description('Greeter', '') == 'Greeter'
        assert parse_slack_desc('hello: hello (GNU Hello)\nhello:\nhello: Prints a greeting.\n') == (
            'GNU Hello', 'Prints a greeting.',
        )
        dependencies, conflicts = parse_depend('P libfoo libfoo (>= 2.0)\nI bar Bar\nR baz Baz\n')
        assert dependencies == (Relation(name='libfoo', operator='>=', version='2.0'),)
        assert conflicts == (Relation(name='bar'),)
        assert svr4_checksum(b'hello') == 532
        assert split_maintainer('Jane Doe <jane@example.com>') == ('Jane Doe', 'jane@example.com')
        assert split_maintainer('Jane Doe') == ('Jane Doe', '')
        assert coerce_list('maintainer, summary section') == ['maintainer', 'summary', 'section']
        assert str(Relation(name='libfoo', operator='>=', version='2.0',
                            alternatives=(Relation(name='libbar'),))) == 'libfoo (>= 2.0) | libbar'

    def test_conversion_report(self):
        """Test the collection of conversion warnings."""
        report = ConversionReport()
        assert report
        assert len(report) == 0
        report.warn("Dropping %i relations.", 2)
        assert report.warnings == ["Dropping 2 relations."]
