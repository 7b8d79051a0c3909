# Command line interface for the `pkgshift' program.
#
# Last Change: October 18, 2026

"""
Usage: pkgshift [OPTIONS] PACKAGE...

Convert binary packages between the Debian (*.deb), RPM (*.rpm), Linux
Standard Base (RPM based), Slackware (*.tgz) and Solaris SVR4 (*.pkg)
package formats. The format of each given package is detected automatically
(based on its contents and filename) unless the --from option is used. When
no target format is given the packages are converted to the Debian format.

The filenames of the generated packages are printed on standard output.

Supported options:

  -d, --to-deb

    Convert the given packages to Debian binary packages.

  -r, --to-rpm

    Convert the given packages to RPM packages.

  -l, --to-lsb

    Convert the given packages to Linux Standard Base packages (RPM packages
    whose names start with `lsb-' and which depend on `lsb').

  -t, --to-tgz

    Convert the given packages to Slackware packages.

  -p, --to-pkg

    Convert the given packages to Solaris SVR4 package datastreams.

  --to=FORMAT

    Convert the given packages to FORMAT (one of `deb', `rpm', `lsb',
    `tgz' or `pkg'). This option can be repeated.

  --from=FORMAT

    Don't detect the format of the given packages, assume they're all
    in the given FORMAT.

  -o, --output-directory=DIRECTORY

    Change the directory where converted packages are stored. Defaults to
    the current working directory. If this directory doesn't exist pkgshift
    refuses to run.

    Can also be set using the environment variable $PKGSHIFT_OUTPUT_DIRECTORY.

  -c, --config=FILENAME

    Load a configuration file. Because the command line arguments are processed
    in the given order, you have the choice and responsibility to decide if
    command line options override configuration file options or vice versa.
    Refer to the documentation for details on the configuration file format.

    The default configuration files /etc/pkgshift.ini and ~/.pkgshift.ini are
    automatically loaded if they exist. This happens before environment
    variables and command line options are processed.

    Can also be set using the environment variable $PKGSHIFT_CONFIG.

  --strip-scripts

    Don't include the maintainer scripts of the given packages in the
    converted packages.

    Can also be set using the environment variable $PKGSHIFT_SCRIPTS=strip.

  --generate=FIELDS

    Synthesize the given fields (a comma separated list) when a package
    doesn't define them. Supported fields are `maintainer', `summary',
    `description' and `section'.

    Can also be set using the environment variable $PKGSHIFT_GENERATE.

  --description=TEXT

    Replace the description of the converted packages.

  --target=ARCHITECTURE

    Override the architecture of the converted packages.

  --bump=NUMBER

    Increase the release of the converted packages by NUMBER.

  --rename=SOURCE_NAME,TARGET_NAME

    Override the package name conversion algorithm for the given pair
    of package names.

  --map-dependency=SOURCE_NAME,TARGET_NAME

    Replace relations on SOURCE_NAME with relations on TARGET_NAME.

  --compression=METHOD

    Compress the payload of Debian and Slackware packages using METHOD
    (`gzip' or `xz', defaults to `gzip').

    Can also be set using the environment variable $PKGSHIFT_COMPRESSION.

  --no-lintian

    Don't check converted Debian packages with Lintian.

    Can also be set using the environment variable $PKGSHIFT_LINTIAN=false.

  -v, --verbose

    Make more noise :-).

  -q, --quiet

    Make less noise.

  -h, --help

    Show this message and exit.
"""

# Standard library modules.
import getopt
import logging
import sys

# External dependencies.
import coloredlogs
from humanfriendly.text import concatenate
from humanfriendly.terminal import output, usage, warning

# Modules included in our package.
from pkgshift.exceptions import PkgshiftError
from pkgshift.mapping import DEB, FORMATS, LSB, PKG, RPM, TGZ
from pkgshift.pipeline import ConversionPipeline

# Initialize a logger.
logger = logging.getLogger(__name__)


def main():
    """Command line interface for the ``pkgshift`` program."""
    # Configure terminal output.
    coloredlogs.install()
    try:
        # Initialize a conversion pipeline.
        pipeline = ConversionPipeline()
        # Parse and validate the command line options.
        options, arguments = getopt.getopt(sys.argv[1:], 'drltpo:c:vqh', [
            'to-deb', 'to-rpm', 'to-lsb', 'to-tgz', 'to-pkg', 'to=', 'from=',
            'output-directory=', 'config=', 'strip-scripts', 'generate=',
            'description=', 'target=', 'bump=', 'rename=', 'map-dependency=',
            'compression=', 'no-lintian', 'verbose', 'quiet', 'help',
        ])
        target_formats = []
        source_format = None
        for option, value in options:
            if option in ('-d', '--to-deb'):
                target_formats.append(DEB)
            elif option in ('-r', '--to-rpm'):
                target_formats.append(RPM)
            elif option in ('-l', '--to-lsb'):
                target_formats.append(LSB)
            elif option in ('-t', '--to-tgz'):
                target_formats.append(TGZ)
            elif option in ('-p', '--to-pkg'):
                target_formats.append(PKG)
            elif option == '--to':
                target_formats.append(check_format(value))
            elif option == '--from':
                source_format = check_format(value)
            elif option in ('-o', '--output-directory'):
                pipeline.set_output_directory(value)
            elif option in ('-c', '--config'):
                pipeline.load_configuration_file(value)
            elif option == '--strip-scripts':
                pipeline.set_scripts('strip')
            elif option == '--generate':
                pipeline.set_generate(value)
            elif option == '--description':
                pipeline.description = value
            elif option == '--target':
                pipeline.architecture = value
            elif option == '--bump':
                pipeline.release_bump = value
            elif option == '--rename':
                source_name, _, target_name = value.partition(',')
                pipeline.rename_package(source_name, target_name)
            elif option == '--map-dependency':
                source_name, _, target_name = value.partition(',')
                pipeline.map_dependency(source_name, target_name)
            elif option == '--compression':
                pipeline.set_compression(value)
            elif option == '--no-lintian':
                pipeline.set_lintian_enabled(False)
            elif option in ('-v', '--verbose'):
                coloredlogs.increase_verbosity()
            elif option in ('-q', '--quiet'):
                coloredlogs.decrease_verbosity()
            elif option in ('-h', '--help'):
                usage(__doc__)
                return
            else:
                assert False, "Unhandled option!"
    except Exception as e:
        warning("Failed to parse command line arguments: %s", e)
        sys.exit(1)
    # Convert the requested package(s).
    if not arguments:
        usage(__doc__)
        return
    try:
        for filename in arguments:
            for target_format in (target_formats or [DEB]):
                result = pipeline.convert(filename, target_format, source_format)
                output(result.filename)
    except PkgshiftError as e:
        logger.error("%s", e)
        sys.exit(1)
    except Exception:
        logger.exception("Caught an unhandled exception!")
        sys.exit(1)


def check_format(value):
    """
    Validate a format name given on the command line.

    :param value: The format name (a string).
    :returns: The normalized format name (a string).
    :raises: :exc:`~exceptions.ValueError` when the format is unknown.
    """
    format = value.strip().lower()
    if format not in FORMATS:
        raise ValueError("Unknown package format %r! (supported formats are %s)"
                         % (value, concatenate(FORMATS)))
    return format
