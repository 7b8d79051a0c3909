# pkgshift: Convert binary packages between the deb, rpm, tgz and pkg formats.
#
# Last Change: October 18, 2026

"""
The :mod:`pkgshift.scripts` module maps maintainer scripts between formats.

Every format has its own convention for the four lifecycle script slots:

=============  ============  ===========  ===============  ====================
Slot           Debian        RPM          SVR4             Slackware
=============  ============  ===========  ===============  ====================
pre-install    ``preinst``   ``%pre``     ``preinstall``   ``install/doinst.sh``
post-install   ``postinst``  ``%post``    ``postinstall``  ``install/doinst.sh``
pre-remove     ``prerm``     ``%preun``   ``preremove``    (not supported)
post-remove    ``postrm``    ``%postun``  ``postremove``   (not supported)
=============  ============  ===========  ===============  ====================

Script bodies are treated as opaque text. The only transformations are the
folding of the slots into Slackware's single ``doinst.sh`` script and the
wrapping of binary "scripts" for formats that store scripts as strings.
"""

# Standard library modules.
import base64
import logging
import re
import textwrap

# External dependencies.
from humanfriendly.text import concatenate, pluralize
from property_manager import PropertyManager, mutable_property, required_property

# Modules included in our package.
from pkgshift.mapping import LSB, RPM, TGZ
from pkgshift.package import (
    DEFAULT_INTERPRETER,
    POST_INSTALL,
    POST_REMOVE,
    PRE_INSTALL,
    PRE_REMOVE,
    SCRIPT_KINDS,
    Script,
)
from pkgshift.utils import ConversionReport

# Initialize a logger.
logger = logging.getLogger(__name__)

PRESERVE = 'preserve'
"""The script policy that keeps maintainer scripts (a string)."""

STRIP = 'strip'
"""The script policy that removes maintainer scripts (a string)."""

SCRIPT_POLICIES = (PRESERVE, STRIP)
"""The supported script policies (a tuple of strings)."""

SLACKWARE_MARKER = '### pkgshift: %s ###'
"""The comment that introduces a slot in a folded ``doinst.sh`` script."""

SLACKWARE_MARKER_PATTERN = re.compile(r'^### pkgshift: (%s)( \(disabled\))? ###$' % '|'.join(SCRIPT_KINDS), re.M)
"""Compiled regular expression that matches the comments generated from :data:`SLACKWARE_MARKER`."""

SLACKWARE_END_MARKER = '### pkgshift: end ###'
"""The comment that terminates the last slot in a folded ``doinst.sh`` script."""

HEREDOC_DELIMITER = 'PKGSHIFT_SCRIPT'
"""The delimiter of the here-documents that embed scripts for other interpreters."""

HEREDOC_PATTERN = re.compile(r"\A(\S[^\n]*?) <<'%s'\n(.*)%s\n\Z" % (HEREDOC_DELIMITER, HEREDOC_DELIMITER), re.S)
"""Compiled regular expression that matches the here-documents generated by :func:`fold_slackware_script()`."""

SUBSHELL_PATTERN = re.compile(r'\A\(\n(.*)\)\n\Z', re.S)
"""Compiled regular expression that matches the subshells generated by :func:`embed_script()`."""

SYMLINK_PATTERN = re.compile(r'^\( cd (\S+) ; ln -sf (\S+) (\S+) \)$')
"""Compiled regular expression that matches the symbolic link commands generated by ``makepkg``."""

SYMLINK_REMOVAL_PATTERN = re.compile(r'^\( cd (\S+) ; rm -rf (\S+) \)$')
"""Compiled regular expression that matches the cleanup commands generated by ``makepkg``."""

BINARY_WRAPPER = textwrap.dedent('''
    set -e
    script="$(mktemp)"
    trap 'rm -f "$script"' EXIT
    base64 -d > "$script" <<'%s'
    %%s
    %s
    chmod 755 "$script"
    "$script" "$@"
''' % (HEREDOC_DELIMITER, HEREDOC_DELIMITER)).lstrip()
"""Shell script template that unpacks and runs a binary maintainer script."""


class ScriptTranslator(PropertyManager):

    """Map the four maintainer script slots of a package onto a target format."""

    @required_property
    def target(self):
        """The target format (one of the strings in :data:`.FORMATS`)."""

    @mutable_property(cached=True)
    def report(self):
        """The :class:`.ConversionReport` that collects warnings."""
        return ConversionReport()

    @mutable_property
    def policy(self):
        """One of the strings in :data:`SCRIPT_POLICIES` (defaults to :data:`PRESERVE`)."""
        return PRESERVE

    def translate(self, package):
        """
        Translate the maintainer scripts of a package.

        :param package: A :class:`.CanonicalPackage` object.
        :returns: A new :class:`.CanonicalPackage` object.
        """
        present = [kind for kind in SCRIPT_KINDS if package.scripts.get(kind)]
        if self.policy == STRIP:
            if present:
                self.report.warn("Stripping %s (%s) as requested.",
                                 pluralize(len(present), "maintainer script"),
                                 concatenate(present))
            return package.replace(scripts={})
        scripts = {}
        for kind in present:
            script = package.scripts[kind]
            if not script.interpreter:
                script = Script(interpreter=DEFAULT_INTERPRETER, text=script.text)
            if self.target in (RPM, LSB) and is_binary(script):
                logger.info("Wrapping binary %s script in a shell script.", kind)
                script = wrap_binary(script)
            scripts[kind] = script
        if self.target == TGZ:
            excluded = [kind for kind in (PRE_REMOVE, POST_REMOVE) if kind in scripts]
            if excluded:
                self.report.warn(
                    "Excluding %s (%s) from install/doinst.sh because Slackware packages have no uninstall scripts.",
                    pluralize(len(excluded), "maintainer script"), concatenate(excluded),
                )
        return package.replace(scripts=scripts)


def is_binary(script):
    """
    Check whether a script can't be stored as text.

    :param script: A :class:`.Script` object.
    :returns: :data:`True` when the script contains NUL bytes or is an ELF
              executable, :data:`False` otherwise.
    """
    return '\0' in script.text or script.text.startswith('\x7fELF')


def wrap_binary(script):
    """
    Wrap a binary maintainer script in a self extracting shell script.

    :param script: A :class:`.Script` object.
    :returns: A :class:`.Script` object for ``/bin/sh``.
    """
    contents = script.text.encode('utf-8', 'surrogateescape')
    if script.text.startswith('\x7fELF'):
        executable = contents
    else:
        executable = ('#!%s\n' % script.interpreter).encode('utf-8') + contents
    encoded = base64.encodebytes(executable).decode('ascii').rstrip('\n')
    return Script(interpreter=DEFAULT_INTERPRETER, text=BINARY_WRAPPER % encoded)


def fold_slackware_script(scripts):
    """
    Fold maintainer scripts into the single ``doinst.sh`` script of a Slackware package.

    :param scripts: Mapping of script slots to :class:`.Script` objects.
    :returns: The text of ``install/doinst.sh`` (a string) or :data:`None`
              when there are no scripts.

    The pre-install logic comes first and the post-install logic last. Each
    slot runs in its own subshell (or its own interpreter, see
    :func:`embed_script()`) so an ``exit`` in the pre-install logic doesn't
    skip the post-install logic. The remove-time slots are included as
    commented-out blocks, so the logic is visible to whoever inspects the
    package but never executed.
    """
    if not any(scripts.get(kind) for kind in SCRIPT_KINDS):
        return None
    blocks = []
    for kind in (PRE_INSTALL, POST_INSTALL):
        script = scripts.get(kind)
        if script:
            blocks.append(SLACKWARE_MARKER % kind)
            blocks.append(embed_script(script))
    for kind in (PRE_REMOVE, POST_REMOVE):
        script = scripts.get(kind)
        if script:
            blocks.append(SLACKWARE_MARKER % ('%s (disabled)' % kind))
            blocks.extend(('# ' + line).rstrip() for line in embed_script(script).splitlines())
    blocks.append(SLACKWARE_END_MARKER)
    return '\n'.join(line.rstrip('\n') for line in blocks) + '\n'


def embed_script(script):
    """
    Render a script so that it can be embedded in a ``/bin/sh`` script.

    :param script: A :class:`.Script` object.
    :returns: The embedded script (a string). Plain ``/bin/sh`` scripts are
              wrapped in a subshell, scripts for any other interpreter
              (including ``bash`` and ``ksh``) are fed to that interpreter
              using a here-document.
    """
    text = script.text if script.text.endswith('\n') else script.text + '\n'
    if script.is_shell_script:
        return '(\n%s)\n' % text
    return "%s <<'%s'\n%s%s\n" % (script.interpreter, HEREDOC_DELIMITER, text, HEREDOC_DELIMITER)


def unfold_slackware_script(text):
    """
    Split a Slackware ``doinst.sh`` script into maintainer script slots.

    :param text: The contents of ``install/doinst.sh`` (a string).
    :returns: A tuple with two values:

              1. A dictionary with :class:`.Script` objects. Scripts folded by
                 :func:`fold_slackware_script()` are split into their original
                 slots (the disabled remove-time blocks are ignored). Any other
                 script becomes the post-install script, because that's when
                 Slackware runs it.
              2. A list of tuples with two strings each: the pathname and
                 target of the symbolic links created by ``makepkg`` style
                 commands in the script (these commands are removed from the
                 script text).
    """
    symlinks = []
    lines = []
    for line in text.splitlines(True):
        match = SYMLINK_PATTERN.match(line.rstrip('\n'))
        if match:
            directory, target, name = match.groups()
            symlinks.append(('%s/%s' % (directory, name), target))
        elif not SYMLINK_REMOVAL_PATTERN.match(line.rstrip('\n')):
            lines.append(line)
    text = ''.join(lines)
    scripts = {}
    markers = list(SLACKWARE_MARKER_PATTERN.finditer(text))
    if markers:
        for i, match in enumerate(markers):
            kind, disabled = match.groups()
            end = markers[i + 1].start() if i + 1 < len(markers) else text.find(SLACKWARE_END_MARKER)
            if disabled or kind not in (PRE_INSTALL, POST_INSTALL):
                continue
            body = text[match.end() + 1:end if end >= 0 else len(text)]
            scripts[kind] = extract_embedded_script(body)
    elif text.strip() and text.strip() != '#!/bin/sh':
        scripts[POST_INSTALL] = Script.parse(text)
    return scripts, symlinks


def extract_embedded_script(body):
    """Reverse the transformation done by :func:`embed_script()`."""
    match = HEREDOC_PATTERN.match(body)
    if match:
        return Script(interpreter=match.group(1), text=match.group(2))
    match = SUBSHELL_PATTERN.match(body)
    if match:
        return Script(interpreter=DEFAULT_INTERPRETER, text=match.group(1))
    return Script(interpreter=DEFAULT_INTERPRETER, text=body)
