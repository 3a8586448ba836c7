"""Resolution of the color theme requested by the user

A theme may come from:
    - a color scheme file: `FilePath(scheme, path)`
    - a preset stored in the preferences of a terminal: `NamedPreset(term, name)`
    - nowhere (None): the renderer then uses its own default theme

The `--term` and `--profile` command line options select a theme explicitly.
Without them, the default preset of the terminal running svg-term is used
when it can be determined.
"""
import logging
import plistlib
from collections import namedtuple

from svgterm import schemes
from svgterm.detect import TerminalKind
from svgterm.preferences import MalformedContainer, PreferenceError

logger = logging.getLogger(__name__)

FILE_PROFILE_PREFIXES = ('~', '/', '.')

FilePath = namedtuple('FilePath', ['scheme', 'path'])
FilePath.__doc__ = 'Color scheme file'
FilePath.scheme.__doc__ = 'SchemeFormat of the file'
FilePath.path.__doc__ = 'Path of the file'

NamedPreset = namedtuple('NamedPreset', ['term', 'name'])
NamedPreset.__doc__ = 'Color preset stored in the preferences of a terminal'
NamedPreset.term.__doc__ = 'SchemeFormat of the terminal'
NamedPreset.name.__doc__ = 'Name of the preset'


class UsageError(Exception):
    pass


def is_file_profile(profile):
    return bool(profile) and profile[0] in FILE_PROFILE_PREFIXES


def validate_flags(context, term, profile):
    """Check the combination of --term and --profile

    Return the SchemeFormat named by 'term' (None if neither option is
    used). Raise UsageError if only one of the options is used, if 'term' is
    not a known format or if 'profile' is a path to a missing file.
    """
    if term is None and profile is None:
        return None

    unsatisfied = [name for name, value in (('term', term), ('profile', profile))
                   if not value]
    if unsatisfied:
        raise UsageError('--term and --profile must be used together, {} missing'
                         .format(', '.join(unsatisfied)))

    try:
        scheme = schemes.scheme_format(term)
    except schemes.UnknownSchemeError as exc:
        raise UsageError('term expected to be one of {}, received "{}"'
                         .format(', '.join(schemes.scheme_names()), term)) from exc

    if is_file_profile(profile) and not context.is_file(profile):
        raise UsageError('{} must be readable file but was not found'.format(profile))

    return scheme


def resolve(context, detected, scheme, profile, store):
    """Return the source of the theme

    :param context: Context of the process
    :param detected: TerminalKind hosting the process, or None
    :param scheme: SchemeFormat given with --term (validated), or None
    :param profile: Value of --profile (validated), or None
    :param store: PreferenceStore used to look up the default preset of the
    detected terminal
    :return: FilePath, NamedPreset or None
    """
    if scheme is not None and profile:
        if is_file_profile(profile):
            return FilePath(scheme, profile)
        return NamedPreset(scheme, profile)

    if detected is not None and context.supports_introspection():
        try:
            name = store.default_preset_name(detected)
        except PreferenceError as exc:
            logger.debug('No default preset for {}: {}'.format(detected.value, exc))
            return None
        if name is not None:
            return NamedPreset(detected.scheme, name)

    return None


def _preset_theme(source, context, store, strict=True):
    level = logging.WARNING if strict else logging.DEBUG
    kind = TerminalKind.from_scheme(source.term)
    if kind is None:
        logger.log(level, 'Presets of {} terminals can not be read, using default theme'
                   .format(source.term.value))
        return None

    if not context.supports_introspection():
        logger.log(level, 'Terminal presets are not available on {}, using default theme'
                   .format(context.platform))
        return None

    try:
        presets = store.presets(kind)
    except MalformedContainer:
        raise
    except PreferenceError as exc:
        logger.log(level, '{}, using default theme'.format(exc))
        return None

    preset = presets.get(source.name)
    if preset is None:
        logger.log(level, 'Preset "{}" not found in the preferences of {}, using default theme'
                   .format(source.name, kind.value))
        return None

    try:
        data = plistlib.dumps(preset)
    except (TypeError, OverflowError) as exc:
        raise MalformedContainer('Invalid preset "{}" in the preferences of {}'
                                 .format(source.name, kind.value)) from exc

    return schemes.parse(kind.scheme, data)


def to_theme(source, context, store, strict=True):
    """Return the Theme described by 'source', or None

    If 'strict' is False, malformed preference files and color schemes are
    logged and result in None instead of raising an exception, and missing
    presets are only reported at debug level.
    """
    if source is None:
        return None

    if isinstance(source, FilePath):
        try:
            data = context.read_bytes(source.path)
        except OSError as exc:
            raise UsageError('{} must be readable file but was not found'
                             .format(source.path)) from exc
        return schemes.parse(source.scheme, data)

    if isinstance(source, NamedPreset):
        try:
            return _preset_theme(source, context, store, strict)
        except (MalformedContainer, schemes.SchemeParseError) as exc:
            if strict:
                raise
            logger.warning('Ignoring preset "{}": {}'.format(source.name, exc))
            return None

    raise TypeError('Invalid theme source: {!r}'.format(source))
