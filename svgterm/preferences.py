"""Color presets stored in the preferences of macOS terminal emulators

Both Terminal.app and iTerm2 save their settings, color presets included,
in a property list (binary or XML) located in ~/Library/Preferences. This
module reads these files and extracts the presets they contain.
"""
import logging
import plistlib

from svgterm.detect import TerminalKind
from svgterm.schemes import PLIST_ERRORS

logger = logging.getLogger(__name__)

PREFERENCE_FILES = {
    TerminalKind.ITERM2: 'Library/Preferences/com.googlecode.iterm2.plist',
    TerminalKind.TERMINAL: 'Library/Preferences/com.apple.Terminal.plist',
}

PRESETS_KEYS = {
    TerminalKind.ITERM2: 'Custom Color Presets',
    TerminalKind.TERMINAL: 'Window Settings',
}

# iTerm2 color presets are not attached to a profile so there is no key
# naming a default preset for this terminal
DEFAULT_PRESET_KEYS = {
    TerminalKind.TERMINAL: 'Default Window Settings',
}


class PreferenceError(Exception):
    pass


class UnsupportedPlatform(PreferenceError):
    pass


class NotFound(PreferenceError):
    pass


class MalformedContainer(PreferenceError):
    pass


def read_container(kind, context):
    """Return the decoded preference file of the terminal 'kind'

    Raise UnsupportedPlatform if preferences can't be introspected on the
    platform of the context, NotFound if the file does not exist or can't be
    read and MalformedContainer if it is not a valid property list.
    """
    if not context.supports_introspection():
        raise UnsupportedPlatform('Terminal preferences are not available on {}'
                                  .format(context.platform))

    path = context.home_path(PREFERENCE_FILES[kind])
    try:
        data = context.read_bytes(path)
    except OSError as exc:
        raise NotFound('Preferences of {} not found: {}'.format(kind.value, path)) from exc

    try:
        container = plistlib.loads(data)
    except PLIST_ERRORS as exc:
        raise MalformedContainer('Invalid property list: {}'.format(path)) from exc

    if not isinstance(container, dict):
        raise MalformedContainer('Invalid property list: {} (top level object must be '
                                 'a dictionary)'.format(path))
    logger.debug('Read preferences of {} from {}'.format(kind.value, path))
    return container


def get_presets(container, kind):
    """Return the mapping between preset names and raw presets"""
    presets = container.get(PRESETS_KEYS[kind], {})
    if not isinstance(presets, dict):
        raise MalformedContainer('Invalid value for "{}": expected a dictionary'
                                 .format(PRESETS_KEYS[kind]))
    return presets


def get_default_preset_name(container, kind):
    """Return the name of the preset used by default, or None if unknown"""
    key = DEFAULT_PRESET_KEYS.get(kind)
    if key is None:
        return None

    name = container.get(key)
    if not isinstance(name, str) or not name:
        return None
    return name


class PreferenceStore:
    """Access to the presets of the terminals of a context"""
    def __init__(self, context):
        self.context = context

    def presets(self, kind):
        return get_presets(read_container(kind, self.context), kind)

    def default_preset_name(self, kind):
        return get_default_preset_name(read_container(kind, self.context), kind)
