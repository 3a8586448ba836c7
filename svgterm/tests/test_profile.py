import os
import tempfile
import unittest
from unittest.mock import MagicMock

from svgterm import profile
from svgterm.config import Context
from svgterm.detect import TerminalKind
from svgterm.preferences import MalformedContainer, NotFound
from svgterm.profile import FilePath, NamedPreset, UsageError
from svgterm.schemes import SchemeFormat, SchemeParseError
from svgterm.tests.test_schemes import (THEME, XRESOURCES_SCHEME, iterm2_preset,
                                        terminal_preset)


class FakeStore:
    """Preference store backed by a dictionary of presets per terminal"""
    def __init__(self, presets=None, defaults=None, error=None):
        self._presets = presets or {}
        self._defaults = defaults or {}
        self._error = error

    def presets(self, kind):
        if self._error is not None:
            raise self._error
        return self._presets.get(kind, {})

    def default_preset_name(self, kind):
        if self._error is not None:
            raise self._error
        return self._defaults.get(kind)


class TestProfile(unittest.TestCase):
    def setUp(self):
        self.home = tempfile.TemporaryDirectory()
        self.scheme_path = os.path.join(self.home.name, 'scheme.Xresources')
        with open(self.scheme_path, 'w') as scheme_file:
            scheme_file.write(XRESOURCES_SCHEME)
        self.context = Context('darwin', {}, self.home.name, self.home.name)

    def tearDown(self):
        self.home.cleanup()

    def test_is_file_profile(self):
        test_cases = [
            ('~/themes/x', True),
            ('/etc/x', True),
            ('./x', True),
            ('../x', True),
            ('Pro', False),
            ('', False),
            (None, False),
        ]
        for value, expected in test_cases:
            with self.subTest(case=value):
                self.assertEqual(profile.is_file_profile(value), expected)

    def test_validate_flags(self):
        test_cases = [
            ('No option', None, None, None),
            ('Preset', 'terminal', 'Pro', SchemeFormat.TERMINAL),
            ('Absolute path', 'xresources', self.scheme_path, SchemeFormat.XRESOURCES),
            ('Path relative to home', 'xresources', '~/scheme.Xresources',
             SchemeFormat.XRESOURCES),
            ('Relative path', 'xresources', './scheme.Xresources', SchemeFormat.XRESOURCES),
            ('Alias', 'xcfe', 'Default', SchemeFormat.XFCE),
        ]
        for case, term, profile_value, expected in test_cases:
            with self.subTest(case=case):
                self.assertEqual(profile.validate_flags(self.context, term, profile_value),
                                 expected)

    def test_validate_flags_failure(self):
        failure_test_cases = [
            ('Missing profile', 'xterm', None, 'profile missing'),
            ('Missing term', None, 'Pro', 'term missing'),
            ('Empty profile', 'xterm', '', 'profile missing'),
            ('Unknown term', 'gnome', 'Pro', 'received "gnome"'),
            ('Missing file', 'xresources', './missing.Xresources',
             './missing.Xresources must be readable file'),
            ('Directory', 'xresources', '~', '~ must be readable file'),
        ]
        for case, term, profile_value, message in failure_test_cases:
            with self.subTest(case=case):
                with self.assertRaises(UsageError) as context:
                    profile.validate_flags(self.context, term, profile_value)
                self.assertIn(message, str(context.exception))

    def test_resolve(self):
        store = FakeStore(defaults={TerminalKind.TERMINAL: 'Pro'})
        test_cases = [
            ('File', None, SchemeFormat.XTERM, '~/x', FilePath(SchemeFormat.XTERM, '~/x')),
            ('Preset', None, SchemeFormat.ITERM2, 'Dracula',
             NamedPreset(SchemeFormat.ITERM2, 'Dracula')),
            ('Options override detection', TerminalKind.TERMINAL, SchemeFormat.ITERM2,
             'Dracula', NamedPreset(SchemeFormat.ITERM2, 'Dracula')),
            ('Detected Terminal.app', TerminalKind.TERMINAL, None, None,
             NamedPreset(SchemeFormat.TERMINAL, 'Pro')),
            ('Detected iTerm2', TerminalKind.ITERM2, None, None, None),
            ('Nothing', None, None, None, None),
        ]
        for case, detected, scheme, profile_value, expected in test_cases:
            with self.subTest(case=case):
                source = profile.resolve(self.context, detected, scheme, profile_value, store)
                self.assertEqual(source, expected)
                # Resolution does not depend on anything but its inputs
                self.assertEqual(
                    profile.resolve(self.context, detected, scheme, profile_value, store),
                    source
                )

    def test_resolve_preferences_unavailable(self):
        store = FakeStore(error=NotFound('No preferences'))
        self.assertIsNone(profile.resolve(self.context, TerminalKind.TERMINAL, None, None,
                                          store))

        store = MagicMock()
        context = self.context._replace(platform='linux')
        self.assertIsNone(profile.resolve(context, TerminalKind.TERMINAL, None, None, store))
        store.default_preset_name.assert_not_called()

    def test_to_theme_file(self):
        for path in (self.scheme_path, '~/scheme.Xresources', './scheme.Xresources'):
            with self.subTest(case=path):
                source = FilePath(SchemeFormat.XRESOURCES, path)
                self.assertEqual(profile.to_theme(source, self.context, FakeStore()), THEME)

        with self.subTest(case='Missing file'):
            source = FilePath(SchemeFormat.XRESOURCES, './missing')
            with self.assertRaises(UsageError):
                profile.to_theme(source, self.context, FakeStore())

        with self.subTest(case='Wrong format'):
            source = FilePath(SchemeFormat.ITERM2, self.scheme_path)
            with self.assertRaises(SchemeParseError):
                profile.to_theme(source, self.context, FakeStore())

    def test_to_theme_preset(self):
        store = FakeStore(presets={
            TerminalKind.TERMINAL: {'Pro': terminal_preset('Pro')},
            TerminalKind.ITERM2: {'Dracula': iterm2_preset()},
        })
        test_cases = [
            ('Terminal.app preset', NamedPreset(SchemeFormat.TERMINAL, 'Pro'), THEME),
            ('iTerm2 preset', NamedPreset(SchemeFormat.ITERM2, 'Dracula'), THEME),
            ('Missing preset', NamedPreset(SchemeFormat.TERMINAL, 'Novel'), None),
            ('Terminal without presets', NamedPreset(SchemeFormat.XTERM, 'Pro'), None),
            ('No source', None, None),
        ]
        for case, source, expected in test_cases:
            with self.subTest(case=case):
                self.assertEqual(profile.to_theme(source, self.context, store), expected)

        with self.subTest(case='Unsupported platform'):
            context = self.context._replace(platform='linux')
            source = NamedPreset(SchemeFormat.TERMINAL, 'Pro')
            self.assertIsNone(profile.to_theme(source, context, store))

        with self.subTest(case='Missing preferences'):
            source = NamedPreset(SchemeFormat.TERMINAL, 'Pro')
            store_not_found = FakeStore(error=NotFound('No preferences'))
            self.assertIsNone(profile.to_theme(source, self.context, store_not_found))

    def test_to_theme_preset_malformed(self):
        invalid_preset = terminal_preset('Pro')
        invalid_preset['TextColor'] = b'garbage'
        test_cases = [
            ('Malformed preferences', FakeStore(error=MalformedContainer('Invalid')),
             MalformedContainer),
            ('Malformed preset',
             FakeStore(presets={TerminalKind.TERMINAL: {'Pro': invalid_preset}}),
             SchemeParseError),
            ('Preset not serializable',
             FakeStore(presets={TerminalKind.TERMINAL: {'Pro': {'TextColor': None}}}),
             MalformedContainer),
        ]
        source = NamedPreset(SchemeFormat.TERMINAL, 'Pro')
        for case, store, exception in test_cases:
            with self.subTest(case=case):
                with self.assertRaises(exception):
                    profile.to_theme(source, self.context, store)
                self.assertIsNone(profile.to_theme(source, self.context, store, strict=False))

    def test_to_theme_preset_log_level(self):
        linux = self.context._replace(platform='linux')
        test_cases = [
            ('Missing preset', self.context, FakeStore(),
             NamedPreset(SchemeFormat.TERMINAL, 'Novel')),
            ('Missing preferences', self.context, FakeStore(error=NotFound('No preferences')),
             NamedPreset(SchemeFormat.TERMINAL, 'Pro')),
            ('Unsupported platform', linux, FakeStore(),
             NamedPreset(SchemeFormat.TERMINAL, 'Pro')),
            ('Terminal without presets', self.context, FakeStore(),
             NamedPreset(SchemeFormat.XTERM, 'Pro')),
        ]
        for case, context, store, source in test_cases:
            for strict, level in ((True, 'WARNING'), (False, 'DEBUG')):
                with self.subTest(case=case, strict=strict):
                    with self.assertLogs('svgterm.profile', level='DEBUG') as logs:
                        self.assertIsNone(profile.to_theme(source, context, store, strict))
                    self.assertEqual([record.levelname for record in logs.records], [level])

    def test_to_theme_invalid_source(self):
        with self.assertRaises(TypeError):
            profile.to_theme('Pro', self.context, FakeStore())
