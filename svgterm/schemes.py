"""Terminal color scheme parsers

This module converts the color scheme files of various terminal emulators
to a `Theme`. Each supported format is a member of `SchemeFormat` and has a
parser taking the raw content of a file (bytes or text) and returning a
fully populated `Theme`.

Parsers never fill in missing colors: an incomplete or malformed scheme
raises SchemeParseError.
"""
import configparser
import logging
import plistlib
import re
from enum import Enum
from xml.parsers.expat import ExpatError

from Xlib import rdb

from svgterm.theme import (PALETTE_SIZE, Theme, ThemeError, from_float_rgb,
                           from_rgb16, parse_color)

logger = logging.getLogger(__name__)


class SchemeFormat(Enum):
    ITERM2 = 'iterm2'
    KONSOLE = 'konsole'
    REMMINA = 'remmina'
    TERMINAL = 'terminal'
    TERMINATOR = 'terminator'
    TERMITE = 'termite'
    TILDA = 'tilda'
    XFCE = 'xfce'
    XRDB = 'xrdb'
    XRESOURCES = 'xresources'
    XTERM = 'xterm'


# Misspelling accepted by earlier versions of the command line
ALIASES = {
    'xcfe': SchemeFormat.XFCE,
}


class SchemeError(Exception):
    pass


class UnknownSchemeError(SchemeError):
    pass


class SchemeParseError(SchemeError):
    """Raised when a color scheme can't be converted to a Theme

    scheme: name of the color scheme format
    field: name of the offending field in the color scheme
    """
    def __init__(self, scheme, field, message):
        self.scheme = scheme
        self.field = field
        super().__init__('Invalid {} color scheme: {} ({})'.format(scheme, message, field))


def scheme_names():
    return [scheme.value for scheme in SchemeFormat]


def scheme_format(name):
    """Return the SchemeFormat matching 'name' (case insensitive)

    Raise UnknownSchemeError if there is no such format.
    """
    if isinstance(name, SchemeFormat):
        return name
    if not isinstance(name, str):
        raise UnknownSchemeError('Unknown color scheme format: {!r}'.format(name))

    key = name.strip().lower()
    if key in ALIASES:
        return ALIASES[key]
    try:
        return SchemeFormat(key)
    except ValueError as exc:
        raise UnknownSchemeError('Unknown color scheme format: "{}" (expected one of {})'
                                 .format(name, ', '.join(scheme_names()))) from exc


def _text(raw, scheme):
    if isinstance(raw, str):
        return raw
    if isinstance(raw, (bytes, bytearray)):
        try:
            return bytes(raw).decode('utf-8')
        except UnicodeDecodeError as exc:
            raise SchemeParseError(scheme, 'encoding', 'expected UTF-8 text') from exc
    raise SchemeParseError(scheme, 'input', 'expected bytes or text, got {}'
                           .format(type(raw).__name__))


def _color(scheme, field, value):
    if value is None:
        raise SchemeParseError(scheme, field, 'missing color')
    try:
        return parse_color(value)
    except ThemeError as exc:
        raise SchemeParseError(scheme, field, str(exc)) from exc


def _build_theme(scheme, lookup, fg_field, bg_field, palette_fields):
    """Build a Theme from the colors returned by 'lookup'

    lookup is called with the name of each field and must return the color
    as a string, or None if the field is missing.
    """
    fg = _color(scheme, fg_field, lookup(fg_field))
    bg = _color(scheme, bg_field, lookup(bg_field))
    palette = [_color(scheme, field, lookup(field)) for field in palette_fields]
    try:
        return Theme(fg, bg, palette)
    except ThemeError as exc:
        raise SchemeParseError(scheme, 'palette', str(exc)) from exc


# Errors raised by plistlib on malformed property lists: besides ValueError,
# invalid XML values (dates, integers) and truncated binary data surface as
# lookup and type errors
PLIST_ERRORS = (ValueError, ExpatError, AttributeError, TypeError, KeyError,
                IndexError, OverflowError)


def _load_plist(raw, scheme):
    if isinstance(raw, str):
        raw = raw.encode('utf-8')
    if not isinstance(raw, (bytes, bytearray)):
        raise SchemeParseError(scheme, 'input', 'expected bytes or text, got {}'
                               .format(type(raw).__name__))
    try:
        plist = plistlib.loads(bytes(raw))
    except PLIST_ERRORS as exc:
        raise SchemeParseError(scheme, 'plist', 'not a property list') from exc

    if not isinstance(plist, dict):
        raise SchemeParseError(scheme, 'plist', 'top level object must be a dictionary')
    return plist


ITERM2_PALETTE_FIELDS = ['Ansi {} Color'.format(i) for i in range(PALETTE_SIZE)]


def parse_iterm2(raw):
    """Parse an iTerm2 color preset (.itermcolors property list)"""
    scheme = SchemeFormat.ITERM2.value
    plist = _load_plist(raw, scheme)

    def lookup(field):
        color = plist.get(field)
        if color is None:
            return None
        try:
            return from_float_rgb(color['Red Component'],
                                  color['Green Component'],
                                  color['Blue Component'])
        except (KeyError, TypeError, ThemeError) as exc:
            raise SchemeParseError(scheme, field, 'invalid color components') from exc

    return _build_theme(scheme, lookup, 'Foreground Color', 'Background Color',
                        ITERM2_PALETTE_FIELDS)


_ANSI_NAMES = ['Black', 'Red', 'Green', 'Yellow', 'Blue', 'Magenta', 'Cyan', 'White']
TERMINAL_PALETTE_FIELDS = (['ANSI{}Color'.format(name) for name in _ANSI_NAMES] +
                           ['ANSIBright{}Color'.format(name) for name in _ANSI_NAMES])


def _unarchive_color(data):
    """Return the color stored in an NSKeyedArchiver archive of an NSColor"""
    archive = plistlib.loads(data)
    objects = archive['$objects']
    root = archive['$top']['root']
    if isinstance(root, plistlib.UID):
        root = root.data
    color = objects[root]

    if 'NSRGB' in color:
        components = color['NSRGB'].rstrip(b'\x00').split()
        red, green, blue = (float(c) for c in components[:3])
    elif 'NSWhite' in color:
        white = float(color['NSWhite'].rstrip(b'\x00').split()[0])
        red = green = blue = white
    else:
        raise ValueError('Unsupported color space')

    return from_float_rgb(red, green, blue)


def parse_terminal(raw):
    """Parse a Terminal.app profile (.terminal property list)"""
    scheme = SchemeFormat.TERMINAL.value
    plist = _load_plist(raw, scheme)

    def lookup(field):
        data = plist.get(field)
        if data is None:
            return None
        if not isinstance(data, bytes):
            raise SchemeParseError(scheme, field, 'expected archived color data')
        try:
            return _unarchive_color(data)
        except PLIST_ERRORS as exc:
            raise SchemeParseError(scheme, field, 'invalid archived color') from exc

    return _build_theme(scheme, lookup, 'TextColor', 'BackgroundColor',
                        TERMINAL_PALETTE_FIELDS)


_DEFINE_RE = re.compile(r'^\s*#\s*define\s+(?P<name>\S+)\s+(?P<value>\S+)', re.MULTILINE)
_PALETTE_FIELDS = ['color{}'.format(i) for i in range(PALETTE_SIZE)]


def _resource_lookup(text, resource_name, resource_class):
    """Return a lookup function for the colors of an X resource database

    Values defined with '#define' are substituted, as the C preprocessor
    would do when xrdb loads the file.
    """
    defines = dict(_DEFINE_RE.findall(text))
    res_db = rdb.ResourceDB(string=text)

    def lookup(field):
        try:
            value = res_db['{}.{}'.format(resource_name, field),
                           '{}.{}'.format(resource_class, field.capitalize())]
        except KeyError:
            return None
        value = value.strip()
        return defines.get(value, value)

    return lookup


def parse_xresources(raw):
    """Parse an Xresources file ('*foreground: #ffffff', '*color0: ...')"""
    scheme = SchemeFormat.XRESOURCES.value
    lookup = _resource_lookup(_text(raw, scheme), 'svgterm', 'Svgterm')
    return _build_theme(scheme, lookup, 'foreground', 'background', _PALETTE_FIELDS)


def parse_xterm(raw):
    """Parse X resources of xterm ('XTerm*foreground: #ffffff'...)"""
    scheme = SchemeFormat.XTERM.value
    lookup = _resource_lookup(_text(raw, scheme), 'xterm.vt100', 'XTerm.VT100')
    return _build_theme(scheme, lookup, 'foreground', 'background', _PALETTE_FIELDS)


def parse_xrdb(raw):
    """Parse a xrdb color scheme ('#define Ansi_0_Color #000000'...)"""
    scheme = SchemeFormat.XRDB.value
    defines = dict(_DEFINE_RE.findall(_text(raw, scheme)))
    palette_fields = ['Ansi_{}_Color'.format(i) for i in range(PALETTE_SIZE)]
    return _build_theme(scheme, defines.get, 'Foreground_Color', 'Background_Color',
                        palette_fields)


def _read_ini(text, scheme):
    parser = configparser.ConfigParser(interpolation=None, strict=False)
    try:
        parser.read_string(text)
    except configparser.Error as exc:
        raise SchemeParseError(scheme, 'syntax', str(exc).splitlines()[0]) from exc
    return parser


def parse_konsole(raw):
    """Parse a Konsole color scheme (.colorscheme)"""
    scheme = SchemeFormat.KONSOLE.value
    ini = _read_ini(_text(raw, scheme), scheme)

    def lookup(section):
        return ini.get(section, 'Color', fallback=None) if ini.has_section(section) else None

    palette_fields = (['Color{}'.format(i) for i in range(8)] +
                      ['Color{}Intense'.format(i) for i in range(8)])
    return _build_theme(scheme, lookup, 'Foreground', 'Background', palette_fields)


def _ini_section_parser(scheme_format, section):
    scheme = scheme_format.value

    def parser(raw):
        ini = _read_ini(_text(raw, scheme), scheme)
        if not ini.has_section(section):
            raise SchemeParseError(scheme, section, 'missing section')

        def lookup(field):
            return ini.get(section, field, fallback=None)

        return _build_theme(scheme, lookup, 'foreground', 'background', _PALETTE_FIELDS)

    parser.__name__ = 'parse_{}'.format(scheme)
    parser.__doc__ = 'Parse a {} color scheme ([{}] section)'.format(scheme, section)
    return parser


parse_remmina = _ini_section_parser(SchemeFormat.REMMINA, 'ssh_colors')
parse_termite = _ini_section_parser(SchemeFormat.TERMITE, 'colors')


def parse_xfce(raw):
    """Parse a Xfce terminal configuration (terminalrc) or color scheme"""
    scheme = SchemeFormat.XFCE.value
    ini = _read_ini(_text(raw, scheme), scheme)
    section = next((s for s in ini.sections() if ini.has_option(s, 'ColorForeground')),
                   None)
    if section is None:
        raise SchemeParseError(scheme, 'ColorForeground', 'missing color')

    colors = [c for c in ini.get(section, 'ColorPalette', fallback='').split(';')
              if c.strip()]
    if len(colors) != PALETTE_SIZE:
        raise SchemeParseError(scheme, 'ColorPalette', 'expected {} colors, got {}'
                               .format(PALETTE_SIZE, len(colors)))
    palette = dict(zip(_PALETTE_FIELDS, colors))

    def lookup(field):
        if field in palette:
            return palette[field]
        return ini.get(section, field, fallback=None)

    return _build_theme(scheme, lookup, 'ColorForeground', 'ColorBackground',
                        _PALETTE_FIELDS)


_KEY_VALUE_RE = re.compile(r'^\s*(?P<key>\w+)\s*=\s*(?P<value>.*?)\s*$', re.MULTILINE)


def _key_values(text):
    """Return the first value of each 'key = value' line of the text"""
    settings = {}
    for key, value in _KEY_VALUE_RE.findall(text):
        settings.setdefault(key, value.strip('"\''))
    return settings


def parse_terminator(raw):
    """Parse a Terminator profile (palette = "#000000:#cd0000:...")"""
    scheme = SchemeFormat.TERMINATOR.value
    settings = _key_values(_text(raw, scheme))
    if 'palette' not in settings:
        raise SchemeParseError(scheme, 'palette', 'missing palette')

    colors = settings['palette'].split(':')
    if len(colors) != PALETTE_SIZE:
        raise SchemeParseError(scheme, 'palette', 'expected {} colors, got {}'
                               .format(PALETTE_SIZE, len(colors)))
    palette = dict(zip(_PALETTE_FIELDS, colors))

    def lookup(field):
        return palette.get(field, settings.get(field))

    return _build_theme(scheme, lookup, 'foreground_color', 'background_color',
                        _PALETTE_FIELDS)


def parse_tilda(raw):
    """Parse a Tilda configuration file

    Colors are stored as 16 bit components: 'text_red = 65535' for the
    foreground color and 'palette = {0, 0, 0, 43690, ...}' for the palette.
    """
    scheme = SchemeFormat.TILDA.value
    settings = _key_values(_text(raw, scheme))

    def component(field):
        try:
            return int(settings[field])
        except KeyError as exc:
            raise SchemeParseError(scheme, field, 'missing color component') from exc
        except ValueError as exc:
            raise SchemeParseError(scheme, field, 'invalid color component') from exc

    def rgb16(field, red, green, blue):
        try:
            return from_rgb16(red, green, blue)
        except ThemeError as exc:
            raise SchemeParseError(scheme, field, str(exc)) from exc

    fg = rgb16('text', *(component('text_{}'.format(c)) for c in ('red', 'green', 'blue')))
    bg = rgb16('back', *(component('back_{}'.format(c)) for c in ('red', 'green', 'blue')))

    if 'palette' not in settings:
        raise SchemeParseError(scheme, 'palette', 'missing palette')
    try:
        values = [int(v) for v in settings['palette'].strip('{} ').split(',')]
    except ValueError as exc:
        raise SchemeParseError(scheme, 'palette', 'invalid color component') from exc
    if len(values) != 3 * PALETTE_SIZE:
        raise SchemeParseError(scheme, 'palette', 'expected {} components, got {}'
                               .format(3 * PALETTE_SIZE, len(values)))

    colors = {'text': fg, 'back': bg}
    for field, index in zip(_PALETTE_FIELDS, range(0, len(values), 3)):
        colors[field] = rgb16('palette', *values[index:index+3])

    return _build_theme(scheme, colors.get, 'text', 'back', _PALETTE_FIELDS)


PARSERS = {
    SchemeFormat.ITERM2: parse_iterm2,
    SchemeFormat.KONSOLE: parse_konsole,
    SchemeFormat.REMMINA: parse_remmina,
    SchemeFormat.TERMINAL: parse_terminal,
    SchemeFormat.TERMINATOR: parse_terminator,
    SchemeFormat.TERMITE: parse_termite,
    SchemeFormat.TILDA: parse_tilda,
    SchemeFormat.XFCE: parse_xfce,
    SchemeFormat.XRDB: parse_xrdb,
    SchemeFormat.XRESOURCES: parse_xresources,
    SchemeFormat.XTERM: parse_xterm,
}

_UNSUPPORTED = set(SchemeFormat) - set(PARSERS)
if _UNSUPPORTED:
    raise RuntimeError('No parser for color scheme formats: {}'
                       .format(', '.join(sorted(s.value for s in _UNSUPPORTED))))


def get_parser(name):
    """Return the parser for the color scheme format 'name'

    Raise UnknownSchemeError if the format is not supported.
    """
    return PARSERS[scheme_format(name)]


def parse(name, raw):
    """Parse 'raw' as a color scheme of format 'name' and return a Theme"""
    scheme = scheme_format(name)
    logger.debug('Parsing {} color scheme'.format(scheme.value))
    return PARSERS[scheme](raw)
