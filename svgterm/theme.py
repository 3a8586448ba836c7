"""Canonical color theme

Every terminal color scheme format supported by svg-term is converted to a
`Theme`: a foreground color, a background color and the 16 colors of the
ANSI palette (normal colors 0 to 7, bright colors 8 to 15). All colors are
stored in lowercase '#rrggbb' format.

This module also provides the color conversion helpers shared by the
scheme parsers.
"""
import re
from collections import namedtuple

PALETTE_SIZE = 16

_HEX_COLOR_RE = re.compile(r'#(?P<hex>[0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{12})')
_FUNCTIONAL_COLOR_RE = re.compile(r'rgba?\((?P<components>[^)]*)\)')
# X11 color specification, 1 to 4 hex digits per component
_X_COLOR_RE = re.compile(
    r'rgb:(?P<red>[0-9a-f]{1,4})/(?P<green>[0-9a-f]{1,4})/(?P<blue>[0-9a-f]{1,4})',
    re.IGNORECASE
)


class ThemeError(ValueError):
    pass


_Theme = namedtuple('Theme', ['fg', 'bg', 'palette'])


class Theme(_Theme):
    """Color theme of a terminal

    fg: default text color
    bg: default background color
    palette: sequence of the 16 ANSI colors
    """
    def __new__(cls, fg, bg, palette):
        if not is_color(fg):
            raise ThemeError('Invalid foreground color: {}'.format(fg))
        if not is_color(bg):
            raise ThemeError('Invalid background color: {}'.format(bg))
        try:
            palette = tuple(palette)
        except TypeError as exc:
            raise ThemeError('Invalid palette: {}'.format(palette)) from exc
        if len(palette) != PALETTE_SIZE:
            raise ThemeError('Invalid palette: expected {} colors, got {}'
                             .format(PALETTE_SIZE, len(palette)))
        for index, color in enumerate(palette):
            if not is_color(color):
                raise ThemeError('Invalid palette: color{} is {}'.format(index, color))

        return super().__new__(cls, fg.lower(), bg.lower(),
                               tuple(c.lower() for c in palette))

    def colors(self):
        """Return a mapping between CSS class names and colors"""
        colors = {
            'foreground': self.fg,
            'background': self.bg,
        }
        colors.update(('color{}'.format(i), c) for i, c in enumerate(self.palette))
        return colors


def is_color(color):
    """Return True if 'color' uses the '#rrggbb' format"""
    if isinstance(color, str) and len(color) == 7 and color[0] == '#':
        try:
            int(color[1:], 16)
        except ValueError:
            return False
        return True
    return False


def from_rgb(red, green, blue):
    """Build a color from 8 bit components"""
    components = (red, green, blue)
    if not all(isinstance(c, int) and 0 <= c <= 255 for c in components):
        raise ThemeError('Invalid RGB components: {}'.format(components))
    return '#{:02x}{:02x}{:02x}'.format(*components)


def from_float_rgb(red, green, blue):
    """Build a color from components in the [0, 1] range (Cocoa colors)"""
    try:
        components = [float(c) for c in (red, green, blue)]
    except (TypeError, ValueError) as exc:
        raise ThemeError('Invalid RGB components: {}'.format((red, green, blue))) from exc
    if not all(0 <= c <= 1 for c in components):
        raise ThemeError('Invalid RGB components: {}'.format(components))
    return from_rgb(*(int(c * 255 + 0.5) for c in components))


def from_rgb16(red, green, blue):
    """Build a color from 16 bit components (GDK colors)"""
    components = (red, green, blue)
    if not all(isinstance(c, int) and 0 <= c <= 0xFFFF for c in components):
        raise ThemeError('Invalid RGB components: {}'.format(components))
    return from_rgb(*(c >> 8 for c in components))


def _scale_to_16_bits(digits):
    return int(digits, 16) * 0xFFFF // (16 ** len(digits) - 1)


def parse_color(value):
    """Convert a color string to the '#rrggbb' format

    Supported notations: '#rgb', '#rrggbb', '#rrrrggggbbbb', 'rgb:rr/gg/bb'
    (X11 notation, 1 to 4 digits per component), 'rgb(r,g,b)', 'rgba(r,g,b,a)'
    and 'r,g,b' (with optional alpha component).
    Raise ThemeError if the value is not a color.
    """
    if not isinstance(value, str):
        raise ThemeError('Invalid color: {}'.format(value))
    value = value.strip().strip('"\'')

    match = _HEX_COLOR_RE.fullmatch(value)
    if match:
        digits = match.group('hex')
        if len(digits) == 3:
            return '#' + ''.join(d * 2 for d in digits).lower()
        if len(digits) == 12:
            # Keep the most significant byte of each 16 bit component
            return '#' + ''.join(digits[i:i+2] for i in (0, 4, 8)).lower()
        return '#' + digits.lower()

    match = _X_COLOR_RE.fullmatch(value)
    if match:
        components = (match.group(name) for name in ('red', 'green', 'blue'))
        return from_rgb16(*(_scale_to_16_bits(c) for c in components))

    match = _FUNCTIONAL_COLOR_RE.fullmatch(value)
    components = match.group('components') if match else value
    parts = [p.strip() for p in components.split(',')]
    if len(parts) in (3, 4):
        try:
            red, green, blue = (int(p) for p in parts[:3])
        except ValueError as exc:
            raise ThemeError('Invalid color: {}'.format(value)) from exc
        return from_rgb(red, green, blue)

    raise ThemeError('Invalid color: {}'.format(value))
