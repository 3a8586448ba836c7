"""Rendering of asciicast recordings as SVG animations

The recording is replayed by the pyte terminal emulator and a snapshot of the
screen is taken after each group of events. Snapshots are stacked vertically
in a single SVG group which a CSS animation translates so that only one of
them is visible at a time.

Colors of the ANSI palette are not written in the snapshots: characters
refer to CSS classes ('foreground', 'background', 'color0'...'color15') and
the theme only appears in the style sheet of the document.
"""
import logging
from collections import defaultdict, namedtuple
from itertools import groupby

import pyte
import pyte.graphics
import pyte.screens
from lxml import etree
from wcwidth import wcswidth

from svgterm import config
from svgterm.asciicast import AsciiCastEvent, AsciiCastHeader

logger = logging.getLogger(__name__)

# Replace the rgb values of the first 16 colors of the 256 color palette by
# their names so that FG_BG_256[0] (which must be styled by the theme) can be
# told apart from FG_BG_256[16] (which is always #000000)
_COLORS = ['black', 'red', 'green', 'brown', 'blue', 'magenta', 'cyan', 'white']
_BRIGHTCOLORS = ['bright{}'.format(color) for color in _COLORS]
NAMED_COLORS = _COLORS + _BRIGHTCOLORS
pyte.graphics.FG_BG_256 = NAMED_COLORS + pyte.graphics.FG_BG_256[16:]

# Size of a character cell in pixels
CELL_WIDTH = 8
CELL_HEIGHT = 17

# Number of empty lines between two consecutive frames of the animation
FRAME_CELL_SPACING = 1

# Window decoration drawn with --frame
WINDOW_PADDING = 15
WINDOW_TITLE_HEIGHT = 25
WINDOW_RADIUS = 5
WINDOW_BUTTONS = ['#ff5f58', '#ffbd2e', '#18c132']

LAST_FRAME_DURATION = 1000

SVG_NS = 'http://www.w3.org/2000/svg'
XLINK_NS = 'http://www.w3.org/1999/xlink'


def _svg(tag):
    return '{{{}}}{}'.format(SVG_NS, tag)


_CELL_ATTRIBUTES = ['text', 'color', 'background_color', 'bold', 'italics',
                    'underscore', 'strikethrough']
_CharacterCell = namedtuple('_CharacterCell', _CELL_ATTRIBUTES)
_CharacterCell.__new__.__defaults__ = ('foreground', 'background', False, False,
                                       False, False)
_CharacterCell.__doc__ = 'Representation of a character cell'


class CharacterCell(_CharacterCell):
    @classmethod
    def from_pyte(cls, char):
        """Create a CharacterCell from a pyte character

        Colors are either the name of a CSS class ('foreground', 'color1'...)
        or an hexadecimal color for colors outside of the ANSI palette.
        """
        if char.fg == 'default':
            text_color = 'foreground'
        else:
            if char.bold and not str(char.fg).startswith('bright'):
                named_color = 'bright{}'.format(char.fg)
            else:
                named_color = char.fg
            text_color = _cell_color(named_color, char.fg)

        if char.bg == 'default':
            background_color = 'background'
        else:
            background_color = _cell_color(char.bg, char.bg)

        if char.reverse:
            text_color, background_color = background_color, text_color

        return cls(char.data, text_color, background_color, char.bold,
                   char.italics, char.underscore, char.strikethrough)


def _cell_color(named_color, color):
    if named_color in NAMED_COLORS:
        return 'color{}'.format(NAMED_COLORS.index(named_color))
    if color in NAMED_COLORS:
        return 'color{}'.format(NAMED_COLORS.index(color))
    if len(color) == 6:
        # Raise ValueError if color is not an hexadecimal number
        int(color, 16)
        return '#{}'.format(color.lower())
    raise ValueError('Invalid color: {}'.format(color))


TimedFrame = namedtuple('TimedFrame', ['time', 'duration', 'buffer'])
TimedFrame.__doc__ = 'Snapshot of the screen'
TimedFrame.time.__doc__ = 'Time of appearance of the frame in milliseconds'
TimedFrame.duration.__doc__ = 'Duration of the frame in milliseconds'
TimedFrame.buffer.__doc__ = 'Mapping between row numbers and lines of CharacterCells'


def _group_by_time(events, min_rec_duration, max_rec_duration, last_rec_duration):
    """Merge output events together if they are close enough

    Yield tuples made of the time of the group, its duration and the data
    of all its events. Two consecutive groups are at least
    `min_rec_duration` milliseconds apart and no group lasts more than
    `max_rec_duration` milliseconds (if set). The last group lasts
    `last_rec_duration` milliseconds.
    """
    current_string = ''
    current_time = 0
    dropped_time = 0

    if max_rec_duration:
        max_rec_duration /= 1000

    for event in events:
        if event.event_type != 'o':
            continue

        time_between_events = event.time - (current_time + dropped_time)
        if time_between_events * 1000 >= min_rec_duration:
            if max_rec_duration and max_rec_duration < time_between_events:
                dropped_time += time_between_events - max_rec_duration
                time_between_events = max_rec_duration
            yield current_time, time_between_events, current_string
            current_string = ''
            current_time += time_between_events

        current_string += event.event_data

    yield current_time, last_rec_duration / 1000, current_string


def _screen_buffer(screen):
    buffer = defaultdict(dict)
    for row in range(screen.lines):
        buffer[row] = {
            column: CharacterCell.from_pyte(screen.buffer[row][column])
            for column in screen.buffer[row]
        }

    if not screen.cursor.hidden:
        row, column = screen.cursor.y, screen.cursor.x
        try:
            data = screen.buffer[row][column].data
        except KeyError:
            data = ' '

        cursor_char = pyte.screens.Char(data=data,
                                        fg=screen.cursor.attrs.fg,
                                        bg=screen.cursor.attrs.bg,
                                        reverse=True)
        buffer[row][column] = CharacterCell.from_pyte(cursor_char)
    return buffer


def timed_frames(records, columns, lines, min_frame_dur=1, max_frame_dur=None,
                 last_frame_dur=LAST_FRAME_DURATION):
    """Yield the frames of the animation of a recording

    :param records: Records of the recording, starting with the header
    :param columns: Width of the screen
    :param lines: Height of the screen
    :param min_frame_dur: Minimum frame duration in milliseconds
    :param max_frame_dur: Maximum frame duration in milliseconds (defaults to
    the idle time limit of the recording)
    :param last_frame_dur: Duration of the last frame in milliseconds
    """
    header, events = records[0], records[1:]
    assert isinstance(header, AsciiCastHeader)
    assert all(isinstance(event, AsciiCastEvent) for event in events)

    if not max_frame_dur and header.idle_time_limit:
        max_frame_dur = int(header.idle_time_limit * 1000)

    screen = pyte.Screen(columns, lines)
    stream = pyte.Stream(screen)
    for time, duration, data in _group_by_time(events, min_frame_dur, max_frame_dur,
                                               last_frame_dur):
        stream.feed(data)
        yield TimedFrame(int(1000 * time), int(1000 * duration), _screen_buffer(screen))


class ConsecutiveWithSameAttributes:
    """Callable to be used as a key for itertools.groupby to group together
    consecutive elements of a list with the same attributes"""
    def __init__(self, attributes):
        self.group_index = None
        self.last_index = None
        self.attributes = attributes
        self.last_key_attributes = None

    def __call__(self, arg):
        index, obj = arg
        key_attributes = {name: getattr(obj, name) for name in self.attributes}
        if self.last_index != index - 1 or self.last_key_attributes != key_attributes:
            self.group_index = index
        self.last_index = index
        self.last_key_attributes = key_attributes
        return self.group_index, key_attributes


def _text_width(text):
    width = wcswidth(text)
    return width if width >= 0 else len(text)


def _color_attributes(color, attribute):
    if color.startswith('#'):
        return {attribute: color}
    return {'class': color}


def _render_line_bg_colors(screen_line, y):
    """Return 'rect' elements for the cells of the line that do not use the
    default background color. Consecutive cells sharing a color are drawn
    as a single rectangle."""
    non_default_bg_cells = [(column, cell) for (column, cell)
                            in sorted(screen_line.items())
                            if cell.background_color != 'background']

    key = ConsecutiveWithSameAttributes(['background_color'])
    rect_tags = []
    for (column, attributes), group in groupby(non_default_bg_cells, key):
        rect_attributes = {
            'x': str(column * CELL_WIDTH),
            'y': str(y),
            'width': str(_text_width(''.join(cell.text for _, cell in group)) * CELL_WIDTH),
            'height': str(CELL_HEIGHT),
        }
        rect_attributes.update(_color_attributes(attributes['background_color'], 'fill'))
        rect_tags.append(etree.Element(_svg('rect'), rect_attributes))

    return rect_tags


def _make_text_tag(column, attributes, text):
    text_tag_attributes = {
        'x': str(column * CELL_WIDTH),
        'textLength': str(_text_width(text) * CELL_WIDTH),
    }
    if attributes['bold']:
        text_tag_attributes['font-weight'] = 'bold'
    if attributes['italics']:
        text_tag_attributes['font-style'] = 'italic'

    decoration = ' '.join(name for name, enabled in (('underline', attributes['underscore']),
                                                      ('line-through', attributes['strikethrough']))
                          if enabled)
    if decoration:
        text_tag_attributes['text-decoration'] = decoration

    text_tag_attributes.update(_color_attributes(attributes['color'], 'fill'))
    text_tag = etree.Element(_svg('text'), text_tag_attributes)
    text_tag.text = text
    return text_tag


def _render_characters(screen_line):
    """Return 'text' elements for the line, grouping consecutive characters
    with the same style in a single element"""
    line = sorted(screen_line.items())
    key = ConsecutiveWithSameAttributes(['color', 'bold', 'italics', 'underscore',
                                         'strikethrough'])
    return [_make_text_tag(column, attributes, ''.join(c.text for _, c in group))
            for (column, attributes), group in groupby(line, key)]


def _render_frame(offset, buffer, definitions):
    """Return a group element for the frame

    The text of each line is stored in 'definitions' (updated in place) and
    referenced with a 'use' element so that lines repeated across frames are
    only written once in the document.
    """
    frame_group = etree.Element(_svg('g'))
    for row in sorted(buffer):
        if not buffer[row]:
            continue
        y = offset + row * CELL_HEIGHT
        for tag in _render_line_bg_colors(buffer[row], y):
            frame_group.append(tag)

        text_group = etree.Element(_svg('g'))
        for tag in _render_characters(buffer[row]):
            text_group.append(tag)

        text_group_str = etree.tostring(text_group)
        if text_group_str not in definitions:
            text_group.attrib['id'] = 'g{}'.format(len(definitions) + 1)
            definitions[text_group_str] = text_group

        etree.SubElement(frame_group, _svg('use'), {
            '{{{}}}href'.format(XLINK_NS): '#{}'.format(definitions[text_group_str].attrib['id']),
            'y': str(y),
        })

    return frame_group


def _style_sheet(colors, font, timings, animation_duration):
    rules = [
        '#screen {{ font-family: {}; font-style: normal; font-size: {}px; }}'
        .format(font, config.DEFAULT_FONT_SIZE),
        'text { dominant-baseline: text-before-edge; white-space: pre; }',
        '.window {{ fill: {}; }}'.format(colors['background']),
    ]
    rules.extend('.{} {{ fill: {}; }}'.format(name, color)
                 for name, color in sorted(colors.items()))

    if timings and animation_duration:
        transforms = ['{:.3f}%{{transform:translateY({}px)}}'
                      .format(100.0 * time / animation_duration, offset)
                      for time, offset in sorted(timings.items())]
        _, last_offset = max(timings.items())
        transforms.append('100%{{transform:translateY({}px)}}'.format(last_offset))
        rules.append('@keyframes roll {{ {} }}'.format(' '.join(transforms)))
        rules.append('#screen_view {{ animation-duration: {}ms; '
                     'animation-iteration-count: infinite; animation-name: roll; '
                     'animation-timing-function: steps(1,end); '
                     'animation-fill-mode: forwards; }}'.format(animation_duration))

    return '\n'.join(rules)


def _add_window(root, screen_width, screen_height):
    """Draw an application window around the screen and return the position of
    the screen in the window"""
    width = screen_width + 2 * WINDOW_PADDING
    height = screen_height + WINDOW_TITLE_HEIGHT + 2 * WINDOW_PADDING
    etree.SubElement(root, _svg('rect'), {
        'class': 'window',
        'x': '0',
        'y': '0',
        'rx': str(WINDOW_RADIUS),
        'ry': str(WINDOW_RADIUS),
        'width': str(width),
        'height': str(height),
    })
    for index, color in enumerate(WINDOW_BUTTONS):
        etree.SubElement(root, _svg('circle'), {
            'cx': str(WINDOW_PADDING + index * 20),
            'cy': str(WINDOW_PADDING + 5),
            'r': '6',
            'fill': color,
        })
    return (WINDOW_PADDING, WINDOW_PADDING + WINDOW_TITLE_HEIGHT), (width, height)


def render_animation(records, theme=None, width=None, height=None, window=False,
                     font=config.DEFAULT_FONT):
    """Return an SVG animation of a recording as bytes

    :param records: Records of the recording, starting with the header
    :param theme: Theme used for rendering. Defaults to the theme of the
    recording if it has one, or to the default theme.
    :param width: Number of columns of the screen (defaults to the width of
    the recording)
    :param height: Number of lines of the screen (defaults to the height of
    the recording)
    :param window: Draw an application window around the screen
    :param font: CSS font family
    """
    header = records[0]
    columns = width or header.width
    lines = height or header.height
    if theme is None:
        theme = header.theme if header.theme is not None else config.DEFAULT_THEME
    logger.debug('Rendering {}x{} screen'.format(columns, lines))

    screen_width = columns * CELL_WIDTH
    screen_height = lines * CELL_HEIGHT

    root = etree.Element(_svg('svg'), nsmap={None: SVG_NS, 'xlink': XLINK_NS})
    style = etree.SubElement(root, _svg('style'))
    if window:
        (screen_x, screen_y), (total_width, total_height) = _add_window(
            root, screen_width, screen_height)
    else:
        (screen_x, screen_y), (total_width, total_height) = (0, 0), (screen_width,
                                                                     screen_height)
    root.attrib.update({
        'width': str(total_width),
        'height': str(total_height),
        'viewBox': '0 0 {} {}'.format(total_width, total_height),
    })

    screen = etree.SubElement(root, _svg('svg'), {
        'id': 'screen',
        'x': str(screen_x),
        'y': str(screen_y),
        'width': str(screen_width),
        'height': str(screen_height),
        'viewBox': '0 0 {} {}'.format(screen_width, screen_height),
    })
    etree.SubElement(screen, _svg('rect'), {
        'class': 'background',
        'height': '100%',
        'width': '100%',
        'x': '0',
        'y': '0',
    })
    tree_defs = etree.SubElement(screen, _svg('defs'))
    screen_view = etree.SubElement(screen, _svg('g'), {'id': 'screen_view'})

    definitions = {}
    timings = {}
    animation_duration = None
    for frame_count, frame in enumerate(timed_frames(records, columns, lines)):
        # Keep the offset an even number so that lines do not move by one
        # pixel between frames
        h = lines + FRAME_CELL_SPACING
        offset = frame_count * (h + h % 2) * CELL_HEIGHT
        screen_view.append(_render_frame(offset, frame.buffer, definitions))
        animation_duration = frame.time + frame.duration
        timings[frame.time] = -offset

    for definition in definitions.values():
        tree_defs.append(definition)

    if len(timings) < 2:
        timings = None
    style.text = etree.CDATA(_style_sheet(theme.colors(), font, timings, animation_duration))

    return etree.tostring(root, xml_declaration=True, encoding='utf-8')
