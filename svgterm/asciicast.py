"""asciicast recordings

Decoding of terminal session recordings in asciicast v1 and v2 formats. Both
are converted to a sequence of v2 records: a header followed by events.
The specifications of the formats are available here:
    [1] https://github.com/asciinema/asciinema/blob/develop/doc/asciicast-v1.md
    [2] https://github.com/asciinema/asciinema/blob/develop/doc/asciicast-v2.md
"""
import json
from collections import namedtuple

from svgterm.theme import is_color


class AsciiCastError(Exception):
    pass


def _check_types(record, types):
    for attr_name in record._fields:
        attr = getattr(record, attr_name)
        # bool is a subclass of int but is never a valid value
        if isinstance(attr, bool) or not isinstance(attr, types[attr_name]):
            raise AsciiCastError('Invalid type for attribute {}: {} (expected one of {})'
                                 .format(attr_name, type(attr), types[attr_name]))


_AsciiCastTheme = namedtuple('AsciiCastTheme', ['fg', 'bg', 'palette'])


class AsciiCastTheme(_AsciiCastTheme):
    """Color theme saved in the header of a recording

    fg: default text color
    bg: default background color
    palette: colon separated list of 8 or 16 terminal colors
    """
    def __new__(cls, fg, bg, palette):
        if not is_color(fg):
            raise AsciiCastError('Invalid foreground color: {}'.format(fg))
        if not is_color(bg):
            raise AsciiCastError('Invalid background color: {}'.format(bg))
        if not isinstance(palette, str):
            raise AsciiCastError('Invalid palette: {}'.format(palette))

        colors = palette.split(':')
        for size in (16, 8):
            if len(colors) >= size and all(is_color(c) for c in colors[:size]):
                return super().__new__(cls, fg, bg, ':'.join(colors[:size]))
        raise AsciiCastError('Invalid palette: the first 8 or 16 colors must be valid')

    def colors(self):
        """Return a mapping between CSS class names and colors

        With an 8 color palette, bright colors are the same as normal colors.
        """
        palette = self.palette.split(':')
        if len(palette) == 8:
            palette = palette * 2
        colors = {
            'foreground': self.fg,
            'background': self.bg,
        }
        colors.update(('color{}'.format(i), c) for i, c in enumerate(palette))
        return colors


_AsciiCastHeader = namedtuple('AsciiCastHeader', ['version', 'width', 'height', 'theme',
                                                  'idle_time_limit'])


class AsciiCastHeader(_AsciiCastHeader):
    """Header record

    version: Version of the asciicast file format
    width: Initial number of columns of the terminal
    height: Initial number of lines of the terminal
    theme: Color theme of the terminal
    idle_time_limit: Maximum duration of a pause in seconds
    """
    types = {
        'version': int,
        'width': int,
        'height': int,
        'theme': (type(None), AsciiCastTheme),
        'idle_time_limit': (type(None), int, float),
    }

    def __new__(cls, version, width, height, theme=None, idle_time_limit=None):
        self = super().__new__(cls, version, width, height, theme, idle_time_limit)
        _check_types(self, cls.types)
        if version != 2:
            raise AsciiCastError('Only asciicast v2 headers are supported')
        if width <= 0 or height <= 0:
            raise AsciiCastError('Invalid screen geometry: {}x{}'.format(width, height))
        return self

    @classmethod
    def from_json(cls, json_dict):
        attributes = {attr: json_dict.get(attr) for attr in cls._fields}
        theme = attributes['theme']
        if theme is not None:
            if not isinstance(theme, dict):
                raise AsciiCastError('Invalid theme: {}'.format(theme))
            attributes['theme'] = AsciiCastTheme(theme.get('fg'), theme.get('bg'),
                                                 theme.get('palette'))
        return cls(**attributes)


_AsciiCastEvent = namedtuple('AsciiCastEvent', ['time', 'event_type', 'event_data'])


class AsciiCastEvent(_AsciiCastEvent):
    """Event record

    time: Time elapsed since the beginning of the recording in seconds
    event_type: Type 'o' if the data was captured on the standard output of the terminal, type
                'i' if it was captured on the standard input
    event_data: Data captured during the recording
    """
    types = {
        'time': (int, float),
        'event_type': str,
        'event_data': str,
    }

    def __new__(cls, time, event_type, event_data):
        self = super().__new__(cls, time, event_type, event_data)
        _check_types(self, cls.types)
        return self

    @classmethod
    def from_json(cls, json_list):
        try:
            time, event_type, event_data = json_list
        except ValueError as exc:
            raise AsciiCastError('Invalid event: {}'.format(json_list)) from exc
        return cls(time, event_type, event_data)


def _read_v2_records(lines):
    for line in lines:
        if not line.strip():
            continue
        try:
            json_value = json.loads(line)
        except json.JSONDecodeError as exc:
            raise AsciiCastError('Invalid JSON: {}'.format(exc)) from exc

        if isinstance(json_value, dict):
            yield AsciiCastHeader.from_json(json_value)
        elif isinstance(json_value, list):
            yield AsciiCastEvent.from_json(json_value)
        else:
            truncated_line = line if len(line) < 20 else '{}...'.format(line[:20])
            raise AsciiCastError('Unknown record type: "{}"'.format(truncated_line))


def _read_v1_records(data):
    v1_header_attributes = {
        'version',
        'width',
        'height',
        'stdout'
    }
    try:
        json_dict = json.loads(data)
    except json.JSONDecodeError as exc:
        raise AsciiCastError('Invalid JSON: {}'.format(exc)) from exc
    if not isinstance(json_dict, dict):
        raise AsciiCastError('Invalid asciicast v1 data')
    missing_attributes = v1_header_attributes - set(json_dict)
    if missing_attributes:
        raise AsciiCastError('Missing attributes in asciicast v1 data: {}'
                             .format(', '.join(sorted(missing_attributes))))
    if json_dict['version'] != 1:
        raise AsciiCastError('Unsupported asciicast version: {}'.format(json_dict['version']))
    if not isinstance(json_dict['stdout'], list):
        raise AsciiCastError('Invalid type for stdout attribute (expected list): {}'
                             .format(json_dict['stdout']))

    yield AsciiCastHeader(2, json_dict['width'], json_dict['height'])

    time = 0
    for event in json_dict['stdout']:
        try:
            time_elapsed, event_data = event
        except (TypeError, ValueError) as exc:
            raise AsciiCastError('Invalid event: {}'.format(event)) from exc

        if not isinstance(time_elapsed, (int, float)) or not isinstance(event_data, str):
            raise AsciiCastError('Invalid type for event: got object "{}" but expected '
                                 'type Tuple[Union[int, float], str]'.format(event))
        time += time_elapsed
        yield AsciiCastEvent(time, 'o', event_data)


def read_records(data):
    """Return the list of asciicast v2 records contained in 'data'

    'data' is the text of a recording in either asciicast v1 or v2 format.
    The first record returned is always a header. Raise AsciiCastError if the
    recording is invalid.
    """
    lines = data.splitlines()
    first_line = next((line for line in lines if line.strip()), None)
    if first_line is None:
        raise AsciiCastError('Empty recording')

    # A v2 recording starts with a header on a single line while a v1
    # recording is a single JSON document
    try:
        first_record = json.loads(first_line)
    except json.JSONDecodeError:
        first_record = None

    if isinstance(first_record, dict) and first_record.get('version') == 2:
        records = list(_read_v2_records(lines))
    else:
        records = list(_read_v1_records(data))

    if not isinstance(records[0], AsciiCastHeader):
        raise AsciiCastError('The first record of a recording must be a header')
    if any(isinstance(record, AsciiCastHeader) for record in records[1:]):
        raise AsciiCastError('A recording must contain a single header')
    return records
