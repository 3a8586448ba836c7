"""Configuration of svg-term

svg-term has no configuration file: its behavior is driven by command line
arguments and by the environment of the process. The environment is
captured once in a `Context` which is then handed to every function that
needs to look at the platform, environment variables or the filesystem.
"""
import os
import sys
from collections import namedtuple

from svgterm.theme import Theme

ASCIINEMA_CAST_URL = 'https://asciinema.org/a/{}.cast?dl=true'

# Platforms on which terminal preferences can be introspected
INTROSPECTABLE_PLATFORMS = {'darwin'}

DEFAULT_FONT = "'DejaVu Sans Mono', Monaco, Consolas, monospace"
DEFAULT_FONT_SIZE = 14

# Theme used by the renderer when neither the command line nor the recording
# specify one
DEFAULT_THEME = Theme(
    fg='#d4d4d4',
    bg='#1e1e1e',
    palette=[
        '#000000', '#cd3131', '#0dbc79', '#e5e510',
        '#2472c8', '#bc3fbc', '#11a8cd', '#e5e5e5',
        '#666666', '#f14c4c', '#23d18b', '#f5f543',
        '#3b8eea', '#d670d6', '#29b8db', '#ffffff',
    ]
)


def validate_dimension(value):
    """Raise ValueError if 'value' is not a positive integer"""
    dimension = int(value)
    if dimension <= 0:
        raise ValueError('Invalid dimension: "{}" (expected a positive integer)'
                         .format(value))
    return dimension


_Context = namedtuple('Context', ['platform', 'environ', 'home', 'cwd'])


class Context(_Context):
    """Read-only snapshot of the environment of the process

    platform: platform identifier (value of sys.platform)
    environ: mapping of environment variables
    home: home directory of the user
    cwd: working directory used to resolve relative paths
    """
    @classmethod
    def from_process(cls):
        return cls(platform=sys.platform,
                   environ=dict(os.environ),
                   home=os.path.expanduser('~'),
                   cwd=os.getcwd())

    def supports_introspection(self):
        """Return True if terminal preferences can be read on this platform"""
        return self.platform in INTROSPECTABLE_PLATFORMS

    def resolve_path(self, path):
        """Return the absolute version of 'path'

        A leading '~' refers to the home directory of the context and relative
        paths are relative to the working directory of the context.
        """
        if path == '~' or path.startswith('~/'):
            path = os.path.join(self.home, path[2:])
        return os.path.normpath(os.path.join(self.cwd, path))

    def home_path(self, relative_path):
        return os.path.join(self.home, relative_path)

    def is_file(self, path):
        return os.path.isfile(self.resolve_path(path))

    def read_bytes(self, path):
        """Return the content of the file at 'path'

        Raise OSError if the file can't be read.
        """
        with open(self.resolve_path(path), 'rb') as input_file:
            return input_file.read()
