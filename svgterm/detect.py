"""Detection of the terminal emulator hosting the current session"""
import logging
from enum import Enum

from svgterm.schemes import SchemeFormat

logger = logging.getLogger(__name__)

TERM_PROGRAM_VARIABLE = 'TERM_PROGRAM'


class TerminalKind(Enum):
    """Terminal emulators whose preferences can be introspected"""
    ITERM2 = 'iterm2'
    TERMINAL = 'terminal'

    @property
    def scheme(self):
        """Format of the color presets stored by this terminal"""
        return SchemeFormat(self.value)

    @classmethod
    def from_scheme(cls, scheme):
        """Return the TerminalKind using 'scheme' for its presets, or None"""
        try:
            return cls(scheme.value)
        except ValueError:
            return None


# Values of TERM_PROGRAM set by each terminal
TERM_PROGRAMS = {
    'iTerm.app': TerminalKind.ITERM2,
    'Apple_Terminal': TerminalKind.TERMINAL,
}


def detect(context):
    """Return the TerminalKind of the terminal running this process

    None is returned if the platform does not allow introspection of the
    preferences of the terminal or if the terminal is not known.
    """
    if not context.supports_introspection():
        return None

    program = context.environ.get(TERM_PROGRAM_VARIABLE)
    kind = TERM_PROGRAMS.get(program)
    logger.debug('Terminal program: {} (detected: {})'
                 .format(program, kind.value if kind else None))
    return kind
