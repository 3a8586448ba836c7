"""Command line interface of svg-term"""
import argparse
import logging
import sys
import urllib.parse
import urllib.request

from svgterm import config, schemes
from svgterm.asciicast import AsciiCastError, read_records
from svgterm.preferences import PreferenceError
from svgterm.profile import UsageError
from svgterm.render import render_animation
from svgterm.selection import select_theme

logger = logging.getLogger('svgterm')

USAGE = """svg-term [--cast ID] [--out FILE] [--profile PROFILE] [--term TERM]
                [--frame] [--width COLUMNS] [--height LINES] [-v] [-h]

Render an asciicast recording read from stdin or downloaded from asciinema.org
as an SVG animation
"""
EPILOG = """examples:
  cat rec.cast | svg-term > rec.svg
  svg-term --cast 113643 --out rec.svg
  svg-term --cast 113643 --term iterm2 --profile ./Dracula.itermcolors"""

FETCH_TIMEOUT = 30


def build_parser():
    parser = argparse.ArgumentParser(
        prog='svg-term',
        usage=USAGE,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        '--cast',
        help='asciinema cast id to download, required if no recording is '
             'provided on stdin',
        metavar='ID'
    )
    parser.add_argument(
        '--out',
        help='output file, the animation is written to stdout if omitted',
        metavar='FILE'
    )
    parser.add_argument(
        '--profile',
        help='terminal profile to use: either the path of a color scheme file '
             '(starting with "~", "/" or ".") or the name of a preset of the '
             'terminal. Requires --term',
        metavar='PROFILE'
    )
    parser.add_argument(
        '--term',
        help='terminal profile format, one of {}. Requires --profile'
             .format(', '.join(schemes.scheme_names())),
        metavar='TERM'
    )
    parser.add_argument(
        '--frame',
        action='store_true',
        help='frame the result with an application window'
    )
    parser.add_argument(
        '--width',
        type=config.validate_dimension,
        help='width of the screen in columns (default: width of the recording)',
        metavar='COLUMNS'
    )
    parser.add_argument(
        '--height',
        type=config.validate_dimension,
        help='height of the screen in lines (default: height of the recording)',
        metavar='LINES'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='increase log messages verbosity'
    )
    return parser


def parse(args):
    """Parse command line arguments (without the name of the program)"""
    return build_parser().parse_args(args)


def fetch_cast(cast_id, timeout=FETCH_TIMEOUT):
    """Download the recording 'cast_id' from asciinema.org"""
    url = config.ASCIINEMA_CAST_URL.format(urllib.parse.quote(cast_id, safe=''))
    logger.debug('Downloading {}'.format(url))
    request = urllib.request.Request(url, headers={'User-Agent': 'svg-term'})
    with urllib.request.urlopen(request, timeout=timeout) as response:
        return response.read().decode('utf-8')


def get_input(cast_id, input_file):
    """Return the text of the recording, or an empty string if there is none"""
    if cast_id:
        return fetch_cast(cast_id)
    if input_file.isatty():
        return ''
    return input_file.read()


def render(args, input_file, context):
    """Return the SVG animation requested by the command line arguments"""
    theme = select_theme(context, args.term, args.profile)
    if theme is None:
        logger.debug('No theme selected')

    data = get_input(args.cast, input_file)
    if not data.strip():
        raise UsageError('either stdin or --cast are required')

    records = read_records(data)
    return render_animation(records, theme=theme, width=args.width,
                            height=args.height, window=args.frame)


def main(args=None, input_file=None, output_file=None, context=None):
    if args is None:
        args = sys.argv
    if input_file is None:
        input_file = sys.stdin
    if output_file is None:
        output_file = sys.stdout.buffer
    if context is None:
        context = config.Context.from_process()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.INFO)
    console_formatter = logging.Formatter('%(message)s')
    console_handler.setFormatter(console_formatter)
    logger.handlers = [console_handler]
    logger.setLevel(logging.INFO)

    args = parse(args[1:])
    if args.verbose:
        console_handler.setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)

    try:
        svg = render(args, input_file, context)
        if args.out is None:
            output_file.write(svg)
            output_file.flush()
        else:
            with open(args.out, 'wb') as svg_file:
                svg_file.write(svg)
            logger.info('Rendering ended, SVG animation is {}'.format(args.out))
    except UsageError as exc:
        build_parser().print_help(sys.stderr)
        logger.error('\nsvg-term: {}'.format(exc))
        sys.exit(1)
    except (AsciiCastError, schemes.SchemeError, PreferenceError, UnicodeDecodeError,
            OSError) as exc:
        logger.error('svg-term: {}'.format(exc))
        sys.exit(1)

    for handler in logger.handlers:
        handler.close()


if __name__ == '__main__':
    main()
