import io
import os
import tempfile
import unittest
from unittest import mock

from lxml import etree

import svgterm.__main__ as main_module
from svgterm.config import Context
from svgterm.detect import TerminalKind
from svgterm.tests.test_preferences import TERMINAL_PREFERENCES, write_preferences
from svgterm.tests.test_schemes import XRESOURCES_SCHEME

CAST = '\n'.join([
    '{"version": 2, "width": 20, "height": 3}',
    '[0.1, "o", "$ ls\\r\\n"]',
    '[0.5, "o", "\\u001b[1;31mbright red fg\\u001b[0m\\r\\n"]',
    '[1.0, "o", "$ "]',
])


class TestMain(unittest.TestCase):
    def setUp(self):
        self.home = tempfile.TemporaryDirectory()
        self.context = Context('linux', {}, self.home.name, self.home.name)

    def tearDown(self):
        self.home.cleanup()

    def run_main(self, args, data=CAST, context=None):
        output_file = io.BytesIO()
        with mock.patch('sys.stderr', new_callable=io.StringIO) as stderr:
            main_module.main(['svg-term'] + args, io.StringIO(data), output_file,
                             context or self.context)
        return output_file.getvalue(), stderr.getvalue()

    def test_parse(self):
        args = main_module.parse(['--cast', '113643', '--out', 'rec.svg', '--term', 'xterm',
                                  '--profile', '~/.Xresources', '--frame', '--width', '80',
                                  '--height', '24', '-v'])
        self.assertEqual(args.cast, '113643')
        self.assertEqual(args.out, 'rec.svg')
        self.assertEqual(args.term, 'xterm')
        self.assertEqual(args.profile, '~/.Xresources')
        self.assertTrue(args.frame)
        self.assertEqual((args.width, args.height), (80, 24))
        self.assertTrue(args.verbose)

        args = main_module.parse([])
        self.assertIsNone(args.cast)
        self.assertFalse(args.frame)
        self.assertIsNone(args.width)

        for invalid_args in (['--width', '0'], ['--height', '-1'], ['--width', 'x']):
            with self.subTest(case=invalid_args):
                with mock.patch('sys.stderr', new_callable=io.StringIO):
                    with self.assertRaises(SystemExit):
                        main_module.parse(invalid_args)

    def test_main_parses_arguments(self):
        with mock.patch('svgterm.__main__.parse', wraps=main_module.parse) as parse_mock:
            self.run_main(['--frame', '-v'])
        parse_mock.assert_called_once_with(['--frame', '-v'])

    def test_main_stdin(self):
        svg, _ = self.run_main([])
        root = etree.fromstring(svg)
        self.assertEqual(root.tag, '{http://www.w3.org/2000/svg}svg')
        self.assertEqual(root.attrib['width'], str(20 * 8))

    def test_main_options(self):
        scheme_path = os.path.join(self.home.name, '.Xresources')
        with open(scheme_path, 'w') as scheme_file:
            scheme_file.write(XRESOURCES_SCHEME)

        test_cases = [
            ['--frame'],
            ['--width', '30', '--height', '10'],
            ['--term', 'xresources', '--profile', '~/.Xresources'],
            ['--term', 'xresources', '--profile', scheme_path, '-v'],
        ]
        for args in test_cases:
            with self.subTest(case=args):
                svg, _ = self.run_main(args)
                self.assertTrue(svg.startswith(b'<?xml'))

        svg, _ = self.run_main(['--term', 'xresources', '--profile', '~/.Xresources'])
        self.assertIn(b'.background { fill: #123456; }', svg)

    def test_main_detected_terminal(self):
        write_preferences(self.home.name, TerminalKind.TERMINAL, TERMINAL_PREFERENCES)
        context = Context('darwin', {'TERM_PROGRAM': 'Apple_Terminal'}, self.home.name,
                          self.home.name)
        svg, _ = self.run_main([], context=context)
        self.assertIn(b'.foreground { fill: #abcdef; }', svg)

    def test_main_output_file(self):
        output_path = os.path.join(self.home.name, 'rec.svg')
        svg, stderr = self.run_main(['--out', output_path])
        self.assertEqual(svg, b'')
        self.assertIn(output_path, stderr)
        with open(output_path, 'rb') as svg_file:
            etree.fromstring(svg_file.read())

    @mock.patch('svgterm.__main__.fetch_cast', return_value=CAST)
    def test_main_cast(self, fetch_cast_mock):
        svg, _ = self.run_main(['--cast', '113643'], data='')
        fetch_cast_mock.assert_called_once_with('113643')
        etree.fromstring(svg)

    def test_main_failure(self):
        with open(os.path.join(self.home.name, 'empty'), 'w'):
            pass

        failure_test_cases = [
            ('Term without profile', ['--term', 'xterm'], CAST,
             '--term and --profile must be used together, profile missing'),
            ('Profile without term', ['--profile', 'Pro'], CAST,
             '--term and --profile must be used together, term missing'),
            ('Unknown term', ['--term', 'gnome', '--profile', 'Pro'], CAST,
             'term expected to be one of'),
            ('Missing file', ['--term', 'xterm', '--profile', './missing'], CAST,
             './missing must be readable file but was not found'),
            ('Invalid color scheme', ['--term', 'xresources', '--profile', '~/empty'], CAST,
             'Invalid xresources color scheme'),
            ('No input', [], '', 'either stdin or --cast are required'),
            ('Invalid recording', [], '{"version": 2}', 'svg-term: Invalid type'),
            ('Invalid UTF-8 on stdin', [],
             io.TextIOWrapper(io.BytesIO(b'\xff\xfe\xfd'), encoding='utf-8'),
             "svg-term: 'utf-8' codec can't decode byte 0xff"),
            ('Output directory missing',
             ['--out', os.path.join(self.home.name, 'missing', 'rec.svg')], CAST,
             'No such file or directory'),
        ]
        for case, args, data, message in failure_test_cases:
            with self.subTest(case=case):
                input_file = data if hasattr(data, 'read') else io.StringIO(data)
                with mock.patch('sys.stderr', new_callable=io.StringIO) as stderr:
                    with self.assertRaises(SystemExit) as context:
                        main_module.main(['svg-term'] + args, input_file, io.BytesIO(),
                                         self.context)
                self.assertEqual(context.exception.code, 1)
                self.assertIn(message, stderr.getvalue())

        with self.subTest(case='Invalid UTF-8 from asciinema.org'):
            with mock.patch('urllib.request.urlopen') as urlopen_mock:
                response = urlopen_mock.return_value.__enter__.return_value
                response.read.return_value = b'\xff\xfe\xfd'
                with mock.patch('sys.stderr', new_callable=io.StringIO) as stderr:
                    with self.assertRaises(SystemExit) as context:
                        main_module.main(['svg-term', '--cast', '113643'], io.StringIO(''),
                                         io.BytesIO(), self.context)
            self.assertEqual(context.exception.code, 1)
            self.assertIn("can't decode byte 0xff", stderr.getvalue())

        # Usage errors are preceded by the help message
        with mock.patch('sys.stderr', new_callable=io.StringIO) as stderr:
            with self.assertRaises(SystemExit):
                main_module.main(['svg-term', '--term', 'xterm'], io.StringIO(CAST),
                                 io.BytesIO(), self.context)
        self.assertIn('usage: svg-term', stderr.getvalue())

    def test_get_input(self):
        tty = mock.MagicMock()
        tty.isatty.return_value = True
        self.assertEqual(main_module.get_input(None, tty), '')
        tty.read.assert_not_called()
        self.assertEqual(main_module.get_input(None, io.StringIO(CAST)), CAST)

    @mock.patch('urllib.request.urlopen')
    def test_fetch_cast(self, urlopen_mock):
        response = urlopen_mock.return_value.__enter__.return_value
        response.read.return_value = CAST.encode('utf-8')

        self.assertEqual(main_module.fetch_cast('113643'), CAST)
        request = urlopen_mock.call_args[0][0]
        self.assertEqual(request.full_url, 'https://asciinema.org/a/113643.cast?dl=true')
