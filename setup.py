#!/usr/bin/env python

from setuptools import setup

setup(
    name='svg-term',
    version='0.1.0',
    license='BSD 3-clause license',
    description='Render asciicast recordings as SVG animations',
    long_description='Render terminal sessions recorded with asciinema as '
                     'standalone SVG animations, using the color theme of '
                     'your terminal emulator.',
    classifiers=[
        'Environment :: Console',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: BSD License',
        'Operating System :: MacOS',
        'Operating System :: POSIX :: BSD',
        'Operating System :: POSIX :: Linux',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Topic :: System :: Shells',
        'Topic :: Terminals'
    ],
    python_requires='>=3.8',
    packages=[
        'svgterm',
        'svgterm.tests'
    ],
    scripts=['scripts/svg-term'],
    include_package_data=True,
    install_requires=[
        'lxml',
        'pyte',
        'python-xlib',
        'wcwidth',
    ],
    extras_require={
        'dev': [
            'coverage',
            'pylint',
            'twine',
            'wheel',
        ]
    }
)
