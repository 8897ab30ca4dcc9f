# -*- coding: utf-8 -*-
from setuptools import setup, find_packages

AUTHOR = "Huberto Gastal Mayer"
EMAIL = "hubertogm@gmail.com"
LICENSE = "GPLv3"
DESCRIPTION = "Bru2Postman - A CLI tool for converting Bruno collections into Postman collections"

setup(
    name="bru2postman",
    version="0.3.0",
    description=DESCRIPTION,
    long_description=f"{DESCRIPTION}. Created by {AUTHOR}.",
    author=AUTHOR,
    author_email=EMAIL,
    license=LICENSE,

    # find_packages() picks up the 'bru2postman' package; tests stay out
    packages=find_packages(exclude=['tests', 'tests.*']),

    install_requires=[
        'requests',
        'PyYAML',
        'pydantic>=2',
        'tree-sitter>=0.22',
        'tree-sitter-javascript',
        'tree-sitter-typescript',
    ],
    extras_require={
        'test': ['pytest'],
    },

    # Creates the 'bru2postman' command
    entry_points={
        'console_scripts': [
            'bru2postman=bru2postman.bru2postman:main',
        ],
    },

    classifiers=[
        'License :: OSI Approved :: GNU General Public License v3 (GPLv3)',
        'Programming Language :: Python :: 3',
        'Operating System :: OS Independent',
        'Environment :: Console',
        'Topic :: Software Development :: Testing',
        'Topic :: Utilities',
    ],
    python_requires='>=3.8',
)
