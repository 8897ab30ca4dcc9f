# -*- coding: utf-8 -*-
#
# Bru2Postman - Bruno to Postman Converter
# Author: Huberto Gastal Mayer (hubertogm@gmail.com)
# License: GPLv3 (https://www.gnu.org/licenses/gpl-3.0.html)
# Project: Bru2Postman - A CLI tool for converting Bruno collections into Postman collections
#

import os

from .errors import FileAccessError


def read_text_file(path):
    """Reads a UTF-8 text file, raising FileAccessError with the failure kind."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()
    except FileNotFoundError as e:
        raise FileAccessError(path, 'not-found', "file not found") from e
    except PermissionError as e:
        raise FileAccessError(path, 'permission', "permission denied") from e
    except (OSError, UnicodeDecodeError) as e:
        raise FileAccessError(path, 'io', str(e)) from e


def write_text_file(path, content):
    """Writes a UTF-8 text file, creating parent directories when needed."""
    parent = os.path.dirname(os.path.abspath(path))
    try:
        os.makedirs(parent, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(content)
    except PermissionError as e:
        raise FileAccessError(path, 'permission', "permission denied") from e
    except OSError as e:
        raise FileAccessError(path, 'io', str(e)) from e
