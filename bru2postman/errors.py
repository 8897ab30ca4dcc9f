# -*- coding: utf-8 -*-
#
# Bru2Postman - Bruno to Postman Converter
# Author: Huberto Gastal Mayer (hubertogm@gmail.com)
# License: GPLv3 (https://www.gnu.org/licenses/gpl-3.0.html)
# Project: Bru2Postman - A CLI tool for converting Bruno collections into Postman collections
#
# Exceptions raised by the conversion pipeline.
# Script problems (unmappable calls, failed AST rewrites) are never raised
# to the caller: they end up as warnings inside the converted script.
#


class ConversionError(Exception):
    """Base class for every error raised by Bru2Postman."""


class StructuralError(ConversionError):
    """
    A .bru document is missing a required section or field.
    'construct' names what is absent: 'metadata', 'method', 'url' or 'request'.
    """

    def __init__(self, construct, message):
        super().__init__(message)
        self.construct = construct


class SchemaValidationError(ConversionError):
    """The assembled output does not match the Postman schema."""

    def __init__(self, subject, issues):
        self.subject = subject
        self.issues = list(issues)
        details = "\n".join(f"  - {issue}" for issue in self.issues)
        super().__init__(f"{subject} validation failed:\n{details}")


class ScriptConversionDegradation(ConversionError):
    """
    The AST-based script rewrite could not be completed.
    Only raised inside the AST converter; callers receive a failed
    ScriptConversionResult instead.
    """


class FileAccessError(ConversionError):
    """A file could not be read or written. 'kind' is 'not-found', 'permission' or 'io'."""

    def __init__(self, path, kind, reason):
        super().__init__(f"Failed to access {path}: {reason}")
        self.path = path
        self.kind = kind


class UploadError(ConversionError):
    """The Postman API rejected (or never answered) an upload."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code
