# -*- coding: utf-8 -*-
#
# Bru2Postman - Line based script converter
# Author: Huberto Gastal Mayer (with AI help)
# License: GPLv3
# Project: Bru2Postman - A CLI tool for converting Bruno collections into Postman collections
#
# Converts Bruno scripts (bru.*, res.*, test(), expect()) to Postman scripts
# (pm.*) by plain text substitution, one line at a time. It never fails:
# anything it does not know is left as written and the script is marked
# for manual review.
#
# Conversion table:
#   bru.setVar() / bru.setEnvVar()  -> pm.environment.set()
#   bru.getVar() / bru.getEnvVar()  -> pm.environment.get()
#   res.status                      -> pm.response.code        (tests)
#   res.body / res.getBody()        -> pm.response.json()      (tests)
#   res.headers                     -> pm.response.headers     (tests)
#   res.responseTime                -> pm.response.responseTime (tests)
#   test()                          -> pm.test()
#   expect()                        -> pm.expect()
#

import re

from .models import ScriptConversionResult

PRE_REQUEST = 'pre-request'
TEST = 'test'
SCRIPT_ROLES = (PRE_REQUEST, TEST)

PARTIAL_CONVERSION_MARKER = '// WARNING: partial conversion - review manually'
PARTIAL_CONVERSION_WARNING = 'Script contains partial conversion - manual review required'

# Shared with the AST converter
BRU_API_MAPPINGS = {
    'setVar': 'pm.environment.set',
    'getVar': 'pm.environment.get',
    'setEnvVar': 'pm.environment.set',
    'getEnvVar': 'pm.environment.get',
}

RES_API_MAPPINGS = {
    'status': 'pm.response.code',
    'body': 'pm.response.json()',
    'getBody': 'pm.response.json',
    'headers': 'pm.response.headers',
    'responseTime': 'pm.response.responseTime',
}

BARE_CALL_MAPPINGS = {
    'test': 'pm.test',
    'expect': 'pm.expect',
}

# Not preceded by an identifier character or a dot, so 'pm.test(' or
# 'mybru.setVar' are never touched
_NOT_MEMBER = r"(?<![\w$.])"


def _build_substitutions():
    """Ordered (pattern, replacement, roles) table."""
    substitutions = []
    for name, target in BRU_API_MAPPINGS.items():
        substitutions.append((re.compile(_NOT_MEMBER + r"bru\." + name + r"\b"), target, SCRIPT_ROLES))

    # getBody() goes first so 'res.getBody()' does not end up as 'pm.response.json()()'
    substitutions.append((re.compile(_NOT_MEMBER + r"res\.getBody\(\s*\)"), 'pm.response.json()', (TEST,)))
    for name, target in RES_API_MAPPINGS.items():
        if name == 'getBody':
            continue
        substitutions.append((re.compile(_NOT_MEMBER + r"res\." + name + r"\b(?!\s*\()"), target, (TEST,)))

    for name, target in BARE_CALL_MAPPINGS.items():
        pattern = re.compile(_NOT_MEMBER + r"(?<!function )" + name + r"(?=\s*\()")
        substitutions.append((pattern, target, SCRIPT_ROLES))
    return substitutions


SUBSTITUTIONS = _build_substitutions()

UNMAPPED_CALL_RE = re.compile(_NOT_MEMBER + r"bru\.[A-Za-z_$][\w$]*")
STRING_LITERAL_RE = re.compile(r'"(?:\\.|[^"\\])*"|\'(?:\\.|[^\'\\])*\'|`(?:\\.|[^`\\])*`')


def check_role(role):
    if role not in SCRIPT_ROLES:
        raise ValueError(f"Unknown script role '{role}', expected one of {SCRIPT_ROLES}")


def has_unmapped_call(line):
    """
    True when a line still references the bru namespace after conversion.
    Comment lines, string literals and trailing // comments do not count.
    """
    stripped = line.strip()
    if stripped.startswith(('//', '/*', '*')):
        return False
    code = STRING_LITERAL_RE.sub('""', line)
    code = code.split('//', 1)[0]
    return bool(UNMAPPED_CALL_RE.search(code))


def convert_line(line, role):
    for pattern, replacement, roles in SUBSTITUTIONS:
        if role in roles:
            line = pattern.sub(replacement, line)
    return line


def convert_script(script, role):
    """
    Converts a Bruno script line by line.
    Returns a ScriptConversionResult; this function does not fail on any input.
    """
    check_role(role)
    converted_lines = []
    has_unmappable_code = False

    for line in script.split('\n'):
        converted = convert_line(line, role)
        if has_unmapped_call(converted):
            has_unmappable_code = True
        converted_lines.append(converted)

    warnings = []
    if has_unmappable_code:
        converted_lines.insert(0, PARTIAL_CONVERSION_MARKER)
        warnings.append(PARTIAL_CONVERSION_WARNING)

    return ScriptConversionResult(rewritten_lines=converted_lines, warnings=warnings, succeeded=True)


def convert_pre_request_script(script):
    return convert_script(script, PRE_REQUEST)


def convert_test_script(script):
    return convert_script(script, TEST)
