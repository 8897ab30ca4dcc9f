# -*- coding: utf-8 -*-
#
# Bru2Postman - Bruno .bru file parser
# Author: Huberto Gastal Mayer (hubertogm@gmail.com)
# License: GPLv3 (https://www.gnu.org/licenses/gpl-3.0.html)
# Project: Bru2Postman - A CLI tool for converting Bruno collections into Postman collections
#
# A .bru file is a list of named blocks:
#
#   meta {
#     name: Get Users
#     type: http
#     seq: 1
#   }
#
#   get {
#     url: {{baseUrl}}/users
#   }
#
# Blocks are found with a single forward scan that counts braces, then each
# block is handed to a small parser for its kind.
#

import logging
import re
import textwrap

from pydantic import ValidationError

from .errors import StructuralError
from .file_helpers import read_text_file
from .models import (
    BrunoAuth,
    BrunoBody,
    BrunoKeyValue,
    BrunoMeta,
    BrunoRequest,
    FormDataEntry,
    format_validation_errors,
)

log = logging.getLogger('bru2postman')

METHOD_SECTIONS = ('get', 'post', 'put', 'delete', 'patch', 'head', 'options')

# Section name -> section kind
FIXED_SECTIONS = {
    'meta': 'meta',
    'headers': 'headers',
    'params:query': 'query-params',
    'params:path': 'path-params',
    'script:pre-request': 'pre-script',
    'script:post-response': 'test-script',
    'script:test': 'test-script',
    'tests': 'test-script',
    'docs': 'docs',
}

# Bruno body sub-kind -> body mode
BODY_MODES = {
    'json': 'json',
    'xml': 'xml',
    'text': 'text',
    'sparql': 'sparql',
    'graphql': 'graphql',
    'form-urlencoded': 'form-urlencoded',
    'multipart-form': 'multipart',
    'multipart': 'multipart',
    'none': 'none',
}

AUTH_MODES = ('basic', 'bearer', 'apikey')

SUB_KIND_RE = re.compile(r'^(body|auth):([\w-]+)$')
FILE_VALUE_RE = re.compile(r'^@file\((.*)\)$')


# --- Section scanning ---

def scan_sections(text):
    """
    Splits .bru text into (section_name, lines) pairs, in document order.

    A line ending in '{' outside any section opens a section; it closes when
    the brace count returns to zero. A line ending in '[' opens a list
    section closed by a lone ']' (used by 'vars:secret'). Blank lines and
    '//' comments are only skipped between sections. Content lines are kept
    verbatim.
    """
    sections = []
    current_name = None
    current_lines = []
    depth = 0
    is_list = False

    for line in text.splitlines():
        stripped = line.strip()

        if current_name is None:
            if not stripped or stripped.startswith('//'):
                continue
            if stripped.endswith('{'):
                current_name = stripped[:-1].strip()
                depth = 1
                is_list = False
            elif stripped.endswith('['):
                current_name = stripped[:-1].strip()
                is_list = True
            # Anything else between sections is ignored
            continue

        if is_list:
            if stripped == ']':
                sections.append((current_name, current_lines))
                current_name, current_lines = None, []
            else:
                current_lines.append(line)
            continue

        depth += stripped.count('{') - stripped.count('}')
        if depth <= 0:
            sections.append((current_name, current_lines))
            current_name, current_lines, depth = None, [], 0
            continue

        current_lines.append(line)

    if current_name is not None:
        log.debug(f"Section '{current_name}' is not closed, keeping {len(current_lines)} buffered lines.")
        sections.append((current_name, current_lines))

    return sections


def section_kind(name):
    """Returns the kind of a section, 'none' for sections we do not convert."""
    if name in METHOD_SECTIONS:
        return 'http-method'
    if name in FIXED_SECTIONS:
        return FIXED_SECTIONS[name]
    if name.startswith('body:'):
        return 'body'
    if name.startswith('auth:'):
        return 'auth'
    return 'none'


def sub_kind(name, known, unknown='none'):
    """
    Extracts the suffix of 'body:<mode>' / 'auth:<mode>'.
    Shapes like 'body:graphql:vars' give 'none'; a well formed suffix that
    is not in 'known' gives 'unknown'.
    """
    match = SUB_KIND_RE.match(name)
    if not match:
        return 'none'
    value = match.group(2)
    if isinstance(known, dict):
        return known.get(value, unknown)
    return value if value in known else unknown


# --- Per-section parsers ---

def parse_key_value(line):
    """
    Parses a 'key: value' line. A '~' before the key marks it disabled.
    Returns (key, value, enabled) or None for lines that are not pairs.
    """
    stripped = line.strip()
    if not stripped or stripped in ('{', '}'):
        return None

    key, sep, value = stripped.partition(':')
    if not sep:
        return None

    key = key.strip()
    enabled = True
    if key.startswith('~'):
        enabled = False
        key = key[1:].strip()
    if not key:
        return None
    return key, value.strip(), enabled


def parse_pairs(lines):
    pairs = []
    for line in lines:
        parsed = parse_key_value(line)
        if parsed:
            pairs.append(parsed)
    return pairs


def parse_meta_section(lines):
    meta = {}
    for key, value, _ in parse_pairs(lines):
        if key in ('name', 'type'):
            meta[key] = value
        elif key == 'seq':
            try:
                meta['seq'] = int(value)
            except ValueError:
                log.debug(f"Ignoring non-numeric seq '{value}' in meta section.")

    if not meta.get('name') or not meta.get('type'):
        raise StructuralError('metadata', "Invalid metadata (meta) section: name and type are required")
    return BrunoMeta(**meta)


def parse_method_section(lines):
    """Returns the key/value pairs of a method block (url, body, auth)."""
    return {key: value for key, value, _ in parse_pairs(lines)}


def parse_key_value_section(lines):
    return [BrunoKeyValue(key=key, value=value, enabled=enabled) for key, value, enabled in parse_pairs(lines)]


def block_text(lines):
    """Joins a block's lines, removing the indentation Bruno adds."""
    return textwrap.dedent('\n'.join(lines)).strip('\n')


def parse_form_entries(lines):
    entries = []
    for key, value, enabled in parse_pairs(lines):
        file_match = FILE_VALUE_RE.match(value)
        if file_match:
            entries.append(FormDataEntry(key=key, value=file_match.group(1).strip(), type='file', enabled=enabled))
        else:
            entries.append(FormDataEntry(key=key, value=value, type='text', enabled=enabled))
    return entries


def parse_body_section(lines, name):
    mode = sub_kind(name, BODY_MODES, unknown='other')
    content = block_text(lines)
    form_data = None
    if mode in ('form-urlencoded', 'multipart'):
        form_data = parse_form_entries(lines)
    return BrunoBody(mode=mode, content=content, form_data=form_data)


def parse_auth_section(lines, name):
    auth_type = sub_kind(name, AUTH_MODES)
    details = {key: value for key, value, _ in parse_pairs(lines)}

    if auth_type == 'basic':
        credentials = {
            'username': details.get('username', ''),
            'password': details.get('password', ''),
        }
    elif auth_type == 'bearer':
        credentials = {'token': details.get('token', '')}
    elif auth_type == 'apikey':
        placement = details.get('placement', details.get('in', 'header'))
        credentials = {
            'key': details.get('key', ''),
            'value': details.get('value', ''),
            'placement': placement if placement in ('header', 'query', 'queryparams') else 'header',
        }
        if credentials['placement'] == 'queryparams':
            credentials['placement'] = 'query'
    else:
        credentials = {}

    return BrunoAuth(type=auth_type, credentials=credentials)


# --- Request parsing ---

def parse_bruno_text(text):
    """
    Parses the text of a .bru request file into a BrunoRequest.
    Raises StructuralError when meta, the method block or its url is missing.
    """
    meta = None
    method = None
    method_fields = {}
    headers = []
    query_params = []
    path_params = []
    body = None
    auth = None
    pre_request_script = None
    post_response_script = None
    tests_script = None
    docs = None

    for name, lines in scan_sections(text):
        kind = section_kind(name)

        if kind == 'meta':
            meta = parse_meta_section(lines)
        elif kind == 'http-method':
            method = name.upper()
            method_fields = parse_method_section(lines)
        elif kind == 'headers':
            headers.extend(parse_key_value_section(lines))
        elif kind == 'query-params':
            query_params.extend(parse_key_value_section(lines))
        elif kind == 'path-params':
            path_params.extend(parse_key_value_section(lines))
        elif kind == 'body':
            parsed_body = parse_body_section(lines, name)
            # 'body:graphql:vars' and friends must not replace a real body
            if parsed_body.mode != 'none' or body is None:
                body = parsed_body
        elif kind == 'auth':
            parsed_auth = parse_auth_section(lines, name)
            if parsed_auth.type != 'none' or auth is None:
                auth = parsed_auth
        elif kind == 'pre-script':
            pre_request_script = block_text(lines)
        elif kind == 'test-script':
            if name == 'script:post-response':
                post_response_script = block_text(lines)
            else:
                tests_script = block_text(lines)
        elif kind == 'docs':
            docs = block_text(lines)
        else:
            log.debug(f"Ignoring unsupported section '{name}'.")

    # 1. Required constructs
    if meta is None:
        raise StructuralError('metadata', "Invalid Bruno file: missing metadata (meta) section")
    if method is None:
        raise StructuralError('method', "Invalid Bruno file: missing HTTP method section")
    url = method_fields.get('url', '')
    if not url:
        raise StructuralError('url', "Invalid Bruno file: missing URL in method section")

    # 2. The method block can switch body/auth off
    if method_fields.get('body') == 'none':
        body = None
    if method_fields.get('auth') in ('none', 'inherit'):
        auth = None

    # 3. post-response runs before tests in Bruno, keep that order
    scripts = [s for s in (post_response_script, tests_script) if s is not None]
    test_script = '\n'.join(scripts) if scripts else None

    try:
        return BrunoRequest(
            meta=meta,
            method=method,
            url=url,
            headers=headers,
            query_params=query_params,
            path_params=path_params,
            body=body,
            auth=auth,
            pre_request_script=pre_request_script,
            test_script=test_script,
            docs=docs,
        )
    except ValidationError as e:
        issues = '; '.join(format_validation_errors(e))
        raise StructuralError('request', f"Invalid Bruno request: {issues}") from e


def parse_bruno_file(filepath):
    """Reads and parses a single .bru file."""
    return parse_bruno_text(read_text_file(filepath))


def parse_folder_meta(text):
    """
    Reads the meta block of a folder.bru / collection.bru file.
    Returns a dict with 'name' and 'seq' when present; never raises.
    """
    info = {}
    for name, lines in scan_sections(text):
        if name != 'meta':
            continue
        for key, value, _ in parse_pairs(lines):
            if key == 'name' and value:
                info['name'] = value
            elif key == 'seq':
                try:
                    info['seq'] = int(value)
                except ValueError:
                    pass
    return info
