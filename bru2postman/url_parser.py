# -*- coding: utf-8 -*-
#
# Bru2Postman - URL decomposition
# Author: Huberto Gastal Mayer (hubertogm@gmail.com)
# License: GPLv3 (https://www.gnu.org/licenses/gpl-3.0.html)
# Project: Bru2Postman - A CLI tool for converting Bruno collections into Postman collections
#
# Postman stores URLs split into protocol / host / port / path / query / hash.
# Bruno URLs may hold {{variable}} placeholders anywhere, including the host,
# which no URL parser accepts. Placeholders are swapped for plain tokens
# before parsing and put back afterwards; URLs starting with a placeholder
# (or that still fail to parse) are split by hand.
#

import logging
import re
from urllib.parse import urlsplit

log = logging.getLogger('bru2postman')

# Regex for {{variable}} placeholders
VARIABLE_RE = re.compile(r"\{\{([^{}\s]+)\}\}")
TOKEN_PREFIX = "__var"
PROTOCOL_RE = re.compile(r"^([A-Za-z][A-Za-z0-9+.-]*)://")
HOST_PORT_RE = re.compile(r"^(.+):(\d+|\{\{[^{}\s]+\}\})$")


def extract_variables(raw_url):
    """Returns placeholder names in order of first appearance, without duplicates."""
    variables = []
    for match in VARIABLE_RE.finditer(raw_url):
        name = match.group(1)
        if name not in variables:
            variables.append(name)
    return variables


def parse_query_string(query_string):
    """Splits 'a=1&b=2' into [{'key': 'a', 'value': '1'}, ...], keeping values as written."""
    params = []
    if not query_string:
        return params
    for pair in query_string.split('&'):
        if not pair:
            continue
        key, _, value = pair.partition('=')
        params.append({'key': key, 'value': value})
    return params


def split_host_port(host_port):
    """'example.com:8080' -> ('example.com', '8080'); no port -> (host, None)."""
    match = HOST_PORT_RE.match(host_port)
    if match:
        return match.group(1), match.group(2)
    return host_port, None


def parse_url(raw_url):
    """
    Decomposes a raw Bruno URL.
    Returns a dict with 'raw', 'host', 'path', 'query', 'variables' and,
    when present, 'protocol', 'port' and 'hash'.
    """
    result = {
        'raw': raw_url,
        'host': [],
        'path': [],
        'query': [],
        'variables': extract_variables(raw_url),
    }

    if raw_url.startswith('{{'):
        return _split_manually(raw_url, result)

    try:
        return _split_with_urllib(raw_url, result)
    except ValueError as e:
        log.debug(f"Standard URL parsing failed for '{raw_url}' ({e}), splitting manually.")
        return _split_manually(raw_url, result)


def token_prefix(raw_url):
    """A placeholder token prefix that does not occur anywhere in raw_url."""
    prefix = TOKEN_PREFIX
    while prefix in raw_url:
        prefix = "_" + prefix
    return prefix


def _split_with_urllib(raw_url, result):
    placeholders = []
    prefix = token_prefix(raw_url)
    token_re = re.compile(re.escape(prefix) + r"(\d+)__")

    def mask(match):
        placeholders.append(match.group(0))
        return f"{prefix}{len(placeholders) - 1}__"

    def restore(text):
        return token_re.sub(lambda m: placeholders[int(m.group(1))], text)

    parts = urlsplit(VARIABLE_RE.sub(mask, raw_url))
    if not parts.scheme or not parts.netloc:
        raise ValueError("no scheme://host part")

    # Drop credentials, keep the host exactly as written (urlsplit lowercases .hostname)
    host_port = restore(parts.netloc.rpartition('@')[2])
    if host_port.startswith('['):
        host, _, rest = host_port.partition(']')
        host += ']'
        port = rest[1:] if rest.startswith(':') else None
    else:
        host, port = split_host_port(host_port)
        if port is None and ':' in host_port.rstrip(':'):
            raise ValueError(f"invalid port in '{host_port}'")
        host = host.rstrip(':')

    result = dict(result)
    result['protocol'] = parts.scheme
    result['host'] = [host] if host else []
    if port:
        result['port'] = port
    result['path'] = [restore(segment) for segment in parts.path.split('/') if segment]
    if parts.query:
        result['query'] = [
            {'key': restore(p['key']), 'value': restore(p['value'])}
            for p in parse_query_string(parts.query)
        ]
    if parts.fragment:
        result['hash'] = restore(parts.fragment)
    return result


def _split_manually(raw_url, result):
    result = dict(result)
    remaining = raw_url

    # 1. Hash
    if '#' in remaining:
        remaining, _, fragment = remaining.partition('#')
        result['hash'] = fragment

    # 2. Query string
    if '?' in remaining:
        remaining, _, query_string = remaining.partition('?')
        result['query'] = parse_query_string(query_string)

    # 3. Protocol
    protocol_match = PROTOCOL_RE.match(remaining)
    if protocol_match:
        result['protocol'] = protocol_match.group(1)
        remaining = remaining[protocol_match.end():]

    # 4. Host (with optional port) and path
    parts = [p for p in remaining.split('/') if p]
    if parts:
        host, port = split_host_port(parts[0])
        result['host'] = [host]
        if port:
            result['port'] = port
        result['path'] = parts[1:]
    return result
