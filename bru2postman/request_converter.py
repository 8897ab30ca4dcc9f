# -*- coding: utf-8 -*-
#
# Bru2Postman - Request field mapping
# Author: Huberto Gastal Mayer (hubertogm@gmail.com)
# License: GPLv3 (https://www.gnu.org/licenses/gpl-3.0.html)
# Project: Bru2Postman - A CLI tool for converting Bruno collections into Postman collections
#
# Maps everything in a BrunoRequest except its scripts (method, url,
# headers, params, body, auth, docs) to the Postman v2.1 request shape.
#

from .url_parser import parse_url

RAW_LANGUAGES = {
    'json': 'json',
    'xml': 'xml',
    'text': 'text',
}


def convert_url(bruno):
    """Builds the Postman url object from the raw URL, query params and path params."""
    parsed = parse_url(bruno.url)

    url = {'raw': parsed['raw']}
    if 'protocol' in parsed:
        url['protocol'] = parsed['protocol']
    url['host'] = parsed['host']
    if 'port' in parsed:
        url['port'] = parsed['port']
    url['path'] = parsed['path']

    # Params declared in the params:query block win over the ones in the URL
    if bruno.query_params:
        url['query'] = [
            {'key': param.key, 'value': param.value, 'disabled': not param.enabled}
            for param in bruno.query_params
        ]
    elif parsed['query']:
        url['query'] = parsed['query']

    if bruno.path_params:
        url['variable'] = [{'key': param.key, 'value': param.value} for param in bruno.path_params]
    if 'hash' in parsed:
        url['hash'] = parsed['hash']
    return url


def convert_headers(headers):
    return [
        {'key': header.key, 'value': header.value, 'type': 'text', 'disabled': not header.enabled}
        for header in headers
    ]


def convert_urlencoded(content):
    """One 'key: value' per line, split on the first ':'. '~key' is a disabled entry."""
    entries = []
    for line in content.split('\n'):
        stripped = line.strip()
        if not stripped:
            continue
        key, _, value = stripped.partition(':')
        key = key.strip()
        entry = {'key': key, 'value': value.strip(), 'type': 'text'}
        if key.startswith('~'):
            entry['key'] = key[1:].strip()
            entry['disabled'] = True
        entries.append(entry)
    return entries


def convert_formdata(form_data):
    entries = []
    for entry in form_data or []:
        item = {'key': entry.key, 'type': entry.type, 'disabled': not entry.enabled}
        if entry.type == 'file':
            item['src'] = entry.value
        else:
            item['value'] = entry.value
        entries.append(item)
    return entries


def convert_body(bruno_body):
    """Maps a Bruno body to a Postman body. Unknown modes become raw text without a language."""
    mode = bruno_body.mode

    if mode in RAW_LANGUAGES:
        return {
            'mode': 'raw',
            'raw': bruno_body.content,
            'options': {'raw': {'language': RAW_LANGUAGES[mode]}},
        }
    if mode == 'form-urlencoded':
        return {'mode': 'urlencoded', 'urlencoded': convert_urlencoded(bruno_body.content)}
    if mode == 'multipart':
        return {'mode': 'formdata', 'formdata': convert_formdata(bruno_body.form_data)}
    return {'mode': 'raw', 'raw': bruno_body.content}


def _attributes(*pairs):
    return [{'key': key, 'value': value, 'type': 'string'} for key, value in pairs]


def convert_auth(bruno_auth):
    """Maps Bruno auth to Postman auth; anything we do not know becomes 'noauth'."""
    credentials = bruno_auth.credentials

    if bruno_auth.type == 'basic':
        return {
            'type': 'basic',
            'basic': _attributes(
                ('username', credentials.get('username', '')),
                ('password', credentials.get('password', '')),
            ),
        }
    if bruno_auth.type == 'bearer':
        return {'type': 'bearer', 'bearer': _attributes(('token', credentials.get('token', '')))}
    if bruno_auth.type == 'apikey':
        return {
            'type': 'apikey',
            'apikey': _attributes(
                ('key', credentials.get('key', '')),
                ('value', credentials.get('value', '')),
                ('in', credentials.get('placement', 'header')),
            ),
        }
    return {'type': 'noauth'}


def convert_request(bruno):
    """Converts a BrunoRequest (without scripts) into a Postman request dict."""
    request = {
        'method': bruno.method,
        'header': convert_headers(bruno.headers),
        'url': convert_url(bruno),
    }

    if bruno.body is not None and bruno.body.mode != 'none':
        request['body'] = convert_body(bruno.body)

    if bruno.auth is not None and bruno.auth.type != 'none':
        request['auth'] = convert_auth(bruno.auth)

    if bruno.docs:
        request['description'] = bruno.docs

    return request
