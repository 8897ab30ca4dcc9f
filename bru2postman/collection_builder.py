# -*- coding: utf-8 -*-
#
# Bru2Postman - Postman collection builder
# Author: Huberto Gastal Mayer (hubertogm@gmail.com)
# License: GPLv3 (https://www.gnu.org/licenses/gpl-3.0.html)
# Project: Bru2Postman - A CLI tool for converting Bruno collections into Postman collections
#
# Puts converted requests and scripts together into Postman items, and
# mirrors a Bruno folder tree into nested Postman folders.
#

import logging
from enum import Enum

from . import ast_script_converter, script_converter
from .errors import SchemaValidationError
from .models import POSTMAN_SCHEMA_URL, validate_postman_item
from .request_converter import convert_request
from .script_converter import PRE_REQUEST, TEST

log = logging.getLogger('bru2postman')

DEGRADED_WARNING = 'AST conversion failed, line based converter used instead'


class ScriptStrategy(Enum):
    """How scripts are converted. Chosen once per conversion."""
    TEXTUAL_ONLY = 'textual'
    TREE_WITH_FALLBACK = 'ast'


def resolve_strategy(use_ast):
    if isinstance(use_ast, ScriptStrategy):
        return use_ast
    return ScriptStrategy.TREE_WITH_FALLBACK if use_ast else ScriptStrategy.TEXTUAL_ONLY


def convert_script(script, role, strategy):
    """
    Converts one script with the given strategy.
    With TREE_WITH_FALLBACK a failed AST conversion is replaced right away by
    the line based result, with a warning saying so.
    """
    if strategy is ScriptStrategy.TREE_WITH_FALLBACK:
        result = ast_script_converter.convert_script(script, role)
        if result.succeeded:
            return result
        log.warning(f"AST conversion failed for {role} script, falling back to line based converter. "
                    f"({result.failure_detail})")
        fallback = script_converter.convert_script(script, role)
        return fallback.model_copy(update={'warnings': fallback.warnings + [DEGRADED_WARNING]})
    return script_converter.convert_script(script, role)


def _event(listen, lines):
    return {'listen': listen, 'script': {'type': 'text/javascript', 'exec': lines}}


def build_item(name, request, strategy=ScriptStrategy.TEXTUAL_ONLY, warnings=None):
    """
    Builds one Postman request item.
    Events are only attached for scripts that exist in the .bru file (an
    empty script block still counts). Script warnings are appended to
    'warnings' when a list is given.
    """
    item = {'name': name, 'request': convert_request(request)}

    events = []
    for listen, role, script in (('prerequest', PRE_REQUEST, request.pre_request_script),
                                 ('test', TEST, request.test_script)):
        if script is None:
            continue
        result = convert_script(script, role, strategy)
        events.append(_event(listen, result.rewritten_lines))
        if warnings is not None:
            warnings.extend(f"{name} ({role} script): {warning}" for warning in result.warnings)

    if events:
        item['event'] = events
    return item


def _sort_key(node):
    request = node.get('request')
    seq = request.meta.seq if request is not None else None
    return (seq is None, seq if seq is not None else 0, node['name'])


def build_items_from_tree(node, strategy=ScriptStrategy.TEXTUAL_ONLY, warnings=None, errors=None):
    """
    Mirrors a file tree node into a list of Postman items.

    Folders come first (alphabetical), then requests by their 'seq'. Files
    without a parsed request and folders left empty are skipped. When an
    'errors' list is given, an item failing schema validation is reported
    there and left out; otherwise the SchemaValidationError propagates.
    """
    directories = sorted((c for c in node.get('children', []) if c['type'] == 'directory'),
                         key=lambda c: c['name'])
    files = sorted((c for c in node.get('children', []) if c['type'] == 'file' and c.get('request') is not None),
                   key=_sort_key)

    items = []
    for directory in directories:
        children = build_items_from_tree(directory, strategy, warnings, errors)
        if children:
            items.append({'name': directory.get('display_name') or directory['name'], 'item': children})

    for file_node in files:
        request = file_node['request']
        try:
            item = validate_postman_item(build_item(request.meta.name, request, strategy, warnings))
        except SchemaValidationError as e:
            if errors is None:
                raise
            log.debug(f"Schema validation failed for {file_node['path']}: {e}")
            errors.append({
                'file_path': file_node['path'],
                'message': str(e),
                'type': 'validation',
                'phase': 'validate',
                'suggestion': 'Check the request fields; the converted item does not match the Postman schema',
            })
            continue
        items.append(item)
    return items


def build_postman_collection(name, items, strategy=ScriptStrategy.TEXTUAL_ONLY, warnings=None, errors=None):
    """
    Builds a Postman v2.1 collection dict.
    'items' is either a list of (name, BrunoRequest) pairs or the root node
    of a file tree.
    """
    strategy = resolve_strategy(strategy)
    collection = {
        'info': {
            'name': name,
            'schema': POSTMAN_SCHEMA_URL,
        },
        'item': [],
    }

    if isinstance(items, dict):
        collection['item'] = build_items_from_tree(items, strategy, warnings, errors)
    else:
        for item_name, request in items:
            collection['item'].append(build_item(item_name, request, strategy, warnings))

    return collection
