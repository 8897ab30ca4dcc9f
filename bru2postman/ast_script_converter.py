# -*- coding: utf-8 -*-
#
# Bru2Postman - AST based script converter
# Author: Huberto Gastal Mayer (with AI help)
# License: GPLv3
# Project: Bru2Postman - A CLI tool for converting Bruno collections into Postman collections
#
# Parses a Bruno script with tree-sitter, rewrites the nodes that use the
# Bruno API and prints the tree back to source. Text that is not rewritten
# (comments, formatting, unknown code) is copied byte for byte.
#
# Unlike the line based converter this one understands the structure of the
# script: it only touches real calls and member accesses, wraps 'res.body'
# into a call, turns 'res.headers[name]' into 'pm.response.headers.get(name)'
# and renames 'responseBody' variables, which clash with a Postman sandbox
# global, through scope lookup.
#
# Any failure (syntax errors included) is reported as succeeded=False with
# the original script, so the caller can fall back to the line converter.
#

import logging

import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language, Parser

from .errors import ScriptConversionDegradation
from .models import ScriptConversionResult
from .script_converter import (
    BARE_CALL_MAPPINGS,
    BRU_API_MAPPINGS,
    PARTIAL_CONVERSION_MARKER,
    PARTIAL_CONVERSION_WARNING,
    PRE_REQUEST,
    RES_API_MAPPINGS,
    TEST,
    check_role,
)

log = logging.getLogger('bru2postman')

RESERVED_NAME = 'responseBody'
RENAMED_NAME = 'parsedResponseBody'

FALLBACK_WARNING = 'AST conversion failed - falling back to line based converter'

FUNCTION_SCOPES = (
    'function_declaration',
    'function_expression',
    'function',
    'generator_function_declaration',
    'generator_function',
    'arrow_function',
    'method_definition',
)
BLOCK_SCOPES = ('program', 'statement_block', 'switch_body', 'class_static_block')
IDENTIFIER_TYPES = ('identifier', 'shorthand_property_identifier', 'shorthand_property_identifier_pattern')


# --- AST provider ---

def default_languages():
    """JavaScript first (decorators and JSX included), TypeScript for typed scripts."""
    return [
        ('javascript', Language(tree_sitter_javascript.language())),
        ('typescript', Language(tree_sitter_typescript.language_typescript())),
    ]


class ScriptAstProvider:
    """
    Turns script source into a syntax tree.
    Each configured grammar is tried in turn; the first one that parses the
    script without errors wins. Any tree-sitter grammar whose node names
    follow the JavaScript grammar can be plugged in.
    """

    def __init__(self, languages=None):
        self._languages = languages

    @property
    def languages(self):
        if self._languages is None:
            self._languages = default_languages()
        return self._languages

    def parse(self, source):
        problems = []
        for name, language in self.languages:
            tree = Parser(language).parse(source)
            if not tree.root_node.has_error:
                return tree
            problems.append(f"{name}: {describe_syntax_error(tree.root_node)}")
        raise ScriptConversionDegradation(f"Script could not be parsed ({'; '.join(problems)})")


def describe_syntax_error(root):
    """Location of the first ERROR / MISSING node."""
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == 'ERROR' or node.is_missing:
            row, column = node.start_point
            kind = 'missing token' if node.is_missing else 'syntax error'
            return f"{kind} at line {row + 1}, column {column + 1}"
        stack.extend(reversed([child for child in node.children if child.has_error or child.is_missing]))
    return "syntax error"


_default_provider = None


def default_provider():
    global _default_provider
    if _default_provider is None:
        _default_provider = ScriptAstProvider()
    return _default_provider


# --- Scope lookup for the responseBody rename ---

def binding_identifiers(pattern):
    """Identifier nodes bound by a declaration name or parameter pattern."""
    if pattern is None:
        return
    if pattern.type in ('identifier', 'shorthand_property_identifier_pattern'):
        yield pattern
    elif pattern.type == 'pair_pattern':
        yield from binding_identifiers(pattern.child_by_field_name('value'))
    elif pattern.type in ('assignment_pattern', 'object_assignment_pattern'):
        yield from binding_identifiers(pattern.child_by_field_name('left'))
    elif pattern.type in ('object_pattern', 'array_pattern', 'rest_pattern', 'formal_parameters',
                          'required_parameter', 'optional_parameter'):
        for child in pattern.named_children:
            yield from binding_identifiers(child)


def binds(pattern, name, text_of):
    return any(text_of(node) == name for node in binding_identifiers(pattern))


class ScopeResolver:
    """Finds every identifier that refers to a given variable binding."""

    def __init__(self, text_of):
        self.text_of = text_of

    def declaration_scope(self, declarator):
        declaration = declarator.parent
        if declaration is None:
            return None
        if declaration.type == 'variable_declaration':
            wanted = FUNCTION_SCOPES + ('program',)
        else:
            if declaration.parent is not None and declaration.parent.type == 'for_statement':
                return declaration.parent
            wanted = BLOCK_SCOPES
        node = declaration.parent
        while node is not None and node.type not in wanted:
            node = node.parent
        return node

    def loop_scope(self, loop):
        """Scope of a for-in / for-of header binding: the loop itself for let/const."""
        if self.text_of(loop.child_by_field_name('kind')) != 'var':
            return loop
        node = loop.parent
        while node is not None and node.type not in FUNCTION_SCOPES + ('program',):
            node = node.parent
        return node

    def declares_var(self, node, name):
        """'var' declarations of name below node, not crossing nested functions."""
        for child in node.named_children:
            if child.type in FUNCTION_SCOPES:
                continue
            if child.type == 'variable_declaration':
                for declarator in child.named_children:
                    if declarator.type == 'variable_declarator' and \
                            binds(declarator.child_by_field_name('name'), name, self.text_of):
                        return True
            if child.type == 'for_in_statement':
                kind = child.child_by_field_name('kind')
                if kind is not None and self.text_of(kind) == 'var' and \
                        binds(child.child_by_field_name('left'), name, self.text_of):
                    return True
            if self.declares_var(child, name):
                return True
        return False

    def declares(self, node, name):
        """True when node opens a scope that re-declares name (shadowing it)."""
        if node.type in FUNCTION_SCOPES:
            if node.type in ('function_expression', 'function', 'generator_function'):
                own_name = node.child_by_field_name('name')
                if own_name is not None and self.text_of(own_name) == name:
                    return True
            for field in ('parameters', 'parameter'):
                if binds(node.child_by_field_name(field), name, self.text_of):
                    return True
            body = node.child_by_field_name('body')
            return body is not None and self.declares_var(body, name)

        if node.type in BLOCK_SCOPES:
            for child in node.named_children:
                if child.type == 'lexical_declaration':
                    for declarator in child.named_children:
                        if declarator.type == 'variable_declarator' and \
                                binds(declarator.child_by_field_name('name'), name, self.text_of):
                            return True
                elif child.type in ('class_declaration', 'function_declaration', 'generator_function_declaration'):
                    declared = child.child_by_field_name('name')
                    if declared is not None and self.text_of(declared) == name:
                        return True
            return False

        if node.type == 'for_statement':
            initializer = node.child_by_field_name('initializer')
            if initializer is not None and initializer.type == 'lexical_declaration':
                return any(binds(d.child_by_field_name('name'), name, self.text_of)
                           for d in initializer.named_children if d.type == 'variable_declarator')
            return False

        if node.type == 'for_in_statement':
            kind = node.child_by_field_name('kind')
            return kind is not None and self.text_of(kind) != 'var' and \
                binds(node.child_by_field_name('left'), name, self.text_of)

        if node.type == 'catch_clause':
            return binds(node.child_by_field_name('parameter'), name, self.text_of)

        return False

    def references(self, scope, name):
        """Spans of identifiers in scope that resolve to the binding declared there."""
        spans = set()
        stack = list(scope.children)
        while stack:
            node = stack.pop()
            if node.type in IDENTIFIER_TYPES and self.text_of(node) == name:
                spans.add((node.start_byte, node.end_byte))
                continue
            if self.declares(node, name):
                continue
            stack.extend(node.children)
        return spans


# --- Rewriter ---

def span_of(node):
    return node.start_byte, node.end_byte


class ScriptRewriter:
    """Rewrites one parsed script. Use once."""

    def __init__(self, source, tree, role):
        self.source = source
        self.tree = tree
        self.role = role
        self.warnings = []
        self.has_unmappable_code = False
        self.renamed_spans = set()
        self.renamed_to = None
        self.rules = {
            'call_expression': self.rewrite_call,
            'member_expression': self.rewrite_member,
            'subscript_expression': self.rewrite_subscript,
            'identifier': self.rewrite_identifier,
            'shorthand_property_identifier': self.rewrite_shorthand,
            'shorthand_property_identifier_pattern': self.rewrite_shorthand,
        }

    # --- helpers ---

    def slice(self, start, end):
        return self.source[start:end].decode('utf-8')

    def text(self, node):
        return self.slice(node.start_byte, node.end_byte)

    def flag_unmappable(self, message):
        self.has_unmappable_code = True
        self.warnings.append(message)

    def is_callee(self, node):
        parent = node.parent
        if parent is None or parent.type != 'call_expression':
            return False
        callee = parent.child_by_field_name('function')
        return callee is not None and span_of(callee) == span_of(node)

    def is_identifier(self, node, name):
        return node is not None and node.type == 'identifier' and self.text(node) == name

    def is_rooted_at(self, node, name):
        """True for a member chain like name.a.b whose innermost object is the identifier name."""
        while node is not None and node.type == 'member_expression':
            node = node.child_by_field_name('object')
        return self.is_identifier(node, name)

    def is_member(self, node, object_name, property_name):
        return node is not None and node.type == 'member_expression' and \
            self.is_identifier(node.child_by_field_name('object'), object_name) and \
            self.text(node.child_by_field_name('property')) == property_name

    # --- printing ---

    def render(self, node):
        rule = self.rules.get(node.type)
        if rule is not None:
            rewritten = rule(node)
            if rewritten is not None:
                return rewritten
        return self.render_children(node)

    def render_children(self, node, overrides=None):
        """Prints node from its children, replacing the ones listed in overrides."""
        if node.child_count == 0:
            return self.text(node)
        overrides = overrides or {}
        pieces = []
        cursor = node.start_byte
        for child in node.children:
            pieces.append(self.slice(cursor, child.start_byte))
            span = span_of(child)
            pieces.append(overrides[span] if span in overrides else self.render(child))
            cursor = child.end_byte
        pieces.append(self.slice(cursor, node.end_byte))
        return ''.join(pieces)

    # --- rules ---

    def rewrite_call(self, node):
        callee = node.child_by_field_name('function')
        if callee is None:
            return None

        # test() / expect()
        if callee.type == 'identifier':
            target = BARE_CALL_MAPPINGS.get(self.text(callee))
            if target:
                return self.render_children(node, {span_of(callee): target})
            return None

        # bru.setVar() and friends
        if callee.type == 'member_expression' and self.is_identifier(callee.child_by_field_name('object'), 'bru'):
            prop = callee.child_by_field_name('property')
            if prop is None or prop.type != 'property_identifier':
                return None
            method = self.text(prop)
            target = BRU_API_MAPPINGS.get(method)
            if target:
                return self.render_children(node, {span_of(callee): target})
            self.flag_unmappable(f"Unmappable Bruno API: bru.{method}")
            return None

        # bru.runner.skipRequest() and other nested bru namespaces
        if callee.type == 'member_expression' and self.is_rooted_at(callee, 'bru'):
            self.flag_unmappable(f"Unmappable Bruno API: {self.text(callee)}")
        return None

    def rewrite_member(self, node):
        if self.role != TEST:
            return None
        obj = node.child_by_field_name('object')
        prop = node.child_by_field_name('property')
        if not self.is_identifier(obj, 'res') or prop is None or prop.type != 'property_identifier':
            return None

        field = self.text(prop)
        target = RES_API_MAPPINGS.get(field)
        if target is None:
            self.flag_unmappable(f"Unmappable Bruno response property: res.{field}")
            return None
        if target.endswith('()') and self.is_callee(node):
            return target[:-2]
        return target

    def rewrite_subscript(self, node):
        if self.role != TEST:
            return None
        obj = node.child_by_field_name('object')
        index = node.child_by_field_name('index')
        if obj is None or index is None or obj.type != 'member_expression':
            return None

        is_res_headers = self.is_member(obj, 'res', 'headers')
        inner = obj.child_by_field_name('object')
        is_pm_headers = self.text(obj.child_by_field_name('property')) == 'headers' and \
            self.is_member(inner, 'pm', 'response')
        if not (is_res_headers or is_pm_headers):
            return None
        return f"pm.response.headers.get({self.render(index)})"

    def rewrite_identifier(self, node):
        if span_of(node) in self.renamed_spans:
            return self.renamed_to
        return None

    def rewrite_shorthand(self, node):
        if span_of(node) in self.renamed_spans:
            return f"{self.text(node)}: {self.renamed_to}"
        return None

    # --- responseBody rename ---

    def plan_rename(self, root):
        declarators = []
        stack = [root]
        while stack:
            node = stack.pop()
            if node.type == 'variable_declarator' and binds(node.child_by_field_name('name'), RESERVED_NAME, self.text):
                declarators.append(node)
            # for (const responseBody of items) has no declarator node
            elif node.type == 'for_in_statement' and node.child_by_field_name('kind') is not None and \
                    binds(node.child_by_field_name('left'), RESERVED_NAME, self.text):
                declarators.append(node)
            stack.extend(node.children)
        if not declarators:
            return

        resolver = ScopeResolver(self.text)
        for declarator in declarators:
            if declarator.type == 'for_in_statement':
                scope = resolver.loop_scope(declarator)
            else:
                scope = resolver.declaration_scope(declarator)
            if scope is not None:
                self.renamed_spans |= resolver.references(scope, RESERVED_NAME)
        if self.renamed_spans:
            self.renamed_to = self.free_name(RENAMED_NAME)

    def free_name(self, base):
        """base, or base2, base3... when the script already uses it."""
        used = set()
        stack = [self.tree.root_node]
        while stack:
            node = stack.pop()
            if node.type in IDENTIFIER_TYPES:
                used.add(self.text(node))
            stack.extend(node.children)
        candidate, counter = base, 1
        while candidate in used:
            counter += 1
            candidate = f"{base}{counter}"
        return candidate

    # --- entry point ---

    def run(self):
        root = self.tree.root_node
        if self.role == TEST:
            self.plan_rename(root)

        script = self.slice(0, root.start_byte) + self.render(root) + self.slice(root.end_byte, len(self.source))

        warnings = list(self.warnings)
        if self.has_unmappable_code:
            script = f"{PARTIAL_CONVERSION_MARKER}\n{script}"
            warnings.append(PARTIAL_CONVERSION_WARNING)
        if self.renamed_to:
            warnings.append(
                f'Variable "{RESERVED_NAME}" renamed to "{self.renamed_to}" to avoid Postman sandbox conflict'
            )

        return ScriptConversionResult(rewritten_lines=script.split('\n'), warnings=warnings, succeeded=True)


def convert_script(script, role, provider=None):
    """
    Converts a Bruno script through its syntax tree.
    Never raises for a bad script: failures come back with succeeded=False,
    the original text and the reason in failure_detail.
    """
    check_role(role)
    try:
        source = script.encode('utf-8')
        tree = (provider or default_provider()).parse(source)
        return ScriptRewriter(source, tree, role).run()
    except Exception as e:
        log.debug(f"AST conversion of {role} script failed: {e}", exc_info=True)
        return ScriptConversionResult(
            rewritten_lines=script.split('\n'),
            warnings=[FALLBACK_WARNING],
            succeeded=False,
            failure_detail=f"AST conversion failed: {e}",
        )


def convert_pre_request_script(script, provider=None):
    return convert_script(script, PRE_REQUEST, provider)


def convert_test_script(script, provider=None):
    return convert_script(script, TEST, provider)
