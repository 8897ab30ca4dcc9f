# -*- coding: utf-8 -*-
#
# Bru2Postman - Core Logic
# Author: Huberto Gastal Mayer (hubertogm@gmail.com)
# License: GPLv3
# Project: Bru2Postman - A CLI tool for converting Bruno collections into Postman collections
#
# Logging setup, configuration loading and the conversion drivers used by
# the CLI (single file, whole collection directory, environments).

import json
import logging
import os
import sys
import time

import yaml  # For loading bru2postman.yaml

from .bruno_parser import parse_bruno_file, parse_bruno_text, parse_folder_meta
from .collection_builder import build_postman_collection, resolve_strategy
from .environment_converter import convert_environment, parse_bruno_environment
from .errors import ConversionError, FileAccessError
from .file_helpers import read_text_file, write_text_file
from .models import validate_postman_collection

log = logging.getLogger('bru2postman')

CONFIG_FILENAMES = ('bru2postman.yaml', 'bru2postman.yml')
ENVIRONMENTS_DIR = 'environments'
SKIPPED_DIRS = ('node_modules', '__pycache__')
NON_REQUEST_FILES = ('collection.bru', 'folder.bru')
COLLECTION_SUFFIX = '.postman_collection.json'
ENVIRONMENT_SUFFIX = '.postman_environment.json'

PARSE_SUGGESTION = 'Check the .bru file syntax and ensure all required sections are present'


# --- ANSI Color Codes for Logging ---
class Color:
    """ANSI color codes for terminal output."""
    GREY = "\033[90m"
    CYAN = "\033[96m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    RED = "\033[91m"
    BOLD = "\033[1m"
    RESET = "\033[0m"


class ColorFormatter(logging.Formatter):
    """Custom formatter to add colors to console log messages."""

    FORMATS = {
        logging.DEBUG: logging.Formatter(f'{Color.GREY}DEBUG: %(message)s{Color.RESET}'),
        logging.INFO: logging.Formatter('%(message)s'),
        logging.WARNING: logging.Formatter(f'{Color.YELLOW}WARNING: %(message)s{Color.RESET}'),
        logging.ERROR: logging.Formatter(f'{Color.RED}ERROR: %(message)s{Color.RESET}'),
        logging.CRITICAL: logging.Formatter(f'{Color.BOLD}{Color.RED}CRITICAL: %(message)s{Color.RESET}'),
    }

    SUCCESS_PREFIXES = ("Conversion successful", "Conversion completed", "Converted environment", "Upload successful")

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno, self.FORMATS[logging.INFO])
        message = log_fmt.format(record)

        if record.levelno == logging.INFO:
            if record.message.startswith(self.SUCCESS_PREFIXES):
                message = f"{Color.GREEN}{message}{Color.RESET}"
            elif record.message.startswith("Uploading"):
                message = f"{Color.CYAN}{message}{Color.RESET}"
            elif record.message.startswith(("Converting collection", "Batch Conversion Report", "Summary:", "---")):
                message = f"{Color.BOLD}{message}{Color.RESET}"

        return message


# --- Logging Setup ---
def setup_logging(verbose=False, log_file=None, stream=None):
    """
    Configures the 'bru2postman' logger.
    Console gets INFO (DEBUG with verbose); the optional log file gets everything.
    """
    log.setLevel(logging.DEBUG)

    # Remove existing handlers to avoid duplicate logs
    if log.hasHandlers():
        for handler in log.handlers[:]:
            log.removeHandler(handler)
            handler.close()

    ch = logging.StreamHandler(stream or sys.stdout)
    ch.setLevel(logging.DEBUG if verbose else logging.INFO)
    ch.setFormatter(ColorFormatter())
    log.addHandler(ch)

    if log_file:
        log_dir = os.path.dirname(os.path.abspath(log_file))
        os.makedirs(log_dir, exist_ok=True)
        fh = logging.FileHandler(log_file, encoding='utf-8')
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s', datefmt='%Y-%m-%d %H:%M:%S'))
        log.addHandler(fh)
        log.debug(f"Log file: {log_file}")

    return log


# --- Configuration Loading ---
def find_config_file(input_dir):
    for filename in CONFIG_FILENAMES:
        config_path = os.path.join(input_dir, filename)
        if os.path.isfile(config_path):
            return config_path
    return None


def load_config(input_dir=None, config_path=None):
    """
    Loads bru2postman.yaml. An explicit config_path wins over the file found
    in input_dir. Returns an empty dict when there is nothing usable.
    """
    if config_path is None and input_dir:
        config_path = find_config_file(input_dir)
    if config_path is None:
        return {}

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f)
    except FileNotFoundError:
        log.warning(f"Config file not found: {config_path}")
        return {}
    except yaml.YAMLError as e:
        log.warning(f"YAML syntax error in config file {config_path}: {e}")
        return {}
    except OSError as e:
        log.warning(f"Could not read config file {config_path}: {e}")
        return {}

    if config_data is None:
        return {}
    if not isinstance(config_data, dict):
        log.warning(f"Invalid format in config file: {config_path}. Expected a dictionary.")
        return {}

    log.debug(f"Config loaded from {config_path}: {len(config_data)} keys.")
    return config_data


# --- Collection discovery ---
def scan_directory(directory, exclude_dirs=None):
    """
    Returns the sorted paths of every .bru file under 'directory'.
    Hidden directories, node_modules and 'exclude_dirs' are skipped, and
    collection.bru / folder.bru are left out since they are not requests.
    """
    if not os.path.isdir(directory):
        raise FileAccessError(directory, 'not-found', "directory not found")

    skipped = set(SKIPPED_DIRS) | set(exclude_dirs or [])
    found = []
    for root, dirs, files in os.walk(directory):
        dirs[:] = sorted(d for d in dirs if not d.startswith('.') and d not in skipped)
        for file in sorted(files):
            if file.endswith('.bru') and not file.startswith('.') and file not in NON_REQUEST_FILES:
                found.append(os.path.join(root, file))
    return sorted(found)


def _directory_node(name, path):
    node = {'name': name, 'path': path, 'type': 'directory', 'children': []}
    folder_file = os.path.join(path, 'folder.bru')
    if os.path.isfile(folder_file):
        try:
            folder_meta = parse_folder_meta(read_text_file(folder_file))
        except FileAccessError as e:
            log.warning(f"Could not read folder metadata {folder_file}: {e}")
            folder_meta = {}
        if folder_meta.get('name'):
            node['display_name'] = folder_meta['name']
    return node


def build_file_tree(files, root):
    """
    Turns a flat list of .bru paths into nested dict nodes:
    {'name', 'path', 'type': 'directory'|'file', 'children'}.
    Folders named in a folder.bru meta block get a 'display_name'.
    """
    tree = {'name': os.path.basename(os.path.normpath(root)), 'path': root, 'type': 'directory', 'children': []}

    for file_path in sorted(files):
        parts = os.path.relpath(file_path, root).split(os.sep)
        current = tree
        current_path = root
        for part in parts[:-1]:
            current_path = os.path.join(current_path, part)
            child = next((c for c in current['children'] if c['name'] == part and c['type'] == 'directory'), None)
            if child is None:
                child = _directory_node(part, current_path)
                current['children'].append(child)
            current = child
        current['children'].append({'name': parts[-1], 'path': file_path, 'type': 'file', 'children': []})

    return tree


def resolve_collection_name(directory, cli_name=None, config=None):
    """
    Picks the collection name: CLI, then COLLECTION_NAME from the config,
    then bruno.json, then the directory name. Returns (name, warnings).
    """
    warnings = []
    if cli_name:
        return cli_name, warnings
    if config and config.get('COLLECTION_NAME'):
        return str(config['COLLECTION_NAME']), warnings

    fallback = os.path.basename(os.path.normpath(directory))
    bruno_json = os.path.join(directory, 'bruno.json')
    if not os.path.exists(bruno_json):
        warnings.append("bruno.json not found, using directory name")
        return fallback, warnings

    try:
        metadata = json.loads(read_text_file(bruno_json))
    except (json.JSONDecodeError, FileAccessError) as e:
        warnings.append(f"Failed to parse bruno.json: {e}. Using directory name instead.")
        return fallback, warnings
    if not isinstance(metadata, dict):
        warnings.append("Failed to parse bruno.json: expected an object. Using directory name instead.")
        return fallback, warnings

    if str(metadata.get('version', '')) != '1':
        warnings.append(f"bruno.json has invalid version (expected \"1\", got \"{metadata.get('version')}\")")
    if metadata.get('type') != 'collection':
        warnings.append(f"bruno.json has invalid type (expected \"collection\", got \"{metadata.get('type')}\")")

    name = metadata.get('name')
    if not isinstance(name, str) or not name.strip():
        warnings.append("bruno.json has empty name, falling back to directory name")
        return fallback, warnings
    return name, warnings


def check_output_path(output_path):
    if not output_path.lower().endswith('.json'):
        ext = os.path.splitext(output_path)[1] or '(none)'
        raise ConversionError(f"Invalid output file: Expected .json file, got {ext}")


def write_json(path, data):
    write_text_file(path, json.dumps(data, indent=2, ensure_ascii=False))


# --- Conversion ---
def convert(source, use_ast=False, name=None, errors=None):
    """
    Converts raw .bru text, or the root node of a parsed file tree, into a
    validated Postman v2.1 collection dict.
    For a tree, items failing schema validation are left out and reported
    in 'errors' (and logged) instead of stopping the conversion.
    """
    strategy = resolve_strategy(use_ast)
    if isinstance(source, dict):
        if errors is None:
            errors = []
        collection_name = name or source.get('display_name') or source['name']
        collection = build_postman_collection(collection_name, source, strategy, errors=errors)
        for error in errors:
            log.warning(f"Skipped {error['file_path']}: {error['message']}")
    else:
        request = parse_bruno_text(source)
        collection = build_postman_collection(name or request.meta.name, [(request.meta.name, request)], strategy)
    return validate_postman_collection(collection)


def parse_tree_requests(node, errors):
    """Parses every file node in place ('request' key); failures go to 'errors'."""
    if node['type'] == 'file':
        try:
            log.debug(f"Processing: {node['path']}")
            node['request'] = parse_bruno_file(node['path'])
        except ConversionError as e:
            log.debug(f"Failed to process: {node['path']}")
            errors.append({
                'file_path': node['path'],
                'message': str(e),
                'type': 'file' if isinstance(e, FileAccessError) else 'parse',
                'phase': 'parse',
                'suggestion': PARSE_SUGGESTION,
            })
        return
    for child in node['children']:
        parse_tree_requests(child, errors)


def convert_file(file_path, output=None, name=None, use_ast=False):
    """
    Converts one .bru file and writes the collection.
    Returns (collection, output_path, warnings).
    """
    if not file_path.endswith('.bru'):
        ext = os.path.splitext(file_path)[1] or '(none)'
        raise ConversionError(f"Invalid input file: Expected .bru file, got {ext}")

    strategy = resolve_strategy(use_ast)
    log.debug(f"Parsing Bruno file {file_path}...")
    request = parse_bruno_file(file_path)
    log.debug(f"Parsed request: {request.method} {request.url}")

    if output:
        output_path = output
    else:
        base = os.path.splitext(os.path.basename(file_path))[0]
        output_path = os.path.join(os.path.dirname(file_path), f"{base}{COLLECTION_SUFFIX}")
    check_output_path(output_path)

    warnings = []
    collection = build_postman_collection(name or request.meta.name, [(request.meta.name, request)],
                                          strategy, warnings)
    collection = validate_postman_collection(collection)

    write_json(output_path, collection)
    log.info(f"Conversion successful: {output_path}")
    return collection, output_path, warnings


def convert_environments(directory, output_dir):
    """
    Converts environments/<name>.bru files into <name>.postman_environment.json
    files in output_dir. A failing environment is logged and skipped.
    Returns the written paths.
    """
    env_dir = os.path.join(directory, ENVIRONMENTS_DIR)
    if not os.path.isdir(env_dir):
        log.debug("No environments folder found, skipping environment conversion")
        return []

    written = []
    for env_file in scan_directory(env_dir):
        env_name = os.path.splitext(os.path.basename(env_file))[0]
        try:
            content = read_text_file(env_file)
            if 'vars' not in content:
                log.debug(f"Skipping {env_file}: no vars section")
                continue
            environment = convert_environment(parse_bruno_environment(content, env_name))
            env_output = os.path.join(output_dir, f"{env_name}{ENVIRONMENT_SUFFIX}")
            write_json(env_output, environment)
        except ConversionError as e:
            log.warning(f"Failed to convert environment {env_file}: {e}")
            continue
        log.info(f"Converted environment: {env_output}")
        written.append(env_output)
    return written


def convert_directory(directory, output=None, name=None, use_ast=False, include_env=False,
                      exclude_dirs=None, config=None):
    """
    Converts a whole Bruno collection directory.
    Files that fail to parse or validate are reported and left out; the
    rest of the collection is still written. Returns (collection, report).
    """
    start_time = time.time()
    strategy = resolve_strategy(use_ast)

    files = scan_directory(directory, exclude_dirs)
    request_files = [f for f in files
                     if os.path.relpath(f, directory).split(os.sep)[0] != ENVIRONMENTS_DIR]
    if len(files) > len(request_files):
        log.debug(f"Excluded {len(files) - len(request_files)} environment files from request conversion")
    if not request_files:
        raise ConversionError(f"No .bru request files found in {directory}")

    collection_name, warnings = resolve_collection_name(directory, name, config)
    for warning in warnings:
        log.warning(warning)
    log.info(f"Converting collection '{collection_name}' ({len(request_files)} files)")

    output_path = output or os.path.join(directory, f"{collection_name}{COLLECTION_SUFFIX}")
    check_output_path(output_path)

    tree = build_file_tree(request_files, directory)
    errors = []
    parse_tree_requests(tree, errors)

    script_warnings = []
    collection = build_postman_collection(collection_name, tree, strategy, script_warnings, errors)
    collection = validate_postman_collection(collection)
    for warning in script_warnings:
        log.debug(warning)

    write_json(output_path, collection)

    environments = []
    if include_env:
        environments = convert_environments(directory, os.path.dirname(os.path.abspath(output_path)))

    total = len(request_files)
    success_count = total - len(errors)
    report = {
        'total_files': total,
        'success_count': success_count,
        'failure_count': len(errors),
        'duration': round(time.time() - start_time, 3),
        'errors': errors,
        'warnings': warnings + script_warnings,
        'output_path': output_path,
        'environments': environments,
        'success_rate': (success_count / total) * 100 if total else 0,
    }
    return collection, report


def format_report(report):
    """Plain text batch report."""
    lines = [
        "Batch Conversion Report",
        "=======================",
        "",
        "Summary:",
        f"  Total files: {report['total_files']}",
        f"  Successful: {report['success_count']} ({report['success_rate']:.1f}%)",
        f"  Failed: {report['failure_count']} ({100 - report['success_rate']:.1f}%)",
        f"  Duration: {report['duration']:.2f}s",
    ]
    if report['errors']:
        lines.append("")
        lines.append("Errors:")
        for index, error in enumerate(report['errors'], 1):
            lines.append(f"  {index}. {error['file_path']}")
            lines.append(f"     {error['message']}")
            if error.get('suggestion'):
                lines.append(f"     Suggestion: {error['suggestion']}")
    return "\n".join(lines)
