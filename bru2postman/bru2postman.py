# -*- coding: utf-8 -*-
#
# Bru2Postman - Bruno to Postman Converter
# Author: Huberto Gastal Mayer (hubertogm@gmail.com)
# License: GPLv3 (https://www.gnu.org/licenses/gpl-3.0.html)
# Project: Bru2Postman - A CLI tool for converting Bruno collections into Postman collections
#

import argparse
import json
import os
import sys

from . import __version__
from .core_logic import (
    convert_directory,
    convert_file,
    format_report,
    load_config,
    setup_logging,
)
from .errors import ConversionError
from .postman_uploader import PostmanUploader, resolve_api_key


def _setting(cli_value, config, key, default=None):
    """CLI flags win over the config file."""
    if cli_value not in (None, False):
        return cli_value
    return config.get(key, default)


def upload_collection(args, config, collection, log):
    collection_id = _setting(args.collection_id, config, 'POSTMAN_COLLECTION_ID')
    api_key = resolve_api_key(args.postman_api_key)
    PostmanUploader().update_collection(collection_id, collection, api_key)
    log.info(f"Upload successful: collection {collection_id} updated in Postman")


def handle_convert_command(args):
    """
    Handles the logic for the 'convert' command.
    """
    # With --json the report owns stdout
    log = setup_logging(verbose=args.verbose, log_file=args.log_file,
                        stream=sys.stderr if args.json else None)

    input_path = os.path.abspath(args.input)
    if not os.path.exists(input_path):
        log.error(f"Input not found: {input_path}")
        sys.exit(1)

    config_dir = input_path if os.path.isdir(input_path) else os.path.dirname(input_path)
    config = load_config(config_dir, args.config)

    strategy = _setting(args.experimental_ast, config, 'SCRIPT_CONVERSION', 'textual')
    use_ast = strategy is True or str(strategy).lower() == 'ast'
    if use_ast:
        log.debug("Using experimental AST-based script conversion")

    output = _setting(args.output, config, 'OUTPUT')
    if output:
        output = os.path.abspath(output)

    report = None
    try:
        if os.path.isdir(input_path):
            collection, report = convert_directory(
                input_path,
                output=output,
                name=args.name,
                use_ast=use_ast,
                include_env=bool(_setting(args.env, config, 'INCLUDE_ENV', False)),
                exclude_dirs=config.get('EXCLUDE_DIRS') or [],
                config=config,
            )
        else:
            collection, _, warnings = convert_file(
                input_path,
                output=output,
                name=args.name or config.get('COLLECTION_NAME'),
                use_ast=use_ast,
            )
            for warning in warnings:
                log.debug(warning)

        if args.upload:
            upload_collection(args, config, collection, log)

    except ConversionError as e:
        log.error(f"Conversion failed: {e}", exc_info=args.verbose)
        sys.exit(1)

    if report is not None:
        if args.json:
            print(json.dumps(report, indent=2, ensure_ascii=False))
        else:
            log.info("")
            log.info(format_report(report))
            if report['success_count'] > 0:
                log.info(f"Conversion completed: {report['output_path']}")
        if report['failure_count'] > 0:
            sys.exit(1)


def main(argv=None):
    description = (
        f"Bru2Postman v{__version__}\n"
        "License: GPLv3 (https://www.gnu.org/licenses/gpl-3.0.html)\n"
        "Author: Huberto Gastal Mayer (hubertogm@gmail.com)\n\n"
        "Bru2Postman - Converts Bruno collections (.bru) into Postman v2.1 collections."
    )
    parser = argparse.ArgumentParser(
        prog='bru2postman',
        description=description,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest='command', required=True, help='Available commands')

    # --- 'convert' command ---
    parser_convert = subparsers.add_parser(
        'convert',
        help='Convert a .bru file or a Bruno collection directory.',
        description='Converts a single .bru request or a whole Bruno collection directory into a Postman v2.1 collection (.json).'
    )
    parser_convert.add_argument('input', help="Path to a .bru file or a Bruno collection directory.")
    parser_convert.add_argument("-o", "--output", default=None,
                                help="Output .json file (default: <input>.postman_collection.json).")
    parser_convert.add_argument("-n", "--name", default=None, help="Collection name (overrides bruno.json).")
    parser_convert.add_argument("-v", "--verbose", action='store_true', help="Show debug output.")
    parser_convert.add_argument("--json", action='store_true', help="Print the batch report as JSON.")
    parser_convert.add_argument("--env", action='store_true',
                                help="Also convert environments/*.bru into Postman environment files.")
    parser_convert.add_argument("--experimental-ast", action='store_true',
                                help="Use AST-based script conversion (falls back to line based on failure).")
    parser_convert.add_argument("--upload", action='store_true',
                                help="Upload the converted collection to Postman Cloud.")
    parser_convert.add_argument("--collection-id", default=None, help="Postman collection id to update.")
    parser_convert.add_argument("--postman-api-key", default=None,
                                help="Postman API key (default: POSTMAN_API_KEY environment variable).")
    parser_convert.add_argument("--config", default=None,
                                help="Config file (default: bru2postman.yaml in the input directory).")
    parser_convert.add_argument("--log-file", default=None, help="Also write the full log to this file.")
    parser_convert.set_defaults(func=handle_convert_command)

    args = parser.parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
