# -*- coding: utf-8 -*-
#
# Bru2Postman - Environment converter
# Author: Huberto Gastal Mayer (with AI help)
# License: GPLv3
# Project: Bru2Postman - A CLI tool for converting Bruno collections into Postman collections
#
# Bruno environments live in <collection>/environments/<name>.bru:
#
#   vars {
#     baseUrl: https://api.example.com
#     ~debug: true
#   }
#   vars:secret [
#     apiKey
#   ]
#

import uuid
from datetime import datetime, timezone

from .bruno_parser import parse_key_value, scan_sections
from .models import BrunoEnvironment, BrunoVariable, validate_postman_environment

EXPORTED_USING = 'bru2postman'


def parse_bruno_environment(text, name):
    """Parses an environment .bru file. The name comes from the file name."""
    variables = []
    by_key = {}

    for section, lines in scan_sections(text):
        if section == 'vars':
            for line in lines:
                stripped = line.strip()
                secret = False
                # Older files mark secrets inline: "secret apiKey: ..."
                if stripped.startswith('secret '):
                    secret = True
                    stripped = stripped[len('secret '):]
                parsed = parse_key_value(stripped)
                if not parsed:
                    continue
                key, value, enabled = parsed
                variable = BrunoVariable(key=key, value=value, enabled=enabled, secret=secret)
                by_key[key] = variable
                variables.append(variable)

        elif section == 'vars:secret':
            for line in lines:
                for raw_name in line.split(','):
                    key = raw_name.strip()
                    if not key:
                        continue
                    enabled = not key.startswith('~')
                    key = key.lstrip('~').strip()
                    if key in by_key:
                        by_key[key].secret = True
                        continue
                    variable = BrunoVariable(key=key, value='', enabled=enabled, secret=True)
                    by_key[key] = variable
                    variables.append(variable)

    return BrunoEnvironment(name=name, variables=variables)


def convert_environment(bruno_env):
    """Builds a validated Postman environment dict."""
    environment = {
        'id': str(uuid.uuid4()),
        'name': bruno_env.name,
        'values': [
            {
                'key': variable.key,
                'value': variable.value,
                'enabled': variable.enabled,
                'type': 'secret' if variable.secret else 'default',
            }
            for variable in bruno_env.variables
        ],
        '_postman_variable_scope': 'environment',
        '_postman_exported_at': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
        '_postman_exported_using': EXPORTED_USING,
    }
    return validate_postman_environment(environment)
