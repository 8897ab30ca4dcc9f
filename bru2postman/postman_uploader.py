# -*- coding: utf-8 -*-
#
# Bru2Postman - Postman API client
# Author: Huberto Gastal Mayer (hubertogm@gmail.com)
# License: GPLv3 (https://www.gnu.org/licenses/gpl-3.0.html)
# Project: Bru2Postman - A CLI tool for converting Bruno collections into Postman collections
#

import logging
import os
import time

import requests

from .errors import UploadError

log = logging.getLogger('bru2postman')

POSTMAN_API_URL = 'https://api.getpostman.com'
API_KEY_ENV_VAR = 'POSTMAN_API_KEY'


def resolve_api_key(cli_key=None):
    """--postman-api-key wins over the POSTMAN_API_KEY environment variable."""
    return cli_key or os.environ.get(API_KEY_ENV_VAR)


class PostmanUploader:
    """Pushes a converted collection to an existing collection in Postman Cloud."""

    def __init__(self, base_url=POSTMAN_API_URL, timeout=30):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

    def update_collection(self, collection_id, collection, api_key):
        if not collection_id:
            raise UploadError("A Postman collection id is required for upload")
        if not api_key:
            raise UploadError(f"A Postman API key is required for upload (use --postman-api-key or {API_KEY_ENV_VAR})")

        url = f"{self.base_url}/collections/{collection_id}"
        headers = {
            'Content-Type': 'application/json',
            'X-Api-Key': api_key,
        }

        start_time = time.time()
        try:
            log.info(f"Uploading collection to {url}")
            response = requests.put(url, headers=headers, json={'collection': collection}, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise UploadError(f"Failed to update collection: {e}") from e

        duration_ms = (time.time() - start_time) * 1000
        log.debug(f"STATUS: {response.status_code} {response.reason} ({duration_ms:.0f} ms)")

        if not response.ok:
            raise UploadError(
                f"Failed to update collection: Postman API error: {response.status_code} {response.reason} - {response.text}",
                status_code=response.status_code,
            )
        return response
