# -*- coding: utf-8 -*-
#
# Bru2Postman - Bruno to Postman Converter
# Author: Huberto Gastal Mayer (hubertogm@gmail.com)
# License: GPLv3 (https://www.gnu.org/licenses/gpl-3.0.html)
# Project: Bru2Postman - A CLI tool for converting Bruno collections into Postman collections
#
# Typed records for both sides of the conversion.
# Bruno records are produced by bruno_parser; Postman records are only used
# to validate (and normalize) the dictionaries built by the converters.
#

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import SchemaValidationError

HTTP_METHODS = ('GET', 'POST', 'PUT', 'DELETE', 'PATCH', 'HEAD', 'OPTIONS')
POSTMAN_SCHEMA_URL = 'https://schema.getpostman.com/json/collection/v2.1.0/collection.json'

HttpMethod = Literal['GET', 'POST', 'PUT', 'DELETE', 'PATCH', 'HEAD', 'OPTIONS']
BodyMode = Literal['json', 'xml', 'text', 'sparql', 'graphql', 'form-urlencoded', 'multipart', 'other', 'none']
AuthType = Literal['none', 'basic', 'bearer', 'apikey']


# --- Bruno (input) records ---

class BrunoMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    type: str  # http / graphql
    seq: Optional[int] = None


class BrunoKeyValue(BaseModel):
    """A header, query parameter or path parameter line."""
    model_config = ConfigDict(frozen=True)

    key: str
    value: str
    enabled: bool = True


class FormDataEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    value: str
    type: Literal['text', 'file'] = 'text'
    enabled: bool = True


class BrunoBody(BaseModel):
    model_config = ConfigDict(frozen=True)

    mode: BodyMode
    content: str = ''
    form_data: Optional[List[FormDataEntry]] = None


class BrunoAuth(BaseModel):
    """
    basic  -> username, password
    bearer -> token
    apikey -> key, value, placement (header / query)
    """
    model_config = ConfigDict(frozen=True)

    type: AuthType
    credentials: Dict[str, str] = Field(default_factory=dict)


class BrunoRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    meta: BrunoMeta
    method: HttpMethod
    url: str = Field(min_length=1)
    headers: List[BrunoKeyValue] = Field(default_factory=list)
    query_params: List[BrunoKeyValue] = Field(default_factory=list)
    path_params: List[BrunoKeyValue] = Field(default_factory=list)
    body: Optional[BrunoBody] = None
    auth: Optional[BrunoAuth] = None
    pre_request_script: Optional[str] = None
    test_script: Optional[str] = None
    docs: Optional[str] = None


class BrunoVariable(BaseModel):
    key: str
    value: str = ''
    enabled: bool = True
    secret: bool = False


class BrunoEnvironment(BaseModel):
    name: str
    variables: List[BrunoVariable] = Field(default_factory=list)


# --- Script conversion ---

class ScriptConversionResult(BaseModel):
    """Outcome of converting one script. Never modified after creation."""
    model_config = ConfigDict(frozen=True)

    rewritten_lines: List[str]
    warnings: List[str] = Field(default_factory=list)
    succeeded: bool = True
    failure_detail: Optional[str] = None


# --- Postman (output) records ---

class PostmanHeader(BaseModel):
    key: str
    value: str
    type: str = 'text'
    disabled: Optional[bool] = None
    description: Optional[str] = None


class PostmanQueryParam(BaseModel):
    key: str
    value: str
    disabled: Optional[bool] = None
    description: Optional[str] = None


class PostmanPathVariable(BaseModel):
    key: str
    value: str
    description: Optional[str] = None


class PostmanUrl(BaseModel):
    raw: str
    protocol: Optional[str] = None
    host: Optional[List[str]] = None
    port: Optional[str] = None
    path: Optional[List[str]] = None
    query: Optional[List[PostmanQueryParam]] = None
    variable: Optional[List[PostmanPathVariable]] = None
    hash: Optional[str] = None


class PostmanKeyValue(BaseModel):
    key: str
    value: str
    type: Optional[str] = None
    disabled: Optional[bool] = None
    description: Optional[str] = None


class PostmanFormData(BaseModel):
    key: str
    value: Optional[str] = None
    src: Optional[str] = None
    type: Literal['text', 'file']
    disabled: Optional[bool] = None
    description: Optional[str] = None


class PostmanRawOptions(BaseModel):
    language: Optional[Literal['json', 'xml', 'html', 'text', 'javascript']] = None


class PostmanBodyOptions(BaseModel):
    raw: Optional[PostmanRawOptions] = None


class PostmanBody(BaseModel):
    mode: Literal['raw', 'urlencoded', 'formdata', 'file', 'graphql']
    raw: Optional[str] = None
    urlencoded: Optional[List[PostmanKeyValue]] = None
    formdata: Optional[List[PostmanFormData]] = None
    options: Optional[PostmanBodyOptions] = None


class PostmanAuthAttribute(BaseModel):
    key: str
    value: str
    type: str = 'string'


class PostmanAuth(BaseModel):
    type: Literal['noauth', 'basic', 'bearer', 'apikey', 'oauth2', 'awsv4', 'digest', 'hawk']
    basic: Optional[List[PostmanAuthAttribute]] = None
    bearer: Optional[List[PostmanAuthAttribute]] = None
    apikey: Optional[List[PostmanAuthAttribute]] = None


class PostmanScript(BaseModel):
    type: Literal['text/javascript'] = 'text/javascript'
    exec: List[str]


class PostmanEvent(BaseModel):
    listen: Literal['prerequest', 'test']
    script: PostmanScript


class PostmanRequest(BaseModel):
    method: str
    header: List[PostmanHeader] = Field(default_factory=list)
    url: PostmanUrl
    body: Optional[PostmanBody] = None
    auth: Optional[PostmanAuth] = None
    description: Optional[str] = None


class PostmanItem(BaseModel):
    """Either a request (leaf) or a folder (group), never both."""

    name: str
    description: Optional[str] = None
    item: Optional[List['PostmanItem']] = None
    request: Optional[PostmanRequest] = None
    event: Optional[List[PostmanEvent]] = None

    @model_validator(mode='after')
    def check_leaf_or_group(self):
        if (self.item is None) == (self.request is None):
            raise ValueError("an item must have either 'request' or 'item', not both or neither")
        if self.item is not None and self.event:
            raise ValueError("a folder item cannot carry request events")
        return self


class PostmanInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1)
    schema_url: str = Field(default=POSTMAN_SCHEMA_URL, alias='schema')
    description: Optional[str] = None


class PostmanCollection(BaseModel):
    info: PostmanInfo
    item: List[PostmanItem]


class PostmanEnvironmentValue(BaseModel):
    key: str
    value: str
    enabled: bool = True
    type: Literal['default', 'secret'] = 'default'


class PostmanEnvironment(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    values: List[PostmanEnvironmentValue]
    variable_scope: Literal['environment'] = Field(default='environment', alias='_postman_variable_scope')
    exported_at: str = Field(alias='_postman_exported_at')
    exported_using: str = Field(alias='_postman_exported_using')


# --- Validation helpers ---

def format_validation_errors(error):
    """Turns a pydantic ValidationError into 'path: message' lines."""
    issues = []
    for err in error.errors():
        location = '.'.join(str(part) for part in err.get('loc', ()))
        issues.append(f"{location or '<root>'}: {err.get('msg', 'invalid value')}")
    return issues


def _validate(model, data, subject):
    try:
        validated = model.model_validate(data)
    except ValidationError as e:
        raise SchemaValidationError(subject, format_validation_errors(e)) from e
    return validated.model_dump(by_alias=True, exclude_none=True)


def validate_postman_item(item):
    """Validates one item and returns its normalized dictionary."""
    return _validate(PostmanItem, item, f"Postman item '{item.get('name', '?')}'")


def validate_postman_collection(collection):
    """Validates a whole collection and returns its normalized dictionary."""
    return _validate(PostmanCollection, collection, "Postman collection")


def validate_postman_environment(environment):
    return _validate(PostmanEnvironment, environment, "Postman environment")
