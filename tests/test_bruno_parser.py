import pytest

from bru2postman.bruno_parser import (
    block_text,
    parse_bruno_file,
    parse_bruno_text,
    parse_folder_meta,
    parse_key_value,
    scan_sections,
    section_kind,
    sub_kind,
    BODY_MODES,
    AUTH_MODES,
)
from bru2postman.errors import FileAccessError, StructuralError
from bru2postman.request_converter import convert_request

MINIMAL = """meta {
  name: Get Users
  type: http
  seq: 1
}

get {
  url: https://api.example.com/users
}
"""

FULL = """meta {
  name: Create User
  type: http
  seq: 3
}

post {
  url: {{baseUrl}}/users/:team
  body: json
  auth: bearer
}

headers {
  Content-Type: application/json
  ~X-Debug: 1
}

params:query {
  page: 1
  ~limit: 10
}

params:path {
  team: core
}

body:json {
  {
    "name": "Ada",
    "tags": ["a", "b"]
  }
}

auth:bearer {
  token: {{token}}
}

script:pre-request {
  bru.setVar("startedAt", Date.now());
}

tests {
  test("created", function() {
    expect(res.status).to.equal(201);
  });
}

docs {
  Creates a user.
}
"""


class TestScanSections:
    def test_sections_in_document_order(self):
        names = [name for name, _ in scan_sections(FULL)]
        assert names == [
            'meta', 'post', 'headers', 'params:query', 'params:path',
            'body:json', 'auth:bearer', 'script:pre-request', 'tests', 'docs',
        ]

    def test_nested_braces_stay_inside_section(self):
        sections = dict(scan_sections(FULL))
        assert sections['body:json'][0].strip() == '{'
        assert sections['body:json'][-1].strip() == '}'

    def test_comments_and_blank_lines_between_sections_are_skipped(self):
        text = "// a comment\n\nmeta {\n  name: x\n}\n"
        assert scan_sections(text) == [('meta', ['  name: x'])]

    def test_unclosed_section_is_kept(self):
        sections = scan_sections("meta {\n  name: x\n  type: http\n")
        assert sections == [('meta', ['  name: x', '  type: http'])]

    def test_list_section(self):
        sections = scan_sections("vars:secret [\n  apiKey,\n  token\n]\n")
        assert sections == [('vars:secret', ['  apiKey,', '  token'])]

    def test_stray_closing_brace_between_sections_is_ignored(self):
        text = "}\nmeta {\n  name: x\n}\n"
        assert [name for name, _ in scan_sections(text)] == ['meta']


class TestSectionKinds:
    @pytest.mark.parametrize("name,kind", [
        ('get', 'http-method'),
        ('options', 'http-method'),
        ('meta', 'meta'),
        ('params:query', 'query-params'),
        ('script:post-response', 'test-script'),
        ('tests', 'test-script'),
        ('body:json', 'body'),
        ('auth:basic', 'auth'),
        ('vars:pre-request', 'none'),
    ])
    def test_section_kind(self, name, kind):
        assert section_kind(name) == kind

    def test_sub_kind_keeps_hyphenated_modes(self):
        assert sub_kind('body:form-urlencoded', BODY_MODES) == 'form-urlencoded'
        assert sub_kind('body:multipart-form', BODY_MODES) == 'multipart'

    def test_sub_kind_unknown_or_nested_is_none(self):
        assert sub_kind('body:graphql:vars', BODY_MODES) == 'none'
        assert sub_kind('auth:oauth2', AUTH_MODES) == 'none'

    def test_sub_kind_unknown_fallback(self):
        assert sub_kind('body:foo', BODY_MODES, unknown='other') == 'other'
        assert sub_kind('body:graphql:vars', BODY_MODES, unknown='other') == 'none'


class TestKeyValue:
    def test_splits_on_first_colon(self):
        assert parse_key_value("url: https://a.com:8080/x") == ('url', 'https://a.com:8080/x', True)

    def test_tilde_disables(self):
        assert parse_key_value("  ~X-Debug: 1") == ('X-Debug', '1', False)

    def test_not_a_pair(self):
        assert parse_key_value("just text") is None
        assert parse_key_value("") is None

    def test_block_text_dedents(self):
        assert block_text(["    a();", "      b();"]) == "a();\n  b();"


class TestParseBrunoText:
    def test_unknown_body_kind_keeps_content(self):
        request = parse_bruno_text(MINIMAL + "\nbody:foo {\n  hello\n}\n")
        assert request.body.mode == 'other'
        assert request.body.content == 'hello'
        assert convert_request(request)['body'] == {'mode': 'raw', 'raw': 'hello'}

    def test_minimal_document(self):
        request = parse_bruno_text(MINIMAL)
        assert request.meta.name == 'Get Users'
        assert request.meta.type == 'http'
        assert request.meta.seq == 1
        assert request.method == 'GET'
        assert request.url == 'https://api.example.com/users'
        assert request.headers == []
        assert request.query_params == []
        assert request.path_params == []
        assert request.body is None
        assert request.auth is None
        assert request.pre_request_script is None
        assert request.test_script is None

    def test_full_document(self):
        request = parse_bruno_text(FULL)
        assert request.method == 'POST'
        assert [(h.key, h.value, h.enabled) for h in request.headers] == [
            ('Content-Type', 'application/json', True),
            ('X-Debug', '1', False),
        ]
        assert [(p.key, p.enabled) for p in request.query_params] == [('page', True), ('limit', False)]
        assert request.path_params[0].key == 'team'
        assert request.body.mode == 'json'
        assert request.body.content.startswith('{\n  "name": "Ada"')
        assert request.auth.type == 'bearer'
        assert request.auth.credentials == {'token': '{{token}}'}
        assert request.pre_request_script == 'bru.setVar("startedAt", Date.now());'
        assert request.test_script.startswith('test("created", function() {')
        assert request.docs == 'Creates a user.'

    def test_missing_meta(self):
        with pytest.raises(StructuralError) as exc:
            parse_bruno_text("get {\n  url: https://a.com\n}\n")
        assert exc.value.construct == 'metadata'
        assert 'metadata' in str(exc.value)

    def test_missing_method(self):
        with pytest.raises(StructuralError) as exc:
            parse_bruno_text("meta {\n  name: x\n  type: http\n}\n")
        assert exc.value.construct == 'method'
        assert 'method' in str(exc.value)

    def test_missing_url(self):
        with pytest.raises(StructuralError) as exc:
            parse_bruno_text("meta {\n  name: x\n  type: http\n}\nget {\n  body: none\n}\n")
        assert exc.value.construct == 'url'

    def test_meta_without_type(self):
        with pytest.raises(StructuralError) as exc:
            parse_bruno_text("meta {\n  name: x\n}\nget {\n  url: https://a.com\n}\n")
        assert exc.value.construct == 'metadata'

    def test_non_numeric_seq_is_ignored(self):
        text = MINIMAL.replace("seq: 1", "seq: first")
        assert parse_bruno_text(text).meta.seq is None

    def test_form_urlencoded_body(self):
        text = MINIMAL.replace("get {", "post {") + "body:form-urlencoded {\n  a: 1\n  ~b: 2\n}\n"
        body = parse_bruno_text(text).body
        assert body.mode == 'form-urlencoded'
        assert [(e.key, e.value, e.enabled) for e in body.form_data] == [('a', '1', True), ('b', '2', False)]

    def test_multipart_body_with_file(self):
        text = MINIMAL + "body:multipart-form {\n  name: Ada\n  avatar: @file(/tmp/a.png)\n}\n"
        body = parse_bruno_text(text).body
        assert body.mode == 'multipart'
        assert body.form_data[1].type == 'file'
        assert body.form_data[1].value == '/tmp/a.png'

    def test_graphql_vars_does_not_replace_body(self):
        text = MINIMAL + "body:graphql {\n  { users { id } }\n}\nbody:graphql:vars {\n  {}\n}\n"
        assert parse_bruno_text(text).body.mode == 'graphql'

    def test_method_block_body_none_drops_body(self):
        text = MINIMAL.replace("url: https://api.example.com/users", "url: https://a.com\n  body: none") + \
            "body:json {\n  {}\n}\n"
        assert parse_bruno_text(text).body is None

    def test_auth_inherit_drops_auth(self):
        text = MINIMAL.replace("url: https://api.example.com/users", "url: https://a.com\n  auth: inherit") + \
            "auth:basic {\n  username: u\n  password: p\n}\n"
        assert parse_bruno_text(text).auth is None

    def test_apikey_auth(self):
        text = MINIMAL + "auth:apikey {\n  key: X-Key\n  value: secret\n  placement: queryparams\n}\n"
        auth = parse_bruno_text(text).auth
        assert auth.credentials == {'key': 'X-Key', 'value': 'secret', 'placement': 'query'}

    def test_post_response_runs_before_tests(self):
        text = MINIMAL + "tests {\n  second();\n}\nscript:post-response {\n  first();\n}\n"
        assert parse_bruno_text(text).test_script == "first();\nsecond();"

    def test_unsupported_method_section_is_ignored(self):
        text = MINIMAL.replace("get {", "trace {")
        with pytest.raises(StructuralError) as exc:
            parse_bruno_text(text)
        assert exc.value.construct == 'method'


class TestFiles:
    def test_parse_bruno_file(self, tmp_path):
        path = tmp_path / "get-users.bru"
        path.write_text(MINIMAL, encoding='utf-8')
        assert parse_bruno_file(str(path)).meta.name == 'Get Users'

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileAccessError) as exc:
            parse_bruno_file(str(tmp_path / "nope.bru"))
        assert exc.value.kind == 'not-found'

    def test_folder_meta(self):
        assert parse_folder_meta("meta {\n  name: Users API\n  seq: 2\n}\n") == {'name': 'Users API', 'seq': 2}
        assert parse_folder_meta("not a bru file") == {}
