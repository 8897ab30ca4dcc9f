from bru2postman.url_parser import extract_variables, parse_query_string, parse_url, split_host_port, token_prefix


class TestExtractVariables:
    def test_first_appearance_order_without_duplicates(self):
        assert extract_variables("{{a}}/x/{{b}}/{{a}}") == ['a', 'b']

    def test_no_variables(self):
        assert extract_variables("https://example.com") == []


class TestQueryString:
    def test_pairs(self):
        assert parse_query_string("a=1&b=&c") == [
            {'key': 'a', 'value': '1'},
            {'key': 'b', 'value': ''},
            {'key': 'c', 'value': ''},
        ]

    def test_value_with_equals_sign(self):
        assert parse_query_string("token=abc==") == [{'key': 'token', 'value': 'abc=='}]

    def test_empty(self):
        assert parse_query_string("") == []
        assert parse_query_string("&&") == []


class TestHostPort:
    def test_numeric_port(self):
        assert split_host_port("localhost:3000") == ('localhost', '3000')

    def test_variable_port(self):
        assert split_host_port("localhost:{{port}}") == ('localhost', '{{port}}')

    def test_no_port(self):
        assert split_host_port("example.com") == ('example.com', None)


class TestParseUrl:
    def test_variable_host(self):
        parsed = parse_url("{{baseUrl}}/users/{{id}}")
        assert parsed['raw'] == "{{baseUrl}}/users/{{id}}"
        assert parsed['variables'] == ['baseUrl', 'id']
        assert parsed['host'] == ['{{baseUrl}}']
        assert parsed['path'] == ['users', '{{id}}']
        assert 'protocol' not in parsed

    def test_full_url(self):
        parsed = parse_url("https://api.example.com:8443/v1/users?page=2&sort=name#top")
        assert parsed['protocol'] == 'https'
        assert parsed['host'] == ['api.example.com']
        assert parsed['port'] == '8443'
        assert parsed['path'] == ['v1', 'users']
        assert parsed['query'] == [{'key': 'page', 'value': '2'}, {'key': 'sort', 'value': 'name'}]
        assert parsed['hash'] == 'top'

    def test_placeholders_inside_standard_url(self):
        parsed = parse_url("https://{{host}}/users/{{id}}?token={{token}}")
        assert parsed['host'] == ['{{host}}']
        assert parsed['path'] == ['users', '{{id}}']
        assert parsed['query'] == [{'key': 'token', 'value': '{{token}}'}]
        assert parsed['variables'] == ['host', 'id', 'token']

    def test_host_case_is_kept(self):
        assert parse_url("http://API.Example.com/x")['host'] == ['API.Example.com']

    def test_credentials_are_not_part_of_host(self):
        assert parse_url("https://user:pw@example.com/x")['host'] == ['example.com']

    def test_variable_port(self):
        parsed = parse_url("http://localhost:{{port}}/health")
        assert parsed['host'] == ['localhost']
        assert parsed['port'] == '{{port}}'
        assert parsed['path'] == ['health']

    def test_invalid_port_falls_back_to_manual_split(self):
        parsed = parse_url("http://localhost:abc/health")
        assert parsed['protocol'] == 'http'
        assert parsed['host'] == ['localhost:abc']
        assert parsed['path'] == ['health']

    def test_relative_url(self):
        parsed = parse_url("users/list?x=1")
        assert parsed['host'] == ['users']
        assert parsed['path'] == ['list']
        assert parsed['query'] == [{'key': 'x', 'value': '1'}]

    def test_variable_url_with_query_and_hash(self):
        parsed = parse_url("{{baseUrl}}/search?q={{term}}#results")
        assert parsed['host'] == ['{{baseUrl}}']
        assert parsed['path'] == ['search']
        assert parsed['query'] == [{'key': 'q', 'value': '{{term}}'}]
        assert parsed['hash'] == 'results'

    def test_literal_text_resembling_a_placeholder_token(self):
        parsed = parse_url("http://__var0__.com/{{a}}")
        assert parsed['host'] == ['__var0__.com']
        assert parsed['path'] == ['{{a}}']
        assert parsed['variables'] == ['a']

    def test_token_prefix_avoids_url_text(self):
        assert token_prefix("https://{{host}}/x") == "__var"
        assert token_prefix("http://__var0__.com/") == "___var"
        assert token_prefix("http://a.com/___var/__var") == "____var"
