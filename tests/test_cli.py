import json
from unittest.mock import MagicMock, patch

import pytest

from bru2postman.bru2postman import main
from bru2postman.errors import UploadError

REQUEST = """meta {
  name: Ping
  type: http
  seq: 1
}

get {
  url: {{baseUrl}}/ping
}

script:pre-request {
  bru.setVar("startedAt", Date.now());
}
"""


@pytest.fixture
def collection_dir(tmp_path):
    root = tmp_path / "ping-api"
    root.mkdir()
    (root / "ping.bru").write_text(REQUEST)
    (root / "bruno.json").write_text(json.dumps({'version': '1', 'name': 'Ping API', 'type': 'collection'}))
    return root


class TestConvertFile:
    def test_single_file(self, collection_dir):
        main(['convert', str(collection_dir / "ping.bru")])
        written = json.loads((collection_dir / "ping.postman_collection.json").read_text())
        assert written['info']['name'] == 'Ping'
        assert written['item'][0]['event'][0]['script']['exec'] == ['pm.environment.set("startedAt", Date.now());']

    def test_name_and_output(self, collection_dir, tmp_path):
        output = tmp_path / "out" / "ping.json"
        main(['convert', str(collection_dir / "ping.bru"), '-o', str(output), '-n', 'Custom'])
        assert json.loads(output.read_text())['info']['name'] == 'Custom'

    def test_missing_input(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            main(['convert', str(tmp_path / "missing.bru")])
        assert exc.value.code == 1

    def test_invalid_output_extension(self, collection_dir):
        with pytest.raises(SystemExit) as exc:
            main(['convert', str(collection_dir / "ping.bru"), '-o', str(collection_dir / "out.yaml")])
        assert exc.value.code == 1

    def test_broken_file(self, tmp_path):
        broken = tmp_path / "broken.bru"
        broken.write_text("get {\n  url: https://a.com\n}\n")
        with pytest.raises(SystemExit) as exc:
            main(['convert', str(broken)])
        assert exc.value.code == 1


class TestConvertDirectory:
    def test_directory(self, collection_dir):
        main(['convert', str(collection_dir)])
        written = json.loads((collection_dir / "Ping API.postman_collection.json").read_text())
        assert [item['name'] for item in written['item']] == ['Ping']

    def test_json_report(self, collection_dir, capsys):
        main(['convert', str(collection_dir), '--json'])
        report = json.loads(capsys.readouterr().out)
        assert report['success_count'] == 1
        assert report['failure_count'] == 0
        assert report['output_path'].endswith('Ping API.postman_collection.json')

    def test_failures_exit_with_error(self, collection_dir):
        (collection_dir / "broken.bru").write_text("get {\n  url: https://a.com\n}\n")
        with pytest.raises(SystemExit) as exc:
            main(['convert', str(collection_dir)])
        assert exc.value.code == 1
        assert (collection_dir / "Ping API.postman_collection.json").exists()

    def test_config_file(self, collection_dir):
        (collection_dir / "bru2postman.yaml").write_text(
            "COLLECTION_NAME: From Config\nSCRIPT_CONVERSION: ast\nOUTPUT: " + str(collection_dir / "cfg.json") + "\n"
        )
        main(['convert', str(collection_dir)])
        written = json.loads((collection_dir / "cfg.json").read_text())
        assert written['info']['name'] == 'From Config'

    def test_cli_name_beats_config(self, collection_dir):
        (collection_dir / "bru2postman.yaml").write_text("COLLECTION_NAME: From Config\n")
        main(['convert', str(collection_dir), '-n', 'From CLI', '-o', str(collection_dir / "cli.json")])
        assert json.loads((collection_dir / "cli.json").read_text())['info']['name'] == 'From CLI'


class TestUpload:
    @patch('bru2postman.bru2postman.PostmanUploader')
    def test_upload(self, MockUploader, collection_dir, monkeypatch):
        monkeypatch.setenv('POSTMAN_API_KEY', 'PMAK-env')
        uploader = MagicMock()
        MockUploader.return_value = uploader

        main(['convert', str(collection_dir / "ping.bru"), '--upload', '--collection-id', 'abc'])

        collection_id, collection, api_key = uploader.update_collection.call_args[0]
        assert collection_id == 'abc'
        assert collection['info']['name'] == 'Ping'
        assert api_key == 'PMAK-env'

    @patch('bru2postman.bru2postman.PostmanUploader')
    def test_upload_failure_exits(self, MockUploader, collection_dir):
        uploader = MagicMock()
        uploader.update_collection.side_effect = UploadError("Postman API error: 401", status_code=401)
        MockUploader.return_value = uploader

        with pytest.raises(SystemExit) as exc:
            main(['convert', str(collection_dir / "ping.bru"), '--upload', '--collection-id', 'abc',
                  '--postman-api-key', 'bad'])
        assert exc.value.code == 1
