from unittest.mock import MagicMock, patch

import pytest
import requests

from bru2postman.errors import UploadError
from bru2postman.postman_uploader import PostmanUploader, resolve_api_key

COLLECTION = {'info': {'name': 'x', 'schema': 'https://schema'}, 'item': []}


def _response(status_code, text=''):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.reason = 'OK' if response.ok else 'Unauthorized'
    response.text = text
    return response


class TestPostmanUploader:
    @patch('bru2postman.postman_uploader.requests.put')
    def test_update_collection(self, mock_put):
        mock_put.return_value = _response(200)

        PostmanUploader().update_collection('123-abc', COLLECTION, 'PMAK-1')

        mock_put.assert_called_once()
        args, kwargs = mock_put.call_args
        assert args[0] == 'https://api.getpostman.com/collections/123-abc'
        assert kwargs['headers']['X-Api-Key'] == 'PMAK-1'
        assert kwargs['json'] == {'collection': COLLECTION}

    @patch('bru2postman.postman_uploader.requests.put')
    def test_error_status(self, mock_put):
        mock_put.return_value = _response(401, '{"error": "invalid key"}')

        with pytest.raises(UploadError) as exc:
            PostmanUploader().update_collection('123', COLLECTION, 'bad')
        assert exc.value.status_code == 401
        assert 'invalid key' in str(exc.value)

    @patch('bru2postman.postman_uploader.requests.put')
    def test_transport_error(self, mock_put):
        mock_put.side_effect = requests.exceptions.ConnectionError("no route")

        with pytest.raises(UploadError) as exc:
            PostmanUploader().update_collection('123', COLLECTION, 'key')
        assert 'no route' in str(exc.value)

    @patch('bru2postman.postman_uploader.requests.put')
    def test_missing_key_or_id(self, mock_put):
        with pytest.raises(UploadError):
            PostmanUploader().update_collection('123', COLLECTION, None)
        with pytest.raises(UploadError):
            PostmanUploader().update_collection(None, COLLECTION, 'key')
        mock_put.assert_not_called()


class TestResolveApiKey:
    def test_cli_key_wins(self, monkeypatch):
        monkeypatch.setenv('POSTMAN_API_KEY', 'from-env')
        assert resolve_api_key('from-cli') == 'from-cli'

    def test_environment_variable(self, monkeypatch):
        monkeypatch.setenv('POSTMAN_API_KEY', 'from-env')
        assert resolve_api_key() == 'from-env'

    def test_none(self, monkeypatch):
        monkeypatch.delenv('POSTMAN_API_KEY', raising=False)
        assert resolve_api_key() is None
