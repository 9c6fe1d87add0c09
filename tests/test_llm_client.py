import pytest
from requests.exceptions import ConnectionError, RequestException, Timeout

from errors import ConnectionFailure, TimeoutFailure, TransportFailure
from llm_client import CohereClient, _validate_base_url


class DummyResponse:
    def __init__(self, data=None, status_code=200, text=""):
        self._data = data
        self.status_code = status_code
        self.text = text

    def json(self):
        if self._data is None:
            raise ValueError("Expecting value")
        return self._data


class DummySession:
    def __init__(self, result):
        self.result = result
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class TestValidateBaseUrl:
    def test_accepts_https_hosts(self):
        _validate_base_url("https://api.cohere.ai")

    def test_accepts_localhost_with_http(self):
        for host in ("http://localhost:8080", "http://127.0.0.1"):
            _validate_base_url(host)

    def test_rejects_insecure_non_local_http(self):
        with pytest.raises(ValueError) as exc:
            _validate_base_url("http://insecure.example.com")
        assert "Insecure API URL" in str(exc.value)


class TestCohereClientPost:
    def test_sends_bearer_auth_and_json(self):
        """should post to base_url + path with the API key as a bearer token."""
        # Arrange
        session = DummySession(DummyResponse({"text": "hi"}))
        client = CohereClient("secret", base_url="https://api.test/", timeout=5, session=session)
        # Act
        body = client.post("/v1/chat", {"model": "command-r-plus", "message": "hi"})
        # Assert
        assert body == {"text": "hi"}
        url, kwargs = session.calls[0]
        assert url == "https://api.test/v1/chat"
        assert kwargs["headers"]["Authorization"] == "Bearer secret"
        assert kwargs["json"] == {"model": "command-r-plus", "message": "hi"}
        assert kwargs["timeout"] == 5

    def test_error_status_returns_body(self):
        """error payloads are handed back for parsing, not raised."""
        session = DummySession(DummyResponse({"message": "invalid api token"}, status_code=401))
        client = CohereClient("bad", session=session)
        assert client.post("/v1/chat", {}) == {"message": "invalid api token"}

    def test_non_json_body_returns_text(self):
        session = DummySession(DummyResponse(None, status_code=502, text="<html>Bad Gateway</html>"))
        client = CohereClient("k", session=session)
        assert client.post("/v1/chat", {}) == "<html>Bad Gateway</html>"

    @pytest.mark.parametrize(
        "exc, expected",
        [
            (ConnectionError("dns"), ConnectionFailure),
            (Timeout("slow"), TimeoutFailure),
            (RequestException("other"), TransportFailure),
        ],
    )
    def test_transport_errors_wrapped(self, exc, expected):
        client = CohereClient("k", session=DummySession(exc))
        with pytest.raises(expected):
            client.post("/v1/chat", {})

    def test_insecure_base_url_rejected(self):
        with pytest.raises(ValueError):
            CohereClient("k", base_url="http://evil.com")
