"""
Recognition Client Tests
"""
import pytest
import requests

from ingest import dify_client
from ingest.dify_client import (
    DifyClient,
    RecognitionError,
    UnsupportedFileType,
    guess_content_type,
)


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self.payload = payload or {}
        self.text = text

    def json(self):
        return self.payload


class FakeSession:
    """Replays queued responses (or raises queued exceptions) for session.post"""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def uploaded(file_id="file-1"):
    return FakeResponse(200, {"id": file_id})


def answered(answer='{"姓名": "张三"}'):
    return FakeResponse(200, {"answer": answer})


@pytest.fixture
def sleeps(monkeypatch):
    delays = []
    monkeypatch.setattr(dify_client.time, "sleep", delays.append)
    return delays


def make_client(session, **kwargs):
    return DifyClient(api_key="test-key", base_url="https://dify.test/v1/", session=session, **kwargs)


class TestRecognize:

    def test_upload_then_chat(self, sleeps):
        session = FakeSession(uploaded("abc"), answered())
        client = make_client(session)

        assert client.recognize("scan.jpg", b"bytes") == '{"姓名": "张三"}'

        upload_url, upload_kwargs = session.calls[0]
        chat_url, chat_kwargs = session.calls[1]
        assert upload_url == "https://dify.test/v1/files/upload"
        assert upload_kwargs["headers"]["Authorization"] == "Bearer test-key"
        assert upload_kwargs["files"]["file"] == ("scan.jpg", b"bytes", "image/jpeg")
        assert chat_url == "https://dify.test/v1/chat-messages"
        assert chat_kwargs["json"]["files"][0]["upload_file_id"] == "abc"
        assert chat_kwargs["json"]["response_mode"] == "blocking"
        assert sleeps == []

    def test_retries_on_503(self, sleeps):
        session = FakeSession(FakeResponse(503, text="busy"), uploaded(), answered("ok"))
        client = make_client(session)

        assert client.recognize("scan.png", b"x") == "ok"
        assert sleeps == [2.0]

    def test_retries_on_chat_504(self, sleeps):
        session = FakeSession(uploaded(), FakeResponse(504), uploaded(), answered("ok"))
        assert make_client(session).recognize("scan.pdf", b"x") == "ok"
        assert sleeps == [2.0]

    def test_retries_on_timeout_then_gives_up(self, sleeps):
        timeout = requests.exceptions.Timeout("timed out")
        session = FakeSession(timeout, timeout, timeout)

        with pytest.raises(RecognitionError, match="after 3 attempts"):
            make_client(session).recognize("scan.jpg", b"x")
        assert sleeps == [2.0, 4.0]

    def test_client_error_fails_fast(self, sleeps):
        session = FakeSession(FakeResponse(400, text="bad request"))

        with pytest.raises(RecognitionError, match="400"):
            make_client(session).recognize("scan.jpg", b"x")
        assert len(session.calls) == 1
        assert sleeps == []

    def test_missing_file_id(self, sleeps):
        session = FakeSession(FakeResponse(200, {}))
        with pytest.raises(RecognitionError, match="no file id"):
            make_client(session).recognize("scan.jpg", b"x")

    def test_missing_answer(self, sleeps):
        session = FakeSession(uploaded(), FakeResponse(200, {"answer": ""}))
        with pytest.raises(RecognitionError, match="no answer"):
            make_client(session).recognize("scan.jpg", b"x")

    def test_requires_api_key(self):
        client = DifyClient(api_key="", session=FakeSession())
        with pytest.raises(RecognitionError, match="DIFY_API_KEY"):
            client.recognize("scan.jpg", b"x")

    def test_rejects_unsupported_type(self):
        with pytest.raises(UnsupportedFileType):
            make_client(FakeSession()).recognize("notes.txt", b"x")


class TestContentType:

    @pytest.mark.parametrize("filename,expected", [
        ("a.jpg", "image/jpeg"),
        ("a.jpeg", "image/jpeg"),
        ("a.png", "image/png"),
        ("a.pdf", "application/pdf"),
    ])
    def test_guess_from_name(self, filename, expected):
        assert guess_content_type(filename) == expected

    def test_octet_stream_falls_back_to_name(self):
        assert guess_content_type("scan.png", "application/octet-stream") == "image/png"

    def test_declared_type_wins(self):
        assert guess_content_type("upload", "image/png") == "image/png"

    def test_unknown(self):
        with pytest.raises(UnsupportedFileType):
            guess_content_type("archive.zip", "application/zip")
