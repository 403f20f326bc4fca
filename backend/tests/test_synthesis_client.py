import asyncio

import pytest
from fakes import FakeResponse, RecordingPost, connection_error, forbidden_post

from voicetranslate.client import synthesis
from voicetranslate.client.synthesis import SpeechSynthesisClient
from voicetranslate.errors import ConfigurationError, InputValidationError, InvalidAudioContent, RemoteError


def _synthesize(text):
    return asyncio.run(SpeechSynthesisClient("http://api.test").synthesize(text))


def test_returns_incremental_stream(monkeypatch):
    upstream = FakeResponse(200, chunks=[b"", b"ID3", b"rest"], headers={"Content-Type": "audio/mpeg"})
    post = RecordingPost(upstream)
    monkeypatch.setattr(synthesis.requests, "post", post)

    stream = _synthesize("Bonjour")

    assert stream.first_chunk == b"ID3"
    assert list(stream) == [b"ID3", b"rest"]
    url, kwargs = post.calls[0]
    assert url == "http://api.test/voice"
    assert kwargs["json"] == {"transcript": "Bonjour"}
    assert kwargs["stream"] is True

    stream.close()
    stream.close()
    assert upstream.closed is True


def test_empty_text_fails_without_request(monkeypatch):
    monkeypatch.setattr(synthesis.requests, "post", forbidden_post)

    with pytest.raises(InputValidationError):
        _synthesize("")


def test_missing_credential_is_configuration_error(monkeypatch):
    body = {"error": "Missing ELEVEN_LABS_KEY environment variable.", "code": "configuration_error"}
    monkeypatch.setattr(synthesis.requests, "post", RecordingPost(FakeResponse(500, body)))

    with pytest.raises(ConfigurationError) as excinfo:
        _synthesize("Bonjour")

    assert not isinstance(excinfo.value, RemoteError)
    assert "ELEVEN_LABS_KEY" in str(excinfo.value)


def test_upstream_failure_is_remote_error(monkeypatch):
    upstream = FakeResponse(500, {"error": "Internal Server Error", "code": "remote_error"})
    monkeypatch.setattr(synthesis.requests, "post", RecordingPost(upstream))

    with pytest.raises(RemoteError) as excinfo:
        _synthesize("Bonjour")

    assert not isinstance(excinfo.value, ConfigurationError)
    assert excinfo.value.status_code == 500
    assert upstream.closed is True


def test_transport_failure_is_remote_error(monkeypatch):
    monkeypatch.setattr(synthesis.requests, "post", RecordingPost(connection_error))

    with pytest.raises(RemoteError):
        _synthesize("Bonjour")


def test_non_audio_content_is_rejected(monkeypatch):
    upstream = FakeResponse(200, chunks=[b"{}"], headers={"Content-Type": "application/json"})
    monkeypatch.setattr(synthesis.requests, "post", RecordingPost(upstream))

    with pytest.raises(InvalidAudioContent):
        _synthesize("Bonjour")

    assert upstream.closed is True


def test_empty_audio_is_rejected(monkeypatch):
    upstream = FakeResponse(200, chunks=[b""], headers={"Content-Type": "audio/mpeg"})
    monkeypatch.setattr(synthesis.requests, "post", RecordingPost(upstream))

    with pytest.raises(InvalidAudioContent):
        _synthesize("Bonjour")

    assert upstream.closed is True
