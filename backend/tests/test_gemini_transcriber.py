import pytest

from voicetranslate.config import Settings
from voicetranslate.errors import InputValidationError, MalformedResponse
from voicetranslate.services.transcribe_gemini import GeminiTranscriber


@pytest.fixture
def transcriber():
    return GeminiTranscriber(Settings())


def test_parse_response_joins_text_parts(transcriber):
    payload = {
        "candidates": [
            {"content": {"parts": [{"text": '{"destinationTranscript": "Guten '}, {"text": 'Tag", "sourceLanguage": "English"}'}]}}
        ]
    }

    result = transcriber._parse_response(payload)

    assert result.destinationTranscript == "Guten Tag"
    assert result.sourceLanguage == "English"


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"candidates": []},
        {"candidates": [{"content": {"parts": []}}]},
        {"candidates": [{"content": {"parts": [{"text": "not json"}]}}]},
        {"candidates": [{"content": {"parts": [{"text": "[1, 2]"}]}}]},
        {"candidates": [{"content": {"parts": [{"text": '{"sourceLanguage": "English"}'}]}}]},
        {"candidates": [{"content": {"parts": [{"text": '{"destinationTranscript": 3, "sourceLanguage": "English"}'}]}}]},
    ],
)
def test_parse_response_rejects_unexpected_shapes(transcriber, payload):
    with pytest.raises(MalformedResponse):
        transcriber._parse_response(payload)


def test_transcribe_validates_before_anything_else(transcriber):
    with pytest.raises(InputValidationError):
        transcriber.transcribe(b"", "French")
    with pytest.raises(InputValidationError):
        transcriber.transcribe(b"\x00", "")


def test_endpoint_uses_configured_model():
    settings = Settings()
    settings.GEMINI_MODEL = "gemini-test"
    settings.GEMINI_API_URL = "https://example.test/v1beta/"

    assert GeminiTranscriber(settings).endpoint == "https://example.test/v1beta/models/gemini-test:generateContent"
