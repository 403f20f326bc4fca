import json
import logging
from typing import Dict, List

import requests

from ..errors import ConfigurationError, InputValidationError, MalformedResponse, RemoteError
from ..models.schemas import TranscriptionResponse
from ..prompts import SYSTEM_PROMPT, user_instruction
from ..utils.audio import encode_base64, sniff_audio_mime

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "destinationTranscript": {"type": "STRING"},
        "sourceLanguage": {"type": "STRING"},
    },
    "required": ["destinationTranscript", "sourceLanguage"],
}


class GeminiTranscriber:
    """Translate-and-transcribe client for Google's generateContent endpoint."""

    def __init__(self, settings):
        self.settings = settings
        self.logger = logging.getLogger("voicetranslate")

    @property
    def endpoint(self) -> str:
        base = self.settings.GEMINI_API_URL.rstrip("/")
        return f"{base}/models/{self.settings.GEMINI_MODEL}:generateContent"

    def _build_payload(self, audio_b64: str, mime_type: str, dest_language: str) -> Dict:
        return {
            "systemInstruction": {"parts": [{"text": SYSTEM_PROMPT}]},
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"text": user_instruction(dest_language)},
                        {"inlineData": {"mimeType": mime_type, "data": audio_b64}},
                    ],
                }
            ],
            "generationConfig": {
                "temperature": self.settings.TRANSCRIPTION_TEMPERATURE,
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }

    def _parse_response(self, payload: Dict) -> TranscriptionResponse:
        candidates = payload.get("candidates") or []
        if not candidates:
            raise MalformedResponse("Transcription response has no candidates")
        parts = ((candidates[0] or {}).get("content") or {}).get("parts") or []
        texts: List[str] = [p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str)]
        if not texts:
            raise MalformedResponse("Transcription response has no text part")
        try:
            data = json.loads("".join(texts))
        except ValueError as exc:
            raise MalformedResponse("Transcription response is not JSON") from exc
        if not isinstance(data, dict):
            raise MalformedResponse("Transcription response is not an object")
        transcript = data.get("destinationTranscript")
        source = data.get("sourceLanguage")
        if not isinstance(transcript, str) or not isinstance(source, str):
            raise MalformedResponse(f"Transcription response missing fields keys={sorted(data)}")
        return TranscriptionResponse(destinationTranscript=transcript, sourceLanguage=source)

    def transcribe(self, audio_bytes: bytes, dest_language: str) -> TranscriptionResponse:
        if not audio_bytes or not dest_language:
            raise InputValidationError("Missing audio file or destination language.")
        api_key = self.settings.GOOGLE_API_KEY
        if not api_key:
            raise ConfigurationError("Missing GOOGLE_API_KEY environment variable.")

        mime_type = sniff_audio_mime(audio_bytes)
        payload = self._build_payload(encode_base64(audio_bytes), mime_type, dest_language)
        headers = {
            "x-goog-api-key": api_key,
            "Content-Type": "application/json",
        }
        self.logger.info(
            "gemini.transcribe.request model=%s mime=%s bytes=%d dest=%s",
            self.settings.GEMINI_MODEL, mime_type, len(audio_bytes), dest_language,
        )
        try:
            resp = requests.post(self.endpoint, json=payload, headers=headers, timeout=self.settings.UPSTREAM_TIMEOUT)
        except requests.RequestException as exc:
            self.logger.error("gemini.transcribe.transport_failed err=%s", exc)
            raise RemoteError(f"Transcription request failed: {exc}") from exc
        if not resp.ok:
            self.logger.error("gemini.transcribe.http_failed status=%s body=%s", resp.status_code, resp.text[:500])
            raise RemoteError(f"Transcription upstream returned {resp.status_code}", status_code=resp.status_code)
        try:
            data = resp.json()
        except ValueError as exc:
            raise MalformedResponse("Transcription upstream body is not JSON") from exc
        result = self._parse_response(data)
        self.logger.info(
            "gemini.transcribe.done source=%s out_len=%d", result.sourceLanguage, len(result.destinationTranscript)
        )
        return result
