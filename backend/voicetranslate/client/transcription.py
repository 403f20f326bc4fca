import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Protocol

import requests

from ..errors import MalformedResponse, MissingInput, RemoteError
from ..utils.audio import encode_base64


@dataclass(frozen=True)
class TranslationRequest:
    audio_base64: str
    destination_language: str

    def to_json(self) -> Dict[str, str]:
        return {"audioFileBase64": self.audio_base64, "destLanguage": self.destination_language}


@dataclass(frozen=True)
class TranslationResult:
    destination_transcript: str
    source_language: str


class Transcriber(Protocol):
    async def transcribe(self, blob: bytes, destination_language: str) -> TranslationResult: ...


class TranscriptionClient:
    """Uploads a recorded blob to the service's /transcription endpoint."""

    def __init__(self, base_url: str, timeout: Optional[float] = None):
        self.url = f"{base_url.rstrip('/')}/transcription"
        self.timeout = timeout
        self.logger = logging.getLogger("voicetranslate")

    @staticmethod
    def build_request(blob: Optional[bytes], destination_language: Optional[str]) -> TranslationRequest:
        if not blob or not destination_language:
            raise MissingInput("Missing audio file or destination language.")
        return TranslationRequest(audio_base64=encode_base64(blob), destination_language=destination_language)

    async def transcribe(self, blob: bytes, destination_language: str) -> TranslationResult:
        request = self.build_request(blob, destination_language)
        return await asyncio.to_thread(self.send, request)

    def send(self, request: TranslationRequest) -> TranslationResult:
        self.logger.info("transcription.client.post bytes_b64=%d dest=%s", len(request.audio_base64), request.destination_language)
        try:
            resp = requests.post(self.url, json=request.to_json(), timeout=self.timeout)
        except requests.RequestException as exc:
            self.logger.error("transcription.client.transport_failed err=%s", exc)
            raise RemoteError(f"Transcription request failed: {exc}") from exc
        if not resp.ok:
            self.logger.error("transcription.client.http_failed status=%s body=%s", resp.status_code, resp.text[:200])
            raise RemoteError(f"Transcription failed with status {resp.status_code}", status_code=resp.status_code)
        try:
            data = resp.json()
        except ValueError as exc:
            raise MalformedResponse("Transcription response is not JSON") from exc
        if not isinstance(data, dict):
            raise MalformedResponse("Transcription response is not an object")
        transcript = data.get("destinationTranscript")
        source = data.get("sourceLanguage")
        if not isinstance(transcript, str) or not isinstance(source, str):
            raise MalformedResponse("Transcription response is missing destinationTranscript or sourceLanguage")
        return TranslationResult(destination_transcript=transcript, source_language=source)
