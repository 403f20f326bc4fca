import logging
from typing import Iterator

import requests

from ..errors import ConfigurationError, InputValidationError, RemoteError

CHUNK_SIZE = 4096


class ElevenLabsTTS:
    """Streaming text-to-speech via the ElevenLabs REST API."""

    def __init__(self, settings):
        self.settings = settings
        self.logger = logging.getLogger("voicetranslate")

    @property
    def endpoint(self) -> str:
        base = self.settings.ELEVEN_LABS_API_URL.rstrip("/")
        return f"{base}/text-to-speech/{self.settings.ELEVEN_LABS_VOICE_ID}/stream"

    def open_stream(self, text: str) -> requests.Response:
        """Start the upstream call and return the response once headers are OK.

        The credential is checked before any network call. The caller owns the
        returned response and must close it.
        """
        if not text:
            raise InputValidationError("Missing transcript in request body.")
        api_key = self.settings.ELEVEN_LABS_KEY
        if not api_key:
            raise ConfigurationError("Missing ELEVEN_LABS_KEY environment variable.")

        payload = {
            "text": text,
            "model_id": self.settings.ELEVEN_LABS_MODEL,
        }
        headers = {
            "xi-api-key": api_key,
            "Content-Type": "application/json",
            "Accept": "audio/mpeg",
        }
        params = {"output_format": self.settings.ELEVEN_LABS_OUTPUT_FORMAT}
        self.logger.info("elevenlabs.tts.request voice=%s chars=%d", self.settings.ELEVEN_LABS_VOICE_ID, len(text))
        try:
            resp = requests.post(
                self.endpoint,
                json=payload,
                headers=headers,
                params=params,
                stream=True,
                timeout=self.settings.UPSTREAM_TIMEOUT,
            )
        except requests.RequestException as exc:
            self.logger.error("elevenlabs.tts.transport_failed err=%s", exc)
            raise RemoteError(f"Voice synthesis request failed: {exc}") from exc
        if not resp.ok:
            body = resp.text[:500]
            resp.close()
            self.logger.error("elevenlabs.tts.http_failed status=%s body=%s", resp.status_code, body)
            raise RemoteError(f"Voice synthesis upstream returned {resp.status_code}", status_code=resp.status_code)
        return resp

    def iter_audio(self, resp: requests.Response) -> Iterator[bytes]:
        sent = 0
        try:
            for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                if chunk:
                    sent += len(chunk)
                    yield chunk
        finally:
            resp.close()
            self.logger.info("elevenlabs.tts.stream_closed bytes=%d", sent)
