import asyncio
import logging
from typing import Callable, Iterator, Protocol

import requests

from ..errors import ConfigurationError, InvalidAudioContent, MissingInput, RemoteError

CHUNK_SIZE = 4096


class AudioStream:
    """Synthesized audio; the first chunk has already been received."""

    def __init__(self, content_type: str, first_chunk: bytes, rest: Iterator[bytes], close: Callable[[], None]):
        self.content_type = content_type
        self.first_chunk = first_chunk
        self._rest = rest
        self._close = close
        self.closed = False

    def __iter__(self) -> Iterator[bytes]:
        yield self.first_chunk
        try:
            for chunk in self._rest:
                if chunk:
                    yield chunk
        except requests.RequestException as exc:
            raise RemoteError(f"Audio stream interrupted: {exc}") from exc

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._close()


class Synthesizer(Protocol):
    async def synthesize(self, text: str) -> AudioStream: ...


class SpeechSynthesisClient:
    """Posts a transcript to the service's /voice endpoint and opens the audio stream."""

    def __init__(self, base_url: str, timeout=None):
        self.url = f"{base_url.rstrip('/')}/voice"
        self.timeout = timeout
        self.logger = logging.getLogger("voicetranslate")

    async def synthesize(self, text: str) -> AudioStream:
        if not text:
            raise MissingInput("Missing transcript to synthesize.")
        return await asyncio.to_thread(self.open_stream, text)

    def open_stream(self, text: str) -> AudioStream:
        try:
            resp = requests.post(self.url, json={"transcript": text}, stream=True, timeout=self.timeout)
        except requests.RequestException as exc:
            self.logger.error("synthesis.client.transport_failed err=%s", exc)
            raise RemoteError(f"Voice synthesis request failed: {exc}") from exc

        if not resp.ok:
            code, message = _error_body(resp)
            resp.close()
            self.logger.error("synthesis.client.http_failed status=%s code=%s", resp.status_code, code)
            if code == ConfigurationError.code:
                raise ConfigurationError(message or "Voice synthesis is not configured.")
            raise RemoteError(f"Voice synthesis failed with status {resp.status_code}", status_code=resp.status_code)

        content_type = resp.headers.get("Content-Type", "")
        if "audio" not in content_type.lower():
            resp.close()
            raise InvalidAudioContent(f"Expected audio content, got {content_type or 'no content type'}")

        chunks = resp.iter_content(chunk_size=CHUNK_SIZE)
        try:
            first = next((c for c in chunks if c), b"")
        except requests.RequestException as exc:
            resp.close()
            raise RemoteError(f"Audio stream interrupted: {exc}") from exc
        if not first:
            resp.close()
            raise InvalidAudioContent("Received empty audio stream")
        self.logger.info("synthesis.client.stream_open content_type=%s", content_type)
        return AudioStream(content_type, first, chunks, resp.close)


def _error_body(resp: requests.Response):
    try:
        data = resp.json()
    except ValueError:
        return None, None
    if not isinstance(data, dict):
        return None, None
    return data.get("code"), data.get("error")
