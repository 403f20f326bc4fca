import base64
import binascii
import io
import wave
from typing import Iterable

from ..errors import InputValidationError

# Upstream models reject payloads without a mime type; the browser recorder
# historically sent everything labelled as mp3.
DEFAULT_AUDIO_MIME = "audio/mp3"


def pcm16_to_wav(chunks: Iterable[bytes], sample_rate: int = 16000, channels: int = 1) -> bytes:
    """Wrap raw little-endian PCM16 chunks into a single WAV container."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        for chunk in chunks:
            wf.writeframes(chunk)
    return buf.getvalue()


def sniff_audio_mime(data: bytes) -> str:
    # Map container magic bytes to a mime type for the upstream request
    head = data[:12]
    if head[:4] == b"RIFF" and head[8:12] == b"WAVE":
        return "audio/wav"
    if head[:3] == b"ID3" or (len(head) > 1 and head[0] == 0xFF and (head[1] & 0xE0) == 0xE0):
        return "audio/mp3"
    if head[:4] == b"OggS":
        return "audio/ogg"
    if head[:4] == b"\x1a\x45\xdf\xa3":
        return "audio/webm"
    if head[:4] == b"fLaC":
        return "audio/flac"
    if head[4:8] == b"ftyp":
        return "audio/mp4"
    return DEFAULT_AUDIO_MIME


def encode_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("utf-8")


def decode_base64_audio(audio_b64: str) -> bytes:
    """Decode an uploaded base64 payload, accepting data-URL prefixes."""
    if "," in audio_b64 and audio_b64.startswith("data:"):
        audio_b64 = audio_b64.split(",", 1)[1]
    try:
        data = base64.b64decode(audio_b64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InputValidationError("Audio payload is not valid base64.") from exc
    if not data:
        raise InputValidationError("Audio payload is empty.")
    return data
