import logging
import threading
from enum import Enum
from typing import Callable, List, Optional, Protocol

from ..errors import IllegalTransition, PermissionDenied
from ..utils.audio import pcm16_to_wav


class RecorderStatus(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    STOPPED = "stopped"


class MicrophoneStream(Protocol):
    def stop(self) -> None: ...

    def close(self) -> None: ...


class MicrophoneBackend(Protocol):
    sample_rate: int
    channels: int

    def open(self, on_chunk: Callable[[bytes], None]) -> MicrophoneStream: ...


class SoundDeviceMicrophone:
    def __init__(self, sample_rate: int = 16000, channels: int = 1, blocksize: int = 4000, device=None):
        self.sample_rate = sample_rate
        self.channels = channels
        self.blocksize = blocksize
        self.device = device
        self.logger = logging.getLogger("voicetranslate")

    def open(self, on_chunk: Callable[[bytes], None]) -> MicrophoneStream:
        try:
            import sounddevice as sd
        except OSError as exc:
            # PortAudio shared library missing
            raise PermissionDenied(f"Audio capture unavailable: {exc}") from exc

        def audio_callback(indata, frames, time_info, status):
            if status:
                self.logger.warning("recorder.input_status status=%s", status)
            on_chunk(bytes(indata))

        try:
            stream = sd.RawInputStream(
                samplerate=self.sample_rate,
                blocksize=self.blocksize,
                dtype="int16",
                channels=self.channels,
                device=self.device,
                callback=audio_callback,
            )
            stream.start()
        except (sd.PortAudioError, ValueError) as exc:
            raise PermissionDenied(f"Microphone access refused: {exc}") from exc
        return stream


class Recorder:
    def __init__(self, backend: MicrophoneBackend):
        self._backend = backend
        self._lock = threading.Lock()
        self._stream: Optional[MicrophoneStream] = None
        self._chunks: List[bytes] = []
        self._blob: Optional[bytes] = None
        self.status = RecorderStatus.IDLE
        self.logger = logging.getLogger("voicetranslate")

    @property
    def chunks(self) -> List[bytes]:
        with self._lock:
            return list(self._chunks)

    @property
    def blob(self) -> Optional[bytes]:
        return self._blob

    @property
    def holds_hardware(self) -> bool:
        return self._stream is not None

    def start(self) -> None:
        if self.status == RecorderStatus.RECORDING:
            raise IllegalTransition("Recorder is already recording")
        # A new session replaces whatever the previous one left behind
        self.release()
        stream = self._backend.open(self._on_chunk)
        with self._lock:
            self._stream = stream
            self.status = RecorderStatus.RECORDING
        self.logger.info("recorder.started rate=%d channels=%d", self._backend.sample_rate, self._backend.channels)

    def _on_chunk(self, data: bytes) -> None:
        if not data:
            return
        with self._lock:
            if self.status == RecorderStatus.RECORDING:
                self._chunks.append(data)

    def stop(self) -> Optional[bytes]:
        with self._lock:
            if self.status != RecorderStatus.RECORDING:
                return None
            self.status = RecorderStatus.STOPPED
            chunks = list(self._chunks)
        self._close_stream()
        if chunks:
            self._blob = pcm16_to_wav(chunks, self._backend.sample_rate, self._backend.channels)
        else:
            self._blob = b""
        self.logger.info("recorder.stopped chunks=%d bytes=%d", len(chunks), len(self._blob))
        return self._blob

    def release(self) -> None:
        """Drop hardware and captured data without producing a blob."""
        self._close_stream()
        with self._lock:
            self._chunks = []
            self._blob = None
            self.status = RecorderStatus.IDLE

    def _close_stream(self) -> None:
        with self._lock:
            stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
        finally:
            stream.close()
