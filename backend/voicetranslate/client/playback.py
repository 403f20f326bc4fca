import asyncio
import logging
import subprocess
import threading
from typing import Callable, Iterable, Optional, Protocol

import numpy as np

from ..config import settings
from ..errors import PlaybackError, VoiceTranslateError


class OutputDevice(Protocol):
    def start(self, stream: Iterable[bytes]) -> None: ...

    def wait(self) -> None: ...

    def stop(self) -> None: ...


class SoundDeviceOutput:
    """Decodes MP3 chunks with ffmpeg as they arrive and plays the PCM through sounddevice."""

    def __init__(self, sample_rate: int = 44100, channels: int = 1, blocksize: int = 4096, device=None):
        self.sample_rate = sample_rate
        self.channels = channels
        self.blocksize = blocksize
        self.device = device
        self.logger = logging.getLogger("voicetranslate")
        self._out = None
        self._proc: Optional[subprocess.Popen] = None
        self._threads = []
        self._stopped = threading.Event()
        self._error: Optional[BaseException] = None

    def start(self, stream: Iterable[bytes]) -> None:
        try:
            import sounddevice as sd
        except OSError as exc:
            raise PlaybackError(f"Audio output unavailable: {exc}") from exc
        try:
            self._out = sd.OutputStream(
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype="int16",
                device=self.device,
            )
            self._out.start()
        except (sd.PortAudioError, ValueError) as exc:
            self._out = None
            raise PlaybackError(f"Output device rejected the stream: {exc}") from exc

        cmd = [
            settings.FFMPEG_BIN, "-hide_banner", "-loglevel", "error",
            "-f", "mp3", "-i", "pipe:0",
            "-f", "s16le", "-ac", str(self.channels), "-ar", str(self.sample_rate), "pipe:1",
        ]
        try:
            self._proc = subprocess.Popen(cmd, stdin=subprocess.PIPE, stdout=subprocess.PIPE, stderr=subprocess.DEVNULL)
        except OSError as exc:
            self._close_output(abort=True)
            raise PlaybackError(f"Could not start audio decoder: {exc}") from exc
        self.logger.info("playback.decoder_started bin=%s rate=%d", cmd[0], self.sample_rate)

        self._threads = [
            threading.Thread(target=self._feed, args=(stream,), daemon=True),
            threading.Thread(target=self._play, daemon=True),
        ]
        for t in self._threads:
            t.start()

    def _feed(self, stream: Iterable[bytes]) -> None:
        try:
            for chunk in stream:
                if self._stopped.is_set():
                    break
                self._proc.stdin.write(chunk)
        except Exception as exc:
            if not self._stopped.is_set():
                self._error = exc
        finally:
            try:
                self._proc.stdin.close()
            except OSError:
                pass

    def _play(self) -> None:
        frame = 2 * self.channels
        try:
            while not self._stopped.is_set():
                data = self._proc.stdout.read(self.blocksize * frame)
                if not data:
                    break
                usable = len(data) - len(data) % frame
                if usable:
                    self._out.write(np.frombuffer(data[:usable], dtype=np.int16).reshape(-1, self.channels))
        except Exception as exc:
            if not self._stopped.is_set():
                self._error = exc

    def wait(self) -> None:
        for t in self._threads:
            t.join()
        if self._proc is not None:
            self._proc.wait()
        if self._stopped.is_set():
            return
        self._close_output(abort=False)
        if self._error is not None:
            raise PlaybackError(f"Audio playback failed: {self._error}") from self._error
        if self._proc is not None and self._proc.returncode != 0:
            raise PlaybackError(f"Could not decode synthesized audio (ffmpeg exit {self._proc.returncode})")

    def stop(self) -> None:
        self._stopped.set()
        if self._proc is not None and self._proc.poll() is None:
            self._proc.kill()
        self._close_output(abort=True)

    def _close_output(self, abort: bool) -> None:
        out, self._out = self._out, None
        if out is None:
            return
        try:
            # stop() drains queued buffers, abort() drops them
            if abort:
                out.abort()
            else:
                out.stop()
        finally:
            out.close()


class PlaybackResource:
    def __init__(self, stream, device: OutputDevice):
        self.stream = stream
        self.device = device
        self.released = False

    def release(self) -> None:
        if self.released:
            return
        self.released = True
        try:
            self.device.stop()
        finally:
            _close(self.stream)


class PlaybackController:
    def __init__(self, device_factory: Callable[[], OutputDevice] = SoundDeviceOutput):
        self._device_factory = device_factory
        self._resource: Optional[PlaybackResource] = None
        self.logger = logging.getLogger("voicetranslate")

    @property
    def resource(self) -> Optional[PlaybackResource]:
        return self._resource

    @property
    def playing(self) -> bool:
        return self._resource is not None and not self._resource.released

    async def play(self, stream) -> PlaybackResource:
        self.release()
        try:
            device = self._device_factory()
        except Exception as exc:
            _close(stream)
            raise PlaybackError(f"Audio output unavailable: {exc}") from exc
        resource = PlaybackResource(stream, device)
        self._resource = resource
        try:
            await asyncio.to_thread(device.start, stream)
        except VoiceTranslateError:
            self._release(resource)
            raise
        except Exception as exc:
            self._release(resource)
            raise PlaybackError(f"Audio playback failed: {exc}") from exc
        self.logger.info("playback.started")
        return resource

    async def wait(self) -> bool:
        """Wait for the current playback. True if it ran to its natural end."""
        resource = self._resource
        if resource is None or resource.released:
            return False
        try:
            await asyncio.to_thread(resource.device.wait)
        except VoiceTranslateError:
            self._release(resource)
            raise
        except Exception as exc:
            self._release(resource)
            raise PlaybackError(f"Audio playback failed: {exc}") from exc
        if resource.released:
            return False
        self._release(resource)
        self.logger.info("playback.completed")
        return True

    def stop(self) -> None:
        if self.playing:
            self.logger.info("playback.stopped")
        self.release()

    def release(self) -> None:
        if self._resource is not None:
            self._release(self._resource)

    def _release(self, resource: PlaybackResource) -> None:
        resource.release()
        if self._resource is resource:
            self._resource = None


def _close(stream) -> None:
    close = getattr(stream, "close", None)
    if close is not None:
        close()
