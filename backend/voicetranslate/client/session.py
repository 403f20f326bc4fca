import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, ClassVar, Dict, List, Optional, Tuple, Type, Union
from uuid import uuid4

from ..config import DEFAULT_LANGUAGE
from ..errors import IllegalTransition, PlaybackError, VoiceTranslateError
from .playback import PlaybackController
from .recorder import Recorder
from .synthesis import Synthesizer
from .transcription import Transcriber, TranslationResult


@dataclass(frozen=True)
class Idle:
    name: ClassVar[str] = "idle"


@dataclass(frozen=True)
class Recording:
    session_id: str
    destination_language: str
    name: ClassVar[str] = "recording"


@dataclass(frozen=True)
class Transcribing:
    session_id: str
    destination_language: str
    name: ClassVar[str] = "transcribing"


@dataclass(frozen=True)
class Synthesizing:
    session_id: str
    transcript: str
    source_language: Optional[str] = None
    name: ClassVar[str] = "synthesizing"


@dataclass(frozen=True)
class Playing:
    session_id: str
    transcript: str
    name: ClassVar[str] = "playing"


@dataclass(frozen=True)
class Error:
    session_id: str
    message: str
    error: VoiceTranslateError
    name: ClassVar[str] = "error"


SessionState = Union[Idle, Recording, Transcribing, Synthesizing, Playing, Error]

TRANSITIONS: Dict[type, Tuple[Type, ...]] = {
    Idle: (Recording, Synthesizing),
    Recording: (Transcribing, Error),
    Transcribing: (Synthesizing, Error),
    Synthesizing: (Playing, Error),
    Playing: (Idle, Error),
    Error: (Idle,),
}

STAGE_MESSAGES = {
    "recording": "Microphone access is required.",
    "transcription": "Error during transcription.",
    "synthesis": "Error during voice playback.",
    "playback": "Audio playback failed.",
}


class TranslationSession:
    def __init__(
        self,
        recorder: Recorder,
        transcriber: Transcriber,
        synthesizer: Synthesizer,
        player: PlaybackController,
        destination_language: str = DEFAULT_LANGUAGE,
    ):
        self._recorder = recorder
        self._transcriber = transcriber
        self._synthesizer = synthesizer
        self._player = player
        self.destination_language = destination_language
        self.last_result: Optional[TranslationResult] = None
        self._state: SessionState = Idle()
        self._listeners: List[Callable[[SessionState], None]] = []
        self._playback_task: Optional[asyncio.Task] = None
        self.logger = logging.getLogger("voicetranslate")

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def can_start_recording(self) -> bool:
        return isinstance(self._state, Idle)

    @property
    def can_replay(self) -> bool:
        return isinstance(self._state, Idle) and self.last_result is not None

    def subscribe(self, listener: Callable[[SessionState], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def start_recording(self, destination_language: Optional[str] = None) -> SessionState:
        if not self.can_start_recording:
            raise IllegalTransition(f"Cannot start recording while {self._state.name}")
        sid = uuid4().hex
        self._enter(Recording(sid, destination_language or self.destination_language))
        try:
            await asyncio.to_thread(self._recorder.start)
        except VoiceTranslateError as exc:
            self._fail(sid, exc, "recording")
            return self._state
        if not self._is_current(sid):
            # reset() while the device was opening
            self._recorder.release()
        return self._state

    async def stop_recording(self) -> SessionState:
        """Returns once playback has started or the run failed."""
        state = self._state
        if not isinstance(state, Recording):
            return state
        sid = state.session_id
        blob = self._recorder.stop() or b""
        self._enter(Transcribing(sid, state.destination_language))
        try:
            result = await self._transcriber.transcribe(blob, state.destination_language)
        except VoiceTranslateError as exc:
            self._fail(sid, exc, "transcription")
            return self._state
        finally:
            if self._is_current(sid):
                self._recorder.release()

        if not self._is_current(sid):
            self.logger.info("session.stale_result stage=transcription sid=%s", sid)
            return self._state
        self.last_result = result
        await self._speak(sid, result.destination_transcript, result.source_language)
        return self._state

    async def replay(self) -> SessionState:
        if not self.can_replay:
            raise IllegalTransition(f"Nothing to replay while {self._state.name}")
        result = self.last_result
        await self._speak(uuid4().hex, result.destination_transcript, result.source_language)
        return self._state

    async def stop_playback(self) -> SessionState:
        if isinstance(self._state, Playing):
            self._player.stop()
            self._enter(Idle())
        return self._state

    async def wait_for_playback(self) -> SessionState:
        if self._playback_task is not None:
            await self._playback_task
        return self._state

    def acknowledge(self) -> SessionState:
        if not isinstance(self._state, Error):
            raise IllegalTransition(f"Nothing to acknowledge while {self._state.name}")
        self._enter(Idle())
        return self._state

    def reset(self) -> SessionState:
        """Abandon any in-flight stage and return to Idle."""
        self._enter(Idle(), force=True)
        return self._state

    async def _speak(self, sid: str, text: str, source_language: Optional[str]) -> None:
        self._enter(Synthesizing(sid, text, source_language))
        try:
            stream = await self._synthesizer.synthesize(text)
        except VoiceTranslateError as exc:
            self._fail(sid, exc, "synthesis")
            return
        if not self._is_current(sid):
            self.logger.info("session.stale_result stage=synthesis sid=%s", sid)
            stream.close()
            return

        try:
            resource = await self._player.play(stream)
        except VoiceTranslateError as exc:
            self._fail(sid, exc, "playback")
            return
        if not self._is_current(sid):
            self.logger.info("session.stale_result stage=playback sid=%s", sid)
            resource.release()
            return
        self._enter(Playing(sid, text))
        self._playback_task = asyncio.create_task(self._watch_playback(sid))

    async def _watch_playback(self, sid: str) -> None:
        try:
            finished = await self._player.wait()
        except VoiceTranslateError as exc:
            self._fail(sid, exc, "playback")
            return
        except Exception as exc:
            self._fail(sid, PlaybackError(f"Audio playback failed: {exc}"), "playback")
            return
        if finished and self._is_current(sid) and isinstance(self._state, Playing):
            self._enter(Idle())

    def _is_current(self, sid: str) -> bool:
        return getattr(self._state, "session_id", None) == sid

    def _fail(self, sid: str, exc: VoiceTranslateError, stage: str) -> None:
        if not self._is_current(sid):
            self.logger.info("session.stale_error stage=%s sid=%s err=%s", stage, sid, exc)
            return
        self.logger.error("session.failed stage=%s sid=%s code=%s err=%s", stage, sid, exc.code, exc)
        self._enter(Error(sid, exc.user_message or STAGE_MESSAGES[stage], exc))

    def _enter(self, new: SessionState, force: bool = False) -> None:
        old = self._state
        if not force and type(new) not in TRANSITIONS[type(old)]:
            raise IllegalTransition(f"{old.name} -> {new.name}")
        if isinstance(new, (Idle, Error)):
            self._recorder.release()
            self._player.release()
        self._state = new
        self.logger.info("session.state %s -> %s sid=%s", old.name, new.name, getattr(new, "session_id", "-"))
        for listener in list(self._listeners):
            listener(new)
