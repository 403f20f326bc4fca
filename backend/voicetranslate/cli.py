"""Command-line entrypoint: run the API, or talk to a running one."""
import asyncio
import logging

import typer

from .client.playback import PlaybackController, SoundDeviceOutput
from .client.recorder import Recorder, SoundDeviceMicrophone
from .client.session import Error, Playing, SessionState, Synthesizing, TranslationSession
from .client.synthesis import SpeechSynthesisClient
from .client.transcription import TranscriptionClient
from .config import DEFAULT_LANGUAGE, settings

app = typer.Typer(help="VoiceTranslate service and microphone client")


def build_session(server: str, language: str) -> TranslationSession:
    return TranslationSession(
        recorder=Recorder(SoundDeviceMicrophone()),
        transcriber=TranscriptionClient(server),
        synthesizer=SpeechSynthesisClient(server),
        player=PlaybackController(SoundDeviceOutput),
        destination_language=language,
    )


def describe(state: SessionState) -> str:
    if isinstance(state, Error):
        return f"error: {state.message}"
    if isinstance(state, Synthesizing):
        return f"translated ({state.source_language or 'unknown'} -> speech): {state.transcript}"
    if isinstance(state, Playing):
        return "playing translation"
    return state.name


async def run_once(session: TranslationSession, wait_for_stop) -> int:
    await session.start_recording()
    if isinstance(session.state, Error):
        session.acknowledge()
        return 1
    await asyncio.to_thread(wait_for_stop)
    await session.stop_recording()
    if isinstance(session.state, Playing):
        await session.wait_for_playback()
    if isinstance(session.state, Error):
        session.acknowledge()
        return 1
    return 0


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address"),
    port: int = typer.Option(8000, help="Bind port"),
) -> None:
    """Run the transcription/voice API."""
    import uvicorn

    uvicorn.run("voicetranslate.main:app", host=host, port=port, log_level=settings.LOG_LEVEL.lower())


@app.command()
def talk(
    language: str = typer.Option(DEFAULT_LANGUAGE, help="Destination language, e.g. French"),
    server: str = typer.Option(None, help="Base URL of the VoiceTranslate API"),
) -> None:
    """Record one utterance, translate it, and play the result."""
    logging.basicConfig(level=settings.LOG_LEVEL, format="[%(asctime)s] %(levelname)s %(name)s: %(message)s")
    session = build_session(server or settings.VOICE_TRANSLATE_SERVER, language)
    session.subscribe(lambda state: typer.echo(describe(state)))

    def wait_for_stop() -> None:
        input("Recording... press Enter to stop.\n")

    code = asyncio.run(run_once(session, wait_for_stop))
    raise typer.Exit(code=code)


if __name__ == "__main__":
    app()
