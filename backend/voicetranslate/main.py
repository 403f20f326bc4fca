import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from .config import DEFAULT_LANGUAGE, settings
from .errors import ConfigurationError, InputValidationError, VoiceTranslateError
from .models.schemas import ErrorResponse, TranscriptionRequest, TranscriptionResponse, VoiceRequest
from .services.transcribe_gemini import GeminiTranscriber
from .services.tts_elevenlabs import ElevenLabsTTS
from .utils.audio import decode_base64_audio

# Logging
logger = logging.getLogger("voicetranslate")
if not logger.handlers:
    handler = logging.StreamHandler()
    fmt = logging.Formatter("[%(asctime)s] %(levelname)s %(name)s: %(message)s")
    handler.setFormatter(fmt)
    logger.addHandler(handler)
logger.setLevel(settings.LOG_LEVEL)

# Globals / Singletons
TRANSCRIBER = GeminiTranscriber(settings)
TTS = ElevenLabsTTS(settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Starting up backend. gemini_key=%s elevenlabs_key=%s origin=%s",
        _mask(settings.GOOGLE_API_KEY), _mask(settings.ELEVEN_LABS_KEY), settings.FRONTEND_ORIGIN,
    )
    yield


app = FastAPI(title="VoiceTranslate AI", lifespan=lifespan)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_ORIGIN],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, message: str, code: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message, code=code).model_dump())


def _mask(s: str) -> str:
    if not s:
        return ""
    return (s[:3] + "***" + s[-2:]) if len(s) > 5 else "***"


@app.exception_handler(RequestValidationError)
async def invalid_body(request: Request, exc: RequestValidationError):
    logger.warning("request.invalid_body path=%s errors=%s", request.url.path, exc.errors())
    return _error(400, "Request body must be a JSON object.", InputValidationError.code)


@app.post("/transcription", response_model=TranscriptionResponse)
def transcription(body: TranscriptionRequest):
    if not body.audioFileBase64 or not body.destLanguage:
        logger.warning("transcription.missing_input audio=%s dest=%s", bool(body.audioFileBase64), bool(body.destLanguage))
        return _error(400, "Missing audio file or destination language.", InputValidationError.code)
    try:
        audio_bytes = decode_base64_audio(body.audioFileBase64)
    except InputValidationError as e:
        logger.warning("transcription.bad_audio err=%s", e)
        return _error(400, str(e), e.code)

    logger.info("transcription.called bytes=%d dest=%s", len(audio_bytes), body.destLanguage)
    try:
        result = TRANSCRIBER.transcribe(audio_bytes, body.destLanguage)
    except ConfigurationError as e:
        logger.error("transcription.not_configured err=%s", e)
        return _error(500, str(e), e.code)
    except VoiceTranslateError as e:
        logger.exception("transcription.failed err=%s", e)
        return _error(500, "Internal Server Error", e.code)
    except Exception as e:
        logger.exception("transcription.error err=%s", e)
        return _error(500, "Internal Server Error", VoiceTranslateError.code)
    return result


@app.post("/voice")
def voice(body: VoiceRequest):
    if not body.transcript:
        logger.warning("voice.missing_transcript")
        return _error(400, "Missing transcript in request body.", InputValidationError.code)
    try:
        upstream = TTS.open_stream(body.transcript)
    except ConfigurationError as e:
        logger.error("voice.not_configured err=%s", e)
        return _error(500, str(e), e.code)
    except VoiceTranslateError as e:
        logger.exception("voice.failed err=%s", e)
        return _error(500, "Internal Server Error", e.code)
    except Exception as e:
        logger.exception("voice.error err=%s", e)
        return _error(500, "Internal Server Error", VoiceTranslateError.code)

    # Forward the upstream audio as it arrives
    return StreamingResponse(
        TTS.iter_audio(upstream),
        status_code=200,
        media_type="audio/mpeg",
        headers={"Content-Disposition": "attachment; filename=output.mp3"},
    )


@app.get("/api/health")
def health():
    """Credential diagnostics. Keys are masked in the response."""
    return {
        "transcription": {
            "configured": bool(settings.GOOGLE_API_KEY),
            "api_key_masked": _mask(settings.GOOGLE_API_KEY),
            "model": settings.GEMINI_MODEL,
        },
        "voice": {
            "configured": bool(settings.ELEVEN_LABS_KEY),
            "api_key_masked": _mask(settings.ELEVEN_LABS_KEY),
            "voice_id": settings.ELEVEN_LABS_VOICE_ID,
            "model": settings.ELEVEN_LABS_MODEL,
        },
    }


@app.get("/api/languages")
def languages():
    return {"languages": settings.language_names(), "default": DEFAULT_LANGUAGE}
