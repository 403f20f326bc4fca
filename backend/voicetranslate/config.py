import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env from the backend directory
ENV_PATH = Path(__file__).resolve().parents[1] / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=False)

LANGUAGES = [
    {"code": "en", "name": "English"},
    {"code": "hi", "name": "Hindi"},
    {"code": "es", "name": "Spanish"},
    {"code": "fr", "name": "French"},
    {"code": "de", "name": "German"},
    {"code": "zh", "name": "Chinese"},
    {"code": "ja", "name": "Japanese"},
    {"code": "ko", "name": "Korean"},
    {"code": "ta", "name": "Tamil"},
]
DEFAULT_LANGUAGE = "English"


class Settings:
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
    GEMINI_API_URL: str = os.getenv("GEMINI_API_URL", "https://generativelanguage.googleapis.com/v1beta")
    TRANSCRIPTION_TEMPERATURE: float = float(os.getenv("TRANSCRIPTION_TEMPERATURE", "0.2"))
    ELEVEN_LABS_VOICE_ID: str = os.getenv("ELEVEN_LABS_VOICE_ID", "9Ats6C5UrhVXzgyVbnh3")
    ELEVEN_LABS_MODEL: str = os.getenv("ELEVEN_LABS_MODEL", "eleven_multilingual_v2")
    ELEVEN_LABS_OUTPUT_FORMAT: str = os.getenv("ELEVEN_LABS_OUTPUT_FORMAT", "mp3_44100_128")
    ELEVEN_LABS_API_URL: str = os.getenv("ELEVEN_LABS_API_URL", "https://api.elevenlabs.io/v1")
    UPSTREAM_TIMEOUT: float = float(os.getenv("UPSTREAM_TIMEOUT", "60"))
    FRONTEND_ORIGIN: str = os.getenv("FRONTEND_ORIGIN", "http://localhost:3000")
    VOICE_TRANSLATE_SERVER: str = os.getenv("VOICE_TRANSLATE_SERVER", "http://127.0.0.1:8000")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    FFMPEG_BIN: str = os.getenv("FFMPEG_BIN", "ffmpeg")

    # Credentials are read from the environment on every access
    @property
    def GOOGLE_API_KEY(self) -> str:
        return os.getenv("GOOGLE_API_KEY", "")

    @property
    def ELEVEN_LABS_KEY(self) -> str:
        return os.getenv("ELEVEN_LABS_KEY", "")

    def language_names(self):
        return [lang["name"] for lang in LANGUAGES]


settings = Settings()
