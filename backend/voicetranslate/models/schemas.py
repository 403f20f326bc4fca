from typing import Optional

from pydantic import BaseModel


class TranscriptionRequest(BaseModel):
    audioFileBase64: Optional[str] = None
    destLanguage: Optional[str] = None


class TranscriptionResponse(BaseModel):
    destinationTranscript: str
    sourceLanguage: str


class VoiceRequest(BaseModel):
    transcript: Optional[str] = None


class ErrorResponse(BaseModel):
    error: str
    code: str
