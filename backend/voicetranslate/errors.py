"""Failure taxonomy shared by the API services and the client pipeline.

Validation and configuration errors are raised before any I/O happens.
Remote and malformed-response errors are raised at the HTTP boundary and are
turned into a single user-facing message by the session state machine.
"""
from typing import Optional


class VoiceTranslateError(Exception):
    """Base class for every pipeline failure."""

    code = "error"
    user_message: Optional[str] = None


class TranscriptionError(VoiceTranslateError):
    """Failure of the transcription stage."""


class SynthesisError(VoiceTranslateError):
    """Failure of the synthesis stage."""


class InputValidationError(TranscriptionError, SynthesisError):
    """A required field is missing or empty. Never reaches the network."""

    code = "input_validation_error"
    user_message = "Missing audio, language or transcript."


MissingInput = InputValidationError


class ConfigurationError(SynthesisError, TranscriptionError):
    """A service credential is absent."""

    code = "configuration_error"
    user_message = "The translation service is not configured."


class RemoteError(TranscriptionError, SynthesisError):
    """An external service errored or answered with a non-success status."""

    code = "remote_error"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedResponse(TranscriptionError, SynthesisError):
    """A success response did not have the expected shape."""

    code = "malformed_response"


class InvalidAudioContent(SynthesisError):
    """Synthesized audio was empty or not tagged as audio."""

    code = "invalid_audio_content"
    user_message = "Received empty or invalid audio."


class PermissionDenied(VoiceTranslateError):
    code = "permission_denied"
    user_message = "Microphone access is required."


class PlaybackError(VoiceTranslateError):
    code = "playback_error"
    user_message = "Audio playback failed."


class IllegalTransition(VoiceTranslateError):
    code = "illegal_transition"
