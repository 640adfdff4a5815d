"""Error types shared by the services and controllers.

None of these are fatal: controllers catch them at their boundary and turn
them into `error_reported` signals or degraded-but-running behaviour.
"""

from __future__ import annotations


class GuidedReaderError(Exception):
    """Base class for all guided_reader errors."""


class ExternalServiceFailure(GuidedReaderError):
    """Vocabulary, segment or audio retrieval failed (network, auth, quota)."""

    def __init__(self, service: str, message: str) -> None:
        self.service = service
        super().__init__("{}: {}".format(service, message))


class MalformedServiceResponse(GuidedReaderError):
    """A service answered, but the payload could not be interpreted."""


class SpeechUnavailable(GuidedReaderError):
    """Speech synthesis was blocked, denied or interrupted."""


__all__ = [
    "GuidedReaderError",
    "ExternalServiceFailure",
    "MalformedServiceResponse",
    "SpeechUnavailable",
]
