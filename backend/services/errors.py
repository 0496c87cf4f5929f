"""Error taxonomy shared by services and routes. Each error maps to one HTTP status."""

from typing import Any


class PromptMakerError(Exception):
    status_code = 500

    def __init__(self, message: str, *, detail: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(PromptMakerError):
    """Bad or missing input."""

    status_code = 400


class NotFoundError(PromptMakerError):
    status_code = 404


class ConfigurationError(PromptMakerError):
    """A required credential or setting is missing."""

    status_code = 500


class UpstreamError(PromptMakerError):
    """The generation backend answered with a failure or could not be reached."""

    status_code = 502
