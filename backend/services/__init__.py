from .errors import ConfigurationError, NotFoundError, PromptMakerError, UpstreamError, ValidationError
from .gcs import generate_signed_url, get_bucket_name

__all__ = [
    "PromptMakerError",
    "ValidationError",
    "NotFoundError",
    "ConfigurationError",
    "UpstreamError",
    "generate_signed_url",
    "get_bucket_name",
]
