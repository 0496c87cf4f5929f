from .api import ApiError, PromptMakerClient
from .keyframes import InvalidVideoError, select_keyframes

__all__ = ["ApiError", "PromptMakerClient", "InvalidVideoError", "select_keyframes"]
