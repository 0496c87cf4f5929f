from .frames import CandidateFrame
from .prompt_run import TEMPLATE_NAMES, Base, GeneratedPrompt, PromptRun
from .upload import CompletedPart, UploadSession

__all__ = [
    "Base",
    "CandidateFrame",
    "CompletedPart",
    "GeneratedPrompt",
    "PromptRun",
    "TEMPLATE_NAMES",
    "UploadSession",
]
