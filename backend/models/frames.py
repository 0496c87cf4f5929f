from dataclasses import dataclass


@dataclass
class CandidateFrame:
    timestamp: float           # seconds from start of the video
    score: float               # pixel difference vs the previous candidate
    data_url: str              # data:image/jpeg;base64,...
