from dataclasses import dataclass, field


@dataclass
class CompletedPart:
    part_number: int           # 1-based, unique within a completion set
    etag: str                  # integrity tag returned by the storage backend


@dataclass
class UploadSession:
    key: str                   # uploads/{uuid}/{safe filename}
    upload_id: str             # opaque multipart session token
    part_size: int             # bytes per part the client should send
    parts: list[CompletedPart] = field(default_factory=list)
