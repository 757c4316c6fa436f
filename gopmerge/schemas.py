from typing import List, Optional

from pydantic import BaseModel


class GroupSummary(BaseModel):
    key: str
    count: int


class GroupList(BaseModel):
    directory: str
    groups: List[GroupSummary]


class GopRequest(BaseModel):
    file: str


class GopResponse(BaseModel):
    fps: float
    gop_frames: int
    gop_seconds: float


class MergeRequest(BaseModel):
    files: List[str]
    gop_seconds: float = 0.5
    output_path: Optional[str] = None


class MergeDone(BaseModel):
    ok: bool
    output_path: Optional[str] = None
    error: Optional[str] = None
