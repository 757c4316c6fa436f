"""Data models for session grouping, GOP estimation and merging."""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass(frozen=True, order=True)
class MediaFile:
    """A discovered segment file; ordering is lexicographic on the full path."""
    path: str
    session_key: str = field(compare=False)


@dataclass
class SessionGroup:
    """Segments of one recording session, in playback order."""
    key: str
    files: List[MediaFile] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.files)

    @property
    def paths(self) -> List[str]:
        return [f.path for f in self.files]


@dataclass(frozen=True)
class GopEstimate:
    fps: float
    gop_frames: int

    @property
    def gop_seconds(self) -> float:
        return self.gop_frames / self.fps

    def describe(self) -> str:
        return f"GOP {self.gop_frames} frames @ {self.fps:.3f} fps → {self.gop_seconds:.3f} s"


@dataclass(frozen=True)
class RecipeEntry:
    path: str
    inpoint: Optional[float] = None


@dataclass(frozen=True)
class ConcatRecipe:
    entries: Tuple[RecipeEntry, ...]

    @property
    def paths(self) -> List[str]:
        return [e.path for e in self.entries]


@dataclass
class MergeOutcome:
    """Terminal result of one merge."""
    success: bool
    output_path: Optional[str] = None
    error_message: Optional[str] = None


@dataclass
class MergeJob:
    """One merge invocation; outcome is set once ffmpeg has exited."""
    output_path: Optional[str]
    recipe_path: Optional[str] = None
    outcome: Optional[MergeOutcome] = None
