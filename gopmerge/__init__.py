"""
GOP-aligned segment merger.

Joins the fixed-interval segment files of a recording session into one
file by ffmpeg stream copy, entering every segment after the first on a
keyframe so no re-encoding is needed.
"""

from .exceptions import (
    GopMergeError,
    FilesystemError,
    ParseError,
    NotFoundError,
    ValidationError,
    SubprocessError,
)
from .grouper import discover_groups, resolve_group, scan_groups, session_key
from .merger import MergeExecutor, merge_files, stream_merge
from .models import ConcatRecipe, GopEstimate, MediaFile, MergeJob, MergeOutcome, RecipeEntry, SessionGroup
from .probe import FFprobe, find_gop_length, parse_frame_rate
from .recipe import build_recipe, escape_path, parse_recipe, render_recipe, write_recipe

__all__ = [
    "GopMergeError",
    "FilesystemError",
    "ParseError",
    "NotFoundError",
    "ValidationError",
    "SubprocessError",
    "discover_groups",
    "resolve_group",
    "scan_groups",
    "session_key",
    "MergeExecutor",
    "merge_files",
    "stream_merge",
    "ConcatRecipe",
    "GopEstimate",
    "MediaFile",
    "MergeJob",
    "MergeOutcome",
    "RecipeEntry",
    "SessionGroup",
    "FFprobe",
    "find_gop_length",
    "parse_frame_rate",
    "build_recipe",
    "escape_path",
    "parse_recipe",
    "render_recipe",
    "write_recipe",
]
