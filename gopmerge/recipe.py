"""
Concat recipe for ffmpeg's concat demuxer.

    file '/rec/F_20250828184000_0001.mp4'
    file '/rec/F_20250828184000_0002.mp4'
    inpoint 0.500

Every segment after the first is entered one GOP in, so the stream copy
starts on a keyframe.
"""

import logging
import shlex
import tempfile
import time
from typing import List, Optional, Sequence

from .exceptions import FilesystemError, ParseError
from .models import ConcatRecipe, RecipeEntry

logger = logging.getLogger(__name__)


def escape_path(path: str) -> str:
    """Quote a path for a concat list: close the quote, emit \\', reopen."""
    return "'" + path.replace("'", "'\\''") + "'"


def build_recipe(files: Sequence[str], cut_seconds: float) -> ConcatRecipe:
    entries = []
    for idx, path in enumerate(files):
        if idx > 0 and cut_seconds > 0:
            entries.append(RecipeEntry(path=path, inpoint=round(cut_seconds, 3)))
        else:
            entries.append(RecipeEntry(path=path))
    return ConcatRecipe(entries=tuple(entries))


def render_recipe(recipe: ConcatRecipe) -> str:
    lines = []
    for entry in recipe.entries:
        # file line must come first, then the optional inpoint
        lines.append(f"file {escape_path(entry.path)}")
        if entry.inpoint is not None:
            lines.append(f"inpoint {entry.inpoint:.3f}")
    return "\n".join(lines) + "\n"


def write_recipe(recipe: ConcatRecipe, temp_dir: Optional[str] = None) -> str:
    """Write the recipe to a new, uniquely named file and return its path."""
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            prefix=f"concat_{time.time_ns()}_",
            suffix=".txt",
            dir=temp_dir,
            delete=False,
        ) as f:
            f.write(render_recipe(recipe))
    except OSError as e:
        raise FilesystemError(f"Cannot write concat list: {e}") from e
    logger.debug(f"Wrote concat list {f.name} ({len(recipe.entries)} entries)")
    return f.name


def parse_recipe(text: str) -> ConcatRecipe:
    """Read a concat list back into a recipe (file/inpoint directives only)."""
    entries: List[RecipeEntry] = []
    for lineno, line in enumerate(text.splitlines(), 1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        directive, _, rest = line.partition(" ")
        try:
            args = shlex.split(rest)
        except ValueError as e:
            raise ParseError(f"Line {lineno}: {e}") from None
        if len(args) != 1:
            raise ParseError(f"Line {lineno}: expected one argument to {directive!r}")

        if directive == "file":
            entries.append(RecipeEntry(path=args[0]))
        elif directive == "inpoint":
            if not entries:
                raise ParseError(f"Line {lineno}: inpoint before any file")
            try:
                inpoint = float(args[0])
            except ValueError:
                raise ParseError(f"Line {lineno}: bad inpoint {args[0]!r}") from None
            entries[-1] = RecipeEntry(path=entries[-1].path, inpoint=inpoint)
        else:
            raise ParseError(f"Line {lineno}: unsupported directive {directive!r}")
    return ConcatRecipe(entries=tuple(entries))

