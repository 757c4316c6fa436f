"""
GOP interval estimation with ffprobe.

The cut interval for a session is measured from its first segment:
1. Average frame rate of the first video stream ("30000/1001" -> 29.97)
2. Distance in frames between the first two I-frames, within a capped window
3. GOP duration = GOP frames / fps
"""

import asyncio
import logging
import math
from typing import Iterable, List, Optional

from .config import DEFAULT_CONFIG
from .exceptions import NotFoundError, ParseError, SubprocessError
from .models import GopEstimate
from .tools import Tools, get_tools

logger = logging.getLogger(__name__)


def parse_frame_rate(text: str) -> float:
    """Parse an ffprobe "num/den" frame rate into frames per second."""
    value = text.strip()
    if "/" not in value:
        raise ParseError(f"Malformed frame rate {value!r}: expected 'numerator/denominator'")
    num_str, _, den_str = value.partition("/")
    try:
        num = float(num_str)
        den = float(den_str)
    except ValueError:
        raise ParseError(f"Malformed frame rate {value!r}: non-numeric part") from None
    if num == 0 or den == 0:
        raise ParseError(f"Invalid frame rate {value!r}: zero numerator or denominator")
    fps = num / den
    if not math.isfinite(fps) or fps <= 0:
        raise ParseError(f"Invalid frame rate {value!r}: must be a positive finite number")
    return fps


def parse_picture_types(output: str) -> List[str]:
    """Extract one picture type per frame from ffprobe csv output ("I", "P,", ...)."""
    types = []
    for line in output.splitlines():
        value = line.strip().strip(",")
        if value:
            types.append(value)
    return types


def find_gop_length(picture_types: Iterable[str], limit: int = DEFAULT_CONFIG["gop_scan_limit"]) -> int:
    """Frames between the first two I-frames within the first `limit` frames."""
    first = None
    for index, pict_type in enumerate(picture_types):
        if index >= limit:
            break
        if pict_type != "I":
            continue
        if first is None:
            first = index
        else:
            return index - first

    if first is None:
        raise NotFoundError(f"No keyframe found in the first {limit} frames")
    raise NotFoundError(f"No second keyframe found within {limit} frames (first at frame {first})")


class FFprobe:
    def __init__(self, tools: Optional[Tools] = None, scan_limit: int = DEFAULT_CONFIG["gop_scan_limit"]):
        self.tools = tools or get_tools()
        self.scan_limit = scan_limit

    async def _run(self, args: List[str]) -> str:
        cmd = [self.tools.require("ffprobe"), *args]
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise SubprocessError(f"Could not launch ffprobe: {e}", cmd=cmd) from e
        stdout, stderr = await process.communicate()
        if process.returncode != 0:
            raise SubprocessError(
                "FFprobe failed",
                cmd=cmd,
                returncode=process.returncode,
                stderr=stderr.decode(errors="replace"),
            )
        return stdout.decode(errors="replace")

    async def estimate_fps(self, input_file: str) -> float:
        output = await self._run([
            "-v", "error",
            "-select_streams", "v:0",
            "-show_entries", "stream=avg_frame_rate",
            "-of", "default=noprint_wrappers=1:nokey=1",
            input_file,
        ])
        return parse_frame_rate(output)

    async def estimate_gop_frames(self, input_file: str) -> int:
        output = await self._run([
            "-v", "error",
            "-select_streams", "v:0",
            "-read_intervals", f"%+#{self.scan_limit}",
            "-show_entries", "frame=pict_type",
            "-of", "csv=p=0",
            input_file,
        ])
        return find_gop_length(parse_picture_types(output), self.scan_limit)

    async def estimate(self, input_file: str) -> GopEstimate:
        # Both reads run to completion; the first failure is reported
        fps, gop_frames = await asyncio.gather(
            self.estimate_fps(input_file),
            self.estimate_gop_frames(input_file),
            return_exceptions=True,
        )
        for result in (fps, gop_frames):
            if isinstance(result, BaseException):
                raise result
        estimate = GopEstimate(fps=fps, gop_frames=gop_frames)
        logger.info(f"{input_file}: {estimate.describe()}")
        return estimate

    async def probe_duration(self, input_file: str) -> Optional[float]:
        output = await self._run([
            "-v", "error",
            "-show_entries", "format=duration",
            "-of", "default=noprint_wrappers=1:nokey=1",
            input_file,
        ])
        try:
            return float(output.strip())
        except ValueError:
            return None
