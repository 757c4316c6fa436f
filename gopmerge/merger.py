"""
Stream-copy merge with ffmpeg's concat demuxer.

ffmpeg writes its progress to stderr, so both pipes are drained line by
line while the process runs; an unread pipe would stall it.
"""

import asyncio
import logging
import re
from typing import AsyncIterator, Callable, List, Optional, Sequence

from .exceptions import SubprocessError, ValidationError
from .models import MergeJob, MergeOutcome
from .recipe import build_recipe, write_recipe
from .tools import Tools, get_tools

logger = logging.getLogger(__name__)

_TIME_RE = re.compile(r"time=(\d+):(\d{2}):(\d{2}(?:\.\d+)?)")

ProgressCallback = Callable[[str], None]


def parse_progress_time(line: str) -> Optional[float]:
    """Seconds from an ffmpeg status line's time=HH:MM:SS.xx field."""
    match = _TIME_RE.search(line)
    if not match:
        return None
    hours, minutes, seconds = match.groups()
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


def concat_command(ffmpeg: str, recipe_path: str, output_path: str) -> List[str]:
    return [
        ffmpeg,
        "-y",
        "-f", "concat",
        "-safe", "0",
        "-i", recipe_path,
        "-c", "copy",
        output_path,
    ]


class MergeExecutor:
    def __init__(self, tools: Optional[Tools] = None):
        self.tools = tools or get_tools()

    async def _pump(self, reader: asyncio.StreamReader, queue: asyncio.Queue):
        try:
            while True:
                raw = await reader.readline()
                if not raw:
                    break
                await queue.put(raw.decode(errors="replace").rstrip("\r\n"))
        finally:
            await queue.put(None)

    async def stream(self, job: MergeJob) -> AsyncIterator[str]:
        """Run ffmpeg on job's concat list, yielding every stdout/stderr line as it arrives.

        The process always runs to completion, even if the consumer stops
        early; job.outcome is set once it has exited.
        """
        cmd = concat_command(self.tools.require("ffmpeg"), job.recipe_path, job.output_path)
        logger.info(f"Running: {' '.join(cmd)}")
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise SubprocessError(f"Could not launch ffmpeg: {e}", cmd=cmd) from e

        queue: asyncio.Queue = asyncio.Queue()
        pumps = [
            asyncio.ensure_future(self._pump(process.stdout, queue)),
            asyncio.ensure_future(self._pump(process.stderr, queue)),
        ]
        try:
            open_streams = len(pumps)
            while open_streams:
                line = await queue.get()
                if line is None:
                    open_streams -= 1
                    continue
                yield line
        finally:
            await asyncio.gather(*pumps)
            returncode = await process.wait()
            if returncode == 0:
                logger.info(f"Merged into {job.output_path}")
                job.outcome = MergeOutcome(success=True, output_path=job.output_path)
            else:
                logger.error(f"ffmpeg exited with code {returncode}")
                job.outcome = MergeOutcome(success=False, error_message=f"ffmpeg exited with code {returncode}")

    async def execute(
        self,
        recipe_path: str,
        output_path: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> MergeOutcome:
        job = MergeJob(output_path=output_path, recipe_path=recipe_path)
        async for line in self.stream(job):
            if on_progress:
                on_progress(line)
        return job.outcome


def validate_merge_request(files: Sequence[str], cut_seconds: float, output_path: Optional[str]):
    if not files or len(files) < 2:
        raise ValidationError("Need at least 2 files to merge")
    if not output_path:
        raise ValidationError("Choose an output path")
    if cut_seconds < 0:
        raise ValidationError(f"Cut duration must not be negative, got {cut_seconds}")


async def stream_merge(
    files: Sequence[str],
    cut_seconds: float,
    job: MergeJob,
    executor: MergeExecutor,
    temp_dir: Optional[str] = None,
) -> AsyncIterator[str]:
    """Write the concat list and run the merge, yielding log lines; see job.outcome."""
    validate_merge_request(files, cut_seconds, job.output_path)

    message = f"Merging {len(files)} files with GOP cut = {cut_seconds:.3f}s"
    logger.info(message)
    yield message

    job.recipe_path = write_recipe(build_recipe(files, cut_seconds), temp_dir)
    logger.info(f"Concat list written to {job.recipe_path}")
    yield f"list.txt → {job.recipe_path}"

    lines = executor.stream(job)
    try:
        async for line in lines:
            yield line
    finally:
        await lines.aclose()


async def merge_files(
    files: Sequence[str],
    cut_seconds: float,
    output_path: Optional[str],
    on_progress: Optional[ProgressCallback] = None,
    executor: Optional[MergeExecutor] = None,
    temp_dir: Optional[str] = None,
) -> MergeOutcome:
    """Validate, write the concat list and merge files into output_path."""
    validate_merge_request(files, cut_seconds, output_path)
    executor = executor or MergeExecutor()
    job = MergeJob(output_path=output_path)
    async for line in stream_merge(files, cut_seconds, job, executor, temp_dir):
        if on_progress:
            on_progress(line)
    return job.outcome
