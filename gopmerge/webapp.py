import asyncio
import json

import starlette.status as status
from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse

from .config import load_preferences, settings
from .exceptions import (
    FilesystemError,
    GopMergeError,
    NotFoundError,
    ParseError,
    SubprocessError,
    ValidationError,
)
from .grouper import discover_groups, resolve_group
from .merger import MergeExecutor, stream_merge, validate_merge_request
from .models import MergeJob
from .probe import FFprobe
from .schemas import GopRequest, GopResponse, GroupList, GroupSummary, MergeDone, MergeRequest
from .tools import get_tools

app = FastAPI(title="gopmerge")

config = load_preferences()

ERROR_STATUS = {
    FilesystemError: status.HTTP_404_NOT_FOUND,
    ParseError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    NotFoundError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ValidationError: status.HTTP_400_BAD_REQUEST,
    SubprocessError: status.HTTP_502_BAD_GATEWAY,
}

# Merges are single-flight per process
_merge_running = False


@app.on_event("startup")
def on_startup():
    get_tools()


@app.exception_handler(GopMergeError)
async def gopmerge_error_handler(request: Request, exc: GopMergeError):
    code = ERROR_STATUS.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    return JSONResponse(status_code=code, content={"error": str(exc)})


@app.get("/groups", response_model=GroupList)
async def list_groups(directory: str = Query(...)):
    groups = await asyncio.to_thread(discover_groups, directory, config["extension"], config["delimiter"])
    return GroupList(
        directory=directory,
        groups=[GroupSummary(key=key, count=count) for key, count in groups],
    )


@app.get("/groups/{key}/files", response_model=list[str])
async def list_group_files(key: str, directory: str = Query(...)):
    return await asyncio.to_thread(resolve_group, directory, key, config["extension"], config["delimiter"])


@app.post("/gop", response_model=GopResponse)
async def auto_gop(req: GopRequest):
    estimate = await FFprobe(get_tools(), config["gop_scan_limit"]).estimate(req.file)
    return GopResponse(fps=estimate.fps, gop_frames=estimate.gop_frames, gop_seconds=estimate.gop_seconds)


def _event(name: str, payload) -> str:
    return f"event: {name}\ndata: {json.dumps(payload)}\n\n"


@app.post("/merge")
async def start_merge(req: MergeRequest):
    """SSE stream of ffmpeg log lines, ending with one done event."""
    global _merge_running
    if _merge_running:
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"error": "A merge is already running"})
    validate_merge_request(req.files, req.gop_seconds, req.output_path)
    _merge_running = True

    async def event_stream():
        global _merge_running
        job = MergeJob(output_path=req.output_path)
        lines = stream_merge(req.files, req.gop_seconds, job, MergeExecutor(get_tools()), settings.temp_dir)
        try:
            async for line in lines:
                yield _event("log", line)
            outcome = job.outcome
            done = MergeDone(ok=outcome.success, output_path=outcome.output_path, error=outcome.error_message)
        except GopMergeError as e:
            done = MergeDone(ok=False, error=str(e))
        finally:
            # Waits for ffmpeg to exit if the client went away mid-stream
            await lines.aclose()
            _merge_running = False
        yield _event("done", done.model_dump(exclude_none=True))

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        }
    )
