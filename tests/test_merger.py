import asyncio

import pytest

from gopmerge.exceptions import FilesystemError, SubprocessError, ValidationError
from gopmerge.merger import MergeExecutor, concat_command, merge_files, parse_progress_time, stream_merge
from gopmerge.models import MergeJob
from gopmerge.recipe import parse_recipe
from gopmerge.tools import Tools


FILES = ["/r/F_1_0001.mp4", "/r/F_1_0002.mp4", "/r/F_1_0003.mp4"]


@pytest.mark.parametrize("files,output", [
    (FILES[:1], "/out/F_1.mp4"),
    ([], "/out/F_1.mp4"),
    (FILES, None),
    (FILES, ""),
])
def test_preconditions_checked_before_spawn(fake_exec, tools, tmp_path, files, output):
    calls = fake_exec()
    with pytest.raises(ValidationError):
        asyncio.run(merge_files(files, 0.5, output, executor=MergeExecutor(tools), temp_dir=str(tmp_path)))
    assert calls == []
    assert list(tmp_path.iterdir()) == []


def test_negative_cut_rejected(fake_exec, tools):
    calls = fake_exec()
    with pytest.raises(ValidationError):
        asyncio.run(merge_files(FILES, -1, "/out/F_1.mp4", executor=MergeExecutor(tools)))
    assert calls == []


def test_success_outcome(fake_exec, tools, tmp_path):
    calls = fake_exec(
        stdout=["out 1\n", "out 2\n"],
        stderr=["Input #0, concat\n", "frame=  10 time=00:00:01.00\n", "frame=  20 time=00:00:02.00\n"],
    )
    lines = []
    outcome = asyncio.run(merge_files(
        FILES, 0.5, "/out/F_1.mp4",
        on_progress=lines.append,
        executor=MergeExecutor(tools),
        temp_dir=str(tmp_path),
    ))

    assert outcome.success
    assert outcome.output_path == "/out/F_1.mp4"
    assert outcome.error_message is None

    assert lines[0] == "Merging 3 files with GOP cut = 0.500s"
    assert lines[1].startswith("list.txt → ")
    logged = lines[2:]
    assert [l for l in logged if l.startswith("out")] == ["out 1", "out 2"]
    assert [l for l in logged if not l.startswith("out")] == [
        "Input #0, concat",
        "frame=  10 time=00:00:01.00",
        "frame=  20 time=00:00:02.00",
    ]

    cmd = calls[0]
    recipe_path = cmd[cmd.index("-i") + 1]
    assert cmd == concat_command("/opt/ffmpeg/bin/ffmpeg", recipe_path, "/out/F_1.mp4")
    with open(recipe_path, encoding="utf-8") as f:
        recipe = parse_recipe(f.read())
    assert recipe.paths == FILES
    assert [e.inpoint for e in recipe.entries] == [None, 0.5, 0.5]


def test_failure_outcome_includes_exit_code(fake_exec, tools, tmp_path):
    fake_exec(stderr=["concat.txt: Invalid data found when processing input\n"], returncode=1)
    lines = []
    outcome = asyncio.run(merge_files(
        FILES, 0.5, "/out/F_1.mp4",
        on_progress=lines.append,
        executor=MergeExecutor(tools),
        temp_dir=str(tmp_path),
    ))

    assert not outcome.success
    assert outcome.output_path is None
    assert "1" in outcome.error_message
    assert "concat.txt: Invalid data found when processing input" in lines


def test_stream_yields_lines_and_sets_outcome(fake_exec, tools):
    fake_exec(stderr=["a\r\n", "b\n"], returncode=0)
    job = MergeJob(output_path="/out/x.mp4", recipe_path="/tmp/list.txt")

    async def collect():
        return [line async for line in MergeExecutor(tools).stream(job)]

    assert asyncio.run(collect()) == ["a", "b"]
    assert job.outcome.success
    assert job.outcome.output_path == "/out/x.mp4"


def test_stream_closed_early_still_waits_for_ffmpeg(fake_exec, tools):
    fake_exec(stdout=["o1\n", "o2\n"], stderr=["e1\n", "e2\n", "e3\n"], returncode=1)
    job = MergeJob(output_path="/out/x.mp4", recipe_path="/tmp/list.txt")

    async def read_one_then_close():
        lines = MergeExecutor(tools).stream(job)
        first = await lines.__anext__()
        await lines.aclose()
        pending = [t for t in asyncio.all_tasks() if t is not asyncio.current_task()]
        return first, pending

    first, pending = asyncio.run(read_one_then_close())
    assert first in ("o1", "e1")
    assert pending == []
    assert job.outcome is not None
    assert job.outcome.error_message == "ffmpeg exited with code 1"


def test_stream_merge_closed_early_sets_outcome(fake_exec, tools, tmp_path):
    fake_exec(stderr=["e1\n", "e2\n"])
    job = MergeJob(output_path="/out/F_1.mp4")

    async def read_header_then_close():
        lines = stream_merge(FILES, 0.5, job, MergeExecutor(tools), str(tmp_path))
        header = [await lines.__anext__(), await lines.__anext__(), await lines.__anext__()]
        await lines.aclose()
        return header

    header = asyncio.run(read_header_then_close())
    assert header[0].startswith("Merging 3 files")
    assert job.outcome.success


def test_outcomes_are_per_merge(fake_exec, tools, tmp_path):
    executor = MergeExecutor(tools)
    fake_exec(returncode=0)
    first = asyncio.run(merge_files(FILES, 0, "/out/a.mp4", executor=executor, temp_dir=str(tmp_path)))
    fake_exec(returncode=1)
    second = asyncio.run(merge_files(FILES, 0, "/out/b.mp4", executor=executor, temp_dir=str(tmp_path)))

    assert first.success and first.output_path == "/out/a.mp4"
    assert not second.success


def test_unwritable_temp_dir_is_filesystem_error(fake_exec, tools, tmp_path):
    calls = fake_exec()
    with pytest.raises(FilesystemError, match="Cannot write concat list"):
        asyncio.run(merge_files(
            FILES, 0.5, "/out/F_1.mp4",
            executor=MergeExecutor(tools),
            temp_dir=str(tmp_path / "missing"),
        ))
    assert calls == []


def test_launch_failure_raises(fake_exec, tools, tmp_path):
    fake_exec(error=FileNotFoundError("ffmpeg"))
    with pytest.raises(SubprocessError):
        asyncio.run(merge_files(FILES, 0, "/out/F_1.mp4", executor=MergeExecutor(tools), temp_dir=str(tmp_path)))


def test_missing_ffmpeg_raises(fake_exec, tmp_path):
    calls = fake_exec()
    executor = MergeExecutor(Tools(ffmpeg=None, ffprobe=None))
    with pytest.raises(SubprocessError):
        asyncio.run(merge_files(FILES, 0, "/out/F_1.mp4", executor=executor, temp_dir=str(tmp_path)))
    assert calls == []


def test_concat_command():
    assert concat_command("ffmpeg", "/tmp/l.txt", "/out.mp4") == [
        "ffmpeg", "-y", "-f", "concat", "-safe", "0", "-i", "/tmp/l.txt", "-c", "copy", "/out.mp4",
    ]


def test_parse_progress_time():
    line = "frame= 1500 fps=0.0 q=-1.0 size=   10240kB time=00:01:02.50 bitrate=1342.2kbits/s"
    assert parse_progress_time(line) == pytest.approx(62.5)
    assert parse_progress_time("Input #0, concat, from 'list.txt':") is None
