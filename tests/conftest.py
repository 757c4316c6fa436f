import asyncio

import pytest

from gopmerge.tools import Tools


class FakeStream:
    """Stands in for asyncio.StreamReader; yields the given lines, then EOF."""

    def __init__(self, lines):
        self._lines = [l.encode() if isinstance(l, str) else l for l in lines]

    async def readline(self):
        await asyncio.sleep(0)
        if self._lines:
            return self._lines.pop(0)
        return b""

    async def read(self):
        data = b"".join(self._lines)
        self._lines = []
        return data


class FakeProcess:
    def __init__(self, stdout=(), stderr=(), returncode=0):
        self.stdout = FakeStream(stdout)
        self.stderr = FakeStream(stderr)
        self._returncode = returncode
        self.returncode = None

    async def wait(self):
        self.returncode = self._returncode
        return self.returncode

    async def communicate(self):
        out = await self.stdout.read()
        err = await self.stderr.read()
        self.returncode = self._returncode
        return out, err


@pytest.fixture
def tools():
    return Tools(ffmpeg="/opt/ffmpeg/bin/ffmpeg", ffprobe="/opt/ffmpeg/bin/ffprobe")


@pytest.fixture
def fake_exec(monkeypatch):
    """Replace asyncio.create_subprocess_exec; records every spawned command."""
    calls = []

    def install(stdout=(), stderr=(), returncode=0, error=None):
        async def create_subprocess_exec(*cmd, **kwargs):
            calls.append(list(cmd))
            if error is not None:
                raise error
            return FakeProcess(stdout, stderr, returncode)

        monkeypatch.setattr(asyncio, "create_subprocess_exec", create_subprocess_exec)
        return calls

    return install


@pytest.fixture
def segment_dir(tmp_path):
    names = [
        "F_20250828184000_0002.mp4",
        "F_20250828184000_0001.mp4",
        "R_20250828190000_0001.MP4",
        "F_20250828184000_0003.mp4",
        "single.mp4",
        "notes.txt",
    ]
    for name in names:
        (tmp_path / name).write_bytes(b"")
    return tmp_path
