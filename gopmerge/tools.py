"""Locate the ffmpeg/ffprobe binaries once per process."""

import logging
import os
import shutil
from dataclasses import dataclass
from typing import Optional

from .config import Settings, settings as default_settings
from .exceptions import SubprocessError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Tools:
    ffmpeg: Optional[str]
    ffprobe: Optional[str]

    def require(self, name: str) -> str:
        path = getattr(self, name)
        if not path:
            raise SubprocessError(f"{name} binary not found; set GOPMERGE_{name.upper()}_PATH or add it to PATH")
        return path


def _resolve(configured: str) -> Optional[str]:
    # Explicit paths win; bare names go through PATH (and PATHEXT on Windows)
    if os.path.dirname(configured):
        return configured if os.path.isfile(configured) else None
    return shutil.which(configured)


def locate_tools(config: Optional[Settings] = None) -> Tools:
    config = config or default_settings
    tools = Tools(
        ffmpeg=_resolve(config.ffmpeg_path),
        ffprobe=_resolve(config.ffprobe_path),
    )
    for name, configured in (("ffmpeg", config.ffmpeg_path), ("ffprobe", config.ffprobe_path)):
        if getattr(tools, name) is None:
            logger.error(f"{name} binary not found (looked for {configured!r}); operations that need it will fail")
        else:
            logger.debug(f"Using {name}: {getattr(tools, name)}")
    return tools


_tools: Optional[Tools] = None


def get_tools() -> Tools:
    """Process-wide tool resolution, performed on first use."""
    global _tools
    if _tools is None:
        _tools = locate_tools()
    return _tools
