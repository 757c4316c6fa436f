"""
Session grouping.

Segment files are named so that lexicographic order is chronological, e.g.

    F_20250828184000_0001.mp4
    F_20250828184000_0002.mp4

The first two delimiter-separated tokens ("F_20250828184000") identify the
recording session the segment belongs to.
"""

import logging
import os
from typing import Dict, List, Optional, Tuple

from .config import DEFAULT_CONFIG
from .exceptions import FilesystemError
from .models import MediaFile, SessionGroup

logger = logging.getLogger(__name__)


def session_key(filename: str, delimiter: str = DEFAULT_CONFIG["delimiter"]) -> Optional[str]:
    """Return the session key of a filename, or None if it has fewer than two tokens."""
    tokens = filename.split(delimiter)
    if len(tokens) < 2:
        return None
    return delimiter.join(tokens[:2])


def list_media_files(
    directory: str,
    extension: str = DEFAULT_CONFIG["extension"],
    delimiter: str = DEFAULT_CONFIG["delimiter"],
) -> List[MediaFile]:
    """List files in directory with the given extension, sorted by full path."""
    try:
        names = os.listdir(directory)
    except OSError as e:
        raise FilesystemError(f"Cannot read directory {directory}: {e}") from e

    extension = extension.lower()
    paths = sorted(
        os.path.join(os.path.abspath(directory), name)
        for name in names
        if name.lower().endswith(extension)
    )

    files = []
    for path in paths:
        key = session_key(os.path.basename(path), delimiter)
        if key is None:
            logger.debug(f"Skipping {path}: no session key")
            continue
        files.append(MediaFile(path=path, session_key=key))
    return files


def scan_groups(
    directory: str,
    extension: str = DEFAULT_CONFIG["extension"],
    delimiter: str = DEFAULT_CONFIG["delimiter"],
) -> List[SessionGroup]:
    """Partition a directory into session groups, in first-encounter order."""
    groups: Dict[str, SessionGroup] = {}
    for media in list_media_files(directory, extension, delimiter):
        groups.setdefault(media.session_key, SessionGroup(key=media.session_key)).files.append(media)
    logger.info(f"Found {len(groups)} session(s) in {directory}")
    return list(groups.values())


def discover_groups(
    directory: str,
    extension: str = DEFAULT_CONFIG["extension"],
    delimiter: str = DEFAULT_CONFIG["delimiter"],
) -> List[Tuple[str, int]]:
    """Return (session_key, file_count) for every session in directory."""
    return [(g.key, g.count) for g in scan_groups(directory, extension, delimiter)]


def resolve_group(
    directory: str,
    key: str,
    extension: str = DEFAULT_CONFIG["extension"],
    delimiter: str = DEFAULT_CONFIG["delimiter"],
) -> List[str]:
    """Return the ordered file paths of one session, or [] if no such session."""
    for group in scan_groups(directory, extension, delimiter):
        if group.key == key:
            return group.paths
    return []


def suggested_output_name(key: str, extension: str = DEFAULT_CONFIG["extension"]) -> str:
    return f"{key}{extension}"
