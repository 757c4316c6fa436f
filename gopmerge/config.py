"""
Configuration for gopmerge.

Two layers:
1. Settings - tool locations and scratch/log directories, from GOPMERGE_*
   environment variables or a .env file
2. Merge preferences - container extension, filename delimiter, GOP scan cap
   and default cut, from an optional YAML/JSON file
"""

import json
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic_settings import BaseSettings


DEFAULT_CONFIG_PATH = Path.home() / ".config" / "gopmerge" / "config.yaml"

DEFAULT_CONFIG = {
    "extension": ".mp4",
    "delimiter": "_",
    "gop_scan_limit": 400,  # Frames inspected when measuring GOP length
    "default_cut_seconds": 0.5,
}


class Settings(BaseSettings):
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    # Where concat lists are written; system temp dir when unset
    temp_dir: Optional[str] = None
    log_dir: Optional[str] = None
    # Preferences file; DEFAULT_CONFIG_PATH when unset
    config_path: Optional[str] = None

    class Config:
        env_prefix = "GOPMERGE_"
        env_file = ".env"


def _is_yaml(path: str) -> bool:
    """Check if file is YAML based on extension."""
    return path.endswith(('.yaml', '.yml'))


def load_config(path: Optional[str] = None) -> dict:
    """Load config from a YAML or JSON file, or return defaults."""
    config = DEFAULT_CONFIG.copy()
    if path and os.path.exists(path):
        with open(path, "r") as f:
            if _is_yaml(path):
                loaded = yaml.safe_load(f)
            else:
                loaded = json.load(f)
            if loaded:
                config.update(loaded)
    return config


def save_config(config: dict, path: str):
    """Save config to a YAML or JSON file."""
    with open(path, "w") as f:
        if _is_yaml(path):
            yaml.dump(config, f, default_flow_style=False, sort_keys=False)
        else:
            json.dump(config, f, indent=2)


def load_preferences(config: Optional[Settings] = None) -> dict:
    """Merge preferences from the configured file (or the default location)."""
    config = config or settings
    return load_config(config.config_path or str(DEFAULT_CONFIG_PATH))


settings = Settings()
