import logging
from pathlib import Path
from typing import Optional, Union

formatter = logging.Formatter(
    "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

_configured = False


def setup_logging(log_dir: Optional[Union[str, Path]] = None, level: int = logging.INFO) -> logging.Logger:
    """Attach console (and optional errors.log) handlers to the root logger once."""
    global _configured
    logger = logging.getLogger()
    if _configured:
        return logger

    # Console handler - all INFO and above
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Error file handler - only ERROR and above (includes tracebacks)
    if log_dir:
        logs_path = Path(log_dir)
        logs_path.mkdir(parents=True, exist_ok=True)
        error_file_handler = logging.FileHandler(logs_path / "errors.log")
        error_file_handler.setLevel(logging.ERROR)
        error_file_handler.setFormatter(formatter)
        logger.addHandler(error_file_handler)

    logger.setLevel(level)
    _configured = True
    return logger
