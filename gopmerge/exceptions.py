import shlex
from typing import Optional, Sequence


class GopMergeError(Exception):
    pass


class FilesystemError(GopMergeError):
    pass


class ParseError(GopMergeError):
    pass


class NotFoundError(GopMergeError):
    pass


class ValidationError(GopMergeError):
    pass


class SubprocessError(GopMergeError):
    def __init__(
        self,
        message: str,
        cmd: Optional[Sequence[str]] = None,
        returncode: Optional[int] = None,
        stderr: str = "",
    ):
        self.cmd = list(cmd) if cmd else None
        self.returncode = returncode
        self.stderr = stderr
        error_message = message
        if self.cmd:
            error_message += f"\nCommand: {' '.join(shlex.quote(arg) for arg in self.cmd)}"
        if returncode is not None:
            error_message += f"\nReturn code: {returncode}"
        if stderr:
            error_message += f"\nStandard error: {stderr.strip()}"
        super().__init__(error_message)
