"""
Engine exceptions.

Only ``CommitContextError`` escapes ``detect()``; the others are caught at the
reader boundary and turned into "no session".
"""


class TempoError(Exception):
    """Base exception for all engine errors."""

    pass


class GitCommandError(TempoError):
    """Raised when a git invocation exits non-zero or cannot be started."""

    def __init__(self, args: tuple[str, ...], detail: str = ""):
        self.git_args = args
        self.detail = detail
        message = f"git {' '.join(args)} failed"
        super().__init__(f"{message}: {detail}" if detail else message)


class CommitContextError(TempoError):
    """Raised when the HEAD commit's context cannot be resolved at all."""

    pass


class StoreQueryError(TempoError):
    """Raised when a structured store query fails."""

    pass
