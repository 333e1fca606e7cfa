"""Exception hierarchy for the session engine.

Validation failures raise one of these to the caller. Batch and
persistence failures are logged and defaulted instead of raised.
"""
from __future__ import annotations


class SessionDeckError(Exception):
    """Base exception for all session engine errors."""


class NotAGitRepositoryError(SessionDeckError):
    """A session was requested for a directory that is not a git work tree."""
    def __init__(self, directory: str):
        self.directory = directory
        super().__init__(
            f"Selected directory is not a git repository: {directory}"
        )


class SessionNotFoundError(SessionDeckError):
    """No session with the given id exists in the collection."""
    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")


class ConfigLoadError(SessionDeckError):
    """The persisted config could not be read or parsed."""
    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot load config {path}: {reason}")


class ConfigSaveError(SessionDeckError):
    """The persisted config could not be written."""
    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot save config {path}: {reason}")


class GitCommandError(SessionDeckError):
    """A git/gh subprocess exited non-zero or could not be started."""
    def __init__(self, command: list[str], cwd: str, reason: str):
        self.command = command
        self.cwd = cwd
        self.reason = reason
        super().__init__(
            f"'{' '.join(command)}' failed in {cwd}: {reason}"
        )
