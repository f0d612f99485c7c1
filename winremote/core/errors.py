"""Exception hierarchy shared by the transports and parsers."""
from __future__ import annotations

from typing import Optional


class WinRemoteError(RuntimeError):
    """Base exception for remote Windows execution failures."""


class ConfigurationError(WinRemoteError):
    """Raised when connection settings are missing or conflicting."""


class RemoteConnectionError(WinRemoteError):
    """Raised when a transport cannot reach or handshake with a host."""

    def __init__(self, host: str, message: str) -> None:
        self.host = host
        super().__init__(f"Cannot connect to {host}: {message}")


class CommandError(WinRemoteError):
    """A remote command failed; keeps the command next to the underlying error.

    ``str()`` renders the underlying message only, the command is available
    through :attr:`command` (or :func:`unwrap_command`) for logging.
    """

    def __init__(self, command: str, error: BaseException) -> None:
        self.command = command
        self.error = error
        super().__init__(str(error))


class RemoteAuthenticationError(CommandError):
    """Raised when the remote host rejects the supplied credentials."""


class RemoteScriptError(CommandError):
    """The command ran but PowerShell wrote to its error stream."""

    def __init__(self, command: str, message: str, stderr: str = "") -> None:
        self.stderr = stderr
        super().__init__(command, RuntimeError(message))


class ParsingError(WinRemoteError, ValueError):
    """Raised when a wire format cannot be decoded."""

    def __init__(self, parser: str, reason: str) -> None:
        self.parser = parser
        self.reason = reason
        super().__init__(f"{parser}: {reason}")


def unwrap_command(err: Optional[BaseException]) -> str:
    """Return the command attached to ``err`` or to one of its causes."""

    seen = set()
    while err is not None and id(err) not in seen:
        if isinstance(err, CommandError):
            return err.command
        seen.add(id(err))
        err = err.__cause__ or err.__context__
    return ""


__all__ = [
    "WinRemoteError",
    "ConfigurationError",
    "RemoteConnectionError",
    "CommandError",
    "RemoteAuthenticationError",
    "RemoteScriptError",
    "ParsingError",
    "unwrap_command",
]
