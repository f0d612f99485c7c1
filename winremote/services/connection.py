"""Transport-agnostic connection contract.

Both transports expose the same three coroutines, so callers that build
PowerShell commands never need to know whether they talk WinRM or SSH.

Cancellation differs per transport. SSH interrupts the remote process with
SIGINT when the awaiting task is cancelled. WinRM runs its request/response
call in a worker thread; cancelling the awaiting task stops the wait but the
in-flight call runs to completion on the remote host.

A connection is meant for sequential use by a single caller. Concurrent
``run`` calls on one instance are not serialised here.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from ..core.config import ConnectionConfig
from ..core.powershell import encode_powershell_command

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CmdResult:
    """Captured output of one remote command.

    A non-empty ``stderr`` means the remote pipeline wrote to its error stream;
    it is not treated as a transport failure.
    """

    stdout: str = ""
    stderr: str = ""


@runtime_checkable
class Connection(Protocol):
    """Capabilities every transport provides."""

    async def run(self, cmd: str) -> CmdResult:
        """Execute ``cmd`` verbatim on the remote host."""
        ...

    async def run_with_powershell(self, cmd: str) -> CmdResult:
        """Execute ``cmd`` as an encoded ``powershell.exe`` invocation."""
        ...

    async def close(self) -> None:
        """Release transport resources."""
        ...


class BaseConnection(ABC):
    """Shared behaviour for the WinRM and SSH transports."""

    host: str

    @abstractmethod
    async def run(self, cmd: str) -> CmdResult:
        raise NotImplementedError

    async def run_with_powershell(self, cmd: str) -> CmdResult:
        return await self.run(encode_powershell_command(cmd))

    @abstractmethod
    async def close(self) -> None:
        raise NotImplementedError

    async def __aenter__(self) -> "BaseConnection":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


def _format_command_preview(command: str, *, max_length: int = 120) -> str:
    """Return a single-line, truncated rendering of a command for logs."""

    truncated = command.replace("\n", " ")
    if len(truncated) > max_length:
        truncated = f"{truncated[: max_length - 3]}..."
    return truncated


def _format_output_preview(output: str, *, max_length: int = 400) -> str:
    """Return a newline-prefixed preview of command output."""
    if not output:
        return ""

    sanitized = output.replace("\r\n", "\n").strip()
    if not sanitized:
        return ""

    if len(sanitized) > max_length:
        preview = sanitized[: max_length - 3] + "..."
    else:
        preview = sanitized

    return "\n" + preview


def _log_result(host: str, result: CmdResult, duration: float) -> None:
    logger.info(
        "Command on %s completed in %.2fs (stdout=%d bytes, stderr=%d bytes)",
        host,
        duration,
        len(result.stdout.encode("utf-8")),
        len(result.stderr.encode("utf-8")),
    )
    stdout_preview = _format_output_preview(result.stdout)
    if stdout_preview:
        logger.debug("Command stdout preview on %s:%s", host, stdout_preview)
    stderr_preview = _format_output_preview(result.stderr)
    if stderr_preview:
        logger.debug("Command stderr preview on %s:%s", host, stderr_preview)


async def open_connection(config: ConnectionConfig) -> BaseConnection:
    """Validate ``config`` and open the selected transport.

    Raises:
        ConfigurationError: Neither or both transports configured, or the
            selected transport's settings are incomplete. Raised before any
            network I/O.
        RemoteConnectionError: The transport could not be established.
    """

    config.ensure_valid()

    if config.winrm is not None:
        from .winrm_service import WinRMConnection

        return WinRMConnection(config.winrm)

    from .ssh_service import SSHConnection

    return await SSHConnection.connect(config.ssh)


__all__ = ["BaseConnection", "CmdResult", "Connection", "open_connection"]
