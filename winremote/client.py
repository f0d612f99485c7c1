"""High-level entry point bundling a connection with the command runner."""
from __future__ import annotations

import logging
from typing import Any, Optional

from .core.config import ConnectionConfig
from .services.command_runner import run_command
from .services.connection import Connection, open_connection

logger = logging.getLogger(__name__)


class WindowsClient:
    """Run PowerShell on one remote Windows host over WinRM or SSH.

    Resource-specific helpers build their command strings and hand them to
    :meth:`run`; they never see which transport is in use.
    """

    def __init__(self, connection: Connection) -> None:
        self.connection = connection

    @classmethod
    async def create(cls, config: ConnectionConfig) -> "WindowsClient":
        """Open the configured transport and wrap it in a client."""

        connection = await open_connection(config)
        return cls(connection)

    async def run(self, command: str, result_type: Optional[Any] = None) -> Any:
        return await run_command(self.connection, command, result_type)

    async def close(self) -> None:
        logger.debug("Closing Windows client")
        await self.connection.close()

    async def __aenter__(self) -> "WindowsClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


__all__ = ["WindowsClient"]
