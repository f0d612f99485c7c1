"""SSH transport for executing commands on Windows hosts running OpenSSH."""
from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import List, Optional

import asyncssh

from ..core.config import SSHConfig
from ..core.errors import CommandError, ConfigurationError, RemoteConnectionError
from .connection import BaseConnection, CmdResult, _format_command_preview, _log_result

logger = logging.getLogger(__name__)


def _load_known_hosts(config: SSHConfig) -> Optional[asyncssh.SSHKnownHosts]:
    """Return the trusted host keys, or ``None`` to accept any host key."""

    if config.insecure:
        logger.warning(
            "SSH host key verification DISABLED for %s. Connections are vulnerable to MITM attacks.",
            config.host,
        )
        return None

    try:
        return asyncssh.read_known_hosts(config.known_hosts_path)
    except (OSError, ValueError) as exc:
        raise RemoteConnectionError(
            config.host,
            f"failed to load known_hosts from {config.known_hosts_path}: {exc}",
        ) from exc


def _load_client_keys(config: SSHConfig) -> Optional[List[asyncssh.SSHKey]]:
    """Return the configured private key, or ``None`` to skip public key auth.

    Inline key data wins over ``private_key_path`` when both are set.
    """

    try:
        if config.private_key:
            return [asyncssh.import_private_key(config.private_key)]
        if config.private_key_path:
            return [asyncssh.read_private_key(config.private_key_path)]
    except (OSError, ValueError) as exc:
        raise ConfigurationError(f"ssh: failed to load private key: {exc}") from exc
    return None


class SSHConnection(BaseConnection):
    """Connection backed by a single authenticated SSH client.

    Each ``run`` opens its own session channel on the shared client, so the
    handshake happens once in :meth:`connect` and ``close`` tears it down.
    """

    def __init__(self, host: str, client: asyncssh.SSHClientConnection) -> None:
        self.host = host
        self._client = client

    @classmethod
    async def connect(cls, config: SSHConfig) -> "SSHConnection":
        """Validate ``config``, perform the handshake and return a live connection."""

        config.ensure_valid()
        config = config.with_defaults()

        known_hosts = _load_known_hosts(config)
        client_keys = _load_client_keys(config)

        logger.info(
            "Opening SSH connection to %s:%s as %s (password=%s, key=%s)",
            config.host,
            config.port,
            config.username,
            bool(config.password),
            client_keys is not None,
        )

        try:
            client = await asyncssh.connect(
                config.host,
                port=config.port,
                username=config.username,
                password=config.password or None,
                client_keys=client_keys,
                known_hosts=known_hosts,
                agent_path=None,
            )
        except (OSError, asyncssh.Error) as exc:
            logger.error("SSH connection to %s failed: %s", config.host, exc)
            raise RemoteConnectionError(config.host, str(exc)) from exc

        logger.debug("SSH connection to %s established", config.host)
        return cls(config.host, client)

    async def run(self, cmd: str) -> CmdResult:
        """Execute ``cmd`` on a new session channel.

        Stdout and stderr are drained concurrently. If the awaiting task is
        cancelled, the remote process receives SIGINT and the cancellation
        propagates. The remote exit status does not turn into an error.
        """

        logger.info("Executing command on %s via SSH: %s", self.host, _format_command_preview(cmd))
        logger.debug("Full command on %s: %s", self.host, cmd)

        start_time = perf_counter()
        try:
            process = await self._client.create_process(cmd, encoding="utf-8", errors="replace")
        except (OSError, asyncssh.Error) as exc:
            logger.error("Failed to open SSH session on %s: %s", self.host, exc)
            raise CommandError(cmd, exc) from exc

        try:
            stdout, stderr = await self._collect(process)
        except asyncio.CancelledError:
            logger.warning("Command on %s cancelled; sending SIGINT", self.host)
            self._interrupt(process)
            raise
        except (OSError, asyncssh.Error) as exc:
            logger.error("Reading command output from %s failed: %s", self.host, exc)
            raise CommandError(cmd, exc) from exc
        finally:
            process.close()

        result = CmdResult(stdout=stdout, stderr=stderr)
        _log_result(self.host, result, perf_counter() - start_time)
        if process.exit_status:
            logger.warning(
                "Command on %s exited with non-zero status %s", self.host, process.exit_status
            )
        return result

    async def _collect(self, process: asyncssh.SSHClientProcess):
        """Read both streams to EOF; the first reader error wins."""

        readers = [
            asyncio.ensure_future(process.stdout.read()),
            asyncio.ensure_future(process.stderr.read()),
        ]
        try:
            done, _ = await asyncio.wait(readers, return_when=asyncio.FIRST_EXCEPTION)
            for task in readers:
                if task in done and task.exception() is not None:
                    raise task.exception()
            stdout, stderr = await asyncio.gather(*readers)
        finally:
            for task in readers:
                if not task.done():
                    task.cancel()
            # settle both readers so no exception is left unretrieved
            await asyncio.gather(*readers, return_exceptions=True)
        return stdout or "", stderr or ""

    def _interrupt(self, process: asyncssh.SSHClientProcess) -> None:
        try:
            process.send_signal("INT")
        except (OSError, asyncssh.Error):
            logger.debug("Failed to deliver SIGINT on %s", self.host, exc_info=True)

    async def close(self) -> None:
        """Close the SSH client and wait for the transport to shut down."""

        logger.debug("Closing SSH connection to %s", self.host)
        self._client.close()
        await self._client.wait_closed()


__all__ = ["SSHConnection"]
