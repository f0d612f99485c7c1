"""WinRM transport for executing commands on Windows hosts."""
from __future__ import annotations

import asyncio
import logging
import os
from time import perf_counter
from typing import Any, Dict, Tuple

from pypsrp.exceptions import (
    AuthenticationError,
    WinRMError,
    WinRMTransportError as PyWinRMTransportError,
)
from pypsrp.shell import Process, SignalCode, WinRS
from pypsrp.wsman import WSMan

from ..core.config import KerberosConfig, WinRMConfig
from ..core.errors import CommandError, RemoteAuthenticationError, RemoteConnectionError
from .connection import BaseConnection, CmdResult, _format_command_preview, _log_result

logger = logging.getLogger(__name__)

# pypsrp requires the HTTP read timeout to exceed the WSMan operation timeout.
_READ_TIMEOUT_MARGIN = 10
# Ask the remote shell for UTF-8 output instead of the OEM code page.
_UTF8_CODEPAGE = 65001


class WinRMConnection(BaseConnection):
    """Connection that runs commands through a WinRS shell over WSMan.

    Every ``run`` is a single request/response exchange: a shell is created,
    the command runs to completion, stdout, stderr and the exit code come back
    together and the shell is deleted. Nothing stays open between calls.

    With Kerberos configured, construction sets the ``KRB5_CONFIG``
    environment variable for the whole process. Connections built later with
    a different ``krb_config_file`` overwrite it, so one process should use a
    single krb5 configuration at a time.
    """

    def __init__(self, config: WinRMConfig) -> None:
        config.ensure_valid()
        self.config = config.with_defaults()
        self.host = self.config.host
        self._wsman = self._create_session()

    def _session_options(self) -> Dict[str, Any]:
        """Translate the config into ``WSMan`` keyword arguments."""

        config = self.config
        options: Dict[str, Any] = {
            "port": config.port,
            "username": config.username,
            "password": config.password,
            "auth": config.auth,
            "ssl": config.use_tls,
            "cert_validation": not config.insecure,
        }

        if config.kerberos is not None:
            options.update(self._kerberos_options(config.kerberos))

        if config.timeout:
            operation_timeout = int(max(1.0, float(config.timeout)))
            options["connection_timeout"] = operation_timeout
            options["operation_timeout"] = operation_timeout
            options["read_timeout"] = operation_timeout + _READ_TIMEOUT_MARGIN

        return options

    def _kerberos_options(self, kerberos: KerberosConfig) -> Dict[str, Any]:
        """Return the overrides that switch the endpoint to Kerberos."""

        username = self.config.username
        if "@" not in username:
            username = f"{username}@{kerberos.realm}"

        # GSSAPI reads its realm/KDC layout from the krb5 config named here
        os.environ["KRB5_CONFIG"] = kerberos.krb_config_file
        logger.debug("Set KRB5_CONFIG=%s", kerberos.krb_config_file)

        return {
            "username": username,
            "auth": "kerberos",
            "ssl": kerberos.protocol == "https",
        }

    def _create_session(self) -> WSMan:
        """Create the WSMan endpoint using the configured credentials."""

        options = self._session_options()
        logger.info(
            "Creating WinRM session to %s (port=%s, transport=%s, ssl=%s, username=%s)",
            self.host,
            options["port"],
            options["auth"],
            options["ssl"],
            options["username"],
        )
        logger.debug(
            "WSMan timeouts for %s -> connection=%s, operation=%s, read=%s",
            self.host,
            options.get("connection_timeout", "default"),
            options.get("operation_timeout", "default"),
            options.get("read_timeout", "default"),
        )

        try:
            session = WSMan(self.host, **options)
        except AuthenticationError as exc:
            logger.error("Authentication setup failed for %s: %s", self.host, exc)
            raise RemoteConnectionError(self.host, str(exc)) from exc
        except (PyWinRMTransportError, WinRMError, ValueError) as exc:
            logger.error("Failed to create WSMan session to %s: %s", self.host, exc)
            raise RemoteConnectionError(self.host, str(exc)) from exc

        logger.debug("Created WSMan session to %s", self.host)
        return session

    async def run(self, cmd: str) -> CmdResult:
        """Execute ``cmd`` in a fresh WinRS shell.

        The blocking exchange runs in a worker thread. Cancelling the caller
        abandons the wait only; the remote command is not interrupted.
        """

        logger.info("Executing command on %s via WinRM: %s", self.host, _format_command_preview(cmd))
        logger.debug("Full command on %s: %s", self.host, cmd)

        start_time = perf_counter()
        stdout, stderr, exit_code = await asyncio.to_thread(self._execute, cmd)
        result = CmdResult(stdout=stdout, stderr=stderr)

        _log_result(self.host, result, perf_counter() - start_time)
        if exit_code != 0:
            logger.warning("Command on %s exited with non-zero status %s", self.host, exit_code)

        return result

    def _execute(self, cmd: str) -> Tuple[str, str, int]:
        """Run the command synchronously and return stdout, stderr and exit code."""

        try:
            with WinRS(self._wsman, codepage=_UTF8_CODEPAGE) as shell:
                process = Process(shell, cmd)
                process.invoke()
                process.signal(SignalCode.CTRL_C)
        except AuthenticationError as exc:
            logger.error("Authentication failure while executing command on %s: %s", self.host, exc)
            raise RemoteAuthenticationError(cmd, exc) from exc
        except (PyWinRMTransportError, WinRMError, OSError) as exc:
            logger.error("WinRM execution failed on %s: %s", self.host, exc)
            raise CommandError(cmd, exc) from exc

        stdout = self._decode(process.stdout)
        stderr = self._decode(process.stderr)
        return stdout, stderr, process.rc if process.rc is not None else 0

    @staticmethod
    def _decode(payload: Any) -> str:
        if not payload:
            return ""
        if isinstance(payload, str):
            return payload
        return payload.decode("utf-8", errors="replace")

    async def close(self) -> None:
        """WinRM keeps no protocol session open; only pooled HTTP sockets are released."""

        logger.debug("close called for WinRM connection to %s", self.host)
        self._dispose_session(self._wsman)

    def _dispose_session(self, session: WSMan) -> None:
        """Attempt to close transport resources for a WSMan session."""

        closer = getattr(session, "close", None)
        if callable(closer):
            try:
                closer()
            except Exception:  # pragma: no cover - best effort cleanup
                logger.debug("Failed to close WSMan session cleanly", exc_info=True)


__all__ = ["WinRMConnection"]
