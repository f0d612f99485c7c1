"""Run a PowerShell script and turn its output into a typed result."""
from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from pydantic import TypeAdapter, ValidationError

from ..core.clixml import decode_clixml_error, is_clixml
from ..core.errors import CommandError, ParsingError, RemoteScriptError
from .connection import Connection

logger = logging.getLogger(__name__)


async def run_command(
    connection: Connection,
    command: str,
    result_type: Optional[Any] = None,
    *,
    decode_error: Callable[[str], str] = decode_clixml_error,
) -> Any:
    """Execute ``command`` through PowerShell and decode the JSON it prints.

    Anything on stderr fails the call with :class:`RemoteScriptError`; CLIXML
    error records are flattened to readable text first. With ``result_type``
    unset, or when the script prints nothing, ``None`` is returned.
    Otherwise stdout is validated against ``result_type`` with pydantic, so
    result models can use the ``winremote.core.cim_types`` field types.
    """

    result = await connection.run_with_powershell(command)

    if result.stderr:
        if is_clixml(result.stderr):
            try:
                message = decode_error(result.stderr)
            except ParsingError as exc:
                raise CommandError(command, exc) from exc
        else:
            message = result.stderr.strip()
        logger.debug("PowerShell error stream: %s", message)
        raise RemoteScriptError(command, message, result.stderr)

    if result_type is None or not result.stdout.strip():
        return None

    try:
        return TypeAdapter(result_type).validate_json(result.stdout)
    except ValidationError as exc:
        error = ParsingError("json", str(exc))
        raise CommandError(command, error) from error


__all__ = ["run_command"]
