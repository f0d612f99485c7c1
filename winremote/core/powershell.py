"""Helpers for building PowerShell command lines."""
from __future__ import annotations

import base64
from datetime import timedelta

_PROGRESS_PREAMBLE = "$ProgressPreference = 'SilentlyContinue'; "
_POWERSHELL_PREFIX = "powershell.exe -NoProfile -EncodedCommand "


def encode_powershell_command(script: str) -> str:
    """Wrap a script as a single ``powershell.exe -EncodedCommand`` invocation.

    Progress records are silenced first because PowerShell writes them to the
    error stream. The script is encoded as UTF-16LE without a byte order mark
    and then Base64, which is what ``-EncodedCommand`` expects.
    """

    payload = f"{_PROGRESS_PREAMBLE}{script}".encode("utf-16-le")
    encoded = base64.b64encode(payload).decode("ascii")
    return f"{_POWERSHELL_PREFIX}{encoded}"


def format_timespan(duration: timedelta) -> str:
    """Return a ``New-TimeSpan`` sub-expression for the given duration."""

    total_seconds = int(duration.total_seconds())
    total_minutes = total_seconds // 60
    total_hours = total_minutes // 60
    return (
        f"$(New-TimeSpan -Days {total_hours // 24} -Hours {total_hours % 24} "
        f"-Minutes {total_minutes % 60} -Seconds {total_seconds % 60})"
    )


def ps_quote(value: str) -> str:
    """Return a single-quoted PowerShell literal."""

    escaped = value.replace("'", "''")
    return f"'{escaped}'"


__all__ = ["encode_powershell_command", "format_timespan", "ps_quote"]
