"""Tests for the exception hierarchy."""

from winremote.core.errors import (
    CommandError,
    ConfigurationError,
    ParsingError,
    RemoteAuthenticationError,
    RemoteConnectionError,
    RemoteScriptError,
    WinRemoteError,
    unwrap_command,
)


def test_command_error_renders_underlying_message():
    err = CommandError("Get-Item C:\\", OSError("connection reset"))

    assert str(err) == "connection reset"
    assert err.command == "Get-Item C:\\"
    assert isinstance(err.error, OSError)


def test_remote_script_error_keeps_raw_stderr():
    err = RemoteScriptError("Get-Foo", "Get-Foo : not recognized", stderr="#< CLIXML ...")

    assert isinstance(err, CommandError)
    assert str(err) == "Get-Foo : not recognized"
    assert err.stderr == "#< CLIXML ..."


def test_remote_connection_error_includes_host():
    err = RemoteConnectionError("win01", "timed out")

    assert err.host == "win01"
    assert str(err) == "Cannot connect to win01: timed out"


def test_parsing_error_is_value_error():
    err = ParsingError("clixml", "bad input")

    assert isinstance(err, ValueError)
    assert isinstance(err, WinRemoteError)
    assert str(err) == "clixml: bad input"


def test_hierarchy_is_runtime_error():
    for exc_type in (ConfigurationError, RemoteConnectionError, CommandError, RemoteAuthenticationError):
        assert issubclass(exc_type, WinRemoteError)
        assert issubclass(exc_type, RuntimeError)


def test_unwrap_command_walks_cause_chain():
    inner = CommandError("Get-Service", RuntimeError("boom"))
    try:
        try:
            raise inner
        except CommandError as exc:
            raise ValueError("wrapped") from exc
    except ValueError as outer:
        assert unwrap_command(outer) == "Get-Service"


def test_unwrap_command_without_command_error():
    assert unwrap_command(RuntimeError("boom")) == ""
    assert unwrap_command(None) == ""
