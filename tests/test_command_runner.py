"""Tests for running PowerShell and decoding its typed output."""

from datetime import datetime, timezone
from typing import List

import pytest
from pydantic import BaseModel

from winremote.core.cim_types import CimIpAddress, DotnetTime
from winremote.core.errors import CommandError, ParsingError, RemoteScriptError
from winremote.core.powershell import encode_powershell_command
from winremote.services.command_runner import run_command


class LocalUser(BaseModel):
    Name: str
    Enabled: bool
    PasswordLastSet: DotnetTime


class Lease(BaseModel):
    IPAddress: CimIpAddress


CLIXML_STDERR = (
    '#< CLIXML\n<Objs Version="1.1.0.1" xmlns="http://schemas.microsoft.com/powershell/2004/04">'
    '<S S="Error">Get-LocalUser : User ghost was not found._x000D__x000A_</S>'
    '<S S="Error">    + CategoryInfo          : ObjectNotFound: (ghost:String) [Get-LocalUser], _x000D__x000A_</S>'
    "</Objs>"
)


@pytest.mark.anyio("asyncio")
async def test_run_command_decodes_model(recording_connection):
    connection = recording_connection(
        stdout=r'{"Name": "admin", "Enabled": true, "PasswordLastSet": "\/Date(1701379505092)\/"}'
    )

    user = await run_command(connection, "Get-LocalUser -Name admin | ConvertTo-Json", LocalUser)

    assert connection.commands == [
        encode_powershell_command("Get-LocalUser -Name admin | ConvertTo-Json")
    ]
    assert user.Name == "admin"
    assert user.Enabled is True
    assert user.PasswordLastSet == datetime(2023, 11, 30, 21, 25, 5, tzinfo=timezone.utc)


@pytest.mark.anyio("asyncio")
async def test_run_command_decodes_list(recording_connection):
    connection = recording_connection(stdout='[{"IPAddress": 861627402}, {"IPAddress": 0}]')

    leases = await run_command(connection, "Get-DhcpServerv4Lease | ConvertTo-Json", List[Lease])

    assert [str(lease.IPAddress) for lease in leases] == ["10.100.91.51", "0.0.0.0"]


@pytest.mark.anyio("asyncio")
async def test_run_command_without_result_type(recording_connection):
    connection = recording_connection(stdout="ignored")

    assert await run_command(connection, "Remove-LocalUser -Name ghost") is None


@pytest.mark.anyio("asyncio")
async def test_run_command_empty_stdout_returns_none(recording_connection):
    connection = recording_connection(stdout="\r\n")

    assert await run_command(connection, "Get-LocalUser -Name nobody", LocalUser) is None


@pytest.mark.anyio("asyncio")
async def test_run_command_clixml_stderr_raises_script_error(recording_connection):
    connection = recording_connection(stderr=CLIXML_STDERR)

    with pytest.raises(RemoteScriptError) as excinfo:
        await run_command(connection, "Get-LocalUser -Name ghost", LocalUser)

    assert str(excinfo.value) == (
        "Get-LocalUser : User ghost was not found."
        "\nCategoryInfo          : ObjectNotFound: (ghost:String) [Get-LocalUser], "
    )
    assert excinfo.value.command == "Get-LocalUser -Name ghost"
    assert excinfo.value.stderr == CLIXML_STDERR


@pytest.mark.anyio("asyncio")
async def test_run_command_plain_stderr_is_used_verbatim(recording_connection):
    connection = recording_connection(stdout="{}", stderr="Access is denied.\r\n")

    with pytest.raises(RemoteScriptError, match="^Access is denied.$"):
        await run_command(connection, "Get-LocalUser", LocalUser)


@pytest.mark.anyio("asyncio")
async def test_run_command_malformed_clixml(recording_connection):
    connection = recording_connection(stderr="#< CLIXML\n<Objs><S>broken")

    with pytest.raises(CommandError) as excinfo:
        await run_command(connection, "Get-LocalUser")

    assert isinstance(excinfo.value.error, ParsingError)


@pytest.mark.anyio("asyncio")
async def test_run_command_custom_error_decoder(recording_connection):
    connection = recording_connection(stderr="#< CLIXML custom")

    with pytest.raises(RemoteScriptError, match="decoded"):
        await run_command(connection, "Get-LocalUser", decode_error=lambda text: "decoded")


@pytest.mark.anyio("asyncio")
async def test_run_command_invalid_json(recording_connection):
    connection = recording_connection(stdout='{"Name": "admin"')

    with pytest.raises(CommandError) as excinfo:
        await run_command(connection, "Get-LocalUser", LocalUser)

    assert isinstance(excinfo.value.error, ParsingError)
    assert excinfo.value.error.parser == "json"


@pytest.mark.anyio("asyncio")
async def test_run_command_schema_mismatch(recording_connection):
    connection = recording_connection(stdout='{"IPAddress": "10.0.0.1"}')

    with pytest.raises(CommandError) as excinfo:
        await run_command(connection, "Get-DhcpServerv4Lease", Lease)

    assert excinfo.value.command == "Get-DhcpServerv4Lease"


@pytest.mark.anyio("asyncio")
async def test_run_command_multi_document_clixml_raises_script_error(recording_connection):
    stderr = (
        "#< CLIXML\r\n"
        '<Objs Version="1.1.0.1" xmlns="http://schemas.microsoft.com/powershell/2004/04">'
        '<S S="Error">Access denied_x000D__x000A_</S></Objs>'
        '<Objs Version="1.1.0.1" xmlns="http://schemas.microsoft.com/powershell/2004/04">'
        '<Obj S="progress" RefId="0"><MS /></Obj></Objs>'
    )
    connection = recording_connection(stderr=stderr)

    with pytest.raises(RemoteScriptError, match="^Access denied$"):
        await run_command(connection, "Get-LocalUser")
