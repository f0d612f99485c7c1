"""Tests for the WindowsClient facade."""

from unittest.mock import AsyncMock, patch

import pytest
from pydantic import BaseModel

from winremote.client import WindowsClient
from winremote.core.config import ConnectionConfig
from winremote.core.errors import ConfigurationError


class Service(BaseModel):
    Name: str
    Status: int


@pytest.mark.anyio("asyncio")
async def test_create_opens_configured_connection(winrm_config, recording_connection):
    connection = recording_connection()
    config = ConnectionConfig(winrm=winrm_config)

    with patch(
        "winremote.client.open_connection", new_callable=AsyncMock, return_value=connection
    ) as mock_open:
        client = await WindowsClient.create(config)

    mock_open.assert_awaited_once_with(config)
    assert client.connection is connection


@pytest.mark.anyio("asyncio")
async def test_create_propagates_configuration_error():
    with pytest.raises(ConfigurationError):
        await WindowsClient.create(ConnectionConfig())


@pytest.mark.anyio("asyncio")
async def test_run_returns_typed_result(recording_connection):
    client = WindowsClient(recording_connection(stdout='{"Name": "WinRM", "Status": 4}'))

    service = await client.run("Get-Service WinRM | ConvertTo-Json", Service)

    assert service == Service(Name="WinRM", Status=4)


@pytest.mark.anyio("asyncio")
async def test_context_manager_closes_connection(recording_connection):
    connection = recording_connection()

    async with WindowsClient(connection) as client:
        await client.run("Restart-Service WinRM")

    assert connection.closed is True
    assert len(connection.commands) == 1
