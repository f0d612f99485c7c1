"""Shared fixtures for the winremote test suite."""

import pytest

from winremote.core.config import KerberosConfig, SSHConfig, WinRMConfig
from winremote.services.connection import BaseConnection, CmdResult


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def winrm_config():
    return WinRMConfig(host="win01.example.com", username="admin", password="secret")


@pytest.fixture
def kerberos_config():
    return KerberosConfig(realm="EXAMPLE.COM", krb_config_file="/etc/krb5.conf")


@pytest.fixture
def ssh_config(tmp_path):
    known_hosts = tmp_path / "known_hosts"
    known_hosts.write_text("")
    return SSHConfig(
        host="win02.example.com",
        username="admin",
        password="secret",
        known_hosts_path=str(known_hosts),
    )


class RecordingConnection(BaseConnection):
    """In-memory connection that records commands and replays canned output."""

    host = "fake-host"

    def __init__(self, stdout="", stderr=""):
        self.stdout = stdout
        self.stderr = stderr
        self.commands = []
        self.closed = False

    async def run(self, cmd):
        self.commands.append(cmd)
        return CmdResult(stdout=self.stdout, stderr=self.stderr)

    async def close(self):
        self.closed = True


@pytest.fixture
def recording_connection():
    return RecordingConnection
