"""Connection configuration models and environment-backed settings."""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError

DEFAULT_WINRM_PORT = 5985
DEFAULT_WINRM_TLS_PORT = 5986
DEFAULT_KERBEROS_PROTOCOL = "https"
DEFAULT_SSH_PORT = 22
DEFAULT_KNOWN_HOSTS_PATH = Path(".ssh") / "known_hosts"

_KERBEROS_PROTOCOLS = ("http", "https")


class KerberosConfig(BaseModel):
    """Kerberos settings for WinRM."""

    realm: str = ""
    krb_config_file: str = ""
    protocol: Optional[str] = None  # "http" or "https"

    def ensure_valid(self) -> None:
        if not self.realm or not self.krb_config_file:
            raise ConfigurationError(
                "winrm: KerberosConfig parameter 'realm' and 'krb_config_file' must be set"
            )
        if self.protocol and self.protocol not in _KERBEROS_PROTOCOLS:
            raise ConfigurationError(
                "winrm: KerberosConfig parameter 'protocol' must be one of 'http' or 'https'"
            )

    def with_defaults(self) -> "KerberosConfig":
        return self.model_copy(update={"protocol": self.protocol or DEFAULT_KERBEROS_PROTOCOL})


class WinRMConfig(BaseModel):
    """Settings for a WinRM connection."""

    host: str = ""
    port: int = 0  # 0 selects 5985, or 5986 with TLS
    username: str = ""
    password: str = ""
    use_tls: bool = False
    insecure: bool = False  # skip certificate validation
    timeout: Optional[float] = None  # seconds; None keeps library defaults
    auth: str = "negotiate"
    kerberos: Optional[KerberosConfig] = None

    def ensure_valid(self) -> None:
        if not self.host or not self.username or not self.password:
            raise ConfigurationError(
                "winrm: Config parameter 'host', 'username', and 'password' must be set"
            )
        if self.timeout is not None and self.timeout < 0:
            raise ConfigurationError("winrm: Config parameter 'timeout' must not be negative")
        if self.kerberos is not None:
            self.kerberos.ensure_valid()

    def with_defaults(self) -> "WinRMConfig":
        port = self.port
        if not port:
            port = DEFAULT_WINRM_TLS_PORT if self.use_tls else DEFAULT_WINRM_PORT
        kerberos = self.kerberos.with_defaults() if self.kerberos is not None else None
        return self.model_copy(update={"port": port, "kerberos": kerberos})


class SSHConfig(BaseModel):
    """Settings for an SSH connection.

    Any combination of ``password``, ``private_key`` (PEM/OpenSSH key data) and
    ``private_key_path`` may be supplied; every resulting method is offered to
    the server.
    """

    host: str = ""
    port: int = 0  # 0 selects 22
    username: str = ""
    password: Optional[str] = None
    private_key: Optional[Union[bytes, str]] = None
    private_key_path: Optional[str] = None
    known_hosts_path: Optional[str] = None
    insecure: bool = False  # skip host key verification

    def ensure_valid(self) -> None:
        if (
            not self.host
            or not self.username
            or not (self.password or self.private_key or self.private_key_path)
        ):
            raise ConfigurationError(
                "ssh: Config parameter 'host', 'username' and one of 'password', "
                "'private_key', 'private_key_path' must be set"
            )

    def with_defaults(self) -> "SSHConfig":
        known_hosts = self.known_hosts_path
        if not known_hosts:
            known_hosts = str(Path.home() / DEFAULT_KNOWN_HOSTS_PATH)
        return self.model_copy(
            update={"port": self.port or DEFAULT_SSH_PORT, "known_hosts_path": known_hosts}
        )


class ConnectionConfig(BaseModel):
    """Exactly one of ``winrm`` or ``ssh`` must be provided."""

    winrm: Optional[WinRMConfig] = None
    ssh: Optional[SSHConfig] = None

    def ensure_valid(self) -> None:
        if self.winrm is None and self.ssh is None:
            raise ConfigurationError(
                "connection: configuration 'winrm' or 'ssh' must be set"
            )
        if self.winrm is not None and self.ssh is not None:
            raise ConfigurationError(
                "connection: configuration must only contain 'winrm' or 'ssh', not both"
            )


class Settings(BaseSettings):
    """Connection settings loaded from ``WINREMOTE_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="WINREMOTE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    transport: str = "winrm"  # "winrm" or "ssh"
    host: str = ""
    port: int = 0
    username: str = ""
    password: Optional[str] = None

    # WinRM settings
    winrm_use_tls: bool = False
    winrm_insecure: bool = False
    winrm_timeout: Optional[float] = None
    winrm_auth: str = "negotiate"

    # Kerberos settings (enabled when a realm is configured)
    kerberos_realm: Optional[str] = None
    kerberos_config_file: Optional[str] = None
    kerberos_protocol: Optional[str] = None

    # SSH settings
    ssh_private_key: Optional[str] = None
    ssh_private_key_path: Optional[str] = None
    ssh_known_hosts_path: Optional[str] = None
    ssh_insecure: bool = False

    log_level: str = "INFO"

    def to_connection_config(self) -> ConnectionConfig:
        """Build a connection config for the selected transport."""

        transport = self.transport.strip().lower()
        if transport == "winrm":
            kerberos = None
            if self.kerberos_realm:
                kerberos = KerberosConfig(
                    realm=self.kerberos_realm,
                    krb_config_file=self.kerberos_config_file or "",
                    protocol=self.kerberos_protocol,
                )
            return ConnectionConfig(
                winrm=WinRMConfig(
                    host=self.host,
                    port=self.port,
                    username=self.username,
                    password=self.password or "",
                    use_tls=self.winrm_use_tls,
                    insecure=self.winrm_insecure,
                    timeout=self.winrm_timeout,
                    auth=self.winrm_auth,
                    kerberos=kerberos,
                )
            )
        if transport == "ssh":
            return ConnectionConfig(
                ssh=SSHConfig(
                    host=self.host,
                    port=self.port,
                    username=self.username,
                    password=self.password,
                    private_key=self.ssh_private_key,
                    private_key_path=self.ssh_private_key_path,
                    known_hosts_path=self.ssh_known_hosts_path,
                    insecure=self.ssh_insecure,
                )
            )
        raise ConfigurationError(
            f"WINREMOTE_TRANSPORT must be 'winrm' or 'ssh', got '{self.transport}'"
        )


__all__ = [
    "ConnectionConfig",
    "KerberosConfig",
    "SSHConfig",
    "Settings",
    "WinRMConfig",
]
