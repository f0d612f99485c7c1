# Vulture whitelist file
# Names vulture reports as unused that are reached through pydantic, asyncio
# or pytest rather than through a direct call.
#
# Usage: python3 -m vulture winremote tests vulture_whitelist.py

# =============================================================================
# Connection protocol (structural typing, implemented by the transports)
# =============================================================================

run_with_powershell  # connection.py - Connection.run_with_powershell
__aenter__  # connection.py / client.py - async context manager entry
__aexit__  # connection.py / client.py - async context manager exit

# =============================================================================
# Pydantic Model Fields (populated from JSON by validation)
# =============================================================================

days  # cim_types.py - _CimTimeDurationObject.days ("Days")
hours  # cim_types.py - _CimTimeDurationObject.hours ("Hours")
minutes  # cim_types.py - _CimTimeDurationObject.minutes ("Minutes")
seconds  # cim_types.py - _CimTimeDurationObject.seconds ("Seconds")
milliseconds  # cim_types.py - _CimTimeDurationObject.milliseconds ("Milliseconds")

# =============================================================================
# Settings fields (read from WINREMOTE_* environment variables)
# =============================================================================

model_config  # cim_types.py / config.py - pydantic configuration
log_level  # config.py - Settings.log_level, consumed by configure_logging callers
krb_config_file  # config.py - KerberosConfig.krb_config_file

# =============================================================================
# Public API re-exported for callers
# =============================================================================

configure_logging  # logging_config.py - called by embedding scripts
unwrap_command  # errors.py - extracts the failing command for log messages
format_timespan  # powershell.py - used by callers building New-TimeSpan arguments
ps_quote  # powershell.py - used by callers building literal arguments
WindowsClient  # client.py - main entry point

# =============================================================================
# Pytest fixtures (injected by name)
# =============================================================================

anyio_backend  # tests/conftest.py
winrm_config  # tests/conftest.py
kerberos_config  # tests/conftest.py
ssh_config  # tests/conftest.py
recording_connection  # tests/conftest.py
