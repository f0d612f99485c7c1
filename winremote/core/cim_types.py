"""Decoders for the non-standard JSON shapes emitted by PowerShell and CIM.

Each value type comes in two flavours:

* ``decode_*`` functions take the raw JSON token exactly as it appears in the
  command output (for example ``"\\/Date(1701379505092)\\/"`` including the
  quotes) and apply the strict wire-level checks.
* ``DotnetTime``, ``CimTimeDuration``, ``CimClassKeyVal`` and ``CimIpAddress``
  are ``Annotated`` types for pydantic result models. They receive the value
  after JSON decoding, so escapes such as ``\\/`` have already been resolved.

The decoders are pure and independent of each other.
"""
from __future__ import annotations

import ipaddress
import json
import re
from datetime import datetime, timedelta, timezone
from typing import Annotated, Any, Dict, Union

from pydantic import BaseModel, ConfigDict, Field, PlainValidator, StrictInt, ValidationError

from .errors import ParsingError

RawJSON = Union[str, bytes, bytearray]

# Zero value used for null/empty dotnet dates.
ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

_DOTNET_RAW_PATTERN = re.compile(r'"\\/Date\((\d+)\)\\/"')
_DOTNET_DECODED_PATTERN = re.compile(r"/Date\((\d+)\)/")
_KEY_VALUE_PATTERN = re.compile(r"""(\S+)\s*=\s*("(.*?)"|'(.*?)'|(\S+))""")
_MAX_IPV4 = 2**32 - 1


def _as_text(raw: RawJSON) -> str:
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw).decode("utf-8")
    return raw


def _load(parser: str, raw: RawJSON) -> Any:
    try:
        return json.loads(_as_text(raw))
    except (ValueError, UnicodeDecodeError) as exc:
        raise ParsingError(parser, f"invalid JSON input: {exc}") from exc


# ---------------------------------------------------------------------------
# DotnetTime
# ---------------------------------------------------------------------------


def _millis_to_datetime(millis: str) -> datetime:
    seconds = int(millis) // 1000
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as exc:
        raise ParsingError("dotnet_time", f"timestamp out of range: {millis}") from exc


def decode_dotnet_time(raw: RawJSON) -> datetime:
    """Decode a raw ``"\\/Date(<millis>)\\/"`` JSON token into a UTC datetime.

    ``null`` and ``""`` decode to :data:`ZERO_TIME`. Milliseconds are truncated
    to whole seconds.
    """

    text = _as_text(raw)
    if text in ("null", '""'):
        return ZERO_TIME

    match = _DOTNET_RAW_PATTERN.fullmatch(text)
    if match is None:
        raise ParsingError(
            "dotnet_time", f"input string is not a dotnet JSON datetime: {text}"
        )
    return _millis_to_datetime(match.group(1))


def _validate_dotnet_time(value: Any) -> datetime:
    """Validate an already JSON-decoded dotnet date for the ``DotnetTime`` field type.

    JSON decoding turns ``\\/`` into ``/`` before this runs, so a payload that
    omitted the escape cannot be told apart and is accepted here. Use
    :func:`decode_dotnet_time` on the raw token when the escape must be enforced.
    """
    if value is None or value == "":
        return ZERO_TIME
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        match = _DOTNET_DECODED_PATTERN.fullmatch(value)
        if match is not None:
            return _millis_to_datetime(match.group(1))
    raise ParsingError("dotnet_time", f"input is not a dotnet JSON datetime: {value!r}")


# ---------------------------------------------------------------------------
# CimTimeDuration
# ---------------------------------------------------------------------------


class _CimTimeDurationObject(BaseModel):
    """The subset of a serialised TimeSpan needed to rebuild the duration."""

    model_config = ConfigDict(extra="ignore")

    days: StrictInt = Field(0, alias="Days")
    hours: StrictInt = Field(0, alias="Hours")
    minutes: StrictInt = Field(0, alias="Minutes")
    seconds: StrictInt = Field(0, alias="Seconds")
    milliseconds: StrictInt = Field(0, alias="Milliseconds")

    def to_timedelta(self) -> timedelta:
        try:
            return timedelta(
                days=self.days,
                hours=self.hours,
                minutes=self.minutes,
                seconds=self.seconds,
                milliseconds=self.milliseconds,
            )
        except OverflowError as exc:
            raise ParsingError("cim_time_duration", f"duration out of range: {exc}") from exc


def _validate_cim_time_duration(value: Any) -> timedelta:
    if isinstance(value, timedelta):
        return value
    if not isinstance(value, dict):
        raise ParsingError("cim_time_duration", f"expected a JSON object, got {value!r}")
    try:
        parsed = _CimTimeDurationObject.model_validate(value)
    except ValidationError as exc:
        raise ParsingError("cim_time_duration", str(exc)) from exc
    return parsed.to_timedelta()


def decode_cim_time_duration(raw: RawJSON) -> timedelta:
    """Decode a CIM TimeSpan JSON object into a :class:`timedelta`.

    Components are summed as-is; negative or oversized values are not
    rejected.
    """

    return _validate_cim_time_duration(_load("cim_time_duration", raw))


# ---------------------------------------------------------------------------
# CimClassKeyVal
# ---------------------------------------------------------------------------


def parse_key_values(text: str) -> Dict[str, str]:
    """Tokenise ``key = value`` pairs; values may be double, single or unquoted."""

    result: Dict[str, str] = {}
    for match in _KEY_VALUE_PATTERN.finditer(text):
        result[match.group(1)] = match.group(3) or match.group(4) or match.group(5) or ""
    return result


def decode_cim_class_key_val(raw: RawJSON) -> Dict[str, str]:
    """Decode a CIM ``key = value`` blob, bare or wrapped in a JSON array."""

    text = _as_text(raw)

    # JSON array of a single string
    if text.startswith("["):
        text = text[1:]
    if text.endswith("],"):
        text = text[:-2]
    elif text.endswith("]"):
        text = text[:-1]

    if text.startswith('"'):
        text = text[1:]
    if text.endswith('"'):
        text = text[:-1]
    text = text.replace('\\"', '"')

    return parse_key_values(text)


def _validate_cim_class_key_val(value: Any) -> Dict[str, str]:
    if value is None:
        return {}
    if isinstance(value, dict):
        return {str(key): str(item) for key, item in value.items()}
    if isinstance(value, str):
        return parse_key_values(value)
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return parse_key_values(" ".join(value))
    raise ParsingError(
        "cim_class_key_val", f"expected a string or an array of strings, got {value!r}"
    )


# ---------------------------------------------------------------------------
# CimIpAddress
# ---------------------------------------------------------------------------


def _validate_cim_ip_address(value: Any) -> ipaddress.IPv4Address:
    if isinstance(value, ipaddress.IPv4Address):
        return value
    # bool is an int subclass but never a valid address
    if isinstance(value, bool) or not isinstance(value, int):
        raise ParsingError(
            "cim_ip_address", f"failed to parse IP address from JSON: {value!r} is not an integer"
        )
    if not 0 <= value <= _MAX_IPV4:
        raise ParsingError(
            "cim_ip_address", f"failed to parse IP address from JSON: {value} is out of range"
        )
    # Little-endian: the low byte is the first octet
    return ipaddress.IPv4Address(value.to_bytes(4, "little"))


def decode_cim_ip_address(raw: RawJSON) -> ipaddress.IPv4Address:
    """Decode a little-endian integer encoded IPv4 address."""

    return _validate_cim_ip_address(_load("cim_ip_address", raw))


# DotnetTime validates the decoded string, so it accepts "/Date(n)/" with or
# without the JSON "\/" escape; only decode_dotnet_time rejects the unescaped form.
DotnetTime = Annotated[datetime, PlainValidator(_validate_dotnet_time)]
CimTimeDuration = Annotated[timedelta, PlainValidator(_validate_cim_time_duration)]
CimClassKeyVal = Annotated[Dict[str, str], PlainValidator(_validate_cim_class_key_val)]
CimIpAddress = Annotated[ipaddress.IPv4Address, PlainValidator(_validate_cim_ip_address)]


__all__ = [
    "ZERO_TIME",
    "CimClassKeyVal",
    "CimIpAddress",
    "CimTimeDuration",
    "DotnetTime",
    "decode_cim_class_key_val",
    "decode_cim_ip_address",
    "decode_cim_time_duration",
    "decode_dotnet_time",
    "parse_key_values",
]
