"""Decode PowerShell CLIXML error streams into readable text."""
from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ElementTree
from typing import List

from .errors import ParsingError

logger = logging.getLogger(__name__)

CLIXML_MARKER = "#< CLIXML"
_ENCODED_CRLF = "_x000D__x000A_"
_CONTINUATION = "+ "
# Closing tag of the first document; anything after it is a later record batch
_DOCUMENT_END = re.compile(r"</(?:[\w.-]+:)?Objs\s*>")


def is_clixml(text: str) -> bool:
    """Return True when ``text`` carries the CLIXML marker."""

    return CLIXML_MARKER in text


def _local_name(tag: str) -> str:
    # ElementTree renders namespaced tags as "{uri}name"
    return tag.rsplit("}", 1)[-1]


def extract_fragments(text: str) -> List[str]:
    """Return the raw text of every ``<S>`` record in a CLIXML document.

    PowerShell may append further ``<Objs>`` documents after the first one.
    Only the first document is read.
    """

    document = text.replace(CLIXML_MARKER, "")
    end = _DOCUMENT_END.search(document)
    if end is not None:
        document = document[: end.end()]
    try:
        root = ElementTree.fromstring(document)
    except ElementTree.ParseError as exc:
        raise ParsingError("clixml", f"malformed CLIXML document: {exc}") from exc

    return [child.text or "" for child in root if _local_name(child.tag) == "S"]


def clean_fragments(fragments: List[str]) -> List[str]:
    """Normalise message fragments so that joining them rebuilds the message."""

    cleaned: List[str] = []
    for fragment in fragments:
        value = fragment.strip().replace(_ENCODED_CRLF, "")
        if len(value) > len(_CONTINUATION) and value.startswith(_CONTINUATION):
            value = "\n" + value[len(_CONTINUATION):]
        cleaned.append(value)
    return cleaned


def decode_clixml_error(text: str) -> str:
    """Convert a CLIXML error stream into a human-readable PowerShell error.

    Raises:
        ParsingError: If ``text`` is not a CLIXML document or cannot be parsed.
    """

    if not is_clixml(text):
        raise ParsingError("clixml", "the input string is not a CLIXML document")

    fragments = extract_fragments(text)
    logger.debug("Decoded %d CLIXML message fragments", len(fragments))
    return "".join(clean_fragments(fragments))


__all__ = [
    "CLIXML_MARKER",
    "clean_fragments",
    "decode_clixml_error",
    "extract_fragments",
    "is_clixml",
]
