"""Percent-decoding of path parameters."""

import re
from typing import NamedTuple
from urllib.parse import unquote

_MALFORMED_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


class DecodedParam(NamedTuple):
    value: str
    decoded: bool


def decode_path_param(raw: str) -> DecodedParam:
    """
    Percent-decode a path parameter strictly.

    A malformed escape (``%ZZ``, a trailing ``%``) or bytes that are not
    valid UTF-8 leave the value untouched and flag it as not decoded.
    An empty value decodes to an empty value.
    """
    if raw is None:
        return DecodedParam("", True)
    if _MALFORMED_ESCAPE.search(raw):
        return DecodedParam(raw, False)
    try:
        return DecodedParam(unquote(raw, encoding="utf-8", errors="strict"), True)
    except UnicodeDecodeError:
        return DecodedParam(raw, False)
