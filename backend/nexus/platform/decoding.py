"""Decoding and repair of contents API payloads."""

import base64
import binascii
import json
import re
from typing import Any, Dict, Optional, Union

from nexus.platform.resolvers.paths import ResolverMode, resolve_app_location
from nexus.schemas.fetch import ContentsFile, ParseError

SUPPORTED_ENCODING = "base64"

_TRAILING_VISIBLE_FIELD = re.compile(r',\s*"visible"\s*:[^,{}]*\}')


def strip_trailing_visible_field(text: str) -> str:
    """Remove every trailing ``,"visible": <value>}`` fragment, leaving ``}``.

    Compatibility shim for one upstream topic manifest that emits a stray
    ``visible`` field in a shape strict JSON parsers reject. This is a
    textual patch for that exact shape, not general JSON repair.
    """
    return _TRAILING_VISIBLE_FIELD.sub("}", text)


def decode_base64_text(content: str) -> str:
    """Decode base64 file content to text.

    The contents API wraps base64 at 60 columns; non-alphabet characters
    such as newlines are discarded.

    Raises:
        binascii.Error: If the content is not valid base64
        UnicodeDecodeError: If the decoded bytes are not UTF-8
    """
    return base64.b64decode(content).decode("utf-8")


def parse_payload(text: str, mode: ResolverMode) -> Union[Dict[str, Any], ParseError]:
    """Parse decoded text, repairing topic manifests first.

    Returns:
        Parsed JSON object, or a ParseError (never raises)
    """
    if mode == ResolverMode.TOPIC:
        text = strip_trailing_visible_field(text)
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        return ParseError(error=f"JSON parsing error: {e}")
    if not isinstance(parsed, dict):
        kind = type(parsed).__name__
        return ParseError(error=f"JSON parsing error: expected an object, got {kind}")
    return parsed


def decode_contents_file(
    contents: ContentsFile, mode: ResolverMode
) -> Optional[Union[Dict[str, Any], ParseError]]:
    """Decode, repair, parse and tag one contents API file.

    Args:
        contents: Response descriptor from the contents API
        mode: Topic or per-activity metadata

    Returns:
        Payload tagged with ``appName`` and ``appGitUrl``, a ParseError, or
        None if the encoding is not supported.
    """
    if contents.encoding != SUPPORTED_ENCODING:
        return None

    try:
        text = decode_base64_text(contents.content or "")
    except (binascii.Error, UnicodeDecodeError) as e:
        return ParseError(error=f"Content decoding error: {e}", source_url=contents.source_url)

    result = parse_payload(text, mode)
    if isinstance(result, ParseError):
        result.source_url = contents.source_url
        return result

    location = resolve_app_location(contents.name, contents.url, mode)
    result["appName"] = location.app_name
    result["appGitUrl"] = location.app_git_url
    return result
