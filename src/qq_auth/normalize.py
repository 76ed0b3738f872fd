"""
Response normalization for QQ Connect endpoints.

QQ answers the same logical call in different wire formats: the token endpoint
returns a urlencoded body on success and a JSONP-wrapped JSON object on error,
the openid endpoint always answers JSONP, and the user-info endpoint answers
plain JSON. Every shape is reduced here to a string-keyed mapping so the
client only deals with field names.

Results are tagged (Normalized.data or Normalized.error) rather than raised, so
the client can try shapes in order without using exceptions for control flow.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from authlib.common.urls import url_decode

JSONP_PREFIX = "callback("
JSONP_SUFFIX = ")"


class Shape(str, Enum):
    URL_ENCODED = "url_encoded"
    JSONP_WRAPPED = "jsonp_wrapped"
    PLAIN_JSON = "plain_json"


class NormalizationErrorKind(str, Enum):
    # body is not in the requested shape; try another one
    WRAPPER_MISMATCH = "wrapper_mismatch"
    MALFORMED_WRAPPER = "malformed_wrapper"
    INVALID_JSON = "invalid_json"


@dataclass(frozen=True)
class NormalizationError:
    kind: NormalizationErrorKind
    detail: str = ""


@dataclass(frozen=True)
class Normalized:
    """Either a decoded mapping or the reason the body could not be decoded."""

    data: Optional[dict[str, Any]] = None
    error: Optional[NormalizationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _fail(kind: NormalizationErrorKind, detail: str) -> Normalized:
    return Normalized(error=NormalizationError(kind, detail))


def _as_text(body) -> str:
    if isinstance(body, (bytes, bytearray)):
        return bytes(body).decode("utf-8", errors="replace")
    return body or ""


def unwrap_jsonp(text: str) -> Optional[str]:
    """
    Strip the `callback( ... );` wrapper and return the interior, or None when
    the body is too short or does not carry the wrapper.
    """
    text = text.strip().rstrip(";").rstrip()
    if len(text) < len(JSONP_PREFIX) + len(JSONP_SUFFIX):
        return None
    if not (text.startswith(JSONP_PREFIX) and text.endswith(JSONP_SUFFIX)):
        return None
    return text[len(JSONP_PREFIX) : -len(JSONP_SUFFIX)].strip()


def _decode_object(text: str, kind: NormalizationErrorKind) -> Normalized:
    try:
        value = json.loads(text)
    except ValueError as e:
        return _fail(kind, str(e))
    if not isinstance(value, dict):
        return _fail(kind, f"expected a JSON object, got {type(value).__name__}")
    return Normalized(data=value)


def _normalize_url_encoded(text: str) -> Normalized:
    stripped = text.strip()
    if stripped.startswith(JSONP_PREFIX):
        return _fail(NormalizationErrorKind.WRAPPER_MISMATCH, "body is JSONP-wrapped")
    try:
        pairs = url_decode(stripped)
    except ValueError as e:
        return _fail(NormalizationErrorKind.WRAPPER_MISMATCH, str(e))
    return Normalized(data={key: value for key, value in pairs})


def normalize(body, shape: Shape) -> Normalized:
    """Decode a raw response body (bytes or str) according to `shape`."""
    text = _as_text(body)

    if shape is Shape.URL_ENCODED:
        return _normalize_url_encoded(text)

    if shape is Shape.JSONP_WRAPPED:
        interior = unwrap_jsonp(text)
        if interior is None:
            return _fail(NormalizationErrorKind.MALFORMED_WRAPPER, "missing callback( ... ) wrapper")
        return _decode_object(interior, NormalizationErrorKind.MALFORMED_WRAPPER)

    return _decode_object(text, NormalizationErrorKind.INVALID_JSON)
