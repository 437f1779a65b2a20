"""Common response envelopes and the errors raised for failed API calls."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any

RATE_LIMIT_RET_CODE = 10006

_MISSING = object()


def _field(data: dict[str, Any], key: str, kind: type, default: Any) -> Any:
    """Fetch ``key`` from a decoded JSON object, checking its JSON type."""
    value = data.get(key, _MISSING)
    if value is _MISSING or value is None:
        return default
    if kind is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"field {key!r}: expected an integer, got {value!r}")
    elif not isinstance(value, kind):
        raise ValueError(f"field {key!r}: expected {kind.__name__}, got {value!r}")
    return value


def _decode_object(body: bytes | str) -> dict[str, Any]:
    data = json.loads(body)
    if not isinstance(data, dict):
        raise ValueError("response body is not a JSON object")
    return data


def _format_fraction(value: int, unit: int, suffix: str) -> str:
    whole, rest = divmod(value, unit)
    digits = len(str(unit)) - 1
    fraction = str(rest).rjust(digits, "0").rstrip("0")
    return f"{whole}.{fraction}{suffix}" if fraction else f"{whole}{suffix}"


def _format_duration(nanoseconds: int) -> str:
    """Render a duration as hours, minutes and seconds, e.g. ``1h2m3.5s``."""
    if nanoseconds == 0:
        return "0s"
    sign = "-" if nanoseconds < 0 else ""
    ns = abs(nanoseconds)
    if ns < 1_000:
        return f"{sign}{ns}ns"
    if ns < 1_000_000:
        return sign + _format_fraction(ns, 1_000, "µs")
    if ns < 1_000_000_000:
        return sign + _format_fraction(ns, 1_000_000, "ms")
    hours, rest = divmod(ns, 3600 * 10**9)
    minutes, rest = divmod(rest, 60 * 10**9)
    text = _format_fraction(rest, 10**9, "s")
    if hours:
        text = f"{hours}h{minutes}m{text}"
    elif minutes:
        text = f"{minutes}m{text}"
    return sign + text


@dataclass
class CommonResponse:
    """Envelope shared by the v1/v2 endpoints."""

    ret_code: int = 0
    ret_msg: str = ""
    ext_code: str = ""
    ext_info: str = ""
    time_now: str = ""
    rate_limit_status: int = 0
    rate_limit_reset_ms: int = 0
    rate_limit: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CommonResponse:
        return cls(
            ret_code=_field(data, "ret_code", int, 0),
            ret_msg=_field(data, "ret_msg", str, ""),
            ext_code=_field(data, "ext_code", str, ""),
            ext_info=_field(data, "ext_info", str, ""),
            time_now=_field(data, "time_now", str, ""),
            rate_limit_status=_field(data, "rate_limit_status", int, 0),
            rate_limit_reset_ms=_field(data, "rate_limit_reset_ms", int, 0),
            rate_limit=_field(data, "rate_limit", int, 0),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "ret_code": self.ret_code,
            "ret_msg": self.ret_msg,
            "ext_code": self.ext_code,
            "ext_info": self.ext_info,
            "time_now": self.time_now,
            "rate_limit_status": self.rate_limit_status,
            "rate_limit_reset_ms": self.rate_limit_reset_ms,
            "rate_limit": self.rate_limit,
        }


@dataclass
class CommonV3Response:
    """Envelope shared by the v3 endpoints."""

    ret_code: int = 0
    ret_msg: str = ""
    ret_ext_info: Any = None
    time: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CommonV3Response:
        return cls(
            ret_code=_field(data, "retCode", int, 0),
            ret_msg=_field(data, "retMsg", str, ""),
            ret_ext_info=data.get("retExtInfo"),
            time=_field(data, "time", int, 0),
        )


class ErrorResponse(Exception):
    """The API answered with a non-zero return code."""

    def __init__(self, ret_code: int, ret_msg: str) -> None:
        super().__init__(ret_code, ret_msg)
        self.ret_code = ret_code
        self.ret_msg = ret_msg

    def __str__(self) -> str:
        return f"{self.ret_code}, {self.ret_msg}"


class RateLimitError(ErrorResponse):
    """The API rejected the request because the rate limit was reached."""

    def __init__(self, response: CommonResponse) -> None:
        super().__init__(response.ret_code, response.ret_msg)
        self.response = response

    @property
    def reset_in_ns(self) -> int:
        """Nanoseconds until the limit resets (negative once it has passed)."""
        reset_seconds = int(self.response.rate_limit_reset_ms / 1000)
        return reset_seconds * 10**9 - time.time_ns()

    def __str__(self) -> str:
        return f"{self.ret_msg}, {_format_duration(self.reset_in_ns)}"


class PathNotFoundError(Exception):
    """The request path does not exist."""

    def __init__(self, message: str = "path not found") -> None:
        super().__init__(message)


class AccessDeniedError(Exception):
    """The server denied access to the request path."""

    def __init__(self, message: str = "access denied") -> None:
        super().__init__(message)


def check_response_body(body: bytes | str) -> CommonResponse:
    """Return the envelope of a v1/v2 body, raising if it reports a failure."""
    data = _decode_object(body)
    common = CommonResponse.from_dict(data)
    if common.ret_code == RATE_LIMIT_RET_CODE:
        raise RateLimitError(common)
    if common.ret_code != 0:
        raise ErrorResponse(common.ret_code, common.ret_msg)
    return common


def check_v3_response_body(body: bytes | str) -> CommonV3Response:
    """Return the envelope of a v3 body, raising if it reports a failure."""
    data = _decode_object(body)
    common = CommonV3Response.from_dict(data)
    if common.ret_code != 0:
        raise ErrorResponse(common.ret_code, common.ret_msg)
    return common