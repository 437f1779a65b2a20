"""JSON comparison helpers and golden-file handling."""

from __future__ import annotations

import base64
import json
import os
from dataclasses import fields, is_dataclass
from enum import Enum
from pathlib import Path
from typing import Any

UPDATE_ENV_VAR = "BYBIT_TEST_UPDATED"


def _default(obj: Any) -> Any:
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: getattr(obj, f.name) for f in fields(obj)}
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (bytes, bytearray)):
        return base64.b64encode(bytes(obj)).decode("ascii")
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)
    raise TypeError(f"cannot convert {type(obj).__name__} to JSON")


def convert_to_json(src: Any) -> bytes:
    """Serialise ``src`` as JSON indented by two spaces."""
    return json.dumps(src, indent=2, ensure_ascii=False, default=_default).encode("utf-8")


def _same(a: Any, b: Any) -> bool:
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return a == b
    if isinstance(a, dict) and isinstance(b, dict):
        return a.keys() == b.keys() and all(_same(a[k], b[k]) for k in a)
    if isinstance(a, list) and isinstance(b, list):
        return len(a) == len(b) and all(_same(x, y) for x, y in zip(a, b))
    return type(a) is type(b) and a == b


def json_equal(want: bytes | str, got: bytes | str) -> bool:
    """Tell whether two JSON documents hold the same value."""
    return _same(json.loads(want), json.loads(got))


def compare_golden(golden_filename: str | os.PathLike, got: bytes | str) -> bool:
    """Check ``got`` against a golden file.

    Returns False when the golden file does not exist, True when it matches,
    and raises AssertionError when it differs.
    """
    path = Path(golden_filename)
    try:
        want = path.read_bytes()
    except FileNotFoundError:
        return False
    if not json_equal(want, got):
        got_text = got.decode("utf-8") if isinstance(got, bytes) else got
        raise AssertionError(f"{path} does not match:\n{got_text}")
    return True


def save_to_file(name: str | os.PathLike, data: bytes) -> None:
    """Write ``data`` to ``name``, creating it with mode 0644."""
    fd = os.open(name, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o644)
    with os.fdopen(fd, "wb") as handle:
        handle.write(data)


def update_file(filename: str | os.PathLike, data: bytes) -> bool:
    """Rewrite the golden file when BYBIT_TEST_UPDATED is "true"; report whether it did."""
    if os.environ.get(UPDATE_ENV_VAR) != "true":
        return False
    save_to_file(filename, data)
    return True