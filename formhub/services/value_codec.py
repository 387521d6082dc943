"""Storage encoding for answers and field default values.

Text is stored as-is; any other JSON-compatible value is stored as its JSON
serialization. Reads try JSON first and fall back to the raw text, so a plain
answer such as ``hello`` round-trips while ``"42"`` typed as text comes back
as the number 42 (the stored form does not keep the original type).
"""

from __future__ import annotations

import json
from typing import Any


def encode_value(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def decode_value(raw: str | None) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return raw
