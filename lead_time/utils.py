from __future__ import annotations

import dataclasses
import datetime as _dt
import hashlib
import json
from pathlib import Path
from typing import Any, Dict

import numpy as np


# -------------------------
# Path utilities
# -------------------------
def normalize_abs_posix(path: str | Path) -> str:
    """
    Return an absolute POSIX-style path string for the given input.
    Ensures deterministic representation across platforms.
    """
    p = Path(path).resolve()
    return p.as_posix()


# -------------------------
# Hashing utilities
# -------------------------
def canonical_json_dumps(payload: dict[str, Any]) -> str:
    """
    Deterministic JSON string for hashing and storage:
    - separators=(',', ':')
    - sort_keys=True
    - ensure_ascii=False
    """
    return json.dumps(
        payload, ensure_ascii=False, separators=(",", ":"), sort_keys=True
    )


def canonical_json_hash(payload: dict[str, Any]) -> tuple[str, str]:
    """
    Return (short_hash8, full_hash_hex) computed over canonical JSON bytes (UTF-8).
    """
    s = canonical_json_dumps(payload)
    b = s.encode("utf-8")
    h = hashlib.sha256(b).hexdigest()
    return h[:8], h


# -------------------------
# Report payload helpers
# -------------------------
def _sanitize_for_json(obj: Any) -> Any:
    """
    Recursively convert arbitrary objects into JSON-serializable Python primitives.

    Conversions performed:
    - pathlib.Path -> normalized POSIX string via normalize_abs_posix()
    - datetime.datetime / datetime.date -> ISO-8601 string
    - dataclasses -> dict via dataclasses.asdict() then sanitized recursively
    - numpy scalars -> Python int/float via .item()
    - numpy arrays -> lists via .tolist()
    - dicts -> sanitized dict with stringified keys (float keys such as 0.85 keep repr)
    - lists/tuples/sets -> lists with sanitized elements
    - None/str/int/float/bool left unchanged

    Report objects (PercentileReport, TypeSummary, WorkItemRecord) are dataclasses,
    so new fields show up in the JSON payload without touching this helper.
    """
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj

    if isinstance(obj, Path):
        return normalize_abs_posix(obj)

    # datetime is a date subclass; both render as ISO strings
    if isinstance(obj, (_dt.datetime, _dt.date)):
        return obj.isoformat()

    if isinstance(obj, np.generic):
        return obj.item()
    if isinstance(obj, np.ndarray):
        return obj.tolist()

    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return _sanitize_for_json(dataclasses.asdict(obj))

    if isinstance(obj, dict):
        out = {}
        for k, v in obj.items():
            key = k if isinstance(k, str) else str(k)
            out[key] = _sanitize_for_json(v)
        return out

    if isinstance(obj, (list, tuple, set)):
        return [_sanitize_for_json(x) for x in obj]

    return str(obj)


def write_json(path: str | Path, payload: Dict[str, Any]) -> Path:
    """
    Write a JSON payload with UTF-8 encoding and stable formatting (indent=2 for readability).
    """
    p = Path(path)
    p.write_text(
        json.dumps(_sanitize_for_json(payload), ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
    return p


def utc_timestamp_seconds() -> str:
    """
    ISO-8601 UTC timestamp with seconds precision and Z suffix.
    """
    now = _dt.datetime.now(_dt.timezone.utc).replace(tzinfo=None)
    return now.isoformat(timespec="seconds") + "Z"
