from __future__ import annotations
import math
from typing import Any, Optional


def normalize_str_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None

def normalize_int_or_none(value: Any, *, allow_zero: bool = False) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        v_int = int(value)
    except (TypeError, ValueError):
        return None

    if not allow_zero and v_int <= 0:
        return None

    return v_int

def normalize_float_or_none(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        v_float = float(value)
    except (TypeError, ValueError):
        return None

    # NaN never compares >= threshold, but keep it out of results
    if math.isnan(v_float):
        return None

    return v_float

def normalize_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}
