"""
Stable serialization helpers.
"""

import json
from typing import Any


def canonical_json(value: Any) -> str:
    """
    Serialize a value so that equal values always produce the same string.

    Keys are sorted and non-JSON types (dates, enums) fall back to str().
    """
    return json.dumps(value, sort_keys=True, default=str, ensure_ascii=False)
