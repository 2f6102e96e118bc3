"""
Normalization of the stored ``imageKeys`` attribute.

Older rows hold image keys in several shapes: a plain list, a set wrapper
(``{"values": [...]}`` or a Python set), a JSON-encoded string, a
comma-separated string, or nothing at all. Every reader goes through
``normalize_image_keys`` so all of them see the same ordered list of
non-empty, de-duplicated keys.
"""

import json
from typing import Any

from app.models import ImageKeyShape


def classify_image_keys(raw: Any) -> ImageKeyShape:
    if raw is None:
        return ImageKeyShape.ABSENT
    if isinstance(raw, (list, tuple)):
        return ImageKeyShape.LIST
    if isinstance(raw, (set, frozenset)):
        return ImageKeyShape.SET_WRAPPER
    if isinstance(raw, dict) and isinstance(raw.get("values"), (list, tuple)):
        return ImageKeyShape.SET_WRAPPER
    if isinstance(raw, str):
        try:
            decoded = json.loads(raw)
        except ValueError:
            return ImageKeyShape.COMMA_STRING
        if isinstance(decoded, (list, dict)):
            return ImageKeyShape.JSON_STRING
        return ImageKeyShape.COMMA_STRING
    return ImageKeyShape.ABSENT


def _clean(values: Any) -> list[str]:
    keys: list[str] = []
    seen: set[str] = set()
    for value in values:
        if not isinstance(value, str):
            continue
        key = value.strip()
        if key and key not in seen:
            seen.add(key)
            keys.append(key)
    return keys


def normalize_image_keys(raw: Any) -> list[str]:
    """
    Coerce any known ``imageKeys`` shape into a list of keys.

    Examples:
        ["a", "b"]                -> ["a", "b"]
        {"values": ["a"]}         -> ["a"]
        '["a", "b"]'              -> ["a", "b"]
        "k1, k2,k3"               -> ["k1", "k2", "k3"]
        None                      -> []
    """
    shape = classify_image_keys(raw)

    if shape is ImageKeyShape.LIST:
        return _clean(raw)
    if shape is ImageKeyShape.SET_WRAPPER:
        # set iteration order is arbitrary; sort so repeated reads agree
        values = raw["values"] if isinstance(raw, dict) else sorted(v for v in raw if isinstance(v, str))
        return _clean(values)
    if shape is ImageKeyShape.JSON_STRING:
        decoded = json.loads(raw)
        if isinstance(decoded, dict) and classify_image_keys(decoded) is not ImageKeyShape.SET_WRAPPER:
            return []
        return normalize_image_keys(decoded)
    if shape is ImageKeyShape.COMMA_STRING:
        return _clean(raw.split(","))
    return []
