"""Decoding of JSON blobs kept in stored rows.

Rows written by older clients may hold ``priority_order``, ``options`` or
``answers`` either as JSON text or as already-decoded values. A blob that does
not decode to the expected shape is logged and treated as empty so one corrupt
row never breaks reads over the rest of the table.
"""

from __future__ import annotations

import json
import logging

logger = logging.getLogger(__name__)


def decode_label_list(raw: object, *, field_name: str = "priority_order") -> tuple[str, ...]:
    """Decode an ordered list of option labels."""
    value = _maybe_json(raw, field_name)
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)):
        logger.warning("Ignoring %s: expected a list, got %s", field_name, type(value).__name__)
        return ()
    return tuple(str(item) for item in value)


def decode_answers(raw: object) -> dict[str, object]:
    """Decode a question-id to raw-answer mapping."""
    value = _maybe_json(raw, "answers")
    if value is None:
        return {}
    if not isinstance(value, dict):
        logger.warning("Ignoring answers: expected an object, got %s", type(value).__name__)
        return {}
    return {str(key): answer for key, answer in value.items()}


def encode_blob(value: object) -> str:
    return json.dumps(value, ensure_ascii=False)


def _maybe_json(raw: object, field_name: str) -> object:
    if not isinstance(raw, str):
        return raw
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning("Ignoring malformed %s blob: %s", field_name, exc)
        return None
