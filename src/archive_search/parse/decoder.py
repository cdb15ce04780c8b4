"""
Decoding of search API response bodies.

A page body looks like `{"data": [...], "meta": {"result_count": n, "next_token": "..."}}`.
Records are flattened into the fixed column set used by the stores: nested
objects are merged one level up, and anything still structured after that is
kept as JSON text in a `<name>_json` column.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List

from archive_search.core.models import NULL_MARKER, SAVE_COLUMNS, RawPage


def parse_page(body: str) -> RawPage:
    """
    Decode one page body.

    Raises:
        ValueError: If the body is not a JSON object or carries no `meta` object.
    """
    payload = json.loads(body)
    if not isinstance(payload, dict):
        raise ValueError("Page body is not a JSON object")

    # only a present `meta` without `next_token` marks the last page
    meta = payload.get("meta")
    if not isinstance(meta, dict):
        raise ValueError("Page body has no meta object")
    records = payload.get("data") or []
    result_count = meta.get("result_count")
    if result_count is None:
        result_count = len(records)

    return RawPage(
        records=list(records),
        result_count=int(result_count),
        next_token=meta.get("next_token"),
        error_detail=payload.get("errors"),
    )


def parse_error_detail(body: str) -> List[Dict[str, Any]]:
    """Extract the structured error list from an error response body."""
    try:
        payload = json.loads(body)
    except ValueError:
        return [{"message": body}]

    if not isinstance(payload, dict):
        return [{"message": str(payload)}]

    errors = payload.get("errors")
    if isinstance(errors, list) and errors:
        return [e if isinstance(e, dict) else {"message": str(e)} for e in errors]

    detail = {k: payload[k] for k in ("title", "detail") if k in payload}
    return [detail or {"message": body}]


def flatten_record(record: Dict[str, Any]) -> Dict[str, Any]:
    """Merge nested objects one level up and turn remaining structures into JSON columns."""
    merged: Dict[str, Any] = {}
    for key, value in record.items():
        if isinstance(value, dict):
            for sub_key, sub_value in value.items():
                merged[sub_key] = sub_value
        else:
            merged[key] = value

    flat: Dict[str, Any] = {}
    for key, value in merged.items():
        if isinstance(value, (list, dict)):
            flat[f"{key}_json"] = json.dumps(value, ensure_ascii=False)
        else:
            flat[key] = value
    return flat


def to_row(record: Dict[str, Any]) -> Dict[str, Any]:
    """Project a raw record onto the store columns, filling gaps with the null marker."""
    flat = flatten_record(record)
    row = {}
    for col in SAVE_COLUMNS:
        value = flat.get(col)
        if value is None:
            row[col] = NULL_MARKER
        elif isinstance(value, bool):
            row[col] = "TRUE" if value else "FALSE"
        else:
            row[col] = value
    return row
