from __future__ import annotations

import json

from pydantic import ValidationError

from bubblesave.engine.models import Snapshot


class RecordDecodeError(Exception):
    pass


def encode_snapshot(snapshot: Snapshot) -> bytes:
    return snapshot.model_dump_json().encode("utf-8")


def decode_snapshot(data: bytes) -> Snapshot:
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise RecordDecodeError(f"Record is not UTF-8: {exc}") from exc
    if not text.strip():
        raise RecordDecodeError("Record is empty")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise RecordDecodeError(f"Invalid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise RecordDecodeError("Record must be a JSON object")
    try:
        return Snapshot.model_validate(payload)
    except ValidationError as exc:
        raise RecordDecodeError(str(exc)) from exc


def try_decode_snapshot(data: bytes) -> Snapshot | None:
    try:
        return decode_snapshot(data)
    except RecordDecodeError:
        return None
