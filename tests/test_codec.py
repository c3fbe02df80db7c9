import pytest
from pydantic import ValidationError

from bubblesave.engine.codec import (
    RecordDecodeError,
    decode_snapshot,
    encode_snapshot,
    try_decode_snapshot,
)
from bubblesave.engine.models import EntityRecord, Snapshot, Vec2


def test_record_is_compact_flat_json():
    snapshot = Snapshot(
        current_score=10,
        bubbles=[EntityRecord(merge_level=1, position=Vec2(x=1.0, y=2.0))],
        booster_inventory={"bomb": 1},
    )
    data = encode_snapshot(snapshot)
    assert b"\n" not in data
    assert b'"current_score":10' in data
    assert decode_snapshot(data) == snapshot


@pytest.mark.parametrize(
    "data",
    [
        b"",
        b"   ",
        b"\xff\xfe",
        b"[1, 2]",
        b'{"current_score": "ten"}',
        b'{"current_score": 1, "bubbles": [{"merge_level": 1, "spin": 3}]}',
    ],
)
def test_decode_rejects_bad_records(data: bytes):
    with pytest.raises(RecordDecodeError):
        decode_snapshot(data)
    assert try_decode_snapshot(data) is None


def test_snapshot_is_immutable():
    snapshot = Snapshot(current_score=1)
    with pytest.raises(Exception):
        snapshot.current_score = 2


@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_coordinates_rejected(value: float):
    with pytest.raises(ValidationError):
        Vec2(x=value, y=0.0)
