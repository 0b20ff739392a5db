"""Tests for event records and batch serialization."""

import dataclasses
import json
import math

import pytest

from interlog.telemetry.events import (
    Batch,
    EventRecord,
    coerce_attributes,
    encode_batch,
    mask_value,
    new_session_id,
)


class Unprintable:
    def __str__(self):
        raise RuntimeError("no string form")


class TestEventRecord:
    def test_to_dict_wire_fields(self, make_record):
        record = make_record("click", x=10, y=20, target="button#buy")

        d = record.to_dict()
        assert d["type"] == "click"
        assert d["session"] == "sess0001"
        assert d["page"] == "checkout"
        assert d["ms"] == record.timestamp_wall
        assert d["t"] == record.timestamp_iso
        assert d["t"].endswith("Z")
        assert d["x"] == 10
        assert d["target"] == "button#buy"

    def test_record_is_immutable(self, make_record):
        record = make_record("click", x=1)

        with pytest.raises(dataclasses.FrozenInstanceError):
            record.type = "scroll"
        with pytest.raises(TypeError):
            record.attributes["x"] = 2

    def test_timestamp_from_clock(self, make_record, manual_clock):
        first = make_record()
        manual_clock.advance(1.5)
        second = make_record()

        assert second.timestamp_wall - first.timestamp_wall == pytest.approx(1.5, abs=1e-3)


class TestCoerceAttributes:
    def test_reserved_keys_are_namespaced(self, make_record):
        record = make_record("click", type="spoofed", session="other", x=1)

        d = record.to_dict()
        assert d["type"] == "click"
        assert d["session"] == "sess0001"
        assert d["attr_type"] == "spoofed"
        assert d["attr_session"] == "other"

    def test_namespaced_key_does_not_overwrite_existing(self):
        attrs = coerce_attributes({"t": "reserved", "attr_t": "explicit"})
        assert attrs == {"attr_t": "reserved"}

        attrs = coerce_attributes({"attr_t": "explicit", "t": "reserved", "x": 1})
        assert attrs == {"attr_t": "explicit", "x": 1}

    def test_non_finite_floats_stringified(self):
        attrs = coerce_attributes({"a": math.nan, "b": -math.inf, "c": 2.5})
        assert attrs == {"a": "nan", "b": "-inf", "c": 2.5}

    def test_scalars_kept(self):
        attrs = coerce_attributes({"a": "s", "b": 1, "c": 1.5, "d": True, "e": None})
        assert attrs == {"a": "s", "b": 1, "c": 1.5, "d": True, "e": None}

    def test_non_scalars_stringified(self):
        attrs = coerce_attributes({"items": [1, 2], "nested": {"k": "v"}})
        assert attrs == {"items": "[1, 2]", "nested": "{'k': 'v'}"}

    def test_unstringifiable_value_dropped(self):
        attrs = coerce_attributes({"bad": Unprintable(), "good": 1})
        assert attrs == {"good": 1}

    def test_empty(self):
        assert coerce_attributes(None) == {}
        assert coerce_attributes({}) == {}


class TestMaskValue:
    def test_masked(self):
        assert mask_value("hunter2", masked=True) == "***"

    def test_truncated(self):
        assert mask_value("x" * 500, masked=False) == "x" * 200
        assert mask_value("abcdef", masked=False, limit=3) == "abc"

    def test_none(self):
        assert mask_value(None, masked=False) == ""


class TestEncodeBatch:
    def test_payload_shape_and_order(self, make_batch):
        batch = make_batch(5)

        payload = json.loads(encode_batch(batch))
        assert list(payload) == ["batch"]
        assert [r["seq"] for r in payload["batch"]] == [0, 1, 2, 3, 4]

    def test_non_json_float_stringified(self, make_record):
        batch = Batch(records=(
            make_record("scroll", x=10, ok=True, y=math.nan, z=math.inf),
            make_record("click", x=1),
        ))

        payload = json.loads(encode_batch(batch))
        assert payload["batch"][0]["y"] == "nan"
        assert payload["batch"][0]["z"] == "inf"
        assert payload["batch"][0]["x"] == 10
        assert payload["batch"][0]["ok"] is True
        assert payload["batch"][1]["x"] == 1

    def test_fallback_only_stringifies_offending_field(self, clock):
        record = EventRecord(
            timestamp_wall=clock.now(),
            session_id="sess0001",
            page_id="checkout",
            type="scroll",
            attributes={"x": 10, "ok": True, "y": math.nan, "items": [1, 2]},
        )

        row = json.loads(encode_batch(Batch(records=(record,))))["batch"][0]
        assert row["x"] == 10
        assert row["ok"] is True
        assert row["y"] == "nan"
        assert row["items"] == [1, 2]

    def test_empty_batch(self):
        assert json.loads(encode_batch(Batch(records=()))) == {"batch": []}


def test_session_ids_are_unique():
    ids = {new_session_id() for _ in range(100)}
    assert len(ids) == 100
    assert all(len(i) == 16 for i in ids)
