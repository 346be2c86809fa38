"""Tests for entry codecs."""

import json
from dataclasses import asdict, dataclass

import pytest

from filedb import Codec, Entry, codec, json_codec, pickle_codec


@dataclass
class Point:
    x: int
    y: int


class TestJsonCodec:
    def test_roundtrip(self):
        c = json_codec()
        entry = Entry(3, {"name": "a", "tags": [1, 2]})
        assert c.decode(c.encode(entry)) == entry

    def test_record_has_exactly_two_fields(self):
        raw = json_codec().encode(Entry(1, "v1"))
        assert json.loads(raw) == {"version": 1, "doc": "v1"}

    def test_typed_documents(self):
        c = json_codec(to_json=asdict, from_json=lambda d: Point(**d))
        decoded = c.decode(c.encode(Entry(2, Point(1, 2))))
        assert decoded == Entry(2, Point(1, 2))

    def test_rejects_extra_fields(self):
        raw = json.dumps({"version": 1, "doc": 1, "extra": 0}).encode()
        with pytest.raises(ValueError, match="exactly"):
            json_codec().decode(raw)

    @pytest.mark.parametrize("version", [0, -1, "1", 1.5, True])
    def test_rejects_bad_version(self, version):
        raw = json.dumps({"version": version, "doc": 1}).encode()
        with pytest.raises(ValueError, match="positive integer"):
            json_codec().decode(raw)

    def test_rejects_garbage(self):
        with pytest.raises(ValueError):
            json_codec().decode(b"not json")

    def test_unserializable_doc(self):
        with pytest.raises(TypeError):
            json_codec().encode(Entry(1, object()))


class TestPickleCodec:
    def test_roundtrip_arbitrary_objects(self):
        c = pickle_codec()
        entry = Entry(5, {"when": (1, 2), "items": {3, 4}})
        assert c.decode(c.encode(entry)) == entry

    def test_rejects_wrong_shape(self):
        import pickle

        with pytest.raises(ValueError):
            pickle_codec().decode(pickle.dumps([1, 2]))


class TestCodecLookup:
    def test_by_name(self):
        assert codec("json").name == "json"
        assert codec("pickle").name == "pickle"

    def test_passthrough(self):
        c = json_codec()
        assert codec(c) is c

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown codec"):
            codec("yaml")

    def test_custom_codec(self):
        c = Codec(
            name="text",
            encode=lambda e: f"{e.version}:{e.doc}".encode(),
            decode=lambda raw: Entry(int(raw.split(b":", 1)[0]), raw.split(b":", 1)[1].decode()),
        )
        assert c.decode(c.encode(Entry(7, "hi"))) == Entry(7, "hi")
