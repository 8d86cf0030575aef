"""
Tests for Collection.

Tests cover:
- Add with id/name collision detection
- Lookup by id and name, including the not-found zero value
- Update and removal with index re-density
- Monotonic updated timestamp
- Binary encode/decode round trip and rejection of bad input
"""
import os
import struct

from datetime import timedelta

import pytest

from secvault.errors import (
    AlreadyExistsError,
    MalformedDataError,
    SecretNotFoundError,
    ValidationError,
)
from secvault.utils.dataModels import COLLECTION_MAGIC
from secvault.vault.collection import Collection
from secvault.vault.secret import Secret, SecretOptions, SecretType, SecretUpdate

from conftest import StepClock, T0


def make_secret(id_: str, name: str, **kwargs) -> Secret:
    return Secret(id=id_, name=name, value=os.urandom(40), created=T0, **kwargs)


def assert_indices_consistent(c: Collection) -> None:
    secrets = c._secrets
    assert len(c._ids) == len(secrets) == len(c._names)
    for k, i in c._ids.items():
        assert secrets[i].id == k
    for k, i in c._names.items():
        assert secrets[i].name == k
    assert sorted(c._ids.values()) == list(range(len(secrets)))


@pytest.fixture
def collection(clock):
    return Collection("profile-1", clock=clock)


@pytest.fixture
def five(collection):
    for n in range(5):
        collection.add(make_secret(f"id-{n}", f"name-{n}"))
    return collection


class TestAdd:

    def test_add_and_get(self, collection):
        collection.add(make_secret("a", "alpha"))
        assert len(collection) == 1
        assert collection.get_by_id("a").name == "alpha"
        assert collection.get_by_name("alpha").id == "a"
        assert collection.updated == T0

    @pytest.mark.parametrize("id_, name", [("id-2", "other"), ("other", "name-2"), ("id-2", "name-2")])
    def test_collision_leaves_collection_unchanged(self, five, id_, name):
        before = five.list()
        updated = five.updated
        with pytest.raises(AlreadyExistsError):
            five.add(make_secret(id_, name))
        assert len(five) == 5
        assert five.list() == before
        assert five.updated == updated
        assert_indices_consistent(five)

    def test_stored_copy_is_isolated(self, collection):
        s = make_secret("a", "alpha", labels=["x"])
        collection.add(s)
        s.labels.append("y")
        collection.get_by_id("a").labels.append("z")
        assert collection.get_by_id("a").labels == ["x"]


class TestLookup:

    def test_absent_returns_invalid_zero_value(self, five):
        missing = five.get_by_id("nope")
        assert missing == Secret()
        assert not missing.valid()
        assert not five.get_by_name("nope").valid()

    def test_list_preserves_order(self, five):
        assert [s.name for s in five.list()] == [f"name-{n}" for n in range(5)]


class TestUpdate:

    def test_replaces_record(self, five):
        s = five.get_by_id("id-3")
        s.bind_key(os.urandom(32))
        s.apply_update(SecretUpdate(display_name="three", type=SecretType.NOTE))
        five.update(s)
        got = five.get_by_name("name-3")
        assert got.display_name == "three"
        assert got.type is SecretType.NOTE
        assert_indices_consistent(five)

    def test_not_found(self, five):
        with pytest.raises(SecretNotFoundError):
            five.update(make_secret("nope", "name-1"))

    def test_name_is_immutable(self, five):
        s = five.get_by_id("id-1")
        s.name = "renamed"
        with pytest.raises(ValidationError):
            five.update(s)
        assert five.get_by_id("id-1").name == "name-1"


class TestRemove:

    @pytest.mark.parametrize("position", [0, 2, 4])
    def test_remove_by_id_keeps_indices_dense(self, five, position):
        five.remove_by_id(f"id-{position}")
        assert len(five) == 4
        assert not five.get_by_id(f"id-{position}").valid()
        assert not five.get_by_name(f"name-{position}").valid()
        assert_indices_consistent(five)
        for n in set(range(5)) - {position}:
            assert five.get_by_id(f"id-{n}").name == f"name-{n}"

    @pytest.mark.parametrize("position", [0, 2, 4])
    def test_remove_by_name_keeps_indices_dense(self, five, position):
        five.remove_by_name(f"name-{position}")
        assert_indices_consistent(five)
        for n in set(range(5)) - {position}:
            assert five.get_by_name(f"name-{n}").id == f"id-{n}"

    def test_arbitrary_sequence(self, five):
        five.remove_by_id("id-2")
        five.remove_by_name("name-0")
        five.add(make_secret("id-5", "name-5"))
        five.remove_by_id("id-4")
        five.remove_by_name("name-5")
        assert [s.id for s in five.list()] == ["id-1", "id-3"]
        assert_indices_consistent(five)

    def test_remove_everything(self, five):
        for n in range(5):
            five.remove_by_id(f"id-{n}")
        assert len(five) == 0
        assert five._ids == {} and five._names == {}

    def test_not_found(self, five):
        with pytest.raises(SecretNotFoundError):
            five.remove_by_id("nope")
        with pytest.raises(SecretNotFoundError):
            five.remove_by_name("nope")
        assert len(five) == 5

    def test_name_reusable_after_removal(self, five):
        five.remove_by_name("name-1")
        five.add(make_secret("id-new", "name-1"))
        assert five.get_by_name("name-1").id == "id-new"


class TestUpdated:

    def test_advances_on_every_mutation(self, five):
        stamps = [five.updated]
        s = five.get_by_id("id-0")
        five.update(s)
        stamps.append(five.updated)
        five.remove_by_id("id-1")
        stamps.append(five.updated)
        assert stamps == sorted(stamps) and len(set(stamps)) == 3

    def test_advances_with_stalled_clock(self):
        c = Collection("p", clock=StepClock(step=timedelta(0)))
        c.add(make_secret("a", "alpha"))
        c.add(make_secret("b", "beta"))
        assert c.updated == T0 + timedelta(microseconds=1)

    def test_new_collection_has_no_timestamp(self):
        assert Collection("p").updated is None


class TestCodec:

    def test_round_trip(self, collection, clock):
        key = os.urandom(32)
        collection.add(Secret.new(
            "db-pass", "s3cr3t", key,
            SecretOptions(display_name="DB", type=SecretType.CREDENTIAL,
                          labels=["prod", "db"], tags={"env": "prod", "team": "core"}),
            clock=clock,
        ))
        collection.add(make_secret("b", "empty-meta", labels=[], tags={}))
        collection.add(make_secret("c", "no-meta"))

        decoded = Collection.decode(collection.encode())
        assert decoded == collection
        assert decoded.profile_id == "profile-1"
        assert decoded.get_by_name("empty-meta").labels == []
        assert decoded.get_by_name("no-meta").labels is None
        assert decoded.get_by_name("db-pass").decrypt(key) == b"s3cr3t"

    def test_round_trip_empty(self):
        c = Collection("p")
        assert Collection.decode(c.encode()) == c

    def test_round_trip_after_removals(self, five):
        five.remove_by_id("id-1")
        assert Collection.decode(five.encode()) == five

    def test_header(self, five):
        assert five.encode()[:5] == COLLECTION_MAGIC + b"\x01"

    @pytest.mark.parametrize("data", [
        b"",
        b"SVC",
        b"XXXX\x01{}",
        COLLECTION_MAGIC + b"\x02{}",
        COLLECTION_MAGIC + b"\x01not json",
        COLLECTION_MAGIC + b"\x01{}",
        COLLECTION_MAGIC + b"\x01\xff\xfe",
        COLLECTION_MAGIC + b"\x01[]",
        COLLECTION_MAGIC + b'\x01{"profile_id":"p","updated":null,"secrets":[],"ids":[],"names":{}}',
        COLLECTION_MAGIC + b'\x01{"profile_id":"p","updated":null,"secrets":[],"ids":{},"names":"x"}',
        COLLECTION_MAGIC + b'\x01{"profile_id":"p","updated":null,"secrets":[[]],"ids":{},"names":{}}',
    ])
    def test_decode_rejects_bad_input(self, data):
        with pytest.raises(MalformedDataError):
            Collection.decode(data)

    def test_decode_rejects_inconsistent_indices(self, five):
        data = five.encode().replace(b'"id-0":0', b'"id-0":3')
        with pytest.raises(MalformedDataError):
            Collection.decode(data)

    def test_decode_rejects_index_out_of_range(self, five):
        data = five.encode().replace(b'"name-4":4', b'"name-4":9')
        with pytest.raises(MalformedDataError):
            Collection.decode(data)

    def test_header_format(self):
        magic, version = struct.unpack(">4sB", Collection("p").encode()[:5])
        assert (magic, version) == (b"SVC1", 1)
