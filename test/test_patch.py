import datetime
import logging

from pytest import LogCaptureFixture, mark, raises

from tree_sync import (
    MemoryReference,
    Replace,
    flatten_patch,
    normalize_value,
    write_patch,
)


def test_flatten():
    assert flatten_patch({"a": {"b": 1, "c": 2}, "d": 3}) == {
        "a/b": 1,
        "a/c": 2,
        "d": 3,
    }

    # nested mapping without leaves
    assert flatten_patch({"a": {"b": {}}, "c": 1}) == {"c": 1}
    assert flatten_patch({}) == {}


def test_flatten_keys():
    assert flatten_patch({"a.b": {"c/d": 1, "$e": 2}}) == {
        "a%2Eb/c%2Fd": 1,
        "a%2Eb/%24e": 2,
    }


def test_flatten_leaves():
    # sequences are leaves, with keys of contained mappings encoded
    assert flatten_patch({"a": [1, {"x.y": 2}]}) == {"a": [1, {"x%2Ey": 2}]}

    assert flatten_patch({"a": None, "b": "s", "c": True}) == {
        "a": None,
        "b": "s",
        "c": True,
    }


def test_flatten_replace():
    assert flatten_patch({"a": Replace({"b.c": 1}), "d": {"e": 2}}) == {
        "a": {"b%2Ec": 1},
        "d/e": 2,
    }


def test_flatten_transform():
    calls: list = []

    def transform(value):
        calls.append(value)
        return value * 10

    assert flatten_patch({"a": {"b": 1}, "c": 2}, transform=transform) == {
        "a/b": 10,
        "c": 20,
    }

    assert calls == [1, 2]


def test_flatten_date():
    d = datetime.datetime(2024, 1, 2, 3, 4, 5, tzinfo=datetime.timezone.utc)
    assert flatten_patch({"d": d}) == {"d": "2024-01-02T03:04:05.000Z"}


def test_flatten_transform_normalized():
    dt = datetime.datetime(2024, 1, 2, 3, 4, 5)
    assert flatten_patch({"t": dt}, transform=lambda v: f"<{v}>") == {
        "t": "<2024-01-02T03:04:05.000Z>"
    }


def test_normalize():
    tz = datetime.timezone(datetime.timedelta(hours=2))

    assert (
        normalize_value(datetime.datetime(2024, 1, 2, 3, 4, 5, 678901))
        == "2024-01-02T03:04:05.678Z"
    )
    assert (
        normalize_value(datetime.datetime(2024, 1, 2, 3, 4, 5, tzinfo=tz))
        == "2024-01-02T01:04:05.000Z"
    )
    assert normalize_value(datetime.date(2024, 1, 2)) == "2024-01-02T00:00:00.000Z"

    assert normalize_value(float("nan")) == 0
    assert normalize_value(1.5) == 1.5
    assert normalize_value("a.b") == "a.b"

    assert normalize_value({"a.b": 1}) == {"a%2Eb": 1}
    assert normalize_value(Replace(5)) == 5


@mark.store_data({"a": {"b": 1, "c": 2}, "d": 3})
def test_write(root: MemoryReference):
    flat = write_patch(root, {"a": {"b": 10}})

    assert flat == {"a/b": 10}

    # siblings untouched
    assert root.get() == {"a": {"b": 10, "c": 2}, "d": 3}


@mark.store_data({"a": {"b": 1, "c": 2}, "d": 3})
def test_write_transform_error(root: MemoryReference):
    def transform(value):
        if value == 30:
            raise ValueError("failed")
        return value

    with raises(ValueError):
        write_patch(root, {"a": {"b": 10}, "d": 30}, transform=transform)

    # no partial update
    assert root.get() == {"a": {"b": 1, "c": 2}, "d": 3}


@mark.store_data({"a": {"b": 1, "c": 2}, "d": 3})
def test_write_remove(root: MemoryReference):
    write_patch(root, {"a": {"b": None, "c": None}})

    # empty parent removed
    assert root.get() == {"d": 3}


@mark.store_data({"a": {"b": 1, "c": 2}})
def test_write_replace(root: MemoryReference):
    write_patch(root.child("a"), {"x": Replace({"y": 1})})
    write_patch(root, {"a": Replace({"z": 1})})

    assert root.get() == {"a": {"z": 1}}


@mark.store_data({"a": 1})
def test_write_noop(root: MemoryReference):
    assert write_patch(None, {"a": 2}) is None
    assert write_patch(root, None) is None
    assert write_patch(root, {}) is None
    assert write_patch(root, [1, 2]) is None
    assert write_patch(root, "a") is None
    assert write_patch(root, {"b": {}}) is None

    assert root.get() == {"a": 1}


def test_write_single_update(root: MemoryReference):
    updates: list = []

    class Ref(MemoryReference):
        def update(self, values):
            updates.append(dict(values))
            super().update(values)

    ref = Ref(root.store, ("x",))
    write_patch(ref, {"a": {"b": 1, "c": 2}, "d": 3})

    assert updates == [{"a/b": 1, "a/c": 2, "d": 3}]
    assert root.get() == {"x": {"a": {"b": 1, "c": 2}, "d": 3}}


def test_write_debug(root: MemoryReference, caplog: LogCaptureFixture):
    caplog.set_level(logging.DEBUG)

    write_patch(
        root.child("app/a"), {"b": 2, "c.d": "x"}, debug=True, root=root.child("app")
    )

    assert caplog.messages == [
        "Patching on /a/b: 2",
        "Patching on /a/c%2Ed: 'x'",
    ]
