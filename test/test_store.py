from typing import Any

from pytest import mark, raises

from tree_sync import (
    EventKind,
    InvalidKeyError,
    MemoryReference,
    MemoryStore,
    Snapshot,
)


class Listener:
    snapshots: list[Snapshot]

    def __init__(self):
        self.snapshots = []

    def __call__(self, snapshot: Snapshot):
        self.snapshots.append(snapshot)

    @property
    def summary(self) -> list[tuple[str, Any]]:
        return [(s.full_path, s.val()) for s in self.snapshots]


def test_ref(store: MemoryStore):
    ref = store.ref("a/b")

    assert ref.path == ("a", "b")
    assert ref.key == "b"
    assert ref == store.ref("/a//b/")
    assert ref != MemoryStore().ref("a/b")
    assert hash(ref) == hash(store.ref("a/b"))

    assert ref.parent == store.ref("a")
    assert store.ref().parent is None
    assert store.ref().key is None

    assert ref.child("c/d") == store.ref("a/b/c/d")
    assert ref.child("c").relative_path(store.ref("a")) == "b/c"
    assert ref.relative_path() == "a/b"
    assert ref.relative_path(ref) == ""


def test_normalize():
    store = MemoryStore({"a": [1, None, {"b": {}}, 3], "c": {}, "d": None})

    assert store.data == {"a": {"0": 1, "3": 3}}
    assert MemoryStore({}).data is None


def test_set(root: MemoryReference):
    root.child("a/b").set(1)
    root.child("a/c").set({"d": 2})

    assert root.get() == {"a": {"b": 1, "c": {"d": 2}}}
    assert root.child("a/c/d").get() == 2
    assert root.child("x/y").get() is None

    root.child("a/c/d").remove()
    assert root.get() == {"a": {"b": 1}}

    root.child("a/b").set(None)
    assert root.get() is None


def test_copy(root: MemoryReference):
    value = {"a": {"b": 1}}
    root.set(value)

    value["a"]["b"] = 2
    assert root.get() == {"a": {"b": 1}}

    result = root.get()
    result["a"]["b"] = 3
    assert root.get() == {"a": {"b": 1}}


@mark.store_data({"a": 1, "b": 2})
def test_update(root: MemoryReference):
    listener = Listener()
    root.on(EventKind.VALUE, listener)

    root.update({"a": None, "c/d": 3})

    assert root.get() == {"b": 2, "c": {"d": 3}}

    # initial value, then one notification for the whole update
    assert listener.summary == [
        ("", {"a": 1, "b": 2}),
        ("", {"b": 2, "c": {"d": 3}}),
    ]


def test_invalid_key(root: MemoryReference):
    with raises(InvalidKeyError) as e:
        root.child("a.b").set(1)
    assert e.value.key == "a.b"

    with raises(InvalidKeyError):
        root.set({"a": {"b#c": 1}})

    with raises(InvalidKeyError):
        root.update({"a/b$": 1})

    # nothing written
    assert root.get() is None


@mark.store_data({"b": 2, "a": 1, "10": 3, "9": 4})
def test_initial(root: MemoryReference):
    value = Listener()
    added = Listener()
    changed = Listener()

    root.child("a").on(EventKind.VALUE, value)
    root.child("missing").on(EventKind.VALUE, value)
    root.on(EventKind.CHILD_ADDED, added)
    root.on(EventKind.CHILD_CHANGED, changed)

    assert value.summary == [("a", 1), ("missing", None)]

    # integer keys first, in numeric order
    assert added.summary == [("9", 4), ("10", 3), ("a", 1), ("b", 2)]
    assert changed.summary == []


@mark.store_data({"a": 1, "b": {"x": 1}})
def test_child_events(root: MemoryReference):
    added = Listener()
    changed = Listener()
    removed = Listener()

    root.on(EventKind.CHILD_ADDED, added)
    root.on(EventKind.CHILD_CHANGED, changed)
    root.on(EventKind.CHILD_REMOVED, removed)

    added.snapshots.clear()

    root.update({"a": None, "b/x": 2, "c": 3})

    assert added.summary == [("c", 3)]
    assert changed.summary == [("b", {"x": 2})]
    assert removed.summary == [("a", 1)]

    # unchanged value
    root.update({"c": 3})
    assert len(changed.snapshots) == 1


@mark.store_data({"a": 1})
def test_once(store: MemoryStore, root: MemoryReference):
    listener = Listener()
    handle = root.child("b").once(EventKind.VALUE, listener)

    assert listener.summary == [("b", None)]
    assert not handle.active
    assert store.listener_count == 0

    listener = Listener()
    handle = root.once(EventKind.CHILD_CHANGED, listener)
    assert handle.active

    root.update({"a": 2})
    root.update({"a": 3})

    assert listener.summary == [("a", 2)]
    assert not handle.active


def test_cancel(store: MemoryStore, root: MemoryReference):
    listener = Listener()
    handle = root.on(EventKind.CHILD_ADDED, listener)
    assert store.listener_count == 1

    handle.cancel()
    handle.cancel()
    assert not handle.active
    assert store.listener_count == 0

    root.update({"a": 1})
    assert listener.snapshots == []


def test_nested_write(store: MemoryStore, root: MemoryReference):
    listener = Listener()

    def handler(snapshot: Snapshot):
        # write from within a listener
        if snapshot.val() == 1:
            root.child("b").set(2)

    root.child("a").on(EventKind.VALUE, handler)
    root.child("b").on(EventKind.VALUE, listener)

    root.child("a").set(1)

    assert root.get() == {"a": 1, "b": 2}
    assert listener.summary == [("b", None), ("b", 2)]


def test_close(store: MemoryStore, root: MemoryReference):
    root.on(EventKind.VALUE, Listener())
    root.on(EventKind.CHILD_ADDED, Listener())

    store.close()
    assert store.listener_count == 0


def test_children_kind(root: MemoryReference):
    with raises(AssertionError):
        root.on(EventKind.CHILDREN, Listener())
