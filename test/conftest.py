import logging
from typing import Any, Generator

from pytest import Config, FixtureRequest, fixture

from tree_sync import (
    ChangeEvent,
    MemoryReference,
    MemoryStore,
    Session,
    WatchOptions,
)

logging.basicConfig(level=logging.WARNING)

MARKERS = [
    "store_data",
    "debug",
]


def pytest_configure(config: Config) -> None:
    for marker in MARKERS:
        config.addinivalue_line("markers", marker)


class EventRecorder:
    """
    Callback which records events for testcases to verify.
    """

    events: list[ChangeEvent]

    def __init__(self):
        self.events = []

    def __call__(self, event: ChangeEvent):
        self.events.append(event)

    def __len__(self) -> int:
        return len(self.events)

    @property
    def summary(self) -> list[tuple[str, str, Any]]:
        """
        Events as (kind, path, value) tuples, in order received.
        """
        return [
            (str(e.event_kind), "/".join(e.path), e.value) for e in self.events
        ]

    def clear(self):
        self.events.clear()


@fixture
def store(request: FixtureRequest) -> Generator[MemoryStore, None, None]:
    """
    Create a store, populated with data given by marker:

    @mark.store_data({"a": 1})
    """
    marker = request.node.get_closest_marker("store_data")
    data = marker.args[0] if marker else None

    store = MemoryStore(data)
    yield store

    store.close()


@fixture
def root(store: MemoryStore) -> MemoryReference:
    return store.ref()


@fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@fixture
def options(request: FixtureRequest, recorder: EventRecorder) -> WatchOptions:
    return WatchOptions(
        callback=recorder,
        debug=request.node.get_closest_marker("debug") is not None,
    )


@fixture
def session(
    request: FixtureRequest, store: MemoryStore
) -> Generator[Session, None, None]:
    """
    Create a session rooted at "app".
    """
    with Session(
        store.ref("app"),
        debug=request.node.get_closest_marker("debug") is not None,
    ) as session:
        yield session
