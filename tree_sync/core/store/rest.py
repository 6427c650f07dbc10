"""
Client for a store exposing its tree over HTTP.

Each location is addressed as `<url>/<path>.json` and supports GET, PUT,
PATCH and DELETE. Change notifications are received over a server-sent
events stream, which reports `put` (replace value at path) and `patch`
(update children at path) events relative to the streamed location.

Stream events are applied to a local {obj}`MemoryStore` mirror, which then
notifies listeners with the same semantics as an in-memory store.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Mapping
from logging import Logger
from typing import Any, Callable, Iterable, Iterator, Self

import requests

from ..exceptions import StoreError
from ..utils import join_path, split_path
from .memory import MemoryStore
from .reference import BaseReference, EventKind, ListenerHandle, Snapshot

__all__ = [
    "RestStore",
    "RestReference",
    "parse_events",
]

REQUEST_TIMEOUT = 10.0
"""
Timeout for requests, and for the stream to deliver its initial value.
"""

STREAM_READ_TIMEOUT = 90.0
"""
Longest silence tolerated on the stream; servers send keep-alives well within
it. A stream which times out is reopened.
"""

RECONNECT_DELAY = 1.0
"""
Delay in seconds before reopening a stream which ended or failed.
"""


class RestStore:
    """
    Connection to a store over HTTP.

    The stream is opened on the first listener registration and runs on a
    background thread until {obj}`RestStore.close` is called; listeners are
    invoked on that thread. A stream which ends or times out is reopened, and
    the refreshed value is applied to the mirror; errors reported by the
    server stop the stream and are kept in {obj}`RestStore.error`.
    """

    _url: str
    """Base URL of the store"""

    _params: dict[str, str]
    """Query parameters added to each request, i.e. auth token"""

    _stream_path: tuple[str, ...]
    """Location which is streamed; listeners must be at or below it"""

    _http: requests.Session
    _logger: Logger
    _timeout: float
    _stream_timeout: float | None
    _reconnect_delay: float

    _mirror: MemoryStore
    """Local copy of streamed data"""

    _lock: threading.Lock
    _thread: threading.Thread | None = None
    _response: requests.Response | None = None
    _ready: threading.Event
    _closed: threading.Event
    _error: Exception | None = None

    def __init__(
        self,
        url: str,
        *,
        token: str | None = None,
        stream_path: str = "",
        http: requests.Session | None = None,
        logger: Logger | None = None,
        timeout: float = REQUEST_TIMEOUT,
        stream_timeout: float | None = STREAM_READ_TIMEOUT,
        reconnect_delay: float = RECONNECT_DELAY,
    ):
        """
        :param url: Base URL of the store, e.g. `https://example.com/db`
        :param token: Auth token passed as `auth` query parameter
        :param stream_path: Location to stream changes from
        :param http: HTTP session to use, or `None` to create one
        :param logger: Logger to use, or `None` to use default logger
        :param timeout: Request timeout in seconds
        :param stream_timeout: Read timeout of the stream in seconds, or `None`
            to wait indefinitely
        :param reconnect_delay: Delay before reopening an interrupted stream
        """
        self._url = url.rstrip("/")
        self._params = {"auth": token} if token else {}
        self._stream_path = split_path(stream_path)
        self._http = http or requests.Session()
        self._logger = logger or logging.getLogger()
        self._timeout = timeout
        self._stream_timeout = stream_timeout
        self._reconnect_delay = reconnect_delay

        self._mirror = MemoryStore()
        self._lock = threading.Lock()
        self._ready = threading.Event()
        self._closed = threading.Event()

    def __repr__(self) -> str:
        return f"RestStore('{self._url}')"

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *_):
        self.close()

    @property
    def url(self) -> str:
        return self._url

    @property
    def error(self) -> Exception | None:
        """
        Error which stopped the stream, if any. Listeners are no longer
        notified once set.
        """
        return self._error

    def ref(self, path: str = "") -> RestReference:
        return RestReference(self, split_path(path))

    def close(self):
        """
        Stop streaming; registered listeners will no longer be notified.
        """
        self._closed.set()

        with self._lock:
            response, self._response = self._response, None

        if response is not None:
            response.close()

        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(self._timeout)

    def _location_url(self, path: tuple[str, ...]) -> str:
        return f"{self._url}/{join_path(path)}.json"

    def _request(
        self, method: str, path: tuple[str, ...], body: Any = None
    ) -> Any:
        url = self._location_url(path)

        self._logger.debug(f"{method} {url}")

        try:
            response = self._http.request(
                method,
                url,
                params=self._params,
                data=None if body is None else json.dumps(body),
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            self._logger.error(f"Request to '{url}' failed: {e}")
            raise StoreError(str(e)) from e

        if not response.ok:
            self._logger.error(
                f"Request to '{url}' failed: status={response.status_code}, reason={response.reason}"
            )
            raise StoreError(
                response.text or response.reason, response.status_code
            )

        return response.json() if response.content else None

    def _write(self, changes: list[tuple[tuple[str, ...], Any]]):
        """
        Reflect a successful write in the mirror so listeners are notified
        without waiting for the stream to echo it.
        """
        if self._thread is not None and self._ready.is_set():
            self._mirror._write(changes)

    def _add_listener(
        self,
        path: tuple[str, ...],
        event_kind: EventKind,
        handler: Callable[[Snapshot], Any],
        once: bool,
    ) -> ListenerHandle:
        assert (
            path[: len(self._stream_path)] == self._stream_path
        ), f"Listener path '/{join_path(path)}' is outside streamed path '/{join_path(self._stream_path)}'"

        self._start_stream()

        def mirror_handler(snapshot: Snapshot):
            handler(
                Snapshot(RestReference(self, snapshot.ref.path), snapshot.value)
            )

        return self._mirror._add_listener(
            path, event_kind, mirror_handler, once
        )

    def _start_stream(self):
        with self._lock:
            if self._thread is None:
                self._thread = threading.Thread(
                    target=self._stream_loop,
                    name=f"stream {self._url}",
                    daemon=True,
                )
                self._thread.start()

        if not self._ready.wait(self._timeout):
            raise StoreError("Timed out waiting for initial stream data")

        if self._error is not None:
            raise self._error

    def _stream_loop(self):
        url = self._location_url(self._stream_path)

        try:
            while True:
                try:
                    self._stream(url)
                    reason = "ended by server"
                except Exception as e:
                    if self._closed.is_set():
                        break

                    # errors before the initial value, and ones reported by
                    # the server, are not retried
                    if isinstance(e, StoreError) or not self._ready.is_set():
                        self._logger.error(f"Stream from '{url}' failed: {e}")
                        self._error = e
                        break

                    reason = f"interrupted: {e}"

                if self._closed.is_set():
                    break

                if not self._ready.is_set():
                    self._error = StoreError(
                        "stream ended before delivering initial data"
                    )
                    self._logger.error(
                        f"Stream from '{url}' failed: {self._error}"
                    )
                    break

                self._logger.warning(
                    f"Stream from '{url}' {reason}, reconnecting"
                )

                if self._closed.wait(self._reconnect_delay):
                    break

        finally:
            self._ready.set()

    def _stream(self, url: str):
        """
        Open the stream and apply its events until it ends.
        """
        response = self._http.get(
            url,
            params=self._params,
            headers={"Accept": "text/event-stream"},
            stream=True,
            timeout=(self._timeout, self._stream_timeout),
        )

        if not response.ok:
            raise StoreError(response.reason, response.status_code)

        with self._lock:
            if self._closed.is_set():
                response.close()
                return
            self._response = response

        self._logger.debug(f"Streaming from '{url}'")

        with response:
            for event, data in parse_events(
                response.iter_lines(decode_unicode=True)
            ):
                if self._closed.is_set():
                    break
                self._handle_event(event, data)

        with self._lock:
            if self._response is response:
                self._response = None

    def _handle_event(self, event: str, data: str):
        if event == "keep-alive":
            return

        if event in ("cancel", "auth_revoked"):
            raise StoreError(f"stream closed by server: {event}")

        if event not in ("put", "patch"):
            self._logger.debug(f"Ignoring stream event '{event}'")
            return

        payload = json.loads(data)
        path = self._stream_path + split_path(payload["path"])

        if event == "put":
            self._mirror._write([(path, payload["data"])])
            self._ready.set()
        else:
            self._mirror._write(
                [
                    (path + split_path(k), v)
                    for k, v in (payload["data"] or {}).items()
                ]
            )


class RestReference(BaseReference):
    """
    Location within a {obj}`RestStore`.
    """

    _store: RestStore

    def __init__(self, store: RestStore, path: tuple[str, ...] = ()):
        super().__init__(path)
        self._store = store

    @property
    def store(self) -> RestStore:
        return self._store

    @property
    def _store_id(self) -> int:
        return id(self._store)

    def _create(self, path: tuple[str, ...]) -> Self:
        return type(self)(self._store, path)

    def on(
        self, event_kind: EventKind, handler: Callable[[Snapshot], Any]
    ) -> ListenerHandle:
        return self._store._add_listener(self.path, event_kind, handler, False)

    def once(
        self, event_kind: EventKind, handler: Callable[[Snapshot], Any]
    ) -> ListenerHandle:
        return self._store._add_listener(self.path, event_kind, handler, True)

    def get(self) -> Any:
        return self._store._request("GET", self.path)

    def set(self, value: Any):
        if value is None:
            self._store._request("DELETE", self.path)
        else:
            self._store._request("PUT", self.path, value)

        self._store._write([(self.path, value)])

    def update(self, values: Mapping[str, Any]):
        if not values:
            return

        self._store._request("PATCH", self.path, dict(values))
        self._store._write(
            [(self.path + split_path(k), v) for k, v in values.items()]
        )


def parse_events(lines: Iterable[str]) -> Iterator[tuple[str, str]]:
    """
    Parse server-sent event lines into `(event, data)` tuples.
    """
    event = "message"
    data: list[str] = []

    for line in lines:
        if not line:
            # blank line terminates an event
            if data:
                yield event, "\n".join(data)
            event = "message"
            data = []
            continue

        if line.startswith(":"):
            continue

        name, _, value = line.partition(":")
        value = value.removeprefix(" ")

        if name == "event":
            event = value
        elif name == "data":
            data.append(value)

    if data:
        yield event, "\n".join(data)
