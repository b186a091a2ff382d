"""Shared fakes and builders for the loks unit tests."""

from __future__ import annotations

import asyncio
from typing import Any, Callable

from loks.exceptions import LogStreamError, SinkError
from loks.models import RUNNING, ContainerStatus, Pod

# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def make_pod(
    name: str = "web-1",
    namespace: str = "default",
    labels: dict | None = None,
    containers: dict | None = None,
    init_containers: dict | None = None,
) -> Pod:
    """Build a Pod; container dicts map name -> (state, restarts) or None for "no status"."""
    containers = {"app": (RUNNING, 0)} if containers is None else containers
    init_containers = init_containers or {}

    def statuses(spec: dict) -> tuple:
        return tuple(
            ContainerStatus(name=n, state=s[0], restart_count=s[1]) for n, s in spec.items() if s is not None
        )

    return Pod(
        namespace=namespace,
        name=name,
        labels=labels or {},
        init_containers=tuple(init_containers),
        containers=tuple(containers),
        init_container_statuses=statuses(init_containers),
        container_statuses=statuses(containers),
    )


def raw_pod(
    name: str = "web-1",
    namespace: str = "default",
    labels: dict | None = None,
    state: str = "running",
    restarts: int = 0,
    container: str = "app",
) -> dict:
    """Serialized pod as delivered in a watch event's raw_object."""
    return {
        "kind": "Pod",
        "apiVersion": "v1",
        "metadata": {"name": name, "namespace": namespace, "labels": labels or {}},
        "spec": {"containers": [{"name": container, "image": "nginx"}]},
        "status": {
            "phase": "Running",
            "containerStatuses": [
                {"name": container, "restartCount": restarts, "ready": True, "state": {state: {}}},
            ],
        },
    }


def pod_event(raw: Any, type_: str = "MODIFIED") -> dict:
    return {"type": type_, "raw_object": raw}


async def event_stream(events: list):
    for event in events:
        yield event


async def wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


# ---------------------------------------------------------------------------
# Collaborator fakes
# ---------------------------------------------------------------------------


class FakeStream:
    """Yields its chunks, then either ends or blocks until closed."""

    def __init__(self, chunks: list, block: bool = False):
        self.chunks = list(chunks)
        self.block = block
        self.closed = False
        self._closed = asyncio.Event()

    def __aiter__(self):
        return self._read()

    async def _read(self):
        for chunk in self.chunks:
            if self.closed:
                return
            yield chunk
        if self.block:
            await self._closed.wait()

    def close(self) -> None:
        self.closed = True
        self._closed.set()


class QueueEvents:
    """Live event source fed by the test; ``finish()`` ends it."""

    _END = object()

    def __init__(self):
        self.queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    def put(self, event: Any) -> None:
        self.queue.put_nowait(event)

    def finish(self) -> None:
        self.queue.put_nowait(self._END)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self.queue.get()
        if item is self._END:
            raise StopAsyncIteration
        return item

    async def aclose(self) -> None:
        self.closed = True


class FakeLogSource:
    def __init__(self, chunks: list | None = None, block: bool = False, fail_for: tuple = ()):
        self.chunks = [b"hello\n"] if chunks is None else chunks
        self.block = block
        self.fail_for = fail_for
        self.opened: list[tuple] = []
        self.streams: list[FakeStream] = []

    async def open_stream(self, ctx, namespace, pod, container, follow):
        self.opened.append((namespace, pod, container, follow))
        if container in self.fail_for:
            raise LogStreamError(namespace, pod, container, "403 Forbidden")
        stream = FakeStream(self.chunks, block=self.block)
        self.streams.append(stream)
        return stream

    def idents(self) -> list[str]:
        return [f"{ns}/{pod}/{c}" for ns, pod, c, _ in self.opened]


class RecordingSink:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.received: dict[str, list[bytes]] = {}
        self.active = 0

    async def collect_logs(self, ctx, log, pod, container, stream):
        key = f"{pod.namespace}/{pod.name}/{container}"
        data = b""
        self.active += 1
        try:
            async for chunk in stream:
                data += chunk
        finally:
            self.active -= 1
        self.received.setdefault(key, []).append(data)
        if self.fail:
            raise SinkError("disk full")
