"""
Kubernetes client and API interactions for loks.

This module provides the interface between loks and the Kubernetes API. It
handles connection management, the initial pod listing, the live pod watch
and opening container log streams.

Key Components:
- KubeContext: Container for the Kubernetes API clients
- load_kube: Initialize Kubernetes clients with config loading
- list_pods: Fetch the initial pod snapshot and its resource version
- watch_pods: Follow pod changes as an async iterator of watch events
- KubeLogSource: Open container log streams for the watcher

The Kubernetes client is synchronous. Short calls run in the event loop's
default executor; long-lived streams (logs, watches) are drained on one
dedicated daemon thread each and handed to the event loop through a queue, so
any number of concurrent streams can be open without exhausting a shared
thread pool.

Example:
    ```python
    kube = await load_kube(kubeconfig="/path/to/config", context="my-context")
    pods, version = await list_pods(kube, options)
    async for event in watch_pods(kube, options, version):
        ...
    ```
"""

from __future__ import annotations
import asyncio
import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from kubernetes import client, config, watch
from kubernetes.client import ApiException

from .constants import LOG_STREAM_CHUNK_BYTES, STREAM_THREAD_PREFIX
from .context import StopContext
from .exceptions import KubernetesConnectionError, LogStreamError, PodDecodeError
from .matching import literal_patterns
from .models import Pod, WatchOptions
from .pod_processing import pod_from_dict

log = logging.getLogger('loks.kube')


class KubeContext:
    """
    Container for Kubernetes API clients.

    Attributes:
        core: CoreV1Api client for pod and log operations
        api_client: ApiClient used to serialize typed objects back into
            their camelCase wire form
    """

    def __init__(self, core: client.CoreV1Api, api_client: client.ApiClient):
        self.core = core
        self.api_client = api_client


async def load_kube(kubeconfig: Optional[str], context: Optional[str]) -> KubeContext:
    """
    Load and initialize Kubernetes API clients.

    Supports both external kubeconfig files and in-cluster configuration
    with automatic fallback.

    Args:
        kubeconfig: Path to kubeconfig file (optional, uses default if None)
        context: Kubernetes context name (optional, uses current context if None)

    Returns:
        KubeContext: Initialized context with the API clients

    Raises:
        KubernetesConnectionError: If no configuration can be loaded
    """
    def _load():
        if kubeconfig or context:
            config.load_kube_config(config_file=kubeconfig, context=context)
        else:
            try:
                config.load_kube_config()
            except Exception:
                config.load_incluster_config()
        api_client = client.ApiClient()
        return client.CoreV1Api(api_client), api_client

    loop = asyncio.get_running_loop()
    try:
        core, api_client = await loop.run_in_executor(None, _load)
    except Exception as e:
        raise KubernetesConnectionError(f"Failed to load Kubernetes configuration: {e}") from e
    return KubeContext(core, api_client)


def _single_namespace(options: WatchOptions) -> Optional[str]:
    """Return the namespace to scope API calls to, if the filter allows it."""
    if len(options.namespaces) == 1 and literal_patterns(options.namespaces):
        return options.namespaces[0]
    return None


def _list_call(kube: KubeContext, options: WatchOptions) -> Tuple[Callable[..., Any], Dict[str, Any]]:
    kwargs: Dict[str, Any] = {}
    if options.label_selector is not None and not options.label_selector.empty():
        kwargs['label_selector'] = str(options.label_selector)

    namespace = _single_namespace(options)
    if namespace is not None:
        kwargs['namespace'] = namespace
        return kube.core.list_namespaced_pod, kwargs
    return kube.core.list_pod_for_all_namespaces, kwargs


async def list_pods(kube: KubeContext, options: WatchOptions) -> Tuple[List[Pod], Optional[str]]:
    """
    Fetch the initial pod snapshot.

    Pods that cannot be decoded are skipped with a warning.

    Returns:
        Tuple[List[Pod], Optional[str]]: The pods and the list's resource
        version, which the watch resumes from

    Raises:
        KubernetesConnectionError: If the API server rejects the request
    """
    func, kwargs = _list_call(kube, options)

    def _get():
        return func(**kwargs)

    loop = asyncio.get_running_loop()
    try:
        result = await loop.run_in_executor(None, _get)
    except ApiException as e:
        raise KubernetesConnectionError(f"Failed to list pods: {e.status} {e.reason}") from e
    except Exception as e:
        raise KubernetesConnectionError(f"Failed to list pods: {e}") from e

    pods = []
    for item in result.items or []:
        try:
            pods.append(pod_from_dict(kube.api_client.sanitize_for_serialization(item)))
        except PodDecodeError as e:
            log.warning(f"[pods] skipping undecodable pod: {e}")

    version = result.metadata.resource_version if result.metadata else None
    return pods, version


class ThreadedStream:
    """
    Async iterator over a blocking iterable drained on a dedicated thread.

    ``close()`` stops delivery immediately: pending items are dropped, the
    consumer sees the end of the stream and ``on_close`` is invoked so the
    producer can abort a blocking read.
    """

    def __init__(self, produce: Callable[[], Iterable[Any]], on_close: Callable[[], None], name: str):
        self._produce = produce
        self._on_close = on_close
        self._name = name
        self._closed = threading.Event()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional[asyncio.Queue] = None
        self._thread: Optional[threading.Thread] = None
        self._exhausted = False

    def __aiter__(self) -> ThreadedStream:
        return self

    async def __anext__(self) -> Any:
        if self._exhausted or self._closed.is_set():
            raise StopAsyncIteration
        if self._queue is None:
            self._start()

        kind, item = await self._queue.get()
        if kind == 'item' and not self._closed.is_set():
            return item
        if kind == 'error' and not self._closed.is_set():
            raise item
        self._exhausted = True
        raise StopAsyncIteration

    def _start(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._thread = threading.Thread(target=self._run, name=f"{STREAM_THREAD_PREFIX}-{self._name}", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        try:
            for item in self._produce():
                if self._closed.is_set():
                    break
                self._post('item', item)
        except Exception as e:
            # reads fail when close() tears down the connection underneath them
            if not self._closed.is_set():
                self._post('error', e)
        finally:
            self._post('eof', None)

    def _post(self, kind: str, item: Any) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            loop.call_soon_threadsafe(self._queue.put_nowait, (kind, item))
        except RuntimeError:
            # the event loop shut down between the check and the call
            pass

    def close(self) -> None:
        if self._closed.is_set():
            return
        self._closed.set()
        try:
            self._on_close()
        except Exception as e:
            log.debug(f"[stream] {self._name}: close failed: {e.__class__.__name__}: {e}")
        self._post('eof', None)

    async def aclose(self) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()


def watch_pods(kube: KubeContext, options: WatchOptions, resource_version: Optional[str] = None) -> ThreadedStream:
    """
    Follow pod changes.

    Returns an async iterator of watch event dictionaries as produced by
    ``kubernetes.watch.Watch.stream`` (keys ``type``, ``object`` and
    ``raw_object``). The watch reconnects on its own until closed.
    """
    func, kwargs = _list_call(kube, options)
    if resource_version:
        kwargs['resource_version'] = resource_version

    w = watch.Watch()

    def _produce():
        return w.stream(func, **kwargs)

    return ThreadedStream(_produce, w.stop, name="pod-watch")


class KubeLogStream(ThreadedStream):
    """Log bytes of one container, read from an unpreloaded urllib3 response."""

    def __init__(self, response: Any, name: str, chunk_size: int = LOG_STREAM_CHUNK_BYTES):
        self._response = response
        super().__init__(lambda: response.stream(chunk_size, decode_content=True), self._shutdown, name)

    def _shutdown(self) -> None:
        self._response.close()
        self._response.release_conn()


class KubeLogSource:
    """Opens container log streams through the Kubernetes API."""

    def __init__(self, kube: KubeContext, chunk_size: int = LOG_STREAM_CHUNK_BYTES):
        self.kube = kube
        self.chunk_size = chunk_size

    async def open_stream(self, ctx: StopContext, namespace: str, pod: str, container: str, follow: bool) -> KubeLogStream:
        """
        Request the logs of a container.

        Raises:
            LogStreamError: If the API server refuses the request
        """
        def _open():
            return self.kube.core.read_namespaced_pod_log(
                name=pod, namespace=namespace, container=container, follow=follow, _preload_content=False,
            )

        loop = asyncio.get_running_loop()
        try:
            response = await loop.run_in_executor(None, _open)
        except ApiException as e:
            raise LogStreamError(namespace, pod, container, f"{e.status} {e.reason}") from e
        except Exception as e:
            raise LogStreamError(namespace, pod, container, str(e)) from e

        stream = KubeLogStream(response, f"{namespace}/{pod}/{container}", self.chunk_size)
        if ctx.cancelled:
            stream.close()
        return stream
