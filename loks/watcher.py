"""
Pod watcher and log collector orchestration.

The Watcher consumes an initial snapshot of pods and, unless running in
one-shot mode, a live stream of pod watch events. For every admitted pod it
walks the init containers and the regular containers and starts one log
collection task per container incarnation (namespace, pod, container,
restart count). A restarted container therefore gets a fresh collector while
repeated observations of the same incarnation are ignored.

Key Components:
- LogStream / LogSource / LogSink: Collaborator interfaces consumed here
- Watcher.watch: Drain the snapshot, follow live events, join all collectors
- Watcher.dispatch: Per-container decision for one pod observation

Example:
    ```python
    watcher = Watcher(log_source, sink, options, initial_pods)
    ctx = StopContext()
    await watcher.watch(ctx, events)   # returns once every collector ended
    ```
"""

import asyncio
from typing import AsyncIterator, Dict, List, Optional, Protocol, Sequence, Set

from .context import StopContext
from .criteria import Criteria
from .exceptions import PodDecodeError
from .log import FieldLogger, get_logger
from .models import (
    CANCELLED, OPEN_FAILED, SINK_FAILED, STREAMING, SUCCEEDED,
    CollectorRecord, Incarnation, Pod, WatchOptions,
)
from .pod_processing import decode_event, readiness_skip_reason
from .tracker import IncarnationTracker

# Watcher states
INITIALIZING = "initializing"
DRAINING = "draining"
WATCHING = "watching"
FINISHED = "finished"


class LogStream(Protocol):
    """Container log bytes, consumed with ``async for``."""

    def __aiter__(self) -> AsyncIterator[bytes]: ...

    def close(self) -> None: ...


class LogSource(Protocol):
    async def open_stream(
        self, ctx: StopContext, namespace: str, pod: str, container: str, follow: bool
    ) -> LogStream: ...


class LogSink(Protocol):
    async def collect_logs(
        self, ctx: StopContext, log: FieldLogger, pod: Pod, container: str, stream: LogStream
    ) -> None: ...


class Watcher:
    """
    Starts exactly one log collector per container incarnation.

    Attributes:
        options: Filter configuration
        criteria: Pod admission decision
        seen: Incarnations a collector was started for
        state: One of initializing, draining, watching, finished
    """

    def __init__(
        self,
        log_source: LogSource,
        sink: LogSink,
        options: WatchOptions,
        initial_pods: Sequence[Pod] = (),
        log: Optional[FieldLogger] = None,
    ):
        self.options = options
        self.criteria = Criteria(options)
        self.seen = IncarnationTracker()
        self.state = INITIALIZING
        self._source = log_source
        self._sink = sink
        self._initial_pods = list(initial_pods)
        self._log = log or get_logger('loks.watcher')
        self._tasks: Set["asyncio.Task[None]"] = set()
        self._records: Dict[str, CollectorRecord] = {}

    # ------------------------------------------------------------------
    # Orchestration
    # ------------------------------------------------------------------

    async def watch(self, ctx: StopContext, events: Optional[AsyncIterator[dict]] = None) -> None:
        """
        Run until the event stream ends (or right after the initial pods when
        ``events`` is None), then wait for every collector to finish.

        Cancelling ``ctx`` ends the event loop and stops all collectors; this
        method still only returns once every collector has ended.
        """
        try:
            self.state = DRAINING
            for pod in self._initial_pods:
                self.observe(ctx, pod)

            # events is None in one-shot mode: only the initial pods are processed
            if events is not None and not ctx.cancelled:
                self.state = WATCHING
                await self._consume(ctx, events)
        except asyncio.CancelledError:
            ctx.cancel()
            await self._join()
            self.state = FINISHED
            raise

        self.state = FINISHED
        await self._join()

    async def _consume(self, ctx: StopContext, events: AsyncIterator[dict]) -> None:
        iterator = events.__aiter__()
        stopped = asyncio.ensure_future(ctx.wait())
        receive: Optional["asyncio.Future[dict]"] = None
        try:
            while not ctx.cancelled:
                receive = asyncio.ensure_future(iterator.__anext__())
                await asyncio.wait({receive, stopped}, return_when=asyncio.FIRST_COMPLETED)

                if not receive.done():
                    self._log.info("Stopped watching pods.")
                    break

                try:
                    event = receive.result()
                except StopAsyncIteration:
                    self._log.info("Pod watch has ended.")
                    break
                except Exception as e:
                    self._log.with_error(e).error("Pod watch failed.")
                    break

                self.handle_event(ctx, event)
        finally:
            pending = [f for f in (receive, stopped) if f is not None]
            for fut in pending:
                fut.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            aclose = getattr(iterator, 'aclose', None)
            if aclose is not None:
                await aclose()

    def handle_event(self, ctx: StopContext, event: dict) -> None:
        try:
            pod = decode_event(event)
        except PodDecodeError as e:
            self._log.debug(f"Ignoring watch event: {e}")
            return

        self.observe(ctx, pod)

    def observe(self, ctx: StopContext, pod: Pod) -> None:
        """Dispatch a pod observation if the pod is admitted."""
        if self.criteria.admit(pod, self._pod_log(pod)):
            self.dispatch(ctx, pod)

    async def _join(self) -> None:
        while self._tasks:
            pending = list(self._tasks)
            await asyncio.gather(*pending, return_exceptions=True)
            self._tasks.difference_update(pending)

    # ------------------------------------------------------------------
    # Dispatching
    # ------------------------------------------------------------------

    def dispatch(self, ctx: StopContext, pod: Pod) -> List[Incarnation]:
        """
        Start collectors for every qualifying, not yet seen container of a pod.

        Returns:
            List[Incarnation]: The incarnations a collector was started for
        """
        started = self._dispatch_containers(ctx, pod, pod.init_containers, init=True)
        started += self._dispatch_containers(ctx, pod, pod.containers, init=False)
        return started

    def _dispatch_containers(self, ctx: StopContext, pod: Pod, containers: Sequence[str], init: bool) -> List[Incarnation]:
        pod_log = self._pod_log(pod)
        started = []

        for container in containers:
            container_log = pod_log.with_fields(container=container)

            if not self.criteria.container_matches(container):
                container_log.debug("Container name does not match.")
                continue

            status = pod.status_for(container, init=init)
            reason = readiness_skip_reason(status, self.options.running_only)
            if reason is not None:
                container_log.debug(reason)
                continue

            incarnation = Incarnation.of(pod, container, status.restart_count)

            # a restart bumps the restart count and yields a new identity,
            # anything else we have already started a collector for
            if not self.seen.add(incarnation.ident):
                container_log.debug("Container incarnation already seen.")
                continue

            self._spawn(ctx, container_log.with_fields(restarts=status.restart_count), pod, incarnation)
            started.append(incarnation)

        return started

    def _spawn(self, ctx: StopContext, log: FieldLogger, pod: Pod, incarnation: Incarnation) -> None:
        record = CollectorRecord(incarnation)
        self._records[incarnation.ident] = record

        task = asyncio.get_running_loop().create_task(
            self._collect_logs(ctx.derive(), log, pod, record),
            name=f"collect:{incarnation.ident}",
        )
        self._tasks.add(task)

    # ------------------------------------------------------------------
    # Collection
    # ------------------------------------------------------------------

    async def _collect_logs(self, ctx: StopContext, log: FieldLogger, pod: Pod, record: CollectorRecord) -> None:
        incarnation = record.incarnation
        log.info("Starting to collect logs...")

        try:
            try:
                stream = await self._source.open_stream(
                    ctx, pod.namespace, pod.name, incarnation.container, follow=not self.options.one_shot,
                )
            except asyncio.CancelledError:
                record.finish(CANCELLED)
                raise
            except Exception as e:
                if ctx.cancelled:
                    record.finish(CANCELLED)
                    log.info("Log collection cancelled.")
                else:
                    record.finish(OPEN_FAILED, e)
                    log.with_error(e).error("Failed to stream logs.")
                return

            record.state = STREAMING
            unregister = ctx.on_cancel(stream.close)
            try:
                await self._sink.collect_logs(ctx, log, pod, incarnation.container, stream)
            except asyncio.CancelledError:
                record.finish(CANCELLED)
                raise
            except Exception as e:
                if ctx.cancelled:
                    record.finish(CANCELLED)
                else:
                    record.finish(SINK_FAILED, e)
                    log.with_error(e).error("Failed to collect logs.")
            else:
                record.finish(CANCELLED if ctx.cancelled else SUCCEEDED)
            finally:
                unregister()
                stream.close()

            log.info("Logs have finished.")
        finally:
            ctx.detach()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def collectors(self) -> List[CollectorRecord]:
        return list(self._records.values())

    def active_collectors(self) -> List[CollectorRecord]:
        return [r for r in self._records.values() if not r.done]

    def _pod_log(self, pod: Pod) -> FieldLogger:
        return self._log.with_fields(pod=pod.name, namespace=pod.namespace)
