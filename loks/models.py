"""
Data models for loks.

This module defines the data structures passed between the loks components.
Pod observations are immutable snapshots decoded from the Kubernetes API;
the watcher never mutates them.

Key Models:
- ContainerStatus: Lifecycle state and restart counter of one container
- Pod: Snapshot of a pod's identity, labels, containers and statuses
- WatchOptions: Filter configuration built once at startup
- Incarnation: Identity of one run of one container
- CollectorRecord: Bookkeeping for one log collection task

Example:
    ```python
    pod = Pod(
        namespace="default",
        name="web-1",
        containers=("app",),
        container_statuses=(ContainerStatus(name="app", restart_count=0, state=RUNNING),),
    )
    ident = Incarnation.of(pod, "app", 0).ident   # "default:web-1:app:0"
    ```
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from .selector import LabelSelector

WAITING = "waiting"
RUNNING = "running"
TERMINATED = "terminated"
UNKNOWN = "unknown"


@dataclass(frozen=True)
class ContainerStatus:
    """
    Reported status of a single container.

    Attributes:
        name: Container name the status belongs to
        restart_count: Number of times the kubelet restarted the container
        state: One of waiting, running, terminated or unknown
    """
    name: str
    restart_count: int = 0
    state: str = UNKNOWN

    @property
    def running(self) -> bool:
        return self.state == RUNNING

    @property
    def terminated(self) -> bool:
        return self.state == TERMINATED


@dataclass(frozen=True)
class Pod:
    """
    Immutable snapshot of a pod as observed from the API server.

    Attributes:
        namespace: Kubernetes namespace
        name: Pod name
        labels: Pod labels
        init_containers: Names of init containers in spec order
        containers: Names of regular containers in spec order
        init_container_statuses: Statuses reported for init containers
        container_statuses: Statuses reported for regular containers
    """
    namespace: str
    name: str
    labels: Dict[str, str] = field(default_factory=dict)
    init_containers: Tuple[str, ...] = ()
    containers: Tuple[str, ...] = ()
    init_container_statuses: Tuple[ContainerStatus, ...] = ()
    container_statuses: Tuple[ContainerStatus, ...] = ()

    def status_for(self, container: str, init: bool = False) -> Optional[ContainerStatus]:
        """Return the status of a container, or None if none was reported yet."""
        statuses = self.init_container_statuses if init else self.container_statuses
        for status in statuses:
            if status.name == container:
                return status
        return None

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True)
class WatchOptions:
    """
    Filter configuration for the watcher.

    Empty name lists are open filters, a missing label selector matches every
    pod.

    Attributes:
        label_selector: Parsed label selector (optional)
        namespaces: Namespace patterns
        resource_names: Pod name patterns
        container_names: Container name patterns
        running_only: Only collect from running containers
        one_shot: Process the initial pods only and do not follow logs
    """
    label_selector: Optional[LabelSelector] = None
    namespaces: Tuple[str, ...] = ()
    resource_names: Tuple[str, ...] = ()
    container_names: Tuple[str, ...] = ()
    running_only: bool = False
    one_shot: bool = False


@dataclass(frozen=True)
class Incarnation:
    """One run of a container; a restart produces a new incarnation."""
    namespace: str
    pod: str
    container: str
    restart_count: int

    @classmethod
    def of(cls, pod: Pod, container: str, restart_count: int) -> "Incarnation":
        return cls(pod.namespace, pod.name, container, restart_count)

    @property
    def ident(self) -> str:
        return f"{self.namespace}:{self.pod}:{self.container}:{self.restart_count}"

    def __str__(self) -> str:
        return self.ident


# CollectorRecord states
PENDING = "pending"
STREAMING = "running"
SUCCEEDED = "succeeded"
OPEN_FAILED = "open-failed"
SINK_FAILED = "sink-failed"
CANCELLED = "cancelled"

TERMINAL_STATES = (SUCCEEDED, OPEN_FAILED, SINK_FAILED, CANCELLED)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CollectorRecord:
    """Bookkeeping for one collection task, exposed by the status endpoint."""
    incarnation: Incarnation
    state: str = PENDING
    started_at: datetime = field(default_factory=_now)
    finished_at: Optional[datetime] = None
    error: Optional[str] = None

    @property
    def done(self) -> bool:
        return self.state in TERMINAL_STATES

    def finish(self, state: str, error: Optional[BaseException] = None) -> None:
        self.state = state
        self.finished_at = _now()
        if error is not None:
            self.error = f"{error.__class__.__name__}: {error}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'namespace': self.incarnation.namespace,
            'pod': self.incarnation.pod,
            'container': self.incarnation.container,
            'restartCount': self.incarnation.restart_count,
            'state': self.state,
            'startedAt': self.started_at.isoformat(),
            'finishedAt': self.finished_at.isoformat() if self.finished_at else None,
            'error': self.error,
        }
