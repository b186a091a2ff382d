"""
Pod decoding and container readiness utilities.

This module turns the loosely typed objects delivered by the Kubernetes API
(camelCase dictionaries from list calls and watch events) into immutable
``Pod`` snapshots, and decides whether a container status qualifies for log
collection.

Key Functions:
- pod_from_dict: Decode a serialized V1Pod into a Pod
- decode_event: Decode a watch event into a Pod
- get_container_state: Determine a container's lifecycle phase
- readiness_skip_reason: Apply the running-only / running-or-terminated policy

Decoding never guesses: anything that is not shaped like a pod raises
PodDecodeError, which callers treat as "skip this event".

Example:
    ```python
    pod = decode_event({"type": "MODIFIED", "raw_object": raw})
    print(f"{pod} has {len(pod.containers)} containers")
    ```
"""

from typing import Any, List, Mapping, Optional, Tuple

from .exceptions import PodDecodeError
from .models import RUNNING, TERMINATED, UNKNOWN, WAITING, ContainerStatus, Pod


def _mapping(value: Any, what: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise PodDecodeError(f"{what} is a {type(value).__name__}, not an object")
    return value


def _list(value: Any, what: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise PodDecodeError(f"{what} is a {type(value).__name__}, not a list")
    return value


def get_container_state(state: Mapping[str, Any]) -> str:
    """Get container state as a string."""
    if state.get('running') is not None:
        return RUNNING
    elif state.get('terminated') is not None:
        return TERMINATED
    elif state.get('waiting') is not None:
        return WAITING
    else:
        return UNKNOWN


def _container_names(specs: Any, what: str) -> Tuple[str, ...]:
    names = []
    for spec in _list(specs, what):
        name = _mapping(spec, what).get('name')
        if not isinstance(name, str) or not name:
            raise PodDecodeError(f"{what} entry without a name")
        names.append(name)
    return tuple(names)


def _container_statuses(statuses: Any, what: str) -> Tuple[ContainerStatus, ...]:
    result = []
    for raw in _list(statuses, what):
        raw = _mapping(raw, what)
        name = raw.get('name')
        if not isinstance(name, str) or not name:
            raise PodDecodeError(f"{what} entry without a name")
        restarts = raw.get('restartCount', 0) or 0
        if not isinstance(restarts, int) or isinstance(restarts, bool):
            raise PodDecodeError(f"{what} {name}: restartCount is not an integer")
        state = get_container_state(_mapping(raw.get('state'), f"{what} {name} state"))
        result.append(ContainerStatus(name=name, restart_count=restarts, state=state))
    return tuple(result)


def pod_from_dict(obj: Any) -> Pod:
    """Convert a serialized Kubernetes pod (camelCase keys) into a Pod."""
    obj = _mapping(obj, "object")
    if not obj:
        raise PodDecodeError("empty object")

    kind = obj.get('kind')
    if kind is not None and kind != 'Pod':
        raise PodDecodeError(f"object is a {kind}, not a Pod")

    metadata = _mapping(obj.get('metadata'), "metadata")
    name = metadata.get('name')
    if not isinstance(name, str) or not name:
        raise PodDecodeError("pod without a name")
    namespace = metadata.get('namespace') or 'default'

    labels = _mapping(metadata.get('labels'), "metadata.labels")
    spec = _mapping(obj.get('spec'), "spec")
    status = _mapping(obj.get('status'), "status")

    return Pod(
        namespace=str(namespace),
        name=name,
        labels={str(k): str(v) for k, v in labels.items()},
        init_containers=_container_names(spec.get('initContainers'), "spec.initContainers"),
        containers=_container_names(spec.get('containers'), "spec.containers"),
        init_container_statuses=_container_statuses(status.get('initContainerStatuses'), "status.initContainerStatuses"),
        container_statuses=_container_statuses(status.get('containerStatuses'), "status.containerStatuses"),
    )


def decode_event(event: Any) -> Pod:
    """
    Decode a watch event into a Pod.

    Accepts the dictionaries produced by ``kubernetes.watch.Watch.stream``
    (which carry the untouched payload under ``raw_object``) as well as plain
    ``{"type": ..., "object": {...}}`` events.

    Raises:
        PodDecodeError: If the event does not carry a pod
    """
    if not isinstance(event, Mapping):
        raise PodDecodeError(f"event is a {type(event).__name__}, not an object")

    if event.get('type') == 'ERROR':
        raise PodDecodeError("watch reported an error")

    raw = event.get('raw_object')
    if raw is None:
        raw = event.get('object')
    return pod_from_dict(raw)


def readiness_skip_reason(status: Optional[ContainerStatus], running_only: bool) -> Optional[str]:
    """Return why a container does not qualify for collection, or None if it does."""
    if status is None:
        return "Container has no status yet."
    if running_only:
        if not status.running:
            return "Container is not running."
    elif not status.running and not status.terminated:
        return "Container is still waiting."
    return None

