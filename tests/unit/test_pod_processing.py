"""Tests for pod decoding and container readiness."""

from __future__ import annotations

import pytest

from loks.exceptions import PodDecodeError
from loks.models import RUNNING, TERMINATED, UNKNOWN, WAITING, ContainerStatus
from loks.pod_processing import decode_event, get_container_state, pod_from_dict, readiness_skip_reason

from .conftest import pod_event, raw_pod


class TestPodFromDict:
    def test_full_pod(self) -> None:
        raw = raw_pod("web-1", "prod", labels={"app": "web"}, restarts=3)
        raw["spec"]["initContainers"] = [{"name": "migrate"}]
        raw["status"]["initContainerStatuses"] = [
            {"name": "migrate", "restartCount": 0, "state": {"terminated": {"exitCode": 0}}},
        ]

        pod = pod_from_dict(raw)

        assert (pod.namespace, pod.name) == ("prod", "web-1")
        assert pod.labels == {"app": "web"}
        assert pod.init_containers == ("migrate",)
        assert pod.containers == ("app",)
        assert pod.status_for("app") == ContainerStatus("app", 3, RUNNING)
        assert pod.status_for("migrate", init=True) == ContainerStatus("migrate", 0, TERMINATED)
        assert pod.status_for("migrate") is None

    def test_pending_pod_without_status(self) -> None:
        pod = pod_from_dict({"metadata": {"name": "p", "namespace": "ns"}, "spec": {"containers": [{"name": "c"}]}})
        assert pod.containers == ("c",)
        assert pod.container_statuses == ()
        assert pod.status_for("c") is None

    def test_missing_namespace_defaults(self) -> None:
        assert pod_from_dict({"metadata": {"name": "p"}}).namespace == "default"

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            [],
            "pod",
            {},
            {"kind": "Status", "metadata": {"name": "x"}},
            {"metadata": {}},
            {"metadata": {"name": "p"}, "spec": {"containers": "app"}},
            {"metadata": {"name": "p"}, "spec": {"containers": [{"image": "nginx"}]}},
            {"metadata": {"name": "p"}, "status": {"containerStatuses": [{"name": "c", "restartCount": "1"}]}},
            {"metadata": {"name": "p", "labels": ["a"]}},
        ],
    )
    def test_rejects_non_pods(self, raw) -> None:
        with pytest.raises(PodDecodeError):
            pod_from_dict(raw)


class TestDecodeEvent:
    def test_prefers_raw_object(self) -> None:
        event = {"type": "ADDED", "object": object(), "raw_object": raw_pod("a")}
        assert decode_event(event).name == "a"

    def test_plain_object_events(self) -> None:
        assert decode_event({"type": "MODIFIED", "object": raw_pod("b")}).name == "b"

    def test_deleted_events_still_decode(self) -> None:
        assert decode_event(pod_event(raw_pod("c", state="terminated"), "DELETED")).name == "c"

    def test_error_events(self) -> None:
        with pytest.raises(PodDecodeError):
            decode_event({"type": "ERROR", "raw_object": {"kind": "Status", "code": 410}})

    def test_non_mapping_event(self) -> None:
        with pytest.raises(PodDecodeError):
            decode_event(("ADDED", raw_pod()))


class TestContainerState:
    @pytest.mark.parametrize(
        ("state", "expected"),
        [
            ({"running": {}}, RUNNING),
            ({"terminated": {"exitCode": 1}}, TERMINATED),
            ({"waiting": {"reason": "CrashLoopBackOff"}}, WAITING),
            ({}, UNKNOWN),
        ],
    )
    def test_get_container_state(self, state: dict, expected: str) -> None:
        assert get_container_state(state) == expected


class TestReadiness:
    def test_no_status(self) -> None:
        assert readiness_skip_reason(None, False) == "Container has no status yet."

    def test_running_only(self) -> None:
        assert readiness_skip_reason(ContainerStatus("c", 0, RUNNING), True) is None
        assert readiness_skip_reason(ContainerStatus("c", 0, TERMINATED), True) == "Container is not running."
        assert readiness_skip_reason(ContainerStatus("c", 0, WAITING), True) == "Container is not running."

    def test_running_or_terminated(self) -> None:
        assert readiness_skip_reason(ContainerStatus("c", 0, RUNNING), False) is None
        assert readiness_skip_reason(ContainerStatus("c", 0, TERMINATED), False) is None
        assert readiness_skip_reason(ContainerStatus("c", 0, WAITING), False) == "Container is still waiting."
        assert readiness_skip_reason(ContainerStatus("c", 0, UNKNOWN), False) == "Container is still waiting."
