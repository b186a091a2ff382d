"""
Pod admission criteria.

A pod is admitted when its name, namespace and labels all pass the
configured filters. Each predicate is evaluated and logged on its own so a
rejected pod always explains every reason it was rejected.
"""

from typing import List, Optional

from .log import FieldLogger, get_logger
from .matching import matches_any
from .models import Pod, WatchOptions


class Criteria:
    """Admission decision for pods based on WatchOptions."""

    def __init__(self, options: WatchOptions):
        self.options = options

    def name_matches(self, pod: Pod) -> bool:
        return matches_any(pod.name, self.options.resource_names)

    def namespace_matches(self, pod: Pod) -> bool:
        return matches_any(pod.namespace, self.options.namespaces)

    def labels_match(self, pod: Pod) -> bool:
        selector = self.options.label_selector
        return selector is None or selector.matches(pod.labels)

    def container_matches(self, container: str) -> bool:
        return matches_any(container, self.options.container_names)

    def rejections(self, pod: Pod) -> List[str]:
        """Return every reason the pod is not admitted (empty if admitted)."""
        reasons = []
        if not self.name_matches(pod):
            reasons.append("Pod name does not match.")
        if not self.namespace_matches(pod):
            reasons.append("Pod namespace does not match.")
        if not self.labels_match(pod):
            reasons.append("Pod labels do not match.")
        return reasons

    def admit(self, pod: Pod, log: Optional[FieldLogger] = None) -> bool:
        log = log or get_logger('loks.criteria', pod=pod.name, namespace=pod.namespace)
        reasons = self.rejections(pod)
        for reason in reasons:
            log.debug(reason)
        return not reasons
