"""
Custom exceptions for loks.

This module defines the exception classes used throughout loks to give
callers specific failure types instead of bare exceptions.

Exception Hierarchy:
- LoksError: Base exception for all loks-specific errors
  - KubernetesConnectionError: Raised when unable to connect to the cluster
  - InvalidSelectorError: Raised when a label selector cannot be parsed
  - ConfigurationError: Raised when there's a configuration issue
  - PodDecodeError: Raised when a raw object is not a usable pod
  - LogStreamError: Raised when a container log stream cannot be opened
  - SinkError: Raised when a sink fails to consume a log stream

Example:
    ```python
    try:
        LabelSelector.parse("app in (web")
    except InvalidSelectorError as e:
        print(f"Selector rejected: {e}")
    ```
"""


class LoksError(Exception):
    """Base exception for loks errors."""
    pass


class KubernetesConnectionError(LoksError):
    """Raised when unable to connect to Kubernetes cluster."""
    pass


class InvalidSelectorError(LoksError):
    """Raised when an invalid label selector is provided."""
    pass


class ConfigurationError(LoksError):
    """Raised when there's a configuration issue."""
    pass


class PodDecodeError(LoksError):
    """Raised when a watch event or raw object cannot be decoded into a pod."""
    pass


class LogStreamError(LoksError):
    """Raised when the log stream of a container cannot be opened."""

    def __init__(self, namespace: str, pod: str, container: str, reason: str):
        super().__init__(f"cannot stream logs of {namespace}/{pod}/{container}: {reason}")
        self.namespace = namespace
        self.pod = pod
        self.container = container
        self.reason = reason


class SinkError(LoksError):
    """Raised when a sink fails to consume a log stream."""
    pass
