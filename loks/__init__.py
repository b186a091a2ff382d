"""
loks - Kubernetes container log collector.

loks watches the pods of a cluster, selects containers by pod name,
namespace, label selector and container name, and streams the logs of every
matching container to stdout or into a directory. Every restart of a
container is collected separately, so no incarnation's output is lost.

Example:
    Follow everything in a namespace:
    ```bash
    loks -n prod
    ```

    Dump the current logs of matching pods and exit:
    ```bash
    loks --oneshot -l app=web -o ./logs 'web-*'
    ```
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
