"""
Log sinks: where collected container logs end up.

Key Components:
- StdoutSink: Interleaves all containers on one binary stream, one prefixed
  line at a time
- DirectorySink: Writes one file per container incarnation

Both sinks consume the stream until it ends. They raise SinkError when the
destination cannot be written; the watcher reports that and ends the
collector.

Example:
    ```python
    sink = DirectorySink(Path("/tmp/logs"))
    # /tmp/logs/default/web-1/app_0.log, /tmp/logs/default/web-1/app_1.log, ...
    ```
"""

import sys
from pathlib import Path
from typing import BinaryIO, Optional

from .constants import LOG_FILE_SUFFIX
from .context import StopContext
from .exceptions import SinkError
from .log import FieldLogger
from .models import Pod
from .watcher import LogStream


def _restart_count(pod: Pod, container: str) -> int:
    status = pod.status_for(container, init=container in pod.init_containers)
    return status.restart_count if status is not None else 0


class StdoutSink:
    """
    Writes complete log lines to a binary stream, prefixed with their origin.

    A trailing partial line is held back until its newline arrives or the
    stream ends, so lines of different containers never interleave.
    """

    def __init__(self, out: Optional[BinaryIO] = None, prefix: bool = True):
        self.out = out if out is not None else sys.stdout.buffer
        self.prefix = prefix

    def _prefix(self, pod: Pod, container: str) -> bytes:
        if not self.prefix:
            return b""
        return f"[{pod.namespace}/{pod.name}/{container}] ".encode('utf-8')

    async def collect_logs(self, ctx: StopContext, log: FieldLogger, pod: Pod, container: str, stream: LogStream) -> None:
        prefix = self._prefix(pod, container)
        pending = b""
        try:
            async for chunk in stream:
                pending += chunk
                lines = pending.split(b"\n")
                pending = lines.pop()
                if lines:
                    self.out.write(b"".join(prefix + line + b"\n" for line in lines))
                    self.out.flush()
            if pending:
                self.out.write(prefix + pending + b"\n")
                self.out.flush()
        except (OSError, ValueError) as e:
            # ValueError: write to a closed file
            raise SinkError(f"cannot write logs of {pod}/{container}: {e}") from e


class DirectorySink:
    """
    Appends raw log bytes to one file per container incarnation.

    Layout is ``root/<namespace>/<pod>/<container>_<restarts>.log`` or, with
    ``flat``, ``root/<namespace>_<pod>_<container>_<restarts>.log``.
    """

    def __init__(self, root: Path, flat: bool = False):
        self.root = Path(root)
        self.flat = flat

    def path_for(self, pod: Pod, container: str, restart_count: int) -> Path:
        filename = f"{container}_{restart_count}{LOG_FILE_SUFFIX}"
        if self.flat:
            return self.root / f"{pod.namespace}_{pod.name}_{filename}"
        return self.root / pod.namespace / pod.name / filename

    async def collect_logs(self, ctx: StopContext, log: FieldLogger, pod: Pod, container: str, stream: LogStream) -> None:
        path = self.path_for(pod, container, _restart_count(pod, container))
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open('ab') as f:
                log.debug(f"Writing logs to {path}.")
                async for chunk in stream:
                    f.write(chunk)
                    f.flush()
        except OSError as e:
            raise SinkError(f"cannot write {path}: {e}") from e
