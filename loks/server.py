"""
HTTP status endpoint for loks.

When enabled with ``--status-port`` loks serves a small read-only API next
to the watcher, useful for probes and for checking which containers are being
collected from.

Routes:
- GET /healthz: Watcher state and collector counts
- GET /api/collectors: Every collector with its incarnation and outcome
- GET /api/incarnations: Identities of all incarnations seen so far

Example:
    ```python
    app = create_app(watcher)
    server = await start_status_server(app, host="127.0.0.1", port=9090, ctx=ctx)
    ...
    await stop_status_server(server)
    ```
"""

import asyncio
import logging
import os
from typing import Any, Dict, Optional, Tuple

from fastapi import FastAPI, HTTPException

from .constants import DEFAULT_UVICORN_LOG_LEVEL, ENV_UVICORN_LEVEL
from .context import StopContext
from .models import TERMINAL_STATES
from .watcher import Watcher

log = logging.getLogger('loks.server')


def create_app(watcher: Watcher) -> FastAPI:
    app = FastAPI(title="loks", docs_url=None, redoc_url=None)

    @app.get("/healthz")
    async def healthz() -> Dict[str, Any]:
        records = watcher.collectors()
        return {
            'ok': True,
            'state': watcher.state,
            'collectors': len(records),
            'active': sum(1 for r in records if not r.done),
            'seen': len(watcher.seen),
        }

    @app.get("/api/collectors")
    async def collectors(state: Optional[str] = None) -> Dict[str, Any]:
        records = watcher.collectors()
        if state is not None:
            if state == 'active':
                records = [r for r in records if not r.done]
            elif state in TERMINAL_STATES:
                records = [r for r in records if r.state == state]
            else:
                raise HTTPException(status_code=400, detail=f"Unknown state filter: {state}")
        return {'collectors': [r.to_dict() for r in records]}

    @app.get("/api/incarnations")
    async def incarnations() -> Dict[str, Any]:
        return {'incarnations': watcher.seen.snapshot()}

    return app


async def start_status_server(app: FastAPI, host: str, port: int, ctx: StopContext) -> Tuple[Any, "asyncio.Task[None]"]:
    """
    Serve the status app in the background on the running event loop.

    uvicorn captures SIGINT/SIGTERM while serving and re-raises them once it
    has shut down, which then reaches the watcher's handlers. Cancelling
    ``ctx`` stops the server as well, so either path shuts down both.
    """
    import uvicorn
    uvicorn_log_level = os.getenv(ENV_UVICORN_LEVEL, DEFAULT_UVICORN_LOG_LEVEL)
    config = uvicorn.Config(app, host=host, port=port, log_level=uvicorn_log_level)
    server = uvicorn.Server(config)
    ctx.on_cancel(lambda: setattr(server, 'should_exit', True))
    task = asyncio.get_running_loop().create_task(server.serve(), name="status-server")
    log.info(f"[status] serving on http://{host}:{port}")
    return server, task


async def stop_status_server(handle: Tuple[Any, "asyncio.Task[None]"]) -> None:
    server, task = handle
    server.should_exit = True
    try:
        await task
    except Exception as e:
        log.warning(f"[status] server stopped with error: {e.__class__.__name__}: {e}")
