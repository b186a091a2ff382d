"""
Command-line interface for loks.

This module provides the ``loks`` command: it parses and validates the
arguments, connects to the cluster, lists the initial pods and runs the
watcher until the pod watch ends, the optional timeout expires or the process
receives SIGINT/SIGTERM. It then waits for every log collector to finish.

Key Functions:
- build_parser: Create and configure the argument parser
- options_from_args: Build WatchOptions from parsed arguments
- run: Async main routine
- main: Entry point for the console script

Example:
    ```bash
    # follow all containers of pods starting with web- in namespace prod
    loks -n prod 'web-*'

    # dump what is currently there into a directory and exit
    loks --oneshot -l app=api -o ./logs
    ```
"""

import argparse
import asyncio
import os
import signal
import sys
from typing import List, Optional

from .constants import (
    DEFAULT_LOG_LEVEL, DEFAULT_STATUS_HOST, DEFAULT_STATUS_PORT,
    ENV_KUBECONFIG, ENV_LOG_LEVEL, ENV_STATUS_HOST, ENV_STATUS_PORT,
)
from .context import StopContext
from .exceptions import ConfigurationError, InvalidSelectorError, KubernetesConnectionError
from .kube import KubeLogSource, list_pods, load_kube, watch_pods
from .log import get_logger, setup_logging
from .models import WatchOptions
from .server import create_app, start_status_server, stop_status_server
from .sinks import DirectorySink, StdoutSink
from .validation import (
    validate_host, validate_log_level, validate_output_dir, validate_patterns,
    validate_port, validate_selector, validate_timeout,
)
from .watcher import Watcher


def build_parser() -> argparse.ArgumentParser:
    """
    Build and configure the command-line argument parser.

    Environment Variables:
        LOKS_KUBECONFIG: Default kubeconfig path
        LOKS_LOG_LEVEL: Default log level (default: INFO)
        LOKS_STATUS_HOST: Default status server host (default: 127.0.0.1)
        LOKS_STATUS_PORT: Default status server port (default: 0, disabled)
    """
    env_host = os.getenv(ENV_STATUS_HOST, DEFAULT_STATUS_HOST)
    try:
        env_port = int(os.getenv(ENV_STATUS_PORT, str(DEFAULT_STATUS_PORT)))
    except ValueError:
        env_port = DEFAULT_STATUS_PORT

    p = argparse.ArgumentParser("loks", description="Collect the logs of all matching containers, including every restart")
    p.add_argument("names", nargs="*", metavar="POD_NAME", help="Pod names or glob patterns (default: all pods)")
    p.add_argument("-n", "--namespace", action="append", default=[], help="Namespace name or glob; repeatable (default: all)")
    p.add_argument("-l", "--selector", default=None, help="Label selector, e.g. 'app=web,tier in (frontend)'")
    p.add_argument("-c", "--container", action="append", default=[], help="Container name or glob; repeatable (default: all)")
    p.add_argument("--running", action="store_true", help="Only collect logs from running containers")
    p.add_argument("--oneshot", action="store_true", help="Collect current logs of the current pods and exit")
    p.add_argument("-o", "--output", default=None, help="Write logs into this directory instead of stdout")
    p.add_argument("--flat", action="store_true", help="Do not create namespace/pod subdirectories in --output")
    p.add_argument("--kubeconfig", default=os.getenv(ENV_KUBECONFIG), help="Path to kubeconfig (env: LOKS_KUBECONFIG)")
    p.add_argument("--context", default=None, help="Kubecontext override")
    p.add_argument("--timeout", type=float, default=None, help="Stop collecting after this many seconds")
    p.add_argument("--status-host", default=env_host, help="Host for the status endpoint (env: LOKS_STATUS_HOST)")
    p.add_argument("--status-port", type=int, default=env_port, help="Port for the status endpoint, 0 disables it (env: LOKS_STATUS_PORT)")
    p.add_argument("--log-level", default=os.getenv(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL), help="Log level (env: LOKS_LOG_LEVEL)")
    p.add_argument("-v", "--verbose", action="store_true", help="Shortcut for --log-level debug")
    return p


def options_from_args(args: argparse.Namespace) -> WatchOptions:
    """
    Build the watcher's filter options from parsed arguments.

    Raises:
        InvalidSelectorError: If the label selector is invalid
        ConfigurationError: If a name pattern is empty
    """
    return WatchOptions(
        label_selector=validate_selector(args.selector),
        namespaces=validate_patterns(args.namespace, "namespace"),
        resource_names=validate_patterns(args.names, "pod name"),
        container_names=validate_patterns(args.container, "container name"),
        running_only=args.running,
        one_shot=args.oneshot,
    )


def _install_signal_handlers(loop: asyncio.AbstractEventLoop, ctx: StopContext) -> None:
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, ctx.cancel)
        except (NotImplementedError, RuntimeError):
            # not supported on this platform; KeyboardInterrupt still ends the run
            pass


async def run(args: argparse.Namespace, options: WatchOptions) -> None:
    log = get_logger('loks')

    kube = await load_kube(args.kubeconfig, args.context)
    pods, version = await list_pods(kube, options)
    log.info(f"Found {len(pods)} pods.")

    if args.output:
        sink = DirectorySink(args.output, flat=args.flat)
    else:
        sink = StdoutSink()

    watcher = Watcher(KubeLogSource(kube), sink, options, pods, log=log)
    events = None if options.one_shot else watch_pods(kube, options, version)

    ctx = StopContext()
    loop = asyncio.get_running_loop()
    _install_signal_handlers(loop, ctx)
    if args.timeout:
        loop.call_later(args.timeout, ctx.cancel)

    status = None
    if args.status_port:
        status = await start_status_server(create_app(watcher), args.status_host, args.status_port, ctx)

    try:
        await watcher.watch(ctx, events)
    finally:
        if events is not None:
            events.close()
        if status is not None:
            await stop_status_server(status)

    log.info(f"All {len(watcher.collectors())} log collectors have finished.")


def main(argv: Optional[List[str]] = None) -> None:
    """
    Main entry point for the loks CLI.

    Raises:
        SystemExit: On configuration errors (exit code 2) or cluster errors (exit code 1)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        setup_logging(validate_log_level("debug" if args.verbose else args.log_level))
        options = options_from_args(args)
        args.output = validate_output_dir(args.output)
        args.timeout = validate_timeout(args.timeout)
        args.status_host = validate_host(args.status_host)
        args.status_port = validate_port(args.status_port)
    except (InvalidSelectorError, ConfigurationError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    try:
        asyncio.run(run(args, options))
    except KeyboardInterrupt:
        print("\nShutting down...", file=sys.stderr)
    except KubernetesConnectionError as e:
        print(f"Cluster error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover
    main()
