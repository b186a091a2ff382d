"""
Constants and configuration for loks.

This module contains the configuration constants used throughout loks,
including logging defaults, stream tuning, status server defaults and the
environment variable names that override them.

Constants are organized by category:
- Logging: Default log levels and format
- Log streams: Read sizes for container log streams
- Status server: Default host and port for the optional HTTP endpoint
- Environment: Names of the LOKS_* environment variables
"""

# Logging
DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "[%(asctime)s] %(levelname)s %(message)s"
DEFAULT_UVICORN_LOG_LEVEL = "warning"

# Log streams
LOG_STREAM_CHUNK_BYTES = 64 * 1024
STREAM_THREAD_PREFIX = "loks-stream"

# Status server (0 disables it)
DEFAULT_STATUS_HOST = "127.0.0.1"
DEFAULT_STATUS_PORT = 0

# Directory sink
LOG_FILE_SUFFIX = ".log"

# Environment variables
ENV_LOG_LEVEL = "LOKS_LOG_LEVEL"
ENV_KUBECONFIG = "LOKS_KUBECONFIG"
ENV_STATUS_HOST = "LOKS_STATUS_HOST"
ENV_STATUS_PORT = "LOKS_STATUS_PORT"
ENV_UVICORN_LEVEL = "LOKS_UVICORN_LEVEL"
