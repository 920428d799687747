"""Configuration constants for the file server and forwarding proxy."""

import os

HOST: str = "127.0.0.1"
PORT: int = 8080
BUFFER_SIZE: int = 4096
WRITE_CHUNK_SIZE: int = 65_536
BODY_READ_CHUNK_SIZE: int = 65_536
MAX_CONNECTIONS: int = 10
MIN_CONNECTIONS_BOUND: int = 1
MAX_CONNECTIONS_BOUND: int = 10
ACCEPT_POLL_SECS: float = 0.2
ORIGIN_TIMEOUT_SECS: float = 10.0
STORAGE_ROOT: str = os.environ.get("FS", "fs")
PROXY_ORIGIN: str | None = os.environ.get("PROXY_ORIGIN") or None
SERVER_NAME: str = "fsproxy/1.0"
LOG_FORMAT: str = "plain"
