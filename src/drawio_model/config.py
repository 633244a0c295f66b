"""
Server configuration from command-line flags and environment variables.

Flags win over the environment; the environment wins over built-in
defaults.
"""

from __future__ import annotations

import argparse
import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

TRANSPORTS = ("stdio", "sse", "streamable-http")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

ENV_TRANSPORT = "DRAWIO_MODEL_TRANSPORT"
ENV_HOST = "DRAWIO_MODEL_HOST"
ENV_PORT = "DRAWIO_MODEL_PORT"
ENV_LOG_LEVEL = "DRAWIO_MODEL_LOG_LEVEL"


@dataclass(frozen=True)
class ServerConfig:
    transport: str = "stdio"
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "WARNING"

    @property
    def log_level_value(self) -> int:
        return logging.getLevelName(self.log_level)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="drawio-model",
        description="MCP server exposing an in-memory draw.io diagram document.",
    )
    parser.add_argument("--transport", help=f"One of: {', '.join(TRANSPORTS)}")
    parser.add_argument("--host", help="Bind address for network transports")
    parser.add_argument("--port", help="Bind port for network transports")
    parser.add_argument("--log-level", dest="log_level", help=f"One of: {', '.join(LOG_LEVELS)}")
    return parser


def load_config(
    argv: Optional[Sequence[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ServerConfig:
    """Resolve a :class:`ServerConfig`.

    Raises ``ValueError`` when a value is out of range or unknown.
    """
    env = os.environ if environ is None else environ
    args = build_parser().parse_args(list(argv) if argv is not None else [])
    defaults = ServerConfig()

    transport = (args.transport or env.get(ENV_TRANSPORT) or defaults.transport).strip().lower()
    if transport not in TRANSPORTS:
        raise ValueError(f"Unknown transport '{transport}'. Use one of: {', '.join(TRANSPORTS)}.")

    host = args.host or env.get(ENV_HOST) or defaults.host

    raw_port = args.port or env.get(ENV_PORT)
    if raw_port is None:
        port = defaults.port
    else:
        try:
            port = int(raw_port)
        except ValueError:
            raise ValueError(f"Port must be an integer, got '{raw_port}'.") from None
        if not 1 <= port <= 65535:
            raise ValueError(f"Port must be in 1..65535, got {port}.")

    log_level = (args.log_level or env.get(ENV_LOG_LEVEL) or defaults.log_level).strip().upper()
    if log_level not in LOG_LEVELS:
        raise ValueError(f"Unknown log level '{log_level}'. Use one of: {', '.join(LOG_LEVELS)}.")

    return ServerConfig(transport=transport, host=host, port=port, log_level=log_level)
