"""Prometheus exporter startup for ctfledger.

A port that cannot be bound (already taken by another ledger process, or a
sandbox without sockets) leaves the ledger running without an exporter.
"""

import logging
from typing import Optional

from prometheus_client import start_http_server

log = logging.getLogger(__name__)


def start_server_safe(port: int, addr: str = "0.0.0.0") -> Optional[int]:
    """Start the metrics endpoint; return the bound port or None on failure."""
    try:
        start_http_server(port, addr=addr)
    except OSError as e:
        log.warning(f"Failed to start Prometheus server on {addr}:{port}: {e}")
        return None
    log.info(f"Prometheus metrics server started on {addr}:{port}")
    return port
