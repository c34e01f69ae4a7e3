from __future__ import annotations

import socket
from typing import Collection, Optional, Set

import psutil

from uni.utils.errors import UniError


def accepting_pids(listen_port: int, client_port: int) -> Set[int]:
    """Return pids holding the server side of the connection from `client_port`."""
    pids: Set[int] = set()
    for conn in psutil.net_connections(kind="tcp"):
        if conn.pid is None or not conn.laddr or not conn.raddr:
            continue
        if conn.laddr.port == listen_port and conn.raddr.port == client_port:
            pids.add(conn.pid)
    return pids


class ConnectionProbe:
    """Proves which process accepted a fresh connection to the listen address."""

    def __init__(self, connect_timeout: float = 1.0) -> None:
        self.connect_timeout = connect_timeout

    def confirms(self, host: str, port: int, candidate_pids: Collection[int]) -> bool:
        """Return True when a process in `candidate_pids` accepted our connection."""
        sock: Optional[socket.socket] = None
        try:
            sock = socket.create_connection((host, port), timeout=self.connect_timeout)
            client_port = sock.getsockname()[1]
            owners = accepting_pids(port, client_port)
        except psutil.AccessDenied as exc:
            raise UniError(f"Cannot inspect TCP connections without more privileges: {exc}") from exc
        except OSError:
            return False
        finally:
            if sock is not None:
                sock.close()

        return any(pid in candidate_pids for pid in owners)
