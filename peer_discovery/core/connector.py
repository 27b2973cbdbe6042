"""
Single-attempt TCP connector used to probe candidate addresses.
"""

import errno
import os
import socket

from ..utils.error_handler import ProbeTimeoutError


class TCPConnector:
    """
    Opens a TCP connection and closes it straight away.

    A connector is any callable ``connector(address, port, timeout)`` that
    returns on success and raises on failure. Failures are either
    ProbeTimeoutError or an OSError describing why the peer did not answer.
    """

    def __call__(self, address: str, port: int, timeout: float) -> None:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(timeout)
        try:
            result = sock.connect_ex((address, port))
        except socket.timeout as e:
            raise ProbeTimeoutError(f"Connection to {address}:{port} timed out") from e
        finally:
            sock.close()

        if result == 0:
            return
        if result in (errno.EAGAIN, errno.EWOULDBLOCK, errno.ETIMEDOUT):
            raise ProbeTimeoutError(f"Connection to {address}:{port} timed out")
        raise OSError(result, os.strerror(result))
