"""
DatagramSource - Blocking, timeout-bounded receive over one UDP socket.
"""

import socket


class UdpDatagramSource:
    """
    Wraps a bound UDP socket with a single-call receive contract.

    `receive()` performs exactly one blocking `recvfrom`. A timeout is not an
    error: it returns None so the caller can re-check its shutdown flag. Any
    other socket failure (including the socket being closed from another
    thread during shutdown) propagates as OSError.

    Example usage:
        source = UdpDatagramSource(port=12345)
        source.open()
        data = source.receive(timeout_ms=2000)
        if data is None:
            ...  # timed out
        source.close()
    """

    def __init__(
        self,
        port: int,
        host: str = "0.0.0.0",
        recv_buffer_bytes: int = 8 * 1024 * 1024,
        max_datagram: int = 65535,
    ):
        self.host = host
        self.port = port
        self.recv_buffer_bytes = recv_buffer_bytes
        self.max_datagram = max_datagram
        self.sock = None

    def open(self):
        """Create and bind the socket. Port 0 binds an ephemeral port."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF, self.recv_buffer_bytes)
        except OSError:
            pass
        try:
            sock.bind((self.host, self.port))
        except OSError:
            sock.close()
            raise
        self.port = sock.getsockname()[1]
        self.sock = sock
        return self

    def receive(self, timeout_ms: float):
        """
        Wait for one datagram.

        Args:
            timeout_ms: Maximum time to block, in milliseconds

        Returns:
            Datagram bytes, or None if the timeout elapsed.

        Raises:
            OSError: If the socket failed or was closed.
        """
        sock = self.sock
        if sock is None:
            raise OSError("datagram source is closed")
        sock.settimeout(max(timeout_ms, 1) / 1000.0)
        try:
            data, _addr = sock.recvfrom(self.max_datagram)
        except socket.timeout:
            return None
        return data

    def close(self):
        """Close the socket. Safe to call more than once and from any thread."""
        sock = self.sock
        self.sock = None
        if sock is not None:
            # Wakes a recvfrom blocked in another thread on Linux.
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            try:
                sock.close()
            except OSError:
                pass

    @property
    def closed(self) -> bool:
        return self.sock is None
