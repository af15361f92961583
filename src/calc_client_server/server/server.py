"""TCP server that answers CALC/1.0 requests using a pool of worker threads."""
from multiprocessing import cpu_count
import socket
import threading
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, IPvAnyAddress, PrivateAttr

from calc_client_server.common.logger import logger
from calc_client_server.server.handler import ConnectionHandler
from calc_client_server.server.pool import WorkerPool

DEFAULT_PORT = 9999
DEFAULT_READ_TIMEOUT = 20.0


def default_workers() -> int:
    """At least two workers, otherwise one per CPU core."""
    return max(2, cpu_count())


class CalcServer(BaseModel):
    """
    TCP socket server handling CALC/1.0 clients.

    Features:
        - Accepts any number of simultaneous connections.
        - Hands each connection to a fixed-size worker pool; extra connections wait in its queue.
        - Sets an idle read timeout on every connection to reclaim abandoned clients.
        - Keeps no state across connections.
    """

    # Allow arbitrary types like socket.socket
    model_config = ConfigDict(arbitrary_types_allowed=True, validate_default=True)

    host: IPvAnyAddress = Field(default="0.0.0.0", description="Address to listen on")
    port: int = Field(default=DEFAULT_PORT, ge=0, le=65535, description="TCP port, 0 lets the OS choose")
    read_timeout: float = Field(default=DEFAULT_READ_TIMEOUT, gt=0, description="Idle read timeout per connection, in seconds")
    workers: int = Field(default_factory=default_workers, ge=2, description="Number of worker threads, at least two")
    poll_interval: float = Field(default=0.5, gt=0, description="How often the accept loop checks for a stop request")

    _sock: Optional[socket.socket] = PrivateAttr(default=None)
    _pool: Optional[WorkerPool] = PrivateAttr(default=None)
    _stopping: threading.Event = PrivateAttr(default_factory=threading.Event)

    @property
    def address(self) -> Optional[Tuple[str, int]]:
        """Bound (host, port), or None before ``bind``."""
        if self._sock is None:
            return None
        host, port = self._sock.getsockname()[:2]
        return host, port

    def bind(self) -> Tuple[str, int]:
        """
        Create the listening socket.

        Address reuse is enabled so the server can be restarted right away on the same port.

        :return: Bound (host, port)
        :rtype: Tuple[str, int]
        """
        if self._sock is not None:
            return self.address
        family = socket.AF_INET6 if self.host.version == 6 else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((str(self.host), self.port))
            sock.listen()
            # Wake up periodically so stop() is noticed
            sock.settimeout(self.poll_interval)
        except OSError:
            sock.close()
            raise
        self._sock = sock
        return self.address

    def _dispatch(self, conn: socket.socket, addr: Tuple) -> None:
        """
        Configure an accepted connection and queue it for a worker.

        :param socket.socket conn: Accepted client socket
        :param tuple addr: Client address as returned by ``accept``
        """
        conn.settimeout(self.read_timeout)
        peer = f"{addr[0]}:{addr[1]}"
        logger.info(f"🤝 Accepted connection from {peer}")
        self._pool.submit(ConnectionHandler(conn=conn, peer=peer).run)

    def start(self) -> None:
        """
        Start the TCP server and serve clients until ``stop`` is called.

        Steps:
            1. Bind and listen on the configured host and port (unless already bound).
            2. Start the worker pool.
            3. Accept connections and hand each one to the pool.
            4. On stop, close the listening socket and let the workers drain.

        :return: None
        """
        host, port = self.bind()
        self._pool = WorkerPool(self.workers)
        self._pool.start()
        logger.info(f"🖥️ Server listening on {host}:{port}")

        try:
            while not self._stopping.is_set():
                try:
                    conn, addr = self._sock.accept()
                except socket.timeout:
                    continue
                except OSError as exc:
                    if self._stopping.is_set():
                        break
                    logger.error(f"🖥️❌ Accept failed: {exc}")
                    raise
                self._dispatch(conn, addr)
        finally:
            self._sock.close()
            self._sock = None
            self._pool.shutdown(wait=False)
            logger.info("🖥️ Server stopped")

    def stop(self) -> None:
        """Ask the accept loop to exit; connections already accepted are served to completion."""
        self._stopping.set()
