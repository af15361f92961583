"""Per-connection protocol loop."""
import socket
from typing import Optional, TextIO

from pydantic import BaseModel, ConfigDict, Field

from calc_client_server.common.logger import logger
from calc_client_server.server.evaluator import handle_request

BYE = "bye"


class ConnectionHandler(BaseModel):
    """
    Serve one client connection until it ends.

    Lifecycle:
        - Created by the listener for an accepted socket
        - Reads one request line at a time and writes one response per line
        - Closes the socket on ``bye``, end of stream, idle timeout or I/O error
    """

    # Make the Pydantic instance immutable (read-only)
    # Allow arbitrary types like socket.socket
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    conn: socket.socket = Field(..., description="Accepted client socket, owned by this handler")
    peer: str = Field(default="?", description="Client address, for logging")

    @staticmethod
    def _strip_terminator(line: str) -> str:
        """Remove the trailing line break (``\\n`` or ``\\r\\n``) only."""
        return line.rstrip("\r\n")

    def serve(self, reader: TextIO, writer: TextIO) -> str:
        """
        Run the request/response loop over already opened streams.

        :param TextIO reader: Text stream reading from the client
        :param TextIO writer: Text stream writing to the client

        :return: Why the loop ended: ``"bye"`` or ``"eof"``
        :rtype: str
        """
        for raw in reader:
            line = self._strip_terminator(raw)
            if line.lower() == BYE:
                return "bye"
            writer.write(handle_request(line).serialize())
            writer.flush()
        return "eof"

    def run(self) -> None:
        """
        Handle the connection, then close the socket.

        Transport errors end the session; they are logged and never propagated, so a broken
        client cannot take down the worker that serves it.

        :return: None
        """
        logger.info(f"🔌 Connection opened: {self.peer}")
        reason: Optional[str] = None
        try:
            with self.conn.makefile("r", encoding="utf-8", errors="replace", newline="\n") as reader, \
                    self.conn.makefile("w", encoding="utf-8", newline="\n") as writer:
                reason = self.serve(reader, writer)
        except socket.timeout:
            reason = "timeout"
        except OSError as exc:
            reason = f"I/O error: {exc}"
        finally:
            try:
                self.conn.close()
            except OSError:
                pass
            logger.info(f"🔌 Connection closed: {self.peer} ({reason})")
