"""TCP client."""
import configparser
from pathlib import Path
import socket
from typing import Callable, Dict, Optional, TextIO

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError

from calc_client_server.common.errors import ProtocolError
from calc_client_server.common.logger import logger
from calc_client_server.common.response import Response, ResponseType, read_response

DEFAULT_CONFIG_FILE = Path("server_info.dat")
PROMPT = "Expression (ADD 10 20 or 24 + 42), 'bye' to exit >> "


class CalcClient(BaseModel):
    """
    TCP client sending one expression per line to a CALC/1.0 server.

    The TCP client:
    - opens one connection and keeps it for the whole session
    - sends each expression as a single line and reads back one response
    - ends the session with ``bye``
    """

    # Make the Pydantic instance immutable (read-only), to prevent errors
    # that could be caused by changes to the network configuration during execution.
    model_config = ConfigDict(frozen=True)

    host: str = Field(default="127.0.0.1", min_length=1, description="Server host name or address")
    port: int = Field(default=9999, ge=1, le=65535, description="Server TCP port")
    timeout: Optional[float] = Field(default=None, gt=0, description="Socket timeout in seconds, None blocks")

    _sock: Optional[socket.socket] = PrivateAttr(default=None)
    _reader: Optional[TextIO] = PrivateAttr(default=None)
    _writer: Optional[TextIO] = PrivateAttr(default=None)

    @classmethod
    def from_config(cls, path: Path = DEFAULT_CONFIG_FILE) -> "CalcClient":
        """
        Build a client from an optional properties file with ``host`` and ``port`` keys.

        A missing or unreadable file keeps the defaults; an invalid value only discards that key.

        :param Path path: Path to the properties file

        :return: Configured client
        :rtype: CalcClient
        """
        if not path.is_file():
            return cls()

        parser = configparser.ConfigParser(interpolation=None)
        try:
            # Properties files have no section header
            parser.read_string("[server]\n" + path.read_text(encoding="utf-8"))
        except (OSError, configparser.Error) as exc:
            logger.warning(f"⚙️ Ignoring unreadable config {path}: {exc}")
            return cls()

        values: Dict[str, str] = {}
        for key in ("host", "port"):
            if key not in parser["server"]:
                continue
            value = parser["server"][key].strip()
            try:
                cls(**{key: value})
            except ValidationError as exc:
                logger.warning(f"⚙️ Ignoring invalid {key}={value!r} in {path}: {exc.errors()[0]['msg']}")
                continue
            values[key] = value
        return cls(**values)

    def connect(self) -> "CalcClient":
        """Open the connection to the server."""
        if self._sock is None:
            sock = socket.create_connection((self.host, self.port), timeout=self.timeout)
            self._sock = sock
            self._reader = sock.makefile("r", encoding="utf-8", newline="\n")
            self._writer = sock.makefile("w", encoding="utf-8", newline="\n")
        return self

    def close(self) -> None:
        """Close the connection; safe to call more than once."""
        for stream in (self._writer, self._reader):
            if stream is not None:
                try:
                    stream.close()
                except OSError:
                    pass
        if self._sock is not None:
            self._sock.close()
        self._sock = self._reader = self._writer = None

    def __enter__(self) -> "CalcClient":
        return self.connect()

    def __exit__(self, *args) -> None:
        self.close()

    def _send_line(self, line: str) -> None:
        if self._writer is None:
            raise ConnectionError("Client is not connected")
        self._writer.write(line + "\n")
        self._writer.flush()

    def request(self, expression: str) -> Response:
        """
        Send one expression and wait for its response.

        :param str expression: Request line, e.g. ``ADD 10 20`` or ``10 + 20``

        :return: Server response
        :rtype: Response
        :raises ConnectionError: If the server closed the connection
        :raises ProtocolError: If the server sent a malformed response
        """
        self._send_line(expression)
        response = read_response(self._reader)
        if response is None:
            raise ConnectionError("Server closed")
        return response

    def bye(self) -> None:
        """End the session; the server sends no response to ``bye``."""
        try:
            self._send_line("bye")
        finally:
            self.close()

    @staticmethod
    def describe(response: Response) -> str:
        """
        Format a response for display.

        :param Response response: Server response

        :return: ``Answer: <value>`` on success, else ``Error message: <message>``
        :rtype: str
        """
        if response.status == 200 and response.type is ResponseType.ANSWER:
            return f"Answer: {response.value}"
        return f"Error message: {response.error_message or response.reason}"

    def interactive(
        self,
        read: Callable[[str], str] = input,
        write: Callable[[str], None] = print,
    ) -> None:
        """
        Prompt for expressions until the user types ``bye`` or the server goes away.

        :param read: Prompt function returning one line of user input
        :param write: Output function for answers and messages
        """
        with self:
            write(f"Connected to {self.host}:{self.port}")
            while True:
                try:
                    line = read(PROMPT)
                except EOFError:
                    line = "bye"
                if line.strip().lower() == "bye":
                    self.bye()
                    return
                try:
                    response = self.request(line)
                except ConnectionError:
                    write("Server closed")
                    return
                except ProtocolError as exc:
                    write(f"Error message: {exc}")
                    continue
                write(self.describe(response))
